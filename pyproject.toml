[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "minicoin"
version = "0.1.0"
description = "A small proof-of-work cryptocurrency node with a P2P network, miner, transaction generator and JSON API"
requires-python = ">=3.10"
keywords = ["blockchain", "cryptocurrency", "proof-of-work", "merkle", "p2p", "ed25519"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
minicoin = "minicoin.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["minicoin"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
