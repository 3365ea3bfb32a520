"""Fixed-size 256-bit hash values."""

from __future__ import annotations

import hashlib
import os
import re
from dataclasses import dataclass

_SIZE = 32
_PRECISION = re.compile(r"\.(\d+)")


@dataclass(frozen=True, order=True, repr=False)
class H256:
    """A SHA-256 digest, ordered as a big-endian 256-bit integer."""

    data: bytes = bytes(_SIZE)

    def __post_init__(self) -> None:
        raw = bytes(self.data)
        if len(raw) != _SIZE:
            raise ValueError(f"H256 needs {_SIZE} bytes, got {len(raw)}")
        object.__setattr__(self, "data", raw)

    @classmethod
    def from_hex(cls, text: str) -> H256:
        return cls(bytes.fromhex(text))

    @classmethod
    def zero(cls) -> H256:
        return cls(bytes(_SIZE))

    def hash(self) -> H256:
        """Hash the raw bytes of this value."""
        return sha256(self.data)

    def __str__(self) -> str:
        return self.data.hex()

    def __repr__(self) -> str:
        return f"{self.data[:2].hex()}..{self.data[-2:].hex()}"

    def __format__(self, spec: str) -> str:
        if not spec:
            return str(self)
        match = _PRECISION.fullmatch(spec)
        if match is None:
            raise ValueError(f"invalid format specifier {spec!r} for H256")
        precision = int(match[1])
        start = 0 if precision >= 2 * _SIZE else _SIZE - precision // 2
        return self.data[start:].hex()

    def __bytes__(self) -> bytes:
        return self.data


def sha256(data: bytes) -> H256:
    """SHA-256 digest of ``data``."""
    return H256(hashlib.sha256(bytes(data)).digest())


def generate_random_hash() -> H256:
    return H256(os.urandom(_SIZE))