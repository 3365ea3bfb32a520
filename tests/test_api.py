import json
import urllib.error
import urllib.request

import pytest

from minicoin.api import ApiServer
from minicoin.block import generate_random_block
from minicoin.blockchain import Blockchain
from minicoin.message import MessageKind
from minicoin.server import ServerHandle


class RecordingMiner:
    def __init__(self):
        self.calls = []

    def start(self, lam):
        self.calls.append(lam)


class RecordingGenerator:
    def __init__(self):
        self.calls = []

    def start(self, theta):
        self.calls.append(theta)


@pytest.fixture
def setup():
    network, receiver = ServerHandle.for_test()
    blockchain = Blockchain()
    miner = RecordingMiner()
    generator = RecordingGenerator()
    api = ApiServer(("127.0.0.1", 0), miner, network, blockchain, generator)
    return api, miner, generator, receiver, blockchain


def test_miner_start(setup):
    api, miner, *_ = setup
    status, body = api.route("/miner/start?lambda=0")
    assert status == 200
    assert json.loads(body) == {"success": True, "message": "ok"}
    assert miner.calls == [0]


def test_result_is_pretty_printed(setup):
    api, *_ = setup
    _, body = api.route("/miner/start?lambda=7")
    assert body == '{\n  "success": true,\n  "message": "ok"\n}'


def test_missing_lambda(setup):
    api, miner, *_ = setup
    status, body = api.route("/miner/start")
    assert status == 200
    assert json.loads(body) == {"success": False, "message": "missing lambda"}
    assert miner.calls == []


def test_bad_lambda(setup):
    api, miner, *_ = setup
    _, body = api.route("/miner/start?lambda=-3")
    assert json.loads(body)["message"] == "error parsing lambda: invalid digit found in string"
    assert miner.calls == []


def test_tx_generator_start(setup):
    api, _, generator, *_ = setup
    _, body = api.route("/tx-generator/start?theta=100")
    assert json.loads(body)["success"] is True
    assert generator.calls == [100]


def test_missing_theta(setup):
    api, _, generator, *_ = setup
    _, body = api.route("/tx-generator/start?lambda=1")
    assert json.loads(body)["message"] == "missing theta"
    assert generator.calls == []


def test_ping_broadcasts(setup):
    api, _, _, receiver, _ = setup
    _, body = api.route("/network/ping")
    assert json.loads(body)["success"] is True
    message = receiver.recv(timeout=2)
    assert message.kind is MessageKind.PING
    assert message.payload == "Test ping"


def test_longest_chain(setup):
    api, *_, blockchain = setup
    block = generate_random_block(blockchain.tip)
    blockchain.insert(block)
    status, body = api.route("/blockchain/longest-chain")
    assert status == 200
    chain = json.loads(body)
    assert len(chain) == 2
    assert chain[1] == str(block.hash())
    assert "," in body and ", " not in body


def test_longest_chain_tx(setup):
    api, *_, blockchain = setup
    block = generate_random_block(blockchain.tip)
    blockchain.insert(block)
    _, body = api.route("/blockchain/longest-chain-tx")
    assert json.loads(body) == [[], [str(block.data[0].hash())]]


def test_state_of_genesis(setup):
    api, *_, blockchain = setup
    _, body = api.route("/blockchain/state?block=0")
    entries = json.loads(body)
    state = blockchain.states[blockchain.tip]
    assert len(entries) == 1
    (address,) = list(state.data)
    account = state.data[address]
    assert entries[0].startswith(f"({address}, ")
    assert entries[0].endswith(f", {account.balance})")


def test_state_index_out_of_range(setup):
    api, *_ = setup
    _, body = api.route("/blockchain/state?block=5")
    assert json.loads(body)["success"] is False


def test_state_missing_block(setup):
    api, *_ = setup
    _, body = api.route("/blockchain/state")
    assert json.loads(body)["message"] == "missing block"


def test_tx_count_unimplemented(setup):
    api, *_ = setup
    _, body = api.route("/blockchain/longest-chain-tx-count")
    assert json.loads(body) == {"success": False, "message": "unimplemented!"}


def test_unknown_endpoint(setup):
    api, *_ = setup
    status, body = api.route("/nothing/here")
    assert status == 404
    assert json.loads(body) == {"success": False, "message": "endpoint not found"}


def test_over_http(setup):
    api, _, _, receiver, _ = setup
    host, port = api.start()
    try:
        with urllib.request.urlopen(f"http://{host}:{port}/network/ping", timeout=5) as resp:
            assert resp.headers["Content-Type"] == "application/json"
            assert json.loads(resp.read()) == {"success": True, "message": "ok"}
        assert receiver.recv(timeout=2).payload == "Test ping"
        with pytest.raises(urllib.error.HTTPError) as info:
            urllib.request.urlopen(f"http://{host}:{port}/missing", timeout=5)
        assert info.value.code == 404
    finally:
        api.shutdown()