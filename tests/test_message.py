import pytest

from minicoin.block import generate_random_block
from minicoin.codec import DecodeError
from minicoin.hash import generate_random_hash
from minicoin.message import Message, MessageKind
from minicoin.transaction import generate_random_signed_transaction


def test_ping_wire_bytes():
    message = Message(MessageKind.PING, "hi")
    assert message.encode() == bytes.fromhex("00000000" "0200000000000000") + b"hi"


def test_empty_hash_list_wire_bytes():
    message = Message(MessageKind.GET_BLOCKS, [])
    assert message.encode() == bytes.fromhex("03000000" "0000000000000000")


@pytest.mark.parametrize("kind", [MessageKind.PING, MessageKind.PONG])
def test_text_round_trip(kind):
    message = Message(kind, "Test ping")
    assert Message.decode(message.encode()) == message


@pytest.mark.parametrize(
    "kind",
    [
        MessageKind.NEW_BLOCK_HASHES,
        MessageKind.GET_BLOCKS,
        MessageKind.NEW_TRANSACTION_HASHES,
        MessageKind.GET_TRANSACTIONS,
    ],
)
def test_hash_list_round_trip(kind):
    hashes = [generate_random_hash() for _ in range(3)]
    decoded = Message.decode(Message(kind, hashes).encode())
    assert decoded.kind == kind
    assert decoded.payload == tuple(hashes)


def test_blocks_round_trip():
    parent = generate_random_hash()
    blocks = [generate_random_block(parent), generate_random_block(parent)]
    decoded = Message.decode(Message(MessageKind.BLOCKS, blocks).encode())
    assert decoded.payload == tuple(blocks)
    assert decoded.payload[0].hash() == blocks[0].hash()


def test_transactions_round_trip():
    txs = [generate_random_signed_transaction() for _ in range(2)]
    decoded = Message.decode(Message(MessageKind.TRANSACTIONS, txs).encode())
    assert decoded == Message(MessageKind.TRANSACTIONS, txs)


def test_unknown_kind_raises():
    with pytest.raises(DecodeError):
        Message.decode(bytes.fromhex("08000000"))


def test_trailing_bytes_raise():
    data = Message(MessageKind.PONG, "x").encode() + b"\x00"
    with pytest.raises(DecodeError):
        Message.decode(data)


def test_truncated_raises():
    data = Message(MessageKind.GET_BLOCKS, [generate_random_hash()]).encode()
    with pytest.raises(DecodeError):
        Message.decode(data[:-1])


def test_invalid_utf8_raises():
    data = bytes.fromhex("00000000" "0100000000000000") + b"\xff"
    with pytest.raises(DecodeError):
        Message.decode(data)


def test_wrong_payload_type_raises():
    with pytest.raises(TypeError):
        Message(MessageKind.PING, ["not", "text"])
    with pytest.raises(TypeError):
        Message(MessageKind.GET_BLOCKS, ["not a hash"])