import io
import queue
import socket
import time

import pytest

from minicoin import server
from minicoin.message import Message, MessageKind
from minicoin.server import ServerHandle


def _start_node():
    sink = queue.Queue()
    ctx, handle = server.new_server(("127.0.0.1", 0), sink)
    addr = ctx.start()
    return addr, handle, sink


def test_encode_frame_prefixes_big_endian_length():
    assert server.encode_frame(b"abc") == b"\x00\x00\x00\x03abc"


def test_read_frame_round_trips_a_sequence():
    stream = io.BytesIO(
        server.encode_frame(b"one") + server.encode_frame(b"") + server.encode_frame(b"three")
    )
    assert [server.read_frame(stream) for _ in range(3)] == [b"one", b"", b"three"]
    assert server.read_frame(stream) is None


def test_read_frame_truncated_header():
    with pytest.raises(EOFError):
        server.read_frame(io.BytesIO(b"\x00\x00"))


def test_read_frame_truncated_payload():
    with pytest.raises(EOFError):
        server.read_frame(io.BytesIO(server.encode_frame(b"hello")[:-1]))


def test_test_receiver_returns_broadcasts_in_order():
    handle, receiver = ServerHandle.for_test()
    first = Message(MessageKind.PING, "Test ping")
    second = Message(MessageKind.NEW_BLOCK_HASHES, ())
    handle.broadcast(first)
    handle.broadcast(second)
    assert receiver.recv(1) == first
    assert receiver.recv(1) == second


def test_test_receiver_times_out():
    _, receiver = ServerHandle.for_test()
    with pytest.raises(TimeoutError):
        receiver.recv(0.05)


def test_connected_peers_exchange_messages():
    addr_a, _, sink_a = _start_node()
    _, handle_b, sink_b = _start_node()
    peer = handle_b.connect(addr_a)
    assert peer.addr == addr_a

    ping = Message(MessageKind.PING, "Test ping")
    handle_b.broadcast(ping)
    payload, from_peer = sink_a.get(timeout=5)
    assert Message.decode(payload) == ping

    pong = Message(MessageKind.PONG, "Test ping")
    from_peer.write(pong)
    payload, back = sink_b.get(timeout=5)
    assert Message.decode(payload) == pong
    assert back is peer


def test_closing_a_peer_disconnects_the_other_side():
    addr_a, _, sink_a = _start_node()
    _, handle_b, _ = _start_node()
    peer = handle_b.connect(addr_a)
    handle_b.broadcast(Message(MessageKind.PING, "hello"))
    _, from_peer = sink_a.get(timeout=5)

    peer.close()
    deadline = time.monotonic() + 5
    while not from_peer.closed and time.monotonic() < deadline:
        time.sleep(0.01)
    assert from_peer.closed


def test_connect_to_closed_port_raises():
    _, handle, _ = _start_node()
    with socket.socket() as probe:
        probe.bind(("127.0.0.1", 0))
        port = probe.getsockname()[1]
    with pytest.raises(OSError):
        handle.connect(("127.0.0.1", port))