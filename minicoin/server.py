"""Peer-to-peer TCP server: accepts and dials peers, frames messages, broadcasts."""

from __future__ import annotations

import logging
import queue
import socket
import struct
import threading
from dataclasses import dataclass
from typing import BinaryIO, Union

from minicoin.message import Message
from minicoin.peer import Direction, PeerHandle

log = logging.getLogger(__name__)

CONTROL_CAPACITY = 10000
_HEADER = struct.Struct(">I")
_MAX_FRAME = 2**32 - 1

SocketAddr = tuple[str, int]


def encode_frame(payload: bytes) -> bytes:
    """Prefix ``payload`` with its length as a big-endian u32."""
    data = bytes(payload)
    if len(data) > _MAX_FRAME:
        raise ValueError(f"frame of {len(data)} bytes is too large")
    return _HEADER.pack(len(data)) + data


def _read_exact(reader: BinaryIO, size: int) -> bytes:
    buffer = bytearray()
    while len(buffer) < size:
        chunk = reader.read(size - len(buffer))
        if not chunk:
            break
        buffer += chunk
    return bytes(buffer)


def read_frame(reader: BinaryIO) -> bytes | None:
    """Read one length-prefixed frame.

    Returns None on a clean end of stream before a frame starts and raises
    EOFError if the stream ends inside a frame.
    """
    header = _read_exact(reader, _HEADER.size)
    if not header:
        return None
    if len(header) < _HEADER.size:
        raise EOFError("stream ended inside a frame header")
    (size,) = _HEADER.unpack(header)
    payload = _read_exact(reader, size)
    if len(payload) < size:
        raise EOFError(f"stream ended after {len(payload)} of {size} frame bytes")
    return payload


@dataclass(frozen=True)
class _ConnectNewPeer:
    addr: SocketAddr
    result: queue.Queue


@dataclass(frozen=True)
class _BroadcastMessage:
    message: Message


@dataclass(frozen=True)
class _GetNewPeer:
    sock: socket.socket


@dataclass(frozen=True)
class _DroppedPeer:
    addr: SocketAddr


_ControlSignal = Union[_ConnectNewPeer, _BroadcastMessage, _GetNewPeer, _DroppedPeer]


class ServerHandle:
    """A cheap, shareable handle for sending commands to a running server."""

    def __init__(self, control: queue.Queue) -> None:
        self._control = control

    def connect(self, addr: SocketAddr) -> PeerHandle:
        """Dial ``addr`` and register it as a peer; raises OSError on failure."""
        result: queue.Queue = queue.Queue(maxsize=1)
        self._control.put(_ConnectNewPeer(tuple(addr), result))
        outcome = result.get()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def broadcast(self, message: Message) -> None:
        """Send ``message`` to every connected peer."""
        self._control.put(_BroadcastMessage(message))

    @classmethod
    def for_test(cls) -> tuple[ServerHandle, ServerTestReceiver]:
        """A handle whose commands are collected by a receiver instead of a server."""
        control: queue.Queue = queue.Queue()
        return cls(control), ServerTestReceiver(control)


class ServerTestReceiver:
    """Reads the commands sent through a test handle."""

    def __init__(self, control: queue.Queue) -> None:
        self._control = control

    def recv(self, timeout: float | None = None) -> Message | None:
        """The next broadcast message, or None for any other command."""
        try:
            signal = self._control.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError(f"no server command within {timeout}s") from None
        if isinstance(signal, _BroadcastMessage):
            return signal.message
        return None


class ServerContext:
    """The server itself: the listener, the peer table and the command loop."""

    def __init__(
        self, addr: SocketAddr, control: queue.Queue, msg_sink: queue.Queue
    ) -> None:
        self.addr = tuple(addr)
        self._control = control
        self._msg_sink = msg_sink
        self._peers: dict[SocketAddr, PeerHandle] = {}

    def start(self) -> SocketAddr:
        """Bind the listener and start serving; returns the bound address."""
        host = self.addr[0]
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        listener = socket.create_server(self.addr, family=family)
        self.addr = tuple(listener.getsockname()[:2])
        log.info("P2P server listening at %s:%s", *self.addr)
        threading.Thread(
            target=self._dispatch_control, name="p2p-dispatch", daemon=True
        ).start()
        threading.Thread(
            target=self._listener_loop, args=(listener,), name="p2p-listener", daemon=True
        ).start()
        return self.addr

    def _listener_loop(self, listener: socket.socket) -> None:
        with listener:
            while True:
                try:
                    sock, addr = listener.accept()
                except OSError as exc:
                    log.error("P2P listener stopped: %s", exc)
                    return
                self._control.put(_GetNewPeer(sock))
                log.info("Incoming peer from %s", addr)

    def _dispatch_control(self) -> None:
        while True:
            signal: _ControlSignal = self._control.get()
            match signal:
                case _ConnectNewPeer(addr=addr, result=result):
                    log.debug("processing ConnectNewPeer(%s)", addr)
                    try:
                        outcome: PeerHandle | OSError = self._connect(addr)
                    except OSError as exc:
                        outcome = exc
                    result.put(outcome)
                case _BroadcastMessage(message=message):
                    log.debug("processing BroadcastMessage")
                    for peer in self._peers.values():
                        peer.write(message)
                case _GetNewPeer(sock=sock):
                    log.debug("processing GetNewPeer")
                    try:
                        self._register(sock, Direction.INCOMING)
                    except OSError as exc:
                        log.error("failed to register incoming peer: %s", exc)
                        sock.close()
                case _DroppedPeer(addr=addr):
                    log.debug("processing DroppedPeer(%s)", addr)
                    self._peers.pop(addr, None)
                    log.info("Peer %s disconnected", addr)

    def _connect(self, addr: SocketAddr) -> PeerHandle:
        log.debug("establishing connection to peer %s", addr)
        sock = socket.create_connection(addr)
        try:
            return self._register(sock, Direction.OUTGOING)
        except OSError:
            sock.close()
            raise

    def _register(self, sock: socket.socket, direction: Direction) -> PeerHandle:
        addr = tuple(sock.getpeername()[:2])
        handle = PeerHandle(addr)
        log.debug("registering %s peer %s", direction.value, addr)
        threading.Thread(
            target=self._read_loop, args=(sock, handle), name="peer-reader", daemon=True
        ).start()
        threading.Thread(
            target=self._write_loop, args=(sock, handle), name="peer-writer", daemon=True
        ).start()
        self._peers[addr] = handle
        return handle

    def _read_loop(self, sock: socket.socket, handle: PeerHandle) -> None:
        with sock.makefile("rb") as reader:
            while True:
                try:
                    payload = read_frame(reader)
                except (OSError, EOFError):
                    break
                if payload is None:
                    break
                self._msg_sink.put((payload, handle))
        handle.close()

    def _write_loop(self, sock: socket.socket, handle: PeerHandle) -> None:
        while True:
            frame = handle.next_frame()
            if frame is None:
                break
            try:
                sock.sendall(encode_frame(frame))
            except OSError:
                break
        handle.close()
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        sock.close()
        self._control.put(_DroppedPeer(handle.addr))


def new_server(
    addr: SocketAddr, msg_sink: queue.Queue
) -> tuple[ServerContext, ServerHandle]:
    """Create a server that delivers ``(payload, peer)`` pairs to ``msg_sink``."""
    control: queue.Queue = queue.Queue(maxsize=CONTROL_CAPACITY)
    return ServerContext(addr, control, msg_sink), ServerHandle(control)