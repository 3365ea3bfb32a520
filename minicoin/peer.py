"""Handles for connected peers: an outgoing queue of encoded messages."""

from __future__ import annotations

import enum
import logging
import queue
import threading

from minicoin.message import Message

log = logging.getLogger(__name__)

_CLOSED = object()


class Direction(enum.Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"


class PeerHandle:
    """The sending side of a peer connection.

    Messages written here are queued as encoded frames for the connection's
    writer to pick up with :meth:`next_frame`.
    """

    def __init__(self, addr: tuple[str, int]) -> None:
        self._addr = addr
        self._queue: queue.Queue = queue.Queue()
        self._closed = threading.Event()

    @property
    def addr(self) -> tuple[str, int]:
        return self._addr

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def write(self, message: Message) -> None:
        """Queue ``message`` for sending; dropped if the peer is gone."""
        if self._closed.is_set():
            log.debug("trying to send to disconnected peer %s", self._addr)
            return
        self._queue.put(message.encode())

    def next_frame(self, timeout: float | None = None) -> bytes | None:
        """The next queued payload, or None once the handle is closed.

        Raises TimeoutError if nothing arrives within ``timeout`` seconds.
        """
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError(f"no message for {self._addr} within {timeout}s") from None
        if item is _CLOSED:
            self._queue.put(_CLOSED)
            return None
        return item

    def recv_message(self, timeout: float | None = None) -> Message:
        """Decode the next queued message."""
        frame = self.next_frame(timeout)
        if frame is None:
            raise ConnectionError(f"peer {self._addr} is closed")
        return Message.decode(frame)

    def close(self) -> None:
        """Stop accepting writes; readers see the end after draining the queue."""
        if not self._closed.is_set():
            self._closed.set()
            self._queue.put(_CLOSED)

    def __repr__(self) -> str:
        return f"PeerHandle(addr={self._addr!r})"