"""Binary encoding helpers: little-endian fixed-width integers and length-prefixed bytes."""

from __future__ import annotations


class DecodeError(ValueError):
    """Raised when encoded data is truncated or malformed."""


def _pack(value: int, size: int, signed: bool) -> bytes:
    try:
        return int(value).to_bytes(size, "little", signed=signed)
    except OverflowError as exc:
        kind = "signed" if signed else "unsigned"
        raise ValueError(
            f"{value} does not fit in a {size * 8}-bit {kind} integer"
        ) from exc


def encode_u32(value: int) -> bytes:
    """Encode an unsigned 32-bit integer."""
    return _pack(value, 4, signed=False)


def encode_u64(value: int) -> bytes:
    """Encode an unsigned 64-bit integer."""
    return _pack(value, 8, signed=False)


def encode_i64(value: int) -> bytes:
    """Encode a signed 64-bit integer."""
    return _pack(value, 8, signed=True)


def encode_u128(value: int) -> bytes:
    """Encode an unsigned 128-bit integer."""
    return _pack(value, 16, signed=False)


def encode_bytes(data: bytes) -> bytes:
    """Encode a byte string prefixed by its length as a u64."""
    raw = bytes(data)
    return encode_u64(len(raw)) + raw


class Decoder:
    """Sequential reader over an encoded byte string."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def read_fixed(self, size: int) -> bytes:
        """Read exactly ``size`` raw bytes."""
        if size < 0:
            raise DecodeError(f"cannot read a negative number of bytes: {size}")
        end = self._pos + size
        if end > len(self._data):
            raise DecodeError(
                f"need {size} bytes at offset {self._pos}, only {self.remaining} left"
            )
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def read_u32(self) -> int:
        return int.from_bytes(self.read_fixed(4), "little")

    def read_u64(self) -> int:
        return int.from_bytes(self.read_fixed(8), "little")

    def read_i64(self) -> int:
        return int.from_bytes(self.read_fixed(8), "little", signed=True)

    def read_u128(self) -> int:
        return int.from_bytes(self.read_fixed(16), "little")

    def read_bytes(self) -> bytes:
        """Read a u64 length prefix followed by that many bytes."""
        return self.read_fixed(self.read_u64())

    def finish(self) -> None:
        """Raise if any input is left unread."""
        if self.remaining:
            raise DecodeError(f"{self.remaining} trailing bytes after decoding")