"""20-byte account addresses derived from public keys."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass

_SIZE = 20
_PRECISION = re.compile(r"\.(\d+)")


@dataclass(frozen=True, order=True, repr=False)
class Address:
    """An account address: the last 20 bytes of the SHA-256 of a public key."""

    data: bytes = bytes(_SIZE)

    def __post_init__(self) -> None:
        raw = bytes(self.data)
        if len(raw) != _SIZE:
            raise ValueError(f"Address needs {_SIZE} bytes, got {len(raw)}")
        object.__setattr__(self, "data", raw)

    @classmethod
    def from_hex(cls, text: str) -> Address:
        return cls(bytes.fromhex(text))

    @classmethod
    def from_public_key_bytes(cls, data: bytes) -> Address:
        digest = hashlib.sha256(bytes(data)).digest()
        return cls(digest[-_SIZE:])

    def __str__(self) -> str:
        return self.data.hex()

    def __repr__(self) -> str:
        return f"{self.data[:2].hex()}..{self.data[-2:].hex()}"

    def __format__(self, spec: str) -> str:
        if not spec:
            return str(self)
        match = _PRECISION.fullmatch(spec)
        if match is None:
            raise ValueError(f"invalid format specifier {spec!r} for Address")
        precision = int(match[1])
        start = 0 if precision >= 2 * _SIZE else _SIZE - precision // 2
        return self.data[start:].hex()

    def __bytes__(self) -> bytes:
        return self.data