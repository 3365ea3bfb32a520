"""Peer-to-peer messages and their binary encoding."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Union

from minicoin.block import Block
from minicoin.codec import DecodeError, Decoder, encode_bytes, encode_u32, encode_u64
from minicoin.hash import H256
from minicoin.transaction import SignedTransaction

_HASH_SIZE = 32


class MessageKind(enum.IntEnum):
    PING = 0
    PONG = 1
    NEW_BLOCK_HASHES = 2
    GET_BLOCKS = 3
    BLOCKS = 4
    NEW_TRANSACTION_HASHES = 5
    GET_TRANSACTIONS = 6
    TRANSACTIONS = 7


_TEXT_KINDS = frozenset({MessageKind.PING, MessageKind.PONG})
_ITEM_TYPES = {
    MessageKind.NEW_BLOCK_HASHES: H256,
    MessageKind.GET_BLOCKS: H256,
    MessageKind.BLOCKS: Block,
    MessageKind.NEW_TRANSACTION_HASHES: H256,
    MessageKind.GET_TRANSACTIONS: H256,
    MessageKind.TRANSACTIONS: SignedTransaction,
}

Payload = Union[str, tuple]


def _encode_item(item) -> bytes:
    if isinstance(item, H256):
        return bytes(item)
    return item.encode()


def _decode_item(item_type, decoder: Decoder):
    if item_type is H256:
        return H256(decoder.read_fixed(_HASH_SIZE))
    return item_type.decode(decoder)


@dataclass(frozen=True)
class Message:
    """A message: text for pings and pongs, a tuple of items for the others."""

    kind: MessageKind
    payload: Payload

    def __post_init__(self) -> None:
        kind = MessageKind(self.kind)
        object.__setattr__(self, "kind", kind)
        if kind in _TEXT_KINDS:
            if not isinstance(self.payload, str):
                raise TypeError(f"{kind.name} carries a string")
            return
        items = tuple(self.payload)
        item_type = _ITEM_TYPES[kind]
        if not all(isinstance(item, item_type) for item in items):
            raise TypeError(f"{kind.name} carries {item_type.__name__} items")
        object.__setattr__(self, "payload", items)

    def encode(self) -> bytes:
        head = encode_u32(self.kind)
        if self.kind in _TEXT_KINDS:
            return head + encode_bytes(self.payload.encode("utf-8"))
        body = b"".join(_encode_item(item) for item in self.payload)
        return head + encode_u64(len(self.payload)) + body

    @classmethod
    def decode(cls, data: bytes) -> Message:
        decoder = Decoder(data)
        tag = decoder.read_u32()
        try:
            kind = MessageKind(tag)
        except ValueError as exc:
            raise DecodeError(f"unknown message kind {tag}") from exc
        if kind in _TEXT_KINDS:
            try:
                payload = decoder.read_bytes().decode("utf-8")
            except UnicodeDecodeError as exc:
                raise DecodeError(f"invalid text in {kind.name}") from exc
        else:
            item_type = _ITEM_TYPES[kind]
            count = decoder.read_u64()
            payload = tuple(_decode_item(item_type, decoder) for _ in range(count))
        decoder.finish()
        return cls(kind, payload)