"""Blocks, block headers and block generation."""

from __future__ import annotations

import random as _random
import time
from collections.abc import Iterable
from dataclasses import dataclass

from minicoin.codec import Decoder, encode_u32, encode_u64, encode_u128
from minicoin.hash import H256, sha256
from minicoin.merkle import MerkleTree
from minicoin.transaction import SignedTransaction, generate_random_signed_transaction

_HASH_SIZE = 32


def _now_millis() -> int:
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class BlockHeader:
    parent: H256
    nonce: int
    difficulty: H256
    timestamp: int
    merkle_root: H256

    def encode(self) -> bytes:
        return (
            bytes(self.parent)
            + encode_u32(self.nonce)
            + bytes(self.difficulty)
            + encode_u128(self.timestamp)
            + bytes(self.merkle_root)
        )

    @classmethod
    def decode(cls, decoder: Decoder) -> BlockHeader:
        parent = H256(decoder.read_fixed(_HASH_SIZE))
        nonce = decoder.read_u32()
        difficulty = H256(decoder.read_fixed(_HASH_SIZE))
        timestamp = decoder.read_u128()
        merkle_root = H256(decoder.read_fixed(_HASH_SIZE))
        return cls(
            parent=parent,
            nonce=nonce,
            difficulty=difficulty,
            timestamp=timestamp,
            merkle_root=merkle_root,
        )

    def hash(self) -> H256:
        return sha256(self.encode())


@dataclass(frozen=True)
class Block:
    header: BlockHeader
    data: tuple[SignedTransaction, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", tuple(self.data))

    @property
    def parent(self) -> H256:
        return self.header.parent

    @property
    def difficulty(self) -> H256:
        return self.header.difficulty

    def encode(self) -> bytes:
        parts = [self.header.encode(), encode_u64(len(self.data))]
        parts.extend(tx.encode() for tx in self.data)
        return b"".join(parts)

    @classmethod
    def decode(cls, decoder: Decoder) -> Block:
        header = BlockHeader.decode(decoder)
        count = decoder.read_u64()
        data = tuple(SignedTransaction.decode(decoder) for _ in range(count))
        return cls(header=header, data=data)

    def hash(self) -> H256:
        """A block is identified by the hash of its header."""
        return self.header.hash()


def generate_block(
    parent: H256, difficulty: H256, transactions: Iterable[SignedTransaction]
) -> Block:
    """Build a candidate block with a random nonce and the current time."""
    txs = tuple(transactions)
    header = BlockHeader(
        parent=parent,
        nonce=_random.getrandbits(32),
        difficulty=difficulty,
        timestamp=_now_millis(),
        merkle_root=MerkleTree(txs).root(),
    )
    return Block(header=header, data=txs)


def generate_random_block(parent: H256) -> Block:
    """A block with maximal difficulty holding one random signed transaction."""
    header = BlockHeader(
        parent=parent,
        nonce=_random.getrandbits(32),
        difficulty=H256(b"\xff" * _HASH_SIZE),
        timestamp=_now_millis(),
        merkle_root=MerkleTree([]).root(),
    )
    return Block(header=header, data=(generate_random_signed_transaction(),))