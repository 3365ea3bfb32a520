"""Transactions, their signatures and their wire encoding."""

from __future__ import annotations

import random as _random
from dataclasses import dataclass

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from minicoin import keys
from minicoin.address import Address
from minicoin.codec import Decoder, encode_bytes, encode_i64, encode_u32
from minicoin.hash import H256, sha256

_ADDRESS_SIZE = 20


@dataclass(frozen=True)
class Transaction:
    sender: Address
    receiver: Address
    value: int
    nonce: int

    def encode(self) -> bytes:
        return (
            bytes(self.sender)
            + bytes(self.receiver)
            + encode_i64(self.value)
            + encode_u32(self.nonce)
        )

    @classmethod
    def decode(cls, decoder: Decoder) -> Transaction:
        sender = Address(decoder.read_fixed(_ADDRESS_SIZE))
        receiver = Address(decoder.read_fixed(_ADDRESS_SIZE))
        value = decoder.read_i64()
        nonce = decoder.read_u32()
        return cls(sender=sender, receiver=receiver, value=value, nonce=nonce)


@dataclass(frozen=True)
class SignedTransaction:
    transaction: Transaction
    signature: bytes
    public_key: bytes

    def encode(self) -> bytes:
        return (
            self.transaction.encode()
            + encode_bytes(self.signature)
            + encode_bytes(self.public_key)
        )

    @classmethod
    def decode(cls, decoder: Decoder) -> SignedTransaction:
        transaction = Transaction.decode(decoder)
        signature = decoder.read_bytes()
        public_key = decoder.read_bytes()
        return cls(transaction=transaction, signature=signature, public_key=public_key)

    def hash(self) -> H256:
        return sha256(self.encode())


def sign(transaction: Transaction, key: Ed25519PrivateKey) -> bytes:
    """Sign the encoded transaction."""
    return key.sign(transaction.encode())


def verify(transaction: Transaction, public_key: bytes, signature: bytes) -> bool:
    """Check a signature of ``transaction`` against a raw public key."""
    try:
        peer_key = Ed25519PublicKey.from_public_bytes(bytes(public_key))
        peer_key.verify(bytes(signature), transaction.encode())
    except (InvalidSignature, ValueError):
        return False
    return True


def _random_i64() -> int:
    return _random.randint(-(2**63), 2**63 - 1)


def _random_u32() -> int:
    return _random.getrandbits(32)


def _random_address() -> Address:
    return Address(_random.randbytes(_ADDRESS_SIZE))


def generate_random_transaction() -> Transaction:
    return Transaction(
        sender=_random_address(),
        receiver=_random_address(),
        value=_random_i64(),
        nonce=_random_u32(),
    )


def generate_random_signed_transaction() -> SignedTransaction:
    key = keys.random()
    public_key = keys.public_key_bytes(key)
    transaction = Transaction(
        sender=Address.from_public_key_bytes(public_key),
        receiver=_random_address(),
        value=_random_i64(),
        nonce=_random_u32(),
    )
    return SignedTransaction(
        transaction=transaction,
        signature=sign(transaction, key),
        public_key=public_key,
    )