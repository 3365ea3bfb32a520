"""Pending transactions waiting to be mined."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from dataclasses import dataclass, field

from minicoin.hash import H256
from minicoin.transaction import SignedTransaction


@dataclass
class Mempool:
    """Transactions keyed by hash, kept in the order they arrived.

    ``lock`` is for callers sharing the pool between threads.
    """

    transactions: dict[H256, SignedTransaction] = field(default_factory=dict)
    lock: threading.RLock = field(
        default_factory=threading.RLock, repr=False, compare=False
    )

    def add(self, transaction: SignedTransaction) -> H256:
        """Store ``transaction`` and return its hash."""
        tx_hash = transaction.hash()
        self.transactions[tx_hash] = transaction
        return tx_hash

    def get(self, tx_hash: H256) -> SignedTransaction | None:
        return self.transactions.get(tx_hash)

    def discard(self, tx_hash: H256) -> None:
        self.transactions.pop(tx_hash, None)

    def __contains__(self, tx_hash: object) -> bool:
        return tx_hash in self.transactions

    def __len__(self) -> int:
        return len(self.transactions)

    def __iter__(self) -> Iterator[SignedTransaction]:
        return iter(list(self.transactions.values()))