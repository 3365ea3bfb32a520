"""Background generator of random signed transactions from locally owned accounts."""

from __future__ import annotations

import logging
import random
import secrets
import threading
import time

from minicoin import keys
from minicoin.address import Address
from minicoin.blockchain import Blockchain
from minicoin.mempool import Mempool
from minicoin.message import Message, MessageKind
from minicoin.server import ServerHandle
from minicoin.state import State
from minicoin.transaction import SignedTransaction, Transaction, sign

log = logging.getLogger(__name__)

MAX_VALUE = 1_000_000
_SEED_SIZE = 32


class TransactionGenerator:
    """Creates transactions between local accounts and new addresses."""

    def __init__(
        self, server: ServerHandle, mempool: Mempool, blockchain: Blockchain
    ) -> None:
        self._server = server
        self._mempool = mempool
        self._blockchain = blockchain
        self._rng = random.Random()

    def start(self, theta: int) -> threading.Thread:
        """Generate transactions forever, ``theta`` milliseconds apart."""
        if theta < 0:
            raise ValueError(f"theta must not be negative: {theta}")
        thread = threading.Thread(
            target=self._generate_loop,
            args=(theta,),
            name="transaction-generator",
            daemon=True,
        )
        thread.start()
        log.info("Transaction generator started")
        return thread

    def _generate_loop(self, theta: int) -> None:
        while True:
            try:
                self.generate_one()
            except RuntimeError as exc:
                log.warning("cannot generate a transaction: %s", exc)
            if theta:
                time.sleep(theta / 1000)

    @staticmethod
    def _new_local_address(state: State) -> Address:
        seed = secrets.token_bytes(_SEED_SIZE)
        public_key = keys.public_key_bytes(keys.from_seed(seed))
        address = Address.from_public_key_bytes(public_key)
        state.my_account[address] = seed
        return address

    def generate_one(self) -> SignedTransaction:
        """Create one transaction, add it to the mempool and announce it.

        Raises RuntimeError if no local account holds more than one coin.
        """
        rng = self._rng
        with self._blockchain.lock:
            state = self._blockchain.states[self._blockchain.tip]
            receivers = list(state.data)
            candidates = [
                address
                for address in state.my_account
                if (account := state.get_account(address)) is not None
                and account.balance > 1
            ]
            if not candidates:
                raise RuntimeError("no local account has a spendable balance")
            sender = rng.choice(candidates)
            sender_key = keys.from_seed(state.my_account[sender])
            sender_public_key = keys.public_key_bytes(sender_key)

            # One in five transactions goes to an existing address.
            receiver = None
            if receivers and rng.randrange(10) < 2:
                receiver = rng.choice(receivers)
            if receiver is None or receiver == sender:
                receiver = self._new_local_address(state)

            account = state.get_account(sender)
            value = rng.randrange(1, min(account.balance, MAX_VALUE))
            transaction = Transaction(
                sender=sender, receiver=receiver, value=value, nonce=account.nonce + 1
            )
            signed = SignedTransaction(
                transaction=transaction,
                signature=sign(transaction, sender_key),
                public_key=sender_public_key,
            )
            with self._mempool.lock:
                tx_hash = self._mempool.add(signed)
        self._server.broadcast(Message(MessageKind.NEW_TRANSACTION_HASHES, (tx_hash,)))
        return signed