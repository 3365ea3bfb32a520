"""Account balances and nonces, and transaction validation against them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from minicoin import keys
from minicoin.address import Address
from minicoin.transaction import SignedTransaction, verify

log = logging.getLogger(__name__)

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1
_U32_MAX = 2**32 - 1
ICO_SEED = bytes(32)


@dataclass(order=True)
class Account:
    """Balance and nonce of one address."""

    nonce: int = 0
    balance: int = 0
    address: Address = field(default_factory=Address)

    def update(self, amount: int) -> None:
        """Add ``amount`` to the balance and bump the nonce."""
        balance = self.balance + amount
        if not _I64_MIN <= balance <= _I64_MAX:
            raise OverflowError(
                f"balance of {self.address} would overflow: {self.balance} + {amount}"
            )
        if self.nonce >= _U32_MAX:
            raise OverflowError(f"nonce of {self.address} would overflow")
        log.debug("updating account %s by %d", self, amount)
        self.balance = balance
        self.nonce += 1

    def has_balance(self, amount: int) -> bool:
        return self.balance >= amount

    def __str__(self) -> str:
        return (
            f"Account {{ nonce: {self.nonce}, balance: {self.balance}, "
            f"address: {self.address} }}"
        )


@dataclass
class State:
    """Accounts known at one block, plus the seeds of locally owned addresses."""

    data: dict[Address, Account] = field(default_factory=dict)
    my_account: dict[Address, bytes] = field(default_factory=dict)

    @classmethod
    def ico(cls) -> State:
        """The initial state: one account, owned locally, holding the maximum balance."""
        state = cls()
        key = keys.from_seed(ICO_SEED)
        address = Address.from_public_key_bytes(keys.public_key_bytes(key))
        log.info("ICO address: %r", address)
        state.my_account[address] = ICO_SEED
        state.insert(address)
        state.update(address, _I64_MAX)
        log.info("ICO account: %s", state.get_account(address))
        return state

    def get_account(self, address: Address) -> Account | None:
        return self.data.get(address)

    def insert(self, address: Address) -> Account:
        """Create (or reset) the account of ``address`` and return it."""
        account = Account(address=address)
        self.data[address] = account
        return account

    def process(self, signed_transaction: SignedTransaction) -> None:
        """Move the transaction's value from sender to receiver."""
        tx = signed_transaction.transaction
        self.update(tx.sender, -tx.value)
        self.update(tx.receiver, tx.value)

    def update(self, address: Address, amount: int) -> None:
        account = self.data.get(address)
        if account is None:
            account = self.insert(address)
        account.update(amount)

    def remove(self, address: Address) -> None:
        self.data.pop(address, None)

    def is_transaction_valid(self, signed_transaction: SignedTransaction) -> bool:
        tx = signed_transaction.transaction
        return (
            verify(tx, signed_transaction.public_key, signed_transaction.signature)
            and self.check_public_key(tx.sender, signed_transaction.public_key)
            and self.check_balance(tx.sender, tx.value)
            and self.check_nonce(tx.sender, tx.nonce)
        )

    @staticmethod
    def check_public_key(address: Address, public_key: bytes) -> bool:
        """The zero address accepts any key; others must derive from it."""
        if address == Address():
            return True
        return address == Address.from_public_key_bytes(public_key)

    def check_balance(self, address: Address, amount: int) -> bool:
        account = self.data.get(address)
        return account is not None and account.has_balance(amount)

    def check_nonce(self, address: Address, nonce: int) -> bool:
        account = self.data.get(address)
        return account is not None and nonce == account.nonce + 1

    def summary(self) -> list[str]:
        """Sorted text descriptions of all accounts."""
        return sorted(str(account) for account in self.data.values())

    def copy(self) -> State:
        """An independent copy whose accounts can be changed freely."""
        return State(
            data={address: replace(account) for address, account in self.data.items()},
            my_account=dict(self.my_account),
        )