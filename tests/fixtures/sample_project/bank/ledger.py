"""Ledger keeping track of open accounts."""

from typing import Callable, Dict, Optional, Protocol, TypeAlias

from .account import Account, AccountId

Hook: TypeAlias = Callable[[Account], None]
Cents: TypeAlias = int
AccountMap: TypeAlias = Dict[AccountId, Account]


class Store(Protocol):
    def load(self, key: str) -> Optional[Account]:
        ...


class AuditedStore(Store, Protocol):
    def audit(self) -> None:
        ...


class Ledger:
    def __init__(self, store: Store) -> None:
        self.store = store
        self.accounts: AccountMap = {}

    def open(self, owner: str) -> Account:
        account = Account(owner)
        self.accounts[AccountId(len(self.accounts))] = account
        return account

    def transfer(self, src: Account, dst: Account, n: int) -> None:
        src.withdraw(n)
        dst.deposit(n)

    def lookup(self, key: str) -> Optional[Account]:
        return self.store.load(key)


on_open: Optional[Hook] = None
