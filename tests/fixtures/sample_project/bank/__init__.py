"""Toy banking package."""

from .account import Account, Transaction
from .ledger import Ledger
