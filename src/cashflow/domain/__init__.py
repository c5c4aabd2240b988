"""Domain layer for cashflow application."""

from cashflow.domain.account import AccountService
from cashflow.domain.currency import CurrencyService
from cashflow.domain.ledger import Ledger, new_document
from cashflow.domain.record_set import validate_record_set
from cashflow.domain.transaction import TransactionService

__all__ = [
    "AccountService",
    "CurrencyService",
    "Ledger",
    "TransactionService",
    "new_document",
    "validate_record_set",
]
