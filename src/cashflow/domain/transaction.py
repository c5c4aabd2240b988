"""Transaction domain service."""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from cashflow.domain.errors import (
    NotFoundError,
    ValidationError,
    invalid_entity,
    transaction_not_found,
)
from cashflow.domain.ledger import Ledger
from cashflow.domain.transaction_rules import (
    generate_transaction_id,
    sum_positive_postings,
    validate_new_transaction,
)
from cashflow.utils.amount_parser import to_decimal
from cashflow.utils.date_parser import format_date, parse_calendar_date

logger = logging.getLogger(__name__)

SORT_ORDERS = ("date-desc", "date-asc", "amount-desc", "amount-asc")


def _date_key(transaction: dict[str, Any]) -> str:
    return format_date(transaction.get("date")) if transaction.get("date") else ""


def _normalize_posting(posting: dict[str, Any]) -> dict[str, Any]:
    normalized = {
        "accountId": posting.get("accountId"),
        "amount": posting.get("amount"),
        "currency": posting.get("currency"),
    }
    if posting.get("exchangeRate"):
        normalized["exchangeRate"] = dict(posting["exchangeRate"])
    return normalized


def _touches(transaction: dict[str, Any], account_id: str) -> bool:
    return any(p.get("accountId") == account_id for p in transaction.get("posting") or [])


def _within(transaction: dict[str, Any], start: Optional[date], end: Optional[date]) -> bool:
    day = parse_calendar_date(transaction.get("date"))
    if day is None:
        return False
    if start is not None and day < start:
        return False
    return end is None or day <= end


class TransactionService:
    """Service for managing transactions."""

    def __init__(self, ledger: Ledger):
        """Initialize transaction service.

        Args:
            ledger: Record set to read and mutate
        """
        self.ledger = ledger

    def _find(self, txn_id: str) -> dict[str, Any]:
        transaction = self.get_transaction(txn_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(txn_id))
        return transaction

    def _sort(self) -> None:
        self.ledger.transactions.sort(key=_date_key)

    def create_transaction(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a transaction.

        An ID is generated unless one is supplied.

        Args:
            data: Transaction fields (date, description, payee, tags, posting)

        Returns:
            The stored transaction record

        Raises:
            ValidationError: If the transaction is invalid or unbalanced
        """
        txn_date = data.get("date")
        candidate = {
            "id": data.get("id"),
            "date": format_date(txn_date) if txn_date else txn_date,
            "description": data.get("description"),
            "payee": data.get("payee") or "",
            "tags": list(data.get("tags") or []),
            "posting": [_normalize_posting(p) for p in data.get("posting") or []],
            "metadata": dict(data.get("metadata") or {}),
        }

        with self.ledger.lock:
            result = validate_new_transaction(
                candidate, self.ledger.transactions, self.ledger.accounts, self.ledger.currencies
            )
            if not result.valid:
                logger.warning("Rejected transaction %r: %s", candidate["description"], result.errors)
                raise ValidationError(invalid_entity("transaction", result.errors), result.errors)

            if not candidate["id"]:
                candidate["id"] = generate_transaction_id(self.ledger.transactions)
            self.ledger.transactions.append(candidate)
            self._sort()
            self.ledger.touch()

        logger.info("Created transaction %s on %s", candidate["id"], candidate["date"])
        return candidate

    def update_transaction(self, txn_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        """Update a transaction. The ID cannot change.

        Raises:
            NotFoundError: If the transaction does not exist
            ValidationError: If the updated transaction is invalid
        """
        with self.ledger.lock:
            transaction = self._find(txn_id)
            merged = {**transaction, **updates, "id": transaction["id"]}
            if merged.get("date"):
                merged["date"] = format_date(merged["date"])
            if "posting" in updates:
                merged["posting"] = [_normalize_posting(p) for p in updates["posting"] or []]

            others = [t for t in self.ledger.transactions if t is not transaction]
            result = validate_new_transaction(
                merged, others, self.ledger.accounts, self.ledger.currencies
            )
            if not result.valid:
                logger.warning("Rejected update of transaction %s: %s", txn_id, result.errors)
                raise ValidationError(invalid_entity("transaction", result.errors), result.errors)

            transaction.update(merged)
            self._sort()
            self.ledger.touch()

        logger.info("Updated transaction %s", txn_id)
        return transaction

    def delete_transaction(self, txn_id: str) -> None:
        """Delete a transaction.

        Raises:
            NotFoundError: If the transaction does not exist
        """
        with self.ledger.lock:
            transaction = self._find(txn_id)
            self.ledger.transactions.remove(transaction)
            self.ledger.touch()

        logger.info("Deleted transaction %s", txn_id)

    def get_transaction(self, txn_id: str) -> Optional[dict[str, Any]]:
        for transaction in self.ledger.transactions:
            if transaction.get("id") == txn_id:
                return transaction
        return None

    def list_transactions(self) -> list[dict[str, Any]]:
        return list(self.ledger.transactions)

    def transactions_for_account(self, account_id: str) -> list[dict[str, Any]]:
        return [t for t in self.ledger.transactions if _touches(t, account_id)]

    def search_transactions(
        self,
        start_date: Optional[Any] = None,
        end_date: Optional[Any] = None,
        account_id: Optional[str] = None,
        tag: Optional[str] = None,
        min_amount: Optional[Any] = None,
        max_amount: Optional[Any] = None,
        search: Optional[str] = None,
        sort_by: str = "date-desc",
    ) -> list[dict[str, Any]]:
        """Filter and sort transactions.

        Amount bounds apply to the sum of the positive postings.

        Args:
            start_date: Earliest date (inclusive)
            end_date: Latest date (inclusive)
            account_id: Only transactions with a posting on this account
            tag: Only transactions carrying this tag
            min_amount: Minimum face amount
            max_amount: Maximum face amount
            search: Case-insensitive text matched against description and payee
            sort_by: One of date-desc (default), date-asc, amount-desc, amount-asc

        Returns:
            List of transaction records
        """
        results = list(self.ledger.transactions)

        start = parse_calendar_date(start_date) if start_date is not None else None
        end = parse_calendar_date(end_date) if end_date is not None else None
        if start is not None or end is not None:
            results = [t for t in results if _within(t, start, end)]

        if account_id:
            results = [t for t in results if _touches(t, account_id)]
        if tag:
            results = [t for t in results if tag in (t.get("tags") or [])]

        if min_amount is not None:
            low = to_decimal(min_amount)
            results = [t for t in results if sum_positive_postings(t) >= low]
        if max_amount is not None:
            high = to_decimal(max_amount)
            results = [t for t in results if sum_positive_postings(t) <= high]

        if search:
            needle = search.lower()
            results = [
                t
                for t in results
                if needle in str(t.get("description") or "").lower()
                or needle in str(t.get("payee") or "").lower()
            ]

        if sort_by == "date-asc":
            results.sort(key=_date_key)
        elif sort_by == "amount-desc":
            results.sort(key=sum_positive_postings, reverse=True)
        elif sort_by == "amount-asc":
            results.sort(key=sum_positive_postings)
        else:
            results.sort(key=_date_key, reverse=True)
        return results

    def all_tags(self) -> list[str]:
        """Distinct tags, sorted."""
        tags = set()
        for transaction in self.ledger.transactions:
            tags.update(t for t in transaction.get("tags") or [] if isinstance(t, str))
        return sorted(tags)

    def all_payees(self) -> list[str]:
        """Distinct non-blank payees, sorted."""
        return sorted(
            {
                t["payee"]
                for t in self.ledger.transactions
                if isinstance(t.get("payee"), str) and t["payee"].strip()
            }
        )

    def account_balance(self, account_id: str, up_to: Optional[Any] = None) -> Decimal:
        """Sum the postings on an account.

        Args:
            account_id: Account ID
            up_to: Only count transactions dated on or before this day

        Returns:
            Account balance in the account's currency
        """
        limit = parse_calendar_date(up_to) if up_to is not None else None
        balance = Decimal(0)
        for transaction in self.ledger.transactions:
            if limit is not None:
                txn_day = parse_calendar_date(transaction.get("date"))
                if txn_day is None or txn_day > limit:
                    continue
            for posting in transaction.get("posting") or []:
                if posting.get("accountId") == account_id:
                    balance += to_decimal(posting.get("amount"))
        return balance

    def all_account_balances(self) -> dict[str, Decimal]:
        """Balance of every account, keyed by account ID."""
        return {
            account["id"]: self.account_balance(account["id"])
            for account in self.ledger.accounts
            if account.get("id")
        }
