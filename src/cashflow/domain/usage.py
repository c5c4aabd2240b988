"""Reference scans used before deleting or closing entities."""

from datetime import date
from typing import Any, Mapping, Optional

from cashflow.domain.entities import Usage
from cashflow.utils.date_parser import parse_calendar_date


def _postings(transaction: Any) -> list:
    if not isinstance(transaction, Mapping):
        return []
    postings = transaction.get("posting")
    return [p for p in postings if isinstance(p, Mapping)] if isinstance(postings, list) else []


def count_account_usage(
    transactions: list,
    account_id: str,
    after: Optional[date] = None,
    before: Optional[date] = None,
) -> Usage:
    """Count transactions with at least one posting on the account.

    Args:
        transactions: Transaction records
        account_id: Account ID to look for
        after: Only count transactions dated strictly after this day
        before: Only count transactions dated strictly before this day

    Returns:
        Usage of type "transactions"
    """
    count = 0
    for transaction in transactions or []:
        if not any(p.get("accountId") == account_id for p in _postings(transaction)):
            continue
        if after is not None or before is not None:
            txn_day = parse_calendar_date(transaction.get("date"))
            if txn_day is None:
                continue
            if after is not None and txn_day <= after:
                continue
            if before is not None and txn_day >= before:
                continue
        count += 1
    return Usage(count=count, type="transactions")


def count_currency_usage(
    accounts: list, transactions: list, code: str, on_date: Optional[Any] = None
) -> Usage:
    """Count references to a currency.

    Without on_date, accounts held in the currency and postings in it are
    counted. With on_date, only postings in the currency on transactions
    of that day are counted.
    """
    day = parse_calendar_date(on_date) if on_date is not None else None
    count = 0
    if on_date is None:
        count += sum(
            1 for a in accounts or [] if isinstance(a, Mapping) and a.get("currency") == code
        )

    for transaction in transactions or []:
        if day is not None:
            txn_date = transaction.get("date") if isinstance(transaction, Mapping) else None
            if parse_calendar_date(txn_date) != day:
                continue
        count += sum(1 for p in _postings(transaction) if p.get("currency") == code)

    return Usage(count=count, type="postings" if on_date is not None else "references")
