"""Transaction and posting rule engine.

Rules V-TXN-*, V-POST-*, V-BAL-* and V-FX-*. The balance rule groups the
postings of a transaction by currency: each group must sum to zero within
BALANCE_TOLERANCE, and a transaction spanning several currencies must
carry exchange-rate information on at least one posting.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Optional

from cashflow.domain import codes
from cashflow.domain.currency_rules import decimal_places_in_range
from cashflow.domain.entities import (
    ERROR,
    WARNING,
    Diagnostic,
    FieldError,
    ValidationResult,
)
from cashflow.utils.amount_parser import count_decimal_places, is_blank_or_zero, to_decimal
from cashflow.utils.date_parser import format_date, parse_calendar_date
from cashflow.utils.formats import (
    is_blank,
    is_calendar_date,
    is_hierarchical_id,
    next_hierarchical_id,
)

logger = logging.getLogger(__name__)

TRANSACTION_ID_PREFIX = "txn"
MIN_POSTINGS = 2
# Fixed absolute tolerance, independent of a currency's decimal places
BALANCE_TOLERANCE = Decimal("0.01")
DEFAULT_DECIMAL_PLACES = 2


def _allowed_places(currency_record: Mapping[str, Any]) -> Any:
    """Decimal places a currency allows; malformed values fall back to the default."""
    allowed = currency_record.get("decimalPlaces")
    return allowed if decimal_places_in_range(allowed) else DEFAULT_DECIMAL_PLACES


def _currency_key(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, Decimal)):
        return value
    return str(value)


def _postings(transaction: Mapping[str, Any]) -> list:
    postings = transaction.get("posting")
    return postings if isinstance(postings, list) else []


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _find(records: list, key: str, value: Any) -> Optional[Mapping[str, Any]]:
    for record in records:
        if isinstance(record, Mapping) and record.get(key) == value:
            return record
    return None


def compute_currency_balances(transaction: Mapping[str, Any]) -> dict[str, Decimal]:
    """Sum posting amounts per currency.

    Missing or non-numeric amounts count as 0.
    Non-scalar currency values are keyed by their text.
    """
    balances: dict[str, Decimal] = {}
    for posting in _postings(transaction):
        posting = _as_mapping(posting)
        currency = _currency_key(posting.get("currency"))
        balances[currency] = balances.get(currency, Decimal(0)) + to_decimal(posting.get("amount"))
    return balances


def _unbalanced(balances: dict[str, Decimal]) -> list[tuple[Any, Decimal]]:
    return [(currency, total) for currency, total in balances.items() if abs(total) > BALANCE_TOLERANCE]


def is_within_balance_tolerance(transaction: Mapping[str, Any]) -> bool:
    """Check every per-currency sum against the tolerance.

    Pure arithmetic: the multi-currency exchange-rate requirement is not
    applied here.
    """
    return not _unbalanced(compute_currency_balances(transaction))


def sum_positive_postings(transaction: Mapping[str, Any]) -> Decimal:
    """Sum the positive posting amounts of a transaction.

    Used as the transaction's face amount for sorting and display. This
    mixes currencies and is an approximation, not a double-entry amount.
    """
    total = Decimal(0)
    for posting in _postings(transaction):
        amount = to_decimal(_as_mapping(posting).get("amount"))
        if amount > 0:
            total += amount
    return total


def generate_transaction_id(existing_transactions: Optional[list] = None) -> str:
    """Return the next sequential transaction ID (txn_001, txn_002, ...)."""
    return next_hierarchical_id(existing_transactions, TRANSACTION_ID_PREFIX)


def is_in_future(value: Any, today: Optional[date] = None) -> bool:
    """True if the date is strictly after today (local date)."""
    day = parse_calendar_date(value)
    return day is not None and day > (today or date.today())


def validate_transaction_set(
    transactions: Any,
    accounts: Optional[list] = None,
    currencies: Optional[list] = None,
    today: Optional[date] = None,
) -> list[Diagnostic]:
    """Validate a full set of transactions.

    Args:
        transactions: List of transaction records
        accounts: Known accounts (postings must reference them)
        currencies: Known currencies (for decimal precision)
        today: Reference date for the future-date warning

    Returns:
        List of diagnostics, empty when the set is valid
    """
    if not isinstance(transactions, list):
        return []
    accounts = accounts if isinstance(accounts, list) else []
    currencies = currencies if isinstance(currencies, list) else []

    diagnostics: list[Diagnostic] = []
    for index, transaction in enumerate(transactions):
        diagnostics.extend(
            _check_transaction(_as_mapping(transaction), index, accounts, currencies, today)
        )
    diagnostics.extend(_check_id_uniqueness(transactions))

    logger.debug("Validated %d transactions: %d findings", len(transactions), len(diagnostics))
    return diagnostics


def _check_transaction(
    transaction: Mapping[str, Any],
    index: int,
    accounts: list,
    currencies: list,
    today: Optional[date],
) -> list[Diagnostic]:
    diagnostics = []
    txn_id = transaction.get("id")
    label = txn_id or f"#{index + 1}"
    txn_date = transaction.get("date")

    if not txn_id:
        diagnostics.append(
            Diagnostic(
                code=codes.TXN_001,
                severity=ERROR,
                message=f"Transaction {label}: the ID is required.",
                suggestion="Add an ID of the form txn_XXX (e.g. txn_001).",
            )
        )
    elif not is_hierarchical_id(txn_id, TRANSACTION_ID_PREFIX):
        diagnostics.append(
            Diagnostic(
                code=codes.TXN_001,
                severity=ERROR,
                message=f'Transaction {label}: invalid ID "{txn_id}".',
                suggestion="The ID must be txn_ followed by a number (e.g. txn_001, txn_042).",
            )
        )

    if not txn_date:
        diagnostics.append(
            Diagnostic(
                code=codes.TXN_003,
                severity=ERROR,
                message=f"Transaction {label}: the date is required.",
                suggestion="Add a date in YYYY-MM-DD format.",
            )
        )
    elif not is_calendar_date(txn_date):
        diagnostics.append(
            Diagnostic(
                code=codes.TXN_003,
                severity=ERROR,
                message=f'Transaction {label}: invalid date "{txn_date}".',
                suggestion="Use the YYYY-MM-DD format (e.g. 2025-01-15).",
            )
        )

    if txn_date and is_in_future(txn_date, today):
        diagnostics.append(
            Diagnostic(
                code=codes.TXN_006,
                severity=WARNING,
                message=f"Transaction {label}: the date is in the future ({format_date(txn_date)}).",
                suggestion="Check that this date is correct.",
            )
        )

    if is_blank(transaction.get("description")):
        diagnostics.append(
            Diagnostic(
                code=codes.TXN_004,
                severity=ERROR,
                message=f"Transaction {label}: the description is required.",
                suggestion='Add a description (e.g. "Groceries").',
            )
        )

    postings = transaction.get("posting")
    if not isinstance(postings, list):
        diagnostics.append(
            Diagnostic(
                code=codes.TXN_005,
                severity=ERROR,
                message=f"Transaction {label}: postings are required.",
                suggestion="Add at least 2 postings to balance the transaction.",
            )
        )
        return diagnostics
    if len(postings) < MIN_POSTINGS:
        diagnostics.append(
            Diagnostic(
                code=codes.TXN_005,
                severity=ERROR,
                message=f"Transaction {label}: a transaction needs at least {MIN_POSTINGS} postings.",
                suggestion=f"It has {len(postings)} posting(s). Add at least one more.",
            )
        )
        return diagnostics

    for posting_index, posting in enumerate(postings):
        diagnostics.extend(
            _check_posting(
                _as_mapping(posting), posting_index, transaction, accounts, currencies
            )
        )
    diagnostics.extend(_check_balance(transaction))
    return diagnostics


def _check_posting(
    posting: Mapping[str, Any],
    index: int,
    transaction: Mapping[str, Any],
    accounts: list,
    currencies: list,
) -> list[Diagnostic]:
    diagnostics = []
    prefix = f"{transaction.get('id') or 'Transaction'} - Posting #{index + 1}"
    txn_date = transaction.get("date")
    txn_day = parse_calendar_date(txn_date)
    account_id = posting.get("accountId")
    amount = posting.get("amount")
    currency = posting.get("currency")

    if not account_id:
        diagnostics.append(
            Diagnostic(
                code=codes.POST_001,
                severity=ERROR,
                message=f"{prefix}: the account is required.",
                suggestion="Select an existing account.",
            )
        )
    else:
        account = _find(accounts, "id", account_id)
        if account is None:
            diagnostics.append(
                Diagnostic(
                    code=codes.POST_001,
                    severity=ERROR,
                    message=f'{prefix}: the account "{account_id}" does not exist.',
                    suggestion="Use an existing account or create it first.",
                )
            )
        else:
            diagnostics.extend(_check_posting_account(posting, account, prefix, txn_date, txn_day))

    if is_blank_or_zero(amount):
        diagnostics.append(
            Diagnostic(
                code=codes.POST_002,
                severity=ERROR,
                message=f"{prefix}: the amount cannot be 0.",
                suggestion="Enter a positive (debit) or negative (credit) amount.",
            )
        )

    if not is_blank_or_zero(amount) and currency:
        currency_record = _find(currencies, "code", currency)
        if currency_record is not None:
            allowed = _allowed_places(currency_record)
            places = count_decimal_places(amount)
            if places > allowed:
                diagnostics.append(
                    Diagnostic(
                        code=codes.POST_007,
                        severity=ERROR,
                        message=(
                            f"{prefix}: the amount has too many decimal places ({places}) "
                            f"for {currency} (max: {allowed})."
                        ),
                        suggestion=f"Round the amount to {allowed} decimal place(s).",
                    )
                )

    if posting.get("exchangeRate"):
        diagnostics.extend(_check_posting_rate(posting, transaction))

    return diagnostics


def _check_posting_account(
    posting: Mapping[str, Any],
    account: Mapping[str, Any],
    prefix: str,
    txn_date: Any,
    txn_day: Optional[date],
) -> list[Diagnostic]:
    diagnostics = []
    account_name = account.get("name")
    account_currency = account.get("currency")

    if posting.get("currency") != account_currency:
        diagnostics.append(
            Diagnostic(
                code=codes.POST_003,
                severity=ERROR,
                message=(
                    f'{prefix}: the currency "{posting.get("currency")}" does not match '
                    f'account "{account_name}" ({account_currency}).'
                ),
                suggestion=f"Use {account_currency} or pick another account.",
            )
        )

    opened = account.get("opened")
    open_day = parse_calendar_date(opened)
    if txn_day is not None and open_day is not None and txn_day < open_day:
        diagnostics.append(
            Diagnostic(
                code=codes.POST_004,
                severity=ERROR,
                message=(
                    f"{prefix}: the transaction date ({format_date(txn_date)}) is before the "
                    f'opening date of account "{account_name}" ({format_date(opened)}).'
                ),
                suggestion=f"Move the transaction on or after {format_date(opened)}.",
            )
        )

    if account.get("closed"):
        closed_date = account.get("closedDate")
        close_day = parse_calendar_date(closed_date)
        if txn_day is not None and close_day is not None and txn_day > close_day:
            diagnostics.append(
                Diagnostic(
                    code=codes.POST_005,
                    severity=ERROR,
                    message=(
                        f"{prefix}: the transaction date ({format_date(txn_date)}) is after the "
                        f'closing date of account "{account_name}" ({format_date(closed_date)}).'
                    ),
                    suggestion="Change the transaction date or reopen the account.",
                )
            )

    return diagnostics


def _check_posting_rate(posting: Mapping[str, Any], transaction: Mapping[str, Any]) -> list[Diagnostic]:
    diagnostics = []
    label = transaction.get("id") or "Transaction"
    fx = _as_mapping(posting.get("exchangeRate"))
    rate = to_decimal(fx.get("rate"))

    if rate <= 0:
        diagnostics.append(
            Diagnostic(
                code=codes.FX_001,
                severity=ERROR,
                message=f"{label}: the exchange rate must be > 0.",
                suggestion="Enter a valid exchange rate.",
            )
        )

    equivalent = fx.get("equivalentAmount")
    amount = to_decimal(posting.get("amount"))
    if equivalent is not None and rate > 0 and amount != 0:
        expected = amount * rate
        if abs(to_decimal(equivalent) - expected) > BALANCE_TOLERANCE:
            diagnostics.append(
                Diagnostic(
                    code=codes.FX_004,
                    severity=ERROR,
                    message=(
                        f"{label}: the equivalent amount ({equivalent}) does not match "
                        f"{posting.get('amount')} × {fx.get('rate')} = {expected:.2f}."
                    ),
                    suggestion=f"Use {expected:.2f} as the equivalent amount.",
                )
            )

    return diagnostics


def _balance_findings(transaction: Mapping[str, Any]) -> list[tuple[str, str, str, Optional[dict]]]:
    """Return (code, message, suggestion, details) for balance problems."""
    label = transaction.get("id") or "Transaction"
    findings = []
    balances = compute_currency_balances(transaction)

    unbalanced = _unbalanced(balances)
    if unbalanced:
        summary = ", ".join(f"{currency}: {total:.2f}" for currency, total in unbalanced)
        findings.append(
            (
                codes.BAL_001,
                f"{label}: the transaction is not balanced. Sum: {summary}",
                "The amounts must sum to 0 for each currency. Adjust the amounts.",
                {
                    "balances": balances,
                    "unbalanced": [
                        {"currency": currency, "balance": total} for currency, total in unbalanced
                    ],
                },
            )
        )

    if len(balances) > 1 and not any(
        _as_mapping(p).get("exchangeRate") for p in _postings(transaction)
    ):
        findings.append(
            (
                codes.BAL_002,
                f"{label}: multi-currency transaction without an exchange rate.",
                "Add exchange-rate information to the postings converted between currencies.",
                None,
            )
        )

    return findings


def _check_balance(transaction: Mapping[str, Any]) -> list[Diagnostic]:
    return [
        Diagnostic(code=code, severity=ERROR, message=message, suggestion=suggestion, details=details)
        for code, message, suggestion, details in _balance_findings(transaction)
    ]


def _check_id_uniqueness(transactions: list) -> list[Diagnostic]:
    diagnostics = []
    first_seen: dict[str, int] = {}

    for index, transaction in enumerate(transactions):
        txn_id = _as_mapping(transaction).get("id")
        if not txn_id or not isinstance(txn_id, str):
            continue
        if txn_id in first_seen:
            diagnostics.append(
                Diagnostic(
                    code=codes.TXN_002,
                    severity=ERROR,
                    message=(
                        f'Transaction ID "{txn_id}" is defined more than once '
                        f"(positions {first_seen[txn_id] + 1} and {index + 1})."
                    ),
                    suggestion="Each ID must be unique. Change one of them.",
                )
            )
        else:
            first_seen[txn_id] = index

    return diagnostics


def validate_new_transaction(
    candidate: Mapping[str, Any],
    existing_transactions: Optional[list] = None,
    accounts: Optional[list] = None,
    currencies: Optional[list] = None,
) -> ValidationResult:
    """Validate a transaction before it is created or updated.

    Every local check runs, balance included, so the caller can show the
    complete list of problems at once.

    Args:
        candidate: Transaction record
        existing_transactions: Other transactions in the record set; a
            candidate carrying an ID must not reuse one of theirs
        accounts: Known accounts
        currencies: Known currencies

    Returns:
        ValidationResult with field-tagged errors
    """
    existing_transactions = existing_transactions or []
    accounts = accounts or []
    currencies = currencies or []
    errors: list[FieldError] = []

    txn_id = candidate.get("id")
    if txn_id:
        if not is_hierarchical_id(txn_id, TRANSACTION_ID_PREFIX):
            errors.append(
                FieldError(code=codes.TXN_001, message="The ID must look like txn_001.", field="id")
            )
        elif _find(existing_transactions, "id", txn_id) is not None:
            errors.append(
                FieldError(
                    code=codes.TXN_002, message=f'Transaction "{txn_id}" already exists.', field="id"
                )
            )

    txn_date = candidate.get("date")
    if not txn_date or (isinstance(txn_date, str) and not txn_date.strip()):
        errors.append(FieldError(code=codes.TXN_003, message="The date is required.", field="date"))
    elif not is_calendar_date(txn_date):
        errors.append(
            FieldError(
                code=codes.TXN_003, message="The date must use the YYYY-MM-DD format.", field="date"
            )
        )
    elif is_in_future(txn_date):
        errors.append(
            FieldError(
                code=codes.TXN_006,
                message="The date is in the future.",
                field="date",
                severity=WARNING,
            )
        )

    if is_blank(candidate.get("description")):
        errors.append(
            FieldError(code=codes.TXN_004, message="The description is required.", field="description")
        )

    postings = candidate.get("posting")
    if not isinstance(postings, list) or len(postings) < MIN_POSTINGS:
        errors.append(
            FieldError(
                code=codes.TXN_005,
                message=f"A transaction needs at least {MIN_POSTINGS} postings.",
                field="posting",
            )
        )
        return ValidationResult.from_errors(errors)

    txn_day = parse_calendar_date(txn_date)
    for index, posting in enumerate(postings):
        errors.extend(_posting_field_errors(_as_mapping(posting), index, txn_day, accounts, currencies))

    for code, message, _suggestion, _details in _balance_findings(candidate):
        errors.append(FieldError(code=code, message=message, field="posting"))

    return ValidationResult.from_errors(errors)


def _posting_field_errors(
    posting: Mapping[str, Any],
    index: int,
    txn_day: Optional[date],
    accounts: list,
    currencies: list,
) -> list[FieldError]:
    errors = []
    label = f"Posting #{index + 1}"
    field_prefix = f"posting[{index}]"
    account_id = posting.get("accountId")
    currency = posting.get("currency")
    amount = posting.get("amount")

    account = None
    if not account_id:
        errors.append(
            FieldError(
                code=codes.POST_001,
                message=f"{label}: the account is required.",
                field=f"{field_prefix}.accountId",
            )
        )
    else:
        account = _find(accounts, "id", account_id)
        if account is None:
            errors.append(
                FieldError(
                    code=codes.POST_001,
                    message=f"{label}: the account does not exist.",
                    field=f"{field_prefix}.accountId",
                )
            )

    if is_blank_or_zero(amount):
        errors.append(
            FieldError(
                code=codes.POST_002,
                message=f"{label}: the amount cannot be 0.",
                field=f"{field_prefix}.amount",
            )
        )

    if not currency:
        errors.append(
            FieldError(
                code=codes.POST_003,
                message=f"{label}: the currency is required.",
                field=f"{field_prefix}.currency",
            )
        )
    elif account is not None and currency != account.get("currency"):
        errors.append(
            FieldError(
                code=codes.POST_003,
                message=f"{label}: the currency must be {account.get('currency')} for this account.",
                field=f"{field_prefix}.currency",
            )
        )

    if account is not None and txn_day is not None:
        open_day = parse_calendar_date(account.get("opened"))
        if open_day is not None and txn_day < open_day:
            errors.append(
                FieldError(
                    code=codes.POST_004,
                    message=f"{label}: the account opens on {format_date(account.get('opened'))}.",
                    field=f"{field_prefix}.accountId",
                )
            )
        close_day = parse_calendar_date(account.get("closedDate"))
        if account.get("closed") and close_day is not None and txn_day > close_day:
            errors.append(
                FieldError(
                    code=codes.POST_005,
                    message=f"{label}: the account closed on {format_date(account.get('closedDate'))}.",
                    field=f"{field_prefix}.accountId",
                )
            )

    currency_record = _find(currencies, "code", currency) if currency else None
    if currency_record is not None and not is_blank_or_zero(amount):
        allowed = _allowed_places(currency_record)
        if count_decimal_places(amount) > allowed:
            errors.append(
                FieldError(
                    code=codes.POST_007,
                    message=f"{label}: at most {allowed} decimal place(s) for {currency}.",
                    field=f"{field_prefix}.amount",
                )
            )

    fx = posting.get("exchangeRate")
    if fx:
        fx = _as_mapping(fx)
        rate = to_decimal(fx.get("rate"))
        if rate <= 0:
            errors.append(
                FieldError(
                    code=codes.FX_001,
                    message=f"{label}: the exchange rate must be > 0.",
                    field=f"{field_prefix}.exchangeRate.rate",
                )
            )
        elif fx.get("equivalentAmount") is not None:
            expected = to_decimal(amount) * rate
            if abs(to_decimal(fx.get("equivalentAmount")) - expected) > BALANCE_TOLERANCE:
                errors.append(
                    FieldError(
                        code=codes.FX_004,
                        message=f"{label}: the equivalent amount should be {expected:.2f}.",
                        field=f"{field_prefix}.exchangeRate.equivalentAmount",
                    )
                )

    return errors
