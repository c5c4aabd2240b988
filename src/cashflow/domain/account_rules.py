"""Account rule engine.

Rules V-ACC-001 to V-ACC-011: identifier format and uniqueness, the
hierarchical name (Type:Category:...:Name), the account type, the account
currency and the open/close dates.
"""

import logging
from typing import Any, Mapping, Optional

from cashflow.domain import codes
from cashflow.domain.entities import ERROR, Diagnostic, FieldError, ValidationResult
from cashflow.utils.date_parser import format_date, parse_calendar_date
from cashflow.utils.formats import (
    is_blank,
    is_calendar_date,
    is_hierarchical_id,
    next_hierarchical_id,
)

logger = logging.getLogger(__name__)

ACCOUNT_TYPES = ("Assets", "Liabilities", "Income", "Expenses", "Equity")
ACCOUNT_ID_PREFIX = "acc"
NAME_SEPARATOR = ":"


def split_name(name: str) -> list[str]:
    """Split a hierarchical account name into its segments."""
    return name.split(NAME_SEPARATOR)


def _currency_exists(code: Any, currencies: list) -> bool:
    return any(isinstance(c, Mapping) and c.get("code") == code for c in currencies)


def _name_findings(name: str, account_type: Any) -> list[tuple[str, str]]:
    """Return (code, kind) pairs for hierarchy problems in a non-blank name."""
    findings = []
    segments = split_name(name)
    if len(segments) < 2:
        findings.append((codes.ACC_009, "segments"))
    if account_type and segments[0] != account_type:
        findings.append((codes.ACC_010, "type"))
    if any(not segment.strip() for segment in segments):
        findings.append((codes.ACC_011, "empty"))
    return findings


def validate_account_set(accounts: Any, currencies: Optional[list] = None) -> list[Diagnostic]:
    """Validate a full set of accounts.

    Args:
        accounts: List of account records
        currencies: Known currencies. An empty list skips the currency
            existence check so partial record sets can be validated.

    Returns:
        List of diagnostics, empty when the set is valid
    """
    if not isinstance(accounts, list):
        return []
    currencies = currencies if isinstance(currencies, list) else []

    diagnostics: list[Diagnostic] = []
    for index, account in enumerate(accounts):
        if not isinstance(account, Mapping):
            account = {}
        diagnostics.extend(_check_account(account, index, currencies))

    diagnostics.extend(_check_id_uniqueness(accounts))
    diagnostics.extend(_check_name_uniqueness(accounts))

    logger.debug("Validated %d accounts: %d findings", len(accounts), len(diagnostics))
    return diagnostics


def _check_account(account: Mapping[str, Any], index: int, currencies: list) -> list[Diagnostic]:
    diagnostics = []
    name = account.get("name")
    account_id = account.get("id")
    account_type = account.get("type")
    label = name or f"#{index + 1}"

    if not account_id:
        diagnostics.append(
            Diagnostic(
                code=codes.ACC_001,
                severity=ERROR,
                message=f"Account {label}: the ID is required.",
                suggestion="Add an ID of the form acc_XXX (e.g. acc_001).",
            )
        )
    elif not is_hierarchical_id(account_id, ACCOUNT_ID_PREFIX):
        diagnostics.append(
            Diagnostic(
                code=codes.ACC_001,
                severity=ERROR,
                message=f'Account {label}: invalid ID "{account_id}".',
                suggestion="The ID must be acc_ followed by a number (e.g. acc_001, acc_042).",
            )
        )

    if is_blank(name):
        diagnostics.append(
            Diagnostic(
                code=codes.ACC_003,
                severity=ERROR,
                message=f"Account {account_id or '#' + str(index + 1)}: the name is required.",
                suggestion="Add a hierarchical name (e.g. Assets:Bank:CHF:PostFinance).",
            )
        )
    else:
        for code, kind in _name_findings(name, account_type):
            if kind == "segments":
                message = f'Account "{name}": the name needs at least 2 segments separated by ":".'
                suggestion = "Use Type:Category:Subcategory:Name (e.g. Assets:Bank:CHF:PostFinance)."
            elif kind == "type":
                message = f'Account "{name}": the first segment must match the type "{account_type}".'
                suggestion = f'Rename the account to "{account_type}:..." or change its type.'
            else:
                message = f'Account "{name}": the name contains empty segments.'
                suggestion = 'Remove the extra ":" so that every segment is filled in.'
            diagnostics.append(
                Diagnostic(code=code, severity=ERROR, message=message, suggestion=suggestion)
            )

    if not account_type:
        diagnostics.append(
            Diagnostic(
                code=codes.ACC_005,
                severity=ERROR,
                message=f"Account {label}: the type is required.",
                suggestion=f"Use one of: {', '.join(ACCOUNT_TYPES)}.",
            )
        )
    elif account_type not in ACCOUNT_TYPES:
        diagnostics.append(
            Diagnostic(
                code=codes.ACC_005,
                severity=ERROR,
                message=f'Account {label}: invalid type "{account_type}".',
                suggestion=f"Use one of: {', '.join(ACCOUNT_TYPES)}.",
            )
        )

    currency = account.get("currency")
    if not currency:
        diagnostics.append(
            Diagnostic(
                code=codes.ACC_006,
                severity=ERROR,
                message=f"Account {label}: the currency is required.",
                suggestion="Add a currency code (e.g. CHF, EUR, USD).",
            )
        )
    elif currencies and not _currency_exists(currency, currencies):
        diagnostics.append(
            Diagnostic(
                code=codes.ACC_006,
                severity=ERROR,
                message=f'Account {label}: the currency "{currency}" does not exist.',
                suggestion="Add the currency first or use an existing one.",
            )
        )

    opened = account.get("opened")
    if opened and not is_calendar_date(opened):
        diagnostics.append(
            Diagnostic(
                code=codes.ACC_007,
                severity=ERROR,
                message=f'Account {label}: invalid opening date "{opened}".',
                suggestion="Use the YYYY-MM-DD format (e.g. 2025-01-15).",
            )
        )

    if account.get("closed"):
        diagnostics.extend(_check_closing(account, label))

    return diagnostics


def _check_closing(account: Mapping[str, Any], label: str) -> list[Diagnostic]:
    diagnostics = []
    opened = account.get("opened")
    closed_date = account.get("closedDate")

    if not closed_date:
        return [
            Diagnostic(
                code=codes.ACC_008,
                severity=ERROR,
                message=f"Account {label}: a closed account needs a closing date.",
                suggestion="Add closedDate in YYYY-MM-DD format.",
            )
        ]
    if not is_calendar_date(closed_date):
        diagnostics.append(
            Diagnostic(
                code=codes.ACC_008,
                severity=ERROR,
                message=f'Account {label}: invalid closing date "{closed_date}".',
                suggestion="Use the YYYY-MM-DD format (e.g. 2025-01-15).",
            )
        )

    open_day = parse_calendar_date(opened)
    close_day = parse_calendar_date(closed_date)
    if open_day is not None and close_day is not None and close_day < open_day:
        diagnostics.append(
            Diagnostic(
                code=codes.ACC_008,
                severity=ERROR,
                message=f"Account {label}: the closing date cannot be before the opening date.",
                suggestion=f"Set the closing date on or after {format_date(opened)}.",
            )
        )
    return diagnostics


def _check_id_uniqueness(accounts: list) -> list[Diagnostic]:
    diagnostics = []
    first_seen: dict[str, int] = {}

    for index, account in enumerate(accounts):
        account_id = account.get("id") if isinstance(account, Mapping) else None
        if not account_id or not isinstance(account_id, str):
            continue
        if account_id in first_seen:
            diagnostics.append(
                Diagnostic(
                    code=codes.ACC_002,
                    severity=ERROR,
                    message=(
                        f'Account ID "{account_id}" is defined more than once '
                        f"(positions {first_seen[account_id] + 1} and {index + 1})."
                    ),
                    suggestion="Each ID must be unique. Change one of them.",
                )
            )
        else:
            first_seen[account_id] = index

    return diagnostics


def _check_name_uniqueness(accounts: list) -> list[Diagnostic]:
    diagnostics = []
    first_seen: dict[str, int] = {}

    for index, account in enumerate(accounts):
        name = account.get("name") if isinstance(account, Mapping) else None
        if not name or not isinstance(name, str):
            continue
        if name in first_seen:
            first_id = accounts[first_seen[name]].get("id")
            diagnostics.append(
                Diagnostic(
                    code=codes.ACC_004,
                    severity=ERROR,
                    message=(
                        f'Account name "{name}" is defined more than once '
                        f"(IDs: {first_id} and {account.get('id')})."
                    ),
                    suggestion="Each account name must be unique. Rename one of them.",
                )
            )
        else:
            first_seen[name] = index

    return diagnostics


def validate_new_account(
    candidate: Mapping[str, Any],
    existing_accounts: Optional[list] = None,
    currencies: Optional[list] = None,
) -> ValidationResult:
    """Validate an account before it is created.

    The candidate has no ID yet, so only the name takes part in the
    uniqueness check. The opening date is mandatory here.

    Args:
        candidate: Account record to create
        existing_accounts: Accounts to check name uniqueness against
        currencies: Known currencies (empty list skips the existence check)

    Returns:
        ValidationResult with field-tagged errors
    """
    existing_accounts = existing_accounts or []
    currencies = currencies or []
    errors: list[FieldError] = []
    name = candidate.get("name")
    account_type = candidate.get("type")

    if is_blank(name):
        errors.append(FieldError(code=codes.ACC_003, message="The name is required.", field="name"))
    else:
        if any(isinstance(a, Mapping) and a.get("name") == name for a in existing_accounts):
            errors.append(
                FieldError(
                    code=codes.ACC_004, message=f'Account "{name}" already exists.', field="name"
                )
            )
        for code, kind in _name_findings(name, account_type):
            if kind == "segments":
                message = 'The name needs at least 2 segments separated by ":".'
            elif kind == "type":
                message = f'The first segment must be "{account_type}".'
            else:
                message = "The name cannot contain empty segments."
            errors.append(FieldError(code=code, message=message, field="name"))

    if not account_type:
        errors.append(FieldError(code=codes.ACC_005, message="The type is required.", field="type"))
    elif account_type not in ACCOUNT_TYPES:
        errors.append(
            FieldError(
                code=codes.ACC_005,
                message=f"Invalid type. Use one of: {', '.join(ACCOUNT_TYPES)}.",
                field="type",
            )
        )

    currency = candidate.get("currency")
    if not currency:
        errors.append(
            FieldError(code=codes.ACC_006, message="The currency is required.", field="currency")
        )
    elif currencies and not _currency_exists(currency, currencies):
        errors.append(
            FieldError(
                code=codes.ACC_006,
                message=f'The currency "{currency}" does not exist.',
                field="currency",
            )
        )

    opened = candidate.get("opened")
    if not opened:
        errors.append(
            FieldError(code=codes.ACC_007, message="The opening date is required.", field="opened")
        )
    elif not is_calendar_date(opened):
        errors.append(
            FieldError(
                code=codes.ACC_007, message="The date must use the YYYY-MM-DD format.", field="opened"
            )
        )

    if candidate.get("closed"):
        closed_date = candidate.get("closedDate")
        open_day = parse_calendar_date(opened)
        close_day = parse_calendar_date(closed_date)
        if close_day is None:
            errors.append(
                FieldError(
                    code=codes.ACC_008,
                    message="A closed account needs a closing date in YYYY-MM-DD format.",
                    field="closedDate",
                )
            )
        elif open_day is not None and close_day < open_day:
            errors.append(
                FieldError(
                    code=codes.ACC_008,
                    message="The closing date cannot be before the opening date.",
                    field="closedDate",
                )
            )

    return ValidationResult.from_errors(errors)


def generate_account_id(existing_accounts: Optional[list] = None) -> str:
    """Return the next sequential account ID (acc_001, acc_002, ...).

    Gaps are ignored and malformed IDs do not count.
    """
    return next_hierarchical_id(existing_accounts, ACCOUNT_ID_PREFIX)
