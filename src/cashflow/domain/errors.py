"""Shared domain error messages and error types."""

from typing import Any, Optional

from cashflow.domain.entities import FieldError


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """A candidate entity failed validation.

    errors holds every field-level finding, warnings included.
    """

    def __init__(self, message: str, errors: Optional[list[FieldError]] = None):
        super().__init__(message)
        self.errors = list(errors or [])


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as removing the default currency."""


class DependencyError(DomainError):
    """Operation blocked because other records reference the entity."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.details = dict(details or {})


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count != 1 else ''}"


def currency_not_found(code: str) -> str:
    """Return message for missing currency."""
    return f"Currency '{code}' not found"


def exchange_rate_not_found(code: str, rate_date: str) -> str:
    """Return message for missing exchange rate."""
    return f"No exchange rate for '{code}' on {rate_date}"


def account_not_found(account_id: str) -> str:
    """Return message for missing account."""
    return f"Account '{account_id}' not found"


def transaction_not_found(transaction_id: str) -> str:
    """Return message for missing transaction."""
    return f"Transaction '{transaction_id}' not found"


def invalid_entity(kind: str, errors: list[FieldError]) -> str:
    """Return summary message for a rejected candidate."""
    blocking = [e for e in errors if e.is_blocking]
    return f"Invalid {kind}: {_plural(len(blocking), 'error')}"


def default_currency_delete_blocked(code: str) -> str:
    """Return message when trying to delete the default currency."""
    return f"Cannot delete currency '{code}': it is the default currency"


def default_currency_promotion_blocked(code: str, count: int) -> str:
    """Return message when a currency with rate history is made the default."""
    return (
        f"Cannot make '{code}' the default currency: it has {_plural(count, 'exchange rate')}. "
        "Delete them first."
    )


def currency_delete_blocked(code: str, count: int) -> str:
    """Return message when a currency is still referenced."""
    return (
        f"Cannot delete currency '{code}': it is used by {_plural(count, 'account or posting')}. "
        "Please reassign or delete them first."
    )


def exchange_rate_delete_blocked(code: str, rate_date: str, count: int) -> str:
    """Return message when postings still reference a rate's currency and date."""
    return (
        f"Cannot delete the {code} rate of {rate_date}: "
        f"{_plural(count, 'posting')} in {code} on that date."
    )


def account_delete_blocked(account_id: str, count: int) -> str:
    """Return message when account has dependent transactions."""
    return (
        f"Cannot delete account '{account_id}': it is used in {_plural(count, 'transaction')}. "
        "Please reassign or delete them first."
    )


def account_currency_change_blocked(account_id: str, count: int) -> str:
    """Return message when postings pin an account's currency."""
    return (
        f"Cannot change the currency of account '{account_id}': "
        f"it is used in {_plural(count, 'transaction')}."
    )


def account_open_blocked(account_id: str, opened: str, count: int) -> str:
    """Return message when an account has transactions before the opening date."""
    return (
        f"Cannot open account '{account_id}' on {opened}: "
        f"it has {_plural(count, 'transaction')} before that date."
    )


def account_close_blocked(account_id: str, closed_date: str, count: int) -> str:
    """Return message when an account has transactions after the closing date."""
    return (
        f"Cannot close account '{account_id}' on {closed_date}: "
        f"it has {_plural(count, 'transaction')} after that date."
    )
