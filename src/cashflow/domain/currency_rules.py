"""Currency rule engine.

Rules V-CUR-001 to V-CUR-012: code format and uniqueness, descriptive
fields, decimal precision, the single default currency and the
exchange-rate history of each currency.
"""

import logging
from decimal import Decimal
from typing import Any, Mapping, Optional

from cashflow.domain import codes
from cashflow.domain.entities import (
    ERROR,
    WARNING,
    Diagnostic,
    FieldError,
    ValidationResult,
)
from cashflow.utils.date_parser import format_date
from cashflow.utils.formats import is_blank, is_calendar_date, is_currency_code

logger = logging.getLogger(__name__)

MIN_DECIMAL_PLACES = 0
MAX_DECIMAL_PLACES = 8


def _label(currency: Mapping[str, Any], index: int) -> str:
    return currency.get("code") or f"#{index + 1}"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def decimal_places_in_range(value: Any) -> bool:
    """Bound check only; a non-integer such as 2.5 passes."""
    return _is_number(value) and MIN_DECIMAL_PLACES <= value <= MAX_DECIMAL_PLACES


def is_positive_rate(value: Any) -> bool:
    return _is_number(value) and value > 0


def rate_date_key(value: Any) -> str:
    """Comparable form of an exchange-rate date."""
    return format_date(value)


def validate_currency_set(
    currencies: Any, metadata: Optional[Mapping[str, Any]] = None
) -> list[Diagnostic]:
    """Validate a full set of currencies.

    Args:
        currencies: List of currency records
        metadata: Optional document metadata; its defaultCurrency must match
            the currency flagged as default

    Returns:
        List of diagnostics, empty when the set is valid
    """
    if not isinstance(currencies, list):
        return [
            Diagnostic(
                code=codes.CUR_001,
                severity=ERROR,
                message="The currency section must be a list.",
                suggestion="Define currencies as an array of tables ([[currency]]).",
            )
        ]
    if not currencies:
        return [
            Diagnostic(
                code=codes.CUR_001,
                severity=ERROR,
                message="At least one currency must be defined.",
                suggestion="Add a default currency (e.g. CHF).",
            )
        ]

    diagnostics: list[Diagnostic] = []
    for index, currency in enumerate(currencies):
        if not isinstance(currency, Mapping):
            currency = {}
        diagnostics.extend(_check_currency(currency, index))

    diagnostics.extend(_check_code_uniqueness(currencies))
    diagnostics.extend(_check_single_default(currencies))

    if metadata and isinstance(metadata, Mapping) and metadata.get("defaultCurrency"):
        diagnostics.extend(_check_metadata_consistency(currencies, metadata))

    logger.debug("Validated %d currencies: %d findings", len(currencies), len(diagnostics))
    return diagnostics


def _check_currency(currency: Mapping[str, Any], index: int) -> list[Diagnostic]:
    diagnostics = []
    label = _label(currency, index)
    code = currency.get("code")

    if not code:
        diagnostics.append(
            Diagnostic(
                code=codes.CUR_001,
                severity=ERROR,
                message=f"Currency #{index + 1}: the code is required.",
                suggestion="Add an ISO 4217 code (e.g. CHF, EUR, USD).",
            )
        )
    elif not is_currency_code(code):
        diagnostics.append(
            Diagnostic(
                code=codes.CUR_001,
                severity=ERROR,
                message=f'Invalid currency code "{code}". Codes must be 3 uppercase letters (ISO 4217).',
                suggestion="Use a valid ISO 4217 code (e.g. CHF, EUR, USD, GBP).",
            )
        )

    if is_blank(currency.get("name")):
        diagnostics.append(
            Diagnostic(
                code=codes.CUR_003,
                severity=ERROR,
                message=f'Currency "{label}": the name is required.',
                suggestion='Add a descriptive name (e.g. "Swiss Franc", "Euro").',
            )
        )

    if is_blank(currency.get("symbol")):
        diagnostics.append(
            Diagnostic(
                code=codes.CUR_004,
                severity=ERROR,
                message=f'Currency "{label}": the symbol is required.',
                suggestion='Add a symbol (e.g. "CHF", "€", "$").',
            )
        )

    decimal_places = currency.get("decimalPlaces")
    if decimal_places is None:
        diagnostics.append(
            Diagnostic(
                code=codes.CUR_005,
                severity=ERROR,
                message=f'Currency "{label}": decimalPlaces is required.',
                suggestion="Add the number of decimal places (usually 2).",
            )
        )
    elif not decimal_places_in_range(decimal_places):
        diagnostics.append(
            Diagnostic(
                code=codes.CUR_005,
                severity=ERROR,
                message=(
                    f'Currency "{label}": decimal places must be between '
                    f"{MIN_DECIMAL_PLACES} and {MAX_DECIMAL_PLACES}. Found: {decimal_places}"
                ),
                suggestion="Use a value between 0 and 8 (2 for most currencies).",
            )
        )

    rates = currency.get("exchangeRate")
    if isinstance(rates, list) and rates:
        diagnostics.extend(_check_exchange_rates(currency, rates))

    return diagnostics


def _check_exchange_rates(currency: Mapping[str, Any], rates: list) -> list[Diagnostic]:
    diagnostics = []
    code = currency.get("code")

    if currency.get("isDefault"):
        diagnostics.append(
            Diagnostic(
                code=codes.CUR_012,
                severity=ERROR,
                message=f'The default currency "{code}" cannot have exchange rates.',
                suggestion="Remove the exchange rates or unset isDefault.",
            )
        )

    seen_dates: set[str] = set()
    for index, rate in enumerate(rates):
        if not isinstance(rate, Mapping):
            rate = {}
        rate_date = rate.get("date")
        rate_value = rate.get("rate")

        if not rate_date:
            diagnostics.append(
                Diagnostic(
                    code=codes.CUR_008,
                    severity=ERROR,
                    message=f'Currency "{code}", rate #{index + 1}: the date is required.',
                    suggestion="Add a date in YYYY-MM-DD format.",
                )
            )
        elif not is_calendar_date(rate_date):
            diagnostics.append(
                Diagnostic(
                    code=codes.CUR_008,
                    severity=ERROR,
                    message=f'Currency "{code}", rate #{index + 1}: invalid date "{rate_date}".',
                    suggestion="Use the YYYY-MM-DD format (e.g. 2025-01-15).",
                )
            )

        if not is_positive_rate(rate_value):
            diagnostics.append(
                Diagnostic(
                    code=codes.CUR_009,
                    severity=ERROR,
                    message=(
                        f'Currency "{code}", rate of {format_date(rate_date) or "N/A"}: '
                        f"the rate must be > 0. Found: {rate_value}"
                    ),
                    suggestion="Use a positive rate (e.g. 0.95 for 1 EUR = 0.95 CHF).",
                )
            )

        if _is_number(rate_value) and rate_value == 1.0:
            diagnostics.append(
                Diagnostic(
                    code=codes.CUR_010,
                    severity=WARNING,
                    message=f'Currency "{code}", rate of {format_date(rate_date)}: the rate equals 1.0.',
                    suggestion=(
                        "If this currency has the same value as the default currency, "
                        "consider making it the default."
                    ),
                )
            )

        key = rate_date_key(rate_date)
        if key in seen_dates:
            diagnostics.append(
                Diagnostic(
                    code=codes.CUR_011,
                    severity=ERROR,
                    message=f'Currency "{code}": several rates are defined for {key}.',
                    suggestion="Only one rate per day is allowed. Edit or remove the duplicates.",
                )
            )
        seen_dates.add(key)

    return diagnostics


def _check_code_uniqueness(currencies: list) -> list[Diagnostic]:
    diagnostics = []
    first_seen: dict[str, int] = {}

    for index, currency in enumerate(currencies):
        code = currency.get("code") if isinstance(currency, Mapping) else None
        if not code or not isinstance(code, str):
            continue
        if code in first_seen:
            diagnostics.append(
                Diagnostic(
                    code=codes.CUR_002,
                    severity=ERROR,
                    message=(
                        f'Currency code "{code}" is defined more than once '
                        f"(positions {first_seen[code] + 1} and {index + 1})."
                    ),
                    suggestion="Each currency code must be unique. Remove or rename the duplicates.",
                )
            )
        else:
            first_seen[code] = index

    return diagnostics


def _defaults(currencies: list) -> list[Mapping[str, Any]]:
    return [c for c in currencies if isinstance(c, Mapping) and c.get("isDefault") is True]


def _check_single_default(currencies: list) -> list[Diagnostic]:
    defaults = _defaults(currencies)

    if not defaults:
        return [
            Diagnostic(
                code=codes.CUR_006,
                severity=ERROR,
                message="No default currency is defined. One currency must have isDefault = true.",
                suggestion="Mark one currency as default (e.g. isDefault = true for CHF).",
            )
        ]
    if len(defaults) > 1:
        listed = ", ".join(str(c.get("code")) for c in defaults)
        return [
            Diagnostic(
                code=codes.CUR_006,
                severity=ERROR,
                message=f"Several currencies are marked as default: {listed}. Only one can be the default.",
                suggestion="Remove isDefault from every currency but one.",
            )
        ]
    return []


def _check_metadata_consistency(
    currencies: list, metadata: Mapping[str, Any]
) -> list[Diagnostic]:
    defaults = _defaults(currencies)
    if not defaults:
        # Reported by the single-default rule
        return []

    default_code = defaults[0].get("code")
    declared = metadata.get("defaultCurrency")
    if default_code == declared:
        return []
    return [
        Diagnostic(
            code=codes.CUR_007,
            severity=ERROR,
            message=(
                f'Inconsistency: the default currency "{default_code}" does not match '
                f'metadata.defaultCurrency = "{declared}".'
            ),
            suggestion=(
                f'Set metadata.defaultCurrency = "{default_code}" or change the default currency.'
            ),
        )
    ]


def validate_new_currency(
    candidate: Mapping[str, Any], existing_currencies: Optional[list] = None
) -> ValidationResult:
    """Validate a currency before it is added.

    Args:
        candidate: Currency record to add
        existing_currencies: Currencies already in the record set

    Returns:
        ValidationResult with field-tagged errors
    """
    existing_currencies = existing_currencies or []
    errors: list[FieldError] = []
    code = candidate.get("code")

    if not code or not is_currency_code(code):
        errors.append(
            FieldError(
                code=codes.CUR_001,
                message="Invalid code. Use 3 uppercase letters (ISO 4217).",
                field="code",
            )
        )

    if code and any(
        isinstance(c, Mapping) and c.get("code") == code for c in existing_currencies
    ):
        errors.append(
            FieldError(code=codes.CUR_002, message=f"Currency {code} already exists.", field="code")
        )

    if is_blank(candidate.get("name")):
        errors.append(FieldError(code=codes.CUR_003, message="The name is required.", field="name"))

    if is_blank(candidate.get("symbol")):
        errors.append(
            FieldError(code=codes.CUR_004, message="The symbol is required.", field="symbol")
        )

    if not decimal_places_in_range(candidate.get("decimalPlaces")):
        errors.append(
            FieldError(
                code=codes.CUR_005,
                message="Decimal places must be between 0 and 8.",
                field="decimalPlaces",
            )
        )

    return ValidationResult.from_errors(errors)


def validate_new_exchange_rate(
    candidate: Mapping[str, Any], owner_currency: Mapping[str, Any]
) -> ValidationResult:
    """Validate an exchange rate before it is added to a currency.

    A rate of exactly 1.0 is reported as a warning and does not make the
    result invalid.
    """
    if owner_currency.get("isDefault"):
        return ValidationResult(
            valid=False,
            errors=[
                FieldError(
                    code=codes.CUR_012,
                    message="Exchange rates cannot be added to the default currency.",
                    field="general",
                )
            ],
        )

    errors: list[FieldError] = []
    rate_date = candidate.get("date")
    rate_value = candidate.get("rate")

    if not rate_date or not is_calendar_date(rate_date):
        errors.append(
            FieldError(
                code=codes.CUR_008, message="The date must use the YYYY-MM-DD format.", field="date"
            )
        )

    if not is_positive_rate(rate_value):
        errors.append(
            FieldError(code=codes.CUR_009, message="The rate must be greater than 0.", field="rate")
        )

    if _is_number(rate_value) and rate_value == 1.0:
        errors.append(
            FieldError(
                code=codes.CUR_010,
                message="A rate of 1.0 means both currencies have the same value.",
                field="rate",
                severity=WARNING,
            )
        )

    history = owner_currency.get("exchangeRate") or []
    if rate_date and any(
        isinstance(r, Mapping) and rate_date_key(r.get("date")) == rate_date_key(rate_date)
        for r in history
    ):
        errors.append(
            FieldError(
                code=codes.CUR_011, message="A rate already exists for this date.", field="date"
            )
        )

    return ValidationResult.from_errors(errors)
