"""Format predicates for identifiers, codes, dates and versions.

Every predicate is total: it returns False for values of the wrong type
instead of raising.
"""

import re
from typing import Any, Mapping

from cashflow.utils.date_parser import parse_calendar_date, parse_iso_timestamp

CURRENCY_CODE_PATTERN = re.compile(r"^[A-Z]{3}$")
SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")


def is_hierarchical_id(value: Any, prefix: str) -> bool:
    """Check for an identifier of the form <prefix>_<digits> (e.g. acc_001)."""
    if not isinstance(value, str):
        return False
    return re.fullmatch(rf"{re.escape(prefix)}_\d+", value) is not None


def is_currency_code(value: Any) -> bool:
    """Check for three uppercase letters.

    No lookup against a real ISO 4217 table is made.
    """
    return isinstance(value, str) and CURRENCY_CODE_PATTERN.match(value) is not None


def is_calendar_date(value: Any) -> bool:
    """Check for a YYYY-MM-DD string (or a native date) naming a calendar date."""
    return parse_calendar_date(value) is not None


def is_semver(value: Any) -> bool:
    """Check for an X.Y.Z version string."""
    return isinstance(value, str) and SEMVER_PATTERN.match(value) is not None


def is_iso8601(value: Any) -> bool:
    """Check for an ISO 8601 date or UTC timestamp."""
    return parse_iso_timestamp(value) is not None


def is_blank(value: Any) -> bool:
    """True for None, non-strings and whitespace-only strings."""
    return not isinstance(value, str) or not value.strip()


def next_hierarchical_id(records: Any, prefix: str) -> str:
    """Return <prefix>_<max+1>, zero-padded to 3 digits.

    Records without a well-formed <prefix>_<digits> ID are ignored, and the
    padding is cosmetic: acc_1000 follows acc_999.
    """
    pattern = re.compile(rf"^{re.escape(prefix)}_(\d+)$")
    highest = 0
    for record in records or []:
        record_id = record.get("id") if isinstance(record, Mapping) else None
        match = pattern.match(record_id) if isinstance(record_id, str) else None
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}_{highest + 1:03d}"
