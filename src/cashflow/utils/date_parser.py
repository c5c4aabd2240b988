"""Date parsing utilities."""

import re
from datetime import date, datetime, timedelta
from typing import Any, Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

CALENDAR_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
ISO8601_PATTERN = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})(?:T(\d{2}):(\d{2}):(\d{2})(?:\.\d{3})?Z?)?$"
)


def _lenient_date(year: int, month: int, day: int) -> Optional[date]:
    """Build a date, rolling day overflow into the following month.

    Month must be 1-12 and day 1-31. A day past the end of the month is
    carried forward, so 2025-02-31 becomes 2025-03-03.
    """
    if year < 1 or not 1 <= month <= 12 or not 1 <= day <= 31:
        return None
    return date(year, month, 1) + timedelta(days=day - 1)


def parse_calendar_date(value: Any) -> Optional[date]:
    """Parse a calendar date leniently.

    Accepts native date/datetime objects and YYYY-MM-DD strings.

    Returns:
        Date object, or None if the value is not a calendar date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    match = CALENDAR_DATE_PATTERN.match(value)
    if match is None:
        return None
    year, month, day = (int(part) for part in match.groups())
    return _lenient_date(year, month, day)


def parse_iso_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 date or timestamp (YYYY-MM-DD[THH:MM:SS[.mmm][Z]]).

    Date parts are handled as leniently as parse_calendar_date.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None

    match = ISO8601_PATTERN.match(value)
    if match is None:
        return None
    year, month, day, hour, minute, second = match.groups()
    day_value = _lenient_date(int(year), int(month), int(day))
    if day_value is None:
        return None
    if hour is None:
        return datetime(day_value.year, day_value.month, day_value.day)
    if int(hour) > 23 or int(minute) > 59 or int(second) > 59:
        return None
    return datetime(
        day_value.year, day_value.month, day_value.day, int(hour), int(minute), int(second)
    )


def format_date(value: Any) -> str:
    """Render a date value the way it is stored (YYYY-MM-DD for dates)."""
    if isinstance(value, datetime):
        suffix = "Z" if value.tzinfo is not None else ""
        return value.strftime("%Y-%m-%dT%H:%M:%S") + suffix
    if isinstance(value, date):
        return value.isoformat()
    return "" if value is None else str(value)


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports various formats including relative dates:
    - Absolute dates: "2024-01-15", "January 15, 2024", etc.
    - Relative dates: "today", "yesterday", "last month", "this year", etc.

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }

    if date_str in relative_dates:
        return relative_dates[date_str]

    if date_str.startswith("last "):
        period = date_str[5:]
        if period == "month":
            return (today - relativedelta(months=1)).replace(day=1)
        elif period == "year":
            return today.replace(month=1, day=1) - relativedelta(years=1)
        elif period == "week":
            return today - timedelta(days=today.weekday() + 7)

    elif date_str.startswith("this "):
        period = date_str[5:]
        if period == "month":
            return today.replace(day=1)
        elif period == "year":
            return today.replace(month=1, day=1)
        elif period == "week":
            return today - timedelta(days=today.weekday())

    try:
        dt = date_parser.parse(date_str)
        return dt.date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def get_date_range(period: str) -> tuple[date, date]:
    """Get start and end dates for a specified period.

    Args:
        period: Period string (this-month, this-year, last-month, last-year)

    Returns:
        Tuple of (start_date, end_date) for the specified period

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = date.today()

    if period == "this-month":
        return (today.replace(day=1), today)

    elif period == "this-year":
        return (today.replace(month=1, day=1), today)

    elif period == "last-month":
        start_date = (today - relativedelta(months=1)).replace(day=1)
        end_date = today.replace(day=1) - timedelta(days=1)
        return (start_date, end_date)

    elif period == "last-year":
        start_date = today.replace(month=1, day=1) - relativedelta(years=1)
        end_date = today.replace(month=1, day=1) - timedelta(days=1)
        return (start_date, end_date)

    else:
        raise ValueError(
            f"Unknown period: '{period}'. Supported periods: this-month, this-year, last-month, last-year"
        )
