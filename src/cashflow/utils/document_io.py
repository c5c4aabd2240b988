"""Reading and writing ledger documents (TOML or JSON files)."""

import json
import logging
import re
import tomllib
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

import tomli_w

from cashflow.utils.date_parser import format_date

logger = logging.getLogger(__name__)


class DocumentParseError(ValueError):
    """A document file could not be parsed."""

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message)
        self.line = line
        self.column = column


def normalize_dates(value: Any) -> Any:
    """Convert native TOML dates and timestamps into their string form, recursively."""
    if isinstance(value, (datetime, date)):
        return format_date(value)
    if isinstance(value, time):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: normalize_dates(item) for key, item in value.items()}
    if isinstance(value, list):
        return [normalize_dates(item) for item in value]
    return value


def parse_document(content: str, fmt: str = "toml") -> dict[str, Any]:
    """Parse document text.

    Args:
        content: Raw file contents
        fmt: "toml" or "json"

    Returns:
        Document mapping with dates as strings

    Raises:
        DocumentParseError: If the content is empty or malformed
    """
    if not content or not content.strip():
        raise DocumentParseError("The document is empty")

    try:
        if fmt == "json":
            data = json.loads(content)
        else:
            data = tomllib.loads(content)
    except json.JSONDecodeError as e:
        raise DocumentParseError(
            f"JSON parse error at line {e.lineno}, column {e.colno}: {e.msg}",
            line=e.lineno,
            column=e.colno,
        ) from e
    except tomllib.TOMLDecodeError as e:
        match = re.search(r"line (\d+), column (\d+)", str(e))
        line, column = (int(match.group(1)), int(match.group(2))) if match else (None, None)
        raise DocumentParseError(f"TOML parse error: {e}", line=line, column=column) from e

    if not isinstance(data, dict):
        raise DocumentParseError("The document root must be a table/object")
    return normalize_dates(data)


def read_document(path: str | Path) -> dict[str, Any]:
    """Read a ledger document from disk; the format follows the file suffix."""
    path = Path(path)
    fmt = "json" if path.suffix.lower() == ".json" else "toml"
    logger.debug("Reading %s document from %s", fmt, path)
    return parse_document(path.read_text(encoding="utf-8"), fmt=fmt)


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return format_date(value)
    return str(value)


def _toml_value(value: Any) -> Any:
    """Prepare a value for TOML, which has no null: None entries are dropped."""
    if isinstance(value, dict):
        return {key: _toml_value(item) for key, item in value.items() if item is not None}
    if isinstance(value, list):
        return [_toml_value(item) for item in value if item is not None]
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return format_date(value)
    return value


def serialize_document(document: dict[str, Any], fmt: str = "toml") -> str:
    """Render a document as TOML or JSON text. Decimal amounts become numbers."""
    if fmt == "json":
        return json.dumps(document, indent=2, ensure_ascii=False, default=_json_default) + "\n"
    return tomli_w.dumps(_toml_value(document))


def write_document(path: str | Path, document: dict[str, Any]) -> None:
    """Write a ledger document; a .toml suffix writes TOML, anything else JSON."""
    path = Path(path)
    fmt = "toml" if path.suffix.lower() == ".toml" else "json"
    path.write_text(serialize_document(document, fmt=fmt), encoding="utf-8")
    logger.info("Wrote %s document to %s", fmt, path)
