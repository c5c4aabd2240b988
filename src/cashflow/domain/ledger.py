"""In-memory record set shared by the mutation services."""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Optional

from cashflow.domain.errors import ConflictError

logger = logging.getLogger(__name__)

DOCUMENT_VERSION = "1.0.0"


def utc_timestamp() -> str:
    """Current UTC time as YYYY-MM-DDTHH:MM:SSZ."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def new_document(
    default_currency: Optional[str] = None,
    currency_name: Optional[str] = None,
    symbol: Optional[str] = None,
    decimal_places: int = 2,
    owner: Optional[str] = None,
) -> dict[str, Any]:
    """Build an empty record set.

    Args:
        default_currency: Optional code of the default currency to seed
        currency_name: Display name of the seeded currency
        symbol: Symbol of the seeded currency (defaults to the code)
        decimal_places: Precision of the seeded currency
        owner: Optional owner stored in metadata

    Returns:
        Record set mapping
    """
    now = utc_timestamp()
    metadata: dict[str, Any] = {"created": now, "lastModified": now}
    if owner:
        metadata["owner"] = owner

    currencies = []
    if default_currency:
        code = default_currency.upper()
        metadata["defaultCurrency"] = code
        currencies.append(
            {
                "code": code,
                "name": currency_name or code,
                "symbol": symbol or code,
                "decimalPlaces": decimal_places,
                "isDefault": True,
                "exchangeRate": [],
            }
        )

    return {
        "version": DOCUMENT_VERSION,
        "metadata": metadata,
        "currency": currencies,
        "account": [],
        "transaction": [],
    }


class Ledger:
    """One record set plus the lock guarding its mutations.

    Services hold the lock for each read-validate-write sequence, so a
    ledger can be shared between threads of one process.
    """

    def __init__(self, document: Optional[dict[str, Any]] = None):
        self.document = document if document is not None else new_document()
        self.lock = threading.RLock()

    def _section(self, key: str) -> list:
        value = self.document.get(key)
        if value is None:
            value = self.document[key] = []
        if not isinstance(value, list):
            raise ConflictError(f"Section '{key}' is not a list")
        return value

    @property
    def currencies(self) -> list[dict[str, Any]]:
        return self._section("currency")

    @property
    def accounts(self) -> list[dict[str, Any]]:
        return self._section("account")

    @property
    def transactions(self) -> list[dict[str, Any]]:
        return self._section("transaction")

    @property
    def metadata(self) -> dict[str, Any]:
        value = self.document.get("metadata")
        if not isinstance(value, dict):
            value = self.document["metadata"] = {}
        return value

    def touch(self) -> None:
        """Refresh metadata.lastModified after an accepted mutation."""
        self.metadata["lastModified"] = utc_timestamp()
