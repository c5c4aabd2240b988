"""Currency domain service."""

import logging
from typing import Any, Optional

from cashflow.domain.currency_rules import (
    rate_date_key,
    validate_new_currency,
    validate_new_exchange_rate,
)
from cashflow.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
    currency_delete_blocked,
    currency_not_found,
    default_currency_delete_blocked,
    default_currency_promotion_blocked,
    exchange_rate_delete_blocked,
    exchange_rate_not_found,
    invalid_entity,
)
from cashflow.domain.ledger import Ledger
from cashflow.domain.usage import count_currency_usage
from cashflow.utils.date_parser import format_date, parse_calendar_date

logger = logging.getLogger(__name__)

DEFAULT_RATE_SOURCE = "manual"


class CurrencyService:
    """Service for managing currencies and their exchange-rate history."""

    def __init__(self, ledger: Ledger):
        """Initialize currency service.

        Args:
            ledger: Record set to read and mutate
        """
        self.ledger = ledger

    def _find(self, code: str) -> dict[str, Any]:
        for currency in self.ledger.currencies:
            if currency.get("code") == code:
                return currency
        raise NotFoundError(currency_not_found(code))

    def _set_default(self, code: str) -> None:
        for currency in self.ledger.currencies:
            currency["isDefault"] = currency.get("code") == code
        self.ledger.metadata["defaultCurrency"] = code

    def _sort(self) -> None:
        self.ledger.currencies.sort(key=lambda c: str(c.get("code") or ""))

    def add_currency(self, data: dict[str, Any]) -> dict[str, Any]:
        """Add a currency.

        The code is uppercased and the symbol defaults to the code. A new
        default currency takes the flag from every other currency.

        Args:
            data: Currency fields (code, name, symbol, decimalPlaces, isDefault)

        Returns:
            The stored currency record

        Raises:
            ValidationError: If the currency is invalid or the code exists
        """
        code = data.get("code")
        candidate = {
            "code": code.strip().upper() if isinstance(code, str) else code,
            "name": data.get("name"),
            "symbol": data.get("symbol") or (code.strip().upper() if isinstance(code, str) else None),
            "decimalPlaces": data.get("decimalPlaces", 2),
            "isDefault": bool(data.get("isDefault", False)),
            "exchangeRate": [],
        }

        with self.ledger.lock:
            result = validate_new_currency(candidate, self.ledger.currencies)
            if not result.valid:
                logger.warning("Rejected currency %s: %s", candidate["code"], result.errors)
                raise ValidationError(invalid_entity("currency", result.errors), result.errors)

            if not self.ledger.currencies:
                candidate["isDefault"] = True
            self.ledger.currencies.append(candidate)
            if candidate["isDefault"]:
                self._set_default(candidate["code"])
            self._sort()
            self.ledger.touch()

        logger.info("Added currency %s", candidate["code"])
        return candidate

    def update_currency(self, code: str, updates: dict[str, Any]) -> dict[str, Any]:
        """Update a currency. The code cannot change.

        Setting isDefault promotes the currency and demotes the others.

        Raises:
            NotFoundError: If the currency does not exist
            ConflictError: If the update would leave no default currency
                or promote a currency that carries exchange rates
            ValidationError: If the updated currency is invalid
        """
        with self.ledger.lock:
            currency = self._find(code)
            if "code" in updates and updates["code"] != code:
                raise ConflictError(f"Currency code '{code}' cannot be changed")
            if currency.get("isDefault") and updates.get("isDefault") is False:
                raise ConflictError(
                    f"Currency '{code}' is the default; promote another currency instead"
                )

            rates = currency.get("exchangeRate") or []
            if updates.get("isDefault") and not currency.get("isDefault") and rates:
                raise ConflictError(default_currency_promotion_blocked(code, len(rates)))

            merged = {**currency, **{k: v for k, v in updates.items() if k != "exchangeRate"}}
            others = [c for c in self.ledger.currencies if c is not currency]
            result = validate_new_currency(merged, others)
            if not result.valid:
                logger.warning("Rejected update of currency %s: %s", code, result.errors)
                raise ValidationError(invalid_entity("currency", result.errors), result.errors)

            promote = merged.get("isDefault") and not currency.get("isDefault")
            currency.update(merged)
            if promote:
                self._set_default(code)
            self.ledger.touch()

        logger.info("Updated currency %s", code)
        return currency

    def delete_currency(self, code: str) -> None:
        """Delete a currency.

        Raises:
            NotFoundError: If the currency does not exist
            ConflictError: If it is the default currency
            DependencyError: If accounts or postings still use it
        """
        with self.ledger.lock:
            currency = self._find(code)
            if currency.get("isDefault"):
                raise ConflictError(default_currency_delete_blocked(code))

            usage = count_currency_usage(self.ledger.accounts, self.ledger.transactions, code)
            if usage.used:
                raise DependencyError(currency_delete_blocked(code, usage.count), usage.as_details())

            self.ledger.currencies.remove(currency)
            self.ledger.touch()

        logger.info("Deleted currency %s", code)

    def get_currency(self, code: str) -> Optional[dict[str, Any]]:
        """Get currency by code, or None."""
        for currency in self.ledger.currencies:
            if currency.get("code") == code:
                return currency
        return None

    def list_currencies(self) -> list[dict[str, Any]]:
        return list(self.ledger.currencies)

    def get_default_currency(self) -> Optional[dict[str, Any]]:
        for currency in self.ledger.currencies:
            if currency.get("isDefault"):
                return currency
        return None

    def add_exchange_rate(self, code: str, data: dict[str, Any]) -> dict[str, Any]:
        """Record an exchange rate for a currency.

        Args:
            code: Currency code
            data: Rate fields (date, rate, optional source)

        Returns:
            The stored rate record

        Raises:
            NotFoundError: If the currency does not exist
            ValidationError: If the rate is invalid, duplicated, or the
                currency is the default one
        """
        rate = {
            "date": format_date(data.get("date")) if data.get("date") else data.get("date"),
            "rate": data.get("rate"),
            "source": data.get("source") or DEFAULT_RATE_SOURCE,
        }

        with self.ledger.lock:
            currency = self._find(code)
            result = validate_new_exchange_rate(rate, currency)
            if not result.valid:
                logger.warning("Rejected %s rate: %s", code, result.errors)
                raise ValidationError(invalid_entity("exchange rate", result.errors), result.errors)

            history = currency.setdefault("exchangeRate", [])
            history.append(rate)
            history.sort(key=lambda r: rate_date_key(r.get("date")), reverse=True)
            self.ledger.touch()

        logger.info("Added %s rate %s on %s", code, rate["rate"], rate["date"])
        return rate

    def _find_rate(self, currency: dict[str, Any], rate_date: Any) -> dict[str, Any]:
        key = rate_date_key(rate_date)
        for rate in currency.get("exchangeRate") or []:
            if rate_date_key(rate.get("date")) == key:
                return rate
        raise NotFoundError(exchange_rate_not_found(currency.get("code"), key))

    def update_exchange_rate(
        self, code: str, rate_date: Any, updates: dict[str, Any]
    ) -> dict[str, Any]:
        """Update the rate recorded for a currency on a date.

        Raises:
            NotFoundError: If the currency or rate does not exist
            ValidationError: If the updated rate is invalid
        """
        with self.ledger.lock:
            currency = self._find(code)
            rate = self._find_rate(currency, rate_date)
            merged = {**rate, **updates}
            if merged.get("date"):
                merged["date"] = format_date(merged["date"])

            others = [r for r in currency.get("exchangeRate") or [] if r is not rate]
            result = validate_new_exchange_rate(merged, {**currency, "exchangeRate": others})
            if not result.valid:
                logger.warning("Rejected update of %s rate: %s", code, result.errors)
                raise ValidationError(invalid_entity("exchange rate", result.errors), result.errors)

            rate.update(merged)
            currency["exchangeRate"].sort(key=lambda r: rate_date_key(r.get("date")), reverse=True)
            self.ledger.touch()

        logger.info("Updated %s rate of %s", code, rate["date"])
        return rate

    def delete_exchange_rate(self, code: str, rate_date: Any) -> None:
        """Delete the rate recorded for a currency on a date.

        Raises:
            NotFoundError: If the currency or rate does not exist
            DependencyError: If postings in that currency exist on that date
        """
        with self.ledger.lock:
            currency = self._find(code)
            rate = self._find_rate(currency, rate_date)
            usage = count_currency_usage(
                self.ledger.accounts, self.ledger.transactions, code, on_date=rate.get("date")
            )
            if usage.used:
                raise DependencyError(
                    exchange_rate_delete_blocked(code, rate_date_key(rate_date), usage.count),
                    usage.as_details(),
                )
            currency["exchangeRate"].remove(rate)
            self.ledger.touch()

        logger.info("Deleted %s rate of %s", code, rate_date_key(rate_date))

    def get_exchange_rate(self, code: str, on_date: Any) -> Optional[float]:
        """Get the most recent rate dated on or before on_date.

        Args:
            code: Currency code
            on_date: Reference date

        Returns:
            Rate value, or None if the currency has no applicable rate
        """
        currency = self.get_currency(code)
        day = parse_calendar_date(on_date)
        if currency is None or day is None:
            return None

        best = None
        best_day = None
        for rate in currency.get("exchangeRate") or []:
            rate_day = parse_calendar_date(rate.get("date"))
            if rate_day is None or rate_day > day:
                continue
            if best_day is None or rate_day > best_day:
                best, best_day = rate, rate_day
        return best.get("rate") if best is not None else None
