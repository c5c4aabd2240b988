"""Tests for CurrencyService."""

import pytest

from cashflow.domain import codes
from cashflow.domain.currency import CurrencyService
from cashflow.domain.currency_rules import validate_currency_set
from cashflow.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
)
from cashflow.domain.ledger import Ledger, new_document


def test_add_currency(currency_service, ledger):
    """Adding a currency normalizes it and keeps the list sorted."""
    eur = currency_service.add_currency({"code": "eur", "name": "Euro", "symbol": "€"})

    assert eur["code"] == "EUR"
    assert eur["decimalPlaces"] == 2
    assert eur["isDefault"] is False
    assert eur["exchangeRate"] == []
    assert [c["code"] for c in ledger.currencies] == ["CHF", "EUR"]


def test_add_currency_symbol_defaults_to_code(currency_service):
    usd = currency_service.add_currency({"code": "USD", "name": "US Dollar"})
    assert usd["symbol"] == "USD"


def test_add_duplicate_currency(currency_service):
    with pytest.raises(ValidationError) as excinfo:
        currency_service.add_currency({"code": "CHF", "name": "Franc"})
    assert [e.code for e in excinfo.value.errors] == [codes.CUR_002]


def test_add_invalid_currency_leaves_ledger_untouched(currency_service, ledger):
    with pytest.raises(ValidationError):
        currency_service.add_currency({"code": "EURO", "name": "", "decimalPlaces": 10})
    assert [c["code"] for c in ledger.currencies] == ["CHF"]


def test_first_currency_becomes_default():
    empty = Ledger(new_document())
    service = CurrencyService(empty)
    service.add_currency({"code": "EUR", "name": "Euro"})

    assert service.get_default_currency()["code"] == "EUR"
    assert empty.metadata["defaultCurrency"] == "EUR"


def test_new_default_demotes_previous(currency_service, ledger):
    currency_service.add_currency({"code": "EUR", "name": "Euro", "isDefault": True})

    assert currency_service.get_currency("CHF")["isDefault"] is False
    assert currency_service.get_default_currency()["code"] == "EUR"
    assert ledger.metadata["defaultCurrency"] == "EUR"


def test_update_currency(currency_service):
    updated = currency_service.update_currency("CHF", {"name": "Franc suisse", "symbol": "Fr."})
    assert updated["name"] == "Franc suisse"
    assert updated["symbol"] == "Fr."


def test_update_currency_code_is_immutable(currency_service):
    with pytest.raises(ConflictError):
        currency_service.update_currency("CHF", {"code": "XCH"})


def test_update_currency_cannot_unset_default(currency_service):
    with pytest.raises(ConflictError):
        currency_service.update_currency("CHF", {"isDefault": False})


def test_update_currency_invalid(currency_service):
    with pytest.raises(ValidationError) as excinfo:
        currency_service.update_currency("CHF", {"decimalPlaces": 9})
    assert [e.code for e in excinfo.value.errors] == [codes.CUR_005]
    assert currency_service.get_currency("CHF")["decimalPlaces"] == 2


def test_promote_currency(currency_service, ledger):
    currency_service.add_currency({"code": "EUR", "name": "Euro"})
    currency_service.update_currency("EUR", {"isDefault": True})

    assert currency_service.get_currency("CHF")["isDefault"] is False
    assert ledger.metadata["defaultCurrency"] == "EUR"


def test_update_missing_currency(currency_service):
    with pytest.raises(NotFoundError):
        currency_service.update_currency("XYZ", {"name": "Nothing"})


def test_delete_currency(currency_service):
    currency_service.add_currency({"code": "EUR", "name": "Euro"})
    currency_service.delete_currency("EUR")
    assert currency_service.get_currency("EUR") is None


def test_delete_default_currency(currency_service):
    with pytest.raises(ConflictError, match="default currency"):
        currency_service.delete_currency("CHF")


def test_delete_used_currency(currency_service, account_service):
    currency_service.add_currency({"code": "EUR", "name": "Euro"})
    account_service.create_account(
        {"name": "Assets:Bank:EUR", "type": "Assets", "currency": "EUR", "opened": "2025-01-01"}
    )

    with pytest.raises(DependencyError) as excinfo:
        currency_service.delete_currency("EUR")
    assert excinfo.value.details == {"type": "references", "count": 1}


def test_delete_missing_currency(currency_service):
    with pytest.raises(NotFoundError):
        currency_service.delete_currency("XYZ")


class TestExchangeRates:
    """Rate history of a foreign currency."""

    @pytest.fixture
    def eur(self, currency_service):
        return currency_service.add_currency({"code": "EUR", "name": "Euro", "symbol": "€"})

    def test_add_rate_defaults_source(self, currency_service, eur):
        rate = currency_service.add_exchange_rate("EUR", {"date": "2025-01-01", "rate": 0.95})
        assert rate == {"date": "2025-01-01", "rate": 0.95, "source": "manual"}

    def test_rates_are_kept_most_recent_first(self, currency_service, eur):
        currency_service.add_exchange_rate("EUR", {"date": "2025-01-01", "rate": 0.95})
        currency_service.add_exchange_rate("EUR", {"date": "2025-03-01", "rate": 0.93})
        currency_service.add_exchange_rate("EUR", {"date": "2025-02-01", "rate": 0.94, "source": "ECB"})

        dates = [r["date"] for r in currency_service.get_currency("EUR")["exchangeRate"]]
        assert dates == ["2025-03-01", "2025-02-01", "2025-01-01"]

    def test_rate_on_default_currency(self, currency_service):
        with pytest.raises(ValidationError) as excinfo:
            currency_service.add_exchange_rate("CHF", {"date": "2025-01-01", "rate": 1.1})
        assert [e.code for e in excinfo.value.errors] == [codes.CUR_012]

    def test_promoting_currency_with_rates_refused(self, currency_service, ledger, eur):
        currency_service.add_exchange_rate("EUR", {"date": "2025-01-01", "rate": 0.95})

        with pytest.raises(ConflictError, match="1 exchange rate"):
            currency_service.update_currency("EUR", {"isDefault": True})
        assert eur["isDefault"] is False
        assert ledger.metadata["defaultCurrency"] == "CHF"
        assert not [d for d in validate_currency_set(ledger.currencies, ledger.metadata) if d.is_error]

    def test_duplicate_rate_date(self, currency_service, eur):
        currency_service.add_exchange_rate("EUR", {"date": "2025-01-01", "rate": 0.95})
        with pytest.raises(ValidationError) as excinfo:
            currency_service.add_exchange_rate("EUR", {"date": "2025-01-01", "rate": 0.96})
        assert [e.code for e in excinfo.value.errors] == [codes.CUR_011]

    def test_rate_of_one_is_accepted(self, currency_service, eur):
        rate = currency_service.add_exchange_rate("EUR", {"date": "2025-01-01", "rate": 1.0})
        assert rate["rate"] == 1.0

    def test_get_exchange_rate_uses_latest_prior_rate(self, currency_service, eur):
        currency_service.add_exchange_rate("EUR", {"date": "2025-01-01", "rate": 0.95})
        currency_service.add_exchange_rate("EUR", {"date": "2025-02-01", "rate": 0.94})

        assert currency_service.get_exchange_rate("EUR", "2025-01-20") == 0.95
        assert currency_service.get_exchange_rate("EUR", "2025-02-01") == 0.94
        assert currency_service.get_exchange_rate("EUR", "2024-12-31") is None
        assert currency_service.get_exchange_rate("USD", "2025-02-01") is None

    def test_update_rate(self, currency_service, eur):
        currency_service.add_exchange_rate("EUR", {"date": "2025-01-01", "rate": 0.95})
        updated = currency_service.update_exchange_rate("EUR", "2025-01-01", {"rate": 0.96})
        assert updated["rate"] == 0.96

    def test_update_rate_to_invalid_value(self, currency_service, eur):
        currency_service.add_exchange_rate("EUR", {"date": "2025-01-01", "rate": 0.95})
        with pytest.raises(ValidationError):
            currency_service.update_exchange_rate("EUR", "2025-01-01", {"rate": -2})

    def test_update_missing_rate(self, currency_service, eur):
        with pytest.raises(NotFoundError):
            currency_service.update_exchange_rate("EUR", "2025-01-01", {"rate": 0.9})

    def test_delete_rate(self, currency_service, eur):
        currency_service.add_exchange_rate("EUR", {"date": "2025-01-01", "rate": 0.95})
        currency_service.delete_exchange_rate("EUR", "2025-01-01")
        assert currency_service.get_currency("EUR")["exchangeRate"] == []

    def test_delete_rate_used_by_postings(self, currency_service, account_service, transaction_service, eur):
        currency_service.add_exchange_rate("EUR", {"date": "2025-01-10", "rate": 0.95})
        cash = account_service.create_account(
            {"name": "Assets:Cash:EUR", "type": "Assets", "currency": "EUR", "opened": "2025-01-01"}
        )
        travel = account_service.create_account(
            {"name": "Expenses:Travel", "type": "Expenses", "currency": "EUR", "opened": "2025-01-01"}
        )
        transaction_service.create_transaction(
            {
                "date": "2025-01-10",
                "description": "Hotel",
                "posting": [
                    {"accountId": travel["id"], "amount": 95, "currency": "EUR"},
                    {"accountId": cash["id"], "amount": -95, "currency": "EUR"},
                ],
            }
        )

        with pytest.raises(DependencyError) as excinfo:
            currency_service.delete_exchange_rate("EUR", "2025-01-10")
        assert excinfo.value.details == {"type": "postings", "count": 2}
