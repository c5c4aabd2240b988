"""Tests for the in-memory ledger, usage scans and result types."""

from datetime import date

import pytest

from cashflow.domain.entities import ERROR, WARNING, Diagnostic, FieldError, ValidationResult
from cashflow.domain.errors import ConflictError
from cashflow.domain.ledger import DOCUMENT_VERSION, Ledger, new_document
from cashflow.domain.record_set import validate_record_set
from cashflow.domain.usage import count_account_usage, count_currency_usage


def test_new_document_is_valid():
    """A fresh ledger passes full validation."""
    document = new_document(default_currency="chf", currency_name="Swiss Franc", owner="Jane")

    assert document["version"] == DOCUMENT_VERSION
    assert document["metadata"]["defaultCurrency"] == "CHF"
    assert document["metadata"]["owner"] == "Jane"
    assert document["currency"][0]["isDefault"] is True
    assert validate_record_set(document, strict=True).valid


def test_new_document_without_currency():
    document = new_document()
    assert document["currency"] == []
    assert "defaultCurrency" not in document["metadata"]


def test_ledger_creates_missing_sections():
    ledger = Ledger({"version": "1.0.0", "metadata": {}})
    assert ledger.accounts == []
    assert ledger.document["account"] is ledger.accounts


def test_ledger_rejects_malformed_section():
    ledger = Ledger({"version": "1.0.0", "metadata": {}, "transaction": {"id": "txn_001"}})
    with pytest.raises(ConflictError):
        ledger.transactions


def test_touch_updates_last_modified():
    ledger = Ledger(new_document(default_currency="CHF"))
    ledger.metadata["lastModified"] = "2000-01-01T00:00:00Z"
    ledger.touch()
    assert ledger.metadata["lastModified"] != "2000-01-01T00:00:00Z"


TRANSACTIONS = [
    {
        "id": "txn_001",
        "date": "2025-01-10",
        "posting": [
            {"accountId": "acc_001", "amount": 10, "currency": "EUR"},
            {"accountId": "acc_001", "amount": -10, "currency": "EUR"},
        ],
    },
    {
        "id": "txn_002",
        "date": "2025-02-10",
        "posting": [
            {"accountId": "acc_002", "amount": 5, "currency": "CHF"},
            {"accountId": "acc_001", "amount": -5, "currency": "CHF"},
        ],
    },
    "garbage",
]


class TestUsage:
    """Reference counts behind the deletion guards."""

    def test_account_usage_counts_transactions(self):
        usage = count_account_usage(TRANSACTIONS, "acc_001")
        assert usage.count == 2
        assert usage.type == "transactions"
        assert usage.used

    def test_account_usage_after_date(self):
        assert count_account_usage(TRANSACTIONS, "acc_001", after=date(2025, 1, 31)).count == 1

    def test_unused_account(self):
        usage = count_account_usage(TRANSACTIONS, "acc_404")
        assert not usage.used
        assert usage.as_details() == {"type": "transactions", "count": 0}

    def test_currency_usage_counts_accounts_and_postings(self):
        accounts = [{"id": "acc_001", "currency": "EUR"}, {"id": "acc_002", "currency": "CHF"}]
        usage = count_currency_usage(accounts, TRANSACTIONS, "EUR")
        assert (usage.count, usage.type) == (3, "references")

    def test_currency_usage_on_date(self):
        usage = count_currency_usage([], TRANSACTIONS, "EUR", on_date="2025-01-10")
        assert (usage.count, usage.type) == (2, "postings")
        assert count_currency_usage([], TRANSACTIONS, "EUR", on_date="2025-02-10").count == 0


def test_validation_result_ignores_warnings():
    warning = FieldError(code="V-TXN-006", message="future", field="date", severity=WARNING)
    error = FieldError(code="V-TXN-004", message="required", field="description")

    assert ValidationResult.from_errors([warning]).valid
    assert not ValidationResult.from_errors([warning, error]).valid
    assert error.is_blocking
    assert not warning.is_blocking


def test_diagnostic_severity():
    assert Diagnostic(code="V-BAL-001", severity=ERROR, message="unbalanced", suggestion="").is_error
    assert not Diagnostic(code="V-CUR-010", severity=WARNING, message="rate of 1", suggestion="").is_error
