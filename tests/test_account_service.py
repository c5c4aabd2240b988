"""Tests for AccountService."""

from datetime import date

import pytest

from cashflow.domain import codes
from cashflow.domain.errors import DependencyError, NotFoundError, ValidationError


def _expense(transaction_service, accounts, txn_date="2025-01-15", amount=50):
    return transaction_service.create_transaction(
        {
            "date": txn_date,
            "description": "Groceries",
            "posting": [
                {"accountId": accounts["food"]["id"], "amount": amount, "currency": "CHF"},
                {"accountId": accounts["bank"]["id"], "amount": -amount, "currency": "CHF"},
            ],
        }
    )


def test_create_account(account_service):
    """Test creating an account with a generated ID."""
    account = account_service.create_account(
        {"name": "Assets:Bank:CHF", "type": "Assets", "currency": "CHF", "opened": "2025-01-01"}
    )

    assert account["id"] == "acc_001"
    assert account["closed"] is False
    assert account["closedDate"] is None
    assert account["description"] == ""
    assert account["metadata"] == {}


def test_ids_follow_highest_existing(account_service, ledger):
    ledger.accounts.append(
        {"id": "acc_005", "name": "Equity:Opening", "type": "Equity", "currency": "CHF", "opened": "2025-01-01"}
    )
    account = account_service.create_account(
        {"name": "Income:Salary", "type": "Income", "currency": "CHF", "opened": "2025-01-01"}
    )
    assert account["id"] == "acc_006"


def test_accounts_sorted_by_name(account_service, sample_accounts, ledger):
    account_service.create_account(
        {"name": "Expenses:car", "type": "Expenses", "currency": "CHF", "opened": "2025-01-01"}
    )
    assert [a["name"] for a in ledger.accounts] == ["Assets:Bank:CHF", "Expenses:car", "Expenses:Food"]


def test_create_duplicate_name(account_service, sample_accounts):
    with pytest.raises(ValidationError) as excinfo:
        account_service.create_account(
            {"name": "Expenses:Food", "type": "Expenses", "currency": "CHF", "opened": "2025-01-01"}
        )
    assert [e.code for e in excinfo.value.errors] == [codes.ACC_004]


def test_create_with_unknown_currency(account_service):
    with pytest.raises(ValidationError) as excinfo:
        account_service.create_account(
            {"name": "Assets:Bank:USD", "type": "Assets", "currency": "USD", "opened": "2025-01-01"}
        )
    assert [e.field for e in excinfo.value.errors] == ["currency"]


def test_create_without_opening_date(account_service):
    with pytest.raises(ValidationError) as excinfo:
        account_service.create_account({"name": "Assets:Bank:CHF", "type": "Assets", "currency": "CHF"})
    assert [e.code for e in excinfo.value.errors] == [codes.ACC_007]


def test_update_account(account_service, sample_accounts):
    updated = account_service.update_account(
        sample_accounts["food"]["id"], {"name": "Expenses:Food:Groceries", "description": "Weekly shop"}
    )
    assert updated["name"] == "Expenses:Food:Groceries"
    assert updated["description"] == "Weekly shop"


def test_update_account_id_is_immutable(account_service, sample_accounts):
    updated = account_service.update_account(sample_accounts["food"]["id"], {"id": "acc_999"})
    assert updated["id"] == sample_accounts["food"]["id"]


def test_update_account_rejects_type_mismatch(account_service, sample_accounts):
    with pytest.raises(ValidationError) as excinfo:
        account_service.update_account(sample_accounts["food"]["id"], {"name": "Income:Food"})
    assert [e.code for e in excinfo.value.errors] == [codes.ACC_010]


def test_update_missing_account(account_service):
    with pytest.raises(NotFoundError):
        account_service.update_account("acc_404", {"description": "x"})


class TestUpdateWithTransactions:
    """Updates must keep existing postings consistent with the account."""

    def test_currency_change_refused(self, account_service, currency_service, transaction_service, sample_accounts):
        currency_service.add_currency({"code": "EUR", "name": "Euro"})
        _expense(transaction_service, sample_accounts, "2025-01-15")

        with pytest.raises(DependencyError) as excinfo:
            account_service.update_account(sample_accounts["bank"]["id"], {"currency": "EUR"})
        assert excinfo.value.details == {"type": "transactions", "count": 1}
        assert sample_accounts["bank"]["currency"] == "CHF"

    def test_currency_change_allowed_when_unused(self, account_service, currency_service, sample_accounts):
        currency_service.add_currency({"code": "EUR", "name": "Euro"})
        updated = account_service.update_account(sample_accounts["bank"]["id"], {"currency": "EUR"})
        assert updated["currency"] == "EUR"

    def test_opening_after_transactions_refused(self, account_service, transaction_service, sample_accounts):
        _expense(transaction_service, sample_accounts, "2025-01-15")

        with pytest.raises(DependencyError) as excinfo:
            account_service.update_account(sample_accounts["bank"]["id"], {"opened": "2025-02-01"})
        assert "before that date" in str(excinfo.value)
        assert sample_accounts["bank"]["opened"] == "2025-01-01"

    def test_opening_on_first_transaction_day(self, account_service, transaction_service, sample_accounts):
        _expense(transaction_service, sample_accounts, "2025-01-15")
        updated = account_service.update_account(sample_accounts["bank"]["id"], {"opened": "2025-01-15"})
        assert updated["opened"] == "2025-01-15"

    def test_closing_through_update_refused(self, account_service, transaction_service, sample_accounts):
        _expense(transaction_service, sample_accounts, "2025-03-01")

        with pytest.raises(DependencyError):
            account_service.update_account(
                sample_accounts["bank"]["id"], {"closed": True, "closedDate": "2025-02-01"}
            )
        assert sample_accounts["bank"]["closed"] is False

    def test_moving_closing_date_back_refused(self, account_service, transaction_service, sample_accounts):
        _expense(transaction_service, sample_accounts, "2025-03-01")
        account_service.close_account(sample_accounts["bank"]["id"], "2025-06-30")

        with pytest.raises(DependencyError):
            account_service.update_account(sample_accounts["bank"]["id"], {"closedDate": "2025-02-01"})
        assert sample_accounts["bank"]["closedDate"] == "2025-06-30"

    def test_description_update_unaffected(self, account_service, transaction_service, sample_accounts):
        _expense(transaction_service, sample_accounts, "2025-01-15")
        updated = account_service.update_account(sample_accounts["bank"]["id"], {"description": "Main"})
        assert updated["description"] == "Main"


class TestCloseAccount:
    """Closing and reopening accounts."""

    def test_close_and_reopen(self, account_service, sample_accounts):
        bank_id = sample_accounts["bank"]["id"]
        closed = account_service.close_account(bank_id, "2025-06-30")
        assert closed["closed"] is True
        assert closed["closedDate"] == "2025-06-30"

        reopened = account_service.reopen_account(bank_id)
        assert reopened["closed"] is False
        assert reopened["closedDate"] is None

    def test_close_after_last_transaction(self, account_service, transaction_service, sample_accounts):
        _expense(transaction_service, sample_accounts, "2025-01-15")
        closed = account_service.close_account(sample_accounts["bank"]["id"], "2025-01-15")
        assert closed["closed"] is True

    def test_close_with_later_transactions(self, account_service, transaction_service, sample_accounts):
        _expense(transaction_service, sample_accounts, "2025-01-15")
        _expense(transaction_service, sample_accounts, "2025-03-01")

        with pytest.raises(DependencyError) as excinfo:
            account_service.close_account(sample_accounts["bank"]["id"], "2025-02-01")
        assert excinfo.value.details == {"type": "transactions", "count": 1}
        assert sample_accounts["bank"]["closed"] is False

    def test_close_before_opening(self, account_service, sample_accounts):
        with pytest.raises(ValidationError) as excinfo:
            account_service.close_account(sample_accounts["bank"]["id"], "2024-12-31")
        assert [e.code for e in excinfo.value.errors] == [codes.ACC_008]

    def test_close_defaults_to_today(self, account_service, sample_accounts):
        closed = account_service.close_account(sample_accounts["bank"]["id"])
        assert closed["closedDate"] == date.today().isoformat()


class TestDeleteAccount:
    """Deletion is refused while transactions reference the account."""

    def test_delete_unused(self, account_service, sample_accounts):
        account_service.delete_account(sample_accounts["food"]["id"])
        assert account_service.get_account(sample_accounts["food"]["id"]) is None

    def test_delete_used(self, account_service, transaction_service, sample_accounts):
        _expense(transaction_service, sample_accounts, "2025-01-15")
        _expense(transaction_service, sample_accounts, "2025-01-20")

        with pytest.raises(DependencyError) as excinfo:
            account_service.delete_account(sample_accounts["food"]["id"])
        assert excinfo.value.details == {"type": "transactions", "count": 2}
        assert "2 transactions" in str(excinfo.value)

    def test_delete_missing(self, account_service):
        with pytest.raises(NotFoundError):
            account_service.delete_account("acc_404")


class TestQueries:
    """Lookups, filters and the account tree."""

    @pytest.fixture
    def accounts(self, account_service, currency_service):
        currency_service.add_currency({"code": "EUR", "name": "Euro"})
        created = {}
        for name, currency in (
            ("Assets:Bank:CHF", "CHF"),
            ("Assets:Bank:CHF:Savings", "CHF"),
            ("Assets:Bank:EUR", "EUR"),
            ("Expenses:Food", "CHF"),
        ):
            created[name] = account_service.create_account(
                {
                    "name": name,
                    "type": name.split(":")[0],
                    "currency": currency,
                    "opened": "2025-01-01",
                    "description": "Rainy day fund" if name.endswith("Savings") else "",
                }
            )
        account_service.close_account(created["Assets:Bank:EUR"]["id"], "2025-05-31")
        return created

    def test_get_account_by_name(self, account_service, accounts):
        assert account_service.get_account_by_name("Expenses:Food")["id"] == accounts["Expenses:Food"]["id"]
        assert account_service.get_account_by_name("Expenses:Rent") is None

    def test_search_by_type_and_currency(self, account_service, accounts):
        names = [a["name"] for a in account_service.search_accounts(type="Assets", currency="CHF")]
        assert names == ["Assets:Bank:CHF", "Assets:Bank:CHF:Savings"]

    def test_search_by_status(self, account_service, accounts):
        assert [a["name"] for a in account_service.search_accounts(status="closed")] == ["Assets:Bank:EUR"]
        assert len(account_service.search_accounts(status="active")) == 3

    def test_search_text_in_description(self, account_service, accounts):
        found = account_service.search_accounts(search="rainy")
        assert [a["name"] for a in found] == ["Assets:Bank:CHF:Savings"]

    def test_accounts_by_type(self, account_service, accounts):
        grouped = account_service.accounts_by_type()
        assert set(grouped) == {"Assets", "Liabilities", "Income", "Expenses", "Equity"}
        assert len(grouped["Assets"]) == 3
        assert grouped["Liabilities"] == []

    def test_children_and_parent(self, account_service, accounts):
        children = account_service.get_child_accounts("Assets:Bank")
        assert len(children) == 3
        parent = account_service.get_parent_account("Assets:Bank:CHF:Savings")
        assert parent["name"] == "Assets:Bank:CHF"
        assert account_service.get_parent_account("Expenses:Food") is None

    def test_hierarchy(self, account_service, accounts):
        tree = account_service.account_hierarchy()
        bank = tree["Assets"]["Bank"]
        assert bank["accounts"] == []
        assert [a["name"] for a in bank["children"]["CHF"]["accounts"]] == ["Assets:Bank:CHF"]
        savings = bank["children"]["CHF"]["children"]["Savings"]
        assert [a["name"] for a in savings["accounts"]] == ["Assets:Bank:CHF:Savings"]
        assert [a["name"] for a in tree["Expenses"]["Food"]["accounts"]] == ["Expenses:Food"]
