"""Tests for account commands."""

from datetime import date

from cashflow.cli.main import cli


def _invoke(cli_runner, db, *args, **kwargs):
    return cli_runner.invoke(cli, ["--db-path", db.database_path, *args], **kwargs)


def _create(cli_runner, db, name, *options):
    return _invoke(cli_runner, db, "account", "create", name, "--opened", "2025-01-01", *options)


def _spend(cli_runner, db, txn_date="2025-01-15", amount="50"):
    return _invoke(
        cli_runner,
        db,
        "transaction",
        "add",
        "--date",
        txn_date,
        "--description",
        "Groceries",
        "--posting",
        f"Expenses:Food={amount}",
        "--posting",
        f"Assets:Bank:CHF=-{amount}",
    )


def test_account_create(cli_runner, initialized_db):
    """Test creating an account with type and currency taken from defaults."""
    result = _create(cli_runner, initialized_db, "Assets:Bank:CHF")

    assert result.exit_code == 0
    assert "Created account 'Assets:Bank:CHF' (ID: acc_001)" in result.output
    account = initialized_db.load_document()["account"][0]
    assert account["type"] == "Assets"
    assert account["currency"] == "CHF"
    assert account["opened"] == "2025-01-01"


def test_account_create_opened_defaults_to_today(cli_runner, initialized_db):
    result = _invoke(cli_runner, initialized_db, "account", "create", "Expenses:Food")

    assert result.exit_code == 0
    assert initialized_db.load_document()["account"][0]["opened"] == date.today().isoformat()


def test_account_create_duplicate(cli_runner, initialized_db):
    """Test creating duplicate account name fails."""
    assert _create(cli_runner, initialized_db, "Assets:Bank:CHF").exit_code == 0

    result = _create(cli_runner, initialized_db, "Assets:Bank:CHF")

    assert result.exit_code == 1
    assert "already exists" in result.output.lower()


def test_account_create_type_mismatch(cli_runner, initialized_db):
    result = _create(cli_runner, initialized_db, "Expenses:Food", "--type", "Assets")

    assert result.exit_code == 1
    assert "[V-ACC-010] name:" in result.output


def test_account_create_unknown_type(cli_runner, initialized_db):
    result = _create(cli_runner, initialized_db, "Savings:Jar")

    assert result.exit_code == 1
    assert "V-ACC-005" in result.output


def test_account_create_unknown_currency(cli_runner, initialized_db):
    result = _create(cli_runner, initialized_db, "Assets:Bank:USD", "--currency", "USD")

    assert result.exit_code == 1
    assert "[V-ACC-006] currency:" in result.output


def test_account_list_empty(cli_runner, initialized_db):
    """Test listing accounts when none exist."""
    result = _invoke(cli_runner, initialized_db, "account", "list")

    assert result.exit_code == 0
    assert "No accounts found" in result.output


def test_account_list_with_balances(cli_runner, initialized_db):
    _create(cli_runner, initialized_db, "Assets:Bank:CHF")
    _create(cli_runner, initialized_db, "Expenses:Food")
    _spend(cli_runner, initialized_db, amount="1250.50")

    result = _invoke(cli_runner, initialized_db, "account", "list")

    assert result.exit_code == 0
    assert "Assets:Bank:CHF" in result.output
    assert "-1,250.50" in result.output
    assert "1,250.50" in result.output


def test_account_list_filters(cli_runner, initialized_db):
    _create(cli_runner, initialized_db, "Assets:Bank:CHF")
    _create(cli_runner, initialized_db, "Expenses:Food")

    result = _invoke(cli_runner, initialized_db, "account", "list", "--type", "Expenses")

    assert "Expenses:Food" in result.output
    assert "Assets:Bank:CHF" not in result.output


def test_account_tree(cli_runner, initialized_db):
    _create(cli_runner, initialized_db, "Assets:Bank:CHF")
    _create(cli_runner, initialized_db, "Assets:Bank:CHF:Savings")

    result = _invoke(cli_runner, initialized_db, "account", "tree")

    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0] == "Assets"
    assert lines[1] == "  Bank"
    assert lines[2] == "    CHF [acc_001]"
    assert lines[3] == "      Savings [acc_002]"


def test_account_update(cli_runner, initialized_db):
    _create(cli_runner, initialized_db, "Expenses:Food")

    result = _invoke(cli_runner, initialized_db, "account", "update", "Expenses:Food", "--name", "Expenses:Groceries")

    assert result.exit_code == 0
    assert "Updated account acc_001" in result.output
    assert initialized_db.load_document()["account"][0]["name"] == "Expenses:Groceries"


def test_account_update_unknown(cli_runner, initialized_db):
    result = _invoke(cli_runner, initialized_db, "account", "update", "Expenses:Nope", "--description", "x")

    assert result.exit_code == 1
    assert "Account 'Expenses:Nope' not found" in result.output


def test_account_close_and_reopen(cli_runner, initialized_db):
    _create(cli_runner, initialized_db, "Assets:Bank:CHF")

    result = _invoke(cli_runner, initialized_db, "account", "close", "acc_001", "--date", "2025-06-30")
    assert result.exit_code == 0
    assert "Closed account 'Assets:Bank:CHF' on 2025-06-30" in result.output

    result = _invoke(cli_runner, initialized_db, "account", "reopen", "Assets:Bank:CHF")
    assert result.exit_code == 0
    assert "Reopened account acc_001" in result.output


def test_account_close_with_later_transactions(cli_runner, initialized_db):
    _create(cli_runner, initialized_db, "Assets:Bank:CHF")
    _create(cli_runner, initialized_db, "Expenses:Food")
    _spend(cli_runner, initialized_db, txn_date="2025-03-01")

    result = _invoke(cli_runner, initialized_db, "account", "close", "Assets:Bank:CHF", "--date", "2025-02-01")

    assert result.exit_code == 1
    assert "1 transaction after that date" in result.output


def test_account_delete(cli_runner, initialized_db):
    _create(cli_runner, initialized_db, "Expenses:Food")

    result = _invoke(cli_runner, initialized_db, "account", "delete", "Expenses:Food", input="y\n")

    assert result.exit_code == 0
    assert "Deleted account 'Expenses:Food'" in result.output
    assert initialized_db.load_document()["account"] == []


def test_account_delete_cancelled(cli_runner, initialized_db):
    _create(cli_runner, initialized_db, "Expenses:Food")

    result = _invoke(cli_runner, initialized_db, "account", "delete", "acc_001", input="n\n")

    assert result.exit_code == 0
    assert "Deletion cancelled" in result.output


def test_account_delete_used(cli_runner, initialized_db):
    _create(cli_runner, initialized_db, "Assets:Bank:CHF")
    _create(cli_runner, initialized_db, "Expenses:Food")
    _spend(cli_runner, initialized_db, txn_date="2025-01-15")
    _spend(cli_runner, initialized_db, txn_date="2025-01-20")

    result = _invoke(cli_runner, initialized_db, "account", "delete", "Expenses:Food", input="y\n")

    assert result.exit_code == 1
    assert "it is used in 2 transactions" in result.output


def test_account_balance(cli_runner, initialized_db):
    _create(cli_runner, initialized_db, "Assets:Bank:CHF")
    _create(cli_runner, initialized_db, "Expenses:Food")
    _spend(cli_runner, initialized_db, txn_date="2025-01-15", amount="20")
    _spend(cli_runner, initialized_db, txn_date="2025-02-15", amount="30")

    result = _invoke(cli_runner, initialized_db, "account", "balance", "Assets:Bank:CHF")
    assert "Assets:Bank:CHF: -50.00 CHF" in result.output

    result = _invoke(cli_runner, initialized_db, "account", "balance", "Assets:Bank:CHF", "--up-to", "2025-01-31")
    assert "Assets:Bank:CHF: -20.00 CHF" in result.output
