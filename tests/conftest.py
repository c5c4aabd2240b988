"""Shared pytest fixtures for cashflow tests."""

import tempfile
import os
from pathlib import Path
import pytest

from cashflow.database.factories import create_sqlite_database
from cashflow.domain.account import AccountService
from cashflow.domain.currency import CurrencyService
from cashflow.domain.ledger import Ledger, new_document
from cashflow.domain.transaction import TransactionService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def ledger():
    """Create an empty ledger with CHF as default currency."""
    return Ledger(new_document(default_currency="CHF", currency_name="Swiss Franc"))


@pytest.fixture
def currency_service(ledger):
    """Create a CurrencyService on the test ledger."""
    return CurrencyService(ledger)


@pytest.fixture
def account_service(ledger):
    """Create an AccountService on the test ledger."""
    return AccountService(ledger)


@pytest.fixture
def transaction_service(ledger):
    """Create a TransactionService on the test ledger."""
    return TransactionService(ledger)


@pytest.fixture
def sample_accounts(account_service):
    """Create a bank account and an expense account in CHF."""
    bank = account_service.create_account(
        {"name": "Assets:Bank:CHF", "type": "Assets", "currency": "CHF", "opened": "2025-01-01"}
    )
    food = account_service.create_account(
        {"name": "Expenses:Food", "type": "Expenses", "currency": "CHF", "opened": "2025-01-01"}
    )
    return {"bank": bank, "food": food}


@pytest.fixture
def initialized_db(temp_db):
    """Temporary database holding an empty CHF ledger."""
    temp_db.save_document(new_document(default_currency="CHF", currency_name="Swiss Franc"))
    return temp_db


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"

