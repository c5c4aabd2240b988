"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from cashflow.database.sqlalchemy_db import SQLAlchemyDatabase

DB_PATH_ENV_VAR = "CASHFLOW_DB_PATH"
DEFAULT_DB_NAME = "cashflow.db"


def default_database_path() -> Path:
    """Return ~/.cashflow/cashflow.db, creating the directory if needed."""
    db_dir = Path.home() / ".cashflow"
    db_dir.mkdir(parents=True, exist_ok=True)
    return db_dir / DEFAULT_DB_NAME


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite-backed ledger store.

    Args:
        database_path: Path to the SQLite file. Falls back to the
            CASHFLOW_DB_PATH environment variable, then to
            ~/.cashflow/cashflow.db

    Returns:
        SQLAlchemyDatabase instance (not yet connected)
    """
    path = database_path or os.environ.get(DB_PATH_ENV_VAR) or default_database_path()
    return SQLAlchemyDatabase(f"sqlite:///{path}")
