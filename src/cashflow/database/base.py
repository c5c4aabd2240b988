"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Any, Optional


class Database(ABC):
    """Abstract database interface for cashflow.

    A database stores exactly one ledger document.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def has_document(self) -> bool:
        """Return True if a ledger document has been saved."""
        pass

    @abstractmethod
    def load_document(self) -> Optional[dict[str, Any]]:
        """Load the stored ledger document, or None if there is none."""
        pass

    @abstractmethod
    def save_document(self, document: dict[str, Any]) -> None:
        """Replace the stored ledger document."""
        pass
