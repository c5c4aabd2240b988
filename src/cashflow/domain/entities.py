"""Domain result types for cashflow.

Ledger records themselves (currencies, accounts, transactions) stay plain
mappings in the shape they are persisted, because the rule engines must
accept malformed input. The classes here describe what the engines report.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

ERROR = "error"
WARNING = "warning"
INFO = "info"


@dataclass(frozen=True)
class Diagnostic:
    """A validation finding for a whole record set."""

    code: str
    severity: str
    message: str
    suggestion: str
    details: Optional[dict[str, Any]] = None

    @property
    def is_error(self) -> bool:
        return self.severity == ERROR


@dataclass(frozen=True)
class FieldError:
    """A form-level finding tied to one field of a candidate entity.

    severity is only set for non-blocking findings (warnings).
    """

    code: str
    message: str
    field: str
    severity: Optional[str] = None

    @property
    def is_blocking(self) -> bool:
        return self.severity != WARNING


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a single candidate entity."""

    valid: bool
    errors: list[FieldError] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[FieldError]) -> "ValidationResult":
        return cls(valid=not any(e.is_blocking for e in errors), errors=errors)


@dataclass(frozen=True)
class RecordStats:
    """Entity counts of a record set."""

    currencies: int = 0
    accounts: int = 0
    transactions: int = 0
    budgets: int = 0
    recurring: int = 0


@dataclass(frozen=True)
class RecordSetReport:
    """Outcome of validating a whole record set."""

    valid: bool
    errors: list[Diagnostic]
    warnings: list[Diagnostic]
    infos: list[Diagnostic]
    stats: RecordStats
    report: str


@dataclass(frozen=True)
class Usage:
    """How many records reference an entity, and of which kind."""

    count: int
    type: str

    @property
    def used(self) -> bool:
        return self.count > 0

    def as_details(self) -> dict[str, Any]:
        return {"type": self.type, "count": self.count}
