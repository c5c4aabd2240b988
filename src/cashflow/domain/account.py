"""Account domain service."""

import logging
from datetime import date
from typing import Any, Optional

from cashflow.domain.account_rules import (
    ACCOUNT_TYPES,
    NAME_SEPARATOR,
    generate_account_id,
    split_name,
    validate_new_account,
)
from cashflow.domain.errors import (
    DependencyError,
    NotFoundError,
    ValidationError,
    account_close_blocked,
    account_currency_change_blocked,
    account_delete_blocked,
    account_not_found,
    account_open_blocked,
    invalid_entity,
)
from cashflow.domain.ledger import Ledger
from cashflow.domain.usage import count_account_usage
from cashflow.utils.date_parser import format_date, parse_calendar_date

logger = logging.getLogger(__name__)

ACCOUNT_STATUSES = ("active", "closed")


class AccountService:
    """Service for managing accounts."""

    def __init__(self, ledger: Ledger):
        """Initialize account service.

        Args:
            ledger: Record set to read and mutate
        """
        self.ledger = ledger

    def _find(self, account_id: str) -> dict[str, Any]:
        account = self.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def _sort(self) -> None:
        self.ledger.accounts.sort(key=lambda a: str(a.get("name") or "").lower())

    def create_account(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a new account with a generated ID.

        Args:
            data: Account fields (name, type, currency, opened, description)

        Returns:
            The stored account record

        Raises:
            ValidationError: If the account is invalid or the name exists
        """
        opened = data.get("opened")
        candidate = {
            "id": None,
            "name": data.get("name"),
            "type": data.get("type"),
            "currency": data.get("currency"),
            "opened": format_date(opened) if opened else opened,
            "closed": bool(data.get("closed", False)),
            "closedDate": data.get("closedDate"),
            "description": data.get("description") or "",
            "metadata": dict(data.get("metadata") or {}),
        }

        with self.ledger.lock:
            result = validate_new_account(candidate, self.ledger.accounts, self.ledger.currencies)
            if not result.valid:
                logger.warning("Rejected account %s: %s", candidate["name"], result.errors)
                raise ValidationError(invalid_entity("account", result.errors), result.errors)

            candidate["id"] = generate_account_id(self.ledger.accounts)
            self.ledger.accounts.append(candidate)
            self._sort()
            self.ledger.touch()

        logger.info("Created account %s (%s)", candidate["id"], candidate["name"])
        return candidate

    def _check_postings_still_fit(self, account: dict[str, Any], merged: dict[str, Any]) -> None:
        """Refuse changes that would strand transactions already on the account."""
        account_id = account["id"]
        transactions = self.ledger.transactions

        if merged.get("currency") != account.get("currency"):
            usage = count_account_usage(transactions, account_id)
            if usage.used:
                raise DependencyError(
                    account_currency_change_blocked(account_id, usage.count), usage.as_details()
                )

        open_day = parse_calendar_date(merged.get("opened"))
        if open_day is not None and merged.get("opened") != account.get("opened"):
            usage = count_account_usage(transactions, account_id, before=open_day)
            if usage.used:
                raise DependencyError(
                    account_open_blocked(account_id, merged["opened"], usage.count),
                    usage.as_details(),
                )

        close_day = parse_calendar_date(merged.get("closedDate")) if merged.get("closed") else None
        if close_day is not None and (
            merged.get("closedDate") != account.get("closedDate") or not account.get("closed")
        ):
            usage = count_account_usage(transactions, account_id, after=close_day)
            if usage.used:
                raise DependencyError(
                    account_close_blocked(account_id, merged["closedDate"], usage.count),
                    usage.as_details(),
                )

    def update_account(self, account_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        """Update an account. The ID cannot change.

        Raises:
            NotFoundError: If the account does not exist
            ValidationError: If the updated account is invalid
            DependencyError: If existing transactions no longer fit the
                account's currency or open period
        """
        with self.ledger.lock:
            account = self._find(account_id)
            merged = {**account, **updates, "id": account["id"]}
            if merged.get("opened"):
                merged["opened"] = format_date(merged["opened"])
            if merged.get("closedDate"):
                merged["closedDate"] = format_date(merged["closedDate"])

            others = [a for a in self.ledger.accounts if a is not account]
            result = validate_new_account(merged, others, self.ledger.currencies)
            if not result.valid:
                logger.warning("Rejected update of account %s: %s", account_id, result.errors)
                raise ValidationError(invalid_entity("account", result.errors), result.errors)

            self._check_postings_still_fit(account, merged)
            account.update(merged)
            self._sort()
            self.ledger.touch()

        logger.info("Updated account %s", account_id)
        return account

    def close_account(self, account_id: str, closed_date: Optional[Any] = None) -> dict[str, Any]:
        """Close an account.

        Args:
            account_id: Account ID
            closed_date: Closing date (defaults to today)

        Raises:
            NotFoundError: If the account does not exist
            DependencyError: If transactions on the account are dated after
                the closing date
            ValidationError: If the closing date is invalid
        """
        closed_date = format_date(closed_date) if closed_date else date.today().isoformat()
        return self.update_account(account_id, {"closed": True, "closedDate": closed_date})

    def reopen_account(self, account_id: str) -> dict[str, Any]:
        """Reopen a closed account."""
        return self.update_account(account_id, {"closed": False, "closedDate": None})

    def delete_account(self, account_id: str) -> None:
        """Delete an account.

        Raises:
            NotFoundError: If the account does not exist
            DependencyError: If transactions still reference the account
        """
        with self.ledger.lock:
            account = self._find(account_id)
            usage = count_account_usage(self.ledger.transactions, account_id)
            if usage.used:
                raise DependencyError(account_delete_blocked(account_id, usage.count), usage.as_details())

            self.ledger.accounts.remove(account)
            self.ledger.touch()

        logger.info("Deleted account %s", account_id)

    def get_account(self, account_id: str) -> Optional[dict[str, Any]]:
        """Get account by ID, or None."""
        for account in self.ledger.accounts:
            if account.get("id") == account_id:
                return account
        return None

    def get_account_by_name(self, name: str) -> Optional[dict[str, Any]]:
        """Get account by its full hierarchical name, or None."""
        for account in self.ledger.accounts:
            if account.get("name") == name:
                return account
        return None

    def list_accounts(self) -> list[dict[str, Any]]:
        return list(self.ledger.accounts)

    def search_accounts(
        self,
        type: Optional[str] = None,
        currency: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Filter accounts.

        Args:
            type: Account type
            currency: Currency code
            status: "active" or "closed"
            search: Case-insensitive text matched against name and description

        Returns:
            Matching accounts, in stored order
        """
        results = list(self.ledger.accounts)
        if type:
            results = [a for a in results if a.get("type") == type]
        if currency:
            results = [a for a in results if a.get("currency") == currency]
        if status == "active":
            results = [a for a in results if not a.get("closed")]
        elif status == "closed":
            results = [a for a in results if a.get("closed")]
        if search:
            needle = search.lower()
            results = [
                a
                for a in results
                if needle in str(a.get("name") or "").lower()
                or needle in str(a.get("description") or "").lower()
            ]
        return results

    def accounts_by_type(self) -> dict[str, list[dict[str, Any]]]:
        """Group accounts by type. Every known type is present."""
        grouped: dict[str, list[dict[str, Any]]] = {t: [] for t in ACCOUNT_TYPES}
        for account in self.ledger.accounts:
            if account.get("type") in grouped:
                grouped[account["type"]].append(account)
        return grouped

    def get_child_accounts(self, parent_name: str) -> list[dict[str, Any]]:
        """Accounts whose name starts with "<parent_name>:"."""
        prefix = parent_name + NAME_SEPARATOR
        return [a for a in self.ledger.accounts if str(a.get("name") or "").startswith(prefix)]

    def get_parent_account(self, name: str) -> Optional[dict[str, Any]]:
        """Account named after all but the last segment.

        Two-segment names (Type:Name) have no parent.
        """
        segments = split_name(name)
        if len(segments) <= 2:
            return None
        return self.get_account_by_name(NAME_SEPARATOR.join(segments[:-1]))

    def account_hierarchy(self) -> dict[str, dict[str, Any]]:
        """Build the account tree.

        Returns:
            Mapping of type to nodes; each node is
            {"accounts": [...], "children": {segment: node}}
        """
        hierarchy: dict[str, dict[str, Any]] = {t: {} for t in ACCOUNT_TYPES}
        for account in self.ledger.accounts:
            name = account.get("name")
            if not isinstance(name, str) or not account.get("type"):
                continue
            segments = split_name(name)
            if len(segments) < 2 or segments[0] not in hierarchy:
                continue

            level = hierarchy[segments[0]]
            for position, segment in enumerate(segments[1:], start=2):
                node = level.setdefault(segment, {"accounts": [], "children": {}})
                if position == len(segments):
                    node["accounts"].append(account)
                level = node["children"]
        return hierarchy
