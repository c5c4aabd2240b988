"""Utility for resolving account names to IDs."""

from cashflow.domain.account import AccountService
from cashflow.domain.account_rules import ACCOUNT_ID_PREFIX
from cashflow.domain.errors import NotFoundError, account_not_found
from cashflow.utils.formats import is_hierarchical_id


def resolve_account(account_service: AccountService, account: str) -> str:
    """Resolve account name or ID to account ID.

    Args:
        account_service: AccountService instance
        account: Account ID (acc_001) or full hierarchical name

    Returns:
        Account ID

    Raises:
        NotFoundError: If account is not found
    """
    if is_hierarchical_id(account, ACCOUNT_ID_PREFIX):
        if account_service.get_account(account) is None:
            raise NotFoundError(account_not_found(account))
        return account

    found = account_service.get_account_by_name(account)
    if found is None:
        raise NotFoundError(account_not_found(account))
    return found["id"]
