"""Account management commands."""

import click

from cashflow.cli.account_resolution import resolve_account_or_exit
from cashflow.cli.error_handling import handle_domain_error
from cashflow.cli.ledger_store import load_ledger_or_exit, save_ledger
from cashflow.domain.account import ACCOUNT_STATUSES, AccountService
from cashflow.domain.account_rules import ACCOUNT_TYPES
from cashflow.domain.errors import DomainError
from cashflow.domain.transaction import TransactionService
from cashflow.utils.date_parser import parse_date


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--type", "account_type", type=click.Choice(ACCOUNT_TYPES), help="Account type (defaults to the first name segment)")
@click.option("--currency", help="Currency code (defaults to the default currency)")
@click.option("--opened", default="today", show_default=True, help="Opening date")
@click.option("--description", default="", help="Free-form description")
@click.pass_context
def create_account(
    ctx, name: str, account_type: str | None, currency: str | None, opened: str, description: str
):
    """Create a new account.

    ACCOUNT_NAME is hierarchical: Type:Category:...:Name.

    Examples:
        cashflow account create "Assets:Bank:CHF:PostFinance" --opened 2025-01-01
        cashflow account create "Expenses:Food" --currency EUR
    """
    try:
        opened_date = parse_date(opened)
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)

    ledger = load_ledger_or_exit(ctx)
    service = AccountService(ledger)

    if account_type is None:
        account_type = name.split(":")[0]
    if currency is None:
        currency = ledger.metadata.get("defaultCurrency")

    try:
        account = service.create_account(
            {
                "name": name,
                "type": account_type,
                "currency": currency,
                "opened": opened_date,
                "description": description,
            }
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    save_ledger(ctx, ledger)
    click.echo(f"Created account '{name}' (ID: {account['id']})")


@account_group.command("list")
@click.option("--type", "account_type", type=click.Choice(ACCOUNT_TYPES), help="Filter by type")
@click.option("--currency", help="Filter by currency")
@click.option("--status", type=click.Choice(ACCOUNT_STATUSES), help="Filter by status")
@click.option("--search", help="Text to look for in name or description")
@click.pass_context
def list_accounts(
    ctx, account_type: str | None, currency: str | None, status: str | None, search: str | None
):
    """List accounts with their balances."""
    ledger = load_ledger_or_exit(ctx)
    service = AccountService(ledger)
    balances = TransactionService(ledger).all_account_balances()

    accounts = service.search_accounts(type=account_type, currency=currency, status=status, search=search)
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 80)
    for acc in accounts:
        closed = f" (closed {acc.get('closedDate')})" if acc.get("closed") else ""
        click.echo(
            f"{acc['id']:<8} | {acc['name']:40s} | {acc.get('currency')} "
            f"{balances.get(acc['id'], 0):>12,.2f}{closed}"
        )


@account_group.command("tree")
@click.pass_context
def account_tree(ctx):
    """Show accounts as a tree grouped by type."""
    ledger = load_ledger_or_exit(ctx)
    hierarchy = AccountService(ledger).account_hierarchy()

    def show(nodes: dict, depth: int) -> None:
        for segment in sorted(nodes):
            node = nodes[segment]
            ids = ", ".join(a["id"] for a in node["accounts"])
            click.echo(f"{'  ' * depth}{segment}" + (f" [{ids}]" if ids else ""))
            show(node["children"], depth + 1)

    for account_type, nodes in hierarchy.items():
        if nodes:
            click.echo(account_type)
            show(nodes, 1)


@account_group.command("update")
@click.argument("account", metavar="ACCOUNT")
@click.option("--name", help="New hierarchical name")
@click.option("--description", help="New description")
@click.pass_context
def update_account(ctx, account: str, name: str | None, description: str | None):
    """Rename an account or change its description.

    ACCOUNT can be an account name or ID.
    """
    ledger = load_ledger_or_exit(ctx)
    service = AccountService(ledger)
    account_id = resolve_account_or_exit(ctx, service, account)

    updates = {}
    if name is not None:
        updates["name"] = name
    if description is not None:
        updates["description"] = description
    if not updates:
        click.echo("Error: Nothing to update.", err=True)
        ctx.exit(1)

    try:
        service.update_account(account_id, updates)
    except DomainError as e:
        handle_domain_error(ctx, e)

    save_ledger(ctx, ledger)
    click.echo(f"Updated account {account_id}")


@account_group.command("close")
@click.argument("account", metavar="ACCOUNT")
@click.option("--date", "closed_date", help="Closing date (defaults to today)")
@click.pass_context
def close_account(ctx, account: str, closed_date: str | None):
    """Close an account.

    Refused while transactions on the account are dated after the
    closing date.
    """
    day = None
    if closed_date is not None:
        try:
            day = parse_date(closed_date)
        except ValueError as e:
            click.echo(f"Error: Invalid date format: {e}", err=True)
            ctx.exit(1)

    ledger = load_ledger_or_exit(ctx)
    service = AccountService(ledger)
    account_id = resolve_account_or_exit(ctx, service, account)

    try:
        closed = service.close_account(account_id, day)
    except DomainError as e:
        handle_domain_error(ctx, e)

    save_ledger(ctx, ledger)
    click.echo(f"Closed account '{closed['name']}' on {closed['closedDate']}")


@account_group.command("reopen")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def reopen_account(ctx, account: str):
    """Reopen a closed account."""
    ledger = load_ledger_or_exit(ctx)
    service = AccountService(ledger)
    account_id = resolve_account_or_exit(ctx, service, account)

    try:
        service.reopen_account(account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    save_ledger(ctx, ledger)
    click.echo(f"Reopened account {account_id}")


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def delete_account(ctx, account: str) -> None:
    """Delete an account.

    ACCOUNT can be an account name or ID.

    The account can only be deleted if no transaction references it.

    Examples:
        cashflow account delete "Expenses:Food"
        cashflow account delete acc_001
    """
    ledger = load_ledger_or_exit(ctx)
    service = AccountService(ledger)
    account_id = resolve_account_or_exit(ctx, service, account)
    account_obj = service.get_account(account_id)

    # Confirm deletion
    if not click.confirm(f"Are you sure you want to delete account '{account_obj['name']}' (ID: {account_id})?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_account(account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    save_ledger(ctx, ledger)
    click.echo(f"Deleted account '{account_obj['name']}'")


@account_group.command("balance")
@click.argument("account", metavar="ACCOUNT")
@click.option("--up-to", help="Only count transactions on or before this date")
@click.pass_context
def account_balance(ctx, account: str, up_to: str | None):
    """Show the balance of an account."""
    limit = None
    if up_to is not None:
        try:
            limit = parse_date(up_to)
        except ValueError as e:
            click.echo(f"Error: Invalid date format: {e}", err=True)
            ctx.exit(1)

    ledger = load_ledger_or_exit(ctx)
    service = AccountService(ledger)
    account_id = resolve_account_or_exit(ctx, service, account)
    account_obj = service.get_account(account_id)

    balance = TransactionService(ledger).account_balance(account_id, up_to=limit)
    click.echo(f"{account_obj['name']}: {balance:,.2f} {account_obj.get('currency')}")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
