"""Transaction management commands."""

from decimal import Decimal

import click

from cashflow.cli.account_resolution import resolve_account_or_exit
from cashflow.cli.error_handling import handle_domain_error
from cashflow.cli.ledger_store import load_ledger_or_exit, save_ledger
from cashflow.domain.account import AccountService
from cashflow.domain.errors import DomainError
from cashflow.domain.transaction import SORT_ORDERS, TransactionService
from cashflow.domain.transaction_rules import sum_positive_postings
from cashflow.utils.amount_parser import parse_amount
from cashflow.utils.date_parser import get_date_range, parse_date

PERIODS = ("this-month", "this-year", "last-month", "last-year")

CENT = Decimal("0.01")


def parse_posting_spec(spec: str) -> tuple[str, Decimal, float | None]:
    """Split ACCOUNT=AMOUNT[@RATE] into its parts.

    Raises:
        ValueError: If the spec is malformed
    """
    account, sep, rest = spec.rpartition("=")
    if not sep or not account.strip():
        raise ValueError(f"Invalid posting '{spec}': expected ACCOUNT=AMOUNT[@RATE]")

    amount_part, at, rate_part = rest.partition("@")
    rate = None
    if at:
        try:
            rate = float(rate_part)
        except ValueError:
            raise ValueError(f"Invalid exchange rate '{rate_part}' in posting '{spec}'")
    return account.strip(), parse_amount(amount_part), rate


@click.group()
def transaction_group():
    """Manage transactions."""
    pass


@transaction_group.command("add")
@click.option("--date", "txn_date", default="today", show_default=True, help="Transaction date (YYYY-MM-DD or relative like 'today', 'yesterday')")
@click.option("--description", required=True, help="Transaction description")
@click.option("--payee", default="", help="Payee")
@click.option("--tag", "tags", multiple=True, help="Tag (repeatable)")
@click.option(
    "--posting",
    "postings",
    multiple=True,
    required=True,
    help="Posting as ACCOUNT=AMOUNT[@RATE] (repeatable, at least 2)",
)
@click.pass_context
def add_transaction(
    ctx, txn_date: str, description: str, payee: str, tags: tuple[str, ...], postings: tuple[str, ...]
):
    """Add a balanced transaction.

    ACCOUNT is an account name or ID; the posting takes the account's
    currency. @RATE records the exchange rate of a foreign posting.

    Examples:
        cashflow transaction add --description Groceries \\
            --posting "Expenses:Food=50" --posting "Assets:Bank:CHF=-50"
        cashflow transaction add --date 2025-01-10 --description "Hotel" \\
            --posting "Expenses:Travel=95@1.05" --posting "Assets:Bank:EUR=-95@1.05" --tag travel
    """
    try:
        day = parse_date(txn_date)
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)

    ledger = load_ledger_or_exit(ctx)
    account_service = AccountService(ledger)
    service = TransactionService(ledger)

    posting_records = []
    for spec in postings:
        try:
            account, amount, rate = parse_posting_spec(spec)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)
        account_id = resolve_account_or_exit(ctx, account_service, account)
        posting = {
            "accountId": account_id,
            "amount": amount,
            "currency": account_service.get_account(account_id).get("currency"),
        }
        if rate is not None:
            equivalent = (amount * Decimal(str(rate))).quantize(CENT)
            posting["exchangeRate"] = {"rate": rate, "equivalentAmount": equivalent}
        posting_records.append(posting)

    try:
        created = service.create_transaction(
            {
                "date": day,
                "description": description,
                "payee": payee,
                "tags": list(tags),
                "posting": posting_records,
            }
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    save_ledger(ctx, ledger)
    click.echo(f"Created transaction {created['id']} on {created['date']}")


@transaction_group.command("list")
@click.option("--period", type=click.Choice(PERIODS), help="Named period (cannot be combined with --start-date/--end-date)")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month', 'this year')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today', 'this month')")
@click.option("--account", help="Account name or ID")
@click.option("--tag", help="Only transactions with this tag")
@click.option("--search", help="Text to look for in description or payee")
@click.option("--min-amount", help="Minimum amount")
@click.option("--max-amount", help="Maximum amount")
@click.option("--sort", "sort_by", type=click.Choice(SORT_ORDERS), default="date-desc", show_default=True)
@click.pass_context
def list_transactions(
    ctx,
    period: str | None,
    start_date: str | None,
    end_date: str | None,
    account: str | None,
    tag: str | None,
    search: str | None,
    min_amount: str | None,
    max_amount: str | None,
    sort_by: str,
):
    """View transactions with optional filters.

    Amount filters apply to the sum of the positive postings.
    Account can be specified by name or ID.
    """
    if period and (start_date or end_date):
        click.echo("Error: --period cannot be combined with --start-date or --end-date.", err=True)
        ctx.exit(1)

    # Parse dates
    start = end = None
    if period:
        start, end = get_date_range(period)
    if start_date:
        try:
            start = parse_date(start_date)
        except ValueError as e:
            click.echo(f"Error: Invalid start date: {e}", err=True)
            ctx.exit(1)

    if end_date:
        try:
            end = parse_date(end_date)
        except ValueError as e:
            click.echo(f"Error: Invalid end date: {e}", err=True)
            ctx.exit(1)

    low = high = None
    try:
        if min_amount is not None:
            low = parse_amount(min_amount)
        if max_amount is not None:
            high = parse_amount(max_amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    ledger = load_ledger_or_exit(ctx)
    account_service = AccountService(ledger)
    service = TransactionService(ledger)

    account_id = None
    if account:
        account_id = resolve_account_or_exit(ctx, account_service, account)

    transactions = service.search_transactions(
        start_date=start,
        end_date=end,
        account_id=account_id,
        tag=tag,
        min_amount=low,
        max_amount=high,
        search=search,
        sort_by=sort_by,
    )

    if not transactions:
        click.echo("No transactions found.")
        return

    click.echo(f"\nFound {len(transactions)} transaction(s):")
    click.echo("-" * 80)
    click.echo(f"{'ID':<9} {'Date':<12} {'Amount':>12}  {'Description':<40}")
    click.echo("-" * 80)
    for txn in transactions:
        description = str(txn.get("description") or "")[:40]
        click.echo(
            f"{txn['id']:<9} {str(txn.get('date')):<12} {sum_positive_postings(txn):>12,.2f}  {description:<40}"
        )


@transaction_group.command("show")
@click.argument("transaction_id")
@click.pass_context
def show_transaction(ctx, transaction_id: str):
    """Show a transaction with its postings."""
    ledger = load_ledger_or_exit(ctx)
    service = TransactionService(ledger)
    accounts = {a["id"]: a["name"] for a in AccountService(ledger).list_accounts()}

    txn = service.get_transaction(transaction_id)
    if txn is None:
        click.echo(f"Error: Transaction {transaction_id} not found", err=True)
        ctx.exit(1)

    click.echo(f"Transaction ID: {txn['id']}")
    click.echo(f"  Date: {txn.get('date')}")
    click.echo(f"  Description: {txn.get('description')}")
    if txn.get("payee"):
        click.echo(f"  Payee: {txn['payee']}")
    if txn.get("tags"):
        click.echo(f"  Tags: {', '.join(txn['tags'])}")
    for posting in txn.get("posting") or []:
        name = accounts.get(posting.get("accountId"), posting.get("accountId"))
        line = f"    {str(name):<40} {str(posting.get('amount')):>12} {posting.get('currency')}"
        fx = posting.get("exchangeRate")
        if fx:
            line += f" @ {fx.get('rate')}"
        click.echo(line)


@transaction_group.command("delete")
@click.argument("transaction_id")
@click.pass_context
def delete_transaction(ctx, transaction_id: str) -> None:
    """Delete a transaction.

    Examples:
        cashflow transaction delete txn_001
    """
    ledger = load_ledger_or_exit(ctx)
    service = TransactionService(ledger)

    # Get transaction info for display
    txn = service.get_transaction(transaction_id)
    if txn is None:
        click.echo(f"Error: Transaction {transaction_id} not found", err=True)
        ctx.exit(1)

    # Confirm deletion
    if not click.confirm(f"Are you sure you want to delete transaction {transaction_id}?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_transaction(transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    save_ledger(ctx, ledger)
    click.echo(f"Deleted transaction {transaction_id}")


@transaction_group.command("tags")
@click.pass_context
def list_tags(ctx):
    """List every tag in use."""
    tags = TransactionService(load_ledger_or_exit(ctx)).all_tags()
    if not tags:
        click.echo("No tags found.")
        return
    for tag in tags:
        click.echo(tag)


@transaction_group.command("payees")
@click.pass_context
def list_payees(ctx):
    """List every payee in use."""
    payees = TransactionService(load_ledger_or_exit(ctx)).all_payees()
    if not payees:
        click.echo("No payees found.")
        return
    for payee in payees:
        click.echo(payee)


def register_commands(cli: click.Group) -> None:
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
