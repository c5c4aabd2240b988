"""Currency management commands."""

import click

from cashflow.cli.error_handling import handle_domain_error
from cashflow.cli.ledger_store import load_ledger_or_exit, save_ledger
from cashflow.domain.currency import CurrencyService
from cashflow.domain.errors import DomainError
from cashflow.utils.date_parser import parse_date


@click.group()
def currency_group():
    """Manage currencies and exchange rates."""
    pass


@currency_group.command("add")
@click.argument("code")
@click.option("--name", required=True, help="Currency name (e.g. 'Euro')")
@click.option("--symbol", help="Currency symbol (defaults to the code)")
@click.option("--decimal-places", type=int, default=2, show_default=True, help="Currency precision")
@click.option("--default", "is_default", is_flag=True, help="Make this the default currency")
@click.pass_context
def add_currency(ctx, code: str, name: str, symbol: str | None, decimal_places: int, is_default: bool):
    """Add a currency.

    Examples:
        cashflow currency add EUR --name Euro --symbol €
        cashflow currency add JPY --name "Japanese Yen" --decimal-places 0
    """
    ledger = load_ledger_or_exit(ctx)
    service = CurrencyService(ledger)

    try:
        currency = service.add_currency(
            {
                "code": code,
                "name": name,
                "symbol": symbol,
                "decimalPlaces": decimal_places,
                "isDefault": is_default,
            }
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    save_ledger(ctx, ledger)
    click.echo(f"Added currency {currency['code']} ({currency['name']})")


@currency_group.command("list")
@click.pass_context
def list_currencies(ctx):
    """List all currencies."""
    ledger = load_ledger_or_exit(ctx)
    service = CurrencyService(ledger)

    currencies = service.list_currencies()
    if not currencies:
        click.echo("No currencies found.")
        return

    click.echo("\nCurrencies:")
    click.echo("-" * 60)
    for cur in currencies:
        marker = " (default)" if cur.get("isDefault") else ""
        click.echo(
            f"{cur['code']:<4} | {str(cur.get('name')):20s} | {str(cur.get('symbol')):4s} | "
            f"{cur.get('decimalPlaces')} decimals{marker}"
        )


@currency_group.command("update")
@click.argument("code")
@click.option("--name", help="New currency name")
@click.option("--symbol", help="New currency symbol")
@click.option("--decimal-places", type=int, help="New currency precision")
@click.pass_context
def update_currency(ctx, code: str, name: str | None, symbol: str | None, decimal_places: int | None):
    """Update a currency. The code cannot change."""
    ledger = load_ledger_or_exit(ctx)
    service = CurrencyService(ledger)

    updates = {}
    if name is not None:
        updates["name"] = name
    if symbol is not None:
        updates["symbol"] = symbol
    if decimal_places is not None:
        updates["decimalPlaces"] = decimal_places
    if not updates:
        click.echo("Error: Nothing to update.", err=True)
        ctx.exit(1)

    try:
        service.update_currency(code, updates)
    except DomainError as e:
        handle_domain_error(ctx, e)

    save_ledger(ctx, ledger)
    click.echo(f"Updated currency {code}")


@currency_group.command("set-default")
@click.argument("code")
@click.pass_context
def set_default_currency(ctx, code: str):
    """Make a currency the default currency."""
    ledger = load_ledger_or_exit(ctx)
    service = CurrencyService(ledger)

    try:
        service.update_currency(code, {"isDefault": True})
    except DomainError as e:
        handle_domain_error(ctx, e)

    save_ledger(ctx, ledger)
    click.echo(f"{code} is now the default currency")


@currency_group.command("delete")
@click.argument("code")
@click.pass_context
def delete_currency(ctx, code: str):
    """Delete a currency.

    The default currency and currencies used by accounts or postings
    cannot be deleted.
    """
    ledger = load_ledger_or_exit(ctx)
    service = CurrencyService(ledger)

    try:
        service.delete_currency(code)
    except DomainError as e:
        handle_domain_error(ctx, e)

    save_ledger(ctx, ledger)
    click.echo(f"Deleted currency {code}")


@currency_group.group("rate")
def rate_group():
    """Manage exchange rates of a currency."""
    pass


@rate_group.command("add")
@click.argument("code")
@click.argument("rate", type=float)
@click.option("--date", "rate_date", default="today", show_default=True, help="Rate date")
@click.option("--source", help="Where the rate comes from (defaults to 'manual')")
@click.pass_context
def add_rate(ctx, code: str, rate: float, rate_date: str, source: str | None):
    """Record the rate of CODE against the default currency.

    Examples:
        cashflow currency rate add EUR 0.95 --date 2025-01-01
        cashflow currency rate add USD 0.88 --source ECB
    """
    try:
        day = parse_date(rate_date)
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)

    ledger = load_ledger_or_exit(ctx)
    service = CurrencyService(ledger)

    try:
        stored = service.add_exchange_rate(code, {"date": day, "rate": rate, "source": source})
    except DomainError as e:
        handle_domain_error(ctx, e)

    save_ledger(ctx, ledger)
    click.echo(f"Added {code} rate {stored['rate']} on {stored['date']}")


@rate_group.command("list")
@click.argument("code")
@click.pass_context
def list_rates(ctx, code: str):
    """List the rate history of a currency, most recent first."""
    ledger = load_ledger_or_exit(ctx)
    service = CurrencyService(ledger)

    currency = service.get_currency(code)
    if currency is None:
        click.echo(f"Error: Currency '{code}' not found", err=True)
        ctx.exit(1)

    rates = currency.get("exchangeRate") or []
    if not rates:
        click.echo(f"No exchange rates for {code}.")
        return

    for rate in rates:
        click.echo(f"{rate.get('date')}  {rate.get('rate')}  ({rate.get('source', '')})")


@rate_group.command("get")
@click.argument("code")
@click.option("--date", "on_date", default="today", show_default=True, help="Reference date")
@click.pass_context
def get_rate(ctx, code: str, on_date: str):
    """Show the rate applicable on a date (latest rate on or before it)."""
    try:
        day = parse_date(on_date)
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)

    ledger = load_ledger_or_exit(ctx)
    rate = CurrencyService(ledger).get_exchange_rate(code, day)
    if rate is None:
        click.echo(f"No {code} rate on or before {day.isoformat()}.")
        return
    click.echo(f"{code} {rate}")


@rate_group.command("delete")
@click.argument("code")
@click.argument("rate_date")
@click.pass_context
def delete_rate(ctx, code: str, rate_date: str):
    """Delete the rate of CODE recorded on RATE_DATE."""
    try:
        day = parse_date(rate_date)
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)

    ledger = load_ledger_or_exit(ctx)
    service = CurrencyService(ledger)

    try:
        service.delete_exchange_rate(code, day)
    except DomainError as e:
        handle_domain_error(ctx, e)

    save_ledger(ctx, ledger)
    click.echo(f"Deleted {code} rate of {day.isoformat()}")


def register_commands(cli):
    """Register currency commands with main CLI."""
    cli.add_command(currency_group, name="currency")
