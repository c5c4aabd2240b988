"""Ledger document commands: init, validate, import and export."""

import click

from cashflow.cli.ledger_store import load_ledger_or_exit
from cashflow.domain.ledger import new_document
from cashflow.domain.record_set import validate_record_set
from cashflow.utils.document_io import DocumentParseError, read_document, write_document


def _read_or_exit(ctx: click.Context, path: str) -> dict:
    try:
        return read_document(path)
    except DocumentParseError as e:
        location = f" (line {e.line}, column {e.column})" if e.line is not None else ""
        click.echo(f"Error: {e}{location}", err=True)
        ctx.exit(1)


@click.command("init")
@click.option("--currency", "currency_code", required=True, help="Default currency code (e.g. CHF)")
@click.option("--name", help="Default currency name (defaults to the code)")
@click.option("--symbol", help="Default currency symbol (defaults to the code)")
@click.option("--decimal-places", type=int, default=2, show_default=True, help="Currency precision")
@click.option("--owner", help="Ledger owner stored in metadata")
@click.option("--force", is_flag=True, help="Replace an existing ledger")
@click.pass_context
def init_ledger(
    ctx,
    currency_code: str,
    name: str | None,
    symbol: str | None,
    decimal_places: int,
    owner: str | None,
    force: bool,
):
    """Create an empty ledger with a default currency.

    Examples:
        cashflow init --currency CHF --name "Swiss Franc"
        cashflow init --currency EUR --symbol € --owner "Jane"
    """
    db = ctx.obj["db"]
    if db.has_document() and not force:
        click.echo("Error: A ledger already exists. Use --force to replace it.", err=True)
        ctx.exit(1)

    document = new_document(
        default_currency=currency_code,
        currency_name=name,
        symbol=symbol,
        decimal_places=decimal_places,
        owner=owner,
    )
    report = validate_record_set(document, strict=True)
    if not report.valid:
        for error in report.errors:
            click.echo(f"  [{error.code}] {error.message}", err=True)
        click.echo("Error: The ledger could not be created.", err=True)
        ctx.exit(1)

    db.save_document(document)
    click.echo(f"Created ledger with default currency {currency_code.upper()}")


@click.command("validate")
@click.argument("document_file", type=click.Path(exists=True), required=False)
@click.option("--strict", is_flag=True, help="Run the full currency, account and transaction rules")
@click.pass_context
def validate_document(ctx, document_file: str | None, strict: bool):
    """Validate a TOML/JSON ledger document, or the stored ledger.

    Exits with status 1 when the document has errors.

    Examples:
        cashflow validate budget.toml
        cashflow validate budget.toml --strict
        cashflow validate --strict
    """
    if document_file is not None:
        document = _read_or_exit(ctx, document_file)
    else:
        document = load_ledger_or_exit(ctx).document

    report = validate_record_set(document, strict=strict)
    click.echo(report.report)
    if not report.valid:
        ctx.exit(1)


@click.command("import")
@click.argument("document_file", type=click.Path(exists=True))
@click.option("--force", is_flag=True, help="Replace an existing ledger")
@click.pass_context
def import_document(ctx, document_file: str, force: bool):
    """Import a TOML/JSON ledger document into the database.

    The document must pass full validation. Warnings are shown but do not
    block the import.
    """
    db = ctx.obj["db"]
    if db.has_document() and not force:
        click.echo("Error: A ledger already exists. Use --force to replace it.", err=True)
        ctx.exit(1)

    document = _read_or_exit(ctx, document_file)
    report = validate_record_set(document, strict=True)
    for warning in report.warnings:
        click.echo(f"Warning: [{warning.code}] {warning.message}", err=True)
    if not report.valid:
        click.echo(report.report, err=True)
        click.echo("Error: The document was not imported.", err=True)
        ctx.exit(1)

    db.save_document(document)
    stats = report.stats
    click.echo("\nImport complete:")
    click.echo(f"  Currencies: {stats.currencies}")
    click.echo(f"  Accounts: {stats.accounts}")
    click.echo(f"  Transactions: {stats.transactions}")


@click.command("export")
@click.argument("output_file", type=click.Path(dir_okay=False, writable=True))
@click.pass_context
def export_document(ctx, output_file: str):
    """Export the stored ledger.

    A .toml OUTPUT_FILE is written as TOML, anything else as JSON.

    Examples:
        cashflow export budget.toml
        cashflow export backup.json
    """
    ledger = load_ledger_or_exit(ctx)
    write_document(output_file, ledger.document)
    click.echo(f"Exported ledger to {output_file}")


def register_commands(cli):
    """Register document commands with main CLI."""
    cli.add_command(init_ledger)
    cli.add_command(validate_document)
    cli.add_command(import_document)
    cli.add_command(export_document)
