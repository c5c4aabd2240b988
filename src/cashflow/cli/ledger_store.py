"""CLI helpers for loading and saving the stored ledger."""

import click

from cashflow.domain.ledger import Ledger


def load_ledger_or_exit(ctx: click.Context) -> Ledger:
    """Load the ledger from the configured database, or exit if none exists."""
    document = ctx.obj["db"].load_document()
    if document is None:
        click.echo("Error: No ledger found. Run 'cashflow init' or 'cashflow import' first.", err=True)
        ctx.exit(1)
    return Ledger(document)


def save_ledger(ctx: click.Context, ledger: Ledger) -> None:
    """Persist the ledger after an accepted mutation."""
    ctx.obj["db"].save_document(ledger.document)
