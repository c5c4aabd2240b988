"""CLI error handling helpers."""

import click

from cashflow.domain.errors import DependencyError, DomainError, ValidationError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, ValidationError):
        for field_error in error.errors:
            marker = " (warning)" if not field_error.is_blocking else ""
            click.echo(
                f"  [{field_error.code}] {field_error.field}: {field_error.message}{marker}", err=True
            )
    elif isinstance(error, DependencyError) and error.details:
        click.echo(f"  {error.details['count']} {error.details['type']}", err=True)
    ctx.exit(1)
