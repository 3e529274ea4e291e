"""CLI error handling helpers."""

import click

from ledgerkit.domain.errors import DomainError, ParseFailure


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, ParseFailure) and error.diagnostics:
        for key, value in error.diagnostics.items():
            if key != "text_sample":
                click.echo(f"  {key}: {value}", err=True)
    ctx.exit(1)
