"""Initialize the default chart of accounts."""

import click
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.chart import DEFAULT_CHART


@click.command("init-accounts")
@click.pass_context
def init_accounts(ctx):
    """Initialize database with the default chart of accounts.

    Safe to run again: existing accounts are left untouched.
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    click.echo("Creating default chart of accounts...")
    created = service.seed_default_chart()
    skipped = len(DEFAULT_CHART) - created

    click.echo(f"\nCreated {created} account(s)")
    if skipped:
        click.echo(f"Skipped {skipped} existing account(s)")


def register_commands(cli):
    """Register init-accounts command with main CLI."""
    cli.add_command(init_accounts)
