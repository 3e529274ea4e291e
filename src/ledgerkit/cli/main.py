"""Main CLI entry point."""

import logging

import click
from ledgerkit.database.factories import create_sqlite_database

# Import and register all commands at module level
from ledgerkit.cli.commands import (
    account,
    bank,
    init_accounts,
    ledger,
    post,
    reconcile,
    statement,
)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides LEDGERKIT_DB_PATH environment variable)",
    envvar="LEDGERKIT_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    envvar="LEDGERKIT_LOG_LEVEL",
    help="Logging verbosity",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str):
    """Ledgerkit - Double-entry ledger and bank reconciliation.

    Post petty cash, staff advances, payments and receipts as balanced
    journal entries, view ledgers and trial balances, and reconcile bank
    statements against the books.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
init_accounts.register_commands(cli)
account.register_commands(cli)
bank.register_commands(cli)
post.register_commands(cli)
ledger.register_commands(cli)
statement.register_commands(cli)
reconcile.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
