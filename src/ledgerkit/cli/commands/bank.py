"""Bank account commands."""

import click
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.errors import DomainError


@click.group()
def bank_group():
    """Manage bank accounts."""
    pass


@bank_group.command("create")
@click.argument("name", metavar="NAME")
@click.option("--bank", "bank_name", help="Bank name (defaults to NAME if not provided)")
@click.option("--number", "account_number", help="Bank account number")
@click.option("--currency", default="IDR", show_default=True, help="Account currency")
@click.option("--account-code", help="Existing ledger account to post to (a new 1110-NNN account otherwise)")
@click.pass_context
def create_bank_account(
    ctx,
    name: str,
    bank_name: str | None,
    account_number: str | None,
    currency: str,
    account_code: str | None,
):
    """Create a bank account linked to its ledger account.

    Examples:
        ledgerkit bank create "BCA Operational" --bank BCA --number 1234567890
        ledgerkit bank create "Mandiri USD" --bank Mandiri --currency USD
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    bank_name = bank_name if bank_name is not None else name

    try:
        bank_account_id = service.create_bank_account(
            name=name,
            bank_name=bank_name,
            account_number=account_number,
            currency=currency,
            account_code=account_code,
        )
        ledger_account = service.resolve_bank_ledger_account(bank_account_id)
        click.echo(f"Created bank account '{name}' (ID: {bank_account_id})")
        click.echo(f"Ledger account: {ledger_account.code} '{ledger_account.name}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


@bank_group.command("list")
@click.pass_context
def list_bank_accounts(ctx):
    """List all bank accounts."""
    db = ctx.obj["db"]
    service = AccountService(db)

    bank_accounts = service.list_bank_accounts()
    if not bank_accounts:
        click.echo("No bank accounts found.")
        return

    click.echo("\nBank accounts:")
    click.echo("-" * 80)
    for bank_account in bank_accounts:
        ledger = service.get_account(bank_account.account_id) if bank_account.account_id else None
        ledger_code = ledger.code if ledger else "-"
        click.echo(
            f"ID: {bank_account.id:3d} | {bank_account.name:20s} | Bank: {bank_account.bank_name:10s} | "
            f"{bank_account.account_number or '-':15s} | {bank_account.currency} | Ledger: {ledger_code}"
        )


def register_commands(cli):
    """Register bank commands with main CLI."""
    cli.add_command(bank_group, name="bank")
