"""Account management commands."""

import click
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.chart import PartyGroup
from ledgerkit.domain.entities import AccountType, NormalBalance
from ledgerkit.domain.errors import DomainError

PARTY_GROUPS = [group.value for group in PartyGroup]


@click.group()
def account_group():
    """Manage ledger accounts."""
    pass


@account_group.command("create")
@click.argument("code", metavar="CODE")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option(
    "--type",
    "account_type",
    required=True,
    type=click.Choice([t.value for t in AccountType]),
    help="Account type",
)
@click.option(
    "--normal-balance",
    type=click.Choice([b.value for b in NormalBalance]),
    help="Normal balance (defaults from the account type)",
)
@click.pass_context
def create_account(ctx, code: str, name: str, account_type: str, normal_balance: str | None):
    """Create a new ledger account.

    Examples:
        ledgerkit account create 6315 "Office Equipment Repairs" --type expense
        ledgerkit account create 2200 "Accrued Liabilities" --type liability
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    try:
        account_id = service.create_account(
            code=code, name=name, account_type=account_type, normal_balance=normal_balance
        )
        click.echo(f"Created account {code} '{name}' (ID: {account_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.option("--all", "include_inactive", is_flag=True, help="Include inactive accounts")
@click.option("--party", type=click.Choice(PARTY_GROUPS), help="Only accounts of a party group")
@click.pass_context
def list_accounts(ctx, include_inactive: bool, party: str | None):
    """List accounts."""
    db = ctx.obj["db"]
    service = AccountService(db)

    if party is not None:
        accounts = service.list_party_accounts(party)
        if not include_inactive:
            accounts = [acc for acc in accounts if acc.is_active]
    else:
        accounts = service.list_accounts(include_inactive=include_inactive)

    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 80)
    for acc in accounts:
        status = "" if acc.is_active else " (inactive)"
        click.echo(
            f"{acc.code:<10} {acc.name:<40} {acc.account_type.value:<10} {acc.normal_balance.value}{status}"
        )


@account_group.command("deactivate")
@click.argument("code", metavar="CODE")
@click.pass_context
def deactivate_account(ctx, code: str) -> None:
    """Deactivate an account.

    Deactivated accounts keep their history but reject new postings.
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    try:
        service.deactivate(code)
        click.echo(f"Deactivated account {code}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("activate")
@click.argument("code", metavar="CODE")
@click.pass_context
def activate_account(ctx, code: str) -> None:
    """Reactivate a deactivated account."""
    db = ctx.obj["db"]
    service = AccountService(db)

    try:
        service.activate(code)
        click.echo(f"Activated account {code}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("delete")
@click.argument("code", metavar="CODE")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_account(ctx, code: str, yes: bool) -> None:
    """Delete an account.

    The account can only be deleted if no journal line references it.
    Accounts with history should be deactivated instead.
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    account = service.find(code)
    if account is None:
        click.echo(f"Error: Account '{code}' not found", err=True)
        ctx.exit(1)

    if not yes and not click.confirm(f"Are you sure you want to delete account {account.code} '{account.name}'?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_account(code)
        click.echo(f"Deleted account {account.code} '{account.name}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("provision")
@click.argument("party_group", metavar="GROUP", type=click.Choice(PARTY_GROUPS))
@click.argument("name", metavar="NAME")
@click.option("--display-name", help="Name shown on the account (defaults to NAME)")
@click.pass_context
def provision_account(ctx, party_group: str, name: str, display_name: str | None) -> None:
    """Get or create the account of a staff member, customer or supplier.

    Examples:
        ledgerkit account provision staff "Budi Santoso"
        ledgerkit account provision supplier "PT Sinar Jaya"
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    try:
        account = service.provision(party_group, name, display_name)
        click.echo(f"{account.code} '{account.name}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
