"""Ledger report commands."""

import click
from ledgerkit.cli.date_filters import date_range_options, pop_period_flags, resolve_cli_date_range
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.entities import AccountLedger
from ledgerkit.domain.errors import DomainError
from ledgerkit.domain.ledger import LedgerService


def _money(value) -> str:
    return f"{value:,.2f}" if value else ""


def _echo_ledger(ledger: AccountLedger) -> None:
    account = ledger.account
    click.echo(f"\n{account.code} {account.name} ({account.normal_balance.value} balance)")
    click.echo("-" * 120)
    click.echo(
        f"{'Date':<12} {'Entry':<18} {'Voucher':<16} {'Description':<36} {'Debit':>15} {'Credit':>15} {'Balance':>15}"
    )
    click.echo("-" * 120)
    click.echo(f"{'':<12} {'':<18} {'':<16} {'Opening balance':<36} {'':>15} {'':>15} {ledger.opening_balance:>15,.2f}")
    for row in ledger.rows:
        description = (row.description or "")[:36]
        click.echo(
            f"{str(row.date):<12} {row.entry_number:<18} {row.reference_number or '':<16} {description:<36} "
            f"{_money(row.debit):>15} {_money(row.credit):>15} {row.running_balance:>15,.2f}"
        )
    click.echo("-" * 120)
    click.echo(f"{'':<12} {'':<18} {'':<16} {'Closing balance':<36} {'':>15} {'':>15} {ledger.closing_balance:>15,.2f}")


@click.group()
def ledger_group():
    """View ledgers and reports."""
    pass


@ledger_group.command("account")
@click.argument("code", metavar="CODE")
@date_range_options
@click.pass_context
def account_ledger(ctx, code: str, start_date: str | None, end_date: str | None, **period_flags):
    """Show the ledger of one account with running balances."""
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=pop_period_flags(period_flags)
    )
    service = LedgerService(ctx.obj["db"])
    try:
        ledger = service.account_ledger(code, start, end)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    _echo_ledger(ledger)


@ledger_group.command("trial-balance")
@date_range_options
@click.pass_context
def trial_balance(ctx, start_date: str | None, end_date: str | None, **period_flags):
    """Show the trial balance."""
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=pop_period_flags(period_flags)
    )
    service = LedgerService(ctx.obj["db"])
    try:
        report = service.trial_balance(start, end)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not report.rows:
        click.echo("No postings found.")
        return

    click.echo(f"\nTrial balance {start or 'beginning'} to {end or 'today'}")
    click.echo("-" * 100)
    click.echo(f"{'Code':<10} {'Account':<40} {'Debit':>15} {'Credit':>15} {'Net':>15}")
    click.echo("-" * 100)
    for row in report.rows:
        click.echo(
            f"{row.account.code:<10} {row.account.name[:40]:<40} {row.total_debit:>15,.2f} "
            f"{row.total_credit:>15,.2f} {row.net_balance:>15,.2f}"
        )
    click.echo("-" * 100)
    click.echo(f"{'':<10} {'Total':<40} {report.total_debit:>15,.2f} {report.total_credit:>15,.2f}")
    if not report.is_balanced:
        click.echo(f"\nWARNING: trial balance is out of balance by {report.imbalance:,.2f}", err=True)


@ledger_group.command("party")
@click.argument("party", metavar="PARTY")
@date_range_options
@click.pass_context
def party_ledger(ctx, party: str, start_date: str | None, end_date: str | None, **period_flags):
    """Show ledgers of a counterparty.

    PARTY is a party group (staff, customer, supplier), an account code, or
    a name such as a staff member's.

    Examples:
        ledgerkit ledger party "Budi Santoso" --this-month
        ledgerkit ledger party supplier
    """
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=pop_period_flags(period_flags)
    )
    service = LedgerService(ctx.obj["db"])
    try:
        ledgers = service.party_ledger(party, start, end)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not ledgers:
        click.echo("No party activity found.")
        return
    for ledger in ledgers:
        _echo_ledger(ledger)


@ledger_group.command("staff-summary")
@click.pass_context
def staff_summary(ctx):
    """Show outstanding staff advances, largest first."""
    service = LedgerService(ctx.obj["db"])
    balances = service.staff_outstanding_summary()

    if not balances:
        click.echo("No outstanding staff balances.")
        return

    click.echo("\nOutstanding staff balances:")
    click.echo("-" * 80)
    for balance in balances:
        click.echo(
            f"{balance.account_code:<10} {balance.display_name:<35} {balance.outstanding_balance:>15,.2f} "
            f"{str(balance.last_transaction_date or ''):>12}"
        )


@ledger_group.command("journal")
@date_range_options
@click.pass_context
def journal(ctx, start_date: str | None, end_date: str | None, **period_flags):
    """Show the journal register."""
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=pop_period_flags(period_flags)
    )
    db = ctx.obj["db"]
    service = LedgerService(db)
    account_service = AccountService(db)
    try:
        entries = service.journal_register(start, end)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not entries:
        click.echo("No journal entries found.")
        return

    codes = {account.id: account.code for account in account_service.list_accounts(include_inactive=True)}
    click.echo(f"\nFound {len(entries)} journal entr{'y' if len(entries) == 1 else 'ies'}:")
    for entry in entries:
        click.echo("-" * 100)
        click.echo(
            f"{entry.entry_number}  {entry.entry_date}  {entry.source_reference_number or ''}  "
            f"{entry.description or ''}"
        )
        for line in entry.lines:
            click.echo(
                f"    {codes.get(line.account_id, line.account_id):<12} {(line.description or '')[:40]:<40} "
                f"{_money(line.debit):>15} {_money(line.credit):>15}"
            )


def register_commands(cli):
    """Register ledger commands with main CLI."""
    cli.add_command(ledger_group, name="ledger")
