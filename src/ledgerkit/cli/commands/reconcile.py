"""Bank reconciliation commands."""

import click
from ledgerkit.cli.account_resolution import resolve_bank_or_exit
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.entities import MatchStatus
from ledgerkit.domain.errors import DomainError
from ledgerkit.domain.reconciliation import DEFAULT_TOLERANCE_DAYS, ReconciliationService


@click.group()
def reconcile_group():
    """Match bank statement lines against the ledger."""
    pass


@reconcile_group.command("run")
@click.option("--upload", "upload_id", type=int, help="Upload ID")
@click.option("--bank", help="Bank account name or ID")
@click.option(
    "--tolerance-days",
    type=click.IntRange(min=0),
    default=DEFAULT_TOLERANCE_DAYS,
    show_default=True,
    envvar="LEDGERKIT_MATCH_TOLERANCE_DAYS",
    help="Maximum days between statement date and entry date",
)
@click.option("--verbose", "-v", is_flag=True, help="Show the outcome of every line")
@click.pass_context
def run(ctx, upload_id: int | None, bank: str | None, tolerance_days: int, verbose: bool):
    """Match an upload or all statement lines of a bank account.

    Lines that are already matched are left alone; unmatch them first to
    match them again.
    """
    if (upload_id is None) == (bank is None):
        click.echo("Error: Specify exactly one of --upload or --bank", err=True)
        ctx.exit(1)

    db = ctx.obj["db"]
    service = ReconciliationService(db, tolerance_days=tolerance_days)
    try:
        if upload_id is not None:
            summary = service.match_upload(upload_id)
        else:
            bank_account_id = resolve_bank_or_exit(ctx, AccountService(db), bank)
            summary = service.match_bank_account(bank_account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo("\nReconciliation complete:")
    click.echo(f"  Matched: {summary.matched}")
    click.echo(f"  Already matched: {summary.already_matched}")
    click.echo(f"  Ambiguous: {summary.ambiguous}")
    click.echo(f"  Unmatched: {summary.no_match}")

    for result in summary.results:
        if result.status is MatchStatus.AMBIGUOUS:
            candidates = ", ".join(str(c) for c in result.candidate_line_ids)
            click.echo(f"  Line {result.line_id}: ambiguous, candidate journal lines {candidates}")
        elif verbose:
            target = f" -> journal line {result.journal_line_id}" if result.journal_line_id else ""
            click.echo(f"  Line {result.line_id}: {result.status.value}{target}")


@reconcile_group.command("unmatch")
@click.argument("line_id", type=int)
@click.pass_context
def unmatch(ctx, line_id: int):
    """Clear the match of a statement line."""
    service = ReconciliationService(ctx.obj["db"])
    try:
        cleared = service.unmatch(line_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    if cleared:
        click.echo(f"Unmatched statement line {line_id}")
    else:
        click.echo(f"Statement line {line_id} was not matched")


@reconcile_group.command("link")
@click.argument("line_id", type=int)
@click.argument("journal_line_id", type=int)
@click.pass_context
def link(ctx, line_id: int, journal_line_id: int):
    """Manually match a statement line to a journal line."""
    service = ReconciliationService(ctx.obj["db"])
    try:
        service.link(line_id, journal_line_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Linked statement line {line_id} to journal line {journal_line_id}")


def register_commands(cli):
    """Register reconcile commands with main CLI."""
    cli.add_command(reconcile_group, name="reconcile")
