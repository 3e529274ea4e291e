"""Bank statement commands."""

from pathlib import Path

import click
from ledgerkit.cli.account_resolution import resolve_bank_or_exit
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.entities import ReconciliationStatus
from ledgerkit.domain.errors import DomainError
from ledgerkit.domain.statement_import import StatementImportService
from ledgerkit.statements import available_parsers


@click.group()
def statement_group():
    """Upload and inspect bank statements."""
    pass


@statement_group.command("upload")
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--bank", required=True, help="Bank account name or ID")
@click.option(
    "--format",
    "parser_name",
    default="bca",
    show_default=True,
    type=click.Choice(available_parsers()),
    help="Statement format",
)
@click.option("--year", type=int, help="Year for dates when the statement names no period")
@click.option("--by", "uploaded_by", help="User recorded on the upload")
@click.pass_context
def upload_statement(ctx, statement_file: str, bank: str, parser_name: str, year: int | None, uploaded_by: str | None):
    """Upload a bank statement for reconciliation.

    Examples:
        ledgerkit statement upload januari.pdf --bank "BCA Operational"
    """
    db = ctx.obj["db"]
    bank_account_id = resolve_bank_or_exit(ctx, AccountService(db), bank)
    service = StatementImportService(db)

    path = Path(statement_file)
    try:
        result = service.upload(
            path.read_bytes(),
            bank_account_id,
            filename=path.name,
            parser_name=parser_name,
            uploaded_by=uploaded_by,
            default_year=year,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"\nUpload complete: {result.document_number} (upload ID: {result.upload_id})")
    click.echo(f"  Period: {result.period or 'unknown'}")
    click.echo(f"  Transactions: {result.transaction_count}")
    click.echo(f"  Opening balance: {result.opening_balance:,.2f}")
    click.echo(f"  Closing balance: {result.closing_balance:,.2f}")


@statement_group.command("list")
@click.option("--bank", help="Bank account name or ID")
@click.pass_context
def list_uploads(ctx, bank: str | None):
    """List statement uploads, newest first."""
    db = ctx.obj["db"]
    bank_account_id = resolve_bank_or_exit(ctx, AccountService(db), bank) if bank else None
    uploads = StatementImportService(db).list_uploads(bank_account_id)

    if not uploads:
        click.echo("No statement uploads found.")
        return

    click.echo("\nStatement uploads:")
    click.echo("-" * 100)
    for upload in uploads:
        click.echo(
            f"ID: {upload.id:3d} | {upload.document_number:<16} | Bank account: {upload.bank_account_id:3d} | "
            f"{upload.period_label or 'unknown':<14} | {upload.transaction_count:4d} lines | "
            f"{upload.source_document_ref or ''}"
        )


@statement_group.command("lines")
@click.option("--upload", "upload_id", type=int, help="Upload ID")
@click.option("--bank", help="Bank account name or ID")
@click.option(
    "--status",
    type=click.Choice([s.value for s in ReconciliationStatus]),
    help="Only lines with this reconciliation status",
)
@click.pass_context
def list_lines(ctx, upload_id: int | None, bank: str | None, status: str | None):
    """List statement lines."""
    db = ctx.obj["db"]
    bank_account_id = resolve_bank_or_exit(ctx, AccountService(db), bank) if bank else None
    lines = StatementImportService(db).list_lines(
        upload_id=upload_id, bank_account_id=bank_account_id, status=status
    )

    if not lines:
        click.echo("No statement lines found.")
        return

    click.echo(f"\nFound {len(lines)} statement line(s):")
    click.echo("-" * 120)
    click.echo(
        f"{'ID':<6} {'Date':<12} {'Description':<40} {'Debit':>15} {'Credit':>15} {'Balance':>15} {'Status':<10}"
    )
    click.echo("-" * 120)
    for line in lines:
        debit = f"{line.debit_amount:,.2f}" if line.debit_amount else ""
        credit = f"{line.credit_amount:,.2f}" if line.credit_amount else ""
        balance = f"{line.running_balance:,.2f}" if line.running_balance is not None else ""
        click.echo(
            f"{line.id:<6} {str(line.transaction_date):<12} {line.description[:40]:<40} "
            f"{debit:>15} {credit:>15} {balance:>15} {line.reconciliation_status.value:<10}"
        )


def register_commands(cli):
    """Register statement commands with main CLI."""
    cli.add_command(statement_group, name="statement")
