"""Posting commands.

Each ``post`` subcommand records a source event and posts its journal entry
in one transaction. ``--ref`` is the event's reference ID in the emitting
module; posting the same reference again returns the existing entry.
"""

import uuid
from datetime import date
from decimal import Decimal

import click
from ledgerkit.cli.account_resolution import resolve_bank_or_exit
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.categories import ExpenseCategory
from ledgerkit.domain.chart import PartyGroup
from ledgerkit.domain.entities import JournalEntry, PaymentMethod, SourceModule
from ledgerkit.domain.errors import DomainError
from ledgerkit.domain.events import (
    Allocation,
    CashBoxKind,
    CashBoxTransaction,
    PaymentVoucher,
    ReceiptVoucher,
    SourceEvent,
    StaffAdvance,
    StaffRepayment,
    salary_deduction,
)
from ledgerkit.domain.posting import PostingService
from ledgerkit.utils.amount_parser import parse_amount
from ledgerkit.utils.date_parser import parse_date


def event_options(command):
    """Options shared by every posting command."""
    command = click.option("--by", "created_by", help="User recorded on the entry")(command)
    command = click.option("--description", help="Entry description")(command)
    command = click.option("--voucher", "reference_number", help="Voucher number (allocated if omitted)")(command)
    command = click.option("--ref", help="Source reference ID (generated if omitted)")(command)
    command = click.option("--date", "date_str", help="Event date (YYYY-MM-DD or relative like 'today', 'yesterday')")(command)
    return command


def _event_fields(ctx, date_str, ref, reference_number, description, created_by) -> dict:
    event_date = date.today()
    if date_str:
        try:
            event_date = parse_date(date_str)
        except ValueError as e:
            click.echo(f"Error: Invalid date format: {e}", err=True)
            ctx.exit(1)
    return {
        "reference_id": ref or uuid.uuid4().hex,
        "event_date": event_date,
        "reference_number": reference_number,
        "description": description or "",
        "created_by": created_by,
    }


def _amount_or_exit(ctx, amount: str) -> Decimal:
    try:
        value = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)
    if value <= 0:
        click.echo("Error: Amount must be positive", err=True)
        ctx.exit(1)
    return value


def _bank_id(ctx, bank: str | None) -> int | None:
    if bank is None:
        return None
    return resolve_bank_or_exit(ctx, AccountService(ctx.obj["db"]), bank)


def _echo_entry(account_service: AccountService, entry: JournalEntry) -> None:
    click.echo(f"Posted {entry.entry_number} (entry ID: {entry.id})")
    click.echo(f"  Voucher: {entry.source_reference_number}")
    click.echo(f"  Date: {entry.entry_date}")
    click.echo(f"  Reference: {entry.source_module.value} {entry.source_reference_id}")
    for line in entry.lines:
        account = account_service.get_account(line.account_id)
        label = f"{account.code} {account.name}" if account else str(line.account_id)
        debit = f"{line.debit:,.2f}" if line.debit else ""
        credit = f"{line.credit:,.2f}" if line.credit else ""
        click.echo(f"  {label:<45} {debit:>16} {credit:>16}")


def _record(ctx, event: SourceEvent) -> None:
    service = PostingService(ctx.obj["db"])
    try:
        entry = service.record(event)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    _echo_entry(service.accounts, entry)


def _allocation(ctx, amount: Decimal, account_code, supplier, customer, staff) -> Allocation:
    targets = {
        PartyGroup.SUPPLIER: supplier,
        PartyGroup.CUSTOMER: customer,
        PartyGroup.STAFF: staff,
    }
    chosen = [group for group, name in targets.items() if name]
    if len(chosen) + (1 if account_code else 0) != 1:
        click.echo("Error: Specify exactly one of --account, --supplier, --customer or --staff", err=True)
        ctx.exit(1)
    if account_code:
        return Allocation(amount=amount, account_code=account_code)
    group = chosen[0]
    return Allocation(amount=amount, party_group=group, party_key=targets[group])


def _target_options(command):
    command = click.option("--staff", help="Staff member")(command)
    command = click.option("--customer", help="Customer")(command)
    command = click.option("--supplier", help="Supplier")(command)
    command = click.option("--account", "account_code", help="Counter-account code")(command)
    return command


@click.group()
def post_group():
    """Post business events to the journal."""
    pass


@post_group.command("cash-expense")
@click.argument("amount")
@click.option(
    "--category",
    default=ExpenseCategory.UNCATEGORIZED.value,
    help="Expense category (e.g., 'Office Supplies')",
)
@click.option("--paid-to", help="Payee")
@click.option("--cost-ref", "cost_object_ref", help="Linked cost object, required for import costs")
@event_options
@click.pass_context
def cash_expense(ctx, amount, category, paid_to, cost_object_ref, date_str, ref, reference_number, description, created_by):
    """Record a petty cash expense.

    Examples:
        ledgerkit post cash-expense 150000 --category "Office Supplies"
        ledgerkit post cash-expense 2,500,000 --category "Duty & Customs" --cost-ref CONT-0042
    """
    value = _amount_or_exit(ctx, amount)
    try:
        parsed_category = ExpenseCategory.parse(category)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    fields = _event_fields(ctx, date_str, ref, reference_number, description, created_by)
    _record(
        ctx,
        CashBoxTransaction(
            kind=CashBoxKind.EXPENSE,
            amount=value,
            category=parsed_category,
            paid_to=paid_to,
            cost_object_ref=cost_object_ref,
            **fields,
        ),
    )


@post_group.command("cash-withdraw")
@click.argument("amount")
@click.option("--bank", required=True, help="Bank account name or ID the cash is drawn from")
@event_options
@click.pass_context
def cash_withdraw(ctx, amount, bank, date_str, ref, reference_number, description, created_by):
    """Move cash from a bank account into petty cash."""
    value = _amount_or_exit(ctx, amount)
    bank_account_id = _bank_id(ctx, bank)
    fields = _event_fields(ctx, date_str, ref, reference_number, description, created_by)
    _record(
        ctx,
        CashBoxTransaction(kind=CashBoxKind.WITHDRAW, amount=value, bank_account_id=bank_account_id, **fields),
    )


@post_group.command("staff-advance")
@click.argument("staff")
@click.argument("amount")
@click.option("--bank", help="Pay from this bank account name or ID (petty cash otherwise)")
@event_options
@click.pass_context
def staff_advance(ctx, staff, amount, bank, date_str, ref, reference_number, description, created_by):
    """Advance money to a staff member."""
    value = _amount_or_exit(ctx, amount)
    bank_account_id = _bank_id(ctx, bank)
    fields = _event_fields(ctx, date_str, ref, reference_number, description, created_by)
    _record(
        ctx,
        StaffAdvance(
            staff_name=staff,
            amount=value,
            payment_method=PaymentMethod.BANK if bank_account_id else PaymentMethod.CASH,
            bank_account_id=bank_account_id,
            **fields,
        ),
    )


@post_group.command("staff-repayment")
@click.argument("staff")
@click.argument("amount")
@click.option("--bank", help="Received into this bank account name or ID (petty cash otherwise)")
@event_options
@click.pass_context
def staff_repayment(ctx, staff, amount, bank, date_str, ref, reference_number, description, created_by):
    """Record money a staff member paid back."""
    value = _amount_or_exit(ctx, amount)
    bank_account_id = _bank_id(ctx, bank)
    fields = _event_fields(ctx, date_str, ref, reference_number, description, created_by)
    _record(
        ctx,
        StaffRepayment(
            staff_name=staff,
            amount=value,
            payment_method=PaymentMethod.BANK if bank_account_id else PaymentMethod.CASH,
            bank_account_id=bank_account_id,
            **fields,
        ),
    )


@post_group.command("salary-deduction")
@click.argument("staff")
@click.argument("amount")
@event_options
@click.pass_context
def post_salary_deduction(ctx, staff, amount, date_str, ref, reference_number, description, created_by):
    """Recover a staff advance from salary."""
    value = _amount_or_exit(ctx, amount)
    fields = _event_fields(ctx, date_str, ref, reference_number, description, created_by)
    fields.pop("reference_number")
    _record(ctx, salary_deduction(staff_name=staff, amount=value, **fields))


@post_group.command("payment")
@click.argument("amount")
@_target_options
@click.option("--bank", help="Pay from this bank account name or ID (petty cash otherwise)")
@event_options
@click.pass_context
def payment(ctx, amount, account_code, supplier, customer, staff, bank, date_str, ref, reference_number, description, created_by):
    """Record a payment voucher.

    Examples:
        ledgerkit post payment 5,000,000 --supplier "PT Sinar Jaya" --bank "BCA Operational"
        ledgerkit post payment 750000 --account 6430
    """
    value = _amount_or_exit(ctx, amount)
    allocation = _allocation(ctx, value, account_code, supplier, customer, staff)
    bank_account_id = _bank_id(ctx, bank)
    fields = _event_fields(ctx, date_str, ref, reference_number, description, created_by)
    _record(
        ctx,
        PaymentVoucher(
            allocations=(allocation,),
            payment_method=PaymentMethod.BANK if bank_account_id else PaymentMethod.CASH,
            bank_account_id=bank_account_id,
            **fields,
        ),
    )


@post_group.command("receipt")
@click.argument("amount")
@_target_options
@click.option("--bank", help="Received into this bank account name or ID (petty cash otherwise)")
@event_options
@click.pass_context
def receipt(ctx, amount, account_code, supplier, customer, staff, bank, date_str, ref, reference_number, description, created_by):
    """Record a receipt voucher.

    Examples:
        ledgerkit post receipt 12,000,000 --customer "CV Maju" --bank "BCA Operational"
    """
    value = _amount_or_exit(ctx, amount)
    allocation = _allocation(ctx, value, account_code, supplier, customer, staff)
    bank_account_id = _bank_id(ctx, bank)
    fields = _event_fields(ctx, date_str, ref, reference_number, description, created_by)
    _record(
        ctx,
        ReceiptVoucher(
            allocations=(allocation,),
            payment_method=PaymentMethod.BANK if bank_account_id else PaymentMethod.CASH,
            bank_account_id=bank_account_id,
            **fields,
        ),
    )


@click.command("unpost")
@click.argument("module", type=click.Choice([m.value for m in SourceModule]))
@click.argument("reference_id", metavar="REF")
@click.pass_context
def unpost(ctx, module: str, reference_id: str):
    """Delete a source event and its journal entry.

    Statement lines matched to the entry become unmatched again.
    """
    service = PostingService(ctx.obj["db"])
    try:
        removed = service.delete_event(module, reference_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    if not removed:
        click.echo(f"Error: Nothing posted for {module} {reference_id}", err=True)
        ctx.exit(1)
    click.echo(f"Unposted {module} {reference_id}")


@click.command("reverse")
@click.argument("entry_number")
@click.option("--date", "date_str", help="Reversal date (defaults to today)")
@click.option("--description", help="Reversal description")
@click.option("--by", "created_by", help="User recorded on the reversal")
@click.pass_context
def reverse(ctx, entry_number: str, date_str: str | None, description: str | None, created_by: str | None):
    """Post an entry that reverses ENTRY_NUMBER."""
    reversal_date = None
    if date_str:
        try:
            reversal_date = parse_date(date_str)
        except ValueError as e:
            click.echo(f"Error: Invalid date format: {e}", err=True)
            ctx.exit(1)

    service = PostingService(ctx.obj["db"])
    try:
        entry = service.reverse(
            entry_number, reversal_date=reversal_date, created_by=created_by, description=description
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    _echo_entry(service.accounts, entry)


def register_commands(cli):
    """Register posting commands with main CLI."""
    cli.add_command(post_group, name="post")
    cli.add_command(unpost)
    cli.add_command(reverse)
