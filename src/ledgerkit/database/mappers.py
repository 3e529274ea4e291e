"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic so the domain never sees ORM
objects. Money columns come back as ``Decimal`` and are quantized to cents.
"""

import json
from decimal import Decimal
from typing import Optional

from ledgerkit.domain import entities as domain
from ledgerkit.database.models import (
    Account as ORMAccount,
    AccountProvision as ORMAccountProvision,
    BankAccount as ORMBankAccount,
    BankStatementLine as ORMBankStatementLine,
    BankStatementUpload as ORMBankStatementUpload,
    JournalEntry as ORMJournalEntry,
    JournalLine as ORMJournalLine,
    SourceEvent as ORMSourceEvent,
)

CENT = Decimal("0.01")


def money(value) -> Decimal:
    """Normalize a numeric column value to a two-place Decimal."""
    if value is None:
        return domain.ZERO
    return Decimal(value).quantize(CENT)


def optional_money(value) -> Optional[Decimal]:
    if value is None:
        return None
    return money(value)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        code=orm_account.code,
        name=orm_account.name,
        account_type=domain.AccountType(orm_account.account_type),
        normal_balance=domain.NormalBalance(orm_account.normal_balance),
        is_active=orm_account.is_active,
        created_at=orm_account.created_at,
    )


def provision_to_domain(orm_provision: ORMAccountProvision) -> domain.AccountProvision:
    """Convert SQLAlchemy AccountProvision model to domain entity."""
    return domain.AccountProvision(
        id=orm_provision.id,
        party_group=orm_provision.party_group,
        business_key=orm_provision.business_key,
        display_name=orm_provision.display_name,
        account_id=orm_provision.account_id,
    )


def bank_account_to_domain(orm_bank: ORMBankAccount) -> domain.BankAccount:
    """Convert SQLAlchemy BankAccount model to domain BankAccount entity."""
    return domain.BankAccount(
        id=orm_bank.id,
        name=orm_bank.name,
        bank_name=orm_bank.bank_name,
        account_number=orm_bank.account_number,
        currency=orm_bank.currency,
        account_id=orm_bank.account_id,
        created_at=orm_bank.created_at,
    )


def journal_line_to_domain(orm_line: ORMJournalLine) -> domain.JournalLine:
    """Convert SQLAlchemy JournalLine model to domain JournalLine entity."""
    return domain.JournalLine(
        id=orm_line.id,
        entry_id=orm_line.entry_id,
        line_number=orm_line.line_number,
        account_id=orm_line.account_id,
        debit=money(orm_line.debit),
        credit=money(orm_line.credit),
        description=orm_line.description,
    )


def journal_entry_to_domain(orm_entry: ORMJournalEntry) -> domain.JournalEntry:
    """Convert SQLAlchemy JournalEntry model (with lines) to domain entity."""
    return domain.JournalEntry(
        id=orm_entry.id,
        entry_number=orm_entry.entry_number,
        entry_date=orm_entry.entry_date,
        source_module=domain.SourceModule(orm_entry.source_module),
        source_reference_id=orm_entry.source_reference_id,
        source_reference_number=orm_entry.source_reference_number,
        description=orm_entry.description,
        is_posted=orm_entry.is_posted,
        created_by=orm_entry.created_by,
        posted_at=orm_entry.posted_at,
        reverses_entry_id=orm_entry.reverses_entry_id,
        lines=tuple(journal_line_to_domain(line) for line in orm_entry.lines),
    )


def movement_to_domain(
    orm_line: ORMJournalLine, orm_entry: ORMJournalEntry
) -> domain.LedgerMovement:
    """Convert a journal line and its entry header to a LedgerMovement."""
    return domain.LedgerMovement(
        line_id=orm_line.id,
        entry_id=orm_entry.id,
        entry_number=orm_entry.entry_number,
        entry_date=orm_entry.entry_date,
        line_number=orm_line.line_number,
        account_id=orm_line.account_id,
        debit=money(orm_line.debit),
        credit=money(orm_line.credit),
        description=orm_line.description,
        entry_description=orm_entry.description,
        source_module=domain.SourceModule(orm_entry.source_module),
        source_reference_number=orm_entry.source_reference_number,
    )


def source_event_to_domain(orm_event: ORMSourceEvent) -> domain.SourceEventRecord:
    """Convert SQLAlchemy SourceEvent model to domain SourceEventRecord."""
    return domain.SourceEventRecord(
        id=orm_event.id,
        source_module=domain.SourceModule(orm_event.source_module),
        reference_id=orm_event.reference_id,
        reference_number=orm_event.reference_number,
        event_date=orm_event.event_date,
        amount=money(orm_event.amount),
        description=orm_event.description,
        payload=json.loads(orm_event.payload or "{}"),
        created_by=orm_event.created_by,
        created_at=orm_event.created_at,
    )


def statement_upload_to_domain(orm_upload: ORMBankStatementUpload) -> domain.StatementUpload:
    """Convert SQLAlchemy BankStatementUpload model to domain entity."""
    return domain.StatementUpload(
        id=orm_upload.id,
        document_number=orm_upload.document_number,
        bank_account_id=orm_upload.bank_account_id,
        period_label=orm_upload.period_label,
        start_date=orm_upload.start_date,
        end_date=orm_upload.end_date,
        currency=orm_upload.currency,
        opening_balance=money(orm_upload.opening_balance),
        closing_balance=money(orm_upload.closing_balance),
        total_debits=money(orm_upload.total_debits),
        total_credits=money(orm_upload.total_credits),
        transaction_count=orm_upload.transaction_count,
        source_document_ref=orm_upload.source_document_ref,
        document_sha256=orm_upload.document_sha256,
        parser_name=orm_upload.parser_name,
        status=domain.UploadStatus(orm_upload.status),
        uploaded_by=orm_upload.uploaded_by,
        created_at=orm_upload.created_at,
    )


def statement_line_to_domain(orm_line: ORMBankStatementLine) -> domain.StatementLine:
    """Convert SQLAlchemy BankStatementLine model to domain StatementLine."""
    return domain.StatementLine(
        id=orm_line.id,
        upload_id=orm_line.upload_id,
        bank_account_id=orm_line.bank_account_id,
        line_number=orm_line.line_number,
        transaction_date=orm_line.transaction_date,
        description=orm_line.description,
        debit_amount=money(orm_line.debit_amount),
        credit_amount=money(orm_line.credit_amount),
        running_balance=optional_money(orm_line.running_balance),
        reconciliation_status=domain.ReconciliationStatus(orm_line.reconciliation_status),
        matched_journal_line_id=orm_line.matched_journal_line_id,
        matched_at=orm_line.matched_at,
        currency=orm_line.currency,
    )
