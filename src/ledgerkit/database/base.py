"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional, Any, Sequence
from datetime import date, datetime
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from ledgerkit.domain.entities import (
    Account,
    AccountProvision,
    AccountType,
    BankAccount,
    JournalEntry,
    LedgerMovement,
    NormalBalance,
    ParsedStatementLine,
    PostingLine,
    ReconciliationStatus,
    SourceEventRecord,
    SourceModule,
    StatementLine,
    StatementUpload,
)


class Database(ABC):
    """Abstract database interface for ledgerkit."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Unit of work: commit on success, roll back everything on error.

        Re-entrant. Nested blocks join the outermost one, and write methods
        called inside a block flush instead of committing.
        """
        pass

    @property
    @abstractmethod
    def in_transaction(self) -> bool:
        """Whether a ``transaction()`` block is currently open."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self, code: str, name: str, account_type: AccountType, normal_balance: NormalBalance
    ) -> int:
        """Create a ledger account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_by_code(self, code: str) -> Optional[Account]:
        """Get account by code."""
        pass

    @abstractmethod
    def list_accounts(
        self, include_inactive: bool = False, code_prefix: Optional[str] = None
    ) -> list[Account]:
        """List accounts ordered by code."""
        pass

    @abstractmethod
    def set_account_active(self, account_id: int, is_active: bool) -> None:
        """Activate or deactivate an account."""
        pass

    @abstractmethod
    def get_account_line_count(self, account_id: int) -> int:
        """Number of journal lines referencing an account."""
        pass

    @abstractmethod
    def delete_account(self, account_id: int) -> None:
        """Delete an unreferenced account."""
        pass

    # Provisioning operations
    @abstractmethod
    def get_provision(self, party_group: str, business_key: str) -> Optional[AccountProvision]:
        """Get the provisioned account mapping for a party."""
        pass

    @abstractmethod
    def create_provision(
        self, party_group: str, business_key: str, display_name: str, account_id: int
    ) -> int:
        """Persist a party mapping. Returns provision ID."""
        pass

    @abstractmethod
    def list_provisions(self, party_group: Optional[str] = None) -> list[AccountProvision]:
        """List party mappings, optionally for one group."""
        pass

    # Bank account operations
    @abstractmethod
    def create_bank_account(
        self,
        name: str,
        bank_name: str,
        account_number: Optional[str] = None,
        currency: str = "IDR",
        account_id: Optional[int] = None,
    ) -> int:
        """Create a bank account. Returns bank account ID."""
        pass

    @abstractmethod
    def get_bank_account(self, bank_account_id: int) -> Optional[BankAccount]:
        """Get bank account by ID."""
        pass

    @abstractmethod
    def list_bank_accounts(self) -> list[BankAccount]:
        """List all bank accounts."""
        pass

    # Sequence operations
    @abstractmethod
    def allocate_sequence(self, document_kind: str, period_key: str) -> int:
        """Atomically increment and return the counter of ``(kind, period)``.

        Must be the first write of the surrounding transaction so allocators
        serialize on the counter row.
        """
        pass

    @abstractmethod
    def get_sequence_value(self, document_kind: str, period_key: str) -> Optional[int]:
        """Last allocated value, or None if the counter was never used."""
        pass

    @abstractmethod
    def raise_sequence_floor(self, document_kind: str, period_key: str, value: int) -> None:
        """Ensure the counter is at least ``value``."""
        pass

    @abstractmethod
    def list_document_numbers(self) -> list[str]:
        """All persisted document numbers (entries, vouchers, uploads)."""
        pass

    # Journal operations
    @abstractmethod
    def insert_entry(
        self,
        entry_number: str,
        entry_date: date,
        source_module: SourceModule,
        source_reference_id: str,
        lines: Sequence[PostingLine],
        source_reference_number: Optional[str] = None,
        description: Optional[str] = None,
        created_by: Optional[str] = None,
        reverses_entry_id: Optional[int] = None,
    ) -> JournalEntry:
        """Write an entry and all its lines. Raises ConflictError on duplicates."""
        pass

    @abstractmethod
    def get_entry(self, entry_id: int) -> Optional[JournalEntry]:
        """Get journal entry by ID."""
        pass

    @abstractmethod
    def get_entry_by_number(self, entry_number: str) -> Optional[JournalEntry]:
        """Get journal entry by entry number."""
        pass

    @abstractmethod
    def find_entry_by_source(
        self, source_module: SourceModule, source_reference_id: str
    ) -> Optional[JournalEntry]:
        """Get the journal entry posted for a source event."""
        pass

    @abstractmethod
    def find_reversal(self, entry_id: int) -> Optional[JournalEntry]:
        """Get the entry reversing the given one, if any."""
        pass

    @abstractmethod
    def delete_entry(self, entry_id: int) -> None:
        """Delete an entry together with its lines."""
        pass

    @abstractmethod
    def list_entries(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[JournalEntry]:
        """List entries ordered by date and entry number."""
        pass

    @abstractmethod
    def list_movements(
        self,
        account_ids: Optional[Sequence[int]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[LedgerMovement]:
        """List posted journal lines ordered by (entry_date, entry_number, line_number)."""
        pass

    @abstractmethod
    def sum_movements(
        self, account_id: int, before: Optional[date] = None
    ) -> tuple[Decimal, Decimal]:
        """Total (debit, credit) of an account, optionally strictly before a date."""
        pass

    @abstractmethod
    def get_account_totals(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[dict[str, Any]]:
        """Debit and credit totals per account with movement in range.

        Returns dictionaries with ``account_id``, ``total_debit``,
        ``total_credit`` and ``last_date``, kept as dicts for aggregation results.
        """
        pass

    # Source event operations
    @abstractmethod
    def create_source_event(
        self,
        source_module: SourceModule,
        reference_id: str,
        event_date: date,
        amount: Decimal,
        payload: dict[str, Any],
        reference_number: Optional[str] = None,
        description: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> int:
        """Persist a source event. Raises ConflictError on duplicates."""
        pass

    @abstractmethod
    def get_source_event(
        self, source_module: SourceModule, reference_id: str
    ) -> Optional[SourceEventRecord]:
        """Get a recorded source event."""
        pass

    @abstractmethod
    def delete_source_event(self, source_module: SourceModule, reference_id: str) -> bool:
        """Delete a recorded source event. Returns True if a row was removed."""
        pass

    # Statement operations
    @abstractmethod
    def create_statement_upload(
        self,
        document_number: str,
        bank_account_id: int,
        currency: str,
        document_sha256: str,
        parser_name: str,
        lines: Sequence[ParsedStatementLine],
        period_label: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        opening_balance: Decimal = Decimal("0"),
        closing_balance: Decimal = Decimal("0"),
        source_document_ref: Optional[str] = None,
        uploaded_by: Optional[str] = None,
    ) -> int:
        """Persist an upload and all its lines. Returns upload ID."""
        pass

    @abstractmethod
    def get_statement_upload(self, upload_id: int) -> Optional[StatementUpload]:
        """Get statement upload by ID."""
        pass

    @abstractmethod
    def find_statement_upload_by_hash(
        self, bank_account_id: int, document_sha256: str
    ) -> Optional[StatementUpload]:
        """Get an earlier upload of the same document for a bank account."""
        pass

    @abstractmethod
    def list_statement_uploads(self, bank_account_id: Optional[int] = None) -> list[StatementUpload]:
        """List uploads, newest first."""
        pass

    @abstractmethod
    def get_statement_line(self, line_id: int) -> Optional[StatementLine]:
        """Get statement line by ID."""
        pass

    @abstractmethod
    def list_statement_lines(
        self,
        upload_id: Optional[int] = None,
        bank_account_id: Optional[int] = None,
        status: Optional[ReconciliationStatus] = None,
    ) -> list[StatementLine]:
        """List statement lines ordered by date and line number."""
        pass

    # Reconciliation operations
    @abstractmethod
    def list_unlinked_movements(
        self, account_id: int, start_date: date, end_date: date
    ) -> list[LedgerMovement]:
        """Journal lines on an account within a window that no statement line claims."""
        pass

    @abstractmethod
    def get_movement(self, journal_line_id: int) -> Optional[LedgerMovement]:
        """Get a journal line joined with its entry."""
        pass

    @abstractmethod
    def is_journal_line_linked(self, journal_line_id: int) -> bool:
        """Whether a statement line already claims the journal line."""
        pass

    @abstractmethod
    def mark_statement_line_matched(
        self, line_id: int, journal_line_id: int, matched_at: datetime
    ) -> bool:
        """Flip an unmatched line to matched. Returns False if it was not unmatched."""
        pass

    @abstractmethod
    def mark_statement_line_unmatched(self, line_id: int) -> bool:
        """Clear a match. Returns False if the line was not matched."""
        pass

    @abstractmethod
    def reset_matches_for_entry(self, entry_id: int) -> int:
        """Unmatch statement lines linked to any line of an entry. Returns count."""
        pass
