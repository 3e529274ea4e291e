"""Tests for database mappers."""

from datetime import datetime, date, UTC
from decimal import Decimal

from ledgerkit.database.models import (
    Account as ORMAccount,
    BankAccount as ORMBankAccount,
    BankStatementLine as ORMBankStatementLine,
    JournalEntry as ORMJournalEntry,
    JournalLine as ORMJournalLine,
    SourceEvent as ORMSourceEvent,
)
from ledgerkit.database.mappers import (
    account_to_domain,
    bank_account_to_domain,
    journal_entry_to_domain,
    money,
    movement_to_domain,
    optional_money,
    source_event_to_domain,
    statement_line_to_domain,
)
from ledgerkit.domain.entities import (
    Account,
    AccountType,
    JournalEntry,
    NormalBalance,
    ReconciliationStatus,
    SourceModule,
)


class TestMoney:
    """Tests for money normalization."""

    def test_money_quantizes_to_cents(self):
        assert money(Decimal("150000")) == Decimal("150000.00")
        assert str(money(Decimal("12.5"))) == "12.50"
        assert money(7) == Decimal("7.00")

    def test_money_none_is_zero(self):
        assert money(None) == Decimal("0")

    def test_optional_money(self):
        assert optional_money(None) is None
        assert str(optional_money(Decimal("4985000"))) == "4985000.00"


class TestAccountMapper:
    """Tests for Account mapper."""

    def test_account_to_domain(self):
        """Test converting ORM Account to domain Account."""
        orm_account = ORMAccount(
            id=1,
            code="2110",
            name="Trade Payables",
            account_type="liability",
            normal_balance="credit",
            is_active=True,
            created_at=datetime.now(UTC),
        )
        domain_account = account_to_domain(orm_account)

        assert isinstance(domain_account, Account)
        assert domain_account.id == 1
        assert domain_account.code == "2110"
        assert domain_account.account_type is AccountType.LIABILITY
        assert domain_account.normal_balance is NormalBalance.CREDIT
        assert domain_account.is_active is True
        assert domain_account.created_at == orm_account.created_at


class TestBankAccountMapper:
    """Tests for BankAccount mapper."""

    def test_bank_account_without_ledger_account(self):
        orm_bank = ORMBankAccount(
            id=3,
            name="BCA Operational",
            bank_name="BCA",
            account_number=None,
            currency="IDR",
            account_id=None,
            created_at=datetime.now(UTC),
        )
        bank = bank_account_to_domain(orm_bank)

        assert bank.name == "BCA Operational"
        assert bank.account_number is None
        assert bank.account_id is None


class TestJournalEntryMapper:
    """Tests for JournalEntry mapper."""

    def _orm_entry(self):
        entry = ORMJournalEntry(
            id=10,
            entry_number="JE-20240115-0001",
            entry_date=date(2024, 1, 15),
            source_module="petty_cash",
            source_reference_id="pc-1",
            source_reference_number="PCV-2401-0001",
            description="Office supplies",
            is_posted=True,
            created_by="kasir",
            posted_at=datetime(2024, 1, 15, 9, 30, tzinfo=UTC),
            reverses_entry_id=None,
        )
        entry.lines = [
            ORMJournalLine(id=100, entry_id=10, line_number=1, account_id=7, debit=Decimal("150000"), credit=0),
            ORMJournalLine(id=101, entry_id=10, line_number=2, account_id=2, debit=0, credit=Decimal("150000")),
        ]
        return entry

    def test_journal_entry_to_domain(self):
        """Test converting an entry with its lines."""
        entry = journal_entry_to_domain(self._orm_entry())

        assert isinstance(entry, JournalEntry)
        assert entry.entry_number == "JE-20240115-0001"
        assert entry.source_module is SourceModule.PETTY_CASH
        assert entry.source_reference_number == "PCV-2401-0001"
        assert [line.line_number for line in entry.lines] == [1, 2]
        assert entry.lines[0].debit == Decimal("150000.00")
        assert entry.lines[0].credit == Decimal("0.00")
        assert entry.total_debit == entry.total_credit == Decimal("150000.00")

    def test_movement_to_domain(self):
        """Test a line is flattened with its entry header."""
        orm_entry = self._orm_entry()
        movement = movement_to_domain(orm_entry.lines[1], orm_entry)

        assert movement.line_id == 101
        assert movement.entry_id == 10
        assert movement.entry_date == date(2024, 1, 15)
        assert movement.credit == Decimal("150000.00")
        assert movement.entry_description == "Office supplies"
        assert movement.source_module is SourceModule.PETTY_CASH


class TestSourceEventMapper:
    """Tests for SourceEvent mapper."""

    def test_payload_is_decoded(self):
        orm_event = ORMSourceEvent(
            id=1,
            source_module="staff_advance",
            reference_id="adv-1",
            reference_number="PAY-2401-0001",
            event_date=date(2024, 1, 10),
            amount=Decimal("500000"),
            description=None,
            payload='{"staff_name": "Budi Santoso"}',
            created_by=None,
            created_at=datetime.now(UTC),
        )
        event = source_event_to_domain(orm_event)

        assert event.source_module is SourceModule.STAFF_ADVANCE
        assert event.amount == Decimal("500000.00")
        assert event.payload == {"staff_name": "Budi Santoso"}

    def test_missing_payload_is_empty(self):
        orm_event = ORMSourceEvent(
            id=2,
            source_module="journal",
            reference_id="sal-1",
            event_date=date(2024, 1, 31),
            amount=Decimal("1"),
            payload=None,
            created_at=datetime.now(UTC),
        )
        assert source_event_to_domain(orm_event).payload == {}


class TestStatementLineMapper:
    """Tests for BankStatementLine mapper."""

    def test_statement_line_to_domain(self):
        """Test converting an unmatched statement line."""
        orm_line = ORMBankStatementLine(
            id=5,
            upload_id=1,
            bank_account_id=1,
            line_number=2,
            transaction_date=date(2024, 1, 15),
            description="BIAYA ADM",
            debit_amount=Decimal("15000"),
            credit_amount=0,
            running_balance=None,
            reconciliation_status="unmatched",
            matched_journal_line_id=None,
            matched_at=None,
            currency="IDR",
        )
        line = statement_line_to_domain(orm_line)

        assert line.reconciliation_status is ReconciliationStatus.UNMATCHED
        assert line.debit_amount == Decimal("15000.00")
        assert line.credit_amount == Decimal("0.00")
        assert line.running_balance is None
        assert line.amount == Decimal("15000.00")
        assert line.matched_journal_line_id is None
