"""Tests for document numbering."""

import threading
from datetime import date
from decimal import Decimal

import pytest

from ledgerkit.database.factories import create_sqlite_database
from ledgerkit.database.models import SequenceCounter
from ledgerkit.domain.entities import SourceModule
from ledgerkit.domain.errors import DatabaseBusyError, SequenceAllocationError, ValidationError
from ledgerkit.domain.events import CashBoxKind, CashBoxTransaction
from ledgerkit.domain.sequence import DocumentKind, SequenceService, format_number, retry_on_busy


def test_next_numbers_are_sequential(sequence_service):
    """Test numbers count up within a period."""
    assert sequence_service.next(DocumentKind.JOURNAL_ENTRY, "20240115") == "JE-20240115-0001"
    assert sequence_service.next("JE", "20240115") == "JE-20240115-0002"
    assert sequence_service.current("JE", "20240115") == 2


def test_periods_and_kinds_are_independent(sequence_service):
    """Test each (kind, period) has its own counter."""
    sequence_service.next("JE", "20240115")
    assert sequence_service.next("JE", "20240116") == "JE-20240116-0001"
    assert sequence_service.next("PCV", "2401") == "PCV-2401-0001"
    assert sequence_service.current("PAY", "2401") == 0


def test_next_for_date_period_granularity(sequence_service):
    """Test journal entries number daily and vouchers monthly."""
    on_date = date(2024, 1, 15)
    assert sequence_service.next_for_date(DocumentKind.JOURNAL_ENTRY, on_date) == "JE-20240115-0001"
    assert sequence_service.next_for_date(DocumentKind.PETTY_CASH_VOUCHER, on_date) == "PCV-2401-0001"
    assert sequence_service.next_for_date(DocumentKind.PETTY_CASH_VOUCHER, date(2024, 1, 31)) == "PCV-2401-0002"
    assert sequence_service.next_for_date(DocumentKind.BANK_STATEMENT, on_date) == "BST-2401-0001"


def test_voucher_kind_per_source_module():
    """Test voucher prefixes per source module."""
    assert DocumentKind.for_source(SourceModule.PETTY_CASH) is DocumentKind.PETTY_CASH_VOUCHER
    assert DocumentKind.for_source(SourceModule.STAFF_ADVANCE) is DocumentKind.PAYMENT_VOUCHER
    assert DocumentKind.for_source(SourceModule.RECEIPT) is DocumentKind.RECEIPT_VOUCHER
    assert DocumentKind.for_source(SourceModule.JOURNAL) is DocumentKind.JOURNAL_VOUCHER


def test_format_number_widens():
    """Test ordinals past 9999 are not truncated."""
    assert format_number("JE", "20240115", 7) == "JE-20240115-0007"
    assert format_number("JE", "20240115", 12345) == "JE-20240115-12345"


def test_invalid_inputs(sequence_service):
    """Test unknown kinds and malformed period keys are rejected."""
    with pytest.raises(ValueError):
        sequence_service.next("XX", "2401")
    with pytest.raises(ValidationError):
        sequence_service.next("JE", "2024-01")
    with pytest.raises(ValidationError):
        sequence_service.next_ordinal("", "1160")


def test_allocation_rolls_back_with_unit_of_work(temp_db, sequence_service):
    """Test a number allocated in a failed transaction was never handed out."""
    sequence_service.next("JE", "20240115")
    with pytest.raises(RuntimeError):
        with temp_db.transaction():
            sequence_service.next("JE", "20240115")
            raise RuntimeError("posting failed")

    assert sequence_service.current("JE", "20240115") == 1
    assert sequence_service.next("JE", "20240115") == "JE-20240115-0002"


def test_concurrent_allocation_is_unique(temp_db):
    """Test concurrent allocators on separate connections never share a number."""
    # Create the counter row up front
    SequenceService(temp_db).next("JE", "20240301")

    results = []
    errors = []
    lock = threading.Lock()

    def allocate():
        db = create_sqlite_database(temp_db.database_path)
        service = SequenceService(db)
        try:
            for _ in range(10):
                number = service.next("JE", "20240301")
                with lock:
                    results.append(number)
        except Exception as exc:
            with lock:
                errors.append(exc)
        finally:
            db.disconnect()

    threads = [threading.Thread(target=allocate) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert len(results) == 40
    assert len(set(results)) == 40
    assert sorted(results) == [f"JE-20240301-{n:04d}" for n in range(2, 42)]


def test_raise_sequence_floor(temp_db, sequence_service):
    """Test a counter floor only ever raises the counter."""
    temp_db.raise_sequence_floor("JE", "20240115", 7)
    temp_db.raise_sequence_floor("JE", "20240115", 3)

    assert sequence_service.next("JE", "20240115") == "JE-20240115-0008"


def test_rebuild_counters_continues_after_existing_numbers(temp_db, posting_service, sequence_service, seeded_chart):
    """Test counters rebuilt from persisted numbers continue after them."""
    for n in range(2):
        posting_service.post(
            CashBoxTransaction(
                reference_id=f"pc-{n}",
                event_date=date(2024, 1, 15),
                kind=CashBoxKind.EXPENSE,
                amount=Decimal("1000"),
            )
        )

    # Simulate a database numbered before counters existed
    session = temp_db.session_factory()
    session.query(SequenceCounter).delete()
    session.commit()
    session.close()

    highest = sequence_service.rebuild_counters()

    assert highest[("JE", "20240115")] == 2
    assert highest[("PCV", "2401")] == 2
    assert sequence_service.next("JE", "20240115") == "JE-20240115-0003"


def test_retry_on_busy_retries_then_succeeds():
    """Test busy errors are retried."""
    calls = []

    def work():
        calls.append(1)
        if len(calls) < 3:
            raise DatabaseBusyError("database is locked")
        return "done"

    assert retry_on_busy(work, max_attempts=3, base_delay=0) == "done"
    assert len(calls) == 3


def test_retry_on_busy_gives_up():
    """Test exhausted retries raise a numbering error."""

    def work():
        raise DatabaseBusyError("database is locked")

    with pytest.raises(SequenceAllocationError, match="after 2 attempts"):
        retry_on_busy(work, max_attempts=2, base_delay=0)
