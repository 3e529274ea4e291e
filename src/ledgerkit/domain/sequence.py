"""Document and journal numbering.

Numbers look like ``PREFIX-PERIODKEY-NNNN``. The ordinal comes from a
counter row per ``(document kind, period key)`` that the database
increments atomically, so concurrent posters never compute the same number.
Gaps (from rolled-back postings) are tolerated; reuse never happens.
"""

import logging
import re
import time
from datetime import date
from enum import Enum
from typing import Callable, TypeVar, Union

from ledgerkit.database.base import Database
from ledgerkit.domain.entities import SourceModule
from ledgerkit.domain.errors import (
    DatabaseBusyError,
    SequenceAllocationError,
    ValidationError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

NUMBER_PATTERN = re.compile(r"^([A-Z]+)-(\d{4}|\d{8})-(\d{4,})$")


class DocumentKind(str, Enum):
    """Numbered document kinds and their prefixes."""

    JOURNAL_ENTRY = "JE"
    PETTY_CASH_VOUCHER = "PCV"
    PAYMENT_VOUCHER = "PAY"
    RECEIPT_VOUCHER = "REC"
    JOURNAL_VOUCHER = "JV"
    REVERSAL = "REV"
    BANK_STATEMENT = "BST"

    @property
    def daily(self) -> bool:
        """Journal entries restart daily; everything else monthly."""
        return self is DocumentKind.JOURNAL_ENTRY

    def period_key(self, on_date: date) -> str:
        """``YYYYMMDD`` for daily kinds, ``YYMM`` for monthly ones."""
        if self.daily:
            return on_date.strftime("%Y%m%d")
        return on_date.strftime("%y%m")

    @classmethod
    def for_source(cls, source_module: SourceModule) -> "DocumentKind":
        """Voucher kind printed for events of a source module."""
        return _VOUCHER_KINDS[source_module]


_VOUCHER_KINDS = {
    SourceModule.PETTY_CASH: DocumentKind.PETTY_CASH_VOUCHER,
    SourceModule.STAFF_ADVANCE: DocumentKind.PAYMENT_VOUCHER,
    SourceModule.STAFF_REPAYMENT: DocumentKind.RECEIPT_VOUCHER,
    SourceModule.PAYMENT: DocumentKind.PAYMENT_VOUCHER,
    SourceModule.RECEIPT: DocumentKind.RECEIPT_VOUCHER,
    SourceModule.JOURNAL: DocumentKind.JOURNAL_VOUCHER,
    SourceModule.REVERSAL: DocumentKind.REVERSAL,
}


def format_number(prefix: str, period_key: str, ordinal: int) -> str:
    """Render a document number; the ordinal widens past 9999."""
    return f"{prefix}-{period_key}-{ordinal:04d}"


def retry_on_busy(
    work: Callable[[], T], *, max_attempts: int = 5, base_delay: float = 0.05
) -> T:
    """Run a unit of work, retrying with exponential backoff while the database is locked.

    Raises:
        SequenceAllocationError: If the database is still busy after ``max_attempts``
    """
    for attempt in range(1, max_attempts + 1):
        try:
            return work()
        except DatabaseBusyError as exc:
            if attempt == max_attempts:
                raise SequenceAllocationError(
                    f"Could not allocate a document number after {max_attempts} attempts: {exc}"
                ) from exc
            delay = base_delay * 2 ** (attempt - 1)
            logger.warning("Database busy (attempt %d/%d), retrying in %.2fs", attempt, max_attempts, delay)
            time.sleep(delay)
    raise AssertionError("unreachable")


class SequenceService:
    """Service for allocating unique document numbers."""

    def __init__(self, db: Database):
        """Initialize sequence service.

        Args:
            db: Database instance
        """
        self.db = db

    def next_ordinal(self, counter: str, period_key: str) -> int:
        """Allocate the next raw ordinal of a counter."""
        if not counter or not period_key:
            raise ValidationError("Counter name and period key are required")
        return self.db.allocate_sequence(counter, period_key)

    def next(self, document_kind: Union[DocumentKind, str], period_key: str) -> str:
        """Allocate the next number of a document kind within a period.

        Args:
            document_kind: Kind (or its prefix)
            period_key: Period the ordinal is unique within, e.g. ``20240115``

        Returns:
            Number such as ``JE-20240115-0001``
        """
        kind = DocumentKind(document_kind)
        if not period_key.isalnum():
            raise ValidationError(f"Invalid period key '{period_key}'")
        ordinal = self.db.allocate_sequence(kind.value, period_key)
        return format_number(kind.value, period_key, ordinal)

    def next_for_date(self, document_kind: Union[DocumentKind, str], on_date: date) -> str:
        """Allocate the next number for a date, using the kind's period granularity."""
        kind = DocumentKind(document_kind)
        return self.next(kind, kind.period_key(on_date))

    def current(self, document_kind: Union[DocumentKind, str], period_key: str) -> int:
        """Last ordinal handed out for a period, 0 if none."""
        kind = DocumentKind(document_kind)
        return self.db.get_sequence_value(kind.value, period_key) or 0

    def rebuild_counters(self) -> dict[tuple[str, str], int]:
        """Raise every counter to the highest number already persisted.

        Databases numbered by counting rows have no counter rows; running
        this once makes the counters continue after existing numbers.

        Returns:
            Mapping of ``(prefix, period key)`` to the highest ordinal found
        """
        highest: dict[tuple[str, str], int] = {}
        for number in self.db.list_document_numbers():
            match = NUMBER_PATTERN.match(number)
            if match is None:
                continue
            prefix, period_key, ordinal = match.group(1), match.group(2), int(match.group(3))
            key = (prefix, period_key)
            highest[key] = max(highest.get(key, 0), ordinal)

        with self.db.transaction():
            for (prefix, period_key), ordinal in highest.items():
                self.db.raise_sequence_floor(prefix, period_key, ordinal)

        logger.info("Rebuilt %d sequence counter(s)", len(highest))
        return highest
