"""Bank statement import domain service."""

import hashlib
import logging
from enum import Enum
from typing import Optional, Union

from ledgerkit.database.base import Database
from ledgerkit.domain.entities import (
    ReconciliationStatus,
    StatementLine,
    StatementUpload,
    UploadResult,
)
from ledgerkit.domain.errors import (
    ConflictError,
    NotFoundError,
    ParseFailure,
    ValidationError,
    bank_account_not_found,
    duplicate_statement,
    upload_not_found,
)
from ledgerkit.domain.sequence import DocumentKind, SequenceService, retry_on_busy
from ledgerkit.statements import get_parser

logger = logging.getLogger(__name__)


class IngestionState(str, Enum):
    """Stages a statement document moves through."""

    UPLOADED = "uploaded"
    TEXT_EXTRACTED = "text_extracted"
    PARSED = "parsed"
    PERSISTED = "persisted"
    REJECTED = "rejected"

    def can_move_to(self, other: "IngestionState") -> bool:
        return other in _TRANSITIONS[self]


_TRANSITIONS = {
    IngestionState.UPLOADED: {IngestionState.TEXT_EXTRACTED, IngestionState.REJECTED},
    IngestionState.TEXT_EXTRACTED: {IngestionState.PARSED, IngestionState.REJECTED},
    IngestionState.PARSED: {IngestionState.PERSISTED, IngestionState.REJECTED},
    IngestionState.PERSISTED: set(),
    IngestionState.REJECTED: set(),
}


class StatementImportService:
    """Service for uploading bank statements."""

    def __init__(
        self,
        db: Database,
        sequences: Optional[SequenceService] = None,
        max_attempts: int = 5,
        retry_delay: float = 0.05,
    ):
        """Initialize statement import service.

        Args:
            db: Database instance
            sequences: Sequence service numbering uploads
            max_attempts: Attempts while the database is locked
            retry_delay: Initial backoff between attempts in seconds
        """
        self.db = db
        self.sequences = sequences or SequenceService(db)
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

    def _advance(self, state: IngestionState, new_state: IngestionState, label: str) -> IngestionState:
        if not state.can_move_to(new_state):
            raise RuntimeError(f"Invalid ingestion transition {state.value} -> {new_state.value}")
        logger.debug("%s: %s -> %s", label, state.value, new_state.value)
        return new_state

    def upload(
        self,
        document: bytes,
        bank_account_id: int,
        filename: Optional[str] = None,
        parser_name: str = "bca",
        uploaded_by: Optional[str] = None,
        default_year: Optional[int] = None,
    ) -> UploadResult:
        """Parse a statement document and persist its lines for reconciliation.

        The upload and all of its lines are written in one transaction, each
        line starting out unmatched. Nothing is written when parsing fails.

        Args:
            document: Raw statement document (PDF bytes)
            bank_account_id: Bank account the statement belongs to
            filename: Original file name, kept as the document reference
            parser_name: Statement format, see ``ledgerkit.statements``
            uploaded_by: User recorded on the upload
            default_year: Year for dates when the statement names no period

        Returns:
            Upload result with the new upload's ID and number

        Raises:
            NotFoundError: If the bank account does not exist
            ValidationError: If the document is empty or the format unknown
            ConflictError: If this document was already uploaded for the account
            ParseFailure: If no transaction lines could be recovered
        """
        bank_account = self.db.get_bank_account(bank_account_id)
        if bank_account is None:
            raise NotFoundError(bank_account_not_found(bank_account_id))
        parser = get_parser(parser_name)
        if not document:
            raise ValidationError("Statement document is empty")

        label = filename or "statement"
        state = IngestionState.UPLOADED
        document_sha256 = hashlib.sha256(document).hexdigest()
        earlier = self.db.find_statement_upload_by_hash(bank_account_id, document_sha256)
        if earlier is not None:
            self._advance(state, IngestionState.REJECTED, label)
            raise ConflictError(duplicate_statement(bank_account_id, earlier.document_number))

        text = parser.extract(document)
        state = self._advance(state, IngestionState.TEXT_EXTRACTED, label)
        parsed = parser.parse(text, default_year=default_year)
        state = self._advance(state, IngestionState.PARSED, label)

        if not parsed.lines:
            self._advance(state, IngestionState.REJECTED, label)
            diagnostics = parser.diagnostics(text)
            logger.warning(
                "Rejected %s for bank account %d: no transactions found (%s)",
                label,
                bank_account_id,
                ", ".join(f"{key}={value}" for key, value in diagnostics.items() if key != "text_sample"),
            )
            raise ParseFailure(
                f"No transactions found in {label}. "
                f"Please check that this is a valid {parser.name.upper()} statement.",
                diagnostics,
            )

        def persist() -> tuple[str, int]:
            with self.db.transaction():
                document_number = self.sequences.next_for_date(DocumentKind.BANK_STATEMENT, parsed.start_date)
                upload_id = self.db.create_statement_upload(
                    document_number=document_number,
                    bank_account_id=bank_account_id,
                    currency=bank_account.currency,
                    document_sha256=document_sha256,
                    parser_name=parser.name,
                    lines=parsed.lines,
                    period_label=parsed.period_label,
                    start_date=parsed.start_date,
                    end_date=parsed.end_date,
                    opening_balance=parsed.opening_balance,
                    closing_balance=parsed.closing_balance,
                    source_document_ref=filename,
                    uploaded_by=uploaded_by,
                )
                return document_number, upload_id

        try:
            document_number, upload_id = retry_on_busy(
                persist, max_attempts=self.max_attempts, base_delay=self.retry_delay
            )
        except ConflictError as exc:
            winner = self.db.find_statement_upload_by_hash(bank_account_id, document_sha256)
            if winner is None:
                raise
            raise ConflictError(duplicate_statement(bank_account_id, winner.document_number)) from exc
        self._advance(state, IngestionState.PERSISTED, label)

        logger.info(
            "Uploaded %s as %s: %d line(s), period %s",
            label,
            document_number,
            len(parsed.lines),
            parsed.period_label or "unknown",
        )
        return UploadResult(
            success=True,
            upload_id=upload_id,
            document_number=document_number,
            transaction_count=len(parsed.lines),
            period=parsed.period_label,
            opening_balance=parsed.opening_balance,
            closing_balance=parsed.closing_balance,
        )

    def get_upload(self, upload_id: int) -> StatementUpload:
        """Get an upload.

        Raises:
            NotFoundError: If the upload does not exist
        """
        upload = self.db.get_statement_upload(upload_id)
        if upload is None:
            raise NotFoundError(upload_not_found(upload_id))
        return upload

    def list_uploads(self, bank_account_id: Optional[int] = None) -> list[StatementUpload]:
        """List uploads, newest first."""
        return self.db.list_statement_uploads(bank_account_id)

    def list_lines(
        self,
        upload_id: Optional[int] = None,
        bank_account_id: Optional[int] = None,
        status: Union[ReconciliationStatus, str, None] = None,
    ) -> list[StatementLine]:
        """List statement lines, optionally filtered by reconciliation status."""
        if status is not None:
            status = ReconciliationStatus(status)
        return self.db.list_statement_lines(
            upload_id=upload_id, bank_account_id=bank_account_id, status=status
        )
