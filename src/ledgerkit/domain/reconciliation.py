"""Bank reconciliation domain service.

Matches bank statement lines against journal lines posted to the bank
account's ledger account. Money entering the bank is a statement credit
and a ledger debit, and money leaving it the other way around.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.entities import (
    LedgerMovement,
    MatchResult,
    MatchStatus,
    ReconciliationStatus,
    ReconciliationSummary,
    StatementLine,
)
from ledgerkit.domain.errors import (
    ConflictError,
    NotFoundError,
    ReconciliationConflict,
    ValidationError,
    statement_line_not_found,
    upload_not_found,
)

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE_DAYS = 3


def _mirrors(line: StatementLine, movement: LedgerMovement) -> bool:
    """Whether a ledger movement is the book side of a statement line."""
    if line.credit_amount > 0:
        return movement.debit == line.credit_amount
    return movement.credit == line.debit_amount


class ReconciliationService:
    """Service for matching statement lines to ledger movements."""

    def __init__(
        self,
        db: Database,
        accounts: Optional[AccountService] = None,
        tolerance_days: int = DEFAULT_TOLERANCE_DAYS,
    ):
        """Initialize reconciliation service.

        Args:
            db: Database instance
            accounts: Account registry resolving bank ledger accounts
            tolerance_days: Maximum days between statement and entry date
        """
        if tolerance_days < 0:
            raise ValidationError("Tolerance days cannot be negative")
        self.db = db
        self.accounts = accounts or AccountService(db)
        self.tolerance_days = tolerance_days

    def _get_line(self, line_id: int) -> StatementLine:
        line = self.db.get_statement_line(line_id)
        if line is None:
            raise NotFoundError(statement_line_not_found(line_id))
        return line

    def candidates(self, line: StatementLine) -> list[LedgerMovement]:
        """Unlinked ledger movements that could explain a statement line."""
        account = self.accounts.resolve_bank_ledger_account(line.bank_account_id)
        window = timedelta(days=self.tolerance_days)
        movements = self.db.list_unlinked_movements(
            account.id, line.transaction_date - window, line.transaction_date + window
        )
        return [movement for movement in movements if _mirrors(line, movement)]

    def match(self, line_id: int) -> MatchResult:
        """Match one statement line.

        A line with exactly one candidate is flipped to matched. Among several
        candidates the one closest in date wins; a tie at the closest
        distance leaves the line unmatched as ambiguous. Already matched
        lines are not re-evaluated.

        Raises:
            NotFoundError: If the statement line does not exist
        """
        line = self._get_line(line_id)
        if line.reconciliation_status is ReconciliationStatus.MATCHED:
            return MatchResult(
                line_id=line.id,
                status=MatchStatus.ALREADY_MATCHED,
                journal_line_id=line.matched_journal_line_id,
            )

        candidates = self.candidates(line)
        if not candidates:
            return MatchResult(line_id=line.id, status=MatchStatus.NO_MATCH)

        def distance(movement: LedgerMovement) -> int:
            return abs((movement.entry_date - line.transaction_date).days)

        closest = min(distance(movement) for movement in candidates)
        best = [movement for movement in candidates if distance(movement) == closest]
        if len(best) > 1:
            return MatchResult(
                line_id=line.id,
                status=MatchStatus.AMBIGUOUS,
                candidate_line_ids=tuple(movement.line_id for movement in best),
                message=f"{len(best)} ledger movements of {line.amount} are equally close",
            )

        chosen = best[0]
        try:
            flipped = self.db.mark_statement_line_matched(line.id, chosen.line_id, datetime.now())
        except ConflictError:
            # Another run claimed the journal line first
            return MatchResult(
                line_id=line.id,
                status=MatchStatus.NO_MATCH,
                message=f"Journal line {chosen.line_id} was matched concurrently",
            )
        if not flipped:
            current = self._get_line(line.id)
            return MatchResult(
                line_id=line.id,
                status=MatchStatus.ALREADY_MATCHED,
                journal_line_id=current.matched_journal_line_id,
            )

        logger.info(
            "Matched statement line %d to %s line %d", line.id, chosen.entry_number, chosen.line_id
        )
        return MatchResult(line_id=line.id, status=MatchStatus.MATCHED, journal_line_id=chosen.line_id)

    def _match_all(self, lines: list[StatementLine]) -> ReconciliationSummary:
        summary = ReconciliationSummary()
        for line in lines:
            summary.add(self.match(line.id))
        logger.info(
            "Reconciliation: %d matched, %d already matched, %d ambiguous, %d unmatched",
            summary.matched,
            summary.already_matched,
            summary.ambiguous,
            summary.no_match,
        )
        return summary

    def match_upload(self, upload_id: int) -> ReconciliationSummary:
        """Match every line of an upload.

        Raises:
            NotFoundError: If the upload does not exist
        """
        if self.db.get_statement_upload(upload_id) is None:
            raise NotFoundError(upload_not_found(upload_id))
        return self._match_all(self.db.list_statement_lines(upload_id=upload_id))

    def match_bank_account(self, bank_account_id: int) -> ReconciliationSummary:
        """Match every statement line of a bank account.

        Raises:
            NotFoundError: If the bank account does not exist
        """
        self.accounts.resolve_bank_ledger_account(bank_account_id)
        return self._match_all(self.db.list_statement_lines(bank_account_id=bank_account_id))

    def unmatch(self, line_id: int) -> bool:
        """Clear a line's match so it can be matched again.

        Returns:
            False if the line was not matched
        """
        line = self._get_line(line_id)
        cleared = self.db.mark_statement_line_unmatched(line.id)
        if cleared:
            logger.info("Unmatched statement line %d from journal line %s", line.id, line.matched_journal_line_id)
        return cleared

    def link(self, line_id: int, journal_line_id: int) -> MatchResult:
        """Manually match a statement line to a journal line.

        Raises:
            NotFoundError: If the statement line or journal line does not exist
            ReconciliationConflict: If either side is already linked, or the
                journal line is not the mirrored side of the statement line
        """
        line = self._get_line(line_id)
        if line.reconciliation_status is ReconciliationStatus.MATCHED:
            raise ReconciliationConflict(
                f"Statement line {line.id} is already matched to journal line {line.matched_journal_line_id}"
            )
        movement = self.db.get_movement(journal_line_id)
        if movement is None:
            raise NotFoundError(f"Journal line {journal_line_id} not found")

        account = self.accounts.resolve_bank_ledger_account(line.bank_account_id)
        if movement.account_id != account.id:
            raise ReconciliationConflict(
                f"Journal line {journal_line_id} is not posted to bank ledger account {account.code}"
            )
        if not _mirrors(line, movement):
            side = "debit" if line.credit_amount > 0 else "credit"
            raise ReconciliationConflict(
                f"Journal line {journal_line_id} is not a ledger {side} of {line.amount}"
            )
        if self.db.is_journal_line_linked(journal_line_id):
            raise ReconciliationConflict(f"Journal line {journal_line_id} is already matched")

        try:
            flipped = self.db.mark_statement_line_matched(line.id, journal_line_id, datetime.now())
        except ConflictError as exc:
            raise ReconciliationConflict(f"Journal line {journal_line_id} is already matched") from exc
        if not flipped:
            raise ReconciliationConflict(f"Statement line {line.id} is already matched")

        logger.info("Linked statement line %d to %s line %d", line.id, movement.entry_number, journal_line_id)
        return MatchResult(line_id=line.id, status=MatchStatus.MATCHED, journal_line_id=journal_line_id)
