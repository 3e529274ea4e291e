"""Posting rules engine.

Turns typed source events into balanced journal entries. Every public
operation runs as one unit of work: accounts are resolved (provisioning
party accounts on demand), a journal number is allocated and the entry is
written with all its lines, or nothing is persisted at all.

Idempotency is keyed on ``(source_module, reference_id)``: posting the same
event again returns the entry written the first time, including when two
callers race and one of them loses on the database's unique constraint.
"""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional, Sequence, Union

from ledgerkit.database.base import Database
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.categories import ExpenseCategory
from ledgerkit.domain.chart import PETTY_CASH_CODE, PartyGroup
from ledgerkit.domain.entities import (
    Account,
    JournalEntry,
    PaymentMethod,
    PostingLine,
    SourceModule,
    ZERO,
)
from ledgerkit.domain.errors import (
    AccountResolutionError,
    ConflictError,
    DatabaseBusyError,
    DependencyError,
    NotFoundError,
    PostingError,
    PostingStorageError,
    PostingValidationError,
    ImbalancedEntryError,
    StorageError,
    ValidationError,
    account_not_found,
    bank_reference_required,
    cost_object_required,
    entry_not_found,
    imbalanced_entry,
)
from ledgerkit.domain.events import (
    Allocation,
    CashBoxKind,
    CashBoxTransaction,
    JournalVoucher,
    PaymentVoucher,
    ReceiptVoucher,
    SourceEvent,
    StaffAdvance,
    StaffRepayment,
)
from ledgerkit.domain.sequence import DocumentKind, SequenceService, retry_on_busy

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class PostingService:
    """Service that posts source events to the journal."""

    def __init__(
        self,
        db: Database,
        accounts: Optional[AccountService] = None,
        sequences: Optional[SequenceService] = None,
        max_attempts: int = 5,
        retry_delay: float = 0.05,
    ):
        """Initialize posting service.

        Args:
            db: Database instance
            accounts: Account registry (created on ``db`` if omitted)
            sequences: Number generator (created on ``db`` if omitted)
            max_attempts: Attempts while the database is locked or a racing
                duplicate is being resolved
            retry_delay: Initial backoff in seconds, doubled per attempt
        """
        self.db = db
        self.sequences = sequences or SequenceService(db)
        self.accounts = accounts or AccountService(db, self.sequences)
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._rules: dict[SourceModule, Callable[[SourceEvent], list[PostingLine]]] = {
            SourceModule.PETTY_CASH: self._petty_cash_lines,
            SourceModule.STAFF_ADVANCE: self._staff_advance_lines,
            SourceModule.STAFF_REPAYMENT: self._staff_repayment_lines,
            SourceModule.PAYMENT: self._payment_lines,
            SourceModule.RECEIPT: self._receipt_lines,
            SourceModule.JOURNAL: self._journal_voucher_lines,
        }

    # Public operations
    def post(self, event: SourceEvent) -> JournalEntry:
        """Post a source event.

        Returns:
            The new journal entry, or the existing one if this event was
            posted before

        Raises:
            PostingError: Typed by failing stage; nothing is persisted
        """
        self._check_event(event)
        return self._run(event.source_module, event.reference_id, lambda: self._post(event))

    def record(self, event: SourceEvent) -> JournalEntry:
        """Persist a source event and post it in one transaction.

        If posting fails the event row is not written either.
        """
        self._check_event(event)
        return self._run(event.source_module, event.reference_id, lambda: self._record(event))

    def unpost(self, source_module: Union[SourceModule, str], source_reference_id: str) -> bool:
        """Remove the entry posted for a source event, with all its lines.

        Statement lines matched to the removed lines go back to unmatched.

        Returns:
            True if an entry was removed

        Raises:
            DependencyError: If the entry has been reversed; unpost the reversal first
        """
        module = SourceModule(source_module)
        with self.db.transaction():
            return self._unpost(module, source_reference_id)

    def delete_event(self, source_module: Union[SourceModule, str], reference_id: str) -> bool:
        """Delete a recorded source event together with its journal entry.

        Returns:
            True if the event or its entry existed
        """
        module = SourceModule(source_module)
        with self.db.transaction():
            removed_event = self.db.delete_source_event(module, reference_id)
            removed_entry = self._unpost(module, reference_id)
        return removed_event or removed_entry

    def reverse(
        self,
        entry_number: str,
        reversal_date: Optional[date] = None,
        created_by: Optional[str] = None,
        description: Optional[str] = None,
    ) -> JournalEntry:
        """Post a mirror entry that cancels an existing one.

        Posted entries are never edited; corrections go through a reversal.
        Reversing the same entry twice returns the first reversal.

        Raises:
            NotFoundError: If the entry does not exist
            PostingValidationError: If it is itself a reversal, or the date
                precedes the original
        """
        original = self.db.get_entry_by_number(entry_number)
        if original is None:
            raise NotFoundError(entry_not_found(entry_number))
        if original.source_module is SourceModule.REVERSAL:
            raise PostingValidationError(f"Journal entry '{entry_number}' is a reversal and cannot be reversed")

        on_date = reversal_date or date.today()
        if on_date < original.entry_date:
            raise PostingValidationError(
                f"Reversal date {on_date} precedes entry date {original.entry_date} of '{entry_number}'"
            )

        lines = [
            PostingLine(
                account_id=line.account_id,
                debit=line.credit,
                credit=line.debit,
                description=f"Reversal: {line.description}" if line.description else "Reversal",
            )
            for line in original.lines
        ]

        def work() -> JournalEntry:
            return self._write(
                SourceModule.REVERSAL,
                reference_id=original.entry_number,
                entry_date=on_date,
                lines=lines,
                reference_number=None,
                description=description or f"Reversal of {original.entry_number}",
                created_by=created_by,
                reverses_entry_id=original.id,
            )

        return self._run(SourceModule.REVERSAL, original.entry_number, work)

    # Unit of work
    def _run(
        self, module: SourceModule, reference_id: str, work: Callable[[], JournalEntry]
    ) -> JournalEntry:
        existing = self.db.find_entry_by_source(module, reference_id)
        if existing is not None:
            logger.info("%s %s already posted as %s", module.value, reference_id, existing.entry_number)
            return existing

        if self.db.in_transaction:
            # Caller owns the transaction, retries and duplicate resolution
            return self._guarded(work)

        def attempt() -> JournalEntry:
            with self.db.transaction():
                return self._guarded(work)

        for attempt_number in range(1, self.max_attempts + 1):
            try:
                return retry_on_busy(attempt, max_attempts=self.max_attempts, base_delay=self.retry_delay)
            except ConflictError as exc:
                existing = self.db.find_entry_by_source(module, reference_id)
                if existing is not None:
                    logger.info(
                        "Concurrent post of %s %s resolved to %s", module.value, reference_id, existing.entry_number
                    )
                    return existing
                if attempt_number == self.max_attempts:
                    raise PostingStorageError(f"Could not write entry for {module.value} {reference_id}: {exc}") from exc
                logger.warning("Conflict posting %s %s, retrying: %s", module.value, reference_id, exc)
        raise AssertionError("unreachable")

    def _guarded(self, work: Callable[[], JournalEntry]) -> JournalEntry:
        """Run posting work, surfacing failures as typed posting errors."""
        try:
            return work()
        except (PostingError, ConflictError):
            raise
        except NotFoundError as exc:
            raise AccountResolutionError(str(exc)) from exc
        except ValidationError as exc:
            raise PostingValidationError(str(exc)) from exc
        except DatabaseBusyError:
            raise
        except StorageError as exc:
            raise PostingStorageError(str(exc)) from exc

    def _post(self, event: SourceEvent) -> JournalEntry:
        lines = self._rules[event.source_module](event)
        return self._write(
            event.source_module,
            reference_id=event.reference_id,
            entry_date=event.event_date,
            lines=lines,
            reference_number=event.reference_number,
            description=event.description or None,
            created_by=event.created_by,
        )

    def _record(self, event: SourceEvent) -> JournalEntry:
        entry = self._post(event)
        # An unposted event keeps its row; the edited event replaces it
        if self.db.delete_source_event(event.source_module, event.reference_id):
            logger.info("Replaced unposted %s %s", event.source_module.value, event.reference_id)
        self.db.create_source_event(
            source_module=event.source_module,
            reference_id=event.reference_id,
            event_date=event.event_date,
            amount=event.total_amount,
            payload=event.to_payload(),
            reference_number=entry.source_reference_number,
            description=event.description or None,
            created_by=event.created_by,
        )
        return entry

    def _write(
        self,
        module: SourceModule,
        *,
        reference_id: str,
        entry_date: date,
        lines: Sequence[PostingLine],
        reference_number: Optional[str],
        description: Optional[str],
        created_by: Optional[str],
        reverses_entry_id: Optional[int] = None,
    ) -> JournalEntry:
        check_balanced(lines)
        entry_number = self.sequences.next_for_date(DocumentKind.JOURNAL_ENTRY, entry_date)
        if reference_number is None:
            reference_number = self.sequences.next_for_date(DocumentKind.for_source(module), entry_date)
        entry = self.db.insert_entry(
            entry_number=entry_number,
            entry_date=entry_date,
            source_module=module,
            source_reference_id=reference_id,
            lines=lines,
            source_reference_number=reference_number,
            description=description or f"{module.voucher_label} {reference_number}",
            created_by=created_by,
            reverses_entry_id=reverses_entry_id,
        )
        logger.info(
            "Posted %s (%s %s, %d lines, %s)",
            entry.entry_number,
            module.value,
            reference_id,
            len(entry.lines),
            entry.total_debit,
        )
        return entry

    def _unpost(self, module: SourceModule, reference_id: str) -> bool:
        entry = self.db.find_entry_by_source(module, reference_id)
        if entry is None:
            return False
        reversal = self.db.find_reversal(entry.id)
        if reversal is not None:
            raise DependencyError(
                f"Journal entry '{entry.entry_number}' was reversed by '{reversal.entry_number}'; "
                "unpost the reversal first"
            )
        self.db.reset_matches_for_entry(entry.id)
        self.db.delete_entry(entry.id)
        logger.info("Unposted %s (%s %s)", entry.entry_number, module.value, reference_id)
        return True

    # Validation and account resolution
    def _check_event(self, event: SourceEvent) -> None:
        if not isinstance(event, SourceEvent) or event.source_module not in self._rules:
            raise PostingValidationError(f"Unsupported source event {type(event).__name__}")
        if not event.reference_id or not str(event.reference_id).strip():
            raise PostingValidationError("Source event reference id is required")
        if not isinstance(event.event_date, date):
            raise PostingValidationError("Source event date is required")

    def _account(self, code: str) -> Account:
        account = self.accounts.find(code)
        if account is None:
            raise AccountResolutionError(account_not_found(code))
        return self.accounts.require_active(account)

    def _bank_ledger(self, bank_account_id: int) -> Account:
        try:
            account = self.accounts.resolve_bank_ledger_account(bank_account_id)
        except (NotFoundError, ValidationError) as exc:
            raise AccountResolutionError(str(exc)) from exc
        return self.accounts.require_active(account)

    def _party(self, group: PartyGroup, key: Optional[str]) -> Account:
        if not key or not key.strip():
            raise PostingValidationError(f"A {group.value} name is required")
        return self.accounts.require_active(self.accounts.provision(group, key))

    def _funding(
        self, module: SourceModule, method: PaymentMethod, bank_account_id: Optional[int]
    ) -> Account:
        """Cash (petty cash) or the ledger account of the referenced bank account."""
        if PaymentMethod(method) is PaymentMethod.BANK:
            if bank_account_id is None:
                raise PostingValidationError(bank_reference_required(module.value))
            return self._bank_ledger(bank_account_id)
        return self._account(PETTY_CASH_CODE)

    def _target(
        self,
        account_code: Optional[str],
        party_group: Optional[PartyGroup],
        party_key: Optional[str],
    ) -> Account:
        """Account of an allocation or voucher line."""
        if party_group is not None and account_code is not None:
            raise PostingValidationError("A line targets either an account code or a party, not both")
        if party_group is not None:
            return self._party(PartyGroup(party_group), party_key)
        if account_code:
            return self._account(account_code)
        raise PostingValidationError("A line needs an account code or a party")

    # Rules
    def _petty_cash_lines(self, event: CashBoxTransaction) -> list[PostingLine]:
        amount = positive_amount(event.amount)
        petty_cash = self._account(PETTY_CASH_CODE)

        if CashBoxKind(event.kind) is CashBoxKind.WITHDRAW:
            if event.bank_account_id is None:
                raise PostingValidationError(bank_reference_required(event.source_module.value))
            bank = self._bank_ledger(event.bank_account_id)
            description = event.description or "Petty cash withdrawal"
            return [
                PostingLine(petty_cash.id, debit=amount, description=description),
                PostingLine(bank.id, credit=amount, description=description),
            ]

        category = event.category or ExpenseCategory.UNCATEGORIZED
        if not isinstance(category, ExpenseCategory):
            try:
                category = ExpenseCategory.parse(category)
            except ValueError as exc:
                raise PostingValidationError(str(exc)) from exc
        if category.requires_cost_object and not (event.cost_object_ref or "").strip():
            raise PostingValidationError(cost_object_required(category.value))

        expense = self.accounts.require_active(self.accounts.resolve_by_category(category))
        description = event.description or category.value
        if event.paid_to:
            description = f"{description} - {event.paid_to}"
        if category.requires_cost_object:
            description = f"{description} [{event.cost_object_ref.strip()}]"
        return [
            PostingLine(expense.id, debit=amount, description=description),
            PostingLine(petty_cash.id, credit=amount, description=description),
        ]

    def _staff_advance_lines(self, event: StaffAdvance) -> list[PostingLine]:
        amount = positive_amount(event.amount)
        staff = self._party(PartyGroup.STAFF, event.staff_name)
        funding = self._funding(event.source_module, event.payment_method, event.bank_account_id)
        description = event.description or f"Advance to {event.staff_name.strip()}"
        return [
            PostingLine(staff.id, debit=amount, description=description),
            PostingLine(funding.id, credit=amount, description=description),
        ]

    def _staff_repayment_lines(self, event: StaffRepayment) -> list[PostingLine]:
        amount = positive_amount(event.amount)
        staff = self._party(PartyGroup.STAFF, event.staff_name)
        funding = self._funding(event.source_module, event.payment_method, event.bank_account_id)
        description = event.description or f"Repayment from {event.staff_name.strip()}"
        return [
            PostingLine(funding.id, debit=amount, description=description),
            PostingLine(staff.id, credit=amount, description=description),
        ]

    def _allocation_lines(
        self, allocations: Sequence[Allocation], debit_side: bool, default_description: str
    ) -> tuple[list[PostingLine], Decimal]:
        if not allocations:
            raise PostingValidationError("At least one allocation is required")
        lines = []
        total = ZERO
        for allocation in allocations:
            amount = positive_amount(allocation.amount)
            account = self._target(allocation.account_code, allocation.party_group, allocation.party_key)
            description = allocation.description or default_description
            if debit_side:
                lines.append(PostingLine(account.id, debit=amount, description=description))
            else:
                lines.append(PostingLine(account.id, credit=amount, description=description))
            total += amount
        return lines, total

    def _payment_lines(self, event: PaymentVoucher) -> list[PostingLine]:
        description = event.description or "Payment"
        lines, total = self._allocation_lines(event.allocations, True, description)
        funding = self._funding(event.source_module, event.payment_method, event.bank_account_id)
        return lines + [PostingLine(funding.id, credit=total, description=description)]

    def _receipt_lines(self, event: ReceiptVoucher) -> list[PostingLine]:
        description = event.description or "Receipt"
        lines, total = self._allocation_lines(event.allocations, False, description)
        funding = self._funding(event.source_module, event.payment_method, event.bank_account_id)
        return [PostingLine(funding.id, debit=total, description=description)] + lines

    def _journal_voucher_lines(self, event: JournalVoucher) -> list[PostingLine]:
        if len(event.lines) < 2:
            raise PostingValidationError("A journal voucher needs at least two lines")
        lines = []
        for voucher_line in event.lines:
            debit = money_or_zero(voucher_line.debit)
            credit = money_or_zero(voucher_line.credit)
            if (debit > 0) == (credit > 0):
                raise PostingValidationError("Each journal voucher line needs exactly one of debit or credit")
            account = self._target(voucher_line.account_code, voucher_line.party_group, voucher_line.party_key)
            lines.append(
                PostingLine(
                    account.id,
                    debit=debit,
                    credit=credit,
                    description=voucher_line.description or event.description or None,
                )
            )
        return lines


def positive_amount(value) -> Decimal:
    """Validate a monetary amount: positive, finite, at most two decimals."""
    amount = money_or_zero(value)
    if amount <= 0:
        raise PostingValidationError(f"Amount must be positive, got {value}")
    return amount


def money_or_zero(value) -> Decimal:
    if value is None:
        return ZERO
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as exc:
        raise PostingValidationError(f"Invalid amount '{value}'") from exc
    if not amount.is_finite() or amount < 0:
        raise PostingValidationError(f"Invalid amount '{value}'")
    if amount != amount.quantize(CENT):
        raise PostingValidationError(f"Amount {value} has more than two decimal places")
    return amount.quantize(CENT)


def check_balanced(lines: Sequence[PostingLine]) -> None:
    """Check the balancing rules before anything is written.

    Raises:
        PostingValidationError: If there are fewer than two lines or a line
            is not strictly one-sided
        ImbalancedEntryError: If debits and credits differ
    """
    if len(lines) < 2:
        raise PostingValidationError("A journal entry needs at least two lines")
    for line in lines:
        if line.debit < 0 or line.credit < 0 or (line.debit > 0) == (line.credit > 0):
            raise PostingValidationError(
                f"Journal line on account {line.account_id} must have exactly one positive side"
            )
    total_debit = sum((line.debit for line in lines), ZERO)
    total_credit = sum((line.credit for line in lines), ZERO)
    if total_debit != total_credit:
        raise ImbalancedEntryError(imbalanced_entry(total_debit, total_credit))
