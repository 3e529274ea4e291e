"""Typed source events submitted for posting.

A source event is the business fact (a petty cash slip, a staff advance, a
payment voucher...) that the posting engine turns into a journal entry.
``reference_id`` identifies the event in the emitting module and is the
idempotency key of its journal entry.
"""

import dataclasses
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Optional

from ledgerkit.domain.categories import ExpenseCategory
from ledgerkit.domain.chart import SALARY_EXPENSE_CODE, PartyGroup
from ledgerkit.domain.entities import PaymentMethod, SourceModule, ZERO


class CashBoxKind(str, Enum):
    """Petty cash transaction kinds."""

    WITHDRAW = "withdraw"
    EXPENSE = "expense"


@dataclass(frozen=True, kw_only=True)
class SourceEvent:
    """Fields shared by all source events."""

    source_module: ClassVar[SourceModule]

    reference_id: str
    event_date: date
    description: str = ""
    reference_number: Optional[str] = None
    created_by: Optional[str] = None

    @property
    def total_amount(self) -> Decimal:
        raise NotImplementedError

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe representation stored alongside the source event row."""
        return _jsonable(dataclasses.asdict(self))


@dataclass(frozen=True, kw_only=True)
class CashBoxTransaction(SourceEvent):
    """Petty cash withdrawal from the bank or cash expense."""

    source_module = SourceModule.PETTY_CASH

    kind: CashBoxKind
    amount: Decimal
    category: Optional[ExpenseCategory] = None
    bank_account_id: Optional[int] = None
    cost_object_ref: Optional[str] = None
    paid_to: Optional[str] = None

    @property
    def total_amount(self) -> Decimal:
        return self.amount


@dataclass(frozen=True, kw_only=True)
class StaffAdvance(SourceEvent):
    """Money advanced to a staff member."""

    source_module = SourceModule.STAFF_ADVANCE

    staff_name: str
    amount: Decimal
    payment_method: PaymentMethod = PaymentMethod.CASH
    bank_account_id: Optional[int] = None

    @property
    def total_amount(self) -> Decimal:
        return self.amount


@dataclass(frozen=True, kw_only=True)
class StaffRepayment(SourceEvent):
    """Money returned by a staff member against an advance."""

    source_module = SourceModule.STAFF_REPAYMENT

    staff_name: str
    amount: Decimal
    payment_method: PaymentMethod = PaymentMethod.CASH
    bank_account_id: Optional[int] = None

    @property
    def total_amount(self) -> Decimal:
        return self.amount


@dataclass(frozen=True)
class Allocation:
    """Counter-account leg of a voucher.

    Targets either an explicit account code or a party (group + business
    key) whose account is provisioned on demand.
    """

    amount: Decimal
    account_code: Optional[str] = None
    party_group: Optional[PartyGroup] = None
    party_key: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class PaymentVoucher(SourceEvent):
    """Money paid out: Dr allocations / Cr cash or bank."""

    source_module = SourceModule.PAYMENT

    allocations: tuple[Allocation, ...]
    payment_method: PaymentMethod = PaymentMethod.CASH
    bank_account_id: Optional[int] = None

    @property
    def total_amount(self) -> Decimal:
        return sum((a.amount for a in self.allocations), ZERO)


@dataclass(frozen=True, kw_only=True)
class ReceiptVoucher(SourceEvent):
    """Money received: Dr cash or bank / Cr allocations."""

    source_module = SourceModule.RECEIPT

    allocations: tuple[Allocation, ...]
    payment_method: PaymentMethod = PaymentMethod.CASH
    bank_account_id: Optional[int] = None

    @property
    def total_amount(self) -> Decimal:
        return sum((a.amount for a in self.allocations), ZERO)


@dataclass(frozen=True)
class VoucherLine:
    """Explicit line of a journal voucher."""

    debit: Decimal = ZERO
    credit: Decimal = ZERO
    account_code: Optional[str] = None
    party_group: Optional[PartyGroup] = None
    party_key: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class JournalVoucher(SourceEvent):
    """Manual journal, e.g. a salary deduction against a staff advance."""

    source_module = SourceModule.JOURNAL

    lines: tuple[VoucherLine, ...]

    @property
    def total_amount(self) -> Decimal:
        return sum((line.debit for line in self.lines), ZERO)


def salary_deduction(
    *,
    reference_id: str,
    event_date: date,
    staff_name: str,
    amount: Decimal,
    description: str = "",
    created_by: Optional[str] = None,
) -> JournalVoucher:
    """Build the journal voucher that recovers an advance from salary."""
    return JournalVoucher(
        reference_id=reference_id,
        event_date=event_date,
        description=description or f"Salary deduction for {staff_name}",
        created_by=created_by,
        lines=(
            VoucherLine(debit=amount, account_code=SALARY_EXPENSE_CODE, description="Salary expense"),
            VoucherLine(
                credit=amount,
                party_group=PartyGroup.STAFF,
                party_key=staff_name,
                description=f"Advance recovered from {staff_name}",
            ),
        ),
    )


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (Decimal, date)):
        return str(value)
    return value
