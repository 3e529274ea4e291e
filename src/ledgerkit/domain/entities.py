"""Domain model entities for ledgerkit.

These are pure data classes representing business concepts, independent of
database schema. Services and the database layer exchange these objects;
SQLAlchemy models never leave ``ledgerkit.database``.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional

ZERO = Decimal("0.00")


class AccountType(str, Enum):
    """Chart of accounts classification."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def default_normal_balance(self) -> "NormalBalance":
        if self in (AccountType.ASSET, AccountType.EXPENSE):
            return NormalBalance.DEBIT
        return NormalBalance.CREDIT


class NormalBalance(str, Enum):
    """Side on which an account naturally increases."""

    DEBIT = "debit"
    CREDIT = "credit"

    def signed(self, debit: Decimal, credit: Decimal) -> Decimal:
        """Net a debit/credit pair using this sign convention."""
        if self is NormalBalance.DEBIT:
            return debit - credit
        return credit - debit


class SourceModule(str, Enum):
    """Business module a journal entry originates from."""

    PETTY_CASH = "petty_cash"
    STAFF_ADVANCE = "staff_advance"
    STAFF_REPAYMENT = "staff_repayment"
    PAYMENT = "payment"
    RECEIPT = "receipt"
    JOURNAL = "journal"
    REVERSAL = "reversal"

    @property
    def voucher_label(self) -> str:
        labels = {
            SourceModule.PETTY_CASH: "Petty Cash Voucher",
            SourceModule.STAFF_ADVANCE: "Payment Voucher",
            SourceModule.STAFF_REPAYMENT: "Receipt Voucher",
            SourceModule.PAYMENT: "Payment Voucher",
            SourceModule.RECEIPT: "Receipt Voucher",
            SourceModule.JOURNAL: "Journal Entry",
            SourceModule.REVERSAL: "Reversal",
        }
        return labels[self]


class PaymentMethod(str, Enum):
    """How money left or entered the business."""

    CASH = "cash"
    BANK = "bank"


class ReconciliationStatus(str, Enum):
    """Reconciliation state of a bank statement line."""

    UNMATCHED = "unmatched"
    MATCHED = "matched"


class UploadStatus(str, Enum):
    """Outcome of a statement upload."""

    COMPLETED = "completed"
    FAILED = "failed"


class MatchStatus(str, Enum):
    """Outcome of matching one statement line."""

    MATCHED = "matched"
    ALREADY_MATCHED = "already_matched"
    NO_MATCH = "no_match"
    AMBIGUOUS = "ambiguous"


@dataclass(frozen=True)
class Account:
    """Chart of accounts entry."""

    id: int
    code: str
    name: str
    account_type: AccountType
    normal_balance: NormalBalance
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class AccountProvision:
    """Mapping from a party's business key to its provisioned account."""

    id: int
    party_group: str
    business_key: str
    display_name: str
    account_id: int


@dataclass(frozen=True)
class BankAccount:
    """Bank account master data linked to its ledger account."""

    id: int
    name: str
    bank_name: str
    account_number: Optional[str]
    currency: str
    account_id: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class PostingLine:
    """One leg of a journal entry before it is written."""

    account_id: int
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: Optional[str] = None


@dataclass(frozen=True)
class JournalLine:
    """Persisted journal line."""

    id: int
    entry_id: int
    line_number: int
    account_id: int
    debit: Decimal
    credit: Decimal
    description: Optional[str]


@dataclass(frozen=True)
class JournalEntry:
    """Persisted journal entry with its lines."""

    id: int
    entry_number: str
    entry_date: date
    source_module: SourceModule
    source_reference_id: str
    source_reference_number: Optional[str]
    description: Optional[str]
    is_posted: bool
    created_by: Optional[str]
    posted_at: Optional[datetime]
    reverses_entry_id: Optional[int] = None
    lines: tuple[JournalLine, ...] = ()

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.lines), ZERO)

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.lines), ZERO)


@dataclass(frozen=True)
class SourceEventRecord:
    """Locally persisted business event whose posting succeeded."""

    id: int
    source_module: SourceModule
    reference_id: str
    reference_number: Optional[str]
    event_date: date
    amount: Decimal
    description: Optional[str]
    payload: dict
    created_by: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class LedgerMovement:
    """A journal line joined with its entry header.

    Used by the ledger projections and by reconciliation candidate search.
    """

    line_id: int
    entry_id: int
    entry_number: str
    entry_date: date
    line_number: int
    account_id: int
    debit: Decimal
    credit: Decimal
    description: Optional[str]
    entry_description: Optional[str]
    source_module: SourceModule
    source_reference_number: Optional[str]


@dataclass(frozen=True)
class LedgerRow:
    """One row of an account ledger view."""

    date: date
    entry_number: str
    reference_number: Optional[str]
    source_module: SourceModule
    description: Optional[str]
    debit: Decimal
    credit: Decimal
    running_balance: Decimal


@dataclass(frozen=True)
class AccountLedger:
    """Ledger of a single account over a date range."""

    account: Account
    start_date: Optional[date]
    end_date: Optional[date]
    opening_balance: Decimal
    rows: tuple[LedgerRow, ...]

    @property
    def closing_balance(self) -> Decimal:
        if self.rows:
            return self.rows[-1].running_balance
        return self.opening_balance


@dataclass(frozen=True)
class TrialBalanceRow:
    """Totals of one account in a trial balance."""

    account: Account
    total_debit: Decimal
    total_credit: Decimal
    net_balance: Decimal


@dataclass(frozen=True)
class TrialBalance:
    """Trial balance over a date range."""

    start_date: Optional[date]
    end_date: Optional[date]
    rows: tuple[TrialBalanceRow, ...]

    @property
    def total_debit(self) -> Decimal:
        return sum((row.total_debit for row in self.rows), ZERO)

    @property
    def total_credit(self) -> Decimal:
        return sum((row.total_credit for row in self.rows), ZERO)

    @property
    def imbalance(self) -> Decimal:
        """Properly signed sum of all net balances; zero for a sound ledger."""
        total = ZERO
        for row in self.rows:
            if row.account.normal_balance is NormalBalance.DEBIT:
                total += row.net_balance
            else:
                total -= row.net_balance
        return total

    @property
    def is_balanced(self) -> bool:
        return self.imbalance == ZERO


@dataclass(frozen=True)
class PartyBalance:
    """Outstanding balance of one party account."""

    business_key: str
    display_name: str
    account_code: str
    outstanding_balance: Decimal
    last_transaction_date: Optional[date]


@dataclass(frozen=True)
class ParsedStatementLine:
    """Transaction line recovered from a statement, before it is persisted."""

    transaction_date: date
    description: str
    debit_amount: Decimal
    credit_amount: Decimal
    running_balance: Optional[Decimal] = None


@dataclass(frozen=True)
class StatementUpload:
    """Bank statement upload header."""

    id: int
    document_number: str
    bank_account_id: int
    period_label: Optional[str]
    start_date: Optional[date]
    end_date: Optional[date]
    currency: str
    opening_balance: Decimal
    closing_balance: Decimal
    total_debits: Decimal
    total_credits: Decimal
    transaction_count: int
    source_document_ref: Optional[str]
    document_sha256: str
    parser_name: str
    status: UploadStatus
    uploaded_by: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class StatementLine:
    """One transaction line of an uploaded bank statement."""

    id: int
    upload_id: int
    bank_account_id: int
    line_number: int
    transaction_date: date
    description: str
    debit_amount: Decimal
    credit_amount: Decimal
    running_balance: Optional[Decimal]
    reconciliation_status: ReconciliationStatus
    matched_journal_line_id: Optional[int]
    matched_at: Optional[datetime]
    currency: str

    @property
    def amount(self) -> Decimal:
        return self.debit_amount if self.debit_amount > 0 else self.credit_amount


@dataclass(frozen=True)
class UploadResult:
    """Result returned to the caller of a successful statement upload."""

    success: bool
    upload_id: int
    document_number: str
    transaction_count: int
    period: Optional[str]
    opening_balance: Decimal
    closing_balance: Decimal


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching one statement line against the ledger."""

    line_id: int
    status: MatchStatus
    journal_line_id: Optional[int] = None
    candidate_line_ids: tuple[int, ...] = ()
    message: Optional[str] = None


@dataclass
class ReconciliationSummary:
    """Counts of a batch reconciliation run."""

    matched: int = 0
    already_matched: int = 0
    no_match: int = 0
    ambiguous: int = 0
    results: list[MatchResult] = field(default_factory=list)

    def add(self, result: MatchResult) -> None:
        self.results.append(result)
        if result.status is MatchStatus.MATCHED:
            self.matched += 1
        elif result.status is MatchStatus.ALREADY_MATCHED:
            self.already_matched += 1
        elif result.status is MatchStatus.AMBIGUOUS:
            self.ambiguous += 1
        else:
            self.no_match += 1
