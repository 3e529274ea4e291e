"""Default chart of accounts and reserved account ranges."""

from dataclasses import dataclass
from enum import Enum

from ledgerkit.domain.entities import AccountType

PETTY_CASH_CODE = "1102"
BANK_PARENT_CODE = "1110"
INVENTORY_IMPORT_COSTS_CODE = "1140"
GENERAL_EXPENSE_CODE = "5102"
SALARY_EXPENSE_CODE = "6360"


class PartyGroup(str, Enum):
    """Counterparty groups that get one provisioned account per party."""

    STAFF = "staff"
    CUSTOMER = "customer"
    SUPPLIER = "supplier"

    @property
    def parent_code(self) -> str:
        return _PARTY_RANGES[self].parent_code

    @property
    def account_type(self) -> AccountType:
        return _PARTY_RANGES[self].account_type

    @property
    def name_suffix(self) -> str:
        return _PARTY_RANGES[self].name_suffix

    def code_for(self, ordinal: int) -> str:
        """Account code of the n-th party in this group, e.g. ``1160-001``."""
        return f"{self.parent_code}-{ordinal:03d}"

    def owns_code(self, code: str) -> bool:
        return code.startswith(f"{self.parent_code}-")


@dataclass(frozen=True)
class _PartyRange:
    parent_code: str
    account_type: AccountType
    name_suffix: str


_PARTY_RANGES = {
    PartyGroup.STAFF: _PartyRange("1160", AccountType.ASSET, "Staff Advance"),
    PartyGroup.CUSTOMER: _PartyRange("1130", AccountType.ASSET, "Receivable"),
    PartyGroup.SUPPLIER: _PartyRange("2110", AccountType.LIABILITY, "Payable"),
}


# (code, name, type)
DEFAULT_CHART: tuple[tuple[str, str, AccountType], ...] = (
    ("1100", "Cash & Cash Equivalents", AccountType.ASSET),
    (PETTY_CASH_CODE, "Petty Cash", AccountType.ASSET),
    (BANK_PARENT_CODE, "Bank Accounts", AccountType.ASSET),
    ("1130", "Accounts Receivable", AccountType.ASSET),
    (INVENTORY_IMPORT_COSTS_CODE, "Inventory - Import Costs", AccountType.ASSET),
    ("1160", "Staff Advances & Loans", AccountType.ASSET),
    ("1500", "Fixed Assets & Equipment", AccountType.ASSET),
    ("2110", "Accounts Payable", AccountType.LIABILITY),
    ("2200", "Accrued Liabilities", AccountType.LIABILITY),
    ("3100", "Owner's Capital", AccountType.EQUITY),
    ("3200", "Retained Earnings", AccountType.EQUITY),
    ("4100", "Sales Revenue", AccountType.INCOME),
    ("4900", "Other Income", AccountType.INCOME),
    (GENERAL_EXPENSE_CODE, "General Expenses", AccountType.EXPENSE),
    ("6300", "Utilities", AccountType.EXPENSE),
    ("6310", "Office Supplies", AccountType.EXPENSE),
    ("6320", "Transportation", AccountType.EXPENSE),
    ("6330", "Meals & Entertainment", AccountType.EXPENSE),
    ("6340", "Postage & Courier", AccountType.EXPENSE),
    ("6350", "Cleaning & Maintenance", AccountType.EXPENSE),
    (SALARY_EXPENSE_CODE, "Staff Salaries & Wages", AccountType.EXPENSE),
    ("6370", "Staff Benefits & Allowances", AccountType.EXPENSE),
    ("6380", "Printing & Stationery", AccountType.EXPENSE),
    ("6390", "Telephone & Internet", AccountType.EXPENSE),
    ("6400", "Bank Charges", AccountType.EXPENSE),
    ("6410", "Professional Fees", AccountType.EXPENSE),
    ("6420", "Office Renovation & Shifting", AccountType.EXPENSE),
    ("6430", "Warehouse Rent", AccountType.EXPENSE),
    ("6440", "Delivery & Dispatch", AccountType.EXPENSE),
    ("6490", "Other Expenses", AccountType.EXPENSE),
)
