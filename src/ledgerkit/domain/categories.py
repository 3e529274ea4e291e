"""Expense categories and their ledger accounts.

Every member of ``ExpenseCategory`` must appear in ``CATEGORY_ACCOUNT_CODES``;
the module refuses to import otherwise, so adding a category without deciding
where it posts fails immediately instead of silently landing in the general
expense account.
"""

from enum import Enum
from typing import Optional

from ledgerkit.domain.chart import INVENTORY_IMPORT_COSTS_CODE


class ExpenseCategory(str, Enum):
    """Petty cash expense categories."""

    UTILITIES = "Utilities"
    OFFICE_SUPPLIES = "Office Supplies"
    TRANSPORTATION = "Transportation"
    MEALS_ENTERTAINMENT = "Meals & Entertainment"
    POSTAGE_COURIER = "Postage & Courier"
    CLEANING_MAINTENANCE = "Cleaning & Maintenance"
    STAFF_SALARIES = "Staff Salaries & Wages"
    STAFF_BENEFITS = "Staff Benefits & Allowances"
    PRINTING_STATIONERY = "Printing & Stationery"
    TELEPHONE_INTERNET = "Telephone & Internet"
    BANK_CHARGES = "Bank Charges"
    PROFESSIONAL_FEES = "Professional Fees"
    OFFICE_RENOVATION = "Office Renovation & Shifting"
    WAREHOUSE_RENT = "Warehouse Rent"
    DELIVERY_SALES = "Delivery & Dispatch"
    OTHER_EXPENSES = "Other Expenses"
    DUTY_CUSTOMS = "Duty & Customs"
    FREIGHT_IMPORT = "Freight (Import)"
    CLEARING_FORWARDING = "Clearing & Forwarding"
    PORT_CHARGES = "Port Charges"
    CONTAINER_HANDLING = "Container Handling"
    UNCATEGORIZED = "Uncategorized"

    @classmethod
    def parse(cls, value: str) -> "ExpenseCategory":
        """Look a category up by label or member name, case-insensitively."""
        needle = value.strip().lower()
        for member in cls:
            if member.value.lower() == needle or member.name.lower() == needle:
                return member
        raise ValueError(f"Unknown expense category '{value}'")

    @property
    def account_code(self) -> Optional[str]:
        """Mapped account code, or None for the deliberate general fallback."""
        return CATEGORY_ACCOUNT_CODES[self]

    @property
    def requires_cost_object(self) -> bool:
        """Import costs are capitalized and must name the container they belong to."""
        return self in COST_LINKED_CATEGORIES


CATEGORY_ACCOUNT_CODES: dict[ExpenseCategory, Optional[str]] = {
    ExpenseCategory.UTILITIES: "6300",
    ExpenseCategory.OFFICE_SUPPLIES: "6310",
    ExpenseCategory.TRANSPORTATION: "6320",
    ExpenseCategory.MEALS_ENTERTAINMENT: "6330",
    ExpenseCategory.POSTAGE_COURIER: "6340",
    ExpenseCategory.CLEANING_MAINTENANCE: "6350",
    ExpenseCategory.STAFF_SALARIES: "6360",
    ExpenseCategory.STAFF_BENEFITS: "6370",
    ExpenseCategory.PRINTING_STATIONERY: "6380",
    ExpenseCategory.TELEPHONE_INTERNET: "6390",
    ExpenseCategory.BANK_CHARGES: "6400",
    ExpenseCategory.PROFESSIONAL_FEES: "6410",
    ExpenseCategory.OFFICE_RENOVATION: "6420",
    ExpenseCategory.WAREHOUSE_RENT: "6430",
    ExpenseCategory.DELIVERY_SALES: "6440",
    ExpenseCategory.OTHER_EXPENSES: "6490",
    ExpenseCategory.DUTY_CUSTOMS: INVENTORY_IMPORT_COSTS_CODE,
    ExpenseCategory.FREIGHT_IMPORT: INVENTORY_IMPORT_COSTS_CODE,
    ExpenseCategory.CLEARING_FORWARDING: INVENTORY_IMPORT_COSTS_CODE,
    ExpenseCategory.PORT_CHARGES: INVENTORY_IMPORT_COSTS_CODE,
    ExpenseCategory.CONTAINER_HANDLING: INVENTORY_IMPORT_COSTS_CODE,
    ExpenseCategory.UNCATEGORIZED: None,
}

COST_LINKED_CATEGORIES = frozenset(
    {
        ExpenseCategory.DUTY_CUSTOMS,
        ExpenseCategory.FREIGHT_IMPORT,
        ExpenseCategory.CLEARING_FORWARDING,
        ExpenseCategory.PORT_CHARGES,
        ExpenseCategory.CONTAINER_HANDLING,
    }
)


def _check_mapping() -> None:
    missing = [member.name for member in ExpenseCategory if member not in CATEGORY_ACCOUNT_CODES]
    if missing:
        raise RuntimeError(f"Expense categories without an account mapping: {', '.join(missing)}")


_check_mapping()
