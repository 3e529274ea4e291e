"""Utility for resolving bank account names to IDs."""

from ledgerkit.domain.account import AccountService
from ledgerkit.domain.errors import NotFoundError, bank_account_not_found


def resolve_bank_account(account_service: AccountService, bank: str | int) -> int:
    """Resolve a bank account name or ID to its ID.

    Numeric input is treated as an ID first; anything else (or an ID that
    does not exist) is matched against bank account names, case-insensitively.

    Args:
        account_service: AccountService instance
        bank: Bank account name, or ID as int or numeric string

    Returns:
        Bank account ID

    Raises:
        NotFoundError: If no bank account matches
    """
    if isinstance(bank, int):
        if account_service.get_bank_account(bank) is None:
            raise NotFoundError(bank_account_not_found(bank))
        return bank

    text = bank.strip()
    if text.isdigit() and account_service.get_bank_account(int(text)) is not None:
        return int(text)

    for bank_account in account_service.list_bank_accounts():
        if bank_account.name.casefold() == text.casefold():
            return bank_account.id

    raise NotFoundError(f"Bank account '{bank}' not found")
