"""Account registry domain service."""

import logging
from typing import Optional, Union

from ledgerkit.database.base import Database
from ledgerkit.domain.categories import ExpenseCategory
from ledgerkit.domain.chart import (
    BANK_PARENT_CODE,
    DEFAULT_CHART,
    GENERAL_EXPENSE_CODE,
    PartyGroup,
)
from ledgerkit.domain.entities import (
    Account,
    AccountProvision,
    AccountType,
    BankAccount,
    NormalBalance,
)
from ledgerkit.domain.errors import (
    AccountResolutionError,
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
    account_delete_blocked,
    account_inactive,
    account_not_found,
    bank_account_not_found,
    bank_account_unlinked,
    duplicate_account_code,
    no_fallback_account,
)
from ledgerkit.domain.sequence import SequenceService

logger = logging.getLogger(__name__)

# Codes in a party range may also be created by hand; skip those that are taken
MAX_CODE_PROBES = 50


def normalize_business_key(human_key: str) -> str:
    """Case-fold and collapse whitespace so "Budi  Santoso" and "budi santoso" match."""
    return " ".join(human_key.split()).casefold()


class AccountService:
    """Service for the chart of accounts, party accounts and bank accounts."""

    def __init__(self, db: Database, sequences: Optional[SequenceService] = None):
        """Initialize account service.

        Args:
            db: Database instance
            sequences: Sequence service used to number provisioned accounts
        """
        self.db = db
        self.sequences = sequences or SequenceService(db)

    def create_account(
        self,
        code: str,
        name: str,
        account_type: Union[AccountType, str],
        normal_balance: Union[NormalBalance, str, None] = None,
    ) -> int:
        """Create a ledger account.

        Args:
            code: Unique account code, e.g. "6310"
            name: Account name
            account_type: asset, liability, equity, income or expense
            normal_balance: Defaults from the account type

        Returns:
            Account ID

        Raises:
            ValidationError: If code or name is empty
            ConflictError: If the code already exists
        """
        code = code.strip()
        name = name.strip()
        if not code or not name:
            raise ValidationError("Account code and name are required")
        account_type = AccountType(account_type)
        if normal_balance is None:
            normal_balance = account_type.default_normal_balance
        else:
            normal_balance = NormalBalance(normal_balance)

        if self.db.get_account_by_code(code) is not None:
            raise ConflictError(duplicate_account_code(code))
        return self.db.create_account(
            code=code, name=name, account_type=account_type, normal_balance=normal_balance
        )

    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        return self.db.get_account(account_id)

    def find(self, code: str) -> Optional[Account]:
        """Get account by code, or None."""
        return self.db.get_account_by_code(code.strip())

    def resolve(self, code: str) -> Account:
        """Get account by code.

        Raises:
            NotFoundError: If no account has this code
        """
        account = self.find(code)
        if account is None:
            raise NotFoundError(account_not_found(code))
        return account

    def resolve_by_category(self, category: Union[ExpenseCategory, str]) -> Account:
        """Resolve the account an expense category posts to.

        Falls back to the general expense account, with a log line, when the
        category is deliberately uncategorized or its mapped account is
        missing or inactive.

        Raises:
            AccountResolutionError: If the fallback account is unusable too
        """
        if not isinstance(category, ExpenseCategory):
            category = ExpenseCategory.parse(category)

        code = category.account_code
        if code is None:
            logger.info(
                "Category '%s' is uncategorized; posting to general expense account %s",
                category.value,
                GENERAL_EXPENSE_CODE,
            )
        else:
            account = self.find(code)
            if account is not None and account.is_active:
                return account
            logger.warning(
                "Account %s for category '%s' is missing or inactive; falling back to %s",
                code,
                category.value,
                GENERAL_EXPENSE_CODE,
            )

        fallback = self.find(GENERAL_EXPENSE_CODE)
        if fallback is None or not fallback.is_active:
            raise AccountResolutionError(no_fallback_account(category.value, GENERAL_EXPENSE_CODE))
        return fallback

    def provision(
        self,
        party_group: Union[PartyGroup, str],
        human_key: str,
        display_name: Optional[str] = None,
    ) -> Account:
        """Return the account of a party, creating it on first use.

        Safe to retry: the mapping from ``(party_group, business key)`` is
        persisted with the account, and a concurrent duplicate is resolved
        to the winner's account.

        Args:
            party_group: staff, customer or supplier
            human_key: Business key such as a staff member's name
            display_name: Name shown on the account, defaults to the key

        Raises:
            ValidationError: If the key is empty
        """
        group = PartyGroup(party_group)
        business_key = normalize_business_key(human_key)
        if not business_key:
            raise ValidationError(f"A {group.value} name is required")

        existing = self._provisioned_account(group, business_key)
        if existing is not None:
            return existing

        label = display_name or " ".join(human_key.split())
        if self.db.in_transaction:
            # The enclosing unit of work owns conflict handling
            return self._create_party_account(group, business_key, label)

        try:
            with self.db.transaction():
                return self._create_party_account(group, business_key, label)
        except ConflictError:
            winner = self._provisioned_account(group, business_key)
            if winner is None:
                raise
            logger.info("Concurrent provisioning of %s '%s' resolved to %s", group.value, label, winner.code)
            return winner

    def _provisioned_account(self, group: PartyGroup, business_key: str) -> Optional[Account]:
        provision = self.db.get_provision(group.value, business_key)
        if provision is None:
            return None
        return self.db.get_account(provision.account_id)

    def _create_party_account(self, group: PartyGroup, business_key: str, label: str) -> Account:
        for _ in range(MAX_CODE_PROBES):
            ordinal = self.sequences.next_ordinal("PARTY", group.parent_code)
            code = group.code_for(ordinal)
            if self.db.get_account_by_code(code) is None:
                break
        else:
            raise ConflictError(f"No free account code in the {group.value} range {group.parent_code}")

        account_id = self.db.create_account(
            code=code,
            name=f"{group.name_suffix} - {label}",
            account_type=group.account_type,
            normal_balance=group.account_type.default_normal_balance,
        )
        self.db.create_provision(group.value, business_key, label, account_id)
        logger.info("Provisioned %s account %s for '%s'", group.value, code, label)
        return self.db.get_account(account_id)

    def deactivate(self, code: str) -> None:
        """Deactivate an account; it stays in reports but rejects new postings."""
        account = self.resolve(code)
        self.db.set_account_active(account.id, False)

    def activate(self, code: str) -> None:
        """Reactivate a deactivated account."""
        account = self.resolve(code)
        self.db.set_account_active(account.id, True)

    def delete_account(self, code: str) -> None:
        """Delete an account that no journal line references.

        Raises:
            NotFoundError: If the account does not exist
            DependencyError: If journal lines reference it
        """
        account = self.resolve(code)
        line_count = self.db.get_account_line_count(account.id)
        if line_count > 0:
            raise DependencyError(account_delete_blocked(account.code, line_count))
        self.db.delete_account(account.id)

    def require_active(self, account: Account) -> Account:
        """Raise AccountResolutionError if the account cannot take postings."""
        if not account.is_active:
            raise AccountResolutionError(account_inactive(account.code))
        return account

    def list_accounts(self, include_inactive: bool = False) -> list[Account]:
        """List accounts ordered by code."""
        return self.db.list_accounts(include_inactive=include_inactive)

    def list_provisions(self, party_group: Union[PartyGroup, str, None] = None) -> list[AccountProvision]:
        """List party mappings."""
        group = PartyGroup(party_group).value if party_group is not None else None
        return self.db.list_provisions(group)

    def list_party_accounts(self, party_group: Union[PartyGroup, str]) -> list[Account]:
        """Accounts in a party group's range, including hand-made ones."""
        group = PartyGroup(party_group)
        return [
            account
            for account in self.db.list_accounts(include_inactive=True, code_prefix=f"{group.parent_code}-")
            if group.owns_code(account.code)
        ]

    def seed_default_chart(self) -> int:
        """Create the default chart of accounts. Idempotent.

        Returns:
            Number of accounts created
        """
        created = 0
        with self.db.transaction():
            for code, name, account_type in DEFAULT_CHART:
                if self.db.get_account_by_code(code) is None:
                    self.db.create_account(
                        code=code,
                        name=name,
                        account_type=account_type,
                        normal_balance=account_type.default_normal_balance,
                    )
                    created += 1
        logger.info("Seeded %d default account(s)", created)
        return created

    # Bank accounts
    def create_bank_account(
        self,
        name: str,
        bank_name: str,
        account_number: Optional[str] = None,
        currency: str = "IDR",
        account_code: Optional[str] = None,
    ) -> int:
        """Create a bank account linked to its ledger account.

        Without ``account_code`` a new asset account is opened under the bank
        parent code (e.g. ``1110-001``).

        Returns:
            Bank account ID

        Raises:
            ConflictError: If a bank account with this name exists
        """
        name = name.strip()
        if not name or not bank_name.strip():
            raise ValidationError("Bank account name and bank name are required")
        if any(existing.name == name for existing in self.db.list_bank_accounts()):
            raise ConflictError(f"Bank account with name '{name}' already exists")

        with self.db.transaction():
            if account_code is not None:
                ledger_account = self.resolve(account_code)
            else:
                ledger_account = self._open_bank_ledger_account(name)
            return self.db.create_bank_account(
                name=name,
                bank_name=bank_name.strip(),
                account_number=account_number,
                currency=currency.upper(),
                account_id=ledger_account.id,
            )

    def _open_bank_ledger_account(self, name: str) -> Account:
        for _ in range(MAX_CODE_PROBES):
            ordinal = self.sequences.next_ordinal("PARTY", BANK_PARENT_CODE)
            code = f"{BANK_PARENT_CODE}-{ordinal:03d}"
            if self.db.get_account_by_code(code) is None:
                break
        else:
            raise ConflictError(f"No free account code in the bank range {BANK_PARENT_CODE}")
        account_id = self.db.create_account(
            code=code,
            name=f"Bank - {name}",
            account_type=AccountType.ASSET,
            normal_balance=NormalBalance.DEBIT,
        )
        return self.db.get_account(account_id)

    def get_bank_account(self, bank_account_id: int) -> Optional[BankAccount]:
        """Get bank account by ID."""
        return self.db.get_bank_account(bank_account_id)

    def list_bank_accounts(self) -> list[BankAccount]:
        """List all bank accounts."""
        return self.db.list_bank_accounts()

    def resolve_bank_ledger_account(self, bank_account_id: int) -> Account:
        """Ledger account a bank account posts to.

        Raises:
            NotFoundError: If the bank account does not exist
            ValidationError: If it has no ledger account
        """
        bank_account = self.db.get_bank_account(bank_account_id)
        if bank_account is None:
            raise NotFoundError(bank_account_not_found(bank_account_id))
        if bank_account.account_id is None:
            raise ValidationError(bank_account_unlinked(bank_account_id))
        account = self.db.get_account(bank_account.account_id)
        if account is None:
            raise ValidationError(bank_account_unlinked(bank_account_id))
        return account
