"""Ledger projection service.

Read-only views derived from the journal: account ledgers with running
balances, the trial balance and per-party ledgers. Balances are signed by
the account's normal balance (debit-normal accounts net debit - credit,
credit-normal ones credit - debit).
"""

import logging
from datetime import date
from typing import Optional, Union

from ledgerkit.database.base import Database
from ledgerkit.domain.account import AccountService, normalize_business_key
from ledgerkit.domain.chart import PartyGroup
from ledgerkit.domain.entities import (
    Account,
    AccountLedger,
    JournalEntry,
    LedgerRow,
    PartyBalance,
    TrialBalance,
    TrialBalanceRow,
    ZERO,
)
from ledgerkit.domain.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _check_range(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date is not None and end_date is not None and start_date > end_date:
        raise ValidationError(f"Start date {start_date} is after end date {end_date}")


class LedgerService:
    """Service for ledger views over posted journal entries."""

    def __init__(self, db: Database, accounts: Optional[AccountService] = None):
        """Initialize ledger service.

        Args:
            db: Database instance
            accounts: Account registry (created on ``db`` if omitted)
        """
        self.db = db
        self.accounts = accounts or AccountService(db)

    def account_ledger(
        self,
        code: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> AccountLedger:
        """Ledger of one account.

        Rows are ordered by (entry date, entry number, line number). With a
        start date, movement before it is carried in as the opening balance
        so running balances match an unfiltered ledger.

        Raises:
            NotFoundError: If the account does not exist
            ValidationError: If the range is inverted
        """
        _check_range(start_date, end_date)
        account = self.accounts.resolve(code)
        return self._ledger_for(account, start_date, end_date)

    def _ledger_for(
        self, account: Account, start_date: Optional[date], end_date: Optional[date]
    ) -> AccountLedger:
        opening_balance = ZERO
        if start_date is not None:
            debit, credit = self.db.sum_movements(account.id, before=start_date)
            opening_balance = account.normal_balance.signed(debit, credit)

        running = opening_balance
        rows = []
        for movement in self.db.list_movements([account.id], start_date, end_date):
            running += account.normal_balance.signed(movement.debit, movement.credit)
            rows.append(
                LedgerRow(
                    date=movement.entry_date,
                    entry_number=movement.entry_number,
                    reference_number=movement.source_reference_number,
                    source_module=movement.source_module,
                    description=movement.description or movement.entry_description,
                    debit=movement.debit,
                    credit=movement.credit,
                    running_balance=running,
                )
            )
        return AccountLedger(
            account=account,
            start_date=start_date,
            end_date=end_date,
            opening_balance=opening_balance,
            rows=tuple(rows),
        )

    def trial_balance(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> TrialBalance:
        """Totals and net balance of every account with movement in range.

        The properly signed nets must sum to zero; a non-zero ``imbalance``
        means a broken posting and is logged, not raised.
        """
        _check_range(start_date, end_date)
        rows = []
        for totals in self.db.get_account_totals(start_date, end_date):
            total_debit = totals["total_debit"]
            total_credit = totals["total_credit"]
            if total_debit == ZERO and total_credit == ZERO:
                continue
            account = self.db.get_account(totals["account_id"])
            rows.append(
                TrialBalanceRow(
                    account=account,
                    total_debit=total_debit,
                    total_credit=total_credit,
                    net_balance=account.normal_balance.signed(total_debit, total_credit),
                )
            )
        rows.sort(key=lambda row: row.account.code)

        trial_balance = TrialBalance(start_date=start_date, end_date=end_date, rows=tuple(rows))
        if not trial_balance.is_balanced:
            logger.warning(
                "Trial balance %s..%s is out of balance by %s (debit %s, credit %s)",
                start_date,
                end_date,
                trial_balance.imbalance,
                trial_balance.total_debit,
                trial_balance.total_credit,
            )
        return trial_balance

    def party_ledger(
        self,
        party: Union[PartyGroup, str],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[AccountLedger]:
        """Ledgers scoped to a counterparty.

        Args:
            party: A party group ("staff", "customer", "supplier") for all
                of its accounts with activity, an account code, or a
                provisioned business key such as a staff member's name

        Raises:
            NotFoundError: If nothing matches ``party``
        """
        _check_range(start_date, end_date)
        if isinstance(party, PartyGroup) or party in {group.value for group in PartyGroup}:
            ledgers = [
                self._ledger_for(account, start_date, end_date)
                for account in self.accounts.list_party_accounts(party)
            ]
            return [ledger for ledger in ledgers if ledger.rows or ledger.opening_balance != ZERO]

        account = self.accounts.find(party)
        if account is not None:
            return [self._ledger_for(account, start_date, end_date)]

        business_key = normalize_business_key(party)
        ledgers = []
        for group in PartyGroup:
            provision = self.db.get_provision(group.value, business_key)
            if provision is not None:
                ledgers.append(self._ledger_for(self.db.get_account(provision.account_id), start_date, end_date))
        if not ledgers:
            raise NotFoundError(f"No party account found for '{party}'")
        return ledgers

    def outstanding_summary(self, party_group: Union[PartyGroup, str]) -> list[PartyBalance]:
        """Party accounts with a non-zero balance, largest first."""
        group = PartyGroup(party_group)
        provisions = {p.account_id: p for p in self.db.list_provisions(group.value)}
        totals = {row["account_id"]: row for row in self.db.get_account_totals()}

        balances = []
        for account in self.accounts.list_party_accounts(group):
            row = totals.get(account.id)
            if row is None:
                continue
            balance = account.normal_balance.signed(row["total_debit"], row["total_credit"])
            if balance == ZERO:
                continue
            provision = provisions.get(account.id)
            balances.append(
                PartyBalance(
                    business_key=provision.business_key if provision else account.code,
                    display_name=provision.display_name if provision else account.name,
                    account_code=account.code,
                    outstanding_balance=balance,
                    last_transaction_date=row["last_date"],
                )
            )
        balances.sort(key=lambda b: (-b.outstanding_balance, b.display_name))
        return balances

    def staff_outstanding_summary(self) -> list[PartyBalance]:
        """Outstanding staff advances, largest first."""
        return self.outstanding_summary(PartyGroup.STAFF)

    def journal_register(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[JournalEntry]:
        """Journal entries with their lines, in date and number order."""
        _check_range(start_date, end_date)
        return self.db.list_entries(start_date, end_date)
