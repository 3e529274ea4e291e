"""CLI helper for turning a --bank value into a bank account ID."""

from __future__ import annotations

import click
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.errors import NotFoundError
from ledgerkit.utils.account_resolver import resolve_bank_account


def resolve_bank_or_exit(
    ctx: click.Context, account_service: AccountService, bank: str | int
) -> int:
    """Resolve bank account name or ID, exiting with 1 if there is none."""
    try:
        return resolve_bank_account(account_service, bank)
    except NotFoundError as exc:
        handle_domain_error(ctx, exc)
