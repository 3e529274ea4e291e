"""Shared domain error messages and error types."""

from enum import Enum
from typing import Any, Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class StorageError(DomainError):
    """A document or row could not be persisted."""


class DatabaseBusyError(StorageError):
    """The database stayed locked by another writer."""


class PostingErrorCategory(str, Enum):
    """Which stage of posting failed."""

    VALIDATION = "validation"
    ACCOUNT_RESOLUTION = "account_resolution"
    BALANCE = "balance"
    NUMBERING = "numbering"
    STORAGE = "storage"


class PostingError(DomainError):
    """A source event could not be turned into a journal entry.

    Nothing is persisted when this is raised: neither the entry nor, when
    posting through ``PostingService.record``, the source event itself.
    """

    category: PostingErrorCategory = PostingErrorCategory.VALIDATION


class PostingValidationError(PostingError, ValidationError):
    """Event-specific precondition failed (missing link, bad amount...)."""

    category = PostingErrorCategory.VALIDATION


class AccountResolutionError(PostingError):
    """No account found for a required leg, including the fallback."""

    category = PostingErrorCategory.ACCOUNT_RESOLUTION


class ImbalancedEntryError(PostingError):
    """Journal lines do not net to zero."""

    category = PostingErrorCategory.BALANCE


class SequenceAllocationError(PostingError):
    """Counter contention exhausted retries."""

    category = PostingErrorCategory.NUMBERING


class PostingStorageError(PostingError, StorageError):
    """The journal entry could not be written."""

    category = PostingErrorCategory.STORAGE


class ParseFailure(DomainError):
    """A statement document yielded no transaction lines."""

    def __init__(self, message: str, diagnostics: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.diagnostics = diagnostics or {}


class ReconciliationConflict(ConflictError):
    """A statement line cannot be linked unambiguously."""


def account_not_found(code: str) -> str:
    """Return message for missing ledger account."""
    return f"Account '{code}' not found"


def account_inactive(code: str) -> str:
    """Return message for a deactivated ledger account."""
    return f"Account '{code}' is inactive"


def bank_account_not_found(bank_account_id: int) -> str:
    """Return message for missing bank account."""
    return f"Bank account {bank_account_id} not found"


def bank_account_unlinked(bank_account_id: int) -> str:
    """Return message for a bank account without a ledger account."""
    return f"Bank account {bank_account_id} has no ledger account"


def bank_reference_required(module: str) -> str:
    """Return message for a bank-funded event without a bank account."""
    return f"{module}: a bank-funded transaction requires a bank account reference"


def cost_object_required(category_label: str) -> str:
    """Return message for a cost-linked category without its link."""
    return f"Expense category '{category_label}' requires a linked cost object (e.g. an import container)"


def no_fallback_account(category_label: str, fallback_code: str) -> str:
    """Return message when neither the category nor fallback account exists."""
    return (
        f"No account found for expense category '{category_label}' "
        f"and general fallback account '{fallback_code}' is missing"
    )


def duplicate_account_code(code: str) -> str:
    """Return message for duplicate account code."""
    return f"Account with code '{code}' already exists"


def entry_not_found(entry_number: str) -> str:
    """Return message for missing journal entry."""
    return f"Journal entry '{entry_number}' not found"


def imbalanced_entry(total_debit: Any, total_credit: Any) -> str:
    """Return message for lines that do not net to zero."""
    return f"Journal lines do not balance: debit {total_debit} != credit {total_credit}"


def statement_line_not_found(line_id: int) -> str:
    """Return message for missing statement line."""
    return f"Statement line {line_id} not found"


def upload_not_found(upload_id: int) -> str:
    """Return message for missing statement upload."""
    return f"Statement upload {upload_id} not found"


def duplicate_statement(bank_account_id: int, document_number: str) -> str:
    """Return message for a document that was already uploaded."""
    return (
        f"This statement was already uploaded for bank account {bank_account_id} "
        f"as {document_number}"
    )


def account_delete_blocked(code: str, line_count: int) -> str:
    """Return message when an account is referenced by journal lines."""
    return (
        f"Cannot delete account '{code}': it is referenced by {line_count} "
        f"journal line{'s' if line_count != 1 else ''}. Deactivate it instead."
    )
