"""Domain layer for ledgerkit application."""

_SERVICES = {
    "AccountService": "ledgerkit.domain.account",
    "SequenceService": "ledgerkit.domain.sequence",
    "PostingService": "ledgerkit.domain.posting",
    "LedgerService": "ledgerkit.domain.ledger",
    "StatementImportService": "ledgerkit.domain.statement_import",
    "ReconciliationService": "ledgerkit.domain.reconciliation",
}

__all__ = list(_SERVICES)


# Services import the database layer, which imports domain entities; resolve lazily
def __getattr__(name):
    if name in _SERVICES:
        import importlib

        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
