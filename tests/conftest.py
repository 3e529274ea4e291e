"""Shared pytest fixtures for ledgerkit tests."""

import os
import tempfile
import zlib

import pytest

from ledgerkit.database.factories import create_sqlite_database
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.ledger import LedgerService
from ledgerkit.domain.posting import PostingService
from ledgerkit.domain.reconciliation import ReconciliationService
from ledgerkit.domain.sequence import SequenceService
from ledgerkit.domain.statement_import import StatementImportService

# A January 2024 BCA statement with one credit and one debit
SAMPLE_STATEMENT_LINES = [
    "PT CONTOH NIAGA",
    "PERIODE : JANUARI 2024",
    "SALDO AWAL : 3.500.000,00",
    "TANGGAL KETERANGAN CBG MUTASI SALDO",
    "12/01 TRANSFER MASUK 1.500.000,00 CR 5.000.000,00",
    "15/01 BIAYA ADM 15.000,00 DB 4.985.000,00",
    "SALDO AKHIR : 4.985.000,00",
]


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(lines: list[str], compress: bool = False) -> bytes:
    """Build a minimal one-page PDF showing each line in its own text block."""
    operators = []
    y = 800
    for line in lines:
        operators.append(f"BT /F1 10 Tf 40 {y} Td ({_escape(line)}) Tj ET")
        y -= 14
    content = "\n".join(operators).encode("latin-1")

    filters = ""
    if compress:
        content = zlib.compress(content)
        filters = " /Filter /FlateDecode"

    return (
        b"%PDF-1.4\n"
        b"1 0 obj\n<< /Type /Catalog /Pages 2 0 R >>\nendobj\n"
        b"2 0 obj\n<< /Type /Pages /Kids [3 0 R] /Count 1 >>\nendobj\n"
        b"3 0 obj\n<< /Type /Page /Parent 2 0 R /Contents 4 0 R >>\nendobj\n"
        + f"4 0 obj\n<< /Length {len(content)}{filters} >>\nstream\n".encode("latin-1")
        + content
        + b"\nendstream\nendobj\n%%EOF\n"
    )


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def sequence_service(temp_db):
    """Create a SequenceService with a temporary database."""
    return SequenceService(temp_db)


@pytest.fixture
def posting_service(temp_db):
    """Create a PostingService with a temporary database."""
    return PostingService(temp_db, retry_delay=0.01)


@pytest.fixture
def ledger_service(temp_db):
    """Create a LedgerService with a temporary database."""
    return LedgerService(temp_db)


@pytest.fixture
def import_service(temp_db):
    """Create a StatementImportService with a temporary database."""
    return StatementImportService(temp_db, retry_delay=0.01)


@pytest.fixture
def reconciliation_service(temp_db):
    """Create a ReconciliationService with a temporary database."""
    return ReconciliationService(temp_db)


@pytest.fixture
def seeded_chart(account_service):
    """Seed the default chart of accounts."""
    return account_service.seed_default_chart()


@pytest.fixture
def bank_account(account_service, seeded_chart):
    """Create a bank account with its own ledger account."""
    bank_account_id = account_service.create_bank_account(
        name="BCA Operational", bank_name="BCA", account_number="1234567890"
    )
    return account_service.get_bank_account(bank_account_id)


@pytest.fixture
def pdf_factory():
    """Return a builder of minimal statement PDFs."""
    return build_pdf


@pytest.fixture
def sample_statement_lines():
    """Text lines of the sample January 2024 statement."""
    return list(SAMPLE_STATEMENT_LINES)


@pytest.fixture
def sample_statement():
    """PDF bytes of the sample January 2024 statement."""
    return build_pdf(SAMPLE_STATEMENT_LINES)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
