"""SQLAlchemy models for ledgerkit database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    CheckConstraint,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

MONEY = Numeric(15, 2)


class Account(Base):
    """Chart of accounts model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    account_type = Column(String, nullable=False)
    normal_balance = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    journal_lines = relationship("JournalLine", back_populates="account")


class AccountProvision(Base):
    """Business key to account mapping created by on-demand provisioning."""

    __tablename__ = "account_provisions"

    id = Column(Integer, primary_key=True)
    party_group = Column(String, nullable=False)
    business_key = Column(String, nullable=False)
    display_name = Column(String, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, unique=True)

    __table_args__ = (UniqueConstraint("party_group", "business_key", name="uq_provision_key"),)

    account = relationship("Account")


class BankAccount(Base):
    """Bank account master data."""

    __tablename__ = "bank_accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    bank_name = Column(String, nullable=False)
    account_number = Column(String, nullable=True)
    currency = Column(String, nullable=False, default="IDR")
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    account = relationship("Account")
    statement_uploads = relationship("BankStatementUpload", back_populates="bank_account")


class SequenceCounter(Base):
    """Last allocated ordinal per document kind and period."""

    __tablename__ = "sequence_counters"

    document_kind = Column(String, primary_key=True)
    period_key = Column(String, primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)


class JournalEntry(Base):
    """Journal entry header."""

    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True)
    entry_number = Column(String, unique=True, nullable=False)
    entry_date = Column(Date, nullable=False)
    source_module = Column(String, nullable=False)
    source_reference_id = Column(String, nullable=False)
    source_reference_number = Column(String, nullable=True)
    description = Column(String, nullable=True)
    is_posted = Column(Boolean, default=True, nullable=False)
    created_by = Column(String, nullable=True)
    posted_at = Column(DateTime, nullable=True)
    reverses_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)

    # One entry per source event
    __table_args__ = (
        UniqueConstraint("source_module", "source_reference_id", name="uq_entry_source"),
        # IDs are handed to callers and must never be reused after an unpost
        {"sqlite_autoincrement": True},
    )

    # Relationships
    lines = relationship(
        "JournalLine",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalLine.line_number",
    )


class JournalLine(Base):
    """One debit or credit leg of a journal entry."""

    __tablename__ = "journal_lines"

    id = Column(Integer, primary_key=True)
    entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=False)
    line_number = Column(Integer, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    debit = Column(MONEY, nullable=False, default=0)
    credit = Column(MONEY, nullable=False, default=0)
    description = Column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("entry_id", "line_number", name="uq_entry_line_number"),
        CheckConstraint("debit >= 0 AND credit >= 0", name="ck_line_non_negative"),
        CheckConstraint(
            "(debit > 0 AND credit = 0) OR (credit > 0 AND debit = 0)",
            name="ck_line_one_side",
        ),
        {"sqlite_autoincrement": True},
    )

    # Relationships
    entry = relationship("JournalEntry", back_populates="lines")
    account = relationship("Account", back_populates="journal_lines")


class SourceEvent(Base):
    """Business event recorded together with its journal entry."""

    __tablename__ = "source_events"

    id = Column(Integer, primary_key=True)
    source_module = Column(String, nullable=False)
    reference_id = Column(String, nullable=False)
    reference_number = Column(String, nullable=True)
    event_date = Column(Date, nullable=False)
    amount = Column(MONEY, nullable=False)
    description = Column(String, nullable=True)
    payload = Column(Text, nullable=False, default="{}")
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (
        UniqueConstraint("source_module", "reference_id", name="uq_source_event_reference"),
    )


class BankStatementUpload(Base):
    """Bank statement upload header."""

    __tablename__ = "bank_statement_uploads"

    id = Column(Integer, primary_key=True)
    document_number = Column(String, unique=True, nullable=False)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=False)
    period_label = Column(String, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    currency = Column(String, nullable=False)
    opening_balance = Column(MONEY, nullable=False, default=0)
    closing_balance = Column(MONEY, nullable=False, default=0)
    total_debits = Column(MONEY, nullable=False, default=0)
    total_credits = Column(MONEY, nullable=False, default=0)
    transaction_count = Column(Integer, nullable=False, default=0)
    source_document_ref = Column(String, nullable=True)
    document_sha256 = Column(String, nullable=False)
    parser_name = Column(String, nullable=False)
    status = Column(String, nullable=False, default="completed")
    uploaded_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (
        UniqueConstraint("bank_account_id", "document_sha256", name="uq_upload_document"),
    )

    # Relationships
    bank_account = relationship("BankAccount", back_populates="statement_uploads")
    lines = relationship(
        "BankStatementLine",
        back_populates="upload",
        cascade="all, delete-orphan",
        order_by="BankStatementLine.line_number",
    )


class BankStatementLine(Base):
    """Transaction line of an uploaded bank statement."""

    __tablename__ = "bank_statement_lines"

    id = Column(Integer, primary_key=True)
    upload_id = Column(Integer, ForeignKey("bank_statement_uploads.id"), nullable=False)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=False)
    line_number = Column(Integer, nullable=False)
    transaction_date = Column(Date, nullable=False)
    description = Column(String, nullable=False)
    debit_amount = Column(MONEY, nullable=False, default=0)
    credit_amount = Column(MONEY, nullable=False, default=0)
    running_balance = Column(MONEY, nullable=True)
    reconciliation_status = Column(String, nullable=False, default="unmatched")
    matched_journal_line_id = Column(
        Integer, ForeignKey("journal_lines.id"), nullable=True, unique=True
    )
    matched_at = Column(DateTime, nullable=True)
    currency = Column(String, nullable=False)

    # Relationships
    upload = relationship("BankStatementUpload", back_populates="lines")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine_for_url(database_url: str) -> Engine:
    """Create an engine; SQLite connections wait on locks and enforce foreign keys."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["timeout"] = 30
    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine_for_url(database_url)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
