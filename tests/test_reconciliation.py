"""Tests for bank reconciliation."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerkit.cli.main import cli
from ledgerkit.domain.chart import PartyGroup
from ledgerkit.domain.entities import MatchStatus, PaymentMethod, ReconciliationStatus, SourceModule
from ledgerkit.domain.errors import NotFoundError, ReconciliationConflict, ValidationError
from ledgerkit.domain.events import Allocation, PaymentVoucher, ReceiptVoucher
from ledgerkit.domain.reconciliation import ReconciliationService


def _receipt(posting_service, bank_account, reference_id, on_date, amount="1500000"):
    """Post money received into the bank; returns the bank debit line."""
    entry = posting_service.post(
        ReceiptVoucher(
            reference_id=reference_id,
            event_date=on_date,
            allocations=(Allocation(amount=Decimal(amount), party_group=PartyGroup.CUSTOMER, party_key="CV Maju"),),
            payment_method=PaymentMethod.BANK,
            bank_account_id=bank_account.id,
        )
    )
    return entry.lines[0]


def _bank_charge(posting_service, bank_account, reference_id, on_date, amount="15000"):
    """Post money paid out of the bank; returns the bank credit line."""
    entry = posting_service.post(
        PaymentVoucher(
            reference_id=reference_id,
            event_date=on_date,
            allocations=(Allocation(amount=Decimal(amount), account_code="6400"),),
            payment_method=PaymentMethod.BANK,
            bank_account_id=bank_account.id,
        )
    )
    return entry.lines[-1]


@pytest.fixture
def upload(import_service, bank_account, sample_statement):
    """Upload the sample statement: a credit on 12/01 and a debit on 15/01."""
    return import_service.upload(sample_statement, bank_account.id)


@pytest.fixture
def statement_lines(import_service, upload):
    credit_line, debit_line = import_service.list_lines(upload_id=upload.upload_id)
    return credit_line, debit_line


def test_match_receipt_to_credit_line(reconciliation_service, posting_service, temp_db, bank_account, statement_lines):
    """Test a bank credit matches the ledger debit on the bank account."""
    credit_line, _ = statement_lines
    journal_line = _receipt(posting_service, bank_account, "rec-1", date(2024, 1, 12))

    result = reconciliation_service.match(credit_line.id)

    assert result.status is MatchStatus.MATCHED
    assert result.journal_line_id == journal_line.id
    stored = temp_db.get_statement_line(credit_line.id)
    assert stored.reconciliation_status is ReconciliationStatus.MATCHED
    assert stored.matched_journal_line_id == journal_line.id
    assert stored.matched_at is not None


def test_match_bank_charge_to_debit_line(reconciliation_service, posting_service, bank_account, statement_lines):
    """Test a bank debit matches the ledger credit on the bank account."""
    _, debit_line = statement_lines
    journal_line = _bank_charge(posting_service, bank_account, "pay-1", date(2024, 1, 15))

    result = reconciliation_service.match(debit_line.id)

    assert result.status is MatchStatus.MATCHED
    assert result.journal_line_id == journal_line.id


def test_wrong_side_does_not_match(reconciliation_service, posting_service, bank_account, statement_lines):
    """Test money leaving the bank never explains money coming in."""
    credit_line, _ = statement_lines
    _bank_charge(posting_service, bank_account, "pay-1", date(2024, 1, 12), amount="1500000")

    assert reconciliation_service.match(credit_line.id).status is MatchStatus.NO_MATCH


def test_tolerance_window(temp_db, posting_service, bank_account, statement_lines):
    """Test candidates must fall within the tolerance in days."""
    credit_line, _ = statement_lines
    _receipt(posting_service, bank_account, "rec-1", date(2024, 1, 16))

    assert ReconciliationService(temp_db).match(credit_line.id).status is MatchStatus.NO_MATCH
    assert ReconciliationService(temp_db, tolerance_days=4).match(credit_line.id).status is MatchStatus.MATCHED


def test_tolerance_edge_is_inclusive(reconciliation_service, posting_service, bank_account, statement_lines):
    """Test an entry exactly the tolerance away still matches."""
    credit_line, _ = statement_lines
    _receipt(posting_service, bank_account, "rec-1", date(2024, 1, 9))

    assert reconciliation_service.match(credit_line.id).status is MatchStatus.MATCHED


def test_closest_date_wins(reconciliation_service, posting_service, bank_account, statement_lines):
    """Test the candidate closest in date is chosen."""
    credit_line, _ = statement_lines
    _receipt(posting_service, bank_account, "rec-1", date(2024, 1, 14))
    closest = _receipt(posting_service, bank_account, "rec-2", date(2024, 1, 11))

    result = reconciliation_service.match(credit_line.id)

    assert result.journal_line_id == closest.id


def test_equally_close_candidates_are_ambiguous(
    reconciliation_service, posting_service, temp_db, bank_account, statement_lines
):
    """Test a tie at the closest distance leaves the line unmatched."""
    credit_line, _ = statement_lines
    before = _receipt(posting_service, bank_account, "rec-1", date(2024, 1, 11))
    after = _receipt(posting_service, bank_account, "rec-2", date(2024, 1, 13))

    result = reconciliation_service.match(credit_line.id)

    assert result.status is MatchStatus.AMBIGUOUS
    assert set(result.candidate_line_ids) == {before.id, after.id}
    assert "equally close" in result.message
    assert temp_db.get_statement_line(credit_line.id).reconciliation_status is ReconciliationStatus.UNMATCHED


def test_matched_line_is_not_reevaluated(reconciliation_service, posting_service, bank_account, statement_lines):
    """Test matching an already matched line reports it as such."""
    credit_line, _ = statement_lines
    journal_line = _receipt(posting_service, bank_account, "rec-1", date(2024, 1, 12))
    reconciliation_service.match(credit_line.id)

    result = reconciliation_service.match(credit_line.id)

    assert result.status is MatchStatus.ALREADY_MATCHED
    assert result.journal_line_id == journal_line.id


def test_journal_line_matches_only_one_statement_line(
    reconciliation_service, import_service, posting_service, bank_account, statement_lines, pdf_factory
):
    """Test a claimed journal line is no longer a candidate."""
    credit_line, _ = statement_lines
    _receipt(posting_service, bank_account, "rec-1", date(2024, 1, 12))
    reconciliation_service.match(credit_line.id)

    second = import_service.upload(
        pdf_factory(["PERIODE : JANUARI 2024", "13/01 TRANSFER MASUK 1.500.000,00 CR 6.500.000,00"]),
        bank_account.id,
    )
    (second_line,) = import_service.list_lines(upload_id=second.upload_id)

    assert reconciliation_service.candidates(second_line) == []
    assert reconciliation_service.match(second_line.id).status is MatchStatus.NO_MATCH


def test_match_upload_summary(reconciliation_service, posting_service, bank_account, upload):
    """Test a batch run counts its outcomes."""
    _receipt(posting_service, bank_account, "rec-1", date(2024, 1, 12))

    summary = reconciliation_service.match_upload(upload.upload_id)
    assert (summary.matched, summary.already_matched, summary.ambiguous, summary.no_match) == (1, 0, 0, 1)

    _bank_charge(posting_service, bank_account, "pay-1", date(2024, 1, 15))
    summary = reconciliation_service.match_bank_account(bank_account.id)
    assert (summary.matched, summary.already_matched, summary.ambiguous, summary.no_match) == (1, 1, 0, 0)
    assert len(summary.results) == 2


def test_unmatch(reconciliation_service, posting_service, temp_db, bank_account, statement_lines):
    """Test clearing a match makes the line matchable again."""
    credit_line, _ = statement_lines
    _receipt(posting_service, bank_account, "rec-1", date(2024, 1, 12))
    reconciliation_service.match(credit_line.id)

    assert reconciliation_service.unmatch(credit_line.id) is True
    stored = temp_db.get_statement_line(credit_line.id)
    assert stored.reconciliation_status is ReconciliationStatus.UNMATCHED
    assert stored.matched_journal_line_id is None
    assert stored.matched_at is None

    assert reconciliation_service.unmatch(credit_line.id) is False
    assert reconciliation_service.match(credit_line.id).status is MatchStatus.MATCHED


def test_unposting_resets_matches(reconciliation_service, posting_service, temp_db, bank_account, statement_lines):
    """Test removing a matched entry puts its statement line back to unmatched."""
    credit_line, _ = statement_lines
    _receipt(posting_service, bank_account, "rec-1", date(2024, 1, 12))
    reconciliation_service.match(credit_line.id)

    assert posting_service.unpost("receipt", "rec-1")

    stored = temp_db.get_statement_line(credit_line.id)
    assert stored.reconciliation_status is ReconciliationStatus.UNMATCHED
    assert stored.matched_journal_line_id is None


def test_link(reconciliation_service, posting_service, bank_account, statement_lines):
    """Test linking a statement line to a chosen journal line."""
    credit_line, _ = statement_lines
    far_away = _receipt(posting_service, bank_account, "rec-1", date(2024, 1, 30))

    result = reconciliation_service.link(credit_line.id, far_away.id)

    assert result.status is MatchStatus.MATCHED
    assert result.journal_line_id == far_away.id


def test_link_conflicts(
    reconciliation_service, import_service, posting_service, temp_db, bank_account, statement_lines, pdf_factory
):
    """Test links that would break the one-to-one pairing are refused."""
    credit_line, debit_line = statement_lines
    receipt_line = _receipt(posting_service, bank_account, "rec-1", date(2024, 1, 12))
    charge_line = _bank_charge(posting_service, bank_account, "pay-1", date(2024, 1, 15))
    receivable_line = temp_db.find_entry_by_source(SourceModule.RECEIPT, "rec-1").lines[1]

    with pytest.raises(ReconciliationConflict, match="not posted to bank ledger account 1110-001"):
        reconciliation_service.link(credit_line.id, receivable_line.id)
    with pytest.raises(ReconciliationConflict, match="not a ledger debit"):
        reconciliation_service.link(credit_line.id, charge_line.id)

    reconciliation_service.link(credit_line.id, receipt_line.id)
    with pytest.raises(ReconciliationConflict, match="already matched"):
        reconciliation_service.link(credit_line.id, receipt_line.id)

    second = import_service.upload(
        pdf_factory(["PERIODE : JANUARI 2024", "13/01 TRANSFER MASUK 1.500.000,00 CR 6.500.000,00"]),
        bank_account.id,
    )
    (second_line,) = import_service.list_lines(upload_id=second.upload_id)
    with pytest.raises(ReconciliationConflict, match=f"Journal line {receipt_line.id} is already matched"):
        reconciliation_service.link(second_line.id, receipt_line.id)

    assert temp_db.get_statement_line(debit_line.id).reconciliation_status is ReconciliationStatus.UNMATCHED


def test_missing_lines_and_uploads(reconciliation_service, bank_account, statement_lines):
    """Test unknown IDs raise NotFoundError."""
    credit_line, _ = statement_lines
    with pytest.raises(NotFoundError):
        reconciliation_service.match(999)
    with pytest.raises(NotFoundError):
        reconciliation_service.unmatch(999)
    with pytest.raises(NotFoundError):
        reconciliation_service.match_upload(999)
    with pytest.raises(NotFoundError):
        reconciliation_service.match_bank_account(999)
    with pytest.raises(NotFoundError, match="Journal line 999 not found"):
        reconciliation_service.link(credit_line.id, 999)


def test_negative_tolerance_rejected(temp_db):
    """Test the tolerance cannot be negative."""
    with pytest.raises(ValidationError):
        ReconciliationService(temp_db, tolerance_days=-1)


def test_reconcile_run_command(cli_runner, temp_db, posting_service, bank_account, upload):
    """Test running reconciliation from the command line."""
    _receipt(posting_service, bank_account, "rec-1", date(2024, 1, 12))

    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "reconcile", "run", "--upload", str(upload.upload_id), "-v"]
    )

    assert result.exit_code == 0
    assert "Reconciliation complete:" in result.output
    assert "Matched: 1" in result.output
    assert "Unmatched: 1" in result.output
    assert "no_match" in result.output


def test_reconcile_run_command_reports_ambiguous_lines(cli_runner, temp_db, posting_service, bank_account, upload):
    """Test ambiguous lines are always listed."""
    _receipt(posting_service, bank_account, "rec-1", date(2024, 1, 11))
    _receipt(posting_service, bank_account, "rec-2", date(2024, 1, 13))

    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "reconcile", "run", "--bank", "BCA Operational"])

    assert result.exit_code == 0
    assert "Ambiguous: 1" in result.output
    assert "ambiguous, candidate journal lines" in result.output


def test_reconcile_run_needs_one_scope(cli_runner, temp_db, bank_account, upload):
    """Test exactly one of --upload and --bank is required."""
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "reconcile", "run"])
    assert result.exit_code == 1
    assert "exactly one of --upload or --bank" in result.output

    result = cli_runner.invoke(
        cli,
        ["--db-path", temp_db.database_path, "reconcile", "run", "--upload", str(upload.upload_id), "--bank", "1"],
    )
    assert result.exit_code == 1


def test_reconcile_unmatch_and_link_commands(cli_runner, temp_db, posting_service, bank_account, statement_lines):
    """Test manual link and unmatch commands."""
    credit_line, _ = statement_lines
    journal_line = _receipt(posting_service, bank_account, "rec-1", date(2024, 1, 20))

    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "reconcile", "link", str(credit_line.id), str(journal_line.id)]
    )
    assert result.exit_code == 0
    assert f"Linked statement line {credit_line.id} to journal line {journal_line.id}" in result.output

    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "reconcile", "link", str(credit_line.id), str(journal_line.id)]
    )
    assert result.exit_code == 1
    assert "already matched" in result.output

    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "reconcile", "unmatch", str(credit_line.id)])
    assert result.exit_code == 0
    assert f"Unmatched statement line {credit_line.id}" in result.output

    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "reconcile", "unmatch", str(credit_line.id)])
    assert f"Statement line {credit_line.id} was not matched" in result.output
