"""Tests for the posting commands and CLI wiring."""

from decimal import Decimal

from ledgerkit.cli.main import cli
from ledgerkit.domain.entities import SourceModule


def _invoke(cli_runner, temp_db, *args):
    return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args])


def test_help_does_not_need_a_database(cli_runner, tmp_path):
    """Test help output works without touching the database."""
    db_path = tmp_path / "never-created.db"

    result = cli_runner.invoke(cli, ["--db-path", str(db_path), "--help"])

    assert result.exit_code == 0
    assert "Double-entry ledger" in result.output
    assert not db_path.exists()


def test_db_path_from_environment(cli_runner, temp_db):
    """Test LEDGERKIT_DB_PATH selects the database."""
    result = cli_runner.invoke(cli, ["init-accounts"], env={"LEDGERKIT_DB_PATH": temp_db.database_path})

    assert result.exit_code == 0
    assert temp_db.get_account_by_code("1102") is not None


def test_invalid_log_level(cli_runner, temp_db):
    """Test the log level is validated."""
    result = _invoke(cli_runner, temp_db, "--log-level", "LOUD", "account", "list")
    assert result.exit_code == 2


def test_post_cash_expense(cli_runner, temp_db, seeded_chart):
    """Test posting a petty cash expense."""
    result = _invoke(
        cli_runner, temp_db,
        "post", "cash-expense", "150,000", "--category", "office supplies",
        "--paid-to", "Toko Abadi", "--date", "2024-01-15", "--ref", "pc-1", "--by", "kasir",
    )

    assert result.exit_code == 0
    assert "Posted JE-20240115-0001" in result.output
    assert "Voucher: PCV-2401-0001" in result.output
    assert "Date: 2024-01-15" in result.output
    assert "6310 Office Supplies" in result.output
    assert "150,000.00" in result.output

    event = temp_db.get_source_event(SourceModule.PETTY_CASH, "pc-1")
    assert event.created_by == "kasir"
    assert event.payload["paid_to"] == "Toko Abadi"


def test_post_is_idempotent_per_reference(cli_runner, temp_db, seeded_chart):
    """Test reposting a reference prints the existing entry."""
    args = ("post", "cash-expense", "50000", "--date", "2024-01-15", "--ref", "pc-1")

    first = _invoke(cli_runner, temp_db, *args)
    second = _invoke(cli_runner, temp_db, *args)

    assert second.exit_code == 0
    assert "Posted JE-20240115-0001" in first.output
    assert "Posted JE-20240115-0001" in second.output
    assert len(temp_db.list_entries()) == 1


def test_post_rejects_bad_input(cli_runner, temp_db, seeded_chart):
    """Test amount, date and category errors exit with 1."""
    result = _invoke(cli_runner, temp_db, "post", "cash-expense", "abc")
    assert result.exit_code == 1
    assert "Invalid amount format" in result.output

    result = _invoke(cli_runner, temp_db, "post", "cash-expense", "(500)")
    assert result.exit_code == 1
    assert "Amount must be positive" in result.output

    result = _invoke(cli_runner, temp_db, "post", "cash-expense", "500", "--date", "someday")
    assert result.exit_code == 1
    assert "Invalid date format" in result.output

    result = _invoke(cli_runner, temp_db, "post", "cash-expense", "500", "--category", "Snacks")
    assert result.exit_code == 1
    assert "Unknown expense category 'Snacks'" in result.output

    assert temp_db.list_entries() == []


def test_post_cost_linked_category_needs_cost_ref(cli_runner, temp_db, seeded_chart):
    """Test posting errors are reported and nothing is stored."""
    result = _invoke(
        cli_runner, temp_db, "post", "cash-expense", "2,500,000", "--category", "Duty & Customs", "--ref", "pc-9"
    )

    assert result.exit_code == 1
    assert result.output.startswith("Error:")
    assert temp_db.get_source_event(SourceModule.PETTY_CASH, "pc-9") is None

    result = _invoke(
        cli_runner, temp_db,
        "post", "cash-expense", "2,500,000", "--category", "Duty & Customs", "--cost-ref", "CONT-0042", "--ref", "pc-9",
    )
    assert result.exit_code == 0
    assert "1140 Inventory - Import Costs" in result.output


def test_post_cash_withdraw(cli_runner, temp_db, bank_account):
    """Test drawing cash from the bank."""
    result = _invoke(
        cli_runner, temp_db, "post", "cash-withdraw", "2000000", "--bank", "BCA Operational", "--date", "2024-01-02"
    )

    assert result.exit_code == 0
    assert "1102 Petty Cash" in result.output
    assert "1110-001 Bank - BCA Operational" in result.output


def test_post_cash_withdraw_unknown_bank(cli_runner, temp_db, seeded_chart):
    """Test an unknown bank exits with 1."""
    result = _invoke(cli_runner, temp_db, "post", "cash-withdraw", "2000000", "--bank", "Mandiri")

    assert result.exit_code == 1
    assert "Bank account 'Mandiri' not found" in result.output


def test_post_staff_advance_and_repayment(cli_runner, temp_db, seeded_chart):
    """Test staff advances provision the staff member's account."""
    result = _invoke(
        cli_runner, temp_db, "post", "staff-advance", "Budi Santoso", "500000", "--date", "2024-01-10"
    )
    assert result.exit_code == 0
    assert "Voucher: PAY-2401-0001" in result.output
    assert "1160-001 Staff Advance - Budi Santoso" in result.output

    result = _invoke(
        cli_runner, temp_db, "post", "staff-repayment", "budi santoso", "200000", "--date", "2024-01-25"
    )
    assert result.exit_code == 0
    assert "Voucher: REC-2401-0001" in result.output
    assert "1160-001" in result.output


def test_post_salary_deduction(cli_runner, temp_db, seeded_chart):
    """Test a salary deduction posts a journal voucher."""
    result = _invoke(
        cli_runner, temp_db, "post", "salary-deduction", "Budi Santoso", "200000", "--date", "2024-01-31"
    )

    assert result.exit_code == 0
    assert "Voucher: JV-2401-0001" in result.output
    assert "6360 Staff Salaries & Wages" in result.output


def test_post_payment_and_receipt(cli_runner, temp_db, bank_account):
    """Test vouchers against parties and accounts."""
    result = _invoke(
        cli_runner, temp_db,
        "post", "payment", "5,000,000", "--supplier", "PT Sinar Jaya", "--bank", "BCA Operational",
        "--date", "2024-01-15", "--voucher", "PAY-MANUAL-7",
    )
    assert result.exit_code == 0
    assert "Voucher: PAY-MANUAL-7" in result.output
    assert "2110-001" in result.output

    result = _invoke(cli_runner, temp_db, "post", "receipt", "750000", "--account", "4900", "--date", "2024-01-16")
    assert result.exit_code == 0
    assert "4900 Other Income" in result.output
    assert "1102 Petty Cash" in result.output


def test_post_payment_needs_one_target(cli_runner, temp_db, seeded_chart):
    """Test a voucher names exactly one counter-account."""
    result = _invoke(cli_runner, temp_db, "post", "payment", "1000")
    assert result.exit_code == 1
    assert "Specify exactly one of" in result.output

    result = _invoke(cli_runner, temp_db, "post", "payment", "1000", "--account", "6400", "--supplier", "X")
    assert result.exit_code == 1


def test_unpost(cli_runner, temp_db, seeded_chart):
    """Test unposting removes the entry and its source event."""
    _invoke(cli_runner, temp_db, "post", "cash-expense", "50000", "--date", "2024-01-15", "--ref", "pc-1")

    result = _invoke(cli_runner, temp_db, "unpost", "petty_cash", "pc-1")
    assert result.exit_code == 0
    assert "Unposted petty_cash pc-1" in result.output
    assert temp_db.list_entries() == []
    assert temp_db.get_source_event(SourceModule.PETTY_CASH, "pc-1") is None

    result = _invoke(cli_runner, temp_db, "unpost", "petty_cash", "pc-1")
    assert result.exit_code == 1
    assert "Error: Nothing posted for petty_cash pc-1" in result.output


def test_reverse(cli_runner, temp_db, seeded_chart):
    """Test reversing an entry from the command line."""
    _invoke(cli_runner, temp_db, "post", "cash-expense", "50000", "--date", "2024-01-15", "--ref", "pc-1")

    result = _invoke(cli_runner, temp_db, "reverse", "JE-20240115-0001", "--date", "2024-01-20")
    assert result.exit_code == 0
    assert "Posted JE-20240120-0001" in result.output
    assert "Voucher: REV-2401-0001" in result.output

    reversal = temp_db.get_entry_by_number("JE-20240120-0001")
    assert reversal.total_debit == reversal.total_credit == Decimal("50000.00")

    result = _invoke(cli_runner, temp_db, "unpost", "petty_cash", "pc-1")
    assert result.exit_code == 1
    assert "unpost the reversal first" in result.output


def test_reverse_unknown_entry(cli_runner, temp_db):
    """Test reversing a missing entry exits with 1."""
    result = _invoke(cli_runner, temp_db, "reverse", "JE-20240115-0009")

    assert result.exit_code == 1
    assert "Error:" in result.output
