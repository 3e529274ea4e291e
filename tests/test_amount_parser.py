"""Tests for amount parsing utilities."""

from decimal import Decimal

import pytest

from ledgerkit.utils.amount_parser import normalize_amount, parse_amount


def test_parse_amount_plain():
    """Test parsing a plain number."""
    assert parse_amount("150000") == Decimal("150000")
    assert parse_amount(" 123.45 ") == Decimal("123.45")


def test_parse_amount_thousands_separators():
    """Test commas are thousands separators for entered amounts."""
    assert parse_amount("1,234.56") == Decimal("1234.56")
    assert parse_amount("2,500,000") == Decimal("2500000")


def test_parse_amount_currency_prefix():
    """Test rupiah prefixes are stripped."""
    assert parse_amount("Rp150,000") == Decimal("150000")
    assert parse_amount("Rp. 75,000") == Decimal("75000")
    assert parse_amount("IDR 150,000") == Decimal("150000")


def test_parse_amount_negative():
    """Test minus sign and parentheses notation."""
    assert parse_amount("-123.45") == Decimal("-123.45")
    assert parse_amount("(123.45)") == Decimal("-123.45")


def test_parse_amount_invalid():
    """Test invalid input raises ValueError."""
    with pytest.raises(ValueError):
        parse_amount("")
    with pytest.raises(ValueError):
        parse_amount("   ")
    with pytest.raises(ValueError):
        parse_amount("abc")
    with pytest.raises(ValueError):
        parse_amount("NaN")


def test_normalize_amount_indonesian_format():
    """Test periods group thousands and the comma is decimal."""
    assert normalize_amount("1.500.000,00") == Decimal("1500000.00")
    assert normalize_amount("1.234.567,89") == Decimal("1234567.89")
    assert normalize_amount("15.000,00") == Decimal("15000.00")


def test_normalize_amount_english_format():
    """Test commas group thousands when there are several."""
    assert normalize_amount("1,234,567.89") == Decimal("1234567.89")
    assert normalize_amount("5,000,000") == Decimal("5000000")


def test_normalize_amount_one_of_each_separator():
    """Test one period and one comma read as period thousands, comma decimal."""
    assert normalize_amount("1.234,56") == Decimal("1234.56")
    assert normalize_amount("1,234.56") == Decimal("1.23456")


def test_normalize_amount_single_comma_is_decimal():
    """Test a lone comma is a decimal separator."""
    assert normalize_amount("150,5") == Decimal("150.5")


def test_normalize_amount_plain_digits():
    """Test plain numbers pass through."""
    assert normalize_amount("15000") == Decimal("15000")
    assert normalize_amount("15000.25") == Decimal("15000.25")


def test_normalize_amount_rejects_non_numbers():
    """Test tokens that are not amounts raise ValueError."""
    for token in ("12/01", "CR", "", "1.2.3,4,5", "-500"):
        with pytest.raises(ValueError):
            normalize_amount(token)
