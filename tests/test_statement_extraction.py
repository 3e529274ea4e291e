"""Tests for statement text extraction."""

from ledgerkit.statements.extraction import (
    decode_hex,
    extract_text,
    inflate_streams,
    text_block_strings,
    unescape_literal,
)


def test_extract_plain_pdf(pdf_factory, sample_statement_lines):
    """Test each text block becomes one line."""
    document = pdf_factory(sample_statement_lines)
    assert extract_text(document) == "\n".join(sample_statement_lines)


def test_extract_compressed_pdf(pdf_factory, sample_statement_lines):
    """Test FlateDecode content streams are inflated before extraction."""
    document = pdf_factory(sample_statement_lines, compress=True)

    assert b"/FlateDecode" in document
    assert extract_text(document) == "\n".join(sample_statement_lines)


def test_inflate_leaves_plain_streams_alone(pdf_factory):
    """Test uncompressed streams pass through unchanged."""
    document = pdf_factory(["PERIODE : JANUARI 2024"])
    assert inflate_streams(document) == document.decode("latin-1")


def test_extract_escaped_parentheses(pdf_factory):
    """Test escaped parentheses in literals survive extraction."""
    text = extract_text(pdf_factory(["BIAYA ADM (BULANAN) 15.000,00 DB"]))
    assert text == "BIAYA ADM (BULANAN) 15.000,00 DB"


def test_unescape_literal():
    """Test PDF literal escapes."""
    assert unescape_literal(r"SALDO \(AWAL\)") == "SALDO (AWAL)"
    assert unescape_literal(r"\101\102C") == "ABC"
    assert unescape_literal(r"a\\b") == "a\\b"
    assert unescape_literal(r"line\nbreak") == "line\nbreak"


def test_decode_hex():
    """Test hex strings, including whitespace and an odd digit count."""
    assert decode_hex("48 65 6C6C6F") == "Hello"
    assert decode_hex("414") == "A@"


def test_text_blocks_with_hex_and_tj_arrays():
    """Test hex strings and kerned TJ arrays inside text blocks."""
    content = "BT /F1 10 Tf <53414C444F> Tj ET\nBT [(TRANS) -120 (FER) 30 (MASUK)] TJ ET"
    assert text_block_strings(content) == "SALDO\nTRANSFERMASUK"


def test_falls_back_to_parenthesized_strings():
    """Test documents without text blocks use any literal string."""
    document = b"%PDF-1.4\n(PERIODE : JANUARI 2024) (SALDO AWAL : 100.000,00)\n%%EOF"
    assert extract_text(document) == "PERIODE : JANUARI 2024 SALDO AWAL : 100.000,00"


def test_falls_back_to_printable_runs():
    """Test documents without strings use printable character runs."""
    document = b"\x00\x01PERIODE JANUARI 2024\x00\x02SALDO AKHIR 100\xff\x03"
    assert extract_text(document) == "PERIODE JANUARI 2024 SALDO AKHIR 100"


def test_nothing_usable_returns_empty_text():
    """Test a document without enough text yields an empty string."""
    assert extract_text(b"") == ""
    assert extract_text(b"%PDF-1.4\n%%EOF") == ""
