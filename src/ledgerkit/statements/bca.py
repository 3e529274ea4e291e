"""Parser for BCA (Bank Central Asia) account statements.

BCA statements are printed in Indonesian or English. The header names the
period ("PERIODE : JANUARI 2024") and the opening and closing balances; each
transaction row starts with a ``DD/MM`` date, followed by the description,
the amount, an optional ``DB``/``CR`` indicator and the running balance::

    12/01 TRANSFER MASUK 1.500.000,00 CR 5.000.000,00
"""

import logging
import re
from datetime import date
from decimal import Decimal
from typing import Optional

from ledgerkit.domain.entities import ParsedStatementLine, ZERO
from ledgerkit.statements.base import ParsedStatement, StatementParser
from ledgerkit.utils.amount_parser import normalize_amount
from ledgerkit.utils.date_parser import month_bounds, parse_day_month

logger = logging.getLogger(__name__)

MONTHS = {
    "JANUARI": 1,
    "JANUARY": 1,
    "FEBRUARI": 2,
    "FEBRUARY": 2,
    "MARET": 3,
    "MARCH": 3,
    "APRIL": 4,
    "MEI": 5,
    "MAY": 5,
    "JUNI": 6,
    "JUNE": 6,
    "JULI": 7,
    "JULY": 7,
    "AGUSTUS": 8,
    "AUGUST": 8,
    "SEPTEMBER": 9,
    "OKTOBER": 10,
    "OCTOBER": 10,
    "NOVEMBER": 11,
    "DESEMBER": 12,
    "DECEMBER": 12,
}
_MONTH_NAMES = "|".join(sorted(MONTHS, key=len, reverse=True))

PERIOD_PATTERNS = (
    re.compile(rf"\bPERIODE?\s*:?\s*({_MONTH_NAMES})\s+(\d{{4}})\b", re.I),
    re.compile(rf"\b({_MONTH_NAMES})\s+(\d{{4}})\b", re.I),
)
OPENING_PATTERN = re.compile(r"\b(?:SALDO\s+AWAL|OPENING\s+BALANCE|BALANCE\s+AWAL)\s*:?\s*([\d.,]+)", re.I)
CLOSING_PATTERN = re.compile(r"\b(?:SALDO\s+AKHIR|CLOSING\s+BALANCE|BALANCE\s+AKHIR)\s*:?\s*([\d.,]+)", re.I)
TRANSACTION_HEADER_PATTERN = re.compile(r"\bTANGGAL\b.*?\bKETERANGAN\b|\bDATE\b.*?\bDESCRIPTION\b", re.I | re.S)

# Footer phrases end the last transaction span on a page
FOOTER_PATTERN = re.compile(
    r"\b(?:SALDO\s+AKHIR|CLOSING\s+BALANCE|BALANCE\s+AKHIR|MUTASI\s+CR|MUTASI\s+DB|TOTAL\s+MUTASI|BERSAMBUNG)\b",
    re.I,
)
CARRY_FORWARD_PATTERN = re.compile(r"\b(?:SALDO\s+AWAL|OPENING\s+BALANCE|BALANCE\s+AWAL)\b", re.I)

# Table header words repeated on each page
HEADER_NOISE = frozenset(
    {"TANGGAL", "TGL", "KETERANGAN", "CBG", "MUTASI", "SALDO", "DATE", "DESCRIPTION", "BRANCH", "AMOUNT", "BALANCE"}
)
INDICATORS = {"DB": "debit", "CR": "credit"}

_FORMATTED_AMOUNT = re.compile(r"^(?:\d{1,3}(?:[.,]\d{3})+(?:[.,]\d{1,2})?|\d+[.,]\d{2})$")
_BARE_DIGITS = re.compile(r"^\d+$")

MAX_AMOUNT = Decimal("1000000000000")
MAX_DESCRIPTION = 200
MIN_DESCRIPTION = 3


def _to_amount(token: str) -> Optional[Decimal]:
    try:
        value = normalize_amount(token)
    except ValueError:
        return None
    if value <= 0 or value >= MAX_AMOUNT:
        return None
    return value.quantize(Decimal("0.01"))


class BCAStatementParser(StatementParser):
    """Statement parser for BCA e-statements."""

    name = "bca"

    def parse(self, text: str, default_year: Optional[int] = None) -> ParsedStatement:
        flat = " ".join(text.split())

        period_label, year, month = self._parse_period(flat)
        if year is None:
            year = default_year or date.today().year
        if month is not None:
            start_date, end_date = month_bounds(year, month)
        else:
            start_date, end_date = date(year, 1, 1), date(year, 12, 31)

        statement = ParsedStatement(
            period_label=period_label,
            start_date=start_date,
            end_date=end_date,
            opening_balance=self._parse_balance(OPENING_PATTERN, flat),
            closing_balance=self._parse_balance(CLOSING_PATTERN, flat),
            lines=self._parse_lines(flat, year),
        )
        logger.debug(
            "Parsed %d line(s) for period %s (debits %s, credits %s)",
            len(statement.lines),
            period_label,
            statement.total_debits,
            statement.total_credits,
        )
        return statement

    def header_checks(self, text: str) -> dict[str, bool]:
        flat = " ".join(text.split())
        return {
            "has_period": any(pattern.search(flat) for pattern in PERIOD_PATTERNS),
            "has_opening_balance": OPENING_PATTERN.search(flat) is not None,
            "has_closing_balance": CLOSING_PATTERN.search(flat) is not None,
            "has_transaction_header": TRANSACTION_HEADER_PATTERN.search(flat) is not None,
        }

    def _parse_period(self, flat: str) -> tuple[Optional[str], Optional[int], Optional[int]]:
        for pattern in PERIOD_PATTERNS:
            match = pattern.search(flat)
            if match:
                month_name = match.group(1).upper()
                return f"{month_name} {match.group(2)}", int(match.group(2)), MONTHS[month_name]
        return None, None, None

    def _parse_balance(self, pattern: re.Pattern, flat: str) -> Decimal:
        match = pattern.search(flat)
        if match is None:
            return ZERO
        # Trailing punctuation of the sentence is not part of the number
        return _to_amount(match.group(1).rstrip(".,")) or ZERO

    def _parse_lines(self, flat: str, year: int) -> list[ParsedStatementLine]:
        tokens = flat.split(" ") if flat else []
        dated = [
            (index, day)
            for index, day in ((i, parse_day_month(token, year)) for i, token in enumerate(tokens))
            if day is not None
        ]

        lines = []
        for position, (index, day) in enumerate(dated):
            stop = dated[position + 1][0] if position + 1 < len(dated) else len(tokens)
            span = " ".join(tokens[index + 1 : stop])
            footer = FOOTER_PATTERN.search(span)
            if footer:
                span = span[: footer.start()].strip()
            if not span or CARRY_FORWARD_PATTERN.search(span):
                continue

            line = self._parse_span(day, span)
            if line is not None:
                lines.append(line)
        return lines

    def _parse_span(self, day: date, span: str) -> Optional[ParsedStatementLine]:
        tokens = [token for token in span.split(" ") if token.upper() not in HEADER_NOISE]

        formatted = [i for i, token in enumerate(tokens) if _FORMATTED_AMOUNT.match(token)]
        candidates = formatted or [i for i, token in enumerate(tokens) if _BARE_DIGITS.match(token)]

        amount = balance = None
        consumed = set()
        for i in candidates:
            value = _to_amount(tokens[i])
            if value is None:
                continue
            if amount is None:
                amount = value
                consumed.add(i)
            elif value != amount:
                balance = value
                consumed.add(i)
                break
        if amount is None:
            logger.debug("Skipping %s row without an amount: %s", day, span[:MAX_DESCRIPTION])
            return None

        side = "debit"
        for i, token in enumerate(tokens):
            if token.upper() in INDICATORS:
                side = INDICATORS[token.upper()]
                consumed.add(i)
                break

        description = " ".join(token for i, token in enumerate(tokens) if i not in consumed).strip()
        if len(description) < MIN_DESCRIPTION:
            description = span
        return ParsedStatementLine(
            transaction_date=day,
            description=description[:MAX_DESCRIPTION],
            debit_amount=amount if side == "debit" else ZERO,
            credit_amount=amount if side == "credit" else ZERO,
            running_balance=balance,
        )
