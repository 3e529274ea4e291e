"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re


def parse_amount(amount_str: str) -> Decimal:
    """Parse a user-entered amount string into a Decimal.

    Handles various formats:
    - "150000"
    - "Rp150,000" / "IDR 150,000"
    - "-123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Commas are always thousands separators here. Use ``normalize_amount``
    for amounts printed on bank statements, whose separators are ambiguous.

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    amount_str = amount_str.strip()

    # Handle parentheses notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    # Remove currency symbols and codes
    amount_str = re.sub(r"(?i)^\s*(rp\.?|idr)\s*", "", amount_str)
    amount_str = re.sub(r"[$€£¥]", "", amount_str)

    amount_str = amount_str.replace(",", "").strip()

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}'") from e
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return -amount if is_negative else amount


def normalize_amount(token: str) -> Decimal:
    """Normalize a monetary token whose separators may be in either locale.

    Disambiguation, in order:
    - more than one period: periods group thousands, the comma is decimal
      ("1.234.567,89")
    - more than one comma: commas group thousands ("1,234,567.89")
    - exactly one of each: period is thousands, comma is decimal
      ("1.234,56"; "1,234.56" therefore reads as 1.23456)
    - exactly one comma and no period: comma is decimal ("150,5")
    - otherwise the token is already plain digits with an optional point

    Raises:
        ValueError: If the token is not a number after normalization
    """
    cleaned = token.strip()
    dots = cleaned.count(".")
    commas = cleaned.count(",")

    if dots > 1 or (dots == 1 and commas == 1):
        cleaned = cleaned.replace(".", "").replace(",", ".")
    elif commas > 1:
        cleaned = cleaned.replace(",", "")
    elif commas == 1 and dots == 0:
        cleaned = cleaned.replace(",", ".")

    if not re.fullmatch(r"\d+(\.\d+)?", cleaned):
        raise ValueError(f"Not a monetary amount: '{token}'")
    return Decimal(cleaned)
