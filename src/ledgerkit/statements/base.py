"""Statement parser interface.

Each statement-issuing bank gets its own parser; new formats are added as
new ``StatementParser`` subclasses registered in ``ledgerkit.statements``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from ledgerkit.domain.entities import ParsedStatementLine, ZERO
from ledgerkit.statements.extraction import extract_text

TEXT_SAMPLE_CHARS = 500


@dataclass
class ParsedStatement:
    """Header and transaction lines recovered from one statement."""

    period_label: Optional[str]
    start_date: date
    end_date: date
    opening_balance: Decimal = ZERO
    closing_balance: Decimal = ZERO
    lines: list[ParsedStatementLine] = field(default_factory=list)

    @property
    def total_debits(self) -> Decimal:
        return sum((line.debit_amount for line in self.lines), ZERO)

    @property
    def total_credits(self) -> Decimal:
        return sum((line.credit_amount for line in self.lines), ZERO)


class StatementParser(ABC):
    """Strategy turning a bank's statement document into statement lines."""

    name: str = ""

    def extract(self, document: bytes) -> str:
        """Extract the document's text."""
        return extract_text(document)

    @abstractmethod
    def parse(self, text: str, default_year: Optional[int] = None) -> ParsedStatement:
        """Parse extracted text.

        Args:
            text: Text returned by ``extract``
            default_year: Year for ``DD/MM`` dates when the statement names
                no period (defaults to the current year)
        """
        pass

    @abstractmethod
    def header_checks(self, text: str) -> dict[str, bool]:
        """Presence checks for the key header phrases of this format."""
        pass

    def diagnostics(self, text: str) -> dict[str, Any]:
        """Payload attached to a rejected upload."""
        return {
            "text_length": len(text),
            "text_sample": text[:TEXT_SAMPLE_CHARS],
            **self.header_checks(text),
        }
