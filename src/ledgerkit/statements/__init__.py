"""Bank statement parsers, one strategy per statement-issuing bank."""

from ledgerkit.domain.errors import ValidationError
from ledgerkit.statements.base import ParsedStatement, StatementParser
from ledgerkit.statements.bca import BCAStatementParser

_PARSERS: dict[str, type[StatementParser]] = {
    BCAStatementParser.name: BCAStatementParser,
}


def available_parsers() -> list[str]:
    """Names of the registered statement parsers."""
    return sorted(_PARSERS)


def get_parser(name: str) -> StatementParser:
    """Create the parser registered under ``name``.

    Raises:
        ValidationError: If no parser has this name
    """
    parser_class = _PARSERS.get(name.strip().lower())
    if parser_class is None:
        raise ValidationError(
            f"Unknown statement format '{name}'. Available: {', '.join(available_parsers())}"
        )
    return parser_class()


__all__ = [
    "BCAStatementParser",
    "ParsedStatement",
    "StatementParser",
    "available_parsers",
    "get_parser",
]
