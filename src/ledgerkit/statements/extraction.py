"""Text extraction from statement documents.

Statement PDFs come from different producers, so text is recovered with an
ordered list of strategies and the first one that yields a usable amount of
text wins:

1. strings shown inside ``BT ... ET`` text blocks (literal and hex strings)
2. any parenthesized string in the document
3. runs of printable characters

Compressed (FlateDecode) content streams are replaced by their inflated text
first; streams that do not inflate are left as they are.
"""

import logging
import re
import zlib
from typing import Callable

logger = logging.getLogger(__name__)

MIN_TEXT_CHARS = 20

_STREAM = re.compile(rb"(?<!end)stream\r?\n(.*?)\r?\n?endstream", re.S)
_TEXT_BLOCK = re.compile(r"\bBT\b(.*?)\bET\b", re.S)

_LITERAL_SRC = r"\((?:\\.|[^\\)])*\)"
_HEX_SRC = r"<[0-9A-Fa-f\s]*>"
_ARRAY_SRC = rf"\[(?:{_LITERAL_SRC}|{_HEX_SRC}|[^\]])*\]"

_SHOWN_STRING = re.compile(
    rf"(?P<array>{_ARRAY_SRC})|(?P<literal>{_LITERAL_SRC})|(?P<hex>{_HEX_SRC})", re.S
)
_STRING = re.compile(rf"{_LITERAL_SRC}|{_HEX_SRC}", re.S)
_LITERAL = re.compile(_LITERAL_SRC, re.S)
_PRINTABLE_RUN = re.compile(r"[\x20-\x7e]{4,}")

_ESCAPE = re.compile(r"\\([nrtbf()\\]|[0-7]{1,3})")
_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "b": "\b", "f": "\f", "(": "(", ")": ")", "\\": "\\"}


def unescape_literal(raw: str) -> str:
    """Resolve PDF literal-string escapes such as ``\\(`` and ``\\101``."""

    def replace(match: re.Match) -> str:
        code = match.group(1)
        if code in _ESCAPES:
            return _ESCAPES[code]
        return chr(int(code, 8) & 0xFF)

    return _ESCAPE.sub(replace, raw)


def decode_hex(raw: str) -> str:
    digits = "".join(raw.split())
    if len(digits) % 2:
        digits += "0"
    return bytes.fromhex(digits).decode("latin-1")


def _decode_string(token: str) -> str:
    if token.startswith("("):
        return unescape_literal(token[1:-1])
    return decode_hex(token[1:-1])


def inflate_streams(document: bytes) -> str:
    """Document content with inflatable streams replaced by their decoded form."""

    def inflate(match: re.Match) -> bytes:
        try:
            decoded = zlib.decompressobj().decompress(match.group(1))
        except zlib.error:
            return match.group(0)
        return b"stream\n" + decoded + b"\nendstream"

    return _STREAM.sub(inflate, document).decode("latin-1")


def text_block_strings(content: str) -> str:
    """Strings shown by text operators, one text block per line."""
    blocks = []
    for block in _TEXT_BLOCK.finditer(content):
        pieces = []
        for shown in _SHOWN_STRING.finditer(block.group(1)):
            if shown.group("array"):
                # Kerned TJ arrays split words; their pieces belong together
                pieces.append("".join(_decode_string(s) for s in _STRING.findall(shown.group("array"))))
            else:
                pieces.append(_decode_string(shown.group(0)))
        if pieces:
            blocks.append(" ".join(pieces))
    return "\n".join(blocks)


def parenthesized_strings(content: str) -> str:
    return " ".join(unescape_literal(token[1:-1]) for token in _LITERAL.findall(content))


def printable_runs(content: str) -> str:
    runs = (run.strip() for run in _PRINTABLE_RUN.findall(content))
    return " ".join(run for run in runs if any(ch.isalnum() for ch in run))


STRATEGIES: tuple[tuple[str, Callable[[str], str]], ...] = (
    ("text-blocks", text_block_strings),
    ("parenthesized", parenthesized_strings),
    ("printable", printable_runs),
)


def _non_blank(text: str) -> int:
    return sum(1 for ch in text if not ch.isspace())


def extract_text(document: bytes) -> str:
    """Recover the text of a statement document.

    Returns:
        Text from the first strategy yielding at least ``MIN_TEXT_CHARS``
        non-blank characters, or an empty string
    """
    content = inflate_streams(document)
    for name, strategy in STRATEGIES:
        text = strategy(content)
        if _non_blank(text) >= MIN_TEXT_CHARS:
            logger.debug("Extracted %d characters with the %s strategy", len(text), name)
            return text
    logger.debug("No extraction strategy produced usable text from %d bytes", len(document))
    return ""
