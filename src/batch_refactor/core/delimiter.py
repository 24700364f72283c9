"""Delimiter selection for substitution instructions.

Pattern and replacement travel to the host in delimited form: every bare
occurrence of the delimiter is backslash-escaped. Compilation always starts
from ``/``; a different delimiter is only picked when ``/`` shows up in either
operand, which keeps the common case free of re-escaping.
"""
import logging
from dataclasses import replace
from typing import TypeVar

from .errors import NoSafeDelimiter

logger = logging.getLogger(__name__)

ESCAPE_CHAR = "\\"
DEFAULT_DELIMITER = "/"
DELIMITER_CANDIDATES = "/#@|!%~;:"

_Operand = TypeVar("_Operand")


def escape_delimiter(text: str, delimiter: str) -> str:
    """Backslash-escape every bare ``delimiter`` in ``text``.

    Existing escape pairs are copied through untouched, so ``\\\\`` followed by
    the delimiter still gets the delimiter escaped.
    """
    out = []
    i = 0
    while i < len(text):
        char = text[i]
        if char == ESCAPE_CHAR and i + 1 < len(text):
            out.append(text[i : i + 2])
            i += 2
            continue
        if char == delimiter:
            out.append(ESCAPE_CHAR)
        out.append(char)
        i += 1
    return "".join(out)


def unescape_delimiter(text: str, delimiter: str) -> str:
    """Drop the escaping :func:`escape_delimiter` added for ``delimiter``."""
    out = []
    i = 0
    while i < len(text):
        char = text[i]
        if char == ESCAPE_CHAR and i + 1 < len(text):
            pair = text[i : i + 2]
            out.append(delimiter if pair[1] == delimiter else pair)
            i += 2
            continue
        out.append(char)
        i += 1
    return "".join(out)


def has_unescaped(text: str, delimiter: str) -> bool:
    """Check whether ``text`` holds a bare, unescaped ``delimiter``."""
    i = 0
    while i < len(text):
        char = text[i]
        if char == ESCAPE_CHAR:
            i += 2
            continue
        if char == delimiter:
            return True
        i += 1
    return False


def select_delimiter(
    pattern_text: str,
    replacement_text: str,
    candidates: str = DELIMITER_CANDIDATES,
) -> str:
    """Pick the first candidate delimiter absent from both operands.

    Args:
        pattern_text: Compiled pattern text
        replacement_text: Compiled replacement text
        candidates: Delimiters in priority order

    Returns:
        The chosen delimiter character

    Raises:
        NoSafeDelimiter: If every candidate occurs in an operand
    """
    for delimiter in candidates:
        if delimiter not in pattern_text and delimiter not in replacement_text:
            if delimiter != DEFAULT_DELIMITER:
                logger.debug(f"Using delimiter '{delimiter}' instead of '/'")
            return delimiter

    raise NoSafeDelimiter(candidates)


def redelimit(operand: _Operand, delimiter: str) -> _Operand:
    """Return a copy of a compiled operand re-escaped for ``delimiter``."""
    if operand.delimiter == delimiter:
        return operand

    text = unescape_delimiter(operand.text, operand.delimiter)
    return replace(operand, text=escape_delimiter(text, delimiter), delimiter=delimiter)


def apply_delimiter(pattern, replacement, delimiter: str):
    """Re-escape a compiled pattern/replacement pair for ``delimiter``.

    Returns:
        Tuple of (pattern, replacement) in the new delimited form
    """
    return redelimit(pattern, delimiter), redelimit(replacement, delimiter)
