"""Compilation of find/replace text into substitution operands.

Compiled operands target Python's ``re`` dialect, which is what the bundled
buffer hosts execute. That dialect already treats ``( ) + | ? { }`` as
operators, so regex-mode patterns need no "very magic" prefix.
"""
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from .case import preserve_case as preserve_case_transform
from .delimiter import (
    DEFAULT_DELIMITER,
    ESCAPE_CHAR,
    apply_delimiter,
    escape_delimiter,
    select_delimiter,
    unescape_delimiter,
)
from .errors import EmptyPattern, InvalidRegex
from .flags import FlagSet

WORD_BOUNDARY = r"\b"
LINE_BREAKS = re.compile(r"[\r\n]")


@dataclass(frozen=True)
class CompiledPattern:
    """Search pattern in delimited form."""

    text: str
    source: str
    delimiter: str = DEFAULT_DELIMITER
    use_regex: bool = False
    whole_word: bool = False

    def expression(self) -> str:
        """Plain ``re`` expression with the delimiter escaping removed."""
        return unescape_delimiter(self.text, self.delimiter)


@dataclass(frozen=True)
class CompiledReplacement:
    """Replacement in delimited form, optionally evaluated per match.

    When ``transform`` is set the host calls it for every match with the
    matched text and ``literal`` instead of expanding ``text``.
    """

    text: str
    literal: str
    delimiter: str = DEFAULT_DELIMITER
    transform: Optional[Callable[[str, str], str]] = None

    @property
    def deferred(self) -> bool:
        return self.transform is not None

    def template(self) -> str:
        """Replacement template for ``re.Match.expand``."""
        return unescape_delimiter(self.text, self.delimiter)

    def evaluate(self, matched: str) -> str:
        """Replacement text for one match."""
        if self.transform is None:
            return self.literal
        return self.transform(matched, self.literal)


def strip_line_breaks(text: str) -> str:
    return LINE_BREAKS.sub("", text)


def compile_pattern(raw_find: str, flags: FlagSet) -> CompiledPattern:
    """Turn a raw find string into a delimited search pattern.

    Args:
        raw_find: Find text as typed by the user
        flags: Parsed search flags

    Returns:
        CompiledPattern using the default delimiter

    Raises:
        EmptyPattern: If nothing is left after removing line breaks
        InvalidRegex: In regex mode, if the pattern does not compile
    """
    source = strip_line_breaks(raw_find)
    if not source:
        raise EmptyPattern()

    if flags.use_regex:
        try:
            re.compile(source)
        except re.error as e:
            raise InvalidRegex(source, str(e)) from e
        text = source
    else:
        text = re.escape(source)

    text = escape_delimiter(text, DEFAULT_DELIMITER)

    # Anchors go around the final string; regex alternations are not grouped
    if flags.whole_word:
        text = f"{WORD_BOUNDARY}{text}{WORD_BOUNDARY}"

    return CompiledPattern(
        text=text,
        source=source,
        use_regex=flags.use_regex,
        whole_word=flags.whole_word,
    )


def compile_replacement(raw_replace: str, preserve_case: bool = False) -> CompiledReplacement:
    """Turn a raw replace string into a delimited replacement.

    Args:
        raw_replace: Replacement text as typed by the user
        preserve_case: Whether each match reshapes the replacement's case

    Returns:
        CompiledReplacement using the default delimiter
    """
    literal = strip_line_breaks(raw_replace)
    text = escape_delimiter(literal.replace(ESCAPE_CHAR, ESCAPE_CHAR * 2), DEFAULT_DELIMITER)

    return CompiledReplacement(
        text=text,
        literal=literal,
        transform=preserve_case_transform if preserve_case else None,
    )


def compile_substitution(
    raw_find: str, raw_replace: str, flags: FlagSet
) -> tuple[CompiledPattern, CompiledReplacement]:
    """Compile both operands and move them to a delimiter neither contains.

    Raises:
        EmptyPattern, InvalidRegex, NoSafeDelimiter
    """
    pattern = compile_pattern(raw_find, flags)
    replacement = compile_replacement(raw_replace, flags.preserve_case)

    delimiter = select_delimiter(pattern.text, replacement.text)
    return apply_delimiter(pattern, replacement, delimiter)
