"""Flag string parsing.

A flag string is a compact, order-free set of single letters:

- ``c`` case-sensitive matching
- ``w`` whole-word matching
- ``r`` treat the find string as a regular expression
- ``p`` preserve the case shape of every match in the replacement

Letters are case-insensitive and may not repeat. The empty string turns every
flag off.
"""
from dataclasses import dataclass
from typing import Optional

from .errors import InvalidFlag

VALID_FLAGS = "cwrp"


@dataclass(frozen=True)
class FlagSet:
    """Parsed search flags."""

    case_sensitive: bool = False
    whole_word: bool = False
    use_regex: bool = False
    preserve_case: bool = False

    @classmethod
    def parse(cls, flag_str: Optional[str]) -> "FlagSet":
        """Parse and validate a flag string.

        Args:
            flag_str: Flag letters in any order, or None/empty for defaults

        Returns:
            FlagSet with the requested flags switched on

        Raises:
            InvalidFlag: On an unknown or repeated letter
        """
        if flag_str is None:
            flag_str = ""
        flag_str = flag_str.strip().lower()

        seen = set()
        for char in flag_str:
            if char not in VALID_FLAGS:
                raise InvalidFlag(char, VALID_FLAGS)
            if char in seen:
                raise InvalidFlag(char, VALID_FLAGS, duplicate=True)
            seen.add(char)

        return cls(
            case_sensitive="c" in seen,
            whole_word="w" in seen,
            use_regex="r" in seen,
            preserve_case="p" in seen,
        )

    def to_string(self) -> str:
        """Canonical flag string, letters in ``cwrp`` order."""
        chars = []
        if self.case_sensitive:
            chars.append("c")
        if self.whole_word:
            chars.append("w")
        if self.use_regex:
            chars.append("r")
        if self.preserve_case:
            chars.append("p")
        return "".join(chars)

    def describe(self) -> str:
        """Human-readable summary of every flag."""
        return " | ".join(
            [
                "Case-sensitive" if self.case_sensitive else "Case-insensitive",
                "Whole-word" if self.whole_word else "Partial-match",
                "RegEx" if self.use_regex else "Literal-text",
                "Preserve-case" if self.preserve_case else "Normal-case",
            ]
        )

    def __str__(self) -> str:
        return self.to_string() or "none"


def parse_flags(flag_str: Optional[str]) -> FlagSet:
    """Parse a flag string into a FlagSet."""
    return FlagSet.parse(flag_str)
