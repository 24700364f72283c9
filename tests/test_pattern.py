"""Tests for pattern compilation and delimiter selection."""
import re

import pytest
from batch_refactor.core.case import preserve_case
from batch_refactor.core.delimiter import (
    DELIMITER_CANDIDATES,
    escape_delimiter,
    has_unescaped,
    select_delimiter,
    unescape_delimiter,
)
from batch_refactor.core.errors import EmptyPattern, InvalidRegex, NoSafeDelimiter
from batch_refactor.core.flags import FlagSet
from batch_refactor.core.pattern import (
    compile_pattern,
    compile_replacement,
    compile_substitution,
)
from hypothesis import given
from hypothesis import strategies as st

flag_sets = st.builds(
    FlagSet,
    case_sensitive=st.booleans(),
    whole_word=st.booleans(),
    use_regex=st.booleans(),
    preserve_case=st.booleans(),
)


class TestCompilePattern:
    """Test search pattern compilation."""

    @given(flags=flag_sets)
    def test_empty_pattern(self, flags: FlagSet) -> None:
        with pytest.raises(EmptyPattern):
            compile_pattern("", flags)

    def test_only_line_breaks_is_empty(self) -> None:
        with pytest.raises(EmptyPattern):
            compile_pattern("\r\n\n", FlagSet())

    def test_line_breaks_stripped(self) -> None:
        pattern = compile_pattern("foo\nbar\r", FlagSet())

        assert pattern.source == "foobar"
        assert pattern.text == "foobar"

    def test_literal_special_characters_escaped(self) -> None:
        pattern = compile_pattern("a.b*c", FlagSet())

        assert pattern.text == r"a\.b\*c"
        assert re.search(pattern.expression(), "xa.b*cx")
        assert not re.search(pattern.expression(), "aXbbc")

    def test_literal_delimiter_escaped(self) -> None:
        pattern = compile_pattern("a/b", FlagSet())

        assert pattern.text == r"a\/b"
        assert pattern.delimiter == "/"
        assert pattern.expression() == "a/b"

    def test_whole_word_wraps_pattern(self) -> None:
        pattern = compile_pattern("userId", FlagSet(whole_word=True))

        assert pattern.text == r"\buserId\b"
        assert pattern.whole_word

    def test_regex_not_escaped(self) -> None:
        pattern = compile_pattern(r"(foo|bar)+\d", FlagSet(use_regex=True))

        assert pattern.text == r"(foo|bar)+\d"
        assert pattern.use_regex

    def test_regex_whole_word(self) -> None:
        pattern = compile_pattern(r"get\w+", FlagSet(use_regex=True, whole_word=True))

        assert pattern.text == r"\bget\w+\b"

    def test_invalid_regex(self) -> None:
        with pytest.raises(InvalidRegex) as exc_info:
            compile_pattern("(unclosed", FlagSet(use_regex=True))

        assert exc_info.value.pattern == "(unclosed"
        assert "(unclosed" in str(exc_info.value)

    def test_invalid_regex_is_fine_as_literal(self) -> None:
        pattern = compile_pattern("(unclosed", FlagSet())

        assert pattern.text == r"\(unclosed"


class TestCompileReplacement:
    """Test replacement compilation."""

    def test_plain_replacement(self) -> None:
        replacement = compile_replacement("service")

        assert replacement.text == "service"
        assert replacement.literal == "service"
        assert not replacement.deferred

    def test_backslashes_doubled(self) -> None:
        replacement = compile_replacement("a\\1b")

        assert replacement.text == "a\\\\1b"
        assert re.sub("x", replacement.template(), "x") == "a\\1b"

    def test_delimiter_escaped(self) -> None:
        replacement = compile_replacement("c/d")

        assert replacement.text == r"c\/d"
        assert replacement.template() == "c/d"

    def test_line_breaks_stripped(self) -> None:
        assert compile_replacement("new\nname").literal == "newname"

    def test_preserve_case_defers_to_transformer(self) -> None:
        replacement = compile_replacement("service", preserve_case=True)

        assert replacement.deferred
        assert replacement.transform is preserve_case
        assert replacement.evaluate("API") == "SERVICE"
        assert replacement.evaluate("Api") == "Service"
        assert replacement.evaluate("api") == "service"


class TestDelimiter:
    """Test delimiter selection and escaping."""

    def test_default_delimiter_kept(self) -> None:
        assert select_delimiter("foo", "bar") == "/"

    def test_slash_in_operand(self) -> None:
        assert select_delimiter(r"a\/b", "c") == "#"
        assert select_delimiter("a", r"c\/d") == "#"

    def test_priority_order(self) -> None:
        assert select_delimiter(r"a\/b\#", "@") == "|"

    def test_no_safe_delimiter(self) -> None:
        with pytest.raises(NoSafeDelimiter, match="simplifying"):
            select_delimiter(DELIMITER_CANDIDATES, "")

    def test_escape_delimiter(self) -> None:
        assert escape_delimiter("a/b", "/") == r"a\/b"
        assert escape_delimiter(r"a\/b", "/") == r"a\/b"
        assert escape_delimiter("a\\\\/b", "/") == "a\\\\\\/b"

    def test_unescape_delimiter(self) -> None:
        assert unescape_delimiter(r"a\/b", "/") == "a/b"
        assert unescape_delimiter("a\\\\\\/b", "/") == "a\\\\/b"
        assert unescape_delimiter(r"a\.b", "/") == r"a\.b"

    def test_has_unescaped(self) -> None:
        assert has_unescaped("a/b", "/")
        assert not has_unescaped(r"a\/b", "/")
        assert has_unescaped("a\\\\/b", "/")

    @given(text=st.text(alphabet="ab/#@. "))
    def test_property_escape_round_trip(self, text: str) -> None:
        escaped = escape_delimiter(text, "/")

        assert not has_unescaped(escaped, "/")
        assert unescape_delimiter(escaped, "/") == text


class TestCompileSubstitution:
    """Test full operand compilation with delimiter choice."""

    def test_common_case_uses_slash(self) -> None:
        pattern, replacement = compile_substitution("foo", "bar", FlagSet())

        assert pattern.delimiter == replacement.delimiter == "/"

    def test_slashes_move_to_other_delimiter(self) -> None:
        pattern, replacement = compile_substitution("a/b", "c/d", FlagSet())

        assert pattern.delimiter != "/"
        assert pattern.delimiter == replacement.delimiter == "#"
        assert pattern.text == "a/b"
        assert replacement.text == "c/d"
        assert not has_unescaped(pattern.text, pattern.delimiter)
        assert not has_unescaped(replacement.text, replacement.delimiter)

    def test_escaped_candidate_skipped(self) -> None:
        """re.escape turns '#' into '\\#', which still rules '#' out."""
        pattern, _ = compile_substitution("a/b#c", "x", FlagSet())

        assert pattern.delimiter == "@"
        assert pattern.expression() == r"a/b\#c"

    def test_preserve_case_keeps_transformer(self) -> None:
        _, replacement = compile_substitution("a/b", "c/d", FlagSet(preserve_case=True))

        assert replacement.deferred
        assert replacement.delimiter == "#"
        assert replacement.evaluate("A/B") == "C/D"

    def test_no_safe_delimiter_propagates(self) -> None:
        with pytest.raises(NoSafeDelimiter):
            compile_substitution("/#@|", "!%~;:", FlagSet())

    @given(
        find=st.text(alphabet="ab/#@|!%~;:", min_size=1, max_size=12),
        replace=st.text(alphabet="xy/#@|", max_size=12),
    )
    def test_property_no_unescaped_delimiter(self, find: str, replace: str) -> None:
        try:
            pattern, replacement = compile_substitution(find, replace, FlagSet())
        except NoSafeDelimiter:
            return

        assert not has_unescaped(pattern.text, pattern.delimiter)
        assert not has_unescaped(replacement.text, replacement.delimiter)
        assert re.fullmatch(pattern.expression(), find)
