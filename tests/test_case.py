"""Tests for the case-preserving replacement."""
import string

from batch_refactor.core.case import preserve_case
from hypothesis import given
from hypothesis import strategies as st


class TestPreserveCase:
    """Test each precedence rule of the case heuristic."""

    def test_empty_inputs(self) -> None:
        assert preserve_case("", "service") == "service"
        assert preserve_case("API", "") == ""

    def test_all_uppercase(self) -> None:
        assert preserve_case("API", "service") == "SERVICE"
        assert preserve_case("X", "service") == "SERVICE"
        assert preserve_case("HTTP_2", "service") == "SERVICE"

    def test_all_lowercase(self) -> None:
        assert preserve_case("api", "Service") == "service"
        assert preserve_case("api_v2", "SERVICE") == "service"

    def test_title_case(self) -> None:
        assert preserve_case("Api", "service") == "Service"
        assert preserve_case("Api", "sERVICE") == "Service"

    def test_no_letters_falls_to_title_rule(self) -> None:
        """Text without letters is neither upper nor lower and reads as title case."""
        assert preserve_case("123", "sERVICE") == "Service"

    def test_mixed_case_mostly_lower(self) -> None:
        assert preserve_case("ApiClient", "x") == "x"
        assert preserve_case("ApiClient", "serviceWorker") == "serviceworker"
        assert preserve_case("aPi", "Service") == "service"

    def test_mixed_case_mostly_upper(self) -> None:
        assert preserve_case("APi", "service") == "SERVICE"
        assert preserve_case("HTTPClient", "service") == "service"
        assert preserve_case("HTTPSClIENT", "service") == "SERVICE"

    @given(
        original=st.text(alphabet=string.ascii_letters, min_size=1, max_size=20),
        replacement=st.text(alphabet=string.ascii_letters, min_size=1, max_size=20),
    )
    def test_property_only_case_changes(self, original: str, replacement: str) -> None:
        """The heuristic never changes letters, only their case."""
        result = preserve_case(original, replacement)

        assert result.lower() == replacement.lower()

    @given(replacement=st.text(alphabet=string.ascii_letters, min_size=1, max_size=20))
    def test_property_uppercase_original(self, replacement: str) -> None:
        assert preserve_case("NAME", replacement) == replacement.upper()
