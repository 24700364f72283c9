"""Tests for batch strategies and the fallback dispatcher."""
import pytest
from batch_refactor.buffers import InMemoryBufferHost
from batch_refactor.core.errors import SubstitutionFailed
from batch_refactor.core.executor import BatchExecutor, MatchLocation
from batch_refactor.core.flags import parse_flags
from batch_refactor.core.pattern import compile_substitution
from batch_refactor.core.safety import performance_monitor
from batch_refactor.core.strategy import Strategy, StrategyDispatcher

DOCUMENTS = {
    "A": "foo one\nfoo two\nfoo three\n",
    "B": "x = foo\ny = foo\n",
}


class FlakyBulkHost(InMemoryBufferHost):
    """Host whose multi-line instructions fail on buffer A."""

    def apply_substitution(self, buffer_id, target, *args, **kwargs):
        if buffer_id == "A" and not isinstance(target, int):
            raise SubstitutionFailed(buffer_id, "simulated bulk failure")
        return super().apply_substitution(buffer_id, target, *args, **kwargs)


class FlakyLineHost(InMemoryBufferHost):
    """Host that rejects line 2 of every buffer."""

    def apply_substitution(self, buffer_id, target, *args, **kwargs):
        if target == 2 or (not isinstance(target, int) and 2 in target):
            raise SubstitutionFailed(buffer_id, "simulated line failure", 2)
        return super().apply_substitution(buffer_id, target, *args, **kwargs)


class FailingWriteHost(InMemoryBufferHost):
    """Host whose first write back to storage fails."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.write_failures = 1

    def _write(self, buffer_id, text):
        if self.write_failures:
            self.write_failures -= 1
            raise OSError("disk full")
        super()._write(buffer_id, text)


def all_locations() -> list:
    return [
        MatchLocation("A", 1),
        MatchLocation("A", 2),
        MatchLocation("A", 3),
        MatchLocation("B", 1),
        MatchLocation("B", 2),
    ]


class TestStrategyParse:
    """Test strategy hint parsing."""

    def test_names_and_aliases(self) -> None:
        assert Strategy.parse("bulk") is Strategy.BULK
        assert Strategy.parse("auto") is Strategy.BULK
        assert Strategy.parse("Precise") is Strategy.PRECISE
        assert Strategy.parse("manual") is Strategy.PRECISE
        assert Strategy.parse(Strategy.PRECISE) is Strategy.PRECISE
        assert Strategy.parse(None) is Strategy.BULK

    def test_unknown_hint(self) -> None:
        with pytest.raises(ValueError, match="Unknown strategy"):
            Strategy.parse("quick")


class TestStrategyDispatcher:
    """Test dispatch and fallback between bulk and precise."""

    def setup_method(self) -> None:
        self.flags = parse_flags("c")
        self.pattern, self.replacement = compile_substitution("foo", "bar", self.flags)
        performance_monitor.reset()

    def dispatch(self, host, hint="bulk", fallback=True):
        host.open("B")
        host.set_cursor((2, 3))
        dispatcher = StrategyDispatcher(BatchExecutor(host), fallback=fallback)
        return dispatcher.run(all_locations(), self.pattern, self.replacement, self.flags, hint)

    def test_bulk_success_needs_no_fallback(self) -> None:
        host = InMemoryBufferHost(DOCUMENTS)

        result = self.dispatch(host)

        assert result.strategy_used == "bulk"
        assert result.total_replacements == 5
        assert host.documents["A"] == "bar one\nbar two\nbar three\n"
        assert host.documents["B"] == "x = bar\ny = bar\n"
        assert performance_monitor.get_stats("batch_bulk")["count"] == 1
        assert performance_monitor.get_stats("batch_precise") == {}

    def test_bulk_failure_falls_back_to_precise(self) -> None:
        host = FlakyBulkHost(DOCUMENTS)

        result = self.dispatch(host)

        assert result.strategy_used == "precise"
        assert result.success
        assert result.total_replacements == 5
        assert host.documents["A"] == "bar one\nbar two\nbar three\n"
        assert host.documents["B"] == "x = bar\ny = bar\n"

        outcomes = {outcome.buffer_id: outcome for outcome in result.per_buffer}
        assert not outcomes["A"].failed
        assert outcomes["A"].succeeded == outcomes["A"].attempted == 3
        assert outcomes["B"].replacements == 2
        assert performance_monitor.get_stats("batch_precise")["count"] == 1

    def test_fallback_does_not_reapply_to_rewritten_buffers(self) -> None:
        pattern, replacement = compile_substitution("foo", "foofoo", self.flags)
        host = FlakyBulkHost(DOCUMENTS)
        host.open("B")
        dispatcher = StrategyDispatcher(BatchExecutor(host))

        result = dispatcher.run(all_locations(), pattern, replacement, self.flags)

        assert result.strategy_used == "precise"
        assert host.documents["B"] == "x = foofoo\ny = foofoo\n"
        assert host.documents["A"] == "foofoo one\nfoofoo two\nfoofoo three\n"

    def test_persist_failure_is_not_retried(self) -> None:
        pattern, replacement = compile_substitution("foo", "foofoo", self.flags)
        host = FailingWriteHost({"A": "foo\n"})
        dispatcher = StrategyDispatcher(BatchExecutor(host))

        result = dispatcher.run([MatchLocation("A", 1)], pattern, replacement, self.flags)

        assert result.strategy_used == "bulk"
        outcome = result.per_buffer[0]
        assert outcome.failed
        assert outcome.replacements == 1
        assert "disk full" in outcome.errors[0]
        assert host.text("A") == "foofoo\n"
        assert host.documents["A"] == "foo\n"
        assert performance_monitor.get_stats("batch_precise") == {}

        host.persist("A")
        assert host.documents["A"] == "foofoo\n"

    def test_fallback_disabled(self) -> None:
        host = FlakyBulkHost(DOCUMENTS)

        result = self.dispatch(host, fallback=False)

        assert result.strategy_used == "bulk"
        assert [outcome.buffer_id for outcome in result.failed_buffers] == ["A"]
        assert host.documents["A"] == DOCUMENTS["A"]

    def test_zero_replacements_falls_back(self) -> None:
        host = InMemoryBufferHost({"A": "nothing\n", "B": "nada\n"})
        host.open("B")
        dispatcher = StrategyDispatcher(BatchExecutor(host))

        result = dispatcher.run(
            [MatchLocation("A", 1), MatchLocation("B", 1)],
            self.pattern,
            self.replacement,
            self.flags,
        )

        assert result.strategy_used == "precise"
        assert not result.success
        assert len(result.per_buffer) == 2

    def test_precise_isolates_line_failures(self) -> None:
        host = FlakyLineHost(DOCUMENTS)

        result = self.dispatch(host, hint="precise")

        assert result.strategy_used == "precise"
        assert host.documents["A"] == "bar one\nfoo two\nbar three\n"
        assert host.documents["B"] == "x = bar\ny = foo\n"

        outcomes = {outcome.buffer_id: outcome for outcome in result.per_buffer}
        assert outcomes["A"].succeeded == 2
        assert outcomes["A"].attempted == 3
        assert not outcomes["A"].failed
        assert len(outcomes["A"].errors) == 1

    def test_bulk_line_failure_recovers_other_lines(self) -> None:
        """Bulk loses the whole buffer; the precise retry saves the good lines."""
        host = FlakyLineHost(DOCUMENTS)

        result = self.dispatch(host)

        assert result.strategy_used == "precise"
        assert result.total_replacements == 3
        assert host.documents["A"] == "bar one\nfoo two\nbar three\n"

    def test_context_restored_after_fallback(self) -> None:
        host = FlakyBulkHost(DOCUMENTS)

        self.dispatch(host)

        assert host.active_buffer() == "B"
        assert host.get_cursor() == (2, 3)
