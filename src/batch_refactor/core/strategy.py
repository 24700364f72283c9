"""Bulk and precise batch strategies, and the dispatcher choosing between them.

Bulk issues one instruction per buffer covering every planned line. It is
fast but all-or-nothing: one bad line fails the whole buffer. Precise issues
one instruction per line, so a failing line only costs that line.
"""
import logging
from abc import ABC, abstractmethod
from collections.abc import Hashable, Iterable
from enum import Enum
from typing import TYPE_CHECKING, Union

from .errors import SubstitutionFailed
from .executor import BatchExecutor, BatchResult, LineTally, MatchLocation
from .flags import FlagSet
from .pattern import CompiledPattern, CompiledReplacement
from .safety import CancellationToken, performance_monitor

if TYPE_CHECKING:
    from ..buffers.base import BufferHost

logger = logging.getLogger(__name__)


class Strategy(str, Enum):
    BULK = "bulk"
    PRECISE = "precise"

    @classmethod
    def parse(cls, hint: Union["Strategy", str, None]) -> "Strategy":
        """Read a strategy hint.

        ``"auto"`` and ``"manual"`` are accepted as aliases of bulk and
        precise; only the first letter is checked.

        Raises:
            ValueError: On an unrecognised hint
        """
        if hint is None:
            return cls.BULK
        if isinstance(hint, cls):
            return hint

        text = hint.strip().lower()
        if text.startswith(("b", "a")):
            return cls.BULK
        if text.startswith(("p", "m")):
            return cls.PRECISE
        raise ValueError(f"Unknown strategy '{hint}'. Valid: bulk, precise")


class ExecutionStrategy(ABC):
    """Per-buffer action of a batch run."""

    name: Strategy

    @abstractmethod
    def apply(
        self,
        host: "BufferHost",
        buffer_id: Hashable,
        lines: list[int],
        pattern: CompiledPattern,
        replacement: CompiledReplacement,
        flags: FlagSet,
        cancel_token: CancellationToken,
    ) -> LineTally:
        """Run the substitution on the planned lines of one active buffer."""


class BulkStrategy(ExecutionStrategy):
    name = Strategy.BULK

    def apply(self, host, buffer_id, lines, pattern, replacement, flags, cancel_token):
        # A failure propagates and fails the whole buffer
        count = host.apply_substitution(
            buffer_id, tuple(lines), pattern, replacement, flags.case_sensitive
        )
        return LineTally(succeeded=len(lines) if count else 0, replacements=count)


class PreciseStrategy(ExecutionStrategy):
    name = Strategy.PRECISE

    def apply(self, host, buffer_id, lines, pattern, replacement, flags, cancel_token):
        tally = LineTally()
        for line_number in lines:
            if cancel_token.cancelled:
                break

            host.set_cursor((line_number, 1))
            try:
                count = host.apply_substitution(
                    buffer_id, line_number, pattern, replacement, flags.case_sensitive
                )
            except SubstitutionFailed as e:
                logger.warning(f"Skipping line {line_number} of {buffer_id}: {e}")
                tally.errors.append(str(e))
                continue

            if count:
                tally.succeeded += 1
                tally.replacements += count
        return tally


STRATEGIES = {
    Strategy.BULK: BulkStrategy,
    Strategy.PRECISE: PreciseStrategy,
}


class StrategyDispatcher:
    """Runs a batch with the requested strategy, falling back to precise.

    When the bulk run makes no replacements or fails on any buffer, the
    failed and unchanged buffers are run again with the precise strategy.
    Buffers bulk already rewrote are kept as they are.
    """

    def __init__(self, executor: BatchExecutor, fallback: bool = True):
        """Initialize dispatcher.

        Args:
            executor: Batch executor bound to a host
            fallback: Whether a failed bulk run is retried with precise
        """
        self.executor = executor
        self.fallback = fallback

    def run(
        self,
        locations: Iterable[MatchLocation],
        pattern: CompiledPattern,
        replacement: CompiledReplacement,
        flags: FlagSet,
        hint: Union[Strategy, str, None] = Strategy.BULK,
    ) -> BatchResult:
        """Execute a batch, returning which strategy produced the result."""
        locations = list(locations)
        strategy = Strategy.parse(hint)

        result = self._execute(locations, pattern, replacement, flags, strategy)
        if strategy is Strategy.PRECISE or not self.fallback or result.cancelled:
            return result
        if result.success and not result.failed_buffers:
            return result

        # Buffers bulk already rewrote stay as they are, even if persisting them failed
        retry_ids = {
            outcome.buffer_id for outcome in result.per_buffer if outcome.replacements == 0
        }
        if not retry_ids:
            return result
        logger.warning(
            f"Bulk run incomplete ({len(result.failed_buffers)} failed buffers, "
            f"{result.total_replacements} replacements), trying precise"
        )

        retry = self._execute(
            [location for location in locations if location.buffer_id in retry_ids],
            pattern,
            replacement,
            flags,
            Strategy.PRECISE,
        )
        kept = [outcome for outcome in result.per_buffer if outcome.buffer_id not in retry_ids]
        return BatchResult(
            per_buffer=kept + retry.per_buffer,
            strategy_used=Strategy.PRECISE.value,
            cancelled=retry.cancelled,
        )

    def _execute(self, locations, pattern, replacement, flags, strategy: Strategy) -> BatchResult:
        with performance_monitor.measure_operation(f"batch_{strategy.value}"):
            return self.executor.run(
                locations, pattern, replacement, flags, STRATEGIES[strategy]()
            )
