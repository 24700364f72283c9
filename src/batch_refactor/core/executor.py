"""Single-buffer and batch substitution executors."""
import logging
from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from .errors import BatchInProgress, BufferUnavailable, SubstitutionFailed
from .flags import FlagSet
from .pattern import CompiledPattern, CompiledReplacement
from .safety import CancellationToken, RunContext, performance_monitor

if TYPE_CHECKING:
    from ..buffers.base import BufferHost

logger = logging.getLogger(__name__)

# Line target meaning "every line of the buffer"
ALL_LINES = "all"


@dataclass(frozen=True)
class MatchLocation:
    """One line of one buffer to run the substitution on."""

    buffer_id: Hashable
    line_number: int

    def __post_init__(self):
        if self.line_number < 1:
            raise ValueError(f"Line number must be positive, got {self.line_number}")

    @classmethod
    def from_entry(cls, entry: Any) -> Optional["MatchLocation"]:
        """Build a location from a location-list entry.

        Accepts a MatchLocation, a ``(buffer_id, line_number)`` pair, or a
        mapping with ``buffer_id``/``line_number`` (or ``bufnr``/``lnum``)
        keys. Mapping entries with a missing buffer or a non-positive line
        are skipped by returning None.
        """
        if isinstance(entry, MatchLocation):
            return entry
        if isinstance(entry, Mapping):
            buffer_id = entry.get("buffer_id", entry.get("bufnr"))
            line_number = entry.get("line_number", entry.get("lnum")) or 0
            if buffer_id is None or line_number < 1:
                return None
            if isinstance(buffer_id, int) and buffer_id < 1:
                return None
            return cls(buffer_id, line_number)
        buffer_id, line_number = entry
        return cls(buffer_id, line_number)


def coerce_locations(entries: Iterable[Any]) -> list[MatchLocation]:
    """Snapshot a location list into MatchLocation objects."""
    locations = []
    for entry in entries:
        location = MatchLocation.from_entry(entry)
        if location is None:
            logger.debug(f"Skipping unusable location entry: {entry!r}")
            continue
        locations.append(location)
    return locations


def build_plan(locations: Iterable[MatchLocation]) -> dict[Hashable, list[int]]:
    """Group locations by buffer with deduplicated, ascending line numbers.

    Buffers keep the order in which they first appear.
    """
    grouped: dict[Hashable, set[int]] = {}
    for location in locations:
        grouped.setdefault(location.buffer_id, set()).add(location.line_number)
    return {buffer_id: sorted(lines) for buffer_id, lines in grouped.items()}


@dataclass
class LineTally:
    """Counts produced by a strategy for one buffer."""

    succeeded: int = 0
    replacements: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class ExecutionOutcome:
    """Result of running the substitution on one buffer."""

    buffer_id: Hashable
    display_name: str
    attempted: int = 0
    succeeded: int = 0
    replacements: int = 0
    failed: bool = False
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "buffer_id": self.buffer_id,
            "display_name": self.display_name,
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "replacements": self.replacements,
            "failed": self.failed,
            "errors": list(self.errors),
        }


@dataclass
class BatchResult:
    """Aggregate result of a batch run."""

    per_buffer: list[ExecutionOutcome] = field(default_factory=list)
    strategy_used: Optional[str] = None
    cancelled: bool = False

    @property
    def total_replacements(self) -> int:
        return sum(outcome.replacements for outcome in self.per_buffer)

    @property
    def success(self) -> bool:
        return self.total_replacements > 0

    @property
    def failed_buffers(self) -> list[ExecutionOutcome]:
        return [outcome for outcome in self.per_buffer if outcome.failed]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_replacements": self.total_replacements,
            "per_buffer": [outcome.to_dict() for outcome in self.per_buffer],
            "strategy_used": self.strategy_used,
            "success": self.success,
            "cancelled": self.cancelled,
        }


def replace_in_buffer(
    host: "BufferHost",
    buffer_id: Hashable,
    pattern: CompiledPattern,
    replacement: CompiledReplacement,
    flags: FlagSet,
) -> int:
    """Replace every occurrence in a whole buffer.

    Args:
        host: Buffer host
        buffer_id: Buffer to edit
        pattern: Compiled search pattern
        replacement: Compiled replacement
        flags: Search flags (only ``case_sensitive`` matters here)

    Returns:
        Number of replacements made

    Raises:
        SubstitutionFailed: If the host rejects the instruction
        BufferUnavailable: If the buffer cannot be loaded
    """
    if not host.is_loaded(buffer_id):
        host.load(buffer_id)

    name = host.display_name(buffer_id)
    logger.info(f"Searching in: {name}")

    with performance_monitor.measure_operation("buffer_replace"):
        try:
            count = host.apply_substitution(
                buffer_id, ALL_LINES, pattern, replacement, flags.case_sensitive
            )
        except SubstitutionFailed as e:
            logger.error(
                f"Replace failed in {name}. Try different flags or check special characters: {e}"
            )
            raise

    logger.info(f"Made {count} replacements in {name}")
    return count


class BatchExecutor:
    """Runs one substitution across a list of locations in many buffers.

    The active buffer and cursor are captured before the run and restored
    afterwards, whatever the outcome. A failing buffer is recorded and the
    run moves on to the next one.
    """

    def __init__(self, host: "BufferHost", cancel_token: Optional[CancellationToken] = None):
        """Initialize batch executor.

        Args:
            host: Buffer host to operate on
            cancel_token: Token polled before each buffer (and by strategies
                before each line)
        """
        self.host = host
        self.cancel_token = cancel_token or CancellationToken()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def run(
        self,
        locations: Iterable[MatchLocation],
        pattern: CompiledPattern,
        replacement: CompiledReplacement,
        flags: FlagSet,
        strategy,
    ) -> BatchResult:
        """Apply the substitution to every planned location.

        Args:
            locations: Match locations; snapshotted before anything runs
            pattern: Compiled search pattern
            replacement: Compiled replacement
            flags: Search flags
            strategy: Per-buffer action (BulkStrategy or PreciseStrategy)

        Returns:
            BatchResult with one outcome per processed buffer

        Raises:
            BatchInProgress: If this executor is already running
        """
        if self._running:
            raise BatchInProgress()

        plan = build_plan(list(locations))
        result = BatchResult(strategy_used=strategy.name.value)

        self._running = True
        try:
            with RunContext(self.host):
                for buffer_id, lines in plan.items():
                    if self.cancel_token.cancelled:
                        break
                    result.per_buffer.append(
                        self._run_buffer(buffer_id, lines, pattern, replacement, flags, strategy)
                    )
        finally:
            self._running = False

        result.cancelled = self.cancel_token.cancelled
        logger.info(
            f"{strategy.name.value} run: {result.total_replacements} replacements "
            f"in {len(result.per_buffer)}/{len(plan)} buffers"
        )
        return result

    def _run_buffer(
        self,
        buffer_id: Hashable,
        lines: list[int],
        pattern: CompiledPattern,
        replacement: CompiledReplacement,
        flags: FlagSet,
        strategy,
    ) -> ExecutionOutcome:
        outcome = ExecutionOutcome(
            buffer_id=buffer_id,
            display_name=str(buffer_id),
            attempted=len(lines),
        )

        try:
            outcome.display_name = self.host.display_name(buffer_id)
            logger.info(f"Processing: {outcome.display_name} ({len(lines)} locations)")

            if not self.host.is_loaded(buffer_id):
                self.host.load(buffer_id)
            self.host.activate(buffer_id)

            tally = strategy.apply(
                self.host, buffer_id, lines, pattern, replacement, flags, self.cancel_token
            )
            outcome.succeeded = tally.succeeded
            outcome.replacements = tally.replacements
            outcome.errors.extend(tally.errors)

            self.host.persist(buffer_id)

        except (SubstitutionFailed, BufferUnavailable, OSError, LookupError) as e:
            outcome.failed = True
            outcome.errors.append(str(e))
            logger.error(f"Failed: {outcome.display_name}: {e}")
            return outcome

        logger.info(
            f"Success: {outcome.display_name} "
            f"({outcome.succeeded}/{outcome.attempted} lines, {outcome.replacements} replacements)"
        )
        return outcome
