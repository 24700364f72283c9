"""Caller-facing refactor session."""
import logging
import time
from collections.abc import Hashable, Iterable, Mapping
from typing import Any, Optional, Union

from ..buffers.base import BufferHost
from ..config import RefactorConfig
from ..core.errors import BufferUnavailable, SubstitutionFailed
from ..core.executor import (
    BatchExecutor,
    BatchResult,
    ExecutionOutcome,
    coerce_locations,
    replace_in_buffer,
)
from ..core.flags import FlagSet, parse_flags
from ..core.pattern import CompiledPattern, CompiledReplacement, compile_substitution
from ..core.safety import CancellationToken
from ..core.strategy import Strategy, StrategyDispatcher

logger = logging.getLogger(__name__)


class RefactorSession:
    """Find-and-replace front end over a buffer host.

    Takes raw find/replace text and a flag string, compiles them once, and
    runs them either over a single buffer or over a list of match locations.
    Results come back as plain dicts. Compilation errors (InvalidFlag,
    EmptyPattern, InvalidRegex, NoSafeDelimiter) propagate before any
    buffer is touched.
    """

    def __init__(self, host: BufferHost, config: Optional[RefactorConfig] = None):
        """Initialize refactor session.

        Args:
            host: Buffer host providing storage and the substitution primitive
            config: Session defaults
        """
        self.host = host
        self.config = config or RefactorConfig()
        self.cancel_token = CancellationToken()
        self.executor = BatchExecutor(host, self.cancel_token)
        self.dispatcher = StrategyDispatcher(
            self.executor, fallback=self.config.fallback_to_precise
        )
        self.operation_log = []

    def _log_operation(self, scope: str, flags: FlagSet, find: str, replace: str, result: dict):
        self.operation_log.append(
            {
                "timestamp": time.time(),
                "scope": scope,
                "flags": flags.to_string(),
                "find": find,
                "replace": replace,
                "total_replacements": result["total_replacements"],
                "strategy_used": result["strategy_used"],
            }
        )

    def compile(
        self, find: str, replace: str, flag_string: Optional[str] = None
    ) -> tuple[FlagSet, CompiledPattern, CompiledReplacement]:
        """Parse flags and compile both operands."""
        if flag_string is None:
            flag_string = self.config.default_flags
        flags = parse_flags(flag_string)
        pattern, replacement = compile_substitution(find, replace, flags)
        logger.info(f"Active: {flags.describe()}")
        return flags, pattern, replacement

    def cancel(self):
        """Ask the running batch to stop at the next line or buffer."""
        self.cancel_token.cancel()

    def refactor_buffer(
        self,
        find: str,
        replace: str,
        flag_string: Optional[str] = None,
        buffer_id: Optional[Hashable] = None,
    ) -> dict[str, Any]:
        """Replace every match in one buffer.

        Args:
            find: Find text
            replace: Replacement text
            flag_string: Flags; the configured default when None
            buffer_id: Buffer to edit; the active buffer when None

        Returns:
            Output dict with a single per-buffer entry

        Raises:
            BufferUnavailable: If no buffer is given and none is active
        """
        flags, pattern, replacement = self.compile(find, replace, flag_string)
        if buffer_id is None:
            buffer_id = self.host.active_buffer()
        if buffer_id is None:
            raise BufferUnavailable(None, "no active buffer")
        logger.info(f"Refactor [{flags}]: '{find}' -> '{replace}'")

        outcome = ExecutionOutcome(
            buffer_id=buffer_id,
            display_name=self.host.display_name(buffer_id),
            attempted=1,
        )
        try:
            count = replace_in_buffer(self.host, buffer_id, pattern, replacement, flags)
            outcome.replacements = count
            outcome.succeeded = 1 if count else 0
            if self.config.persist_buffer_scope:
                self.host.persist(buffer_id)
        except (SubstitutionFailed, BufferUnavailable, OSError) as e:
            outcome.failed = True
            outcome.errors.append(str(e))

        result = BatchResult(per_buffer=[outcome]).to_dict()
        self._report(result)
        self._log_operation("buffer", flags, find, replace, result)
        return result

    def refactor_locations(
        self,
        locations: Iterable[Any],
        find: str,
        replace: str,
        flag_string: Optional[str] = None,
        strategy_hint: Union[Strategy, str, None] = None,
    ) -> dict[str, Any]:
        """Replace matches on a list of locations spread over many buffers.

        Args:
            locations: MatchLocation objects, ``(buffer_id, line)`` pairs or
                location-list dicts
            find: Find text
            replace: Replacement text
            flag_string: Flags; the configured default when None
            strategy_hint: ``"bulk"`` or ``"precise"``; the configured
                default when None

        Returns:
            Output dict with per-buffer outcomes and the strategy used
        """
        flags, pattern, replacement = self.compile(find, replace, flag_string)
        strategy = Strategy.parse(strategy_hint or self.config.default_strategy)
        snapshot = coerce_locations(locations)
        self.cancel_token.reset()

        if not snapshot:
            logger.warning("No locations to process")
            result = BatchResult(strategy_used=strategy.value).to_dict()
            self._log_operation("batch", flags, find, replace, result)
            return result

        logger.info(
            f"Refactor [{strategy.value}] [{flags}]: '{find}' -> '{replace}' "
            f"({len(snapshot)} locations)"
        )
        result = self.dispatcher.run(snapshot, pattern, replacement, flags, strategy).to_dict()
        self._report(result)
        self._log_operation("batch", flags, find, replace, result)
        return result

    def run(self, request: Mapping[str, Any]) -> dict[str, Any]:
        """Run a request of the form ``{flag_string, find, replace, scope}``.

        ``scope`` is ``{"type": "buffer", "buffer_id": ...}`` or
        ``{"type": "batch", "locations": [...], "strategy_hint": ...}``; the
        bare strings ``"buffer"`` and ``"batch"`` are shorthands.

        Raises:
            ValueError: On an unknown scope type
        """
        scope = request.get("scope", "buffer")
        if isinstance(scope, str):
            scope = {"type": scope}

        scope_type = scope.get("type", "buffer")
        if scope_type == "buffer":
            return self.refactor_buffer(
                request["find"],
                request["replace"],
                request.get("flag_string"),
                scope.get("buffer_id"),
            )
        if scope_type == "batch":
            return self.refactor_locations(
                scope.get("locations", []),
                request["find"],
                request["replace"],
                request.get("flag_string"),
                scope.get("strategy_hint"),
            )
        raise ValueError(f"Unknown scope '{scope_type}'. Valid: buffer, batch")

    def _report(self, result: dict[str, Any]):
        if result["cancelled"]:
            logger.info(f"Refactor cancelled after {result['total_replacements']} replacements")
        elif result["success"]:
            logger.info(f"Refactor completed: {result['total_replacements']} replacements")
        else:
            logger.warning("Refactor encountered errors or found nothing to replace")
