"""Core refactor engine."""

from .case import preserve_case
from .delimiter import DELIMITER_CANDIDATES, apply_delimiter, select_delimiter
from .errors import (
    BatchInProgress,
    BufferUnavailable,
    EmptyPattern,
    InvalidFlag,
    InvalidRegex,
    NoSafeDelimiter,
    RefactorError,
    SubstitutionFailed,
)
from .executor import (
    ALL_LINES,
    BatchExecutor,
    BatchResult,
    ExecutionOutcome,
    MatchLocation,
    build_plan,
    coerce_locations,
    replace_in_buffer,
)
from .flags import FlagSet, parse_flags
from .pattern import (
    CompiledPattern,
    CompiledReplacement,
    compile_pattern,
    compile_replacement,
    compile_substitution,
)
from .safety import (
    CancellationToken,
    PerformanceMonitor,
    RunContext,
    SafeFileOperation,
    performance_monitor,
    safe_edit_context,
)
from .strategy import BulkStrategy, PreciseStrategy, Strategy, StrategyDispatcher

__all__ = [
    # Flags and compilation
    'FlagSet',
    'parse_flags',
    'CompiledPattern',
    'CompiledReplacement',
    'compile_pattern',
    'compile_replacement',
    'compile_substitution',
    'DELIMITER_CANDIDATES',
    'select_delimiter',
    'apply_delimiter',
    'preserve_case',

    # Execution
    'ALL_LINES',
    'MatchLocation',
    'build_plan',
    'coerce_locations',
    'replace_in_buffer',
    'BatchExecutor',
    'BatchResult',
    'ExecutionOutcome',
    'Strategy',
    'BulkStrategy',
    'PreciseStrategy',
    'StrategyDispatcher',

    # Safety mechanisms
    'CancellationToken',
    'RunContext',
    'SafeFileOperation',
    'safe_edit_context',
    'PerformanceMonitor',
    'performance_monitor',

    # Errors
    'RefactorError',
    'InvalidFlag',
    'EmptyPattern',
    'InvalidRegex',
    'NoSafeDelimiter',
    'SubstitutionFailed',
    'BufferUnavailable',
    'BatchInProgress',
]
