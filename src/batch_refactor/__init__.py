"""Batch find-and-replace engine with bulk and precise strategies."""

from .buffers import BufferHost, FileBufferHost, InMemoryBufferHost
from .config import RefactorConfig
from .core import (
    BatchExecutor,
    EmptyPattern,
    FlagSet,
    InvalidFlag,
    InvalidRegex,
    MatchLocation,
    NoSafeDelimiter,
    RefactorError,
    Strategy,
    StrategyDispatcher,
    SubstitutionFailed,
    compile_pattern,
    compile_replacement,
    compile_substitution,
    parse_flags,
    performance_monitor,
    preserve_case,
    replace_in_buffer,
)
from .session import RefactorSession

__version__ = "0.1.0"

__all__ = [
    # Engine
    "FlagSet",
    "parse_flags",
    "compile_pattern",
    "compile_replacement",
    "compile_substitution",
    "preserve_case",
    "replace_in_buffer",
    "MatchLocation",
    "BatchExecutor",
    "Strategy",
    "StrategyDispatcher",
    "performance_monitor",
    # Errors
    "RefactorError",
    "InvalidFlag",
    "EmptyPattern",
    "InvalidRegex",
    "NoSafeDelimiter",
    "SubstitutionFailed",
    # Buffer hosts
    "BufferHost",
    "InMemoryBufferHost",
    "FileBufferHost",
    # Session
    "RefactorConfig",
    "RefactorSession",
]
