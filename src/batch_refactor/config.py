"""Session defaults."""
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any, Optional

from .core.flags import parse_flags
from .core.strategy import Strategy


@dataclass
class RefactorConfig:
    """Defaults applied when a request leaves a setting out.

    Attributes:
        default_flags: Flag string used when none is given
        default_strategy: Batch strategy used when no hint is given
        fallback_to_precise: Retry a failed bulk run with the precise strategy
        persist_buffer_scope: Write the buffer after a single-buffer replace
        encoding: Text encoding for file-backed buffers
        lock_timeout: Seconds to wait for a file lock when persisting
    """

    default_flags: str = "w"
    default_strategy: Strategy = Strategy.BULK
    fallback_to_precise: bool = True
    persist_buffer_scope: bool = False
    encoding: str = "utf-8"
    lock_timeout: int = 30

    def __post_init__(self):
        parse_flags(self.default_flags)
        self.default_strategy = Strategy.parse(self.default_strategy)

    @classmethod
    def from_mapping(cls, opts: Optional[Mapping[str, Any]] = None) -> "RefactorConfig":
        """Build a config from user options.

        Raises:
            ValueError: On an unknown option or strategy name
            InvalidFlag: If ``default_flags`` is not a valid flag string
        """
        opts = dict(opts or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(opts) - known)
        if unknown:
            raise ValueError(f"Unknown config options: {', '.join(unknown)}")
        return cls(**opts)
