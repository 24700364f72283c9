"""Exception hierarchy for refactor runs."""
from typing import Any, Optional


class RefactorError(Exception):
    """Base class for every error raised by the refactor engine."""


class InvalidFlag(RefactorError):
    """Flag string contains an unknown or repeated flag."""

    def __init__(self, flag: str, accepted: str, duplicate: bool = False):
        self.flag = flag
        self.accepted = accepted
        self.duplicate = duplicate
        if duplicate:
            message = f"Duplicate flag '{flag}'"
        else:
            message = f"Invalid flag '{flag}'. Valid: {','.join(accepted)}"
        super().__init__(message)


class EmptyPattern(RefactorError):
    """Find string is empty once line breaks are removed."""

    def __init__(self):
        super().__init__("Empty search pattern")


class InvalidRegex(RefactorError):
    """Regex-mode find string does not compile."""

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid regex pattern '{pattern}': {reason}")


class NoSafeDelimiter(RefactorError):
    """Every candidate delimiter occurs in the pattern or the replacement."""

    def __init__(self, candidates: str):
        self.candidates = candidates
        super().__init__(
            f"No safe delimiter available (tried {' '.join(candidates)}). "
            "Try simplifying the find or replace text."
        )


class SubstitutionFailed(RefactorError):
    """Host rejected a substitution on a specific buffer or line."""

    def __init__(
        self,
        buffer_id: Any,
        reason: str,
        line_number: Optional[int] = None,
    ):
        self.buffer_id = buffer_id
        self.line_number = line_number
        self.reason = reason
        where = f"{buffer_id}" if line_number is None else f"{buffer_id}:{line_number}"
        super().__init__(f"Substitution failed in {where}: {reason}")


class BufferUnavailable(RefactorError):
    """Buffer identifier does not resolve to a loadable resource."""

    def __init__(self, buffer_id: Any, reason: str = "no such buffer"):
        self.buffer_id = buffer_id
        super().__init__(f"Buffer {buffer_id} unavailable: {reason}")


class BatchInProgress(RefactorError):
    """A batch run was started while another one is still running."""

    def __init__(self):
        super().__init__("A batch refactor is already running")
