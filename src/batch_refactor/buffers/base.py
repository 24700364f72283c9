"""Buffer-access contract and the text buffer behind the bundled hosts.

A host owns a set of named text buffers, knows which one is active, and
exposes the substitution primitive the executors drive. Concrete hosts only
decide where buffer text comes from and where it goes on persist.
"""
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Hashable, Sequence
from typing import Optional, Union

from ..core.delimiter import has_unescaped
from ..core.errors import BufferUnavailable, SubstitutionFailed
from ..core.executor import ALL_LINES
from ..core.pattern import CompiledPattern, CompiledReplacement

logger = logging.getLogger(__name__)
# (line, column), both 1-based
Position = tuple[int, int]
LineTarget = Union[int, Sequence[int], str]


class TextBuffer:
    """In-memory line buffer with its own cursor."""

    def __init__(self, buffer_id: Hashable, text: str):
        """Initialize text buffer.

        Args:
            buffer_id: Identifier the host knows this buffer by
            text: Full buffer contents
        """
        self.buffer_id = buffer_id
        self.newline = "\r\n" if "\r\n" in text else "\n"
        self.trailing_newline = text.endswith(self.newline)
        body = text[: -len(self.newline)] if self.trailing_newline else text
        self.lines: list[str] = body.split(self.newline)
        self.cursor: Position = (1, 1)
        self.modified = False

    def to_text(self) -> str:
        text = self.newline.join(self.lines)
        if self.trailing_newline:
            text += self.newline
        return text

    def line_count(self) -> int:
        return len(self.lines)

    def resolve_lines(self, target: LineTarget) -> list[int]:
        """Expand a line target into concrete 1-based line numbers."""
        if target == ALL_LINES:
            return list(range(1, len(self.lines) + 1))
        if isinstance(target, int):
            line_numbers = [target]
        else:
            line_numbers = list(target)

        for line_number in line_numbers:
            if not 1 <= line_number <= len(self.lines):
                raise SubstitutionFailed(
                    self.buffer_id,
                    f"line {line_number} out of range (1-{len(self.lines)})",
                    line_number,
                )
        return line_numbers

    def substitute(
        self,
        target: LineTarget,
        pattern: CompiledPattern,
        replacement: CompiledReplacement,
        case_sensitive: bool,
    ) -> int:
        """Replace every match on the targeted lines.

        The instruction is atomic: either every targeted line is rewritten or,
        on failure, none is.

        Returns:
            Number of replacements made

        Raises:
            SubstitutionFailed: On a malformed instruction or bad line target
        """
        if pattern.delimiter != replacement.delimiter:
            raise SubstitutionFailed(self.buffer_id, "operands use different delimiters")
        if has_unescaped(pattern.text, pattern.delimiter) or has_unescaped(
            replacement.text, replacement.delimiter
        ):
            raise SubstitutionFailed(
                self.buffer_id, f"unescaped delimiter '{pattern.delimiter}' in instruction"
            )

        flags = 0 if case_sensitive else re.IGNORECASE
        try:
            regex = re.compile(pattern.expression(), flags)
        except re.error as e:
            raise SubstitutionFailed(self.buffer_id, str(e)) from e

        if replacement.deferred:

            def repl(match: re.Match) -> str:
                return replacement.evaluate(match.group(0))

        else:
            template = replacement.template()

            def repl(match: re.Match) -> str:
                return match.expand(template)

        rewritten = {}
        total = 0
        for line_number in self.resolve_lines(target):
            try:
                new_line, count = regex.subn(repl, self.lines[line_number - 1])
            except (re.error, IndexError) as e:
                raise SubstitutionFailed(self.buffer_id, str(e), line_number) from e
            if count:
                rewritten[line_number] = new_line
                total += count

        for line_number, new_line in rewritten.items():
            self.lines[line_number - 1] = new_line

        if rewritten:
            self.modified = True
            self.cursor = (max(rewritten), 1)

        return total


class BufferHost(ABC):
    """Named text buffers plus the active-buffer and cursor state."""

    def __init__(self):
        self._buffers: dict[Hashable, TextBuffer] = {}
        self._active: Optional[Hashable] = None

    @abstractmethod
    def exists(self, buffer_id: Hashable) -> bool:
        """Whether ``buffer_id`` resolves to a loadable resource."""

    @abstractmethod
    def _read(self, buffer_id: Hashable) -> str:
        """Read the stored text of a buffer."""

    @abstractmethod
    def _write(self, buffer_id: Hashable, text: str):
        """Store the text of a buffer."""

    def display_name(self, buffer_id: Hashable) -> str:
        return str(buffer_id)

    def is_loaded(self, buffer_id: Hashable) -> bool:
        return buffer_id in self._buffers

    def load(self, buffer_id: Hashable):
        """Read a buffer from storage and make it resident.

        Raises:
            BufferUnavailable: If the buffer does not exist or cannot be read
        """
        if not self.exists(buffer_id):
            raise BufferUnavailable(buffer_id)

        try:
            text = self._read(buffer_id)
        except (OSError, UnicodeError) as e:
            raise BufferUnavailable(buffer_id, str(e)) from e

        self._buffers[buffer_id] = TextBuffer(buffer_id, text)
        logger.debug(f"Loaded buffer {buffer_id}")

    def buffer(self, buffer_id: Hashable) -> TextBuffer:
        """Resident buffer for ``buffer_id``.

        Raises:
            BufferUnavailable: If the buffer is not loaded
        """
        try:
            return self._buffers[buffer_id]
        except KeyError:
            raise BufferUnavailable(buffer_id, "not loaded") from None

    def text(self, buffer_id: Hashable) -> str:
        """Current contents, including unsaved changes."""
        if self.is_loaded(buffer_id):
            return self._buffers[buffer_id].to_text()
        return self._read(buffer_id)

    def activate(self, buffer_id: Hashable):
        self.buffer(buffer_id)
        self._active = buffer_id

    def deactivate(self):
        """Leave no buffer active."""
        self._active = None

    def active_buffer(self) -> Optional[Hashable]:
        return self._active

    def get_cursor(self) -> Optional[Position]:
        if self._active is None:
            return None
        return self.buffer(self._active).cursor

    def set_cursor(self, position: Position):
        """Move the cursor of the active buffer, clamped to its lines."""
        if self._active is None:
            raise BufferUnavailable(None, "no active buffer")
        buf = self.buffer(self._active)
        line, column = position
        buf.cursor = (min(max(line, 1), buf.line_count()), max(column, 1))

    def persist(self, buffer_id: Hashable):
        """Write a modified buffer back to storage.

        Raises:
            BufferUnavailable: If the text cannot be encoded for storage
        """
        buf = self.buffer(buffer_id)
        if not buf.modified:
            return
        try:
            self._write(buffer_id, buf.to_text())
        except UnicodeError as e:
            raise BufferUnavailable(buffer_id, str(e)) from e
        buf.modified = False
        logger.debug(f"Persisted buffer {buffer_id}")

    def apply_substitution(
        self,
        buffer_id: Hashable,
        target: LineTarget,
        pattern: CompiledPattern,
        replacement: CompiledReplacement,
        case_sensitive: bool,
    ) -> int:
        """Run one substitution instruction on a resident buffer.

        Args:
            buffer_id: Buffer to edit
            target: A line number, a sequence of line numbers, or ``"all"``
            pattern: Compiled search pattern
            replacement: Compiled replacement
            case_sensitive: False adds the ignore-case modifier

        Returns:
            Number of replacements made

        Raises:
            SubstitutionFailed: If the instruction cannot be applied
        """
        return self.buffer(buffer_id).substitute(target, pattern, replacement, case_sensitive)
