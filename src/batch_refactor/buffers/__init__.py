"""Buffer hosts: storage and substitution primitive for refactor runs."""

from .base import ALL_LINES, BufferHost, Position, TextBuffer
from .files import FileBufferHost
from .memory import InMemoryBufferHost

__all__ = [
    "ALL_LINES",
    "BufferHost",
    "Position",
    "TextBuffer",
    "FileBufferHost",
    "InMemoryBufferHost",
]
