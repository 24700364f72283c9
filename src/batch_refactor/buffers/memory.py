"""Buffer host backed by an in-process dict of documents."""
from collections.abc import Hashable
from typing import Optional

from .base import BufferHost


class InMemoryBufferHost(BufferHost):
    """Buffer host whose storage is a plain mapping of id to text.

    Persisting a buffer writes its text back into ``documents``.
    """

    def __init__(
        self,
        documents: Optional[dict[Hashable, str]] = None,
        names: Optional[dict[Hashable, str]] = None,
    ):
        """Initialize in-memory host.

        Args:
            documents: Initial buffer contents keyed by buffer id
            names: Optional display names keyed by buffer id
        """
        super().__init__()
        self.documents: dict[Hashable, str] = dict(documents or {})
        self.names: dict[Hashable, str] = dict(names or {})

    def add_document(self, buffer_id: Hashable, text: str, name: Optional[str] = None):
        self.documents[buffer_id] = text
        if name is not None:
            self.names[buffer_id] = name

    def open(self, buffer_id: Hashable):
        """Load (if needed) and activate a buffer, like opening it in an editor."""
        if not self.is_loaded(buffer_id):
            self.load(buffer_id)
        self.activate(buffer_id)

    def exists(self, buffer_id: Hashable) -> bool:
        return buffer_id in self.documents

    def display_name(self, buffer_id: Hashable) -> str:
        return self.names.get(buffer_id, str(buffer_id))

    def _read(self, buffer_id: Hashable) -> str:
        return self.documents[buffer_id]

    def _write(self, buffer_id: Hashable, text: str):
        self.documents[buffer_id] = text
