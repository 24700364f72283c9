"""Buffer host backed by text files under a root directory."""
import logging
from pathlib import Path
from typing import Union

from ..core.errors import BufferUnavailable
from ..core.safety import safe_edit_context
from .base import BufferHost

logger = logging.getLogger(__name__)


class FileBufferHost(BufferHost):
    """Buffer host where each buffer id is a file path inside ``root``.

    Buffers are read on load and written back on persist through a locked,
    atomic replace of the file.
    """

    def __init__(
        self, root: Union[str, Path], encoding: str = "utf-8", lock_timeout: int = 30
    ):
        """Initialize file-backed host.

        Args:
            root: Directory every buffer path must live under
            encoding: Text encoding for reads and writes
            lock_timeout: Seconds to wait for a file lock on persist
        """
        super().__init__()
        self.root = Path(root).resolve()
        self.encoding = encoding
        self.lock_timeout = lock_timeout

    def path_for(self, buffer_id: Union[str, Path]) -> Path:
        """Resolve a buffer id to a path inside the root.

        Raises:
            BufferUnavailable: If the path escapes the root directory
        """
        full_path = (self.root / buffer_id).resolve()
        try:
            full_path.relative_to(self.root)
        except ValueError:
            raise BufferUnavailable(buffer_id, "outside root directory") from None
        return full_path

    def exists(self, buffer_id: Union[str, Path]) -> bool:
        try:
            return self.path_for(buffer_id).is_file()
        except BufferUnavailable:
            return False

    def display_name(self, buffer_id: Union[str, Path]) -> str:
        return Path(buffer_id).name

    def _read(self, buffer_id: Union[str, Path]) -> str:
        with open(self.path_for(buffer_id), encoding=self.encoding, newline="") as f:
            return f.read()

    def _write(self, buffer_id: Union[str, Path], text: str):
        path = self.path_for(buffer_id)
        with safe_edit_context(path, self.lock_timeout) as safe_op:
            safe_op.write_text(text, self.encoding)
        logger.info(f"Wrote {path}")
