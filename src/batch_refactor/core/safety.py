"""State restoration, cancellation and safe persistence for refactor runs."""
import logging
import os
import shutil
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union

from filelock import FileLock

if TYPE_CHECKING:
    from ..buffers.base import BufferHost, Position

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag polled between units of work."""

    def __init__(self):
        self._cancelled = False

    def cancel(self):
        if not self._cancelled:
            logger.info("Refactor cancelled by user")
        self._cancelled = True

    def reset(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class RunContext:
    """Snapshot of active buffer and cursor, restored on exit.

    Restoration happens on every exit path: normal completion, partial
    failure, cancellation, or an exception escaping the ``with`` block.
    """

    def __init__(self, host: "BufferHost"):
        self.host = host
        self.active_buffer_before: Optional[Any] = None
        self.cursor_before: Optional["Position"] = None

    def __enter__(self):
        self.active_buffer_before = self.host.active_buffer()
        self.cursor_before = self.host.get_cursor()
        logger.debug(
            f"Captured context: buffer={self.active_buffer_before} "
            f"cursor={self.cursor_before}"
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.restore()

    def restore(self):
        """Return to the captured buffer and cursor position."""
        buffer_id = self.active_buffer_before
        if buffer_id is None:
            self.host.deactivate()
            return
        if not self.host.exists(buffer_id):
            return

        if not self.host.is_loaded(buffer_id):
            self.host.load(buffer_id)
        self.host.activate(buffer_id)
        if self.cursor_before is not None:
            self.host.set_cursor(self.cursor_before)
        logger.debug(f"Restored context: buffer={buffer_id} cursor={self.cursor_before}")


class SafeFileOperation:
    """Locked file write with backup and automatic rollback."""

    def __init__(
        self, file_path: Union[str, Path], timeout: int = 30, create_backup: bool = True
    ):
        """Initialize safe file operation.

        Args:
            file_path: Path to the file to operate on
            timeout: Lock timeout in seconds
            create_backup: Whether to create a backup before operations
        """
        self.file_path = Path(file_path)
        self.timeout = timeout
        self.create_backup = create_backup
        self.lock_path = Path(f"{self.file_path}.lock")
        self.backup_path = Path(f"{self.file_path}.backup.{int(time.time())}")
        self.temp_path: Optional[Path] = None
        self.lock: Optional[FileLock] = None

    def __enter__(self):
        self.lock = FileLock(self.lock_path, timeout=self.timeout)

        try:
            self.lock.acquire()
            logger.debug(f"Acquired lock for {self.file_path}")

            if self.create_backup and self.file_path.exists():
                shutil.copy2(self.file_path, self.backup_path)
                logger.debug(f"Created backup: {self.backup_path}")

            return self

        except Exception as e:
            logger.error(f"Failed to acquire lock for {self.file_path}: {e}")
            if self.lock:
                self.lock.release()
            raise

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is not None:
                logger.error(f"Write to {self.file_path} failed: {exc_val}")
                self._restore_from_backup()
            elif self.backup_path.exists():
                os.remove(self.backup_path)

        finally:
            if self.temp_path and self.temp_path.exists():
                os.remove(self.temp_path)

            if self.lock:
                self.lock.release()
                logger.debug(f"Released lock for {self.file_path}")

    def _restore_from_backup(self):
        if self.backup_path.exists():
            shutil.move(self.backup_path, self.file_path)
            logger.info(f"Restored from backup: {self.backup_path}")
        else:
            logger.warning("No backup file found for restoration")

    def get_temp_file(self) -> Path:
        """Get a temporary file in the same directory."""
        if self.temp_path is None:
            with tempfile.NamedTemporaryFile(
                dir=self.file_path.parent,
                prefix=f".{self.file_path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                self.temp_path = Path(tmp.name)

        return self.temp_path

    def atomic_replace(self, source: Union[str, Path]):
        """Atomically replace the target file with source."""
        source = Path(source)
        if not source.exists():
            raise FileNotFoundError(f"Source file not found: {source}")

        os.replace(source, self.file_path)

    def write_text(self, content: str, encoding: str = "utf-8"):
        """Write ``content`` through a temp file and swap it into place."""
        temp_file = self.get_temp_file()
        # newline="" keeps the buffer's own line endings
        with open(temp_file, "w", encoding=encoding, newline="") as f:
            f.write(content)
        self.atomic_replace(temp_file)


@contextmanager
def safe_edit_context(file_path: Union[str, Path], timeout: int = 30):
    """Context manager for safe file editing.

    Args:
        file_path: Path to file to edit
        timeout: Lock timeout in seconds

    Yields:
        SafeFileOperation instance
    """
    with SafeFileOperation(file_path, timeout) as safe_op:
        yield safe_op


class PerformanceMonitor:
    """Timing statistics for named operations."""

    def __init__(self):
        self.metrics = {}

    @contextmanager
    def measure_operation(self, operation_name: str):
        """Context manager to measure operation duration.

        Args:
            operation_name: Name of operation being measured
        """
        start_time = time.perf_counter()
        try:
            yield
        finally:
            duration = time.perf_counter() - start_time
            self._record_metric(operation_name, duration)

    def _record_metric(self, operation: str, duration: float):
        if operation not in self.metrics:
            self.metrics[operation] = {
                "count": 0,
                "total_time": 0.0,
                "min_time": float("inf"),
                "max_time": 0.0,
            }

        metrics = self.metrics[operation]
        metrics["count"] += 1
        metrics["total_time"] += duration
        metrics["min_time"] = min(metrics["min_time"], duration)
        metrics["max_time"] = max(metrics["max_time"], duration)

    def get_stats(self, operation: str) -> dict:
        """Get statistics for an operation.

        Returns:
            Dictionary with count, total, average, min and max time, or an
            empty dict for an unknown operation
        """
        if operation not in self.metrics:
            return {}

        metrics = self.metrics[operation]
        return {
            "count": metrics["count"],
            "total_time": metrics["total_time"],
            "average_time": metrics["total_time"] / metrics["count"],
            "min_time": metrics["min_time"],
            "max_time": metrics["max_time"],
        }

    def get_all_stats(self) -> dict:
        return {op: self.get_stats(op) for op in self.metrics}

    def reset(self):
        self.metrics.clear()


# Global performance monitor instance
performance_monitor = PerformanceMonitor()
