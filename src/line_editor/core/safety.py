"""Locked, atomic file replacement used by every rewrite."""
import logging
import os
import shutil
import stat
import tempfile
from collections.abc import Callable
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Optional, Union

from filelock import FileLock

logger = logging.getLogger(__name__)


def _default_file_mode() -> int:
    """Permission bits a freshly created regular file would get."""
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


class SafeFileOperation:
    """Context manager that owns a target file for the length of one rewrite.

    Holds an exclusive lock on ``<target>.lock`` and hands out a temporary
    file in the target's directory. ``atomic_replace`` promotes the temporary
    file over the target; any temporary file still present on exit is removed,
    so an aborted rewrite leaves the target untouched.
    """

    def __init__(self, file_path: Union[str, Path], timeout: float = 30):
        """Initialize safe file operation.

        Args:
            file_path: Path to the file to operate on
            timeout: Lock timeout in seconds
        """
        self.file_path = Path(file_path)
        self.timeout = timeout
        self.lock_path = Path(f"{self.file_path}.lock")
        self.temp_path: Optional[Path] = None
        self.lock: Optional[FileLock] = None

    def __enter__(self):
        """Enter context manager."""
        self.lock = FileLock(self.lock_path, timeout=self.timeout)

        try:
            self.lock.acquire()
            logger.debug(f"Acquired lock for {self.file_path}")
            return self

        except Exception as e:
            logger.error(f"Failed to acquire lock for {self.file_path}: {e}")
            raise

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager."""
        try:
            if exc_type is not None:
                logger.error(f"Operation on {self.file_path} failed: {exc_val}")

        finally:
            # Clean up temp files
            if self.temp_path and self.temp_path.exists():
                os.remove(self.temp_path)
                logger.debug(f"Removed temp file {self.temp_path}")

            # Release lock
            if self.lock:
                self.lock.release()
                logger.debug(f"Released lock for {self.file_path}")

    def get_temp_file(self) -> Path:
        """Get a uniquely named temporary file in the same directory."""
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
        """Atomically replace the target file with source.

        The source is flushed to disk first and takes over the target's
        permission bits, or the default bits when the target is new.
        """
        source = Path(source)
        if not source.exists():
            raise FileNotFoundError(f"Source file not found: {source}")

        fd = os.open(source, os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)

        if self.file_path.exists():
            shutil.copymode(self.file_path, source)
        else:
            os.chmod(source, _default_file_mode())

        os.replace(source, self.file_path)
        logger.info(f"Atomically replaced {self.file_path}")

        if source == self.temp_path:
            self.temp_path = None


@contextmanager
def safe_edit_context(file_path: Union[str, Path], timeout: float = 30):
    """Context manager for safe file editing.

    Args:
        file_path: Path to file to edit
        timeout: Lock timeout in seconds

    Yields:
        SafeFileOperation instance
    """
    with SafeFileOperation(file_path, timeout) as safe_op:
        yield safe_op


def safe_rewrite(
    file_path: Union[str, Path],
    edit_function: Callable[[BinaryIO, BinaryIO], None],
    timeout: float = 30,
    source_path: Optional[Union[str, Path]] = None,
):
    """Rewrite a file through a temporary file and an atomic replace.

    Args:
        file_path: Path to the file that receives the new content
        edit_function: Function taking (input_file, output_file)
        timeout: Lock timeout in seconds
        source_path: File to read from (defaults to file_path)
    """
    if source_path is None:
        source_path = file_path

    with safe_edit_context(file_path, timeout) as safe_op:
        temp_file = safe_op.get_temp_file()

        with open(temp_file, "wb") as output_f:
            with open(source_path, "rb") as input_f:
                edit_function(input_f, output_f)
            output_f.flush()

        safe_op.atomic_replace(temp_file)


def is_regular_file(file_path: Union[str, Path]) -> bool:
    """Return True if the path exists and is a regular file."""
    try:
        return stat.S_ISREG(os.stat(file_path).st_mode)
    except FileNotFoundError:
        return False
