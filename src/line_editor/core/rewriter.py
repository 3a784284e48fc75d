"""Position-addressed line edits through a temporary file and atomic replace."""
import logging
import os
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import BinaryIO, Optional, Union

from .safety import SafeFileOperation, safe_edit_context, safe_rewrite
from .scanner import LineScanner, LineSegment, check_line_number, iter_segments

logger = logging.getLogger(__name__)

SegmentTransform = Callable[[Iterable[LineSegment], BinaryIO, int], None]


class LineRewriter:
    """Rewrites files line by line without loading them into memory.

    Every edit streams the original through a transform into a temporary
    file, then swaps the result in with ``os.replace``. The target line is
    bounds-checked against a fresh line count while the file lock is held,
    and nothing is written when the check fails.

    Lines are handled as byte segments, so arbitrarily long lines and
    embedded NUL bytes pass through untouched.
    """

    def __init__(
        self,
        scanner: Optional[LineScanner] = None,
        encoding: str = "utf-8",
        timeout: float = 30,
    ):
        """Initialize line rewriter.

        Args:
            scanner: Scanner used for line counts (a default one is created)
            encoding: Encoding applied to new line text
            timeout: Lock timeout in seconds
        """
        self.scanner = scanner or LineScanner()
        self.encoding = encoding
        self.timeout = timeout

    @property
    def chunk_size(self) -> int:
        return self.scanner.chunk_size

    def _encode(self, text: str) -> bytes:
        return text.encode(self.encoding, errors="surrogateescape")

    def _rewrite_at(
        self, file_path: Union[str, Path], line_number: int, transform: SegmentTransform
    ) -> int:
        """Apply a segment transform around one line and return the new line count."""
        file_path = Path(file_path)

        with safe_edit_context(file_path, self.timeout) as safe_op:
            total_lines = self.scanner.count_lines(file_path)
            check_line_number(line_number, total_lines)

            temp_file = safe_op.get_temp_file()
            with open(file_path, "rb") as infile, open(temp_file, "wb") as outfile:
                transform(iter_segments(infile, self.chunk_size), outfile, total_lines)

            safe_op.atomic_replace(temp_file)

        return self.scanner.count_lines(file_path)

    def delete_line(self, file_path: Union[str, Path], line_number: int) -> int:
        """Delete a line from the file.

        Removing the last line also removes the line ending (``\\n`` or
        ``\\r\\n``) of the line before it, so the file never gains an empty
        trailing line.

        Args:
            file_path: Path to the file
            line_number: Line to delete (1-based)

        Returns:
            Number of lines after the deletion
        """

        def transform(segments, outfile, total_lines):
            strip_previous = line_number == total_lines and line_number > 1
            # A CR held back until we know whether it belongs to the line ending
            pending = b""
            for segment in segments:
                if segment.line_number == line_number:
                    continue
                if not (strip_previous and segment.line_number == line_number - 1):
                    outfile.write(segment.data)
                    continue

                data = pending + segment.data
                pending = b""
                if segment.terminated:
                    data = data[:-1]
                    if data.endswith(b"\r"):
                        data = data[:-1]
                elif data.endswith(b"\r"):
                    data, pending = data[:-1], b"\r"
                outfile.write(data)

        lines = self._rewrite_at(file_path, line_number, transform)
        logger.info(f"Deleted line {line_number} from {file_path}")
        return lines

    def insert_line(self, file_path: Union[str, Path], text: str, line_number: int) -> int:
        """Insert a line before an existing line.

        The new text becomes line ``line_number`` and the former line moves
        down by one. Appending past the last line is not possible here; use
        ``append_line`` instead.

        Returns:
            Number of lines after the insertion
        """
        new_line = self._encode(text) + b"\n"

        def transform(segments, outfile, total_lines):
            for segment in segments:
                if segment.first and segment.line_number == line_number:
                    outfile.write(new_line)
                outfile.write(segment.data)

        lines = self._rewrite_at(file_path, line_number, transform)
        logger.info(f"Inserted line {line_number} into {file_path}")
        return lines

    def replace_line(self, file_path: Union[str, Path], text: str, line_number: int) -> int:
        """Replace the content of a single line.

        The original line ending is kept: ``\\r\\n``, ``\\n``, or none for an
        unterminated last line.

        Returns:
            Number of lines after the replacement
        """
        new_line = self._encode(text)

        def transform(segments, outfile, total_lines):
            last_byte = b""
            for segment in segments:
                if segment.line_number != line_number:
                    outfile.write(segment.data)
                    continue
                if segment.first:
                    outfile.write(new_line)
                if segment.terminated:
                    body = last_byte + segment.data[:-1]
                    outfile.write(b"\r\n" if body.endswith(b"\r") else b"\n")
                elif segment.data:
                    last_byte = segment.data[-1:]

        lines = self._rewrite_at(file_path, line_number, transform)
        logger.info(f"Replaced line {line_number} in {file_path}")
        return lines

    def append_line(self, file_path: Union[str, Path], text: str) -> int:
        """Append a line to the end of the file.

        A separating newline is written first unless the file is empty.

        Returns:
            Number of lines after the append
        """
        file_path = Path(file_path)
        data = self._encode(text)

        with safe_edit_context(file_path, self.timeout):
            with open(file_path, "ab") as f:
                if f.tell() > 0:
                    data = b"\n" + data
                f.write(data)

        logger.info(f"Appended line to {file_path}")
        return self.scanner.count_lines(file_path)

    def read_line(self, file_path: Union[str, Path], line_number: int) -> str:
        """Return the content of one line without its line ending.

        Args:
            file_path: Path to the file
            line_number: Line to read (1-based)
        """
        total_lines = self.scanner.count_lines(file_path)
        check_line_number(line_number, total_lines)

        parts = []
        with open(file_path, "rb") as f:
            for segment in iter_segments(f, self.chunk_size):
                if segment.line_number > line_number:
                    break
                if segment.line_number == line_number:
                    parts.append(segment.data)

        line = b"".join(parts).rstrip(b"\r\n")
        return line.decode(self.encoding, errors="replace")

    def copy_file(self, source: Union[str, Path], destination: Union[str, Path]) -> int:
        """Copy a file into place atomically.

        Returns:
            Number of lines in the copy
        """
        lines = self.scanner.count_lines(source)

        def copy(infile, outfile):
            while True:
                chunk = infile.read(self.chunk_size)
                if not chunk:
                    break
                outfile.write(chunk)

        safe_rewrite(destination, copy, self.timeout, source_path=source)
        logger.info(f"Copied {source} to {destination}")
        return lines

    def create_file(self, file_path: Union[str, Path]):
        """Create an empty file, replacing any existing content atomically."""
        with SafeFileOperation(file_path, self.timeout) as safe_op:
            temp_file = safe_op.get_temp_file()
            safe_op.atomic_replace(temp_file)

        logger.info(f"Created {file_path}")

    def delete_file(self, file_path: Union[str, Path]):
        """Remove a file while holding its lock."""
        with safe_edit_context(file_path, self.timeout):
            os.remove(file_path)

        logger.info(f"Deleted {file_path}")
