"""Streaming line counting and line-safety verification."""
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO, NamedTuple, Optional, Union

from ..errors import LineRangeError, LineTooLongError, NulByteError

logger = logging.getLogger(__name__)


class LineStats(NamedTuple):
    """Result of a full scan over a file."""

    lines: int
    newlines: int
    size: int
    ends_with_newline: bool

    @property
    def records(self) -> int:
        """Newline-terminated records plus any unterminated tail."""
        if self.ends_with_newline:
            return self.newlines
        return self.lines


class LineSegment(NamedTuple):
    """A contiguous run of bytes belonging to a single line.

    Long lines are split across several segments, one per read chunk.
    ``terminated`` is set on the segment that carries the line's newline
    and ``first`` on the segment that starts the line.
    """

    line_number: int
    data: bytes
    terminated: bool
    first: bool


def iter_segments(stream: BinaryIO, chunk_size: int = 8192) -> Iterator[LineSegment]:
    """Split a binary stream into line segments without buffering whole lines.

    An empty stream yields nothing. A stream ending in a newline yields a
    final empty segment for the empty last line, so every line reported by
    ``count_lines`` is visited exactly once.

    Args:
        stream: Binary stream positioned at the start of the content
        chunk_size: Number of bytes read per call

    Yields:
        LineSegment tuples in file order
    """
    line_number = 1
    first = True
    seen_data = False
    last_terminated = False

    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        seen_data = True

        start = 0
        while start < len(chunk):
            end = chunk.find(b"\n", start)
            if end == -1:
                yield LineSegment(line_number, chunk[start:], False, first)
                first = False
                last_terminated = False
                break

            yield LineSegment(line_number, chunk[start : end + 1], True, first)
            line_number += 1
            first = True
            last_terminated = True
            start = end + 1

    if seen_data and last_terminated:
        yield LineSegment(line_number, b"", False, True)


def number_width(lines: int) -> int:
    """Digits needed to print the largest line number (at least 1)."""
    return max(len(str(lines)), 1)


def check_line_number(line_number: int, total_lines: int):
    """Reject line numbers outside [1, total_lines]."""
    if line_number < 1 or line_number > total_lines:
        raise LineRangeError(line_number, total_lines)


class LineScanner:
    """Counts and verifies lines by scanning every byte of a file.

    Two reading strategies coexist in the editor:
    - byte segments (``iter_segments``), which accept any content
    - bounded line reads, which need ``verify_lines`` to pass first

    ``verify_lines`` is the gate that keeps the second strategy away from
    lines it cannot represent (over-long lines or embedded NUL bytes).
    """

    def __init__(self, chunk_size: int = 8192):
        """Initialize scanner.

        Args:
            chunk_size: Size of chunks to read (default 8KB)
        """
        self.chunk_size = chunk_size

    def scan(
        self, file_path: Union[str, Path], max_line_length: Optional[int] = None
    ) -> LineStats:
        """Scan a file, optionally enforcing line-safety limits.

        Args:
            file_path: Path to the file to scan
            max_line_length: Longest allowed line in bytes, newline included
                (None disables the length and NUL checks)

        Returns:
            LineStats for the file

        Raises:
            LineTooLongError: If a line exceeds max_line_length
            NulByteError: If a NUL byte is present and limits are enforced
        """
        newlines = 0
        size = 0
        last_byte = b""

        with open(file_path, "rb") as f:
            if max_line_length is None:
                while True:
                    chunk = f.read(self.chunk_size)
                    if not chunk:
                        break
                    newlines += chunk.count(b"\n")
                    size += len(chunk)
                    last_byte = chunk[-1:]
            else:
                line_length = 0
                for segment in iter_segments(f, self.chunk_size):
                    if b"\x00" in segment.data:
                        raise NulByteError(segment.line_number)

                    line_length += len(segment.data)
                    if line_length > max_line_length:
                        raise LineTooLongError(segment.line_number, max_line_length)

                    size += len(segment.data)
                    if segment.data:
                        last_byte = segment.data[-1:]
                    if segment.terminated:
                        newlines += 1
                        line_length = 0

        lines = newlines + 1 if size else 0
        return LineStats(lines, newlines, size, last_byte == b"\n")

    def count_lines(self, file_path: Union[str, Path]) -> int:
        """Count lines in a file.

        An empty file has 0 lines; otherwise every newline byte starts a
        new line, so a final line without a newline still counts.
        """
        return self.scan(file_path).lines

    def verify_lines(self, file_path: Union[str, Path], max_line_length: int) -> int:
        """Count lines, failing on over-long lines or NUL bytes."""
        stats = self.scan(file_path, max_line_length)
        logger.debug(f"Verified {file_path}: {stats.lines} lines")
        return stats.lines
