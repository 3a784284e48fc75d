"""Bounded, append-only record of every content-changing operation."""
import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from .core.safety import SafeFileOperation, safe_edit_context
from .core.scanner import LineScanner, LineStats
from .errors import ContentSafetyError, LogTamperedError

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Entries kept below the ceiling after a rotation, so rotation is batched
ROTATION_MARGIN = 10

# Appended to a payload cut short to fit the log line limit
TRUNCATION_MARKER = "..."


def _escape(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\x00", "\\0")
    )


def render(text: str, encoding: str = "utf-8") -> str:
    """Return text that encodes cleanly, spelling out unencodable characters.

    Undecodable command-line bytes arrive as lone surrogates; they are written
    to the log as backslash escapes such as ``\\udcff``.
    """
    return text.encode(encoding, errors="backslashreplace").decode(encoding)


def _byte_length(text: str, encoding: str) -> int:
    return len(text.encode(encoding))


def truncate(text: str, max_bytes: int, encoding: str = "utf-8") -> str:
    """Cut text on a character boundary so it encodes to at most max_bytes.

    A shortened result ends with ``TRUNCATION_MARKER``.
    """
    if _byte_length(text, encoding) <= max_bytes:
        return text

    marker_bytes = _byte_length(TRUNCATION_MARKER, encoding)
    if max_bytes < marker_bytes:
        return ""

    kept = []
    size = marker_bytes
    for char in text:
        size += _byte_length(char, encoding)
        if size > max_bytes:
            break
        kept.append(char)
    return "".join(kept) + TRUNCATION_MARKER


@dataclass(frozen=True)
class LogEntry:
    """One audit record describing a completed operation."""

    operation: str
    paths: tuple[str, ...]
    payloads: tuple[str, ...] = ()
    line_number: Optional[int] = None
    lines_after: Optional[int] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def _describe(self, paths: Sequence[str], payloads: Sequence[str]) -> str:
        path = paths[0]
        lines = "n/a" if self.lines_after is None else str(self.lines_after)

        if self.operation == "create":
            message = f"File '{path}' created/overwritten"
        elif self.operation == "delete":
            message = f"File '{path}' deleted"
        elif self.operation == "copy":
            message = f"File '{path}' copied to '{paths[1]}'"
        elif self.operation == "append_line":
            message = f"File '{path}': Line \"{payloads[0]}\" appended"
        elif self.operation == "delete_line":
            message = f"File '{path}': Line {self.line_number} deleted"
        elif self.operation == "insert_line":
            message = (
                f"File '{path}': Line \"{payloads[0]}\" inserted at "
                f"Line {self.line_number}"
            )
        elif self.operation == "replace_line":
            message = (
                f"File '{path}': Line {self.line_number} was replaced by "
                f"\"{payloads[0]}\""
            )
        elif self.operation == "replace":
            message = (
                f"File '{path}': Instances of \"{payloads[0]}\" replaced by "
                f"\"{payloads[1]}\""
            )
        else:
            raise ValueError(f"Unknown operation: {self.operation}")

        return f"{message} | Lines After = {lines}"

    @property
    def description(self) -> str:
        return self._describe(self.paths, [_escape(p) for p in self.payloads])

    def format(self, max_bytes: Optional[int] = None, encoding: str = "utf-8") -> str:
        """Serialize the entry as a single log line (without newline).

        Paths and payloads are rendered so the line always encodes. With
        ``max_bytes``, payloads are shortened until the encoded line fits;
        a line that still does not fit is cut as a whole.
        """
        prefix = f"[{self.timestamp.strftime(TIMESTAMP_FORMAT)}] "
        paths = [render(p, encoding) for p in self.paths]
        payloads = [render(_escape(p), encoding) for p in self.payloads]

        line = prefix + self._describe(paths, payloads)
        if max_bytes is None or _byte_length(line, encoding) <= max_bytes:
            return line

        # Share the remaining room between payloads, shortest first
        empty = prefix + self._describe(paths, [""] * len(payloads))
        room = max(max_bytes - _byte_length(empty, encoding), 0)
        fitted = list(payloads)
        order = sorted(range(len(payloads)), key=lambda i: len(payloads[i]))
        for position, index in enumerate(order):
            share = room // (len(order) - position)
            fitted[index] = truncate(payloads[index], share, encoding)
            room -= _byte_length(fitted[index], encoding)

        return truncate(prefix + self._describe(paths, fitted), max_bytes, encoding)

    @classmethod
    def created(cls, path) -> "LogEntry":
        return cls("create", (str(path),), lines_after=0)

    @classmethod
    def deleted(cls, path) -> "LogEntry":
        return cls("delete", (str(path),))

    @classmethod
    def copied(cls, source, destination, lines: int) -> "LogEntry":
        return cls("copy", (str(source), str(destination)), lines_after=lines)

    @classmethod
    def line_appended(cls, path, text: str, lines: int) -> "LogEntry":
        return cls("append_line", (str(path),), (text,), lines_after=lines)

    @classmethod
    def line_deleted(cls, path, line_number: int, lines: int) -> "LogEntry":
        return cls("delete_line", (str(path),), line_number=line_number, lines_after=lines)

    @classmethod
    def line_inserted(cls, path, text: str, line_number: int, lines: int) -> "LogEntry":
        return cls(
            "insert_line", (str(path),), (text,), line_number=line_number, lines_after=lines
        )

    @classmethod
    def line_replaced(cls, path, text: str, line_number: int, lines: int) -> "LogEntry":
        return cls(
            "replace_line", (str(path),), (text,), line_number=line_number, lines_after=lines
        )

    @classmethod
    def substrings_replaced(cls, path, key: str, sub: str, lines: int) -> "LogEntry":
        return cls("replace", (str(path),), (key, sub), lines_after=lines)


def mentions_file(entry: str, file_path: Union[str, Path]) -> bool:
    """Return True if the entry names the file outside any quoted payload.

    The ``File '<path>'`` marker must appear before the first double quote,
    so text that merely contains the path inside a quoted literal does not
    match.
    """
    found = entry.find(f"File '{file_path}'")
    if found == -1:
        return False

    quote = entry.find('"')
    return quote == -1 or found < quote


class AuditLog:
    """Append-only log file capped to a maximum number of entries.

    ``append`` writes one line and then rotates while still holding the log
    lock. Once the entry count exceeds the ceiling, the oldest entries are
    dropped in a batch so the log falls ``ROTATION_MARGIN - 1`` entries below
    the ceiling.
    """

    def __init__(
        self,
        log_path: Union[str, Path] = "editorback.log",
        ceiling: int = 200,
        max_line_length: int = 2560,
        scanner: Optional[LineScanner] = None,
        timeout: float = 30,
        encoding: str = "utf-8",
    ):
        """Initialize audit log.

        Args:
            log_path: Path to the log file
            ceiling: Maximum number of entries kept (at least 10)
            max_line_length: Longest acceptable log line, newline included
            scanner: Scanner used for verification
            timeout: Lock timeout in seconds
            encoding: Log file encoding
        """
        if ceiling < ROTATION_MARGIN:
            raise ValueError(f"Log ceiling must be at least {ROTATION_MARGIN}")

        self.log_path = Path(log_path)
        self.ceiling = ceiling
        self.max_line_length = max_line_length
        self.scanner = scanner or LineScanner()
        self.timeout = timeout
        self.encoding = encoding

    def _verify(self) -> LineStats:
        try:
            return self.scanner.scan(self.log_path, self.max_line_length)
        except ContentSafetyError as e:
            logger.error(f"Audit log {self.log_path} failed verification: {e}")
            raise LogTamperedError(self.log_path, e) from e

    def append(self, entry: LogEntry):
        """Write an entry to the end of the log, then rotate."""
        line = entry.format(self.max_line_length - 1, self.encoding) + "\n"

        with safe_edit_context(self.log_path, self.timeout) as safe_op:
            with open(self.log_path, "a", encoding=self.encoding, newline="") as f:
                f.write(line)

            logger.debug(f"Logged: {entry.description}")
            self._rotate(safe_op)

    def rotate(self) -> int:
        """Drop the oldest entries once the log exceeds its ceiling.

        Returns:
            Number of entries removed

        Raises:
            LogTamperedError: If the log no longer passes verification
        """
        with safe_edit_context(self.log_path, self.timeout) as safe_op:
            return self._rotate(safe_op)

    def _rotate(self, safe_op: SafeFileOperation) -> int:
        if not self.log_path.exists():
            return 0

        entries = self._verify().records
        if entries <= self.ceiling:
            return 0

        drop = entries - (self.ceiling - ROTATION_MARGIN + 1)

        temp_file = safe_op.get_temp_file()
        with open(self.log_path, "rb") as infile, open(temp_file, "wb") as outfile:
            skipped = 0
            while True:
                raw = infile.readline(self.max_line_length)
                if not raw:
                    break
                if skipped < drop:
                    skipped += 1
                    continue
                outfile.write(raw)

        safe_op.atomic_replace(temp_file)
        logger.info(f"Rotated audit log {self.log_path}: dropped {drop} entries")
        return drop

    def entries(self, file_path: Optional[Union[str, Path]] = None) -> Iterator[str]:
        """Yield log entries, optionally only those naming one file.

        Raises:
            FileNotFoundError: If the log does not exist
            LogTamperedError: If the log no longer passes verification
        """
        if not self.log_path.exists():
            raise FileNotFoundError("Log file does not exist.")

        self._verify()
        target = None if file_path is None else render(str(file_path), self.encoding)

        with open(self.log_path, "rb") as f:
            while True:
                raw = f.readline(self.max_line_length)
                if not raw:
                    break
                entry = raw.decode(self.encoding, errors="replace").rstrip("\r\n")
                if target is None or mentions_file(entry, target):
                    yield entry

    def __len__(self) -> int:
        if not self.log_path.exists():
            return 0
        return self._verify().records
