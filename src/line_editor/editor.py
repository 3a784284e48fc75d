"""Operation layer: one method per editor command."""
import codecs
import logging
import sys
from pathlib import Path
from typing import Optional, TextIO, Union

from .audit import AuditLog, LogEntry
from .config import EditorConfig
from .core.rewriter import LineRewriter
from .core.safety import is_regular_file
from .core.scanner import LineScanner, iter_segments, number_width
from .core.search import LineChange, ReplaceResult, SearchReplaceEngine
from .errors import NotRegularFileError

logger = logging.getLogger(__name__)


class LineEditor:
    """Runs editor operations and records every content change.

    Read operations (show, search, count) only write reports to the output
    stream. Mutating operations go through the rewriter and finish by
    appending one entry to the audit log.
    """

    def __init__(
        self,
        config: Optional[EditorConfig] = None,
        audit_log: Optional[AuditLog] = None,
        out: Optional[TextIO] = None,
    ):
        """Initialize editor.

        Args:
            config: Editor configuration (defaults to EditorConfig())
            audit_log: Audit log to record changes in (built from config)
            out: Stream for reports (defaults to sys.stdout at call time)
        """
        self.config = config or EditorConfig()
        self.scanner = LineScanner(self.config.chunk_size)
        self.rewriter = LineRewriter(
            self.scanner, self.config.encoding, self.config.lock_timeout
        )
        self.engine = SearchReplaceEngine(
            self.scanner,
            max_line_length=self.config.max_line_length,
            encoding=self.config.encoding,
            ignore_case=self.config.pattern_ignore_case,
            timeout=self.config.lock_timeout,
        )
        self.audit_log = audit_log or AuditLog(
            self.config.log_file,
            ceiling=self.config.log_buffer,
            max_line_length=self.config.max_log_line_length,
            scanner=self.scanner,
            timeout=self.config.lock_timeout,
            encoding=self.config.encoding,
        )
        self._out = out

    @property
    def out(self) -> TextIO:
        return self._out if self._out is not None else sys.stdout

    def _printable(self, text: str) -> str:
        encoding = self.config.encoding
        return text.encode(encoding, errors="surrogateescape").decode(
            encoding, errors="replace"
        )

    def require_file(self, file_path: Union[str, Path]) -> Path:
        """Return the path if it names an existing regular file, else raise."""
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(
                f"Given file path either does not exist or cannot be accessed: '{file_path}'"
            )
        if not is_regular_file(path):
            raise NotRegularFileError(f"Given file path refers to non-regular file: '{file_path}'")
        return path

    def _writable_target(self, file_path: Union[str, Path], overwrite: bool) -> Path:
        path = Path(file_path)
        if path.exists():
            if not is_regular_file(path):
                raise NotRegularFileError(
                    f"File path refers to non-regular file and cannot be modified: '{file_path}'"
                )
            if not overwrite:
                logger.warning(f"Refusing to overwrite {file_path}")
                raise FileExistsError(f"File '{file_path}' already exists")
        return path

    def target_exists(self, file_path: Union[str, Path]) -> bool:
        """Return True if the path is an existing regular file that would be overwritten."""
        return Path(file_path).exists() and is_regular_file(file_path)

    # File operations

    def create_file(self, file_path: Union[str, Path], overwrite: bool = False):
        """Create an empty file, overwriting an existing one only if allowed."""
        path = self._writable_target(file_path, overwrite)
        self.rewriter.create_file(path)
        self.audit_log.append(LogEntry.created(file_path))

    def delete_file(self, file_path: Union[str, Path]):
        path = self.require_file(file_path)
        self.rewriter.delete_file(path)
        self.audit_log.append(LogEntry.deleted(file_path))

    def copy_file(
        self,
        source: Union[str, Path],
        destination: Union[str, Path],
        overwrite: bool = False,
    ) -> int:
        """Copy source to destination and return the number of lines copied."""
        src = self.require_file(source)
        dst = self._writable_target(destination, overwrite)
        lines = self.rewriter.copy_file(src, dst)
        self.audit_log.append(LogEntry.copied(source, destination, lines))
        return lines

    def show_file(self, file_path: Union[str, Path]):
        """Print the file with a zero-padded line number before every line."""
        path = self.require_file(file_path)
        width = number_width(self.scanner.count_lines(path))
        decoder = codecs.getincrementaldecoder(self.config.encoding)(errors="replace")
        out = self.out

        line_number = 1
        out.write(f"{line_number:0{width}d} |")
        with open(path, "rb") as f:
            for segment in iter_segments(f, self.config.chunk_size):
                out.write(decoder.decode(segment.data))
                if segment.terminated:
                    line_number += 1
                    out.write(f"{line_number:0{width}d} |")
        out.write(decoder.decode(b"", final=True))
        out.write("\n")

    def count_lines(self, file_path: Union[str, Path]) -> int:
        path = self.require_file(file_path)
        lines = self.scanner.count_lines(path)
        self.out.write(f"'{file_path}' has {lines} lines\n")
        return lines

    # Line operations

    def show_line(self, file_path: Union[str, Path], line_number: int) -> str:
        path = self.require_file(file_path)
        line = self.rewriter.read_line(path, line_number)
        self.out.write(f"{line}\n")
        return line

    def append_line(self, file_path: Union[str, Path], text: str) -> int:
        path = self.require_file(file_path)
        lines = self.rewriter.append_line(path, text)
        self.audit_log.append(LogEntry.line_appended(file_path, text, lines))
        return lines

    def delete_line(self, file_path: Union[str, Path], line_number: int) -> int:
        path = self.require_file(file_path)
        lines = self.rewriter.delete_line(path, line_number)
        self.audit_log.append(LogEntry.line_deleted(file_path, line_number, lines))
        return lines

    def insert_line(self, file_path: Union[str, Path], text: str, line_number: int) -> int:
        path = self.require_file(file_path)
        lines = self.rewriter.insert_line(path, text, line_number)
        self.audit_log.append(LogEntry.line_inserted(file_path, text, line_number, lines))
        return lines

    def replace_line(self, file_path: Union[str, Path], text: str, line_number: int) -> int:
        path = self.require_file(file_path)
        lines = self.rewriter.replace_line(path, text, line_number)
        self.audit_log.append(LogEntry.line_replaced(file_path, text, line_number, lines))
        return lines

    # Content operations

    def search(self, file_path: Union[str, Path], key: str) -> int:
        """Print every line containing key and return the total occurrences."""
        path = self.require_file(file_path)
        width = number_width(self.engine.verify(path))
        out = self.out

        total = 0
        for match in self.engine.search(path, key, verified=True):
            total += match.count
            out.write(
                f"{match.count} instance/s:\n"
                f"{match.line_number:0{width}d} |{self._printable(match.text)}\n\n"
            )
        out.write(f"{total} instance/s found in the file.\n")
        return total

    def pattern_search(self, file_path: Union[str, Path], pattern: str) -> int:
        """Print every line the pattern matches and return the number of lines."""
        path = self.require_file(file_path)
        compiled = self.engine.compile(pattern)
        width = number_width(self.engine.verify(path))
        out = self.out

        total = 0
        for match in self.engine.pattern_search(path, compiled, verified=True):
            total += 1
            out.write(f"{match.line_number:0{width}d} |{self._printable(match.text)}\n\n")
        out.write(f"{total} line matches found in the file.\n")
        return total

    def replace(self, file_path: Union[str, Path], key: str, sub: str) -> ReplaceResult:
        """Replace key with sub across the file, printing each rewritten line."""
        path = self.require_file(file_path)
        width = number_width(self.engine.verify(path))
        out = self.out

        def report(change: LineChange):
            number = f"{change.line_number:0{width}d}"
            out.write(
                f"{change.count} substitution/s:\n"
                f"{number} |{self._printable(change.before)}\n"
                f" to\n"
                f"{number} |{self._printable(change.after)}\n\n"
            )

        result = self.engine.replace(path, key, sub, on_change=report)
        out.write(f"{result.substitutions} instances replaced in the file.\n")
        self.audit_log.append(LogEntry.substrings_replaced(file_path, key, sub, result.lines))
        return result

    # Audit log

    def display_log(self, file_path: Optional[Union[str, Path]] = None) -> int:
        """Print the audit log, or only the entries for one file."""
        shown = 0
        for entry in self.audit_log.entries(file_path):
            self.out.write(f"{entry}\n")
            shown += 1
        return shown
