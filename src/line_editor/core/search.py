"""Literal search, pattern search and substring replacement."""
import logging
import re
from collections.abc import Callable, Iterator
from pathlib import Path
from re import Pattern
from typing import NamedTuple, Optional, Union

from ..errors import PatternError
from .safety import safe_edit_context
from .scanner import LineScanner

logger = logging.getLogger(__name__)


class LineMatch(NamedTuple):
    """A line containing at least one match."""

    line_number: int
    text: str
    count: int


class LineChange(NamedTuple):
    """A line rewritten by ``replace``."""

    line_number: int
    before: str
    after: str
    count: int


class ReplaceResult(NamedTuple):
    substitutions: int
    lines: int


def split_line_ending(line: str) -> tuple[str, str]:
    """Split a line into its content and trailing CR/LF characters."""
    content = line.rstrip("\r\n")
    return content, line[len(content) :]


def substitute(line: str, key: str, sub: str, occurrences: int) -> str:
    """Replace the first ``occurrences`` non-overlapping matches of key.

    The result is built segment by segment: the text before each match,
    then the substitution, then whatever follows the last match.
    """
    if not key:
        raise ValueError("Search key must not be empty")

    parts = []
    position = 0
    for _ in range(occurrences):
        found = line.find(key, position)
        if found == -1:
            break
        parts.append(line[position:found])
        parts.append(sub)
        position = found + len(key)

    parts.append(line[position:])
    return "".join(parts)


class SearchReplaceEngine:
    """Content operations over line-buffer-safe files.

    Each operation first verifies the file with ``LineScanner.verify_lines``
    and then reads it one bounded line at a time. Matching is
    non-overlapping and left to right within a line.
    """

    def __init__(
        self,
        scanner: Optional[LineScanner] = None,
        max_line_length: int = 1024,
        encoding: str = "utf-8",
        ignore_case: bool = True,
        timeout: float = 30,
    ):
        """Initialize search engine.

        Args:
            scanner: Scanner used for the safety check
            max_line_length: Longest line accepted, newline included
            encoding: Encoding used to decode lines
            ignore_case: Whether pattern search ignores case
            timeout: Lock timeout in seconds for replace
        """
        self.scanner = scanner or LineScanner()
        self.max_line_length = max_line_length
        self.encoding = encoding
        self.ignore_case = ignore_case
        self.timeout = timeout

    def verify(self, file_path: Union[str, Path]) -> int:
        """Check that the file is line-buffer-safe and return its line count."""
        return self.scanner.verify_lines(file_path, self.max_line_length)

    def _read_lines(self, file_path: Union[str, Path]) -> Iterator[tuple[int, str]]:
        with open(file_path, "rb") as f:
            line_number = 0
            while True:
                raw = f.readline(self.max_line_length)
                if not raw:
                    break
                line_number += 1
                yield line_number, raw.decode(self.encoding, errors="surrogateescape")

    def compile(self, pattern: Union[str, Pattern]) -> Pattern:
        """Compile a search pattern, raising PatternError if it is malformed."""
        if not isinstance(pattern, str):
            return pattern

        flags = re.IGNORECASE if self.ignore_case else 0
        try:
            return re.compile(pattern, flags)
        except re.error as e:
            raise PatternError(f"Invalid pattern '{pattern}': {e}") from e

    def search(
        self, file_path: Union[str, Path], key: str, verified: bool = False
    ) -> Iterator[LineMatch]:
        """Find lines containing a literal key.

        Args:
            file_path: Path to the file
            key: Non-empty string to search for
            verified: Skip the safety check when the caller already ran it

        Yields:
            LineMatch for every line with at least one occurrence
        """
        if not key:
            raise ValueError("Search key must not be empty")

        if not verified:
            self.verify(file_path)

        for line_number, line in self._read_lines(file_path):
            content, _ = split_line_ending(line)
            count = content.count(key)
            if count:
                yield LineMatch(line_number, content, count)

    def pattern_search(
        self,
        file_path: Union[str, Path],
        pattern: Union[str, Pattern],
        verified: bool = False,
    ) -> Iterator[LineMatch]:
        """Find lines where a regular expression matches anywhere.

        The pattern is compiled before the file is read.
        """
        compiled = self.compile(pattern)
        if not verified:
            self.verify(file_path)

        for line_number, line in self._read_lines(file_path):
            content, _ = split_line_ending(line)
            if compiled.search(content):
                yield LineMatch(line_number, content, 1)

    def replace(
        self,
        file_path: Union[str, Path],
        key: str,
        sub: str,
        on_change: Optional[Callable[[LineChange], None]] = None,
    ) -> ReplaceResult:
        """Replace every occurrence of key with sub throughout the file.

        The safety check and the rewrite run under the same file lock, so the
        file cannot change between them. Line endings are preserved byte for
        byte. Unmatched lines are copied unchanged.

        Args:
            file_path: Path to the file
            key: Non-empty string to replace
            sub: Replacement text (may be empty)
            on_change: Called with a LineChange for each rewritten line

        Returns:
            ReplaceResult with the number of substitutions and lines
        """
        if not key:
            raise ValueError("Search key must not be empty")

        substitutions = 0

        with safe_edit_context(file_path, self.timeout) as safe_op:
            self.verify(file_path)

            temp_file = safe_op.get_temp_file()
            with open(file_path, "rb") as infile, open(temp_file, "wb") as outfile:
                line_number = 0
                while True:
                    raw = infile.readline(self.max_line_length)
                    if not raw:
                        break
                    line_number += 1

                    line = raw.decode(self.encoding, errors="surrogateescape")
                    content, ending = split_line_ending(line)
                    count = content.count(key)
                    if not count:
                        outfile.write(raw)
                        continue

                    result = substitute(content, key, sub, count)
                    substitutions += count
                    outfile.write(
                        (result + ending).encode(self.encoding, errors="surrogateescape")
                    )
                    if on_change is not None:
                        on_change(LineChange(line_number, content, result, count))

            safe_op.atomic_replace(temp_file)

        lines = self.scanner.count_lines(file_path)
        logger.info(f"Made {substitutions} replacements in {file_path}")
        return ReplaceResult(substitutions, lines)
