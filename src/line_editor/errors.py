"""Exception types raised by the line editor."""


class EditorError(Exception):
    """Base class for all line editor failures."""


class ValidationError(EditorError, ValueError):
    """An argument failed validation before any file was touched."""


class ContentSafetyError(EditorError, ValueError):
    """File content cannot be processed with bounded line reads."""


class LineTooLongError(ContentSafetyError):
    """A line exceeds the maximum length allowed for the operation."""

    def __init__(self, line_number: int, limit: int):
        self.line_number = line_number
        self.limit = limit
        super().__init__(
            f"Line {line_number} is too long. Max line length allowed for "
            f"this operation is {limit}."
        )


class NulByteError(ContentSafetyError):
    """A NUL byte was found in a file that must be read line by line."""

    def __init__(self, line_number: int):
        self.line_number = line_number
        super().__init__(
            f"This operation does not support NUL characters in the file "
            f"(line {line_number})."
        )


class LogTamperedError(ContentSafetyError):
    """The audit log no longer satisfies the line constraints."""

    def __init__(self, log_path, reason: ContentSafetyError):
        self.log_path = log_path
        self.reason = reason
        super().__init__(
            f"Warning: Log file '{log_path}' has been edited by another program "
            f"({reason}). Modify file to meet constraint or delete file."
        )


class LineRangeError(EditorError, IndexError):
    """A line number lies outside [1, total lines]."""

    def __init__(self, line_number: int, total_lines: int):
        self.line_number = line_number
        self.total_lines = total_lines
        super().__init__(
            f"Line number {line_number} out of range for file "
            f"with {total_lines} lines."
        )


class PatternError(EditorError, ValueError):
    """A search pattern failed to compile."""


class NotRegularFileError(EditorError, OSError):
    """The path refers to something other than a regular file."""
