"""Line-addressable text file editor with atomic rewrites and a bounded audit log."""

from .audit import AuditLog, LogEntry
from .config import EditorConfig
from .core import (
    LineRewriter,
    LineScanner,
    SafeFileOperation,
    SearchReplaceEngine,
    safe_edit_context,
    substitute,
)
from .editor import LineEditor
from .errors import (
    ContentSafetyError,
    EditorError,
    LineRangeError,
    LineTooLongError,
    LogTamperedError,
    NotRegularFileError,
    NulByteError,
    PatternError,
    ValidationError,
)

__version__ = "0.1.0"

__all__ = [
    # Operation layer
    "LineEditor",
    "EditorConfig",
    "AuditLog",
    "LogEntry",
    # Core components
    "LineScanner",
    "LineRewriter",
    "SearchReplaceEngine",
    "SafeFileOperation",
    "safe_edit_context",
    "substitute",
    # Errors
    "EditorError",
    "ValidationError",
    "ContentSafetyError",
    "LineTooLongError",
    "NulByteError",
    "LogTamperedError",
    "LineRangeError",
    "PatternError",
    "NotRegularFileError",
]
