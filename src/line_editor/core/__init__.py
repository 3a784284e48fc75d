"""Core line editing modules."""

from .rewriter import LineRewriter
from .safety import SafeFileOperation, is_regular_file, safe_edit_context, safe_rewrite
from .scanner import (
    LineScanner,
    LineSegment,
    LineStats,
    check_line_number,
    iter_segments,
    number_width,
)
from .search import (
    LineChange,
    LineMatch,
    ReplaceResult,
    SearchReplaceEngine,
    split_line_ending,
    substitute,
)

__all__ = [
    # Line scanning
    'LineScanner',
    'LineSegment',
    'LineStats',
    'check_line_number',
    'iter_segments',
    'number_width',

    # Atomic rewriting
    'LineRewriter',
    'SafeFileOperation',
    'safe_edit_context',
    'safe_rewrite',
    'is_regular_file',

    # Search and replace
    'SearchReplaceEngine',
    'LineMatch',
    'LineChange',
    'ReplaceResult',
    'split_line_ending',
    'substitute',
]
