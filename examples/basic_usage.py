#!/usr/bin/env python3
"""Basic usage examples for the line-editor library."""

import tempfile
from pathlib import Path

from line_editor import (
    EditorConfig,
    LineEditor,
    LineRewriter,
    LineScanner,
    SearchReplaceEngine,
)


def line_editor_example():
    """Demonstrate the operation layer with an audit log."""
    print("=== Line Editor Example ===")

    with tempfile.TemporaryDirectory() as temp_dir:
        workspace = Path(temp_dir)
        config = EditorConfig(log_file=workspace / "editorback.log")
        editor = LineEditor(config)

        notes = workspace / "notes.txt"
        editor.create_file(notes)
        editor.append_line(notes, "hello")
        editor.append_line(notes, "world")
        editor.insert_line(notes, "first", 1)

        print("File contents:")
        editor.show_file(notes)

        # Replace a single line, then every occurrence of a substring
        editor.replace_line(notes, "HELLO", 2)
        editor.replace(notes, "o", "0")

        editor.count_lines(notes)

        print("\nChange log:")
        editor.display_log(notes)


def rewriter_example():
    """Demonstrate position-addressed edits on a large file."""
    print("\n=== Line Rewriter Example ===")

    with tempfile.NamedTemporaryFile(mode="w", suffix=".txt", delete=False) as tmp:
        for i in range(1000):
            tmp.write(f"Line {i+1}: This is line number {i+1} in our test file.\n")
        tmp_path = Path(tmp.name)

    try:
        scanner = LineScanner()
        rewriter = LineRewriter(scanner)

        # The trailing newline opens an empty line 1001
        print(f"Total lines: {scanner.count_lines(tmp_path)}")

        lines = rewriter.delete_line(tmp_path, 500)
        print(f"After deleting line 500: {lines} lines")

        lines = rewriter.insert_line(tmp_path, "Inserted at the top", 1)
        print(f"After inserting at line 1: {lines} lines")

        print(f"Line 1 is now: {rewriter.read_line(tmp_path, 1)}")
        print(f"Line 501 is now: {rewriter.read_line(tmp_path, 501)}")

    finally:
        tmp_path.unlink()


def search_example():
    """Demonstrate literal and pattern search."""
    print("\n=== Search Example ===")

    with tempfile.NamedTemporaryFile(mode="w", suffix=".py", delete=False) as tmp:
        tmp.write(
            """#!/usr/bin/env python3
def hello_world():
    print("Hello, World!")

def main():
    hello_world()
    print("This is a test file")

if __name__ == "__main__":
    main()
"""
        )
        tmp_path = Path(tmp.name)

    try:
        engine = SearchReplaceEngine()

        print("Lines containing 'print':")
        for match in engine.search(tmp_path, "print"):
            print(f"  Line {match.line_number}: {match.text.strip()}")

        print("Lines defining a function:")
        for match in engine.pattern_search(tmp_path, r"^def \w+"):
            print(f"  Line {match.line_number}: {match.text}")

        result = engine.replace(tmp_path, "hello_world", "greet_user")
        print(f"Renamed function: {result.substitutions} replacements")

    finally:
        tmp_path.unlink()


if __name__ == "__main__":
    line_editor_example()
    rewriter_example()
    search_example()

    print("\n=== All examples completed successfully! ===")
