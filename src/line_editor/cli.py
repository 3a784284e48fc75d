"""Command-line interface for the line editor.

Usage: line-editor [OPTION] [ARGUMENTS]...
"""
import argparse
import logging
import re
import sys
from collections.abc import Sequence
from typing import Optional

import pydantic

from .config import EditorConfig
from .editor import LineEditor
from .errors import EditorError, LogTamperedError, ValidationError

logger = logging.getLogger(__name__)

# Names accepted for files that do not exist yet
FILE_NAME_PATTERN = re.compile(r"^((/)?[0-9a-z._-][0-9a-z._ -]*)+$", re.IGNORECASE)

MAX_NUMBER_LENGTH = 20


class AbortedError(EditorError):
    """The user declined to overwrite a file."""


EPILOG = """\
examples:
  line-editor -cr foo.bar
  line-editor -la ../foo.txt "THE END"
  line-editor -cp foo.c ../foo/bar/out.c
  line-editor -lin foo.c "The New Beginning" 1
  line-editor -sch foo.c the

Only regular files are supported. Rewrites go through a temporary file in the
target's directory that replaces the target atomically.
"""

# flag -> (metavars, help)
OPERATIONS = {
    "-cr": (("file",), "create empty file (will overwrite if file exists)"),
    "-dl": (("file",), "delete existing file"),
    "-cp": (("src", "dst"), "copy existing file from source path to destination path"),
    "-sh": (("file",), "display contents of file with line numbers"),
    "-lsh": (("file", "linenum"), "display specified line of file"),
    "-la": (("file", "line"), "append line to end of file on new line"),
    "-ldl": (("file", "linenum"), "delete specified line of file"),
    "-lin": (("file", "line", "linenum"), "insert line into specified position in file"),
    "-lrp": (("file", "line", "linenum"), "replace line at linenum in file with given string"),
    "-sch": (("file", "key"), "search for string in file"),
    "-schreg": (("file", "pattern"), "regular expression search in file"),
    "-rp": (("file", "key", "sub"), "replace all occurrences of <key> with <sub>"),
    "-cl": (("file",), "display number of lines in file (0 if empty)"),
}


class EditorArgumentParser(argparse.ArgumentParser):
    """Argument parser that exits with status 1 on usage errors."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser(config: EditorConfig) -> argparse.ArgumentParser:
    parser = EditorArgumentParser(
        prog="line-editor",
        description="Simple line-addressable text editor.",
        epilog=EPILOG
        + f"\nLog file: {config.log_file}  Max entries kept: {config.log_buffer}\n"
        f"Max file-path length: {config.max_path_length}  "
        f"Max string length: {config.max_string_length}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    group = parser.add_mutually_exclusive_group(required=True)
    for flag, (metavars, help_text) in OPERATIONS.items():
        group.add_argument(
            flag,
            nargs=len(metavars),
            metavar=metavars if len(metavars) > 1 else metavars[0],
            dest=flag.lstrip("-"),
            help=help_text,
        )
    group.add_argument(
        "-chlog",
        nargs="?",
        const="",
        metavar="file",
        dest="chlog",
        help="display change log (all files if no file is given)",
    )
    parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="overwrite existing files without asking",
    )
    return parser


# Argument validation


def parse_string(value: str, max_length: int, min_length: int, position: int) -> str:
    """Check a string argument's length."""
    if len(value) > max_length:
        raise ValidationError(f"Invalid Input (Argument {position}): Too long")
    if len(value) < min_length:
        raise ValidationError(f"Invalid Input (Argument {position}): Too short")
    return value


def parse_line_number(value: str) -> int:
    """Parse a line number made only of digits."""
    if not value:
        raise ValidationError("Invalid Line number Input: Empty string")
    if not (value.isascii() and value.isdigit()):
        raise ValidationError("Invalid Line number Input: Non-digit")
    if len(value) > MAX_NUMBER_LENGTH:
        raise ValidationError("Invalid Line number Input: Too long")
    return int(value)


def validate_new_file_name(value: str) -> str:
    """Check that a file about to be created has an acceptable name."""
    if not FILE_NAME_PATTERN.match(value):
        raise ValidationError(f"Invalid filename: '{value}'")
    return value


def confirm(prompt: str, stdin=None, stdout=None) -> bool:
    """Ask until the user answers y or n.

    Raises:
        EOFError: If input ends before an answer is given
    """
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout

    stdout.write(prompt)
    while True:
        stdout.write("\nConfirm (y/n): ")
        stdout.flush()
        answer = stdin.readline()
        if not answer:
            raise EOFError("EOF character entered. Program quitting.")

        answer = answer.rstrip("\r\n")
        if answer in ("y", "n"):
            return answer == "y"
        stdout.write("Invalid input.\n")


def _confirm_overwrite(editor: LineEditor, file_path: str, assume_yes: bool) -> bool:
    if not editor.target_exists(file_path):
        validate_new_file_name(file_path)
        return False
    if assume_yes:
        return True
    if not confirm(f"File '{file_path}' already exists and will be overwritten."):
        raise AbortedError("Overwrite aborted.")
    return True


def run(args: argparse.Namespace, editor: LineEditor):
    """Validate the parsed arguments and run the selected operation."""
    config = editor.config
    path_limit = config.max_path_length
    text_limit = config.max_string_length

    if args.chlog is not None:
        if args.chlog:
            parse_string(args.chlog, path_limit, 1, 2)
            editor.display_log(args.chlog)
        else:
            editor.display_log()
        return

    flag = next(name for name in OPERATIONS if getattr(args, name.lstrip("-")) is not None)
    values = getattr(args, flag.lstrip("-"))
    file_path = parse_string(values[0], path_limit, 1, 2)

    if flag == "-cr":
        overwrite = _confirm_overwrite(editor, file_path, args.yes)
        editor.create_file(file_path, overwrite=overwrite)
    elif flag == "-dl":
        editor.delete_file(file_path)
    elif flag == "-cp":
        destination = parse_string(values[1], path_limit, 1, 3)
        editor.require_file(file_path)
        overwrite = _confirm_overwrite(editor, destination, args.yes)
        editor.copy_file(file_path, destination, overwrite=overwrite)
    elif flag == "-sh":
        editor.show_file(file_path)
    elif flag == "-lsh":
        editor.show_line(file_path, parse_line_number(values[1]))
    elif flag == "-la":
        editor.append_line(file_path, parse_string(values[1], text_limit, 0, 3))
    elif flag == "-ldl":
        editor.delete_line(file_path, parse_line_number(values[1]))
    elif flag == "-lin":
        text = parse_string(values[1], text_limit, 0, 3)
        editor.insert_line(file_path, text, parse_line_number(values[2]))
    elif flag == "-lrp":
        text = parse_string(values[1], text_limit, 0, 3)
        editor.replace_line(file_path, text, parse_line_number(values[2]))
    elif flag == "-sch":
        editor.search(file_path, parse_string(values[1], text_limit, 1, 3))
    elif flag == "-schreg":
        editor.pattern_search(file_path, parse_string(values[1], path_limit, 1, 3))
    elif flag == "-rp":
        key = parse_string(values[1], text_limit, 1, 3)
        sub = parse_string(values[2], text_limit, 0, 4)
        editor.replace(file_path, key, sub)
    elif flag == "-cl":
        editor.count_lines(file_path)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point. Returns the process exit status."""
    try:
        config = EditorConfig.from_env()
    except pydantic.ValidationError as e:
        print(f"error: invalid configuration: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = build_parser(config)
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 1

    editor = LineEditor(config)
    try:
        run(args, editor)
    except LogTamperedError as e:
        print(str(e), file=sys.stderr)
        return 1
    except (EditorError, OSError, EOFError) as e:
        logger.debug("Operation failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
