"""Tests for the command-line interface."""
import io
import os
from pathlib import Path

import pytest
from line_editor.cli import (
    confirm,
    main,
    parse_line_number,
    parse_string,
    validate_new_file_name,
)
from line_editor.errors import ValidationError


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run each CLI test in its own directory with a clean environment."""
    monkeypatch.chdir(tmp_path)
    for name in ("LOG_FILE", "LOG_BUFFER", "MAX_STRING_LENGTH", "LOG_LEVEL"):
        monkeypatch.delenv(f"LINE_EDITOR_{name}", raising=False)
    return tmp_path


class TestValidators:
    """Test argument validation helpers."""

    def test_parse_string_limits(self) -> None:
        """Strings must fall within the length bounds."""
        assert parse_string("abc", 3, 1, 2) == "abc"
        with pytest.raises(ValidationError, match=r"Argument 2\): Too long"):
            parse_string("abcd", 3, 1, 2)
        with pytest.raises(ValidationError, match=r"Argument 3\): Too short"):
            parse_string("", 3, 1, 3)

    @pytest.mark.parametrize(
        "value, message",
        [
            ("", "Empty string"),
            ("12a", "Non-digit"),
            ("-1", "Non-digit"),
            ("1" * 21, "Too long"),
        ],
    )
    def test_parse_line_number_rejects(self, value: str, message: str) -> None:
        """Line numbers must be short runs of ASCII digits."""
        with pytest.raises(ValidationError, match=message):
            parse_line_number(value)

    def test_parse_line_number(self) -> None:
        """Valid line numbers are converted to int."""
        assert parse_line_number("42") == 42
        assert parse_line_number("0") == 0

    @pytest.mark.parametrize("name", ["foo.txt", "dir/sub file.c", "/tmp/a-b_c.log"])
    def test_new_file_names_accepted(self, name: str) -> None:
        """Letters, digits, dots, dashes, underscores and spaces are allowed."""
        assert validate_new_file_name(name) == name

    @pytest.mark.parametrize("name", ["bad*name", "semi;colon", " leading"])
    def test_new_file_names_rejected(self, name: str) -> None:
        """Other characters are refused."""
        with pytest.raises(ValidationError):
            validate_new_file_name(name)


class TestConfirm:
    """Test the overwrite prompt."""

    def test_repeats_until_valid(self) -> None:
        """Invalid answers are reported and asked again."""
        out = io.StringIO()
        assert confirm("Overwrite?", io.StringIO("maybe\ny\n"), out)
        assert out.getvalue().count("Confirm (y/n): ") == 2
        assert "Invalid input." in out.getvalue()

    def test_no(self) -> None:
        """Answering n declines."""
        assert not confirm("Overwrite?", io.StringIO("n\n"), io.StringIO())

    def test_eof(self) -> None:
        """End of input aborts the prompt."""
        with pytest.raises(EOFError):
            confirm("Overwrite?", io.StringIO(""), io.StringIO())


class TestMain:
    """Test main() exit codes and output."""

    def test_create_append_show(self, workdir: Path, capsys) -> None:
        """A new file can be built and shown."""
        assert main(["-cr", "notes.txt"]) == 0
        assert main(["-la", "notes.txt", "hello"]) == 0
        assert main(["-la", "notes.txt", "world"]) == 0
        capsys.readouterr()

        assert main(["-sh", "notes.txt"]) == 0
        assert capsys.readouterr().out == "1 |hello\n2 |world\n"
        assert (workdir / "editorback.log").exists()

    def test_line_operations(self, workdir: Path, capsys) -> None:
        """Insert, replace and delete edit the right lines."""
        (workdir / "f.txt").write_bytes(b"a\nb\nc")

        assert main(["-lin", "f.txt", "new", "2"]) == 0
        assert main(["-lrp", "f.txt", "B", "3"]) == 0
        assert main(["-ldl", "f.txt", "1"]) == 0
        assert (workdir / "f.txt").read_bytes() == b"new\nB\nc"

        assert main(["-lsh", "f.txt", "2"]) == 0
        assert main(["-cl", "f.txt"]) == 0
        out = capsys.readouterr().out
        assert out == "B\n'f.txt' has 3 lines\n"

    def test_search_and_replace(self, workdir: Path, capsys) -> None:
        """Search, pattern search and replace print their reports."""
        (workdir / "f.txt").write_bytes(b"hello\nworld")

        assert main(["-sch", "f.txt", "l"]) == 0
        assert "3 instance/s found in the file." in capsys.readouterr().out

        assert main(["-schreg", "f.txt", "^H"]) == 0
        assert "1 line matches found in the file." in capsys.readouterr().out

        assert main(["-rp", "f.txt", "world", "there"]) == 0
        assert "1 instances replaced in the file." in capsys.readouterr().out
        assert (workdir / "f.txt").read_bytes() == b"hello\nthere"

    def test_overwrite_declined(self, workdir: Path, capsys, monkeypatch) -> None:
        """Declining the prompt leaves the file and fails."""
        (workdir / "f.txt").write_bytes(b"keep")
        monkeypatch.setattr("sys.stdin", io.StringIO("n\n"))

        assert main(["-cr", "f.txt"]) == 1
        assert (workdir / "f.txt").read_bytes() == b"keep"
        captured = capsys.readouterr()
        assert "already exists and will be overwritten" in captured.out
        assert "Overwrite aborted." in captured.err

    def test_overwrite_confirmed(self, workdir: Path, monkeypatch) -> None:
        """Confirming the prompt overwrites the file."""
        (workdir / "f.txt").write_bytes(b"old")
        monkeypatch.setattr("sys.stdin", io.StringIO("y\n"))

        assert main(["-cr", "f.txt"]) == 0
        assert (workdir / "f.txt").read_bytes() == b""

    def test_copy_with_yes_flag(self, workdir: Path) -> None:
        """-y skips the prompt."""
        (workdir / "src.txt").write_bytes(b"a\nb")
        (workdir / "dst.txt").write_bytes(b"old")

        assert main(["-cp", "src.txt", "dst.txt", "-y"]) == 0
        assert (workdir / "dst.txt").read_bytes() == b"a\nb"

    def test_eof_at_prompt(self, workdir: Path, capsys, monkeypatch) -> None:
        """End of input at the prompt fails without writing."""
        (workdir / "f.txt").write_bytes(b"keep")
        monkeypatch.setattr("sys.stdin", io.StringIO(""))

        assert main(["-cr", "f.txt"]) == 1
        assert "EOF" in capsys.readouterr().err
        assert (workdir / "f.txt").read_bytes() == b"keep"

    def test_invalid_new_file_name(self, workdir: Path, capsys) -> None:
        """New files must have an acceptable name."""
        assert main(["-cr", "bad*name"]) == 1
        assert "Invalid filename" in capsys.readouterr().err
        assert not (workdir / "bad*name").exists()

    @pytest.mark.parametrize(
        "argv",
        [
            [],
            ["-sh"],
            ["-sh", "a", "-cl", "a"],
            ["-unknown", "a"],
        ],
    )
    def test_usage_errors(self, workdir: Path, capsys, argv) -> None:
        """Usage errors print usage and exit 1."""
        assert main(argv) == 1
        assert "usage:" in capsys.readouterr().err

    def test_help(self, workdir: Path, capsys) -> None:
        """-h prints help and succeeds."""
        assert main(["-h"]) == 0
        out = capsys.readouterr().out
        assert "-lin" in out
        assert "Max entries kept: 200" in out

    def test_bad_line_number(self, workdir: Path, capsys) -> None:
        """Line numbers are validated before the file is read."""
        (workdir / "f.txt").write_bytes(b"a")
        assert main(["-lsh", "f.txt", "x1"]) == 1
        assert "Non-digit" in capsys.readouterr().err

    def test_out_of_range(self, workdir: Path, capsys) -> None:
        """Out-of-range line numbers fail."""
        (workdir / "f.txt").write_bytes(b"a")
        assert main(["-ldl", "f.txt", "2"]) == 1
        assert "out of range" in capsys.readouterr().err

    def test_text_too_long(self, workdir: Path, capsys) -> None:
        """Text arguments are bounded."""
        (workdir / "f.txt").write_bytes(b"a")
        assert main(["-la", "f.txt", "x" * 1025]) == 1
        assert "Too long" in capsys.readouterr().err

    def test_missing_file(self, workdir: Path, capsys) -> None:
        """Missing files are reported."""
        assert main(["-sh", "nope.txt"]) == 1
        assert "does not exist" in capsys.readouterr().err

    def test_change_log(self, workdir: Path, capsys) -> None:
        """-chlog lists all entries or one file's entries."""
        assert main(["-chlog"]) == 1
        assert "Log file does not exist." in capsys.readouterr().err

        assert main(["-cr", "a.txt"]) == 0
        assert main(["-cr", "b.txt"]) == 0
        capsys.readouterr()

        assert main(["-chlog"]) == 0
        assert len(capsys.readouterr().out.splitlines()) == 2

        assert main(["-chlog", "a.txt"]) == 0
        out = capsys.readouterr().out
        assert "File 'a.txt' created/overwritten" in out
        assert "b.txt" not in out

    def test_tampered_log(self, workdir: Path, capsys) -> None:
        """A tampered log is reported with a warning."""
        (workdir / "editorback.log").write_bytes(b"x" * 3000)
        assert main(["-chlog"]) == 1
        assert "has been edited by another program" in capsys.readouterr().err

    def test_largest_payloads_keep_log_usable(self, workdir: Path, capsys) -> None:
        """Maximum-length arguments are logged without breaking the log."""
        (workdir / "f.txt").write_bytes(b"x")

        assert main(["-rp", "f.txt", "\\" * 1024, "\\" * 1024]) == 0
        assert main(["-lrp", "f.txt", "\U0001F600" * 1024, "1"]) == 0
        assert main(["-la", "f.txt", "ok"]) == 0
        capsys.readouterr()

        assert main(["-chlog"]) == 0
        assert len(capsys.readouterr().out.splitlines()) == 3
        assert main(["-chlog", "f.txt"]) == 0

    def test_undecodable_argument(self, workdir: Path, capsys) -> None:
        """Undecodable argument bytes are written to the file and escaped in the log."""
        (workdir / "h.txt").write_bytes(b"")

        assert main(["-la", "h.txt", os.fsdecode(b"\xff")]) == 0
        assert (workdir / "h.txt").read_bytes() == b"\xff"
        capsys.readouterr()

        assert main(["-chlog"]) == 0
        assert '"\\udcff" appended' in capsys.readouterr().out

    def test_environment_overrides(self, workdir: Path, monkeypatch) -> None:
        """Configuration is read from LINE_EDITOR_* variables."""
        monkeypatch.setenv("LINE_EDITOR_LOG_FILE", "custom.log")
        assert main(["-cr", "a.txt"]) == 0
        assert (workdir / "custom.log").exists()
        assert not (workdir / "editorback.log").exists()

    def test_invalid_environment(self, workdir: Path, capsys, monkeypatch) -> None:
        """Invalid configuration fails before parsing arguments."""
        monkeypatch.setenv("LINE_EDITOR_LOG_BUFFER", "5")
        assert main(["-cl", "a.txt"]) == 1
        assert "invalid configuration" in capsys.readouterr().err
