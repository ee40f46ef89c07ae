"""
Unit tests for drat_pipeline.utils and drat_pipeline.prompts

Tests command formatting and launching, state removal, and confirmation
prompt parsing.
"""

import subprocess
import tempfile
import unittest
from pathlib import Path

from drat_pipeline.errors import UserDeclinedError, UserInputInvalidError
from drat_pipeline.prompts import (
    Confirmation,
    confirm,
    parse_confirmation,
    read_answer,
)
from drat_pipeline.utils import (
    banner,
    clear_directory,
    format_command,
    remove_path,
    run_command,
)

from fakes import ScriptedInput


class TestCommandUtilities(unittest.TestCase):
    """Test command formatting and launching."""

    def test_format_command_quotes_spaces(self):
        """Test that arguments with spaces are quoted."""
        rendered = format_command(["crawler", "--productPath", "/data/my repo"])
        self.assertEqual(rendered, "crawler --productPath '/data/my repo'")

    def test_run_command_returns_exit_code(self):
        """Test that the runner's exit code is returned unchanged."""
        calls = []

        def runner(command, check=False):
            calls.append((command, check))
            return subprocess.CompletedProcess(command, 3)

        self.assertEqual(run_command(["tool", "arg"], runner=runner), 3)
        self.assertEqual(calls, [(["tool", "arg"], False)])


class TestStateRemoval(unittest.TestCase):
    """Test file and directory removal helpers."""

    def setUp(self):
        """Create temporary directory for test files."""
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.temp_dir = Path(self._tmp.name)

    def test_remove_directory_tree(self):
        """Test removing a nested directory."""
        target = self.temp_dir / "catalog"
        (target / "nested").mkdir(parents=True)
        (target / "nested" / "index.dat").write_text("x")

        self.assertEqual(remove_path(target), "removed")
        self.assertFalse(target.exists())

    def test_remove_file(self):
        """Test removing a single file."""
        target = self.temp_dir / "stray.lock"
        target.write_text("")

        self.assertEqual(remove_path(target), "removed")
        self.assertFalse(target.exists())

    def test_remove_missing_path(self):
        """Test that a missing path is reported, not raised."""
        self.assertEqual(remove_path(self.temp_dir / "nope"), "missing")

    def test_clear_directory_keeps_directory(self):
        """Test that only the contents are removed."""
        archive = self.temp_dir / "archive"
        (archive / "product1").mkdir(parents=True)
        (archive / "product2.tar").write_text("x")

        self.assertEqual(clear_directory(archive), "removed")
        self.assertTrue(archive.is_dir())
        self.assertEqual(list(archive.iterdir()), [])

    def test_clear_directory_empty_or_missing(self):
        """Test empty and missing directories."""
        empty = self.temp_dir / "empty"
        empty.mkdir()
        self.assertEqual(clear_directory(empty), "missing")
        self.assertEqual(clear_directory(self.temp_dir / "absent"), "missing")

    def test_banner(self):
        """Test banner framing."""
        text = banner("RESET", width=5)
        self.assertEqual(text, "\n=====\nRESET\n=====")


class TestConfirmation(unittest.TestCase):
    """Test confirmation prompt parsing."""

    def test_parse_yes(self):
        """Test yes answers in any case."""
        for answer in ("y", "Y", "yes", " YES \n"):
            self.assertEqual(parse_confirmation(answer), Confirmation.CONFIRMED)

    def test_parse_no(self):
        """Test no answers in any case."""
        for answer in ("n", "N", "no", "No"):
            self.assertEqual(parse_confirmation(answer), Confirmation.DECLINED)

    def test_parse_invalid(self):
        """Test anything else."""
        for answer in ("", "maybe", "yep", None):
            self.assertEqual(parse_confirmation(answer), Confirmation.INVALID)

    def test_read_answer_eof(self):
        """Test that closed input reads as None."""
        self.assertIsNone(read_answer("Continue?", ScriptedInput()))

    def test_confirm_yes_returns(self):
        """Test that a confirmed prompt returns normally."""
        scripted = ScriptedInput("y")
        confirm("Continue?", scripted)
        self.assertEqual(scripted.prompts, ["Continue? (y/n): "])

    def test_confirm_no_declines(self):
        """Test that no raises the exit-0 decline error."""
        with self.assertRaises(UserDeclinedError) as ctx:
            confirm("Continue?", ScriptedInput("N"))
        self.assertEqual(ctx.exception.exit_code, 0)

    def test_confirm_other_is_invalid(self):
        """Test that other input raises the exit-1 invalid error."""
        with self.assertRaises(UserInputInvalidError) as ctx:
            confirm("Continue?", ScriptedInput("later"))
        self.assertEqual(ctx.exception.exit_code, 1)
        self.assertEqual(ctx.exception.answer, "later")

    def test_confirm_eof_is_invalid(self):
        """Test that closed input is treated as invalid."""
        with self.assertRaises(UserInputInvalidError):
            confirm("Continue?", ScriptedInput())


if __name__ == "__main__":
    unittest.main()
