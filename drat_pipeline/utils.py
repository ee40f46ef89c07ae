"""
Utility functions for the DRAT Pipeline Coordinator

This module provides common utilities for launching external commands,
removing persisted state, and formatting output used across the coordinator.
"""

import logging
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)


# ============================================================================
# Process Launching
# ============================================================================

def format_command(command: Sequence[str]) -> str:
    """
    Render an argv list as a copy-pasteable shell string.

    Examples:
        >>> format_command(["wmgr-client", "--url", "http://localhost:9001"])
        "wmgr-client --url http://localhost:9001"
    """
    return " ".join(shlex.quote(str(part)) for part in command)


def run_command(
    command: List[str],
    runner: Optional[Callable] = None
) -> int:
    """
    Launch an external command and block until it exits.

    Output is not captured; the collaborator writes straight to the terminal.

    Args:
        command: argv list, no shell interpretation
        runner: Callable with the ``subprocess.run`` signature (default: subprocess.run)

    Returns:
        The command's exit code

    Raises:
        FileNotFoundError: If the executable does not exist
    """
    runner = runner or subprocess.run
    logger.debug(f"Running: {format_command(command)}")
    completed = runner(command, check=False)
    return completed.returncode


# ============================================================================
# Persisted State Removal
# ============================================================================

def remove_path(path: Path) -> str:
    """
    Delete a file or directory tree.

    Args:
        path: Path to delete

    Returns:
        "removed" if something was deleted, "missing" if nothing was there

    Raises:
        OSError: If deletion fails
    """
    path = Path(path)
    if path.is_symlink() or path.is_file():
        path.unlink()
        return "removed"
    if path.is_dir():
        shutil.rmtree(path)
        return "removed"
    return "missing"


def clear_directory(path: Path) -> str:
    """
    Delete everything inside a directory, keeping the directory itself.

    Every entry is attempted even if an earlier one fails; the first failure
    is re-raised once all entries have been tried.

    Args:
        path: Directory to empty

    Returns:
        "removed" if anything was deleted, "missing" if the directory
        does not exist or was already empty

    Raises:
        OSError: If any entry could not be deleted
    """
    path = Path(path)
    if not path.is_dir():
        return "missing"

    removed = 0
    first_error = None
    for entry in sorted(path.iterdir()):
        try:
            if remove_path(entry) == "removed":
                removed += 1
        except OSError as e:
            logger.warning(f"Failed to remove {entry}: {e}")
            if first_error is None:
                first_error = e

    if first_error is not None:
        raise first_error

    return "removed" if removed else "missing"


# ============================================================================
# Formatting
# ============================================================================

def banner(title: str, width: int = 60) -> str:
    """Title framed by rules, as printed at the start of each command."""
    rule = "=" * width
    return f"\n{rule}\n{title}\n{rule}"
