"""
Shared utilities for the rob CLI.
"""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from typing import Optional

# =============================================================================
# Constants
# =============================================================================

GLOBAL_CONFIG_NAME = "rob.global.json"
LOCAL_CONFIG_NAME = "rob.local.json"
SETTINGS_NAME = "rob.yaml"
TAG_FILE_NAME = ".robtag"

# Directories never descended into by the watcher
IGNORED_DIRS = {".git", "node_modules", "__pycache__"}


def host_parallelism() -> int:
    """Number of workers used when a concurrency of 0 is requested."""
    return os.cpu_count() or 1


def resolve_concurrency(concurrency: int) -> int:
    """Map a requested concurrency to an effective worker count (>= 1)."""
    if concurrency <= 0:
        return host_parallelism()
    return concurrency


# =============================================================================
# Logging
# =============================================================================


class Logger:
    """Simple colored logger with --no-color support."""

    COLORS = {
        "reset": "\033[0m",
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "cyan": "\033[96m",
        "bold": "\033[1m",
        "dim": "\033[2m",
    }

    def __init__(self, use_color: Optional[bool] = None):
        if use_color is None:
            self._use_color = sys.stdout.isatty()
        else:
            self._use_color = use_color

    def set_color(self, use_color: bool) -> None:
        """Set whether to use color output."""
        self._use_color = use_color

    def _color(self, text: str, color: str) -> str:
        if not self._use_color:
            return text
        return f"{self.COLORS.get(color, '')}{text}{self.COLORS['reset']}"

    def header(self, message: str) -> None:
        """Print a section header."""
        print(f"\n{self._color('===', 'cyan')} {self._color(message, 'bold')} {self._color('===', 'cyan')}")

    def info(self, message: str) -> None:
        print(f"  {message}")

    def success(self, message: str) -> None:
        print(f"  {self._color('[OK]', 'green')} {message}")

    def warning(self, message: str) -> None:
        print(f"  {self._color('[WARN]', 'yellow')} {message}")

    def error(self, message: str) -> None:
        print(f"  {self._color('[ERROR]', 'red')} {message}")

    def dim(self, message: str) -> None:
        """Print a dim/secondary message."""
        print(f"  {self._color(message, 'dim')}")

    def table_row(self, col1: str, col2: str, col1_width: int = 30) -> None:
        """Print a table row with two columns."""
        print(f"  {col1:<{col1_width}} {col2}")

    def raw(self, message: str) -> None:
        """Print a message without indentation (JSON dumps, trees)."""
        print(message)


# Global logger instance
log = Logger()


# =============================================================================
# Command Execution
# =============================================================================


def run_cmd(
    cmd: list[str],
    cwd: Optional[Path] = None,
    capture: bool = False,
    check: bool = True,
) -> subprocess.CompletedProcess:
    """Run a command with proper error handling."""
    try:
        return subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=capture,
            text=True,
            check=check,
        )
    except subprocess.CalledProcessError as e:
        if capture:
            log.error(f"Command failed: {' '.join(cmd)}")
            if e.stderr:
                log.error(f"stderr: {e.stderr.strip()}")
        raise


def executable_name(name: str) -> str:
    """Platform file name for an executable."""
    if sys.platform == "win32":
        return f"{name}.exe"
    return name
