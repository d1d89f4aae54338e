"""
Command implementations for the rob CLI.

Each ``cmd_*`` function takes the parsed argparse namespace and returns an
exit code.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from rob.core.settings import Settings, load_settings
from rob.core.state import RobState, load_state


def project_root(args: argparse.Namespace) -> Path:
    return Path(getattr(args, "root", None) or ".").resolve()


def load_context(args: argparse.Namespace) -> tuple[Path, RobState, Settings]:
    """Resolve the project root and load its state and settings."""
    root = project_root(args)
    return root, load_state(root), load_settings(root)
