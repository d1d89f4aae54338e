"""
Git operations for rob.

HEAD lookups, clone and pull for project checkouts. Only HEAD commit hashes
are ever compared.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Optional

from rob.core.errors import VCSError

_log = logging.getLogger(__name__)


def _git(args: list[str], cwd: Optional[Path] = None) -> str:
    """Run git and return stripped stdout; raise VCSError on failure."""
    cmd = ["git", *args]
    _log.debug("Running: %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as e:
        raise VCSError("git executable not found on PATH") from e

    if result.returncode != 0:
        detail = result.stderr.strip() or result.stdout.strip()
        raise VCSError(f"'{' '.join(cmd)}' failed: {detail}")
    return result.stdout.strip()


# =============================================================================
# Commit Lookups
# =============================================================================


def is_repository(path: Path) -> bool:
    """True if ``path`` is the top of a git working tree."""
    return (path / ".git").exists()


def head_commit(path: Path) -> str:
    """HEAD commit of a local checkout."""
    if not path.is_dir():
        raise VCSError(f"{path} is not a directory")
    if not is_repository(path):
        raise VCSError(f"{path} is not a git repository")
    return _git(["rev-parse", "HEAD"], cwd=path)


def remote_head_commit(url: str) -> str:
    """HEAD commit of a remote repository.

    Takes a shallow clone into a temporary directory that is removed
    before returning.
    """
    with tempfile.TemporaryDirectory(prefix="rob-head-") as tmp:
        _git(["clone", "--quiet", "--no-checkout", "--depth", "1", url, tmp])
        return _git(["rev-parse", "HEAD"], cwd=Path(tmp))


# =============================================================================
# Checkout Management
# =============================================================================


def remove_contents(path: Path) -> None:
    """Delete everything inside a directory, keeping the directory."""
    for child in path.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


def clone(path: Path, url: str) -> None:
    """Clone ``url`` into ``path``, replacing whatever is there."""
    path.mkdir(parents=True, exist_ok=True)
    remove_contents(path)
    _git(["clone", "--recurse-submodules", url, str(path)])


def pull(path: Path) -> None:
    _git(["pull", "--recurse-submodules"], cwd=path)


def local_project_synced(path: Path, url: str) -> bool:
    """True if the checkout's HEAD matches the remote HEAD."""
    return head_commit(path) == remote_head_commit(url)


def synchronize(path: Path, url: str) -> bool:
    """Pull the checkout if it is behind the remote. Returns True if pulled."""
    if local_project_synced(path, url):
        return False
    pull(path)
    return True
