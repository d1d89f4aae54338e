"""
Tag markers and the tag locator.

A checkout is linked to its project by a ``.robtag`` file at its root that
holds the project id. Discovery finds these markers under the search paths.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from rob.core.utils import TAG_FILE_NAME
from rob.scan.walker import list_children, walk_tree

_log = logging.getLogger(__name__)


# =============================================================================
# Locator
# =============================================================================


def find_files(name: str, roots: Iterable[Path], concurrency: int = 0) -> list[Path]:
    """Find every file called ``name`` under each root.

    Results are grouped by root in the order the roots are given; the order
    inside one root is not defined.
    """
    def visit(directory: Path) -> tuple[list[Path], list[Path]]:
        dirs, files = list_children(directory)
        return dirs, [f for f in files if f.name == name]

    def fold(acc: list[Path], found: list[Path]) -> list[Path]:
        acc.extend(found)
        return acc

    matches: list[Path] = []
    for root in roots:
        matches.extend(walk_tree(Path(root), visit, fold, [], concurrency))
    return matches


def find_tags(roots: Iterable[Path], concurrency: int = 0) -> list[Path]:
    return find_files(TAG_FILE_NAME, roots, concurrency)


# =============================================================================
# Marker Files
# =============================================================================


def tag_path(checkout: Path) -> Path:
    return Path(checkout) / TAG_FILE_NAME


def read_tag(path: Path) -> str:
    """Project id stored in a tag file."""
    return Path(path).read_text().strip()


def write_tag(project_id: str, checkout: Path) -> bool:
    """Write the tag marker into a checkout. Returns False if already current."""
    path = tag_path(checkout)
    if path.is_file():
        try:
            if read_tag(path) == project_id:
                return False
        except OSError:
            pass
    path.write_text(project_id)
    _log.debug("Wrote tag %s to %s", project_id, path)
    return True


def remove_tag(checkout: Path) -> bool:
    """Remove the tag marker if present. Returns True if a file was removed."""
    path = tag_path(checkout)
    if path.is_file():
        path.unlink()
        return True
    return False


def move_tag(project_id: str, old_checkout: Optional[Path], new_checkout: Path) -> None:
    """Re-home a project's tag marker when its local path changes."""
    if old_checkout is not None and Path(old_checkout) != Path(new_checkout):
        remove_tag(old_checkout)
    write_tag(project_id, new_checkout)
