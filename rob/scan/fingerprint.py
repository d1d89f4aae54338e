"""
Content fingerprints for local checkouts.

A fingerprint is the SHA-1 over the SHA-1 digests of every readable file in
the tree. The per-file digests are sorted before they are combined, so the
result does not depend on how many workers walked the tree.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from rob.scan.walker import list_children, walk_tree

_log = logging.getLogger(__name__)

# Number of recomputations older releases accepted before declaring a change.
LEGACY_MATCH_ATTEMPTS = 133

_CHUNK_SIZE = 1 << 16


def file_digest(path: Path) -> bytes:
    hasher = hashlib.sha1()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.digest()


def _visit(directory: Path) -> tuple[list[Path], list[bytes]]:
    dirs, files = list_children(directory)
    digests = []
    for path in files:
        try:
            digests.append(file_digest(path))
        except OSError as e:
            _log.debug("Skipping unreadable file %s: %s", path, e)
    return dirs, digests


def _collect(acc: list[bytes], digests: list[bytes]) -> list[bytes]:
    acc.extend(digests)
    return acc


def fingerprint(root: Path, concurrency: int = 0) -> str:
    """Hex fingerprint of the file contents under ``root``."""
    digests = walk_tree(Path(root), _visit, _collect, [], concurrency)
    hasher = hashlib.sha1()
    for digest in sorted(digests):
        hasher.update(digest)
    result = hasher.hexdigest()
    _log.debug("Fingerprint of %s (%d files): %s", root, len(digests), result)
    return result


def fingerprint_matches(
    root: Path,
    expected: str,
    concurrency: int = 0,
    attempts: int = 1,
) -> bool:
    """True if any of up to ``attempts`` fingerprints of ``root`` equals ``expected``."""
    if not expected:
        return False
    for attempt in range(max(attempts, 1)):
        if fingerprint(root, concurrency) == expected:
            return True
        _log.debug("Fingerprint mismatch for %s (attempt %d)", root, attempt + 1)
    return False
