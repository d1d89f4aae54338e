"""
Rebuild decisions for a single project.

A project is in one of four states, depending on whether it has a local
checkout and what was recorded after its last successful build:

=================  ===========  ================================================
State              Local path   Action
=================  ===========  ================================================
LOCAL_NO_HASH      set          build locally, record the fingerprint
LOCAL_HAS_HASH     set          rebuild only if the fingerprint changed
REMOTE_NO_COMMIT   empty        fetch remote HEAD, build remotely, record it
REMOTE_HAS_COMMIT  empty        rebuild only if the remote HEAD moved
=================  ===========  ================================================

``force`` rebuilds even when nothing changed. Recorded hashes and commits
are only updated after the build succeeded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from rob.build import executor
from rob.core import git_ops
from rob.core.errors import BuildError, EngineError, VCSError
from rob.core.settings import Settings
from rob.core.state import LocalProjectState, Project, RobState
from rob.scan import fingerprint

_log = logging.getLogger(__name__)


class RebuildState(Enum):
    LOCAL_NO_HASH = "local-no-hash"
    LOCAL_HAS_HASH = "local-has-hash"
    REMOTE_NO_COMMIT = "remote-no-commit"
    REMOTE_HAS_COMMIT = "remote-has-commit"


@dataclass
class RebuildResult:
    """Outcome of one rebuild decision."""

    project: Project
    state: RebuildState
    changed: bool
    reason: str


def classify(local: Optional[LocalProjectState]) -> RebuildState:
    if local is None or not local.path:
        if local is not None and local.last_build_commit:
            return RebuildState.REMOTE_HAS_COMMIT
        return RebuildState.REMOTE_NO_COMMIT
    if local.last_build_hash:
        return RebuildState.LOCAL_HAS_HASH
    return RebuildState.LOCAL_NO_HASH


def _build_local(project: Project, checkout: Path, project_root: Path, settings: Settings) -> str:
    if not checkout.is_dir():
        raise BuildError(project.name, "local build", FileNotFoundError(f"local path {checkout} does not exist"))
    try:
        return executor.build_local(checkout, project_root, project.site_path, settings)
    except (EngineError, OSError) as e:
        raise BuildError(project.name, "local build", e) from e


def _build_remote(project: Project, project_root: Path, settings: Settings) -> None:
    try:
        executor.build_remote(project_root, project.site_path, project.url, settings)
    except (EngineError, OSError) as e:
        raise BuildError(project.name, "remote build", e) from e


def rebuild_project(
    state: RobState,
    project: Project,
    project_root: Path,
    force: bool = False,
    settings: Optional[Settings] = None,
) -> RebuildResult:
    """Decide whether ``project`` needs a build and run it if so.

    Mutates the project's local record in ``state`` on success; the caller
    saves the state.
    """
    settings = settings or Settings()
    project_root = Path(project_root)
    local = state.local_config.projects.get(project.id)
    kind = classify(local)
    _log.debug("Project %s is %s", project.name, kind.value)

    if kind is RebuildState.LOCAL_NO_HASH:
        checkout = project_root / local.path
        local.last_build_hash = _build_local(project, checkout, project_root, settings)
        return RebuildResult(project, kind, True, "first local build")

    if kind is RebuildState.LOCAL_HAS_HASH:
        checkout = project_root / local.path
        if not force and checkout.is_dir() and fingerprint.fingerprint_matches(
            checkout,
            local.last_build_hash,
            settings.scan_concurrency,
            settings.fingerprint_attempts,
        ):
            return RebuildResult(project, kind, False, "local sources unchanged")
        reason = "forced local build" if force else "local sources changed"
        local.last_build_hash = _build_local(project, checkout, project_root, settings)
        return RebuildResult(project, kind, True, reason)

    try:
        commit = git_ops.remote_head_commit(project.url)
    except VCSError as e:
        raise VCSError(f"could not fetch remote HEAD of project '{project.name}': {e}") from e

    if kind is RebuildState.REMOTE_HAS_COMMIT:
        if commit == local.last_build_commit and not force:
            return RebuildResult(project, kind, False, f"remote HEAD unchanged ({commit[:12]})")
        reason = "forced remote build" if commit == local.last_build_commit else "remote HEAD moved"
    else:
        reason = "first remote build"

    _build_remote(project, project_root, settings)
    state.local_state(project).last_build_commit = commit
    return RebuildResult(project, kind, True, reason)
