"""
Checkout commands: clone, sync and discover.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional

from rob.commands import load_context
from rob.core import git_ops
from rob.core.errors import RobError
from rob.core.state import LocalProjectState, Project, RobState, get_project, prune_local, save_state
from rob.core.utils import log
from rob.scan.tags import find_tags, read_tag


def _selected(state: RobState, identifier: Optional[str]) -> list[Project]:
    if identifier:
        return [get_project(state, identifier)]
    return list(state.global_config.projects)


def _checkout_of(state: RobState, project: Project) -> Path:
    local = state.local_config.projects.get(project.id)
    if local is None:
        raise RobError(f"project '{project.name}' does not exist locally")
    if not local.path:
        raise RobError(f"project '{project.name}' needs a local path first")
    return Path(local.path)


# =============================================================================
# clone
# =============================================================================


def clone_project(state: RobState, project: Project, force: bool) -> None:
    checkout = _checkout_of(state, project)
    if git_ops.is_repository(checkout) and not force:
        raise RobError(
            f"'{project.name}' is already cloned at {checkout}, use --force to overwrite it"
        )
    git_ops.clone(checkout, project.url)


def cmd_clone(args: argparse.Namespace) -> int:
    _, state, _ = load_context(args)
    failures = 0

    for project in _selected(state, args.project):
        try:
            clone_project(state, project, args.force)
        except RobError as e:
            log.error(f"Problem cloning '{project.name}': {e}")
            failures += 1
            continue
        log.success(f"Cloned '{project.name}'")

    return 1 if failures else 0


# =============================================================================
# sync
# =============================================================================


def cmd_sync(args: argparse.Namespace) -> int:
    _, state, _ = load_context(args)
    failures = 0

    for project in _selected(state, args.project):
        try:
            pulled = git_ops.synchronize(_checkout_of(state, project), project.url)
        except RobError as e:
            log.error(f"Problem syncing '{project.name}': {e}")
            failures += 1
            continue
        if pulled:
            log.success(f"'{project.name}' has been synced")
        else:
            log.dim(f"'{project.name}' is already in sync")

    return 1 if failures else 0


# =============================================================================
# discover
# =============================================================================


def discover(state: RobState, force: bool, concurrency: int = 0) -> dict[str, int]:
    """Link checkouts found under the search paths to their projects.

    Returns counts for ``found``, ``linked``, ``unknown``, ``pruned`` and
    ``errors``. Tags naming a project missing from the global config are
    counted as unknown and left alone.
    """
    roots = [Path(p) for p in state.local_config.search_paths]
    tags = find_tags(roots, concurrency)
    known = {p.id for p in state.global_config.projects}
    counts = {"found": len(tags), "linked": 0, "unknown": 0, "pruned": 0, "errors": 0}

    for tag in tags:
        try:
            project_id = read_tag(tag)
        except OSError as e:
            log.warning(f"Could not read tag {tag}: {e}")
            counts["errors"] += 1
            continue

        if project_id not in known:
            log.dim(f"Ignoring tag for unknown project {project_id} at {tag.parent}")
            counts["unknown"] += 1
            continue

        if project_id in state.local_config.projects and not force:
            continue
        state.local_config.projects[project_id] = LocalProjectState(path=str(tag.parent))
        counts["linked"] += 1

    counts["pruned"] = prune_local(state)
    return counts


def cmd_discover(args: argparse.Namespace) -> int:
    root, state, settings = load_context(args)

    if not state.local_config.search_paths:
        log.error("No search paths configured, add one with 'rob add search-dir'")
        return 1

    counts = discover(state, args.force, settings.scan_concurrency)
    save_state(root, state)

    log.info(f"Found {counts['found']} tag file(s)")
    verb = "overwritten" if args.force else "linked"
    log.success(
        f"{counts['linked']} {verb}, {counts['unknown']} unknown, "
        f"{counts['pruned']} pruned, {counts['errors']} unreadable"
    )
    return 0
