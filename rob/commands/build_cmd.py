"""
The build command: rebuild projects or the site server.
"""

from __future__ import annotations

import argparse
import time
from pathlib import Path

from rob.build import executor
from rob.build.decision import RebuildResult, rebuild_project
from rob.commands import load_context
from rob.core import git_ops
from rob.core.errors import RobError, VCSError
from rob.core.settings import Settings
from rob.core.state import RobState, get_project, save_state
from rob.core.utils import log


def _report(result: RebuildResult, elapsed: float) -> None:
    if result.changed:
        log.success(f"{result.project.name}: built ({result.reason}) in {elapsed:.1f}s")
    else:
        log.dim(f"{result.project.name}: skipped ({result.reason})")


def build_root_server(root: Path, state: RobState, settings: Settings, force: bool) -> bool:
    """Rebuild the site server if the site's local HEAD moved.

    Returns True if the server was rebuilt.
    """
    local_head = git_ops.head_commit(root)
    if local_head == state.local_config.last_root_build_commit and not force:
        log.info("Server is up to date with the local commit, use --force to rebuild")
        return False

    if state.global_config.url:
        try:
            remote_head = git_ops.remote_head_commit(state.global_config.url)
        except VCSError as e:
            log.warning(f"Could not check the remote site repository: {e}")
        else:
            if remote_head != local_head:
                log.warning("Local site is not in sync with the remote, push or pull as needed")

    target = executor.build_root(root, settings)
    state.local_config.last_root_build_commit = local_head
    log.success(f"Server built at {target}")
    return True


def cmd_build(args: argparse.Namespace) -> int:
    """Execute the build command."""
    root, state, settings = load_context(args)

    if args.root_server:
        log.header("Building site server")
        if build_root_server(root, state, settings, args.force):
            save_state(root, state)
        return 0

    if args.project:
        projects = [get_project(state, args.project)]
    else:
        projects = list(state.global_config.projects)

    if not projects:
        log.info("No projects to build")
        return 0

    log.header(f"Building {len(projects)} project(s)")

    changed = False
    failures = 0
    try:
        for project in projects:
            start = time.time()
            try:
                result = rebuild_project(state, project, root, args.force, settings)
            except RobError as e:
                failures += 1
                log.error(str(e))
                continue
            _report(result, time.time() - start)
            changed = changed or result.changed
    finally:
        # keep records of builds that finished before an interrupt
        if changed:
            save_state(root, state)

    if failures:
        log.error(f"{failures} of {len(projects)} project(s) failed")
        return 1
    return 0
