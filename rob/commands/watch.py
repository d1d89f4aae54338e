"""
Watch mode for rob.

Monitors local checkouts and rebuilds a project once its files settle.
Builds run on the main thread so interrupts reach the build supervisor.
"""

from __future__ import annotations

import argparse
import queue
import threading
import time
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from rob.build.decision import rebuild_project
from rob.commands import load_context
from rob.core.errors import RobError
from rob.core.state import Project, RobState, get_project, save_state
from rob.core.utils import IGNORED_DIRS, TAG_FILE_NAME, log


# =============================================================================
# Debouncer
# =============================================================================


class Debouncer:
    """Batches rapid change events per project.

    Fires ``callback(project_ids)`` once no event has arrived for ``delay``
    seconds.
    """

    def __init__(self, delay: float, callback: Callable[[list[str]], None]):
        self.delay = delay
        self.callback = callback
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._pending: list[str] = []

    def trigger(self, project_id: str) -> None:
        """Register a change event. Resets the debounce timer."""
        with self._lock:
            if project_id not in self._pending:
                self._pending.append(project_id)

            if self._timer is not None:
                self._timer.cancel()

            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            if not self._pending:
                return
            project_ids = list(self._pending)
            self._pending.clear()
            self._timer = None

        self.callback(project_ids)

    def cancel(self) -> None:
        """Cancel any pending debounce timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending.clear()


# =============================================================================
# File System Event Handler
# =============================================================================


def is_relevant(path: Path, checkout: Path) -> bool:
    """True if a change at ``path`` should trigger a rebuild."""
    try:
        relative = path.relative_to(checkout)
    except ValueError:
        return False
    if relative.name == TAG_FILE_NAME:
        return False
    return not any(part in IGNORED_DIRS for part in relative.parts)


class ProjectEventHandler(FileSystemEventHandler):
    """Forwards relevant changes in one checkout to the debouncer."""

    def __init__(self, project_id: str, checkout: Path, debouncer: Debouncer):
        super().__init__()
        self.project_id = project_id
        self.checkout = checkout
        self.debouncer = debouncer

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._handle(event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._handle(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._handle(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._handle(event.dest_path)

    def _handle(self, src_path) -> None:
        path = Path(src_path if isinstance(src_path, str) else src_path.decode())
        if is_relevant(path, self.checkout):
            self.debouncer.trigger(self.project_id)


# =============================================================================
# Watch Command
# =============================================================================


def watched_projects(
    state: RobState, identifier: Optional[str], root: Path = Path(".")
) -> list[tuple[Project, Path]]:
    """(project, checkout) pairs for projects with an existing local checkout."""
    projects = [get_project(state, identifier)] if identifier else state.global_config.projects
    targets = []
    for project in projects:
        local = state.local_config.projects.get(project.id)
        if local is None or not local.path:
            continue
        checkout = root / local.path
        if checkout.is_dir():
            targets.append((project, checkout))
        else:
            log.warning(f"Local path for '{project.name}' not found: {checkout}")
    return targets


def cmd_watch(args: argparse.Namespace) -> int:
    """Execute the watch command."""
    root, state, settings = load_context(args)
    targets = watched_projects(state, args.project, root)
    if not targets:
        log.error("No projects with a local checkout to watch")
        return 1

    log.header("rob watch")

    changes: queue.Queue = queue.Queue()

    def on_settled(project_ids: list[str]) -> None:
        for project_id in project_ids:
            changes.put(project_id)

    debouncer = Debouncer(settings.watch_debounce, on_settled)
    observer = Observer()
    by_id = {}
    for project, checkout in targets:
        observer.schedule(ProjectEventHandler(project.id, checkout, debouncer), str(checkout), recursive=True)
        by_id[project.id] = project
        log.info(f"Watching: {project.name} ({checkout})")

    observer.start()
    log.info("")
    log.info("Watching for changes... (Ctrl+C to stop)")

    builds = 0
    try:
        while True:
            try:
                project_id = changes.get(timeout=1)
            except queue.Empty:
                continue

            project = by_id[project_id]
            start = time.time()
            try:
                result = rebuild_project(state, project, root, settings=settings)
            except RobError as e:
                log.error(str(e))
                continue

            builds += 1
            elapsed = time.time() - start
            if result.changed:
                save_state(root, state)
                log.success(f"[{builds}] {project.name} rebuilt in {elapsed:.1f}s")
            else:
                log.dim(f"[{builds}] {project.name}: {result.reason}")
    except KeyboardInterrupt:
        log.info("")
        log.header("Shutting down")
    finally:
        debouncer.cancel()
        observer.stop()
        observer.join(timeout=5)

    log.info(f"Rebuild checks performed: {builds}")
    log.success("Watch mode stopped")
    return 0
