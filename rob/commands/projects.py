"""
Project bookkeeping commands: init, check, add, remove, list, update, prune.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from urllib.parse import urlparse

from rob.commands import load_context, project_root
from rob.core.errors import RobError
from rob.core.github import fetch_description
from rob.core.state import (
    Project,
    RobState,
    add_project,
    get_project,
    init_global,
    init_local,
    load_global,
    preflight,
    prune_local,
    remove_project,
    save_state,
)
from rob.core.utils import log
from rob.scan.tags import move_tag, remove_tag, write_tag


# =============================================================================
# init / check
# =============================================================================


def cmd_init(args: argparse.Namespace) -> int:
    root = project_root(args)

    if args.local:
        init_local(root, load_global(root), force=args.force)
        log.success(f"Local config initialized in {root}")
        return 0

    init_global(root, force=args.force)
    log.success(f"Global config initialized in {root}")
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    root = project_root(args)
    if not root.is_dir():
        log.error(f"Project root {root} does not exist")
        return 1

    global_exists, local_exists = preflight(root)
    log.table_row("Global config exists:", str(global_exists), 22)
    log.table_row("Local config exists:", str(local_exists), 22)
    return 0


# =============================================================================
# add
# =============================================================================


def _valid_url(url: str) -> bool:
    parsed = urlparse(url)
    return bool(parsed.scheme and parsed.netloc)


def _add_project(args: argparse.Namespace) -> int:
    url = args.url.strip()
    if not _valid_url(url):
        log.error(f"'{url}' is not a valid project URL")
        return 1

    root, state, _ = load_context(args)

    local_path = ""
    if args.local_path:
        candidate = Path(args.local_path).expanduser()
        if candidate.is_dir():
            local_path = str(candidate.resolve())
        else:
            log.warning(f"Local path {candidate} does not exist, leaving it unset")

    description = args.description or ""
    if args.fetch_description:
        try:
            description = fetch_description(url)
        except RobError as e:
            log.warning(f"Could not fetch description, defaulting to blank ({e})")
            description = ""

    project = add_project(
        state,
        url,
        site_path=args.site_path or "",
        description=description,
        local_path=local_path,
    )
    (root / project.site_path).mkdir(parents=True, exist_ok=True)

    if local_path:
        try:
            write_tag(project.id, Path(local_path))
        except OSError as e:
            log.warning(f"Could not write tag file in {local_path}: {e}")

    save_state(root, state)
    log.success(f"Added project '{project.name}' ({project.id})")
    return 0


def _add_search_dir(args: argparse.Namespace) -> int:
    path = Path(args.path).expanduser()
    if not path.is_dir():
        log.error(f"Search directory {path} does not exist")
        return 1

    root, state, _ = load_context(args)
    search_dir = str(path.resolve())
    if search_dir in state.local_config.search_paths:
        log.error(f"{search_dir} is already a search path")
        return 1

    state.local_config.search_paths.append(search_dir)
    save_state(root, state)
    log.success(f"Added search path {search_dir}")
    return 0


def cmd_add(args: argparse.Namespace) -> int:
    if args.add_command == "project":
        return _add_project(args)
    if args.add_command == "search-dir":
        return _add_search_dir(args)
    log.error("Specify what to add: project or search-dir")
    return 1


# =============================================================================
# remove
# =============================================================================


def _remove_locally(state: RobState, identifier: str) -> str:
    project = get_project(state, identifier)
    local = state.local_config.projects.get(project.id)
    if local is None:
        raise RobError(f"project '{project.name}' does not exist locally")
    if local.path:
        remove_tag(Path(local.path))
    del state.local_config.projects[project.id]
    return project.name


def _remove_project(args: argparse.Namespace) -> int:
    root, state, _ = load_context(args)

    if args.local:
        name = _remove_locally(state, args.project)
        save_state(root, state)
        log.success(f"Removed project '{name}' locally")
        return 0

    project = get_project(state, args.project)
    local = state.local_config.projects.get(project.id)
    if local is not None and local.path:
        remove_tag(Path(local.path))
    remove_project(state, project.id)
    save_state(root, state)
    log.success(f"Removed project '{project.name}' globally and locally")
    return 0


def _remove_search_dirs(args: argparse.Namespace) -> int:
    root, state, _ = load_context(args)
    paths = state.local_config.search_paths

    bad = [i for i in args.indices if not 0 <= i < len(paths)]
    if bad:
        log.error(f"No search path at index {', '.join(str(i) for i in bad)}")
        return 1

    drop = set(args.indices)
    for index in sorted(drop):
        log.info(f"Removing search path {paths[index]}")
    state.local_config.search_paths = [p for i, p in enumerate(paths) if i not in drop]
    save_state(root, state)
    return 0


def cmd_remove(args: argparse.Namespace) -> int:
    if args.remove_command == "search-dir":
        return _remove_search_dirs(args)
    if args.remove_command == "project":
        return _remove_project(args)
    log.error("Specify what to remove: project or search-dir")
    return 1


# =============================================================================
# list
# =============================================================================


def _dump(data: dict, spaces: int) -> None:
    log.raw(json.dumps(data, indent=spaces))


def _print_project(state: RobState, project: Project, spaces: int, show_global: bool, show_local: bool) -> None:
    rule = "=" * len(project.name)
    log.raw(f"\n{project.name}\n{rule}")
    if show_global:
        _dump(project.to_dict(), spaces)
    local = state.local_config.projects.get(project.id)
    if show_local:
        if local is None:
            log.dim("(no local record)")
        else:
            if show_global:
                log.raw("-" * len(project.name))
            _dump(local.to_dict(), spaces)
    log.raw("_" * len(project.name))


def cmd_list(args: argparse.Namespace) -> int:
    _, state, _ = load_context(args)

    # neither or both filters means show everything
    show_global = args.show_global or not args.show_local
    show_local = args.show_local or not args.show_global

    if args.project:
        project = get_project(state, args.project)
        _print_project(state, project, args.spaces, show_global, show_local)
        return 0

    if show_global and show_local:
        for project in state.global_config.projects:
            _print_project(state, project, args.spaces, True, True)
    elif show_global:
        _dump(state.global_config.to_dict(), args.spaces)
    else:
        _dump(state.local_config.to_dict(), args.spaces)
    return 0


# =============================================================================
# update
# =============================================================================


def _update_one(args: argparse.Namespace, root: Path, state: RobState) -> bool:
    project = get_project(state, args.project)
    changed = False

    if args.description:
        project.description = args.description
        changed = True
    elif args.fetch_description:
        description = fetch_description(project.url)
        if description == project.description:
            log.info(f"Description of '{project.name}' is already up to date")
        else:
            project.description = description
            changed = True

    if args.local_path:
        new_path = Path(args.local_path).expanduser()
        if not new_path.is_dir():
            raise RobError(f"local path {new_path} does not exist")
        new_path = new_path.resolve()
        local = state.local_state(project)
        if local.path and Path(local.path).resolve() == new_path:
            raise RobError("the new local path is the same as the old one")
        move_tag(project.id, Path(local.path) if local.path else None, new_path)
        local.path = str(new_path)
        changed = True

    if args.site_path:
        project.site_path = args.site_path
        (root / project.site_path).mkdir(parents=True, exist_ok=True)
        changed = True

    return changed


def _update_all(args: argparse.Namespace, state: RobState) -> bool:
    changed = False

    if args.fetch_description:
        for project in state.global_config.projects:
            try:
                description = fetch_description(project.url)
            except RobError as e:
                log.error(f"Could not fetch description for '{project.name}': {e}")
                continue
            if description != project.description:
                project.description = description
                log.success(f"Description for '{project.name}' updated")
                changed = True
        if not changed:
            log.info("Descriptions for all projects are already up to date")
        return changed

    created = 0
    for project in state.global_config.projects:
        if project.id not in state.local_config.projects:
            state.local_state(project)
            created += 1
    if created:
        log.success(f"{created} local project records created")
    else:
        log.info("Local projects already in sync with global projects")
    return created > 0


def cmd_update(args: argparse.Namespace) -> int:
    root, state, _ = load_context(args)

    if args.project:
        changed = _update_one(args, root, state)
    else:
        changed = _update_all(args, state)

    if changed:
        save_state(root, state)
        log.success("Configuration updated")
    return 0


# =============================================================================
# prune
# =============================================================================


def cmd_prune(args: argparse.Namespace) -> int:
    root, state, _ = load_context(args)
    pruned = prune_local(state)
    if not pruned:
        log.info("No local projects pruned")
        return 0

    save_state(root, state)
    log.success(f"{pruned} local projects pruned")
    return 0
