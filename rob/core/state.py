"""
Project configuration store.

Two JSON files live in the project root:

- ``rob.global.json`` is committed with the site and lists every project.
- ``rob.local.json`` is machine-specific: local checkout paths, build
  caches and discovery search roots.

A command loads both into a ``RobState``, mutates it in memory and saves it
once when it is done.
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from rob.core.errors import ConfigNotFoundError, ProjectExistsError, ProjectNotFoundError, RobError
from rob.core.utils import GLOBAL_CONFIG_NAME, LOCAL_CONFIG_NAME

_log = logging.getLogger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class Project:
    """A sub-project embedded in the site. Shared through the global config."""

    id: str
    name: str
    url: str
    site_path: str
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "sitePath": self.site_path,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Project":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            url=data.get("url", ""),
            site_path=data.get("sitePath", ""),
            description=data.get("description", ""),
        )


@dataclass
class LocalProjectState:
    """Machine-specific state for one project.

    An empty ``path`` means the project is built from its remote URL.
    """

    path: str = ""
    last_build_hash: str = ""  # set by local builds
    last_build_commit: str = ""  # set by remote builds

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "lastBuildHash": self.last_build_hash,
            "lastBuildCommit": self.last_build_commit,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LocalProjectState":
        return cls(
            path=data.get("path", ""),
            last_build_hash=data.get("lastBuildHash", ""),
            last_build_commit=data.get("lastBuildCommit", ""),
        )


@dataclass
class GlobalConfig:
    projects: list[Project] = field(default_factory=list)
    url: str = ""  # git URL of the site itself

    def to_dict(self) -> dict:
        return {
            "projects": [p.to_dict() for p in self.projects],
            "url": self.url,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GlobalConfig":
        return cls(
            projects=[Project.from_dict(p) for p in data.get("projects") or []],
            url=data.get("url", ""),
        )


@dataclass
class LocalConfig:
    projects: dict[str, LocalProjectState] = field(default_factory=dict)
    search_paths: list[str] = field(default_factory=list)
    last_root_build_commit: str = ""

    def to_dict(self) -> dict:
        return {
            "projects": {k: v.to_dict() for k, v in self.projects.items()},
            "searchPaths": self.search_paths,
            "lastRootBuildCommit": self.last_root_build_commit,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LocalConfig":
        return cls(
            projects={
                k: LocalProjectState.from_dict(v)
                for k, v in (data.get("projects") or {}).items()
            },
            search_paths=list(data.get("searchPaths") or []),
            last_root_build_commit=data.get("lastRootBuildCommit", ""),
        )


@dataclass
class RobState:
    """Both config files, loaded together and saved together."""

    global_config: GlobalConfig
    local_config: LocalConfig

    def local_state(self, project: Project) -> LocalProjectState:
        """Return the local record for a project, creating it on first use."""
        return self.local_config.projects.setdefault(project.id, LocalProjectState())


# =============================================================================
# Load / Save
# =============================================================================


def global_config_path(root: Path) -> Path:
    return root / GLOBAL_CONFIG_NAME


def local_config_path(root: Path) -> Path:
    return root / LOCAL_CONFIG_NAME


def _write_json(path: Path, data: dict) -> None:
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
        f.write("\n")


def preflight(root: Path) -> tuple[bool, bool]:
    """Return (global_exists, local_exists) for a project root."""
    return global_config_path(root).is_file(), local_config_path(root).is_file()


def load_global(root: Path) -> GlobalConfig:
    global_path = global_config_path(root)
    if not global_path.is_file():
        raise ConfigNotFoundError(root, global_missing=True, local_missing=not local_config_path(root).is_file())

    with open(global_path) as f:
        return GlobalConfig.from_dict(json.load(f))


def load_state(root: Path) -> RobState:
    """Load both config files from a project root.

    A missing global file is an error. A missing local file is created from
    the global project list.
    """
    global_config = load_global(root)

    local_path = local_config_path(root)
    if not local_path.is_file():
        _log.info("Local config missing, initializing %s", local_path)
        local_config = init_local(root, global_config, force=True)
    else:
        with open(local_path) as f:
            local_config = LocalConfig.from_dict(json.load(f))

    return RobState(global_config=global_config, local_config=local_config)


def save_state(root: Path, state: RobState) -> None:
    """Write both config files."""
    _write_json(global_config_path(root), state.global_config.to_dict())
    _write_json(local_config_path(root), state.local_config.to_dict())


def init_global(root: Path, force: bool = False) -> GlobalConfig:
    """Create an empty global config file."""
    if not root.is_dir():
        raise RobError(f"project root {root} does not exist")

    path = global_config_path(root)
    if path.exists() and not force:
        raise RobError(f"{path.name} already exists, use --force to overwrite it")

    config = GlobalConfig()
    _write_json(path, config.to_dict())
    return config


def init_local(root: Path, global_config: GlobalConfig, force: bool = False) -> LocalConfig:
    """Create a local config file with an empty record for every project."""
    if not root.is_dir():
        raise RobError(f"project root {root} does not exist")

    path = local_config_path(root)
    if path.exists() and not force:
        raise RobError(f"{path.name} already exists, use --force to overwrite it")

    config = LocalConfig(
        projects={p.id: LocalProjectState() for p in global_config.projects},
    )
    _write_json(path, config.to_dict())
    return config


# =============================================================================
# Project Operations
# =============================================================================


def generate_project_id() -> str:
    return uuid.uuid4().hex


def project_name_from_url(url: str) -> str:
    """Repository name of a git URL (last path segment, no .git suffix)."""
    name = url.rstrip("/").rsplit("/", 1)[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return name


def find_project(state: RobState, identifier: str) -> Optional[Project]:
    """Find a project by URL, id, or case-insensitive name."""
    wanted_name = project_name_from_url(identifier).lower()
    for project in state.global_config.projects:
        if (
            project.url == identifier
            or project.id == identifier
            or project.name.lower() == wanted_name
        ):
            return project
    return None


def get_project(state: RobState, identifier: str) -> Project:
    project = find_project(state, identifier)
    if project is None:
        raise ProjectNotFoundError(identifier)
    return project


def add_project(
    state: RobState,
    url: str,
    site_path: str = "",
    description: str = "",
    local_path: str = "",
) -> Project:
    """Register a new project with a fresh id."""
    if any(p.url == url for p in state.global_config.projects):
        raise ProjectExistsError(url)

    name = project_name_from_url(url)
    project = Project(
        id=generate_project_id(),
        name=name,
        url=url,
        site_path=site_path or os.path.join("projects", name),
        description=description,
    )
    state.global_config.projects.append(project)
    state.local_config.projects[project.id] = LocalProjectState(path=local_path)
    return project


def remove_project(state: RobState, identifier: str) -> Project:
    """Remove a project from the global config and prune the local one."""
    project = get_project(state, identifier)
    state.global_config.projects = [
        p for p in state.global_config.projects if p.id != project.id
    ]
    prune_local(state)
    return project


def prune_local(state: RobState) -> int:
    """Drop local records for projects no longer in the global config."""
    known = {p.id for p in state.global_config.projects}
    stale = [pid for pid in state.local_config.projects if pid not in known]
    for pid in stale:
        del state.local_config.projects[pid]
    if stale:
        _log.debug("Pruned local records: %s", ", ".join(stale))
    return len(stale)
