"""
Build executor: the container builds rob knows how to run.

- build_local / build_remote produce a project's static output in the site
- build_root compiles the site server into the project root
- push_installer / update_self publish and install rob itself
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import Optional

from rob.build import engine
from rob.build.config import (
    CONTAINER_OUTPUT_DIR,
    REACT_BUILD_IMAGE,
    ROOT_BUILD_IMAGE,
    UPDATE_TAG,
    generate_container_name,
    target_platform,
)
from rob.build.recipes import (
    INSTALLER_LOCAL,
    INSTALLER_REMOTE,
    LOCAL_REACT_BUILD,
    REMOTE_REACT_BUILD,
    ROOT_BUILD,
)
from rob.core.errors import RobError
from rob.core.settings import Settings
from rob.core.state import project_name_from_url
from rob.core.utils import executable_name
from rob.scan.fingerprint import fingerprint

_log = logging.getLogger(__name__)


def _output_dir(project_root: Path, site_path: str) -> Path:
    output = (Path(project_root) / site_path).resolve()
    output.mkdir(parents=True, exist_ok=True)
    return output


def _capture_to(path: Path, image: str, settings: Settings) -> None:
    """Run ``image`` and write its stdout to ``path`` as an executable.

    The file is only replaced once the container exits successfully.
    """
    partial = path.with_name(path.name + ".partial")
    try:
        with open(partial, "wb") as out:
            engine.run_container(image, generate_container_name(), stdout=out, engine=settings.engine)
        mode = partial.stat().st_mode
        partial.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        os.replace(partial, path)
    finally:
        if partial.exists():
            partial.unlink()


# =============================================================================
# Project Builds
# =============================================================================


def build_local(
    local_path: Path,
    project_root: Path,
    site_path: str,
    settings: Optional[Settings] = None,
) -> str:
    """Build a project from its local checkout.

    Returns the fingerprint of the checkout taken before the build started.
    """
    settings = settings or Settings()
    digest = fingerprint(Path(local_path), settings.scan_concurrency)
    output = _output_dir(project_root, site_path)

    engine.build_image(REACT_BUILD_IMAGE, LOCAL_REACT_BUILD, Path(local_path), engine=settings.engine)
    engine.run_container(
        REACT_BUILD_IMAGE,
        generate_container_name(),
        volumes={output: CONTAINER_OUTPUT_DIR},
        engine=settings.engine,
    )
    return digest


def build_remote(
    project_root: Path,
    site_path: str,
    url: str,
    settings: Optional[Settings] = None,
) -> None:
    """Build a project from the tarball of its remote repository."""
    settings = settings or Settings()
    output = _output_dir(project_root, site_path)

    engine.build_image(
        REACT_BUILD_IMAGE,
        REMOTE_REACT_BUILD,
        Path(project_root),
        build_args={
            "GITHUB_DIR": project_name_from_url(url),
            "GITHUB_URL": url.rstrip("/"),
        },
        engine=settings.engine,
    )
    engine.run_container(
        REACT_BUILD_IMAGE,
        generate_container_name(),
        volumes={output: CONTAINER_OUTPUT_DIR},
        engine=settings.engine,
    )


# =============================================================================
# Site Server
# =============================================================================


def server_executable(project_root: Path, settings: Optional[Settings] = None) -> Path:
    settings = settings or Settings()
    return Path(project_root).resolve() / executable_name(settings.server_name)


def build_root(project_root: Path, settings: Optional[Settings] = None) -> Path:
    """Compile the site server for this host into the project root."""
    settings = settings or Settings()
    target = server_executable(project_root, settings)
    goos, goarch = target_platform()

    engine.build_image(
        ROOT_BUILD_IMAGE,
        ROOT_BUILD,
        Path(project_root),
        build_args={
            "BUILD_NAME": target.name,
            "GOARCH": goarch,
            "GOOS": goos,
        },
        engine=settings.engine,
    )
    _capture_to(target, ROOT_BUILD_IMAGE, settings)
    _log.debug("Server written to %s", target)
    return target


# =============================================================================
# Installer
# =============================================================================


def installer_image(tag: str, settings: Settings) -> str:
    return f"{settings.installer_image}:{tag}"


def push_installer(
    tag: str,
    local: bool,
    source: Path,
    settings: Optional[Settings] = None,
) -> str:
    """Build the installer image without cache and push it."""
    settings = settings or Settings()
    image = installer_image(tag, settings)

    if local:
        engine.build_image(image, INSTALLER_LOCAL, Path(source), no_cache=True, engine=settings.engine)
    else:
        if not settings.installer_source_url:
            raise RobError("installer_source_url must be set in rob.yaml to push from the remote source")
        engine.build_image(
            image,
            INSTALLER_REMOTE,
            Path(source),
            build_args={"SOURCE_URL": settings.installer_source_url.rstrip("/")},
            no_cache=True,
            engine=settings.engine,
        )

    engine.push_image(image, engine=settings.engine)
    return image


def update_self(target: Path, settings: Optional[Settings] = None) -> None:
    """Replace ``target`` with the latest published rob."""
    settings = settings or Settings()
    image = installer_image(UPDATE_TAG, settings)
    engine.pull_image(image, engine=settings.engine)
    _capture_to(Path(target), image, settings)
