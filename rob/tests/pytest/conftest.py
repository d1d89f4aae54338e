"""
Shared pytest fixtures for rob tests.

Provides temporary project roots, file trees and an in-process CLI runner so
tests never touch a real site or container engine.

Test Tier Markers:
  @pytest.mark.evergreen - Tests that always run, never skip (production tests)
"""

from __future__ import annotations

import io
import json
import shutil
import subprocess
from contextlib import redirect_stdout
from pathlib import Path

import pytest

from rob.core.state import (
    GlobalConfig,
    LocalConfig,
    LocalProjectState,
    Project,
    RobState,
    save_state,
)
from rob.core.utils import log


# =============================================================================
# Helpers
# =============================================================================


def make_tree(root: Path, spec: dict) -> Path:
    """Create files and directories from a nested dict.

    String values are file contents, dict values are subdirectories.
    """
    root.mkdir(parents=True, exist_ok=True)
    for name, value in spec.items():
        path = root / name
        if isinstance(value, dict):
            make_tree(path, value)
        else:
            path.write_text(value)
    return root


SAMPLE_TREE = {
    "README.md": "hello",
    "package.json": '{"name": "app"}',
    "src": {
        "index.js": "console.log(1)",
        "components": {
            "App.js": "export default App",
            "Nav.js": "export default Nav",
        },
    },
    "public": {"index.html": "<html></html>"},
    "empty": {},
}


def make_project(name: str = "app", project_id: str = "id-app", site_path: str = "projects/app") -> Project:
    return Project(
        id=project_id,
        name=name,
        url=f"https://github.com/example/{name}",
        site_path=site_path,
        description=f"{name} description",
    )


has_git = shutil.which("git") is not None


def git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", "-c", "user.email=rob@example.com", "-c", "user.name=rob", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def init_repo(path: Path, files: dict | None = None) -> Path:
    """Create a git repository with one commit."""
    make_tree(path, files or {"README.md": "initial"})
    git(path, "init", "-q")
    git(path, "add", "-A")
    git(path, "commit", "-q", "-m", "initial")
    return path


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register the custom test tier marker."""
    config.addinivalue_line(
        "markers",
        "evergreen: tests that always run, never skip (production tests)"
    )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def plain_output():
    """Disable ANSI colors so output assertions are stable."""
    log.set_color(False)
    yield


@pytest.fixture
def sample_tree(tmp_path: Path) -> Path:
    return make_tree(tmp_path / "tree", SAMPLE_TREE)


@pytest.fixture
def rob_root(tmp_path: Path) -> Path:
    """A project root with empty config files."""
    root = tmp_path / "site"
    root.mkdir()
    save_state(root, RobState(GlobalConfig(), LocalConfig()))
    return root


@pytest.fixture
def populated_root(tmp_path: Path) -> tuple[Path, RobState]:
    """A project root with one local project and one remote project."""
    root = tmp_path / "site"
    root.mkdir()
    checkout = make_tree(tmp_path / "checkouts" / "app", SAMPLE_TREE)

    local_project = make_project("app", "id-app")
    remote_project = make_project("blog", "id-blog", "projects/blog")
    state = RobState(
        GlobalConfig(projects=[local_project, remote_project], url=""),
        LocalConfig(
            projects={
                "id-app": LocalProjectState(path=str(checkout)),
                "id-blog": LocalProjectState(),
            },
        ),
    )
    save_state(root, state)
    return root, state


# =============================================================================
# CLI Runner
# =============================================================================


class CLIResult:
    """Result of running a CLI command."""

    def __init__(self, returncode: int, stdout: str):
        self.returncode = returncode
        self.stdout = stdout

    def __repr__(self) -> str:
        return f"CLIResult(returncode={self.returncode}, stdout={self.stdout[:100]!r}...)"


class CLIRunner:
    """Helper class to run CLI commands in-process against one project root."""

    def __init__(self, root: Path):
        self.root = root

    def run(self, args: list[str]) -> CLIResult:
        from rob.cli import main

        stdout_capture = io.StringIO()
        with redirect_stdout(stdout_capture):
            try:
                returncode = main(["--no-color", "--root", str(self.root), *args])
            except SystemExit as e:
                returncode = e.code if isinstance(e.code, int) else 1

        return CLIResult(returncode=returncode or 0, stdout=stdout_capture.getvalue())

    def global_config(self) -> dict:
        return json.loads((self.root / "rob.global.json").read_text())

    def local_config(self) -> dict:
        return json.loads((self.root / "rob.local.json").read_text())


@pytest.fixture
def cli_runner(tmp_path: Path) -> CLIRunner:
    """CLI runner on an empty directory (no config files yet)."""
    root = tmp_path / "site"
    root.mkdir(exist_ok=True)
    return CLIRunner(root)
