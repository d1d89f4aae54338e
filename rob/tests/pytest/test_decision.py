"""
Tests for the rebuild decision engine.

Container builds and remote lookups are replaced with recorders so the
tests only exercise the decision logic.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from rob.build import decision
from rob.build.decision import RebuildState, classify, rebuild_project
from rob.core.errors import BuildError, EngineError, VCSError
from rob.core.settings import Settings
from rob.core.state import GlobalConfig, LocalConfig, LocalProjectState, RobState
from rob.scan.fingerprint import fingerprint

from .conftest import SAMPLE_TREE, make_project, make_tree


class FakeBuilds:
    """Records executor calls; optionally fails them."""

    def __init__(self, monkeypatch: pytest.MonkeyPatch, remote_head: str = "c1"):
        self.local_calls: list[Path] = []
        self.remote_calls: list[str] = []
        self.fail: Exception | None = None
        self.remote_head = remote_head
        self.head_error: Exception | None = None
        monkeypatch.setattr(decision.executor, "build_local", self.build_local)
        monkeypatch.setattr(decision.executor, "build_remote", self.build_remote)
        monkeypatch.setattr(decision.git_ops, "remote_head_commit", self.remote_head_commit)

    def build_local(self, local_path, project_root, site_path, settings=None):
        self.local_calls.append(Path(local_path))
        if self.fail:
            raise self.fail
        return fingerprint(Path(local_path))

    def build_remote(self, project_root, site_path, url, settings=None):
        self.remote_calls.append(url)
        if self.fail:
            raise self.fail

    def remote_head_commit(self, url):
        if self.head_error:
            raise self.head_error
        return self.remote_head


@pytest.fixture
def builds(monkeypatch: pytest.MonkeyPatch) -> FakeBuilds:
    return FakeBuilds(monkeypatch)


@pytest.fixture
def checkout(tmp_path: Path) -> Path:
    return make_tree(tmp_path / "checkout", SAMPLE_TREE)


def _state(local: LocalProjectState | None) -> RobState:
    project = make_project()
    projects = {project.id: local} if local is not None else {}
    return RobState(GlobalConfig(projects=[project]), LocalConfig(projects=projects))


@pytest.mark.evergreen
class TestClassify:
    def test_no_record_is_remote_without_commit(self) -> None:
        assert classify(None) is RebuildState.REMOTE_NO_COMMIT

    def test_empty_record(self) -> None:
        assert classify(LocalProjectState()) is RebuildState.REMOTE_NO_COMMIT

    def test_remote_with_commit(self) -> None:
        assert classify(LocalProjectState(last_build_commit="c1")) is RebuildState.REMOTE_HAS_COMMIT

    def test_local_without_hash(self) -> None:
        assert classify(LocalProjectState(path="/x")) is RebuildState.LOCAL_NO_HASH

    def test_local_with_hash(self) -> None:
        assert classify(LocalProjectState(path="/x", last_build_hash="h")) is RebuildState.LOCAL_HAS_HASH

    def test_path_wins_over_commit(self) -> None:
        local = LocalProjectState(path="/x", last_build_commit="c1")
        assert classify(local) is RebuildState.LOCAL_NO_HASH


@pytest.mark.evergreen
class TestLocalBuilds:
    def test_first_build_records_hash(self, builds: FakeBuilds, checkout: Path, tmp_path: Path) -> None:
        state = _state(LocalProjectState(path=str(checkout)))
        project = state.global_config.projects[0]

        result = rebuild_project(state, project, tmp_path)

        assert result.changed
        assert result.state is RebuildState.LOCAL_NO_HASH
        assert builds.local_calls == [checkout]
        assert state.local_config.projects[project.id].last_build_hash == fingerprint(checkout)

    def test_unchanged_tree_skips_build(self, builds: FakeBuilds, checkout: Path, tmp_path: Path) -> None:
        digest = fingerprint(checkout)
        state = _state(LocalProjectState(path=str(checkout), last_build_hash=digest))
        project = state.global_config.projects[0]

        result = rebuild_project(state, project, tmp_path)

        assert not result.changed
        assert builds.local_calls == []
        assert state.local_config.projects[project.id].last_build_hash == digest

    def test_force_rebuilds_unchanged_tree(self, builds: FakeBuilds, checkout: Path, tmp_path: Path) -> None:
        digest = fingerprint(checkout)
        state = _state(LocalProjectState(path=str(checkout), last_build_hash=digest))

        result = rebuild_project(state, state.global_config.projects[0], tmp_path, force=True)

        assert result.changed
        assert builds.local_calls == [checkout]

    def test_changed_tree_rebuilds(self, builds: FakeBuilds, checkout: Path, tmp_path: Path) -> None:
        state = _state(LocalProjectState(path=str(checkout), last_build_hash="stale"))
        project = state.global_config.projects[0]

        result = rebuild_project(state, project, tmp_path)

        assert result.changed
        assert state.local_config.projects[project.id].last_build_hash == fingerprint(checkout)

    def test_relative_path_resolves_against_root(self, builds: FakeBuilds, tmp_path: Path) -> None:
        make_tree(tmp_path / "src-app", {"a.txt": "a"})
        state = _state(LocalProjectState(path="src-app"))

        rebuild_project(state, state.global_config.projects[0], tmp_path)

        assert builds.local_calls == [tmp_path / "src-app"]

    def test_failed_build_keeps_hash(self, builds: FakeBuilds, checkout: Path, tmp_path: Path) -> None:
        builds.fail = EngineError("exit 1", returncode=1)
        state = _state(LocalProjectState(path=str(checkout), last_build_hash="stale"))
        project = state.global_config.projects[0]

        with pytest.raises(BuildError, match="app"):
            rebuild_project(state, project, tmp_path)

        assert state.local_config.projects[project.id].last_build_hash == "stale"

    def test_missing_checkout_is_a_build_error(self, builds: FakeBuilds, tmp_path: Path) -> None:
        state = _state(LocalProjectState(path=str(tmp_path / "gone")))

        with pytest.raises(BuildError):
            rebuild_project(state, state.global_config.projects[0], tmp_path)
        assert builds.local_calls == []


@pytest.mark.evergreen
class TestRemoteBuilds:
    def test_first_remote_build_records_commit(self, builds: FakeBuilds, tmp_path: Path) -> None:
        state = _state(None)
        project = state.global_config.projects[0]

        result = rebuild_project(state, project, tmp_path)

        assert result.changed
        assert result.state is RebuildState.REMOTE_NO_COMMIT
        assert builds.remote_calls == [project.url]
        # the local record is created on first success
        assert state.local_config.projects[project.id].last_build_commit == "c1"

    def test_same_commit_skips(self, builds: FakeBuilds, tmp_path: Path) -> None:
        state = _state(LocalProjectState(last_build_commit="c1"))

        result = rebuild_project(state, state.global_config.projects[0], tmp_path)

        assert not result.changed
        assert builds.remote_calls == []

    def test_same_commit_with_force_builds(self, builds: FakeBuilds, tmp_path: Path) -> None:
        state = _state(LocalProjectState(last_build_commit="c1"))

        result = rebuild_project(state, state.global_config.projects[0], tmp_path, force=True)

        assert result.changed
        assert len(builds.remote_calls) == 1

    def test_moved_commit_builds_and_updates(self, builds: FakeBuilds, tmp_path: Path) -> None:
        builds.remote_head = "c2"
        state = _state(LocalProjectState(last_build_commit="c1"))
        project = state.global_config.projects[0]

        result = rebuild_project(state, project, tmp_path)

        assert result.changed
        assert state.local_config.projects[project.id].last_build_commit == "c2"

    def test_fetch_failure_never_builds(self, builds: FakeBuilds, tmp_path: Path) -> None:
        builds.head_error = VCSError("network down")
        state = _state(LocalProjectState())

        with pytest.raises(VCSError, match="app"):
            rebuild_project(state, state.global_config.projects[0], tmp_path)

        assert builds.remote_calls == []

    def test_failed_build_keeps_commit(self, builds: FakeBuilds, tmp_path: Path) -> None:
        builds.remote_head = "c2"
        builds.fail = EngineError("exit 1", returncode=1)
        state = _state(LocalProjectState(last_build_commit="c1"))
        project = state.global_config.projects[0]

        with pytest.raises(BuildError):
            rebuild_project(state, project, tmp_path)

        assert state.local_config.projects[project.id].last_build_commit == "c1"

    def test_settings_are_passed_through(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        seen = []
        monkeypatch.setattr(decision.git_ops, "remote_head_commit", lambda url: "c1")
        monkeypatch.setattr(
            decision.executor,
            "build_remote",
            lambda root, site, url, settings=None: seen.append(settings),
        )
        settings = Settings(engine="podman")
        state = _state(None)

        rebuild_project(state, state.global_config.projects[0], tmp_path, settings=settings)

        assert seen == [settings]
