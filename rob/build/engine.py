"""
Container engine invocation.

Every call runs the engine binary (``docker`` unless configured otherwise)
under its own Supervisor. Only exit codes are inspected.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import IO, Callable, Optional

from rob.build.supervisor import Supervisor, kill_process_tree, new_session_kwargs
from rob.core.errors import EngineError

_log = logging.getLogger(__name__)

DEFAULT_ENGINE = "docker"


def _kill_action(container: Optional[str], engine: str) -> Callable[[subprocess.Popen], None]:
    if container is None:
        return kill_process_tree

    def kill(proc: subprocess.Popen) -> None:
        # The container may not exist yet if the engine is still starting it.
        try:
            stop_container(container, engine)
        finally:
            kill_process_tree(proc)

    return kill


def _run(
    args: list[str],
    engine: str = DEFAULT_ENGINE,
    stdin_data: Optional[bytes] = None,
    stdout: Optional[IO[bytes]] = None,
    container: Optional[str] = None,
) -> None:
    """Run one engine command to completion.

    An interrupt kills the engine process tree, stopping ``container`` first
    when one is named. Raises KeyboardInterrupt after an interrupt and
    EngineError on a non-zero exit.
    """
    cmd = [engine, *args]
    _log.debug("Running: %s", " ".join(cmd))

    supervisor = Supervisor(_kill_action(container, engine))

    proc = None
    with supervisor:
        if not supervisor.interrupted:
            try:
                proc = subprocess.Popen(
                    cmd,
                    stdin=subprocess.PIPE if stdin_data is not None else None,
                    stdout=stdout,
                    **new_session_kwargs(),
                )
            except FileNotFoundError as e:
                raise EngineError(f"container engine '{engine}' not found on PATH") from e
            supervisor.attach(proc)
            proc.communicate(stdin_data)

    if supervisor.interrupted:
        raise KeyboardInterrupt
    if proc.returncode != 0:
        raise EngineError(
            f"'{' '.join(cmd)}' exited with status {proc.returncode}",
            returncode=proc.returncode,
        )


# =============================================================================
# Engine Operations
# =============================================================================


def build_image(
    tag: str,
    recipe: bytes,
    context: Path,
    build_args: Optional[dict[str, str]] = None,
    no_cache: bool = False,
    engine: str = DEFAULT_ENGINE,
) -> None:
    """Build an image from a recipe fed on stdin."""
    args = ["build"]
    if no_cache:
        args.append("--no-cache")
    args += ["-t", tag]
    for key, value in (build_args or {}).items():
        args += ["--build-arg", f"{key}={value}"]
    args += ["-f", "-", str(context)]
    _run(args, engine=engine, stdin_data=recipe)


def run_container(
    image: str,
    name: str,
    volumes: Optional[dict[Path, str]] = None,
    stdout: Optional[IO[bytes]] = None,
    engine: str = DEFAULT_ENGINE,
) -> None:
    """Run a throwaway container named ``name``."""
    args = ["run", "--rm"]
    for host, mount in (volumes or {}).items():
        args += ["-v", f"{host}:{mount}"]
    args += ["--name", name, image]
    _run(args, engine=engine, stdout=stdout, container=name)


def stop_container(name: str, engine: str = DEFAULT_ENGINE) -> bool:
    """Stop a running container. Returns False if the engine refused."""
    result = subprocess.run(
        [engine, "stop", name],
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        _log.warning("Could not stop container %s: %s", name, result.stderr.strip())
        return False
    return True


def push_image(tag: str, engine: str = DEFAULT_ENGINE) -> None:
    _run(["push", tag], engine=engine)


def pull_image(tag: str, engine: str = DEFAULT_ENGINE) -> None:
    _run(["pull", tag], engine=engine)
