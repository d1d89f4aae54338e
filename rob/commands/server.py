"""
Site server and installer commands: run, kill, push, upgrade.
"""

from __future__ import annotations

import argparse
import os
import shutil
import signal
import subprocess
import sys
from pathlib import Path

from rob.build import executor
from rob.build.supervisor import Supervisor, kill_process_tree, new_session_kwargs
from rob.commands import load_context, project_root
from rob.commands.build_cmd import build_root_server
from rob.core.errors import RobError
from rob.core.settings import load_settings
from rob.core.state import save_state
from rob.core.utils import executable_name, log, run_cmd


# =============================================================================
# run
# =============================================================================


def run_server(executable: Path) -> int:
    """Run the site server in the foreground and return its exit code."""
    if not executable.is_file():
        raise RobError(f"server executable {executable} not found, run 'rob build --root-server'")

    with Supervisor(kill_process_tree) as supervisor:
        proc = subprocess.Popen([str(executable)], cwd=executable.parent, **new_session_kwargs())
        supervisor.attach(proc)
        returncode = proc.wait()

    if supervisor.interrupted:
        raise KeyboardInterrupt
    return returncode


def cmd_run(args: argparse.Namespace) -> int:
    """Run the server, restarting it while it exits cleanly or asks for an update."""
    root = project_root(args)
    settings = load_settings(root)
    executable = executor.server_executable(root, settings)

    restarts = 0
    while True:
        if restarts:
            log.info(f"Restarting server (restart #{restarts})")
        returncode = run_server(executable)

        if returncode == settings.update_exit_code:
            log.info("Server requested an update")
            root, state, settings = load_context(args)
            if build_root_server(root, state, settings, force=False):
                save_state(root, state)
        elif returncode != 0:
            log.error(f"Server exited with status {returncode}")
            return returncode

        restarts += 1


# =============================================================================
# kill
# =============================================================================


def _pids_matching(pattern: str) -> list[int]:
    result = run_cmd(["pgrep", "-f", pattern], capture=True, check=False)
    return [int(line) for line in result.stdout.split() if line.isdigit()]


def kill_server(name: str) -> None:
    if sys.platform == "win32":
        run_cmd(["taskkill", "/F", "/T", "/IM", executable_name(name)], capture=True, check=False)
        return
    run_cmd(["pkill", "-9", "-x", name], capture=True, check=False)


def kill_other_instances() -> int:
    """Kill every other running rob. Returns the number of processes signalled."""
    me = os.getpid()
    if sys.platform == "win32":
        run_cmd(
            ["taskkill", "/F", "/T", "/IM", "rob.exe", "/FI", f"PID ne {me}"],
            capture=True,
            check=False,
        )
        return 0

    killed = 0
    for pid in _pids_matching(r"(^|/)rob( |$)"):
        if pid == me:
            continue
        try:
            os.kill(pid, signal.SIGKILL)
            killed += 1
        except ProcessLookupError:
            pass
    return killed


def cmd_kill(args: argparse.Namespace) -> int:
    settings = load_settings(project_root(args))

    # with no flags, kill the server
    if args.server or not args.rob:
        kill_server(settings.server_name)
        log.success(f"Killed running {settings.server_name} processes")
    if args.rob:
        count = kill_other_instances()
        log.success(f"Killed other rob instances ({count} found)")
    return 0


# =============================================================================
# push / upgrade
# =============================================================================


def cmd_push(args: argparse.Namespace) -> int:
    settings = load_settings(project_root(args))
    image = executor.push_installer(args.tag, args.local, Path.cwd(), settings)
    log.success(f"Pushed {image}")
    return 0


def cmd_upgrade(args: argparse.Namespace) -> int:
    if not sys.platform.startswith("linux"):
        log.error("Self-update is only supported on Linux")
        return 1

    launcher = shutil.which("rob") or sys.argv[0]
    target = Path(launcher).resolve()
    if target.suffix == ".py":
        log.error("rob is running as a module, install it to upgrade")
        return 1

    settings = load_settings(project_root(args))
    executor.update_self(target, settings)
    log.success(f"Updated {target}")
    return 0
