"""
Supervision of external build processes.

While a build process or container runs, termination signals are routed to
a single-slot queue instead of interrupting rob. A watcher thread takes one
item from that queue: either a signal, in which case it runs the kill action
once, or the ``DONE`` sentinel posted when the operation finished normally.
Whichever reaches the slot first decides; the other is dropped.

Typical use::

    with Supervisor(kill_process_tree) as sup:
        proc = subprocess.Popen(cmd, **new_session_kwargs())
        sup.attach(proc)
        proc.wait()
    if sup.interrupted:
        raise KeyboardInterrupt
"""

from __future__ import annotations

import contextlib
import logging
import os
import queue
import signal
import subprocess
import sys
import threading
from typing import Any, Callable, Optional

_log = logging.getLogger(__name__)

TERMINATION_SIGNALS = tuple(
    getattr(signal, name)
    for name in ("SIGHUP", "SIGINT", "SIGTERM", "SIGQUIT")
    if hasattr(signal, name)
)

DONE = object()


class Supervisor:
    """Races termination signals against completion of one operation."""

    def __init__(
        self,
        kill: Callable[[Any], None],
        target: Any = None,
        signals: tuple = TERMINATION_SIGNALS,
    ):
        self._kill = kill
        self._target = target
        self._signals = signals
        self._slot: queue.Queue = queue.Queue(maxsize=1)
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._previous: dict = {}
        self._killed = False
        self.interrupted = False
        self.received: Optional[int] = None

    # -- lifecycle -----------------------------------------------------------

    def start(self) -> "Supervisor":
        if threading.current_thread() is threading.main_thread():
            for signum in self._signals:
                self._previous[signum] = signal.signal(signum, self.notify)
        else:
            _log.debug("Not on the main thread, signal handlers not installed")

        self._thread = threading.Thread(target=self._watch, name="rob-supervisor", daemon=True)
        self._thread.start()
        return self

    def done(self) -> None:
        """Mark the operation finished and wait for the watcher to exit.

        Handlers must be restored before the sentinel is posted: the handler
        runs on this thread and must never touch the queue while ``put``
        holds its lock.
        """
        self._restore_handlers()
        try:
            self._slot.put_nowait(DONE)
        except queue.Full:
            # A signal already claimed the slot; the watcher will act on it.
            pass
        if self._thread is not None:
            self._thread.join()

    def __enter__(self) -> "Supervisor":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.done()

    # -- signal side ---------------------------------------------------------

    def notify(self, signum: int, frame=None) -> None:
        """Signal handler: claim the slot if it is still free."""
        try:
            self._slot.put_nowait(signum)
        except queue.Full:
            pass

    def attach(self, target: Any) -> None:
        """Set the kill target once the process exists.

        If a signal was consumed before the target was known, kill it now.
        """
        with self._lock:
            self._target = target
            fire = self.interrupted
        if fire:
            self._fire()

    # -- internals -----------------------------------------------------------

    def _watch(self) -> None:
        item = self._slot.get()
        if item is DONE:
            return
        with self._lock:
            self.interrupted = True
            self.received = item
        self._fire()

    def _fire(self) -> None:
        with self._lock:
            target = self._target
            if target is None or self._killed:
                return
            self._killed = True
        _log.debug("Signal %s received, killing %r", self.received, target)
        try:
            self._kill(target)
        except (OSError, subprocess.SubprocessError) as e:
            _log.warning("Kill action for %r failed: %s", target, e)

    def _restore_handlers(self) -> None:
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()


# =============================================================================
# Kill Actions
# =============================================================================


def new_session_kwargs() -> dict:
    """Popen arguments that put the child in its own process group."""
    if sys.platform == "win32":
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


def kill_process_tree(proc: subprocess.Popen) -> None:
    """Forcefully kill a process and everything it spawned."""
    if proc.poll() is not None:
        return

    if sys.platform == "win32":
        subprocess.run(
            ["taskkill", "/T", "/F", "/PID", str(proc.pid)],
            capture_output=True,
        )
        return

    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
