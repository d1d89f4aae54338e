"""
Bounded fan-out directory walker.

A single consumer loop hands directories to a pool of at most N workers and
collects their results from a queue with room for N entries. Each directory
is visited exactly once; only the consumer touches the accumulator, so the
``fold`` callback never needs locking.
"""

from __future__ import annotations

import logging
import os
import queue
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Optional, TypeVar

from rob.core.utils import resolve_concurrency

_log = logging.getLogger(__name__)

R = TypeVar("R")
A = TypeVar("A")


def list_children(directory: Path) -> tuple[list[Path], list[Path]]:
    """Split a directory's immediate children into (dirs, files).

    Symlinked directories are reported as files so cycles are never walked.
    """
    dirs: list[Path] = []
    files: list[Path] = []
    with os.scandir(directory) as entries:
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                dirs.append(Path(entry.path))
            else:
                files.append(Path(entry.path))
    return dirs, files


def walk_tree(
    root: Path,
    visit: Callable[[Path], tuple[list[Path], R]],
    fold: Callable[[A, R], A],
    initial: A,
    concurrency: int = 0,
) -> A:
    """Visit every directory under ``root`` and fold the results.

    ``concurrency`` caps the number of directories being visited at once;
    0 or less means one per CPU. An ``OSError`` raised while visiting a
    directory makes that directory contribute nothing. Any other exception
    stops scheduling, waits for running visits and is re-raised.
    """
    limit = resolve_concurrency(concurrency)
    results: queue.Queue = queue.Queue(maxsize=limit)
    pending: deque[Path] = deque([Path(root)])
    in_flight = 0
    accumulator = initial
    failure: Optional[BaseException] = None

    def task(directory: Path) -> None:
        try:
            subdirs, result = visit(directory)
        except OSError as e:
            _log.debug("Skipping unreadable directory %s: %s", directory, e)
            results.put((directory, [], None, False, None))
        except Exception as e:
            results.put((directory, [], None, False, e))
        else:
            results.put((directory, subdirs, result, True, None))

    with ThreadPoolExecutor(max_workers=limit, thread_name_prefix="rob-walk") as pool:
        while pending or in_flight:
            if pending and in_flight < limit and failure is None:
                pool.submit(task, pending.popleft())
                in_flight += 1
                continue

            if not in_flight:
                # failure recorded and nothing left running
                break

            directory, subdirs, result, ok, error = results.get()
            in_flight -= 1

            if error is not None:
                if failure is None:
                    failure = error
                continue
            if failure is not None or not ok:
                continue

            pending.extend(subdirs)
            accumulator = fold(accumulator, result)

    if failure is not None:
        raise failure
    return accumulator
