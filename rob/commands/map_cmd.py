"""
The map command: print a weighted directory tree.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from rob.core.utils import log
from rob.scan.dirmap import build_dir_map, render_dir_map


def cmd_map(args: argparse.Namespace) -> int:
    path = Path(args.path).expanduser()
    if not path.is_dir():
        log.error(f"{path} is not a directory")
        return 1

    tree = build_dir_map(path.resolve())
    log.raw(render_dir_map(tree, args.spaces).rstrip("\n"))
    return 0
