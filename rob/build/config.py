"""
Build constants and naming for container builds.
"""

from __future__ import annotations

import os
import platform
import random
import sys
import time

# =============================================================================
# Constants
# =============================================================================

REACT_BUILD_IMAGE = "rob-react-build:latest"
ROOT_BUILD_IMAGE = "rob-root-build:latest"

# Where the React build writes its output inside the container
CONTAINER_OUTPUT_DIR = "/app/build"

CONTAINER_NAME_PREFIX = "rob"
CONTAINER_NAME_DIGITS = 9
CONTAINER_NAME_SUFFIX = "b"

# Tag pulled by `rob upgrade`
UPDATE_TAG = "linux-latest"

_GOOS = {"linux": "linux", "darwin": "darwin", "win32": "windows"}
_GOARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "armv7l": "arm",
}


def generate_container_name() -> str:
    """Unique-enough container name, e.g. ``rob483920174b``."""
    rng = random.Random(time.time_ns() ^ os.getpid())
    digits = "".join(str(rng.randrange(10)) for _ in range(CONTAINER_NAME_DIGITS))
    return f"{CONTAINER_NAME_PREFIX}{digits}{CONTAINER_NAME_SUFFIX}"


def target_platform() -> tuple[str, str]:
    """(GOOS, GOARCH) of the host, for cross-compiling the site server."""
    goos = _GOOS.get(sys.platform, sys.platform)
    machine = platform.machine().lower()
    return goos, _GOARCH.get(machine, machine)
