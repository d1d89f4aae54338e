"""
GitHub lookups through the ``gh`` CLI.
"""

from __future__ import annotations

import json
import subprocess

from rob.core.errors import RobError


def fetch_description(url: str) -> str:
    """Repository description from GitHub; empty if none is set."""
    try:
        result = subprocess.run(
            ["gh", "repo", "view", url, "--json", "description"],
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError as e:
        raise RobError("the gh CLI is required to fetch descriptions") from e
    except subprocess.CalledProcessError as e:
        raise RobError(f"gh could not read {url}: {e.stderr.strip()}") from e

    return (json.loads(result.stdout).get("description") or "").strip()
