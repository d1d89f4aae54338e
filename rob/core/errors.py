"""
Exception types raised by rob.

Commands catch ``RobError`` subclasses and report them; anything else
propagates to the CLI dispatcher.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class RobError(Exception):
    """Base class for all rob errors."""


class ConfigNotFoundError(RobError):
    """One or both config files are missing from the project root."""

    def __init__(self, root: Path, global_missing: bool, local_missing: bool = False):
        self.root = root
        self.global_missing = global_missing
        self.local_missing = local_missing
        missing = []
        if global_missing:
            missing.append("global")
        if local_missing:
            missing.append("local")
        super().__init__(
            f"{' and '.join(missing)} config not found in {root} (run 'rob init')"
        )


class SettingsError(RobError):
    """rob.yaml exists but could not be parsed into settings."""


class ProjectNotFoundError(RobError):
    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"project '{identifier}' not found")


class ProjectExistsError(RobError):
    def __init__(self, url: str):
        self.url = url
        super().__init__(f"a project with URL '{url}' already exists")


class VCSError(RobError):
    """A git invocation failed."""


class EngineError(RobError):
    """A container engine invocation failed."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        self.returncode = returncode
        super().__init__(message)


class BuildError(RobError):
    """Building a project failed; wraps the underlying cause."""

    def __init__(self, project: str, phase: str, cause: Exception):
        self.project = project
        self.phase = phase
        self.cause = cause
        super().__init__(f"problem building project '{project}' ({phase}): {cause}")
