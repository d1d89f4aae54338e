"""
Tool settings loaded from ``rob.yaml`` in the project root.

Every key is optional::

    engine: docker
    scan_concurrency: 0        # 0 = one worker per CPU
    fingerprint_attempts: 1
    server_name: robserver
    installer_image: robbuilder/rob
    installer_source_url: https://github.com/you/rob
    update_exit_code: 9
    watch_debounce: 1.0
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from rob.core.errors import SettingsError
from rob.core.utils import SETTINGS_NAME, log


@dataclass
class Settings:
    engine: str = "docker"
    scan_concurrency: int = 0
    fingerprint_attempts: int = 1
    server_name: str = "robserver"
    installer_image: str = "robbuilder/rob"
    installer_source_url: str = ""
    update_exit_code: int = 9
    watch_debounce: float = 1.0


def _coerce(name: str, expected: type, value: Any) -> Any:
    if expected is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, bool) or not isinstance(value, expected):
        raise SettingsError(
            f"{SETTINGS_NAME}: '{name}' must be {expected.__name__}, got {type(value).__name__}"
        )
    return value


_TYPES = {"str": str, "int": int, "float": float}


def load_settings(root: Path) -> Settings:
    """Load settings, falling back to defaults when the file is absent."""
    path = root / SETTINGS_NAME
    if not path.is_file():
        return Settings()

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise SettingsError(f"could not parse {path}: {e}") from e

    if not isinstance(data, dict):
        raise SettingsError(f"{path} must contain a mapping")

    known = {f.name: _TYPES[f.type] for f in fields(Settings)}
    values = {}
    for key, value in data.items():
        if key not in known:
            log.warning(f"{SETTINGS_NAME}: ignoring unknown setting '{key}'")
            continue
        values[key] = _coerce(key, known[key], value)

    settings = Settings(**values)
    if settings.fingerprint_attempts < 1:
        raise SettingsError(f"{SETTINGS_NAME}: 'fingerprint_attempts' must be at least 1")
    return settings
