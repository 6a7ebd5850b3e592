"""Helpers for loading the optional configuration file.

The file lives at ``~/.deltainstaller/config.json`` unless the
``DELTAINSTALLER_CONFIG`` environment variable points elsewhere.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

CONFIG_ENV_VAR = "DELTAINSTALLER_CONFIG"
CONFIG_DIR = Path.home() / ".deltainstaller"
CONFIG_FILE = CONFIG_DIR / "config.json"


def get_config_path() -> Path:
    """Return the configuration file path currently in effect."""

    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return CONFIG_FILE


@lru_cache(maxsize=1)
def load_config() -> dict[str, Any]:
    """Load configuration data from disk (cached)."""

    config_path = get_config_path()
    if not config_path.exists():
        return {}

    try:
        raw = config_path.read_text()
    except OSError:
        return {}

    try:
        data = json.loads(raw)
    except ValueError:
        return {}

    if isinstance(data, dict):
        return data

    return {}


def get_config_value(key: str, default: Any | None = None) -> Any | None:
    """Fetch a configuration value by key."""

    return load_config().get(key, default)


def reload_config() -> None:
    """Force the cached configuration to be reloaded on next access."""

    load_config.cache_clear()
