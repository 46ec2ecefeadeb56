"""
User configuration file support.

Reads/writes ``~/.neurospeed/config.json``.  The Gemini API key is read
from the environment (``GEMINI_API_KEY``) and is never stored here.

Supported keys::

    connections = 2           # concurrent download loops
    download_duration = 8.0   # seconds
    upload_duration = 5.0     # seconds
    ping_timeout = 2.0        # seconds
    analysis = true           # ask Gemini for an assessment
    gemini_model = "gemini-2.5-flash"
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict

from .constants import (
    DEFAULT_CONNECTIONS,
    DEFAULT_DOWNLOAD_DURATION,
    DEFAULT_GEMINI_MODEL,
    DEFAULT_UPLOAD_DURATION,
    PING_TIMEOUT,
)

_CONFIG_DIR = os.path.join(Path.home(), ".neurospeed")
_CONFIG_FILE = "config.json"


def _config_path() -> str:
    return os.path.join(_CONFIG_DIR, _CONFIG_FILE)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULTS: Dict[str, Any] = {
    "connections": DEFAULT_CONNECTIONS,
    "download_duration": DEFAULT_DOWNLOAD_DURATION,
    "upload_duration": DEFAULT_UPLOAD_DURATION,
    "ping_timeout": PING_TIMEOUT,
    "analysis": True,
    "gemini_model": DEFAULT_GEMINI_MODEL,
}


# ---------------------------------------------------------------------------
# Read / Write
# ---------------------------------------------------------------------------

def load_config() -> Dict[str, Any]:
    """Load config from disk, returning defaults for missing keys."""
    path = _config_path()
    config = dict(DEFAULTS)

    if not os.path.isfile(path):
        return config

    try:
        with open(path, encoding="utf-8") as fh:
            user = json.load(fh)
        if isinstance(user, dict):
            config.update(user)
    except (json.JSONDecodeError, IOError):
        pass  # corrupt file; use defaults

    return config


def save_config(config: Dict[str, Any]) -> str:
    """Write *config* to disk.  Returns the file path."""
    path = _config_path()
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "w", encoding="utf-8") as fh:
        json.dump(config, fh, indent=2, ensure_ascii=False)

    return path


def get_config_value(key: str) -> Any:
    """Get a single config value."""
    return load_config().get(key, DEFAULTS.get(key))


def set_config_value(key: str, value: Any) -> str:
    """Set a single config value and persist.  Returns file path."""
    config = load_config()
    config[key] = value
    return save_config(config)


def config_path() -> str:
    """Return the config file path (for display purposes)."""
    return _config_path()
