"""
User configuration file support.

Reads/writes ``~/.speedprobe/config.json``.  Command-line flags override
anything set here.

Supported keys::

    duration = 25             # hard cap per probe in seconds
    chunk_size = 2048         # bytes per read
    connect_timeout = 10.0
    read_timeout = 30.0       # per-socket-read timeout
    user_agent = "..."
    alert_below = 0.0         # alert threshold in MB/s
    csv_file = ""             # auto-append CSV path
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict

from .constants import CHUNK_SIZE, CONNECT_TIMEOUT, DEFAULT_DURATION, READ_TIMEOUT, USER_AGENT

_CONFIG_DIR = os.path.join(Path.home(), ".speedprobe")
_CONFIG_FILE = "config.json"


def _config_path() -> str:
    return os.path.join(_CONFIG_DIR, _CONFIG_FILE)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULTS: Dict[str, Any] = {
    "duration": DEFAULT_DURATION,
    "chunk_size": CHUNK_SIZE,
    "connect_timeout": CONNECT_TIMEOUT,
    "read_timeout": READ_TIMEOUT,
    "user_agent": USER_AGENT,
    "alert_below": 0.0,
    "csv_file": "",
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


