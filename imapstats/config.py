"""Application configuration — paths, defaults, settings file."""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path

APP_NAME = "imapstats"
APP_VERSION = "0.4.0"

logger = logging.getLogger(__name__)

# ── Directories ───────────────────────────────────────────────────────────────

_XDG_DATA = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))
_XDG_CONFIG = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))

DATA_DIR: Path = _XDG_DATA / "imapstats"
CONFIG_DIR: Path = _XDG_CONFIG / "imapstats"
LOG_PATH: Path = DATA_DIR / "imapstats.log"
SETTINGS_PATH: Path = CONFIG_DIR / "settings.json"

# ── Environment ───────────────────────────────────────────────────────────────

ENV_SERVER = "IMAP_SERVER"
ENV_USER = "IMAP_USER"
ENV_PASSWORD = "IMAP_PASS"

# ── Connection ────────────────────────────────────────────────────────────────

DEFAULT_PORT: int = 993
CONNECT_TIMEOUT_SECONDS: int = 30

# ── Stats ─────────────────────────────────────────────────────────────────────

FETCH_BATCH_SIZE: int = 1000          # UIDs per FETCH RFC822.SIZE round-trip
CASE_INSENSITIVE: bool = False        # treat all folder names case-insensitively
DEFAULT_SORT: str | None = None       # e.g. "total_size"
DEFAULT_LIMIT: int | None = None


def ensure_dirs() -> None:
    for _d in (DATA_DIR, CONFIG_DIR):
        _d.mkdir(parents=True, exist_ok=True)


# ── Persistence ───────────────────────────────────────────────────────────────

def load_settings(path: Path | None = None) -> None:
    """Load persisted settings from disk, falling back to defaults."""
    global FETCH_BATCH_SIZE, CASE_INSENSITIVE, DEFAULT_SORT, DEFAULT_LIMIT
    global CONNECT_TIMEOUT_SECONDS
    path = path or SETTINGS_PATH
    if not path.exists():
        return
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        FETCH_BATCH_SIZE = max(1, int(data.get("fetch_batch_size", FETCH_BATCH_SIZE)))
        CASE_INSENSITIVE = bool(data.get("case_insensitive", CASE_INSENSITIVE))
        CONNECT_TIMEOUT_SECONDS = int(data.get("connect_timeout_seconds", CONNECT_TIMEOUT_SECONDS))
        DEFAULT_SORT = data.get("default_sort", DEFAULT_SORT) or None
        limit = data.get("default_limit", DEFAULT_LIMIT)
        DEFAULT_LIMIT = int(limit) if limit else None
    except Exception as exc:
        logger.warning("Could not load settings: %s", exc)


# Load on import so settings are available immediately
load_settings()
