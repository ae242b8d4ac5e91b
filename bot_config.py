# bot_config.py (hardened)
from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)

from dotenv import load_dotenv

load_dotenv()

# ---- REQUIRED ENV TRACKER (must exist before any use) ----
_required: set[str] = set()


def _mark_required(name: str) -> None:
    """Record missing required env var without crashing at import time."""
    _required.add(name)


def _fail_if_required() -> None:
    """Call at startup to fail fast if any required envs are missing."""
    if _required:
        raise RuntimeError(f"[CONFIG] Missing required env(s): {', '.join(sorted(_required))}")


def _get_env(name: str, default: str | None = None, *, required: bool = False) -> str | None:
    """Fetch env var; if required and missing/blank, mark for later failure."""
    val = os.getenv(name, default)
    if required and (val is None or str(val).strip() == ""):
        _mark_required(name)
    return val


def _env_int(name: str, default: int = 0) -> int:
    val = os.getenv(name)
    if val is None or val == "":
        return int(default)
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"[CONFIG] {name} must be an integer (got: {val!r})")


# === Core Bot Configuration ===

# Stat gains are posted here
TRACKING_CHANNEL_ID = _env_int("TRACKING_CHANNEL_ID")
# API-disabled and rollback notices; falls back to the tracking channel
NOTICE_CHANNEL_ID = _env_int("NOTICE_CHANNEL_ID") or TRACKING_CHANNEL_ID

# Required secret (record missing, don't crash here)
DISCORD_BOT_TOKEN = _get_env("DISCORD_BOT_TOKEN", required=True)

# Optional sanity warning (safe: does not print token)
if not TRACKING_CHANNEL_ID:
    logger.warning("[CONFIG] TRACKING_CHANNEL_ID is missing or zero. Check your .env.")

__all__ = [
    "DISCORD_BOT_TOKEN",
    "NOTICE_CHANNEL_ID",
    "TRACKING_CHANNEL_ID",
    "_fail_if_required",  # expose so startup can call it
]
