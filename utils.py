# utils.py
from datetime import UTC, datetime, timedelta
import logging
import re

logger = logging.getLogger(__name__)

_ENTITY_SEPARATORS = re.compile(r"[\s_\-]+")


def utcnow():
    """Returns timezone-aware UTC now timestamp."""
    return datetime.now(UTC)


def ensure_aware_utc(dt: datetime) -> datetime:
    """
    Ensure the given datetime is timezone-aware in UTC.
    - If dt is naive, attaches UTC tzinfo (assumes naive values are UTC).
    - If dt is aware, converts it to UTC.
    """
    if dt is None:
        raise ValueError("dt must be a datetime instance, not None")
    if getattr(dt, "tzinfo", None) is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def normalize_entity_id(value) -> str:
    """
    Canonical entity id: trimmed, lower-cased, separators collapsed to one space.
    '  Zezima_ ' -> 'zezima', 'Iron-Man  BTW' -> 'iron man btw'
    """
    s = str(value if value is not None else "").strip().lower()
    return _ENTITY_SEPARATORS.sub(" ", s).strip()


def format_duration(delta: timedelta | float) -> str:
    """Coarse human duration, e.g. '45 seconds', '3 hours', '2 days'."""
    seconds = int(delta.total_seconds() if isinstance(delta, timedelta) else delta)
    if seconds <= 0:
        return "no time at all"
    if seconds < 60:
        return "1 second" if seconds == 1 else f"{seconds} seconds"
    minutes = seconds // 60
    if minutes < 60:
        return "1 minute" if minutes == 1 else f"{minutes} minutes"
    hours = minutes // 60
    if hours < 48:
        return "1 hour" if hours == 1 else f"{hours} hours"
    return f"{hours // 24} days"
