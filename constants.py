# constants.py (hardened)
from datetime import timedelta
import os

from dotenv import load_dotenv

load_dotenv()


# ---------- helpers ----------
def _env_str(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    return v.strip()


def _env_int(name: str, default: int | None = None) -> int:
    v = _env_str(name)
    if v is None:
        if default is None:
            raise RuntimeError(f"[CONFIG] Required integer env var missing: {name}")
        return int(default)
    try:
        return int(v)
    except ValueError:
        raise RuntimeError(f"[CONFIG] {name} must be an integer (got {v!r})")


def _env_float(name: str, default: float) -> float:
    v = _env_str(name)
    if v is None:
        return float(default)
    try:
        return float(v)
    except ValueError:
        raise RuntimeError(f"[CONFIG] {name} must be a number (got {v!r})")


def _env_bool(name: str, default: bool = True) -> bool:
    v = _env_str(name)
    if v is None:
        return default
    return v.lower() in ("1", "true", "yes", "on", "y")


# ---------- base paths ----------
BASE_DIR = os.path.dirname(__file__)
LOG_DIR = _env_str("TRACKER_LOG_DIR", os.path.join(BASE_DIR, "logs"))

os.makedirs(LOG_DIR, exist_ok=True)

# ---------- refresh scheduling ----------
# One entity is polled per tick.
REFRESH_INTERVAL_SECONDS = _env_float("REFRESH_INTERVAL_SECONDS", 15.0)

# Entities with no positive activity inside this window drop to the inactive tier.
INACTIVITY_THRESHOLD_DAYS = _env_int("INACTIVITY_THRESHOLD_DAYS", 7)
INACTIVITY_THRESHOLD = timedelta(days=INACTIVITY_THRESHOLD_DAYS)

# Upper bound of the active/inactive draw cycle (N = min(MAX_ACTIVE_DRAWS, 1 + |active|)).
MAX_ACTIVE_DRAWS = _env_int("MAX_ACTIVE_DRAWS", 10)

# ---------- anomaly / rollback ----------
ROLLBACK_STRIKE_THRESHOLD = _env_int("ROLLBACK_STRIKE_THRESHOLD", 20)
AUTO_ROLLBACK_ENABLED = _env_bool("AUTO_ROLLBACK_ENABLED", True)

# ---------- upstream hiscores ----------
HISCORES_URL_TEMPLATE = _env_str(
    "HISCORES_URL_TEMPLATE",
    "https://secure.runescape.com/m=hiscore_oldschool/index_lite.json?player={player}",
)
HISCORES_TIMEOUT_SECONDS = _env_float("HISCORES_TIMEOUT_SECONDS", 10.0)
HISCORES_USER_AGENT = _env_str("HISCORES_USER_AGENT", "hiscores-tracker/0.1")

# ---------- SQL (required at runtime if DB is used) ----------
SQL_SERVER = _env_str("SQL_SERVER")
SQL_DATABASE = _env_str("SQL_DATABASE")
SQL_USERNAME = _env_str("SQL_USERNAME")
SQL_PASSWORD = _env_str("SQL_PASSWORD")
ODBC_DRIVER = _env_str("ODBC_DRIVER", "ODBC Driver 17 for SQL Server")


# lazy import + validated connection string
def _conn():
    import pyodbc  # lazy to avoid hard dependency for modules that don't need DB

    conn_str = (
        f"DRIVER={{{ODBC_DRIVER}}};"
        f"SERVER={SQL_SERVER};DATABASE={SQL_DATABASE};"
        f"UID={SQL_USERNAME};PWD={SQL_PASSWORD}"
    )
    return pyodbc.connect(conn_str, autocommit=False, timeout=5)


# ---------- DB connect retry ----------
DB_CONN_RETRIES = _env_int("DB_CONN_RETRIES", 5)
DB_BACKOFF_BASE = _env_float("DB_BACKOFF_BASE", 1.0)  # seconds
DB_BACKOFF_MAX = _env_float("DB_BACKOFF_MAX", 30.0)  # seconds (cap)
