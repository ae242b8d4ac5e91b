from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
import logging
import os

import pytest

import logging_setup
from utils import ensure_aware_utc, format_duration, normalize_entity_id


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Zezima", "zezima"),
        ("  Iron_Man  ", "iron man"),
        ("iron-man__btw", "iron man btw"),
        ("A  B\tC", "a b c"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_entity_id(raw, expected):
    assert normalize_entity_id(raw) == expected


def test_ensure_aware_utc():
    naive = datetime(2026, 3, 7, 12, 0)
    assert ensure_aware_utc(naive) == datetime(2026, 3, 7, 12, 0, tzinfo=UTC)
    plus2 = datetime(2026, 3, 7, 14, 0, tzinfo=timezone(timedelta(hours=2)))
    assert ensure_aware_utc(plus2).hour == 12


def test_format_duration():
    assert format_duration(0) == "no time at all"
    assert format_duration(1) == "1 second"
    assert format_duration(timedelta(minutes=5)) == "5 minutes"
    assert format_duration(timedelta(hours=3)) == "3 hours"
    assert format_duration(timedelta(days=4)) == "4 days"


def test_configure_logging_writes_level_split_files(tmp_path):
    root = logging.getLogger()
    saved = list(root.handlers)
    try:
        logging_setup.configure_logging(log_dir=str(tmp_path))
        logging.getLogger("tracker.test").info("[TEST] info line")
        logging.getLogger("tracker.test").error("[TEST] error line")
        logging_setup.shutdown_logging()
        logging_setup.shutdown_logging()

        full = (tmp_path / "tracker.log").read_text(encoding="utf-8")
        errors = (tmp_path / "tracker_errors.log").read_text(encoding="utf-8")
        assert "info line" in full and "error line" in full
        assert "info line" not in errors and "error line" in errors
        assert os.path.exists(tmp_path / "tracker_warnings.log")
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
        for h in saved:
            root.addHandler(h)


def test_console_echo_is_opt_in(tmp_path, monkeypatch):
    root = logging.getLogger()
    saved = list(root.handlers)
    try:
        monkeypatch.delenv("LOG_TO_CONSOLE", raising=False)
        logging_setup.configure_logging(log_dir=str(tmp_path))
        assert not any(type(h) is logging.StreamHandler for h in root.handlers)

        monkeypatch.setenv("LOG_TO_CONSOLE", "1")
        logging_setup.configure_logging(log_dir=str(tmp_path))
        assert sum(type(h) is logging.StreamHandler for h in root.handlers) == 1
        logging_setup.shutdown_logging()
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
        for h in saved:
            root.addHandler(h)
