# tracker/db.py
"""
Central DB wrapper helpers.

Purpose:
- Connect through constants._conn() with exponential backoff and full jitter on
  transient pyodbc.OperationalError failures.
- Provide sync helpers (run_query, run_one, run_scalar, execute, execute_many)
  returning plain dict rows, plus async wrappers that run them via asyncio.to_thread.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
import logging
import random
import time
from typing import Any

import pyodbc

from constants import DB_BACKOFF_BASE, DB_BACKOFF_MAX, DB_CONN_RETRIES, _conn

logger = logging.getLogger(__name__)


def get_conn_with_retries(
    retries: int | None = None, backoff_base: float | None = None, backoff_max: float | None = None
):
    """
    Return a live pyodbc.Connection, retrying OperationalError with capped
    exponential backoff and full jitter. Raises the last exception after retries.
    Any other exception is raised immediately.
    """
    max_retries = retries if retries is not None else DB_CONN_RETRIES
    base = backoff_base if backoff_base is not None else DB_BACKOFF_BASE
    cap = backoff_max if backoff_max is not None else DB_BACKOFF_MAX

    attempts = 0
    last_exc: Exception | None = None
    while attempts < max_retries:
        attempts += 1
        try:
            return _conn()
        except pyodbc.OperationalError as e:
            last_exc = e
            exp = base * (2 ** (attempts - 1))
            wait = min(exp, cap)
            jitter = random.uniform(0, wait) if wait > 0 else 0.0
            logger.warning(
                "[DB] connection attempt %d/%d failed (OperationalError): %s; sleeping %.2fs",
                attempts,
                max_retries,
                e,
                jitter,
            )
            if attempts >= max_retries:
                break
            time.sleep(jitter)
        except Exception as e:
            logger.exception("[DB] unexpected error while connecting: %s", e)
            raise

    logger.error("[DB] All %d connection attempts failed. Last exception: %s", max_retries, last_exc)
    if last_exc:
        raise last_exc
    raise RuntimeError("get_conn_with_retries: no connection attempts were made")


def _params(params: Sequence[Any] | None) -> tuple[Any, ...]:
    if not params:
        return ()
    return params if isinstance(params, tuple) else tuple(params)


def _rows_to_dicts(cursor, rows) -> list[dict]:
    if not rows:
        return []
    cols = [d[0] for d in cursor.description]
    return [dict(zip(cols, row)) for row in rows]


def _close_quietly(obj) -> None:
    if obj is None:
        return
    try:
        obj.close()
    except Exception:
        logger.debug("[DB] close failed", exc_info=True)


def run_query(sql: str, params: Sequence[Any] | None = None) -> list[dict]:
    """Run a SELECT and return list[dict] rows."""
    conn = get_conn_with_retries()
    cur = None
    try:
        cur = conn.cursor()
        cur.execute(sql, *_params(params))
        return _rows_to_dicts(cur, cur.fetchall())
    finally:
        _close_quietly(cur)
        _close_quietly(conn)


def run_one(sql: str, params: Sequence[Any] | None = None) -> dict | None:
    rows = run_query(sql, params)
    return rows[0] if rows else None


def run_scalar(sql: str, params: Sequence[Any] | None = None) -> Any:
    row = run_one(sql, params)
    if not row:
        return None
    return next(iter(row.values()))


def execute(sql: str, params: Sequence[Any] | None = None) -> int:
    """
    Execute a non-SELECT statement and commit. Returns cursor.rowcount.
    Rolls back and re-raises on failure.
    """
    conn = get_conn_with_retries()
    cur = None
    try:
        cur = conn.cursor()
        cur.execute(sql, *_params(params))
        rowcount = cur.rowcount
        conn.commit()
        return int(rowcount or 0)
    except Exception:
        logger.exception("[DB] execute failed")
        try:
            conn.rollback()
        except Exception:
            logger.debug("[DB] rollback failed", exc_info=True)
        raise
    finally:
        _close_quietly(cur)
        _close_quietly(conn)


def execute_many(sql: str, rows: Sequence[Sequence[Any]]) -> int:
    """Execute one statement per parameter row inside a single transaction."""
    if not rows:
        return 0
    conn = get_conn_with_retries()
    cur = None
    try:
        cur = conn.cursor()
        cur.fast_executemany = True
        cur.executemany(sql, [tuple(r) for r in rows])
        conn.commit()
        return len(rows)
    except Exception:
        logger.exception("[DB] execute_many failed (%d rows)", len(rows))
        try:
            conn.rollback()
        except Exception:
            logger.debug("[DB] rollback failed", exc_info=True)
        raise
    finally:
        _close_quietly(cur)
        _close_quietly(conn)


# ------------------------
# Async wrappers
# ------------------------
async def run_query_async(sql: str, params: Sequence[Any] | None = None) -> list[dict]:
    return await asyncio.to_thread(run_query, sql, params)


async def run_one_async(sql: str, params: Sequence[Any] | None = None) -> dict | None:
    return await asyncio.to_thread(run_one, sql, params)


async def execute_async(sql: str, params: Sequence[Any] | None = None) -> int:
    return await asyncio.to_thread(execute, sql, params)


async def execute_many_async(sql: str, rows: Sequence[Sequence[Any]]) -> int:
    return await asyncio.to_thread(execute_many, sql, rows)
