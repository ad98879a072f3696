"""
Async database access helpers (raw SQL) using asyncpg.

This module owns the connection pool. FastAPI initializes it on startup and
closes it on shutdown (see `api/main.py`).

Connections are borrowed per statement, never for a whole request, so a slow
X API call can't pin a connection while it waits.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...

Driver and network failures are re-raised as `core.errors.StorageError`.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

from .errors import StorageError

logger = logging.getLogger(__name__)

_pool: asyncpg.Pool | None = None

# Largest value a `bigint` column (and asyncpg's int8 codec) accepts.
BIGINT_MAX = 2**63 - 1

# Errors that mean "the store failed", as opposed to a bug in our code.
_STORAGE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url() -> str:
    url = os.environ.get("DATABASE_URL", "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    return _sanitize_database_url(url)


async def init_pool() -> None:
    global _pool
    if _pool is not None:
        return None
    min_size = max(1, _env_int("DB_POOL_MIN_SIZE", 1))
    _pool = await asyncpg.create_pool(
        dsn=database_url(),
        min_size=min_size,
        max_size=max(min_size, _env_int("DB_POOL_MAX_SIZE", 5)),
        command_timeout=30,
    )


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return None
    await _pool.close()
    _pool = None


def pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("DB pool is not initialized. Call init_pool() on startup.")
    return _pool


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


def _storage_error(exc: BaseException) -> StorageError:
    logger.error("db_error type=%s error=%s", type(exc).__name__, exc)
    return StorageError("database error")


async def fetch_one(sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    try:
        row = await pool().fetchrow(sql, *args)
    except _STORAGE_ERRORS as exc:
        raise _storage_error(exc) from exc
    return _record_to_dict(row) if row is not None else None


async def fetch_all(sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    try:
        rows = await pool().fetch(sql, *args)
    except _STORAGE_ERRORS as exc:
        raise _storage_error(exc) from exc
    return [_record_to_dict(r) for r in rows]


async def fetch_value(sql: str, *args: Any) -> Any:
    try:
        return await pool().fetchval(sql, *args)
    except _STORAGE_ERRORS as exc:
        raise _storage_error(exc) from exc


async def execute(sql: str, *args: Any) -> str:
    """
    Run a statement (INSERT/UPDATE/DELETE/DDL).

    Returns asyncpg's status string, e.g. "INSERT 0 1".
    """
    try:
        return await pool().execute(sql, *args)
    except _STORAGE_ERRORS as exc:
        raise _storage_error(exc) from exc
