from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any

import pytest

from categories import repository as categories_repository
from core import db
from core.errors import StorageError
from posts import repository as posts_repository


class FakePool:
    """
    Records SQL and returns canned results, or raises `error`.
    """

    def __init__(self) -> None:
        self.statements: list[tuple[str, tuple[Any, ...]]] = []
        self.row: dict[str, Any] | None = None
        self.rows: list[dict[str, Any]] = []
        self.value: Any = None
        self.status = "INSERT 0 1"
        self.error: BaseException | None = None

    def _record(self, sql: str, args: tuple[Any, ...]) -> None:
        self.statements.append((" ".join(sql.split()), args))
        if self.error is not None:
            raise self.error

    async def fetchrow(self, sql: str, *args: Any):
        self._record(sql, args)
        return self.row

    async def fetch(self, sql: str, *args: Any):
        self._record(sql, args)
        return self.rows

    async def fetchval(self, sql: str, *args: Any):
        self._record(sql, args)
        return self.value

    async def execute(self, sql: str, *args: Any) -> str:
        self._record(sql, args)
        return self.status


@pytest.fixture
def pool(monkeypatch: pytest.MonkeyPatch) -> FakePool:
    fake = FakePool()
    monkeypatch.setattr(db, "_pool", fake)
    return fake


def test_pool_must_be_initialized(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(db, "_pool", None)
    with pytest.raises(RuntimeError, match="not initialized"):
        db.pool()


def test_database_url_strips_sslmode(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db:5432/mirror?sslmode=disable&application_name=api")
    assert db.database_url() == "postgresql://u:p@db:5432/mirror?application_name=api"


def test_database_url_required(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        db.database_url()


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [OSError("connection refused"), asyncio.TimeoutError()])
async def test_driver_failures_become_storage_errors(pool: FakePool, error: BaseException) -> None:
    pool.error = error
    with pytest.raises(StorageError) as excinfo:
        await db.fetch_one("SELECT 1")
    assert excinfo.value.__cause__ is error
    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_programming_errors_are_not_wrapped(pool: FakePool) -> None:
    pool.error = KeyError("bug")
    with pytest.raises(KeyError):
        await db.fetch_all("SELECT 1")


@pytest.mark.asyncio
async def test_upsert_reports_inserted(pool: FakePool) -> None:
    pool.row = {"id": 7, "inserted": True}
    created_at_x = datetime(2024, 5, 1, 10, 0, 0)

    result = await posts_repository.upsert_post(id_str="100", text="hi", created_at_x=created_at_x)

    assert result == posts_repository.UpsertResult(post_id=7, outcome="inserted")
    sql, args = pool.statements[0]
    assert "ON CONFLICT (id_str) DO UPDATE SET text = EXCLUDED.text" in sql
    assert "created_at_x =" not in sql
    assert args == ("100", "hi", created_at_x)


@pytest.mark.asyncio
async def test_upsert_reports_updated(pool: FakePool) -> None:
    pool.row = {"id": 7, "inserted": False}
    result = await posts_repository.upsert_post(id_str="100", text="hi", created_at_x=datetime(2024, 5, 1))
    assert result.outcome == "updated"


@pytest.mark.asyncio
async def test_post_listing_orders_newest_first(pool: FakePool) -> None:
    await posts_repository.list_posts(limit=5, offset=10)
    sql, args = pool.statements[0]
    assert "ORDER BY created_at_x DESC" in sql
    assert args == (5, 10)


@pytest.mark.asyncio
async def test_link_post_is_conflict_safe(pool: FakePool) -> None:
    assert await categories_repository.link_post(category_id=1, post_id=2) is True

    pool.status = "INSERT 0 0"
    assert await categories_repository.link_post(category_id=1, post_id=2) is False

    sql, args = pool.statements[0]
    assert "ON CONFLICT (post_id, category_id) DO NOTHING" in sql
    assert args == (2, 1)


@pytest.mark.asyncio
async def test_category_posts_order_newest_first(pool: FakePool) -> None:
    await categories_repository.list_posts_for_category(3)
    sql, args = pool.statements[0]
    assert "ORDER BY p.created_at_x DESC" in sql
    assert args == (3,)


@pytest.mark.asyncio
async def test_categories_ordered_by_id(pool: FakePool) -> None:
    await categories_repository.list_categories()
    assert "ORDER BY id ASC" in pool.statements[0][0]
