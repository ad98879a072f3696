from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

import pytest

from categories import repository as categories_repository
from core import x_api
from core.errors import StorageError
from posts import repository as posts_repository


class FakeStore:
    """
    In-memory stand-in for the three tables.

    Mirrors the SQL semantics the repositories rely on: `id_str` is unique
    and upserts only refresh `text`; `(post_id, category_id)` is unique.
    """

    def __init__(self) -> None:
        self.categories: dict[int, dict[str, Any]] = {}
        self.posts: dict[int, dict[str, Any]] = {}
        self.links: set[tuple[int, int]] = set()
        self._next_category_id = 1
        self._next_post_id = 1
        self.failing_id_strs: set[str] = set()
        self.clock = datetime(2025, 1, 1, 0, 0, 0)

    def _tick(self) -> datetime:
        self.clock += timedelta(seconds=1)
        return self.clock

    async def list_categories(self) -> list[dict[str, Any]]:
        return [dict(self.categories[k]) for k in sorted(self.categories)]

    async def get_category(self, category_id: int) -> dict[str, Any] | None:
        row = self.categories.get(category_id)
        return dict(row) if row is not None else None

    async def create_category(self, name: str) -> dict[str, Any]:
        row = {"id": self._next_category_id, "name": name, "created_at": self._tick()}
        self.categories[row["id"]] = row
        self._next_category_id += 1
        return dict(row)

    async def link_post(self, *, category_id: int, post_id: int) -> bool:
        pair = (post_id, category_id)
        if pair in self.links:
            return False
        self.links.add(pair)
        return True

    async def list_posts_for_category(self, category_id: int) -> list[dict[str, Any]]:
        rows = [self.posts[p] for (p, c) in self.links if c == category_id]
        return [dict(r) for r in _by_created_at_x_desc(rows)]

    async def upsert_post(self, *, id_str: str, text: str, created_at_x: datetime):
        if id_str in self.failing_id_strs:
            raise StorageError("database error")
        for row in self.posts.values():
            if row["id_str"] == id_str:
                row["text"] = text
                return posts_repository.UpsertResult(post_id=row["id"], outcome="updated")
        row = {
            "id": self._next_post_id,
            "id_str": id_str,
            "text": text,
            "created_at_x": created_at_x,
            "created_at": self._tick(),
        }
        self.posts[row["id"]] = row
        self._next_post_id += 1
        return posts_repository.UpsertResult(post_id=row["id"], outcome="inserted")

    async def list_posts(self, *, limit: int = 100, offset: int = 0) -> list[dict[str, Any]]:
        rows = _by_created_at_x_desc(self.posts.values())
        return [dict(r) for r in rows[offset : offset + limit]]

    async def count_posts(self) -> int:
        return len(self.posts)

    async def get_post(self, post_id: int) -> dict[str, Any] | None:
        row = self.posts.get(post_id)
        return dict(row) if row is not None else None

    async def post_exists(self, post_id: int) -> bool:
        return post_id in self.posts

    def post_id_for(self, id_str: str) -> int:
        for row in self.posts.values():
            if row["id_str"] == id_str:
                return row["id"]
        raise KeyError(id_str)


def _by_created_at_x_desc(rows) -> list[dict[str, Any]]:
    return sorted(rows, key=lambda r: (r["created_at_x"], r["id"]), reverse=True)


@pytest.fixture
def store(monkeypatch: pytest.MonkeyPatch) -> FakeStore:
    fake = FakeStore()
    for name in (
        "list_categories",
        "get_category",
        "create_category",
        "link_post",
        "list_posts_for_category",
    ):
        monkeypatch.setattr(categories_repository, name, getattr(fake, name))
    for name in ("upsert_post", "list_posts", "count_posts", "get_post", "post_exists"):
        monkeypatch.setattr(posts_repository, name, getattr(fake, name))
    return fake


class FakeXApi:
    """
    Replaces `x_api.fetch_recent_posts`; returns `posts` or raises `error`.
    """

    def __init__(self) -> None:
        self.posts: list[x_api.ExternalPost] = []
        self.error: Exception | None = None
        self.calls: list[dict[str, Any]] = []

    def set_posts(self, *items: tuple[str, str, str]) -> None:
        self.posts = [x_api.ExternalPost(id_str=i, text=t, created_at=c) for (i, t, c) in items]

    async def fetch_recent_posts(self, **kwargs: Any) -> list[x_api.ExternalPost]:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return list(self.posts)


@pytest.fixture
def fake_x_api(monkeypatch: pytest.MonkeyPatch) -> FakeXApi:
    fake = FakeXApi()
    monkeypatch.setattr(x_api, "fetch_recent_posts", fake.fetch_recent_posts)
    return fake
