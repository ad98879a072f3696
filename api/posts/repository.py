"""
Post persistence (raw SQL).

`posts.id_str` is the X post id and the natural key for upserts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from core import db

UpsertOutcome = Literal["inserted", "updated"]

POST_COLUMNS = "id, id_str, text, created_at_x, created_at"


@dataclass(frozen=True)
class UpsertResult:
    post_id: int
    outcome: UpsertOutcome


async def upsert_post(*, id_str: str, text: str, created_at_x: datetime) -> UpsertResult:
    """
    Insert a post, or refresh its text if `id_str` is already stored.

    `created_at_x` and `created_at` keep their first-seen values on conflict.
    `xmax = 0` is only true for a freshly inserted tuple.
    """
    row = await db.fetch_one(
        """
        INSERT INTO posts (id_str, text, created_at_x)
        VALUES ($1, $2, $3)
        ON CONFLICT (id_str) DO UPDATE
        SET text = EXCLUDED.text
        RETURNING id, (xmax = 0) AS inserted
        """,
        id_str,
        text,
        created_at_x,
    )
    if row is None:
        raise RuntimeError("Failed to upsert post.")
    return UpsertResult(
        post_id=int(row["id"]),
        outcome="inserted" if row["inserted"] else "updated",
    )


async def list_posts(*, limit: int = 100, offset: int = 0) -> list[dict[str, Any]]:
    return await db.fetch_all(
        f"""
        SELECT {POST_COLUMNS}
        FROM posts
        ORDER BY created_at_x DESC, id DESC
        LIMIT $1
        OFFSET $2
        """,
        limit,
        offset,
    )


async def count_posts() -> int:
    return int(await db.fetch_value("SELECT count(*) FROM posts") or 0)


async def get_post(post_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        SELECT {POST_COLUMNS}
        FROM posts
        WHERE id = $1
        """,
        post_id,
    )


async def post_exists(post_id: int) -> bool:
    row = await db.fetch_one(
        """
        SELECT 1 AS ok
        FROM posts
        WHERE id = $1
        LIMIT 1
        """,
        post_id,
    )
    return row is not None
