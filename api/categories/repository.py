"""
Category and post<->category link persistence (raw SQL).
"""

from __future__ import annotations

from typing import Any

from core import db


async def list_categories() -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT id, name, created_at
        FROM categories
        ORDER BY id ASC
        """
    )


async def get_category(category_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        """
        SELECT id, name, created_at
        FROM categories
        WHERE id = $1
        """,
        category_id,
    )


async def create_category(name: str) -> dict[str, Any]:
    row = await db.fetch_one(
        """
        INSERT INTO categories (name)
        VALUES ($1)
        RETURNING id, name, created_at
        """,
        name,
    )
    if row is None:
        raise RuntimeError("Failed to create category.")
    return row


async def link_post(*, category_id: int, post_id: int) -> bool:
    """
    Link one post to one category.

    Returns True when a new row was written, False when the pair already
    existed. Each call is its own statement, so pairs commit independently.
    """
    status = await db.execute(
        """
        INSERT INTO post_categories (post_id, category_id)
        VALUES ($1, $2)
        ON CONFLICT (post_id, category_id) DO NOTHING
        """,
        post_id,
        category_id,
    )
    # asyncpg status looks like "INSERT 0 <rows>".
    return status.rsplit(" ", 1)[-1] == "1"


async def list_posts_for_category(category_id: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT p.id, p.id_str, p.text, p.created_at_x, p.created_at
        FROM posts p
        JOIN post_categories pc ON pc.post_id = p.id
        WHERE pc.category_id = $1
        ORDER BY p.created_at_x DESC, p.id DESC
        """,
        category_id,
    )
