"""
Read-only endpoints over mirrored posts.
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Query

from core.db import BIGINT_MAX
from core.errors import NotFoundError

from . import repository

router = APIRouter()


@router.get("/posts")
async def list_posts(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> dict:
    """
    List mirrored posts, newest X timestamp first.
    """
    items = await repository.list_posts(limit=limit, offset=offset)
    total = await repository.count_posts()
    return {
        "ok": True,
        "items": items,
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.get("/posts/{post_id}")
async def get_post(post_id: int = Path(..., ge=1, le=BIGINT_MAX)) -> dict:
    row = await repository.get_post(post_id)
    if row is None:
        raise NotFoundError("post not found")
    return {"ok": True, "item": row}
