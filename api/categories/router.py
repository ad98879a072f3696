"""
Category API endpoints.

`/admin/*` routes are expected to sit behind an authenticating proxy.
"""

from __future__ import annotations

from fastapi import APIRouter, Path, status

from core.db import BIGINT_MAX

from . import schemas, service

router = APIRouter()


@router.get("/categories")
async def list_categories() -> dict:
    rows = await service.list_categories()
    return {"ok": True, "items": rows, "total": len(rows)}


@router.get("/categories/{category_id}")
async def get_category(category_id: int = Path(..., ge=1, le=BIGINT_MAX)) -> dict:
    row = await service.get_category(category_id)
    return {"ok": True, "item": row}


@router.get("/categories/{category_id}/posts")
async def list_category_posts(category_id: int = Path(..., ge=1, le=BIGINT_MAX)) -> dict:
    category, posts = await service.list_posts_for_category(category_id)
    return {"ok": True, "category": category, "items": posts, "total": len(posts)}


@router.post("/admin/categories", status_code=status.HTTP_201_CREATED)
async def create_category(request: schemas.CategoryCreateRequest) -> dict:
    row = await service.create_category(request.name)
    return {"ok": True, "id": int(row["id"]), "item": row}


@router.post("/admin/categories/{category_id}/posts")
async def link_posts(
    request: schemas.LinkPostsRequest,
    category_id: int = Path(..., ge=1, le=BIGINT_MAX),
) -> dict:
    summary = await service.link_posts_to_category(category_id, request.post_ids)
    return {
        "ok": True,
        "category_id": summary.category_id,
        "linked_count": summary.linked_count,
        "skipped_post_ids": summary.skipped_post_ids,
    }
