"""
Category business logic.

Scope:
- category CRUD (list / get / create)
- linking mirrored posts to a category
- listing the posts of a category

Link rules:
- the category must exist, otherwise nothing is written
- post ids that don't exist are skipped, not treated as errors
- re-linking an existing pair is a no-op that still counts as linked
- each pair commits on its own; there is no batch-wide transaction
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from core.db import BIGINT_MAX
from core.errors import NotFoundError, ValidationError
from posts import repository as posts_repository

from . import repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkSummary:
    category_id: int
    linked_count: int
    skipped_post_ids: list[int] = field(default_factory=list)


async def list_categories() -> list[dict[str, Any]]:
    return await repository.list_categories()


def _is_row_id(value: int) -> bool:
    return 1 <= value <= BIGINT_MAX


async def get_category(category_id: int) -> dict[str, Any]:
    # Out-of-range ids can't exist; asking Postgres would only fail to encode them.
    row = await repository.get_category(category_id) if _is_row_id(category_id) else None
    if row is None:
        raise NotFoundError("category not found")
    return row


async def create_category(name: str) -> dict[str, Any]:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    row = await repository.create_category(name)
    logger.info("category_created id=%s name=%r", row["id"], row["name"])
    return row


async def link_posts_to_category(category_id: int, post_ids: Iterable[int]) -> LinkSummary:
    # Collapse duplicates but keep caller order.
    unique_ids = list(dict.fromkeys(int(post_id) for post_id in post_ids))
    if not unique_ids:
        raise ValidationError("post_ids must not be empty")

    await get_category(category_id)

    linked = 0
    created = 0
    skipped: list[int] = []
    for post_id in unique_ids:
        if not _is_row_id(post_id) or not await posts_repository.post_exists(post_id):
            skipped.append(post_id)
            continue
        if await repository.link_post(category_id=category_id, post_id=post_id):
            created += 1
        linked += 1

    logger.info(
        "posts_linked category_id=%s requested=%s linked=%s new=%s skipped=%s",
        category_id,
        len(unique_ids),
        linked,
        created,
        len(skipped),
    )
    return LinkSummary(category_id=category_id, linked_count=linked, skipped_post_ids=skipped)


async def list_posts_for_category(category_id: int) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    category = await get_category(category_id)
    posts = await repository.list_posts_for_category(category_id)
    return category, posts
