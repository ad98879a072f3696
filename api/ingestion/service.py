"""
Ingestion orchestration.

Flow:
1) Fetch one page of recent posts from the X API
2) Normalize each post's timestamp
3) Upsert each post by its X id
4) Return a summary once the whole batch is processed

Per-item failures (bad timestamp, missing id, a failed upsert) are recorded in
the summary and never abort the rest of the batch. Failures of the fetch
itself abort the request.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any

from core import x_api
from core.errors import StorageError, UpstreamError, ValidationError
from posts import repository as posts_repository

from .timestamps import MalformedTimestamp, normalize_timestamp

DEFAULT_QUERY = "from:twitterdev"
DEFAULT_MAX_RESULTS = 10
DEFAULT_TIMEOUT_S = 15.0

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def configured_bearer_token() -> str:
    # BEARER_TOKEN is the legacy name, still honored.
    return (
        os.environ.get("X_BEARER_TOKEN", "").strip()
        or os.environ.get("BEARER_TOKEN", "").strip()
    )


def x_api_base_url() -> str:
    return os.environ.get("X_API_BASE_URL", x_api.DEFAULT_BASE_URL).strip() or x_api.DEFAULT_BASE_URL


def default_query() -> str:
    return os.environ.get("X_DEFAULT_QUERY", DEFAULT_QUERY).strip() or DEFAULT_QUERY


def default_max_results() -> int:
    value = _env_int("X_MAX_RESULTS", DEFAULT_MAX_RESULTS)
    return max(x_api.MIN_MAX_RESULTS, min(value, x_api.MAX_MAX_RESULTS))


def x_api_timeout_s() -> float:
    value = _env_float("X_API_TIMEOUT_S", DEFAULT_TIMEOUT_S)
    return value if value > 0 else DEFAULT_TIMEOUT_S


@dataclass
class IngestionSummary:
    query: str
    fetched_count: int = 0
    saved_count: int = 0
    inserted_count: int = 0
    updated_count: int = 0
    tweets: list[dict[str, str]] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "fetched_count": self.fetched_count,
            "saved_count": self.saved_count,
            "inserted_count": self.inserted_count,
            "updated_count": self.updated_count,
            "tweets": self.tweets,
            "errors": self.errors,
        }


async def fetch_posts(
    *,
    query: str,
    max_results: int,
    bearer_token: str,
) -> list[x_api.ExternalPost]:
    """
    Call the X API and translate its failures into request-level errors.
    """
    try:
        return await x_api.fetch_recent_posts(
            bearer_token=bearer_token,
            query=query,
            max_results=max_results,
            base_url=x_api_base_url(),
            timeout_s=x_api_timeout_s(),
        )
    except x_api.XApiAuthError as exc:
        logger.error("x_api_auth_failed status=%s", exc.status_code)
        raise UpstreamError(
            str(exc),
            code="UPSTREAM_AUTH",
            # No token at all is our misconfiguration, not X's fault.
            status_code=500 if exc.status_code is None else 502,
            upstream_status=exc.status_code,
        ) from exc
    except x_api.XApiRemoteError as exc:
        logger.error("x_api_failed status=%s body=%r", exc.status_code, exc.body[:200])
        raise UpstreamError(
            str(exc),
            upstream_status=exc.status_code,
            upstream_body=exc.body,
        ) from exc


async def save_post(post: x_api.ExternalPost, summary: IngestionSummary) -> None:
    if not post.id_str:
        summary.errors.append({"id": None, "code": "MISSING_ID", "message": "post has no id"})
        return

    try:
        created_at_x = normalize_timestamp(post.created_at)
    except MalformedTimestamp as exc:
        logger.warning("ingest_skip id_str=%s reason=malformed_timestamp raw=%r", post.id_str, exc.raw)
        summary.errors.append({"id": post.id_str, "code": "MALFORMED_TIMESTAMP", "message": str(exc)})
        return

    try:
        result = await posts_repository.upsert_post(
            id_str=post.id_str,
            text=post.text,
            created_at_x=created_at_x,
        )
    except StorageError as exc:
        logger.warning("ingest_skip id_str=%s reason=storage_error", post.id_str)
        summary.errors.append({"id": post.id_str, "code": exc.code, "message": exc.message})
        return

    summary.saved_count += 1
    if result.outcome == "inserted":
        summary.inserted_count += 1
    else:
        summary.updated_count += 1


async def run_ingestion(
    *,
    query: str | None = None,
    max_results: int | None = None,
    bearer_token: str,
) -> IngestionSummary:
    query = default_query() if query is None else query.strip()
    if not query:
        raise ValidationError("query must not be blank")
    if max_results is None:
        max_results = default_max_results()
    elif not x_api.MIN_MAX_RESULTS <= max_results <= x_api.MAX_MAX_RESULTS:
        raise ValidationError(
            f"max_results must be between {x_api.MIN_MAX_RESULTS} and {x_api.MAX_MAX_RESULTS}"
        )

    posts = await fetch_posts(query=query, max_results=max_results, bearer_token=bearer_token)

    summary = IngestionSummary(query=query, fetched_count=len(posts))
    for post in posts:
        summary.tweets.append(post.to_dict())
        await save_post(post, summary)

    logger.info(
        "ingestion_complete query=%r fetched=%s saved=%s inserted=%s updated=%s errors=%s",
        query,
        summary.fetched_count,
        summary.saved_count,
        summary.inserted_count,
        summary.updated_count,
        len(summary.errors),
    )
    return summary
