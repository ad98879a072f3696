"""
X (Twitter) API v2 client helpers.

Used endpoint:
- GET /2/tweets/search/recent -> {"data": [{"id", "text", "created_at"}, ...], "meta": {...}}

One request per call. No retries and no pagination: `meta.next_token` is
ignored on purpose.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

DEFAULT_BASE_URL = "https://api.twitter.com"
SEARCH_RECENT_PATH = "/2/tweets/search/recent"

# Bounds enforced by the recent-search endpoint itself.
MIN_MAX_RESULTS = 10
MAX_MAX_RESULTS = 100


class XApiError(RuntimeError):
    pass


class XApiAuthError(XApiError):
    """
    No bearer token configured, or X rejected it (401/403).
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class XApiRemoteError(XApiError):
    """
    Non-200 answer (or transport failure, with status_code=None).
    `body` keeps the raw response text for diagnostics.
    """

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


@dataclass(frozen=True)
class ExternalPost:
    id_str: str
    text: str
    created_at: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id_str, "text": self.text, "created_at": self.created_at}


def _normalize_base_url(base_url: str) -> str:
    base_url = (base_url or "").strip()
    if not base_url:
        raise XApiRemoteError("X_API_BASE_URL is empty.")
    return base_url.rstrip("/")


def _parse_posts(data: dict[str, Any]) -> list[ExternalPost]:
    items = data.get("data")
    if items is None:
        # X omits `data` entirely when nothing matched.
        return []
    if not isinstance(items, list):
        raise XApiRemoteError("X returned a malformed `data` field.", status_code=200, body=str(data)[:500])

    posts: list[ExternalPost] = []
    for item in items:
        # Keep junk entries so the caller can count and report them.
        if not isinstance(item, dict):
            item = {}
        posts.append(
            ExternalPost(
                id_str=str(item.get("id") or "").strip(),
                text=str(item.get("text") or ""),
                created_at=str(item.get("created_at") or ""),
            )
        )
    return posts


async def fetch_recent_posts(
    *,
    bearer_token: str,
    query: str,
    max_results: int = MIN_MAX_RESULTS,
    base_url: str = DEFAULT_BASE_URL,
    timeout_s: float = 15.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[ExternalPost]:
    """
    Fetch one page of recent posts matching `query`.
    """
    token = (bearer_token or "").strip()
    if not token:
        raise XApiAuthError("X bearer token is not configured.")

    query = (query or "").strip()
    if not query:
        raise ValueError("query is empty.")
    if not MIN_MAX_RESULTS <= max_results <= MAX_MAX_RESULTS:
        raise ValueError(f"max_results must be between {MIN_MAX_RESULTS} and {MAX_MAX_RESULTS}.")

    base_url = _normalize_base_url(base_url)
    params = {
        "query": query,
        "max_results": str(max_results),
        "tweet.fields": "created_at",
    }

    try:
        async with httpx.AsyncClient(base_url=base_url, timeout=timeout_s, transport=transport) as client:
            resp = await client.get(
                SEARCH_RECENT_PATH,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )
    except httpx.TimeoutException as exc:
        raise XApiRemoteError(f"X API request timed out after {timeout_s}s.") from exc
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise XApiRemoteError(f"X API request failed: {exc}") from exc

    if resp.status_code in (401, 403):
        raise XApiAuthError(
            f"X API rejected the bearer token: {resp.status_code}",
            status_code=resp.status_code,
        )

    if resp.status_code != 200:
        body = resp.text
        # Keep the message short; the full body stays on the exception.
        raise XApiRemoteError(
            f"X API request failed: {resp.status_code} {body[:500]}",
            status_code=resp.status_code,
            body=body,
        )

    try:
        data: dict[str, Any] = resp.json()
    except ValueError as e:
        raise XApiRemoteError("X API returned invalid JSON.", status_code=200, body=resp.text[:500]) from e

    if not isinstance(data, dict):
        raise XApiRemoteError("X API returned an unexpected payload.", status_code=200, body=resp.text[:500])

    return _parse_posts(data)
