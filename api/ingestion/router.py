"""
FastAPI router for ingestion endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel, Field, field_validator

from core import x_api

from . import service

router = APIRouter()


class IngestRequest(BaseModel):
    query: str | None = Field(default=None, min_length=1, max_length=512)
    max_results: int | None = Field(default=None, ge=x_api.MIN_MAX_RESULTS, le=x_api.MAX_MAX_RESULTS)

    @field_validator("query")
    @classmethod
    def _strip_query(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("query must not be blank")
        return value


@router.post("/admin/x/ingest")
async def ingest_recent_posts(request: IngestRequest | None = None) -> dict:
    """
    Fetch one page of recent posts from X and upsert them.

    The response always carries per-item results; a bad item never fails
    the whole call.
    """
    request = request or IngestRequest()
    summary = await service.run_ingestion(
        query=request.query,
        max_results=request.max_results,
        bearer_token=service.configured_bearer_token(),
    )
    return {"ok": True, **summary.to_dict()}
