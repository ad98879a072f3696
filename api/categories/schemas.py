"""
Pydantic schemas for category endpoints.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field, field_validator

from core.db import BIGINT_MAX

# Row ids are `bigint`; anything outside 1..BIGINT_MAX can't name a row.
RowId = Annotated[int, Field(ge=1, le=BIGINT_MAX)]


class CategoryCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class LinkPostsRequest(BaseModel):
    post_ids: list[RowId] = Field(..., min_length=1, max_length=1000)
