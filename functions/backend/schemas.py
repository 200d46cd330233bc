"""
Pydantic schemas for the posts API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from shared.types import Post


class CreatePostRequest(BaseModel):
    title: str = Field(..., max_length=256)
    summary: str = Field(..., max_length=1024)
    content: str = Field(..., max_length=65536)

    @field_validator("title", "summary", "content")
    @classmethod
    def _require_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class PostResponse(BaseModel):
    id: str
    title: str
    summary: str
    content: str
    createdAt: datetime

    @classmethod
    def from_post(cls, post: Post) -> "PostResponse":
        return cls(
            id=post.id,
            title=post.title,
            summary=post.summary,
            content=post.content,
            createdAt=post.created_at,
        )


class ListPostsResponse(BaseModel):
    posts: list[PostResponse]


class DeletePostResponse(BaseModel):
    status: Literal["ok"]
    deleted: bool
