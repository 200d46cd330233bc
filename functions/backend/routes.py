"""
HTTP routes for the posts API.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from backend.db import DbClient
from backend.dependencies import get_db_client
from backend.schemas import (
    CreatePostRequest,
    DeletePostResponse,
    ListPostsResponse,
    PostResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/posts", response_model=ListPostsResponse)
def list_posts(db: DbClient = Depends(get_db_client)):
    """
    Return every post, newest first.
    """
    posts = db.list_posts()
    return ListPostsResponse(posts=[PostResponse.from_post(p) for p in posts])


@router.post("/posts", response_model=PostResponse, status_code=201)
def create_post(payload: CreatePostRequest, db: DbClient = Depends(get_db_client)):
    post = db.create_post(payload.title, payload.summary, payload.content)
    logger.info(f"Post created with ID: {post.id}")
    return PostResponse.from_post(post)


@router.delete("/posts/{post_id}", response_model=DeletePostResponse)
def delete_post(post_id: str, db: DbClient = Depends(get_db_client)):
    # Unknown ids are reported but not treated as an error.
    deleted = db.delete_post(post_id)
    if not deleted:
        logger.info(f"Delete requested for unknown post {post_id}")
    return DeletePostResponse(status="ok", deleted=deleted)
