"""
Database abstraction for Postgres and an in-memory test implementation.
"""

from __future__ import annotations

import itertools
import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, Protocol

from sqlalchemy import Column, DateTime, String, Text, create_engine, delete, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shared.types import Post


class DbClient(Protocol):
    """Interface for database access."""

    def list_posts(self, limit: int | None = None) -> list[Post]:
        ...

    def create_post(self, title: str, summary: str, content: str) -> Post:
        ...

    def delete_post(self, post_id: str) -> bool:
        ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        # Routes run in a threadpool; every access to posts goes through _lock.
        self._lock = threading.Lock()
        # post_id -> (insertion sequence, post); the sequence breaks
        # created_at ties, newest first.
        self.posts: Dict[str, tuple[int, Post]] = {}
        self._counter = itertools.count()

    def list_posts(self, limit: int | None = None) -> list[Post]:
        with self._lock:
            entries = list(self.posts.values())
        entries.sort(key=lambda entry: (entry[1].created_at, entry[0]), reverse=True)
        ordered = [post for _, post in entries]
        return ordered[:limit] if limit is not None else ordered

    def create_post(self, title: str, summary: str, content: str) -> Post:
        post = Post(
            id=uuid.uuid4().hex,
            title=title,
            summary=summary,
            content=content,
            created_at=_utc_now(),
        )
        with self._lock:
            self.posts[post.id] = (next(self._counter), post)
        return post

    def delete_post(self, post_id: str) -> bool:
        with self._lock:
            return self.posts.pop(post_id, None) is not None

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.posts.clear()


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_post(self, row: "PostRow") -> Post:
        created_at = row.created_at
        # SQLite drops tzinfo; values are always stored as UTC.
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return Post(
            id=row.id,
            title=row.title,
            summary=row.summary,
            content=row.content,
            created_at=created_at,
        )

    def list_posts(self, limit: int | None = None) -> list[Post]:
        with self.Session() as session:
            stmt = select(PostRow).order_by(
                PostRow.created_at.desc(), PostRow.id.desc()
            )
            if limit is not None:
                stmt = stmt.limit(limit)
            rows = session.execute(stmt).scalars().all()
            return [self._to_post(row) for row in rows]

    def create_post(self, title: str, summary: str, content: str) -> Post:
        with self.Session() as session:
            row = PostRow(
                id=uuid.uuid4().hex,
                title=title,
                summary=summary,
                content=content,
                created_at=_utc_now(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_post(row)

    def delete_post(self, post_id: str) -> bool:
        with self.Session() as session:
            result = session.execute(delete(PostRow).where(PostRow.id == post_id))
            session.commit()
            return (result.rowcount or 0) > 0


Base = declarative_base()


class PostRow(Base):
    __tablename__ = "posts"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    summary = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
