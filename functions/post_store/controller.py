"""
Post store controller.

Owns the in-memory post list and the loading/submitting flags, and mediates
list/create/delete against the remote source, or against memory alone when
the backend is unavailable.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from post_store.detector import BackendAvailabilityDetector
from post_store.errors import BackendError, ValidationError
from post_store.sources import PostSource
from shared.types import Post, PostDraft

logger = logging.getLogger(__name__)

CONFIRM_DELETE_MESSAGE = "Are you sure you want to delete this post?"
CREATED_MESSAGE = "Post created successfully!"
CREATED_LOCALLY_MESSAGE = "Post created locally (backend not connected)"
DELETED_MESSAGE = "Post deleted"

Confirmer = Callable[[str], bool]
Clock = Callable[[], datetime]


def always_confirm(message: str) -> bool:
    """Confirmation used in headless contexts: accepts every prompt."""
    return True


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ErrorKind(Enum):
    NONE = "none"
    VALIDATION = "validation"
    BACKEND = "backend"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a controller operation, ready to show to the user."""

    ok: bool
    kind: ErrorKind = ErrorKind.NONE
    post: Optional[Post] = None
    errors: dict[str, str] = field(default_factory=dict)
    message: Optional[str] = None


@dataclass(frozen=True)
class StoreState:
    posts: tuple[Post, ...]
    loading: bool
    submitting: bool
    backend_available: bool
    last_error: Optional[str] = None


def validate_draft(draft: PostDraft) -> PostDraft:
    """
    Returns the trimmed draft.

    Raises:
        ValidationError: If any field is empty after trimming.
    """
    errors = draft.missing_fields()
    if errors:
        raise ValidationError(errors)
    return draft.trimmed()


class PostStoreController:
    """
    State-owning controller for the post list.

    Passing source=None runs the store in local mode: posts live only in
    memory for the lifetime of the controller. Operations may be called from
    several threads; the list is only ever replaced under the lock, and remote
    calls happen outside it.
    """

    def __init__(
        self,
        source: Optional[PostSource],
        confirm: Confirmer = always_confirm,
        clock: Clock = _utc_now,
    ):
        self._source = source
        self._confirm = confirm
        self._clock = clock
        self._lock = threading.Lock()
        self._posts: list[Post] = []
        self._last_error: Optional[str] = None
        self._loading_calls = 0
        self._submitting_calls = 0
        # Remote creates/deletes that finish while a list is in flight, replayed
        # onto the fetched snapshot. Emptied once no list is in flight.
        self._changes_during_load: list[tuple[str, Post | str]] = []
        # Until the first list completes the view is loading, but only if
        # there is something to load from.
        self._awaiting_first_load = source is not None

    @classmethod
    def from_detector(
        cls,
        detector: BackendAvailabilityDetector,
        confirm: Confirmer = always_confirm,
        clock: Clock = _utc_now,
    ) -> "PostStoreController":
        source = detector.source if detector.detect() else None
        return cls(source, confirm=confirm, clock=clock)

    # ------------------------------------------------------------ state reads

    @property
    def backend_available(self) -> bool:
        return self._source is not None

    @property
    def posts(self) -> tuple[Post, ...]:
        with self._lock:
            return tuple(self._posts)

    @property
    def loading(self) -> bool:
        with self._lock:
            return self._awaiting_first_load or self._loading_calls > 0

    @property
    def submitting(self) -> bool:
        with self._lock:
            return self._submitting_calls > 0

    @property
    def last_error(self) -> Optional[str]:
        with self._lock:
            return self._last_error

    def state(self) -> StoreState:
        with self._lock:
            return StoreState(
                posts=tuple(self._posts),
                loading=self._awaiting_first_load or self._loading_calls > 0,
                submitting=self._submitting_calls > 0,
                backend_available=self.backend_available,
                last_error=self._last_error,
            )

    # ------------------------------------------------------------ operations

    def list_posts(self) -> OperationResult:
        """
        Refresh the post list from the backend.

        In local mode the existing list is kept as-is. A backend failure
        clears the list and records last_error; it is never raised.
        """
        with self._lock:
            self._loading_calls += 1
            mark = len(self._changes_during_load)
        try:
            if self._source is None:
                logger.warning("Skipping list_posts: backend not available")
                return OperationResult(ok=True)

            try:
                fetched = self._source.list_posts()
            except BackendError as e:
                message = f"Failed to load posts: {e}"
                logger.error(f"Error fetching posts: {e}")
                with self._lock:
                    self._posts = []
                    self._last_error = message
                return OperationResult(ok=False, kind=ErrorKind.BACKEND, message=message)

            with self._lock:
                posts = _replay(
                    _unique_by_id(fetched), self._changes_during_load[mark:]
                )
                self._posts = posts
                self._last_error = None
            logger.info(f"Fetched {len(posts)} posts")
            return OperationResult(ok=True)
        finally:
            with self._lock:
                self._loading_calls -= 1
                self._awaiting_first_load = False
                if self._loading_calls == 0:
                    self._changes_during_load.clear()

    def create_post(self, draft: PostDraft) -> OperationResult:
        """
        Validate and store a new post, prepending it to the list.

        Validation failures return per-field errors without touching state.
        """
        try:
            trimmed = validate_draft(draft)
        except ValidationError as e:
            logger.debug(f"Rejected draft: {e.errors}")
            return OperationResult(
                ok=False, kind=ErrorKind.VALIDATION, errors=e.errors
            )

        with self._lock:
            self._submitting_calls += 1
        try:
            if self._source is None:
                post = self._create_local(trimmed)
                logger.info(f"Created local post {post.id}")
                return OperationResult(
                    ok=True, post=post, message=CREATED_LOCALLY_MESSAGE
                )

            try:
                post = self._source.create_post(
                    trimmed.title, trimmed.summary, trimmed.content
                )
            except BackendError as e:
                logger.error(f"Error adding post: {e}")
                return OperationResult(
                    ok=False,
                    kind=ErrorKind.BACKEND,
                    message=f"Failed to create post: {e}",
                )

            with self._lock:
                self._posts = _replay(self._posts, [("created", post)])
                if self._loading_calls:
                    self._changes_during_load.append(("created", post))
            return OperationResult(ok=True, post=post, message=CREATED_MESSAGE)
        finally:
            with self._lock:
                self._submitting_calls -= 1

    def delete_post(self, post_id: str) -> OperationResult:
        """
        Delete a post after confirmation. Absent ids are a no-op.
        """
        if not self._confirm(CONFIRM_DELETE_MESSAGE):
            return OperationResult(ok=False, kind=ErrorKind.CANCELLED)

        if self._source is not None:
            try:
                self._source.delete_post(post_id)
            except BackendError as e:
                logger.error(f"Delete error for post {post_id}: {e}")
                return OperationResult(
                    ok=False,
                    kind=ErrorKind.BACKEND,
                    message=f"Failed to delete post: {e}",
                )

        with self._lock:
            self._posts = _replay(self._posts, [("deleted", post_id)])
            if self._loading_calls and self._source is not None:
                self._changes_during_load.append(("deleted", post_id))
        logger.info(f"Deleted post {post_id}")
        return OperationResult(ok=True, message=DELETED_MESSAGE)

    def _create_local(self, draft: PostDraft) -> Post:
        created_at = self._clock()
        with self._lock:
            taken = {p.id for p in self._posts}
            millis = int(created_at.timestamp() * 1000)
            while str(millis) in taken:
                millis += 1
            post = Post(
                id=str(millis),
                title=draft.title,
                summary=draft.summary,
                content=draft.content,
                created_at=created_at,
            )
            self._posts.insert(0, post)
        return post


def _replay(posts: list[Post], changes: list[tuple[str, Post | str]]) -> list[Post]:
    """Applies ("created", post) and ("deleted", post_id) changes in order."""
    for action, value in changes:
        if action == "created":
            if all(p.id != value.id for p in posts):
                posts = [value] + posts
        else:
            posts = [p for p in posts if p.id != value]
    return posts


def _unique_by_id(posts: list[Post]) -> list[Post]:
    seen: set[str] = set()
    unique = []
    for post in posts:
        if post.id in seen:
            continue
        seen.add(post.id)
        unique.append(post)
    return unique
