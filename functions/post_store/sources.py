"""
Remote data sources for posts: Firestore (via the Firebase Admin SDK) and
the posts REST API.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Protocol
from urllib.parse import quote, urlparse

import firebase_admin
import requests
from dacite import DaciteError
from firebase_admin import credentials, firestore
from google.api_core import exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud.firestore_v1 import SERVER_TIMESTAMP, Query

from post_store.errors import BackendError, DetectionFailure
from shared.firebase_constants import CREATED_AT_FIELD, POSTS_COLLECTION
from shared.post_convert import parse_timestamp, post_from_dict
from shared.types import Post

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30  # seconds

_FIRESTORE_ERRORS = (
    exceptions.GoogleAPIError,
    auth_exceptions.GoogleAuthError,
)
_PAYLOAD_ERRORS = (DaciteError, ValueError, KeyError, TypeError)


class PostSource(Protocol):
    """Defines the operations the post store needs from a remote backend."""

    def check_configured(self) -> None:
        """Raise DetectionFailure if this source cannot be used."""
        ...

    def list_posts(self) -> list[Post]:
        """Return all posts ordered by created_at descending."""
        ...

    def create_post(self, title: str, summary: str, content: str) -> Post:
        """Store a post, letting the backend assign id and created_at."""
        ...

    def delete_post(self, post_id: str) -> None:
        """Delete a post by id. Unknown ids are not an error."""
        ...


class FirestorePostSource:
    """
    Firestore-backed source. Posts live in a single collection with
    documents of the form {title, summary, content, createdAt}.
    """

    def __init__(self, client: Any, collection: str = POSTS_COLLECTION):
        self._client = client
        self._collection = collection

    @classmethod
    def from_settings(
        cls,
        project_id: Optional[str],
        credentials_path: Optional[str] = None,
        collection: str = POSTS_COLLECTION,
    ) -> "FirestorePostSource":
        """
        Initialize (or reuse) the default Firebase app and build a source.

        Raises:
            DetectionFailure: If the app or client cannot be created.
        """
        try:
            try:
                app = firebase_admin.get_app()
            except ValueError:
                cred = (
                    credentials.Certificate(credentials_path)
                    if credentials_path
                    else credentials.ApplicationDefault()
                )
                options = {"projectId": project_id} if project_id else None
                app = firebase_admin.initialize_app(cred, options)
            client = firestore.client(app)
        except (ValueError, OSError, auth_exceptions.GoogleAuthError) as e:
            raise DetectionFailure(f"Firebase initialization error: {e}") from e
        return cls(client, collection=collection)

    def check_configured(self) -> None:
        if self._client is None:
            raise DetectionFailure("Firestore client is not initialized")
        if not getattr(self._client, "project", None):
            raise DetectionFailure("Firestore client has no project id")

    def _posts(self):
        return self._client.collection(self._collection)

    def list_posts(self) -> list[Post]:
        query = self._posts().order_by(CREATED_AT_FIELD, direction=Query.DESCENDING)
        try:
            snapshots = list(query.stream())
        except _FIRESTORE_ERRORS as e:
            raise BackendError(str(e)) from e
        posts = []
        for doc in snapshots:
            # A malformed document is skipped rather than hiding the whole list.
            try:
                posts.append(post_from_dict(doc.to_dict(), post_id=doc.id))
            except _PAYLOAD_ERRORS as e:
                logger.warning(f"Skipping malformed post document {doc.id}: {e}")
        return posts

    def create_post(self, title: str, summary: str, content: str) -> Post:
        doc_data = {
            "title": title,
            "summary": summary,
            "content": content,
            CREATED_AT_FIELD: SERVER_TIMESTAMP,
        }
        try:
            update_time, doc_ref = self._posts().add(doc_data)
        except _FIRESTORE_ERRORS as e:
            raise BackendError(str(e)) from e

        logger.info(f"Post created with ID: {doc_ref.id}")
        return Post(
            id=doc_ref.id,
            title=title,
            summary=summary,
            content=content,
            created_at=_write_time(update_time),
        )

    def delete_post(self, post_id: str) -> None:
        try:
            self._posts().document(post_id).delete()
        except exceptions.NotFound:
            logger.info(f"Post {post_id} already absent from Firestore")
        except _FIRESTORE_ERRORS as e:
            raise BackendError(str(e)) from e


def _write_time(update_time: Any) -> datetime:
    # SERVER_TIMESTAMP resolves to the commit time of the write.
    if isinstance(update_time, datetime):
        return parse_timestamp(update_time)
    return datetime.now(timezone.utc)


class RestPostSource:
    """Source backed by the posts REST API (see backend.routes)."""

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def check_configured(self) -> None:
        parsed = urlparse(self.base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise DetectionFailure(f"Invalid posts API URL: {self.base_url!r}")

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self._session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as e:
            raise BackendError(str(e)) from e
        return response

    def list_posts(self) -> list[Post]:
        response = self._request("GET", "/posts")
        try:
            items = response.json()["posts"]
        except _PAYLOAD_ERRORS as e:
            raise BackendError(f"Malformed posts response: {e}") from e
        if not isinstance(items, list):
            raise BackendError("Malformed posts response: posts is not a list")
        posts = []
        for item in items:
            try:
                posts.append(post_from_dict(item))
            except _PAYLOAD_ERRORS as e:
                logger.warning(f"Skipping malformed post {item!r}: {e}")
        return posts

    def create_post(self, title: str, summary: str, content: str) -> Post:
        response = self._request(
            "POST",
            "/posts",
            json={"title": title, "summary": summary, "content": content},
        )
        try:
            post = post_from_dict(response.json())
        except _PAYLOAD_ERRORS as e:
            raise BackendError(f"Malformed post response: {e}") from e
        logger.info(f"Post created with ID: {post.id}")
        return post

    def delete_post(self, post_id: str) -> None:
        self._request("DELETE", f"/posts/{quote(post_id, safe='')}")
