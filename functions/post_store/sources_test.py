import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import requests
from google.api_core import exceptions
from google.cloud.firestore_v1 import SERVER_TIMESTAMP, Query

from post_store.errors import BackendError, DetectionFailure
from post_store.sources import FirestorePostSource, RestPostSource

CREATED = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def mock_snapshot(doc_id, data):
    doc = MagicMock()
    doc.id = doc_id
    doc.to_dict.return_value = data
    return doc


class FirestorePostSourceTests(unittest.TestCase):
    def setUp(self):
        self.mock_db = MagicMock()
        self.mock_db.project = "demo-project"
        self.collection = self.mock_db.collection.return_value
        self.source = FirestorePostSource(self.mock_db)

    def test_check_configured(self):
        self.source.check_configured()

        self.mock_db.project = None
        with self.assertRaises(DetectionFailure):
            self.source.check_configured()

    def test_list_posts_orders_by_created_at_desc(self):
        query = self.collection.order_by.return_value
        query.stream.return_value = [
            mock_snapshot(
                "b",
                {"title": "B", "summary": "s", "content": "c", "createdAt": CREATED},
            ),
            mock_snapshot(
                "a",
                {"title": "A", "summary": "s", "content": "c", "createdAt": CREATED},
            ),
        ]

        posts = self.source.list_posts()

        self.mock_db.collection.assert_called_once_with("posts")
        self.collection.order_by.assert_called_once_with(
            "createdAt", direction=Query.DESCENDING
        )
        self.assertEqual([p.id for p in posts], ["b", "a"])
        self.assertEqual(posts[0].title, "B")
        self.assertEqual(posts[0].created_at, CREATED)

    def test_list_posts_wraps_sdk_errors(self):
        query = self.collection.order_by.return_value
        query.stream.side_effect = exceptions.ServiceUnavailable("down")

        with self.assertRaises(BackendError):
            self.source.list_posts()

    def test_list_posts_skips_malformed_documents(self):
        query = self.collection.order_by.return_value
        query.stream.return_value = [
            mock_snapshot(
                "good",
                {"title": "G", "summary": "s", "content": "c", "createdAt": CREATED},
            ),
            mock_snapshot(
                "no-summary", {"title": "B", "content": "c", "createdAt": CREATED}
            ),
            mock_snapshot(
                "null-title",
                {"title": None, "summary": "s", "content": "c", "createdAt": CREATED},
            ),
        ]

        with self.assertLogs("post_store.sources", level="WARNING"):
            posts = self.source.list_posts()

        self.assertEqual([p.id for p in posts], ["good"])

    def test_create_post_uses_server_timestamp(self):
        doc_ref = MagicMock()
        doc_ref.id = "new-id"
        self.collection.add.return_value = (CREATED, doc_ref)

        post = self.source.create_post("T", "S", "C")

        self.collection.add.assert_called_once_with(
            {
                "title": "T",
                "summary": "S",
                "content": "C",
                "createdAt": SERVER_TIMESTAMP,
            }
        )
        self.assertEqual(post.id, "new-id")
        self.assertEqual(post.created_at, CREATED)

    def test_create_post_wraps_sdk_errors(self):
        self.collection.add.side_effect = exceptions.PermissionDenied("nope")

        with self.assertRaises(BackendError):
            self.source.create_post("T", "S", "C")

    def test_delete_post(self):
        self.source.delete_post("abc")

        self.collection.document.assert_called_once_with("abc")
        self.collection.document.return_value.delete.assert_called_once_with()

    def test_delete_post_tolerates_not_found(self):
        self.collection.document.return_value.delete.side_effect = (
            exceptions.NotFound("gone")
        )

        self.source.delete_post("abc")

    def test_delete_post_wraps_sdk_errors(self):
        self.collection.document.return_value.delete.side_effect = (
            exceptions.DeadlineExceeded("slow")
        )

        with self.assertRaises(BackendError):
            self.source.delete_post("abc")

    @patch("post_store.sources.firestore")
    @patch("post_store.sources.firebase_admin")
    def test_from_settings_reuses_existing_app(self, mock_admin, mock_firestore):
        source = FirestorePostSource.from_settings("demo", collection="articles")

        mock_admin.initialize_app.assert_not_called()
        mock_firestore.client.assert_called_once_with(mock_admin.get_app.return_value)
        source.list_posts()
        mock_firestore.client.return_value.collection.assert_called_with("articles")

    @patch("post_store.sources.credentials")
    @patch("post_store.sources.firestore")
    @patch("post_store.sources.firebase_admin")
    def test_from_settings_initializes_app(
        self, mock_admin, mock_firestore, mock_credentials
    ):
        mock_admin.get_app.side_effect = ValueError("no app")

        FirestorePostSource.from_settings("demo", credentials_path="/tmp/key.json")

        mock_credentials.Certificate.assert_called_once_with("/tmp/key.json")
        mock_admin.initialize_app.assert_called_once_with(
            mock_credentials.Certificate.return_value, {"projectId": "demo"}
        )

    @patch("post_store.sources.credentials")
    @patch("post_store.sources.firebase_admin")
    def test_from_settings_failure_is_detection_failure(
        self, mock_admin, mock_credentials
    ):
        mock_admin.get_app.side_effect = ValueError("no app")
        mock_credentials.Certificate.side_effect = OSError("missing key file")

        with self.assertRaises(DetectionFailure):
            FirestorePostSource.from_settings("demo", credentials_path="/nope.json")


class RestPostSourceTests(unittest.TestCase):
    def setUp(self):
        self.session = MagicMock()
        self.response = self.session.request.return_value
        self.source = RestPostSource("http://localhost:8000/api/", session=self.session)

    def test_check_configured(self):
        self.source.check_configured()

        with self.assertRaises(DetectionFailure):
            RestPostSource("not a url").check_configured()

    def test_list_posts(self):
        self.response.json.return_value = {
            "posts": [
                {
                    "id": "2",
                    "title": "B",
                    "summary": "s",
                    "content": "c",
                    "createdAt": "2026-01-15T12:05:00Z",
                },
                {
                    "id": "1",
                    "title": "A",
                    "summary": "s",
                    "content": "c",
                    "createdAt": "2026-01-15T12:00:00+00:00",
                },
            ]
        }

        posts = self.source.list_posts()

        self.session.request.assert_called_once_with(
            "GET", "http://localhost:8000/api/posts", timeout=30
        )
        self.assertEqual([p.id for p in posts], ["2", "1"])
        self.assertEqual(posts[1].created_at, CREATED)

    def test_create_post(self):
        self.response.json.return_value = {
            "id": "abc",
            "title": "T",
            "summary": "S",
            "content": "C",
            "createdAt": "2026-01-15T12:00:00Z",
        }

        post = self.source.create_post("T", "S", "C")

        self.session.request.assert_called_once_with(
            "POST",
            "http://localhost:8000/api/posts",
            timeout=30,
            json={"title": "T", "summary": "S", "content": "C"},
        )
        self.assertEqual(post.id, "abc")
        self.assertEqual(post.created_at, CREATED)

    def test_list_posts_skips_malformed_items(self):
        self.response.json.return_value = {
            "posts": [
                {
                    "id": "1",
                    "title": "A",
                    "content": "c",
                    "createdAt": "2026-01-15T12:00:00Z",
                },
                {
                    "id": "2",
                    "title": "B",
                    "summary": "s",
                    "content": "c",
                    "createdAt": "2026-01-15T12:00:00Z",
                },
                "not a post",
            ]
        }

        with self.assertLogs("post_store.sources", level="WARNING"):
            posts = self.source.list_posts()

        self.assertEqual([p.id for p in posts], ["2"])

    def test_delete_post_escapes_id(self):
        self.source.delete_post("a/b c")

        self.session.request.assert_called_once_with(
            "DELETE", "http://localhost:8000/api/posts/a%2Fb%20c", timeout=30
        )

    def test_delete_post(self):
        self.source.delete_post("abc")

        self.session.request.assert_called_once_with(
            "DELETE", "http://localhost:8000/api/posts/abc", timeout=30
        )

    def test_transport_errors_become_backend_errors(self):
        self.session.request.side_effect = requests.ConnectionError("refused")

        with self.assertRaises(BackendError):
            self.source.list_posts()

    def test_http_errors_become_backend_errors(self):
        self.response.raise_for_status.side_effect = requests.HTTPError("500")

        with self.assertRaises(BackendError):
            self.source.create_post("T", "S", "C")

    def test_malformed_payload_becomes_backend_error(self):
        self.response.json.return_value = {"unexpected": []}

        with self.assertRaises(BackendError):
            self.source.list_posts()


if __name__ == "__main__":
    unittest.main()
