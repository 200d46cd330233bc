"""
Error taxonomy for the post store.
"""

from __future__ import annotations


class PostStoreError(Exception):
    """Base class for post store errors."""


class ValidationError(PostStoreError):
    """A draft is missing required fields. Carries per-field messages."""

    def __init__(self, errors: dict[str, str]):
        super().__init__(", ".join(errors.values()))
        self.errors = dict(errors)


class BackendError(PostStoreError):
    """Transport or server fault while talking to the remote backend."""


class DetectionFailure(PostStoreError):
    """The remote backend cannot be initialized; triggers local mode."""
