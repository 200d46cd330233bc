"""
Configuration for the post store client.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.firebase_constants import POSTS_COLLECTION

BackendKind = Literal["firestore", "rest", "local"]


class Settings(BaseSettings):
    """Environment-backed settings selecting and configuring the backend."""

    model_config = SettingsConfigDict(
        env_prefix="BLOG_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Explicit backend choice; resolved from the other settings when unset.
    backend: Optional[BackendKind] = Field(default=None)

    # Firestore
    firebase_project_id: Optional[str] = Field(default=None)
    firebase_credentials: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "BLOG_FIREBASE_CREDENTIALS", "GOOGLE_APPLICATION_CREDENTIALS"
        ),
    )
    posts_collection: str = Field(default=POSTS_COLLECTION)

    # REST API
    api_base_url: Optional[str] = Field(default=None)
    request_timeout: float = Field(default=30.0)

    def resolved_backend(self) -> BackendKind:
        if self.backend:
            return self.backend
        if self.api_base_url:
            return "rest"
        if self.firebase_project_id:
            return "firestore"
        return "local"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
