"""
Startup wiring: pick the configured source, detect availability once and
load the initial post list.
"""

from __future__ import annotations

import logging
from typing import Optional

from post_store.config import Settings, get_settings
from post_store.controller import Confirmer, PostStoreController, always_confirm
from post_store.detector import BackendAvailabilityDetector
from post_store.sources import FirestorePostSource, PostSource, RestPostSource

logger = logging.getLogger(__name__)


def make_source(settings: Settings) -> Optional[PostSource]:
    """
    Build the source selected by settings, or None for local mode.

    May raise DetectionFailure; the detector turns that into local mode.
    """
    backend = settings.resolved_backend()
    if backend == "rest":
        return RestPostSource(
            settings.api_base_url or "", timeout=settings.request_timeout
        )
    if backend == "firestore":
        return FirestorePostSource.from_settings(
            settings.firebase_project_id,
            credentials_path=settings.firebase_credentials,
            collection=settings.posts_collection,
        )
    return None


def build_controller(
    settings: Settings | None = None,
    confirm: Confirmer = always_confirm,
) -> PostStoreController:
    """
    Create a controller for this session and run the initial fetch.
    """
    settings = settings or get_settings()
    detector = BackendAvailabilityDetector(lambda: make_source(settings))
    controller = PostStoreController.from_detector(detector, confirm=confirm)
    if controller.backend_available:
        controller.list_posts()
    else:
        logger.warning("Running in local mode. Posts will not be saved to a backend.")
    return controller
