"""
Startup check deciding whether a remote post source is usable.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from post_store.errors import DetectionFailure
from post_store.sources import PostSource

logger = logging.getLogger(__name__)

SourceFactory = Callable[[], Optional[PostSource]]


class BackendAvailabilityDetector:
    """
    Resolves backend availability exactly once.

    The factory builds the configured source (or returns None when no backend
    is configured). Any failure while building or checking it selects local
    mode instead of propagating.
    """

    def __init__(self, source_factory: SourceFactory):
        self._source_factory = source_factory
        self._available: Optional[bool] = None
        self.source: Optional[PostSource] = None

    def detect(self) -> bool:
        if self._available is not None:
            return self._available

        try:
            source = self._source_factory()
            if source is None:
                raise DetectionFailure("No backend configured")
            source.check_configured()
        except DetectionFailure as e:
            logger.warning(f"Backend not available, running in local mode: {e}")
            self.source = None
            self._available = False
        except Exception as e:
            logger.warning(
                f"Backend initialization failed, running in local mode: {e}"
            )
            self.source = None
            self._available = False
        else:
            logger.info("Backend appears to be available")
            self.source = source
            self._available = True
        return self._available
