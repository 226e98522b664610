# SPDX-License-Identifier: MIT
"""Storage backend factory.

Builds a :class:`LocalFileSystem` from :class:`~fsprovider.config.Settings`.
Each call returns a fresh, independently configured instance; the server
creates one per application and closes it on shutdown.
"""

from __future__ import annotations

import logging

from ..config import Settings, get_settings
from .local import LocalFileSystem
from .protocol import StorageBackend

logger = logging.getLogger("fsprovider")


def create_storage(settings: Settings | None = None) -> StorageBackend:
    """Return a new storage backend for *settings* (defaults to the environment).

    Configuration
    -------------
    ``STORAGE_ROOT``
        Directory holding all assets.
    ``PUBLIC_URL_BASE``
        Prefix used to build ``public-url`` for files.
    ``STRICT_PATHS``
        Reject traversal segments instead of stripping them.
    ``FETCH_TIMEOUT``
        Timeout in seconds for source downloads.
    """
    settings = settings or get_settings()
    logger.debug("Creating local storage at %s (public base %s)", settings.storage_root, settings.public_url_base)
    return LocalFileSystem(
        settings.storage_root,
        settings.public_url_base,
        strict_paths=settings.strict_paths,
        fetch_timeout=settings.fetch_timeout,
    )
