# SPDX-License-Identifier: MIT
"""FastAPI application for the fsprovider server.

Wires the storage engine, the editor's file-system routes, the token
exchange endpoint and a static mount that serves stored files at their
public URLs.

Run with ``fsprovider`` (console script) or ``python -m fsprovider.server``.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from . import __version__
from .config import LOG_LEVEL, Settings, get_settings
from .routes import auth_router, credential_gate, files_router
from .storage import StorageBackend, create_storage

logger = logging.getLogger("fsprovider")

STATIC_MOUNT = "/files"


def create_app(
    settings: Settings | None = None,
    storage: StorageBackend | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Runtime settings.  Defaults to :func:`get_settings`.
        storage: Storage backend.  Defaults to one built from *settings*.
        http_client: Client used for the token exchange.  Defaults to a new
            ``httpx.AsyncClient``.

    Returns:
        Configured FastAPI app.  The storage backend and HTTP client are
        closed when the app shuts down.
    """
    settings = settings or get_settings()
    storage = storage or create_storage(settings)
    http_client = http_client or httpx.AsyncClient(timeout=30.0)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("fsprovider v%s serving %s", __version__, settings.storage_root)
        logger.info("Public URL base: %s", settings.public_url_base)
        if not settings.has_credentials:
            logger.warning("Beefree credentials missing. /auth/token will fail.")
        try:
            yield
        finally:
            await storage.aclose()
            await http_client.aclose()
            logger.info("fsprovider shutting down")

    app = FastAPI(title="fsprovider", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.storage = storage
    app.state.http_client = http_client

    # CORS must wrap the credential gate
    app.middleware("http")(credential_gate)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Order matters: the file routes catch every remaining path
    app.mount(STATIC_MOUNT, StaticFiles(directory=settings.storage_root), name="files")
    app.include_router(auth_router)
    app.include_router(files_router)
    return app


def main() -> None:
    """Run the server with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
