# SPDX-License-Identifier: MIT
"""Editor authentication endpoints and the credential gate.

The editor obtains its session token through ``POST /auth/token``, which
forwards the configured client credentials to the vendor's login service.
Validating the credentials the editor sends back on file-system calls is
the identity provider's job; this module only checks that a ``Basic``
header is present.
"""

import logging
from collections.abc import Awaitable, Callable

import httpx
from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from ..config import Settings
from .common import error, read_payload

logger = logging.getLogger("fsprovider")

router = APIRouter()

# Reachable without an Authorization header
PUBLIC_PATHS = frozenset({"/health", "/auth/token"})
STATIC_PREFIX = "/files/"


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.post("/auth/token")
async def issue_token(request: Request) -> Response:
    """Exchange the server's client credentials for an editor token."""
    settings: Settings = request.app.state.settings
    client: httpx.AsyncClient = request.app.state.http_client

    payload = await read_payload(request)
    uid = payload.get("uid") or settings.default_uid

    if not settings.has_credentials:
        logger.error("Missing Beefree credentials")
        return JSONResponse(
            status_code=500,
            content={"error": "Server configuration error", "details": "Missing Beefree credentials"},
        )

    logger.info("Authenticating user: %s", uid)
    try:
        resp = await client.post(
            settings.auth_url,
            json={"client_id": settings.client_id, "client_secret": settings.client_secret, "uid": uid},
            headers={"Accept": "application/json"},
        )
    except httpx.HTTPError as e:
        logger.error("Authentication error: %s", e)
        return JSONResponse(status_code=500, content={"error": "Authentication failed", "details": str(e)})

    if not resp.is_success:
        logger.error("Beefree auth error: %s", resp.text)
        return JSONResponse(
            status_code=resp.status_code,
            content={"error": "Authentication failed", "details": resp.text},
        )

    logger.info("Authentication successful")
    try:
        return JSONResponse(content=resp.json())
    except ValueError:
        logger.error("Beefree auth returned a non-JSON body")
        return JSONResponse(
            status_code=502,
            content={"error": "Authentication failed", "details": "Invalid response from auth service"},
        )


def has_basic_credentials(request: Request) -> bool:
    return request.headers.get("authorization", "").startswith("Basic ")


async def credential_gate(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """HTTP middleware enforcing a ``Basic`` Authorization header on storage routes.

    Enforcement is opt-in via ``REQUIRE_AUTH``; otherwise a missing header is
    only logged.
    """
    path = request.url.path
    if path in PUBLIC_PATHS or path.startswith(STATIC_PREFIX) or request.method == "OPTIONS":
        return await call_next(request)

    if not has_basic_credentials(request):
        settings: Settings = request.app.state.settings
        if settings.require_auth:
            return error("Missing Authorization header", status_code=401)
        logger.debug("No Basic credentials on %s %s", request.method, request.url.path)
    return await call_next(request)
