# SPDX-License-Identifier: MIT
"""Response envelopes and error mapping shared by the HTTP routes.

Envelopes understood by the editor::

    {"status": "success", "data": ...}                                   200
    {"code": 3200, "message": "Resource Not Found", "details": "..."}    404
    {"code": 3400, "message": "Resource Already Present"}                200
    {"status": "error", "message": "..."}                                4xx/500
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, ParamSpec

from fastapi import Request
from fastapi.responses import JSONResponse

from ..exceptions import PathValidationError, ResourceNotFoundError
from ..storage.protocol import Metadata, StorageBackend

logger = logging.getLogger("fsprovider")

NOT_FOUND_CODE = 3200
CONFLICT_CODE = 3400

P = ParamSpec("P")


def success(data: Any = None) -> dict[str, Any]:
    return {"status": "success", "data": data}


def meta_success(meta: Metadata) -> dict[str, Any]:
    return success({"meta": meta.to_wire()})


def not_found() -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"code": NOT_FOUND_CODE, "message": "Resource Not Found", "details": "Resource does not exist"},
    )


def conflict() -> JSONResponse:
    # Handled condition, reported with 200
    return JSONResponse(status_code=200, content={"code": CONFLICT_CODE, "message": "Resource Already Present"})


def error(message: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "error", "message": message})


def get_storage(request: Request) -> StorageBackend:
    """FastAPI dependency returning the application's storage backend."""
    return request.app.state.storage


async def read_payload(request: Request) -> dict[str, Any]:
    """Parse a JSON or form-encoded request body into a dict.

    Empty or malformed bodies yield an empty dict so that handlers can report
    the missing field themselves.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}

    body = await request.body()
    if not body:
        return {}
    try:
        payload = await request.json()
    except ValueError:
        logger.debug("Ignoring malformed JSON body on %s", request.url.path)
        return {}
    return payload if isinstance(payload, dict) else {}


def handle_storage_errors(
    func: Callable[P, Awaitable[Any]],
) -> Callable[P, Awaitable[Any]]:
    """Translate storage exceptions raised by a route into response envelopes."""

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> Any:
        try:
            return await func(*args, **kwargs)
        except ResourceNotFoundError:
            return not_found()
        except PathValidationError as e:
            logger.warning("Rejected path: %s", e)
            return error(str(e), status_code=400)
        except Exception as e:
            logger.exception("Request failed")
            return error(str(e) or e.__class__.__name__)

    return wrapper
