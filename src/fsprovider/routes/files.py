# SPDX-License-Identifier: MIT
"""File-system routes for the editor's storage contract.

A trailing slash selects the directory form of each verb::

    GET    /docs/        list directory
    GET    /docs/a.png   file metadata
    POST   /docs/        create directory
    POST   /docs/a.png   upload {source, conflict_strategy?}
    DELETE /docs/a.png   delete (idempotent)
    PATCH  /docs/a.png   move {new_path, conflict_strategy?}

These routes are registered last so that ``/health``, ``/auth/token`` and the
static ``/files`` mount take precedence.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request

from ..storage.protocol import StorageBackend
from .common import (
    conflict,
    error,
    get_storage,
    handle_storage_errors,
    meta_success,
    not_found,
    read_payload,
    success,
)

router = APIRouter()

_STRATEGIES = ("keep", "replace", "ask")


def _is_directory_request(request: Request, virtual_path: str) -> bool:
    return not virtual_path or request.url.path.endswith("/")


@router.get("/{virtual_path:path}")
@handle_storage_errors
async def read_resource(
    virtual_path: str,
    request: Request,
    storage: StorageBackend = Depends(get_storage),
) -> Any:
    """List a directory or return a single resource's metadata."""
    if _is_directory_request(request, virtual_path):
        entries = await storage.list_directory(virtual_path)
        return success([meta.to_wire() for meta in entries])

    meta = await storage.get_metadata(virtual_path)
    if meta is None:
        return not_found()
    return meta_success(meta)


@router.post("/{virtual_path:path}")
@handle_storage_errors
async def create_resource(
    virtual_path: str,
    request: Request,
    storage: StorageBackend = Depends(get_storage),
) -> Any:
    """Create a directory or upload a file by reference."""
    if _is_directory_request(request, virtual_path):
        return meta_success(await storage.create_directory(virtual_path))

    payload = await read_payload(request)
    source = payload.get("source")
    if not source or not isinstance(source, str):
        return error("Missing source URL", status_code=400)

    # Unknown strategies fall back to overwriting
    strategy = payload.get("conflict_strategy") or "replace"
    if strategy not in _STRATEGIES:
        strategy = "replace"

    result = await storage.save_file(virtual_path, source, strategy)
    if result.conflict:
        return conflict()
    return meta_success(result.meta)


@router.delete("/{virtual_path:path}")
@handle_storage_errors
async def delete_resource(
    virtual_path: str,
    storage: StorageBackend = Depends(get_storage),
) -> Any:
    """Delete a file or directory; succeeds when nothing exists."""
    await storage.delete(virtual_path)
    return success(None)


@router.patch("/{virtual_path:path}")
@handle_storage_errors
async def move_resource(
    virtual_path: str,
    request: Request,
    storage: StorageBackend = Depends(get_storage),
) -> Any:
    """Move a resource into the ``new_path`` directory."""
    payload = await read_payload(request)
    new_path = payload.get("new_path")
    if not new_path or not isinstance(new_path, str):
        return error("Missing new_path", status_code=400)

    strategy = payload.get("conflict_strategy") or ""
    result = await storage.move(virtual_path, new_path, str(strategy))
    if result.conflict:
        return conflict()
    return meta_success(result.meta)
