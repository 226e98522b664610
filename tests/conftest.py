# SPDX-License-Identifier: MIT
"""Shared pytest fixtures for fsprovider tests."""

import pathlib

import httpx
import pytest

from fsprovider.config import Settings
from fsprovider.server import create_app
from fsprovider.storage.local import LocalFileSystem

PUBLIC_BASE = "http://test/files"
PNG_URL = "https://cdn.example.com/a.png"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(range(256)) * 4  # 1032 bytes
DOWN_URL = "https://down.example.com/a.png"


@pytest.fixture
def storage_root(tmp_path: pathlib.Path) -> pathlib.Path:
    """Create an empty storage root."""
    root = tmp_path / "storage"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def sources() -> dict[str, bytes]:
    """Remote files served by the fake source transport, keyed by URL."""
    return {PNG_URL: PNG_BYTES}


@pytest.fixture
def source_client(sources: dict[str, bytes]) -> httpx.AsyncClient:
    """httpx client whose transport serves ``sources`` and 404s everything else."""

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url.startswith("https://down.example.com"):
            raise httpx.ConnectError("connection refused", request=request)
        if url in sources:
            return httpx.Response(200, content=sources[url])
        return httpx.Response(404, text="not found")

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
async def fs(storage_root: pathlib.Path, source_client: httpx.AsyncClient):
    """Storage engine rooted at ``storage_root`` with faked downloads."""
    backend = LocalFileSystem(storage_root, PUBLIC_BASE, client=source_client)
    yield backend
    await source_client.aclose()


@pytest.fixture
def settings(storage_root: pathlib.Path) -> Settings:
    return Settings(storage_root=storage_root, public_url_base=PUBLIC_BASE)


@pytest.fixture
async def client(settings: Settings, fs: LocalFileSystem):
    """Async test client talking to the ASGI app in-process."""
    app = create_app(settings, storage=fs, http_client=httpx.AsyncClient(transport=httpx.MockTransport(_no_network)))
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    await app.state.http_client.aclose()


def _no_network(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"Unexpected outbound request: {request.url}")
