# SPDX-License-Identifier: MIT
"""Integration tests for the file-system HTTP routes."""

import httpx
import pytest

from tests.conftest import DOWN_URL, PNG_BYTES, PNG_URL

pytestmark = pytest.mark.integration

NOT_FOUND = {"code": 3200, "message": "Resource Not Found", "details": "Resource does not exist"}
CONFLICT = {"code": 3400, "message": "Resource Already Present"}


# ==================== GET ====================


async def test_list_root_empty(client: httpx.AsyncClient):
    resp = await client.get("/")

    assert resp.status_code == 200
    assert resp.json() == {"status": "success", "data": []}


async def test_list_directory(client: httpx.AsyncClient, storage_root):
    (storage_root / "docs" / "sub").mkdir(parents=True)
    (storage_root / "docs" / "a.png").write_bytes(b"png")

    resp = await client.get("/docs/")

    assert resp.status_code == 200
    data = resp.json()["data"]
    by_name = {entry["name"]: entry for entry in data}
    assert set(by_name) == {"a.png", "sub"}
    assert by_name["sub"]["mime-type"] == "application/directory"
    assert by_name["sub"]["extra"] == {"can-move": True}
    assert "public-url" not in by_name["sub"]
    assert by_name["a.png"]["public-url"] == "http://test/files/docs/a.png"
    assert by_name["a.png"]["thumbnail"] is None


async def test_list_missing_directory_is_404(client: httpx.AsyncClient):
    resp = await client.get("/missing/")

    assert resp.status_code == 404
    assert resp.json() == NOT_FOUND


async def test_get_file_metadata(client: httpx.AsyncClient, storage_root):
    (storage_root / "a.txt").write_text("hello")

    resp = await client.get("/a.txt")

    assert resp.status_code == 200
    meta = resp.json()["data"]["meta"]
    assert meta["path"] == "/a.txt"
    assert meta["size"] == 5
    assert meta["mime-type"] == "text/plain"
    assert meta["permissions"] == "rw"
    assert isinstance(meta["last-modified"], int)


async def test_get_missing_is_404(client: httpx.AsyncClient):
    resp = await client.get("/nope.png")

    assert resp.status_code == 404
    assert resp.json() == NOT_FOUND


async def test_get_percent_encoded_name(client: httpx.AsyncClient, storage_root):
    (storage_root / "my file.png").write_bytes(b"x")

    resp = await client.get("/my%20file.png")

    assert resp.status_code == 200
    assert resp.json()["data"]["meta"]["name"] == "my file.png"


# ==================== POST ====================


async def test_create_directory(client: httpx.AsyncClient, storage_root):
    resp = await client.post("/docs/")

    assert resp.status_code == 200
    meta = resp.json()["data"]["meta"]
    assert meta["path"] == "/docs"
    assert meta["mime-type"] == "application/directory"
    assert (storage_root / "docs").is_dir()

    again = await client.post("/docs/")
    assert again.status_code == 200


async def test_upload_and_fetch_public_url(client: httpx.AsyncClient):
    resp = await client.post("/docs/a.png", json={"source": PNG_URL})

    assert resp.status_code == 200
    meta = resp.json()["data"]["meta"]
    assert meta["path"] == "/docs/a.png"
    assert meta["size"] == len(PNG_BYTES)

    asset = await client.get(meta["public-url"])
    assert asset.status_code == 200
    assert asset.content == PNG_BYTES


async def test_upload_form_encoded(client: httpx.AsyncClient, storage_root):
    resp = await client.post("/a.png", data={"source": PNG_URL, "conflict_strategy": "replace"})

    assert resp.status_code == 200
    assert (storage_root / "a.png").read_bytes() == PNG_BYTES


async def test_upload_conflict_ask(client: httpx.AsyncClient, storage_root):
    (storage_root / "a.png").write_bytes(b"old")

    resp = await client.post("/a.png", json={"source": PNG_URL, "conflict_strategy": "ask"})

    assert resp.status_code == 200
    assert resp.json() == CONFLICT
    assert (storage_root / "a.png").read_bytes() == b"old"


async def test_upload_keep(client: httpx.AsyncClient, storage_root):
    (storage_root / "a.png").write_bytes(b"old")

    resp = await client.post("/a.png", json={"source": PNG_URL, "conflict_strategy": "keep"})

    assert resp.json()["data"]["meta"]["path"] == "/a_1.png"


async def test_upload_unknown_strategy_replaces(client: httpx.AsyncClient, storage_root):
    (storage_root / "a.png").write_bytes(b"old")

    resp = await client.post("/a.png", json={"source": PNG_URL, "conflict_strategy": "whatever"})

    assert resp.status_code == 200
    assert (storage_root / "a.png").read_bytes() == PNG_BYTES


async def test_upload_missing_source(client: httpx.AsyncClient):
    resp = await client.post("/a.png", json={})

    assert resp.status_code == 400
    assert resp.json() == {"status": "error", "message": "Missing source URL"}


async def test_upload_malformed_json(client: httpx.AsyncClient):
    resp = await client.post("/a.png", content=b"{not json", headers={"content-type": "application/json"})

    assert resp.status_code == 400


async def test_upload_upstream_failure(client: httpx.AsyncClient, storage_root):
    resp = await client.post("/a.png", json={"source": DOWN_URL})

    assert resp.status_code == 500
    body = resp.json()
    assert body["status"] == "error"
    assert "Failed to download" in body["message"]
    assert not (storage_root / "a.png").exists()


# ==================== DELETE ====================


async def test_delete_idempotent(client: httpx.AsyncClient, storage_root):
    (storage_root / "a.txt").write_text("x")

    for _ in range(2):
        resp = await client.delete("/a.txt")
        assert resp.status_code == 200
        assert resp.json() == {"status": "success", "data": None}

    assert not (storage_root / "a.txt").exists()


async def test_delete_directory(client: httpx.AsyncClient, storage_root):
    (storage_root / "docs" / "deep").mkdir(parents=True)

    resp = await client.delete("/docs/")

    assert resp.status_code == 200
    assert not (storage_root / "docs").exists()


async def test_delete_root_rejected(client: httpx.AsyncClient, storage_root):
    resp = await client.delete("/")

    assert resp.status_code == 400
    assert resp.json()["status"] == "error"
    assert storage_root.is_dir()


# ==================== PATCH ====================


async def test_move(client: httpx.AsyncClient, storage_root):
    (storage_root / "docs").mkdir()
    (storage_root / "docs" / "a.png").write_bytes(b"x")

    resp = await client.patch("/docs/a.png", json={"new_path": "/"})

    assert resp.status_code == 200
    assert resp.json()["data"]["meta"]["path"] == "/a.png"
    assert (await client.get("/docs/a.png")).status_code == 404


async def test_move_conflict_without_strategy(client: httpx.AsyncClient, storage_root):
    (storage_root / "docs").mkdir()
    (storage_root / "docs" / "a.png").write_bytes(b"new")
    (storage_root / "a.png").write_bytes(b"old")

    resp = await client.patch("/docs/a.png", json={"new_path": "/"})

    assert resp.status_code == 200
    assert resp.json() == CONFLICT
    assert (storage_root / "docs" / "a.png").exists()


async def test_move_missing_new_path(client: httpx.AsyncClient):
    resp = await client.patch("/a.png", json={})

    assert resp.status_code == 400
    assert resp.json() == {"status": "error", "message": "Missing new_path"}


async def test_move_missing_source_is_404(client: httpx.AsyncClient):
    resp = await client.patch("/nope.png", json={"new_path": "/docs"})

    assert resp.status_code == 404
    assert resp.json() == NOT_FOUND


async def test_move_replace_over_parent_is_400(client: httpx.AsyncClient, storage_root):
    (storage_root / "a").mkdir()
    (storage_root / "a" / "a").write_text("precious")

    resp = await client.patch("/a/a", json={"new_path": "/", "conflict_strategy": "replace"})

    assert resp.status_code == 400
    assert resp.json()["status"] == "error"
    assert (storage_root / "a" / "a").read_text() == "precious"


async def test_delete_escaping_symlink(client: httpx.AsyncClient, storage_root, tmp_path):
    outside = tmp_path / "outside.txt"
    outside.write_text("secret")
    (storage_root / "escape.txt").symlink_to(outside)

    resp = await client.delete("/escape.txt")

    assert resp.status_code == 200
    assert not (storage_root / "escape.txt").is_symlink()
    assert outside.read_text() == "secret"


# ==================== Errors ====================


async def test_unexpected_error_is_500(client: httpx.AsyncClient, fs, mocker):
    mocker.patch.object(fs, "get_metadata", side_effect=PermissionError("denied"))

    resp = await client.get("/a.png")

    assert resp.status_code == 500
    assert resp.json() == {"status": "error", "message": "denied"}


# ==================== Scenario ====================


async def test_editor_scenario(client: httpx.AsyncClient):
    assert (await client.post("/docs/")).json()["data"]["meta"]["extra"] == {"can-move": True}

    first = await client.post("/docs/a.png", json={"source": PNG_URL, "conflict_strategy": "replace"})
    assert first.json()["data"]["meta"]["public-url"].endswith("/docs/a.png")

    second = await client.post("/docs/a.png", json={"source": PNG_URL, "conflict_strategy": "keep"})
    assert second.json()["data"]["meta"]["path"] == "/docs/a_1.png"

    listing = await client.get("/docs/")
    assert len(listing.json()["data"]) == 2

    moved = await client.patch("/docs/a.png", json={"new_path": "/", "conflict_strategy": "replace"})
    assert moved.json()["data"]["meta"]["path"] == "/a.png"
    assert (await client.get("/docs/a.png")).status_code == 404
