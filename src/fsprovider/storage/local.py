# SPDX-License-Identifier: MIT
"""Local filesystem storage backend.

Implements the editor's file-system contract on top of a single directory
tree.  Every virtual path is sandboxed through :mod:`fsprovider.security`
before it reaches the disk, and nothing is cached: each call re-stats the
filesystem.

Conflict handling on upload and move is check-then-act.  Two requests racing
for the same target can both observe it as free; file content is still
published atomically (temp file + rename), so readers never see a partial
download.
"""

from __future__ import annotations

import logging
import mimetypes
import pathlib
import posixpath
import shutil
import stat
from contextlib import suppress
from urllib.parse import quote

import aiofiles
import aiofiles.os
import aiofiles.tempfile
import anyio
import httpx

from ..exceptions import PathValidationError, ResourceNotFoundError, UpstreamFetchError
from ..security import ensure_within_root, join_virtual_path, normalize_virtual_path, resolve_within_root
from .protocol import (
    DEFAULT_MIME_TYPE,
    DIRECTORY_MIME_TYPE,
    ConflictStrategy,
    Metadata,
    MetadataExtra,
    WriteResult,
)

logger = logging.getLogger("fsprovider")


class LocalFileSystem:
    """Storage engine rooted at a local directory.

    Args:
        root: Storage root; created if missing.
        public_url_base: Prefix under which the root is served statically,
            e.g. ``http://localhost:3000/files``.
        strict_paths: Reject traversal segments instead of stripping them.
        client: Optional ``httpx.AsyncClient`` for source downloads.  Tests
            pass one built on ``httpx.MockTransport``; when omitted the
            backend creates and owns its own client.
        fetch_timeout: Timeout in seconds for the owned client.
    """

    def __init__(
        self,
        root: str | pathlib.Path,
        public_url_base: str,
        *,
        strict_paths: bool = False,
        client: httpx.AsyncClient | None = None,
        fetch_timeout: float = 300.0,
    ) -> None:
        self._root = pathlib.Path(root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._public_url_base = public_url_base.rstrip("/")
        self._strict = strict_paths
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=fetch_timeout, follow_redirects=True)

    @property
    def root(self) -> pathlib.Path:
        return self._root

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Close the httpx client if this backend created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> LocalFileSystem:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Path helpers
    # ------------------------------------------------------------------

    def _canonical(self, virtual_path: str) -> str:
        return normalize_virtual_path(virtual_path, strict=self._strict)

    def _resolve(self, virtual_path: str) -> pathlib.Path:
        return resolve_within_root(self._root, virtual_path, strict=self._strict)

    def _resolve_entry(self, canonical: str) -> pathlib.Path:
        """Resolve the parent of *canonical* and return the entry itself unresolved.

        A symlink in the root whose target lies outside it can still be
        addressed (and unlinked) this way.
        """
        parent, _, name = canonical.rpartition("/")
        return self._resolve(parent or "/") / name

    async def _next_available(self, virtual_path: str) -> str:
        """Return the first ``<stem>_<N><ext>`` sibling of *virtual_path* that does not exist."""
        parent, _, filename = virtual_path.rpartition("/")
        stem, ext = posixpath.splitext(filename)
        counter = 1
        while True:
            candidate = join_virtual_path(parent or "/", f"{stem}_{counter}{ext}")
            if not await aiofiles.os.path.exists(self._resolve(candidate)):
                return candidate
            counter += 1

    async def _remove(self, local: pathlib.Path) -> None:
        try:
            if await aiofiles.os.path.isdir(local) and not await aiofiles.os.path.islink(local):
                await anyio.to_thread.run_sync(shutil.rmtree, local)
            else:
                await aiofiles.os.remove(local)
        except FileNotFoundError:
            logger.debug("Nothing to remove at %s", local)

    async def _require_metadata(self, virtual_path: str) -> Metadata:
        meta = await self.get_metadata(virtual_path)
        if meta is None:
            raise ResourceNotFoundError(f"Resource not found: {virtual_path}")
        return meta

    # ------------------------------------------------------------------
    # Metadata / listing
    # ------------------------------------------------------------------

    async def get_metadata(self, virtual_path: str) -> Metadata | None:
        canonical = self._canonical(virtual_path)
        return await self._stat_metadata(canonical, self._resolve(canonical))

    async def _stat_metadata(self, canonical: str, local: pathlib.Path) -> Metadata | None:
        try:
            st = await aiofiles.os.stat(local)
        except (FileNotFoundError, NotADirectoryError):
            return None

        is_directory = stat.S_ISDIR(st.st_mode)
        name = local.name
        if is_directory:
            mime_type = DIRECTORY_MIME_TYPE
        else:
            mime_type = mimetypes.guess_type(name)[0] or DEFAULT_MIME_TYPE

        return Metadata(
            mime_type=mime_type,
            name=name,
            path=canonical,
            last_modified=round(st.st_mtime_ns / 1_000_000),
            size=st.st_size,
            public_url=None if is_directory else f"{self._public_url_base}{quote(canonical)}",
            extra=MetadataExtra(can_move=True) if is_directory else MetadataExtra(),
        )

    async def list_directory(self, virtual_path: str) -> list[Metadata]:
        canonical = self._canonical(virtual_path)
        local = self._resolve(canonical)
        if not await aiofiles.os.path.isdir(local):
            raise ResourceNotFoundError(f"Directory not found: {canonical}")

        results: list[Metadata] = []
        prefix = "" if canonical == "/" else canonical
        for name in await aiofiles.os.listdir(local):
            # Entry names are taken verbatim, never re-split
            child = f"{prefix}/{name}"
            child_local = local / name
            try:
                ensure_within_root(self._root, child_local, child)
                meta = await self._stat_metadata(child, child_local)
            except PathValidationError:
                logger.debug("Skipping entry that resolves outside the root: %s", child)
                continue
            # Removed between listdir and stat
            if meta is None:
                continue
            results.append(meta)
        return results

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_directory(self, virtual_path: str) -> Metadata:
        canonical = self._canonical(virtual_path)
        local = self._resolve(canonical)
        await aiofiles.os.makedirs(local, exist_ok=True)
        logger.info("Created directory %s", canonical)
        return await self._require_metadata(canonical)

    async def delete(self, virtual_path: str) -> None:
        canonical = self._canonical(virtual_path)
        if canonical == "/":
            raise PathValidationError("Refusing to delete the storage root")
        await self._remove(self._resolve_entry(canonical))
        logger.info("Deleted %s", canonical)

    async def save_file(
        self,
        virtual_path: str,
        source_url: str,
        conflict_strategy: ConflictStrategy = "replace",
    ) -> WriteResult:
        canonical = self._canonical(virtual_path)
        if canonical == "/":
            raise PathValidationError("Cannot store a file at the storage root")
        local = self._resolve(canonical)

        if await aiofiles.os.path.exists(local):
            if conflict_strategy == "ask":
                existing = await self._require_metadata(canonical)
                logger.info("Upload conflict at %s", canonical)
                return WriteResult(meta=existing, conflict=True)
            if conflict_strategy == "keep":
                canonical = await self._next_available(canonical)
                local = self._resolve(canonical)
            # Any other strategy overwrites in place

        await aiofiles.os.makedirs(local.parent, exist_ok=True)
        size = await self._download(source_url, local)
        logger.info("Saved %s (%d bytes) from %s", canonical, size, source_url)
        return WriteResult(meta=await self._require_metadata(canonical))

    async def _download(self, source_url: str, target: pathlib.Path) -> int:
        """Stream *source_url* into a temp file next to *target*, then rename it into place."""
        tmp_path: pathlib.Path | None = None
        written = 0
        try:
            async with self._client.stream("GET", source_url) as response:
                if not response.is_success:
                    raise UpstreamFetchError(
                        f"Failed to download file from {source_url}: HTTP {response.status_code}"
                    )
                async with aiofiles.tempfile.NamedTemporaryFile(
                    "wb", dir=target.parent, prefix=f".{target.name}.", suffix=".part", delete=False
                ) as tmp:
                    tmp_path = pathlib.Path(tmp.name)
                    async for chunk in response.aiter_bytes():
                        await tmp.write(chunk)
                        written += len(chunk)
            await aiofiles.os.replace(tmp_path, target)
            tmp_path = None
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise UpstreamFetchError(f"Failed to download file from {source_url}: {e}") from e
        finally:
            if tmp_path is not None:
                with suppress(FileNotFoundError):
                    await aiofiles.os.remove(tmp_path)
        return written

    async def move(self, virtual_path: str, destination_dir: str, conflict_strategy: str = "") -> WriteResult:
        """Move *virtual_path* into *destination_dir*, keeping its base name.

        When the target name is taken, ``keep`` picks the next free ``_N``
        name and ``replace`` overwrites it; any other strategy reports a
        conflict and leaves both sides untouched.  ``replace`` only overwrites
        a target of the same kind (file over file, directory over directory)
        and never a directory that contains the source; both cases raise
        :class:`PathValidationError` before anything is removed.
        """
        source = self._canonical(virtual_path)
        if source == "/":
            raise PathValidationError("Cannot move the storage root")
        source_local = self._resolve(source)
        if not await aiofiles.os.path.exists(source_local):
            raise ResourceNotFoundError(f"Resource not found: {source}")

        name = source.rsplit("/", 1)[-1]
        destination = join_virtual_path(self._canonical(destination_dir), name)
        if destination == source:
            return WriteResult(meta=await self._require_metadata(source))
        if destination.startswith(source + "/"):
            raise PathValidationError(f"Cannot move {source} into itself")
        dest_local = self._resolve(destination)

        if await aiofiles.os.path.exists(dest_local):
            if conflict_strategy == "keep":
                destination = await self._next_available(destination)
                dest_local = self._resolve(destination)
            elif conflict_strategy == "replace":
                if source.startswith(destination + "/"):
                    raise PathValidationError(f"Cannot replace {destination}: it contains {source}")
                source_is_dir = await aiofiles.os.path.isdir(source_local)
                if source_is_dir != await aiofiles.os.path.isdir(dest_local):
                    raise PathValidationError(
                        f"Cannot replace {destination} with {source}: one is a file and the other a directory"
                    )
                # rename() only overwrites file-over-file
                if source_is_dir:
                    await self._remove(dest_local)
            else:
                logger.info("Move conflict: %s -> %s", source, destination)
                return WriteResult(meta=await self._require_metadata(source), conflict=True)

        await aiofiles.os.makedirs(dest_local.parent, exist_ok=True)
        await aiofiles.os.replace(source_local, dest_local)
        logger.info("Moved %s -> %s", source, destination)
        return WriteResult(meta=await self._require_metadata(destination))
