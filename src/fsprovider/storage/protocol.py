# SPDX-License-Identifier: MIT
"""Storage backend protocol and shared types.

Defines the interface the HTTP layer talks to and the metadata record that
is returned to the editor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, Field, field_validator

ConflictStrategy = Literal["keep", "replace", "ask"]
"""How a write reacts when its target already exists."""

DIRECTORY_MIME_TYPE = "application/directory"
DEFAULT_MIME_TYPE = "application/octet-stream"


class MetadataExtra(BaseModel, frozen=True, populate_by_name=True):
    """Extension bag of a metadata record.  Only ``can-move`` is ever set."""

    can_move: bool | None = Field(default=None, alias="can-move")


class Metadata(BaseModel, frozen=True, populate_by_name=True):
    """Wire representation of a file or directory under the storage root."""

    mime_type: str = Field(alias="mime-type")
    name: str
    path: str
    last_modified: int = Field(alias="last-modified")
    size: int
    permissions: str = "rw"
    public_url: str | None = Field(default=None, alias="public-url")
    thumbnail: str | None = None
    extra: MetadataExtra = Field(default_factory=MetadataExtra)

    @field_validator("path")
    @classmethod
    def _validate_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"Virtual path must start with '/': {v!r}")
        return v

    @property
    def is_directory(self) -> bool:
        return self.mime_type == DIRECTORY_MIME_TYPE

    def to_wire(self) -> dict[str, Any]:
        """Serialise with hyphenated keys; ``public-url`` is omitted when unset."""
        data = self.model_dump(by_alias=True, exclude={"public_url", "extra"})
        if self.public_url is not None:
            data["public-url"] = self.public_url
        data["extra"] = self.extra.model_dump(by_alias=True, exclude_none=True)
        return data


@dataclass(frozen=True)
class WriteResult:
    """Outcome of an upload or move.

    When ``conflict`` is set nothing was written and ``meta`` describes the
    resource the caller has to decide about.
    """

    meta: Metadata
    conflict: bool = False


@runtime_checkable
class StorageBackend(Protocol):
    """Protocol for the storage engine behind the editor's REST contract.

    All paths are virtual paths relative to the backend's storage root.
    Implementations handle path-traversal prevention internally.
    """

    async def get_metadata(self, virtual_path: str) -> Metadata | None:
        """Describe a resource, or return ``None`` if it does not exist."""
        ...

    async def list_directory(self, virtual_path: str) -> list[Metadata]:
        """List the immediate children of a directory.

        Raises:
            ResourceNotFoundError: If the directory does not exist.
        """
        ...

    async def create_directory(self, virtual_path: str) -> Metadata:
        """Create a directory and any missing parents (idempotent)."""
        ...

    async def delete(self, virtual_path: str) -> None:
        """Remove a file or directory tree; missing paths are ignored."""
        ...

    async def save_file(
        self,
        virtual_path: str,
        source_url: str,
        conflict_strategy: ConflictStrategy = "replace",
    ) -> WriteResult:
        """Download *source_url* and store it at *virtual_path*.

        Raises:
            UpstreamFetchError: If the source cannot be retrieved.
        """
        ...

    async def move(self, virtual_path: str, destination_dir: str, conflict_strategy: str = "") -> WriteResult:
        """Relocate a resource into *destination_dir*, keeping its name.

        Raises:
            ResourceNotFoundError: If the source does not exist.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources held by the backend."""
        ...
