# SPDX-License-Identifier: MIT
"""Storage engine for fsprovider.

The storage layer maps the editor's virtual paths onto a single directory
tree and implements listing, metadata, upload-by-URL, move and delete.

Usage::

    from fsprovider.storage import LocalFileSystem

    async with LocalFileSystem("./storage", "http://localhost:3000/files") as fs:
        await fs.create_directory("/docs")
        result = await fs.save_file("/docs/a.png", "https://example.com/a.png", "keep")
"""

from .factory import create_storage
from .local import LocalFileSystem
from .protocol import ConflictStrategy, Metadata, MetadataExtra, StorageBackend, WriteResult

__all__ = [
    "ConflictStrategy",
    "LocalFileSystem",
    "Metadata",
    "MetadataExtra",
    "StorageBackend",
    "WriteResult",
    "create_storage",
]
