# SPDX-License-Identifier: MIT
"""Exception types raised by the storage engine.

The HTTP layer in :mod:`fsprovider.routes` is the only place these are mapped
to status codes and response envelopes.
"""


class FileSystemProviderError(Exception):
    """Base class for all provider errors."""


class ResourceNotFoundError(FileSystemProviderError):
    """The virtual path does not exist for an operation that requires it."""


class UpstreamFetchError(FileSystemProviderError):
    """The source URL of an upload could not be retrieved."""


class PathValidationError(FileSystemProviderError, ValueError):
    """A virtual path cannot be mapped safely into the storage root."""
