# SPDX-License-Identifier: MIT
"""Path sandboxing for caller-supplied virtual paths.

Every virtual path reaching the storage engine goes through
:func:`resolve_within_root` before any filesystem call.  Traversal segments
that would climb above the root are stripped by default; with ``strict=True``
they are rejected instead.
"""

from __future__ import annotations

import logging
import pathlib

from .exceptions import PathValidationError

logger = logging.getLogger("fsprovider")


def normalize_virtual_path(virtual_path: str, *, strict: bool = False) -> str:
    """Return the canonical form of *virtual_path*.

    The canonical form always starts with ``/``, never ends with one (except
    for the root itself) and contains no ``.`` or ``..`` segments.
    Backslashes are treated as separators.

    Examples::

        >>> normalize_virtual_path("docs/a.png")
        '/docs/a.png'
        >>> normalize_virtual_path("../../etc/passwd")
        '/etc/passwd'
        >>> normalize_virtual_path("docs/../../")
        '/'

    Args:
        virtual_path: Raw path as received from the caller
        strict: Raise instead of silently dropping segments that escape the root

    Returns:
        Canonical virtual path

    Raises:
        PathValidationError: If the path contains a NUL byte, or escapes the
            root while ``strict`` is set
    """
    if "\x00" in virtual_path:
        raise PathValidationError("Invalid path: contains NUL byte")

    parts: list[str] = []
    for segment in virtual_path.replace("\\", "/").split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if parts:
                parts.pop()
            elif strict:
                raise PathValidationError(f"Invalid path: path traversal detected: {virtual_path}")
            else:
                logger.debug("Dropping traversal segment in %r", virtual_path)
            continue
        parts.append(segment)
    return "/" + "/".join(parts)


def join_virtual_path(parent: str, name: str) -> str:
    """Join a child *name* onto a virtual *parent* directory."""
    return normalize_virtual_path(f"{parent}/{name}")


def resolve_within_root(root: pathlib.Path, virtual_path: str, *, strict: bool = False) -> pathlib.Path:
    """Map a virtual path to a real path guaranteed to be inside *root*.

    The returned path is not symlink-resolved (so that a symlink inside the
    root can itself be deleted or moved), but its fully resolved target must
    still lie within the root.

    Args:
        root: Absolute, resolved storage root
        virtual_path: Caller-supplied path
        strict: See :func:`normalize_virtual_path`

    Returns:
        Real filesystem path under *root*

    Raises:
        PathValidationError: If the path is invalid or escapes the root via a symlink
    """
    canonical = normalize_virtual_path(virtual_path, strict=strict)
    candidate = root.joinpath(*canonical.split("/")[1:]) if canonical != "/" else root
    ensure_within_root(root, candidate, virtual_path)
    return candidate


def ensure_within_root(root: pathlib.Path, candidate: pathlib.Path, virtual_path: str) -> None:
    """Raise ``PathValidationError`` if *candidate* resolves outside *root*."""
    # Security: symlinks inside the root must not lead outside of it
    try:
        candidate.resolve().relative_to(root)
    except ValueError as e:
        raise PathValidationError(f"Invalid path: resolves outside storage root: {virtual_path}") from e


def check_not_symlink(path: pathlib.Path, description: str) -> None:
    """Raise ``RuntimeError`` if *path* exists and is a symbolic link.

    Args:
        path: Path to check
        description: Human-readable name used in the error message
    """
    try:
        if path.is_symlink():
            raise RuntimeError(f"{description} cannot be a symbolic link: {path}")
    except PermissionError as e:
        raise RuntimeError(f"Cannot validate {description}: permission denied for {path}") from e
