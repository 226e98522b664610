# SPDX-License-Identifier: MIT
"""Configuration management for the fsprovider server.

This module handles:
- Logging setup
- Environment variable parsing and validation
- Storage root validation
"""

from __future__ import annotations

import logging
import os
import pathlib
import sys
from dataclasses import dataclass
from functools import lru_cache

from .security import check_not_symlink

# ---------- Logging configuration ----------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("fsprovider")

DEFAULT_AUTH_URL = "https://auth.getbee.io/loginV2"
DEFAULT_UID = "custom-fs-user"

_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Runtime settings resolved from the environment."""

    storage_root: pathlib.Path
    public_url_base: str
    host: str = "0.0.0.0"
    port: int = 3000
    require_auth: bool = False
    strict_paths: bool = False
    cors_origins: tuple[str, ...] = ("*",)
    fetch_timeout: float = 300.0
    client_id: str | None = None
    client_secret: str | None = None
    default_uid: str = DEFAULT_UID
    auth_url: str = DEFAULT_AUTH_URL

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)


def _env_str(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_bool(name: str, default: bool = False) -> bool:
    value = _env_str(name)
    if value is None:
        return default
    return value.lower() in _TRUTHY


def _env_number(name: str, default: int | float, kind: type[int] | type[float]) -> int | float:
    value = _env_str(name)
    if value is None:
        return default
    try:
        return kind(value)
    except ValueError as e:
        raise RuntimeError(f"{name} must be a number, got {value!r}") from e


def prepare_storage_root(path_str: str) -> pathlib.Path:
    """Validate and create the storage root directory.

    Security: Rejects a symlinked root so the sandbox boundary is the
    directory the operator configured.

    Args:
        path_str: Raw ``STORAGE_ROOT`` value

    Returns:
        Absolute, resolved root path

    Raises:
        RuntimeError: If the path is a symlink, is not a directory, or cannot be created
    """
    original = pathlib.Path(path_str)
    check_not_symlink(original, "Storage root")

    try:
        root = original.resolve()
    except (ValueError, OSError) as e:
        raise RuntimeError(f"Invalid storage root '{path_str}': {e}") from e

    if not root.exists():
        try:
            root.mkdir(parents=True, exist_ok=True)
            logger.info("Auto-created storage root: %s", root)
        except OSError as e:
            raise RuntimeError(f"Failed to create storage root at {root}: {e}") from e

    if not root.is_dir():
        raise RuntimeError(f"STORAGE_ROOT: storage root is not a directory: {root}")
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read and validate settings from the environment (cached).

    Returns:
        Validated :class:`Settings`

    Raises:
        RuntimeError: If a variable is malformed or the storage root is unusable
    """
    port = int(_env_number("PORT", 3000, int))
    root = prepare_storage_root(_env_str("STORAGE_ROOT") or "./storage")
    public_url_base = _env_str("PUBLIC_URL_BASE") or f"http://localhost:{port}/files"
    origins = tuple(o.strip() for o in (_env_str("CORS_ORIGINS") or "*").split(",") if o.strip())

    return Settings(
        storage_root=root,
        public_url_base=public_url_base.rstrip("/"),
        host=_env_str("HOST") or "0.0.0.0",
        port=port,
        require_auth=_env_bool("REQUIRE_AUTH"),
        strict_paths=_env_bool("STRICT_PATHS"),
        cors_origins=origins or ("*",),
        fetch_timeout=float(_env_number("FETCH_TIMEOUT", 300.0, float)),
        client_id=_env_str("BEEFREE_CLIENT_ID"),
        client_secret=_env_str("BEEFREE_CLIENT_SECRET"),
        default_uid=_env_str("BEEFREE_UID") or DEFAULT_UID,
        auth_url=_env_str("BEEFREE_AUTH_URL") or DEFAULT_AUTH_URL,
    )
