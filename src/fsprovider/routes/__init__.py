# SPDX-License-Identifier: MIT
"""HTTP routes for fsprovider."""

from .auth import credential_gate
from .auth import router as auth_router
from .files import router as files_router

__all__ = ["auth_router", "credential_gate", "files_router"]
