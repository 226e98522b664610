# SPDX-License-Identifier: MIT
"""fsprovider: custom file-system provider backed by a local directory tree."""

__version__ = "0.1.0"
