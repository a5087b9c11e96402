"""Library version detection.

Provides a single public function, ``get_app_version()``, which reads the
installed distribution metadata and falls back to ``"vdev"`` when running
from an uninstalled source tree.
"""

from __future__ import annotations

from importlib import metadata
from typing import Optional

__all__ = ["DISTRIBUTION_NAME", "get_app_version"]

DISTRIBUTION_NAME = "blockdoc-toolkit"

_CACHED_VERSION: Optional[str] = None


def get_app_version() -> str:
    """Return the version string prefixed with ``v`` (e.g. ``v0.3.0``)."""
    global _CACHED_VERSION
    if _CACHED_VERSION:
        return _CACHED_VERSION

    try:
        text = metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        text = ""

    _CACHED_VERSION = f"v{text}" if text else "vdev"
    return _CACHED_VERSION
