"""Version helpers for fmcsadmin."""

from __future__ import annotations

from functools import lru_cache
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as metadata_version

from . import __version__
from .constants import PACKAGE_NAME


@lru_cache()
def cli_version() -> str:
    """The package version, falling back to the installed distribution metadata."""
    if __version__.strip():
        return __version__
    try:
        return metadata_version(PACKAGE_NAME)
    except PackageNotFoundError:
        return "0.0.0"


USER_AGENT = f"{PACKAGE_NAME}/{cli_version()}"
