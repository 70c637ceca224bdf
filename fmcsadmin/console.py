"""Console helpers for fmcsadmin.

Result lines and ``fmcsadmin:`` notices go to stdout, error summaries to
stderr. Debug traces only appear with ``--verbose`` and are redacted.
"""

from __future__ import annotations

import sys

from .utils import redact

PREFIX = "fmcsadmin: "

_VERBOSE = False


def configure_console(*, verbose: bool = False) -> None:
    global _VERBOSE
    _VERBOSE = _VERBOSE or verbose


def reset_console() -> None:
    global _VERBOSE
    _VERBOSE = False


def log(message: str) -> None:
    print(PREFIX + message, file=sys.stdout)


def log_error(message: str) -> None:
    print(PREFIX + message, file=sys.stderr)


def log_debug(message: str) -> None:
    if _VERBOSE:
        print(f"{PREFIX}[debug] {redact(message)}", file=sys.stderr)


def emit(line: str = "") -> None:
    """Print an operator-facing result line without the log prefix."""
    print(line, file=sys.stdout)


def emit_error(line: str) -> None:
    print(line, file=sys.stderr)
