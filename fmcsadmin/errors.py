"""Exception types shared across fmcsadmin."""

from __future__ import annotations

from typing import Optional


class CLIError(Exception):
    """Raised for user-facing CLI errors that carry no Admin API result code."""


class AdminAPIError(Exception):
    """A failure that ends the command with a numeric result code.

    ``detail`` is an optional operator-facing line printed before the
    ``Error: <code> (<description>)`` summary.
    """

    def __init__(self, code: int, detail: Optional[str] = None) -> None:
        self.code = int(code)
        self.detail = detail
        super().__init__(detail or f"result code {self.code}")
