"""Shared HTTP helpers for fmcsadmin."""

from __future__ import annotations

import base64
from typing import Dict, Optional

import httpx

from .constants import HTTP_TIMEOUT_SECONDS
from .version import USER_AGENT


def http_timeout(seconds: Optional[float] = None) -> httpx.Timeout:
    value = seconds or HTTP_TIMEOUT_SECONDS
    return httpx.Timeout(value, connect=value)


def basic_authorization(username: str, password: str) -> str:
    raw = f"{username}:{password}".encode("utf-8")
    return "Basic " + base64.b64encode(raw).decode("ascii")


def pki_authorization(token: str) -> str:
    return f"PKI {token}"


def bearer_authorization(token: str) -> str:
    return "Bearer " + token.replace("\r", "").replace("\n", "")


def request_headers(
    *,
    authorization: str = "",
    has_body: bool = False,
) -> Dict[str, str]:
    headers = {
        "Accept": "application/json",
        "User-Agent": USER_AGENT,
        "Content-Type": "application/json",
    }
    if authorization:
        headers["Authorization"] = authorization
    if not has_body:
        headers["Content-Length"] = "0"
    return headers


_TRANSPORT_LABELS = (
    (httpx.TimeoutException, "request timed out"),
    (httpx.ConnectError, "cannot connect to the Admin API"),
    (httpx.RequestError, "transport error"),
)


def describe_http_error(exc: httpx.HTTPError) -> str:
    """One-line trace of a transport failure for ``--verbose`` output."""
    label = next(
        (text for kind, text in _TRANSPORT_LABELS if isinstance(exc, kind)),
        exc.__class__.__name__,
    )
    detail = str(exc).strip()
    line = f"{label}: {detail}" if detail else label
    try:
        request = exc.request
    except RuntimeError:
        return line
    return f"{line} [{request.method} {request.url}]"
