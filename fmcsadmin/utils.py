"""Shared utility helpers for fmcsadmin."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence

_SENSITIVE_KV_PATTERN = re.compile(
    r"(?i)\b("
    r"token|password|passwd|passphrase|secret|key|keyfilepass|privatekey"
    r")\b\s*([:=])\s*([^\s,}]+)"
)
_AUTH_HEADER_PATTERN = re.compile(
    r"(?i)\b(Authorization)(['\"]?\s*[:=]\s*['\"]?)(Bearer|Basic|PKI)\s+([^\s'\"]+)"
)
_JWT_PATTERN = re.compile(
    r"\b[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}\b"
)
_PEM_PATTERN = re.compile(
    r"-----BEGIN ([A-Z ]+)-----.*?-----END \1-----", re.DOTALL
)
_AUTH_PATH_PATTERN = re.compile(r"(/user/auth/)[^\s/?\"']+")


def redact(text: str) -> str:
    """Best-effort redaction for common secret patterns in logs."""
    value = str(text)
    value = _PEM_PATTERN.sub(lambda m: f"-----BEGIN {m.group(1)}----- ***", value)
    value = _AUTH_HEADER_PATTERN.sub(lambda m: f"{m.group(1)}{m.group(2)}{m.group(3)} ***", value)
    value = _AUTH_PATH_PATTERN.sub(lambda m: f"{m.group(1)}***", value)
    value = _SENSITIVE_KV_PATTERN.sub(lambda m: f"{m.group(1)}{m.group(2)}***", value)
    value = _JWT_PATTERN.sub("***", value)
    return value


_SENSITIVE_FIELDS = frozenset({"key", "password", "privateKey", "token"})


def redact_payload(payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not payload:
        return {}
    return {
        name: ("***" if name in _SENSITIVE_FIELDS and value else value)
        for name, value in payload.items()
    }


def redact_cli_args(argv: Sequence[str]) -> List[str]:
    redacted: List[str] = []
    hide_next = False
    for part in argv:
        text = str(part)
        if hide_next:
            redacted.append("***")
            hide_next = False
            continue
        if text in {"-p", "--password", "--key", "--keyfilepass", "--KeyFilePass"}:
            redacted.append(text)
            hide_next = True
            continue
        redacted.append(redact(text))
    return redacted


def safe_int(value: Any) -> Optional[int]:
    try:
        if value is None:
            return None
        if isinstance(value, bool):
            return int(value)
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def safe_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


def safe_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return None


def as_dict(value: Any) -> Dict[str, Any]:
    if isinstance(value, dict):
        return value
    return {}


def as_list(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    return []
