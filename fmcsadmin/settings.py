"""Local parsing and validation of server configuration arguments.

``get`` commands take bare setting names, ``set`` commands take
``NAME=VALUE`` assignments. Everything here runs before any network call;
failures raise :class:`AdminAPIError` with the local validation code.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from . import results
from .errors import AdminAPIError

SERVER_CONFIG_NAMES = (
    "cachesize",
    "hostedfiles",
    "proconnections",
    "scriptsessions",
    "securefilesonly",
)
SERVER_PREFS_NAMES = (
    "maxguests",
    "maxfiles",
    "cachesize",
    "allowpsos",
    "requiresecuredb",
    "startuprestorationenabled",
    "authenticatedstream",
    "parallelbackupenabled",
)
# reported by ``get serverprefs`` but not settable
SERVER_PREFS_READ_ONLY = ("persistcacheenabled", "syncpersistcache")
CWP_CONFIG_NAMES = (
    "enablephp",
    "enablexml",
    "encoding",
    "locale",
    "prevalidation",
    "usefmphp",
)

ENCODINGS = {"utf-8": "UTF-8", "iso-8859-1": "ISO-8859-1"}
LOCALES = ("en", "de", "fr", "it", "ja")

# setting name -> (inclusive range, field)
_NUMERIC: Dict[str, Tuple[int, int, str]] = {
    "cachesize": (64, 1048576, "cache_size"),
    "hostedfiles": (1, 125, "max_files"),
    "maxfiles": (1, 125, "max_files"),
    "proconnections": (0, 2000, "max_pro_connections"),
    "maxguests": (0, 2000, "max_pro_connections"),
    "scriptsessions": (0, 500, "max_psos"),
    "allowpsos": (0, 500, "max_psos"),
    "authenticatedstream": (1, 2, "authenticated_stream"),
}
_BOOLEAN: Dict[str, str] = {
    "securefilesonly": "require_secure_db",
    "requiresecuredb": "require_secure_db",
    "startuprestorationenabled": "startup_restoration",
    "parallelbackupenabled": "parallel_backup",
}

_SIGNED_INTEGER = re.compile(r"^[+-]?\d+$")


def _invalid(detail: Optional[str] = None) -> AdminAPIError:
    return AdminAPIError(results.INVALID_PARAMETER, detail)


def select_names(
    args: Sequence[str],
    allowed: Sequence[str],
    *,
    unknown_code: int = results.INVALID_PARAMETER,
    announce_unknown: bool = False,
) -> List[str]:
    """Lowercase and validate setting names; no args selects ``allowed``."""
    if not args:
        return list(allowed)
    names: List[str] = []
    for arg in args:
        name = arg.lower()
        if name not in allowed:
            detail = f"Invalid configuration name: {arg}" if announce_unknown else None
            raise AdminAPIError(unknown_code, detail)
        names.append(name)
    return names


def split_assignment(arg: str) -> Tuple[str, str]:
    name, sep, value = arg.partition("=")
    if not sep:
        raise _invalid()
    return name.lower(), value


def parse_flag(value: str) -> bool:
    """``true`` or any nonzero integer is on; other non-empty values are off."""
    text = value.strip().lower()
    if not text:
        raise _invalid()
    if text == "true":
        return True
    if _SIGNED_INTEGER.match(text):
        return int(text) != 0
    return False


def parse_bounded(value: str, low: int, high: int) -> int:
    text = value.strip()
    if not text.isdigit():
        raise _invalid()
    number = int(text)
    if number < low or number > high:
        raise _invalid()
    return number


@dataclass(frozen=True)
class ServerSettings:
    """Requested changes to the server settings; ``None`` means unchanged."""

    names: Tuple[str, ...] = ()
    cache_size: Optional[int] = None
    max_files: Optional[int] = None
    max_pro_connections: Optional[int] = None
    max_psos: Optional[int] = None
    startup_restoration: Optional[bool] = None
    require_secure_db: Optional[bool] = None
    authenticated_stream: Optional[int] = None
    parallel_backup: Optional[bool] = None

    @property
    def changes_general(self) -> bool:
        return any(
            value is not None
            for value in (
                self.cache_size,
                self.max_files,
                self.max_pro_connections,
                self.max_psos,
                self.startup_restoration,
            )
        )


def parse_server_settings(
    args: Sequence[str],
    allowed: Sequence[str],
    *,
    unknown_code: int = results.INVALID_PARAMETER,
) -> ServerSettings:
    if not args:
        raise _invalid()
    assignments = [split_assignment(arg) for arg in args]
    for name, _ in assignments:
        if name not in allowed:
            raise AdminAPIError(unknown_code)

    fields: Dict[str, object] = {}
    for name, value in assignments:
        if name in _NUMERIC:
            low, high, field_name = _NUMERIC[name]
            fields[field_name] = parse_bounded(value, low, high)
        else:
            fields[_BOOLEAN[name]] = parse_flag(value)
    names = tuple(dict.fromkeys(name for name, _ in assignments))
    return ServerSettings(names=names, **fields)  # type: ignore[arg-type]


@dataclass(frozen=True)
class WebSettings:
    names: Tuple[str, ...] = ()
    php_enabled: Optional[bool] = None
    xml_enabled: Optional[bool] = None
    encoding: Optional[str] = None
    locale: Optional[str] = None
    pre_validation: Optional[bool] = None
    use_filemaker_php: Optional[bool] = None

    @property
    def changes_php(self) -> bool:
        return any(
            value is not None
            for value in (
                self.php_enabled,
                self.encoding,
                self.locale,
                self.pre_validation,
                self.use_filemaker_php,
            )
        )


_WEB_FLAGS = {
    "enablephp": "php_enabled",
    "enablexml": "xml_enabled",
    "prevalidation": "pre_validation",
    "usefmphp": "use_filemaker_php",
}


def _invalid_value(value: str) -> AdminAPIError:
    return _invalid(f"Invalid configuration value: {value}")


def parse_web_settings(args: Sequence[str]) -> WebSettings:
    if not args:
        raise _invalid()
    assignments: List[Tuple[str, str]] = []
    for arg in args:
        name, sep, value = arg.partition("=")
        if not sep:
            raise _invalid()
        if name.lower() not in CWP_CONFIG_NAMES:
            raise _invalid(f"Invalid configuration name: {name}")
        assignments.append((name.lower(), value))

    fields: Dict[str, object] = {}
    for name, value in assignments:
        lowered = value.strip().lower()
        if name in _WEB_FLAGS:
            if lowered not in ("true", "false"):
                raise _invalid_value(value)
            fields[_WEB_FLAGS[name]] = lowered == "true"
        elif name == "encoding":
            if lowered not in ENCODINGS:
                raise _invalid_value(value)
            fields["encoding"] = ENCODINGS[lowered]
        else:
            if lowered not in LOCALES:
                raise _invalid_value(value)
            fields["locale"] = lowered
    names = tuple(dict.fromkeys(name for name, _ in assignments))
    return WebSettings(names=names, **fields)  # type: ignore[arg-type]
