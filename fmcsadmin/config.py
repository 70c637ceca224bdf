"""Configuration file support for fmcsadmin.

The file is TOML and only supplies defaults: command line options and the
``FMS_USERNAME``/``FMS_PASSWORD`` environment variables take precedence.
Passwords are never read from it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional, Tuple

from platformdirs import PlatformDirs

from .console import log
from .constants import (
    CONFIG_ENV_VAR,
    DEFAULT_BASE_URI,
    DEFAULT_CONFIG_DIR_NAME,
    DEFAULT_GRACE_TIME,
    HTTP_TIMEOUT_SECONDS,
    PASSWORD_ENV_VAR,
    USERNAME_ENV_VAR,
)
from .errors import CLIError
from .utils import safe_int, safe_str

try:
    import tomllib  # py311+
except ModuleNotFoundError:  # pragma: no cover (py<311)
    import tomli as tomllib

CONFIG_KEYS = ("fqdn", "username", "identity_file", "grace_time", "timeout")


@dataclass(frozen=True)
class ConfigFile:
    fqdn: Optional[str] = None
    username: Optional[str] = None
    identity_file: Optional[str] = None
    grace_time: Optional[int] = None
    timeout: Optional[float] = None


def default_config_path() -> Path:
    dirs = PlatformDirs(appname=DEFAULT_CONFIG_DIR_NAME, appauthor=False, roaming=True)
    return dirs.user_config_path / "config.toml"


def resolve_config_path() -> Path:
    """``$FMCSADMIN_CONFIG`` when set, else the per-user config directory."""
    override = os.environ.get(CONFIG_ENV_VAR, "").strip()
    return Path(override).expanduser() if override else default_config_path()


def _text(value: Any) -> Optional[str]:
    return (safe_str(value) or "").strip() or None


def _positive_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if value > 0 else None


def _parse(data: Mapping[str, Any], source: Path) -> ConfigFile:
    for name in data:
        if name == "password":
            log(f"{source}: passwords are not read from the config file; set {PASSWORD_ENV_VAR}")
        elif name not in CONFIG_KEYS:
            log(f"{source}: ignoring unknown setting '{name}'")
    grace_time = safe_int(data.get("grace_time"))
    return ConfigFile(
        fqdn=_text(data.get("fqdn")),
        username=_text(data.get("username")),
        identity_file=_text(data.get("identity_file")),
        grace_time=grace_time if grace_time is not None and grace_time >= 0 else None,
        timeout=_positive_float(data.get("timeout")),
    )


def load_config(path: Optional[Path] = None) -> ConfigFile:
    source = path or resolve_config_path()
    try:
        raw = source.read_bytes()
    except FileNotFoundError:
        return ConfigFile()
    except OSError as exc:
        raise CLIError(f"cannot read {source}: {exc.strerror or exc}") from exc
    try:
        data = tomllib.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        raise CLIError(f"{source} is not valid TOML: {exc}") from exc
    return _parse(data, source)


def config_template() -> str:
    return f"""\
# fmcsadmin configuration (TOML)
#
# Command line options and {USERNAME_ENV_VAR}/{PASSWORD_ENV_VAR} override
# everything here.

# Admin API host; connects to https://<fqdn> instead of {DEFAULT_BASE_URI}
# fqdn = "fms.example.com"

# username = "admin"
# passwords are never read from this file; set {PASSWORD_ENV_VAR} instead

# Private key for PKI authentication (same as -i)
# identity_file = "~/.fmcsadmin/admin_key.pem"

# grace_time = {DEFAULT_GRACE_TIME}  # seconds before clients are disconnected
# timeout = {HTTP_TIMEOUT_SECONDS}  # per-request HTTP timeout in seconds
"""


def write_default_config(path: Optional[Path] = None, *, force: bool) -> Path:
    target = path or resolve_config_path()
    if target.exists() and not force:
        raise CLIError(f"{target} already exists; pass --force to replace it")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(config_template(), encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"cannot write {target}: {exc.strerror or exc}") from exc
    return target


def effective_config(config: ConfigFile) -> List[Tuple[str, Any, str]]:
    """Settings as ``(name, value, source)`` rows, ignoring command line options.

    ``source`` is ``env``, ``config`` or ``default``.
    """
    env_username = os.environ.get(USERNAME_ENV_VAR, "").strip()
    env_password = bool(os.environ.get(PASSWORD_ENV_VAR))

    def origin(value: Any) -> str:
        return "default" if value is None else "config"

    return [
        ("fqdn", config.fqdn, origin(config.fqdn)),
        (
            "endpoint",
            f"https://{config.fqdn}" if config.fqdn else DEFAULT_BASE_URI,
            origin(config.fqdn),
        ),
        (
            "username",
            env_username or config.username,
            "env" if env_username else origin(config.username),
        ),
        ("password", "***" if env_password else None, "env" if env_password else "default"),
        ("identity_file", config.identity_file, origin(config.identity_file)),
        (
            "grace_time",
            DEFAULT_GRACE_TIME if config.grace_time is None else config.grace_time,
            origin(config.grace_time),
        ),
        ("timeout", config.timeout or HTTP_TIMEOUT_SECONDS, origin(config.timeout)),
    ]
