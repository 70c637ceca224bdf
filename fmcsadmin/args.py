"""Invocation options shared across fmcsadmin modules."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, FrozenSet, List, Optional, Sequence

from .config import ConfigFile
from .constants import DEFAULT_GRACE_TIME

# options that consume the following token as their value
VALUE_OPTIONS: FrozenSet[str] = frozenset(
    {
        "-u",
        "--username",
        "-p",
        "--password",
        "-i",
        "--fqdn",
        "--key",
        "-m",
        "--message",
        "-c",
        "--client",
        "-t",
        "--gracetime",
        "--keyfile",
        "--KeyFile",
        "--keyfilepass",
        "--KeyFilePass",
        "--intermediateca",
        "--intermediateCA",
    }
)
FLAG_OPTIONS: FrozenSet[str] = frozenset(
    {
        "-h",
        "--help",
        "-v",
        "--version",
        "-y",
        "--yes",
        "-s",
        "--stats",
        "-f",
        "--force",
        "--savekey",
        "--verbose",
    }
)


def hoist_options(argv: Sequence[str]) -> List[str]:
    """Move known options ahead of the command words.

    Options may be written anywhere on the command line; the root command
    parses all of them. Unknown options stay in place so the command that
    receives them reports them. ``--`` ends option processing.
    """
    options: List[str] = []
    words: List[str] = []
    index = 0
    while index < len(argv):
        token = argv[index]
        if token == "--":
            words.extend(argv[index:])
            break
        name = token.split("=", 1)[0]
        if token in FLAG_OPTIONS or ("=" in token and name in VALUE_OPTIONS):
            options.append(token)
        elif token in VALUE_OPTIONS:
            options.append(token)
            if index + 1 < len(argv):
                options.append(argv[index + 1])
                index += 1
        else:
            words.append(token)
        index += 1
    return options + words


@dataclass(frozen=True)
class AdminOptions:
    """Options of one invocation, immutable once parsed."""

    username: str = ""
    password: str = ""
    identity_file: str = ""
    fqdn: str = ""
    yes: bool = False
    stats: bool = False
    force: bool = False
    key: str = ""
    save_key: bool = False
    message: str = ""
    client_id: int = -1
    grace_time: int = DEFAULT_GRACE_TIME
    keyfile: str = ""
    keyfile_pass: Optional[str] = None
    intermediate_ca: str = ""
    verbose: bool = False

    def merge(self, other: "AdminOptions") -> "AdminOptions":
        """Combine two option sets; for each field the first non-default wins."""
        defaults = AdminOptions()
        changes: Dict[str, Any] = {}
        for item in fields(self):
            mine = getattr(self, item.name)
            if mine == getattr(defaults, item.name):
                changes[item.name] = getattr(other, item.name)
        return replace(self, **changes)

    def with_config(self, config: ConfigFile) -> "AdminOptions":
        return self.merge(
            AdminOptions(
                fqdn=config.fqdn or "",
                identity_file=config.identity_file or "",
                grace_time=(
                    config.grace_time
                    if config.grace_time is not None
                    else DEFAULT_GRACE_TIME
                ),
            )
        )
