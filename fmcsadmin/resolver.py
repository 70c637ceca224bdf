"""Resolution of operator arguments to hosted databases, clients and schedules.

Everything here is a pure function of a listing snapshot already fetched from
the server; no network calls are made.

Database paths reported by the server carry a storage tag (``filelinux:``,
``filemac:`` or ``filewin:``). Operators may type the same location as a
plain path, with or without the tag, with or without the ``.fmp12``
extension, and on macOS either as ``/Volumes/<volume>/...`` or with the boot
volume omitted. :func:`canonical_path` folds all of those spellings into one
form so that :func:`compare_path` is a plain, symmetric equality.
"""

from __future__ import annotations

import os
import re
import sys
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .constants import DATABASE_EXTENSION, MAC_VOLUMES_ROOT
from .utils import as_dict, as_list, safe_bool, safe_int, safe_str


class StorageTag(Enum):
    LINUX = "filelinux:"
    MAC = "filemac:"
    WINDOWS = "filewin:"

    @classmethod
    def of(cls, value: str) -> Optional["StorageTag"]:
        for tag in cls:
            if value.startswith(tag.value):
                return tag
        return None


@lru_cache(maxsize=None)
def boot_volume_name() -> str:
    """Name of the macOS boot volume as mounted under ``/Volumes``."""
    if sys.platform != "darwin":
        return ""
    try:
        entries = sorted(os.listdir(MAC_VOLUMES_ROOT))
    except OSError:
        return ""
    for entry in entries:
        candidate = os.path.join(MAC_VOLUMES_ROOT, entry)
        if os.path.realpath(candidate) == "/":
            return entry
    return ""


_DRIVE_PATTERN = re.compile(r"^/([A-Za-z]:/)")


def canonical_path(value: str, volume_name: Optional[str] = None) -> str:
    volume = boot_volume_name() if volume_name is None else volume_name
    text = value.strip()
    tag = StorageTag.of(text)
    if tag is not None:
        text = text[len(tag.value) :]
    text = text.replace("\\", "/")
    volumes_prefix = MAC_VOLUMES_ROOT + "/"
    if text.startswith(volumes_prefix):
        text = text[len(MAC_VOLUMES_ROOT) :]
    if volume and (text == f"/{volume}" or text.startswith(f"/{volume}/")):
        text = text[len(volume) + 1 :]
    text = _DRIVE_PATTERN.sub(r"\1", text)
    if text.lower().endswith(DATABASE_EXTENSION):
        text = text[: -len(DATABASE_EXTENSION)]
    if len(text) > 1:
        text = text.rstrip("/")
    return text


def compare_path(left: str, right: str, volume_name: Optional[str] = None) -> bool:
    return canonical_path(left, volume_name) == canonical_path(right, volume_name)


def has_separator(value: str) -> bool:
    return "/" in value or "\\" in value


def os_path(value: str) -> str:
    """Render a tagged server path the way the host operating system spells it."""
    tag = StorageTag.of(value)
    if tag is StorageTag.LINUX:
        return value[len(tag.value) :]
    if tag is StorageTag.MAC:
        return MAC_VOLUMES_ROOT + value[len(tag.value) :]
    if tag is StorageTag.WINDOWS:
        return value[len(tag.value) :].lstrip("/").replace("/", "\\")
    return value


# listings


@dataclass(frozen=True)
class DatabaseRef:
    id: int
    filename: str
    folder: str = ""
    status: str = ""
    decrypt_hint: str = ""
    clients: int = 0
    size: int = 0
    is_encrypted: bool = False
    ext_privileges: Tuple[str, ...] = ()

    @property
    def path(self) -> str:
        return self.folder + self.filename


@dataclass(frozen=True)
class GuestFile:
    filename: str
    account_name: str = ""
    privset_name: str = ""


@dataclass(frozen=True)
class ClientRef:
    id: int
    status: str = ""
    user_name: str = ""
    computer_name: str = ""
    ext_privilege: str = ""
    ip_address: str = ""
    mac_address: str = ""
    connect_time: str = ""
    connect_duration: str = ""
    app_version: str = ""
    app_language: str = ""
    guest_files: Tuple[GuestFile, ...] = ()


@dataclass(frozen=True)
class ScheduleRef:
    id: int
    name: str
    task_type: str = ""
    enabled: bool = False
    status: str = ""
    last_run: str = ""
    next_run: str = ""


@dataclass(frozen=True)
class Resolution:
    ids: List[int] = field(default_factory=list)
    names: List[str] = field(default_factory=list)
    hints: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.ids)


def _text(record: Dict[str, Any], key: str) -> str:
    return safe_str(record.get(key)) or ""


def parse_databases(items: Iterable[Any]) -> List[DatabaseRef]:
    refs: List[DatabaseRef] = []
    for item in items:
        record = as_dict(item)
        db_id = safe_int(record.get("id"))
        if db_id is None:
            continue
        refs.append(
            DatabaseRef(
                id=db_id,
                filename=_text(record, "filename"),
                folder=_text(record, "folder"),
                status=_text(record, "status"),
                decrypt_hint=_text(record, "decryptHint"),
                clients=safe_int(record.get("clients")) or 0,
                size=safe_int(record.get("size")) or 0,
                is_encrypted=bool(safe_bool(record.get("isEncrypted"))),
                ext_privileges=tuple(
                    safe_str(p) or "" for p in as_list(record.get("enabledExtPrivileges"))
                ),
            )
        )
    return refs


def parse_clients(items: Iterable[Any]) -> List[ClientRef]:
    refs: List[ClientRef] = []
    for item in items:
        record = as_dict(item)
        client_id = safe_int(record.get("id"))
        if client_id is None:
            continue
        guests = tuple(
            GuestFile(
                filename=_text(as_dict(guest), "filename"),
                account_name=_text(as_dict(guest), "accountName"),
                privset_name=_text(as_dict(guest), "privsetName"),
            )
            for guest in as_list(record.get("guestFiles"))
        )
        refs.append(
            ClientRef(
                id=client_id,
                status=_text(record, "status"),
                user_name=_text(record, "userName"),
                computer_name=_text(record, "computerName"),
                ext_privilege=_text(record, "extpriv"),
                ip_address=_text(record, "ipaddress"),
                mac_address=_text(record, "macaddress"),
                connect_time=_text(record, "connectTime"),
                connect_duration=_text(record, "connectDuration"),
                app_version=_text(record, "appVersion"),
                app_language=_text(record, "appLanguage"),
                guest_files=guests,
            )
        )
    return refs


# each schedule carries exactly one of these task descriptors
_TASK_TYPES = (
    ("backupType", "resourceType", "Backup"),
    ("filemakerScriptType", "resource", "FileMaker Script"),
    ("messageType", "resourceType", "Message"),
    ("scriptSequenceType", "resource", "Script Sequence"),
    ("systemScriptType", "osScript", "System Script"),
    ("verifyType", "resourceType", "Verify"),
)


def _task_type(record: Dict[str, Any]) -> str:
    for key, _, label in _TASK_TYPES:
        if key in record:
            return label
    return ""


def parse_schedule(item: Any) -> Optional[ScheduleRef]:
    record = as_dict(item)
    schedule_id = safe_int(record.get("id"))
    if schedule_id is None:
        return None
    return ScheduleRef(
        id=schedule_id,
        name=_text(record, "name"),
        task_type=_task_type(record),
        enabled=bool(safe_bool(record.get("enabled"))),
        status=_text(record, "status"),
        last_run=_text(record, "lastRun"),
        next_run=_text(record, "nextRun"),
    )


def parse_schedules(items: Iterable[Any]) -> List[ScheduleRef]:
    return [ref for ref in (parse_schedule(item) for item in items) if ref is not None]


# matching


def _database_matches(
    db: DatabaseRef, arg: str, volume_name: Optional[str]
) -> bool:
    if arg.isdigit():
        return str(db.id) == arg
    if has_separator(arg):
        return compare_path(db.folder, arg, volume_name) or compare_path(
            db.path, arg, volume_name
        )
    return compare_path(db.filename, arg, volume_name)


def resolve_databases(
    databases: Sequence[DatabaseRef],
    args: Sequence[str],
    status: str = "",
    *,
    full_path: bool = False,
    volume_name: Optional[str] = None,
) -> Resolution:
    """Select databases by id, name or folder, in listing order.

    No args selects every database. ``status`` restricts the match to one
    status; empty means any. ``full_path`` reports names as host paths.
    """
    resolution = Resolution()
    for db in databases:
        if status and db.status != status:
            continue
        if args and not any(_database_matches(db, arg, volume_name) for arg in args):
            continue
        resolution.ids.append(db.id)
        resolution.names.append(os_path(db.path) if full_path else db.filename)
        resolution.hints.append(db.decrypt_hint)
    return resolution


def _client_matches(
    client: ClientRef, arg: str, volume_name: Optional[str]
) -> bool:
    if has_separator(arg):
        arg = arg.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]
    return any(
        compare_path(guest.filename, arg, volume_name) for guest in client.guest_files
    )


def resolve_clients(
    clients: Sequence[ClientRef],
    args: Sequence[str] = (),
    status: str = "",
    *,
    volume_name: Optional[str] = None,
) -> List[int]:
    """Ids of clients using any of the named databases (all when no args)."""
    selected: List[int] = []
    for client in clients:
        if status and client.status != status:
            continue
        if args and not any(_client_matches(client, arg, volume_name) for arg in args):
            continue
        selected.append(client.id)
    return selected
