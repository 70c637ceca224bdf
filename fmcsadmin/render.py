"""Table and line rendering for listing and status commands."""

from __future__ import annotations

import shutil
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .console import emit
from .constants import DATABASE_EXTENSION
from .resolver import ClientRef, DatabaseRef, ScheduleRef

CLIENT_DATE_FORMAT = "%Y/%m/%d %H:%M:%S"
SCHEDULE_DATE_FORMAT = "%Y/%m/%d %H:%M"

_MIN_TABLE_WIDTH = 200


def _console() -> Console:
    width = max(shutil.get_terminal_size((_MIN_TABLE_WIDTH, 24)).columns, _MIN_TABLE_WIDTH)
    return Console(width=width, highlight=False, soft_wrap=False)


def print_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
    table = Table(box=box.ASCII, show_edge=True, pad_edge=True)
    for header in headers:
        table.add_column(header, no_wrap=True)
    for row in rows:
        table.add_row(*(escape(str(cell)) for cell in row))
    _console().print(table)


def format_timestamp(value: str, output_format: str) -> str:
    """Render a server timestamp in local time; empty when unparseable.

    ``YYYY-MM-DD HH:MM:SS TZ`` and ``YYYY-MM-DDTHH:MM:SS`` are already local
    to the server and are only reformatted. The millisecond ``Z`` form is
    UTC and is converted.
    """
    text = (value or "").strip()
    if len(text) < 10 or text.startswith("0000"):
        return ""
    parsed: Optional[datetime] = None
    try:
        parsed = datetime.strptime(text[:19], "%Y-%m-%d %H:%M:%S")
    except ValueError:
        pass
    if parsed is None:
        try:
            parsed = datetime.strptime(text, "%Y-%m-%dT%H:%M:%S")
        except ValueError:
            pass
    if parsed is None:
        try:
            utc = datetime.strptime(text, "%Y-%m-%dT%H:%M:%S.%fZ")
        except ValueError:
            return ""
        parsed = utc.replace(tzinfo=timezone.utc).astimezone()
    return parsed.strftime(output_format)


def _status_label(status: str) -> str:
    return status[:1] + status[1:].lower() if status else ""


def print_database_paths(databases: Sequence[DatabaseRef]) -> None:
    for db in databases:
        if db.status == "NORMAL":
            emit(db.path)


def print_database_details(databases: Sequence[DatabaseRef]) -> None:
    rows: List[List[str]] = []
    for db in databases:
        privileges = "-" if db.status == "CLOSED" else " ".join(db.ext_privileges)
        rows.append(
            [
                str(db.id),
                db.filename,
                str(db.clients),
                str(db.size),
                _status_label(db.status),
                privileges,
                "Yes" if db.is_encrypted else "No",
            ]
        )
    print_table(
        [
            "ID",
            "File",
            "Clients",
            "Size",
            "Status",
            "Enabled Extended Privileges",
            "Encrypted",
        ],
        rows,
    )


def print_clients(clients: Sequence[ClientRef]) -> None:
    rows = [
        [str(c.id), c.user_name, c.computer_name, c.ext_privilege]
        for c in clients
        if c.status == "NORMAL"
    ]
    print_table(["Client ID", "User Name", "Computer Name", "Ext Privilege"], rows)


def _strip_extension(name: str) -> str:
    return name[: -len(DATABASE_EXTENSION)] if name.endswith(DATABASE_EXTENSION) else name


def print_client_details(clients: Sequence[ClientRef]) -> None:
    rows: List[List[str]] = []
    for c in clients:
        guest = c.guest_files[0] if c.guest_files else None
        rows.append(
            [
                str(c.id),
                c.user_name,
                c.computer_name,
                c.ext_privilege,
                c.ip_address,
                c.mac_address,
                format_timestamp(c.connect_time, CLIENT_DATE_FORMAT),
                c.connect_duration,
                c.app_version,
                c.app_language,
                _strip_extension(guest.filename) if guest else "",
                guest.account_name if guest else "",
                guest.privset_name if guest else "",
            ]
        )
    print_table(
        [
            "Client ID",
            "User Name",
            "Computer Name",
            "Ext Privilege",
            "IP Address",
            "MAC Address",
            "Connect Time",
            "Duration",
            "App Version",
            "App Language",
            "File Name",
            "Account Name",
            "Privilege Set",
        ],
        rows,
    )


def schedule_status(schedule: ScheduleRef) -> str:
    if schedule.status in ("IDLE", "RUNNING"):
        if not schedule.last_run or schedule.last_run.startswith("0000-00-00"):
            return ""
        return "OK"
    return schedule.status


def print_schedules(schedules: Sequence[ScheduleRef]) -> None:
    rows = []
    for s in schedules:
        next_run = (
            format_timestamp(s.next_run, SCHEDULE_DATE_FORMAT) if s.enabled else "Disabled"
        )
        rows.append(
            [
                str(s.id),
                s.name,
                s.task_type,
                format_timestamp(s.last_run, SCHEDULE_DATE_FORMAT),
                next_run,
                schedule_status(s),
            ]
        )
    print_table(["ID", "Name", "Type", "Last Completed", "Next Run", "Status"], rows)


def print_plugins(plugins: Sequence[dict]) -> None:
    rows = [
        [
            str(p.get("id", "")),
            str(p.get("pluginName", "")),
            str(p.get("filename", "")),
            "Enabled" if p.get("enabled") else "Disabled",
        ]
        for p in plugins
    ]
    if rows:
        print_table(["ID", "Name", "File", "Status"], rows)
