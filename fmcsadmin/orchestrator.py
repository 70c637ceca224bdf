"""Lifecycle orchestration: composite Admin API operations and convergence polls.

Every public method of :class:`Orchestrator` runs one command against an
already opened session and returns its result code. Listing failures raise
:class:`AdminAPIError`; step failures inside a sequence are returned so the
caller reports the code of the step that ended the command.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from . import results
from .admin_api import AdminClient, Reply, parse_version
from .auth import Session
from .console import emit, log, log_debug
from .constants import (
    DEFAULT_DATABASES_FOLDER,
    DRAIN_POLL_ATTEMPTS,
    EXIT_INVALID_COMMAND,
    OPEN_POLL_ATTEMPTS,
    POLL_INTERVAL_SECONDS,
    RESTART_REQUIRED_MESSAGE,
    STOP_POLL_ATTEMPTS,
    STOP_SERVER_MESSAGE,
)
from .envelopes import (
    CancelBackup,
    CloseDatabase,
    CreateCsr,
    DeleteCertificate,
    DeleteSchedule,
    DisableSchedule,
    DisconnectClient,
    EnableSchedule,
    GetAuthenticatedStream,
    GetGeneralConfig,
    GetParallelBackup,
    GetPersistentCache,
    GetPhpConfig,
    GetSchedule,
    GetSecurityConfig,
    GetXmlConfig,
    ImportCertificate,
    OpenDatabase,
    Operation,
    PauseDatabase,
    RemoveDatabase,
    ResumeDatabase,
    RunSchedule,
    SendMessage,
    SetAuthenticatedStream,
    SetGeneralConfig,
    SetParallelBackup,
    SetPhpConfig,
    SetSecurityConfig,
    SetServerStatus,
    SetXmlConfig,
)
from .errors import AdminAPIError
from .pki import load_certificate, load_intermediate_certificates, load_private_key
from .render import (
    format_timestamp,
    print_client_details,
    print_clients,
    print_database_details,
    print_database_paths,
    print_plugins,
    print_schedules,
    print_table,
)
from .resolver import (
    ClientRef,
    DatabaseRef,
    ScheduleRef,
    compare_path,
    parse_clients,
    parse_databases,
    parse_schedule,
    parse_schedules,
    resolve_clients,
    resolve_databases,
)
from .settings import SERVER_PREFS_READ_ONLY, ServerSettings, WebSettings
from .utils import safe_bool, safe_int, safe_str

Sleep = Callable[[float], None]


def _holds(condition: Callable[[], bool]) -> bool:
    try:
        return condition()
    except AdminAPIError as exc:
        if exc.code != results.HOST_UNREACHABLE:
            raise
        log_debug("server unreachable while polling; checking again")
        return False


def poll_until(
    condition: Callable[[], bool],
    *,
    attempts: int,
    sleep: Sleep,
    interval: float = POLL_INTERVAL_SECONDS,
    check_first: bool = False,
) -> bool:
    """Re-check ``condition`` until it holds or ``attempts`` sleeps have passed.

    Without ``check_first`` every check is preceded by a sleep. With it the
    condition is checked once up front, then at most ``attempts`` more times.
    A check that cannot reach the server counts as not holding yet. Returns
    whether the condition held; never waits past the ceiling.
    """
    if check_first and _holds(condition):
        return True
    for _ in range(attempts):
        sleep(interval)
        if _holds(condition):
            return True
    return False


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _pick(requested, current):
    return current if requested is None else requested


@dataclass(frozen=True)
class GeneralConfig:
    cache_size: int = 0
    max_files: int = 0
    max_pro_connections: int = 0
    max_psos: int = 0
    # absent on servers that moved the setting out of the general config
    startup_restoration: Optional[bool] = None

    @classmethod
    def from_response(cls, response: Dict[str, object]) -> "GeneralConfig":
        return cls(
            cache_size=safe_int(response.get("cacheSize")) or 0,
            max_files=safe_int(response.get("maxFiles")) or 0,
            max_pro_connections=safe_int(response.get("maxProConnections")) or 0,
            max_psos=safe_int(response.get("maxPSOS")) or 0,
            startup_restoration=(
                safe_bool(response.get("startupRestorationEnabled"))
                if "startupRestorationEnabled" in response
                else None
            ),
        )


@dataclass(frozen=True)
class WebConfig:
    php_enabled: bool = False
    xml_enabled: bool = False
    encoding: str = ""
    locale: str = ""
    pre_validation: bool = False
    use_filemaker_php: bool = False


def supports_authenticated_stream(version_string: str, version: float) -> bool:
    # 19.3.1 reports the setting but cannot change it
    return version >= 19.3 and not version_string.startswith("19.3.1")


class Orchestrator:
    """Runs operator commands over one authenticated session."""

    def __init__(
        self,
        client: AdminClient,
        session: Session,
        *,
        sleep: Sleep = time.sleep,
        volume_name: Optional[str] = None,
    ) -> None:
        self.client = client
        self.session = session
        self.sleep = sleep
        self.volume_name = volume_name
        self._version_string: Optional[str] = None

    # plumbing

    def _call(self, operation: Operation) -> Reply:
        return self.client.call(operation, token=self.session.token)

    def _databases(self) -> List[DatabaseRef]:
        return parse_databases(self.client.list_databases(self.session.token))

    def _clients(self) -> List[ClientRef]:
        return parse_clients(self.client.list_clients(self.session.token))

    def _schedules(self) -> List[ScheduleRef]:
        return parse_schedules(self.client.list_schedules(self.session.token))

    @property
    def version_string(self) -> str:
        if self._version_string is None:
            self._version_string = self.client.version_string(self.session.token)
        return self._version_string

    @property
    def version(self) -> float:
        return parse_version(self.version_string)

    def _resolve(self, args: Sequence[str], status: str, *, full_path: bool = False):
        return resolve_databases(
            self._databases(),
            args,
            status,
            full_path=full_path,
            volume_name=self.volume_name,
        )

    # databases

    def close_databases(
        self, args: Sequence[str], *, message: str = "", force: bool = False
    ) -> int:
        resolution = self._resolve(args, "NORMAL")
        if not resolution:
            return results.NO_APPLICABLE_FILES
        for name in resolution.names:
            emit(f"File Closing: {name}")
        # any client connected before the close may keep files in CLOSING
        connected = resolve_clients(self._clients(), (), "NORMAL")
        code = results.SUCCESS
        for db_id, name in zip(resolution.ids, resolution.names):
            reply = self._call(CloseDatabase(db_id, message=message, force=force))
            if not reply.result.ok:
                code = reply.code
                continue
            if not connected:
                emit(f"File Closed: {name}")
        return code

    def _is_open(self, database_id: int) -> bool:
        return bool(self._resolve([str(database_id)], "NORMAL"))

    def open_databases(
        self, args: Sequence[str], *, key: str = "", save_key: bool = False
    ) -> int:
        resolution = self._resolve(args, "CLOSED")
        if not resolution:
            return results.NO_APPLICABLE_FILES
        for name in resolution.names:
            emit(f"File Opening: {name}")
        code = results.SUCCESS
        for db_id, name, hint in zip(resolution.ids, resolution.names, resolution.hints):
            reply = self._call(OpenDatabase(db_id, key=key, save_key=save_key))
            if not reply.result.ok:
                code = reply.code
                continue
            # the server accepts any key and only fails to reach NORMAL later
            opened = poll_until(
                lambda: self._is_open(db_id),
                attempts=OPEN_POLL_ATTEMPTS,
                sleep=self.sleep,
                check_first=True,
            )
            if opened:
                emit(f"File Opened: {name}")
            else:
                emit(
                    "Fail to open encrypted database. The correct password must be "
                    f"supplied with the --key option. (Hint: {hint})"
                )
                emit(f"File Closed: {name}")
        return code

    def _transition(
        self,
        args: Sequence[str],
        status: str,
        build: Callable[[int], Operation],
        progress: str,
        done: str,
    ) -> int:
        resolution = self._resolve(args, status)
        if not resolution:
            return results.NO_APPLICABLE_FILES
        for name in resolution.names:
            emit(f"{progress}: {name}")
        code = results.SUCCESS
        for db_id, name in zip(resolution.ids, resolution.names):
            reply = self._call(build(db_id))
            if reply.result.ok:
                emit(f"{done}: {name}")
            else:
                code = reply.code
        return code

    def pause_databases(self, args: Sequence[str]) -> int:
        return self._transition(
            args, "NORMAL", PauseDatabase, "File Pausing", "File Paused"
        )

    def resume_databases(self, args: Sequence[str]) -> int:
        return self._transition(
            args, "PAUSED", ResumeDatabase, "File Resuming", "File Resumed"
        )

    def remove_databases(self, args: Sequence[str]) -> int:
        if self.version < 19.3:
            return EXIT_INVALID_COMMAND
        databases = self._databases()
        resolution = resolve_databases(
            databases, args, "CLOSED", full_path=True, volume_name=self.volume_name
        )
        if not resolution:
            target = args[0] if args else ""
            if target and compare_path(target, DEFAULT_DATABASES_FOLDER, self.volume_name):
                return results.FILE_NOT_FOUND
            if target and any(
                compare_path(db.folder, target, self.volume_name) for db in databases
            ):
                return results.DIRECTORY_NOT_EMPTY
            return results.NO_APPLICABLE_FILES
        code = results.SUCCESS
        for db_id, path in zip(resolution.ids, resolution.names):
            reply = self._call(RemoveDatabase(db_id))
            if reply.result.ok:
                emit(f"File Removed: {path}")
            else:
                code = reply.code
        return code

    # clients

    def disconnect_clients(
        self,
        client_id: Optional[int],
        *,
        message: str = "",
        grace_time: int,
    ) -> int:
        connected = resolve_clients(self._clients(), (), "NORMAL")
        if client_id is None:
            targets = connected
        elif client_id > 0 and client_id in connected:
            targets = [client_id]
        else:
            return results.INVALID_CLIENT_ID
        code = results.SUCCESS
        for target in targets:
            reply = self._call(
                DisconnectClient(target, message=message, grace_time=grace_time)
            )
            if not reply.result.ok:
                code = reply.code
        if code == results.SUCCESS:
            emit("Client(s) being disconnected.")
        return code

    def send_message(
        self, args: Sequence[str], *, message: str = "", client_id: int = -1
    ) -> int:
        targets = resolve_clients(
            self._clients(), args, "NORMAL", volume_name=self.volume_name
        )
        if client_id > -1:
            targets = [target for target in targets if target == client_id]
        if not targets:
            return results.NO_APPLICABLE_FILES
        code = results.SUCCESS
        for target in targets:
            reply = self._call(SendMessage(target, message=message))
            if not reply.result.ok:
                code = reply.code
        return code

    # server

    def _wait_stopped(self) -> None:
        stopped = poll_until(
            lambda: self.client.server_status(self.session.token) == "STOPPED",
            attempts=STOP_POLL_ATTEMPTS,
            sleep=self.sleep,
        )
        if not stopped:
            log("server is still stopping")

    def stop_server(
        self,
        *,
        grace_time: int,
        force: bool = False,
        message: str = STOP_SERVER_MESSAGE,
    ) -> int:
        if force:
            grace_time = 0
        for target in resolve_clients(self._clients(), (), "NORMAL"):
            reply = self._call(
                DisconnectClient(target, message=message, grace_time=grace_time)
            )
            if not reply.result.ok:
                log_debug(f"disconnect of client {target} failed with {reply.code}")
        for db_id in self._resolve((), "NORMAL").ids:
            reply = self._call(CloseDatabase(db_id, message=message, force=grace_time == 0))
            if not reply.result.ok:
                return reply.code
        drained = poll_until(
            lambda: not self._resolve((), "CLOSING"),
            attempts=DRAIN_POLL_ATTEMPTS,
            sleep=self.sleep,
        )
        if not drained:
            log("databases are still closing")
        reply = self._call(SetServerStatus("STOPPED"))
        if not reply.result.ok:
            return reply.code
        self._wait_stopped()
        return results.SUCCESS

    def restart_server(
        self, *, grace_time: int, force: bool = False, message: str = ""
    ) -> int:
        code = self.stop_server(grace_time=grace_time, force=force, message=message)
        if code != results.SUCCESS:
            return code
        return self._call(SetServerStatus("RUNNING")).code

    def start_server(self) -> int:
        if self.client.server_status(self.session.token) == "RUNNING":
            return results.SERVICE_ALREADY_RUNNING
        return self._call(SetServerStatus("RUNNING")).code

    # listings

    def list_files(self, *, stats: bool = False) -> int:
        databases = self._databases()
        if stats:
            print_database_details(databases)
        else:
            print_database_paths(databases)
        return results.SUCCESS

    def status_files(self, args: Sequence[str]) -> int:
        if not args:
            return results.INVALID_PARAMETER
        databases = self._databases()
        resolution = resolve_databases(databases, args, volume_name=self.volume_name)
        if not resolution:
            return results.NO_APPLICABLE_FILES
        selected = set(resolution.ids)
        print_database_details([db for db in databases if db.id in selected])
        return results.SUCCESS

    def list_clients(self, *, stats: bool = False) -> int:
        clients = self._clients()
        if stats:
            print_client_details([c for c in clients if c.status == "NORMAL"])
        elif any(c.status == "NORMAL" for c in clients):
            print_clients(clients)
        return results.SUCCESS

    def status_client(self, client_id: int) -> int:
        if client_id <= 0:
            return results.SUCCESS
        matching = [
            c for c in self._clients() if c.status == "NORMAL" and c.id == client_id
        ]
        if matching:
            print_client_details(matching)
        return results.SUCCESS

    def list_plugins(self) -> int:
        if self.version < 19.2:
            if self.client.server_status(self.session.token) == "STOPPED":
                return results.HOST_UNREACHABLE
            return EXIT_INVALID_COMMAND
        print_plugins(self.client.list_plugins(self.session.token))
        return results.SUCCESS

    def list_schedules(self, schedule_id: int = 0) -> int:
        schedules = [
            s for s in self._schedules() if schedule_id == 0 or s.id == schedule_id
        ]
        if not schedules:
            return results.SCHEDULE_NOT_FOUND if schedule_id else results.SUCCESS
        print_schedules(schedules)
        return results.SUCCESS

    def backup_time(self, schedule_id: int = 0) -> int:
        rows = []
        for s in self._schedules():
            if schedule_id and s.id != schedule_id:
                continue
            if s.task_type != "Backup":
                continue
            next_run = format_timestamp(s.next_run, "%H:%M") if s.enabled else "Disabled"
            rows.append([str(s.id), s.name, next_run])
        if not rows:
            return results.SCHEDULE_NOT_FOUND
        print_table(["ID", "Name", "Start time of Backup"], rows)
        return results.SUCCESS

    # schedules

    def _schedule_name(self, schedule_id: int) -> str:
        reply = self._call(GetSchedule(schedule_id))
        if not reply.result.ok:
            return ""
        schedule = parse_schedule(reply.response.get("schedule"))
        return schedule.name if schedule else ""

    def enable_schedule(self, schedule_id: int) -> int:
        if schedule_id <= 0:
            return results.SCHEDULE_NOT_FOUND
        reply = self._call(EnableSchedule(schedule_id))
        if not reply.result.ok:
            return reply.code
        return self.list_schedules(schedule_id)

    def disable_schedule(self, schedule_id: int) -> int:
        if schedule_id <= 0:
            return results.SCHEDULE_NOT_FOUND
        reply = self._call(DisableSchedule(schedule_id))
        if not reply.result.ok:
            return reply.code
        return self.list_schedules(schedule_id)

    def run_schedule(self, schedule_id: int) -> int:
        if schedule_id <= 0:
            return results.SCHEDULE_NOT_FOUND
        reply = self._call(RunSchedule(schedule_id))
        if not reply.result.ok:
            return results.SCHEDULE_NOT_FOUND
        emit(f"Schedule '{self._schedule_name(schedule_id)}' will run now.")
        return results.SUCCESS

    def delete_schedule(self, schedule_id: int) -> int:
        if schedule_id <= 0:
            return results.SCHEDULE_NOT_FOUND
        name = self._schedule_name(schedule_id)
        if not name:
            return results.SCHEDULE_NOT_FOUND
        reply = self._call(DeleteSchedule(schedule_id))
        if not reply.result.ok:
            return reply.code
        emit(f"Schedule Deleted: {name}")
        return results.SUCCESS

    # backup

    def cancel_backup(self) -> int:
        if self.version < 19.5:
            return EXIT_INVALID_COMMAND
        reply = self._call(CancelBackup())
        if not reply.result.ok:
            return reply.code
        emit("Command finished")
        return results.SUCCESS

    # server configuration

    def _read(self, operation: Operation) -> Dict[str, object]:
        reply = self._call(operation)
        if not reply.result.ok:
            raise AdminAPIError(reply.code)
        return reply.response

    def _general(self) -> GeneralConfig:
        return GeneralConfig.from_response(self._read(GetGeneralConfig()))

    def _bool_setting(self, operation: Operation, key: str) -> bool:
        return bool(safe_bool(self._read(operation).get(key)))

    def show_server_config(self, names: Sequence[str]) -> None:
        general: Optional[GeneralConfig] = None
        for name in names:
            if name == "securefilesonly":
                secure = self._bool_setting(GetSecurityConfig(), "requireSecureDB")
                emit(f"SecureFilesOnly = {_flag(secure)} [default: true] ")
                continue
            general = general or self._general()
            if name == "cachesize":
                emit(
                    f"CacheSize = {general.cache_size} "
                    "[default: 512, range: 64-1048576] "
                )
            elif name == "hostedfiles":
                emit(f"HostedFiles = {general.max_files} [default: 125, range: 1-125] ")
            elif name == "proconnections":
                emit(
                    f"ProConnections = {general.max_pro_connections} "
                    "[default: 250, range: 0-2000] "
                )
            elif name == "scriptsessions":
                emit(
                    f"ScriptSessions = {general.max_psos} [default: 100, range: 0-500] "
                )

    def get_server_config(self, names: Sequence[str]) -> int:
        self.show_server_config(names)
        return results.SUCCESS

    def _default_prefs(self) -> List[str]:
        names = [
            "maxguests",
            "maxfiles",
            "cachesize",
            "allowpsos",
            "requiresecuredb",
            "startuprestorationenabled",
        ]
        if supports_authenticated_stream(self.version_string, self.version):
            names.append("authenticatedstream")
        if self.version >= 19.5:
            names.append("parallelbackupenabled")
        if self.version >= 20.1:
            names.extend(SERVER_PREFS_READ_ONLY)
        return names

    def show_server_prefs(self, names: Sequence[str]) -> None:
        general = self._general()
        persistent: Optional[Dict[str, object]] = None
        for name in names:
            if name == "maxguests":
                emit(
                    f"MaxGuests = {general.max_pro_connections} "
                    "[default: 250, range: 0-2000] "
                )
            elif name == "maxfiles":
                emit(f"MaxFiles = {general.max_files} [default: 125, range: 1-125] ")
            elif name == "cachesize":
                emit(
                    f"CacheSize = {general.cache_size} "
                    "[default: 512, range: 64-1048576] "
                )
            elif name == "allowpsos":
                emit(f"AllowPSOS = {general.max_psos} [default: 100, range: 0-500] ")
            elif name == "requiresecuredb":
                secure = self._bool_setting(GetSecurityConfig(), "requireSecureDB")
                emit(f"RequireSecureDB = {_flag(secure)} [default: true] ")
            elif name == "startuprestorationenabled":
                if general.startup_restoration is not None:
                    emit(
                        "StartupRestorationEnabled = "
                        f"{_flag(general.startup_restoration)} [default: true] "
                    )
            elif name == "authenticatedstream":
                if supports_authenticated_stream(self.version_string, self.version):
                    value = safe_int(
                        self._read(GetAuthenticatedStream()).get("authenticatedStream")
                    )
                    emit(
                        f"AuthenticatedStream = {value or 0} [default: 1, range: 1-2] "
                    )
            elif name == "parallelbackupenabled":
                if self.version >= 19.5:
                    enabled = self._bool_setting(
                        GetParallelBackup(), "parallelBackupEnabled"
                    )
                    emit(f"ParallelBackupEnabled = {_flag(enabled)} [default: false] ")
            elif name in SERVER_PREFS_READ_ONLY:
                if self.version >= 20.1:
                    persistent = persistent or self._read(GetPersistentCache())
                    if name == "persistcacheenabled":
                        value = bool(safe_bool(persistent.get("persistentCache")))
                        emit(f"PersistCacheEnabled = {_flag(value)} [default: false] ")
                    else:
                        value = bool(safe_bool(persistent.get("persistentCacheSync")))
                        emit(f"SyncPersistCache = {_flag(value)} [default: false] ")

    def get_server_prefs(self, names: Sequence[str] = ()) -> int:
        """Print the named preferences; no names prints every supported one."""
        if not names:
            self.show_server_prefs(self._default_prefs())
            return results.SUCCESS
        if "startuprestorationenabled" in names and self.version >= 19.2:
            return results.UNAVAILABLE_COMMAND
        self.show_server_prefs(names)
        return results.SUCCESS

    def set_server_config(self, settings: ServerSettings) -> int:
        code = self._apply_general(settings)
        if code != results.SUCCESS:
            return code
        if settings.require_secure_db is not None:
            reply = self._call(SetSecurityConfig(settings.require_secure_db))
            if not reply.result.ok:
                return reply.code
        self.show_server_config(settings.names)
        return results.SUCCESS

    def _apply_general(self, settings: ServerSettings) -> int:
        if not settings.changes_general:
            return results.SUCCESS
        current = self._general()
        restoration = current.startup_restoration
        if restoration is not None and settings.startup_restoration is not None:
            restoration = settings.startup_restoration
        reply = self._call(
            SetGeneralConfig(
                cache_size=_pick(settings.cache_size, current.cache_size),
                max_files=_pick(settings.max_files, current.max_files),
                max_pro_connections=_pick(
                    settings.max_pro_connections, current.max_pro_connections
                ),
                max_psos=_pick(settings.max_psos, current.max_psos),
                startup_restoration=restoration,
            )
        )
        return reply.code

    def set_server_prefs(self, settings: ServerSettings) -> int:
        if settings.authenticated_stream is not None and not supports_authenticated_stream(
            self.version_string, self.version
        ):
            return results.UNAVAILABLE_COMMAND
        if settings.parallel_backup is not None and self.version < 19.5:
            return results.UNAVAILABLE_COMMAND
        restoration_before: Optional[bool] = None
        if settings.startup_restoration is not None:
            restoration_before = self._general().startup_restoration
            if restoration_before is None:
                return results.UNAVAILABLE_COMMAND

        code = self._apply_general(settings)
        if code != results.SUCCESS:
            return code
        if settings.require_secure_db is not None:
            reply = self._call(SetSecurityConfig(settings.require_secure_db))
            if not reply.result.ok:
                return reply.code
        if settings.authenticated_stream is not None:
            reply = self._call(SetAuthenticatedStream(settings.authenticated_stream))
            if not reply.result.ok:
                return results.INVALID_PARAMETER
        if settings.parallel_backup is not None:
            reply = self._call(SetParallelBackup(settings.parallel_backup))
            if not reply.result.ok:
                return results.INVALID_PARAMETER

        self.show_server_prefs(settings.names)
        if (
            restoration_before is not None
            and restoration_before != settings.startup_restoration
        ):
            emit(RESTART_REQUIRED_MESSAGE)
        return results.SUCCESS

    # web publishing

    def _web_config(self) -> WebConfig:
        php = self._read(GetPhpConfig())
        xml = self._read(GetXmlConfig())
        return WebConfig(
            php_enabled=bool(safe_bool(php.get("enabled"))),
            xml_enabled=bool(safe_bool(xml.get("enabled"))),
            encoding=safe_str(php.get("characterEncoding")) or "",
            locale=safe_str(php.get("errorMessageLanguage")) or "",
            pre_validation=bool(safe_bool(php.get("dataPreValidation"))),
            use_filemaker_php=bool(safe_bool(php.get("useFileMakerPhp"))),
        )

    def show_web_config(self, names: Sequence[str]) -> None:
        config = self._web_config()
        for name in names:
            if name == "enablephp":
                emit(f"EnablePHP = {_flag(config.php_enabled)}")
            elif name == "enablexml":
                emit(f"EnableXML = {_flag(config.xml_enabled)}")
            elif name == "encoding":
                emit(f"Encoding = {config.encoding} [ UTF-8 ISO-8859-1 ]")
            elif name == "locale":
                emit(f"Locale = {config.locale} [ en de fr it ja ]")
            elif name == "prevalidation":
                emit(f"PreValidation = {_flag(config.pre_validation)}")
            elif name == "usefmphp":
                emit(f"UseFMPHP = {_flag(config.use_filemaker_php)}")

    def get_web_config(self, names: Sequence[str]) -> int:
        self.show_web_config(names)
        return results.SUCCESS

    def set_web_config(self, requested: WebSettings) -> int:
        current = self._web_config()
        php_enabled = _pick(requested.php_enabled, current.php_enabled)
        use_filemaker_php = _pick(requested.use_filemaker_php, current.use_filemaker_php)
        if not php_enabled and not use_filemaker_php:
            # the FileMaker API for PHP stays selected while PHP is off
            use_filemaker_php = True
        if requested.changes_php or use_filemaker_php != current.use_filemaker_php:
            reply = self._call(
                SetPhpConfig(
                    enabled=php_enabled,
                    character_encoding=_pick(requested.encoding, current.encoding),
                    error_message_language=_pick(requested.locale, current.locale),
                    data_pre_validation=_pick(
                        requested.pre_validation, current.pre_validation
                    ),
                    use_filemaker_php=use_filemaker_php,
                )
            )
            if not reply.result.ok:
                return reply.code
        if requested.xml_enabled is not None:
            reply = self._call(SetXmlConfig(requested.xml_enabled))
            if not reply.result.ok:
                return reply.code
        self.show_web_config(requested.names)
        if (
            php_enabled != current.php_enabled
            or use_filemaker_php != current.use_filemaker_php
        ):
            emit(RESTART_REQUIRED_MESSAGE)
        return results.SUCCESS

    # certificates

    def create_certificate(self, subject: str, *, keyfile_pass: Optional[str]) -> int:
        if self.version < 19.2:
            return EXIT_INVALID_COMMAND
        if not subject:
            raise AdminAPIError(
                results.INVALID_PARAMETER, "Certificate subject is not specified."
            )
        if not keyfile_pass:
            raise AdminAPIError(
                results.INVALID_PARAMETER, "Invalid parameter for option: --KeyFilePass"
            )
        reply = self._call(CreateCsr(subject, keyfile_pass))
        if reply.code == results.PRIVATE_KEY_EXISTS:
            raise AdminAPIError(
                results.FILE_ALREADY_EXISTS,
                "Private key file already exists, please remove it and run the "
                "command again.",
            )
        return reply.code

    def import_certificate(
        self,
        certificate_file: str,
        *,
        keyfile: str = "",
        keyfile_pass: Optional[str] = None,
        intermediate_ca: str = "",
    ) -> int:
        if self.version < 19.2:
            return EXIT_INVALID_COMMAND
        if not certificate_file:
            raise AdminAPIError(
                results.INVALID_PARAMETER, "Certificate file is not specified."
            )
        certificate = load_certificate(Path(certificate_file))
        if not keyfile:
            raise AdminAPIError(results.FILE_NOT_FOUND, "Private key file does not exist.")
        password = keyfile_pass or ""
        private_key = load_private_key(Path(keyfile), password)
        chain = b""
        chain_expired = False
        if intermediate_ca:
            intermediate = load_intermediate_certificates(Path(intermediate_ca))
            chain, chain_expired = intermediate.data, intermediate.expired

        reply = self._call(
            ImportCertificate(
                certificate=certificate.decode("utf-8"),
                private_key=private_key.decode("utf-8"),
                intermediate_certificates=chain.decode("utf-8"),
                password=password,
            )
        )
        if reply.code == results.PRIVATE_KEY_EXISTS:
            raise AdminAPIError(
                results.FILE_ALREADY_EXISTS,
                "Private key file already exists, please remove it and run the "
                "command again.",
            )
        if not reply.result.ok and chain_expired:
            raise AdminAPIError(
                results.CERTIFICATE_EXPIRED,
                "Failed to verify the intermediate CA certificate.",
            )
        if reply.result.ok:
            emit(RESTART_REQUIRED_MESSAGE)
        return reply.code

    def delete_certificate(self) -> int:
        if self.version < 19.2:
            return EXIT_INVALID_COMMAND
        reply = self._call(DeleteCertificate())
        if reply.result.ok:
            emit(RESTART_REQUIRED_MESSAGE)
        return reply.code
