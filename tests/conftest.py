from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from fmcsadmin.admin_api import AdminClient
from fmcsadmin.auth import AuthMethod, Session
from fmcsadmin.config import ConfigFile
from fmcsadmin.console import reset_console
from fmcsadmin.constants import (
    API_BASE_PATH,
    CONFIG_ENV_VAR,
    PASSWORD_ENV_VAR,
    USERNAME_ENV_VAR,
)
from fmcsadmin.context import AppContext
from fmcsadmin.orchestrator import Orchestrator

TOKEN = "session-token"


def envelope(response: Optional[Dict[str, Any]] = None, code: str = "0") -> Dict[str, Any]:
    return {"response": response or {}, "messages": [{"code": code, "text": ""}]}


def ok(response: Optional[Dict[str, Any]] = None) -> httpx.Response:
    return httpx.Response(200, json=envelope(response))


def failure(code: str, status_code: int = 400) -> httpx.Response:
    return httpx.Response(status_code, json=envelope(code=code))


def database(
    db_id: int,
    filename: str,
    status: str = "NORMAL",
    *,
    folder: str = "filelinux:/opt/FileMaker/FileMaker Server/Data/Databases/",
    hint: str = "",
    encrypted: bool = False,
) -> Dict[str, Any]:
    return {
        "id": str(db_id),
        "filename": filename,
        "folder": folder,
        "status": status,
        "decryptHint": hint,
        "clients": 0,
        "size": 1024,
        "enabledExtPrivileges": ["fmapp", "fmwebdirect"],
        "isEncrypted": encrypted,
    }


def client(client_id: int, *files: str, user: str = "alice") -> Dict[str, Any]:
    return {
        "id": str(client_id),
        "status": "NORMAL",
        "userName": user,
        "computerName": f"{user}-mac",
        "extpriv": "fmapp",
        "ipaddress": "192.0.2.10",
        "macaddress": "00:00:5e:00:53:af",
        "connectTime": "2024-05-01 09:30:00 UTC",
        "connectDuration": "00:10:00",
        "appVersion": "20.3",
        "appLanguage": "English",
        "guestFiles": [
            {"filename": name, "accountName": "Admin", "privsetName": "[Full Access]"}
            for name in files
        ],
    }


def schedule(
    schedule_id: int,
    name: str,
    *,
    task: str = "backupType",
    enabled: bool = True,
    status: str = "IDLE",
    last_run: str = "0000-00-00T00:00:00",
    next_run: str = "2024-05-02T02:00:00",
) -> Dict[str, Any]:
    return {
        "id": str(schedule_id),
        "name": name,
        task: {"resourceType": "ALL_DB", "resource": "x", "osScript": "x"},
        "enabled": enabled,
        "status": status,
        "lastRun": last_run,
        "nextRun": next_run,
    }


@dataclass
class Call:
    method: str
    path: str
    body: Any
    params: Dict[str, str]
    headers: Dict[str, str]


@dataclass
class FakeAdminServer:
    """In-memory Admin API that tracks resource state across requests."""

    version: str = "20.3.1.31"
    server_status: str = "RUNNING"
    databases: List[Dict[str, Any]] = field(default_factory=list)
    clients: List[Dict[str, Any]] = field(default_factory=list)
    schedules: List[Dict[str, Any]] = field(default_factory=list)
    plugins: List[Dict[str, Any]] = field(default_factory=list)
    general: Dict[str, Any] = field(
        default_factory=lambda: {
            "cacheSize": 512,
            "maxFiles": 125,
            "maxProConnections": 250,
            "maxPSOS": 100,
        }
    )
    security: Dict[str, Any] = field(default_factory=lambda: {"requireSecureDB": True})
    authenticated_stream: Dict[str, Any] = field(
        default_factory=lambda: {"authenticatedStream": 1}
    )
    parallel_backup: Dict[str, Any] = field(
        default_factory=lambda: {"parallelBackupEnabled": False}
    )
    persistent_cache: Dict[str, Any] = field(
        default_factory=lambda: {"persistentCache": False, "persistentCacheSync": False}
    )
    php: Dict[str, Any] = field(
        default_factory=lambda: {
            "enabled": True,
            "characterEncoding": "UTF-8",
            "errorMessageLanguage": "en",
            "dataPreValidation": False,
            "useFileMakerPhp": True,
        }
    )
    xml: Dict[str, Any] = field(default_factory=lambda: {"enabled": False})
    # result codes of successive logins; empty means success
    login_codes: List[str] = field(default_factory=list)
    # wrong keys leave the database CLOSED
    valid_key: Optional[str] = None
    # listings that still report a closed database as CLOSING
    close_lag: int = 0
    # status reads that still report STOPPING after the stop request
    stop_lag: int = 0
    overrides: Dict[Tuple[str, str], Callable[[Call], httpx.Response]] = field(
        default_factory=dict
    )
    calls: List[Call] = field(default_factory=list)
    sleeps: List[float] = field(default_factory=list)
    _closing: Dict[str, int] = field(default_factory=dict)

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)

    def requests(self, method: str, prefix: str = "") -> List[Call]:
        return [c for c in self.calls if c.method == method and c.path.startswith(prefix)]

    def _find(self, items: List[Dict[str, Any]], item_id: str) -> Optional[Dict[str, Any]]:
        for item in items:
            if item["id"] == item_id:
                return item
        return None

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path[len(API_BASE_PATH) + 1 :]
        body = json.loads(request.content) if request.content else None
        call = Call(
            method=request.method,
            path=path,
            body=body,
            params=dict(request.url.params),
            headers=dict(request.headers),
        )
        self.calls.append(call)
        override = self.overrides.get((call.method, path))
        if override is not None:
            return override(call)
        return self._route(call)

    def _route(self, call: Call) -> httpx.Response:
        method, path, body = call.method, call.path, call.body or {}
        parts = path.split("/")

        if path == "user/auth" and method == "POST":
            code = self.login_codes.pop(0) if self.login_codes else "0"
            if code != "0":
                return failure(code, 401)
            return ok({"token": TOKEN})
        if parts[:2] == ["user", "auth"] and method == "DELETE":
            return ok()

        if path == "databases" and method == "GET":
            self._advance_closing()
            return ok({"databases": self.databases, "totalDBCount": len(self.databases)})
        if parts[0] == "databases" and len(parts) == 2:
            db = self._find(self.databases, parts[1])
            if db is None:
                return failure("10904", 404)
            if method == "DELETE":
                self.databases.remove(db)
                return ok()
            return self._patch_database(db, body)

        if path == "clients" and method == "GET":
            return ok({"clients": self.clients})
        if parts[0] == "clients" and len(parts) >= 2:
            found = self._find(self.clients, parts[1])
            if found is None:
                return failure("11005", 404)
            if method == "DELETE":
                self.clients.remove(found)
            return ok()

        if path == "schedules" and method == "GET":
            return ok({"schedules": self.schedules})
        if parts[0] == "schedules" and len(parts) == 2:
            found = self._find(self.schedules, parts[1])
            if found is None:
                return failure("10600", 404)
            if method == "GET":
                return ok({"schedule": found})
            if method == "DELETE":
                self.schedules.remove(found)
                return ok()
            found.update(body)
            return ok({"schedule": found})

        if path == "plugins":
            return ok({"plugins": self.plugins})
        if path == "server/metadata":
            return ok({"ServerVersion": self.version})
        if path == "server/status":
            if method == "GET":
                return self._read_status()
            self.server_status = "STOPPING" if body["status"] == "STOPPED" and self.stop_lag else body["status"]
            return ok({"status": self.server_status})

        settings = {
            "server/config/general": self.general,
            "server/config/security": self.security,
            "server/config/authenticatedstream": self.authenticated_stream,
            "server/config/parallelbackup": self.parallel_backup,
            "server/config/persistentcache": self.persistent_cache,
            "php/config": self.php,
            "xml/config": self.xml,
        }
        if path in settings:
            if method == "PATCH":
                settings[path].update(body)
            return ok(dict(settings[path]))

        if path.startswith("server/certificate/") or path == "server/cancelbackup":
            return ok()
        return failure("3", 404)

    def _patch_database(self, db: Dict[str, Any], body: Dict[str, Any]) -> httpx.Response:
        requested = body.get("status")
        if requested == "OPENED":
            if self.valid_key is None or body.get("key") == self.valid_key:
                db["status"] = "NORMAL"
        elif requested == "CLOSED":
            if self.close_lag:
                db["status"] = "CLOSING"
                self._closing[db["id"]] = self.close_lag
            else:
                db["status"] = "CLOSED"
        elif requested == "PAUSED":
            db["status"] = "PAUSED"
        elif requested == "RESUMED":
            db["status"] = "NORMAL"
        return ok()

    def _advance_closing(self) -> None:
        for db in self.databases:
            remaining = self._closing.get(db["id"])
            if remaining is None:
                continue
            if remaining <= 0:
                db["status"] = "CLOSED"
                del self._closing[db["id"]]
            else:
                self._closing[db["id"]] = remaining - 1

    def _read_status(self) -> httpx.Response:
        if self.server_status == "STOPPING":
            if self.stop_lag <= 0:
                self.server_status = "STOPPED"
            self.stop_lag -= 1
        return ok({"status": self.server_status})


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path: Path):
    monkeypatch.delenv(USERNAME_ENV_VAR, raising=False)
    monkeypatch.delenv(PASSWORD_ENV_VAR, raising=False)
    monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "config.toml"))
    reset_console()
    yield
    reset_console()


@pytest.fixture
def fake_server() -> FakeAdminServer:
    return FakeAdminServer()


@pytest.fixture
def http_client(fake_server: FakeAdminServer):
    with httpx.Client(transport=httpx.MockTransport(fake_server.handle)) as http:
        yield http


@pytest.fixture
def admin_client(http_client: httpx.Client) -> AdminClient:
    return AdminClient(http_client)


@pytest.fixture
def orchestrator(admin_client: AdminClient, fake_server: FakeAdminServer) -> Orchestrator:
    session = Session(token=TOKEN, auth_method=AuthMethod.BASIC)
    return Orchestrator(admin_client, session, sleep=fake_server.sleep, volume_name="")


@pytest.fixture
def app_context(fake_server: FakeAdminServer, tmp_path: Path) -> AppContext:
    def factory(timeout: httpx.Timeout) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(fake_server.handle), timeout=timeout)

    return AppContext(
        config=ConfigFile(),
        config_path=tmp_path / "config.toml",
        http_client_factory=factory,
        sleep=fake_server.sleep,
    )
