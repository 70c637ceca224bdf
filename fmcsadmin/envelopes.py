"""Request construction for every Admin API operation.

Each operation kind is a frozen dataclass. ``build`` maps an operation to the
HTTP method, path (relative to the API base path), JSON body and query
parameters the server expects for it. Bodies are plain dicts whose key order
is fixed by the builder, so encoding the same operation twice is
byte-identical.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Type, TypeVar, Union
from urllib.parse import quote


@dataclass(frozen=True)
class ApiRequest:
    method: str
    path: str
    body: Optional[Dict[str, Any]] = None
    params: Optional[Dict[str, str]] = None

    @property
    def has_body(self) -> bool:
        return self.body is not None

    def encode(self) -> bytes:
        if self.body is None:
            return b""
        return json.dumps(self.body, separators=(",", ":"), ensure_ascii=False).encode(
            "utf-8"
        )


# authentication


@dataclass(frozen=True)
class Login:
    pass


@dataclass(frozen=True)
class Logout:
    token: str


# reads


@dataclass(frozen=True)
class ListDatabases:
    pass


@dataclass(frozen=True)
class ListClients:
    pass


@dataclass(frozen=True)
class ListSchedules:
    pass


@dataclass(frozen=True)
class GetSchedule:
    schedule_id: int


@dataclass(frozen=True)
class ListPlugins:
    pass


@dataclass(frozen=True)
class GetServerMetadata:
    pass


@dataclass(frozen=True)
class GetServerStatus:
    pass


@dataclass(frozen=True)
class GetGeneralConfig:
    pass


@dataclass(frozen=True)
class GetSecurityConfig:
    pass


@dataclass(frozen=True)
class GetAuthenticatedStream:
    pass


@dataclass(frozen=True)
class GetParallelBackup:
    pass


@dataclass(frozen=True)
class GetPersistentCache:
    pass


@dataclass(frozen=True)
class GetPhpConfig:
    pass


@dataclass(frozen=True)
class GetXmlConfig:
    pass


# databases


@dataclass(frozen=True)
class OpenDatabase:
    database_id: int
    key: str = ""
    save_key: bool = False


@dataclass(frozen=True)
class CloseDatabase:
    database_id: int
    message: str = ""
    force: bool = False


@dataclass(frozen=True)
class PauseDatabase:
    database_id: int


@dataclass(frozen=True)
class ResumeDatabase:
    database_id: int


@dataclass(frozen=True)
class RemoveDatabase:
    database_id: int


# clients


@dataclass(frozen=True)
class DisconnectClient:
    client_id: int
    message: str = ""
    grace_time: int = 90


@dataclass(frozen=True)
class SendMessage:
    client_id: int
    message: str = ""


# schedules


@dataclass(frozen=True)
class EnableSchedule:
    schedule_id: int


@dataclass(frozen=True)
class DisableSchedule:
    schedule_id: int


@dataclass(frozen=True)
class RunSchedule:
    schedule_id: int


@dataclass(frozen=True)
class DeleteSchedule:
    schedule_id: int


# server


@dataclass(frozen=True)
class SetServerStatus:
    status: str


@dataclass(frozen=True)
class SetGeneralConfig:
    """General settings; ``startup_restoration`` is only sent to servers
    whose configuration still exposes the startup restoration field."""

    cache_size: int
    max_files: int
    max_pro_connections: int
    max_psos: int
    startup_restoration: Optional[bool] = None


@dataclass(frozen=True)
class SetSecurityConfig:
    require_secure_db: bool


@dataclass(frozen=True)
class SetAuthenticatedStream:
    value: int


@dataclass(frozen=True)
class SetParallelBackup:
    enabled: bool


@dataclass(frozen=True)
class SetPhpConfig:
    enabled: bool
    character_encoding: str
    error_message_language: str
    data_pre_validation: bool
    use_filemaker_php: bool


@dataclass(frozen=True)
class SetXmlConfig:
    enabled: bool


@dataclass(frozen=True)
class CreateCsr:
    subject: str
    password: str


@dataclass(frozen=True)
class ImportCertificate:
    certificate: str
    private_key: str = ""
    intermediate_certificates: str = ""
    password: str = ""


@dataclass(frozen=True)
class DeleteCertificate:
    pass


@dataclass(frozen=True)
class CancelBackup:
    pass


Operation = Union[
    Login,
    Logout,
    ListDatabases,
    ListClients,
    ListSchedules,
    GetSchedule,
    ListPlugins,
    GetServerMetadata,
    GetServerStatus,
    GetGeneralConfig,
    GetSecurityConfig,
    GetAuthenticatedStream,
    GetParallelBackup,
    GetPersistentCache,
    GetPhpConfig,
    GetXmlConfig,
    OpenDatabase,
    CloseDatabase,
    PauseDatabase,
    ResumeDatabase,
    RemoveDatabase,
    DisconnectClient,
    SendMessage,
    EnableSchedule,
    DisableSchedule,
    RunSchedule,
    DeleteSchedule,
    SetServerStatus,
    SetGeneralConfig,
    SetSecurityConfig,
    SetAuthenticatedStream,
    SetParallelBackup,
    SetPhpConfig,
    SetXmlConfig,
    CreateCsr,
    ImportCertificate,
    DeleteCertificate,
    CancelBackup,
]

_Op = TypeVar("_Op")
_BUILDERS: Dict[type, Callable[[Any], ApiRequest]] = {}


def _builder(kind: Type[_Op]) -> Callable[[Callable[[_Op], ApiRequest]], Callable[[_Op], ApiRequest]]:
    def register(func: Callable[[_Op], ApiRequest]) -> Callable[[_Op], ApiRequest]:
        _BUILDERS[kind] = func
        return func

    return register


def _get(path: str) -> Callable[[Any], ApiRequest]:
    return lambda _op: ApiRequest("GET", path)


for _kind, _path in (
    (ListDatabases, "databases"),
    (ListClients, "clients"),
    (ListSchedules, "schedules"),
    (ListPlugins, "plugins"),
    (GetServerMetadata, "server/metadata"),
    (GetServerStatus, "server/status"),
    (GetGeneralConfig, "server/config/general"),
    (GetSecurityConfig, "server/config/security"),
    (GetAuthenticatedStream, "server/config/authenticatedstream"),
    (GetParallelBackup, "server/config/parallelbackup"),
    (GetPersistentCache, "server/config/persistentcache"),
    (GetPhpConfig, "php/config"),
    (GetXmlConfig, "xml/config"),
):
    _BUILDERS[_kind] = _get(_path)


@_builder(Login)
def _login(_op: Login) -> ApiRequest:
    return ApiRequest("POST", "user/auth")


@_builder(Logout)
def _logout(op: Logout) -> ApiRequest:
    return ApiRequest("DELETE", f"user/auth/{quote(op.token, safe='')}")


@_builder(GetSchedule)
def _get_schedule(op: GetSchedule) -> ApiRequest:
    return ApiRequest("GET", f"schedules/{op.schedule_id}")


@_builder(OpenDatabase)
def _open(op: OpenDatabase) -> ApiRequest:
    return ApiRequest(
        "PATCH",
        f"databases/{op.database_id}",
        {"status": "OPENED", "key": op.key, "saveKey": op.save_key},
    )


@_builder(CloseDatabase)
def _close(op: CloseDatabase) -> ApiRequest:
    return ApiRequest(
        "PATCH",
        f"databases/{op.database_id}",
        {"status": "CLOSED", "messageText": op.message, "force": op.force},
    )


@_builder(PauseDatabase)
def _pause(op: PauseDatabase) -> ApiRequest:
    return ApiRequest("PATCH", f"databases/{op.database_id}", {"status": "PAUSED"})


@_builder(ResumeDatabase)
def _resume(op: ResumeDatabase) -> ApiRequest:
    return ApiRequest("PATCH", f"databases/{op.database_id}", {"status": "RESUMED"})


@_builder(RemoveDatabase)
def _remove(op: RemoveDatabase) -> ApiRequest:
    return ApiRequest("DELETE", f"databases/{op.database_id}")


@_builder(DisconnectClient)
def _disconnect(op: DisconnectClient) -> ApiRequest:
    return ApiRequest(
        "DELETE",
        f"clients/{op.client_id}",
        params={"messageText": op.message, "graceTime": str(op.grace_time)},
    )


@_builder(SendMessage)
def _send_message(op: SendMessage) -> ApiRequest:
    return ApiRequest(
        "POST", f"clients/{op.client_id}/message", {"messageText": op.message}
    )


@_builder(EnableSchedule)
def _enable_schedule(op: EnableSchedule) -> ApiRequest:
    return ApiRequest("PATCH", f"schedules/{op.schedule_id}", {"enabled": True})


@_builder(DisableSchedule)
def _disable_schedule(op: DisableSchedule) -> ApiRequest:
    return ApiRequest("PATCH", f"schedules/{op.schedule_id}", {"enabled": False})


@_builder(RunSchedule)
def _run_schedule(op: RunSchedule) -> ApiRequest:
    return ApiRequest("PATCH", f"schedules/{op.schedule_id}", {"status": "RUNNING"})


@_builder(DeleteSchedule)
def _delete_schedule(op: DeleteSchedule) -> ApiRequest:
    return ApiRequest("DELETE", f"schedules/{op.schedule_id}")


@_builder(SetServerStatus)
def _server_status(op: SetServerStatus) -> ApiRequest:
    return ApiRequest("PATCH", "server/status", {"status": op.status})


@_builder(SetGeneralConfig)
def _general_config(op: SetGeneralConfig) -> ApiRequest:
    body: Dict[str, Any] = {
        "cacheSize": op.cache_size,
        "maxFiles": op.max_files,
        "maxProConnections": op.max_pro_connections,
        "maxPSOS": op.max_psos,
    }
    if op.startup_restoration is not None:
        body["startupRestorationEnabled"] = op.startup_restoration
    return ApiRequest("PATCH", "server/config/general", body)


@_builder(SetSecurityConfig)
def _security_config(op: SetSecurityConfig) -> ApiRequest:
    return ApiRequest(
        "PATCH", "server/config/security", {"requireSecureDB": op.require_secure_db}
    )


@_builder(SetAuthenticatedStream)
def _authenticated_stream(op: SetAuthenticatedStream) -> ApiRequest:
    return ApiRequest(
        "PATCH",
        "server/config/authenticatedstream",
        {"authenticatedStream": op.value},
    )


@_builder(SetParallelBackup)
def _parallel_backup(op: SetParallelBackup) -> ApiRequest:
    return ApiRequest(
        "PATCH",
        "server/config/parallelbackup",
        {"parallelBackupEnabled": op.enabled},
    )


@_builder(SetPhpConfig)
def _php_config(op: SetPhpConfig) -> ApiRequest:
    return ApiRequest(
        "PATCH",
        "php/config",
        {
            "enabled": op.enabled,
            "characterEncoding": op.character_encoding,
            "errorMessageLanguage": op.error_message_language,
            "dataPreValidation": op.data_pre_validation,
            "useFileMakerPhp": op.use_filemaker_php,
        },
    )


@_builder(SetXmlConfig)
def _xml_config(op: SetXmlConfig) -> ApiRequest:
    return ApiRequest("PATCH", "xml/config", {"enabled": op.enabled})


@_builder(CreateCsr)
def _create_csr(op: CreateCsr) -> ApiRequest:
    subject = base64.b64encode(op.subject.encode("utf-8")).decode("ascii")
    return ApiRequest(
        "PATCH",
        "server/certificate/csr",
        {"subject": subject, "password": op.password},
    )


@_builder(ImportCertificate)
def _import_certificate(op: ImportCertificate) -> ApiRequest:
    return ApiRequest(
        "PATCH",
        "server/certificate/import",
        {
            "certificate": op.certificate,
            "privateKey": op.private_key,
            "intermediateCertificates": op.intermediate_certificates,
            "password": op.password,
        },
    )


@_builder(DeleteCertificate)
def _delete_certificate(_op: DeleteCertificate) -> ApiRequest:
    return ApiRequest("DELETE", "server/certificate/delete")


@_builder(CancelBackup)
def _cancel_backup(_op: CancelBackup) -> ApiRequest:
    return ApiRequest("POST", "server/cancelbackup")


def build(operation: Operation) -> ApiRequest:
    try:
        builder = _BUILDERS[type(operation)]
    except KeyError:
        raise TypeError(f"unsupported operation: {type(operation).__name__}") from None
    return builder(operation)
