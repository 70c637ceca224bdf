"""Admin API client: executes request envelopes over httpx."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from . import results
from .console import log_debug
from .constants import API_BASE_PATH, DEFAULT_BASE_URI
from .envelopes import (
    ApiRequest,
    GetServerMetadata,
    GetServerStatus,
    ListClients,
    ListDatabases,
    ListPlugins,
    ListSchedules,
    Login,
    Operation,
    build,
)
from .errors import AdminAPIError
from .http import bearer_authorization, describe_http_error, request_headers
from .utils import as_dict, as_list, redact_payload, safe_str


def base_uri_for(fqdn: Optional[str]) -> str:
    host = (fqdn or "").strip()
    if not host:
        return DEFAULT_BASE_URI
    if host.startswith(("http://", "https://")):
        return host.rstrip("/")
    return f"https://{host}"


@dataclass(frozen=True)
class Reply:
    result: results.OperationResult
    payload: Dict[str, Any]
    status_code: int

    @property
    def code(self) -> int:
        return self.result.code

    @property
    def response(self) -> Dict[str, Any]:
        return as_dict(self.payload.get("response"))


class AdminClient:
    """Thin wrapper around an ``httpx.Client`` bound to one server."""

    def __init__(self, http: httpx.Client, base_uri: str = DEFAULT_BASE_URI) -> None:
        self.http = http
        self.base_uri = base_uri.rstrip("/")

    def url(self, path: str) -> str:
        return f"{self.base_uri}{API_BASE_PATH}/{path.lstrip('/')}"

    def send(
        self,
        request: ApiRequest,
        *,
        authorization: str = "",
        http_errors_are_invalid: bool = False,
    ) -> Reply:
        url = self.url(request.path)
        headers = request_headers(authorization=authorization, has_body=request.has_body)
        log_debug(f"{request.method} {url} {redact_payload(request.body)}")
        try:
            response = self.http.request(
                request.method,
                url,
                headers=headers,
                params=request.params,
                content=request.encode() if request.has_body else None,
            )
        except httpx.HTTPError as exc:
            log_debug(describe_http_error(exc))
            raise AdminAPIError(results.HOST_UNREACHABLE) from exc
        result, payload = results.decode_response(
            response.status_code,
            response.content,
            http_errors_are_invalid=http_errors_are_invalid,
        )
        log_debug(f"{response.status_code} {request.path} -> {result.code}")
        return Reply(result=result, payload=payload, status_code=response.status_code)

    def call(self, operation: Operation, *, token: str) -> Reply:
        request = build(operation)
        return self.send(
            request,
            authorization=bearer_authorization(token),
            http_errors_are_invalid=request.method != "GET",
        )

    def authenticate(self, authorization: str) -> Reply:
        reply = self.send(build(Login()), authorization=authorization)
        if reply.code == results.UNAVAILABLE_COMMAND:
            # a login endpoint that does not answer JSON is not an Admin API
            return Reply(
                result=results.OperationResult(code=results.HOST_UNREACHABLE),
                payload={},
                status_code=reply.status_code,
            )
        return reply

    # listings

    def _listing(self, operation: Operation, key: str, token: str) -> List[Dict[str, Any]]:
        reply = self.call(operation, token=token)
        if not reply.result.ok:
            raise AdminAPIError(reply.code)
        return [as_dict(item) for item in as_list(reply.response.get(key))]

    def list_databases(self, token: str) -> List[Dict[str, Any]]:
        return self._listing(ListDatabases(), "databases", token)

    def list_clients(self, token: str) -> List[Dict[str, Any]]:
        return self._listing(ListClients(), "clients", token)

    def list_schedules(self, token: str) -> List[Dict[str, Any]]:
        return self._listing(ListSchedules(), "schedules", token)

    def list_plugins(self, token: str) -> List[Dict[str, Any]]:
        return self._listing(ListPlugins(), "plugins", token)

    def server_status(self, token: str) -> str:
        reply = self.call(GetServerStatus(), token=token)
        if not reply.result.ok:
            return ""
        return safe_str(reply.response.get("status")) or ""

    def version_string(self, token: str) -> str:
        reply = self.call(GetServerMetadata(), token=token)
        return safe_str(reply.response.get("ServerVersion")) or ""

    def reachable(self) -> bool:
        try:
            response = self.http.request(
                "GET",
                self.url("server/metadata"),
                headers=request_headers(),
            )
        except httpx.HTTPError as exc:
            log_debug(describe_http_error(exc))
            return False
        return response.status_code < 500


def parse_version(value: str) -> float:
    parts = value.strip().split(".")
    try:
        return float(".".join(parts[:2]))
    except ValueError:
        return 0.0
