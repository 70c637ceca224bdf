"""Admin API session management: login with bounded retry and logout."""

from __future__ import annotations

import os
from contextlib import contextmanager
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator, Optional

from . import results
from .admin_api import AdminClient
from .console import log, log_debug
from .constants import DEFAULT_LOGIN_RETRIES, PASSWORD_ENV_VAR, USERNAME_ENV_VAR
from .envelopes import Logout, build
from .errors import AdminAPIError
from .http import basic_authorization, bearer_authorization, pki_authorization
from .pki import pki_token
from .prompts import prompt_password, prompt_text
from .utils import safe_str


class AuthMethod(Enum):
    BASIC = "basic"
    PKI = "pki"


@dataclass(frozen=True)
class Credentials:
    username: str = ""
    password: str = ""
    identity_file: Optional[Path] = None

    @property
    def method(self) -> AuthMethod:
        return AuthMethod.PKI if self.identity_file else AuthMethod.BASIC


@dataclass(frozen=True)
class Session:
    token: str
    auth_method: AuthMethod
    retries_remaining: int = 0


def default_retries(username: str, password: str) -> int:
    """No retry when both halves of the credentials were supplied up front."""
    if username and password:
        return 0
    return DEFAULT_LOGIN_RETRIES


def resolve_credentials(
    username: Optional[str],
    password: Optional[str],
    identity_file: Optional[Path] = None,
    *,
    config_username: Optional[str] = None,
) -> Credentials:
    """Fill credentials from flags, then the environment, then the config file.

    Whatever is still missing is prompted for at login time.
    """
    resolved_username = (
        username or os.environ.get(USERNAME_ENV_VAR) or config_username or ""
    )
    resolved_password = password or os.environ.get(PASSWORD_ENV_VAR) or ""
    return Credentials(
        username=resolved_username,
        password=resolved_password,
        identity_file=identity_file,
    )


def _complete(credentials: Credentials) -> Credentials:
    username = credentials.username
    password = credentials.password
    if not username:
        username = prompt_text("username:")
    if not password:
        password = prompt_password("password:")
    return replace(credentials, username=username, password=password)


def _authorization(credentials: Credentials) -> str:
    if credentials.identity_file is not None:
        token = pki_token(
            credentials.identity_file, lambda: prompt_password("Enter passphrase:")
        )
        return pki_authorization(token)
    completed = _complete(credentials)
    return basic_authorization(completed.username, completed.password)


def login(
    client: AdminClient,
    credentials: Credentials,
    *,
    retries: Optional[int] = None,
    authorize: Callable[[Credentials], str] = _authorization,
) -> Session:
    """Open an Admin API session.

    A rejected login is retried ``retries`` times, prompting again for any
    credential that was not supplied up front, so at most ``retries + 1``
    attempts are made. Exceeding the server's session limit is never retried.
    """
    remaining = (
        default_retries(credentials.username, credentials.password)
        if retries is None
        else retries
    )
    while True:
        reply = client.authenticate(authorize(credentials))
        code = reply.code
        token = safe_str(reply.response.get("token")) or ""
        if code == results.SUCCESS and token:
            return Session(
                token=token,
                auth_method=credentials.method,
                retries_remaining=remaining,
            )
        if code in (results.HOST_UNREACHABLE, results.SESSION_LIMIT_EXCEEDED):
            raise AdminAPIError(code)
        log_debug(f"login rejected with code {code}")
        if remaining > 0:
            log("Permission denied, please try again.")
            remaining -= 1
            continue
        log("Permission denied.")
        raise AdminAPIError(results.ACCESS_DENIED)


def logout(client: AdminClient, session: Session) -> None:
    """Close the session; the outcome never changes the command's result."""
    try:
        client.send(
            build(Logout(session.token)),
            authorization=bearer_authorization(session.token),
        )
    except AdminAPIError as exc:
        log_debug(f"logout failed with code {exc.code}")


@contextmanager
def admin_session(
    client: AdminClient,
    credentials: Credentials,
    *,
    retries: Optional[int] = None,
) -> Iterator[Session]:
    session = login(client, credentials, retries=retries)
    try:
        yield session
    finally:
        logout(client, session)
