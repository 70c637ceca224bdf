"""Private key, certificate and PKI token helpers.

Key and certificate files are read from disk and parsed with
``cryptography``. Every failure is raised as an :class:`AdminAPIError`
carrying the result code the server-side tooling uses for the same problem
(permission error, missing file, unreadable content, expired certificate).
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

import jwt
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import load_pem_private_key

from . import results
from .constants import PKI_AUDIENCE, PKI_TOKEN_LIFETIME_SECONDS
from .errors import AdminAPIError

PassphraseProvider = Callable[[], str]

_UNSUPPORTED_PEM_TYPES = (
    "PRIVATE KEY",
    "EC PRIVATE KEY",
    "EC PARAMETERS",
)


def read_file(path: Path, *, detail: Optional[str] = None) -> bytes:
    try:
        return path.read_bytes()
    except PermissionError as exc:
        raise AdminAPIError(results.FILE_PERMISSION_ERROR, detail) from exc
    except OSError as exc:
        raise AdminAPIError(results.FILE_NOT_FOUND, detail) from exc


def _pem_type(data: bytes) -> str:
    text = data.decode("utf-8", errors="replace")
    marker = "-----BEGIN "
    start = text.find(marker)
    if start < 0:
        return ""
    end = text.find("-----", start + len(marker))
    if end < 0:
        return ""
    return text[start + len(marker) : end].strip()


def load_identity_key(
    path: Path, passphrase: PassphraseProvider
) -> rsa.RSAPrivateKey:
    """Load the RSA private key used to sign PKI login tokens.

    Only PKCS#1 RSA keys are accepted. A passphrase is requested only when
    the key turns out to be encrypted.
    """
    data = read_file(path)
    kind = _pem_type(data)
    if kind in _UNSUPPORTED_PEM_TYPES:
        raise AdminAPIError(results.NOT_SUPPORTED)
    if kind != "RSA PRIVATE KEY":
        raise AdminAPIError(results.FILE_READ_ERROR)
    try:
        key = load_pem_private_key(data, password=None)
    except TypeError:
        secret = passphrase()
        try:
            key = load_pem_private_key(data, password=secret.encode("utf-8"))
        except (TypeError, ValueError) as exc:
            raise AdminAPIError(results.FILE_READ_ERROR) from exc
    except ValueError as exc:
        raise AdminAPIError(results.FILE_READ_ERROR) from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise AdminAPIError(results.NOT_SUPPORTED)
    return key


def identity_issuer(path: Path) -> str:
    return path.stem.replace("_", " ")


def pki_token(
    path: Path,
    passphrase: PassphraseProvider,
    *,
    now: Optional[Callable[[], float]] = None,
) -> str:
    key = load_identity_key(path, passphrase)
    issued = int((now or time.time)())
    claims = {
        "iss": identity_issuer(path),
        "aud": PKI_AUDIENCE,
        "exp": issued + PKI_TOKEN_LIFETIME_SECONDS,
    }
    return jwt.encode(claims, key, algorithm="RS256")


# certificate import


def _expired(certificate: x509.Certificate) -> bool:
    return datetime.now(timezone.utc) > certificate.not_valid_after_utc


def load_certificate(path: Path) -> bytes:
    try:
        data = read_file(path, detail="Cannot read certificate file")
    except AdminAPIError as exc:
        if exc.code == results.FILE_NOT_FOUND:
            raise AdminAPIError(
                results.FILE_NOT_FOUND, f"Certificate {path} does not exist."
            ) from exc
        raise
    try:
        certificate = x509.load_pem_x509_certificate(data)
    except ValueError as exc:
        raise AdminAPIError(
            results.FILE_READ_ERROR, "The certificate file is not valid."
        ) from exc
    if _expired(certificate):
        raise AdminAPIError(results.CERTIFICATE_EXPIRED, "The certificate has expired.")
    return data


_DECRYPT_FAILED = (
    "Cannot decrypt the private key file with the password. "
    "Please make sure the key file and password are correct."
)


def load_private_key(path: Path, password: str) -> bytes:
    data = read_file(path, detail="Cannot read private key file")
    try:
        load_pem_private_key(data, password=None)
        return data
    except TypeError:
        pass
    except ValueError as exc:
        raise AdminAPIError(results.FILE_READ_ERROR, _DECRYPT_FAILED) from exc
    try:
        load_pem_private_key(data, password=password.encode("utf-8"))
    except (TypeError, ValueError) as exc:
        raise AdminAPIError(results.FILE_READ_ERROR, _DECRYPT_FAILED) from exc
    return data


@dataclass(frozen=True)
class IntermediateChain:
    data: bytes
    expired: bool


def load_intermediate_certificates(path: Path) -> IntermediateChain:
    data = read_file(path, detail="Cannot read intermediate CA file")
    try:
        chain: List[x509.Certificate] = x509.load_pem_x509_certificates(data)
    except ValueError as exc:
        raise AdminAPIError(
            results.CERTIFICATE_VERIFICATION_ERROR,
            "Failed to verify the intermediate CA certificate.",
        ) from exc
    return IntermediateChain(data=data, expired=any(_expired(c) for c in chain))
