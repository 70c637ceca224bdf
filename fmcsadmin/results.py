"""Admin API result codes and response envelope decoding."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from .utils import as_dict, as_list, safe_int, safe_str

SUCCESS = 0
UNKNOWN_ERROR = -1
UNAVAILABLE_COMMAND = 3
ACCESS_DENIED = 9
NOT_SUPPORTED = 21
SESSION_LIMIT_EXCEEDED = 956
SERVER_STOPPING = 1701
PRIVATE_KEY_EXISTS = 1712
INVALID_PARAMETER = 10001
SERVICE_ALREADY_RUNNING = 10006
OBJECT_NOT_FOUND = 10007
HOST_UNREACHABLE = 10502
SCHEDULE_NOT_FOUND = 10600
NO_APPLICABLE_FILES = 10904
INVALID_COMMAND = 11000
INVALID_OPTION = 11001
INVALID_CLIENT_ID = 11005
FILE_PERMISSION_ERROR = 20402
FILE_NOT_FOUND = 20405
FILE_ALREADY_EXISTS = 20406
FILE_READ_ERROR = 20408
DIRECTORY_NOT_EMPTY = 20501
CERTIFICATE_EXPIRED = 20630
CERTIFICATE_VERIFICATION_ERROR = 20632

ERROR_DESCRIPTIONS: Dict[int, str] = {
    -1: "Unknown error",
    3: "Unavailable command",
    4: "Command is unknown",
    8: "Empty result",
    9: "Access denied",
    21: "Not Supported",
    212: "Invalid user account and/or password; please try again",
    214: "Too many login attempts, account locked out",
    802: "Unable to open the file",
    956: "Maximum number of Admin API sessions exceeded",
    958: "Parameter missing",
    960: "Parameter is invalid",
    1700: "Resource doesn't exist",
    1702: (
        "Authentication information wasn't provided in the correct format; "
        "verify the value of the Authorization header"
    ),
    1708: "Parameter value is invalid",
    1713: "The API request is not supported for this operating system",
    1717: "PHP config file does not exist; PHP may not be installed on the server",
    10001: "Invalid parameter",
    10006: "Service already running",
    10007: "Requested object does not exist",
    10502: "Host unreachable",
    10600: "Schedule at specified index does not exist",
    10601: "Schedule is misconfigured; invalid taskType or run status",
    10603: "Schedule can't be created or duplicated",
    10604: "Cannot enable schedule",
    10610: "No schedules created in configuration file",
    10611: "Schedule name is already used",
    10904: "No applicable files for this operation",
    10906: "Script is missing",
    10908: "System script aborted",
    11000: "Invalid command",
    11001: "Invalid option",
    11002: "Unable to create command",
    11005: "Disconnect Client invalid ID",
    20402: "File permission error",
    20405: "File not found or not accessible.",
    20406: "File already exists",
    20408: "File read error",
    20501: "Directory not empty",
    20630: "SSL certificate expired",
    20632: "SSL certificate verification error",
    25004: "Parameters are invalid",
    25006: "Invalid session error",
}


@dataclass(frozen=True)
class OperationResult:
    code: int
    status: str = ""

    @property
    def ok(self) -> bool:
        return self.code == SUCCESS


def normalize_code(code: int) -> int:
    """Fold the transient server-stopping code into host unreachable."""
    if code == SERVER_STOPPING:
        return HOST_UNREACHABLE
    return code


def describe(code: int) -> str:
    return ERROR_DESCRIPTIONS.get(normalize_code(code), "")


def format_error(code: int) -> str:
    normalized = normalize_code(code)
    return f"Error: {normalized} ({describe(normalized)})"


def envelope_code(payload: Any) -> int:
    messages = as_list(as_dict(payload).get("messages"))
    if not messages:
        return UNKNOWN_ERROR
    code = safe_int(as_dict(messages[0]).get("code"))
    return UNKNOWN_ERROR if code is None else code


def decode(payload: Any) -> OperationResult:
    """Decode an already-parsed ``{response, messages}`` envelope."""
    response = as_dict(as_dict(payload).get("response"))
    status = safe_str(response.get("status")) or ""
    return OperationResult(code=envelope_code(payload), status=status)


def decode_response(
    status_code: int,
    content: bytes,
    *,
    http_errors_are_invalid: bool = False,
) -> Tuple[OperationResult, Dict[str, Any]]:
    """Decode a raw HTTP reply into a result and the parsed envelope.

    Mutating calls treat any HTTP status >= 400 as an invalid parameter,
    whatever the envelope says. A body that is not JSON is reported as an
    unavailable command.
    """
    if http_errors_are_invalid and status_code >= 400:
        return OperationResult(code=INVALID_PARAMETER), {}
    if not content:
        if status_code >= 400:
            return OperationResult(code=INVALID_PARAMETER), {}
        return OperationResult(code=SUCCESS), {}
    try:
        payload = json.loads(content.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return OperationResult(code=UNAVAILABLE_COMMAND), {}
    if not isinstance(payload, dict):
        return OperationResult(code=UNAVAILABLE_COMMAND), {}
    return decode(payload), payload
