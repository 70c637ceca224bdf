"""Shared constants for fmcsadmin."""

from __future__ import annotations

PACKAGE_NAME = "fmcsadmin"
DEFAULT_CONFIG_DIR_NAME = "fmcsadmin"

API_BASE_PATH = "/fmi/admin/api/v2"
DEFAULT_BASE_URI = "http://127.0.0.1:16001"

USERNAME_ENV_VAR = "FMS_USERNAME"
PASSWORD_ENV_VAR = "FMS_PASSWORD"
CONFIG_ENV_VAR = "FMCSADMIN_CONFIG"

HTTP_TIMEOUT_SECONDS = 5.0

DEFAULT_LOGIN_RETRIES = 3
DEFAULT_GRACE_TIME = 90
STOP_SERVER_MESSAGE = "Stopping FileMaker Database Engine..."

POLL_INTERVAL_SECONDS = 1.0
OPEN_POLL_ATTEMPTS = 3
DRAIN_POLL_ATTEMPTS = 120
STOP_POLL_ATTEMPTS = 120

PKI_AUDIENCE = "fmsadminapi"
PKI_TOKEN_LIFETIME_SECONDS = 15 * 60

DATABASE_EXTENSION = ".fmp12"
MAC_VOLUMES_ROOT = "/Volumes"
DEFAULT_DATABASES_FOLDER = "/Library/FileMaker Server/Data/Databases/"

# process exit codes that are not server result codes
EXIT_INVALID_PARAMETER = 23
EXIT_INVALID_COMMAND = 248
EXIT_INVALID_OPTION = 249
EXIT_CODE_INTERRUPT = 130

RESTART_REQUIRED_MESSAGE = (
    "Restart the FileMaker Server background processes to apply the change."
)
