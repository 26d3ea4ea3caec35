"""
Domain enums for registry access.
"""

from enum import Enum


class AccessMethod(Enum):
    """Transport used to reach the remote registry."""

    DIRECT = "direct"
    MANAGEMENT_QUERY = "wmi"
    REMOTE_EXEC = "remote_exec"


class Operation(Enum):
    """Gateway operation."""

    GET = "get"
    SET = "set"
    DELETE = "delete"


class OutcomeStatus(Enum):
    """Per-host operation status."""

    COMPLETE = "complete"
    FAILED = "failed"


class ErrorKind(Enum):
    """Stable error classification reported in outcomes."""

    TOO_SHORT = "too_short"
    MALFORMED = "malformed"
    LOCAL_HOST = "local_host"
    UNREACHABLE = "unreachable"
    ACCESS_DENIED = "access_denied"
    TIMEOUT = "timeout"
    REMOTE_FAULT = "remote_fault"
