"""
Domain package: codec, models, settings and errors.
"""

from .constants import HKEY_LOCAL_MACHINE, REGISTRY_KEY_PATH, REGISTRY_VALUE_NAME
from .enums import AccessMethod, ErrorKind, Operation, OutcomeStatus
from .errors import (
    AccessDeniedError,
    ChainResyncError,
    DecodeError,
    FileTimeTooShortError,
    GatewayError,
    HostUnreachableError,
    LocalHostNotSupportedError,
    MalformedValueError,
    RemoteFaultError,
    TransportError,
    TransportTimeoutError,
)
from .filetime import FileTime, decode_filetime, encode_filetime
from .models import CallContext, Credential, OperationOutcome
from .settings import GatewaySettings, WinRMSettings

__all__ = [
    "HKEY_LOCAL_MACHINE",
    "REGISTRY_KEY_PATH",
    "REGISTRY_VALUE_NAME",
    "AccessMethod",
    "ErrorKind",
    "Operation",
    "OutcomeStatus",
    "AccessDeniedError",
    "ChainResyncError",
    "DecodeError",
    "FileTimeTooShortError",
    "GatewayError",
    "HostUnreachableError",
    "LocalHostNotSupportedError",
    "MalformedValueError",
    "RemoteFaultError",
    "TransportError",
    "TransportTimeoutError",
    "FileTime",
    "decode_filetime",
    "encode_filetime",
    "CallContext",
    "Credential",
    "OperationOutcome",
    "GatewaySettings",
    "WinRMSettings",
]
