"""
Exception hierarchy.

Every error carries a stable ``kind`` so callers can branch on it without
parsing messages.
"""

from __future__ import annotations

from .enums import ErrorKind


class ChainResyncError(Exception):
    """Base class for all package errors."""

    kind: ErrorKind = ErrorKind.REMOTE_FAULT

    def __init__(self, detail: str = "", host: str | None = None) -> None:
        self.detail = detail
        self.host = host
        super().__init__(f"{host}: {detail}" if host else detail)


class DecodeError(ChainResyncError, ValueError):
    """Binary value could not be decoded."""


class FileTimeTooShortError(DecodeError):
    """Fewer than 8 bytes were supplied."""

    kind = ErrorKind.TOO_SHORT


class GatewayError(ChainResyncError):
    """Gateway operation failed."""


class MalformedValueError(GatewayError):
    """The stored value exists but is not a valid FILETIME."""

    kind = ErrorKind.MALFORMED


class LocalHostNotSupportedError(GatewayError):
    """The target resolves to the local machine."""

    kind = ErrorKind.LOCAL_HOST


class TransportError(GatewayError):
    """Remote access failed."""

    kind = ErrorKind.REMOTE_FAULT


class HostUnreachableError(TransportError):
    kind = ErrorKind.UNREACHABLE


class AccessDeniedError(TransportError):
    kind = ErrorKind.ACCESS_DENIED


class TransportTimeoutError(TransportError):
    kind = ErrorKind.TIMEOUT


class RemoteFaultError(TransportError):
    kind = ErrorKind.REMOTE_FAULT


_TRANSPORT_ERRORS = {
    ErrorKind.UNREACHABLE: HostUnreachableError,
    ErrorKind.ACCESS_DENIED: AccessDeniedError,
    ErrorKind.TIMEOUT: TransportTimeoutError,
    ErrorKind.REMOTE_FAULT: RemoteFaultError,
}


def transport_error(kind: ErrorKind, detail: str, host: str | None = None) -> TransportError:
    """Build the TransportError subclass matching ``kind``."""
    return _TRANSPORT_ERRORS.get(kind, RemoteFaultError)(detail, host=host)
