"""
chainresync - certificate chain cache resync timestamp management.

Reads, writes and deletes ``ChainCacheResyncFiletime`` on remote Windows
hosts through the remote registry, WMI or WinRM.

Usage:
    # CLI
    chainresync get server01 server02 --method remote_exec

    # Programmatic
    from chainresync import get_revocation_timestamp

    value = get_revocation_timestamp("server01")
"""

from __future__ import annotations

from typing import Optional

__version__ = "0.1.0"

from chainresync.application import BatchRunner, RegistryValueGateway
from chainresync.domain import (
    AccessMethod,
    Credential,
    FileTime,
    GatewaySettings,
    OperationOutcome,
    decode_filetime,
    encode_filetime,
)
from chainresync.domain.filetime import TimestampLike


def get_revocation_timestamp(
    host: str,
    method: AccessMethod = AccessMethod.MANAGEMENT_QUERY,
    *,
    timeout: Optional[float] = None,
    credential: Optional[Credential] = None,
) -> Optional[FileTime]:
    """Read the timestamp from ``host``; None when it is not set."""
    return RegistryValueGateway().get(host, method, timeout=timeout, credential=credential)


def set_revocation_timestamp(
    host: str,
    timestamp: TimestampLike,
    method: AccessMethod = AccessMethod.MANAGEMENT_QUERY,
    *,
    timeout: Optional[float] = None,
    credential: Optional[Credential] = None,
) -> FileTime:
    """Write ``timestamp`` on ``host``."""
    return RegistryValueGateway().set(host, timestamp, method, timeout=timeout, credential=credential)


def delete_revocation_timestamp(
    host: str,
    method: AccessMethod = AccessMethod.MANAGEMENT_QUERY,
    *,
    timeout: Optional[float] = None,
    credential: Optional[Credential] = None,
) -> None:
    """Remove the timestamp from ``host``."""
    RegistryValueGateway().delete(host, method, timeout=timeout, credential=credential)


__all__ = [
    "__version__",
    "AccessMethod",
    "BatchRunner",
    "Credential",
    "FileTime",
    "GatewaySettings",
    "OperationOutcome",
    "RegistryValueGateway",
    "decode_filetime",
    "encode_filetime",
    "get_revocation_timestamp",
    "set_revocation_timestamp",
    "delete_revocation_timestamp",
]
