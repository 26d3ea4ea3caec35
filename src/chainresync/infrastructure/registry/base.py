"""
Transport strategy interface.

Each strategy reaches the HKEY_LOCAL_MACHINE hive of a remote host through
one mechanism. Key path and value name are always supplied by the caller.
Strategies are stateless: every call acquires and releases its own handle,
process or session.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from chainresync.domain.enums import AccessMethod
from chainresync.domain.models import CallContext


class RegistryStrategy(ABC):
    """Read, write and delete one binary value on a remote host."""

    method: AccessMethod

    @abstractmethod
    def read_value(
        self, host: str, key_path: str, value_name: str, context: CallContext
    ) -> Optional[bytes]:
        """Return the raw bytes, or None when the key or value is absent."""

    @abstractmethod
    def write_value(
        self, host: str, key_path: str, value_name: str, data: bytes, context: CallContext
    ) -> None:
        """Write ``data`` as REG_BINARY, creating the key when absent."""

    @abstractmethod
    def delete_value(
        self, host: str, key_path: str, value_name: str, context: CallContext
    ) -> None:
        """Remove the value. Succeeds when it is already absent."""


def normalize_key_path(key_path: str) -> str:
    """Strip the trailing separator the registry APIs do not expect."""
    return key_path.rstrip("\\")
