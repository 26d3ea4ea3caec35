"""
Direct remote registry transport.

Connects to HKEY_LOCAL_MACHINE on the target with ``winreg.ConnectRegistry``
(the Remote Registry service) and works on the opened subkey. Runs under the
process identity; the API has no way to pass explicit credentials.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Callable, Optional, TypeVar

from chainresync.domain.enums import AccessMethod
from chainresync.domain.errors import (
    AccessDeniedError,
    HostUnreachableError,
    MalformedValueError,
    RemoteFaultError,
    TransportError,
    TransportTimeoutError,
)
from chainresync.domain.models import CallContext

from .base import RegistryStrategy, normalize_key_path

logger = logging.getLogger(__name__)

T = TypeVar("T")

ERROR_ACCESS_DENIED = 5
ERROR_LOGON_FAILURE = 1326
UNREACHABLE_WINERRORS = frozenset({
    53,    # ERROR_BAD_NETPATH
    67,    # ERROR_BAD_NET_NAME
    1203,  # ERROR_NO_NET_OR_BAD_PATH
    1231,  # ERROR_NETWORK_UNREACHABLE
    1232,  # ERROR_HOST_UNREACHABLE
    1722,  # RPC_S_SERVER_UNAVAILABLE
    1727,  # RPC_S_CALL_FAILED_DNE
    1753,  # EPT_S_NOT_REGISTERED
})


def map_os_error(exc: OSError, host: str) -> TransportError:
    """Classify a winreg failure."""
    winerror = getattr(exc, "winerror", None)
    detail = str(exc)
    if isinstance(exc, PermissionError) or winerror in (ERROR_ACCESS_DENIED, ERROR_LOGON_FAILURE):
        return AccessDeniedError(detail, host=host)
    if winerror in UNREACHABLE_WINERRORS or isinstance(exc, ConnectionError):
        return HostUnreachableError(detail, host=host)
    return RemoteFaultError(detail, host=host)


def unc_name(host: str) -> str:
    return host if host.startswith("\\\\") else f"\\\\{host}"


class DirectRegistryStrategy(RegistryStrategy):
    """
    Remote registry access through ``winreg``.

    ``registry_api`` defaults to the ``winreg`` module and can be replaced by
    any object exposing the same functions and constants.
    """

    method = AccessMethod.DIRECT

    def __init__(self, registry_api: Any = None) -> None:
        self._api = registry_api

    def _winreg(self, host: str) -> Any:
        if self._api is None:
            try:
                import winreg  # pylint: disable=import-outside-toplevel
            except ImportError as exc:
                raise RemoteFaultError(
                    "Direct registry access is only available on Windows", host=host
                ) from exc
            self._api = winreg
        return self._api

    def read_value(
        self, host: str, key_path: str, value_name: str, context: CallContext
    ) -> Optional[bytes]:
        api = self._winreg(host)
        subkey = normalize_key_path(key_path)

        def _read() -> Optional[bytes]:
            with api.ConnectRegistry(unc_name(host), api.HKEY_LOCAL_MACHINE) as hive:
                try:
                    with api.OpenKey(hive, subkey, 0, api.KEY_READ) as key:
                        value, value_type = api.QueryValueEx(key, value_name)
                except FileNotFoundError:
                    return None
            if value_type != api.REG_BINARY or not isinstance(value, (bytes, bytearray)):
                raise MalformedValueError(
                    f"{value_name} has registry type {value_type}, expected REG_BINARY",
                    host=host,
                )
            return bytes(value)

        return self._run(host, context, _read)

    def write_value(
        self, host: str, key_path: str, value_name: str, data: bytes, context: CallContext
    ) -> None:
        api = self._winreg(host)
        subkey = normalize_key_path(key_path)

        def _write() -> None:
            with api.ConnectRegistry(unc_name(host), api.HKEY_LOCAL_MACHINE) as hive:
                with api.CreateKeyEx(hive, subkey, 0, api.KEY_WRITE) as key:
                    api.SetValueEx(key, value_name, 0, api.REG_BINARY, bytes(data))

        self._run(host, context, _write)

    def delete_value(
        self, host: str, key_path: str, value_name: str, context: CallContext
    ) -> None:
        api = self._winreg(host)
        subkey = normalize_key_path(key_path)

        def _delete() -> None:
            with api.ConnectRegistry(unc_name(host), api.HKEY_LOCAL_MACHINE) as hive:
                try:
                    with api.OpenKey(hive, subkey, 0, api.KEY_SET_VALUE) as key:
                        api.DeleteValue(key, value_name)
                except FileNotFoundError:
                    logger.debug("%s: %s already absent", host, value_name)

        self._run(host, context, _delete)

    def _run(self, host: str, context: CallContext, call: Callable[[], T]) -> T:
        """
        Run a blocking winreg call in a single-use worker thread.

        winreg calls cannot be interrupted; on timeout the worker is abandoned
        and the call reports a timeout.
        """
        if context.credential is not None:
            logger.warning(
                "%s: direct registry access runs as the current process identity; "
                "credential for %s ignored",
                host,
                context.credential.username,
            )

        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="winreg")
        future = pool.submit(call)
        try:
            return future.result(timeout=context.timeout_seconds)
        except FuturesTimeoutError as exc:
            if not future.done():
                raise TransportTimeoutError(
                    f"Remote registry call timed out after {context.timeout_seconds}s",
                    host=host,
                ) from exc
            raise map_os_error(exc, host) from exc
        except OSError as exc:
            raise map_os_error(exc, host) from exc
        finally:
            pool.shutdown(wait=False, cancel_futures=True)
