"""
Registry value gateway.

Get, set and delete the chain cache resync FILETIME on a remote host through
a transport chosen per call. The operation is identical for every transport;
only the remote access mechanism differs.
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Optional, Union

from chainresync.domain.constants import REGISTRY_KEY_PATH, REGISTRY_VALUE_NAME
from chainresync.domain.enums import AccessMethod
from chainresync.domain.errors import (
    DecodeError,
    LocalHostNotSupportedError,
    MalformedValueError,
)
from chainresync.domain.filetime import FileTime, TimestampLike, decode_filetime, encode_filetime
from chainresync.domain.models import CallContext, Credential
from chainresync.domain.settings import GatewaySettings
from chainresync.infrastructure.registry import (
    DirectRegistryStrategy,
    ManagementQueryStrategy,
    PowerShellRunner,
    RegistryStrategy,
    RemoteExecStrategy,
    is_local_host,
)

logger = logging.getLogger(__name__)

MethodLike = Union[AccessMethod, str, None]


def default_strategies(settings: GatewaySettings) -> dict[AccessMethod, RegistryStrategy]:
    """Build the production transport for every access method."""
    return {
        AccessMethod.DIRECT: DirectRegistryStrategy(),
        AccessMethod.MANAGEMENT_QUERY: ManagementQueryStrategy(
            PowerShellRunner(settings.powershell_executable)
        ),
        AccessMethod.REMOTE_EXEC: RemoteExecStrategy(settings.winrm),
    }


class RegistryValueGateway:
    """
    Uniform access to ``ChainCacheResyncFiletime`` on remote hosts.

    Holds no per-call state; one instance may serve many threads.
    """

    def __init__(
        self,
        settings: Optional[GatewaySettings] = None,
        strategies: Optional[Mapping[AccessMethod, RegistryStrategy]] = None,
        local_host_check: Callable[[str], bool] = is_local_host,
    ) -> None:
        self.settings = settings or GatewaySettings()
        self._strategies = dict(strategies) if strategies is not None else default_strategies(self.settings)
        self._is_local_host = local_host_check

    def resolve_method(self, method: MethodLike) -> AccessMethod:
        if method is None:
            return self.settings.default_method
        return method if isinstance(method, AccessMethod) else AccessMethod(method)

    def strategy_for(self, method: MethodLike) -> RegistryStrategy:
        resolved = self.resolve_method(method)
        try:
            return self._strategies[resolved]
        except KeyError as exc:
            raise ValueError(f"No transport configured for {resolved.value}") from exc

    def get(
        self,
        host: str,
        method: MethodLike = None,
        *,
        timeout: Optional[float] = None,
        credential: Optional[Credential] = None,
    ) -> Optional[FileTime]:
        """
        Read the stored timestamp.

        Returns:
            The FileTime, or None when the value is not set.

        Raises:
            LocalHostNotSupportedError: host is the local machine
            MalformedValueError: the stored bytes are not a FILETIME
            TransportError: the remote call failed
        """
        strategy, context = self._prepare(host, method, timeout, credential)
        raw = strategy.read_value(host, REGISTRY_KEY_PATH, REGISTRY_VALUE_NAME, context)
        if raw is None:
            logger.info("%s: %s not set (%s)", host, REGISTRY_VALUE_NAME, strategy.method.value)
            return None
        try:
            value = decode_filetime(raw)
        except DecodeError as exc:
            raise MalformedValueError(f"{REGISTRY_VALUE_NAME}: {exc.detail}", host=host) from exc
        logger.info("%s: %s = %s (%s)", host, REGISTRY_VALUE_NAME, value, strategy.method.value)
        return value

    def set(
        self,
        host: str,
        timestamp: TimestampLike,
        method: MethodLike = None,
        *,
        timeout: Optional[float] = None,
        credential: Optional[Credential] = None,
    ) -> FileTime:
        """
        Write the timestamp, creating the key when absent.

        Returns:
            The FileTime written.
        """
        value = timestamp if isinstance(timestamp, FileTime) else FileTime.from_datetime(timestamp)
        strategy, context = self._prepare(host, method, timeout, credential)
        strategy.write_value(
            host, REGISTRY_KEY_PATH, REGISTRY_VALUE_NAME, encode_filetime(value), context
        )
        logger.info("%s: %s set to %s (%s)", host, REGISTRY_VALUE_NAME, value, strategy.method.value)
        return value

    def delete(
        self,
        host: str,
        method: MethodLike = None,
        *,
        timeout: Optional[float] = None,
        credential: Optional[Credential] = None,
    ) -> None:
        """Remove the value. Deleting an absent value succeeds."""
        strategy, context = self._prepare(host, method, timeout, credential)
        strategy.delete_value(host, REGISTRY_KEY_PATH, REGISTRY_VALUE_NAME, context)
        logger.info("%s: %s deleted (%s)", host, REGISTRY_VALUE_NAME, strategy.method.value)

    def _prepare(
        self,
        host: str,
        method: MethodLike,
        timeout: Optional[float],
        credential: Optional[Credential],
    ) -> tuple[RegistryStrategy, CallContext]:
        if self._is_local_host(host):
            raise LocalHostNotSupportedError(
                "Target is the local machine; remote registry transports do not support it",
                host=host,
            )
        strategy = self.strategy_for(method)
        context = CallContext(
            timeout_seconds=timeout if timeout is not None else self.settings.timeout_seconds,
            credential=credential,
        )
        return strategy, context
