"""
Per-host fan-out.

Runs one gateway operation against many hosts in a bounded thread pool.
Every host yields exactly one OperationOutcome; a failing host never stops
the others.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable, Optional

from chainresync.domain.enums import ErrorKind, Operation
from chainresync.domain.errors import ChainResyncError
from chainresync.domain.filetime import FileTime, TimestampLike
from chainresync.domain.models import Credential, OperationOutcome

from .gateway import MethodLike, RegistryValueGateway

logger = logging.getLogger(__name__)


class BatchRunner:
    """Execute a gateway operation across targets in parallel."""

    def __init__(self, gateway: RegistryValueGateway, max_workers: Optional[int] = None) -> None:
        self.gateway = gateway
        self.max_workers = max_workers if max_workers is not None else gateway.settings.max_workers
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")

    def run(
        self,
        hosts: Iterable[str],
        operation: Operation,
        method: MethodLike = None,
        *,
        timestamp: Optional[TimestampLike] = None,
        timeout: Optional[float] = None,
        credential: Optional[Credential] = None,
    ) -> list[OperationOutcome]:
        """
        Run ``operation`` for every host.

        Returns:
            Outcomes in the order the hosts were given, duplicates removed.

        Raises:
            ValueError: unknown method, or a missing or unstorable set timestamp.
                Raised before any host is contacted.
        """
        resolved = self.gateway.resolve_method(method)
        value: Optional[FileTime] = None
        if operation == Operation.SET:
            if timestamp is None:
                raise ValueError("A timestamp is required for set")
            value = as_filetime(timestamp)

        targets = _unique(hosts)
        if not targets:
            return []

        outcomes: dict[str, OperationOutcome] = {}
        workers = min(self.max_workers, len(targets))
        logger.debug("Running %s on %d host(s) with %d worker(s)", operation.value, len(targets), workers)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="host") as pool:
            futures = {
                pool.submit(
                    self.run_one, host, operation, resolved,
                    timestamp=value, timeout=timeout, credential=credential,
                ): host
                for host in targets
            }
            for future in as_completed(futures):
                host = futures[future]
                outcomes[host] = future.result()

        return [outcomes[host] for host in targets]

    def run_one(
        self,
        host: str,
        operation: Operation,
        method: MethodLike = None,
        *,
        timestamp: Optional[TimestampLike] = None,
        timeout: Optional[float] = None,
        credential: Optional[Credential] = None,
    ) -> OperationOutcome:
        """
        Run one operation and fold any host error into the outcome.

        Caller errors (unknown method, bad set timestamp) raise ValueError.
        """
        resolved = self.gateway.resolve_method(method)
        value: Optional[FileTime] = None
        if operation == Operation.SET:
            if timestamp is None:
                raise ValueError("A timestamp is required for set")
            value = as_filetime(timestamp)

        start = time.monotonic()
        try:
            present: Optional[bool] = None
            if operation == Operation.GET:
                value = self.gateway.get(host, resolved, timeout=timeout, credential=credential)
                present = value is not None
            elif operation == Operation.SET:
                value = self.gateway.set(host, value, resolved, timeout=timeout, credential=credential)
            else:
                self.gateway.delete(host, resolved, timeout=timeout, credential=credential)
        except ChainResyncError as exc:
            logger.error("%s: %s failed [%s] %s", host, operation.value, exc.kind.value, exc.detail)
            return OperationOutcome.failed(
                host, resolved, operation, exc.kind, exc.detail or str(exc), _elapsed_ms(start)
            )
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("%s: unexpected error during %s", host, operation.value)
            return OperationOutcome.failed(
                host, resolved, operation, ErrorKind.REMOTE_FAULT,
                f"{type(exc).__name__}: {exc}", _elapsed_ms(start),
            )

        return OperationOutcome.complete(
            host, resolved, operation, value=value, value_present=present, duration_ms=_elapsed_ms(start)
        )


def _unique(hosts: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for host in hosts:
        key = host.lower()
        if key not in seen:
            seen.add(key)
            result.append(host)
    return result


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def as_filetime(timestamp: TimestampLike) -> FileTime:
    """Convert a caller-supplied timestamp; out-of-range values raise ValueError."""
    if isinstance(timestamp, FileTime):
        return timestamp
    try:
        return FileTime.from_datetime(timestamp)
    except (OverflowError, ValueError) as exc:
        raise ValueError(f"Timestamp {timestamp!r} cannot be stored as a FILETIME: {exc}") from exc
