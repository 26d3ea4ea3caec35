"""
Remote execution transport.

Runs a PowerShell registry script on the target over WinRM (pywinrm). The
operation parameters are serialised to JSON and embedded as a base64 literal
that the remote script decodes, so they never become part of the code.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Callable, Optional

import requests
import winrm  # pywinrm
from winrm.exceptions import (
    AuthenticationError,
    InvalidCredentialsError,
    WinRMError,
    WinRMOperationTimeoutError,
    WinRMTransportError,
)

from chainresync.domain.enums import AccessMethod, ErrorKind
from chainresync.domain.errors import (
    AccessDeniedError,
    HostUnreachableError,
    MalformedValueError,
    RemoteFaultError,
    TransportError,
    TransportTimeoutError,
    transport_error,
)
from chainresync.domain.models import CallContext
from chainresync.domain.settings import WinRMSettings

from .base import RegistryStrategy, normalize_key_path
from .wmi import parse_result_line

logger = logging.getLogger(__name__)

PAYLOAD_TOKEN = "__CHAINRESYNC_PAYLOAD__"
DEFAULT_TIMEOUT_SECONDS = 60
RECEIVE_POLL_SECONDS = 20

REGISTRY_SCRIPT = r"""
$ErrorActionPreference = 'Stop'
$payload = '__CHAINRESYNC_PAYLOAD__'
$p = [Text.Encoding]::UTF8.GetString([Convert]::FromBase64String($payload)) | ConvertFrom-Json
$path = 'Registry::HKEY_LOCAL_MACHINE\' + $p.key_path

function Write-Outcome([hashtable]$Result) {
    Write-Output ($Result | ConvertTo-Json -Compress)
}

try {
    switch ($p.operation) {
        'get' {
            if (-not (Test-Path -LiteralPath $path)) { Write-Outcome @{ status = 'ok'; found = $false }; break }
            $key = Get-Item -LiteralPath $path
            $value = $key.GetValue($p.value_name)
            if ($null -eq $value) { Write-Outcome @{ status = 'ok'; found = $false }; break }
            if ($key.GetValueKind($p.value_name) -ne [Microsoft.Win32.RegistryValueKind]::Binary) {
                Write-Outcome @{ status = 'error'; kind = 'malformed'; message = "$($p.value_name) is not REG_BINARY" }
                break
            }
            Write-Outcome @{ status = 'ok'; found = $true; data = [Convert]::ToBase64String([byte[]]$value) }
        }
        'set' {
            if (-not (Test-Path -LiteralPath $path)) { New-Item -Path $path -Force | Out-Null }
            $bytes = [Convert]::FromBase64String($p.data)
            New-ItemProperty -LiteralPath $path -Name $p.value_name -PropertyType Binary -Value $bytes -Force | Out-Null
            Write-Outcome @{ status = 'ok' }
        }
        'delete' {
            if ((Test-Path -LiteralPath $path) -and $null -ne (Get-Item -LiteralPath $path).GetValue($p.value_name)) {
                Remove-ItemProperty -LiteralPath $path -Name $p.value_name
            }
            Write-Outcome @{ status = 'ok' }
        }
    }
}
catch [System.UnauthorizedAccessException], [System.Security.SecurityException] {
    Write-Outcome @{ status = 'error'; kind = 'access_denied'; message = $_.Exception.Message }
}
catch {
    Write-Outcome @{ status = 'error'; kind = 'remote_fault'; message = $_.Exception.Message }
}
"""

_KINDS = {
    "access_denied": ErrorKind.ACCESS_DENIED,
    "unreachable": ErrorKind.UNREACHABLE,
    "timeout": ErrorKind.TIMEOUT,
    "remote_fault": ErrorKind.REMOTE_FAULT,
}

SessionFactory = Callable[[str, CallContext], Any]


def build_script(operation: str, key_path: str, value_name: str, data: Optional[bytes] = None) -> str:
    """Render the remote script with its parameters embedded as data."""
    params: dict[str, Any] = {
        "operation": operation,
        "key_path": normalize_key_path(key_path),
        "value_name": value_name,
    }
    if data is not None:
        params["data"] = base64.b64encode(bytes(data)).decode("ascii")
    payload = base64.b64encode(json.dumps(params).encode("utf-8")).decode("ascii")
    return REGISTRY_SCRIPT.replace(PAYLOAD_TOKEN, payload)


class RemoteExecStrategy(RegistryStrategy):
    """Registry access through a PowerShell script run over WinRM."""

    method = AccessMethod.REMOTE_EXEC

    def __init__(
        self,
        settings: Optional[WinRMSettings] = None,
        session_factory: Optional[SessionFactory] = None,
    ) -> None:
        self.settings = settings or WinRMSettings()
        self._session_factory = session_factory or self._open_session

    def read_value(
        self, host: str, key_path: str, value_name: str, context: CallContext
    ) -> Optional[bytes]:
        result = self._execute(host, build_script("get", key_path, value_name), context)
        if not result.get("found"):
            return None
        try:
            return base64.b64decode(result.get("data") or "", validate=True)
        except (binascii.Error, TypeError) as exc:
            raise MalformedValueError(f"Undecodable remote data: {exc}", host=host) from exc

    def write_value(
        self, host: str, key_path: str, value_name: str, data: bytes, context: CallContext
    ) -> None:
        self._execute(host, build_script("set", key_path, value_name, data), context)

    def delete_value(
        self, host: str, key_path: str, value_name: str, context: CallContext
    ) -> None:
        self._execute(host, build_script("delete", key_path, value_name), context)

    def _open_session(self, host: str, context: CallContext) -> winrm.Session:
        """Create a pywinrm session for one call."""
        timeout = int(context.timeout_seconds or DEFAULT_TIMEOUT_SECONDS)
        credential = context.credential
        if credential is not None:
            auth = (credential.username, credential.password.get_secret_value())
            transport = self.settings.credential_auth
        else:
            auth = (None, None)
            transport = self.settings.auth

        # Receive calls return at least every operation timeout so the output
        # loop can check the call deadline.
        operation_timeout = max(1, min(timeout, RECEIVE_POLL_SECONDS))
        kwargs: dict[str, Any] = {
            "target": self.settings.endpoint(host),
            "auth": auth,
            "transport": transport,
            "server_cert_validation": "validate" if self.settings.verify_ssl else "ignore",
            "operation_timeout_sec": operation_timeout,
            # pywinrm requires the read timeout to exceed the operation timeout
            "read_timeout_sec": operation_timeout + 10,
        }
        if self.settings.ca_trust_path:
            kwargs["ca_trust_path"] = self.settings.ca_trust_path
        return winrm.Session(**kwargs)

    def _execute(self, host: str, script: str, context: CallContext) -> dict[str, Any]:
        timeout = context.timeout_seconds or DEFAULT_TIMEOUT_SECONDS
        deadline = time.monotonic() + timeout

        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="winrm")
        future = pool.submit(self._run_script, host, script, context, deadline)
        try:
            response = future.result(timeout=timeout)
        except FuturesTimeoutError as exc:
            if not future.done():
                raise TransportTimeoutError(
                    f"Remote script did not finish within {timeout}s", host=host
                ) from exc
            raise RemoteFaultError(f"{type(exc).__name__}: {exc}", host=host) from exc
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        stdout = response.std_out.decode("utf-8", errors="replace")
        stderr = response.std_err.decode("utf-8", errors="replace")
        payload = parse_result_line(stdout)

        if payload is None:
            detail = stderr.strip() or f"Remote script exited with {response.status_code} and no result"
            if "access is denied" in detail.lower():
                raise AccessDeniedError(detail, host=host)
            raise RemoteFaultError(detail, host=host)

        if payload.get("status") != "ok":
            message = str(payload.get("message") or "Remote registry call failed")
            if payload.get("kind") == "malformed":
                raise MalformedValueError(message, host=host)
            raise transport_error(_KINDS.get(str(payload.get("kind")), ErrorKind.REMOTE_FAULT), message, host=host)
        return payload

    def _run_script(
        self, host: str, script: str, context: CallContext, deadline: float
    ) -> winrm.Response:
        session = None
        try:
            session = self._session_factory(host, context)
            return run_powershell(session.protocol, script, deadline)
        except (
            WinRMError,
            WinRMTransportError,
            WinRMOperationTimeoutError,
            requests.exceptions.RequestException,
        ) as exc:
            raise map_winrm_error(exc, host) from exc
        finally:
            if session is not None:
                _close_session(session)


def run_powershell(protocol: Any, script: str, deadline: float) -> winrm.Response:
    """
    Run ``script`` in a dedicated remote shell and collect its output.

    Same wire format as ``winrm.Session.run_ps`` (UTF-16LE base64 encoded
    command), but output polling stops at ``deadline`` and the command and
    shell are released on every path.

    Raises:
        WinRMOperationTimeoutError: output did not complete before the deadline
    """
    encoded = base64.b64encode(script.encode("utf_16_le")).decode("ascii")
    shell_id = protocol.open_shell()
    try:
        command_id = protocol.run_command(
            shell_id, "powershell", ["-NoProfile", "-NonInteractive", "-EncodedCommand", encoded]
        )
        try:
            return winrm.Response(_collect_output(protocol, shell_id, command_id, deadline))
        finally:
            protocol.cleanup_command(shell_id, command_id)
    finally:
        protocol.close_shell(shell_id, close_session=False)


def _collect_output(
    protocol: Any, shell_id: str, command_id: str, deadline: float
) -> tuple[bytes, bytes, int]:
    stdout: list[bytes] = []
    stderr: list[bytes] = []
    while True:
        try:
            out, err, status_code, done = protocol.get_command_output_raw(shell_id, command_id)
        except WinRMOperationTimeoutError:
            if time.monotonic() >= deadline:
                raise
            continue
        stdout.append(out)
        stderr.append(err)
        if done:
            return b"".join(stdout), b"".join(stderr), status_code
        if time.monotonic() >= deadline:
            raise WinRMOperationTimeoutError()


def map_winrm_error(exc: Exception, host: str) -> TransportError:
    """Classify a pywinrm or requests failure."""
    detail = f"{type(exc).__name__}: {exc}"
    if isinstance(exc, (InvalidCredentialsError, AuthenticationError)):
        return AccessDeniedError(detail, host=host)
    if isinstance(exc, WinRMTransportError) and getattr(exc, "code", None) == 401:
        return AccessDeniedError(detail, host=host)
    if isinstance(exc, (WinRMOperationTimeoutError, requests.exceptions.Timeout)):
        return TransportTimeoutError(detail, host=host)
    if isinstance(exc, requests.exceptions.ConnectionError):
        return HostUnreachableError(detail, host=host)
    return RemoteFaultError(detail, host=host)


def _close_session(session: Any) -> None:
    transport = getattr(getattr(session, "protocol", None), "transport", None)
    if transport is not None and hasattr(transport, "close_session"):
        transport.close_session()
