"""
WMI transport.

Calls the ``StdRegProv`` registry provider on the target through Windows
PowerShell. The script is fixed; host, hive, key path, value name and data
are bound as script parameters.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any, Optional

from chainresync.domain.constants import HKEY_LOCAL_MACHINE
from chainresync.domain.enums import AccessMethod, ErrorKind
from chainresync.domain.errors import MalformedValueError, RemoteFaultError, transport_error
from chainresync.domain.models import CallContext

from .base import RegistryStrategy, normalize_key_path
from .powershell import PowerShellRunner

logger = logging.getLogger(__name__)

PASSWORD_ENV_VAR = "CHAINRESYNC_WMI_PASSWORD"

STDREGPROV_SCRIPT = r"""
param(
    [Parameter(Mandatory = $true)][ValidateSet('get', 'set', 'delete')][string]$Operation,
    [Parameter(Mandatory = $true)][string]$ComputerName,
    [Parameter(Mandatory = $true)][uint32]$Hive,
    [Parameter(Mandatory = $true)][string]$KeyPath,
    [Parameter(Mandatory = $true)][string]$ValueName,
    [string]$DataBase64,
    [string]$UserName
)
$ErrorActionPreference = 'Stop'

function Write-Outcome([hashtable]$Result) {
    Write-Output ($Result | ConvertTo-Json -Compress)
}

function Write-ReturnCode([string]$Step, [int]$Code) {
    $kind = if ($Code -eq 5) { 'access_denied' } else { 'remote_fault' }
    Write-Outcome @{ status = 'error'; kind = $kind; message = "$Step returned $Code" }
}

try {
    $query = @{
        List         = $true
        Class        = 'StdRegProv'
        Namespace    = 'root\default'
        ComputerName = $ComputerName
    }
    if ($UserName) {
        $secure = ConvertTo-SecureString $env:CHAINRESYNC_WMI_PASSWORD -AsPlainText -Force
        $query.Credential = New-Object System.Management.Automation.PSCredential($UserName, $secure)
    }
    $registry = Get-WmiObject @query

    switch ($Operation) {
        'get' {
            $r = $registry.GetBinaryValue($Hive, $KeyPath, $ValueName)
            if ($r.ReturnValue -eq 0 -and $null -ne $r.uValue) {
                Write-Outcome @{ status = 'ok'; found = $true; data = [Convert]::ToBase64String([byte[]]$r.uValue) }
            } elseif ($r.ReturnValue -eq 0 -or $r.ReturnValue -eq 2) {
                Write-Outcome @{ status = 'ok'; found = $false }
            } elseif ($r.ReturnValue -eq 1) {
                # StdRegProv reports a value of another type as ERROR_INVALID_FUNCTION
                Write-Outcome @{ status = 'error'; kind = 'malformed'; message = "$ValueName is not REG_BINARY" }
            } else {
                Write-ReturnCode 'GetBinaryValue' $r.ReturnValue
            }
        }
        'set' {
            $r = $registry.CreateKey($Hive, $KeyPath)
            if ($r.ReturnValue -ne 0) { Write-ReturnCode 'CreateKey' $r.ReturnValue; break }
            $bytes = [Convert]::FromBase64String($DataBase64)
            $r = $registry.SetBinaryValue($Hive, $KeyPath, $ValueName, $bytes)
            if ($r.ReturnValue -eq 0) { Write-Outcome @{ status = 'ok' } }
            else { Write-ReturnCode 'SetBinaryValue' $r.ReturnValue }
        }
        'delete' {
            $r = $registry.DeleteValue($Hive, $KeyPath, $ValueName)
            if ($r.ReturnValue -eq 0 -or $r.ReturnValue -eq 2) { Write-Outcome @{ status = 'ok' } }
            else { Write-ReturnCode 'DeleteValue' $r.ReturnValue }
        }
    }
}
catch [System.UnauthorizedAccessException] {
    Write-Outcome @{ status = 'error'; kind = 'access_denied'; message = $_.Exception.Message }
}
catch [System.Runtime.InteropServices.COMException] {
    # 0x800706BA: RPC server unavailable
    $kind = if ($_.Exception.HResult -eq -2147023174) { 'unreachable' } else { 'remote_fault' }
    Write-Outcome @{ status = 'error'; kind = $kind; message = $_.Exception.Message }
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


class ManagementQueryStrategy(RegistryStrategy):
    """Registry access through WMI ``StdRegProv``."""

    method = AccessMethod.MANAGEMENT_QUERY

    def __init__(self, runner: Optional[PowerShellRunner] = None) -> None:
        self._runner = runner or PowerShellRunner()

    def read_value(
        self, host: str, key_path: str, value_name: str, context: CallContext
    ) -> Optional[bytes]:
        result = self._invoke("get", host, key_path, value_name, context)
        if not result.get("found"):
            return None
        try:
            return base64.b64decode(result.get("data") or "", validate=True)
        except (binascii.Error, TypeError) as exc:
            raise MalformedValueError(f"Undecodable WMI data: {exc}", host=host) from exc

    def write_value(
        self, host: str, key_path: str, value_name: str, data: bytes, context: CallContext
    ) -> None:
        encoded = base64.b64encode(bytes(data)).decode("ascii")
        self._invoke("set", host, key_path, value_name, context, data_b64=encoded)

    def delete_value(
        self, host: str, key_path: str, value_name: str, context: CallContext
    ) -> None:
        self._invoke("delete", host, key_path, value_name, context)

    def _invoke(
        self,
        operation: str,
        host: str,
        key_path: str,
        value_name: str,
        context: CallContext,
        data_b64: Optional[str] = None,
    ) -> dict[str, Any]:
        args = [
            "-Operation", operation,
            "-ComputerName", host,
            "-Hive", str(HKEY_LOCAL_MACHINE),
            "-KeyPath", normalize_key_path(key_path),
            "-ValueName", value_name,
        ]
        if data_b64 is not None:
            args += ["-DataBase64", data_b64]

        env: dict[str, str] = {}
        if context.credential is not None:
            args += ["-UserName", context.credential.username]
            env[PASSWORD_ENV_VAR] = context.credential.password.get_secret_value()

        logger.debug("%s: WMI StdRegProv %s %s", host, operation, value_name)
        result = self._runner.run_file(
            STDREGPROV_SCRIPT, args, timeout=context.timeout_seconds, env=env, host=host
        )
        payload = parse_result_line(result.stdout)
        if payload is None:
            detail = result.stderr.strip() or f"PowerShell exited with {result.returncode} and no result"
            raise RemoteFaultError(detail, host=host)

        if payload.get("status") != "ok":
            message = str(payload.get("message") or "WMI call failed")
            if payload.get("kind") == "malformed":
                raise MalformedValueError(message, host=host)
            kind = _KINDS.get(str(payload.get("kind")), ErrorKind.REMOTE_FAULT)
            raise transport_error(kind, message, host=host)
        return payload


def parse_result_line(stdout: str) -> Optional[dict[str, Any]]:
    """Return the last JSON object printed by the script."""
    for line in reversed(stdout.splitlines()):
        line = line.strip()
        if not line.startswith("{"):
            continue
        try:
            parsed = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None
