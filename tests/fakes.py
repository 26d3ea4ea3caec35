"""
Test doubles for the three transports.

``RegistryStore`` simulates the HKLM hive of many remote hosts. The fake
winreg module, PowerShell runner and WinRM session all read and write the
same store, so a value written through one transport is visible to the
others.
"""

from __future__ import annotations

import base64
import json
import re
from typing import Any, Callable, Optional

import requests
from winrm.exceptions import InvalidCredentialsError

from chainresync.domain import ErrorKind
from chainresync.infrastructure.registry import PowerShellResult

REG_BINARY = 3
REG_DWORD = 4

REMOTE_HOST = "srv01.corp.example"


class RegistryStore:
    """In-memory HKLM per host: {host: {key_path: {value_name: (type, data)}}}."""

    def __init__(self) -> None:
        self.hosts: dict[str, dict[str, dict[str, tuple[int, Any]]]] = {}
        self.faults: dict[str, ErrorKind] = {}

    @staticmethod
    def _norm(text: str) -> str:
        return text.rstrip("\\").lower()

    def _host(self, host: str) -> dict[str, dict[str, tuple[int, Any]]]:
        return self.hosts.setdefault(host.lower(), {})

    def key_exists(self, host: str, key_path: str) -> bool:
        return self._norm(key_path) in self._host(host)

    def create_key(self, host: str, key_path: str) -> None:
        self._host(host).setdefault(self._norm(key_path), {})

    def get(self, host: str, key_path: str, name: str) -> Optional[tuple[int, Any]]:
        key = self._host(host).get(self._norm(key_path))
        if key is None:
            return None
        return key.get(name.lower())

    def put(self, host: str, key_path: str, name: str, data: Any, value_type: int = REG_BINARY) -> None:
        self.create_key(host, key_path)
        self._host(host)[self._norm(key_path)][name.lower()] = (value_type, data)

    def remove(self, host: str, key_path: str, name: str) -> bool:
        key = self._host(host).get(self._norm(key_path))
        if key is None or name.lower() not in key:
            return False
        del key[name.lower()]
        return True


class FakeHandle:
    """Stand-in for a winreg HKEY; usable as a context manager."""

    def __init__(self, host: str, key_path: str = "") -> None:
        self.host = host
        self.key_path = key_path
        self.closed = False

    def __enter__(self) -> "FakeHandle":
        return self

    def __exit__(self, *exc_info) -> None:
        self.closed = True


def _winerror(code: int, message: str) -> OSError:
    error = OSError(code, message)
    error.winerror = code
    return error


class FakeWinreg:
    """The subset of the winreg module used by the direct transport."""

    HKEY_LOCAL_MACHINE = 0x80000002
    KEY_READ = 0x20019
    KEY_WRITE = 0x20006
    KEY_SET_VALUE = 0x0002
    REG_BINARY = REG_BINARY
    REG_DWORD = REG_DWORD

    def __init__(self, store: RegistryStore) -> None:
        self.store = store
        self.handles: list[FakeHandle] = []
        self.connected: list[str] = []

    def ConnectRegistry(self, computer_name, key):  # pylint: disable=invalid-name
        assert key == self.HKEY_LOCAL_MACHINE
        assert computer_name.startswith("\\\\")
        host = computer_name[2:]
        self.connected.append(host)
        fault = self.store.faults.get(host.lower())
        if fault == ErrorKind.ACCESS_DENIED:
            raise PermissionError(13, "Access is denied")
        if fault == ErrorKind.UNREACHABLE:
            raise _winerror(1722, "The RPC server is unavailable")
        if fault == ErrorKind.REMOTE_FAULT:
            raise _winerror(1450, "Insufficient system resources")
        handle = FakeHandle(host)
        self.handles.append(handle)
        return handle

    def OpenKey(self, hive, sub_key, reserved=0, access=KEY_READ):  # pylint: disable=invalid-name
        if not self.store.key_exists(hive.host, sub_key):
            raise FileNotFoundError(2, "The system cannot find the file specified")
        handle = FakeHandle(hive.host, sub_key)
        self.handles.append(handle)
        return handle

    def CreateKeyEx(self, hive, sub_key, reserved=0, access=KEY_WRITE):  # pylint: disable=invalid-name
        self.store.create_key(hive.host, sub_key)
        handle = FakeHandle(hive.host, sub_key)
        self.handles.append(handle)
        return handle

    def QueryValueEx(self, key, value_name):  # pylint: disable=invalid-name
        stored = self.store.get(key.host, key.key_path, value_name)
        if stored is None:
            raise FileNotFoundError(2, "The system cannot find the file specified")
        value_type, data = stored
        return data, value_type

    def SetValueEx(self, key, value_name, reserved, value_type, value):  # pylint: disable=invalid-name
        self.store.put(key.host, key.key_path, value_name, value, value_type)

    def DeleteValue(self, key, value):  # pylint: disable=invalid-name
        if not self.store.remove(key.host, key.key_path, value):
            raise FileNotFoundError(2, "The system cannot find the file specified")


class FakePowerShellRunner:
    """Interprets the StdRegProv script arguments against the store."""

    def __init__(self, store: RegistryStore) -> None:
        self.store = store
        self.calls: list[dict[str, Any]] = []

    def run_file(self, script, args, timeout=None, env=None, host=None) -> PowerShellResult:
        params = {args[i].lstrip("-"): args[i + 1] for i in range(0, len(args), 2)}
        self.calls.append({"script": script, "params": params, "env": dict(env or {}), "timeout": timeout})

        computer = params["ComputerName"]
        fault = self.store.faults.get(computer.lower())
        if fault is not None:
            return _json_result({"status": "error", "kind": fault.value, "message": "simulated"})

        assert params["Hive"] == "2147483650"
        key_path, name = params["KeyPath"], params["ValueName"]
        operation = params["Operation"]
        if operation == "get":
            stored = self.store.get(computer, key_path, name)
            if stored is None:
                return _json_result({"status": "ok", "found": False})
            if stored[0] != REG_BINARY:
                return _json_result({"status": "error", "kind": "malformed", "message": f"{name} is not REG_BINARY"})
            return _json_result({"status": "ok", "found": True, "data": base64.b64encode(stored[1]).decode()})
        if operation == "set":
            self.store.put(computer, key_path, name, base64.b64decode(params["DataBase64"]))
            return _json_result({"status": "ok"})
        if operation == "delete":
            self.store.remove(computer, key_path, name)
            return _json_result({"status": "ok"})
        raise AssertionError(f"unexpected operation {operation}")


def _json_result(payload: dict[str, Any]) -> PowerShellResult:
    return PowerShellResult(returncode=0, stdout=json.dumps(payload) + "\r\n", stderr="")


PAYLOAD_PATTERN = re.compile(r"\$payload = '([A-Za-z0-9+/=]+)'")


class FakeTransport:
    def __init__(self) -> None:
        self.closed = False

    def close_session(self) -> None:
        self.closed = True


ScriptHandler = Callable[[str], tuple[bytes, bytes, int]]


class FakeProtocol:
    """
    The ``winrm.protocol.Protocol`` calls used by the remote exec transport.

    Decodes the ``-EncodedCommand`` argument and hands the script text to
    ``handler``, which returns (stdout, stderr, status_code).
    """

    def __init__(self, handler: Optional[ScriptHandler] = None) -> None:
        self.transport = FakeTransport()
        self.handler = handler
        self.scripts: list[str] = []
        self.open_shells: set[str] = set()
        self.closed_shells: list[str] = []
        self.cleaned_commands: list[str] = []
        self._commands: dict[str, str] = {}
        self._shell_count = 0

    def open_shell(self, **kwargs) -> str:
        self._shell_count += 1
        shell_id = f"shell-{self._shell_count}"
        self.open_shells.add(shell_id)
        return shell_id

    def run_command(self, shell_id: str, command: str, arguments=()) -> str:
        assert shell_id in self.open_shells
        assert command == "powershell"
        arguments = list(arguments)
        encoded = arguments[arguments.index("-EncodedCommand") + 1]
        script = base64.b64decode(encoded).decode("utf-16-le")
        self.scripts.append(script)
        command_id = f"{shell_id}-cmd-{len(self.scripts)}"
        self._commands[command_id] = script
        return command_id

    def get_command_output_raw(self, shell_id: str, command_id: str) -> tuple[bytes, bytes, int, bool]:
        std_out, std_err, status_code = self.handler(self._commands[command_id])
        return std_out, std_err, status_code, True

    def cleanup_command(self, shell_id: str, command_id: str) -> None:
        self.cleaned_commands.append(command_id)

    def close_shell(self, shell_id: str, close_session: bool = True) -> None:
        self.open_shells.discard(shell_id)
        self.closed_shells.append(shell_id)
        if close_session:
            self.transport.close_session()


class ScriptedSession:
    """Session whose remote script result comes from ``handler``."""

    def __init__(self, handler: ScriptHandler) -> None:
        self.protocol = FakeProtocol(handler)


class FakeWinRMSession(ScriptedSession):
    """Decodes the embedded payload of the remote script and applies it."""

    def __init__(self, store: RegistryStore, host: str) -> None:
        super().__init__(self.apply)
        self.store = store
        self.host = host

    def apply(self, script: str) -> tuple[bytes, bytes, int]:
        match = PAYLOAD_PATTERN.search(script)
        assert match, "payload literal missing from script"
        params = json.loads(base64.b64decode(match.group(1)))
        key_path, name = params["key_path"], params["value_name"]

        if params["operation"] == "get":
            stored = self.store.get(self.host, key_path, name)
            if stored is None:
                return _output({"status": "ok", "found": False})
            if stored[0] != REG_BINARY:
                return _output({"status": "error", "kind": "malformed", "message": f"{name} is not REG_BINARY"})
            return _output({"status": "ok", "found": True, "data": base64.b64encode(stored[1]).decode()})
        if params["operation"] == "set":
            self.store.put(self.host, key_path, name, base64.b64decode(params["data"]))
            return _output({"status": "ok"})
        if params["operation"] == "delete":
            self.store.remove(self.host, key_path, name)
            return _output({"status": "ok"})
        raise AssertionError(f"unexpected operation {params['operation']}")


def _output(payload: dict[str, Any], status_code: int = 0, std_err: bytes = b"") -> tuple[bytes, bytes, int]:
    return json.dumps(payload).encode("utf-8") + b"\r\n", std_err, status_code


class FakeSessionFactory:
    """Opens FakeWinRMSession objects and remembers them."""

    def __init__(self, store: RegistryStore) -> None:
        self.store = store
        self.sessions: list[FakeWinRMSession] = []
        self.contexts: list[Any] = []

    def __call__(self, host, context) -> FakeWinRMSession:
        fault = self.store.faults.get(host.lower())
        if fault == ErrorKind.ACCESS_DENIED:
            raise InvalidCredentialsError("the specified credentials were rejected by the server")
        if fault == ErrorKind.UNREACHABLE:
            raise requests.exceptions.ConnectionError(f"Failed to establish a connection to {host}")
        session = FakeWinRMSession(self.store, host)
        self.sessions.append(session)
        self.contexts.append(context)
        return session


