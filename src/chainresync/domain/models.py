# pylint: disable=missing-module-docstring,line-too-long
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from .enums import AccessMethod, ErrorKind, Operation, OutcomeStatus
from .filetime import FileTime


class Credential(BaseModel):
    """Explicit identity for a single call. Omit to use the process identity."""

    model_config = ConfigDict(frozen=True)

    username: str = Field(..., description="DOMAIN\\user, user@domain or local user")
    password: SecretStr = Field(SecretStr(""), description="Password, never logged")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Username cannot be empty")
        return v.strip()


@dataclass(frozen=True)
class CallContext:
    """Per-call options handed to a transport strategy."""

    timeout_seconds: Optional[float] = None
    credential: Optional[Credential] = None


class OperationOutcome(BaseModel):
    """
    Result of one gateway call against one host.

    ``value_present`` is only meaningful for ``get``: False with a complete
    status means the value is not set.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    host: str = Field(..., description="Target host")
    method: AccessMethod = Field(..., description="Transport used")
    operation: Operation = Field(..., description="Operation performed")
    status: OutcomeStatus = Field(..., description="complete or failed")
    filetime: Optional[int] = Field(None, description="Raw FILETIME ticks read or written")
    timestamp: Optional[datetime] = Field(None, description="UTC timestamp read or written")
    value_present: Optional[bool] = Field(None, description="Whether the value exists (get only)")
    error_kind: Optional[ErrorKind] = Field(None, description="Stable error classification")
    error_detail: Optional[str] = Field(None, description="Error details if failed")
    duration_ms: int = Field(default=0, description="Time taken")

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.COMPLETE.value

    @classmethod
    def complete(
        cls,
        host: str,
        method: AccessMethod,
        operation: Operation,
        value: Optional[FileTime] = None,
        value_present: Optional[bool] = None,
        duration_ms: int = 0,
    ) -> "OperationOutcome":
        timestamp = None
        if value is not None:
            try:
                timestamp = value.to_datetime()
            except OverflowError:
                timestamp = None
        return cls(
            host=host,
            method=method,
            operation=operation,
            status=OutcomeStatus.COMPLETE,
            filetime=value.ticks if value is not None else None,
            timestamp=timestamp,
            value_present=value_present,
            duration_ms=duration_ms,
        )

    @classmethod
    def failed(
        cls,
        host: str,
        method: AccessMethod,
        operation: Operation,
        kind: ErrorKind,
        detail: str,
        duration_ms: int = 0,
    ) -> "OperationOutcome":
        return cls(
            host=host,
            method=method,
            operation=operation,
            status=OutcomeStatus.FAILED,
            error_kind=kind,
            error_detail=detail,
            duration_ms=duration_ms,
        )
