"""
FILETIME codec.

A FILETIME is an unsigned 64-bit count of 100-nanosecond ticks since
1601-01-01 UTC. The registry stores it as 8 bytes, least-significant byte
first; the certificate chain engine reads that exact layout.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Union

from .constants import FILETIME_SIZE
from .errors import FileTimeTooShortError

FILETIME_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)
TICKS_PER_SECOND = 10_000_000
TICKS_PER_MICROSECOND = 10
MAX_TICKS = 2**64 - 1


@dataclass(frozen=True, order=True)
class FileTime:
    """Absolute point in time with 100 ns precision."""

    ticks: int

    def __post_init__(self):
        if not 0 <= self.ticks <= MAX_TICKS:
            raise ValueError(f"FILETIME ticks out of range: {self.ticks}")

    @classmethod
    def from_datetime(cls, value: datetime) -> "FileTime":
        """
        Convert a datetime to FILETIME.

        Naive datetimes are taken as local time, like ``datetime.astimezone``.
        """
        delta = value.astimezone(timezone.utc) - FILETIME_EPOCH
        seconds = delta.days * 86400 + delta.seconds
        return cls(seconds * TICKS_PER_SECOND + delta.microseconds * TICKS_PER_MICROSECOND)

    @classmethod
    def now(cls) -> "FileTime":
        return cls.from_datetime(datetime.now(timezone.utc))

    def to_datetime(self) -> datetime:
        """
        Return an aware UTC datetime, truncated to microseconds.

        Raises OverflowError for tick counts beyond year 9999.
        """
        return FILETIME_EPOCH + timedelta(microseconds=self.ticks // TICKS_PER_MICROSECOND)

    def __str__(self) -> str:
        try:
            return self.to_datetime().isoformat()
        except OverflowError:
            return f"FILETIME({self.ticks})"


TimestampLike = Union[FileTime, datetime]


def encode_filetime(value: TimestampLike) -> bytes:
    """Encode a timestamp as the 8-byte little-endian registry value."""
    if isinstance(value, datetime):
        value = FileTime.from_datetime(value)
    return value.ticks.to_bytes(FILETIME_SIZE, "little")


def decode_filetime(data: bytes) -> FileTime:
    """
    Decode an 8-byte little-endian registry value.

    Raises:
        FileTimeTooShortError: fewer than 8 bytes were given.
    """
    raw = bytes(data)
    if len(raw) < FILETIME_SIZE:
        raise FileTimeTooShortError(
            f"FILETIME needs {FILETIME_SIZE} bytes, got {len(raw)}"
        )
    return FileTime(int.from_bytes(raw[:FILETIME_SIZE], "little"))
