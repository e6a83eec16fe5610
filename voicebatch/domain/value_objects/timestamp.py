"""Timestamp value object."""

from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from typing import Union

from voicebatch.domain.exceptions import InvalidValueError


@dataclass(frozen=True)
class Timestamp:
    """Value object representing a point in time.

    This is an immutable value object that wraps datetime functionality
    and ensures all timestamps are timezone-aware (UTC).
    """

    value: datetime

    def __post_init__(self) -> None:
        """Validate timestamp after initialization."""
        if not isinstance(self.value, datetime):
            raise InvalidValueError(
                f"Timestamp must be a datetime object, got {type(self.value).__name__}"
            )

        # Ensure timezone awareness
        if self.value.tzinfo is None:
            object.__setattr__(self, "value", self.value.replace(tzinfo=timezone.utc))
        elif self.value.tzinfo != timezone.utc:
            object.__setattr__(self, "value", self.value.astimezone(timezone.utc))

    @classmethod
    def now(cls) -> "Timestamp":
        """Create timestamp for current UTC time."""
        return cls(datetime.now(timezone.utc))

    @classmethod
    def from_unix(cls, unix_timestamp: Union[int, float]) -> "Timestamp":
        """Create timestamp from Unix timestamp (seconds since epoch)."""
        return cls(datetime.fromtimestamp(unix_timestamp, tz=timezone.utc))

    @classmethod
    def from_iso_string(cls, iso_string: str) -> "Timestamp":
        """Create timestamp from ISO 8601 string."""
        return cls(datetime.fromisoformat(iso_string.replace("Z", "+00:00")))

    @property
    def unix_timestamp(self) -> float:
        """Get Unix timestamp (seconds since epoch)."""
        return self.value.timestamp()

    @property
    def iso_string(self) -> str:
        """Get ISO 8601 formatted string."""
        return self.value.isoformat()

    def add_milliseconds(self, milliseconds: float) -> "Timestamp":
        """Return a timestamp ``milliseconds`` later than this one."""
        return Timestamp(self.value + timedelta(milliseconds=milliseconds))

    def subtract_days(self, days: float) -> "Timestamp":
        """Return a timestamp ``days`` earlier than this one."""
        return Timestamp(self.value - timedelta(days=days))

    def seconds_since(self, other: "Timestamp") -> float:
        """Seconds elapsed from ``other`` to this timestamp (may be negative)."""
        if not isinstance(other, Timestamp):
            raise TypeError(f"Expected Timestamp, got {type(other).__name__}")
        return (self.value - other.value).total_seconds()

    def is_before(self, other: "Timestamp") -> bool:
        """Check if this timestamp is before another."""
        if not isinstance(other, Timestamp):
            raise TypeError(f"Cannot compare Timestamp with {type(other).__name__}")
        return self.value < other.value

    def is_after(self, other: "Timestamp") -> bool:
        """Check if this timestamp is after another."""
        if not isinstance(other, Timestamp):
            raise TypeError(f"Cannot compare Timestamp with {type(other).__name__}")
        return self.value > other.value

    def __lt__(self, other: "Timestamp") -> bool:
        return self.is_before(other)

    def __le__(self, other: "Timestamp") -> bool:
        return not self.is_after(other)

    def __str__(self) -> str:
        return self.iso_string
