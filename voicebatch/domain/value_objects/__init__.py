"""Value objects for the orchestration domain."""

from voicebatch.domain.value_objects.timestamp import Timestamp

__all__ = ["Timestamp"]
