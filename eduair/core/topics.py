"""Topic Routing — resolves the ordering-service topic for a record type.

Invariants:
    - attendance → dedicated attendance topic, else the shared fallback topic
    - telemetry → dedicated telemetry topic, else the shared fallback topic
    - any other type → the shared fallback topic
    - Resolution may return None; publishers decide how to treat a missing topic
"""

from dataclasses import dataclass

from eduair.core.domain_types import RecordType


@dataclass(frozen=True)
class TopicRouting:
    attendance: str | None = None
    telemetry: str | None = None
    fallback: str | None = None

    def resolve(self, record_type: RecordType | str) -> str | None:
        """Topic for a record type, falling back to the shared topic."""
        if record_type == RecordType.ATTENDANCE:
            return self.attendance or self.fallback
        if record_type == RecordType.TELEMETRY:
            return self.telemetry or self.fallback
        return self.fallback

    @property
    def dedicated(self) -> bool:
        return bool(self.attendance and self.telemetry)

    def describe(self) -> dict:
        return {
            "attendance": self.resolve(RecordType.ATTENDANCE),
            "telemetry": self.resolve(RecordType.TELEMETRY),
            "fallback": self.fallback,
            "dedicated": self.dedicated,
        }
