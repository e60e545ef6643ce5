"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - RawIdentityToken never crosses the hashing boundary (never published, never logged)
    - Pseudonym is "0x" + 64 lowercase hex chars (SHA-256)
    - SessionSalt is 64 lowercase hex chars (HMAC-SHA256)
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

ClassId = NewType("ClassId", str)
SessionId = NewType("SessionId", str)
StudentId = NewType("StudentId", str)
RawIdentityToken = NewType("RawIdentityToken", str)


# ─── Value Types ─────────────────────────────────────────────────

SessionSalt = NewType("SessionSalt", str)        # hex, 64 chars
Pseudonym = NewType("Pseudonym", str)            # "0x" + hex, 66 chars
SequenceMarker = NewType("SequenceMarker", str)  # opaque, ordering-service assigned
EpochMillis = NewType("EpochMillis", int)


# ─── Enums ───────────────────────────────────────────────────────

class AttendanceStatus(str, Enum):
    """Attendance record status. ABSENT is only assigned by reconciliation."""
    ON_TIME = "on_time"
    LATE = "late"
    ABSENT = "absent"


class RecordType(str, Enum):
    """Published record types — select the ordering-service topic."""
    ATTENDANCE = "attendance"
    TELEMETRY = "telemetry"


# ─── Records ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class RosterEntry:
    """Roster member. Server-side only: the raw token is never returned by the API."""
    student_id: StudentId
    raw_identity_token: RawIdentityToken


@dataclass(frozen=True)
class SessionInfo:
    """Scheduled session metadata from the schedule store."""
    class_id: ClassId
    session_id: SessionId
    start_iso: str
    end_iso: str | None = None


@dataclass(frozen=True)
class AttendanceRecord:
    """Immutable attendance record as submitted to the ordering service."""
    class_id: ClassId
    session_id: SessionId
    pseudonym: Pseudonym
    status: AttendanceStatus
    event_timestamp: EpochMillis

    def to_payload(self) -> dict:
        return {
            "type": RecordType.ATTENDANCE.value,
            "classId": self.class_id,
            "sessionId": self.session_id,
            "pseudonym": self.pseudonym,
            "status": self.status.value,
            "eventTimestamp": self.event_timestamp,
        }
