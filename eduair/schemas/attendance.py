"""Attendance Schemas — Pydantic models with field-level validation for API boundaries.

Invariants:
    - classId, sessionId, pseudonym: stripped, non-empty, bounded length
    - pseudonym is "0x" followed by 64 hex digits
    - eventTimestamp / ts: epoch milliseconds, non-negative, optional (server time)
    - Legacy field names accepted on input: session → sessionId, uidHash → pseudonym,
      ts → eventTimestamp
    - Responses never carry raw identity tokens

Design Decisions:
    - AliasChoices for legacy names: older devices keep working without a second schema
    - alias_generator=to_camel: one snake_case model serves the camelCase wire format
"""

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from eduair.core.crypto import is_pseudonym
from eduair.core.domain_types import AttendanceStatus


class _Wire(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("cannot be empty or whitespace")
    return v


# --- Requests -----------------------------------------------------------------

class AttendanceEvent(_Wire):
    """A pseudonymized tap reported by a device."""
    class_id: str = Field(max_length=100)
    session_id: str = Field(
        max_length=100, validation_alias=AliasChoices("sessionId", "session", "session_id"),
    )
    pseudonym: str = Field(validation_alias=AliasChoices("pseudonym", "uidHash"))
    event_timestamp: int | None = Field(
        None, ge=0,
        validation_alias=AliasChoices("eventTimestamp", "ts", "event_timestamp"),
    )

    @field_validator("class_id", "session_id", "pseudonym")
    @classmethod
    def strip_fields(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("pseudonym")
    @classmethod
    def check_pseudonym(cls, v: str) -> str:
        if not is_pseudonym(v):
            raise ValueError("must be 0x followed by 64 hex digits")
        return v


class TelemetryEvent(_Wire):
    """A sensor sample relayed to the telemetry topic."""
    sensors: dict[str, Any]
    class_id: str | None = Field(None, max_length=100)
    session_id: str | None = Field(
        None, max_length=100,
        validation_alias=AliasChoices("sessionId", "session", "session_id"),
    )
    device_id: str | None = Field(None, max_length=100)
    ts: int | None = Field(None, ge=0)

    @field_validator("sensors")
    @classmethod
    def sensors_not_empty(cls, v: dict) -> dict:
        if not v:
            raise ValueError("sensors cannot be empty")
        return v


class CloseSessionRequest(_Wire):
    class_id: str = Field(max_length=100)
    session_id: str = Field(
        max_length=100, validation_alias=AliasChoices("sessionId", "session", "session_id"),
    )

    @field_validator("class_id", "session_id")
    @classmethod
    def strip_fields(cls, v: str) -> str:
        return _strip_required(v)


# --- Responses ----------------------------------------------------------------

class SaltResponse(_Wire):
    session_salt: str


class IngestResponse(_Wire):
    status: Literal["success"] = "success"
    attendance_status: AttendanceStatus
    sequence_marker: str | None
    topic_id: str | None
    duplicate: bool = False


class TelemetryResponse(_Wire):
    status: Literal["success"] = "success"
    sequence_marker: str
    topic_id: str | None


class AbsenteeOut(_Wire):
    student_id: str
    pseudonym: str
    sequence_marker: str


class AbsenteeFailureOut(_Wire):
    student_id: str
    pseudonym: str
    kind: str
    message: str
    sequence_marker: str | None = None


class CloseSessionResponse(_Wire):
    status: Literal["success", "partial"]
    class_id: str
    session_id: str
    total_roster: int
    attended: int
    marked_absent: int
    failed: int
    in_flight: int
    absentees: list[AbsenteeOut]
    failures: list[AbsenteeFailureOut]
