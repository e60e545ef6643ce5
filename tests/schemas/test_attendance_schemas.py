"""Attendance Schemas — camelCase wire format, legacy aliases, field validation."""

import pytest
from pydantic import ValidationError

from eduair.core.domain_types import AttendanceStatus
from eduair.schemas.attendance import (
    AttendanceEvent, CloseSessionRequest, IngestResponse, TelemetryEvent,
)

P = "0x" + "ab" * 32


def test_attendance_event_camel_case():
    event = AttendanceEvent.model_validate({
        "classId": " math-9a ", "sessionId": "s1", "pseudonym": P, "eventTimestamp": 5,
    })
    assert event.class_id == "math-9a"
    assert event.session_id == "s1"
    assert event.event_timestamp == 5


def test_attendance_event_legacy_aliases():
    event = AttendanceEvent.model_validate({
        "type": "attendance", "classId": "math-9a", "session": "s1",
        "uidHash": P, "ts": 7,
    })
    assert (event.session_id, event.pseudonym, event.event_timestamp) == ("s1", P, 7)


def test_pseudonym_is_stripped():
    event = AttendanceEvent.model_validate({
        "classId": "c", "sessionId": "s", "pseudonym": f"  {P}\n",
    })
    assert event.pseudonym == P


def test_timestamp_optional():
    event = AttendanceEvent.model_validate({"classId": "c", "sessionId": "s", "pseudonym": P})
    assert event.event_timestamp is None


@pytest.mark.parametrize("payload", [
    {"classId": "   ", "sessionId": "s", "pseudonym": P},
    {"classId": "c", "pseudonym": P},
    {"classId": "c", "sessionId": "s", "pseudonym": P, "eventTimestamp": -1},
    {"classId": "c" * 101, "sessionId": "s", "pseudonym": P},
    {"classId": "c", "sessionId": "s", "pseudonym": "0xab"},
    {"classId": "c", "sessionId": "s", "pseudonym": "z" * 100},
    {"classId": "c", "sessionId": "s", "pseudonym": P + "00"},
    {"classId": "c", "sessionId": "s", "uidHash": "0x" + "g" * 64},
])
def test_attendance_event_rejects(payload):
    with pytest.raises(ValidationError):
        AttendanceEvent.model_validate(payload)


def test_telemetry_requires_sensors():
    with pytest.raises(ValidationError):
        TelemetryEvent.model_validate({"sensors": {}})
    event = TelemetryEvent.model_validate({"sensors": {"co2": 400}, "deviceId": "dev-1"})
    assert event.device_id == "dev-1"
    assert event.class_id is None


def test_close_session_request_accepts_legacy_session():
    req = CloseSessionRequest.model_validate({"classId": "c", "session": "s"})
    assert req.session_id == "s"


def test_ingest_response_serializes_camel_case():
    body = IngestResponse(
        attendance_status=AttendanceStatus.LATE, sequence_marker="1.2", topic_id="0.0.1",
    ).model_dump(by_alias=True, mode="json")
    assert body == {
        "status": "success", "attendanceStatus": "late", "sequenceMarker": "1.2",
        "topicId": "0.0.1", "duplicate": False,
    }
