"""Ingestion Routes — attendance taps and telemetry samples.

Invariants:
    - Bodies validated by Pydantic before the service sees them
    - POST /ingest dispatches on "type": attendance → attendance, anything else → telemetry
    - Publish failures surface as 502 PUBLISH_FAILED with the ledger unchanged
"""

import logging

from fastapi import APIRouter, Body, Depends
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError

from eduair.api.dependencies import get_attendance_service
from eduair.core.domain_types import RecordType
from eduair.schemas.attendance import (
    AttendanceEvent, IngestResponse, TelemetryEvent, TelemetryResponse,
)
from eduair.services.attendance_service import AttendanceService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/ingest", tags=["ingest"])


@router.post("/attendance", response_model=IngestResponse)
async def ingest_attendance(
    body: AttendanceEvent,
    service: AttendanceService = Depends(get_attendance_service),
):
    result = await service.ingest_attendance(
        body.class_id, body.session_id, body.pseudonym, body.event_timestamp,
    )
    return IngestResponse(
        attendance_status=result.status,
        sequence_marker=result.sequence_marker,
        topic_id=result.topic_id,
        duplicate=result.duplicate,
    )


@router.post("/telemetry", response_model=TelemetryResponse)
async def ingest_telemetry(
    body: TelemetryEvent,
    service: AttendanceService = Depends(get_attendance_service),
):
    result = await service.ingest_telemetry(
        body.sensors, body.class_id, body.session_id, body.device_id, body.ts,
    )
    return TelemetryResponse(
        sequence_marker=result.sequence_marker, topic_id=result.topic_id,
    )


@router.post("", response_model=IngestResponse | TelemetryResponse)
async def ingest_legacy(
    body: dict = Body(...),
    service: AttendanceService = Depends(get_attendance_service),
):
    """Legacy single endpoint; defaults to telemetry for unknown types."""
    try:
        if body.get("type") == RecordType.ATTENDANCE.value:
            return await ingest_attendance(AttendanceEvent.model_validate(body), service)
        return await ingest_telemetry(TelemetryEvent.model_validate(body), service)
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors())
