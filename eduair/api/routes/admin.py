"""Admin Routes — session close and absentee reconciliation.

Invariants:
    - Unknown session or roster → 404 before any salt derivation
    - Per-absentee publish failures are reported in the body (status "partial"),
      never as an HTTP error
"""

import logging

from fastapi import APIRouter, Depends

from eduair.api.dependencies import get_attendance_service
from eduair.schemas.attendance import (
    AbsenteeFailureOut, AbsenteeOut, CloseSessionRequest, CloseSessionResponse,
)
from eduair.services.attendance_service import AttendanceService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/closeSession", response_model=CloseSessionResponse)
async def close_session(
    body: CloseSessionRequest,
    service: AttendanceService = Depends(get_attendance_service),
):
    """Mark every roster member without a recorded presence as absent."""
    result = await service.close_session(body.class_id, body.session_id)
    return CloseSessionResponse(
        status="partial" if result.failed else "success",
        class_id=result.class_id,
        session_id=result.session_id,
        total_roster=result.total_roster,
        attended=result.attended,
        marked_absent=result.marked_absent,
        failed=result.failed,
        in_flight=result.in_flight,
        absentees=[
            AbsenteeOut(
                student_id=a.student_id, pseudonym=a.pseudonym,
                sequence_marker=a.sequence_marker,
            )
            for a in result.absentees
        ],
        failures=[
            AbsenteeFailureOut(
                student_id=f.student_id, pseudonym=f.pseudonym,
                kind=f.kind, message=f.message,
                sequence_marker=f.sequence_marker,
            )
            for f in result.failures
        ],
    )
