"""Session Salt — issues the per-session salt devices use to pseudonymize taps.

Invariants:
    - Read-only: no ledger or publisher interaction
    - Missing classId or start → 400 VALIDATION_ERROR
"""

from fastapi import APIRouter, Depends, Query

from eduair.api.dependencies import get_attendance_service
from eduair.schemas.attendance import SaltResponse
from eduair.services.attendance_service import AttendanceService

router = APIRouter(prefix="/session", tags=["session"])


@router.get("/salt", response_model=SaltResponse)
async def get_session_salt(
    class_id: str | None = Query(None, alias="classId"),
    start: str | None = Query(None),
    service: AttendanceService = Depends(get_attendance_service),
):
    """Hex-encoded salt for (classId, session start)."""
    return SaltResponse(session_salt=service.session_salt(class_id, start))
