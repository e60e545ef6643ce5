"""Schedule Routes — read-only class and session listings for clients.

Invariants:
    - Never returns roster tokens (only counts)
"""

from fastapi import APIRouter, Depends

from eduair.api.dependencies import ServiceContainer, get_container
from eduair.core.errors import ErrorContext, NotFoundError

router = APIRouter(tags=["schedule"])


@router.get("/schedule/{class_id}")
async def get_schedule(
    class_id: str, container: ServiceContainer = Depends(get_container),
):
    schedule = container.roster_store.get_schedule(class_id)
    if schedule is None:
        raise NotFoundError("Class", class_id, ErrorContext(class_id=class_id))
    return schedule


@router.get("/classes")
async def list_classes(container: ServiceContainer = Depends(get_container)):
    return {"classes": container.roster_store.list_classes()}
