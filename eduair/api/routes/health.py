"""Health & Readiness Probes — liveness and readiness endpoints.

Invariants:
    - GET /api/v1/health/ always returns 200 if process is up (liveness),
      with topic routing and configuration warnings
    - GET /api/v1/health/ready returns 503 if the database ledger is unreachable
"""

import logging
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from eduair.api.dependencies import ServiceContainer, get_container

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])

FEATURES = ["attendance", "telemetry", "reconciliation", "privacy-preserving"]


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check(container: ServiceContainer = Depends(get_container)):
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "eduair-attendance-api",
        "version": "1.0.0",
        "topics": container.settings.topic_routing().describe(),
        "ledger": container.settings.ledger_backend,
        "features": FEATURES,
        "warnings": [w.to_dict() for w in container.warnings],
    }


@router.get("/ready")
async def readiness_check(container: ServiceContainer = Depends(get_container)):
    """Readiness probe — includes database connectivity for the database ledger."""
    if container.db_manager is None:
        return {"status": "ready", "checks": {"ledger": "memory"}}
    db_ok = await container.db_manager.health_check()
    if not db_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "database_unavailable",
            },
        )
    return {"status": "ready", "checks": {"ledger": "database", "database": "healthy"}}
