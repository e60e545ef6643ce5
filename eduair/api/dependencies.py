"""Dependency Wiring — builds and exposes the per-app service container.

Invariants:
    - Exactly one ledger, publisher and roster store per app instance
    - Routes obtain collaborators only through get_container / get_attendance_service
    - The container is created in the lifespan and closed on shutdown

Design Decisions:
    - Container on app.state instead of module globals: tests override
      get_container with their own instance
"""

import logging
from dataclasses import dataclass, field

from fastapi import Depends, Request

from eduair.config import Settings, log_configuration_warnings
from eduair.core.errors import ConfigurationWarning
from eduair.core.repository_protocols import LedgerStore, Publisher, RosterStore
from eduair.infrastructure.database import DatabaseSessionManager
from eduair.infrastructure.local_sequencer import LocalSequencer
from eduair.infrastructure.ordering_client import OrderingServiceClient
from eduair.infrastructure.roster_store import JsonRosterStore
from eduair.services.attendance_service import AttendanceService
from eduair.services.ledger import InMemoryLedger
from eduair.services.sql_ledger import DatabaseLedger

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    ledger: LedgerStore
    publisher: Publisher
    roster_store: RosterStore
    attendance: AttendanceService
    db_manager: DatabaseSessionManager | None = None
    warnings: list[ConfigurationWarning] = field(default_factory=list)

    async def close(self) -> None:
        aclose = getattr(self.publisher, "aclose", None)
        if aclose:
            await aclose()
        if self.db_manager:
            await self.db_manager.dispose()


def build_publisher(settings: Settings) -> Publisher:
    if not settings.ordering_service_url:
        logger.info("No ORDERING_SERVICE_URL: using in-process LocalSequencer")
        return LocalSequencer()
    return OrderingServiceClient(
        settings.ordering_service_url,
        token=settings.ordering_service_token,
        max_retries=settings.ordering_max_retries,
        base_delay_ms=settings.ordering_base_delay_ms,
        max_delay_ms=settings.ordering_max_delay_ms,
        timeout_seconds=settings.ordering_timeout_seconds,
    )


async def build_container(
    settings: Settings,
    *,
    publisher: Publisher | None = None,
    roster_store: RosterStore | None = None,
    ledger: LedgerStore | None = None,
) -> ServiceContainer:
    """Assemble collaborators from settings; explicit arguments win."""
    db_manager = None
    if ledger is None:
        if settings.ledger_backend == "database":
            db_manager = DatabaseSessionManager(
                settings.database_url,
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
            )
            await db_manager.create_all()
            ledger = DatabaseLedger(db_manager)
        else:
            ledger = InMemoryLedger()
    publisher = publisher or build_publisher(settings)
    roster_store = roster_store or JsonRosterStore.from_files(
        settings.schedule_path, settings.roster_path,
    )
    attendance = AttendanceService(
        ledger=ledger,
        publisher=publisher,
        roster_store=roster_store,
        routing=settings.topic_routing(),
        salt_secret=settings.salt_secret,
        late_tolerance_min=settings.late_tolerance_min,
    )
    return ServiceContainer(
        settings=settings,
        ledger=ledger,
        publisher=publisher,
        roster_store=roster_store,
        attendance=attendance,
        db_manager=db_manager,
        warnings=log_configuration_warnings(settings),
    )


def get_container(request: Request) -> ServiceContainer:
    """FastAPI dependency for the app's service container."""
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise RuntimeError("Service container not initialized")
    return container


def get_attendance_service(
    container: ServiceContainer = Depends(get_container),
) -> AttendanceService:
    return container.attendance
