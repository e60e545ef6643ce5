"""EduAir API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map EduAirError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Service container (ledger, publisher, roster store) built in the lifespan
      and closed on shutdown

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Three error handler layers: EduAirError (domain), RequestValidationError
      (Pydantic), Exception (catch-all) — never leaks internal details
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eduair.api.dependencies import build_container
from eduair.api.error_handlers import register_error_handlers
from eduair.api.routes import admin, health, ingest, schedule, session_salt
from eduair.config import get_settings
from eduair.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    container = await build_container(settings)
    app.state.container = container
    logger.info(
        f"EduAir API started (ledger={settings.ledger_backend}, "
        f"topics={settings.topic_routing().describe()})",
    )
    yield
    await container.close()
    logger.info("EduAir API shutting down")


app = FastAPI(
    title="EduAir Attendance API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(session_salt.router)
app.include_router(ingest.router)
app.include_router(admin.router)
app.include_router(schedule.router)

register_error_handlers(app)
