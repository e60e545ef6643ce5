"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded beyond the
      documented degraded-mode default)
    - get_settings() is cached (lru_cache) — single instance per process
    - A weak or missing salt secret never stops the service; it is reported
      as a ConfigurationWarning by collect_configuration_warnings()

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: runs out-of-the-box with
      the bundled schedule/roster and the in-process sequencer
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from eduair.core.domain_types import RecordType
from eduair.core.topics import TopicRouting
from eduair.core.errors import ConfigurationWarning

logger = logging.getLogger(__name__)

DEFAULT_SALT_SECRET = "default-secret-change-me"
DATA_DIR = Path(__file__).resolve().parent / "data"


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Privacy
    salt_secret: str = DEFAULT_SALT_SECRET

    # Attendance
    late_tolerance_min: int = Field(5, ge=0)

    # Topics (ordering service)
    topic_id: str | None = None
    topic_id_attendance: str | None = None
    topic_id_telemetry: str | None = None

    # Ordering service (unset: in-process LocalSequencer)
    ordering_service_url: str | None = None
    ordering_service_token: str | None = None
    ordering_timeout_seconds: float = 10.0
    ordering_max_retries: int = 3
    ordering_base_delay_ms: int = 250
    ordering_max_delay_ms: int = 5_000

    # Ledger
    ledger_backend: Literal["memory", "database"] = "memory"
    database_url: str = "sqlite+aiosqlite:///eduair.db"
    database_pool_size: int = 20
    database_max_overflow: int = 10

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres URLs come as postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    # Roster / schedule store
    schedule_path: Path = DATA_DIR / "schedule.json"
    roster_path: Path = DATA_DIR / "roster.json"

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    def topic_routing(self) -> TopicRouting:
        return TopicRouting(
            attendance=self.topic_id_attendance,
            telemetry=self.topic_id_telemetry,
            fallback=self.topic_id,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


def collect_configuration_warnings(settings: Settings) -> list[ConfigurationWarning]:
    """Report configuration that weakens guarantees without being fatal."""
    warnings: list[ConfigurationWarning] = []
    if not settings.salt_secret:
        warnings.append(ConfigurationWarning(
            "SALT_SECRET is empty: pseudonyms are reproducible by anyone",
            setting="salt_secret",
        ))
    elif settings.salt_secret == DEFAULT_SALT_SECRET:
        warnings.append(ConfigurationWarning(
            "SALT_SECRET uses the built-in default: set a private secret",
            setting="salt_secret",
        ))
    for record_type, topic in (
        (RecordType.ATTENDANCE, settings.topic_id_attendance),
        (RecordType.TELEMETRY, settings.topic_id_telemetry),
    ):
        if not (topic or settings.topic_id):
            warnings.append(ConfigurationWarning(
                f"No topic configured for {record_type.value} records",
                setting=f"topic_id_{record_type.value}",
            ))
    return warnings


def log_configuration_warnings(settings: Settings) -> list[ConfigurationWarning]:
    """Log every configuration warning once (called on startup)."""
    warnings = collect_configuration_warnings(settings)
    for warning in warnings:
        logger.warning(
            f"Configuration warning: {warning.message}",
            extra={"error_code": warning.code},
        )
    return warnings
