"""Error Hierarchy — typed, categorized exceptions for all EduAir failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - ValidationError and NotFoundError are raised before any ledger mutation
    - PublishError never leaves the ledger modified (callers roll back or skip the commit)
    - ConfigurationWarning is reported, never raised
    - No raw identity token ever appears in a message

Design Decisions:
    - Single hierarchy with EduAirError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    class_id: str | None = None
    session_id: str | None = None
    topic_id: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class EduAirError(Exception):
    """Base exception for all EduAir errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "class_id": self.context.class_id,
                    "session_id": self.context.session_id,
                    "topic_id": self.context.topic_id,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class ValidationError(EduAirError):
    """Missing or malformed required field."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class NotFoundError(EduAirError):
    """Unknown class, session or roster reference."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class TapInFlightError(EduAirError):
    """Same pseudonym is still being published by an earlier tap. Retryable."""
    def __init__(self, retry_after_ms: int = 1_000, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        super().__init__(
            "An earlier tap for this pseudonym is still being published",
            "TAP_IN_FLIGHT", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, ctx, 409,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class PublishError(EduAirError):
    """The ordering service did not return a sequence marker."""
    def __init__(
        self,
        message: str,
        reason: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        category = ErrorCategory.TIMEOUT if reason == "timeout" else ErrorCategory.EXTERNAL_API
        super().__init__(
            f"Publish failed ({reason}): {message}",
            "PUBLISH_FAILED", category,
            ErrorSeverity.ERROR, ctx, 502,
        )
        self.reason = reason


class DatabaseError(EduAirError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


# ─── Non-fatal ──────────────────────────────────────────────────

class ConfigurationWarning(EduAirError):
    """Degraded-security configuration. Reported at startup, never raised."""
    def __init__(self, message: str, setting: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFIGURATION_WARNING", ErrorCategory.CONFIGURATION,
            ErrorSeverity.WARNING, context, 200,
        )
        self.setting = setting

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "setting": self.setting,
            "message": self.message,
        }
