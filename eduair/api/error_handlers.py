"""Error Handlers — maps exceptions to the EduAir JSON error envelope.

Invariants:
    - Every error body has the shape {"error": {code, message, category, severity, ...}}
    - EduAirError keeps its own http_status; 4xx logged as warning, 5xx as error
    - An error carrying retry_after_ms sets a Retry-After header (seconds)
    - RequestValidationError → 400 VALIDATION_ERROR with one detail per field,
      field paths without the "body"/"query" prefix
    - Unhandled exceptions → 500 INTERNAL_ERROR, message never includes the exception text
"""

import logging
import math

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from eduair.core.errors import ErrorCategory, ErrorSeverity, EduAirError

logger = logging.getLogger(__name__)

_LOCATION_PREFIXES = {"body", "query", "path", "header"}


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EduAirError, handle_eduair_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected)


def error_body(
    code: str, message: str, category: ErrorCategory,
    severity: ErrorSeverity = ErrorSeverity.ERROR, **extra,
) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "category": category.value,
            "severity": severity.value,
            **extra,
        },
    }


async def handle_eduair_error(request: Request, exc: EduAirError) -> JSONResponse:
    log = logger.warning if exc.http_status < 500 else logger.error
    log(
        exc.message,
        extra={
            "error_code": exc.code,
            "path": request.url.path,
            "class_id": exc.context.class_id,
            "session_id": exc.context.session_id,
            "topic_id": exc.context.topic_id,
        },
    )
    headers = None
    if exc.context.retry_after_ms:
        headers = {"Retry-After": str(math.ceil(exc.context.retry_after_ms / 1000))}
    return JSONResponse(
        status_code=exc.http_status, content=exc.to_response(), headers=headers,
    )


async def handle_request_validation(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    details = [
        {
            "field": _field_path(e["loc"]),
            "message": e["msg"],
            "type": e["type"],
        }
        for e in exc.errors()
    ]
    logger.warning(
        f"Rejected request: {', '.join(d['field'] for d in details)}",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(
            "VALIDATION_ERROR", "Invalid request data", ErrorCategory.VALIDATION,
            details=details,
        ),
    )


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled {type(exc).__name__}",
        exc_info=exc,
        extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(
            "INTERNAL_ERROR", "An unexpected error occurred",
            ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL,
        ),
    )


def _field_path(loc) -> str:
    parts = list(loc)
    if parts and parts[0] in _LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(str(p) for p in parts) or "body"
