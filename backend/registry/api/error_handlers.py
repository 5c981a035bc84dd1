"""Error Handlers — every failure leaves the API in the registry error envelope.

Invariants:
    - RegistryError → its own http_status and to_response() body
    - RequestValidationError → 400 VALIDATION_ERROR with one detail per bad field,
      named the way the client spelled it (education.educationLevel, not body.education...)
    - Anything else → 500 INTERNAL_ERROR; the exception text never reaches the client
    - Submitted values are never echoed back or logged (passwords travel in bodies)

Design Decisions:
    - Rejections (4xx) log at WARNING, failures (5xx) at ERROR: a conflict or a bad
      id is the caller's problem, a storage outage is ours
    - The error context (subject_id, operation, field) goes into log extras so the
      JSON formatter can index it
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from registry.core.errors import ErrorCategory, ErrorSeverity, RegistryError

logger = logging.getLogger(__name__)

# Request sections FastAPI prefixes onto error locations.
_LOCATION_ROOTS = {"body", "query", "path", "header"}


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RegistryError, _registry_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(Exception, _unexpected_error)


async def _registry_error(request: Request, exc: RegistryError) -> JSONResponse:
    level = logging.ERROR if exc.http_status >= 500 else logging.WARNING
    logger.log(
        level,
        f"{exc.code} on {request.method} {request.url.path}: {exc.message}",
        extra={
            "error_code": exc.code,
            "path": request.url.path,
            "subject_id": exc.context.subject_id,
            "operation": exc.context.operation,
            "field": exc.context.field,
        },
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def _request_validation_error(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    details = [
        {"field": _wire_field(e["loc"]), "message": e["msg"], "type": e["type"]}
        for e in exc.errors()
    ]
    logger.warning(
        f"Rejected request body on {request.method} {request.url.path}",
        extra={
            "error_code": "VALIDATION_ERROR",
            "path": request.url.path,
            "field": ",".join(d["field"] for d in details),
        },
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_envelope(
            "VALIDATION_ERROR", "Invalid request data",
            ErrorCategory.VALIDATION, ErrorSeverity.ERROR, details=details,
        ),
    )


async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}",
        exc_info=exc,
        extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope(
            "INTERNAL_ERROR", "An unexpected error occurred",
            ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL,
        ),
    )


def _wire_field(loc: tuple) -> str:
    parts = [str(p) for p in loc]
    if parts and parts[0] in _LOCATION_ROOTS:
        parts = parts[1:]
    return ".".join(parts) or "request"


def _envelope(
    code: str, message: str, category: ErrorCategory, severity: ErrorSeverity,
    details: list[dict] | None = None,
) -> dict:
    error = {
        "code": code,
        "message": message,
        "category": category.value,
        "severity": severity.value,
    }
    if details is not None:
        error["details"] = details
    return {"error": error}
