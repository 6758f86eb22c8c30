"""
Turn tracker errors into JSON responses.

Every body has the shape {"error": {"code", "message", "details"?}}.
Session and storage errors get their own handlers so clients can tell a
missing session from a broken database without parsing messages.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import (
    ActivityTrackerError,
    ErrorCode,
    NoActiveSessionError,
    PersistenceError,
)

logger = logging.getLogger(__name__)

START_SESSION_PATH = "/api/v1/sessions/start"


def error_response(
    status_code: int,
    code: ErrorCode,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    error: Dict[str, Any] = {"code": code.value, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


async def tracker_error_handler(request: Request, exc: ActivityTrackerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code.value} on {request.url.path}: {exc.message}")
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


async def no_active_session_handler(request: Request, exc: NoActiveSessionError) -> JSONResponse:
    """Point the client at the endpoint that opens a session."""
    return error_response(
        exc.status_code,
        exc.code,
        exc.message,
        {**exc.details, "start_with": START_SESSION_PATH},
    )


async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    """Storage failures name the repository operation that broke."""
    operation = exc.operation or "unknown"
    logger.error(f"Storage operation '{operation}' failed on {request.url.path}: {exc.message}")
    return error_response(
        exc.status_code,
        exc.code,
        f"Could not complete '{operation}' against the activity store",
        {"operation": operation},
    )


async def model_validation_handler(request: Request, exc: PydanticValidationError) -> JSONResponse:
    """Model validation failing after request parsing, e.g. while editing an activity."""
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return error_response(422, ErrorCode.VALIDATION_ERROR, "Invalid activity data", {"errors": errors})


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception on {request.url.path}: {exc}")
    return error_response(500, ErrorCode.INTERNAL_ERROR, "An unexpected error occurred")


def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers; each error is routed by its class hierarchy."""
    app.add_exception_handler(NoActiveSessionError, no_active_session_handler)
    app.add_exception_handler(PersistenceError, persistence_error_handler)
    app.add_exception_handler(ActivityTrackerError, tracker_error_handler)
    app.add_exception_handler(PydanticValidationError, model_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
