# app/logging/exception_handlers.py
"""Exception handlers that turn failures into safe JSON responses."""

import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.exceptions import QueryError

logger = logging.getLogger(__name__)


async def query_exception_handler(request: Request, exc: QueryError):
    """Safe message for the client; engine text and template go to the log only."""
    logger.error(
        "Query failed on %s %s: %s",
        request.method,
        request.url.path,
        exc.detail,
        extra={
            "kind": exc.kind.value,
            "constraint": exc.constraint.value if exc.constraint else None,
            "template": exc.template,
            "session_id": getattr(request.state, "session_id", None),
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.user_message, "kind": exc.kind.value},
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors"""

    # Convert errors to a safe format for JSON response
    def convert_error(error):
        if isinstance(error, dict):
            return {k: convert_error(v) for k, v in error.items()}
        elif isinstance(error, list):
            return [convert_error(item) for item in error]
        else:
            return str(error)

    return JSONResponse(
        status_code=422,
        content={"detail": convert_error(exc.errors())},
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    if exc.status_code >= 500:
        logger.error("HTTP %s on %s: %s", exc.status_code, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions"""
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"},
    )
