"""
Exception handlers registered by create_app().

Every error response, whatever raised it, has the same body:
``{error, message, status_code, details}``. Malformed request bodies are
reported as 400 like the ValidationError raised by services, so the
checkout page only has to handle one client-error status for bad input.
"""

import logging
from typing import Any, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from renewal.core.exceptions import AppException

logger = logging.getLogger(__name__)


def _error_response(status_code: int, error: str, message: Any, details: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "status_code": status_code,
            "details": details,
        },
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}",
            extra={"status_code": exc.status_code},
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Pydantic errors as a 400 listing field, message and type."""
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return _error_response(400, "ValidationError", "Request validation failed", {"errors": errors})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes and wrong methods."""
    return _error_response(exc.status_code, "HTTPException", exc.detail)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Traceback to the log only
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error_response(500, "InternalError", "An unexpected error occurred")
