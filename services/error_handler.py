"""Global exception handlers.

Every error leaves the API as {"success": false, "message": ...}, keeping the
status code of the HTTPException that produced it.
"""
import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
        headers=headers,
    )


async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


async def handle_validation_error(request: Request, exc: RequestValidationError):
    """Flatten pydantic errors into one readable message."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return error_response(422, "; ".join(parts) or "Invalid request")


async def handle_exception(request: Request, exc: Exception):
    """Last-resort handler for anything a route did not translate."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return error_response(500, str(exc) or "Internal server error")


async def handle_rate_limit(request: Request, exc: RateLimitExceeded):
    return error_response(429, f"Rate limit exceeded: {exc.detail}")
