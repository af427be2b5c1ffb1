"""Application error taxonomy and the FastAPI handlers that render it.

Every error leaves the API as ``{"error": <message>}`` (plus a machine-readable
``code`` for application errors) with a matching status code.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"
    message = "Internal server error"

    def __init__(self, message: str | None = None, code: str | None = None, headers: dict | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message
        if code:
            self.code = code
        self.headers = headers

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class BadRequest(AppError):
    status_code = 400
    code = "BAD_REQUEST"
    message = "Bad request"


class Unauthorized(AppError):
    status_code = 401
    code = "UNAUTHORIZED"
    message = "Unauthorized"


class Forbidden(AppError):
    status_code = 403
    code = "FORBIDDEN"
    message = "Forbidden"


class NotFound(AppError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Not found"


class AlreadyExists(BadRequest):
    code = "ALREADY_EXISTS"
    message = "User already exists"


class NoDesign(BadRequest):
    code = "NO_DESIGN"
    message = "This optimization record has no optimized design"


class MissingData(BadRequest):
    code = "MISSING_DATA"
    message = "Optimization record is missing design data"


class NoOptimization(BadRequest):
    code = "NO_OPTIMIZATION"
    message = "No optimization record found. Please run analysis first."


class NoData(BadRequest):
    code = "NO_DATA"
    message = "No design data available"


class InvalidTransition(BadRequest):
    code = "INVALID_TRANSITION"
    message = "Optimization cannot move to the requested status"


class Throttled(AppError):
    status_code = 429
    code = "RATE_LIMITED"
    message = "Rate limit exceeded. Try again later."


class UpstreamError(AppError):
    status_code = 502
    code = "UPSTREAM_ERROR"
    message = "AI service request failed"
    retryable = False


class UpstreamTimeout(UpstreamError):
    status_code = 504
    code = "UPSTREAM_TIMEOUT"
    message = "AI service timed out"
    retryable = True


class UpstreamFormatError(UpstreamError):
    code = "AI_PARSE_ERROR"
    message = "Failed to parse AI response as JSON"


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message, "code": "BAD_REQUEST"})


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=getattr(exc, "headers", None))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
