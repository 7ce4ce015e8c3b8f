"""Error taxonomy shared by every endpoint, plus the FastAPI handlers that
turn it into ``{error, message, details?}`` JSON bodies."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = 500
    error = "Internal Server Error"

    def __init__(self, message, details=None, headers=None, extra=None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.headers = headers
        self.extra = extra or {}

    def to_dict(self):
        body = {"error": self.error, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        body.update(self.extra)
        return body


class ValidationFailed(ApiError):
    status_code = 400
    error = "Validation Error"


class BadRequest(ApiError):
    status_code = 400
    error = "Bad Request"


class Unauthorized(ApiError):
    status_code = 401
    error = "Unauthorized"


class Forbidden(ApiError):
    status_code = 403
    error = "Forbidden"


class NotFound(ApiError):
    status_code = 404
    error = "Not Found"


class Conflict(ApiError):
    status_code = 409
    error = "Conflict"


class TooManyRequests(ApiError):
    status_code = 429
    error = "Too Many Requests"


def _field_name(loc):
    # drop the "body"/"query"/"path" prefix pydantic puts in front of the field
    parts = [str(part) for part in loc[1:]] if len(loc) > 1 else [str(part) for part in loc]
    return ".".join(parts)


def validation_details(errors):
    details = []
    for err in errors:
        message = err.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        details.append({"field": _field_name(err.get("loc", ())), "message": message})
    return details


async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info("Validation failed for %s %s", request.method, request.url.path)
    error = ValidationFailed("Invalid input data", details=validation_details(exc.errors()))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content={
                "error": "Not Found",
                "message": f"Route {request.method} {request.url.path} not found",
                "suggestion": "Check the API documentation at GET / for available endpoints",
            },
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal Server Error", "message": "Something went wrong!"},
    )


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
