# weconnect/errors.py
from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger(__name__)

class AppError(Exception):
    """Base for errors that map onto the error envelope."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Internal Server Error"

    def __init__(self, message: str, status_code: Optional[int] = None, error: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error is not None:
            self.error = error

class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "Bad Request"

class AuthError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "Unauthorized"

class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    error = "Forbidden"

class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "Not Found"

class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    error = "Conflict"

class RateLimitError(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error = "Too Many Requests"

class UpstreamError(AppError):
    """Failure of a dependent service (automation webhook, object storage)."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Upstream Error"

class ServiceUnavailableError(UpstreamError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "Service Unavailable"

GENERIC_ERROR_MESSAGE = "An unexpected error occurred."

_STATUS_LABELS = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    413: "Payload Too Large",
    429: "Too Many Requests",
    500: "Internal Server Error",
    503: "Service Unavailable",
}

def error_body(status_code: int, message: str, error: Optional[str] = None) -> dict:
    return {
        "success": False,
        "error": error or _STATUS_LABELS.get(status_code, "Error"),
        "message": message,
        "statusCode": status_code,
    }

def success_body(data: Any = None, message: Optional[str] = None) -> dict:
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log("app_error", status_code=exc.status_code, error=exc.error, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.status_code, exc.message, exc.error))

async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid request."
    if errors:
        first = errors[0]
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    logger.info("request_validation_failed", message=message)
    return JSONResponse(status_code=400, content=error_body(400, message))

async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = f"Route {request.method} {request.url.path} not found."
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, message),
        headers=getattr(exc, "headers", None),
    )

async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", error_type=type(exc).__name__, exc_info=exc)
    return JSONResponse(status_code=500, content=error_body(500, GENERIC_ERROR_MESSAGE))

def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
