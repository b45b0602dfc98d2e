from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .log import get_logger

logger = get_logger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected server error occurred."


class OrderDeskError(Exception):
    """Base for errors that map onto an HTTP response."""

    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = GENERIC_ERROR_MESSAGE

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        self.message = message or self.default_message
        self.headers = headers
        super().__init__(self.message)


class BadRequest(OrderDeskError):
    status_code = 400
    code = "BAD_REQUEST"
    default_message = "Invalid request."


class Unauthorized(OrderDeskError):
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Unauthorized."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(OrderDeskError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Forbidden."


class NotFound(OrderDeskError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not found."


class Conflict(OrderDeskError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Conflict."


class UpstreamFailure(OrderDeskError):
    """Store or file-system failure that has no more specific meaning."""

    status_code = 500
    code = "UPSTREAM_FAILURE"
    default_message = GENERIC_ERROR_MESSAGE

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


def _body(message: str, code: str, details: Any = None) -> Dict[str, Any]:
    body = {"message": message, "code": code}
    if details is not None:
        body["details"] = details
    return body


def add_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(OrderDeskError)
    async def orderdesk_error_handler(request: Request, exc: OrderDeskError):
        return JSONResponse(
            status_code=exc.status_code,
            content=_body(exc.message, exc.code),
            headers=exc.headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_body(str(exc.detail), "HTTP_ERROR"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=_body("Invalid request.", BadRequest.code, jsonable_encoder(exc.errors())),
        )

    @app.exception_handler(PoolTimeoutError)
    async def pool_timeout_handler(request: Request, exc: PoolTimeoutError):
        logger.error(
            "Connection pool exhausted",
            extra={"method": request.method, "path": request.url.path},
        )
        return JSONResponse(
            status_code=503,
            content=_body("Service temporarily unavailable.", UpstreamFailure.code),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        # Full detail goes to the log only; the client gets a fixed message.
        logger.error(
            f"Unhandled exception: {exc!r}",
            extra={"method": request.method, "path": request.url.path},
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content=_body(GENERIC_ERROR_MESSAGE, "INTERNAL_ERROR"))
