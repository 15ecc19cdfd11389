"""Exception handlers rendering every error in the API envelope.

All error responses have the shape:
    {"success": false, "message": "...", "errorKind": "..."}

Server-side failures (500, except overload) are logged with full detail and
reported to clients with a generic message.
"""

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from genstudio.services.exceptions import AppError, TransientOverloadError

logger = structlog.get_logger(__name__)

GENERIC_ERROR_MESSAGE = "Internal server error"
RATE_LIMITED_MESSAGE = "Too many requests, please try again later."

_KIND_BY_STATUS = {
    400: "validation",
    401: "authentication",
    403: "authorization",
    404: "not_found",
    409: "conflict",
    429: "rate_limited",
}


def error_response(status_code: int, message: str, error_kind: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "errorKind": error_kind},
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render domain errors raised by routes, dependencies and repositories."""
    message = exc.message

    if exc.status_code >= 500 and not isinstance(exc, TransientOverloadError):
        logger.error(
            "request.failed",
            method=request.method,
            path=request.url.path,
            error_type=type(exc).__name__,
            error_message=exc.message,
        )
        message = GENERIC_ERROR_MESSAGE
    else:
        logger.info(
            "request.rejected",
            method=request.method,
            path=request.url.path,
            status_code=exc.status_code,
            error_kind=exc.error_kind,
            error_message=exc.message,
        )

    return error_response(exc.status_code, message, exc.error_kind)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Validation error"

    first = errors[0]
    if first.get("type") == "missing":
        field = str(first.get("loc", ("field",))[-1])
        return f"{field.capitalize()} is required"

    # Custom validators raise ValueError; pydantic prefixes their message
    return str(first.get("msg", "Validation error")).removeprefix("Value error, ")


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render FastAPI/pydantic request validation as a 400."""
    message = _validation_message(exc)
    logger.info(
        "request.rejected",
        method=request.method,
        path=request.url.path,
        status_code=status.HTTP_400_BAD_REQUEST,
        error_kind="validation",
        error_message=message,
    )
    return error_response(status.HTTP_400_BAD_REQUEST, message, "validation")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (unknown route, wrong method) in the envelope."""
    kind = _KIND_BY_STATUS.get(exc.status_code, "internal")
    message = str(exc.detail) if exc.status_code < 500 else GENERIC_ERROR_MESSAGE
    return error_response(exc.status_code, message, kind)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Render a rate limit rejection as a 429 with X-RateLimit-* and Retry-After headers.

    Must stay synchronous: SlowAPIMiddleware calls it without awaiting.
    """
    logger.warning(
        "request.rate_limited",
        method=request.method,
        path=request.url.path,
        client=get_remote_address(request),
        limit=str(exc.detail),
    )
    response = error_response(
        status.HTTP_429_TOO_MANY_REQUESTS, RATE_LIMITED_MESSAGE, "rate_limited"
    )
    view_rate_limit = getattr(request.state, "view_rate_limit", None)
    if view_rate_limit is not None:
        response = request.app.state.limiter._inject_headers(response, view_rate_limit)
    return response


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log everything, tell the client nothing."""
    logger.error(
        "request.unhandled_error",
        method=request.method,
        path=request.url.path,
        error_type=type(exc).__name__,
        error_message=str(exc),
        exc_info=exc,
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_ERROR_MESSAGE, "internal")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
