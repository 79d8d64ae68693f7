"""Request-id propagation, request logging, and JSON error responses.

Every error response uses the ``ErrorResponse`` envelope::

    {"message": "...", "errors": [{"code": 3001, "message": "...", "description": "..."}],
     "request_id": "..."}

Taxonomy errors are mapped to HTTP status codes here and nowhere else.
"""

from __future__ import annotations

from time import perf_counter
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from fastapi import status
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.errors import AppError, ErrorCode, UnexpectedError, ValidationFailedError
from app.core.logging import REQUEST_ID_CONTEXT, get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from fastapi import FastAPI
    from starlette.requests import Request
    from starlette.responses import Response

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"
HEALTH_PATHS = frozenset({"/health", "/healthz", "/readyz"})

ERROR_STATUS_CODES: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_FAILED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.CONTEXT_USER_NOT_FOUND: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.HASH_PASSWORD_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.CREATE_SESSION_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.NO_LOGIN: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.USER_ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_PASSWORD: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.QUERY_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.TASK_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.GRANT_PERMISSION_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.PERMISSION_NOT_FOUND: status.HTTP_403_FORBIDDEN,
    ErrorCode.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorCode.TRANSACTION_NOT_FOUND: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.UNEXPECTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ApiError(Exception):
    """A taxonomy error annotated with an operation-level response message."""

    def __init__(self, message: str, error: AppError) -> None:
        super().__init__(message)
        self.message = message
        self.error = error

    @property
    def status_code(self) -> int:
        return status_for(self.error)


def status_for(error: AppError) -> int:
    return ERROR_STATUS_CODES.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def _get_request_id(request: Request) -> str | None:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    return None


def _error_payload(
    *,
    message: str,
    errors: list[dict[str, object]] | None = None,
    request_id: str | None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {"message": message, "errors": errors or []}
    if request_id is not None:
        payload["request_id"] = request_id
    return payload


def _error_response(
    request: Request,
    *,
    status_code: int,
    message: str,
    errors: list[dict[str, object]] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    request_id = _get_request_id(request)
    response_headers = dict(headers or {})
    if request_id is not None:
        response_headers[REQUEST_ID_HEADER] = request_id
    return JSONResponse(
        status_code=status_code,
        content=_error_payload(message=message, errors=errors, request_id=request_id),
        headers=response_headers,
    )


def _log_app_error(request: Request, *, message: str, error: AppError, status_code: int) -> None:
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            "http.error %s path=%s error=%s",
            message,
            request.url.path,
            error,
            exc_info=error.cause,
        )
    else:
        logger.warning(
            "http.error %s path=%s error=%s",
            message,
            request.url.path,
            error,
        )


def _validation_description(exc: RequestValidationError) -> str:
    missing: list[str] = []
    invalid: list[str] = []
    for item in exc.errors():
        loc = [str(part) for part in item.get("loc", ()) if part not in {"body", "path", "query"}]
        field = ".".join(loc) or "body"
        if item.get("type") == "missing":
            missing.append(field)
        else:
            invalid.append(field)
    parts: list[str] = []
    if missing:
        parts.append(f"missing fields: {', '.join(missing)}")
    if invalid:
        parts.append(f"invalid fields: {', '.join(invalid)}")
    return "; ".join(parts)


async def _app_error_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, AppError):
        raise TypeError("Expected AppError")
    status_code = status_for(exc)
    _log_app_error(request, message=exc.message, error=exc, status_code=status_code)
    return _error_response(
        request,
        status_code=status_code,
        message=exc.message,
        errors=[exc.to_item()],
    )


async def _api_error_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, ApiError):
        raise TypeError("Expected ApiError")
    status_code = exc.status_code
    _log_app_error(request, message=exc.message, error=exc.error, status_code=status_code)
    return _error_response(
        request,
        status_code=status_code,
        message=exc.message,
        errors=[exc.error.to_item()],
    )


async def _request_validation_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    if not isinstance(exc, RequestValidationError):
        raise TypeError("Expected RequestValidationError")
    error = ValidationFailedError(_validation_description(exc))
    logger.warning("http.validation_failed path=%s error=%s", request.url.path, error)
    return _error_response(
        request,
        status_code=status.HTTP_400_BAD_REQUEST,
        message="your request is validation failed",
        errors=[error.to_item()],
    )


async def _response_validation_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    if not isinstance(exc, ResponseValidationError):
        raise TypeError("Expected ResponseValidationError")
    logger.error(
        "http.response_validation_failed path=%s errors=%s",
        request.url.path,
        exc.errors(),
    )
    return _error_response(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="unexpected error",
        errors=[UnexpectedError("response failed schema validation").to_item()],
    )


async def _http_exception_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    if not isinstance(exc, StarletteHTTPException):
        raise TypeError("Expected StarletteHTTPException")
    return _error_response(
        request,
        status_code=exc.status_code,
        message=str(exc.detail),
        headers=exc.headers,
    )


def _unhandled_error_response(request: Request) -> JSONResponse:
    return _error_response(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="unexpected error",
        errors=[UnexpectedError().to_item()],
    )


def _normalize_request_id(raw: str | None) -> str | None:
    if raw is None:
        return None
    cleaned = raw.strip()
    return cleaned or None


def _log_request(request: Request, *, status_code: int, duration_ms: float) -> None:
    if request.url.path in HEALTH_PATHS and not settings.request_log_include_health:
        return
    extra = {
        "method": request.method,
        "path": request.url.path,
        "status_code": status_code,
        "duration_ms": round(duration_ms, 2),
    }
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("http.request.complete", extra=extra)
    elif status_code >= status.HTTP_400_BAD_REQUEST:
        logger.warning("http.request.complete", extra=extra)
    else:
        logger.info("http.request.complete", extra=extra)
    threshold = settings.request_log_slow_ms
    if threshold and duration_ms >= threshold:
        logger.warning(
            "http.request.slow",
            extra={**extra, "slow_threshold_ms": threshold},
        )


async def _request_context_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    request_id = _normalize_request_id(request.headers.get(REQUEST_ID_HEADER)) or str(uuid4())
    request.state.request_id = request_id
    token = REQUEST_ID_CONTEXT.set(request_id)
    started = perf_counter()
    try:
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "http.request.unhandled method=%s path=%s",
                request.method,
                request.url.path,
            )
            response = _unhandled_error_response(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        _log_request(
            request,
            status_code=response.status_code,
            duration_ms=(perf_counter() - started) * 1000,
        )
        return response
    finally:
        REQUEST_ID_CONTEXT.reset(token)


def install_error_handling(app: FastAPI) -> None:
    """Register request-id middleware and JSON error handlers on *app*."""
    app.middleware("http")(_request_context_middleware)
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_exception_handler)
    app.add_exception_handler(ResponseValidationError, _response_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_exception_handler)
