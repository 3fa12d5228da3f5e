"""
Middleware and exception handlers for the Pipeline Studio API.

Every PipelineStudioException subclass carries its own http_status and
error_code, so a single handler turns any domain error into the standard
error body. Framework errors (request validation, HTTP errors) and
unexpected exceptions are mapped to the same body shape.

Usage in main.py:
    from .api.middleware import register_exception_handlers
    register_exception_handlers(app)
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..domain.errors import PipelineStudioException
from ..domain.responses import ErrorResponse
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id, generate_trace_id, set_trace_id


logger = get_module_logger()

TRACE_HEADER = "X-Trace-ID"

_HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    500: "INTERNAL_ERROR",
    502: "BAD_GATEWAY",
    503: "SERVICE_UNAVAILABLE",
    504: "GATEWAY_TIMEOUT",
}


# =============================================================================
# Middleware Functions
# =============================================================================


async def trace_id_middleware(request: Request, call_next: Callable) -> Response:
    """
    Take the trace id from the X-Trace-ID header (or mint one), bind it to
    the request context and echo it on the response.
    """
    trace_id = request.headers.get(TRACE_HEADER) or generate_trace_id()
    set_trace_id(trace_id)

    response = await call_next(request)
    response.headers[TRACE_HEADER] = trace_id
    return response


async def logging_middleware(request: Request, call_next: Callable) -> Response:
    """Log each request and its outcome; adds X-Process-Time (ms)."""
    start_time = datetime.now(timezone.utc)
    trace_id = current_trace_id()

    logger.info(
        "HTTP request started",
        method=request.method,
        path=request.url.path,
        client_ip=request.client.host if request.client else None,
        trace_id=trace_id,
    )

    response = await call_next(request)

    duration_ms = round((datetime.now(timezone.utc) - start_time).total_seconds() * 1000, 2)
    response.headers["X-Process-Time"] = str(duration_ms)

    logger.info(
        "HTTP request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=duration_ms,
        trace_id=trace_id,
    )
    return response


# =============================================================================
# Exception Handlers
# =============================================================================


def _create_error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """
    Build the standard error body:
    {"error", "message", "details"?, "trace_id", "timestamp"}
    """
    body = ErrorResponse(
        error=error_code.lower(),
        message=message,
        details=details,
        trace_id=current_trace_id(),
        timestamp=datetime.now(timezone.utc),
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


async def pipeline_studio_exception_handler(request: Request, exc: PipelineStudioException) -> JSONResponse:
    log_level = "warning" if exc.http_status < 500 else "error"
    getattr(logger, log_level)(
        f"{exc.__class__.__name__}: {exc.message}",
        error_code=exc.error_code,
        http_status=exc.http_status,
        details=exc.details,
        path=request.url.path,
        method=request.method,
        trace_id=current_trace_id(),
    )
    return _create_error_response(
        status_code=exc.http_status,
        error_code=exc.error_code,
        message=exc.message,
        details=exc.details or None,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.warning(
        "Request validation failed",
        error_count=len(errors),
        errors=errors,
        path=request.url.path,
        method=request.method,
        trace_id=current_trace_id(),
    )
    return _create_error_response(
        status_code=422,
        error_code="VALIDATION_ERROR",
        message="Request validation failed",
        details={"errors": errors},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    error_code = _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")

    log_level = "warning" if exc.status_code < 500 else "error"
    getattr(logger, log_level)(
        f"HTTP {exc.status_code}: {exc.detail}",
        error_code=error_code,
        path=request.url.path,
        method=request.method,
        trace_id=current_trace_id(),
    )
    return _create_error_response(
        status_code=exc.status_code,
        error_code=error_code,
        message=str(exc.detail) if exc.detail else f"HTTP {exc.status_code} error",
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback: log everything, expose nothing but the trace id."""
    logger.error(
        "Unhandled exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        trace_id=current_trace_id(),
        exc_info=True,
    )
    return _create_error_response(
        status_code=500,
        error_code="INTERNAL_ERROR",
        message="An internal server error occurred. Please try again later.",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Priority: PipelineStudioException subclasses, request validation,
    HTTP exceptions, then the catch-all fallback.
    """
    app.add_exception_handler(PipelineStudioException, pipeline_studio_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info(
        "Exception handlers registered",
        handlers=["PipelineStudioException", "RequestValidationError", "StarletteHTTPException", "Exception"],
    )


# =============================================================================
# OpenAPI Error Response Models (for documentation)
# =============================================================================


def _error_example(description: str, error: str, message: str, **extra: Any) -> Dict[str, Any]:
    example = {
        "error": error,
        "message": message,
        **extra,
        "trace_id": "550e8400-e29b-41d4-a716-446655440000",
        "timestamp": "2025-01-15T10:30:00Z",
    }
    return {"description": description, "content": {"application/json": {"example": example}}}


# Example usage in routes:
#   @router.post("/endpoint", responses=error_responses(404, 422))
ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: _error_example("Bad Request - The request was malformed or invalid", "bad_request", "Invalid graph document"),
    401: _error_example("Unauthorized - Sign-in failed", "authentication_error", "Email and password are required"),
    404: _error_example("Not Found - The requested resource was not found", "not_found", "Connection not found: conn-7"),
    422: _error_example(
        "Validation Error - Request validation failed",
        "validation_error",
        "Request validation failed",
        details={"errors": [{"field": "body.name", "message": "Field required", "type": "missing"}]},
    ),
    500: _error_example(
        "Internal Server Error - An unexpected error occurred",
        "internal_error",
        "An internal server error occurred. Please try again later.",
    ),
    502: _error_example("Bad Gateway - The database gateway answered with an error", "gateway_response_error", "Gateway returned HTTP 500"),
    503: _error_example("Service Unavailable - The database gateway is unreachable", "gateway_connection_error", "Could not reach the database gateway"),
    504: _error_example("Gateway Timeout - The database gateway did not answer in time", "gateway_timeout", "Gateway request timed out"),
}


def error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    return {code: ERROR_RESPONSES[code] for code in status_codes}
