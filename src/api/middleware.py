"""API middleware -- CORS, request logging, and error handling.

Provides helper functions and middleware classes to configure cross-origin
resource sharing, structured request logging (via structlog), and automatic
conversion of ``ContrarreferenciaError`` subclasses into JSON
``ErrorResponse`` bodies.

Starlette middleware is a stack (last added, first executed).  In main.py
``ErrorHandlingMiddleware`` is added before ``RequestLoggingMiddleware``,
so the logging middleware is outermost and sees the final status code,
including the ones produced by error handling.
"""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.api.schemas import ErrorResponse
from src.utils.errors import (
    ContrarreferenciaError,
    DocumentFetchError,
    DocumentParseError,
    EmbeddingError,
    ExtractionError,
    GenerationProviderError,
    IngestionIncompleteError,
    IngestionInProgressError,
    InsufficientTextError,
    VectorStoreError,
)
from src.utils.logging import bind_request_context, clear_request_context, get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

_REQUEST_ID_HEADER = "X-Request-ID"

# Exception class → HTTP status.  Order matters: first isinstance match wins.
_STATUS_BY_ERROR: list[tuple[type[ContrarreferenciaError], int]] = [
    (InsufficientTextError, 422),
    (ExtractionError, 422),
    (DocumentParseError, 422),
    (IngestionInProgressError, 409),
    (IngestionIncompleteError, 502),
    (DocumentFetchError, 502),
    (EmbeddingError, 502),
    (VectorStoreError, 502),
    (GenerationProviderError, 502),
]

# Same mapping keyed by class name, for structured results that carry
# ``error_kind`` instead of a live exception.
STATUS_BY_ERROR_KIND: dict[str, int] = {cls.__name__: code for cls, code in _STATUS_BY_ERROR}


def status_for_error(exc: ContrarreferenciaError) -> int:
    """Return the HTTP status for an application error (500 if unmapped)."""
    if isinstance(exc, GenerationProviderError) and exc.is_rate_limited:
        return 429
    for cls, code in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return code
    return 500


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware.  No origins configured means ``["*"]``.

    Only GET, POST and DELETE are used by the routes, so only those are
    allowed cross-origin.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins or ["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Content-Type", "Authorization", _REQUEST_ID_HEADER],
        expose_headers=["Retry-After", _REQUEST_ID_HEADER],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and log method, path, status and duration.

    The id is taken from an incoming ``X-Request-ID`` header when present,
    bound into the structlog context for the duration of the request, and
    echoed back on the response.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get(_REQUEST_ID_HEADER) or uuid.uuid4().hex
        bind_request_context(request_id=request_id)
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            response.headers[_REQUEST_ID_HEADER] = request_id
            return response
        finally:
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=response.status_code if response else 500,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            clear_request_context()


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Catch ``ContrarreferenciaError`` subclasses and return structured JSON.

    The client only sees the exception class name and message; stack
    traces stay in the server log.  Rate-limited generation errors also
    set the ``Retry-After`` header.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except ContrarreferenciaError as exc:
            status_code = status_for_error(exc)
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
                status=status_code,
            )
            body = ErrorResponse(
                error=type(exc).__name__,
                detail=exc.message,
            )
            headers: dict[str, str] = {}
            if isinstance(exc, GenerationProviderError) and exc.retry_after_seconds is not None:
                headers["Retry-After"] = str(exc.retry_after_seconds)
            return JSONResponse(
                status_code=status_code,
                content=body.model_dump(),
                headers=headers,
            )
