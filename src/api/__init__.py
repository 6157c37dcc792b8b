"""Contrarreferencia API layer -- routes, schemas, and middleware."""

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router
from src.api.schemas import (
    DeleteDocumentResponse,
    DocumentTextResponse,
    ErrorResponse,
    GenerateRequest,
    HealthResponse,
    IngestRequest,
    SearchRequest,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "DeleteDocumentResponse",
    "DocumentTextResponse",
    "ErrorResponse",
    "GenerateRequest",
    "HealthResponse",
    "IngestRequest",
    "SearchRequest",
]
