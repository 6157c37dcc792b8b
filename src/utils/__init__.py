"""Utility modules for the contrarreferencia pipeline.

- **errors** -- Domain exception hierarchy rooted at ContrarreferenciaError;
  each pipeline stage raises its own subclass so callers can decide retry
  policy from the error class alone.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **rate_limiter** -- Token-bucket pacing for outbound provider calls.
"""

from src.utils.errors import (
    ConfigurationError,
    ContrarreferenciaError,
    DocumentFetchError,
    DocumentParseError,
    DuplicateChunkError,
    EmbeddingError,
    ExtractionError,
    GenerationProviderError,
    IngestionIncompleteError,
    IngestionInProgressError,
    InsufficientTextError,
    VectorStoreError,
)
from src.utils.logging import configure_logging, get_logger
from src.utils.rate_limiter import TokenBucketRateLimiter

__all__ = [
    "ConfigurationError",
    "ContrarreferenciaError",
    "DocumentFetchError",
    "DocumentParseError",
    "DuplicateChunkError",
    "EmbeddingError",
    "ExtractionError",
    "GenerationProviderError",
    "IngestionIncompleteError",
    "IngestionInProgressError",
    "InsufficientTextError",
    "TokenBucketRateLimiter",
    "VectorStoreError",
    "configure_logging",
    "get_logger",
]
