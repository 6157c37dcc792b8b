"""Custom exception hierarchy for the contrarreferencia retrieval pipeline.

All application exceptions inherit from :class:`ContrarreferenciaError`,
which carries an optional ``provider_name`` so error handlers can identify
which external service (e.g. "gemini_embedding", "chromadb", "pymupdf")
caused the failure.

The hierarchy is organized by pipeline stage:

    ContrarreferenciaError  (base -- catch-all)
    +-- ExtractionError            (PDF has no text layer; needs manual entry)
    +-- DocumentFetchError         (PDF could not be downloaded)
    +-- DocumentParseError         (bytes are not a readable PDF)
    +-- InsufficientTextError      (text below the minimum length)
    +-- EmbeddingError             (embedding provider call failed)
    +-- VectorStoreError           (vector index operation failed)
    |   +-- DuplicateChunkError    ((radicado, chunk_index) already stored)
    +-- IngestionInProgressError   (another caller holds the ingestion claim)
    +-- IngestionIncompleteError   (degraded ingestion rejected by policy)
    +-- GenerationProviderError    (generation endpoint failed / rate-limited)
    +-- ConfigurationError         (startup / missing config)

Callers decide retry policy from the class alone: an ``ExtractionError``
is never worth retrying, a ``GenerationProviderError`` with
``retry_after_seconds`` set is worth retrying after that delay.
"""


class ContrarreferenciaError(Exception):
    """Base exception for all pipeline errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    scanning, e.g. ``[gemini_embedding] HTTP 500``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Text extraction errors
# ---------------------------------------------------------------------------

class ExtractionError(ContrarreferenciaError):
    """Raised when a PDF has no extractable text layer (e.g. a scanned image).

    This is an expected outcome, not a systemic fault: the caller should
    offer manual text entry instead of retrying.
    """

    def __init__(
        self,
        message: str = "PDF has no extractable text layer",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentFetchError(ContrarreferenciaError):
    """Raised when the PDF could not be downloaded from its URL."""

    def __init__(
        self,
        message: str = "PDF download failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentParseError(ContrarreferenciaError):
    """Raised when downloaded bytes cannot be opened as a PDF."""

    def __init__(
        self,
        message: str = "PDF could not be parsed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InsufficientTextError(ContrarreferenciaError):
    """Raised when extracted or assembled text is below the minimum length."""

    def __init__(
        self,
        message: str = "No extractable text",
        char_count: int = 0,
        minimum: int = 0,
        provider_name: str | None = None,
    ) -> None:
        self._char_count = char_count
        self._minimum = minimum
        super().__init__(message=message, provider_name=provider_name)

    @property
    def char_count(self) -> int:
        return self._char_count

    @property
    def minimum(self) -> int:
        return self._minimum


# ---------------------------------------------------------------------------
# Embedding / vector index errors
# ---------------------------------------------------------------------------

class EmbeddingError(ContrarreferenciaError):
    """Raised when the embedding provider rejects or fails a request.

    ``status_code`` is the provider's HTTP status when one was received,
    ``None`` for transport failures and local validation errors.
    """

    def __init__(
        self,
        message: str = "Embedding request failed",
        status_code: int | None = None,
        provider_name: str | None = None,
    ) -> None:
        self._status_code = status_code
        super().__init__(message=message, provider_name=provider_name)

    @property
    def status_code(self) -> int | None:
        return self._status_code


class VectorStoreError(ContrarreferenciaError):
    """Raised when a vector index operation fails."""

    def __init__(
        self,
        message: str = "Vector store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DuplicateChunkError(VectorStoreError):
    """Raised when ``(radicado, chunk_index)`` is already stored."""

    def __init__(
        self,
        message: str = "Chunk already stored",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Ingestion orchestration errors
# ---------------------------------------------------------------------------

class IngestionInProgressError(ContrarreferenciaError):
    """Raised when another caller currently holds the ingestion claim."""

    def __init__(
        self,
        message: str = "Ingestion already in progress",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class IngestionIncompleteError(ContrarreferenciaError):
    """Raised when a degraded ingestion is rejected by policy."""

    def __init__(
        self,
        message: str = "Ingestion stored fewer chunks than produced",
        processed_count: int = 0,
        total_count: int = 0,
        provider_name: str | None = None,
    ) -> None:
        self._processed_count = processed_count
        self._total_count = total_count
        super().__init__(message=message, provider_name=provider_name)

    @property
    def processed_count(self) -> int:
        return self._processed_count

    @property
    def total_count(self) -> int:
        return self._total_count


# ---------------------------------------------------------------------------
# Generation errors
# ---------------------------------------------------------------------------

class GenerationProviderError(ContrarreferenciaError):
    """Raised when the generation endpoint fails.

    For HTTP 429 responses ``retry_after_seconds`` holds the provider's
    retry hint; the error is surfaced to the caller, never retried here.
    """

    def __init__(
        self,
        message: str = "Generation request failed",
        status_code: int | None = None,
        retry_after_seconds: int | None = None,
        provider_name: str | None = None,
    ) -> None:
        self._status_code = status_code
        self._retry_after_seconds = retry_after_seconds
        super().__init__(message=message, provider_name=provider_name)

    @property
    def status_code(self) -> int | None:
        return self._status_code

    @property
    def retry_after_seconds(self) -> int | None:
        return self._retry_after_seconds

    @property
    def is_rate_limited(self) -> bool:
        return self._status_code == 429


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(ContrarreferenciaError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
