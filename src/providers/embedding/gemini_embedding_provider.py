"""Gemini embedding provider adapter.

Calls the Generative Language ``embedContent`` REST endpoint over ``httpx``
to implement :class:`IEmbeddingProvider`.  Every request is paced by an
injected :class:`~src.utils.rate_limiter.TokenBucketRateLimiter`, which is
the only backpressure applied to the provider.  Requests are never retried
here; the ingestion service decides whether a failed chunk is skipped.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.models.rag import EmbeddingResult
from src.utils.errors import EmbeddingError
from src.utils.rate_limiter import TokenBucketRateLimiter

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
_DEFAULT_MODEL = "text-embedding-004"
_DEFAULT_DIMENSION = 768
_DEFAULT_MAX_INPUT_CHARS = 10_000
_DEFAULT_TIMEOUT = 30.0


class GeminiEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by Gemini ``text-embedding-004`` (768 dims).

    The API key is injected at construction and sent as the
    ``x-goog-api-key`` header; the provider never reads the environment.
    """

    def __init__(
        self,
        api_key: str,
        rate_limiter: TokenBucketRateLimiter,
        model: str = _DEFAULT_MODEL,
        base_url: str = _DEFAULT_BASE_URL,
        dimension: int = _DEFAULT_DIMENSION,
        max_input_chars: int = _DEFAULT_MAX_INPUT_CHARS,
        timeout: float = _DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._rate_limiter = rate_limiter
        self._model = model
        self._endpoint = f"{base_url.rstrip('/')}/models/{model}:embedContent"
        self._dimension = dimension
        self._max_input_chars = max_input_chars
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed_single(self, text: str) -> EmbeddingResult:
        """Embed one text with a single paced request."""
        if not text or not text.strip():
            raise EmbeddingError(
                message="Cannot embed empty text",
                provider_name=self.get_provider_name(),
            )
        if len(text) > self._max_input_chars:
            raise EmbeddingError(
                message=(
                    f"Text too long for embedding: {len(text)} chars "
                    f"(max {self._max_input_chars})"
                ),
                provider_name=self.get_provider_name(),
            )

        await self._rate_limiter.acquire()

        payload = {
            "model": f"models/{self._model}",
            "content": {"parts": [{"text": text}]},
        }
        try:
            response = await self._client.post(
                self._endpoint,
                json=payload,
                headers={"x-goog-api-key": self._api_key},
            )
        except httpx.HTTPError as exc:
            raise EmbeddingError(
                message=f"Gemini embedding request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not response.is_success:
            detail = _error_message(response)
            logger.warning(
                "gemini_embedding_http_error",
                status_code=response.status_code,
                detail=detail,
            )
            raise EmbeddingError(
                message=f"Gemini embedding HTTP {response.status_code}: {detail}",
                status_code=response.status_code,
                provider_name=self.get_provider_name(),
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise EmbeddingError(
                message="Gemini embedding response is not valid JSON",
                status_code=response.status_code,
                provider_name=self.get_provider_name(),
            ) from exc

        embedding = data.get("embedding") if isinstance(data, dict) else None
        values = embedding.get("values") if isinstance(embedding, dict) else None
        if not values:
            raise EmbeddingError(
                message="Gemini embedding response has no embedding values",
                status_code=response.status_code,
                provider_name=self.get_provider_name(),
            )
        if len(values) != self._dimension:
            raise EmbeddingError(
                message=(
                    f"Embedding dimension mismatch: expected {self._dimension}, "
                    f"got {len(values)}"
                ),
                status_code=response.status_code,
                provider_name=self.get_provider_name(),
            )

        token_count = embedding.get("tokenCount")
        logger.debug(
            "gemini_embedding_generated",
            model=self._model,
            text_length=len(text),
            tokens=token_count,
        )
        return EmbeddingResult(
            values=[float(v) for v in values],
            token_count=token_count,
        )

    async def embed(self, texts: list[str]) -> list[EmbeddingResult]:
        """Embed *texts* strictly sequentially; the first failure propagates."""
        results: list[EmbeddingResult] = []
        for text in texts:
            results.append(await self.embed_single(text))
        return results

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "gemini_embedding"

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)

    async def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()


def _error_message(response: httpx.Response) -> str:
    """Pull the provider's error message out of a non-2xx response."""
    try:
        data: Any = response.json()
    except ValueError:
        return response.text[:300]
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return response.text[:300]
