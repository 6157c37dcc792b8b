"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.  The
production implementation wraps Gemini ``text-embedding-004`` over HTTP;
tests inject ``MagicMock(spec=IEmbeddingProvider)``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.rag import EmbeddingResult


# Concrete implementation: GeminiEmbeddingProvider (src/providers/embedding/)
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the RAG pipeline.

    Embeddings are consumed by
    :class:`~src.interfaces.vector_store_provider.IVectorStoreProvider` for
    indexing and by :class:`~src.services.search_service.SearchService` for
    query-time similarity search.
    """

    @abstractmethod
    async def embed_single(self, text: str) -> EmbeddingResult:
        """Generate an embedding for one text unit.

        Each call is a single network request, paced by the provider's
        rate limiter.

        Parameters
        ----------
        text:
            The text to embed.

        Returns
        -------
        EmbeddingResult
            The vector (length :meth:`get_dimension`) and an optional
            token count.

        Raises
        ------
        src.utils.errors.EmbeddingError
            On any non-success response, transport failure, or invalid
            input.  The caller decides whether to skip or abort.
        """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[EmbeddingResult]:
        """Embed several texts, strictly one request at a time, in order.

        Raises
        ------
        src.utils.errors.EmbeddingError
            On the first failing text.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors (768 for Gemini)."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"gemini_embedding"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""
