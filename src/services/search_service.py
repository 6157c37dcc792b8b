"""Similarity search over all stored document chunks.

Embeds a free-text query with the same provider used at ingestion time and
returns the stored chunks whose cosine similarity reaches the threshold,
best first.  Embedding failures propagate unchanged; unlike ingestion there
is nothing to skip here.
"""

from __future__ import annotations

import structlog

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.rag import SimilarityMatch
from src.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

_DEFAULT_LIMIT = 10
_DEFAULT_THRESHOLD = 0.5


class SearchService:
    """Query-time semantic search across every radicado.

    *default_limit* and *default_threshold* apply when a call leaves
    ``limit`` or ``threshold`` unset.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        default_limit: int = _DEFAULT_LIMIT,
        default_threshold: float = _DEFAULT_THRESHOLD,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._default_limit = default_limit
        self._default_threshold = default_threshold

    async def search(
        self,
        query_text: str,
        limit: int | None = None,
        threshold: float | None = None,
    ) -> list[SimilarityMatch]:
        """Return chunks similar to *query_text*.

        Parameters
        ----------
        query_text:
            Free-text query; must not be blank.
        limit:
            Maximum number of matches (at least 1); ``None`` uses the
            service default.
        threshold:
            Minimum cosine similarity, 0..1; ``None`` uses the service default.

        Raises
        ------
        ValueError
            Blank query, ``limit < 1``, or threshold outside 0..1.
        src.utils.errors.EmbeddingError
            The query could not be embedded.
        """
        if not query_text or not query_text.strip():
            raise ValueError("query_text must not be blank")
        if limit is None:
            limit = self._default_limit
        if threshold is None:
            threshold = self._default_threshold
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be between 0 and 1, got {threshold}")

        embedding = await self._embedding_provider.embed_single(query_text)
        matches = await self._vector_store.nearest_neighbors(
            embedding.values,
            threshold=threshold,
            limit=limit,
        )
        logger.info(
            "similarity_search",
            query_length=len(query_text),
            limit=limit,
            threshold=threshold,
            results=len(matches),
        )
        return matches
