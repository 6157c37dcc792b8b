"""Abstract base class for vector-store service providers.

Defines the contract for storing, reading back, and querying embedded
document chunks keyed by ``(radicado, chunk_index)``.  The adapter pattern
keeps the ingestion and retrieval services independent of the chosen
backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.rag import DocumentChunk, SimilarityMatch, StoredChunk


# Concrete implementation: ChromaDBProvider (src/providers/vector_store/)
# Data persists to CHROMADB_PERSIST_DIR.
class IVectorStoreProvider(ABC):
    """Contract for the persistent chunk index.

    All methods are async to support network-backed stores without
    blocking the event loop.
    """

    @abstractmethod
    async def exists(self, radicado: str) -> bool:
        """Return ``True`` if at least one chunk is stored for *radicado*."""

    @abstractmethod
    async def insert(self, chunk: DocumentChunk, embedding: list[float]) -> None:
        """Store one chunk row.

        Each insert is independent: a failure does not roll back chunks
        inserted earlier for the same radicado.

        Raises
        ------
        src.utils.errors.DuplicateChunkError
            If ``(chunk.radicado, chunk.chunk_index)`` is already stored.
        src.utils.errors.VectorStoreError
            If the embedding has the wrong dimension or the store fails.
        """

    @abstractmethod
    async def read_ordered(self, radicado: str) -> list[StoredChunk]:
        """Return every chunk for *radicado*, sorted by ``chunk_index`` ascending.

        Read order is independent of insertion or storage order.
        """

    @abstractmethod
    async def nearest_neighbors(
        self,
        query_embedding: list[float],
        threshold: float,
        limit: int,
    ) -> list[SimilarityMatch]:
        """Return chunks with cosine similarity ``>= threshold``.

        Results are sorted by similarity descending and truncated to
        *limit*.

        Raises
        ------
        ValueError
            If *limit* is less than 1.
        """

    @abstractmethod
    async def delete(self, radicado: str) -> int:
        """Remove all chunks for *radicado*.  Returns the number removed."""

    @abstractmethod
    async def count(self) -> int:
        """Return the total number of stored chunks."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"chromadb"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store is accessible."""
