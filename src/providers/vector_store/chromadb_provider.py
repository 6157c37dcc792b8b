"""ChromaDB vector store provider adapter.

Wraps ``chromadb.PersistentClient`` to implement :class:`IVectorStoreProvider`.
Uses cosine distance for similarity search.  Each row is one document chunk
with primary key ``"{radicado}:{chunk_index}"``, so the pair
``(radicado, chunk_index)`` is unique by construction.
"""

from __future__ import annotations

import os
from typing import Any

# Disable ChromaDB telemetry completely before importing chromadb.
# A version mismatch between ChromaDB's bundled PostHog client and the
# installed one causes "capture() takes 1 positional argument but 3 were
# given" errors, so telemetry is turned off at every layer:
#   1. ANONYMIZED_TELEMETRY env var
#   2. posthog.disabled = True
#   3. Settings(anonymized_telemetry=False) passed to PersistentClient
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import posthog

posthog.disabled = True

import chromadb
import structlog

from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.rag import (
    ChunkMetadata,
    DocumentChunk,
    SimilarityMatch,
    StoredChunk,
)
from src.utils.errors import DuplicateChunkError, VectorStoreError

logger = structlog.get_logger(logger_name=__name__)


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that prevents ChromaDB from loading a model.

    Embeddings are always computed by the Gemini provider and passed in
    explicitly, so ChromaDB's built-in embedding is never invoked.  Without
    this, ChromaDB downloads its default ONNX model on collection creation.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "Embeddings are pre-computed; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by ChromaDB with local persistence.

    Parameters
    ----------
    embedding_dimension:
        Expected vector length.  Inserts and queries with any other length
        are rejected, and an existing collection built with a different
        dimension fails at startup.
    persist_directory:
        On-disk location of the ChromaDB database.
    collection_name:
        Collection holding the chunk rows.
    """

    def __init__(
        self,
        embedding_dimension: int = 768,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "pdf_embeddings",
    ) -> None:
        self._dimension = embedding_dimension
        self._persist_directory = persist_directory
        self._collection_name = collection_name
        self._client = chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        # Newer ChromaDB versions refuse an embedding function that differs
        # from the one persisted with the collection; fall back to whatever
        # was persisted since all embeddings are supplied explicitly.
        try:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )

        self._validate_embedding_dimensions()

    # ------------------------------------------------------------------
    # Startup validation
    # ------------------------------------------------------------------

    def _validate_embedding_dimensions(self) -> None:
        """Verify stored vectors match the configured dimension.

        Peeks at a single stored vector.  A mismatch means every query
        would produce meaningless similarities, so startup fails.
        """
        if self._collection.count() == 0:
            return

        sample = self._collection.peek(limit=1)
        embeddings = sample.get("embeddings") if sample else None
        if embeddings is None or len(embeddings) == 0:
            return

        stored_dim = len(embeddings[0])
        if stored_dim != self._dimension:
            logger.error(
                "embedding_dimension_mismatch",
                stored_dim=stored_dim,
                expected_dim=self._dimension,
                collection=self._collection_name,
            )
            raise VectorStoreError(
                message=(
                    f"Embedding dimension mismatch: collection "
                    f"'{self._collection_name}' has {stored_dim}-dim vectors "
                    f"but {self._dimension} are configured"
                ),
                provider_name=self.get_provider_name(),
            )

        logger.info(
            "embedding_dimension_validated",
            dimension=stored_dim,
            collection=self._collection_name,
        )

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def exists(self, radicado: str) -> bool:
        try:
            result = self._collection.get(
                where={"radicado": radicado}, limit=1, include=["metadatas"]
            )
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB exists check failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return bool(result["ids"])

    async def insert(self, chunk: DocumentChunk, embedding: list[float]) -> None:
        """Insert a single chunk row.  Never overwrites an existing row."""
        if len(embedding) != self._dimension:
            raise VectorStoreError(
                message=(
                    f"Embedding for {chunk.chunk_id} has {len(embedding)} dims, "
                    f"expected {self._dimension}"
                ),
                provider_name=self.get_provider_name(),
            )

        chunk_id = chunk.chunk_id
        try:
            existing = self._collection.get(ids=[chunk_id], include=["metadatas"])
            if existing["ids"]:
                raise DuplicateChunkError(
                    message=f"Chunk {chunk_id} is already stored",
                    provider_name=self.get_provider_name(),
                )
            self._collection.add(
                ids=[chunk_id],
                embeddings=[embedding],
                documents=[chunk.content],
                metadatas=[self._chunk_to_metadata(chunk)],
            )
        except VectorStoreError:
            raise
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB insert of {chunk_id} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug(
            "chromadb_chunk_inserted",
            radicado=chunk.radicado,
            chunk_index=chunk.chunk_index,
            char_count=chunk.metadata.char_count,
        )

    async def read_ordered(self, radicado: str) -> list[StoredChunk]:
        """Return all chunks for *radicado* sorted by ``chunk_index``.

        ChromaDB returns rows in storage order, which is not the document
        order, so the sort is always applied here.
        """
        try:
            result = self._collection.get(
                where={"radicado": radicado},
                include=["documents", "metadatas", "embeddings"],
            )
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB read of {radicado} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        ids = result["ids"] or []
        documents = result["documents"] or [""] * len(ids)
        metadatas = result["metadatas"] or [{}] * len(ids)
        embeddings = result.get("embeddings")
        if embeddings is None:
            embeddings = [[] for _ in ids]

        stored = [
            StoredChunk(
                chunk=self._metadata_to_chunk(meta, doc),
                embedding=[float(v) for v in vector],
            )
            for doc, meta, vector in zip(documents, metadatas, embeddings, strict=True)
        ]
        stored.sort(key=lambda s: s.chunk.chunk_index)
        return stored

    async def nearest_neighbors(
        self,
        query_embedding: list[float],
        threshold: float,
        limit: int,
    ) -> list[SimilarityMatch]:
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        if len(query_embedding) != self._dimension:
            raise VectorStoreError(
                message=(
                    f"Query embedding has {len(query_embedding)} dims, "
                    f"expected {self._dimension}"
                ),
                provider_name=self.get_provider_name(),
            )

        try:
            total = self._collection.count()
            if total == 0:
                return []

            results = self._collection.query(
                query_embeddings=[query_embedding],
                n_results=min(limit, total),
                include=["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not results["documents"] or not results["documents"][0]:
            return []

        documents = results["documents"][0]
        metadatas = results["metadatas"][0] if results["metadatas"] else [{}] * len(documents)
        distances = results["distances"][0] if results["distances"] else [1.0] * len(documents)

        matches: list[SimilarityMatch] = []
        for doc_text, meta, distance in zip(documents, metadatas, distances, strict=True):
            # Cosine space: distance = 1 - cosine similarity.
            similarity = 1.0 - float(distance)
            if similarity < threshold:
                continue
            chunk = self._metadata_to_chunk(meta, doc_text)
            matches.append(
                SimilarityMatch(
                    radicado=chunk.radicado,
                    chunk_index=chunk.chunk_index,
                    content=chunk.content,
                    similarity=max(0.0, min(1.0, similarity)),
                    metadata=chunk.metadata,
                )
            )

        matches.sort(key=lambda m: m.similarity, reverse=True)
        matches = matches[:limit]
        logger.info(
            "chromadb_query",
            threshold=threshold,
            limit=limit,
            raw_results=len(documents),
            results_count=len(matches),
            top_score=matches[0].similarity if matches else 0.0,
        )
        return matches

    async def delete(self, radicado: str) -> int:
        """Delete all chunks for *radicado*."""
        try:
            existing = self._collection.get(where={"radicado": radicado}, include=["metadatas"])
            ids = existing["ids"] or []
            if ids:
                self._collection.delete(ids=ids)
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB delete of {radicado} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_delete_document", radicado=radicado, deleted_count=len(ids))
        return len(ids)

    async def count(self) -> int:
        try:
            return self._collection.count()
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB count failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the ChromaDB collection is accessible."""
        try:
            self._collection.count()
            return True
        except Exception as exc:
            logger.warning("chromadb_unavailable", error=str(exc))
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _chunk_to_metadata(chunk: DocumentChunk) -> dict[str, str | int]:
        """Flatten a chunk's identity and metadata into ChromaDB scalars.

        ChromaDB metadata values must be str, int, float, or bool, and may
        not be ``None``.
        """
        meta: dict[str, str | int] = {
            "radicado": chunk.radicado,
            "chunk_index": chunk.chunk_index,
            "total_chunks": chunk.metadata.total_chunks,
            "char_count": chunk.metadata.char_count,
        }
        if chunk.pdf_url is not None:
            meta["pdf_url"] = chunk.pdf_url
        return meta

    @staticmethod
    def _metadata_to_chunk(meta: dict[str, Any], text: str) -> DocumentChunk:
        """Reverse :meth:`_chunk_to_metadata`."""
        return DocumentChunk(
            radicado=str(meta["radicado"]),
            chunk_index=int(meta["chunk_index"]),
            content=text or "",
            metadata=ChunkMetadata(
                total_chunks=int(meta.get("total_chunks", 1)),
                char_count=int(meta.get("char_count", len(text or ""))),
            ),
            pdf_url=meta.get("pdf_url"),
        )

