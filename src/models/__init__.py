"""Domain models -- re-exports all public model classes.

Other parts of the codebase can import directly from ``src.models``
(e.g. ``from src.models import DocumentChunk``) instead of the submodule.

    - rag.py -- chunks, embeddings, similarity matches, ingestion and
      generation results
"""

from __future__ import annotations

from src.models.rag import (
    AnswerMethod,
    ChunkMetadata,
    DocumentChunk,
    EmbeddingResult,
    GenerationResult,
    IngestionResult,
    SimilarityMatch,
    StoredChunk,
    make_chunk_id,
)

__all__ = [
    "AnswerMethod",
    "ChunkMetadata",
    "DocumentChunk",
    "EmbeddingResult",
    "GenerationResult",
    "IngestionResult",
    "SimilarityMatch",
    "StoredChunk",
    "make_chunk_id",
]
