"""Unit tests for the RAG data models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.models.rag import (
    AnswerMethod,
    ChunkMetadata,
    DocumentChunk,
    EmbeddingResult,
    GenerationResult,
    IngestionResult,
    SimilarityMatch,
    make_chunk_id,
)


class TestDocumentChunk:
    def test_chunk_id_combines_radicado_and_index(self, chunk_factory) -> None:
        chunk = chunk_factory(radicado="R-77", chunk_index=4)
        assert chunk.chunk_id == "R-77:4" == make_chunk_id("R-77", 4)

    def test_frozen(self, chunk_factory) -> None:
        chunk = chunk_factory()
        with pytest.raises(ValidationError):
            chunk.content = "otro"  # type: ignore[misc]

    def test_negative_index_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DocumentChunk(
                radicado="R-1",
                chunk_index=-1,
                content="x",
                metadata=ChunkMetadata(total_chunks=1, char_count=1),
            )

    def test_empty_radicado_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DocumentChunk(
                radicado="",
                chunk_index=0,
                content="x",
                metadata=ChunkMetadata(total_chunks=1, char_count=1),
            )


class TestIngestionResult:
    def test_complete_when_all_processed(self) -> None:
        result = IngestionResult(radicado="R-1", processed_count=3, total_count=3)
        assert result.is_complete is True
        assert result.model_dump()["is_complete"] is True

    def test_incomplete_when_chunks_skipped(self) -> None:
        result = IngestionResult(
            radicado="R-1", processed_count=2, total_count=3, skipped_chunk_indices=[1]
        )
        assert result.is_complete is False


class TestOtherModels:
    def test_embedding_dimension(self) -> None:
        assert EmbeddingResult(values=[0.1, 0.2, 0.3]).dimension == 3

    def test_similarity_bounded(self) -> None:
        with pytest.raises(ValidationError):
            SimilarityMatch(
                radicado="R-1",
                chunk_index=0,
                content="x",
                similarity=1.2,
                metadata=ChunkMetadata(total_chunks=1, char_count=1),
            )

    def test_generation_result_serializes_method_value(self) -> None:
        result = GenerationResult(success=True, text="ok", method=AnswerMethod.ON_THE_FLY)
        assert result.model_dump(mode="json")["method"] == "on-the-fly"
