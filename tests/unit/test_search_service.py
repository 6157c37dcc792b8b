"""Unit tests for SearchService and RetrievalAssembler."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from src.models.rag import ChunkMetadata, SimilarityMatch, StoredChunk
from src.services.retrieval_assembler import RetrievalAssembler
from src.services.search_service import SearchService
from src.utils.errors import EmbeddingError


class TestSearchService:
    @pytest.mark.asyncio
    async def test_embeds_query_and_forwards_parameters(
        self,
        mock_embedding_provider: MagicMock,
        mock_vector_store: MagicMock,
        vector_factory,
    ) -> None:
        match = SimilarityMatch(
            radicado="R-1",
            chunk_index=0,
            content="dolor toracico",
            similarity=0.82,
            metadata=ChunkMetadata(total_chunks=1, char_count=14),
        )
        mock_vector_store.nearest_neighbors.return_value = [match]
        service = SearchService(mock_embedding_provider, mock_vector_store)

        results = await service.search("dolor en el pecho", limit=5, threshold=0.6)

        assert results == [match]
        mock_embedding_provider.embed_single.assert_awaited_once_with("dolor en el pecho")
        mock_vector_store.nearest_neighbors.assert_awaited_once_with(
            vector_factory("dolor en el pecho"), threshold=0.6, limit=5
        )

    @pytest.mark.asyncio
    async def test_defaults(
        self, mock_embedding_provider: MagicMock, mock_vector_store: MagicMock
    ) -> None:
        await SearchService(mock_embedding_provider, mock_vector_store).search("cefalea")

        kwargs = mock_vector_store.nearest_neighbors.await_args.kwargs
        assert kwargs == {"threshold": 0.5, "limit": 10}

    @pytest.mark.asyncio
    async def test_configured_defaults_fill_unset_arguments(
        self, mock_embedding_provider: MagicMock, mock_vector_store: MagicMock
    ) -> None:
        service = SearchService(
            mock_embedding_provider,
            mock_vector_store,
            default_limit=3,
            default_threshold=0.8,
        )

        await service.search("cefalea")
        await service.search("cefalea", limit=7)

        first, second = mock_vector_store.nearest_neighbors.await_args_list
        assert first.kwargs == {"threshold": 0.8, "limit": 3}
        assert second.kwargs == {"threshold": 0.8, "limit": 7}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("query", "limit", "threshold"),
        [("", 10, 0.5), ("   ", 10, 0.5), ("ok", 0, 0.5), ("ok", 10, 1.5), ("ok", 10, -0.1)],
    )
    async def test_invalid_arguments_rejected(
        self,
        mock_embedding_provider: MagicMock,
        mock_vector_store: MagicMock,
        query: str,
        limit: int,
        threshold: float,
    ) -> None:
        service = SearchService(mock_embedding_provider, mock_vector_store)

        with pytest.raises(ValueError):
            await service.search(query, limit=limit, threshold=threshold)

        mock_embedding_provider.embed_single.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_embedding_error_propagates(
        self, mock_embedding_provider: MagicMock, mock_vector_store: MagicMock
    ) -> None:
        mock_embedding_provider.embed_single.side_effect = EmbeddingError(status_code=503)

        with pytest.raises(EmbeddingError):
            await SearchService(mock_embedding_provider, mock_vector_store).search("cefalea")

        mock_vector_store.nearest_neighbors.assert_not_awaited()


class TestRetrievalAssembler:
    @pytest.mark.asyncio
    async def test_joins_chunks_with_blank_line(
        self, mock_vector_store: MagicMock, chunk_factory
    ) -> None:
        mock_vector_store.read_ordered.return_value = [
            StoredChunk(chunk=chunk_factory(chunk_index=i, content=text, total_chunks=3))
            for i, text in enumerate(["uno", "dos", "tres"])
        ]

        text = await RetrievalAssembler(mock_vector_store).assemble("R-1001")

        assert text == "uno\n\ndos\n\ntres"
        mock_vector_store.read_ordered.assert_awaited_once_with("R-1001")

    @pytest.mark.asyncio
    async def test_unknown_radicado_gives_empty_string(self, mock_vector_store: MagicMock) -> None:
        assert await RetrievalAssembler(mock_vector_store).assemble("R-404") == ""
