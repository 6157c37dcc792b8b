"""Unit tests for IngestionService -- claim, extract, chunk, embed, store."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.models.rag import DocumentChunk, EmbeddingResult
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.ingestion_service import IngestionService
from src.services.ingestion.pdf_text_extractor import PDFTextExtractor
from src.utils.errors import (
    DuplicateChunkError,
    EmbeddingError,
    ExtractionError,
    IngestionIncompleteError,
    IngestionInProgressError,
    InsufficientTextError,
)

_URL = "https://docs.test/R-1001.pdf"


@pytest.fixture()
def document_text(clinical_pages: list[str]) -> str:
    return "\n\n".join(clinical_pages)


@pytest.fixture()
def mock_extractor(document_text: str) -> MagicMock:
    extractor = MagicMock(spec=PDFTextExtractor)
    extractor.extract = AsyncMock(return_value=document_text)
    return extractor


@pytest.fixture()
def service(
    mock_extractor: MagicMock,
    mock_embedding_provider: MagicMock,
    mock_vector_store: MagicMock,
    mock_lock_provider: MagicMock,
) -> IngestionService:
    # 80 chars keeps every clinical paragraph in its own chunk.
    return IngestionService(
        extractor=mock_extractor,
        chunker=TextChunker(max_chars=80),
        embedding_provider=mock_embedding_provider,
        vector_store=mock_vector_store,
        lock_provider=mock_lock_provider,
    )


def _inserted_chunks(mock_vector_store: MagicMock) -> list[DocumentChunk]:
    return [call.args[0] for call in mock_vector_store.insert.await_args_list]


class TestIdempotence:
    @pytest.mark.asyncio
    async def test_already_indexed_skips_everything(
        self,
        service: IngestionService,
        mock_vector_store: MagicMock,
        mock_extractor: MagicMock,
        mock_lock_provider: MagicMock,
    ) -> None:
        mock_vector_store.exists.return_value = True

        result = await service.ingest("R-1001", _URL)

        assert result.already_indexed is True
        assert result.processed_count == 0
        mock_lock_provider.acquire.assert_not_awaited()
        mock_extractor.extract.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_indexed_while_waiting_for_claim(
        self,
        service: IngestionService,
        mock_vector_store: MagicMock,
        mock_extractor: MagicMock,
        mock_lock_provider: MagicMock,
    ) -> None:
        mock_vector_store.exists.side_effect = [False, True]

        result = await service.ingest("R-1001", _URL)

        assert result.already_indexed is True
        mock_extractor.extract.assert_not_awaited()
        mock_lock_provider.release.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_partial_chunks_under_active_claim_are_not_indexed(
        self,
        service: IngestionService,
        mock_vector_store: MagicMock,
        mock_extractor: MagicMock,
        mock_lock_provider: MagicMock,
    ) -> None:
        mock_lock_provider.is_claimed.return_value = True
        mock_vector_store.exists.return_value = True

        with pytest.raises(IngestionInProgressError):
            await service.ingest("R-1001", _URL)

        mock_lock_provider.acquire.assert_not_awaited()
        mock_extractor.extract.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_is_in_progress_reads_the_claim(
        self, service: IngestionService, mock_lock_provider: MagicMock
    ) -> None:
        mock_lock_provider.is_claimed.return_value = True

        assert await service.is_in_progress("R-1001") is True
        mock_lock_provider.is_claimed.assert_awaited_once_with("R-1001")


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_chunks_stored_in_order_with_metadata(
        self,
        service: IngestionService,
        mock_vector_store: MagicMock,
        mock_embedding_provider: MagicMock,
        clinical_pages: list[str],
    ) -> None:
        result = await service.ingest("R-1001", _URL)

        assert result.processed_count == 3
        assert result.total_count == 3
        assert result.is_complete is True
        assert result.skipped_chunk_indices == []

        chunks = _inserted_chunks(mock_vector_store)
        assert [c.chunk_index for c in chunks] == [0, 1, 2]
        assert [c.content for c in chunks] == clinical_pages
        assert all(c.metadata.total_chunks == 3 for c in chunks)
        assert chunks[1].metadata.char_count == len(clinical_pages[1])
        assert all(c.pdf_url == _URL for c in chunks)
        assert mock_embedding_provider.embed_single.await_count == 3

    @pytest.mark.asyncio
    async def test_embedding_vector_passed_to_store(
        self,
        service: IngestionService,
        mock_vector_store: MagicMock,
        vector_factory,
        clinical_pages: list[str],
    ) -> None:
        await service.ingest("R-1001", _URL)

        first_call = mock_vector_store.insert.await_args_list[0]
        assert first_call.args[1] == vector_factory(clinical_pages[0])

    @pytest.mark.asyncio
    async def test_claim_acquired_and_released_by_same_owner(
        self, service: IngestionService, mock_lock_provider: MagicMock
    ) -> None:
        await service.ingest("R-1001", _URL)

        acquire_args = mock_lock_provider.acquire.await_args.args
        release_args = mock_lock_provider.release.await_args.args
        assert acquire_args[0] == "R-1001"
        assert acquire_args == release_args


class TestDegradedIngestion:
    @pytest.mark.asyncio
    async def test_embedding_failure_skips_chunk_and_continues(
        self,
        service: IngestionService,
        mock_embedding_provider: MagicMock,
        mock_vector_store: MagicMock,
        vector_factory,
    ) -> None:
        async def _embed(text: str) -> EmbeddingResult:
            if text.startswith("Antecedentes"):
                raise EmbeddingError(message="HTTP 500", status_code=500)
            return EmbeddingResult(values=vector_factory(text))

        mock_embedding_provider.embed_single.side_effect = _embed

        result = await service.ingest("R-1001", _URL)

        assert result.processed_count == 2
        assert result.total_count == 3
        assert result.skipped_chunk_indices == [1]
        assert result.is_complete is False
        assert [c.chunk_index for c in _inserted_chunks(mock_vector_store)] == [0, 2]

    @pytest.mark.asyncio
    async def test_duplicate_chunk_is_skipped(
        self, service: IngestionService, mock_vector_store: MagicMock
    ) -> None:
        mock_vector_store.insert.side_effect = [None, DuplicateChunkError(), None]

        result = await service.ingest("R-1001", _URL)

        assert result.skipped_chunk_indices == [1]
        assert result.processed_count == 2

    @pytest.mark.asyncio
    async def test_require_complete_discards_partial_document(
        self,
        service: IngestionService,
        mock_embedding_provider: MagicMock,
        mock_vector_store: MagicMock,
        mock_lock_provider: MagicMock,
        vector_factory,
    ) -> None:
        async def _embed(text: str) -> EmbeddingResult:
            if text.startswith("Antecedentes"):
                raise EmbeddingError(message="HTTP 500", status_code=500)
            return EmbeddingResult(values=vector_factory(text))

        mock_embedding_provider.embed_single.side_effect = _embed
        order: list[str] = []
        mock_vector_store.delete.side_effect = lambda *a: order.append("delete") or 2
        mock_lock_provider.release.side_effect = lambda *a: order.append("release")

        with pytest.raises(IngestionIncompleteError) as exc_info:
            await service.ingest("R-1001", _URL, require_complete=True)

        assert exc_info.value.processed_count == 2
        assert exc_info.value.total_count == 3
        mock_vector_store.delete.assert_awaited_once_with("R-1001")
        assert order == ["delete", "release"]

    @pytest.mark.asyncio
    async def test_require_complete_keeps_complete_document(
        self, service: IngestionService, mock_vector_store: MagicMock
    ) -> None:
        result = await service.ingest("R-1001", _URL, require_complete=True)

        assert result.is_complete is True
        mock_vector_store.delete.assert_not_awaited()


class TestFailures:
    @pytest.mark.asyncio
    async def test_claim_held_elsewhere(
        self,
        service: IngestionService,
        mock_lock_provider: MagicMock,
        mock_extractor: MagicMock,
    ) -> None:
        mock_lock_provider.acquire.return_value = False

        with pytest.raises(IngestionInProgressError):
            await service.ingest("R-1001", _URL)

        mock_extractor.extract.assert_not_awaited()
        mock_lock_provider.release.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_short_text_rejected_without_chunks(
        self,
        service: IngestionService,
        mock_extractor: MagicMock,
        mock_vector_store: MagicMock,
        mock_lock_provider: MagicMock,
    ) -> None:
        mock_extractor.extract.return_value = "   Firma.   "

        with pytest.raises(InsufficientTextError) as exc_info:
            await service.ingest("R-1001", _URL)

        assert exc_info.value.char_count == len("Firma.")
        assert exc_info.value.minimum == 50
        mock_vector_store.insert.assert_not_awaited()
        mock_lock_provider.release.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_extraction_error_propagates_and_releases_claim(
        self,
        service: IngestionService,
        mock_extractor: MagicMock,
        mock_lock_provider: MagicMock,
    ) -> None:
        mock_extractor.extract.side_effect = ExtractionError()

        with pytest.raises(ExtractionError):
            await service.ingest("R-1001", _URL)

        mock_lock_provider.release.assert_awaited_once()


class TestReplace:
    @pytest.mark.asyncio
    async def test_replace_deletes_under_claim_then_reingests(
        self,
        service: IngestionService,
        mock_vector_store: MagicMock,
        mock_lock_provider: MagicMock,
    ) -> None:
        mock_vector_store.exists.return_value = True
        mock_vector_store.delete.return_value = 5
        order: list[str] = []
        mock_lock_provider.acquire.side_effect = lambda *a: order.append("acquire") or True
        mock_vector_store.delete.side_effect = lambda *a: order.append("delete") or 5

        result = await service.ingest("R-1001", _URL, replace=True)

        assert order == ["acquire", "delete"]
        assert result.already_indexed is False
        assert result.processed_count == 3
