"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **claim -> extract -> chunk -> embed -> store**.

The :class:`IngestionService` coordinates its collaborators (text
extractor, chunker, embedding provider, vector store, ingestion claim)
without any of them knowing about each other.  All dependencies are
injected via the constructor so providers can be swapped, and mocked in
tests, without changing this class.

Ingestion is idempotent per radicado: a document that already has chunks
is not re-ingested unless ``replace=True``.  While a claim is held, chunks
already stored for that radicado are an unfinished document, so every
other caller gets :class:`IngestionInProgressError` instead of
``already_indexed``.  Per-chunk embedding or storage failures are absorbed
(logged and recorded in ``skipped_chunk_indices``) unless the caller asks
for a complete document; everything else propagates.
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING

import structlog

from src.models.rag import ChunkMetadata, DocumentChunk, IngestionResult
from src.services.ingestion.chunker import TextChunker
from src.utils.errors import (
    EmbeddingError,
    IngestionIncompleteError,
    IngestionInProgressError,
    InsufficientTextError,
    VectorStoreError,
)

if TYPE_CHECKING:
    from src.interfaces.embedding_provider import IEmbeddingProvider
    from src.interfaces.ingestion_lock_provider import IIngestionLockProvider
    from src.interfaces.vector_store_provider import IVectorStoreProvider
    from src.services.ingestion.pdf_text_extractor import PDFTextExtractor

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MIN_EXTRACTED_CHARS = 50


class IngestionService:
    """Turns one radicado's PDF into stored, embedded chunks.

    Parameters
    ----------
    extractor:
        Downloads the PDF and returns its text layer.
    chunker:
        Splits the text into paragraph-aligned chunks.
    embedding_provider:
        Generates one embedding per chunk, paced by its rate limiter.
    vector_store:
        Persists each chunk row.
    lock_provider:
        Per-radicado claim so concurrent callers never insert overlapping
        chunk ranges.
    min_extracted_chars:
        Extracted text shorter than this (after stripping) is rejected.
    """

    def __init__(
        self,
        extractor: PDFTextExtractor,
        chunker: TextChunker,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        lock_provider: IIngestionLockProvider,
        min_extracted_chars: int = _DEFAULT_MIN_EXTRACTED_CHARS,
    ) -> None:
        self._extractor = extractor
        self._chunker = chunker
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._lock_provider = lock_provider
        self._min_extracted_chars = min_extracted_chars

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(
        self,
        radicado: str,
        pdf_url: str,
        *,
        replace: bool = False,
        require_complete: bool = False,
    ) -> IngestionResult:
        """Ingest the PDF at *pdf_url* under *radicado*.

        1. A claim held by another caller → :class:`IngestionInProgressError`.
           Existing chunks and ``replace=False`` → return ``already_indexed``.
        2. Claim the radicado; re-check existence under the claim, and
           delete existing chunks first when *replace* is set.
        3. Extract, chunk, then embed and store each chunk in order.
        4. With *require_complete*, a run that skipped chunks deletes what
           it stored, still under the claim, so no partial document is left
           behind to be served later.

        Raises
        ------
        IngestionInProgressError
            Another caller holds the claim for *radicado*.
        InsufficientTextError
            Extracted text is shorter than ``min_extracted_chars``; no
            chunks are created.
        IngestionIncompleteError
            *require_complete* is set and at least one chunk was skipped.
        ExtractionError, DocumentFetchError, DocumentParseError
            Propagated from the extractor.
        """
        start = time.monotonic()

        if await self._lock_provider.is_claimed(radicado):
            logger.warning("ingestion_in_progress", radicado=radicado)
            raise IngestionInProgressError(
                message=f"Ingestion of {radicado} is already in progress",
            )

        if not replace and await self._vector_store.exists(radicado):
            logger.info("ingestion_skipped_already_indexed", radicado=radicado)
            return IngestionResult(radicado=radicado, already_indexed=True)

        owner = uuid.uuid4().hex
        if not await self._lock_provider.acquire(radicado, owner):
            logger.warning("ingestion_in_progress", radicado=radicado)
            raise IngestionInProgressError(
                message=f"Ingestion of {radicado} is already in progress",
            )

        try:
            if replace:
                deleted = await self._vector_store.delete(radicado)
                logger.info("ingestion_replace_deleted", radicado=radicado, deleted=deleted)
            elif await self._vector_store.exists(radicado):
                # Another caller finished between the first check and the claim.
                logger.info("ingestion_skipped_already_indexed", radicado=radicado)
                return IngestionResult(
                    radicado=radicado,
                    already_indexed=True,
                    elapsed_ms=_elapsed_ms(start),
                )

            result = await self._extract_embed_store(radicado, pdf_url, start)
            if require_complete and not result.is_complete:
                await self._discard_incomplete(result)
            return result
        finally:
            await self._lock_provider.release(radicado, owner)

    async def is_in_progress(self, radicado: str) -> bool:
        """Whether some caller currently holds the ingestion claim for *radicado*."""
        return await self._lock_provider.is_claimed(radicado)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _extract_embed_store(
        self,
        radicado: str,
        pdf_url: str,
        start: float,
    ) -> IngestionResult:
        text = await self._extractor.extract(pdf_url)

        char_count = len(text.strip())
        if char_count < self._min_extracted_chars:
            logger.warning(
                "ingestion_insufficient_text",
                radicado=radicado,
                char_count=char_count,
                minimum=self._min_extracted_chars,
            )
            raise InsufficientTextError(
                message=(
                    f"No extractable text: {char_count} chars "
                    f"(minimum {self._min_extracted_chars})"
                ),
                char_count=char_count,
                minimum=self._min_extracted_chars,
            )

        contents = self._chunker.chunk(text)
        total = len(contents)
        logger.info("ingestion_chunked", radicado=radicado, total_chunks=total)

        processed = 0
        skipped: list[int] = []
        for index, content in enumerate(contents):
            chunk = DocumentChunk(
                radicado=radicado,
                chunk_index=index,
                content=content,
                metadata=ChunkMetadata(total_chunks=total, char_count=len(content)),
                pdf_url=pdf_url,
            )
            try:
                embedding = await self._embedding_provider.embed_single(content)
                await self._vector_store.insert(chunk, embedding.values)
            except (EmbeddingError, VectorStoreError) as exc:
                logger.warning(
                    "ingestion_chunk_skipped",
                    radicado=radicado,
                    chunk_index=index,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
                skipped.append(index)
                continue
            processed += 1

        result = IngestionResult(
            radicado=radicado,
            processed_count=processed,
            total_count=total,
            skipped_chunk_indices=skipped,
            elapsed_ms=_elapsed_ms(start),
        )
        if result.is_complete:
            logger.info(
                "ingestion_complete",
                radicado=radicado,
                processed=processed,
                total=total,
                elapsed_ms=result.elapsed_ms,
            )
        else:
            logger.warning(
                "ingestion_incomplete",
                radicado=radicado,
                processed=processed,
                total=total,
                skipped=skipped,
            )
        return result

    async def _discard_incomplete(self, result: IngestionResult) -> None:
        deleted = await self._vector_store.delete(result.radicado)
        logger.warning(
            "ingestion_incomplete_discarded",
            radicado=result.radicado,
            deleted=deleted,
            skipped=result.skipped_chunk_indices,
        )
        raise IngestionIncompleteError(
            message=(
                f"Stored {result.processed_count} of {result.total_count} chunks "
                f"for {result.radicado}; partial document discarded"
            ),
            processed_count=result.processed_count,
            total_count=result.total_count,
        )


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
