"""Central orchestrator for contrarreferencia generation.

Turns ``(radicado, pdf_url, specialty)`` into a generated contrarreferencia,
preferring the already-indexed document text (cache) and ingesting the PDF
on the fly on a miss.

ARCHITECTURE NOTE:
    The orchestrator is a small explicit state machine:

        PROBE_CACHE ──hit──────────────────────────► GENERATE ─► DONE
             │                                          ▲
             └─miss─► INGEST ─► ASSEMBLE ──enough text──┘
                        │          │
                        └──────────┴──────── error ─────► FAIL

    ``force=True`` skips PROBE_CACHE and re-ingests with ``replace=True``
    so stale chunks are never used.

    PROBE_CACHE only trusts stored chunks when no ingestion claim is held
    for the radicado, before and after reading them; otherwise the chunks
    may be the first part of a document still being written.

    Every failure ends in FAIL and is returned as a structured
    :class:`GenerationResult` with ``success=False``; nothing is retried.
    A rate-limited generation carries ``retry_after_seconds`` so the caller
    can decide when to try again.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from src.models.rag import AnswerMethod, GenerationResult, IngestionResult
from src.utils.errors import (
    ContrarreferenciaError,
    GenerationProviderError,
    IngestionIncompleteError,
    IngestionInProgressError,
    InsufficientTextError,
)
from src.utils.logging import get_logger

if TYPE_CHECKING:
    from src.interfaces.generation_provider import IGenerationProvider
    from src.services.ingestion.ingestion_service import IngestionService
    from src.services.retrieval_assembler import RetrievalAssembler

DEFAULT_SPECIALTY = "No especificada"
_DEFAULT_MIN_CONTEXT_CHARS = 100


class OrchestratorState(str, Enum):
    """States of one generation request."""

    PROBE_CACHE = "probe_cache"
    INGEST = "ingest"
    ASSEMBLE = "assemble"
    GENERATE = "generate"
    DONE = "done"
    FAIL = "fail"


class AnswerOrchestrator:
    """Coordinates assembly, lazy ingestion, and generation.

    All services are injected at construction time, so tests can pass
    mocks for any of them.

    Parameters
    ----------
    assembler:
        Rebuilds document text from stored chunks.
    ingestion_service:
        Ingests the PDF on a cache miss or a forced regeneration.
    generation_provider:
        External endpoint that writes the contrarreferencia.
    min_context_chars:
        Assembled text shorter than this counts as a miss before ingestion
        and as "no extractable text" after it.
    accept_degraded_ingestion:
        When ``False``, an ingestion that skipped chunks fails the request
        with :class:`IngestionIncompleteError` and its partial chunks are
        discarded, so a later request cannot serve them from the cache.
    """

    def __init__(
        self,
        assembler: RetrievalAssembler,
        ingestion_service: IngestionService,
        generation_provider: IGenerationProvider,
        min_context_chars: int = _DEFAULT_MIN_CONTEXT_CHARS,
        accept_degraded_ingestion: bool = True,
    ) -> None:
        self._assembler = assembler
        self._ingestion_service = ingestion_service
        self._generation_provider = generation_provider
        self._min_context_chars = min_context_chars
        self._accept_degraded_ingestion = accept_degraded_ingestion
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def generate(
        self,
        radicado: str,
        pdf_url: str,
        specialty: str | None = None,
        *,
        force: bool = False,
    ) -> GenerationResult:
        """Generate the contrarreferencia for *radicado*.

        Never raises for pipeline failures; inspect ``success``,
        ``error_kind`` and ``retry_after_seconds`` on the result.
        """
        start = time.monotonic()
        log = self._logger.bind(radicado=radicado, force=force)
        method: AnswerMethod | None = None
        ingestion: IngestionResult | None = None

        try:
            text = ""
            if not force:
                self._transition(log, OrchestratorState.PROBE_CACHE)
                await self._ensure_not_ingesting(radicado)
                text = await self._assembler.assemble(radicado)
                if len(text) >= self._min_context_chars:
                    await self._ensure_not_ingesting(radicado)

            if len(text) >= self._min_context_chars:
                method = AnswerMethod.CACHE
                log.info("cache_hit", char_count=len(text))
            else:
                method = AnswerMethod.ON_THE_FLY
                self._transition(log, OrchestratorState.INGEST)
                ingestion = await self._ingestion_service.ingest(
                    radicado,
                    pdf_url,
                    replace=force,
                    require_complete=not self._accept_degraded_ingestion,
                )
                self._check_ingestion(ingestion)

                self._transition(log, OrchestratorState.ASSEMBLE)
                text = await self._assembler.assemble(radicado)
                if len(text) < self._min_context_chars:
                    raise InsufficientTextError(
                        message="No extractable text",
                        char_count=len(text),
                        minimum=self._min_context_chars,
                    )

            self._transition(log, OrchestratorState.GENERATE, method=method.value)
            generated = await self._generation_provider.generate(
                text, specialty or DEFAULT_SPECIALTY
            )
        except ContrarreferenciaError as exc:
            self._transition(
                log,
                OrchestratorState.FAIL,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return self._failure(exc, method, ingestion, start)

        elapsed_ms = _elapsed_ms(start)
        self._transition(log, OrchestratorState.DONE, elapsed_ms=elapsed_ms)
        return GenerationResult(
            success=True,
            text=generated,
            method=method,
            elapsed_ms=elapsed_ms,
            ingestion=ingestion,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _ensure_not_ingesting(self, radicado: str) -> None:
        if await self._ingestion_service.is_in_progress(radicado):
            raise IngestionInProgressError(
                message=f"Ingestion of {radicado} is in progress; its chunks are incomplete",
            )

    def _check_ingestion(self, ingestion: IngestionResult) -> None:
        if ingestion.is_complete or self._accept_degraded_ingestion:
            return
        raise IngestionIncompleteError(
            message=(
                f"Stored {ingestion.processed_count} of {ingestion.total_count} "
                f"chunks; skipped {ingestion.skipped_chunk_indices}"
            ),
            processed_count=ingestion.processed_count,
            total_count=ingestion.total_count,
        )

    @staticmethod
    def _transition(
        log: structlog.BoundLogger,
        state: OrchestratorState,
        **context: object,
    ) -> None:
        if state is OrchestratorState.FAIL:
            log.warning("orchestrator_transition", state=state.value, **context)
        else:
            log.info("orchestrator_transition", state=state.value, **context)

    @staticmethod
    def _failure(
        exc: ContrarreferenciaError,
        method: AnswerMethod | None,
        ingestion: IngestionResult | None,
        start: float,
    ) -> GenerationResult:
        retry_after = (
            exc.retry_after_seconds if isinstance(exc, GenerationProviderError) else None
        )
        return GenerationResult(
            success=False,
            error=exc.message,
            error_kind=type(exc).__name__,
            method=method,
            elapsed_ms=_elapsed_ms(start),
            retry_after_seconds=retry_after,
            ingestion=ingestion,
        )


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
