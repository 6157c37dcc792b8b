"""FastAPI API routes for the contrarreferencia pipeline.

Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern; ``app.state`` is populated at
startup in ``main.py``.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint                                Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/contrarreferencia               POST    Generate (cache or on-the-fly)
# /api/v1/documents/{radicado}/ingest     POST    Ingest a PDF without generating
# /api/v1/documents/{radicado}/text       GET     Reconstructed document text
# /api/v1/documents/{radicado}            DELETE  Remove a document's chunks
# /api/v1/search                          POST    Similarity search over chunks
# /api/v1/health                          GET     Health check + provider status
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from src.api.middleware import STATUS_BY_ERROR_KIND
from src.api.schemas import (
    DeleteDocumentResponse,
    DocumentTextResponse,
    ErrorResponse,
    GenerateRequest,
    HealthResponse,
    IngestRequest,
    SearchRequest,
)
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.rag import GenerationResult, IngestionResult, SimilarityMatch
from src.pipeline.orchestrator import AnswerOrchestrator
from src.services.ingestion.ingestion_service import IngestionService
from src.services.retrieval_assembler import RetrievalAssembler
from src.services.search_service import SearchService
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Dependency helpers
# ---------------------------------------------------------------------------


def _get_orchestrator(request: Request) -> AnswerOrchestrator:
    return request.app.state.orchestrator


def _get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service


def _get_assembler(request: Request) -> RetrievalAssembler:
    return request.app.state.assembler


def _get_search_service(request: Request) -> SearchService:
    return request.app.state.search_service


def _get_vector_store(request: Request) -> IVectorStoreProvider:
    return request.app.state.vector_store


OrchestratorDep = Annotated[AnswerOrchestrator, Depends(_get_orchestrator)]
IngestionDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
AssemblerDep = Annotated[RetrievalAssembler, Depends(_get_assembler)]
SearchDep = Annotated[SearchService, Depends(_get_search_service)]
VectorStoreDep = Annotated[IVectorStoreProvider, Depends(_get_vector_store)]


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


@router.post(
    "/contrarreferencia",
    response_model=GenerationResult,
    responses={
        409: {"model": GenerationResult},
        422: {"model": GenerationResult},
        429: {"model": GenerationResult},
        502: {"model": GenerationResult},
    },
    summary="Generate the contrarreferencia for a radicado",
)
async def generate_contrarreferencia(
    body: GenerateRequest,
    orchestrator: OrchestratorDep,
) -> Any:
    """Generate from cached chunks, ingesting the PDF first on a miss.

    Failures are returned as the same ``GenerationResult`` body with
    ``success=false``; the HTTP status reflects the failure class.
    """
    result = await orchestrator.generate(
        body.radicado,
        body.pdf_url,
        body.specialty,
        force=body.force,
    )
    if result.success:
        return result

    headers: dict[str, str] = {}
    if result.retry_after_seconds is not None:
        status_code = 429
        headers["Retry-After"] = str(result.retry_after_seconds)
    else:
        status_code = STATUS_BY_ERROR_KIND.get(result.error_kind or "", 500)

    _logger.warning(
        "generation_request_failed",
        radicado=body.radicado,
        error_kind=result.error_kind,
        status=status_code,
    )
    return JSONResponse(
        status_code=status_code,
        content=result.model_dump(mode="json"),
        headers=headers,
    )


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@router.post(
    "/documents/{radicado}/ingest",
    response_model=IngestionResult,
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    summary="Ingest a document's PDF into the index",
)
async def ingest_document(
    radicado: str,
    body: IngestRequest,
    ingestion_service: IngestionDep,
) -> IngestionResult:
    return await ingestion_service.ingest(radicado, body.pdf_url, replace=body.replace)


@router.get(
    "/documents/{radicado}/text",
    response_model=DocumentTextResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Reconstructed text of an indexed document",
)
async def get_document_text(
    radicado: str,
    assembler: AssemblerDep,
) -> DocumentTextResponse:
    text = await assembler.assemble(radicado)
    if not text:
        raise HTTPException(status_code=404, detail=f"No indexed document: {radicado}")
    return DocumentTextResponse(radicado=radicado, text=text, char_count=len(text))


@router.delete(
    "/documents/{radicado}",
    response_model=DeleteDocumentResponse,
    summary="Delete all chunks of a document",
)
async def delete_document(
    radicado: str,
    vector_store: VectorStoreDep,
) -> DeleteDocumentResponse:
    deleted = await vector_store.delete(radicado)
    _logger.info("document_deleted", radicado=radicado, deleted=deleted)
    return DeleteDocumentResponse(radicado=radicado, deleted=deleted)


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


@router.post(
    "/search",
    response_model=list[SimilarityMatch],
    summary="Similarity search over all indexed chunks",
)
async def search_chunks(
    body: SearchRequest,
    search_service: SearchDep,
) -> list[SimilarityMatch]:
    try:
        return await search_service.search(
            body.query,
            limit=body.limit,
            threshold=body.threshold,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    vector_store = getattr(request.app.state, "vector_store", None)
    if vector_store is not None and vector_store.is_available():
        providers["vector_store"] = True
        providers["indexed_chunks"] = await vector_store.count()
    else:
        providers["vector_store"] = False
        providers["indexed_chunks"] = 0

    critical_ok = providers.get("vector_store", False) and providers.get("embedding", False)
    if critical_ok and providers.get("generation", False):
        status = "healthy"
    elif critical_ok:
        status = "degraded"
    else:
        status = "unhealthy"

    return HealthResponse(status=status, version=_VERSION, providers=providers)
