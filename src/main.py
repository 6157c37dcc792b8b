"""Contrarreferencia FastAPI application entry point.

Wires together all providers, services, and routes via dependency
injection.  Loads configuration from environment variables and ``.env``
(see :class:`~src.config.settings.Settings`) and configures structured
logging.

``build_services`` is also used by the CLI, so the same object graph backs
both the web server and command-line runs.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router as api_router
from src.config.settings import Settings
from src.pipeline.orchestrator import AnswerOrchestrator
from src.providers.embedding.gemini_embedding_provider import GeminiEmbeddingProvider
from src.providers.generation.http_generation_provider import HttpGenerationProvider
from src.providers.lock.sqlite_ingestion_lock_provider import SQLiteIngestionLockProvider
from src.providers.vector_store.chromadb_provider import ChromaDBProvider
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.ingestion_service import IngestionService
from src.services.ingestion.pdf_text_extractor import PDFTextExtractor
from src.services.retrieval_assembler import RetrievalAssembler
from src.services.search_service import SearchService
from src.utils.logging import configure_logging, get_logger
from src.utils.rate_limiter import TokenBucketRateLimiter

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def build_services(
    app_settings: Settings,
    http_client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """Construct every provider and service instance.

    Credentials are read from *app_settings* here and passed into the
    provider constructors.  When *http_client* is given it is shared by
    the extractor, embedding and generation providers (and not closed by
    them); otherwise each creates its own client with its own timeout.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    missing = app_settings.missing_credentials()
    if missing:
        _logger.warning("credentials_missing", missing=missing)

    rate_limiter = TokenBucketRateLimiter(
        rate_per_second=app_settings.embedding_requests_per_second,
    )
    embedding_provider = GeminiEmbeddingProvider(
        api_key=app_settings.gemini_api_key,
        rate_limiter=rate_limiter,
        model=app_settings.embedding_model,
        base_url=app_settings.gemini_base_url,
        dimension=app_settings.embedding_dimension,
        max_input_chars=app_settings.embedding_max_input_chars,
        timeout=app_settings.embedding_timeout_seconds,
        http_client=http_client,
    )
    vector_store = ChromaDBProvider(
        embedding_dimension=app_settings.embedding_dimension,
        persist_directory=app_settings.chromadb_persist_dir,
        collection_name=app_settings.chromadb_collection,
    )
    lock_provider = SQLiteIngestionLockProvider(
        db_path=app_settings.ingestion_lock_db_path,
        stale_after_seconds=app_settings.ingestion_lock_stale_seconds,
    )
    extractor = PDFTextExtractor(
        http_client=http_client,
        timeout=app_settings.pdf_download_timeout_seconds,
        max_pdf_bytes=app_settings.max_pdf_bytes,
    )
    generation_provider = HttpGenerationProvider(
        base_url=app_settings.generation_base_url,
        api_key=app_settings.generation_api_key,
        timeout=app_settings.generation_timeout_seconds,
        http_client=http_client,
    )

    ingestion_service = IngestionService(
        extractor=extractor,
        chunker=TextChunker(max_chars=app_settings.chunk_max_chars),
        embedding_provider=embedding_provider,
        vector_store=vector_store,
        lock_provider=lock_provider,
        min_extracted_chars=app_settings.min_extracted_chars,
    )
    assembler = RetrievalAssembler(vector_store=vector_store)
    search_service = SearchService(
        embedding_provider=embedding_provider,
        vector_store=vector_store,
        default_limit=app_settings.search_default_limit,
        default_threshold=app_settings.search_default_threshold,
    )
    orchestrator = AnswerOrchestrator(
        assembler=assembler,
        ingestion_service=ingestion_service,
        generation_provider=generation_provider,
        min_context_chars=app_settings.min_context_chars,
        accept_degraded_ingestion=app_settings.accept_degraded_ingestion,
    )

    # -- Provider registry for /health --
    provider_registry: dict[str, bool] = {
        "embedding": embedding_provider.is_available(),
        "generation": generation_provider.is_available(),
    }

    return {
        "embedding_provider": embedding_provider,
        "vector_store": vector_store,
        "lock_provider": lock_provider,
        "extractor": extractor,
        "generation_provider": generation_provider,
        "ingestion_service": ingestion_service,
        "assembler": assembler,
        "search_service": search_service,
        "orchestrator": orchestrator,
        "provider_registry": provider_registry,
    }


async def close_services(components: dict[str, Any]) -> None:
    """Close the HTTP clients owned by the components."""
    for key in ("extractor", "embedding_provider", "generation_provider"):
        await components[key].close()


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = build_services(settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["lock_provider"].initialize()

    _logger.info(
        "app_startup",
        version="0.1.0",
        environment=settings.app_env,
        providers=components["provider_registry"],
    )

    yield

    await close_services(components)
    _logger.info("app_shutdown", message="HTTP clients closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="Contrarreferencia API",
        version="0.1.0",
        description=(
            "Index clinical PDFs by radicado, rebuild their text from embedded "
            "chunks, and generate the contrarreferencia from it."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=settings.cors_allowed_origins)

    application.include_router(api_router)
    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
