"""Pydantic request/response schemas for the contrarreferencia API.

Defines the public contract for the REST endpoints: generation, document
ingestion, text retrieval, deletion, similarity search, and health.

Convention: request schemas end with "Request", response schemas end with
"Response".  Domain models from :mod:`src.models.rag` (``GenerationResult``,
``IngestionResult``, ``SimilarityMatch``) are returned directly where their
shape is already the public one.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    """Request to generate the contrarreferencia for one radicado."""

    radicado: str = Field(min_length=1, description="Case identifier.")
    pdf_url: str = Field(min_length=1, description="Location of the supporting PDF.")
    specialty: str | None = Field(default=None, description="Destination specialty.")
    force: bool = Field(
        default=False,
        description="Discard any indexed chunks and re-ingest before generating.",
    )


class IngestRequest(BaseModel):
    """Request to ingest one radicado's PDF without generating."""

    pdf_url: str = Field(min_length=1)
    replace: bool = False


class DocumentTextResponse(BaseModel):
    """Reconstructed text of an indexed document."""

    radicado: str
    text: str
    char_count: int


class DeleteDocumentResponse(BaseModel):
    """Result of deleting a document's chunks."""

    radicado: str
    deleted: int


class SearchRequest(BaseModel):
    """Similarity search over all indexed chunks."""

    query: str = Field(min_length=1, max_length=10_000)
    # None falls back to SEARCH_DEFAULT_LIMIT / SEARCH_DEFAULT_THRESHOLD.
    limit: int | None = Field(default=None, ge=1, le=100)
    threshold: float | None = Field(default=None, ge=0.0, le=1.0)


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
