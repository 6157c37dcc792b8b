"""RAG pipeline data models for the contrarreferencia knowledge base.

Defines Pydantic v2 models for document chunks, embeddings, similarity
matches, ingestion results, and the generation result returned to callers.
All models are frozen to enforce immutability.

Pipeline overview:

    1. INGESTION: a clinical PDF is downloaded, its text layer extracted,
       and the text split into paragraph-aligned chunks.
    2. EMBEDDING: each chunk is converted into a 768-dim vector.
    3. STORAGE: chunks + vectors are stored in ChromaDB keyed by
       ``(radicado, chunk_index)``.
    4. ASSEMBLY: chunks are read back in ``chunk_index`` order and joined
       to reconstruct the document text.
    5. GENERATION: the assembled text is sent to the generation endpoint,
       which writes the contrarreferencia.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field


# ---------------------------------------------------------------------------
# Chunk metadata -- a fixed struct, not an open map.
# ---------------------------------------------------------------------------
class ChunkMetadata(BaseModel):
    """Per-chunk metadata stored alongside the text and embedding."""

    model_config = ConfigDict(frozen=True)

    total_chunks: int = Field(ge=1, description="Number of chunks the document was split into.")
    char_count: int = Field(ge=0, description="Length of this chunk's content in characters.")


# ---------------------------------------------------------------------------
# DocumentChunk -- the fundamental unit of the index.
# ---------------------------------------------------------------------------
class DocumentChunk(BaseModel):
    """A bounded contiguous segment of a document's text, with its position.

    For a given ``radicado`` the ``chunk_index`` values form a contiguous
    range starting at 0, and ordering by ``chunk_index`` reconstructs the
    original document order.
    """

    model_config = ConfigDict(frozen=True)

    radicado: str = Field(min_length=1, description="Case identifier owning this chunk.")
    chunk_index: int = Field(ge=0, description="0-based position within the document.")
    content: str = Field(description="The chunk's textual content.")
    metadata: ChunkMetadata
    pdf_url: str | None = Field(default=None, description="Source PDF location at ingestion time.")

    @property
    def chunk_id(self) -> str:
        """Primary key in the vector index: ``"{radicado}:{chunk_index}"``."""
        return make_chunk_id(self.radicado, self.chunk_index)


def make_chunk_id(radicado: str, chunk_index: int) -> str:
    """Build the vector-index primary key for ``(radicado, chunk_index)``."""
    return f"{radicado}:{chunk_index}"


class StoredChunk(BaseModel):
    """A chunk read back from the index together with its embedding."""

    model_config = ConfigDict(frozen=True)

    chunk: DocumentChunk
    embedding: list[float] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# EmbeddingResult -- output of one embedding call.
# ---------------------------------------------------------------------------
class EmbeddingResult(BaseModel):
    """An embedding vector plus the provider's token count, if reported."""

    model_config = ConfigDict(frozen=True)

    values: list[float] = Field(description="The embedding vector.")
    token_count: int | None = Field(default=None, ge=0)

    @property
    def dimension(self) -> int:
        return len(self.values)


# ---------------------------------------------------------------------------
# SimilarityMatch -- a nearest-neighbour search result.
# ---------------------------------------------------------------------------
class SimilarityMatch(BaseModel):
    """A stored chunk returned by a similarity query, with its score."""

    model_config = ConfigDict(frozen=True)

    radicado: str
    chunk_index: int = Field(ge=0)
    content: str
    similarity: float = Field(
        ge=0.0,
        le=1.0,
        description="Cosine similarity between the query and this chunk.",
    )
    metadata: ChunkMetadata


# ---------------------------------------------------------------------------
# IngestionResult -- output of the ingestion pipeline for one document.
# ---------------------------------------------------------------------------
class IngestionResult(BaseModel):
    """Summary of one ingestion run.

    ``processed_count < total_count`` is the *ingestion incomplete*
    condition: some chunks were skipped after embedding or storage
    failures.  ``skipped_chunk_indices`` names them so the caller can
    decide between accepting a degraded index and re-ingesting.
    """

    model_config = ConfigDict(frozen=True)

    radicado: str
    processed_count: int = Field(default=0, ge=0, description="Chunks successfully stored.")
    total_count: int = Field(default=0, ge=0, description="Chunks produced by the chunker.")
    skipped_chunk_indices: list[int] = Field(default_factory=list)
    already_indexed: bool = Field(
        default=False,
        description="True when ingestion was skipped because chunks already existed.",
    )
    elapsed_ms: int = Field(default=0, ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_complete(self) -> bool:
        return self.processed_count == self.total_count


# ---------------------------------------------------------------------------
# GenerationResult -- transient value returned to the caller.
# ---------------------------------------------------------------------------
class AnswerMethod(str, Enum):
    """How the context for a generation was obtained."""

    CACHE = "cache"
    ON_THE_FLY = "on-the-fly"


class GenerationResult(BaseModel):
    """Outcome of one contrarreferencia generation request.  Never persisted."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    success: bool
    text: str | None = None
    error: str | None = None
    error_kind: str | None = Field(
        default=None,
        description="Exception class name for failures, e.g. 'InsufficientTextError'.",
    )
    method: AnswerMethod | None = None
    elapsed_ms: int = Field(default=0, ge=0)
    retry_after_seconds: int | None = Field(default=None, ge=0)
    ingestion: IngestionResult | None = Field(
        default=None,
        description="Ingestion performed during this request, if any.",
    )
