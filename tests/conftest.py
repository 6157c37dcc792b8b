"""Shared pytest fixtures for the contrarreferencia test suite."""

from __future__ import annotations

import hashlib
import math
from pathlib import Path
from typing import Callable
from unittest.mock import AsyncMock, MagicMock

import fitz
import pytest

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.generation_provider import IGenerationProvider
from src.interfaces.ingestion_lock_provider import IIngestionLockProvider
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.rag import ChunkMetadata, DocumentChunk, EmbeddingResult

TEST_DIMENSION = 8


# ---------------------------------------------------------------------------
# Helpers (exposed to tests through the factory fixtures below)
# ---------------------------------------------------------------------------


def hash_vector(text: str, dimension: int = TEST_DIMENSION) -> list[float]:
    """Deterministic unit vector derived from *text*."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    raw = [(digest[i % len(digest)] - 127.5) / 127.5 for i in range(dimension)]
    norm = math.sqrt(sum(v * v for v in raw)) or 1.0
    return [v / norm for v in raw]


def make_chunk(
    radicado: str = "R-1001",
    chunk_index: int = 0,
    content: str = "Paciente con dolor toracico.",
    total_chunks: int = 1,
    pdf_url: str | None = "https://docs.test/R-1001.pdf",
) -> DocumentChunk:
    return DocumentChunk(
        radicado=radicado,
        chunk_index=chunk_index,
        content=content,
        metadata=ChunkMetadata(total_chunks=total_chunks, char_count=len(content)),
        pdf_url=pdf_url,
    )


def make_pdf_bytes(pages: list[str]) -> bytes:
    """Build an in-memory PDF with one page per entry; ``""`` gives a blank page."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text, fontsize=11)
    data = doc.tobytes()
    doc.close()
    return data


# ---------------------------------------------------------------------------
# Provider mocks
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_embedding_provider() -> MagicMock:
    """Embedding provider mock returning deterministic 8-dim vectors."""
    mock = MagicMock(spec=IEmbeddingProvider)

    async def _embed_single(text: str) -> EmbeddingResult:
        return EmbeddingResult(values=hash_vector(text), token_count=len(text.split()))

    mock.embed_single = AsyncMock(side_effect=_embed_single)
    mock.get_dimension.return_value = TEST_DIMENSION
    mock.get_provider_name.return_value = "mock_embedding"
    mock.is_available.return_value = True
    return mock


@pytest.fixture
def mock_vector_store() -> MagicMock:
    mock = MagicMock(spec=IVectorStoreProvider)
    mock.exists = AsyncMock(return_value=False)
    mock.insert = AsyncMock(return_value=None)
    mock.read_ordered = AsyncMock(return_value=[])
    mock.nearest_neighbors = AsyncMock(return_value=[])
    mock.delete = AsyncMock(return_value=0)
    mock.count = AsyncMock(return_value=0)
    mock.get_provider_name.return_value = "mock_store"
    mock.is_available.return_value = True
    return mock


@pytest.fixture
def mock_lock_provider() -> MagicMock:
    mock = MagicMock(spec=IIngestionLockProvider)
    mock.initialize = AsyncMock(return_value=None)
    mock.acquire = AsyncMock(return_value=True)
    mock.release = AsyncMock(return_value=None)
    mock.is_claimed = AsyncMock(return_value=False)
    return mock


@pytest.fixture
def mock_generation_provider() -> MagicMock:
    mock = MagicMock(spec=IGenerationProvider)
    mock.generate = AsyncMock(return_value="CONTRARREFERENCIA: paciente estable.")
    mock.get_provider_name.return_value = "mock_generation"
    mock.is_available.return_value = True
    return mock


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------


@pytest.fixture
def clinical_pages() -> list[str]:
    """Three short page texts, each long enough to be its own chunk at 120 chars."""
    return [
        "Motivo de consulta: dolor toracico opresivo de dos horas de evolucion.",
        "Antecedentes: hipertension arterial en tratamiento con losartan 50 mg.",
        "Plan: valoracion por cardiologia y electrocardiograma de control.",
    ]


@pytest.fixture
def pdf_factory() -> Callable[[list[str]], bytes]:
    return make_pdf_bytes


@pytest.fixture
def chunk_factory() -> Callable[..., DocumentChunk]:
    return make_chunk


@pytest.fixture
def vector_factory() -> Callable[..., list[float]]:
    return hash_vector


@pytest.fixture
def chroma_dir(tmp_path: Path) -> str:
    return str(tmp_path / "chroma")
