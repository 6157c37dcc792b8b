"""Deterministic reconstruction of a document's text from its stored chunks.

Chunks are read back ordered by ``chunk_index`` and joined with a blank
line, which inverts the chunker exactly: the result equals the normalized
extracted text, regardless of the order the vector store returned rows in.
The assembler has no side effects and never raises for a missing
document; it returns ``""`` and lets the caller treat that as a miss.
"""

from __future__ import annotations

import structlog

from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

_SEPARATOR = "\n\n"


class RetrievalAssembler:
    """Rebuilds document text from the vector store."""

    def __init__(self, vector_store: IVectorStoreProvider) -> None:
        self._vector_store = vector_store

    async def assemble(self, radicado: str) -> str:
        """Return the document text for *radicado*, or ``""`` with no chunks."""
        stored = await self._vector_store.read_ordered(radicado)
        if not stored:
            logger.debug("assemble_no_chunks", radicado=radicado)
            return ""

        text = _SEPARATOR.join(s.chunk.content for s in stored)
        logger.debug(
            "assemble_complete",
            radicado=radicado,
            chunk_count=len(stored),
            char_count=len(text),
        )
        return text
