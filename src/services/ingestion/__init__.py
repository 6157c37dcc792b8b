"""Document ingestion pipeline for the contrarreferencia knowledge base.

Pipeline stages overview:

1. **Extract** (pdf_text_extractor.py / PDFTextExtractor) -- Downloads the
   PDF and reads its text layer page by page.

2. **Chunk** (chunker.py / TextChunker) -- Splits the text into
   paragraph-aligned chunks of at most ~2000 characters.

3. **Embed** (via IEmbeddingProvider) -- One rate-limited embedding
   request per chunk, strictly sequential.

4. **Store** (via IVectorStoreProvider) -- One row per chunk keyed by
   ``(radicado, chunk_index)``.

IngestionService runs all four stages under a per-radicado claim.
"""

from src.services.ingestion.chunker import TextChunker, normalize_text
from src.services.ingestion.ingestion_service import IngestionService
from src.services.ingestion.pdf_text_extractor import PDFTextExtractor

__all__ = [
    "IngestionService",
    "PDFTextExtractor",
    "TextChunker",
    "normalize_text",
]
