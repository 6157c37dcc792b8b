"""Public interface definitions for all external service providers.

Every external API or service in the pipeline is accessed exclusively
through the abstract base classes defined in this package.  Concrete
adapters implement these interfaces and are injected at runtime (see
``src/main.py``), so unit tests can substitute mocks without real API
calls.

CONCRETE PROVIDER MAP:
    Interface                  →  Concrete implementation (in src/providers/)
    ─────────────────────────────────────────────────────────────────────
    IEmbeddingProvider         →  GeminiEmbeddingProvider
    IVectorStoreProvider       →  ChromaDBProvider
    IIngestionLockProvider     →  SQLiteIngestionLockProvider
    IGenerationProvider        →  HttpGenerationProvider
"""

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.generation_provider import IGenerationProvider
from src.interfaces.ingestion_lock_provider import IIngestionLockProvider
from src.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IEmbeddingProvider",
    "IGenerationProvider",
    "IIngestionLockProvider",
    "IVectorStoreProvider",
]
