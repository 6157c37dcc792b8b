"""Embedding provider implementations.

Embeddings convert chunk text into 768-dim vectors that are stored in
ChromaDB alongside the chunk and used for similarity search.

    GeminiEmbeddingProvider -- Gemini text-embedding-004 over REST, paced by
    a token-bucket rate limiter.
"""

from src.providers.embedding.gemini_embedding_provider import GeminiEmbeddingProvider

__all__ = ["GeminiEmbeddingProvider"]
