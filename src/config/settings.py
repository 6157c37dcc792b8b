"""Application settings loaded from environment variables via pydantic-settings.

Values are read from two sources, in priority order:

  1. **Environment variables**, e.g. ``GEMINI_API_KEY=...`` (always win)
  2. **.env file** in the working directory (local development)

Field ``gemini_api_key`` maps to env var ``GEMINI_API_KEY``.  Defaults apply
when neither source sets a value.  Credentials are read here once and then
passed explicitly into provider constructors; no provider reads the
environment on its own.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.utils.errors import ConfigurationError


class Settings(BaseSettings):
    """Contrarreferencia pipeline settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Embedding provider (Gemini) ===
    gemini_api_key: str = ""
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    embedding_model: str = "text-embedding-004"
    embedding_dimension: int = Field(default=768, ge=1)
    # 20 req/s reproduces the historical 50 ms pause between calls.
    embedding_requests_per_second: float = Field(default=20.0, gt=0)
    embedding_max_input_chars: int = Field(default=10_000, ge=1)
    embedding_timeout_seconds: float = Field(default=30.0, gt=0)

    # === Generation endpoint ===
    generation_base_url: str = ""
    generation_api_key: str = ""
    generation_timeout_seconds: float = Field(default=60.0, gt=0)

    # === Vector index (ChromaDB) ===
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "pdf_embeddings"

    # === Ingestion claim (SQLite) ===
    ingestion_lock_db_path: str = "data/ingestion_locks.db"
    ingestion_lock_stale_seconds: int = Field(default=900, ge=1)

    # === Ingestion / retrieval thresholds ===
    chunk_max_chars: int = Field(default=2000, ge=1)
    min_extracted_chars: int = Field(default=50, ge=0)
    min_context_chars: int = Field(default=100, ge=0)
    accept_degraded_ingestion: bool = True
    pdf_download_timeout_seconds: float = Field(default=30.0, gt=0)
    max_pdf_bytes: int = Field(default=25 * 1024 * 1024, ge=1)

    # === Similarity search defaults ===
    search_default_limit: int = Field(default=10, ge=1)
    search_default_threshold: float = Field(default=0.5, ge=0.0, le=1.0)

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    # JSON list, e.g. CORS_ALLOWED_ORIGINS=["https://his.example.org"]; empty allows any.
    cors_allowed_origins: list[str] = Field(default_factory=list)
    app_env: str = "development"
    log_level: str = "INFO"

    def missing_credentials(self) -> list[str]:
        """Return env var names required for generation that are still empty."""
        missing: list[str] = []
        if not self.gemini_api_key:
            missing.append("GEMINI_API_KEY")
        if not self.generation_base_url:
            missing.append("GENERATION_BASE_URL")
        return missing

    def validate_for_generation(self) -> None:
        """Raise :class:`ConfigurationError` if generation cannot be wired."""
        missing = self.missing_credentials()
        if missing:
            raise ConfigurationError(
                message=f"Missing required configuration: {', '.join(missing)}"
            )
