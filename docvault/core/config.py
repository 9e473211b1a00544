from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables or .env.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"  # Ignore extra fields in .env file
    )

    # -------------------------
    # Application
    # -------------------------
    PROJECT_NAME: str = "DocVault Processing API"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    # -------------------------
    # Database
    # -------------------------
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./docvault.db",
        description="Async SQLAlchemy URL (postgresql+asyncpg://... in production)"
    )
    SQLALCHEMY_ECHO: bool = False
    DB_AUTO_CREATE: bool = Field(
        default=True,
        description="Create missing tables on startup (Alembic owns the schema in production)"
    )

    # -------------------------
    # Redis (for the shared job store)
    # -------------------------
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for the job store"
    )

    # -------------------------
    # Job Queue
    # -------------------------
    JOB_STORE_BACKEND: str = Field(
        default="memory",
        description="Job store backend: 'memory' (single process) or 'redis'"
    )
    JOB_QUEUE_NAME: str = Field(
        default="file-processing",
        description="Key prefix for the Redis job store"
    )
    JOB_MAX_ATTEMPTS: int = Field(default=3, ge=1, le=20)
    JOB_RETRY_BASE_DELAY_MS: int = Field(
        default=1000,
        ge=0,
        description="Base delay for exponential retry backoff"
    )
    JOB_TIMEOUT_SECONDS: float = Field(
        default=600,
        ge=0,
        description="Wall-clock limit per job attempt (0 disables)"
    )

    # Retention of terminal jobs
    KEEP_COMPLETED_SECONDS: int = 3600      # 1 hour
    KEEP_COMPLETED_COUNT: int = 100
    KEEP_FAILED_SECONDS: int = 86400        # 24 hours
    CLEANUP_INTERVAL_SECONDS: float = 60.0

    # -------------------------
    # Worker Pool
    # -------------------------
    WORKER_CONCURRENCY: int = Field(default=5, ge=1, le=64)
    WORKER_POLL_DELAY: float = Field(default=0.5, gt=0)
    RUN_INLINE_WORKERS: bool = Field(
        default=True,
        description="Run the worker pool inside the API process"
    )

    # -------------------------
    # File Storage
    # -------------------------
    STORAGE_BACKEND: str = Field(
        default="local",
        description="Storage backend: 'local'"
    )
    UPLOAD_DIR: str = Field(
        default="storage/uploads",
        description="Directory for stored blobs (local storage)"
    )

    # =========================================================
    # AI Configuration (Google Gemini)
    # =========================================================
    # Optional: without a key, image description and summaries
    # degrade to local OCR and placeholder text.
    GEMINI_API_KEY: Optional[str] = Field(
        default=None,
        description="Google Gemini API key"
    )
    GEMINI_MODEL: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model used for vision and summarization"
    )
    LLM_MAX_TOKENS: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens for an image description"
    )
    SUMMARY_MAX_TOKENS: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens for a document summary"
    )

    # =========================================================
    # Local OCR (Tesseract)
    # =========================================================
    TESSERACT_CMD: Optional[str] = Field(
        default=None,
        description="Path to the tesseract binary if not on PATH"
    )
    OCR_DEFAULT_LANGUAGE: str = "eng"
    OCR_MAX_PAGES: int = Field(default=20, ge=1, le=500)
    OCR_RENDER_SCALE: float = Field(default=2.0, gt=0, le=8.0)

    @property
    def JOB_RETRY_BASE_DELAY_SECONDS(self) -> float:
        return self.JOB_RETRY_BASE_DELAY_MS / 1000.0

    @field_validator("STORAGE_BACKEND")
    def validate_storage_backend(cls, v):
        """Ensure storage backend is a valid option."""
        allowed = {"local"}
        if v not in allowed:
            raise ValueError(f"STORAGE_BACKEND must be one of: {allowed}")
        return v

    @field_validator("JOB_STORE_BACKEND")
    def validate_job_store_backend(cls, v):
        allowed = {"memory", "redis"}
        if v not in allowed:
            raise ValueError(f"JOB_STORE_BACKEND must be one of: {allowed}")
        return v


settings = Settings()
