"""
Application configuration using Pydantic Settings.
Loads environment variables and provides type-safe configuration.
"""

from typing import List, Optional
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from pathlib import Path

# Get the base directory
BASE_DIR = Path(__file__).resolve().parent.parent

DEVELOPMENT_JWT_SECRET = "development-secret-key-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    environment: str = Field(default="development", description="Current environment")
    debug: bool = Field(default=False, description="Debug mode")

    # API Configuration
    api_title: str = Field(default="Time Ledger")
    api_version: str = Field(default="1.0.0")
    api_prefix: str = Field(default="/api/v1")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Database
    database_url: str = Field(
        default=f"sqlite:///{BASE_DIR / 'timeledger.db'}",
        description="SQLAlchemy database URL"
    )
    database_echo: bool = Field(default=False)
    database_busy_timeout_seconds: float = Field(default=15.0, gt=0, description="SQLite wait for the writer lock")
    store_retry_attempts: int = Field(default=3, ge=1)
    store_retry_backoff_seconds: float = Field(default=0.1, ge=0)

    # JWT Configuration
    jwt_secret_key: str = Field(default=DEVELOPMENT_JWT_SECRET, description="JWT secret key")
    jwt_algorithm: str = Field(default="HS256")

    # CORS
    cors_origins: str | List[str] = Field(
        default="http://localhost:3000,http://localhost:5173"
    )
    cors_allow_credentials: bool = Field(default=True)
    cors_allow_methods: List[str] = Field(default=["*"])
    cors_allow_headers: List[str] = Field(default=["*"])

    # Pagination and bulk operations
    default_page_size: int = Field(default=50)
    max_page_size: int = Field(default=100)
    max_bulk_batch_size: int = Field(default=50)

    # Billing defaults
    default_currency: str = Field(default="USD")
    default_payment_terms: str = Field(default="Net 30")

    # Work day and summaries
    work_day_start: str = Field(default="09:00")
    work_day_end: str = Field(default="17:00")
    default_target_hours: float = Field(default=8.0)
    gap_threshold_minutes: int = Field(default=15)
    break_max_minutes: int = Field(default=60)
    max_summary_days: int = Field(default=31)

    # Sentry (Optional)
    sentry_dsn: Optional[str] = Field(default=None)
    sentry_traces_sample_rate: float = Field(default=0.1)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string or list."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return ["http://localhost:3000", "http://localhost:5173"]
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment.lower() == "testing"

    def validate_environment(self) -> None:
        """Validate that production is not running on development defaults."""
        problems = []
        if not self.jwt_secret_key or self.jwt_secret_key == DEVELOPMENT_JWT_SECRET:
            problems.append("JWT_SECRET_KEY")
        if self.database_url.startswith("sqlite"):
            problems.append("DATABASE_URL")

        if problems:
            raise ValueError(
                f"Production requires explicit values for: {', '.join(problems)}"
            )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Use this function to get settings throughout the application.
    """
    settings = Settings()

    if settings.is_production:
        settings.validate_environment()

    return settings


# Create a global settings instance
settings = get_settings()
