"""Application configuration using Pydantic BaseSettings."""

import logging
from pathlib import Path

import structlog
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "dev-secret-change-me"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database Configuration
    database_url: str = Field(default="sqlite+aiosqlite:///./genstudio.db", alias="DATABASE_URL")
    db_pool_size: int = Field(default=20, alias="DB_POOL_SIZE")
    db_auto_create: bool = Field(default=True, alias="DB_AUTO_CREATE")

    # Application Environment
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # CORS Configuration
    cors_origins: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")

    # Server Configuration
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")

    # Authentication
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET, alias="JWT_SECRET")
    jwt_expires_days: int = Field(default=7, alias="JWT_EXPIRES_DAYS")
    bcrypt_rounds: int = Field(default=12, alias="BCRYPT_ROUNDS")

    # Upload storage
    upload_dir: Path = Field(default=Path("uploads"), alias="UPLOAD_DIR")
    upload_url_prefix: str = Field(default="/uploads", alias="UPLOAD_URL_PREFIX")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")

    # Simulated processing
    processing_min_delay_seconds: float = Field(default=1.0, alias="PROCESSING_MIN_DELAY_SECONDS")
    processing_max_delay_seconds: float = Field(default=3.0, alias="PROCESSING_MAX_DELAY_SECONDS")
    processing_failure_rate: float = Field(default=0.2, alias="PROCESSING_FAILURE_RATE")
    test_processing_delay_seconds: float = Field(
        default=0.1, alias="TEST_PROCESSING_DELAY_SECONDS"
    )
    test_processing_failure_rate: float = Field(default=0.1, alias="TEST_PROCESSING_FAILURE_RATE")
    # 0 disables the overload gate
    max_concurrent_generations: int = Field(default=0, alias="MAX_CONCURRENT_GENERATIONS")

    # Rate limiting (per client address, whole API; always off in test mode)
    rate_limit: str = Field(default="100 per 15 minutes", alias="RATE_LIMIT")
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    rate_limit_storage_uri: str = Field(default="memory://", alias="RATE_LIMIT_STORAGE_URI")

    # Generation history
    generations_default_limit: int = Field(default=5, alias="GENERATIONS_DEFAULT_LIMIT")
    generations_max_limit: int = Field(default=20, alias="GENERATIONS_MAX_LIMIT")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_test(self) -> bool:
        return self.app_env in ("test", "testing")

    @model_validator(mode="after")
    def validate_required_config(self) -> "Settings":
        """Validate configuration on startup.

        Fails fast in production when the JWT secret still has its development
        default or the processing bounds are inconsistent. Validation of the
        secret is skipped outside production so tests and local runs work
        without any environment.
        """
        if self.processing_min_delay_seconds > self.processing_max_delay_seconds:
            raise ValueError(
                "PROCESSING_MIN_DELAY_SECONDS must not exceed PROCESSING_MAX_DELAY_SECONDS"
            )

        for name in ("processing_failure_rate", "test_processing_failure_rate"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name.upper()} must be between 0 and 1 (got {value})")

        if self.app_env != "production":
            return self

        missing = []

        if self.jwt_secret == DEFAULT_JWT_SECRET:
            missing.append("JWT_SECRET: Generate a long random string, e.g. `openssl rand -hex 32`")

        if missing:
            error_msg = "CRITICAL: Missing required environment variables:\n\n" + "\n".join(
                f"  - {m}" for m in missing
            )
            error_msg += "\n\nThe application cannot start without these variables."
            raise ValueError(error_msg)

        return self


class ClientSettings(BaseSettings):
    """Settings for the command-line client."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    api_url: str = Field(default="http://localhost:8000/api", alias="GENSTUDIO_API_URL")
    token_file: Path = Field(
        default=Path.home() / ".genstudio_token", alias="GENSTUDIO_TOKEN_FILE"
    )
    request_timeout: float = Field(default=30.0, alias="GENSTUDIO_REQUEST_TIMEOUT")

    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="WARNING", alias="GENSTUDIO_LOG_LEVEL")


def configure_logging(settings: Settings | ClientSettings) -> None:
    """Configure structlog based on application environment.

    - Production: JSON output for log aggregation
    - Development/test: Console output for human readability
    """
    min_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.app_env == "production":
        processors = [
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
