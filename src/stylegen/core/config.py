"""Application configuration using Pydantic BaseSettings."""

import logging

import structlog
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application Database Configuration
    database_url: str = Field(alias="DATABASE_URL")
    db_pool_size: int = Field(default=50, alias="DB_POOL_SIZE")

    # Application Environment
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # CORS Configuration
    cors_origins: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")

    # Server Configuration
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8080, alias="PORT")

    # Replicate Image Generation
    replicate_api_token: str = Field(default="", alias="REPLICATE_API_TOKEN")
    replicate_model_version: str = Field(default="google/nano-banana", alias="REPLICATE_MODEL_VERSION")
    generation_timeout_seconds: float = Field(default=180.0, alias="GENERATION_TIMEOUT_SECONDS")

    # Artifact storage (Pinata)
    pinata_jwt: str = Field(default="", alias="PINATA_JWT")
    pinata_gateway: str = Field(default="gateway.pinata.cloud", alias="PINATA_GATEWAY")
    publish_timeout_seconds: float = Field(default=30.0, alias="PUBLISH_TIMEOUT_SECONDS")

    # SMS notifications (Aligo)
    aligo_user_id: str = Field(default="", alias="ALIGO_USER_ID")
    aligo_api_key: str = Field(default="", alias="ALIGO_API_KEY")
    aligo_sender: str = Field(default="", alias="ALIGO_SENDER")
    notification_timeout_seconds: float = Field(default=15.0, alias="NOTIFICATION_TIMEOUT_SECONDS")
    frontend_url: str = Field(default="http://localhost:5173", alias="FRONTEND_URL")

    # Orchestrator
    max_rounds: int = Field(default=5, ge=1, alias="MAX_ROUNDS")
    round_delay_seconds: float = Field(default=2.0, ge=0, alias="ROUND_DELAY_SECONDS")
    rate_limit_cooldown_seconds: float = Field(
        default=10.0, ge=0, alias="RATE_LIMIT_COOLDOWN_SECONDS"
    )
    # Validation value only; the live catalog row count is authoritative
    expected_variant_count: int = Field(default=16, ge=1, alias="EXPECTED_VARIANT_COUNT")
    compose_thumbnails: bool = Field(default=True, alias="COMPOSE_THUMBNAILS")

    # Sweep worker
    sweep_interval_seconds: int = Field(default=300, alias="SWEEP_INTERVAL_SECONDS")
    sweep_min_age_seconds: int = Field(default=600, alias="SWEEP_MIN_AGE_SECONDS")
    sweep_max_attempts: int = Field(default=3, alias="SWEEP_MAX_ATTEMPTS")
    sweep_batch_size: int = Field(default=20, alias="SWEEP_BATCH_SIZE")

    # Bounded task runner
    task_max_concurrency: int = Field(default=4, ge=1, alias="TASK_MAX_CONCURRENCY")
    task_max_pending: int = Field(default=100, ge=1, alias="TASK_MAX_PENDING")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @model_validator(mode="after")
    def validate_required_config(self) -> "Settings":
        """Validate required configuration on startup.

        Ensures the provider credentials needed by the generation pipeline are set.
        Fails fast with clear error messages if configuration is incomplete.

        Validation is skipped in test environments to avoid breaking tests.
        """
        if self.app_env in ("test", "testing"):
            return self

        missing = []

        # REPLICATE_API_TOKEN is required for variant generation
        if not self.replicate_api_token:
            missing.append(
                "REPLICATE_API_TOKEN: Get your API token from https://replicate.com/account/api-tokens"
            )

        # PINATA_JWT is required to publish generated variants
        if not self.pinata_jwt:
            missing.append("PINATA_JWT: Get your JWT token from https://pinata.cloud")

        if missing:
            error_msg = "CRITICAL: Missing required environment variables:\n\n" + "\n".join(
                f"  - {m}" for m in missing
            )
            error_msg += "\n\nThe application cannot start without these variables."
            error_msg += "\nPlease update your .env file and restart."
            raise ValueError(error_msg)

        return self


def configure_logging(settings: Settings) -> None:
    """Configure structlog based on application environment.

    - Production: JSON output for log aggregation
    - Development: Console output for human readability
    """
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
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
