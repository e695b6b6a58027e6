from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = ConfigDict(env_file=".env", case_sensitive=True)

    DATABASE_URL: str
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Redis configuration for caching and capture locks
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_CACHE_TTL: int = 300  # recommendation cache, 5 minutes
    CAPTURE_LOCK_TTL: int = 10  # seconds a capture dedup lock is held

    # CORS configuration: comma-separated origins
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:8080"

    # Absolute base for tracking pixel / click-redirect URLs
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    # Outbound email (SMTP).  An empty host puts delivery in draft mode.
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = False
    EMAIL_FROM: str = ""
    APP_NAME: str = "RealEstate Platform"
    LEAD_NOTIFICATION_EMAIL: str = ""

    # Property matching
    DEFAULT_RECOMMENDATION_BUDGET: float = 1_000_000
    RECOMMENDATION_LIMIT: int = 5

    # Optional in-process workflow tick loop
    WORKFLOW_SCHEDULER_ENABLED: bool = False
    WORKFLOW_TICK_INTERVAL_SECONDS: int = 60


settings = Settings()
