# contracthub/core/config.py
from typing import List, Optional
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings
import logging

DEV_ENCRYPTION_KEY = "fallback-key-for-development-only-32chars"


class Settings(BaseSettings):
    """Application settings, read from the environment or .env"""
    APP_NAME: str = "ContractHub"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Sessions
    SESSION_COOKIE_NAME: str = "session-id"
    SESSION_HEADER_NAME: str = "x-session-id"
    SESSION_DURATION_SECONDS: int = 24 * 60 * 60
    SESSION_INACTIVITY_TIMEOUT_SECONDS: int = 30 * 60
    SESSION_SWEEP_INTERVAL_SECONDS: int = 5 * 60
    SESSION_BACKEND: str = "memory"  # memory | redis

    # Rate limiting
    RATE_LIMIT_MAX_REQUESTS: int = 60
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    RATE_LIMIT_BLOCK_SECONDS: int = 5 * 60

    # CSRF
    CSRF_COOKIE_NAME: str = "csrf-token"
    CSRF_HEADER_NAME: str = "x-csrf-token"
    CSRF_SAFE_METHODS: List[str] = ["GET", "HEAD", "OPTIONS"]
    CSRF_EXEMPT_PATHS: List[str] = ["/auth/google/callback"]

    # Field encryption
    ENCRYPTION_KEY: str = DEV_ENCRYPTION_KEY
    ENCRYPTION_LEGACY_FALLBACK: bool = True

    # Redis
    REDIS_URL: Optional[str] = Field(default=None)

    # LLM
    OPENAI_API_KEY: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("OPENAI_API_KEY", "OPENAI_APIKEY")
    )
    GPT_MODEL: str = "gpt-4o-mini"
    GPT_TEMPERATURE: float = 0.2

    # Google OAuth
    GOOGLE_CLIENT_ID: Optional[str] = None
    GOOGLE_CLIENT_SECRET: Optional[str] = None
    GOOGLE_REDIRECT_URI: Optional[str] = None

    # Frontend
    CLIENT_URL: str = "http://localhost:5173"
    ALLOWED_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    # Peers allowed to set X-Forwarded-For / X-Real-IP (load balancer addresses)
    TRUSTED_PROXIES: List[str] = []

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "populate_by_name": True
    }

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def google_oauth_configured(self) -> bool:
        return all([self.GOOGLE_CLIENT_ID, self.GOOGLE_CLIENT_SECRET, self.GOOGLE_REDIRECT_URI])


# Singleton used by the application module
settings = Settings()


def validate_required_settings(config: Optional[Settings] = None) -> bool:
    """Check that optional integrations are configured; warn but never fail"""
    config = config or settings
    logger = logging.getLogger(__name__)
    missing = []

    if not config.OPENAI_API_KEY:
        missing.append("OPENAI_API_KEY/OPENAI_APIKEY")

    if not config.google_oauth_configured:
        missing.append("GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET/GOOGLE_REDIRECT_URI")

    if config.SESSION_BACKEND == "redis" and not config.REDIS_URL:
        missing.append("REDIS_URL")

    if config.is_production and config.ENCRYPTION_KEY == DEV_ENCRYPTION_KEY:
        logger.error("WARNING: Using fallback encryption key in production environment!")

    if missing:
        logger.warning(f"Missing environment variables: {', '.join(missing)}")
        logger.warning("Some features will be unavailable until they are set.")
        return False

    return True
