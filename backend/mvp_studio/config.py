"""Application configuration using Pydantic Settings."""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # Application
    APP_NAME: str = "BuildTrix MVP Studio"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./data/buildtrix.db"

    # Redis (quota store)
    REDIS_URL: str = "redis://redis:6379/0"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Auth: bearer tokens are issued by the OAuth provider, verified here
    AUTH_JWT_SECRET: str = "change-me-to-the-provider-jwt-secret"
    AUTH_JWT_ALGORITHM: str = "HS256"
    AUTH_JWT_AUDIENCE: str = "authenticated"  # empty string disables the aud check

    # Quota
    MVP_MONTHLY_LIMIT: int = 3
    MVP_LIMIT_WINDOW_DAYS: int = 30
    RATE_LIMIT_PREFIX: str = "@clndr/ratelimit"
    RATE_LIMIT_ENABLED: bool = True        # False = development bypass
    RATE_LIMIT_LEGACY_LIMITS: str = "10,5"  # older key variants cleared on reconcile

    # LLM generation
    LLM_PROVIDER: str = "gemini"
    LLM_MODEL: str = "gemini-2.5-flash"
    LLM_API_KEY: str = ""
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 4096

    # Knowledge search (external vector service)
    KNOWLEDGE_SEARCH_URL: str = ""
    KNOWLEDGE_SEARCH_API_KEY: str = ""
    KNOWLEDGE_SIMILARITY_THRESHOLD: float = 0.7
    KNOWLEDGE_MAX_RESULTS: int = 10

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def legacy_limits(self) -> list[int]:
        return [int(v) for v in self.RATE_LIMIT_LEGACY_LIMITS.split(",") if v.strip()]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
