# weconnect/config.py
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Process configuration, read from the environment (and .env if present).
    DATABASE_URL and JWT_SECRET have no default: constructing Settings without
    them raises, and the entrypoint refuses to start.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = Field(..., min_length=1)
    DB_POOL_SIZE: int = 20
    DB_POOL_TIMEOUT: float = 2.0

    JWT_SECRET: str = Field(..., min_length=1)
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 60 * 24 * 7

    WEBHOOK_SECRET: str = ""
    N8N_WEBHOOK_URL: str = "http://localhost:5678/webhook"
    N8N_TIMEOUT_SECONDS: float = 30.0

    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None
    STORAGE_BUCKET: str = "post-images"

    REDIS_URL: str = "redis://localhost:6379/0"
    TOKEN_ENCRYPTION_KEY: Optional[str] = None  # base64 Fernet key, set in prod

    ALLOWED_ORIGINS: str = "http://localhost:5173"
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    RATE_LIMIT_MAX_REQUESTS: int = 100
    AUTH_RATE_LIMIT_MAX_ATTEMPTS: int = 5

    @property
    def allowed_origins(self) -> List[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def storage_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_ANON_KEY)


@lru_cache
def get_settings() -> Settings:
    return Settings()
