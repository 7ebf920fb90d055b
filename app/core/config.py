# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Postgres connection string, or sqlite:// for local runs)
      - JWT_SECRET (HS256 signing secret for session tokens)

    Optional:
      - SMTP_* (verification-code email delivery)
      - SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY (profile photo storage)
      - EXPOSE_VERIFICATION_CODE (non-production only: echo the code back)
    """

    PROJECT_NAME: str = "Account Service"
    API_PREFIX: str = "/api"
    PORT: int = 5000

    # DB config
    DATABASE_URL: str

    # Session tokens
    JWT_SECRET: str
    JWT_ALG: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7

    # Verification codes
    VERIFICATION_CODE_TTL_MINUTES: int = 10
    # Never enable in production: returns the code in the register response.
    EXPOSE_VERIFICATION_CODE: bool = False

    # Profile photos
    MAX_PHOTO_BYTES: int = 5 * 1024 * 1024
    SUPABASE_URL: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    STORAGE_BUCKET: str = "avatars"

    # SMTP (Gmail example: host smtp.gmail.com, port 465, SSL on, TLS off)
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_FROM_EMAIL: str | None = None
    SMTP_FROM_NAME: str = "Account Service"
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False
    SMTP_TIMEOUT_SECONDS: float = 30.0

    # Browser origins allowed to call the API (JSON list in .env)
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
