from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Core
    ENV: str = "local"
    APP_NAME: str = "PIXELock"
    APP_SECRET_KEY: str = "change-this-secret"
    LOG_LEVEL: str = "INFO"

    # Admin dashboard auth
    DASHBOARD_PIN_HASH: str = ""
    AUTH_SESSION_TTL_SECONDS: int = 60 * 60 * 24 * 30

    # AWS / S3
    AWS_REGION: str = "us-east-1"
    S3_BUCKET: str = "images"
    S3_ENDPOINT_URL: str | None = None
    UPLOAD_PREFIX: str = "uploads/"
    MAX_UPLOAD_BYTES: int = 25_000_000

    # DB
    DATABASE_URL: str = "sqlite:///./data/pixelock.db"

    # Ticket lifecycle
    LINK_TTL_HOURS: float = Field(24, gt=0)
    REVEAL_SECONDS: int = Field(15, gt=0)
    MAX_ATTEMPTS: int = Field(5, gt=0)
    SIGNED_URL_TTL_SECONDS: int = 60
    TOKEN_LENGTH: int = Field(22, ge=16)
    PIN_PEPPER: str = ""  # optional HMAC key for pin digests

    # Cleanup
    PURGE_GRACE_HOURS: float = 24

settings = Settings()
