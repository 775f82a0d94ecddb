"""Application configuration settings."""

from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Student Portal"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    API_V1_PREFIX: str = "/api/v1"
    CORS_ORIGINS: list[str] = ["*"]

    # Remote profile API
    REMOTE_API_BASE_URL: str = "https://seta-management-api-fvzc9.ondigitalocean.app/api"
    REMOTE_API_TIMEOUT_SECONDS: float = 20.0
    REMOTE_API_CONNECT_TIMEOUT_SECONDS: float = 10.0

    # Session persistence
    DATABASE_URL: str = "sqlite:///./portal_sessions.db"
    # "memory" is process-local and meant for development; idle sessions are
    # evicted after SESSION_TTL_HOURS
    SESSION_BACKEND: str = "database"
    SESSION_COOKIE_NAME: str = "portal_session"
    SESSION_SECRET_KEY: str = "your-super-secret-key-change-in-production"
    SESSION_TOKEN_ALGORITHM: str = "HS256"
    SESSION_TTL_HOURS: int = 12
    SESSION_CLEANUP_INTERVAL_MINUTES: int = 30

    # Upload Settings
    MAX_UPLOAD_SIZE_MB: int = 5
    ALLOWED_UPLOAD_CONTENT_TYPES: list[str] = [
        "application/pdf",
        "image/jpeg",
        "image/jpg",
        "image/png",
    ]
    ALLOWED_UPLOAD_EXTENSIONS: list[str] = [".pdf", ".jpg", ".jpeg", ".png"]

    @field_validator("REMOTE_API_BASE_URL", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @field_validator("SESSION_BACKEND")
    @classmethod
    def validate_session_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("database", "memory"):
            raise ValueError("SESSION_BACKEND must be 'database' or 'memory'")
        return v

    @property
    def max_upload_size_bytes(self) -> int:
        """Upload size limit in bytes."""
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
