from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    PROJECT_NAME: str = "ndrop API"
    API_PREFIX: str = "/api"
    ENVIRONMENT: str = "local"
    LOG_LEVEL: str = "INFO"
    DATABASE_URL: str = "sqlite:///../ndrop.db"

    JWT_SECRET: str = "changeme"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    ADMIN_TOKEN_EXPIRE_MINUTES: int = 60 * 12
    USER_ROLE_ID: int = 1
    ADMIN_ROLE_ID: int = 2

    # Public origin used when building event join links
    NEXT_PUBLIC_BASE_URL: str | None = None
    VERCEL_URL: str | None = None

    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Redis configuration
    REDIS_URL: str = "redis://localhost:6379/0"
    REALTIME_ENABLED: bool = True
    REALTIME_CHANNEL: str = "ndrop:realtime"

    # Celery configuration
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"
    PARTICIPANT_RECONCILE_INTERVAL_SECONDS: int = 300

    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_DEFAULT: str = "1000/hour"
    JOIN_RATE_LIMIT: str = "30/minute"
    AI_RATE_LIMIT: str = "10/minute"

    # External recommendation model
    AI_RECOMMENDATION_URL: str | None = None
    AI_API_KEY: str | None = None
    AI_TIMEOUT_SECONDS: float = 15.0
    AI_MAX_RECOMMENDATIONS: int = 3

    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_SIZE: int = 5 * 1024 * 1024

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, value: List[str] | str) -> List[str]:
        """Allow both comma-separated strings and list inputs."""
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @property
    def public_origin(self) -> str:
        if self.NEXT_PUBLIC_BASE_URL:
            return self.NEXT_PUBLIC_BASE_URL.rstrip("/")
        if self.VERCEL_URL:
            return f"https://{self.VERCEL_URL}"
        return "http://localhost:3000"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
