"""Application configuration."""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # App
    APP_NAME: str = "JN_Repositions"
    ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Database
    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10

    # Redis (push channel for notifications)
    REDIS_URL: str = "redis://localhost:6379/0"

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"
    NOTIFICATIONS_PUSH_ENABLED: bool = True

    # JWT
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    JWT_LEEWAY_SECONDS: int = 30  # clock skew tolerance for exp validation

    # Business clock. Every timestamp used for cooldowns and durations is taken here.
    BUSINESS_TIMEZONE: str = "America/Mexico_City"

    # Workflow rules
    TRANSFER_COOLDOWN_MINUTES: int = 5
    REJECTION_REASON_MIN_LENGTH: int = 10
    TRANSFER_REJECTION_MIN_LENGTH: int = 5

    # Document metadata (blobs live in external storage)
    MAX_DOCUMENT_SIZE: int = 10485760  # 10MB
    ALLOWED_DOCUMENT_EXTENSIONS: str = "pdf,xml,jpg,jpeg,png"

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    @property
    def allowed_document_extensions_list(self) -> list[str]:
        """Get allowed document extensions as list."""
        return [ext.strip().lower() for ext in self.ALLOWED_DOCUMENT_EXTENSIONS.split(",")]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
