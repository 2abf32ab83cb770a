"""
Centralized configuration management with validation.

All environment variables are loaded and validated here.
This ensures consistent configuration across the application.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


DEFAULT_POSTGRES_PASSWORD = "postgres"


class Settings(BaseSettings):
    """Application settings with validation."""

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Database Configuration
    # DATABASE_URL wins over the POSTGRES_* parts when set (e.g. sqlite:// for local runs)
    DATABASE_URL: Optional[str] = Field(default=None)
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: str = Field(default=DEFAULT_POSTGRES_PASSWORD)
    POSTGRES_DB: str = Field(default="recovery_journey")
    POSTGRES_HOST: str = Field(default="postgres")
    POSTGRES_PORT: int = Field(default=5432)

    # Database Pool Configuration
    DB_POOL_SIZE: int = Field(default=20)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=3600)  # 1 hour

    # Redis Configuration (rate limiting)
    REDIS_URL: str = Field(default="redis://redis:6379/0")

    # JWT verification - tokens are issued by the hosted identity provider
    # and signed with this shared secret.
    SECRET_KEY: str = Field(
        default=...,  # Required - no default
        description="JWT signing key shared with the identity provider (32+ chars)."
    )
    JWT_ALGORITHM: str = Field(default="HS256")
    # Identity providers typically stamp an audience (e.g. "authenticated").
    # Leave unset to skip audience verification.
    JWT_AUDIENCE: Optional[str] = Field(default=None)

    # API Configuration
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8000)
    API_RELOAD: bool = Field(default=False)
    EXPOSE_API_DOCS: bool = Field(default=False)

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json or text
    # Replace patient ids in logs with a keyed pseudonym
    LOG_HASH_PATIENT_IDS: bool = Field(default=True)

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = Field(default=True)
    RATE_LIMIT_PER_MINUTE: int = Field(default=60)

    # Recovery program
    RECOVERY_PROGRAM_DAYS: int = Field(default=30, ge=1)
    # Defaults to data/recovery_catalog.json next to the API package
    RECOVERY_CATALOG_PATH: Optional[str] = Field(default=None)

    # Environment
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    # CORS - comma-separated list of allowed origins for production
    # e.g., "https://care.example.org,https://www.care.example.org"
    CORS_ORIGINS: Optional[str] = Field(default=None)

    # Sentry Error Tracking
    SENTRY_DSN: Optional[str] = Field(default=None)
    SENTRY_TRACES_SAMPLE_RATE: float = Field(default=0.1)  # 10% of transactions


def validate_production_config(
    environment: str,
    debug: bool,
    cors_origins: Optional[str],
    postgres_password: str,
    database_url: Optional[str] = None,
) -> None:
    """
    Refuse to start a production deployment with unsafe settings.

    Raises ValueError describing the first problem found. Non-production
    environments are never rejected. POSTGRES_PASSWORD is only checked when
    the connection is built from the POSTGRES_* parts.
    """
    if environment != "production":
        return
    if debug:
        raise ValueError("DEBUG must be False in production")
    if not cors_origins or not cors_origins.strip():
        raise ValueError("CORS_ORIGINS must be set in production")
    if database_url:
        return
    if postgres_password == DEFAULT_POSTGRES_PASSWORD or len(postgres_password) < 12:
        raise ValueError("POSTGRES_PASSWORD must be changed from the default (12+ chars) in production")


# Global settings instance
settings = Settings()
