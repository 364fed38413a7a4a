"""Configuration management and validation using Pydantic."""

import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    """Application configuration settings loaded from environment variables or .env files."""

    @staticmethod
    def get_env_file() -> str | None:
        """Determine which .env file to load based on environment variables.

        Returns:
            None if SKIP_ENV_FILE is set or no env file exists
            .env.{APP_ENV} if present, otherwise .env if present
        """
        if os.getenv("SKIP_ENV_FILE"):
            return None
        env = os.getenv("APP_ENV", "dev")
        env_file = f".env.{env}"
        if os.path.exists(env_file):
            return env_file
        return ".env" if os.path.exists(".env") else None

    model_config = SettingsConfigDict(
        env_file=get_env_file.__func__(),
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # ==================== Application Settings ====================
    APP_NAME: str = "Idea Tracker"
    APP_ENV: str = "dev"
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    STATIC_DIR: str = "public"  # Served at / when the directory exists

    # ==================== Database ====================
    DB_URL: str = "sqlite+aiosqlite:///./ideas.db"
    DB_ECHO: bool = False

    # ==================== Idea Fields ====================
    CATEGORY_DELIMITER: str = ","
    EXCITEMENT_MIN: int = 1
    EXCITEMENT_MAX: int = 10
    EXCITEMENT_DEFAULT: int = 5

    # ==================== CORS Settings ====================
    CORS_ORIGINS: str = "*"  # Comma-separated allowed origins

    # ==================== JWT Authentication ====================
    JWT_SECRET_KEY: str = "your-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_MINUTES: int | None = None  # None = tokens never expire
    BCRYPT_ROUNDS: int = 10

    # ==================== Rate Limiting ====================
    RATE_LIMIT_AUTH: str = "10/minute"
    RATE_LIMIT_WRITE: str = "60/minute"
    RATE_LIMIT_READ: str = "100/minute"

    # ==================== Graceful Shutdown ====================
    GRACEFUL_SHUTDOWN_TIMEOUT: int = 30  # Max wait time for active requests (seconds)

    # ==================== Monitoring ====================
    ENABLE_METRICS: bool = True  # Expose Prometheus metrics at /metrics

    # ==================== Logging ====================
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_FILE: str | None = None  # Set a path to enable file logging
    LOG_FORMAT: str = "console"  # "console" for dev, "json" for production

    @field_validator('DB_URL')
    @classmethod
    def validate_db_url(cls, v: str) -> str:
        """Validate that DB_URL points at a supported async driver."""
        if not v:
            raise ValueError("DB_URL must not be empty")
        if not v.startswith(("sqlite+aiosqlite://", "postgresql+asyncpg://")):
            raise ValueError("DB_URL must use sqlite+aiosqlite:// or postgresql+asyncpg://")
        return v

    @field_validator('JWT_SECRET_KEY')
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Validate that JWT_SECRET_KEY is provided."""
        if not v:
            raise ValueError("JWT_SECRET_KEY must not be empty")
        return v

    @field_validator('BCRYPT_ROUNDS')
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        """bcrypt accepts cost factors from 4 to 31."""
        if not 4 <= v <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")
        return v

    def get_cors_origins(self) -> list[str]:
        """Parse CORS_ORIGINS into a list of allowed origins."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

settings = Settings()
