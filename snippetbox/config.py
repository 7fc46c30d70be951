"""Configuration management and validation using Pydantic."""

import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Application configuration settings loaded from environment variables or .env files."""

    @staticmethod
    def get_env_file() -> str | None:
        """Determine which .env file to load based on environment variables.

        Returns:
            None if SKIP_ENV_FILE is set or the file does not exist
            .env.{APP_ENV} file path otherwise (defaults to .env.dev)
        """
        if os.getenv("SKIP_ENV_FILE"):
            return None
        env_file = f".env.{os.getenv('APP_ENV', 'dev')}"
        if not os.path.exists(env_file):
            return None
        return env_file

    model_config = SettingsConfigDict(
        env_file=get_env_file.__func__(),
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # ==================== Application Settings ====================
    APP_NAME: str = "Snippetbox"
    APP_ENV: str = "dev"
    ADDR: str = ":4000"  # HTTP network address, host:port
    DB_URL: str  # Required, via -dsn flag or environment

    # ==================== Database Connection Pooling ====================
    DB_POOL_SIZE: int = 20  # Persistent connections in pool
    DB_MAX_OVERFLOW: int = 10  # Additional connections beyond pool size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for available connection
    DB_POOL_RECYCLE: int = 3600  # Recycle connections after 1 hour
    DB_QUERY_TIMEOUT: int = 60  # Query execution timeout (seconds)
    DB_CONNECT_TIMEOUT: int = 10  # Connection establishment timeout (seconds)

    # ==================== UI ====================
    STATIC_DIR: str = "./ui/static/"
    TEMPLATE_DIR: str = "./ui/html/"

    # ==================== Password Hashing ====================
    BCRYPT_ROUNDS: int = Field(default=12, ge=4, le=31)

    # ==================== Sessions ====================
    SESSION_STORE: str = "database"  # "database" or "redis"
    SESSION_LIFETIME_HOURS: int = 12
    SESSION_COOKIE_NAME: str = "session"
    SESSION_COOKIE_SECURE: bool = False  # Set True when served over TLS
    REDIS_URL: str = "redis://localhost:6379/0"

    # ==================== Rate Limiting ====================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "100/minute"

    # ==================== Graceful Shutdown ====================
    GRACEFUL_SHUTDOWN_TIMEOUT: int = 30  # Max wait time for active requests (seconds)

    # ==================== Logging ====================
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_FILE: str | None = None  # Path to enable file logging
    LOG_FORMAT: str = "console"  # "console" for dev, "json" for production

    @field_validator('DB_URL')
    @classmethod
    def validate_db_url(cls, v: str) -> str:
        """Validate that DB_URL is provided and points at an async driver."""
        if not v:
            raise ValueError("DB_URL is required but not provided (use -dsn or the DB_URL variable)")
        if v.startswith("postgresql://"):
            v = "postgresql+asyncpg://" + v[len("postgresql://"):]
        if not v.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
            raise ValueError("DB_URL must be a PostgreSQL (asyncpg) or SQLite (aiosqlite) connection string")
        return v

    @field_validator('SESSION_STORE')
    @classmethod
    def validate_session_store(cls, v: str) -> str:
        """Validate the session backend name."""
        v = v.lower()
        if v not in ("database", "redis"):
            raise ValueError("SESSION_STORE must be 'database' or 'redis'")
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.DB_URL.startswith("sqlite")
