"""Application settings loaded from environment variables.

Server Configuration:
    PORT: TCP port to bind (default 8000)
    HOST: Bind address (default 0.0.0.0)
    NODE_ENV: Environment name, reported in the startup log only
    SHUTDOWN_GRACE_S: Seconds to drain in-flight requests on shutdown

Database Configuration:
    DATABASE_URL: SQLAlchemy connection string (required)
    DB_CONNECT_ATTEMPTS: Readiness attempts before startup is aborted
    DB_CONNECT_BACKOFF_S: Initial delay between attempts (doubles each retry)
    DB_CONNECT_BACKOFF_MAX_S: Upper bound for a single delay

Request Pipeline Configuration:
    CORS_ALLOWED_ORIGINS: Comma-separated list of allowed browser origins
    RATE_LIMIT_MAX: Requests allowed per client within the window
    RATE_LIMIT_WINDOW_S: Rolling window length in seconds
    RATE_LIMIT_STORAGE_URI: limits storage URI (memory:// or redis://...)
    BODY_LIMIT_BYTES: Max size of JSON and form bodies
    COOKIE_SECRET: Secret for signed cookies (optional)

Logging Configuration:
    LOG_JSON: Emit JSON log lines (false selects the console renderer)
    LOG_LEVEL: Root log level

Settings are read from the process environment and an optional .env file.
"""

from functools import lru_cache
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

DEFAULT_CORS_ORIGINS = "http://localhost:5173,https://salesfrontend-eight.vercel.app"


class Settings(BaseSettings):
    """Application configuration.

    Built once at process start and handed to the app factory and server
    runner. Nothing else in the package reads the environment.
    """

    port: int = Field(default=8000, alias="PORT")
    host: str = Field(default="0.0.0.0", alias="HOST")
    node_env: str = Field(default="development", alias="NODE_ENV")
    shutdown_grace_s: int = Field(default=10, alias="SHUTDOWN_GRACE_S")

    # Database connector
    database_url: Annotated[str, Field(alias="DATABASE_URL")]
    db_connect_attempts: int = Field(default=5, alias="DB_CONNECT_ATTEMPTS")
    db_connect_backoff_s: float = Field(default=0.5, alias="DB_CONNECT_BACKOFF_S")
    db_connect_backoff_max_s: float = Field(default=8.0, alias="DB_CONNECT_BACKOFF_MAX_S")

    # Request pipeline
    cors_allowed_origins: str = Field(default=DEFAULT_CORS_ORIGINS, alias="CORS_ALLOWED_ORIGINS")
    rate_limit_max: int = Field(default=100, alias="RATE_LIMIT_MAX")
    rate_limit_window_s: int = Field(default=15 * 60, alias="RATE_LIMIT_WINDOW_S")
    rate_limit_storage_uri: str = Field(default="memory://", alias="RATE_LIMIT_STORAGE_URI")
    body_limit_bytes: int = Field(default=10 * 1024, alias="BODY_LIMIT_BYTES")  # 10 KB
    cookie_secret: str | None = Field(default=None, alias="COOKIE_SECRET")

    # Logging
    log_json: bool = Field(default=True, alias="LOG_JSON")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "frozen": True,
    }

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Reject non-positive limits and out-of-range ports."""
        if not 0 < self.port < 65536:
            raise ValueError(f"PORT must be between 1 and 65535, got {self.port}")

        positive = {
            "DB_CONNECT_ATTEMPTS": self.db_connect_attempts,
            "RATE_LIMIT_MAX": self.rate_limit_max,
            "RATE_LIMIT_WINDOW_S": self.rate_limit_window_s,
            "BODY_LIMIT_BYTES": self.body_limit_bytes,
        }
        for name, value in positive.items():
            if value < 1:
                raise ValueError(f"{name} must be >= 1, got {value}")

        non_negative = {
            "SHUTDOWN_GRACE_S": self.shutdown_grace_s,
            "DB_CONNECT_BACKOFF_S": self.db_connect_backoff_s,
            "DB_CONNECT_BACKOFF_MAX_S": self.db_connect_backoff_max_s,
        }
        for name, value in non_negative.items():
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")

        return self

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse the comma-separated allow-list, preserving order."""
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
