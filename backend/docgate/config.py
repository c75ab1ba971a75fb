"""
DocGate — Application Configuration
====================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by main.py and the startup script; everything else receives
       the values it needs through constructor arguments.
When:  Loaded once at module import time.
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have defaults suitable for local development against a
    MongoDB running on localhost.
    """

    # ── Document Store ────────────────────────────────────────────────────
    # Format: mongodb://[user:password@]host:port/dbname
    # The database named in the URI path is used; mongodb_database is the
    # fallback when the URI carries no path.
    mongodb_uri: str = Field(
        default="mongodb://localhost:27017/test-api-server",
        description="MongoDB connection string",
    )
    mongodb_database: str = Field(default="test-api-server")

    # How long the driver waits to find a usable server before failing a call
    mongo_server_selection_timeout_ms: int = Field(default=5000, ge=100, le=60000)

    # Deadline applied to every individual store call made by a request
    store_timeout_seconds: float = Field(default=10.0, gt=0, le=300)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Public API: every origin is allowed unless narrowed here
    cors_origins: str = Field(default="*")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=3000, ge=1, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # Directory holding the dashboard's index.html (served at GET /)
    dashboard_dir: str = Field(default="public")

    # ── Request Governance ────────────────────────────────────────────────
    # 10 KB ceiling on request bodies
    max_body_bytes: int = Field(default=10_240, ge=1, le=10_485_760)

    # Fixed-window limits, per client IP
    rate_limit_window: int = Field(default=900, ge=1, le=86400)  # seconds
    rate_limit_requests: int = Field(default=100, ge=1, le=100000)
    write_rate_limit_requests: int = Field(default=30, ge=1, le=100000)

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


# Singleton instance used by the module-level app and `python -m docgate`
settings = Settings()
