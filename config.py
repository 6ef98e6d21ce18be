"""
Configuration settings for the studyloop client.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Backend (managed Postgres + RPC gateway)
    # ========================================
    supabase_url: str = Field(
        default="http://localhost:54321",
        description="Base URL of the backend project (REST gateway lives under /rest/v1)",
    )
    supabase_anon_key: str = Field(
        default="",
        description="Public project API key sent as the 'apikey' header",
    )
    supabase_access_token: str | None = Field(
        default=None,
        description="Signed-in user's access token; falls back to the anon key",
    )

    # ========================================
    # RPC transport
    # ========================================
    rpc_timeout_ms: int = Field(
        default=15000,
        description="Per-request timeout in milliseconds",
    )
    rpc_retry_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts for idempotent reads (writes are never retried)",
    )

    # ========================================
    # Study player
    # ========================================
    shuffle_seed: int | None = Field(
        default=None,
        description="Seed for option/pair/sequence shuffling (None = random)",
    )
    toast_history_size: int = Field(
        default=20,
        ge=1,
        description="Number of notifications kept in memory",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    @property
    def rest_url(self) -> str:
        """REST gateway root (tables and /rpc live below it)."""
        return f"{self.supabase_url.rstrip('/')}/rest/v1"

    def has_backend_configured(self) -> bool:
        """Check if the backend can be reached with credentials."""
        return bool(self.supabase_url and self.supabase_anon_key)

    def get_rpc_config(self) -> dict[str, Any]:
        """Get RPC client configuration as a dictionary."""
        return {
            "base_url": self.rest_url,
            "api_key": self.supabase_anon_key,
            "access_token": self.supabase_access_token,
            "timeout_ms": self.rpc_timeout_ms,
            "retry_attempts": self.rpc_retry_attempts,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
