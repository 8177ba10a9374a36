"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}


def resolve_env_file(app_env: str, root: Path, testing: bool = False) -> str | None:
    """Return the .env file for ``app_env``, or None when absent or under test.

    Tests set ``TESTING=true`` so a developer's .env never overrides the
    values the suite pins.
    """

    if testing:
        return None
    # Only load from file if it exists (production might inject via env vars only)
    env_path = root / ENV_FILE_MAP.get(app_env, ".env.development")
    return str(env_path) if env_path.is_file() else None


_env_file = resolve_env_file(APP_ENV, PROJECT_ROOT, os.getenv("TESTING", "").lower() == "true")


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_llm_settings() -> "LLMSettings":
    """Build LLM settings from environment.

    Static type checkers treat required fields as constructor arguments, which
    is not how BaseSettings is populated.
    """

    return LLMSettings()  # type: ignore[call-arg]


def _build_supabase_settings() -> "SupabaseSettings":
    return SupabaseSettings()


def _build_app_settings() -> "AppSettings":
    return AppSettings()


def _build_log_settings() -> "LogSettings":
    return LogSettings()


class LLMSettings(BaseSettings):
    """AI analysis provider configuration.

    Validation of provider-specific requirements happens in the factory.
    """

    provider: str = Field(
        ...,
        description="LLM provider name (e.g., openai)",
    )
    model: str = Field(
        ...,
        description="Model name (e.g., gpt-4o, gpt-4o-mini)",
    )
    api_key: str | None = Field(
        None,
        description="API key for cloud providers",
    )
    base_url: str | None = Field(
        None,
        description="Custom API endpoint (OpenAI-compatible gateways)",
    )
    timeout_seconds: float = Field(
        45.0,
        description="Request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )


class SupabaseSettings(BaseSettings):
    """Supabase project endpoints used by the auth and storage adapters."""

    url: str | None = Field(
        None,
        description="Supabase project URL (e.g., https://xyz.supabase.co)",
    )
    anon_key: str | None = Field(
        None,
        description="Public anon key sent as the apikey header",
    )
    service_role_key: str | None = Field(
        None,
        description="Service role key for server-side PostgREST calls",
    )
    timeout_seconds: float = Field(
        10.0,
        description="HTTP timeout for Supabase calls in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_key_required: bool = Field(
        True,
        description="Whether API key authentication is required on /api routes",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid API keys for authentication",
    )
    include_request_id: bool = Field(
        True,
        description="Include requestId in success envelopes",
    )
    storage_backend: str = Field(
        "memory",
        description="Resume storage backend: 'memory' or 'supabase'",
    )
    password_reset_redirect_path: str = Field(
        "/auth/confirm?next=/reset-password",
        description="Path appended to the request origin for reset links",
    )

    password_reset_email_limit: int = Field(
        5,
        description="Password reset requests allowed per email per window",
        ge=1,
    )
    password_reset_email_window_seconds: int = Field(
        3600,
        description="Email rate limit window in seconds",
        ge=1,
    )
    password_reset_ip_limit: int = Field(
        20,
        description="Password reset requests allowed per IP per window",
        ge=1,
    )
    password_reset_ip_window_seconds: int = Field(
        3600,
        description="IP rate limit window in seconds",
        ge=1,
    )
    rate_limit_sweep_interval_seconds: float = Field(
        300.0,
        description="How often expired rate limit entries are evicted",
        gt=0,
    )

    retry_max_attempts: int = Field(
        3,
        description="Attempts (including the first) for collaborator calls",
        ge=1,
    )
    retry_initial_delay_seconds: float = Field(
        0.1,
        description="Backoff delay before the first retry",
        ge=0,
    )
    retry_max_delay_seconds: float = Field(
        5.0,
        description="Upper bound for a single backoff delay",
        ge=0,
    )
    retry_backoff_factor: float = Field(
        2.0,
        description="Multiplier applied to the delay after each attempt",
        ge=1,
    )
    retry_jitter: float = Field(
        0.1,
        description="Fractional jitter applied around the backoff delay (0-1)",
        ge=0,
        le=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration for the stdlib pipeline and structured logger."""

    level: str = Field(
        "INFO",
        description="Root stdlib logging level",
    )
    format: str = Field(
        "json",
        description="Output format: 'json' or 'plain'",
    )
    output: str = Field(
        "stdout",
        description="Output target: 'stdout' or 'file'",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output is 'file'",
    )
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables)",
    )
    backup_count: int = Field(
        5,
        description="Number of rotated log files to keep",
    )
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    min_level: str = Field(
        "info",
        description="Minimum level for the structured logger",
    )
    include_stacks: bool = Field(
        True,
        description="Attach stack traces to entries that carry an exception",
    )
    server_url: str | None = Field(
        None,
        description="Log server endpoint; enables the server transport",
    )
    server_api_key: str | None = Field(
        None,
        description="API key sent to the log server as X-API-Key",
    )
    server_min_level: str = Field(
        "error",
        description="Minimum level shipped to the log server",
    )
    transport_file_path: str | None = Field(
        None,
        description="JSON-lines file; enables the file transport",
    )
    transport_file_min_level: str = Field(
        "info",
        description="Minimum level written by the file transport",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if required settings are missing.
    """

    app_env: str = APP_ENV
    llm: LLMSettings = Field(default_factory=_build_llm_settings)
    supabase: SupabaseSettings = Field(default_factory=_build_supabase_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


# Nested settings are created via default_factory so env loading works.
settings = Settings()
