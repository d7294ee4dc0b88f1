from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Signal Hunter"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Oracle
    gemini_api_key: str | None = None
    hunt_model: str = "gemini-3-flash-preview"
    onboarding_model: str = "gemini-3-flash-preview"
    trigger_model: str = "gemini-3-pro-preview"
    outreach_model: str = "gemini-3-flash-preview"
    dossier_model: str = "gemini-3-flash-preview"

    # Hunting
    hunt_retry_attempts: int = 3
    hunt_backoff_base_seconds: float = 1.0
    hunt_backoff_jitter_seconds: float = 1.0
    hunt_recency_days: int = 14
    hunt_results_per_task: int = 6
    hunt_site_match_mode: str = "strict"

    # Security
    cors_origins: list[str] = []  # Empty by default for security

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Metrics
    metrics_backend: str = "stdout"
    metrics_namespace: str = "signal_hunter"
    metrics_disable: bool = False
    metrics_statsd_host: str = "127.0.0.1"
    metrics_statsd_port: int = 8125
    metrics_schema_version: str = "signal-hunter.v1"

    model_config = ConfigDict(env_file=".env", case_sensitive=False)


settings = Settings()
