"""
Global settings from environment variables.
"""

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class RelaySettings(BaseSettings):
    """
    Global configuration loaded from environment variables.

    Environment variables should be prefixed with RELAY_
    Example: RELAY_LOG_LEVEL=DEBUG, RELAY_TRACING_DISABLED=true
    """

    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    # Core settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["console", "json"] = "console"

    # Run limits
    default_max_turns: int = Field(default=10, ge=1)
    run_timeout: float | None = Field(default=None, gt=0)
    turn_timeout: float | None = Field(default=None, gt=0)

    # Guardrails
    input_guardrails_parallel: bool = False

    # Tracing
    tracing_disabled: bool = False
    trace_include_sensitive_data: bool = True
    trace_console: bool = False
    trace_export_endpoint: str | None = None  # e.g. "http://localhost:4318/v1/traces/ingest"
    trace_export_api_key: SecretStr | None = None
    trace_export_timeout: float = Field(default=10.0, gt=0)
    trace_export_max_retries: int = Field(default=3, ge=1)
    trace_batch_size: int = Field(default=128, ge=1)
    trace_max_queue_size: int = Field(default=8192, ge=1)
    trace_schedule_delay: float = Field(default=5.0, gt=0)  # seconds between timed flushes


# Global settings instance (singleton)
settings = RelaySettings()


__all__ = ["RelaySettings", "settings"]
