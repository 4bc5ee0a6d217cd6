"""Configuration management for Portcullis.

This module provides centralized configuration loading from environment
variables and ``portcullis.yaml`` with validation and type safety.

Precedence (highest first):
    1. Environment variables / ``.env``
    2. ``limits`` section of ``portcullis.yaml``
    3. Built-in defaults (5,000,000 byte body, 256 character URL)
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from portcullis.core.exceptions import ConfigurationError
from portcullis.core.models import (
    DEFAULT_MAX_BODY_BYTES,
    DEFAULT_MAX_URL_LENGTH,
    MAX_BODY_BYTES_LIMIT,
)

CONFIG_FILENAME = "portcullis.yaml"


class _LimitsSection(BaseModel):
    """Shape of the ``limits`` section in portcullis.yaml."""

    model_config = ConfigDict(extra="ignore")

    # 0 or less selects the built-in default
    max_body_bytes: int = Field(default=DEFAULT_MAX_BODY_BYTES, le=MAX_BODY_BYTES_LIMIT)
    max_url_length: int = Field(default=DEFAULT_MAX_URL_LENGTH, ge=1)
    replay_body: bool = True


def _config_search_paths() -> list[Path]:
    return [
        Path(__file__).parent.parent.parent / CONFIG_FILENAME,  # Project root
        Path.cwd() / CONFIG_FILENAME,
    ]


def load_limits_config(path: Path | str | None = None) -> dict[str, Any]:
    """Load admission limits from the ``limits`` section of portcullis.yaml.

    Args:
        path: Explicit config file. When omitted the project root and the
            current directory are searched, and a missing file means defaults.

    Returns:
        Dictionary with ``max_body_bytes``, ``max_url_length`` and
        ``replay_body``.

    Raises:
        ConfigurationError: File is unreadable or not valid YAML, the
            ``limits`` section is not a mapping, or one of its values has the
            wrong type or range.

    Example:
        >>> load_limits_config()
        {'max_body_bytes': 5000000, 'max_url_length': 256, 'replay_body': True}
    """
    defaults = _LimitsSection().model_dump()

    if path is not None:
        candidates = [Path(path)]
        if not candidates[0].exists():
            raise ConfigurationError(
                f"Config file not found: {path}", {"path": str(path)}
            )
    else:
        candidates = [p for p in _config_search_paths() if p.exists()]

    for config_path in candidates:
        try:
            with open(config_path) as f:
                config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to read {config_path}: {e}", {"path": str(config_path)}
            ) from e

        if config is None:
            return defaults
        if not isinstance(config, dict):
            raise ConfigurationError(
                f"{config_path} must contain a mapping", {"path": str(config_path)}
            )

        limits = config.get("limits", {}) or {}
        if not isinstance(limits, dict):
            raise ConfigurationError(
                f"'limits' in {config_path} must be a mapping",
                {"path": str(config_path)},
            )

        try:
            return _LimitsSection.model_validate(limits).model_dump()
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid limits in {config_path}: {e}", {"path": str(config_path)}
            ) from e

    return defaults


class Settings(BaseSettings):
    """Application configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Admission limits (loaded from YAML limits section)
    max_body_bytes: int = Field(
        default_factory=lambda: load_limits_config()["max_body_bytes"],
        description="Maximum request body size in bytes (0 or less = built-in default)",
        le=MAX_BODY_BYTES_LIMIT,
    )
    max_url_length: int = Field(
        default_factory=lambda: load_limits_config()["max_url_length"],
        description="Maximum serialized URL length in characters",
        ge=1,
    )
    replay_body: bool = Field(
        default_factory=lambda: load_limits_config()["replay_body"],
        description="Buffer and replay bodies counted without a Content-Length",
    )
    exempt_path_prefixes: list[str] = Field(
        default_factory=list,
        description="Path prefixes that bypass the admission gate",
    )

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port", ge=1, le=65535)

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str | None = Field(
        default=None, description="Log format (json, console; default by environment)"
    )
    environment: str = Field(
        default="development", description="Environment (development, production)"
    )

    # OpenTelemetry Configuration
    otel_enabled: bool = Field(
        default=False, description="Enable OpenTelemetry instrumentation"
    )
    otel_service_name: str = Field(
        default="portcullis", description="Service name for telemetry"
    )
    otel_exporter_otlp_endpoint: str = Field(
        default="http://localhost:4317", description="OTLP gRPC endpoint"
    )
    otel_exporter_otlp_headers: str = Field(
        default="", description="OTLP headers (e.g., 'api-key=xxx')"
    )
    otel_traces_enabled: bool = Field(
        default=True, description="Enable trace collection"
    )
    otel_metrics_enabled: bool = Field(
        default=True, description="Enable metrics collection"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"


settings = Settings()
