"""Configuration for loading, redaction, shaping and export."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigurationError

DEFAULT_MAX_SIZE_BYTES = 50 * 1024 * 1024
DEFAULT_PLACEHOLDER = "REDACTED"

SYSTEM_ACCOUNTS = [
    "SYSTEM",
    "LOCAL SERVICE",
    "NETWORK SERVICE",
    "ANONYMOUS LOGON",
    "SERVICE",
    "BATCH",
    "DIALUP",
    "EVERYONE",
    "AUTHENTICATED USERS",
    "IUSR",
    "IWAM",
    "ASPNET",
    "KRBTGT",
    "GUEST",
]

SYSTEM_DOMAINS = ["NT AUTHORITY", "NT SERVICE", "BUILTIN"]

SUPPRESSED_SUBTITLES = ["PE metadata", "User", "Web data file"]


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format (json or text)")
    output: str = Field(default="stderr", description="Log output (stderr, stdout or file)")
    file_path: str | None = Field(default=None, description="Log file path")

    @field_validator("format")
    @classmethod
    def _check_format(cls, value: str) -> str:
        value = value.lower()
        if value not in {"json", "text"}:
            raise ValueError(f"log format must be 'json' or 'text', got {value!r}")
        return value


class InputConfig(BaseModel):
    """Limits applied to an input file before it is parsed."""

    max_size_bytes: int = Field(
        default=DEFAULT_MAX_SIZE_BYTES, gt=0, description="Largest accepted file"
    )
    allowed_extensions: list[str] = Field(
        default_factory=lambda: [".json", ".jsonc"],
        description="Accepted file extensions (case-insensitive)",
    )


class AnonymizationConfig(BaseModel):
    """Configuration for identifier extraction and substitution."""

    placeholder: str = Field(
        default=DEFAULT_PLACEHOLDER, min_length=1, description="Replacement token"
    )
    system_accounts: list[str] = Field(
        default_factory=lambda: list(SYSTEM_ACCOUNTS),
        description="Account names never redacted",
    )
    system_domains: list[str] = Field(
        default_factory=lambda: list(SYSTEM_DOMAINS),
        description="Domain names never redacted",
    )
    short_domain_length: int = Field(
        default=3,
        ge=0,
        description="Domains at or below this length only match whole words",
    )


class ShapingConfig(BaseModel):
    """Configuration for the display projection."""

    suppressed_subtitles: list[str] = Field(
        default_factory=lambda: list(SUPPRESSED_SUBTITLES),
        description="Case-sensitive subtitle substrings marking noise nodes",
    )


class ExportConfig(BaseModel):
    """Configuration for export artifacts."""

    output_dir: str = Field(default=".", description="Default export directory")


class StoryCloakConfig(BaseModel):
    """Main configuration object."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    input: InputConfig = Field(default_factory=InputConfig)
    anonymization: AnonymizationConfig = Field(default_factory=AnonymizationConfig)
    shaping: ShapingConfig = Field(default_factory=ShapingConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)

    @classmethod
    def from_file(cls, config_path: Path | str) -> StoryCloakConfig:
        """Load configuration from a YAML file.

        The file may either hold the settings at top level or nest them
        under a ``storycloak`` key.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_path}",
                config_file=str(config_path),
            )

        try:
            with open(config_path, encoding="utf-8") as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {e}",
                config_file=str(config_path),
            ) from e

        if not isinstance(config_data, dict):
            raise ConfigurationError(
                "Configuration file must contain a mapping",
                config_file=str(config_path),
            )

        section = config_data.get("storycloak", config_data)
        try:
            return cls(**section)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration values: {e}",
                config_file=str(config_path),
            ) from e

    def apply_env(self) -> StoryCloakConfig:
        """Overlay ``STORYCLOAK_*`` environment variables onto this config."""
        self.logging.level = os.getenv("STORYCLOAK_LOG_LEVEL", self.logging.level)
        if log_format := os.getenv("STORYCLOAK_LOG_FORMAT"):
            self.logging.format = log_format.strip().lower()
        self.logging.file_path = os.getenv(
            "STORYCLOAK_LOG_FILE", self.logging.file_path
        )
        if self.logging.file_path and os.getenv("STORYCLOAK_LOG_FILE"):
            self.logging.output = "file"

        if max_size := os.getenv("STORYCLOAK_MAX_SIZE_BYTES"):
            try:
                self.input.max_size_bytes = int(max_size)
            except ValueError as e:
                raise ConfigurationError(
                    f"STORYCLOAK_MAX_SIZE_BYTES must be an integer, got {max_size!r}",
                    config_section="input",
                ) from e

        self.anonymization.placeholder = os.getenv(
            "STORYCLOAK_PLACEHOLDER", self.anonymization.placeholder
        )
        self.export.output_dir = os.getenv(
            "STORYCLOAK_OUTPUT_DIR", self.export.output_dir
        )
        return self

    @classmethod
    def from_env(cls) -> StoryCloakConfig:
        """Load configuration from environment variables only."""
        return cls().apply_env()

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump()


# Global configuration instance
_config: StoryCloakConfig | None = None


def get_config() -> StoryCloakConfig:
    """Get the global configuration, loading it from the environment if needed."""
    global _config
    if _config is None:
        _config = StoryCloakConfig.from_env()
    return _config


def set_config(config: StoryCloakConfig) -> None:
    """Set the global configuration."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration for testing purposes."""
    global _config
    _config = None


def load_config(config_path: Path | str | None = None) -> StoryCloakConfig:
    """Load and set the global configuration (file first, then environment)."""
    if config_path:
        config = StoryCloakConfig.from_file(config_path).apply_env()
    else:
        config = StoryCloakConfig.from_env()
    set_config(config)
    return config
