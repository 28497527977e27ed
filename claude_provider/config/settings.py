import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from claude_provider.core.logging import get_logger

from .core import (
    BedrockSettings,
    HTTPSettings,
    LoggingSettings,
    OAuthSettings,
    RefreshSettings,
)


__all__ = ["Settings", "ConfigurationError", "get_settings"]


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


class Settings(BaseSettings):
    """
    Configuration settings for the Claude provider.

    Settings are loaded from environment variables, .env files, and an
    optional TOML configuration file. Environment variables take precedence
    over TOML values; nested fields use ``__`` (e.g. ``REFRESH__MAX_ATTEMPTS``).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    oauth: OAuthSettings = Field(
        default_factory=OAuthSettings,
        description="OAuth endpoints and client identity",
    )

    http: HTTPSettings = Field(
        default_factory=HTTPSettings,
        description="HTTP client timeouts",
    )

    refresh: RefreshSettings = Field(
        default_factory=RefreshSettings,
        description="Token expiry and refresh retry policy",
    )

    bedrock: BedrockSettings = Field(
        default_factory=BedrockSettings,
        description="AWS Bedrock defaults",
    )

    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )

    @classmethod
    def load_toml_config(cls, toml_path: Path) -> dict[str, Any]:
        """Load configuration from a TOML file."""
        try:
            with toml_path.open("rb") as f:
                return tomllib.load(f)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read TOML config file {toml_path}: {e}"
            ) from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML syntax in {toml_path}: {e}") from e

    @classmethod
    def from_config(
        cls,
        config_path: Path | str | None = None,
        **overrides: Any,
    ) -> "Settings":
        """Create Settings from a TOML file, environment and explicit overrides.

        Args:
            config_path: TOML file; falls back to the CONFIG_FILE env variable
            **overrides: Section dictionaries applied last (e.g. logging={...})

        Raises:
            ConfigurationError: If the file cannot be read or a value is invalid
        """
        if config_path is None:
            config_path_env = os.environ.get("CONFIG_FILE")
            if config_path_env:
                config_path = Path(config_path_env)

        if isinstance(config_path, str):
            config_path = Path(config_path)

        config_data: dict[str, Any] = {}
        if config_path is not None:
            if config_path.suffix.lower() != ".toml":
                raise ConfigurationError(
                    f"Unsupported config file format: {config_path.suffix}. "
                    "Only TOML (.toml) files are supported."
                )
            config_data = cls.load_toml_config(config_path)
            get_logger(__name__).info("config_file_loaded", path=str(config_path))

        try:
            settings = cls()
            for section, values in config_data.items():
                if not isinstance(values, dict) or section not in cls.model_fields:
                    continue
                values = {
                    key: value
                    for key, value in values.items()
                    if os.getenv(f"{section.upper()}__{key.upper()}") is None
                }
                _merge_section(settings, section, values)
            for section, values in overrides.items():
                if section in cls.model_fields and values:
                    _merge_section(settings, section, values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        return settings


def _merge_section(settings: Settings, section: str, values: dict[str, Any]) -> None:
    current: BaseModel = getattr(settings, section)
    merged = type(current).model_validate({**current.model_dump(), **values})
    setattr(settings, section, merged)


@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings, loaded once."""
    return Settings.from_config()
