"""Settings and configuration loading.

Settings come from three sources, lowest precedence first: environment
variables (and an optional ``.env`` file), a YAML or JSON configuration
file, and explicit keyword overrides.
"""

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from deploykit.core.errors import ConfigurationError, ConfigurationErrorContext, ErrorContext

logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = "deploykit-state.json"


class TaskSequenceStoreOptions(BaseSettings):
    """Options of a directory-backed task sequence store.

    Environment variables carry the ``DEPLOYKIT_STORE_`` prefix, e.g.
    ``DEPLOYKIT_STORE_PATH``.
    """

    path: Path | None = None
    filter: str = "*.json"
    recursive: bool = False
    case_sensitive: bool = False

    model_config = SettingsConfigDict(env_prefix="DEPLOYKIT_STORE_", populate_by_name=True, extra="ignore")


class DeploykitSettings(BaseSettings):
    """Process-wide settings of the deploykit front ends.

    Environment variables carry the ``DEPLOYKIT_`` prefix, e.g.
    ``DEPLOYKIT_LOG_LEVEL``.
    """

    log_level: str = "INFO"
    log_file: Path | None = None
    state_file: Path = Path(DEFAULT_STATE_FILE)
    store: TaskSequenceStoreOptions = Field(default_factory=TaskSequenceStoreOptions)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(
        env_prefix="DEPLOYKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def _configuration_error(message: str, key: str, expected: str, actual: str, cause: Exception | None = None) -> ConfigurationError:
    return ConfigurationError(
        message=message,
        context=ErrorContext.create(
            error_type="ConfigurationError",
            error_location="load_settings",
            component="settings",
            operation="load",
        ),
        config_context=ConfigurationErrorContext(
            config_key=key,
            config_section="settings",
            expected_type=expected,
            actual_value=actual,
        ),
        cause=cause,
    )


def load_config_file(config_file: Path) -> dict[str, Any]:
    """Read a YAML (``.yml``/``.yaml``) or JSON configuration file.

    Raises:
        ConfigurationError: If the file is missing or is not a mapping
    """
    if not config_file.is_file():
        raise _configuration_error(
            f"Configuration file '{config_file}' does not exist", "config_file", "existing file", str(config_file)
        )

    try:
        with open(config_file, encoding="utf-8") as f:
            if config_file.suffix.lower() in [".yml", ".yaml"]:
                config_data = yaml.safe_load(f)
            else:
                config_data = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise _configuration_error(
            f"Failed to read configuration file '{config_file}': {e}", "config_file", "YAML or JSON", str(config_file), e
        ) from e

    if config_data is None:
        return {}
    if not isinstance(config_data, dict):
        raise _configuration_error(
            f"Configuration file '{config_file}' must contain a mapping",
            "config_file",
            "mapping",
            type(config_data).__name__,
        )

    logger.debug(f"Loaded configuration from {config_file}")
    return config_data


def load_settings(config_file: Path | str | None = None, **overrides: Any) -> DeploykitSettings:
    """Build the settings from the environment, a config file and overrides.

    Overrides whose value is None are ignored so command line options that
    were not given do not mask file or environment values.
    """
    data: dict[str, Any] = {}
    if config_file is not None:
        data.update(load_config_file(Path(config_file)))

    store_overrides = overrides.pop("store", None) or {}
    data.update({k: v for k, v in overrides.items() if v is not None})
    if store_overrides:
        store_data = dict(data.get("store") or {})
        store_data.update({k: v for k, v in store_overrides.items() if v is not None})
        data["store"] = store_data

    try:
        return DeploykitSettings(**data)
    except ValueError as e:
        raise _configuration_error(f"Invalid settings: {e}", "settings", "valid settings", str(data), e) from e
