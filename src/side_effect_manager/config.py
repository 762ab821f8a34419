"""Configuration loading and validation for the side effect managers."""

from __future__ import annotations

from copy import deepcopy
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigValidationError
from .uid import SOUP, UID_LENGTH

import tomllib

LOGGER = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "side-effect-manager"
CONFIG_PATH = CONFIG_DIR / "config.toml"

VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class ManagerConfig(BaseModel):
    """Settings for generated disposer keys."""

    key_length: int = Field(default=UID_LENGTH, ge=8, le=128)
    key_alphabet: str = SOUP

    @field_validator("key_alphabet", mode="before")
    @classmethod
    def _validate_alphabet(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("key_alphabet must be a string.")
        if any(not char.isprintable() or char.isspace() for char in value):
            raise ValueError("key_alphabet must only contain visible characters.")
        if len(set(value)) < 2:
            raise ValueError("key_alphabet needs at least two distinct characters.")
        return value


class LoggingConfig(BaseModel):
    """Logging behavior and output destinations."""

    level: str = "INFO"
    structured: bool = True
    log_to_file: bool = False
    log_file_path: str = "~/.local/state/side-effect-manager/app.log"

    @field_validator("level", mode="before")
    @classmethod
    def _validate_level(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Logging level must be a string.")
        normalized = value.strip().upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(f"Unsupported log level {normalized!r}.")
        return normalized

    @field_validator("log_file_path", mode="before")
    @classmethod
    def _validate_log_file_path(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("log_file_path must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("log_file_path must not be empty.")
        return normalized


class Config(BaseModel):
    """Root configuration model for all sections."""

    manager: ManagerConfig = ManagerConfig()
    logging: LoggingConfig = LoggingConfig()


DEFAULT_CONFIG: dict[str, dict[str, Any]] = Config().model_dump()


def ensure_config_dir(config_dir: Path | None = None) -> Path:
    """Create the config directory if possible and return its path."""
    directory = config_dir or CONFIG_DIR
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.warning(
            "config.dir.unavailable",
            extra={
                "event": "config.dir.unavailable",
                "path": str(directory),
                "error": str(exc),
            },
        )
    return directory


def _overlay(defaults: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Return ``defaults`` with ``overrides`` laid on top, section by section."""
    result: dict[str, Any] = deepcopy(defaults)
    for name, value in overrides.items():
        current = result.get(name)
        if isinstance(current, dict) and isinstance(value, dict):
            result[name] = _overlay(current, value)
        else:
            result[name] = value
    return result


def _read_toml(path: Path) -> dict[str, Any]:
    """Parse ``path``; a missing or unreadable file counts as empty."""
    if not path.exists():
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        LOGGER.warning(
            "config.parse.failed",
            extra={
                "event": "config.parse.failed",
                "path": str(path),
                "error": str(exc),
            },
        )
        return {}


def _validate_config(raw: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Validate ``raw`` and fall back to the defaults when a value is rejected."""
    try:
        return Config.model_validate(raw).model_dump()
    except ValidationError as exc:
        LOGGER.warning(
            "config.invalid",
            extra={
                "event": "config.invalid",
                "fields": [".".join(map(str, err["loc"])) for err in exc.errors()],
                "error": str(exc),
            },
        )
        return deepcopy(DEFAULT_CONFIG)
    except Exception as exc:  # noqa: BLE001 - unexpected model construction failure.
        raise ConfigValidationError(f"Unable to validate configuration: {exc}") from exc


def load_config(config_path: Path | None = None) -> dict[str, dict[str, Any]]:
    """
    Return the effective ``[manager]`` and ``[logging]`` settings.

    Values from the TOML file override the defaults key by key. A file that
    cannot be parsed, or holds an invalid value, yields the defaults.
    """
    raw = _read_toml(config_path or CONFIG_PATH)
    return _validate_config(_overlay(DEFAULT_CONFIG, raw))
