"""Settings for the command line and the ``expand`` API.

Settings can be loaded from a YAML file:

    seed: 42
    deprecation_prefix: "compose_idents!: "
    emit_deprecations: true
    log_level: DEBUG
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .deprecation import DEFAULT_PREFIX


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    seed: int | None = None  # None draws a fresh seed per invocation
    deprecation_prefix: str = DEFAULT_PREFIX
    emit_deprecations: bool = True
    log_level: str = Field(default="WARNING")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {value}")
        return level


def load_settings(filepath: str | Path | None = None) -> Settings:
    """Load settings from a YAML file; defaults when no file is given."""
    if filepath is None:
        return Settings()
    with open(filepath) as f:
        data = yaml.safe_load(f)
    return Settings.model_validate(data or {})


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )
