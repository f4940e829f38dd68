"""Engine configuration loaded from environment variables."""

from __future__ import annotations

import logging
import re
from enum import Enum

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from schemadiff.models.diff import parse_change_types
from schemadiff.models.options import DEFAULT_REFERENCE_ID_PREFIX, DEFAULT_TAG_PATTERN

logger = logging.getLogger(__name__)


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class Settings(BaseSettings):
    """Settings loaded from environment variables with SCHEMADIFF_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="SCHEMADIFF_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    debug: bool = False

    # Diff filters
    diff_element_types: str = ""
    tag_pattern: str = DEFAULT_TAG_PATTERN
    tags_to_split: str | None = None

    # Reconciliation
    reference_id_prefix: str = DEFAULT_REFERENCE_ID_PREFIX

    # Execution
    max_workers: int = 1

    # Logging
    log_level: LogLevel = LogLevel.WARNING
    structured_logging: bool = False

    @field_validator("diff_element_types")
    @classmethod
    def _known_types(cls, v: str) -> str:
        parse_change_types(v)
        return v

    @field_validator("tag_pattern", "tags_to_split")
    @classmethod
    def _valid_regex(cls, v: str | None) -> str | None:
        if v:
            try:
                re.compile(v)
            except re.error as exc:
                raise ValueError(f"invalid regular expression '{v}': {exc}") from exc
        return v

    @field_validator("max_workers")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_workers must be at least 1")
        return v


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment, with optional overrides for testing."""
    settings = Settings(**overrides)  # type: ignore[arg-type]

    if settings.debug:
        logger.info("Loaded settings: %s", settings.model_dump())

    return settings
