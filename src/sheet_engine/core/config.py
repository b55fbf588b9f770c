"""Configuration management for the sheet engine.

Centralized configuration using pydantic-settings, supporting environment
variables, .env files, and runtime overrides.

Example:
    >>> from sheet_engine.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.engine.default_ruleset
    '2014'

Environment Variables:
    SHEET_ENGINE_DEBUG: Log at DEBUG level regardless of SHEET_ENGINE_LOG_LEVEL
    SHEET_ENGINE_ENGINE_DEFAULT_RULESET: Ruleset assumed when none is detected
    SHEET_ENGINE_ENGINE_MAX_SIMPLIFY_ITERATIONS: Formula simplification passes
    SHEET_ENGINE_ENGINE_DEFAULT_PACT_LEVEL: Pact slot level when none is tracked
    SHEET_ENGINE_ENGINE_DICE_SEED: Optional seed for reproducible rolls
    SHEET_ENGINE_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    SHEET_ENGINE_LOG_JSON_FORMAT: Emit JSON log lines
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from sheet_engine.core.exceptions import ConfigurationError


class EngineSettings(BaseSettings):
    """Configuration for rules resolution behaviour.

    Attributes:
        default_ruleset: Ruleset assumed when no 2024 indicator is found.
        max_simplify_iterations: Upper bound on formula simplification passes.
        default_pact_level: Effective pact slot level when a character has pact
            slots but no tracked level.
        dice_seed: Optional random seed for the dice roller.
    """

    model_config = SettingsConfigDict(
        env_prefix="SHEET_ENGINE_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_ruleset: Literal["2014", "2024"] = Field(
        default="2014",
        description="Ruleset assumed when none is detected",
    )
    max_simplify_iterations: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum formula simplification passes",
    )
    default_pact_level: int = Field(
        default=5,
        ge=1,
        le=9,
        description="Pact slot level used when none is tracked",
    )
    dice_seed: int | None = Field(
        default=None,
        description="Optional seed for reproducible dice rolls",
    )


class LoggingSettings(BaseSettings):
    """Configuration for structured logging.

    Attributes:
        level: Logging level.
        json_format: Emit JSON instead of console output.
    """

    model_config = SettingsConfigDict(
        env_prefix="SHEET_ENGINE_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_format: bool = Field(
        default=False,
        description="Emit JSON log lines",
    )


class Settings(BaseSettings):
    """Main settings aggregating all configuration domains.

    Attributes:
        debug: Log every resolution step at DEBUG level.
        engine: Rules resolution settings.
        logging: Logging settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="SHEET_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    debug: bool = Field(
        default=False,
        description="Log at DEBUG level regardless of the configured level",
    )

    engine: EngineSettings = Field(default_factory=EngineSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the settings singleton.

    Returns:
        The cached Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.

    Example:
        >>> settings = get_settings()
        >>> settings.engine.max_simplify_iterations
        10
    """
    try:
        return Settings()
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load engine settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access.

    Example:
        >>> clear_settings_cache()
        >>> settings = get_settings()  # Reloads from environment
    """
    get_settings.cache_clear()


__all__ = [
    "EngineSettings",
    "LoggingSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
