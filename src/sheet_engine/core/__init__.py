"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        SheetEngineError: Base exception for all engine errors.
        MalformedExpressionError: Evaluator input could not be parsed.
        ResourceInvariantError: A resource change would break 0 <= current <= max.

    Configuration:
        Settings: Main settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up engine logging.
        get_logger: Get a configured logger instance.
        character_context: Bind the character being resolved to log entries.
        clear_context: Clear logging context.
"""

from __future__ import annotations

from sheet_engine.core.config import (
    EngineSettings,
    LoggingSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from sheet_engine.core.exceptions import (
    ConfigurationError,
    DiceRollError,
    FormulaError,
    MalformedExpressionError,
    ResolutionError,
    ResourceInvariantError,
    SheetEngineError,
    UnknownEffectError,
    UnresolvedVariableError,
    ValidationError,
)
from sheet_engine.core.logging import (
    character_context,
    clear_context,
    configure_logging,
    get_logger,
)


__all__ = [
    # Config
    "EngineSettings",
    "LoggingSettings",
    "Settings",
    "clear_settings_cache",
    "get_settings",
    # Exceptions
    "ConfigurationError",
    "DiceRollError",
    "FormulaError",
    "MalformedExpressionError",
    "ResolutionError",
    "ResourceInvariantError",
    "SheetEngineError",
    "UnknownEffectError",
    "UnresolvedVariableError",
    "ValidationError",
    # Logging
    "character_context",
    "clear_context",
    "configure_logging",
    "get_logger",
]
