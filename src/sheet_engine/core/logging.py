"""Structured logging for the sheet engine.

The engine performs no I/O. Its only side channel is structlog events
describing how formulas were resolved, which effects were applied and
which resource deltas were committed. Every event produced inside
``character_context`` carries the character it concerns.

Example:
    >>> from sheet_engine.core.logging import character_context, get_logger
    >>> logger = get_logger(__name__)
    >>> with character_context(state):
    ...     logger.debug("Formula resolved", formula="1d8+(#spellList.abilityMod)", result="1d8+3")
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor


if TYPE_CHECKING:
    from structlog.types import EventDict, WrappedLogger

    from sheet_engine.models.character import CharacterState


# Keys whose values are sheet formulas or free text and may be very long
FORMULA_KEYS: tuple[str, ...] = ("formula", "original", "resolved", "result")
MAX_LOGGED_FORMULA_LENGTH = 120


# =============================================================================
# Processors
# =============================================================================


def add_engine_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Tag the event with the engine name."""
    event_dict.setdefault("app", "sheet_engine")
    return event_dict


def truncate_formulas(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Shorten formula values pasted from long spell descriptions.

    Args:
        logger: The wrapped logger instance.
        method_name: Name of the logging method called.
        event_dict: The event dictionary to modify.

    Returns:
        The event dictionary with long formula strings cut to
        MAX_LOGGED_FORMULA_LENGTH characters.
    """
    for key in FORMULA_KEYS:
        value = event_dict.get(key)
        if isinstance(value, str) and len(value) > MAX_LOGGED_FORMULA_LENGTH:
            event_dict[key] = value[: MAX_LOGGED_FORMULA_LENGTH - 3] + "..."
    return event_dict


# =============================================================================
# Configuration
# =============================================================================


def configure_logging(
    *,
    level: str | None = None,
    json_format: bool | None = None,
) -> None:
    """Configure engine-wide logging.

    Arguments left as None are read from settings, so hosts usually call
    this with no arguments and control it through the ``SHEET_ENGINE_LOG_*``
    environment variables. ``SHEET_ENGINE_DEBUG`` forces the DEBUG level
    unless a level is passed explicitly.

    Args:
        level: The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, render events as JSON lines.

    Example:
        >>> configure_logging(level="DEBUG")
    """
    from sheet_engine.core.config import get_settings

    settings = get_settings()
    if level is None:
        level = "DEBUG" if settings.debug else settings.logging.level
    if json_format is None:
        json_format = settings.logging.json_format
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_engine_context,
        truncate_formulas,
        structlog.processors.StackInfoRenderer(),
    ]
    if json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # d20 logs through the standard library
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        level=numeric_level,
        stream=sys.stdout,
        force=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structlog logger, typically with ``__name__``."""
    return structlog.get_logger(name)


# =============================================================================
# Context
# =============================================================================


@contextmanager
def character_context(state: CharacterState | None, **extra: Any) -> Iterator[None]:
    """Bind the character being resolved to every event in the block.

    Nested blocks for the same character rebind the same values, and the
    previous bindings are restored on exit.

    Args:
        state: Character snapshot, or None to bind only ``extra``.
        **extra: Additional key-value pairs to bind.

    Example:
        >>> with character_context(state, spell="Fireball"):
        ...     resolution = resolve_cast(fireball, state)
    """
    bound = dict(extra)
    if state is not None:
        bound["character"] = state.name
        if state.class_name:
            bound["class_name"] = state.class_name
    with structlog.contextvars.bound_contextvars(**bound):
        yield


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


__all__ = [
    "MAX_LOGGED_FORMULA_LENGTH",
    "add_engine_context",
    "character_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "truncate_formulas",
]
