"""Tests for structured logging helpers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest
import structlog

from sheet_engine.core.logging import (
    MAX_LOGGED_FORMULA_LENGTH,
    add_engine_context,
    character_context,
    clear_context,
    configure_logging,
    truncate_formulas,
)
from sheet_engine.engine import resolve_cast
from sheet_engine.models import CharacterState


if TYPE_CHECKING:
    from collections.abc import Generator

    from sheet_engine.models import SpellData


@pytest.fixture(autouse=True)
def clean_context() -> Generator[None, None, None]:
    """Clear bound context around each test."""
    clear_context()
    yield
    clear_context()


class TestProcessors:
    """Tests for the engine's structlog processors."""

    def test_add_engine_context(self) -> None:
        """Every event is tagged with the engine name."""
        event = add_engine_context(None, "info", {"event": "Cast resolved"})

        assert event == {"event": "Cast resolved", "app": "sheet_engine"}

    def test_long_formula_truncated(self) -> None:
        """Formulas longer than the limit are shortened."""
        formula = "1d6+" * 60

        event = truncate_formulas(None, "debug", {"event": "Formula resolved", "formula": formula})

        assert len(event["formula"]) == MAX_LOGGED_FORMULA_LENGTH
        assert event["formula"].endswith("...")

    def test_short_values_untouched(self) -> None:
        """Short formulas and non-string values are left alone."""
        event = {"event": "Roll prepared", "formula": "1d20+5", "result": 7}

        assert truncate_formulas(None, "debug", dict(event)) == event


class TestCharacterContext:
    """Tests for binding the character being resolved."""

    def test_binds_character(self) -> None:
        """Name and class are bound inside the block only."""
        state = CharacterState(name="Elara", class_name="Wizard 5")

        with character_context(state, spell="Fireball"):
            assert structlog.contextvars.get_contextvars() == {
                "character": "Elara",
                "class_name": "Wizard 5",
                "spell": "Fireball",
            }

        assert structlog.contextvars.get_contextvars() == {}

    def test_without_state(self) -> None:
        """Without a character only the extra values are bound."""
        with character_context(None, action="Claw"):
            assert structlog.contextvars.get_contextvars() == {"action": "Claw"}

    def test_restored_after_error(self) -> None:
        """Bindings are removed even when resolution raises."""
        with pytest.raises(RuntimeError), character_context(CharacterState(name="Elara")):
            raise RuntimeError("boom")

        assert structlog.contextvars.get_contextvars() == {}

    def test_resolve_cast_leaves_no_context(self, wizard_state: CharacterState, fire_bolt: SpellData) -> None:
        """Casting binds the character only for the duration of the call."""
        resolve_cast(fire_bolt, wizard_state)

        assert structlog.contextvars.get_contextvars() == {}


@pytest.fixture
def restore_logging() -> Generator[None, None, None]:
    """Restore structlog and root logger state changed by configure_logging."""
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.usefixtures("restore_logging")
class TestConfigureLogging:
    """Tests for configuring structlog from settings."""

    def test_defaults_from_settings(self, mock_env_vars: dict[str, str]) -> None:
        """The level comes from SHEET_ENGINE_LOG_LEVEL when not passed."""
        configure_logging()

        assert logging.getLogger().level == logging.DEBUG
        processors = structlog.get_config()["processors"]
        assert add_engine_context in processors
        assert truncate_formulas in processors
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_json_renderer(self) -> None:
        """JSON output ends the chain with the JSON renderer."""
        configure_logging(level="WARNING", json_format=True)

        assert logging.getLogger().level == logging.WARNING
        assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)

    def test_debug_forces_debug_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """SHEET_ENGINE_DEBUG overrides a quieter configured level."""
        monkeypatch.setenv("SHEET_ENGINE_DEBUG", "true")
        monkeypatch.setenv("SHEET_ENGINE_LOG_LEVEL", "ERROR")

        configure_logging()

        assert logging.getLogger().level == logging.DEBUG

    def test_explicit_level_wins_over_debug(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A level passed by the host is used even in debug mode."""
        monkeypatch.setenv("SHEET_ENGINE_DEBUG", "true")

        configure_logging(level="INFO")

        assert logging.getLogger().level == logging.INFO
