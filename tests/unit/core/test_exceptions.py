"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

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


class TestSheetEngineError:
    """Tests for the base SheetEngineError exception."""

    def test_basic_message(self) -> None:
        """Test exception with basic message."""
        exc = SheetEngineError("Test error message")
        assert exc.message == "Test error message"
        assert exc.details == {}
        assert str(exc) == "Test error message"

    def test_with_details(self) -> None:
        """Test exception with additional details."""
        exc = SheetEngineError(
            "Test error",
            details={"key": "value", "count": 42},
        )
        assert exc.details == {"key": "value", "count": 42}
        assert "key='value'" in str(exc)
        assert "count=42" in str(exc)

    def test_repr(self) -> None:
        """Test exception repr output."""
        exc = SheetEngineError("Test", details={"x": 1})
        repr_str = repr(exc)
        assert "SheetEngineError" in repr_str
        assert "Test" in repr_str
        assert "x" in repr_str


class TestFormulaExceptions:
    """Tests for formula-related exceptions."""

    def test_malformed_expression_context(self) -> None:
        """Test MalformedExpressionError records expression, position and character."""
        exc = MalformedExpressionError(
            "Unexpected character",
            expression="2+$",
            position=2,
            character="$",
        )
        assert exc.details["expression"] == "2+$"
        assert exc.details["position"] == 2
        assert exc.details["character"] == "$"

    def test_position_zero_is_kept(self) -> None:
        """Test a zero position is recorded rather than dropped."""
        exc = MalformedExpressionError("Bad", position=0)
        assert exc.details["position"] == 0

    def test_unresolved_variable(self) -> None:
        """Test UnresolvedVariableError carries the variable name."""
        exc = UnresolvedVariableError("Variable unresolved", variable="rogueLevel", expression="[rogueLevel]")
        assert exc.details == {"variable": "rogueLevel", "expression": "[rogueLevel]"}

    def test_hierarchy(self) -> None:
        """Test formula errors derive from FormulaError."""
        assert issubclass(MalformedExpressionError, FormulaError)
        assert issubclass(UnresolvedVariableError, FormulaError)
        assert issubclass(FormulaError, SheetEngineError)


class TestResolutionExceptions:
    """Tests for resolution-related exceptions."""

    def test_resource_invariant_details(self) -> None:
        """Test ResourceInvariantError records the rejected change."""
        exc = ResourceInvariantError(
            "Out of bounds",
            resource="level1SpellSlots",
            current=0,
            maximum=4,
            delta=-1,
        )
        assert exc.details == {
            "resource": "level1SpellSlots",
            "current": 0,
            "maximum": 4,
            "delta": -1,
        }

    def test_unknown_effect(self) -> None:
        """Test UnknownEffectError carries the effect name."""
        exc = UnknownEffectError("Not active", effect_name="Guidance")
        assert exc.details["effect_name"] == "Guidance"
        assert isinstance(exc, ResolutionError)

    def test_dice_roll_error(self) -> None:
        """Test DiceRollError carries the expression."""
        exc = DiceRollError("Invalid", expression="1d")
        assert exc.details["expression"] == "1d"
        assert isinstance(exc, ResolutionError)


class TestConfigurationAndValidation:
    """Tests for configuration and validation exceptions."""

    def test_configuration_error_key(self) -> None:
        """Test ConfigurationError with config key."""
        exc = ConfigurationError("Bad value", config_key="engine.default_ruleset")
        assert exc.details["config_key"] == "engine.default_ruleset"

    def test_validation_error_fields(self) -> None:
        """Test ValidationError with field name and invalid value."""
        exc = ValidationError("Invalid slot", field_name="selected_slot", invalid_value="pact:x")
        assert exc.details["field_name"] == "selected_slot"
        assert exc.details["invalid_value"] == "pact:x"

    def test_catch_by_base(self) -> None:
        """Test every engine error can be caught by the base class."""
        with pytest.raises(SheetEngineError):
            raise ValidationError("Invalid")
