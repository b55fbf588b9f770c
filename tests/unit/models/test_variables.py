"""Tests for the variable bag value type."""

from __future__ import annotations

import pytest

from sheet_engine.core.exceptions import ValidationError
from sheet_engine.models import BoolVar, NumberVar, TextVar, coerce_variable, render_number
from sheet_engine.models.variables import render_value


class TestCoerceVariable:
    """Tests for normalizing raw variable bag entries."""

    def test_plain_number(self) -> None:
        """Numbers become NumberVar."""
        var = coerce_variable(5)
        assert isinstance(var, NumberVar)
        assert var.python_value == 5

    def test_float_keeps_fraction(self) -> None:
        """Non-integral floats stay floats."""
        assert coerce_variable(2.5).python_value == 2.5

    def test_bool_is_not_number(self) -> None:
        """Booleans become BoolVar even though bool subclasses int."""
        var = coerce_variable(True)
        assert isinstance(var, BoolVar)
        assert var.python_value is True

    def test_text(self) -> None:
        """Strings become TextVar."""
        var = coerce_variable("Evocation")
        assert isinstance(var, TextVar)
        assert var.python_value == "Evocation"

    def test_value_wrapper(self) -> None:
        """{"value": ...} wrappers are unwrapped."""
        assert coerce_variable({"value": 3}) == NumberVar(value=3)

    def test_tagged_mapping(self) -> None:
        """Mappings tagged with a kind are validated directly."""
        assert coerce_variable({"kind": "text", "value": "x"}) == TextVar(value="x")

    def test_existing_variable_passes_through(self) -> None:
        """Variable instances are returned unchanged."""
        var = BoolVar(value=False)
        assert coerce_variable(var) is var

    def test_unsupported_mapping(self) -> None:
        """Mappings without a value are rejected."""
        with pytest.raises(ValidationError):
            coerce_variable({"total": 3})

    def test_unsupported_value(self) -> None:
        """Lists are not variable values."""
        with pytest.raises(ValidationError):
            coerce_variable([1, 2])


class TestRendering:
    """Tests for splicing values into formulas."""

    def test_integral_float(self) -> None:
        """Integral floats lose the trailing .0."""
        assert render_number(3.0) == "3"

    def test_fraction(self) -> None:
        """Fractions are kept."""
        assert render_number(2.5) == "2.5"

    def test_bool_lowercase(self) -> None:
        """Booleans render lowercase."""
        assert render_value(True) == "true"
        assert render_value(False) == "false"

    def test_text_verbatim(self) -> None:
        """Text renders as itself."""
        assert render_value("fire") == "fire"
