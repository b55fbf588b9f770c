"""The variable bag value type.

Character records carry a flat, string-keyed bag of derived values that
formulas reference by bare name. Raw records mix plain numbers, booleans,
strings and ``{"value": ...}`` wrappers; every entry is normalized once into
the ``Variable`` sum type so the resolver never has to sniff shapes.

Example:
    >>> coerce_variable({"value": 3})
    NumberVar(kind='number', value=3.0)
    >>> render_number(3.0)
    '3'
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from sheet_engine.core.exceptions import ValidationError


class NumberVar(BaseModel):
    """A numeric variable."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["number"] = "number"
    value: float = Field(description="Numeric value")

    @property
    def python_value(self) -> int | float:
        """Value as an int when integral, otherwise a float."""
        return int(self.value) if self.value.is_integer() else self.value


class BoolVar(BaseModel):
    """A boolean flag variable."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["bool"] = "bool"
    value: bool = Field(description="Flag value")

    @property
    def python_value(self) -> bool:
        """The flag itself."""
        return self.value


class TextVar(BaseModel):
    """A free-text variable."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["text"] = "text"
    value: str = Field(description="Text value")

    @property
    def python_value(self) -> str:
        """The text itself."""
        return self.value


Variable = Annotated[NumberVar | BoolVar | TextVar, Field(discriminator="kind")]
"""A single entry of the variable bag."""


def coerce_variable(raw: Any) -> NumberVar | BoolVar | TextVar:
    """Normalize a raw variable bag entry into a Variable.

    Args:
        raw: A number, boolean, string, ``{"value": ...}`` wrapper,
            ``{"kind": ..., "value": ...}`` mapping or Variable instance.

    Returns:
        The normalized Variable.

    Raises:
        ValidationError: If the value has no supported shape.
    """
    if isinstance(raw, (NumberVar, BoolVar, TextVar)):
        return raw
    if isinstance(raw, dict):
        if "kind" in raw:
            kind = raw["kind"]
            if kind == "number":
                return NumberVar.model_validate(raw)
            if kind == "bool":
                return BoolVar.model_validate(raw)
            if kind == "text":
                return TextVar.model_validate(raw)
        if "value" in raw:
            return coerce_variable(raw["value"])
        raise ValidationError("Unsupported variable mapping", invalid_value=raw)
    # bool is a subclass of int, so it must be checked first
    if isinstance(raw, bool):
        return BoolVar(value=raw)
    if isinstance(raw, (int, float)):
        return NumberVar(value=float(raw))
    if isinstance(raw, str):
        return TextVar(value=raw)
    raise ValidationError("Unsupported variable value", invalid_value=raw)


def render_number(value: int | float) -> str:
    """Render a number the way it is spliced into a formula.

    Args:
        value: Number to render.

    Returns:
        The number without a trailing ``.0`` when integral.
    """
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def render_value(value: int | float | bool | str) -> str:
    """Render any resolved variable value as formula text.

    Args:
        value: Resolved value.

    Returns:
        Text form of the value (booleans render lowercase).
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return render_number(value)
    return value


__all__ = [
    "NumberVar",
    "BoolVar",
    "TextVar",
    "Variable",
    "coerce_variable",
    "render_number",
    "render_value",
]
