"""Pydantic V2 schemas for spells and actions as they appear on a sheet.

These are the declarative inputs of the resolution engine: textual
formulas for attacks and damage, the source a spell is cast from, and the
resources an action declares it consumes.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class DamageRoll(BaseModel):
    """One damage or healing component of a spell.

    Attributes:
        formula: Damage formula (may reference variables or ``slotLevel``).
        damage_type: Damage type tag; ``healing`` marks a healing roll.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    formula: str = Field(min_length=1, description="Damage formula")
    damage_type: str = Field(default="", description="Damage type tag")

    @property
    def is_healing(self) -> bool:
        """Check whether this component heals instead of damaging."""
        return self.damage_type.strip().lower() == "healing"


class SpellData(BaseModel):
    """A spell entry on the character sheet.

    Attributes:
        name: Spell name.
        level: Spell level; 0 or None for cantrips.
        description: Rules text.
        source: Where the spell comes from (class, item, feat).
        concentration: Whether the spell is maintained by concentration.
        ritual: Whether the spell can be cast as a ritual.
        attack_roll: Attack formula, ``(none)`` or None when there is no attack.
        damage_rolls: Declared damage and healing components.
        damage: Single damage formula used when no components are declared.
        damage_type: Damage type of the single ``damage`` formula.
        items_consumed: Items consumed when casting (free casting sources).
        cast_without_slot: Sheet flag marking a free cast.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1, description="Spell name")
    level: int | None = Field(default=None, ge=0, le=9, description="Spell level")
    description: str = Field(default="", description="Rules text")
    source: str = Field(default="", description="Spell source")
    concentration: bool = Field(default=False, description="Requires concentration")
    ritual: bool = Field(default=False, description="Ritual tag")
    attack_roll: str | None = Field(default=None, description="Attack formula")
    damage_rolls: tuple[DamageRoll, ...] = Field(default=(), description="Damage components")
    damage: str | None = Field(default=None, description="Fallback damage formula")
    damage_type: str = Field(default="", description="Fallback damage type")
    items_consumed: tuple[str, ...] = Field(default=(), description="Items consumed")
    cast_without_slot: bool = Field(default=False, description="Free cast flag")

    @property
    def is_cantrip(self) -> bool:
        """Check whether the spell is levelless."""
        return not self.level


class ActionCost(BaseModel):
    """A resource an action declares it consumes.

    Attributes:
        stat_name: Display name of the consumed resource.
        variable_name: Variable key of the consumed resource.
        quantity: Amount consumed per use.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    stat_name: str = Field(default="", description="Resource display name")
    variable_name: str | None = Field(default=None, description="Resource variable key")
    quantity: int = Field(default=1, ge=0, description="Amount consumed")


class ActionData(BaseModel):
    """An action or feature usable from the sheet.

    Attributes:
        name: Action name.
        description: Rules text.
        action_type: Economy slot (action, bonus, reaction, ...).
        attack_roll: Attack bonus or formula.
        damage: Damage or healing formula.
        damage_type: Damage type tag (``healing`` and ``temphp`` are special).
        attributes_consumed: Resources consumed by one use.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1, description="Action name")
    description: str = Field(default="", description="Rules text")
    action_type: str = Field(default="action", description="Action economy slot")
    attack_roll: str | None = Field(default=None, description="Attack formula")
    damage: str | None = Field(default=None, description="Damage formula")
    damage_type: str = Field(default="", description="Damage type tag")
    attributes_consumed: tuple[ActionCost, ...] = Field(default=(), description="Consumed resources")


OptionType = Literal["attack", "damage", "healing", "temphp", "cast"]


class ActionOption(BaseModel):
    """A roll button offered for an action or spell.

    Attributes:
        type: What the option rolls (or ``cast`` for a plain cast button).
        label: Button text ('Attack', 'Damage', 'Heal', 'Roll', 'Cast Spell').
        formula: Formula to roll; None for options that roll nothing.
        icon: Icon tag for the presentation layer.
        edge_case_note: Note attached by a matching edge-case rule.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: OptionType = Field(description="Option kind")
    label: str = Field(min_length=1, description="Button text")
    formula: str | None = Field(default=None, description="Formula to roll")
    icon: str = Field(default="", description="Icon tag")
    edge_case_note: str | None = Field(default=None, description="Edge-case note")

    def with_note(self, note: str) -> ActionOption:
        """Return a copy carrying an edge-case note."""
        return self.model_copy(update={"edge_case_note": note})


__all__ = [
    "DamageRoll",
    "SpellData",
    "ActionCost",
    "ActionData",
    "ActionOption",
    "OptionType",
]
