"""Pydantic V2 schemas for the character snapshot the engine reads.

CharacterState is owned by the surrounding application. The engine only
reads it; resolution returns ResourceChange deltas that the caller applies
(``CharacterState.with_changes``) and persists.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sheet_engine.core.constants import MAX_SLOT_LEVEL, MIN_SLOT_LEVEL
from sheet_engine.core.exceptions import ResourceInvariantError
from sheet_engine.models.actions import SpellData
from sheet_engine.models.enums import Ability, ResourceKind
from sheet_engine.models.variables import NumberVar, Variable, coerce_variable


PACT_LEVEL_VARIABLES = (
    "pactMagicSlotLevel",
    "pactSlotLevelVisible",
    "pactSlotLevel",
    "slotLevel",
)
"""Variable bag keys consulted, in order, for the pact slot level."""


def slot_variable_name(level: int) -> str:
    """Variable key of the ordinary slot counter for a level.

    Args:
        level: Slot level (1-9).

    Returns:
        Key such as ``level3SpellSlots``.
    """
    return f"level{level}SpellSlots"


PACT_SLOT_VARIABLE = "pactMagicSlots"
"""Variable key of the pact-magic slot counter."""


class ResourceChange(BaseModel):
    """A resolved delta to apply to one counter.

    Attributes:
        kind: Which family of counter is targeted.
        key: Slot variable key or resource key.
        delta: Signed change (negative to spend).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: ResourceKind = Field(description="Counter family")
    key: str = Field(min_length=1, description="Counter key")
    delta: int = Field(description="Signed change")


ResourceCost = ResourceChange
"""A resolved deduction, expressed as a negative ResourceChange."""


class Resource(BaseModel):
    """A typed class resource such as Ki or Sorcery Points.

    Attributes:
        name: Display name.
        current: Current amount.
        max: Maximum amount.
        variable_name: Optional variable bag key.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1, description="Resource name")
    current: int = Field(ge=0, description="Current amount")
    max: int = Field(ge=0, description="Maximum amount")
    variable_name: str | None = Field(default=None, description="Variable key")

    @model_validator(mode="after")
    def validate_bounds(self) -> Resource:
        """Ensure current never exceeds max.

        Returns:
            Self if validation passes.

        Raises:
            ValueError: If current > max.
        """
        if self.current > self.max:
            raise ValueError(f"current ({self.current}) exceeds max ({self.max}) for {self.name}")
        return self

    @property
    def key(self) -> str:
        """Key used to address this resource in a ResourceChange."""
        return self.variable_name or self.name


class SpellSlots(BaseModel):
    """Ordinary spell slot counters plus the pact-magic counter.

    Attributes:
        current: Remaining slots per level (1-9).
        maximum: Maximum slots per level (1-9).
        pact_current: Remaining pact-magic slots.
        pact_max: Maximum pact-magic slots.
        pact_level: Tracked pact slot level, if the sheet records one.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    current: dict[int, int] = Field(default_factory=dict, description="Remaining slots per level")
    maximum: dict[int, int] = Field(default_factory=dict, description="Maximum slots per level")
    pact_current: int = Field(default=0, ge=0, description="Remaining pact slots")
    pact_max: int = Field(default=0, ge=0, description="Maximum pact slots")
    pact_level: int | None = Field(default=None, ge=1, le=9, description="Pact slot level")

    @model_validator(mode="after")
    def validate_counters(self) -> SpellSlots:
        """Ensure every counter respects 0 <= current <= max.

        Returns:
            Self if validation passes.

        Raises:
            ValueError: If a level is out of range or a counter is out of bounds.
        """
        for level in set(self.current) | set(self.maximum):
            if not MIN_SLOT_LEVEL <= level <= MAX_SLOT_LEVEL:
                raise ValueError(f"slot level {level} outside 1-9")
            current = self.current.get(level, 0)
            if current < 0 or current > self.maximum.get(level, 0):
                raise ValueError(f"level {level} slots {current} outside 0-{self.maximum.get(level, 0)}")
        if self.pact_current > self.pact_max:
            raise ValueError(f"pact slots {self.pact_current} exceed max {self.pact_max}")
        return self

    def available(self, level: int) -> int:
        """Remaining ordinary slots at a level."""
        return self.current.get(level, 0)

    def max_for(self, level: int) -> int:
        """Maximum ordinary slots at a level."""
        return self.maximum.get(level, 0)

    @property
    def has_pact_magic(self) -> bool:
        """Check whether the character has any pact slots."""
        return self.pact_max > 0

    def effective_pact_level(
        self,
        variables: dict[str, Variable],
        *,
        default_level: int = 5,
    ) -> int | None:
        """Determine the level pact slots are cast at.

        The tracked ``pact_level`` wins, then the first numeric entry of
        PACT_LEVEL_VARIABLES in the variable bag. A character with pact
        slots but no tracked level gets ``default_level``.

        Args:
            variables: The character's variable bag.
            default_level: Level assumed when none is tracked.

        Returns:
            The effective pact level, or None without pact magic.
        """
        if self.pact_level:
            return self.pact_level
        for name in PACT_LEVEL_VARIABLES:
            var = variables.get(name)
            if isinstance(var, NumberVar) and var.value > 0:
                return int(var.value)
        if self.has_pact_magic:
            return default_level
        return None


class Feature(BaseModel):
    """A class, racial or feat feature listed on the sheet."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1, description="Feature name")
    description: str = Field(default="", description="Rules text")


def _default_scores() -> dict[Ability, int]:
    return {ability: 10 for ability in Ability}


class CharacterState(BaseModel):
    """Authoritative character snapshot consumed by the engine.

    Attributes:
        name: Character name.
        class_name: Class (or multiclass) description, e.g. 'Wizard 5'.
        level: Total character level.
        ability_scores: Score per ability.
        ability_modifiers: Modifier per ability; derived from scores when omitted.
        proficiency_bonus: Proficiency bonus.
        variables: Flat variable bag referenced by formulas.
        resources: Typed class resources.
        spell_slots: Spell slot counters.
        features: Features on the sheet.
        spells: Spells on the sheet.
        armor_class: Base armor class, if recorded.

    Example:
        >>> state = CharacterState(name="Elara", class_name="Wizard", ability_scores={"intelligence": 16})
        >>> state.modifier(Ability.INT)
        3
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(default="Character", min_length=1, description="Character name")
    class_name: str = Field(default="", description="Class description")
    level: int = Field(default=1, ge=1, le=20, description="Character level")
    ability_scores: dict[Ability, int] = Field(default_factory=_default_scores, description="Ability scores")
    ability_modifiers: dict[Ability, int] = Field(default_factory=dict, description="Ability modifiers")
    proficiency_bonus: int = Field(default=2, ge=0, description="Proficiency bonus")
    variables: dict[str, Variable] = Field(default_factory=dict, description="Variable bag")
    resources: tuple[Resource, ...] = Field(default=(), description="Class resources")
    spell_slots: SpellSlots = Field(default_factory=SpellSlots, description="Spell slots")
    features: tuple[Feature, ...] = Field(default=(), description="Features")
    spells: tuple[SpellData, ...] = Field(default=(), description="Spells")
    armor_class: int | None = Field(default=None, ge=0, description="Base armor class")

    @model_validator(mode="before")
    @classmethod
    def derive_modifiers(cls, data: Any) -> Any:
        """Fill in modifiers for abilities whose modifier was omitted."""
        if not isinstance(data, dict):
            return data
        scores = data.get("ability_scores") or _default_scores()
        modifiers = dict(data.get("ability_modifiers") or {})
        known = {str(key).lower() for key in modifiers}
        for ability, score in scores.items():
            if str(ability).lower() not in known:
                modifiers[str(ability).lower()] = (int(score) - 10) // 2
        return {**data, "ability_scores": scores, "ability_modifiers": modifiers}

    @field_validator("variables", mode="before")
    @classmethod
    def coerce_variables(cls, value: Any) -> Any:
        """Normalize raw variable bag entries, dropping null values."""
        if not isinstance(value, dict):
            return value
        return {name: coerce_variable(raw) for name, raw in value.items() if raw is not None}

    def modifier(self, ability: Ability) -> int | None:
        """Get an ability modifier."""
        return self.ability_modifiers.get(ability)

    def score(self, ability: Ability) -> int | None:
        """Get an ability score."""
        return self.ability_scores.get(ability)

    def variable(self, name: str) -> Variable | None:
        """Get a raw variable bag entry."""
        return self.variables.get(name)

    def number(self, name: str) -> int | float | None:
        """Get a numeric variable, or None if missing or not numeric."""
        var = self.variables.get(name)
        if isinstance(var, NumberVar):
            return var.python_value
        return None

    def find_resource(self, key: str) -> Resource | None:
        """Find a resource by variable key or (case-insensitive) name.

        Args:
            key: Variable key or display name.

        Returns:
            The matching resource, or None.
        """
        for resource in self.resources:
            if resource.variable_name == key:
                return resource
        lowered = key.lower()
        for resource in self.resources:
            if resource.name.lower() == lowered:
                return resource
        return None

    def with_changes(self, changes: list[ResourceChange] | tuple[ResourceChange, ...]) -> CharacterState:
        """Apply resource deltas atomically, returning a new snapshot.

        Every change is checked before any is applied. A change that would
        take a counter below zero or above its maximum rejects the whole
        batch; nothing is clamped.

        Args:
            changes: Deltas to apply.

        Returns:
            A new CharacterState with the deltas applied.

        Raises:
            ResourceInvariantError: If any counter would leave 0..max, or a
                key does not name a known counter.
        """
        slot_current = dict(self.spell_slots.current)
        pact_current = self.spell_slots.pact_current
        resource_current = {resource.key: resource.current for resource in self.resources}

        for change in changes:
            if change.kind is ResourceKind.SPELL_SLOT:
                level = _slot_level_from_key(change.key)
                maximum = self.spell_slots.max_for(level)
                current = slot_current.get(level, 0)
                _check_bounds(change, current, maximum)
                slot_current[level] = current + change.delta
            elif change.kind is ResourceKind.PACT_SLOT:
                _check_bounds(change, pact_current, self.spell_slots.pact_max)
                pact_current += change.delta
            else:
                resource = self.find_resource(change.key)
                if resource is None:
                    raise ResourceInvariantError(
                        f"Unknown resource {change.key!r}",
                        resource=change.key,
                        delta=change.delta,
                    )
                current = resource_current[resource.key]
                _check_bounds(change, current, resource.max)
                resource_current[resource.key] = current + change.delta

        slots = self.spell_slots.model_copy(
            update={"current": slot_current, "pact_current": pact_current}
        )
        resources = tuple(
            resource.model_copy(update={"current": resource_current[resource.key]})
            for resource in self.resources
        )
        return self.model_copy(update={"spell_slots": slots, "resources": resources})


def _slot_level_from_key(key: str) -> int:
    for level in range(MIN_SLOT_LEVEL, MAX_SLOT_LEVEL + 1):
        if key == slot_variable_name(level):
            return level
    raise ResourceInvariantError(f"Unknown spell slot counter {key!r}", resource=key)


def _check_bounds(change: ResourceChange, current: int, maximum: int) -> None:
    new_value = current + change.delta
    if new_value < 0 or new_value > maximum:
        raise ResourceInvariantError(
            f"Change would move {change.key} outside 0..{maximum}",
            resource=change.key,
            current=current,
            maximum=maximum,
            delta=change.delta,
        )


__all__ = [
    "PACT_LEVEL_VARIABLES",
    "PACT_SLOT_VARIABLE",
    "slot_variable_name",
    "ResourceChange",
    "ResourceCost",
    "Resource",
    "SpellSlots",
    "Feature",
    "CharacterState",
]
