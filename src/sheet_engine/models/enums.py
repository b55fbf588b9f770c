"""Enumeration types for the sheet engine.

These enums are the closed vocabularies the engine dispatches on: ability
scores, rulesets, advantage state, roll kinds and categories, rule table
categories, and effect kinds.
"""

from __future__ import annotations

from enum import StrEnum


class Ability(StrEnum):
    """D&D 5E ability scores."""

    STR = "strength"
    DEX = "dexterity"
    CON = "constitution"
    INT = "intelligence"
    WIS = "wisdom"
    CHA = "charisma"

    @property
    def full_name(self) -> str:
        """Get the full name of the ability.

        Returns:
            Full ability name (e.g., 'Strength' for STR).
        """
        return self.value.capitalize()

    @classmethod
    def from_name(cls, name: str) -> Ability | None:
        """Look up an ability by full name or three-letter abbreviation.

        Args:
            name: Ability name in any case ('wisdom', 'WIS').

        Returns:
            The matching Ability, or None if the name is not an ability.
        """
        key = name.strip().lower()
        for ability in cls:
            if key in (ability.value, ability.name.lower()):
                return ability
        return None


class Ruleset(StrEnum):
    """Edition of the rules a character sheet is built on."""

    R2014 = "2014"
    R2024 = "2024"


class AdvantageState(StrEnum):
    """Tri-state advantage flag consumed by the next d20 roll."""

    NORMAL = "normal"
    ADVANTAGE = "advantage"
    DISADVANTAGE = "disadvantage"


class RollKind(StrEnum):
    """Kind of a resolved roll request."""

    ATTACK = "attack"
    DAMAGE = "damage"
    HEALING = "healing"
    TEMP_HP = "temphp"
    SAVE = "save"
    CHECK = "check"


class RollCategory(StrEnum):
    """Semantic category of a roll, inferred from its label."""

    ATTACK = "attack"
    SAVE = "save"
    SKILL = "skill"
    DAMAGE = "damage"


class RuleCategory(StrEnum):
    """The four edge-case rule tables."""

    SPELL = "spell"
    CLASS_FEATURE = "class_feature"
    RACIAL = "racial"
    COMBAT_MANEUVER = "combat_maneuver"


class EffectKind(StrEnum):
    """Whether an active effect is a buff or a condition."""

    BUFF = "buff"
    CONDITION = "condition"


class ResourceKind(StrEnum):
    """Counter targeted by a resource change."""

    SPELL_SLOT = "spell_slot"
    PACT_SLOT = "pact_slot"
    RESOURCE = "resource"


__all__ = [
    "Ability",
    "Ruleset",
    "AdvantageState",
    "RollKind",
    "RollCategory",
    "RuleCategory",
    "EffectKind",
    "ResourceKind",
]
