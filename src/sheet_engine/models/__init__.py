"""Pydantic V2 schemas for the sheet engine.

Submodules:
    enums: Closed vocabularies (Ability, Ruleset, AdvantageState, RollKind, ...)
    variables: The Variable sum type of the variable bag
    actions: Spell and action entries (SpellData, ActionData)
    character: The character snapshot (CharacterState, Resource, SpellSlots)
    effects: Buff and condition catalog
    session: Per-character situational state (SessionState)

Example:
    >>> from sheet_engine.models import CharacterState, SessionState
    >>> state = CharacterState(name="Elara", class_name="Wizard", variables={"wizardLevel": 5})
    >>> state.number("wizardLevel")
    5
"""

from __future__ import annotations

# =============================================================================
# Enumerations
# =============================================================================
from sheet_engine.models.enums import (
    Ability,
    AdvantageState,
    EffectKind,
    ResourceKind,
    RollCategory,
    RollKind,
    RuleCategory,
    Ruleset,
)

# =============================================================================
# Variables
# =============================================================================
from sheet_engine.models.variables import (
    BoolVar,
    NumberVar,
    TextVar,
    Variable,
    coerce_variable,
    render_number,
)

# =============================================================================
# Sheet entries
# =============================================================================
from sheet_engine.models.actions import (
    ActionCost,
    ActionData,
    ActionOption,
    DamageRoll,
    SpellData,
)

# =============================================================================
# Character
# =============================================================================
from sheet_engine.models.character import (
    CharacterState,
    Feature,
    Resource,
    ResourceChange,
    ResourceCost,
    SpellSlots,
    slot_variable_name,
)

# =============================================================================
# Effects & session
# =============================================================================
from sheet_engine.models.effects import BUFFS, CONDITIONS, Effect, get_effect
from sheet_engine.models.session import SessionState


__all__ = [
    # Enums
    "Ability",
    "AdvantageState",
    "EffectKind",
    "ResourceKind",
    "RollCategory",
    "RollKind",
    "RuleCategory",
    "Ruleset",
    # Variables
    "BoolVar",
    "NumberVar",
    "TextVar",
    "Variable",
    "coerce_variable",
    "render_number",
    # Sheet entries
    "ActionCost",
    "ActionData",
    "ActionOption",
    "DamageRoll",
    "SpellData",
    # Character
    "CharacterState",
    "Feature",
    "Resource",
    "ResourceChange",
    "ResourceCost",
    "SpellSlots",
    "slot_variable_name",
    # Effects & session
    "BUFFS",
    "CONDITIONS",
    "Effect",
    "get_effect",
    "SessionState",
]
