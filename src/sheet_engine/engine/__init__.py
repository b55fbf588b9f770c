"""Resolution engine for character sheet formulas, rolls, spells and actions.

Submodules:
    evaluator: Safe arithmetic evaluator (tokenizer, parser, tree walker)
    resolver: Variable substitution in sheet formulas
    rolls: Roll categorization, effect modifiers and advantage
    dice: Dice rolling for callers and tests (d20 library)
    casting: Spell cast resolution, slots and metamagic
    actions: Action options, resource plans and slot recovery

Example:
    >>> from sheet_engine.engine import CastOptions, resolve_cast, apply_resource_changes
    >>>
    >>> resolution = resolve_cast(spell, state, CastOptions(selected_slot=3))
    >>> state = apply_resource_changes(state, resolution.resource_changes)
    >>> for request in resolution.rolls:
    ...     print(request.label, request.formula)
"""

from __future__ import annotations

# =============================================================================
# Formulas
# =============================================================================
from sheet_engine.engine.evaluator import evaluate
from sheet_engine.engine.resolver import (
    FormulaResolver,
    get_variable_value,
    resolve,
    substitute_slot_level,
)

# =============================================================================
# Rolls
# =============================================================================
from sheet_engine.engine.rolls import (
    ResolvedRollRequest,
    apply_advantage,
    apply_effect_modifiers,
    evaluate_math_in_formula,
    has_applicable_optional_effect,
    infer_roll_kind,
    prepare_roll,
)
from sheet_engine.engine.dice import DiceRoller, RollResult

# =============================================================================
# Spells and actions
# =============================================================================
from sheet_engine.engine.casting import (
    CastEffect,
    CastEffectType,
    CastOptions,
    CastPhase,
    CastResolution,
    InsufficientResource,
    Metamagic,
    SlotOffering,
    apply_resource_changes,
    resolve_cast,
    slot_offerings,
    spell_rolls,
    track_cast_effects,
)
from sheet_engine.engine.actions import (
    ActionResolution,
    detect_class_resources,
    get_action_options,
    plan_action_resource_use,
    plan_slot_recovery,
    recoverable_slot_levels,
    resolve_action_use,
)


__all__ = [
    # Formulas
    "evaluate",
    "FormulaResolver",
    "get_variable_value",
    "resolve",
    "substitute_slot_level",
    # Rolls
    "ResolvedRollRequest",
    "apply_advantage",
    "apply_effect_modifiers",
    "evaluate_math_in_formula",
    "has_applicable_optional_effect",
    "infer_roll_kind",
    "prepare_roll",
    "DiceRoller",
    "RollResult",
    # Spells
    "CastEffect",
    "CastEffectType",
    "CastOptions",
    "CastPhase",
    "CastResolution",
    "InsufficientResource",
    "Metamagic",
    "SlotOffering",
    "apply_resource_changes",
    "resolve_cast",
    "slot_offerings",
    "spell_rolls",
    "track_cast_effects",
    # Actions
    "ActionResolution",
    "detect_class_resources",
    "get_action_options",
    "plan_action_resource_use",
    "plan_slot_recovery",
    "recoverable_slot_levels",
    "resolve_action_use",
]
