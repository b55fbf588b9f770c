"""Action and class feature resolution.

Turns an action from the sheet into roll options, applies the edge-case
rule catalog to them, and plans the resource deductions a use costs. Like
spell casting, nothing here mutates the character: plans are lists of
``ResourceChange`` deltas for ``apply_resource_changes``.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sheet_engine.core.constants import MAX_SLOT_LEVEL, MIN_SLOT_LEVEL
from sheet_engine.core.exceptions import ValidationError
from sheet_engine.core.logging import character_context, get_logger
from sheet_engine.engine.casting import InsufficientResource
from sheet_engine.engine.resolver import resolve
from sheet_engine.engine.rolls import ResolvedRollRequest, evaluate_math_in_formula
from sheet_engine.models.actions import ActionOption
from sheet_engine.models.character import Resource, ResourceChange, slot_variable_name
from sheet_engine.models.enums import ResourceKind, RollKind, RuleCategory
from sheet_engine.rules.catalog import RuleApplication, apply_rule, detect_ruleset, get_rule_catalog


if TYPE_CHECKING:
    from sheet_engine.models.actions import ActionData
    from sheet_engine.models.character import CharacterState


logger = get_logger(__name__)

_DICE_FORMULA = re.compile(r"\d*d\d+")
_INTEGER = re.compile(r"^\s*[+-]?\d+\s*$")

FEATURE_CATEGORIES = (
    RuleCategory.CLASS_FEATURE,
    RuleCategory.RACIAL,
    RuleCategory.COMBAT_MANEUVER,
)
"""Catalog categories searched for actions, in priority order."""

SEPARATELY_TRACKED_COSTS = frozenset({"kiPoints", "sorceryPoints"})
"""Cost variables paid through their own flows rather than per action."""

CHANNEL_DIVINITY = "Channel Divinity"
CHANNEL_DIVINITY_PREFIX = "channelDivinity"


# =============================================================================
# Options
# =============================================================================


def _attack_formula(attack_roll: str) -> str:
    if "d20" in attack_roll:
        return attack_roll
    if _INTEGER.match(attack_roll):
        bonus = int(attack_roll)
        return f"1d20+{bonus}" if bonus >= 0 else f"1d20{bonus}"
    return f"1d20+{attack_roll.strip()}"


def _damage_option(action: ActionData) -> ActionOption | None:
    if not action.damage or not _DICE_FORMULA.search(action.damage.replace(" ", "")):
        return None
    damage_type = action.damage_type.lower()
    is_healing = "heal" in damage_type
    is_temp_hp = damage_type in ("temphp", "temporary") or "temp" in damage_type

    if is_healing:
        label = "Heal"
    elif action.action_type == "feature" or not action.attack_roll:
        label = "Roll"
    else:
        label = "Damage"

    if is_healing:
        return ActionOption(type="healing", label=label, formula=action.damage, icon="💚")
    if is_temp_hp:
        return ActionOption(type="temphp", label=label, formula=action.damage, icon="🛡️")
    return ActionOption(type="damage", label=label, formula=action.damage, icon="💥")


def get_action_options(action: ActionData, state: CharacterState | None = None) -> RuleApplication:
    """Build the roll options of an action with edge cases applied.

    An attack option is offered when the action has an attack roll (a bare
    bonus becomes ``1d20+N``). A damage option is offered when the damage
    formula contains dice; it rolls healing or temporary hit points when
    the damage type says so. The first matching class feature, racial or
    combat maneuver rule then annotates or replaces the options.

    Args:
        action: Action from the sheet.
        state: Character snapshot, used for ruleset detection.

    Returns:
        Final options and whether the standard buttons are suppressed.
    """
    options: list[ActionOption] = []
    if action.attack_roll:
        options.append(
            ActionOption(type="attack", label="Attack", formula=_attack_formula(action.attack_roll), icon="🎯")
        )
    damage = _damage_option(action)
    if damage is not None:
        options.append(damage)

    rule = get_rule_catalog().lookup_first(action.name, FEATURE_CATEGORIES, detect_ruleset(state))
    application = apply_rule(rule, options)
    logger.debug(
        "Action options built",
        action=action.name,
        options=len(application.options),
        edge_case=rule.type if rule is not None else None,
        skip_normal_buttons=application.skip_normal_buttons,
    )
    return application


@dataclass(frozen=True)
class ActionResolution:
    """Outcome of using an action.

    Attributes:
        text: Announcement text (the action name).
        rolls: Roll requests, one per option with a formula.
        description: Rules text announced with the action.
        edge_case: The rule application when it suppressed normal buttons.
    """

    text: str
    rolls: tuple[ResolvedRollRequest, ...] = ()
    description: str | None = None
    edge_case: RuleApplication | None = None


def resolve_action_use(action: ActionData, state: CharacterState | None = None) -> ActionResolution:
    """Resolve using an action into roll requests.

    Formulas are resolved against ``state`` when one is given and left as
    written otherwise.

    Args:
        action: Action from the sheet.
        state: Character snapshot.

    Returns:
        The resolution.
    """
    with character_context(state, action=action.name):
        application = get_action_options(action, state)
        rolls = []
        for option in application.options:
            if not option.formula:
                continue
            formula = option.formula
            if state is not None:
                formula = evaluate_math_in_formula(resolve(formula, state))
            rolls.append(
                ResolvedRollRequest(
                    label=f"{action.name} - {option.label}",
                    formula=formula,
                    kind=RollKind(option.type),
                    damage_type=None if option.type == "attack" else (action.damage_type or None),
                )
            )
    return ActionResolution(
        text=action.name,
        rolls=tuple(rolls),
        description=action.description or None,
        edge_case=application if application.skip_normal_buttons else None,
    )


# =============================================================================
# Resource costs
# =============================================================================


@dataclass(frozen=True)
class ActionCostEntry:
    """A cost declared by an action.

    Attributes:
        name: Display name of the resource.
        variable_name: Variable key, empty when the sheet gives none.
        quantity: Amount consumed per use.
    """

    name: str
    variable_name: str
    quantity: int


def action_resource_costs(action: ActionData) -> list[ActionCostEntry]:
    """List the resources an action declares it consumes."""
    return [
        ActionCostEntry(cost.stat_name, cost.variable_name or "", cost.quantity)
        for cost in action.attributes_consumed
    ]


def find_cost_resource(state: CharacterState, variable_name: str) -> Resource | None:
    """Find the resource a cost refers to.

    Channel Divinity is matched flexibly: any ``channelDivinity*`` key
    finds the resource named Channel Divinity or keyed by any
    ``channelDivinity*`` variable, since sheets disagree on the class suffix.

    Args:
        state: Character snapshot.
        variable_name: Variable key from the cost.

    Returns:
        The resource, or None.
    """
    resource = state.find_resource(variable_name)
    if resource is not None or not variable_name.startswith(CHANNEL_DIVINITY_PREFIX):
        return resource
    for candidate in state.resources:
        if candidate.name == CHANNEL_DIVINITY or (candidate.variable_name or "").startswith(
            CHANNEL_DIVINITY_PREFIX
        ):
            return candidate
    return None


def plan_action_resource_use(
    action: ActionData,
    state: CharacterState,
) -> list[ResourceChange] | InsufficientResource:
    """Plan the deductions for one use of an action, all or nothing.

    Ki and sorcery point costs are skipped, as are costs without a
    variable key or naming a resource the character does not track.
    Repeated costs against one resource are summed before checking.

    Args:
        action: Action being used.
        state: Character snapshot.

    Returns:
        The deltas to apply, or the first resource that falls short.
    """
    totals: dict[str, int] = {}
    resources: dict[str, Resource] = {}
    for cost in action_resource_costs(action):
        if cost.variable_name in SEPARATELY_TRACKED_COSTS or cost.quantity <= 0:
            continue
        if not cost.variable_name:
            logger.debug("Cost without variable name skipped", action=action.name, cost=cost.name)
            continue
        resource = find_cost_resource(state, cost.variable_name)
        if resource is None:
            logger.debug("Cost resource not tracked", action=action.name, variable=cost.variable_name)
            continue
        resources[resource.key] = resource
        totals[resource.key] = totals.get(resource.key, 0) + cost.quantity

    for key, total in totals.items():
        resource = resources[key]
        if resource.current < total:
            logger.info("Action refused", action=action.name, resource=resource.name, required=total)
            return InsufficientResource(resource.name, total, resource.current)

    return [ResourceChange(kind=ResourceKind.RESOURCE, key=key, delta=-total) for key, total in totals.items()]


# =============================================================================
# Class resources
# =============================================================================


def _counter(state: CharacterState, name: str) -> int:
    value = state.number(name)
    return int(value) if value is not None else 0


def _detected(name: str, variable: str, current: int, maximum: int) -> Resource:
    return Resource(
        name=name,
        current=max(0, min(current, maximum)),
        max=maximum,
        variable_name=variable,
    )


def detect_class_resources(state: CharacterState) -> list[Resource]:
    """Detect Ki, Pact Magic and Channel Divinity from the variable bag.

    Only resources with a positive maximum are reported. Counts the sheet
    records above the maximum are clamped into range.

    Args:
        state: Character snapshot.

    Returns:
        Detected resources in the order Ki, Pact Magic, Channel Divinity.
    """
    found: list[Resource] = []
    variables = state.variables

    if "ki" in variables or "kiPoints" in variables:
        name = "ki" if "ki" in variables else "kiPoints"
        maximum = _counter(state, "kiMax") or _counter(state, "kiPointsMax")
        if maximum > 0:
            found.append(_detected("Ki", name, _counter(state, name), maximum))

    if "pactMagicSlots" in variables:
        maximum = _counter(state, "pactMagicSlotsMax")
        if maximum > 0:
            found.append(_detected("Pact Magic", "pactMagicSlots", _counter(state, "pactMagicSlots"), maximum))

    for name in ("channelDivinityCleric", "channelDivinityPaladin", "channelDivinity"):
        if name in variables:
            maximum = _counter(state, f"{name}Max")
            if maximum > 0:
                found.append(_detected(CHANNEL_DIVINITY, name, _counter(state, name), maximum))
            break

    return found


# =============================================================================
# Slot recovery
# =============================================================================


def max_recoverable_slot_level(state: CharacterState) -> int:
    """Highest slot level a recovery feature can restore: half proficiency, rounded up."""
    return min(MAX_SLOT_LEVEL, math.ceil(state.proficiency_bonus / 2))


def recoverable_slot_levels(state: CharacterState) -> list[int]:
    """Slot levels with at least one expended slot the character may recover."""
    slots = state.spell_slots
    return [
        level
        for level in range(MIN_SLOT_LEVEL, max_recoverable_slot_level(state) + 1)
        if slots.available(level) < slots.max_for(level)
    ]


def _channel_divinity(state: CharacterState) -> Resource | None:
    return find_cost_resource(state, CHANNEL_DIVINITY_PREFIX)


def plan_slot_recovery(state: CharacterState, level: int) -> list[ResourceChange] | InsufficientResource:
    """Plan recovering one expended spell slot.

    Characters who track Channel Divinity spend one use of it to fuel the
    recovery.

    Args:
        state: Character snapshot.
        level: Slot level to recover.

    Returns:
        The deltas to apply, or InsufficientResource when no Channel
        Divinity use remains.

    Raises:
        ValidationError: If the level is above the recoverable maximum or
            has no expended slot.
    """
    if level not in recoverable_slot_levels(state):
        raise ValidationError(
            f"Cannot recover a level {level} slot (max level {max_recoverable_slot_level(state)})",
            field_name="level",
            invalid_value=level,
        )
    changes = [ResourceChange(kind=ResourceKind.SPELL_SLOT, key=slot_variable_name(level), delta=1)]
    divinity = _channel_divinity(state)
    if divinity is not None:
        if divinity.current < 1:
            return InsufficientResource(divinity.name, 1, divinity.current)
        changes.append(ResourceChange(kind=ResourceKind.RESOURCE, key=divinity.key, delta=-1))
    logger.info("Slot recovery planned", character=state.name, level=level)
    return changes


__all__ = [
    "FEATURE_CATEGORIES",
    "SEPARATELY_TRACKED_COSTS",
    "ActionResolution",
    "ActionCostEntry",
    "get_action_options",
    "resolve_action_use",
    "action_resource_costs",
    "find_cost_resource",
    "plan_action_resource_use",
    "detect_class_resources",
    "max_recoverable_slot_level",
    "recoverable_slot_levels",
    "plan_slot_recovery",
]
