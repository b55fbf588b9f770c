"""Spell cast resolution.

``resolve_cast`` decides what casting a spell costs and what it rolls,
without touching the character: the result lists the resource deltas to
apply, the roll requests to make and the bookkeeping effects to track.
Callers commit with ``apply_resource_changes`` and update the session
with ``track_cast_effects``.

A cast moves through these phases::

    IDLE -> RESOURCE_SELECTION_PENDING -> RESOURCE_COMMITTED
         -> ROLLS_EMITTED -> DONE | MAINTAINED_EFFECT_TRACKED

A cast that needs a slot and has none chosen stops at
RESOURCE_SELECTION_PENDING with no deltas. Once deltas are returned the
rolls are always returned with them; an insufficient resource is reported
as an ``InsufficientResource`` value before anything is committed.

Example:
    >>> resolution = resolve_cast(fireball, state, CastOptions(selected_slot=4))
    >>> resolution.text
    'Cast Fireball using Level 4 slot (upcast from 3)'
    >>> state = apply_resource_changes(state, resolution.resource_changes)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from sheet_engine.core.config import get_settings
from sheet_engine.core.constants import (
    MAGIC_ITEM_KEYWORDS,
    MANUAL_ADJUDICATION_NOTE,
    MAX_SLOT_LEVEL,
    MIN_SLOT_LEVEL,
    NO_ATTACK_MARKER,
    PACT_SLOT_PREFIX,
)
from sheet_engine.core.exceptions import ValidationError
from sheet_engine.core.logging import character_context, get_logger
from sheet_engine.engine.resolver import resolve, substitute_slot_level
from sheet_engine.engine.rolls import ResolvedRollRequest, evaluate_math_in_formula
from sheet_engine.models.character import PACT_SLOT_VARIABLE, ResourceChange, slot_variable_name
from sheet_engine.models.enums import ResourceKind, RollKind
from sheet_engine.rules.catalog import detect_ruleset, get_rule_catalog


if TYPE_CHECKING:
    from sheet_engine.models.actions import SpellData
    from sheet_engine.models.character import CharacterState, Resource
    from sheet_engine.models.session import SessionState


logger = get_logger(__name__)


# =============================================================================
# Metamagic
# =============================================================================

METAMAGIC_COSTS: dict[str, int | None] = {
    "Careful Spell": 1,
    "Distant Spell": 1,
    "Empowered Spell": 1,
    "Extended Spell": 1,
    "Heightened Spell": 3,
    "Quickened Spell": 2,
    "Subtle Spell": 1,
    "Twinned Spell": None,
}
"""Sorcery point cost per metamagic option; None means the cost is the cast level."""


@dataclass(frozen=True)
class Metamagic:
    """A metamagic option, as known by the character or chosen for a cast.

    Attributes:
        name: Canonical option name, e.g. 'Quickened Spell'.
        cost: Fixed sorcery point cost, or None when it depends on the cast level.
        description: Feature text from the sheet.
    """

    name: str
    cost: int | None = None
    description: str = ""


def _canonical_metamagic(name: str) -> str | None:
    clean = name.strip()
    if clean in METAMAGIC_COSTS:
        return clean
    lowered = clean.lower()
    return next((key for key in METAMAGIC_COSTS if key.lower() == lowered), None)


def metamagic_cost(name: str, spell_level: int) -> int:
    """Sorcery point cost of a metamagic option.

    Args:
        name: Option name (case-insensitive).
        spell_level: Level the spell is cast at; 0 for cantrips.

    Returns:
        The cost; Twinned Spell costs the cast level, minimum 1. Unknown
        options cost nothing.
    """
    canonical = _canonical_metamagic(name)
    if canonical is None:
        return 0
    cost = METAMAGIC_COSTS[canonical]
    return max(1, spell_level) if cost is None else cost


def available_metamagic(state: CharacterState) -> list[Metamagic]:
    """Metamagic options listed among the character's features."""
    options = []
    for feature in state.features:
        canonical = _canonical_metamagic(feature.name)
        if canonical is not None:
            options.append(Metamagic(canonical, METAMAGIC_COSTS[canonical], feature.description))
    return options


def sorcery_points_resource(state: CharacterState) -> Resource | None:
    """Find the sorcery point resource by its display name."""
    for resource in state.resources:
        lowered = resource.name.lower().strip()
        if (
            "sorcery point" in lowered
            or lowered in ("sorcery points", "sorcery")
            or "sorcerer point" in lowered
        ):
            return resource
    return None


# =============================================================================
# Spell sources
# =============================================================================


def is_magic_item_spell(spell: SpellData) -> bool:
    """Check whether a spell is cast from a magic item rather than a slot."""
    source = spell.source.lower()
    return any(keyword in source for keyword in MAGIC_ITEM_KEYWORDS)


def is_free_spell(spell: SpellData) -> bool:
    """Check whether a spell is cast by consuming items or is flagged slot-free."""
    return bool(spell.items_consumed) or spell.cast_without_slot


def is_concentration_recast(spell: SpellData, session: SessionState) -> bool:
    """Check whether casting re-invokes the spell already concentrated on."""
    return spell.concentration and session.concentrating_on == spell.name


# =============================================================================
# Results
# =============================================================================


class CastPhase(StrEnum):
    """Phases of a single cast."""

    IDLE = "idle"
    RESOURCE_SELECTION_PENDING = "resource_selection_pending"
    RESOURCE_COMMITTED = "resource_committed"
    ROLLS_EMITTED = "rolls_emitted"
    DONE = "done"
    MAINTAINED_EFFECT_TRACKED = "maintained_effect_tracked"


class CastEffectType(StrEnum):
    """Bookkeeping a cast asks the caller to perform."""

    CONCENTRATION = "concentration"
    TRACK_REUSABLE = "track_reusable"
    NEEDS_SLOT_SELECTION = "needs_slot_selection"
    MANUAL_ADJUDICATION = "manual_adjudication"


@dataclass(frozen=True)
class CastEffect:
    """A side effect reported by a cast resolution."""

    type: CastEffectType
    spell: str | None = None
    min_level: int | None = None
    description: str | None = None


@dataclass(frozen=True)
class SlotUsage:
    """The slot a cast spends.

    Attributes:
        level: Level the spell is cast at.
        key: Counter key (``level3SpellSlots`` or ``pactMagicSlots``).
        is_pact: Whether the pact counter is spent.
        label: Human-readable slot description.
    """

    level: int
    key: str
    is_pact: bool
    label: str


@dataclass(frozen=True)
class SlotOffering:
    """A slot the player may choose for a cast.

    Attributes:
        selection: Value to pass as ``CastOptions.selected_slot``.
        level: Level the spell would be cast at.
        current: Slots remaining in this pool.
        maximum: Pool size.
        is_pact: Whether this is the pact pool.
        label: Human-readable slot description.
    """

    selection: int | str
    level: int
    current: int
    maximum: int
    is_pact: bool
    label: str

    @property
    def available(self) -> bool:
        """Whether at least one slot remains."""
        return self.current > 0


@dataclass(frozen=True)
class CastOptions:
    """Choices made for a cast.

    Attributes:
        selected_slot: Slot level, ``pact:N`` for the pact pool, or None to
            ask for a selection.
        selected_metamagic: Metamagic applied to the cast.
        skip_slot_consumption: Re-invoke without paying (concentration recast).
    """

    selected_slot: int | str | None = None
    selected_metamagic: tuple[Metamagic, ...] = ()
    skip_slot_consumption: bool = False


@dataclass(frozen=True)
class InsufficientResource:
    """A cast or action that cannot be paid for. Nothing was changed.

    Attributes:
        resource: What ran short.
        required: Amount (or slot level) needed.
        available: Amount (or slot level) on hand.
    """

    resource: str
    required: int
    available: int

    @property
    def message(self) -> str:
        """Player-facing shortfall message."""
        return f"Not enough {self.resource}: need {self.required}, have {self.available}"


@dataclass(frozen=True)
class CastResolution:
    """What a cast costs, rolls and asks the caller to track.

    Attributes:
        text: Summary such as 'Cast Shield using Level 1 slot'.
        rolls: Roll requests in declaration order, attack first.
        effects: Bookkeeping the caller performs.
        slot_used: Slot spent, if any.
        metamagic_used: Metamagic applied, with resolved costs.
        is_cantrip: Whether the spell is levelless.
        is_freecast: Whether the cast is free (item, free spell or recast).
        resource_changes: Deltas to apply atomically.
        phase: Last phase reached.
    """

    text: str
    rolls: tuple[ResolvedRollRequest, ...] = ()
    effects: tuple[CastEffect, ...] = ()
    slot_used: SlotUsage | None = None
    metamagic_used: tuple[Metamagic, ...] = ()
    is_cantrip: bool = False
    is_freecast: bool = False
    resource_changes: tuple[ResourceChange, ...] = field(default=())
    phase: CastPhase = CastPhase.DONE

    @property
    def needs_slot_selection(self) -> bool:
        """Whether the caller must choose a slot and resolve again."""
        return any(effect.type is CastEffectType.NEEDS_SLOT_SELECTION for effect in self.effects)

    def effect(self, effect_type: CastEffectType) -> CastEffect | None:
        """First reported effect of a type, if any."""
        return next((effect for effect in self.effects if effect.type is effect_type), None)


# =============================================================================
# Slots
# =============================================================================


def _slot_label(level: int, spell_level: int) -> str:
    if level > spell_level:
        return f"Level {level} slot (upcast from {spell_level})"
    return f"Level {level} slot"


def _pact_label(level: int) -> str:
    return f"Pact Magic (level {level})"


def _effective_pact_level(state: CharacterState) -> int | None:
    return state.spell_slots.effective_pact_level(
        state.variables,
        default_level=get_settings().engine.default_pact_level,
    )


def _ordinary_counts(state: CharacterState, level: int, pact_level: int | None) -> tuple[int, int]:
    slots = state.spell_slots
    current = slots.available(level)
    maximum = slots.max_for(level)
    if slots.has_pact_magic and level == pact_level:
        current = max(0, current - slots.pact_current)
        maximum = max(0, maximum - slots.pact_max)
    return current, maximum


def slot_offerings(state: CharacterState, spell_level: int) -> list[SlotOffering]:
    """Slots that can pay for a spell of the given level.

    The pact pool comes first when its effective level reaches the spell
    level. Ordinary pools follow from the spell level upward. Sheets that
    also count pact slots in the ordinary counter of the pact level get
    the pact allotment subtracted from that counter, floored at zero.

    Args:
        state: Character snapshot.
        spell_level: Base level of the spell.

    Returns:
        Offerings in display order, empty pools excluded.
    """
    slots = state.spell_slots
    offerings: list[SlotOffering] = []
    pact_level = _effective_pact_level(state)

    if slots.has_pact_magic and pact_level is not None and spell_level <= pact_level:
        offerings.append(
            SlotOffering(
                selection=f"{PACT_SLOT_PREFIX}{pact_level}",
                level=pact_level,
                current=slots.pact_current,
                maximum=slots.pact_max,
                is_pact=True,
                label=_pact_label(pact_level),
            )
        )

    for level in range(max(spell_level, MIN_SLOT_LEVEL), MAX_SLOT_LEVEL + 1):
        current, maximum = _ordinary_counts(state, level, pact_level)
        if maximum <= 0:
            continue
        offerings.append(
            SlotOffering(
                selection=level,
                level=level,
                current=current,
                maximum=maximum,
                is_pact=False,
                label=_slot_label(level, spell_level),
            )
        )

    logger.debug("Slot offerings built", spell_level=spell_level, offerings=len(offerings))
    return offerings


def _parse_slot(selected: int | str) -> tuple[int, bool]:
    text = str(selected).strip()
    is_pact = text.startswith(PACT_SLOT_PREFIX)
    if is_pact:
        text = text[len(PACT_SLOT_PREFIX):]
    try:
        level = int(text)
    except ValueError as exc:
        raise ValidationError(
            f"Invalid slot selection {selected!r}",
            field_name="selected_slot",
            invalid_value=selected,
        ) from exc
    if not MIN_SLOT_LEVEL <= level <= MAX_SLOT_LEVEL:
        raise ValidationError(
            f"Slot level {level} outside {MIN_SLOT_LEVEL}-{MAX_SLOT_LEVEL}",
            field_name="selected_slot",
            invalid_value=selected,
        )
    return level, is_pact


def _check_slot(
    state: CharacterState,
    spell_level: int,
    level: int,
    is_pact: bool,
) -> SlotUsage | InsufficientResource:
    slots = state.spell_slots
    if is_pact:
        pact_level = _effective_pact_level(state)
        if pact_level is not None and level != pact_level:
            raise ValidationError(
                f"Pact slots are cast at level {pact_level}, not {level}",
                field_name="selected_slot",
                invalid_value=f"{PACT_SLOT_PREFIX}{level}",
            )
        usage = SlotUsage(level, PACT_SLOT_VARIABLE, True, _pact_label(level))
        available = slots.pact_current
    else:
        key = slot_variable_name(level)
        usage = SlotUsage(level, key, False, _slot_label(level, spell_level))
        available, _ = _ordinary_counts(state, level, _effective_pact_level(state))

    if level < spell_level:
        return InsufficientResource(f"slot level for a level {spell_level} spell", spell_level, level)
    if available < 1:
        return InsufficientResource(usage.label, 1, available)
    return usage


def _charge_metamagic(
    state: CharacterState,
    selected: tuple[Metamagic, ...],
    cast_level: int,
) -> tuple[tuple[Metamagic, ...], ResourceChange | None] | InsufficientResource:
    if not selected:
        return (), None
    used = tuple(
        Metamagic(meta.name, meta.cost if meta.cost is not None else metamagic_cost(meta.name, cast_level))
        for meta in selected
    )
    total = sum(meta.cost or 0 for meta in used)
    points = sorcery_points_resource(state)
    available = points.current if points is not None else 0
    if points is None or total > available:
        return InsufficientResource(points.name if points else "Sorcery Points", total, available)
    return used, ResourceChange(kind=ResourceKind.RESOURCE, key=points.key, delta=-total)


def _metamagic_suffix(used: tuple[Metamagic, ...]) -> str:
    if not used:
        return ""
    total = sum(meta.cost or 0 for meta in used)
    return f" + {', '.join(meta.name for meta in used)} ({total} SP)"


# =============================================================================
# Rolls
# =============================================================================


def _prepare_formula(formula: str, state: CharacterState, cast_level: int | None) -> str:
    if cast_level is not None:
        formula = substitute_slot_level(formula, cast_level)
    return evaluate_math_in_formula(resolve(formula, state))


def _damage_request(
    spell: SpellData,
    formula: str,
    damage_type: str,
    state: CharacterState,
    cast_level: int | None,
) -> ResolvedRollRequest:
    damage_type = damage_type or "damage"
    is_healing = damage_type.lower() == "healing"
    return ResolvedRollRequest(
        label=f"{spell.name} - {'Healing' if is_healing else damage_type}",
        formula=_prepare_formula(formula, state, cast_level),
        kind=RollKind.HEALING if is_healing else RollKind.DAMAGE,
        damage_type=damage_type,
    )


def spell_rolls(
    spell: SpellData,
    state: CharacterState,
    cast_level: int | None = None,
) -> tuple[ResolvedRollRequest, ...]:
    """Roll requests a spell declares.

    The attack comes first (unless absent or ``(none)``), then one request
    per damage component, falling back to the single ``damage`` formula.

    Args:
        spell: Spell being cast.
        state: Character snapshot used for formula resolution.
        cast_level: Level substituted for ``slotLevel``; left verbatim when None.

    Returns:
        The roll requests.
    """
    rolls: list[ResolvedRollRequest] = []
    if spell.attack_roll and spell.attack_roll != NO_ATTACK_MARKER:
        rolls.append(
            ResolvedRollRequest(
                label=f"{spell.name} - Attack",
                formula=_prepare_formula(spell.attack_roll, state, cast_level),
                kind=RollKind.ATTACK,
            )
        )
    if spell.damage_rolls:
        for component in spell.damage_rolls:
            rolls.append(_damage_request(spell, component.formula, component.damage_type, state, cast_level))
    elif spell.damage:
        rolls.append(_damage_request(spell, spell.damage, spell.damage_type, state, cast_level))
    return tuple(rolls)


# =============================================================================
# Resolution
# =============================================================================


def _tracking_effects(spell: SpellData, reusable: bool, recast: bool) -> list[CastEffect]:
    effects: list[CastEffect] = []
    if spell.concentration and not recast:
        effects.append(CastEffect(CastEffectType.CONCENTRATION, spell=spell.name))
    if reusable and not recast:
        effects.append(CastEffect(CastEffectType.TRACK_REUSABLE, spell=spell.name))
    return effects


def _manual_adjudication(spell: SpellData) -> CastEffect:
    return CastEffect(CastEffectType.MANUAL_ADJUDICATION, spell=spell.name, description=MANUAL_ADJUDICATION_NOTE)


def _terminal_phase(effects: list[CastEffect]) -> CastPhase:
    maintained = (CastEffectType.CONCENTRATION, CastEffectType.TRACK_REUSABLE)
    if any(effect.type in maintained for effect in effects):
        return CastPhase.MAINTAINED_EFFECT_TRACKED
    return CastPhase.DONE


def resolve_cast(
    spell: SpellData,
    state: CharacterState,
    options: CastOptions | None = None,
) -> CastResolution | InsufficientResource:
    """Resolve casting a spell.

    Cantrips, magic-item spells, free spells and concentration recasts cost
    no slot. Any other spell needs ``selected_slot``; without one the
    result asks for a selection and changes nothing. Metamagic is charged
    against sorcery points. Spells marked too complicated to model return
    a manual-adjudication effect instead of rolls.

    Args:
        spell: Spell being cast.
        state: Character snapshot (not modified).
        options: Slot, metamagic and recast choices.

    Returns:
        The resolution, or InsufficientResource when the chosen slot or the
        sorcery points cannot pay for the cast.

    Raises:
        ValidationError: If ``selected_slot`` is not a slot level or
            ``pact:N``, or names a pact level other than the character's.
    """
    with character_context(state, spell=spell.name):
        return _resolve_cast(spell, state, options or CastOptions())


def _resolve_cast(
    spell: SpellData,
    state: CharacterState,
    options: CastOptions,
) -> CastResolution | InsufficientResource:
    catalog = get_rule_catalog()
    ruleset = detect_ruleset(state)
    reusable = catalog.is_reusable_spell(spell.name, ruleset)
    too_complicated = catalog.is_too_complicated_spell(spell.name, ruleset)

    magic_item = is_magic_item_spell(spell)
    free_spell = is_free_spell(spell)
    recast = options.skip_slot_consumption
    spell_level = spell.level or 0

    changes: list[ResourceChange] = []
    slot_used: SlotUsage | None = None
    effects: list[CastEffect] = []

    if spell.is_cantrip or magic_item or free_spell or recast:
        cast_level: int | None = spell_level or None
        charged = _charge_metamagic(state, options.selected_metamagic, spell_level)
        if isinstance(charged, InsufficientResource):
            logger.info("Cast refused", spell=spell.name, resource=charged.resource)
            return charged
        metamagic_used, points_change = charged
        if points_change is not None:
            changes.append(points_change)

        if recast:
            reason = "concentration recast"
        elif magic_item:
            reason = "magic item"
        elif free_spell:
            reason = "free spell"
        else:
            reason = "cantrip"
        text = f"Cast {spell.name} ({reason}){_metamagic_suffix(metamagic_used)}"
        effects.extend(_tracking_effects(spell, reusable, recast))

    elif options.selected_slot is not None:
        level, is_pact = _parse_slot(options.selected_slot)
        checked = _check_slot(state, spell_level, level, is_pact)
        if isinstance(checked, InsufficientResource):
            logger.info("Cast refused", spell=spell.name, resource=checked.resource)
            return checked
        charged = _charge_metamagic(state, options.selected_metamagic, level)
        if isinstance(charged, InsufficientResource):
            logger.info("Cast refused", spell=spell.name, resource=charged.resource)
            return charged
        metamagic_used, points_change = charged

        slot_used = checked
        cast_level = level
        kind = ResourceKind.PACT_SLOT if is_pact else ResourceKind.SPELL_SLOT
        changes.append(ResourceChange(kind=kind, key=slot_used.key, delta=-1))
        if points_change is not None:
            changes.append(points_change)
        text = f"Cast {spell.name} using {slot_used.label}{_metamagic_suffix(metamagic_used)}"
        effects.extend(_tracking_effects(spell, reusable, recast=False))

    else:
        text = f"Cast {spell.name} (needs level {spell_level}+ slot)"
        effects = [
            CastEffect(CastEffectType.NEEDS_SLOT_SELECTION, spell=spell.name, min_level=spell_level),
            *_tracking_effects(spell, reusable, recast=False),
        ]
        if too_complicated:
            effects.append(_manual_adjudication(spell))
        resolution = CastResolution(
            text=text,
            rolls=() if too_complicated else spell_rolls(spell, state),
            effects=tuple(effects),
            phase=CastPhase.RESOURCE_SELECTION_PENDING,
        )
        logger.debug("Cast awaiting slot selection", spell=spell.name, min_level=spell_level)
        return resolution

    if too_complicated:
        effects.append(_manual_adjudication(spell))
        rolls: tuple[ResolvedRollRequest, ...] = ()
    else:
        rolls = spell_rolls(spell, state, cast_level)

    resolution = CastResolution(
        text=text,
        rolls=rolls,
        effects=tuple(effects),
        slot_used=slot_used,
        metamagic_used=metamagic_used,
        is_cantrip=spell.is_cantrip,
        is_freecast=magic_item or free_spell or recast,
        resource_changes=tuple(changes),
        phase=_terminal_phase(effects),
    )
    logger.info(
        "Cast resolved",
        spell=spell.name,
        slot=slot_used.key if slot_used else None,
        rolls=len(rolls),
        phase=resolution.phase,
    )
    return resolution


def apply_resource_changes(
    state: CharacterState,
    changes: list[ResourceChange] | tuple[ResourceChange, ...],
) -> CharacterState:
    """Apply resource deltas atomically.

    Args:
        state: Current snapshot.
        changes: Deltas from a resolution.

    Returns:
        A new snapshot with every delta applied.

    Raises:
        ResourceInvariantError: If any counter would leave its bounds; no
            delta is applied in that case.
    """
    updated = state.with_changes(changes)
    if changes:
        logger.info(
            "Resource changes applied",
            character=state.name,
            changes=[f"{change.key}{change.delta:+d}" for change in changes],
        )
    return updated


def track_cast_effects(resolution: CastResolution, session: SessionState) -> str | None:
    """Record a resolution's concentration effect on the session.

    Args:
        resolution: Resolution whose resources were committed.
        session: Situational state to update.

    Returns:
        The spell whose concentration was broken, if any.
    """
    effect = resolution.effect(CastEffectType.CONCENTRATION)
    if effect is None or effect.spell is None:
        return None
    return session.set_concentration(effect.spell)


__all__ = [
    # Metamagic
    "METAMAGIC_COSTS",
    "Metamagic",
    "metamagic_cost",
    "available_metamagic",
    "sorcery_points_resource",
    # Spell sources
    "is_magic_item_spell",
    "is_free_spell",
    "is_concentration_recast",
    # Results
    "CastPhase",
    "CastEffectType",
    "CastEffect",
    "SlotUsage",
    "SlotOffering",
    "CastOptions",
    "InsufficientResource",
    "CastResolution",
    # Operations
    "slot_offerings",
    "spell_rolls",
    "resolve_cast",
    "apply_resource_changes",
    "track_cast_effects",
]
