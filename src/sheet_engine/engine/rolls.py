"""Roll preparation pipeline.

Turns a label and a sheet formula into a final dice formula plus an ordered
annotation trail:

1. resolve variables against the character,
2. simplify arithmetic that the resolver left behind,
3. fold in auto-applying buffs and conditions,
4. fold in the optional effect the player chose, consuming it,
5. rewrite the d20 for advantage or disadvantage, consuming the flag.

Optional effects are never applied silently. Callers use
``has_applicable_optional_effect`` to decide whether to prompt, then pass
the player's choice back as ``chosen_effect``.

Example:
    >>> session = SessionState()
    >>> session.add_effect("Bless")
    >>> request = prepare_roll("Longsword Attack", "1d20+5", state, session)
    >>> request.formula
    '1d20+5 + 1d4'
    >>> request.display_label
    'Longsword Attack [✨ Bless: 1d4]'
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sheet_engine.core.config import get_settings
from sheet_engine.core.constants import ABILITY_KEYWORDS, SKILL_KEYWORDS
from sheet_engine.core.exceptions import MalformedExpressionError, UnknownEffectError
from sheet_engine.core.logging import character_context, get_logger
from sheet_engine.engine.evaluator import evaluate
from sheet_engine.engine.resolver import resolve
from sheet_engine.models.effects import Effect, ModifierValue
from sheet_engine.models.enums import AdvantageState, RollCategory, RollKind
from sheet_engine.models.variables import render_number


if TYPE_CHECKING:
    from sheet_engine.models.character import CharacterState
    from sheet_engine.models.session import SessionState


logger = get_logger(__name__)

ADVANTAGE_NOTE = "[⚡ Advantage]"
DISADVANTAGE_NOTE = "[⚠️ Disadvantage]"

_ONE_D20 = re.compile(r"(?<!\d)1d20(?!\d)")
_BARE_D20 = re.compile(r"(?<!\d)d20(?!\d)")
_PURE_ARITHMETIC = re.compile(r"^[\d\s+\-*/().]+$")
_DICE_SUFFIX = re.compile(r"^(.+?)(d\d+.*)$", re.IGNORECASE)
_MATH_PREFIX = re.compile(r"^(?:(?:Math\.)?[a-z]*\(.*\)|\d+)$")


@dataclass(frozen=True)
class ResolvedRollRequest:
    """A fully prepared roll, ready to hand to a dice roller or relay.

    Attributes:
        label: Roll name, e.g. 'Fireball - Fire'.
        formula: Final dice formula.
        kind: What the roll is for.
        annotations: Notes in discovery order, mandatory before optional,
            advantage last.
        damage_type: Damage type tag of a damage or healing roll.
    """

    label: str
    formula: str
    kind: RollKind
    annotations: tuple[str, ...] = ()
    damage_type: str | None = None

    @property
    def display_label(self) -> str:
        """Label with annotations appended, as shown to players."""
        if not self.annotations:
            return self.label
        return f"{self.label} {' '.join(self.annotations)}"


# =============================================================================
# Categorization
# =============================================================================


def _is_skill_check(lowered: str) -> bool:
    return "check" in lowered or any(skill in lowered for skill in SKILL_KEYWORDS)


def categorize_roll(label: str) -> frozenset[RollCategory]:
    """Infer the semantic categories of a roll from its label.

    Args:
        label: Roll label.

    Returns:
        Every category whose keyword appears in the label.
    """
    lowered = label.lower()
    categories: set[RollCategory] = set()
    if "attack" in lowered:
        categories.add(RollCategory.ATTACK)
    if "save" in lowered:
        categories.add(RollCategory.SAVE)
    if _is_skill_check(lowered):
        categories.add(RollCategory.SKILL)
    if "damage" in lowered:
        categories.add(RollCategory.DAMAGE)
    return frozenset(categories)


def infer_roll_kind(label: str) -> RollKind:
    """Pick a RollKind for a label.

    Args:
        label: Roll label.

    Returns:
        The roll kind; checks are the fallback.
    """
    lowered = label.lower()
    categories = categorize_roll(label)
    if RollCategory.ATTACK in categories:
        return RollKind.ATTACK
    if "heal" in lowered:
        return RollKind.HEALING
    if "temp" in lowered and "hp" in lowered:
        return RollKind.TEMP_HP
    if RollCategory.DAMAGE in categories:
        return RollKind.DAMAGE
    if RollCategory.SAVE in categories:
        return RollKind.SAVE
    return RollKind.CHECK


# =============================================================================
# Effect modifiers
# =============================================================================


def _note(effect: Effect, text: ModifierValue) -> str:
    return f"[{effect.icon} {effect.name}: {text}]"


def _fold_modifier(effect: Effect, mod: ModifierValue, formula: str, notes: list[str]) -> str:
    if mod == "advantage":
        notes.append(_note(effect, "Advantage"))
    elif mod == "disadvantage":
        notes.append(_note(effect, "Disadvantage"))
    elif mod == "fail":
        notes.append(_note(effect, "Auto-fail"))
    else:
        formula += f" + {mod}"
        notes.append(_note(effect, mod))
    return formula


def _save_modifier(effect: Effect, lowered: str) -> ModifierValue | None:
    if (mod := effect.modifier("save")) is not None:
        return mod
    if "strength" in lowered and (mod := effect.modifier("strSave")) is not None:
        return mod
    if "dexterity" in lowered and (mod := effect.modifier("dexSave")) is not None:
        return mod
    return None


def apply_effect_modifiers(
    label: str,
    formula: str,
    session: SessionState,
) -> tuple[str, list[str]]:
    """Fold auto-applying active effects into a roll.

    Buffs are visited before conditions, each in activation order. Attack,
    save and skill modifiers either append a term or record an
    advantage, disadvantage or auto-fail note; damage modifiers append a
    term.

    Args:
        label: Roll label.
        formula: Formula to modify.
        session: Situational state holding the active effects.

    Returns:
        The modified formula and the notes recorded.
    """
    lowered = label.lower()
    categories = categorize_roll(label)
    notes: list[str] = []

    for effect in session.active_effects:
        if not effect.auto_apply or not effect.modifiers:
            continue
        before = len(notes)

        if RollCategory.ATTACK in categories and (mod := effect.modifier("attack")) is not None:
            formula = _fold_modifier(effect, mod, formula, notes)

        if RollCategory.SAVE in categories and (mod := _save_modifier(effect, lowered)) is not None:
            formula = _fold_modifier(effect, mod, formula, notes)

        if RollCategory.SKILL in categories and (mod := effect.modifier("skill")) is not None:
            formula = _fold_modifier(effect, mod, formula, notes)

        if RollCategory.DAMAGE in categories and (mod := effect.modifier("damage")) is not None:
            formula += f" + {mod}"
            notes.append(_note(effect, f"+{mod}"))

        if len(notes) > before:
            logger.debug("Effect applied", effect=effect.name, label=label)

    return formula, notes


def applicable_optional_effects(label: str, session: SessionState) -> list[Effect]:
    """List the optional effects the player could spend on this roll.

    Bardic Inspiration applies to checks, attacks and saves alike.

    Args:
        label: Roll label.
        session: Situational state holding the active effects.

    Returns:
        Matching non-auto-applying effects in activation order.
    """
    categories = categorize_roll(label)
    applicable: list[Effect] = []
    for effect in session.active_effects:
        if effect.auto_apply or not effect.modifiers:
            continue
        if (
            (RollCategory.SKILL in categories and effect.modifier("skill") is not None)
            or (RollCategory.ATTACK in categories and effect.modifier("attack") is not None)
            or (RollCategory.SAVE in categories and effect.modifier("save") is not None)
            or (
                effect.name.startswith("Bardic Inspiration")
                and categories & {RollCategory.SKILL, RollCategory.ATTACK, RollCategory.SAVE}
            )
        ):
            applicable.append(effect)
    return applicable


def has_applicable_optional_effect(label: str, session: SessionState) -> bool:
    """Decide whether the player should be prompted before rolling.

    Args:
        label: Roll label.
        session: Situational state.

    Returns:
        True if at least one optional effect applies.
    """
    return bool(applicable_optional_effects(label, session))


def _apply_chosen_effect(
    label: str,
    formula: str,
    effect: Effect,
    notes: list[str],
) -> str:
    lowered = label.lower()
    categories = categorize_roll(label)
    is_skill_or_ability = RollCategory.SKILL in categories or any(
        ability in lowered for ability in ABILITY_KEYWORDS
    )

    if (mod := effect.modifier("skill")) is not None and is_skill_or_ability:
        return _fold_modifier(effect, mod, formula, notes)
    if (mod := effect.modifier("attack")) is not None and RollCategory.ATTACK in categories:
        return _fold_modifier(effect, mod, formula, notes)
    if (mod := effect.modifier("save")) is not None and RollCategory.SAVE in categories:
        return _fold_modifier(effect, mod, formula, notes)

    logger.info("Chosen effect does not modify this roll", effect=effect.name, label=label)
    return formula


# =============================================================================
# Advantage
# =============================================================================


def apply_advantage(formula: str, session: SessionState, notes: list[str]) -> str:
    """Rewrite the d20 of a formula for advantage or disadvantage.

    Only a single d20 (``1d20`` or ``d20``) is rewritten. The session flag
    is reset to normal once it has been applied; formulas with no single
    d20, such as damage rolls or an existing ``2d20``, leave it untouched.

    Args:
        formula: Formula to rewrite.
        session: Situational state holding the advantage flag.
        notes: Annotation list to append to.

    Returns:
        The rewritten formula.
    """
    if session.advantage is AdvantageState.NORMAL:
        return formula
    if session.advantage is AdvantageState.ADVANTAGE:
        replacement, note = "2d20kh1", ADVANTAGE_NOTE
    else:
        replacement, note = "2d20kl1", DISADVANTAGE_NOTE

    rewritten, single = _ONE_D20.subn(replacement, formula)
    rewritten, bare = _BARE_D20.subn(replacement, rewritten)
    if not single + bare:
        return formula

    state = session.consume_advantage()
    formula = rewritten
    notes.append(note)
    logger.debug("Advantage state applied", state=state, formula=formula)
    return formula


# =============================================================================
# Arithmetic simplification
# =============================================================================


def evaluate_math_in_formula(formula: str, *, max_iterations: int | None = None) -> str:
    """Simplify arithmetic left in a resolved formula.

    Pure arithmetic collapses to a number (``5*5`` -> ``25``) and a math
    prefix before a dice term is evaluated (``(3*1)d6`` -> ``3d6``). Passes
    repeat until the formula stops changing.

    Args:
        formula: Resolved formula.
        max_iterations: Pass limit; defaults to the engine setting.

    Returns:
        The simplified formula.
    """
    if not formula:
        return formula
    limit = max_iterations or get_settings().engine.max_simplify_iterations

    current = formula
    previous: str | None = None
    iterations = 0
    while current != previous and iterations < limit:
        previous = current
        iterations += 1

        if _PURE_ARITHMETIC.match(current):
            try:
                current = render_number(evaluate(current))
                continue
            except MalformedExpressionError as exc:
                logger.debug("Arithmetic not simplified", formula=current, error=exc.message)

        match = _DICE_SUFFIX.match(current)
        if match and _MATH_PREFIX.match(match.group(1)):
            try:
                current = render_number(evaluate(match.group(1))) + match.group(2)
            except MalformedExpressionError as exc:
                logger.debug("Dice prefix not simplified", prefix=match.group(1), error=exc.message)

    if current != formula:
        logger.debug("Formula simplified", formula=formula, result=current, iterations=iterations)
    return current


# =============================================================================
# Pipeline
# =============================================================================


def _take_chosen_effect(chosen: Effect | str, session: SessionState) -> Effect:
    name = chosen.name if isinstance(chosen, Effect) else chosen
    for effect in session.active_effects:
        if effect.name == name and not effect.auto_apply:
            return effect
    raise UnknownEffectError(f"{name!r} is not an active optional effect", effect_name=name)


def prepare_roll(
    label: str,
    formula: str,
    state: CharacterState,
    session: SessionState,
    *,
    chosen_effect: Effect | str | None = None,
    kind: RollKind | None = None,
) -> ResolvedRollRequest:
    """Prepare a roll request from a label and sheet formula.

    Mutates ``session``: a chosen optional effect is removed after use and
    an applied advantage state is reset.

    Args:
        label: Roll label; its keywords select which effects apply.
        formula: Sheet formula.
        state: Character snapshot used for variable resolution.
        session: Situational state.
        chosen_effect: Optional effect the player chose to spend.
        kind: Roll kind; inferred from the label when omitted.

    Returns:
        The prepared roll request.

    Raises:
        UnknownEffectError: If ``chosen_effect`` is not an active optional effect.
    """
    with character_context(state):
        effect = _take_chosen_effect(chosen_effect, session) if chosen_effect is not None else None

        resolved = evaluate_math_in_formula(resolve(formula, state))
        final, notes = apply_effect_modifiers(label, resolved, session)

        if effect is not None:
            final = _apply_chosen_effect(label, final, effect, notes)
            session.remove_effect(effect.name)
            logger.debug("Optional effect consumed", effect=effect.name, label=label)

        final = apply_advantage(final, session, notes)

        request = ResolvedRollRequest(
            label=label,
            formula=final,
            kind=kind or infer_roll_kind(label),
            annotations=tuple(notes),
        )
        logger.debug("Roll prepared", label=label, formula=final, annotations=request.annotations)
    return request


__all__ = [
    "ADVANTAGE_NOTE",
    "DISADVANTAGE_NOTE",
    "ResolvedRollRequest",
    "categorize_roll",
    "infer_roll_kind",
    "apply_effect_modifiers",
    "applicable_optional_effects",
    "has_applicable_optional_effect",
    "apply_advantage",
    "evaluate_math_in_formula",
    "prepare_roll",
]
