"""Edge-case rule catalog.

Spells, class features, racial features and combat maneuvers that need
more than the standard attack / damage / heal buttons are described by
``EdgeCaseRule`` records: a pydantic discriminated union on ``type``, one
model per rule shape. The catalog indexes every record by category and
normalized name, and ``apply_rule`` dispatches on the rule shape to
annotate (or replace) the options an action offers.

Lookup: normalize the name, try the ruleset-specific variant
(``name (2024)``), then the exact name, then, for colon-qualified names
such as ``Lay on Hands: Heal``, the base entry. An unknown name is not an
error; it simply has no rule.

Example:
    >>> catalog = get_rule_catalog()
    >>> catalog.lookup("Time Stop", RuleCategory.SPELL, Ruleset.R2024).notes
    '1d4+1 turns (changed from rounds)'
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from sheet_engine.core.config import get_settings
from sheet_engine.core.exceptions import ConfigurationError
from sheet_engine.core.logging import get_logger
from sheet_engine.models.actions import ActionOption
from sheet_engine.models.enums import RuleCategory, Ruleset
from sheet_engine.rules.tables import (
    CLASS_FEATURE_RULES,
    COMBAT_MANEUVER_RULES,
    RACIAL_RULES,
    SPELL_RULES,
    RuleTable,
)


if TYPE_CHECKING:
    from sheet_engine.models.character import CharacterState


logger = get_logger(__name__)

_DISALLOWED_CHARS = re.compile(r"[^a-z0-9\s:]")
_WHITESPACE = re.compile(r"\s+")


# =============================================================================
# Rule shapes
# =============================================================================


class _RuleBase(BaseModel):
    """Fields shared by every rule shape."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1, description="Display name from the table")
    category: RuleCategory = Field(description="Table the rule belongs to")
    description: str = Field(default="", description="Short rules summary")
    ruleset: Ruleset | None = Field(default=None, description="Ruleset the entry targets")
    notes: str | None = Field(default=None, description="Ruleset-specific notes")


# --- Spells ------------------------------------------------------------------


class HealingAnnouncementRule(_RuleBase):
    """Healing spell whose use is announced."""

    type: Literal["healing_announcement"] = "healing_announcement"


class TooComplicatedRule(_RuleBase):
    """Spell too complex to model; the DM adjudicates it."""

    type: Literal["too_complicated"] = "too_complicated"


class ReusableRule(_RuleBase):
    """Spell that can be re-invoked without paying its slot again."""

    type: Literal["reusable"] = "reusable"


class ConditionalDamageRule(_RuleBase):
    """Damage that only applies in some situations."""

    type: Literal["conditional_damage"] = "conditional_damage"
    condition: str | None = Field(default=None, description="When the damage applies")
    damage_formula: str | None = Field(default=None, description="Extra damage formula")


# --- Class features ----------------------------------------------------------


class UtilityRule(_RuleBase):
    """Feature whose outcome is at the DM's discretion."""

    type: Literal["utility_dm_discretion"] = "utility_dm_discretion"


class ResourceTrackingRule(_RuleBase):
    """Feature that spends a tracked resource."""

    type: Literal["resource_tracking"] = "resource_tracking"
    resource: str = Field(description="Resource spent")
    max_resource: str = Field(description="What the maximum derives from")


class AdvantageDisadvantageRule(_RuleBase):
    """Feature trading advantage for disadvantage."""

    type: Literal["advantage_disadvantage"] = "advantage_disadvantage"


class ConditionalAdvantageRule(_RuleBase):
    """Advantage under a stated condition."""

    type: Literal["conditional_advantage", "situational_advantage"]
    condition: str = Field(description="When advantage applies")


class ReactionRule(_RuleBase):
    """Feature used as a reaction."""

    type: Literal["reaction", "reaction_attack"]
    timing: str = Field(description="Reaction trigger")


class SaveRerollRule(_RuleBase):
    """Reroll of a failed saving throw."""

    type: Literal["save_reroll"] = "save_reroll"
    trigger: str = Field(description="Reroll trigger")


class BonusActionRule(_RuleBase):
    """Feature used as a bonus action."""

    type: Literal["bonus_action", "bonus_action_attack", "bonus_action_defense", "bonus_action_setup"]


class ResourceDamageRule(_RuleBase):
    """Extra damage paid for with a resource."""

    type: Literal["resource_damage"] = "resource_damage"
    resource: str = Field(description="Resource spent")
    damage_formula: str | None = Field(default=None, description="Damage formula")
    damage_type: str | None = Field(default=None, description="Damage type")


# --- Racial features ---------------------------------------------------------


class InnateMagicRule(_RuleBase):
    """Innately known spells."""

    type: Literal["innate_magic"] = "innate_magic"
    spells: tuple[str, ...] = Field(description="Spells granted")


class DamageResistanceRule(_RuleBase):
    """Resistance to damage types."""

    type: Literal["damage_resistance"] = "damage_resistance"
    damage_types: tuple[str, ...] = Field(description="Resisted damage types")


class SaveAdvantageRule(_RuleBase):
    """Advantage on some saving throws."""

    type: Literal["save_advantage"] = "save_advantage"
    save_types: tuple[str, ...] = Field(default=(), description="Saves with advantage")
    condition: str | None = Field(default=None, description="Situational save advantage")


class FlightRule(_RuleBase):
    """A flying speed."""

    type: Literal["flight"] = "flight"
    speed: str = Field(description="Flying speed")
    limitation: str | None = Field(default=None, description="Armor or usage limitation")


class NaturalWeaponRule(_RuleBase):
    """Natural weapon attack."""

    type: Literal["natural_weapon"] = "natural_weapon"
    damage_formula: str = Field(description="Damage formula")
    damage_type: str = Field(description="Damage type")


class TelepathyRule(_RuleBase):
    """Telepathic communication."""

    type: Literal["telepathy"] = "telepathy"
    range: str = Field(description="Telepathy range")


class SkillBonusRule(_RuleBase):
    """Bonus to some skills or situational checks."""

    type: Literal["skill_bonus"] = "skill_bonus"
    skills: tuple[str, ...] = Field(default=(), description="Skills with a bonus")
    condition: str | None = Field(default=None, description="Situational check bonus")


# --- Combat maneuvers --------------------------------------------------------


class ContestCheckRule(_RuleBase):
    """Opposed check such as a grapple."""

    type: Literal["contest_check"] = "contest_check"
    attack_type: str = Field(description="Attacker's check")
    defense_type: str = Field(description="Defender's check")


class AttackWithDebuffRule(_RuleBase):
    """Attack that imposes a debuff on hit."""

    type: Literal["attack_with_debuff"] = "attack_with_debuff"
    save_type: str | None = Field(default=None, description="Save the target makes")
    save_failure: str | None = Field(default=None, description="Outcome of a failed save")
    effect: str | None = Field(default=None, description="Debuff applied without a save")


class AllyRule(_RuleBase):
    """Maneuver that benefits an ally."""

    type: Literal["ally_reaction", "ally_movement", "ally_buff"]
    effect: str = Field(description="Effect on the ally")


class AreaDamageRule(_RuleBase):
    """Damage spilling onto additional creatures."""

    type: Literal["area_damage"] = "area_damage"
    condition: str | None = Field(default=None, description="When the damage spills over")
    effect: str | None = Field(default=None, description="What the spill-over does")


class EffectListRule(_RuleBase):
    """Action or environment described by a list of effects."""

    type: Literal["defensive_action", "environmental_modifier"]
    effects: tuple[str, ...] = Field(description="Effects in play")


DescriptiveType = Literal[
    "advantage",
    "advantage_grant",
    "attack_option",
    "death_prevention",
    "defense_bonus",
    "healing",
    "healing_pool",
    "immunity",
    "initiative_bonus",
    "reroll",
    "resource_die",
    "resource_feature",
    "resource_recovery",
    "roll_replacement",
    "save_bonus",
    "save_modifier",
    "transformation",
    "weapon_mastery",
]


class DescriptiveRule(_RuleBase):
    """Rule whose only effect is its description."""

    type: DescriptiveType


EdgeCaseRule = Annotated[
    HealingAnnouncementRule
    | TooComplicatedRule
    | ReusableRule
    | ConditionalDamageRule
    | UtilityRule
    | ResourceTrackingRule
    | AdvantageDisadvantageRule
    | ConditionalAdvantageRule
    | ReactionRule
    | SaveRerollRule
    | BonusActionRule
    | ResourceDamageRule
    | InnateMagicRule
    | DamageResistanceRule
    | SaveAdvantageRule
    | FlightRule
    | NaturalWeaponRule
    | TelepathyRule
    | SkillBonusRule
    | ContestCheckRule
    | AttackWithDebuffRule
    | AllyRule
    | AreaDamageRule
    | EffectListRule
    | DescriptiveRule,
    Field(discriminator="type"),
]
"""Any edge-case rule, discriminated by ``type``."""

_RULE_ADAPTER: TypeAdapter[EdgeCaseRule] = TypeAdapter(EdgeCaseRule)


# =============================================================================
# Lookup
# =============================================================================


def normalize_rule_name(name: str) -> str:
    """Normalize a feature or spell name for table lookup.

    Lowercases, drops everything except letters, digits, whitespace and
    colons, collapses whitespace and trims.

    Args:
        name: Display name.

    Returns:
        The normalized key.

    Example:
        >>> normalize_rule_name("  Hunter's  Mark (2024) ")
        'hunters mark 2024'
    """
    cleaned = _DISALLOWED_CHARS.sub("", name.lower())
    return _WHITESPACE.sub(" ", cleaned).strip()


DEFAULT_TABLES: dict[RuleCategory, RuleTable] = {
    RuleCategory.SPELL: SPELL_RULES,
    RuleCategory.CLASS_FEATURE: CLASS_FEATURE_RULES,
    RuleCategory.RACIAL: RACIAL_RULES,
    RuleCategory.COMBAT_MANEUVER: COMBAT_MANEUVER_RULES,
}


class RuleCatalog:
    """Edge-case rules indexed by category and normalized name.

    Attributes:
        rules: Rules per category, keyed by normalized name.
    """

    def __init__(self, tables: Mapping[RuleCategory, RuleTable] | None = None) -> None:
        """Build the catalog from rule tables.

        Args:
            tables: Raw tables per category; defaults to the bundled tables.

        Raises:
            ConfigurationError: If a table record does not match any rule shape.
        """
        self.rules: dict[RuleCategory, dict[str, EdgeCaseRule]] = {}
        for category, table in (tables if tables is not None else DEFAULT_TABLES).items():
            indexed: dict[str, EdgeCaseRule] = {}
            for raw_name, record in table.items():
                try:
                    rule = _RULE_ADAPTER.validate_python(
                        {**record, "name": raw_name, "category": category}
                    )
                except PydanticValidationError as exc:
                    raise ConfigurationError(
                        f"Invalid {category} rule {raw_name!r}",
                        config_key=f"rules.{category}.{raw_name}",
                        details={"errors": exc.error_count()},
                    ) from exc
                indexed[normalize_rule_name(raw_name)] = rule
            self.rules[category] = indexed
        logger.debug("Rule catalog built", rules=len(self))

    def __len__(self) -> int:
        return sum(len(indexed) for indexed in self.rules.values())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.lookup(name) is not None

    def _lookup_in(
        self,
        category: RuleCategory,
        normalized: str,
        ruleset: Ruleset | None,
    ) -> EdgeCaseRule | None:
        indexed = self.rules.get(category, {})
        candidates = []
        if ruleset is not None:
            candidates.append(normalize_rule_name(f"{normalized} ({ruleset})"))
        candidates.append(normalized)
        if ":" in normalized:
            candidates.append(normalized.split(":", 1)[0].strip())
        for key in candidates:
            if key in indexed:
                return indexed[key]
        return None

    def lookup(
        self,
        name: str,
        category: RuleCategory | None = None,
        ruleset: Ruleset | None = None,
    ) -> EdgeCaseRule | None:
        """Find the rule for a name.

        Args:
            name: Spell, feature or maneuver name as shown on the sheet.
            category: Restrict the search to one table; all tables in
                category order otherwise.
            ruleset: Prefer the variant written for this ruleset.

        Returns:
            The matching rule, or None when the name has no edge case.
        """
        normalized = normalize_rule_name(name or "")
        if not normalized:
            return None
        categories = (category,) if category is not None else tuple(RuleCategory)
        for candidate in categories:
            rule = self._lookup_in(candidate, normalized, ruleset)
            if rule is not None:
                logger.debug("Edge case matched", name=name, category=candidate, type=rule.type)
                return rule
        return None

    def lookup_first(
        self,
        name: str,
        categories: Iterable[RuleCategory],
        ruleset: Ruleset | None = None,
    ) -> EdgeCaseRule | None:
        """Find the rule in the first of several tables that has one.

        Args:
            name: Feature or maneuver name.
            categories: Tables to search, in priority order.
            ruleset: Prefer the variant written for this ruleset.

        Returns:
            The first matching rule, or None.
        """
        for category in categories:
            rule = self.lookup(name, category, ruleset)
            if rule is not None:
                return rule
        return None

    def by_type(self, rule_type: str, category: RuleCategory | None = None) -> list[EdgeCaseRule]:
        """All rules of one shape, optionally limited to one table."""
        return [
            rule
            for cat, indexed in self.rules.items()
            if category is None or cat is category
            for rule in indexed.values()
            if rule.type == rule_type
        ]

    def types(self, category: RuleCategory | None = None) -> set[str]:
        """Distinct rule types present, optionally limited to one table."""
        return {
            rule.type
            for cat, indexed in self.rules.items()
            if category is None or cat is category
            for rule in indexed.values()
        }

    def is_reusable_spell(self, name: str, ruleset: Ruleset | None = None) -> bool:
        """Check whether a spell can be re-invoked without a new slot."""
        return isinstance(self.lookup(name, RuleCategory.SPELL, ruleset), ReusableRule)

    def is_too_complicated_spell(self, name: str, ruleset: Ruleset | None = None) -> bool:
        """Check whether a spell needs manual adjudication."""
        return isinstance(self.lookup(name, RuleCategory.SPELL, ruleset), TooComplicatedRule)


@lru_cache
def get_rule_catalog() -> RuleCatalog:
    """Get the cached catalog built from the bundled tables.

    Returns:
        The shared RuleCatalog.
    """
    return RuleCatalog()


# =============================================================================
# Dispatch
# =============================================================================


@dataclass(frozen=True)
class RuleApplication:
    """Options after a rule was applied.

    Attributes:
        options: Options to offer, possibly annotated or replaced.
        skip_normal_buttons: Whether the standard buttons are suppressed.
    """

    options: tuple[ActionOption, ...]
    skip_normal_buttons: bool = False


def _annotate(options: Sequence[ActionOption], note: str) -> RuleApplication:
    return RuleApplication(tuple(option.with_note(note) for option in options))


def _apply_spell_rule(rule: EdgeCaseRule, options: Sequence[ActionOption]) -> RuleApplication:
    match rule:
        case HealingAnnouncementRule():
            return _annotate(options, rule.notes or "Announces healing usage")
        case TooComplicatedRule():
            return RuleApplication((), skip_normal_buttons=True)
        case ReusableRule():
            return _annotate(options, rule.notes or "Can be recast without spell slot")
        case ConditionalDamageRule():
            if not options:
                return RuleApplication(())
            cast = ActionOption(
                type="cast",
                label="Cast Spell",
                icon="✨",
                edge_case_note=rule.notes or "Spell has conditional damage",
            )
            return RuleApplication((cast, *options))
    return RuleApplication(tuple(options))


def _feature_note(rule: EdgeCaseRule) -> str | None:
    match rule:
        case ResourceTrackingRule(resource=resource, max_resource=max_resource):
            return f"Resource: {resource} ({max_resource})"
        case AdvantageDisadvantageRule(description=description):
            return f"⚖️ {description}"
        case ConditionalAdvantageRule(condition=condition):
            return f"✅ {condition}"
        case ReactionRule(timing=timing):
            return f"⚡ {timing}"
        case SaveRerollRule(trigger=trigger):
            return f"🔄 {trigger}"
        case BonusActionRule():
            return "⚡ Bonus Action"
        case ResourceDamageRule(resource=resource):
            return f"💰 Cost: {resource}"
        case InnateMagicRule(spells=spells):
            return f"🔮 {', '.join(spells)}"
        case DamageResistanceRule(damage_types=damage_types):
            return f"🛡️ Resistance to: {', '.join(damage_types)}"
        case SaveAdvantageRule(save_types=save_types) if save_types:
            return f"✅ Advantage on: {', '.join(save_types)} saves"
        case SaveAdvantageRule(condition=condition):
            return f"✅ Advantage on: {condition}"
        case FlightRule(speed=speed, limitation=limitation):
            return f"🪶 Fly {speed} ({limitation})" if limitation else f"🪶 Fly {speed} "
        case NaturalWeaponRule(damage_formula=formula, damage_type=damage_type):
            return f"⚔️ {formula} {damage_type}"
        case TelepathyRule(range=telepathy_range):
            return f"🧠 {telepathy_range} telepathy"
        case SkillBonusRule(category=RuleCategory.RACIAL, skills=skills) if skills:
            return f"📚 Bonus to: {', '.join(skills)}"
        case SkillBonusRule(category=RuleCategory.RACIAL, condition=condition) if condition:
            return f"📚 {condition}"
        case ContestCheckRule(attack_type=attack_type, defense_type=defense_type):
            return f"⚔️ {attack_type} vs {defense_type}"
        case AttackWithDebuffRule(save_type=save_type, save_failure=save_failure) if save_type:
            return f"🎯 Hit + {save_type} save or {save_failure}"
        case AttackWithDebuffRule(effect=effect) if effect:
            return f"🎯 Hit + {effect}"
        case AllyRule(effect=effect):
            return f"🤝 {effect}"
        case AreaDamageRule(category=RuleCategory.COMBAT_MANEUVER, condition=condition, effect=effect):
            return f"💥 {condition}: {effect}"
        case EffectListRule(type="defensive_action", effects=effects):
            return f"🛡️ {', '.join(effects)}"
        case EffectListRule(type="environmental_modifier", effects=effects):
            return f"🌍 {', '.join(effects)}"
    return rule.description or None


def apply_rule(rule: EdgeCaseRule | None, options: Sequence[ActionOption]) -> RuleApplication:
    """Apply an edge-case rule to the options of an action or spell.

    Spell rules may annotate options, clear them (too complicated) or
    prepend a ``Cast Spell`` option (conditional damage). Feature and
    maneuver rules annotate every option with a note for their shape;
    shapes without a note template use the rule description.
    ``utility_dm_discretion`` features suppress the standard buttons.

    Args:
        rule: Rule from the catalog, or None for no edge case.
        options: Options built from the action's formulas.

    Returns:
        The resulting options and whether normal buttons are skipped.
    """
    if rule is None:
        return RuleApplication(tuple(options))
    if rule.category is RuleCategory.SPELL:
        return _apply_spell_rule(rule, options)
    if isinstance(rule, UtilityRule):
        return RuleApplication(tuple(options), skip_normal_buttons=True)
    note = _feature_note(rule)
    if note is None:
        return RuleApplication(tuple(options))
    return _annotate(options, note)


# =============================================================================
# Ruleset detection
# =============================================================================


def detect_ruleset(state: CharacterState | None) -> Ruleset:
    """Infer which ruleset a character sheet is built on.

    Any of these marks the sheet as 2024: a feature named with '2024', a
    spell description mentioning '2024', a resource named with both
    'proficiency' and 'uses', a feature description mentioning
    proficiency-bonus uses or both 'bonus action' and 'reaction', or a
    levelled spell whose description mentions 'ritual'.

    Args:
        state: Character snapshot, if any.

    Returns:
        The detected ruleset, or the configured default.
    """
    default = Ruleset(get_settings().engine.default_ruleset)
    if state is None:
        return default

    indicators = (
        any("2024" in feature.name for feature in state.features),
        any("2024" in spell.description for spell in state.spells),
        any("proficiency" in res.name and "uses" in res.name for res in state.resources),
        any(
            "uses = proficiency bonus" in feature.description
            or "proficiency bonus uses" in feature.description
            for feature in state.features
        ),
        any(
            "bonus action" in feature.description and "reaction" in feature.description
            for feature in state.features
        ),
        any("ritual" in spell.description and (spell.level or 0) > 0 for spell in state.spells),
    )
    if any(indicators):
        logger.debug("Detected 2024 ruleset", character=state.name)
        return Ruleset.R2024
    return default


__all__ = [
    # Rule shapes
    "HealingAnnouncementRule",
    "TooComplicatedRule",
    "ReusableRule",
    "ConditionalDamageRule",
    "UtilityRule",
    "ResourceTrackingRule",
    "AdvantageDisadvantageRule",
    "ConditionalAdvantageRule",
    "ReactionRule",
    "SaveRerollRule",
    "BonusActionRule",
    "ResourceDamageRule",
    "InnateMagicRule",
    "DamageResistanceRule",
    "SaveAdvantageRule",
    "FlightRule",
    "NaturalWeaponRule",
    "TelepathyRule",
    "SkillBonusRule",
    "ContestCheckRule",
    "AttackWithDebuffRule",
    "AllyRule",
    "AreaDamageRule",
    "EffectListRule",
    "DescriptiveRule",
    "EdgeCaseRule",
    # Lookup
    "DEFAULT_TABLES",
    "normalize_rule_name",
    "RuleCatalog",
    "get_rule_catalog",
    # Dispatch
    "RuleApplication",
    "apply_rule",
    "detect_ruleset",
]
