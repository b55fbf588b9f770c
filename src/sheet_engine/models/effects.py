"""Catalog of buffs and conditions that modify rolls.

Each effect carries a modifier mapping keyed by what it touches:

- ``attack``, ``save``, ``skill``, ``damage``: a dice term or number added to
  the roll, or ``advantage`` / ``disadvantage``.
- ``strSave``, ``dexSave``: save modifiers that apply only when the roll's
  label names the matching ability; ``fail`` means an automatic failure.
- ``ac``: numeric armor class adjustment.
- Anything else (``maxHp``, ``speed``, ``strCheck``...) is informational.

Auto-applying effects are folded into every matching roll. The others are
optional and must be chosen by the player, after which they are consumed.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from sheet_engine.models.enums import EffectKind


ModifierValue = str | int | bool


class Effect(BaseModel):
    """A buff or condition definition.

    Attributes:
        name: Effect name.
        icon: Emoji shown in roll annotations.
        description: Rules summary.
        modifiers: What the effect modifies (see module docstring).
        auto_apply: Whether the effect applies without player choice.
        kind: Buff or condition.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1, description="Effect name")
    icon: str = Field(default="", description="Annotation icon")
    description: str = Field(default="", description="Rules summary")
    modifiers: dict[str, ModifierValue] = Field(default_factory=dict, description="Modifier mapping")
    auto_apply: bool = Field(default=True, description="Applies without choice")
    kind: EffectKind = Field(default=EffectKind.BUFF, description="Buff or condition")

    def modifier(self, key: str) -> ModifierValue | None:
        """Get a modifier value, treating falsy values as absent."""
        value = self.modifiers.get(key)
        return value if value else None


def _buff(name: str, icon: str, description: str, modifiers: dict[str, ModifierValue], *, auto_apply: bool = True) -> Effect:
    return Effect(
        name=name,
        icon=icon,
        description=description,
        modifiers=modifiers,
        auto_apply=auto_apply,
        kind=EffectKind.BUFF,
    )


def _condition(name: str, icon: str, description: str, modifiers: dict[str, ModifierValue], *, auto_apply: bool = True) -> Effect:
    return Effect(
        name=name,
        icon=icon,
        description=description,
        modifiers=modifiers,
        auto_apply=auto_apply,
        kind=EffectKind.CONDITION,
    )


# =============================================================================
# Buffs
# =============================================================================

BUFFS: tuple[Effect, ...] = (
    _buff("Bless", "✨", "+1d4 to attack rolls and saving throws", {"attack": "1d4", "save": "1d4"}),
    _buff("Guidance", "🙏", "+1d4 to one ability check", {"skill": "1d4"}, auto_apply=False),
    _buff(
        "Bardic Inspiration (d6)",
        "🎵",
        "Bard levels 1-4: +d6 to ability check, attack, or save",
        {"attack": "d6", "skill": "d6", "save": "d6"},
        auto_apply=False,
    ),
    _buff(
        "Bardic Inspiration (d8)",
        "🎵",
        "Bard levels 5-9: +d8 to ability check, attack, or save",
        {"attack": "d8", "skill": "d8", "save": "d8"},
        auto_apply=False,
    ),
    _buff(
        "Bardic Inspiration (d10)",
        "🎵",
        "Bard levels 10-14: +d10 to ability check, attack, or save",
        {"attack": "d10", "skill": "d10", "save": "d10"},
        auto_apply=False,
    ),
    _buff(
        "Bardic Inspiration (d12)",
        "🎵",
        "Bard levels 15-20: +d12 to ability check, attack, or save",
        {"attack": "d12", "skill": "d12", "save": "d12"},
        auto_apply=False,
    ),
    _buff("Haste", "⚡", "+2 AC, advantage on DEX saves, extra action", {"ac": 2, "dexSave": "advantage"}),
    _buff(
        "Enlarge",
        "⬆️",
        "+1d4 weapon damage, advantage on STR checks/saves",
        {"damage": "1d4", "strCheck": "advantage", "strSave": "advantage"},
    ),
    _buff("Invisibility", "👻", "Advantage on attack rolls, enemies have disadvantage", {"attack": "advantage"}),
    _buff("Shield of Faith", "🛡️", "+2 AC", {"ac": 2}),
    _buff("Heroism", "🦸", "Immune to frightened, temp HP each turn", {"frightened": "immune"}),
    _buff(
        "Enhance Ability",
        "💪",
        "Advantage on ability checks with chosen ability",
        {"skill": "advantage"},
        auto_apply=False,
    ),
    _buff(
        "Rage",
        "😡",
        "+2 damage on melee attacks, advantage on STR checks/saves, resistance to physical damage",
        {"damage": 2, "strCheck": "advantage", "strSave": "advantage", "physicalResistance": True},
    ),
    _buff(
        "Rage (+3)",
        "😤",
        "Level 9-15: +3 damage on melee attacks, advantage on STR checks/saves, resistance to physical damage",
        {"damage": 3, "strCheck": "advantage", "strSave": "advantage", "physicalResistance": True},
    ),
    _buff(
        "Rage (+4)",
        "🔥",
        "Level 16+: +4 damage on melee attacks, advantage on STR checks/saves, resistance to physical damage",
        {"damage": 4, "strCheck": "advantage", "strSave": "advantage", "physicalResistance": True},
    ),
    _buff("Aid", "❤️", "Max HP increased by 5", {"maxHp": 5}),
    _buff("True Strike", "🎯", "Advantage on next attack roll", {"attack": "advantage"}),
    _buff("Faerie Fire", "✨", "Attackers have advantage against target", {}, auto_apply=False),
)
"""Positive effects a character can be under."""

# =============================================================================
# Conditions
# =============================================================================

CONDITIONS: tuple[Effect, ...] = (
    _condition("Bane", "💀", "-1d4 to attack rolls and saving throws", {"attack": "-1d4", "save": "-1d4"}),
    _condition(
        "Poisoned",
        "☠️",
        "Disadvantage on attack rolls and ability checks",
        {"attack": "disadvantage", "skill": "disadvantage"},
    ),
    _condition(
        "Frightened",
        "😱",
        "Disadvantage on ability checks and attack rolls",
        {"attack": "disadvantage", "skill": "disadvantage"},
    ),
    _condition(
        "Stunned",
        "💫",
        "Incapacitated, auto-fail STR/DEX saves, attackers have advantage",
        {"strSave": "fail", "dexSave": "fail"},
    ),
    _condition(
        "Paralyzed",
        "🧊",
        "Incapacitated, auto-fail STR/DEX saves, attacks within 5ft are crits",
        {"strSave": "fail", "dexSave": "fail"},
    ),
    _condition(
        "Restrained",
        "⛓️",
        "Disadvantage on DEX saves and attack rolls",
        {"attack": "disadvantage", "dexSave": "disadvantage"},
    ),
    _condition(
        "Blinded",
        "🙈",
        "Auto-fail sight checks, disadvantage on attacks",
        {"attack": "disadvantage", "perception": "disadvantage"},
    ),
    _condition("Deafened", "🙉", "Auto-fail hearing checks", {"perception": "disadvantage"}),
    _condition(
        "Charmed",
        "💖",
        "Cannot attack charmer, charmer has advantage on social checks",
        {},
        auto_apply=False,
    ),
    _condition("Grappled", "🤼", "Speed becomes 0", {"speed": 0}),
    _condition(
        "Prone",
        "⬇️",
        "Disadvantage on attack rolls, melee attacks against you have advantage",
        {"attack": "disadvantage"},
    ),
    _condition("Incapacitated", "😵", "Cannot take actions or reactions", {}, auto_apply=False),
    _condition(
        "Unconscious",
        "😴",
        "Incapacitated, drop everything, auto-fail STR/DEX saves",
        {"strSave": "fail", "dexSave": "fail"},
    ),
    _condition(
        "Petrified",
        "🗿",
        "Incapacitated, auto-fail STR/DEX saves, resistance to all damage",
        {"strSave": "fail", "dexSave": "fail"},
    ),
    _condition("Slowed", "🐌", "Speed halved, -2 AC and DEX saves, no reactions", {"ac": -2, "dexSave": "-2"}),
    _condition(
        "Hexed",
        "🔮",
        "Disadvantage on ability checks with chosen ability, extra damage to caster",
        {"skill": "disadvantage"},
        auto_apply=False,
    ),
    _condition(
        "Cursed",
        "😈",
        "Disadvantage on attacks and saves against caster",
        {"attack": "disadvantage", "save": "disadvantage"},
    ),
)
"""Negative effects a character can be under."""

_BY_NAME: dict[str, Effect] = {effect.name: effect for effect in (*BUFFS, *CONDITIONS)}


def get_effect(name: str) -> Effect | None:
    """Look up a catalog effect by exact name.

    Args:
        name: Effect name, e.g. 'Bless'.

    Returns:
        The effect, or None if the catalog has no such entry.
    """
    return _BY_NAME.get(name)


__all__ = [
    "ModifierValue",
    "Effect",
    "BUFFS",
    "CONDITIONS",
    "get_effect",
]
