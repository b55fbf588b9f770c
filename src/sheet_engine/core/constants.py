"""Rules constants shared by the sheet engine.

Game-content tables (edge-case rules, effect catalogs) live in
``sheet_engine.rules.tables`` and ``sheet_engine.models.effects``; this
module only holds fixed numbers and keyword lists the algorithms rely on.
"""

from __future__ import annotations

# =============================================================================
# Spell Slots
# =============================================================================

MIN_SLOT_LEVEL = 1
"""Lowest spell slot level."""

MAX_SLOT_LEVEL = 9
"""Highest spell slot level."""

PACT_SLOT_PREFIX = "pact:"
"""Prefix of a slot identifier that selects the pact-magic counter."""

SPELL_SAVE_DC_BASE = 8
"""Base of the spell save DC (8 + proficiency + ability modifier)."""

# =============================================================================
# Formula Handling
# =============================================================================

RESERVED_SLOT_TOKEN = "slotLevel"
"""Formula token substituted only once a cast level is chosen."""

NO_ATTACK_MARKER = "(none)"
"""Attack roll value meaning the spell has no attack."""

MAX_EXPRESSION_TOKENS = 256
"""Longest arithmetic expression, in tokens, the evaluator accepts."""

MAX_EXPRESSION_DEPTH = 32
"""Deepest nesting of parentheses, calls and unary minus the evaluator accepts."""

# =============================================================================
# Roll Categories
# =============================================================================

SKILL_KEYWORDS = (
    "acrobatics",
    "animal",
    "arcana",
    "athletics",
    "deception",
    "history",
    "insight",
    "intimidation",
    "investigation",
    "medicine",
    "nature",
    "perception",
    "performance",
    "persuasion",
    "religion",
    "sleight",
    "stealth",
    "survival",
)
"""Label fragments that mark a roll as a skill check."""

ABILITY_KEYWORDS = (
    "strength",
    "dexterity",
    "constitution",
    "intelligence",
    "wisdom",
    "charisma",
)
"""Label fragments that mark a roll as an ability check when an optional effect is chosen."""

# =============================================================================
# Casting
# =============================================================================

MAGIC_ITEM_KEYWORDS = (
    "amulet",
    "ring",
    "wand",
    "staff",
    "rod",
    "cloak",
    "boots",
    "bracers",
    "gauntlets",
    "helm",
    "armor",
    "weapon",
    "talisman",
    "orb",
    "scroll",
    "potion",
)
"""Source fragments identifying a spell cast from a magic item."""

MANUAL_ADJUDICATION_NOTE = "Requires DM intervention"
"""Effect description attached to spells too complex to model."""

DEFAULT_ARMOR_CLASS = 10
"""Armor class used when a character record carries none."""


__all__ = [
    # Slots
    "MIN_SLOT_LEVEL",
    "MAX_SLOT_LEVEL",
    "PACT_SLOT_PREFIX",
    "SPELL_SAVE_DC_BASE",
    # Formulas
    "RESERVED_SLOT_TOKEN",
    "NO_ATTACK_MARKER",
    "MAX_EXPRESSION_TOKENS",
    "MAX_EXPRESSION_DEPTH",
    # Roll categories
    "SKILL_KEYWORDS",
    "ABILITY_KEYWORDS",
    # Casting
    "MAGIC_ITEM_KEYWORDS",
    "MANUAL_ADJUDICATION_NOTE",
    "DEFAULT_ARMOR_CLASS",
]
