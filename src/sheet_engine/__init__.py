"""Sheet Engine - D&D 5E character sheet resolution.

Turns the declarative contents of a character sheet (formulas, spells,
actions, resources) into concrete roll requests and resource deltas.

DESIGN:
- The character snapshot is authoritative and immutable; resolution
  returns deltas, callers commit them with apply_resource_changes
- Session state (advantage, buffs, conditions, concentration) has a
  single writer per character
- The engine never rolls dice on its own; DiceRoller is for callers

Example:
    >>> from sheet_engine import CharacterState, SessionState, prepare_roll
    >>>
    >>> state = CharacterState(name="Elara", class_name="Wizard", variables={"intelligenceMod": 3})
    >>> session = SessionState()
    >>> request = prepare_roll("Fire Bolt - Attack", "1d20 + intelligenceMod", state, session)
    >>> print(request.display_label, request.formula)

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic V2 schemas for the character, session and sheet entries.
    engine: Formula evaluation, roll pipeline, spell and action resolution.
    rules: Edge-case rule catalog.
"""

from __future__ import annotations

# Core
from sheet_engine.core.config import Settings, get_settings
from sheet_engine.core.exceptions import ResourceInvariantError, SheetEngineError
from sheet_engine.core.logging import configure_logging, get_logger

# Models
from sheet_engine.models import (
    ActionData,
    CharacterState,
    Resource,
    ResourceChange,
    SessionState,
    SpellData,
    SpellSlots,
)

# Engine
from sheet_engine.engine import (
    CastOptions,
    CastResolution,
    DiceRoller,
    InsufficientResource,
    ResolvedRollRequest,
    apply_resource_changes,
    get_action_options,
    prepare_roll,
    resolve,
    resolve_action_use,
    resolve_cast,
)

# Rules
from sheet_engine.rules import RuleCatalog, detect_ruleset, get_rule_catalog


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "SheetEngineError",
    "ResourceInvariantError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Models
    "ActionData",
    "CharacterState",
    "Resource",
    "ResourceChange",
    "SessionState",
    "SpellData",
    "SpellSlots",
    # Engine
    "CastOptions",
    "CastResolution",
    "DiceRoller",
    "InsufficientResource",
    "ResolvedRollRequest",
    "apply_resource_changes",
    "get_action_options",
    "prepare_roll",
    "resolve",
    "resolve_action_use",
    "resolve_cast",
    # Rules
    "RuleCatalog",
    "detect_ruleset",
    "get_rule_catalog",
]
