"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the sheet engine test suite.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest


if TYPE_CHECKING:
    from collections.abc import Generator


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings and rule catalog caches before and after each test."""
    from sheet_engine.core.config import clear_settings_cache
    from sheet_engine.rules.catalog import get_rule_catalog

    clear_settings_cache()
    get_rule_catalog.cache_clear()
    yield
    clear_settings_cache()
    get_rule_catalog.cache_clear()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "SHEET_ENGINE_DEBUG": "true",
        "SHEET_ENGINE_LOG_LEVEL": "DEBUG",
        "SHEET_ENGINE_ENGINE_DEFAULT_RULESET": "2024",
        "SHEET_ENGINE_ENGINE_DEFAULT_PACT_LEVEL": "3",
        "SHEET_ENGINE_ENGINE_DICE_SEED": "7",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# Sheet Entry Fixtures
# =============================================================================


@pytest.fixture
def fire_bolt() -> Any:
    """A cantrip with an attack and a fire damage roll."""
    from sheet_engine.models import DamageRoll, SpellData

    return SpellData(
        name="Fire Bolt",
        level=0,
        source="Wizard",
        attack_roll="1d20+(#spellList.attackBonus)",
        damage_rolls=(DamageRoll(formula="2d10", damage_type="fire"),),
    )


@pytest.fixture
def magic_missile() -> Any:
    """A level 1 spell whose damage scales with the slot level."""
    from sheet_engine.models import DamageRoll, SpellData

    return SpellData(
        name="Magic Missile",
        level=1,
        source="Wizard",
        attack_roll="(none)",
        damage_rolls=(DamageRoll(formula="(slotLevel+2)d4+slotLevel", damage_type="force"),),
    )


@pytest.fixture
def fireball() -> Any:
    """A level 3 area spell with a fixed damage roll."""
    from sheet_engine.models import DamageRoll, SpellData

    return SpellData(
        name="Fireball",
        level=3,
        source="Wizard",
        damage_rolls=(DamageRoll(formula="8d6", damage_type="fire"),),
    )


@pytest.fixture
def hex_spell() -> Any:
    """A level 1 concentration spell."""
    from sheet_engine.models import SpellData

    return SpellData(
        name="Hex",
        level=1,
        source="Warlock",
        concentration=True,
        damage="1d6",
        damage_type="necrotic",
    )


# =============================================================================
# Character Fixtures
# =============================================================================


@pytest.fixture
def wizard_state(fire_bolt: Any, magic_missile: Any, fireball: Any) -> Any:
    """A level 5 wizard with ordinary slots at levels 1-3.

    Returns:
        CharacterState instance.
    """
    from sheet_engine.models import CharacterState, SpellSlots

    return CharacterState(
        name="Elara",
        class_name="Wizard 5",
        level=5,
        ability_scores={
            "strength": 8,
            "dexterity": 14,
            "constitution": 12,
            "intelligence": 16,
            "wisdom": 12,
            "charisma": 10,
        },
        proficiency_bonus=3,
        variables={"wizardLevel": 5, "arcaneWard": {"value": 12}, "school": "Evocation"},
        spell_slots=SpellSlots(
            current={1: 4, 2: 3, 3: 2},
            maximum={1: 4, 2: 3, 3: 2},
        ),
        spells=(fire_bolt, magic_missile, fireball),
    )


@pytest.fixture
def warlock_state(hex_spell: Any) -> Any:
    """A warlock whose sheet also counts pact slots in the level 3 counter.

    Returns:
        CharacterState instance.
    """
    from sheet_engine.models import CharacterState, SpellSlots

    return CharacterState(
        name="Morwen",
        class_name="Warlock 5",
        level=5,
        ability_scores={"charisma": 18},
        proficiency_bonus=3,
        spell_slots=SpellSlots(
            current={1: 2, 3: 4},
            maximum={1: 2, 3: 4},
            pact_current=2,
            pact_max=2,
            pact_level=3,
        ),
        spells=(hex_spell,),
    )


@pytest.fixture
def sorcerer_state() -> Any:
    """A sorcerer with sorcery points and two metamagic options.

    Returns:
        CharacterState instance.
    """
    from sheet_engine.models import CharacterState, Feature, Resource, SpellSlots

    return CharacterState(
        name="Kael",
        class_name="Sorcerer 6",
        level=6,
        ability_scores={"charisma": 17},
        proficiency_bonus=3,
        resources=(Resource(name="Sorcery Points", current=4, max=6, variable_name="sorceryPoints"),),
        spell_slots=SpellSlots(
            current={1: 4, 2: 3, 3: 3},
            maximum={1: 4, 2: 3, 3: 3},
        ),
        features=(
            Feature(name="Quickened Spell", description="Cast as a bonus action"),
            Feature(name="twinned spell", description="Target a second creature"),
            Feature(name="Font of Magic"),
        ),
    )


@pytest.fixture
def cleric_state() -> Any:
    """A cleric with Channel Divinity and some expended slots.

    Returns:
        CharacterState instance.
    """
    from sheet_engine.models import CharacterState, Resource, SpellSlots

    return CharacterState(
        name="Brother Aldric",
        class_name="Cleric 6",
        level=6,
        ability_scores={"wisdom": 16},
        proficiency_bonus=3,
        variables={"channelDivinityCleric": 2, "channelDivinityClericMax": 2},
        resources=(
            Resource(name="Channel Divinity", current=2, max=2, variable_name="channelDivinityCleric"),
            Resource(name="Wild Shape", current=1, max=2, variable_name="wildShapeUses"),
        ),
        spell_slots=SpellSlots(
            current={1: 1, 2: 3, 3: 0},
            maximum={1: 4, 2: 3, 3: 3},
        ),
    )


# =============================================================================
# Session Fixtures
# =============================================================================


@pytest.fixture
def session() -> Any:
    """Create an empty SessionState.

    Returns:
        SessionState instance.
    """
    from sheet_engine.models import SessionState

    return SessionState()


@pytest.fixture
def dice_roller() -> Any:
    """Create a DiceRoller with a fixed seed for reproducible tests.

    Returns:
        DiceRoller instance with fixed seed.
    """
    from sheet_engine.engine.dice import DiceRoller

    return DiceRoller(seed=42)
