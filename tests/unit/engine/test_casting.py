"""Tests for spell cast resolution."""

from __future__ import annotations

from typing import Any

import pytest

from sheet_engine.core.exceptions import ResourceInvariantError, ValidationError
from sheet_engine.engine.casting import (
    CastEffectType,
    CastOptions,
    CastPhase,
    InsufficientResource,
    Metamagic,
    apply_resource_changes,
    available_metamagic,
    is_concentration_recast,
    is_magic_item_spell,
    metamagic_cost,
    resolve_cast,
    slot_offerings,
    spell_rolls,
    track_cast_effects,
)
from sheet_engine.models import (
    CharacterState,
    DamageRoll,
    ResourceChange,
    ResourceKind,
    RollKind,
    SessionState,
    SpellData,
    SpellSlots,
)


class TestMetamagic:
    """Tests for metamagic costs and discovery."""

    @pytest.mark.parametrize(
        ("name", "level", "expected"),
        [
            ("Quickened Spell", 3, 2),
            ("heightened spell", 5, 3),
            ("Twinned Spell", 4, 4),
            ("Twinned Spell", 0, 1),
            ("Subtle Spell", 9, 1),
            ("Unknown Spell", 3, 0),
        ],
    )
    def test_cost(self, name: str, level: int, expected: int) -> None:
        """Twinned costs the cast level, the rest are fixed."""
        assert metamagic_cost(name, level) == expected

    def test_available_from_features(self, sorcerer_state: CharacterState) -> None:
        """Metamagic features are recognized case-insensitively."""
        options = available_metamagic(sorcerer_state)

        assert [option.name for option in options] == ["Quickened Spell", "Twinned Spell"]
        assert options[0].cost == 2
        assert options[1].cost is None

    def test_none_without_features(self, wizard_state: CharacterState) -> None:
        """Characters without metamagic features have no options."""
        assert available_metamagic(wizard_state) == []


class TestSpellSources:
    """Tests for free casting sources."""

    def test_magic_item_source(self) -> None:
        """Item keywords in the source mark a magic-item spell."""
        spell = SpellData(name="Fireball", level=3, source="Wand of Fireballs")

        assert is_magic_item_spell(spell)

    def test_class_source(self, fireball: SpellData) -> None:
        """Class sources are not magic items."""
        assert not is_magic_item_spell(fireball)

    def test_concentration_recast(self, hex_spell: SpellData, session: SessionState) -> None:
        """Only the spell currently concentrated on is a recast."""
        assert not is_concentration_recast(hex_spell, session)

        session.set_concentration("Hex")

        assert is_concentration_recast(hex_spell, session)


class TestSlotOfferings:
    """Tests for the slots offered for a cast."""

    def test_ordinary_levels_from_spell_level(
        self, wizard_state: CharacterState, magic_missile: SpellData
    ) -> None:
        """Offerings start at the spell level and skip empty pools."""
        offerings = slot_offerings(wizard_state, magic_missile.level)

        assert [offering.selection for offering in offerings] == [1, 2, 3]
        assert offerings[0].label == "Level 1 slot"
        assert offerings[1].label == "Level 2 slot (upcast from 1)"

    def test_pact_first_and_subtracted(self, warlock_state: CharacterState) -> None:
        """The pact pool comes first and is removed from the level 3 counter."""
        offerings = slot_offerings(warlock_state, 1)

        assert [offering.selection for offering in offerings] == ["pact:3", 1, 3]
        pact, _, level_three = offerings
        assert pact.is_pact
        assert pact.label == "Pact Magic (level 3)"
        assert (pact.current, pact.maximum) == (2, 2)
        assert (level_three.current, level_three.maximum) == (2, 2)

    def test_pact_above_spell_level_only(self, warlock_state: CharacterState) -> None:
        """Pact slots are not offered for spells above the pact level."""
        offerings = slot_offerings(warlock_state, 4)

        assert offerings == []

    def test_default_pact_level(self) -> None:
        """Pact slots without a tracked level use the configured default."""
        state = CharacterState(
            class_name="Warlock 9",
            spell_slots=SpellSlots(pact_current=1, pact_max=2),
        )

        offerings = slot_offerings(state, 1)

        assert offerings[0].selection == "pact:5"

    def test_empty_pool_still_listed(self, cleric_state: CharacterState) -> None:
        """Exhausted pools are listed but not available."""
        offerings = slot_offerings(cleric_state, 3)

        assert len(offerings) == 1
        assert offerings[0].level == 3
        assert not offerings[0].available


class TestSpellRolls:
    """Tests for the roll requests a spell declares."""

    def test_attack_then_damage(self, wizard_state: CharacterState, fire_bolt: SpellData) -> None:
        """The attack comes before the damage components."""
        rolls = spell_rolls(fire_bolt, wizard_state)

        assert [roll.label for roll in rolls] == ["Fire Bolt - Attack", "Fire Bolt - fire"]
        assert rolls[0].formula == "1d20+6"
        assert rolls[0].kind is RollKind.ATTACK
        assert rolls[1].formula == "2d10"
        assert rolls[1].damage_type == "fire"

    def test_no_attack_marker(self, wizard_state: CharacterState, magic_missile: SpellData) -> None:
        """'(none)' means no attack roll."""
        rolls = spell_rolls(magic_missile, wizard_state, cast_level=2)

        assert len(rolls) == 1
        assert rolls[0].formula == "4d4+2"

    def test_healing_component(self, cleric_state: CharacterState) -> None:
        """Healing components become healing requests."""
        spell = SpellData(
            name="Cure Wounds",
            level=1,
            damage_rolls=(DamageRoll(formula="1d8+(#spellList.abilityMod)", damage_type="healing"),),
        )

        (roll,) = spell_rolls(spell, cleric_state, cast_level=1)

        assert roll.label == "Cure Wounds - Healing"
        assert roll.formula == "1d8+3"
        assert roll.kind is RollKind.HEALING

    def test_single_damage_fallback(self, wizard_state: CharacterState) -> None:
        """A spell without components falls back to its damage formula."""
        spell = SpellData(name="Thorn Whip", level=0, damage="1d6")

        (roll,) = spell_rolls(spell, wizard_state)

        assert roll.label == "Thorn Whip - damage"
        assert roll.kind is RollKind.DAMAGE


class TestResolveCastFree:
    """Tests for casts that cost no slot."""

    def test_cantrip(self, wizard_state: CharacterState, fire_bolt: SpellData) -> None:
        """Cantrips are cast without resources."""
        resolution = resolve_cast(fire_bolt, wizard_state)

        assert not isinstance(resolution, InsufficientResource)
        assert resolution.text == "Cast Fire Bolt (cantrip)"
        assert resolution.is_cantrip
        assert not resolution.is_freecast
        assert resolution.resource_changes == ()
        assert [roll.formula for roll in resolution.rolls] == ["1d20+6", "2d10"]

    def test_reusable_cantrip_tracked(self, wizard_state: CharacterState, fire_bolt: SpellData) -> None:
        """Reusable spells report a tracking effect."""
        resolution = resolve_cast(fire_bolt, wizard_state)

        assert resolution.effect(CastEffectType.TRACK_REUSABLE) is not None
        assert resolution.phase is CastPhase.MAINTAINED_EFFECT_TRACKED

    def test_magic_item(self, wizard_state: CharacterState) -> None:
        """Magic item spells use no slot and substitute their own level."""
        spell = SpellData(
            name="Magic Missile",
            level=1,
            source="Wand of Magic Missiles",
            damage_rolls=(DamageRoll(formula="(slotLevel+2)d4+slotLevel", damage_type="force"),),
        )

        resolution = resolve_cast(spell, wizard_state)

        assert resolution.text == "Cast Magic Missile (magic item)"
        assert resolution.is_freecast
        assert resolution.slot_used is None
        assert resolution.rolls[0].formula == "3d4+1"

    def test_free_spell(self, wizard_state: CharacterState) -> None:
        """Spells consuming items are free casts."""
        spell = SpellData(name="Revivify", level=3, items_consumed=("Diamond (300 gp)",))

        resolution = resolve_cast(spell, wizard_state)

        assert resolution.text == "Cast Revivify (free spell)"
        assert resolution.resource_changes == ()

    def test_too_complicated(self, wizard_state: CharacterState) -> None:
        """Spells needing a ruling emit no rolls."""
        spell = SpellData(name="Wish", level=9, source="Staff of the Magi", damage="10d6")

        resolution = resolve_cast(spell, wizard_state)

        effect = resolution.effect(CastEffectType.MANUAL_ADJUDICATION)
        assert effect is not None
        assert effect.description == "Requires DM intervention"
        assert resolution.rolls == ()


class TestResolveCastSlots:
    """Tests for casts that spend a slot."""

    def test_needs_selection(self, wizard_state: CharacterState, magic_missile: SpellData) -> None:
        """Without a chosen slot nothing is spent."""
        resolution = resolve_cast(magic_missile, wizard_state)

        assert resolution.needs_slot_selection
        assert resolution.text == "Cast Magic Missile (needs level 1+ slot)"
        assert resolution.phase is CastPhase.RESOURCE_SELECTION_PENDING
        assert resolution.resource_changes == ()
        assert resolution.effect(CastEffectType.NEEDS_SLOT_SELECTION).min_level == 1
        assert "slotLevel" in resolution.rolls[0].formula

    def test_upcast(self, wizard_state: CharacterState, magic_missile: SpellData) -> None:
        """Upcasting substitutes the slot level into the damage."""
        resolution = resolve_cast(magic_missile, wizard_state, CastOptions(selected_slot=3))

        assert resolution.text == "Cast Magic Missile using Level 3 slot (upcast from 1)"
        assert resolution.slot_used.key == "level3SpellSlots"
        assert resolution.resource_changes == (
            ResourceChange(kind=ResourceKind.SPELL_SLOT, key="level3SpellSlots", delta=-1),
        )
        assert [roll.formula for roll in resolution.rolls] == ["5d4+3"]
        assert resolution.phase is CastPhase.DONE

    def test_pact_slot(self, warlock_state: CharacterState, hex_spell: SpellData) -> None:
        """A pact selection spends the pact counter."""
        resolution = resolve_cast(hex_spell, warlock_state, CastOptions(selected_slot="pact:3"))

        assert resolution.text == "Cast Hex using Pact Magic (level 3)"
        assert resolution.slot_used.is_pact
        assert resolution.resource_changes == (
            ResourceChange(kind=ResourceKind.PACT_SLOT, key="pactMagicSlots", delta=-1),
        )
        assert resolution.effect(CastEffectType.CONCENTRATION).spell == "Hex"

    @pytest.mark.parametrize("selected", ["pact:9", "pact:5", "pact:1"])
    def test_pact_level_fixed(
        self, warlock_state: CharacterState, hex_spell: SpellData, selected: str
    ) -> None:
        """Pact slots are only cast at the character's pact level."""
        with pytest.raises(ValidationError) as exc_info:
            resolve_cast(hex_spell, warlock_state, CastOptions(selected_slot=selected))

        assert exc_info.value.details["field_name"] == "selected_slot"
        assert exc_info.value.details["invalid_value"] == selected

    def test_too_complicated_pending(self, wizard_state: CharacterState) -> None:
        """A leveled spell needing a ruling computes no rolls while awaiting a slot."""
        spell = SpellData(name="Wish", level=9, damage="10d6")

        resolution = resolve_cast(spell, wizard_state)

        assert resolution.needs_slot_selection
        assert resolution.phase is CastPhase.RESOURCE_SELECTION_PENDING
        assert resolution.effect(CastEffectType.MANUAL_ADJUDICATION) is not None
        assert resolution.rolls == ()
        assert resolution.resource_changes == ()

    def test_slot_below_spell_level(self, wizard_state: CharacterState, fireball: SpellData) -> None:
        """A slot lower than the spell level is refused."""
        result = resolve_cast(fireball, wizard_state, CastOptions(selected_slot=2))

        assert isinstance(result, InsufficientResource)
        assert (result.required, result.available) == (3, 2)

    def test_empty_slot(self, cleric_state: CharacterState, fireball: SpellData) -> None:
        """An exhausted pool is refused with a message."""
        result = resolve_cast(fireball, cleric_state, CastOptions(selected_slot=3))

        assert isinstance(result, InsufficientResource)
        assert result.message == "Not enough Level 3 slot: need 1, have 0"

    @pytest.mark.parametrize("selected", ["banana", "pact:x", 0, 10])
    def test_malformed_selection(
        self, wizard_state: CharacterState, fireball: SpellData, selected: Any
    ) -> None:
        """Selections that are not slot levels are validation errors."""
        with pytest.raises(ValidationError) as exc_info:
            resolve_cast(fireball, wizard_state, CastOptions(selected_slot=selected))

        assert exc_info.value.details["field_name"] == "selected_slot"

    def test_reusable_with_slot(self, wizard_state: CharacterState) -> None:
        """Reusable leveled spells are tracked after paying."""
        shield = SpellData(name="Shield", level=1, source="Wizard")

        resolution = resolve_cast(shield, wizard_state, CastOptions(selected_slot=1))

        assert resolution.effect(CastEffectType.TRACK_REUSABLE) is not None
        assert resolution.phase is CastPhase.MAINTAINED_EFFECT_TRACKED


class TestResolveCastMetamagic:
    """Tests for metamagic charges."""

    def test_charged_with_slot(self, sorcerer_state: CharacterState, magic_missile: SpellData) -> None:
        """Quickened and Twinned at level 1 cost three points."""
        options = CastOptions(
            selected_slot=1,
            selected_metamagic=tuple(available_metamagic(sorcerer_state)),
        )

        resolution = resolve_cast(magic_missile, sorcerer_state, options)

        assert resolution.text == (
            "Cast Magic Missile using Level 1 slot + Quickened Spell, Twinned Spell (3 SP)"
        )
        assert [meta.cost for meta in resolution.metamagic_used] == [2, 1]
        assert resolution.resource_changes[-1] == ResourceChange(
            kind=ResourceKind.RESOURCE, key="sorceryPoints", delta=-3
        )

    def test_over_budget(self, sorcerer_state: CharacterState, magic_missile: SpellData) -> None:
        """Twinned at level 3 plus Quickened exceeds four points."""
        options = CastOptions(
            selected_slot=3,
            selected_metamagic=(Metamagic("Quickened Spell"), Metamagic("Twinned Spell")),
        )

        result = resolve_cast(magic_missile, sorcerer_state, options)

        assert isinstance(result, InsufficientResource)
        assert result.message == "Not enough Sorcery Points: need 5, have 4"

    def test_without_points(self, wizard_state: CharacterState, fire_bolt: SpellData) -> None:
        """Characters without sorcery points cannot apply metamagic."""
        options = CastOptions(selected_metamagic=(Metamagic("Quickened Spell"),))

        result = resolve_cast(fire_bolt, wizard_state, options)

        assert isinstance(result, InsufficientResource)
        assert result.resource == "Sorcery Points"
        assert result.available == 0


class TestApplyAndTrack:
    """Tests for committing a resolution."""

    def test_apply_changes(self, sorcerer_state: CharacterState, magic_missile: SpellData) -> None:
        """Slot and sorcery point deltas are applied together."""
        options = CastOptions(selected_slot=1, selected_metamagic=(Metamagic("Quickened Spell"),))
        resolution = resolve_cast(magic_missile, sorcerer_state, options)

        updated = apply_resource_changes(sorcerer_state, resolution.resource_changes)

        assert updated.spell_slots.available(1) == 3
        assert updated.find_resource("sorceryPoints").current == 2
        assert sorcerer_state.spell_slots.available(1) == 4

    def test_apply_is_atomic(self, wizard_state: CharacterState) -> None:
        """One invalid delta rejects the whole batch."""
        changes = [
            ResourceChange(kind=ResourceKind.SPELL_SLOT, key="level1SpellSlots", delta=-1),
            ResourceChange(kind=ResourceKind.PACT_SLOT, key="pactMagicSlots", delta=-1),
        ]

        with pytest.raises(ResourceInvariantError):
            apply_resource_changes(wizard_state, changes)

    def test_concentration_tracked(
        self, warlock_state: CharacterState, hex_spell: SpellData, session: SessionState
    ) -> None:
        """Tracking a concentration cast reports the broken spell."""
        session.set_concentration("Bless")
        resolution = resolve_cast(hex_spell, warlock_state, CastOptions(selected_slot="pact:3"))

        broken = track_cast_effects(resolution, session)

        assert broken == "Bless"
        assert session.concentrating_on == "Hex"

    def test_recast_skips_payment(
        self, warlock_state: CharacterState, hex_spell: SpellData, session: SessionState
    ) -> None:
        """Recasting the maintained spell costs nothing and tracks nothing."""
        session.set_concentration("Hex")

        resolution = resolve_cast(hex_spell, warlock_state, CastOptions(skip_slot_consumption=True))

        assert resolution.text == "Cast Hex (concentration recast)"
        assert resolution.is_freecast
        assert resolution.resource_changes == ()
        assert resolution.effects == ()
        assert resolution.phase is CastPhase.DONE
        assert track_cast_effects(resolution, session) is None
        assert session.concentrating_on == "Hex"
