"""Tests for action options, costs and slot recovery."""

from __future__ import annotations

import pytest

from sheet_engine.core.exceptions import ValidationError
from sheet_engine.engine.actions import (
    action_resource_costs,
    detect_class_resources,
    find_cost_resource,
    get_action_options,
    max_recoverable_slot_level,
    plan_action_resource_use,
    plan_slot_recovery,
    recoverable_slot_levels,
    resolve_action_use,
)
from sheet_engine.engine.casting import InsufficientResource
from sheet_engine.models import (
    ActionCost,
    ActionData,
    CharacterState,
    Resource,
    ResourceChange,
    ResourceKind,
    RollKind,
)


def _cost(variable_name: str, quantity: int = 1, stat_name: str = "") -> ActionCost:
    return ActionCost(stat_name=stat_name, variable_name=variable_name, quantity=quantity)


class TestActionOptions:
    """Tests for building roll options."""

    def test_attack_and_damage(self) -> None:
        """Weapon actions offer an attack and a damage roll."""
        action = ActionData(name="Longsword", attack_roll="5", damage="1d8+3", damage_type="slashing")

        application = get_action_options(action)

        attack, damage = application.options
        assert (attack.type, attack.label, attack.formula, attack.icon) == ("attack", "Attack", "1d20+5", "🎯")
        assert (damage.type, damage.label, damage.formula) == ("damage", "Damage", "1d8+3")
        assert not application.skip_normal_buttons

    @pytest.mark.parametrize(
        ("attack_roll", "expected"),
        [
            ("-1", "1d20-1"),
            ("1d20+7", "1d20+7"),
            ("(#spellList.attackBonus)", "1d20+(#spellList.attackBonus)"),
        ],
    )
    def test_attack_formula(self, attack_roll: str, expected: str) -> None:
        """Bonuses become d20 formulas; d20 formulas are kept."""
        action = ActionData(name="Strike", attack_roll=attack_roll)

        (attack,) = get_action_options(action).options

        assert attack.formula == expected

    def test_healing_option(self) -> None:
        """Healing damage types offer a Heal button."""
        action = ActionData(name="Healing Touch", damage="1d10+5", damage_type="healing")

        (option,) = get_action_options(action).options

        assert (option.type, option.label, option.icon) == ("healing", "Heal", "💚")

    def test_temp_hp_feature(self) -> None:
        """Feature rolls without an attack are labelled Roll."""
        action = ActionData(name="Inspiring Word", action_type="feature", damage="1d6", damage_type="temphp")

        (option,) = get_action_options(action).options

        assert (option.type, option.label) == ("temphp", "Roll")

    def test_flat_damage_has_no_option(self) -> None:
        """Damage without dice offers nothing to roll."""
        action = ActionData(name="Bonk", damage="5")

        assert get_action_options(action).options == ()


class TestActionEdgeCases:
    """Tests for edge-case rules on actions."""

    def test_contest_note(self) -> None:
        """Contest maneuvers note both sides of the check."""
        action = ActionData(name="Grapple", attack_roll="4")

        (option,) = get_action_options(action).options

        assert option.edge_case_note == "⚔️ athletics vs athletics_or_acrobatics"

    def test_description_fallback(self) -> None:
        """Shapes without a template fall back to the description."""
        action = ActionData(name="Sneak Attack", action_type="feature", damage="3d6")

        (option,) = get_action_options(action).options

        assert option.label == "Roll"
        assert option.edge_case_note == "Extra damage with advantage or ally adjacent"

    def test_utility_skips_buttons(self) -> None:
        """DM-discretion features suppress the standard buttons."""
        action = ActionData(name="Divine Intervention", description="Call on your deity.")

        resolution = resolve_action_use(action)

        assert resolution.edge_case is not None
        assert resolution.edge_case.skip_normal_buttons
        assert resolution.description == "Call on your deity."


class TestResolveActionUse:
    """Tests for resolving an action into roll requests."""

    def test_rolls_resolved(self, wizard_state: CharacterState) -> None:
        """Formulas are resolved against the character."""
        action = ActionData(
            name="Arcane Blast",
            attack_roll="(#spellList.attackBonus)",
            damage="1d10+[intelligence.modifier]",
            damage_type="force",
        )

        resolution = resolve_action_use(action, wizard_state)

        attack, damage = resolution.rolls
        assert (attack.label, attack.formula, attack.kind) == ("Arcane Blast - Attack", "1d20+6", RollKind.ATTACK)
        assert attack.damage_type is None
        assert (damage.label, damage.formula, damage.damage_type) == ("Arcane Blast - Damage", "1d10+3", "force")
        assert resolution.edge_case is None

    def test_without_state(self) -> None:
        """Without a character the formulas are left as written."""
        action = ActionData(name="Claw", attack_roll="3", damage="1d6+(strength.modifier)")

        resolution = resolve_action_use(action)

        assert resolution.text == "Claw"
        assert resolution.rolls[1].formula == "1d6+(strength.modifier)"


class TestActionCosts:
    """Tests for planning resource deductions."""

    def test_declared_costs(self) -> None:
        """Costs keep their declared names and quantities."""
        action = ActionData(name="Turn Undead", attributes_consumed=(_cost("channelDivinity", 1, "Channel Divinity"),))

        (entry,) = action_resource_costs(action)

        assert (entry.name, entry.variable_name, entry.quantity) == ("Channel Divinity", "channelDivinity", 1)

    def test_channel_divinity_flexible_match(self, cleric_state: CharacterState) -> None:
        """Any channelDivinity key finds the tracked Channel Divinity."""
        resource = find_cost_resource(cleric_state, "channelDivinityPaladin")

        assert resource is not None
        assert resource.key == "channelDivinityCleric"

    def test_plan(self, cleric_state: CharacterState) -> None:
        """A payable cost becomes a negative delta."""
        action = ActionData(name="Turn Undead", attributes_consumed=(_cost("channelDivinity"),))

        changes = plan_action_resource_use(action, cleric_state)

        assert changes == [ResourceChange(kind=ResourceKind.RESOURCE, key="channelDivinityCleric", delta=-1)]

    def test_insufficient(self, cleric_state: CharacterState) -> None:
        """Costs above the current amount are refused."""
        action = ActionData(name="Big Turn", attributes_consumed=(_cost("channelDivinityCleric", 3),))

        result = plan_action_resource_use(action, cleric_state)

        assert result == InsufficientResource("Channel Divinity", 3, 2)

    def test_repeated_costs_summed(self, cleric_state: CharacterState) -> None:
        """Two costs against one resource are checked together."""
        action = ActionData(
            name="Double Shape",
            attributes_consumed=(_cost("wildShapeUses"), _cost("wildShapeUses")),
        )

        result = plan_action_resource_use(action, cleric_state)

        assert isinstance(result, InsufficientResource)
        assert (result.required, result.available) == (2, 1)

    @pytest.mark.parametrize("variable_name", ["kiPoints", "sorceryPoints", "superiorityDice", ""])
    def test_skipped_costs(self, cleric_state: CharacterState, variable_name: str) -> None:
        """Separately tracked, unnamed and untracked costs are skipped."""
        action = ActionData(name="Flurry", attributes_consumed=(_cost(variable_name),))

        assert plan_action_resource_use(action, cleric_state) == []


class TestClassResources:
    """Tests for detecting class resources from the variable bag."""

    def test_channel_divinity(self, cleric_state: CharacterState) -> None:
        """Channel Divinity is read from the class-suffixed variable."""
        assert detect_class_resources(cleric_state) == [
            Resource(name="Channel Divinity", current=2, max=2, variable_name="channelDivinityCleric"),
        ]

    def test_ki_and_pact(self) -> None:
        """Ki is clamped to its max and empty pools are not reported."""
        state = CharacterState(
            variables={"kiPoints": 7, "kiPointsMax": 5, "pactMagicSlots": 1, "pactMagicSlotsMax": 0},
        )

        assert detect_class_resources(state) == [
            Resource(name="Ki", current=5, max=5, variable_name="kiPoints"),
        ]

    def test_nothing_detected(self, wizard_state: CharacterState) -> None:
        """Characters without these variables report nothing."""
        assert detect_class_resources(wizard_state) == []


class TestSlotRecovery:
    """Tests for recovering expended slots."""

    def test_recoverable_levels(self, cleric_state: CharacterState) -> None:
        """Only expended levels up to half proficiency qualify."""
        assert max_recoverable_slot_level(cleric_state) == 2
        assert recoverable_slot_levels(cleric_state) == [1]

    def test_spends_channel_divinity(self, cleric_state: CharacterState) -> None:
        """Characters tracking Channel Divinity spend a use."""
        changes = plan_slot_recovery(cleric_state, 1)

        assert changes == [
            ResourceChange(kind=ResourceKind.SPELL_SLOT, key="level1SpellSlots", delta=1),
            ResourceChange(kind=ResourceKind.RESOURCE, key="channelDivinityCleric", delta=-1),
        ]

    def test_no_channel_divinity_left(self, cleric_state: CharacterState) -> None:
        """With no use left the recovery is refused."""
        spent = cleric_state.with_changes(
            [ResourceChange(kind=ResourceKind.RESOURCE, key="channelDivinityCleric", delta=-2)]
        )

        assert plan_slot_recovery(spent, 1) == InsufficientResource("Channel Divinity", 1, 0)

    def test_without_channel_divinity(self, wizard_state: CharacterState) -> None:
        """Other characters only regain the slot."""
        spent = wizard_state.with_changes(
            [ResourceChange(kind=ResourceKind.SPELL_SLOT, key="level2SpellSlots", delta=-1)]
        )

        assert plan_slot_recovery(spent, 2) == [
            ResourceChange(kind=ResourceKind.SPELL_SLOT, key="level2SpellSlots", delta=1),
        ]

    @pytest.mark.parametrize("level", [2, 3, 0])
    def test_invalid_level(self, cleric_state: CharacterState, level: int) -> None:
        """Full, too high or invalid levels are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            plan_slot_recovery(cleric_state, level)

        assert exc_info.value.details["field_name"] == "level"
