"""Per-character situational state threaded through roll resolution.

SessionState holds what changes between rolls but is not part of the
character record: the advantage tri-state, active buffs and conditions,
and the spell currently being concentrated on.

Precondition: a SessionState has a single writer. Resolution calls mutate
it (advantage reset, consumed optional effects), so callers must not
resolve rolls for the same character concurrently. Serialize access with
a lock or a per-character queue if several surfaces can trigger rolls.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from sheet_engine.core.constants import DEFAULT_ARMOR_CLASS
from sheet_engine.core.exceptions import UnknownEffectError
from sheet_engine.core.logging import get_logger
from sheet_engine.models.effects import Effect, get_effect
from sheet_engine.models.enums import AdvantageState, EffectKind


logger = get_logger(__name__)


class SessionState(BaseModel):
    """Mutable situational state for one character.

    Attributes:
        advantage: Advantage state for the next d20 roll.
        active_buffs: Active buffs in activation order.
        active_conditions: Active conditions in activation order.
        concentrating_on: Name of the spell being concentrated on.

    Example:
        >>> session = SessionState()
        >>> session.add_effect("Bless").name
        'Bless'
        >>> session.set_concentration("Bless")
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    advantage: AdvantageState = Field(default=AdvantageState.NORMAL, description="Next d20 advantage")
    active_buffs: list[Effect] = Field(default_factory=list, description="Active buffs")
    active_conditions: list[Effect] = Field(default_factory=list, description="Active conditions")
    concentrating_on: str | None = Field(default=None, description="Concentration spell")

    @property
    def active_effects(self) -> list[Effect]:
        """All active effects, buffs first, each list in activation order."""
        return [*self.active_buffs, *self.active_conditions]

    def is_active(self, name: str) -> bool:
        """Check whether an effect with this name is active."""
        return any(effect.name == name for effect in self.active_effects)

    def add_effect(self, effect: Effect | str) -> Effect:
        """Activate an effect.

        Adding an effect that is already active is a no-op.

        Args:
            effect: Effect instance or catalog name.

        Returns:
            The active effect.

        Raises:
            UnknownEffectError: If a name is not in the effect catalog.
        """
        if isinstance(effect, str):
            found = get_effect(effect)
            if found is None:
                raise UnknownEffectError(f"No effect named {effect!r}", effect_name=effect)
            effect = found

        target = self.active_buffs if effect.kind is EffectKind.BUFF else self.active_conditions
        for existing in target:
            if existing.name == effect.name:
                logger.debug("Effect already active", effect=effect.name)
                return existing

        target.append(effect)
        logger.debug("Effect added", effect=effect.name, kind=effect.kind)
        return effect

    def remove_effect(self, name: str) -> Effect | None:
        """Deactivate an effect by name.

        Args:
            name: Effect name.

        Returns:
            The removed effect, or None if it was not active.
        """
        for target in (self.active_buffs, self.active_conditions):
            for index, effect in enumerate(target):
                if effect.name == name:
                    del target[index]
                    logger.debug("Effect removed", effect=name)
                    return effect
        return None

    def consume_advantage(self) -> AdvantageState:
        """Return the advantage state and reset it to normal."""
        state = self.advantage
        self.advantage = AdvantageState.NORMAL
        return state

    def set_concentration(self, spell_name: str) -> str | None:
        """Start concentrating on a spell.

        Args:
            spell_name: Spell being concentrated on.

        Returns:
            The spell whose concentration was broken, if any.
        """
        previous = self.concentrating_on
        self.concentrating_on = spell_name
        if previous and previous != spell_name:
            logger.info("Concentration replaced", previous=previous, spell=spell_name)
        return previous if previous != spell_name else None

    def drop_concentration(self) -> str | None:
        """Stop concentrating.

        Returns:
            The spell that was being concentrated on, if any.
        """
        previous = self.concentrating_on
        self.concentrating_on = None
        return previous

    def total_armor_class(self, base: int | None = None) -> int:
        """Armor class after numeric AC adjustments of auto-applying effects.

        Args:
            base: Base armor class; defaults to 10.

        Returns:
            Adjusted armor class.
        """
        total = base if base else DEFAULT_ARMOR_CLASS
        for effect in self.active_effects:
            ac = effect.modifiers.get("ac")
            if effect.auto_apply and isinstance(ac, int) and not isinstance(ac, bool):
                total += ac
        return total


__all__ = [
    "SessionState",
]
