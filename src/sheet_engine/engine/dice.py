"""Dice rolling for prepared roll requests.

The resolution engine never rolls on its own: it hands back
``ResolvedRollRequest`` values. Hosts that want a local result rather than
relaying the formula to a virtual tabletop roll it here, with the d20
library doing the parsing and the keep-highest / keep-lowest handling.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import d20

from sheet_engine.core.config import get_settings
from sheet_engine.core.exceptions import DiceRollError
from sheet_engine.core.logging import get_logger


if TYPE_CHECKING:
    from sheet_engine.engine.rolls import ResolvedRollRequest


logger = get_logger(__name__)


@dataclass(frozen=True)
class RollResult:
    """Outcome of rolling a formula.

    Attributes:
        expression: The formula that was rolled.
        total: The total result of the roll.
        dice: Kept individual die results.
        is_critical: Whether the kept d20 shows a natural 20.
        is_fumble: Whether the kept d20 shows a natural 1.
        breakdown: d20's rendering of the roll, e.g. '2d20kh1 (**17**, 4) + 5 = `22`'.
        label: Display label of the roll request, when rolled from one.
    """

    expression: str
    total: int
    dice: list[int]
    is_critical: bool
    is_fumble: bool
    breakdown: str
    label: str | None = None


class DiceRoller:
    """Rolls finalized formulas with the d20 library.

    Example:
        >>> roller = DiceRoller(seed=42)
        >>> result = roller.roll("2d20kh1+5")
        >>> print(f"Total: {result.total}")
    """

    def __init__(self, *, seed: int | None = None) -> None:
        """Initialize the dice roller.

        Args:
            seed: Optional random seed for reproducible rolls; defaults to
                the ``dice_seed`` engine setting.
        """
        self._seed = seed if seed is not None else get_settings().engine.dice_seed
        if self._seed is not None:
            random.seed(self._seed)
        logger.debug("DiceRoller initialized", seed=self._seed)

    def roll(self, expression: str, *, label: str | None = None) -> RollResult:
        """Roll a dice formula.

        Args:
            expression: Dice formula (e.g., '1d20+5', '2d20kl1 + 1d4').
            label: Optional display label carried into the result.

        Returns:
            RollResult with the total and kept dice.

        Raises:
            DiceRollError: If the formula is empty or cannot be rolled.
        """
        if not expression or not expression.strip():
            raise DiceRollError("Empty dice expression", expression=expression)

        try:
            result: d20.RollResult = d20.roll(expression)
        except d20.RollError as exc:
            raise DiceRollError(f"Invalid dice expression: {exc}", expression=expression) from exc

        d20_values = self._extract_dice_values(result.expr, sides=20)
        kept_d20 = d20_values[0] if d20_values else None

        roll_result = RollResult(
            expression=expression,
            total=result.total,
            dice=self._extract_dice_values(result.expr),
            is_critical=kept_d20 == 20,
            is_fumble=kept_d20 == 1,
            breakdown=str(result),
            label=label,
        )
        logger.info(
            "Dice rolled",
            expression=expression,
            total=roll_result.total,
            is_critical=roll_result.is_critical,
        )
        return roll_result

    def roll_request(self, request: ResolvedRollRequest) -> RollResult:
        """Roll a prepared roll request.

        Args:
            request: Request from the roll pipeline or casting engine.

        Returns:
            RollResult labelled with the request's display label.

        Raises:
            DiceRollError: If the request formula still contains unresolved
                text that d20 cannot roll.
        """
        return self.roll(request.formula, label=request.display_label)

    def _extract_dice_values(self, expr: Any, *, sides: int | None = None) -> list[int]:
        """Extract kept die values from a d20 expression tree.

        Args:
            expr: The d20 expression tree.
            sides: Only collect dice with this many sides.

        Returns:
            Kept die values in roll order.
        """
        values: list[int] = []

        def traverse(node: Any) -> None:
            if isinstance(node, d20.Dice):
                if sides is None or node.size == sides:
                    values.extend(die.number for die in node.values if die.kept)
            elif hasattr(node, "children"):
                for child in node.children:
                    traverse(child)

        traverse(expr)
        return values


__all__ = [
    "RollResult",
    "DiceRoller",
]
