"""Formula resolution against a character snapshot.

Rewrites variable references, bracketed math and inline brace calculations
in a sheet formula into literal numbers, leaving dice notation untouched.
Resolution never raises: anything that cannot be resolved is left verbatim
so the caller can still roll or display the partially-resolved text.

Passes, in order:

1. Bare variable: the whole formula is one identifier found in the bag.
2. Parenthesised references: ``(#spellList.abilityMod)`` and ``(name)``.
3. Bracketed math: ``[ceil(level/2)]``, ``[wizardLevel*2]``.
4. Bold markers (``**``) are stripped.
5. Inline braces: ``{proficiencyBonus + 2}``.

Formulas mentioning ``slotLevel`` are returned unchanged; that token is
substituted by the casting engine once a slot is chosen.

Example:
    >>> resolver = FormulaResolver(state)
    >>> resolver.resolve("1d8+(#spellList.abilityMod)")
    '1d8+3'
"""

from __future__ import annotations

import math
import re
from typing import TYPE_CHECKING

from sheet_engine.core.constants import SPELL_SAVE_DC_BASE
from sheet_engine.core.exceptions import MalformedExpressionError, UnresolvedVariableError
from sheet_engine.core.logging import get_logger
from sheet_engine.engine.evaluator import evaluate
from sheet_engine.models.enums import Ability
from sheet_engine.models.variables import render_number, render_value


if TYPE_CHECKING:
    from sheet_engine.models.character import CharacterState


logger = get_logger(__name__)

VariableValue = int | float | bool | str

SLOT_LEVEL_PATTERN = re.compile(r"slotlevel", re.IGNORECASE)
BARE_VARIABLE_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")
HASH_REFERENCE_PATTERN = re.compile(r"\((#[A-Za-z_][A-Za-z0-9_.]*)\)")
PAREN_REFERENCE_PATTERN = re.compile(r"\(([A-Za-z_][A-Za-z0-9_]*)\)")
BRACKET_PATTERN = re.compile(r"\[([^\]]+)\]")
BRACE_PATTERN = re.compile(r"\{([^}]+)\}")
IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_.]*")
WRAPPER_PATTERN = re.compile(r"^(ceil|floor|round|abs)\((.+)\)$")
PURE_ARITHMETIC_PATTERN = re.compile(r"^[\d\s+\-*/().]+$")
EVALUABLE_PATTERN = re.compile(r"[\d+\-*/()]")
LETTER_PATTERN = re.compile(r"[A-Za-z_]")
CAMEL_SEGMENT_PATTERN = re.compile(r"\.([a-z])")

CLASS_SPELLCASTING_ABILITY: dict[str, Ability] = {
    "cleric": Ability.WIS,
    "druid": Ability.WIS,
    "ranger": Ability.WIS,
    "wizard": Ability.INT,
    "artificer": Ability.INT,
    "bard": Ability.CHA,
    "paladin": Ability.CHA,
    "sorcerer": Ability.CHA,
    "warlock": Ability.CHA,
}
"""Spellcasting ability per class, matched as a substring of the class name."""

_ABILITY_NAMES = frozenset(ability.value for ability in Ability)

_ROUNDING = {
    "ceil": math.ceil,
    "floor": math.floor,
    "round": lambda value: math.floor(value + 0.5),
    "abs": abs,
}


def _is_number(value: VariableValue | None) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def spellcasting_ability(class_name: str) -> Ability | None:
    """Map a class description to its spellcasting ability.

    Args:
        class_name: Class description such as 'Cleric 5'.

    Returns:
        The spellcasting ability, or None for non-casters.
    """
    lowered = class_name.lower()
    for class_key, ability in CLASS_SPELLCASTING_ABILITY.items():
        if class_key in lowered:
            return ability
    return None


class FormulaResolver:
    """Resolves formulas against one character snapshot.

    Attributes:
        state: The character snapshot variables are read from.
    """

    def __init__(self, state: CharacterState) -> None:
        """Initialize the resolver.

        Args:
            state: Character snapshot to resolve against.
        """
        self.state = state

    # =========================================================================
    # Variable lookup
    # =========================================================================

    def _bag_value(self, name: str) -> VariableValue | None:
        var = self.state.variables.get(name)
        return var.python_value if var is not None else None

    def _spell_ability_mod(self) -> int | None:
        ability = spellcasting_ability(self.state.class_name)
        if ability is None:
            return None
        return self.state.modifier(ability)

    def value_of(self, path: str) -> VariableValue | None:
        """Resolve a variable path to its value.

        Lookup order: ``<ability>.modifier``, ability score,
        ``proficiencyBonus``, ``spellList.*`` synthetics, the variable bag,
        the camelCase form of a dotted path (``bard.level`` -> ``bardLevel``),
        then the path with dots removed, its last segment, and dots replaced
        by underscores.

        Args:
            path: Variable path, optionally prefixed with ``#``.

        Returns:
            The resolved value, or None.
        """
        clean = path[1:] if path.startswith("#") else path

        if ".modifier" in clean:
            ability = Ability.from_name(clean.replace(".modifier", ""))
            if ability is not None and (mod := self.state.modifier(ability)) is not None:
                return mod

        if clean in _ABILITY_NAMES:
            score = self.state.score(Ability(clean))
            if score is not None:
                return score

        if clean == "proficiencyBonus":
            return self.state.proficiency_bonus

        if clean in ("spellList.abilityMod", "spellList.ability"):
            mod = self._spell_ability_mod()
            if mod is not None:
                return mod

        if clean == "spellList.dc":
            mod = self._spell_ability_mod()
            if mod is not None:
                return SPELL_SAVE_DC_BASE + self.state.proficiency_bonus + mod

        if clean == "spellList.attackBonus":
            mod = self._spell_ability_mod()
            if mod is not None:
                return self.state.proficiency_bonus + mod

        direct = self._bag_value(clean)
        if direct is not None:
            return direct

        camel = CAMEL_SEGMENT_PATTERN.sub(lambda m: m.group(1).upper(), clean)
        for candidate in (camel, clean.replace(".", ""), clean.split(".")[-1], clean.replace(".", "_")):
            var = self.state.variables.get(candidate)
            if var is not None and var.kind != "text":
                return var.python_value

        return None

    def _numeric_value(self, path: str) -> int | float | None:
        value = self.value_of(path)
        return value if _is_number(value) else None

    def _log_unresolved(self, name: str, formula: str) -> None:
        error = UnresolvedVariableError("Variable unresolved", variable=name, expression=formula)
        logger.debug(error.message, **error.details)

    # =========================================================================
    # Passes
    # =========================================================================

    def _substitute_identifiers(self, text: str, formula: str) -> str:
        replacements: dict[str, int | float] = {}
        for match in IDENTIFIER_PATTERN.finditer(text):
            name = match.group(0)
            value = self._numeric_value(name)
            if value is not None:
                replacements[name] = value
            else:
                self._log_unresolved(name, formula)
        # Longest names first so 'wizardLevel' is not clobbered by 'level'
        for name in sorted(replacements, key=len, reverse=True):
            text = text.replace(name, render_number(replacements[name]))
        return text

    def _resolve_bracket(self, match: re.Match[str], formula: str) -> str:
        full = match.group(0)
        clean = re.sub(r"\s+", "", match.group(1))

        wrapper = WRAPPER_PATTERN.match(clean)
        if wrapper:
            substituted = self._substitute_identifiers(wrapper.group(2), formula)
            if PURE_ARITHMETIC_PATTERN.match(substituted):
                try:
                    result = _ROUNDING[wrapper.group(1)](evaluate(substituted))
                except MalformedExpressionError as exc:
                    logger.debug("Bracket function failed", expression=clean, error=exc.message)
                else:
                    return render_number(result)

        substituted = self._substitute_identifiers(clean, formula)
        if not PURE_ARITHMETIC_PATTERN.match(substituted):
            logger.debug("Bracket left unresolved", expression=clean, substituted=substituted)
            return full
        try:
            return render_number(math.floor(evaluate(substituted)))
        except MalformedExpressionError as exc:
            logger.debug("Bracket evaluation failed", expression=clean, error=exc.message)
            return full

    def _resolve_brace(self, match: re.Match[str]) -> str:
        full = match.group(0)
        expression = match.group(1)

        def substitute(ident: re.Match[str]) -> str:
            value = self.value_of(ident.group(0))
            return render_value(value) if value is not None else ident.group(0)

        substituted = IDENTIFIER_PATTERN.sub(substitute, expression)

        if EVALUABLE_PATTERN.search(substituted):
            try:
                return render_number(evaluate(substituted))
            except MalformedExpressionError as exc:
                logger.debug("Inline calculation failed", expression=expression, error=exc.message)

        if substituted != expression and not LETTER_PATTERN.search(substituted):
            return substituted
        return full

    def resolve(self, formula: str) -> str:
        """Resolve every recognised reference in a formula.

        Args:
            formula: Sheet formula.

        Returns:
            The resolved formula; unresolvable fragments are kept verbatim.
        """
        if not formula:
            return formula

        if SLOT_LEVEL_PATTERN.search(formula):
            logger.debug("Formula reserved for slot level", formula=formula)
            return formula

        trimmed = formula.strip()
        if BARE_VARIABLE_PATTERN.match(trimmed):
            value = self._bag_value(trimmed)
            if value is not None:
                logger.debug("Bare variable resolved", variable=trimmed, value=value)
                return render_value(value)
            self._log_unresolved(trimmed, formula)

        def hash_reference(match: re.Match[str]) -> str:
            value = self._numeric_value(match.group(1))
            if value is None:
                self._log_unresolved(match.group(1), formula)
                return match.group(0)
            return render_number(value)

        def paren_reference(match: re.Match[str]) -> str:
            value = self._bag_value(match.group(1))
            if not _is_number(value):
                return match.group(0)
            return render_number(value)

        resolved = HASH_REFERENCE_PATTERN.sub(hash_reference, formula)
        resolved = PAREN_REFERENCE_PATTERN.sub(paren_reference, resolved)
        resolved = BRACKET_PATTERN.sub(lambda m: self._resolve_bracket(m, formula), resolved)
        resolved = resolved.replace("**", "")
        resolved = BRACE_PATTERN.sub(self._resolve_brace, resolved)

        if resolved != formula:
            logger.debug("Formula resolved", formula=formula, result=resolved)
        return resolved


def get_variable_value(path: str, state: CharacterState) -> VariableValue | None:
    """Resolve a single variable path against a character.

    Args:
        path: Variable path such as ``#spellList.dc`` or ``bard.level``.
        state: Character snapshot.

    Returns:
        The resolved value, or None.
    """
    return FormulaResolver(state).value_of(path)


def resolve(formula: str, state: CharacterState) -> str:
    """Resolve a formula against a character.

    Args:
        formula: Sheet formula.
        state: Character snapshot.

    Returns:
        The resolved formula. Never raises for malformed or unknown input.

    Example:
        >>> resolve("slotLeveld6", state)
        'slotLeveld6'
    """
    return FormulaResolver(state).resolve(formula)


def substitute_slot_level(formula: str, slot_level: int) -> str:
    """Replace the reserved ``slotLevel`` token with a chosen level.

    Args:
        formula: Formula possibly containing ``slotLevel`` in any case.
        slot_level: Level of the slot being spent.

    Returns:
        The formula with every ``slotLevel`` replaced.
    """
    return SLOT_LEVEL_PATTERN.sub(str(slot_level), formula)


__all__ = [
    "CLASS_SPELLCASTING_ABILITY",
    "FormulaResolver",
    "get_variable_value",
    "resolve",
    "spellcasting_ability",
    "substitute_slot_level",
]
