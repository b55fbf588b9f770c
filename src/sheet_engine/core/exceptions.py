"""Custom exception hierarchy for the character sheet rules engine.

All exceptions inherit from SheetEngineError, enabling unified error
handling at the caller boundary while preserving domain-specific context.

Only genuinely exceptional situations are raised. Expected outcomes such as
a caster running out of sorcery points are returned as typed results
(see ``sheet_engine.engine.casting.InsufficientResource``).

Example:
    >>> from sheet_engine.core.exceptions import MalformedExpressionError
    >>> raise MalformedExpressionError("Unexpected character", expression="2+x", character="x")
"""

from __future__ import annotations

from typing import Any


class SheetEngineError(Exception):
    """Base exception for all sheet engine errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception.

        Returns:
            String representation suitable for debugging.
        """
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Formula Domain Exceptions
# =============================================================================


class FormulaError(SheetEngineError):
    """Base exception for formula parsing and resolution errors."""

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize formula error with expression context.

        Args:
            message: Human-readable error description.
            expression: The expression being processed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression is not None:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


class MalformedExpressionError(FormulaError):
    """Raised when the math evaluator cannot tokenize, parse or evaluate input.

    Always fatal to the one sub-computation that raised it. The formula
    resolver catches it and keeps the original text.
    """

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        position: int | None = None,
        character: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize malformed expression error with location context.

        Args:
            message: Human-readable error description.
            expression: The expression that failed.
            position: Zero-based index of the offending token or character.
            character: The offending character, when tokenization failed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if position is not None:
            combined_details["position"] = position
        if character is not None:
            combined_details["character"] = character
        super().__init__(message, expression=expression, details=combined_details)


class UnresolvedVariableError(FormulaError):
    """A variable reference that could not be resolved.

    This is a soft failure. The resolver never raises it; it is built to
    carry structured context into log events.
    """

    def __init__(
        self,
        message: str,
        *,
        variable: str | None = None,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize unresolved variable error.

        Args:
            message: Human-readable error description.
            variable: Name of the variable that could not be resolved.
            expression: The formula containing the variable.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if variable:
            combined_details["variable"] = variable
        super().__init__(message, expression=expression, details=combined_details)


# =============================================================================
# Resolution Domain Exceptions
# =============================================================================


class ResolutionError(SheetEngineError):
    """Base exception for roll and cast resolution errors."""


class UnknownEffectError(ResolutionError):
    """Raised when a caller chooses an optional effect that is not active."""

    def __init__(
        self,
        message: str,
        *,
        effect_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize unknown effect error.

        Args:
            message: Human-readable error description.
            effect_name: Name of the effect that was requested.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if effect_name:
            combined_details["effect_name"] = effect_name
        super().__init__(message, details=combined_details)


class ResourceInvariantError(ResolutionError):
    """Raised when applying a resource change would break 0 <= current <= max.

    The engine rejects such changes instead of clamping them.
    """

    def __init__(
        self,
        message: str,
        *,
        resource: str | None = None,
        current: int | None = None,
        maximum: int | None = None,
        delta: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize resource invariant error.

        Args:
            message: Human-readable error description.
            resource: Key of the resource being changed.
            current: Current value before the change.
            maximum: Maximum value of the resource.
            delta: The rejected delta.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if resource:
            combined_details["resource"] = resource
        if current is not None:
            combined_details["current"] = current
        if maximum is not None:
            combined_details["maximum"] = maximum
        if delta is not None:
            combined_details["delta"] = delta
        super().__init__(message, details=combined_details)


class DiceRollError(ResolutionError):
    """Raised when a finalized formula cannot be rolled."""

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize dice roll error with expression context.

        Args:
            message: Human-readable error description.
            expression: The dice expression that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(SheetEngineError):
    """Raised when engine configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(SheetEngineError):
    """Raised when caller-supplied data is invalid for the engine."""

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


__all__ = [
    # Base exception
    "SheetEngineError",
    # Formula exceptions
    "FormulaError",
    "MalformedExpressionError",
    "UnresolvedVariableError",
    # Resolution exceptions
    "ResolutionError",
    "UnknownEffectError",
    "ResourceInvariantError",
    "DiceRollError",
    # Configuration exceptions
    "ConfigurationError",
    "ValidationError",
]
