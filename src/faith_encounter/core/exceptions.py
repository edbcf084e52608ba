"""Custom exception hierarchy for the Faith encounter engine.

Every exception raised by the engine inherits from FaithEncounterError so
callers can catch engine failures at a single boundary while still getting
domain-specific context (file names, element paths, offending ids).

Example:
    >>> from faith_encounter.core.exceptions import ParseError
    >>> raise ParseError("Unknown tag <foo>", file_name="core.xml", line_number=12)
"""

from __future__ import annotations

from typing import Any


class FaithEncounterError(Exception):
    """Base exception for all encounter engine errors.

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
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Ruleset Domain Exceptions
# =============================================================================


class RulesetError(FaithEncounterError):
    """Base exception for rule loading and rule validation errors."""


class ParseError(RulesetError):
    """Raised when a rule source cannot be turned into rules.

    Covers malformed markup, unknown tags or attributes, bad modes and
    missing or numeric top-level ids. A parse error always aborts the
    parse() call that raised it.
    """

    def __init__(
        self,
        message: str,
        *,
        file_name: str | None = None,
        element_path: list[str] | None = None,
        line_number: int | None = None,
        context: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize parse error with source location context.

        Args:
            message: Human-readable error description.
            file_name: Name of the rule source, if known.
            element_path: Open rules from the outermost to the failing one.
            line_number: 1-based line of the failing element in the source.
            context: Text snippet surrounding the failing element.
            details: Optional dictionary containing additional error context.
        """
        self.file_name = file_name
        self.element_path = element_path or []
        self.line_number = line_number
        self.context = context
        combined_details = details or {}
        if file_name:
            combined_details["file_name"] = file_name
        if element_path:
            combined_details["element_path"] = " > ".join(element_path)
        if line_number is not None:
            combined_details["line_number"] = line_number
        super().__init__(message, details=combined_details)


class ValidationError(RulesetError):
    """Raised when loaded rules fail an explicit validation pass."""

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any = None,
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


class DuplicateIdError(ValidationError):
    """Raised when two kinds or entities share an id."""

    def __init__(
        self,
        message: str,
        *,
        entity_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize duplicate id error.

        Args:
            message: Human-readable error description.
            entity_id: The id found more than once.
            details: Optional dictionary containing additional error context.
        """
        self.entity_id = entity_id
        super().__init__(message, field_name="id", invalid_value=entity_id, details=details)


class InvalidTypeError(RulesetError):
    """Raised when an object of the wrong type is handed to a container or entity."""

    def __init__(
        self,
        message: str,
        *,
        received_type: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize invalid type error.

        Args:
            message: Human-readable error description.
            received_type: Name of the type that was received.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if received_type:
            combined_details["received_type"] = received_type
        super().__init__(message, details=combined_details)


# =============================================================================
# Encounter Domain Exceptions
# =============================================================================


class EncounterError(FaithEncounterError):
    """Base exception for errors raised while running an encounter."""


class InvalidTargetSpecError(EncounterError):
    """Raised when a target specification names an unknown strategy."""

    def __init__(
        self,
        message: str,
        *,
        target_type: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize target spec error.

        Args:
            message: Human-readable error description.
            target_type: The unrecognized target type.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if target_type:
            combined_details["target_type"] = target_type
        super().__init__(message, details=combined_details)


class CyclicDependencyError(EncounterError):
    """Raised when property sources form a cycle."""

    def __init__(
        self,
        message: str,
        *,
        cycle: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize cyclic dependency error.

        Args:
            message: Human-readable error description.
            cycle: Labels of the properties forming the cycle.
            details: Optional dictionary containing additional error context.
        """
        self.cycle = cycle or []
        combined_details = details or {}
        if cycle:
            combined_details["cycle"] = " -> ".join(cycle)
        super().__init__(message, details=combined_details)


class ExpressionError(EncounterError):
    """Raised when a rule code expression is invalid or fails to evaluate."""

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize expression error.

        Args:
            message: Human-readable error description.
            expression: Source of the failing expression.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


class InvalidOrderError(EncounterError):
    """Raised when a character is ordered to perform an action it cannot take."""

    def __init__(
        self,
        message: str,
        *,
        character_id: str | None = None,
        action_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize invalid order error.

        Args:
            message: Human-readable error description.
            character_id: ID of the ordered character.
            action_id: ID of the requested action or action kind.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if character_id:
            combined_details["character_id"] = character_id
        if action_id:
            combined_details["action_id"] = action_id
        super().__init__(message, details=combined_details)


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(FaithEncounterError):
    """Raised when settings or an encounter configuration are invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


__all__ = [
    "FaithEncounterError",
    "RulesetError",
    "ParseError",
    "ValidationError",
    "DuplicateIdError",
    "InvalidTypeError",
    "EncounterError",
    "InvalidTargetSpecError",
    "CyclicDependencyError",
    "ExpressionError",
    "InvalidOrderError",
    "ConfigurationError",
]
