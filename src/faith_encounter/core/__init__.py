"""Core module providing configuration, logging, diagnostics and exceptions.

Exports:
    Exceptions:
        FaithEncounterError: Base exception for all engine errors.
        ParseError: Rule source could not be loaded.
        ValidationError, DuplicateIdError: Explicit validation failures.
        InvalidTargetSpecError, CyclicDependencyError: Encounter failures.

    Configuration:
        Settings: Main settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up logging.
        get_logger: Get a configured logger instance.
        log_context: Scope logging context to a block.
"""

from __future__ import annotations

from faith_encounter.core.config import (
    EncounterSettings,
    ParserSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from faith_encounter.core.diagnostics import Diagnostic, DiagnosticLevel, DiagnosticLog
from faith_encounter.core.exceptions import (
    ConfigurationError,
    CyclicDependencyError,
    DuplicateIdError,
    EncounterError,
    ExpressionError,
    FaithEncounterError,
    InvalidOrderError,
    InvalidTargetSpecError,
    InvalidTypeError,
    ParseError,
    RulesetError,
    ValidationError,
)
from faith_encounter.core.logging import (
    configure_logging,
    get_logger,
    log_context,
)


__all__ = [
    # Base exception
    "FaithEncounterError",
    # Ruleset exceptions
    "RulesetError",
    "ParseError",
    "ValidationError",
    "DuplicateIdError",
    "InvalidTypeError",
    # Encounter exceptions
    "EncounterError",
    "InvalidTargetSpecError",
    "CyclicDependencyError",
    "ExpressionError",
    "InvalidOrderError",
    # Configuration
    "ConfigurationError",
    "Settings",
    "ParserSettings",
    "EncounterSettings",
    "get_settings",
    "clear_settings_cache",
    # Diagnostics
    "Diagnostic",
    "DiagnosticLevel",
    "DiagnosticLog",
    # Logging
    "configure_logging",
    "get_logger",
    "log_context",
]
