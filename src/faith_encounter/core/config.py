"""Configuration management for the Faith encounter engine.

Settings are loaded with pydantic-settings from environment variables and an
optional .env file. Diagnostic switches for the rule loader live in their
own settings class so a Ruleset can be handed a custom instance in tests.

Example:
    >>> from faith_encounter.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.parser.display_warnings
    True

Environment Variables:
    FAITH_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    FAITH_PARSER_DISPLAY_WARNINGS: Log and record rule loader warnings
    FAITH_PARSER_CONTEXT_PADDING_PRE: Characters of context before an error
    FAITH_ENCOUNTER_RAISE_ALERT_ON_BUGS: Flag engine warnings as alerts
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from faith_encounter.core.constants import CONTEXT_PADDING_POST, CONTEXT_PADDING_PRE
from faith_encounter.core.exceptions import ConfigurationError


class ParserSettings(BaseSettings):
    """Diagnostic verbosity of the rule loader.

    None of these switches change what a rule source means; they only
    control how much is reported when something goes wrong.

    Attributes:
        display_dom_on_errors: Append the failing element and rule stack to errors.
        display_context_on_errors: Append a source text snippet to errors.
        display_context_padded: Show text before the failing element as well.
        display_warnings: Log and record non-fatal warnings.
        raise_alert_on_errors: Flag error diagnostics as alerts.
        raise_alert_on_warnings: Flag warning diagnostics as alerts.
        context_padding_pre: Characters shown before the failing element.
        context_padding_post: Characters shown after the failing element.
    """

    model_config = SettingsConfigDict(
        env_prefix="FAITH_PARSER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    display_dom_on_errors: bool = Field(
        default=False,
        description="Append the failing element and rule stack to errors",
    )
    display_context_on_errors: bool = Field(
        default=True,
        description="Append a source text snippet to errors",
    )
    display_context_padded: bool = Field(
        default=True,
        description="Include text before the failing element in the snippet",
    )
    display_warnings: bool = Field(
        default=True,
        description="Log and record non-fatal warnings",
    )
    raise_alert_on_errors: bool = Field(
        default=False,
        description="Flag error diagnostics as alerts",
    )
    raise_alert_on_warnings: bool = Field(
        default=False,
        description="Flag warning diagnostics as alerts",
    )
    context_padding_pre: int = Field(
        default=CONTEXT_PADDING_PRE,
        ge=0,
        le=1000,
        description="Characters of context before the failing element",
    )
    context_padding_post: int = Field(
        default=CONTEXT_PADDING_POST,
        ge=0,
        le=1000,
        description="Characters of context after the failing element",
    )


class EncounterSettings(BaseSettings):
    """Configuration for running encounters.

    Attributes:
        display_warnings: Log and record targeting and resolution warnings.
        raise_alert_on_bugs: Flag engine warnings as alerts.
        max_orders_per_turn: Upper bound on queued orders resolved in one turn.
    """

    model_config = SettingsConfigDict(
        env_prefix="FAITH_ENCOUNTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    display_warnings: bool = Field(
        default=True,
        description="Log and record engine warnings",
    )
    raise_alert_on_bugs: bool = Field(
        default=False,
        description="Flag engine warnings as alerts",
    )
    max_orders_per_turn: int = Field(
        default=64,
        ge=1,
        le=10_000,
        description="Maximum queued orders resolved in a single turn",
    )


class Settings(BaseSettings):
    """Main settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Logging level.
        json_logs: Render logs as JSON lines.
        parser: Rule loader settings.
        encounter: Encounter runtime settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="FAITH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="Faith Encounter Engine",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_logs: bool = Field(
        default=False,
        description="Render logs as JSON lines",
    )

    parser: ParserSettings = Field(default_factory=ParserSettings)
    encounter: EncounterSettings = Field(default_factory=EncounterSettings)

    @model_validator(mode="after")
    def validate_debug_log_level(self) -> "Settings":
        """Ensure debug mode is not combined with a quiet log level.

        Returns:
            Self if validation passes.

        Raises:
            ConfigurationError: If debug is on but the level hides warnings.
        """
        if self.debug and self.log_level in ("ERROR", "CRITICAL"):
            raise ConfigurationError(
                f"debug mode requires log_level WARNING or lower, got {self.log_level}",
                config_key="log_level",
            )
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the settings singleton.

    Returns:
        The cached Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "ParserSettings",
    "EncounterSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
