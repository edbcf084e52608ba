"""Structured diagnostics channel for non-fatal engine problems.

Fatal problems raise typed exceptions. Everything else (a delete rule with
nothing to delete, a targeting query on an entity without a holder) is
recorded here as a Diagnostic and logged, leaving it to the presentation
layer to decide whether to surface an alert.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Iterator

from faith_encounter.core.logging import get_logger


logger = get_logger(__name__)


class DiagnosticLevel(StrEnum):
    """Severity of a recorded diagnostic."""

    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Diagnostic:
    """A single recorded problem.

    Attributes:
        level: Severity of the problem.
        message: Human-readable description.
        details: Structured context (ids, tags, file names).
        alert: Whether the presentation layer should surface it prominently.
    """

    level: DiagnosticLevel
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    alert: bool = False


class DiagnosticLog:
    """Collects diagnostics and mirrors them to the structured log.

    Attributes:
        enabled: When False, warnings are dropped entirely.
        alert_on_warnings: Flag every recorded warning as an alert.
        alert_on_errors: Flag every recorded error as an alert.
    """

    def __init__(
        self,
        *,
        enabled: bool = True,
        alert_on_warnings: bool = False,
        alert_on_errors: bool = False,
    ) -> None:
        self.enabled = enabled
        self.alert_on_warnings = alert_on_warnings
        self.alert_on_errors = alert_on_errors
        self._records: list[Diagnostic] = []

    def warn(self, message: str, **details: Any) -> Diagnostic | None:
        """Record a warning.

        Args:
            message: Human-readable description.
            **details: Structured context for the warning.

        Returns:
            The recorded diagnostic, or None if warnings are disabled.
        """
        if not self.enabled:
            return None
        record = Diagnostic(
            level=DiagnosticLevel.WARNING,
            message=message,
            details=details,
            alert=self.alert_on_warnings,
        )
        self._records.append(record)
        logger.warning(message, alert=record.alert, **details)
        return record

    def error(self, message: str, **details: Any) -> Diagnostic:
        """Record an error that is about to be raised.

        Args:
            message: Human-readable description.
            **details: Structured context for the error.

        Returns:
            The recorded diagnostic.
        """
        record = Diagnostic(
            level=DiagnosticLevel.ERROR,
            message=message,
            details=details,
            alert=self.alert_on_errors,
        )
        self._records.append(record)
        logger.error(message, alert=record.alert, **details)
        return record

    @property
    def warnings(self) -> list[Diagnostic]:
        """All recorded warnings, oldest first."""
        return [r for r in self._records if r.level == DiagnosticLevel.WARNING]

    @property
    def alerts(self) -> list[Diagnostic]:
        """All recorded diagnostics flagged as alerts."""
        return [r for r in self._records if r.alert]

    def clear(self) -> None:
        self._records.clear()

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)


__all__ = [
    "DiagnosticLevel",
    "Diagnostic",
    "DiagnosticLog",
]
