"""Turn events emitted by the encounter manager.

Running a turn produces an ordered feed of events: the turn bracket,
every order that was rejected or resolved, each effect and each property
value that changed, and the visibility refreshes of both sides.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class TurnEventType(StrEnum):
    """Kinds of turn events."""

    TURN_STARTED = "turn_started"
    """A new turn began resolving its queued orders."""

    ORDER_REJECTED = "order_rejected"
    """An order failed its conditions or could not pay its costs."""

    COSTS_PAID = "costs_paid"
    """Every cost of an action was paid."""

    ACTION_BUILDING = "action_building"
    """An action spent the turn building up and stays queued."""

    ACTION_PERFORMED = "action_performed"
    """An action resolved and is now finished."""

    EFFECT_APPLIED = "effect_applied"
    """An effect changed a property of its target."""

    PROPERTY_CHANGED = "property_changed"
    """A property value, minimum or maximum changed."""

    VISIBILITY_REFRESHED = "visibility_refreshed"
    """A side's view of the encounter changed."""

    TURN_ENDED = "turn_ended"
    """Every queued order of the turn was handled."""


@dataclass
class TurnEvent:
    """Something that happened while a turn was resolved.

    Attributes:
        type: What happened.
        turn: Turn number the event belongs to.
        actor_id: Id of the character or side that caused it.
        subject_id: Id of the entity, property owner or side it concerns.
        message: Human-readable summary.
        data: Structured payload, depending on the type.
    """

    type: TurnEventType
    turn: int
    actor_id: str | None = None
    subject_id: str | None = None
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)


__all__ = [
    "TurnEventType",
    "TurnEvent",
]
