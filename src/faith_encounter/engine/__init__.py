"""Encounter engine: expressions, properties, targeting, costs, visibility, turns.

Submodules:
    expression: Restricted evaluator for rule code expressions
    properties: PropertyGraph dependency propagation
    targeting: Target specification queries
    costs: Existence conditions and all-or-nothing cost payment
    visibility: Visibility resolution and per-side views
    events: Turn event records
    manager: EncounterManager and its configuration models
"""

from __future__ import annotations

from faith_encounter.engine.expression import DEFAULT_FUNCTIONS, ExpressionEvaluator
from faith_encounter.engine.properties import PropertyGraph
from faith_encounter.engine.targeting import ALL_SIDES, Target, Targeting, side_of
from faith_encounter.engine.costs import ConditionChecker, CostOutcome, CostResolver
from faith_encounter.engine.visibility import (
    EntityView,
    FlagResolution,
    SideView,
    VisibilityEngine,
)
from faith_encounter.engine.events import TurnEvent, TurnEventType
from faith_encounter.engine.manager import (
    EncounterConfig,
    EncounterManager,
    EntitySetup,
    Order,
    SideConfig,
)


__all__ = [
    # Expressions
    "DEFAULT_FUNCTIONS",
    "ExpressionEvaluator",
    # Properties
    "PropertyGraph",
    # Targeting
    "ALL_SIDES",
    "Target",
    "Targeting",
    "side_of",
    # Costs
    "ConditionChecker",
    "CostOutcome",
    "CostResolver",
    # Visibility
    "EntityView",
    "FlagResolution",
    "SideView",
    "VisibilityEngine",
    # Turns
    "TurnEvent",
    "TurnEventType",
    "EncounterConfig",
    "EncounterManager",
    "EntitySetup",
    "Order",
    "SideConfig",
]
