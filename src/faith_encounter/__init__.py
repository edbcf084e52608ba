"""Faith encounter engine: rules for social encounters between two sides.

Two sides argue, research and persuade; a neutral faction looks on. Rule
sets written in XML define the kinds of characters, actions, arguments,
boosters, traits, effects and items, and what each side may see of the
other. The engine loads and merges those rule sets, instantiates an
encounter from them and resolves its turns.

Example:
    >>> from faith_encounter import EncounterConfig, EncounterManager, EntitySetup, Ruleset, SideConfig
    >>>
    >>> ruleset = Ruleset()
    >>> ruleset.parse(open("core.xml").read(), file_name="core.xml")
    >>> ruleset.validate()
    >>>
    >>> manager = EncounterManager(
    ...     ruleset,
    ...     EncounterConfig(
    ...         side1=SideConfig(characters=[EntitySetup(kind_id="preacher")]),
    ...         side2=SideConfig(characters=[EntitySetup(kind_id="skeptic")]),
    ...     ),
    ... )
    >>> manager.order("preacher-1", "sermon", targets=["skeptic-1"])
    >>> for event in manager.run_turn():
    ...     print(event.type, event.message)

Modules:
    core: Configuration, logging, diagnostics and exceptions.
    models: Rule models (pydantic) and runtime state (dataclasses).
    rules: XML rule loading and the replace/alter/delete merge engine.
    engine: Expressions, property graph, targeting, costs, visibility, turns.
"""

from __future__ import annotations

# Core
from faith_encounter.core.config import Settings, get_settings
from faith_encounter.core.exceptions import FaithEncounterError
from faith_encounter.core.logging import configure_logging, get_logger

# Rules
from faith_encounter.rules.ruleset import Ruleset

# Engine
from faith_encounter.engine.events import TurnEvent, TurnEventType
from faith_encounter.engine.manager import (
    EncounterConfig,
    EncounterManager,
    EntitySetup,
    SideConfig,
)


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "FaithEncounterError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Rules
    "Ruleset",
    # Engine
    "EncounterConfig",
    "EncounterManager",
    "EntitySetup",
    "SideConfig",
    "TurnEvent",
    "TurnEventType",
]
