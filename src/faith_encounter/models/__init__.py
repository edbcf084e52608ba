"""Data model of the Faith encounter engine.

Rule models (entity kinds, property templates, costs, conditions and
visibility rules) are pydantic models loaded from rule markup. Runtime
state (entities, properties, sides) uses plain dataclasses.

Submodules:
    enums: Closed vocabularies (Mode, EntityVariant, SideIndex, TargetType, ...)
    rule: Rule base model shared by every mergeable rule
    visibility: Visibility rule models and the top-level VisibilityTable
    condition, cost: ExistsCondition and Cost rule models
    kinds: EntityKind and its per-variant subclasses
    property: Live numeric properties
    entity: Entity and its variants
    containers: EntityList and EntityMap
    side: The three parties of an encounter

Example:
    >>> from faith_encounter.models import ArgumentKind, PropertyKind, create_entity
    >>> kind = ArgumentKind(id="free-will", props=[PropertyKind(id="strength")])
    >>> argument = create_entity(kind, side=1, id="arg-1")
    >>> argument.props["strength"].recompute()
"""

from __future__ import annotations

# =============================================================================
# Enumerations
# =============================================================================
from faith_encounter.models.enums import (
    CostTarget,
    EffectOperation,
    EntityVariant,
    Mode,
    PropertyCategory,
    Relation,
    SideFilter,
    SideIndex,
    TargetType,
    TraitScope,
)

# =============================================================================
# Rules
# =============================================================================
from faith_encounter.models.rule import RULE_CONFIG, Rule
from faith_encounter.models.visibility import (
    DEFAULT_FLAGS,
    VISIBILITY_RULES,
    ActionVisibility,
    ArgumentVisibility,
    BoosterVisibility,
    CharacterVisibility,
    EncounterVisibility,
    PropertyVisibility,
    TraitVisibility,
    VisibilityRule,
    VisibilityTable,
    default_rule,
)
from faith_encounter.models.condition import ExistsCondition, default_cost_condition
from faith_encounter.models.cost import Cost
from faith_encounter.models.kinds import (
    KIND_CLASSES,
    ActionKind,
    ArgumentKind,
    BoosterKind,
    CharacterKind,
    EffectKind,
    EncounterKind,
    EntityKind,
    ItemKind,
    PropertyBound,
    PropertyKind,
    ResearchableKind,
    SourceRef,
    TargetSpec,
    TraitKind,
)

# =============================================================================
# Runtime State
# =============================================================================
from faith_encounter.models.property import Property, SourceLink, category_order
from faith_encounter.models.entity import (
    ENTITY_CLASSES,
    Action,
    Argument,
    Booster,
    Character,
    Effect,
    Encounter,
    Entity,
    HasHolder,
    HasTraits,
    Item,
    Targetable,
    Trait,
    create_entity,
    held_traits,
    of_variant,
)
from faith_encounter.models.containers import EntityList, EntityMap
from faith_encounter.models.side import Side


__all__ = [
    # Enumerations
    "CostTarget",
    "EffectOperation",
    "EntityVariant",
    "Mode",
    "PropertyCategory",
    "Relation",
    "SideFilter",
    "SideIndex",
    "TargetType",
    "TraitScope",
    # Rules
    "RULE_CONFIG",
    "Rule",
    "DEFAULT_FLAGS",
    "VISIBILITY_RULES",
    "ActionVisibility",
    "ArgumentVisibility",
    "BoosterVisibility",
    "CharacterVisibility",
    "EncounterVisibility",
    "PropertyVisibility",
    "TraitVisibility",
    "VisibilityRule",
    "VisibilityTable",
    "default_rule",
    "ExistsCondition",
    "default_cost_condition",
    "Cost",
    "KIND_CLASSES",
    "ActionKind",
    "ArgumentKind",
    "BoosterKind",
    "CharacterKind",
    "EffectKind",
    "EncounterKind",
    "EntityKind",
    "ItemKind",
    "PropertyBound",
    "PropertyKind",
    "ResearchableKind",
    "SourceRef",
    "TargetSpec",
    "TraitKind",
    # Runtime state
    "Property",
    "SourceLink",
    "category_order",
    "ENTITY_CLASSES",
    "Action",
    "Argument",
    "Booster",
    "Character",
    "Effect",
    "Encounter",
    "Entity",
    "HasHolder",
    "HasTraits",
    "Item",
    "Targetable",
    "Trait",
    "create_entity",
    "held_traits",
    "of_variant",
    "EntityList",
    "EntityMap",
    "Side",
]
