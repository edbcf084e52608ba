"""Entity kinds: the templates every game entity is instantiated from.

A kind is loaded from rule markup and only changes through rule merges.
Each variant of the game (actions, arguments, boosters, characters,
traits, effects, encounters, items) has its own kind subclass carrying
the variant-specific template data.
"""

from __future__ import annotations

from typing import ClassVar, Literal

from pydantic import BaseModel, Field

from faith_encounter.core.constants import ID_PATTERN, NUMERIC_ID_PATTERN
from faith_encounter.core.exceptions import ValidationError
from faith_encounter.models.condition import ExistsCondition
from faith_encounter.models.cost import Cost
from faith_encounter.models.enums import (
    EffectOperation,
    EntityVariant,
    PropertyCategory,
    SideFilter,
    TargetType,
    TraitScope,
)
from faith_encounter.models.rule import RULE_CONFIG, Rule
from faith_encounter.models.visibility import (
    ActionVisibility,
    ArgumentVisibility,
    BoosterVisibility,
    CharacterVisibility,
    EncounterVisibility,
    TraitVisibility,
)


# =============================================================================
# Target Specification
# =============================================================================


class TargetSpec(BaseModel):
    """Symbolic description of which entities something applies to.

    The type names a resolution strategy (see TargetType). It is kept as a
    plain string so that content errors surface when the spec is resolved.

    Attributes:
        type: Resolution strategy name.
        id: Required entity id.
        kind_id: Required kind id.
        classes: Classes a target must all have.
        not_classes: Classes a target must not have.
        side: Side restriction.
        finished: Required finished flag, or None to ignore it.
        active: Required active flag, or None to ignore it.
        alive: Required alive flag, or None to ignore it.
        code: Predicate expression for the "code" strategy.
    """

    model_config = RULE_CONFIG

    type: str = Field(default=TargetType.SELF.value)
    id: str | None = None
    kind_id: str | None = None
    classes: set[str] | None = Field(default=None, alias="class")
    not_classes: set[str] | None = Field(default=None, alias="notClass")
    side: SideFilter | None = None
    finished: bool | None = None
    active: bool | None = None
    alive: bool | None = None
    code: str | None = None


# =============================================================================
# Property Templates
# =============================================================================


class SourceRef(BaseModel):
    """A property feeding into another property's computation.

    Attributes:
        property_id: Id of the source property.
        target: Target strategy resolved from the owning entity.
        category: Which computed value of the source is read.
    """

    model_config = RULE_CONFIG

    property_id: str = Field(alias="property")
    target: str = Field(default=TargetType.SELF.value)
    category: PropertyCategory = Field(default=PropertyCategory.VAL, alias="of")


class PropertyBound(BaseModel):
    """Computation recipe for one of val, min or max.

    Attributes:
        base: Starting number, or "min"/"max" to copy the property's own bound.
        coeff: Factor applied to the sum of source values.
        sources: Properties feeding the value.
        tethered: Recompute the value from its sources every time.
    """

    model_config = RULE_CONFIG

    base: float | Literal["min", "max"] = 0
    coeff: float = 1
    sources: list[SourceRef] = Field(default_factory=list)
    tethered: bool = False


class PropertyKind(Rule):
    """Template of a numeric property.

    Attributes:
        name: Display name.
        val: Recipe of the current value.
        min: Recipe of the lower bound, or None for unbounded.
        max: Recipe of the upper bound, or None for unbounded.
    """

    name: str | None = None
    val: PropertyBound = Field(default_factory=PropertyBound)
    min: PropertyBound | None = None
    max: PropertyBound | None = None


# =============================================================================
# Entity Kinds
# =============================================================================


class EntityKind(Rule):
    """Template shared by all entities of one kind.

    Attributes:
        name: Display name, not unique.
        props: Default property templates.
        traits: Ids of trait kinds every entity of this kind starts with.
    """

    variant: ClassVar[EntityVariant]
    nested_rules: ClassVar[tuple[str, ...]] = ("props",)
    nested_single: ClassVar[tuple[str, ...]] = ("vis",)

    name: str | None = None
    props: list[PropertyKind] = Field(default_factory=list)
    traits: list[str] = Field(default_factory=list)
    vis: None = None

    def validate_kind(self) -> None:
        """Check that the kind has a usable id.

        Raises:
            ValidationError: If the id is missing, empty, numeric or not
                hyphen-case.
        """
        if self.id is None or not self.id.strip():
            raise ValidationError(
                f"{self.variant} kind has no id",
                field_name="id",
                details={"name": self.name},
            )
        if NUMERIC_ID_PATTERN.match(self.id):
            raise ValidationError(
                f"{self.variant} kind id must not be numeric",
                field_name="id",
                invalid_value=self.id,
            )
        if not ID_PATTERN.match(self.id):
            raise ValidationError(
                f"{self.variant} kind id must be hyphen-case",
                field_name="id",
                invalid_value=self.id,
            )

    def get_prop(self, prop_id: str) -> PropertyKind | None:
        """Find a property template by id."""
        for prop in self.props:
            if prop.id == prop_id:
                return prop
        return None


class ResearchableKind(EntityKind):
    """Kind that can be unlocked through research.

    Attributes:
        tier: Research tier, 1-based, or None.
        researchable: Untiered research when True and tier is None.
    """

    tier: int | None = Field(default=None, ge=1)
    researchable: bool | None = None


class ActionKind(ResearchableKind):
    """Something a character can be ordered to do.

    Attributes:
        costs: Prices paid when the action is performed.
        conds: Conditions that must hold for the action to be performed.
        effects: Ids of effect kinds applied when the action resolves.
        target: Default target of the action's effects.
        buildup: Turns the action takes to build up.
    """

    variant: ClassVar[EntityVariant] = EntityVariant.ACTION
    nested_rules: ClassVar[tuple[str, ...]] = ("props", "costs", "conds")

    costs: list[Cost] = Field(default_factory=list)
    conds: list[ExistsCondition] = Field(default_factory=list)
    effects: list[str] = Field(default_factory=list)
    target: TargetSpec | None = None
    buildup: int = Field(default=0, ge=0)
    vis: ActionVisibility | None = None


class ArgumentKind(ResearchableKind):
    """A point argued by one side."""

    variant: ClassVar[EntityVariant] = EntityVariant.ARGUMENT
    nested_rules: ClassVar[tuple[str, ...]] = ("props", "costs")

    costs: list[Cost] = Field(default_factory=list)
    vis: ArgumentVisibility | None = None


class BoosterKind(ResearchableKind):
    """A modifier attached to an argument, or global to a side.

    Attributes:
        global_: Whether the booster is placed without a holder argument.
    """

    variant: ClassVar[EntityVariant] = EntityVariant.BOOSTER
    nested_rules: ClassVar[tuple[str, ...]] = ("props", "costs")

    costs: list[Cost] = Field(default_factory=list)
    global_: bool = Field(default=False, alias="global")
    vis: BoosterVisibility | None = None


class CharacterKind(EntityKind):
    """A participant of an encounter.

    Attributes:
        actions: Ids of the action kinds the character can perform.
    """

    variant: ClassVar[EntityVariant] = EntityVariant.CHARACTER

    actions: list[str] = Field(default_factory=list)
    vis: CharacterVisibility | None = None


class TraitKind(ResearchableKind):
    """A passive quality attached to an argument, character, encounter or item.

    Attributes:
        scope: What the trait attaches to; decides its Ruleset collection.
        costs: Prices paid when the trait is acquired.
    """

    variant: ClassVar[EntityVariant] = EntityVariant.TRAIT
    nested_rules: ClassVar[tuple[str, ...]] = ("props", "costs")

    scope: TraitScope = TraitScope.CHARACTER
    costs: list[Cost] = Field(default_factory=list)
    vis: TraitVisibility | None = None


class EffectKind(EntityKind):
    """A change applied to a property of each resolved target.

    Attributes:
        property_id: Id of the property changed on each target.
        operation: How the value is combined with the property.
        value: Number, or an expression evaluated per target.
        target: Which entities the effect applies to.
    """

    variant: ClassVar[EntityVariant] = EntityVariant.EFFECT

    property_id: str | None = Field(default=None, alias="property")
    operation: EffectOperation = EffectOperation.ADD
    value: float | str = 0
    target: TargetSpec | None = None


class EncounterKind(EntityKind):
    """The encounter-global template: scene properties and traits."""

    variant: ClassVar[EntityVariant] = EntityVariant.ENCOUNTER

    vis: EncounterVisibility | None = None


class ItemKind(EntityKind):
    """Something a character can carry and equip."""

    variant: ClassVar[EntityVariant] = EntityVariant.ITEM


KIND_CLASSES: dict[str, type[EntityKind]] = {
    EntityVariant.ACTION.value: ActionKind,
    EntityVariant.ARGUMENT.value: ArgumentKind,
    EntityVariant.BOOSTER.value: BoosterKind,
    EntityVariant.CHARACTER.value: CharacterKind,
    EntityVariant.EFFECT.value: EffectKind,
    EntityVariant.ENCOUNTER.value: EncounterKind,
    EntityVariant.ITEM.value: ItemKind,
    EntityVariant.TRAIT.value: TraitKind,
}
"""Kind model per markup tag."""


__all__ = [
    "TargetSpec",
    "SourceRef",
    "PropertyBound",
    "PropertyKind",
    "EntityKind",
    "ResearchableKind",
    "ActionKind",
    "ArgumentKind",
    "BoosterKind",
    "CharacterKind",
    "TraitKind",
    "EffectKind",
    "EncounterKind",
    "ItemKind",
    "KIND_CLASSES",
]
