"""Instantiated game entities.

Entities are the live objects of an encounter. They reference their
holder and creator by arena id rather than by object, and they are bound
to the arena of the encounter that spawned them.

Capabilities shared by several variants are expressed as protocols:
Targetable (anything a target spec can select), HasHolder and HasTraits.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar, Iterable, Protocol, runtime_checkable

from faith_encounter.core.constants import ENCOUNTER_ENTITY_ID
from faith_encounter.core.exceptions import EncounterError, InvalidTypeError
from faith_encounter.models.enums import EntityVariant, SideIndex
from faith_encounter.models.kinds import (
    ActionKind,
    ArgumentKind,
    BoosterKind,
    CharacterKind,
    EffectKind,
    EncounterKind,
    EntityKind,
    ItemKind,
    TraitKind,
)
from faith_encounter.models.property import Property


if TYPE_CHECKING:
    from faith_encounter.models.containers import EntityMap


# =============================================================================
# Capabilities
# =============================================================================


@runtime_checkable
class Targetable(Protocol):
    """Anything a target specification can select."""

    id: str | None
    name: str | None
    side: SideIndex | None
    classes: set[str]
    props: dict[str, Property]
    finished: bool | None
    active: bool | None
    alive: bool | None

    @property
    def kind_id(self) -> str | None: ...


@runtime_checkable
class HasHolder(Protocol):
    """Entity that may be held by, and created by, another entity."""

    holder_id: str | None
    creator_id: str | None

    @property
    def holder(self) -> Entity | None: ...

    @property
    def creator(self) -> Entity | None: ...


@runtime_checkable
class HasTraits(Protocol):
    """Entity that can hold traits."""

    @property
    def traits(self) -> list[Trait]: ...


# =============================================================================
# Base Entity
# =============================================================================


@dataclass(eq=False)
class Entity:
    """Base class of every game entity.

    Attributes:
        kind: Template the entity was instantiated from.
        name: Display name; defaults to the kind's name.
        side: Owning side, or None for entities without one.
        id: Arena id; assigned by the arena when left empty.
        classes: Own classes united with the kind's classes.
        props: Live properties by property id.
        holder_id: Arena id of the holding entity.
        creator_id: Arena id of the creating entity.
        finished: Tri-state finished flag.
        active: Tri-state active flag.
        alive: Tri-state alive flag.
    """

    variant: ClassVar[EntityVariant]
    kind_class: ClassVar[type[EntityKind]] = EntityKind

    kind: EntityKind
    name: str | None = None
    side: SideIndex | None = None
    id: str | None = None
    classes: set[str] = field(default_factory=set)
    props: dict[str, Property] = field(default_factory=dict)
    holder_id: str | None = None
    creator_id: str | None = None
    finished: bool | None = None
    active: bool | None = None
    alive: bool | None = None
    arena: EntityMap | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.kind, self.kind_class):
            raise InvalidTypeError(
                f"{type(self).__name__} requires a {self.kind_class.__name__}",
                received_type=type(self.kind).__name__,
            )
        self.classes = set(self.classes) | set(self.kind.classes)
        if self.name is None:
            self.name = self.kind.name
        if self.side is not None:
            self.side = SideIndex(self.side)
        for template in self.kind.props:
            if template.id not in self.props:
                self.props[template.id] = Property(template, holder_id=self.id)

    @property
    def kind_id(self) -> str | None:
        return self.kind.id

    def assign_id(self, entity_id: str) -> None:
        """Set the arena id and re-point owned properties at it."""
        self.id = entity_id
        for prop in self.props.values():
            prop.holder_id = entity_id

    def attach(self, arena: EntityMap) -> None:
        """Bind the entity to the arena of an encounter.

        Raises:
            EncounterError: If the entity already belongs to another arena.
        """
        if self.arena is not None and self.arena is not arena:
            raise EncounterError(
                "Entity already belongs to another encounter",
                details={"entity_id": self.id},
            )
        self.arena = arena

    def _resolve(self, entity_id: str | None) -> Entity | None:
        if entity_id is None or self.arena is None:
            return None
        return self.arena.get_by_id(entity_id)

    @property
    def holder(self) -> Entity | None:
        return self._resolve(self.holder_id)

    @property
    def creator(self) -> Entity | None:
        return self._resolve(self.creator_id)

    def held(self, variant: EntityVariant | None = None) -> list[Entity]:
        """Entities in the arena held directly by this one."""
        if self.arena is None or self.id is None:
            return []
        return [
            e
            for e in self.arena
            if e.holder_id == self.id and (variant is None or e.variant == variant)
        ]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, kind={self.kind_id!r}, side={self.side!r})"


def held_traits(entity: Entity) -> list[Trait]:
    """Traits held directly by an entity."""
    return [e for e in entity.held(EntityVariant.TRAIT) if isinstance(e, Trait)]


# =============================================================================
# Variants
# =============================================================================


@dataclass(eq=False, repr=False)
class Action(Entity):
    """A queued or resolved action of a character.

    Attributes:
        target_ids: Arena ids of the entities the action was aimed at.
    """

    variant: ClassVar[EntityVariant] = EntityVariant.ACTION
    kind_class: ClassVar[type[EntityKind]] = ActionKind

    target_ids: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.finished is None:
            self.finished = False
        if self.active is None:
            self.active = True


@dataclass(eq=False, repr=False)
class Argument(Entity):
    """An argument placed by a side."""

    variant: ClassVar[EntityVariant] = EntityVariant.ARGUMENT
    kind_class: ClassVar[type[EntityKind]] = ArgumentKind

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.alive is None:
            self.alive = True

    @property
    def traits(self) -> list[Trait]:
        return held_traits(self)

    @property
    def boosters(self) -> list[Booster]:
        return [e for e in self.held(EntityVariant.BOOSTER) if isinstance(e, Booster)]


@dataclass(eq=False, repr=False)
class Booster(Entity):
    """A modifier held by an argument, or global when it has no holder."""

    variant: ClassVar[EntityVariant] = EntityVariant.BOOSTER
    kind_class: ClassVar[type[EntityKind]] = BoosterKind

    @property
    def is_global(self) -> bool:
        return self.holder_id is None


@dataclass(eq=False, repr=False)
class Character(Entity):
    """A participant of an encounter.

    Attributes:
        developing_id: Arena id of the argument the character is developing.
    """

    variant: ClassVar[EntityVariant] = EntityVariant.CHARACTER
    kind_class: ClassVar[type[EntityKind]] = CharacterKind

    developing_id: str | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.alive is None:
            self.alive = True
        if self.active is None:
            self.active = True

    @property
    def action_ids(self) -> list[str]:
        """Ids of the action kinds the character knows."""
        return list(self.kind.actions)  # type: ignore[attr-defined]

    @property
    def traits(self) -> list[Trait]:
        return held_traits(self)

    @property
    def items(self) -> list[Item]:
        return [e for e in self.held(EntityVariant.ITEM) if isinstance(e, Item)]


@dataclass(eq=False, repr=False)
class Trait(Entity):
    """A passive quality held by another entity."""

    variant: ClassVar[EntityVariant] = EntityVariant.TRAIT
    kind_class: ClassVar[type[EntityKind]] = TraitKind


@dataclass(eq=False, repr=False)
class Effect(Entity):
    """A property change in flight, created by an action.

    Attributes:
        target_id: Arena id of the entity the effect was applied to.
    """

    variant: ClassVar[EntityVariant] = EntityVariant.EFFECT
    kind_class: ClassVar[type[EntityKind]] = EffectKind

    target_id: str | None = None


@dataclass(eq=False, repr=False)
class Encounter(Entity):
    """Encounter-global state. Has no side and a fixed id."""

    variant: ClassVar[EntityVariant] = EntityVariant.ENCOUNTER
    kind_class: ClassVar[type[EntityKind]] = EncounterKind

    def __post_init__(self) -> None:
        self.side = None
        self.id = ENCOUNTER_ENTITY_ID
        super().__post_init__()

    @property
    def traits(self) -> list[Trait]:
        return held_traits(self)


@dataclass(eq=False, repr=False)
class Item(Entity):
    """Something a character carries.

    Attributes:
        equipped: Whether the holder has it equipped.
    """

    variant: ClassVar[EntityVariant] = EntityVariant.ITEM
    kind_class: ClassVar[type[EntityKind]] = ItemKind

    equipped: bool = False

    @property
    def traits(self) -> list[Trait]:
        return held_traits(self)


ENTITY_CLASSES: dict[EntityVariant, type[Entity]] = {
    EntityVariant.ACTION: Action,
    EntityVariant.ARGUMENT: Argument,
    EntityVariant.BOOSTER: Booster,
    EntityVariant.CHARACTER: Character,
    EntityVariant.EFFECT: Effect,
    EntityVariant.ENCOUNTER: Encounter,
    EntityVariant.ITEM: Item,
    EntityVariant.TRAIT: Trait,
}
"""Entity class per variant."""


def create_entity(kind: EntityKind, **attributes: object) -> Entity:
    """Instantiate the entity variant matching a kind.

    Args:
        kind: Template to instantiate.
        **attributes: Entity fields (name, side, id, classes, holder_id, ...).

    Returns:
        A new entity of the kind's variant.

    Raises:
        InvalidTypeError: If kind is not an EntityKind.
    """
    if not isinstance(kind, EntityKind):
        raise InvalidTypeError(
            "Entities can only be created from entity kinds",
            received_type=type(kind).__name__,
        )
    return ENTITY_CLASSES[EntityVariant(kind.variant)](kind=kind, **attributes)  # type: ignore[arg-type]


def of_variant(entities: Iterable[Entity], variant: EntityVariant) -> list[Entity]:
    """Filter entities down to one variant, keeping order."""
    return [e for e in entities if e.variant == variant]


__all__ = [
    "Targetable",
    "HasHolder",
    "HasTraits",
    "Entity",
    "Action",
    "Argument",
    "Booster",
    "Character",
    "Trait",
    "Effect",
    "Encounter",
    "Item",
    "held_traits",
    "ENTITY_CLASSES",
    "create_entity",
    "of_variant",
]
