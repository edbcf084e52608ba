"""Fog of war: what each side may see of the encounter.

A flag is resolved by walking the rules that apply to an entity from the
most to the least specific and taking the first one that sets it:

1. the rule nested in the entity's kind,
2. top-level rules whose id is the kind id,
3. top-level rules whose classes are all carried by the entity,
4. the category default.

Actions resolve against their own kind first and then against the rules
of the character performing them. A side always sees its own entities, and
a rule set with ``all_visible`` reveals everything except properties marked
``always_hide``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable

from faith_encounter.core.logging import get_logger
from faith_encounter.engine.targeting import side_of
from faith_encounter.models.entity import (
    Action,
    Argument,
    Booster,
    Character,
    Effect,
    Encounter,
    Entity,
    Item,
    Trait,
)
from faith_encounter.models.enums import EntityVariant, SideIndex
from faith_encounter.models.property import Property
from faith_encounter.models.visibility import (
    PropertyVisibility,
    VisibilityRule,
    default_rule,
)


if TYPE_CHECKING:
    from faith_encounter.models.containers import EntityMap
    from faith_encounter.rules.ruleset import Ruleset

logger = get_logger(__name__)


CATEGORY_OF: dict[EntityVariant, str] = {
    EntityVariant.ACTION: "action",
    EntityVariant.ARGUMENT: "argument",
    EntityVariant.BOOSTER: "booster",
    EntityVariant.CHARACTER: "character",
    EntityVariant.ENCOUNTER: "encounter",
    EntityVariant.TRAIT: "trait",
}
"""Visibility category of each entity variant that has one."""


@dataclass(frozen=True)
class FlagResolution:
    """Resolved value of a visibility flag and of its refresh companion."""

    visible: bool
    refresh: bool


REVEALED = FlagResolution(visible=True, refresh=True)
HIDDEN = FlagResolution(visible=False, refresh=False)


@dataclass
class EntityView:
    """What one side knows about one entity.

    Fields the side has never been shown are None.

    Attributes:
        id: Arena id of the entity.
        variant: Entity variant.
        side: Owning side.
        name: Display name, when the identity is known.
        kind_id: Kind id, when the kind is known.
        traits: Ids of known traits, when the trait list is known.
        props: Known property values by property id.
        buildup: Turns of build-up, for actions whose build-up is known.
    """

    id: str
    variant: EntityVariant
    side: SideIndex | None
    name: str | None = None
    kind_id: str | None = None
    traits: list[str] | None = None
    props: dict[str, float | None] = field(default_factory=dict)
    buildup: int | None = None


@dataclass
class SideView:
    """Snapshot of the encounter from one side's point of view."""

    side: SideIndex
    entities: dict[str, EntityView] = field(default_factory=dict)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self.entities

    def __getitem__(self, entity_id: str) -> EntityView:
        return self.entities[entity_id]


def _first(values: Iterable[bool | None]) -> bool | None:
    for value in values:
        if value is not None:
            return value
    return None


class VisibilityEngine:
    """Resolves visibility flags and builds per-side views.

    Revealed values whose refresh flag is off are remembered per side and
    reported unchanged in later views.

    Attributes:
        ruleset: Source of the top-level visibility table and flags.
    """

    def __init__(self, ruleset: Ruleset) -> None:
        self.ruleset = ruleset
        self._memory: dict[SideIndex, dict[tuple[str, str], Any]] = {}

    # =========================================================================
    # Rule Resolution
    # =========================================================================

    def rules_for(self, entity: Entity) -> list[VisibilityRule]:
        """Visibility rules applying to an entity, most specific first."""
        category = CATEGORY_OF.get(EntityVariant(entity.variant))
        if category is None:
            return []
        rules: list[VisibilityRule] = []
        own = getattr(entity.kind, "vis", None)
        if own is not None:
            rules.append(own)
        if isinstance(entity, Action):
            holder = entity.holder
            if isinstance(holder, Character):
                rules.extend(self.rules_for(holder))
            return rules

        table = self.ruleset.vis.rules_for(category)
        rules.extend(r for r in table if r.id is not None and r.id == entity.kind_id)
        rules.extend(r for r in table if r.id is None and r.classes and r.classes <= entity.classes)
        rules.extend(r for r in table if r.id is None and not r.classes)
        rules.append(default_rule(category))
        return rules

    def flag(self, entity: Entity, name: str) -> bool | None:
        """First value of a flag among the rules applying to an entity."""
        return _first(
            getattr(rule, name)
            for rule in self.rules_for(entity)
            if name in type(rule).model_fields
        )

    def resolve(self, entity: Entity, name: str) -> FlagResolution:
        """Resolve a flag and its refresh companion.

        Flags outside the entity's schema resolve as visible and live.

        Args:
            entity: Entity being looked at.
            name: Flag name, for example "kind" or "properties".

        Returns:
            Whether the information is visible and whether it refreshes.
        """
        visible = self.flag(entity, name)
        refresh = self.flag(entity, f"{name}_refresh")
        return FlagResolution(
            visible=True if visible is None else visible,
            refresh=True if refresh is None else refresh,
        )

    def _property_rules(self, entity: Entity, prop: Property) -> list[PropertyVisibility]:
        found: list[PropertyVisibility] = []
        lists = [getattr(rule, "prop_list", []) for rule in self.rules_for(entity)]
        lists.append(self.ruleset.vis.property_rules)
        for rules in lists:
            found.extend(r for r in rules if r.id is not None and r.id == prop.id)
            found.extend(r for r in rules if r.id is None and r.classes and r.classes <= prop.classes)
            found.extend(r for r in rules if r.id is None and not r.classes)
        return found

    def property_visibility(self, entity: Entity, prop_id: str) -> FlagResolution:
        """Resolve the visibility of one property of an entity.

        ``always_hide`` on any applicable property rule hides the property.
        Otherwise the first property rule that sets ``vis`` or ``refresh``
        decides, falling back to the entity's properties flag.
        """
        prop = entity.props[prop_id]
        rules = self._property_rules(entity, prop)
        if any(r.always_hide for r in rules):
            return HIDDEN
        base_flag = "trait" if isinstance(entity, Trait) else "properties"
        fallback = self.resolve(entity, base_flag)
        visible = _first(r.vis for r in rules)
        refresh = _first(r.refresh for r in rules)
        return FlagResolution(
            visible=fallback.visible if visible is None else visible,
            refresh=fallback.refresh if refresh is None else refresh,
        )

    # =========================================================================
    # Per-Side Checks
    # =========================================================================

    def _owns(self, viewer: SideIndex, entity: Entity) -> bool:
        return side_of(entity) == viewer

    def sees(self, viewer: SideIndex, entity: Entity, name: str) -> FlagResolution:
        """Resolve a flag for one viewing side."""
        if self._owns(viewer, entity) or self.ruleset.all_visible:
            return REVEALED
        return self.resolve(entity, name)

    def sees_property(self, viewer: SideIndex, entity: Entity, prop_id: str) -> FlagResolution:
        """Resolve a property's visibility for one viewing side."""
        if self._owns(viewer, entity):
            return REVEALED
        resolution = self.property_visibility(entity, prop_id)
        if self.ruleset.all_visible and resolution is not HIDDEN:
            return REVEALED
        return resolution

    def sees_action(self, viewer: SideIndex, action: Action) -> bool:
        """Whether a side notices an action at all."""
        if self.sees(viewer, action, "action").visible:
            return True
        aimed_at_viewer = False
        for target_id in action.target_ids:
            if target_id == f"side-{int(viewer)}":
                aimed_at_viewer = True
            elif action.arena is not None:
                target = action.arena.get_by_id(target_id)
                aimed_at_viewer = aimed_at_viewer or (target is not None and side_of(target) == viewer)
        return aimed_at_viewer and self.sees(viewer, action, "action_to_my_side").visible

    # =========================================================================
    # Views
    # =========================================================================

    def _reveal(self, viewer: SideIndex, entity_id: str, key: str, value: Any, resolution: FlagResolution) -> Any:
        memory = self._memory.setdefault(viewer, {})
        slot = (entity_id, key)
        if not resolution.visible:
            return memory.get(slot)
        if slot in memory and not resolution.refresh:
            return memory[slot]
        memory[slot] = value
        return value

    def _traits(self, viewer: SideIndex, entity: Entity) -> list[str]:
        return [
            t.id
            for t in entity.held(EntityVariant.TRAIT)
            if t.id is not None and self.sees(viewer, t, "trait").visible
        ]

    def view_of(self, viewer: SideIndex, entity: Entity) -> EntityView | None:
        """What a side currently knows about one entity, or None if unseen."""
        if entity.id is None or isinstance(entity, Effect):
            return None
        if isinstance(entity, Trait) and not self.sees(viewer, entity, "trait").visible:
            return None
        if isinstance(entity, Action) and not self.sees_action(viewer, entity):
            return None

        view = EntityView(id=entity.id, variant=EntityVariant(entity.variant), side=entity.side)

        def reveal(key: str, value: Any, resolution: FlagResolution) -> Any:
            return self._reveal(viewer, view.id, key, value, resolution)

        if isinstance(entity, Character):
            view.name = reveal("identity", entity.name, self.sees(viewer, entity, "identity"))
        else:
            view.name = entity.name
        if isinstance(entity, (Argument, Booster, Character)):
            view.kind_id = reveal("kind", entity.kind_id, self.sees(viewer, entity, "kind"))
        else:
            view.kind_id = entity.kind_id
        if isinstance(entity, (Argument, Character, Encounter)):
            view.traits = reveal("traits", self._traits(viewer, entity), self.sees(viewer, entity, "traits"))
        elif isinstance(entity, Item):
            view.traits = self._traits(viewer, entity)
        if isinstance(entity, Action):
            view.buildup = reveal(
                "action_buildup",
                entity.kind.buildup,  # type: ignore[attr-defined]
                self.sees(viewer, entity, "action_buildup"),
            )
        for prop_id, prop in entity.props.items():
            resolution = REVEALED if isinstance(entity, Item) else self.sees_property(viewer, entity, prop_id)
            value = reveal(f"prop:{prop_id}", prop.val, resolution)
            if resolution.visible or value is not None:
                view.props[prop_id] = value
        return view

    def view_for(self, viewer: SideIndex | int, arena: EntityMap) -> SideView:
        """Build a side's current view of every entity in an arena.

        Args:
            viewer: The viewing side.
            arena: Entities of the encounter.

        Returns:
            The views of every entity the side can see, by id.
        """
        viewer = SideIndex(viewer)
        snapshot = SideView(side=viewer)
        for entity in arena:
            view = self.view_of(viewer, entity)
            if view is not None:
                snapshot.entities[view.id] = view
        logger.debug("Side view built", side=int(viewer), entities=len(snapshot.entities))
        return snapshot

    def forget(self, viewer: SideIndex | None = None) -> None:
        """Drop remembered reveals of one side, or of every side."""
        if viewer is None:
            self._memory.clear()
        else:
            self._memory.pop(SideIndex(viewer), None)


__all__ = [
    "CATEGORY_OF",
    "FlagResolution",
    "EntityView",
    "SideView",
    "VisibilityEngine",
]
