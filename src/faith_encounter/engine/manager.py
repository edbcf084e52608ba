"""Encounter manager: sets up an encounter and resolves its turns.

The manager owns every mutable piece of an encounter: the arena of
entities, the three sides, the property graph and the order queue. The
query engines (targeting, visibility) only read what it owns.

Example:
    >>> ruleset = Ruleset()
    >>> _ = ruleset.parse(rules_text, file_name="core.xml")
    >>> config = EncounterConfig(
    ...     side1=SideConfig(characters=[EntitySetup(kind_id="preacher")]),
    ...     side2=SideConfig(characters=[EntitySetup(kind_id="skeptic")]),
    ... )
    >>> manager = EncounterManager(ruleset, config)
    >>> manager.order("preacher-1", "sermon", targets=["skeptic-1"])
    >>> events = manager.run_turn()
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from faith_encounter.core.config import EncounterSettings, get_settings
from faith_encounter.core.constants import ENCOUNTER_ENTITY_ID, FIRST_TURN
from faith_encounter.core.diagnostics import DiagnosticLog
from faith_encounter.core.exceptions import ConfigurationError, EncounterError, InvalidOrderError
from faith_encounter.core.logging import get_logger, log_context
from faith_encounter.engine.costs import ConditionChecker, CostResolver
from faith_encounter.engine.events import TurnEvent, TurnEventType
from faith_encounter.engine.expression import ExpressionEvaluator
from faith_encounter.engine.properties import PropertyGraph
from faith_encounter.engine.targeting import ALL_SIDES, Target, Targeting
from faith_encounter.engine.visibility import SideView, VisibilityEngine
from faith_encounter.models.containers import EntityMap
from faith_encounter.models.entity import (
    Action,
    Argument,
    Character,
    Encounter,
    Entity,
    create_entity,
)
from faith_encounter.models.enums import EffectOperation, PropertyCategory, SideIndex, TargetType
from faith_encounter.models.kinds import (
    ActionKind,
    ArgumentKind,
    BoosterKind,
    EffectKind,
    EncounterKind,
    EntityKind,
    PropertyKind,
    TargetSpec,
    TraitKind,
)
from faith_encounter.models.property import Property
from faith_encounter.models.side import Side
from faith_encounter.rules.ruleset import Ruleset


logger = get_logger(__name__)


# =============================================================================
# Configuration
# =============================================================================


class EntitySetup(BaseModel):
    """An entity placed on a side when the encounter starts.

    Attributes:
        kind_id: Id of the kind to instantiate.
        id: Arena id; generated from the kind id when omitted.
        name: Display name; defaults to the kind's name.
        classes: Classes added to the kind's classes.
        holder: Arena id of an entity placed earlier that holds this one.
    """

    model_config = ConfigDict(extra="forbid")

    kind_id: str = Field(min_length=1, description="Kind to instantiate")
    id: str | None = Field(default=None, description="Arena id")
    name: str | None = Field(default=None, description="Display name")
    classes: set[str] = Field(default_factory=set, description="Extra classes")
    holder: str | None = Field(default=None, description="Arena id of the holder")


class SideConfig(BaseModel):
    """Starting state of one side.

    Attributes:
        characters: Characters of the side.
        arguments: Arguments already placed.
        boosters: Boosters already placed; global unless they name a holder.
        researched: Ids of researched action, argument, booster and trait kinds.
        secrets: Ids of secrets already uncovered.
        research_points: Unspent research points.
        probing_points: Unspent probing points.
    """

    model_config = ConfigDict(extra="forbid")

    characters: list[EntitySetup] = Field(default_factory=list)
    arguments: list[EntitySetup] = Field(default_factory=list)
    boosters: list[EntitySetup] = Field(default_factory=list)
    researched: list[str] = Field(default_factory=list)
    secrets: list[str] = Field(default_factory=list)
    research_points: int = Field(default=0, ge=0)
    probing_points: int = Field(default=0, ge=0)


class EncounterConfig(BaseModel):
    """Starting state of an encounter.

    Attributes:
        side1: First competing side.
        side2: Second competing side.
        neutral: The neutral faction.
        encounter: Id of the encounter kind; a bare encounter when omitted.
        props: Ids of extra property templates given to the encounter.
    """

    model_config = ConfigDict(extra="forbid")

    side1: SideConfig
    side2: SideConfig
    neutral: SideConfig = Field(default_factory=SideConfig)
    encounter: str | None = None
    props: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def require_characters(self) -> Self:
        """Both competing sides need at least one character.

        Raises:
            ConfigurationError: If a competing side has no character.
        """
        for key in ("side1", "side2"):
            if not getattr(self, key).characters:
                raise ConfigurationError(
                    f"No characters specified for {key}",
                    config_key=f"{key}.characters",
                )
        return self

    def for_side(self, index: SideIndex) -> SideConfig:
        return {SideIndex.NEUTRAL: self.neutral, SideIndex.ONE: self.side1, SideIndex.TWO: self.side2}[
            index
        ]


@dataclass
class Order:
    """A queued action.

    Attributes:
        character_id: Arena id of the acting character.
        action_id: Arena id of the Action entity.
        buildup_left: Turns left before the effects apply.
        paid: Whether conditions and costs were already settled.
    """

    character_id: str
    action_id: str
    buildup_left: int = 0
    paid: bool = False


_RESEARCH_LISTS: dict[type[EntityKind], str] = {
    ActionKind: "researched_actions",
    ArgumentKind: "researched_args",
    BoosterKind: "researched_boosters",
    TraitKind: "researched_traits",
}

_PropertyState = tuple[float | None, float | None, float | None]


# =============================================================================
# Encounter Manager
# =============================================================================


class EncounterManager:
    """Runs one encounter over a rule set.

    Attributes:
        ruleset: The kinds and visibility rules of the encounter.
        config: Starting state.
        settings: Encounter settings.
        diagnostics: Non-fatal problems met while running.
        arena: Every entity of the encounter, by id.
        sides: The neutral faction and the two competing sides.
        graph: Property dependency graph.
        targeting: Target queries over the arena.
        conditions: Existence-condition checker.
        costs: Cost payment.
        visibility: Per-side views.
        current_turn: Number of the next turn to run.
        events: Every event emitted so far, oldest first.
    """

    def __init__(
        self,
        ruleset: Ruleset,
        config: EncounterConfig,
        settings: EncounterSettings | None = None,
    ) -> None:
        self.ruleset = ruleset
        self.config = config
        self.settings = settings or get_settings().encounter
        self.diagnostics = DiagnosticLog(
            enabled=self.settings.display_warnings,
            alert_on_warnings=self.settings.raise_alert_on_bugs,
            alert_on_errors=self.settings.raise_alert_on_bugs,
        )
        self.arena: EntityMap[Entity] = EntityMap()
        self.sides: dict[SideIndex, Side] = {i: Side(i, arena=self.arena) for i in ALL_SIDES}
        self.graph = PropertyGraph()
        self.evaluator = ExpressionEvaluator()
        self.targeting = Targeting(
            self.arena, self.sides, diagnostics=self.diagnostics, evaluator=self.evaluator
        )
        self.conditions = ConditionChecker(self.targeting, self.evaluator)
        self.costs = CostResolver(
            self.targeting, checker=self.conditions, graph=self.graph, diagnostics=self.diagnostics
        )
        self.visibility = VisibilityEngine(ruleset)
        self.current_turn = FIRST_TURN
        self.events: list[TurnEvent] = []
        self._orders: list[Order] = []
        self._id_counters: dict[str, int] = {}

        self._setup()
        self._views = {i: self.view_for(i) for i in (SideIndex.ONE, SideIndex.TWO)}
        logger.info(
            "Encounter set up",
            entities=len(self.arena),
            properties=len(self.graph),
        )

    # =========================================================================
    # Setup
    # =========================================================================

    def _setup(self) -> None:
        encounter_kind = self._encounter_kind()
        extra = {pk.id: Property(pk) for pk in (self._property_kind(p) for p in self.config.props)}
        self.spawn(encounter_kind, props=extra)

        for index in ALL_SIDES:
            side_config = self.config.for_side(index)
            side = self.sides[index]
            for kind_id in side_config.researched:
                kind = self._kind(kind_id, f"side{int(index)}.researched")
                for kind_type, attribute in _RESEARCH_LISTS.items():
                    if isinstance(kind, kind_type):
                        getattr(side, attribute).append(kind_id)
                        break
                else:
                    raise ConfigurationError(
                        f"Kind {kind_id!r} cannot be researched",
                        config_key=f"side{int(index)}.researched",
                    )
            side.secrets_found = list(side_config.secrets)
            side.research_points = side_config.research_points
            side.probing_points = side_config.probing_points

            for group in ("characters", "arguments", "boosters"):
                for setup in getattr(side_config, group):
                    self._place(setup, index, f"side{int(index)}.{group}")

        self.graph.recompute_all()

    def _encounter_kind(self) -> EncounterKind:
        if self.config.encounter is None:
            return EncounterKind(id="encounter")
        kind = self._kind(self.config.encounter, "encounter")
        if not isinstance(kind, EncounterKind):
            raise ConfigurationError(
                f"Kind {self.config.encounter!r} is not an encounter",
                config_key="encounter",
            )
        return kind

    def _property_kind(self, prop_id: str) -> PropertyKind:
        for kind in self.ruleset.all:
            for template in kind.props:
                if template.id == prop_id:
                    return template
        raise ConfigurationError(f"Unknown property {prop_id!r}", config_key="props")

    def _kind(self, kind_id: str, config_key: str) -> EntityKind:
        kind = self.ruleset.get_kind(kind_id)
        if kind is None:
            raise ConfigurationError(f"Unknown kind {kind_id!r}", config_key=config_key)
        return kind

    def _place(self, setup: EntitySetup, side: SideIndex, config_key: str) -> Entity:
        kind = self._kind(setup.kind_id, config_key)
        holder = None
        if setup.holder is not None:
            holder = self.arena.get_by_id(setup.holder)
            if holder is None:
                raise ConfigurationError(
                    f"Holder {setup.holder!r} is not placed before {setup.kind_id!r}",
                    config_key=config_key,
                )
        return self.spawn(kind, side=side, holder=holder, id=setup.id, name=setup.name, classes=setup.classes)

    # =========================================================================
    # Spawning
    # =========================================================================

    def _next_id(self, kind: EntityKind) -> str:
        base = kind.id or str(kind.variant)
        while True:
            self._id_counters[base] = self._id_counters.get(base, 0) + 1
            candidate = f"{base}-{self._id_counters[base]}"
            if self.arena.get_by_id(candidate) is None:
                return candidate

    def spawn(
        self,
        kind: EntityKind | str,
        *,
        side: SideIndex | int | None = None,
        holder: Entity | str | None = None,
        creator: Entity | str | None = None,
        id: str | None = None,
        name: str | None = None,
        classes: Iterable[str] = (),
        **attributes: Any,
    ) -> Entity:
        """Instantiate a kind into the arena.

        The new entity's traits are spawned with it, its properties join the
        property graph and their sources are linked and computed.

        Args:
            kind: The kind, or its id.
            side: Owning side; inherited from the holder when omitted.
            holder: Holding entity or its id.
            creator: Creating entity or its id.
            id: Arena id; generated from the kind id when omitted.
            name: Display name.
            classes: Classes added to the kind's classes.
            **attributes: Variant-specific fields, such as target_id.

        Returns:
            The spawned entity.

        Raises:
            ConfigurationError: If the kind id is unknown.
            DuplicateIdError: If the id is already taken.
        """
        if isinstance(kind, str):
            kind = self._kind(kind, "kind_id")
        holder_entity = self.arena.get_by_id(holder) if isinstance(holder, str) else holder
        creator_id = creator if isinstance(creator, str) or creator is None else creator.id
        if side is None and holder_entity is not None:
            side = holder_entity.side

        entity = create_entity(
            kind,
            side=side,
            name=name,
            classes=set(classes),
            holder_id=holder_entity.id if holder_entity is not None else None,
            creator_id=creator_id,
            **attributes,
        )
        if isinstance(entity, Encounter):
            entity.assign_id(ENCOUNTER_ENTITY_ID)
        else:
            entity.assign_id(id or self._next_id(kind))
        self.arena.add(entity)
        entity.attach(self.arena)

        for trait_id in kind.traits:
            trait_kind = self.ruleset.get_kind(trait_id)
            if not isinstance(trait_kind, TraitKind):
                self.diagnostics.warn("Unknown trait", trait_id=trait_id, entity_id=entity.id)
                continue
            self.spawn(trait_kind, side=entity.side, holder=entity, creator=creator_id)

        self.graph.add(*entity.props.values())
        for prop in entity.props.values():
            self._link_sources(entity, prop)
        for prop in entity.props.values():
            self.graph.propagate(prop)

        logger.debug("Entity spawned", entity_id=entity.id, kind=kind.id, side=entity.side)
        return entity

    def _link_sources(self, owner: Entity, prop: Property) -> None:
        for category in PropertyCategory:
            bound = prop.bound(category)
            if bound is None:
                continue
            for ref in bound.sources:
                targets = self.targeting.get_targets(owner, ref.target)
                for target in targets:
                    source = target.props.get(ref.property_id)
                    if source is None:
                        self.diagnostics.warn(
                            "Property source not found",
                            property=prop.label,
                            source=ref.property_id,
                            target_id=target.id,
                        )
                        continue
                    self.graph.link(prop, source, category, PropertyCategory(ref.category))

    # =========================================================================
    # Lookups
    # =========================================================================

    def _find(self, cls: type[Entity], entity_id: str | None = None, name: str | None = None) -> Any:
        if entity_id is not None:
            found = self.arena.get_by_id(entity_id)
            return found if isinstance(found, cls) else None
        for entity in self.arena:
            if isinstance(entity, cls) and entity.name == name:
                return entity
        return None

    def get_argument_by_id(self, argument_id: str) -> Argument | None:
        return self._find(Argument, entity_id=argument_id)

    def get_argument_by_name(self, name: str) -> Argument | None:
        """First argument with the given name, in placement order."""
        return self._find(Argument, name=name)

    def get_character_by_id(self, character_id: str) -> Character | None:
        return self._find(Character, entity_id=character_id)

    def get_character_by_name(self, name: str) -> Character | None:
        """First character with the given name, in placement order."""
        return self._find(Character, name=name)

    def view_for(self, side: SideIndex | int) -> SideView:
        """What one side currently sees of the encounter."""
        return self.visibility.view_for(side, self.arena)

    @property
    def pending_orders(self) -> list[Order]:
        return list(self._orders)

    # =========================================================================
    # Orders
    # =========================================================================

    def order(
        self,
        character: Character | str,
        action: Action | ActionKind | str,
        targets: Iterable[Target | str] | None = None,
    ) -> Action:
        """Queue an action for the next turn.

        Args:
            character: The acting character or its id.
            action: An action kind id, an action kind, or an Action entity the
                character already holds.
            targets: Entities, sides or ids the action is aimed at; defaults
                to what the action kind's target spec selects.

        Returns:
            The queued Action entity.

        Raises:
            InvalidOrderError: If the character is unknown or not alive, does
                not know the action, a target is unknown, or the turn's order
                limit is reached.
        """
        character_id = character if isinstance(character, str) else character.id
        actor = self.get_character_by_id(character_id) if character_id else None
        if actor is None:
            raise InvalidOrderError("Unknown character", character_id=character_id)
        if not actor.alive:
            raise InvalidOrderError("Character is not alive", character_id=actor.id)

        existing = action if isinstance(action, Action) else None
        if existing is not None:
            kind = existing.kind
        elif isinstance(action, ActionKind):
            kind = action
        else:
            kind = self.ruleset.get_kind(action)
        if not isinstance(kind, ActionKind):
            raise InvalidOrderError("Unknown action", character_id=actor.id, action_id=str(action))
        if kind.id not in actor.action_ids:
            raise InvalidOrderError(
                "Character does not know the action", character_id=actor.id, action_id=kind.id
            )
        if existing is not None and (existing not in self.arena or existing.holder_id != actor.id or existing.finished):
            raise InvalidOrderError(
                "Action is not an open action of the character",
                character_id=actor.id,
                action_id=existing.id,
            )
        if len(self._orders) >= self.settings.max_orders_per_turn:
            raise InvalidOrderError(
                "Order limit of the turn reached", character_id=actor.id, action_id=kind.id
            )

        target_ids: list[str] = []
        for target in targets or ():
            target_id = target if isinstance(target, str) else target.id
            if target_id is None or self.targeting.lookup(target_id) is None:
                raise InvalidOrderError(
                    f"Unknown target {target_id!r}", character_id=actor.id, action_id=kind.id
                )
            target_ids.append(target_id)

        performed: Action = existing or self.spawn(kind, side=actor.side, holder=actor, creator=actor)  # type: ignore[assignment]
        if targets is not None:
            performed.target_ids = target_ids
        elif kind.target is not None:
            performed.target_ids = [
                t.id for t in self.targeting.get_targets(performed, kind.target) if t.id is not None
            ]

        self._orders.append(
            Order(character_id=actor.id, action_id=performed.id, buildup_left=kind.buildup)  # type: ignore[arg-type]
        )
        logger.info(
            "Order queued",
            character_id=actor.id,
            action=kind.id,
            targets=performed.target_ids,
        )
        return performed

    # =========================================================================
    # Turn Resolution
    # =========================================================================

    def _property_states(self) -> dict[int, tuple[Property, _PropertyState]]:
        owners: list[Any] = [*self.sides.values(), *self.arena]
        return {
            id(prop): (prop, (prop.val, prop.min, prop.max))
            for owner in owners
            for prop in owner.props.values()
        }

    def _property_events(
        self,
        before: dict[int, tuple[Property, _PropertyState]],
        actor_id: str | None,
    ) -> list[TurnEvent]:
        events = []
        for key, (prop, old) in before.items():
            new = (prop.val, prop.min, prop.max)
            if new == old:
                continue
            events.append(
                TurnEvent(
                    type=TurnEventType.PROPERTY_CHANGED,
                    turn=self.current_turn,
                    actor_id=actor_id,
                    subject_id=prop.holder_id,
                    message=f"{prop.label} changed from {old[0]} to {new[0]}",
                    data={
                        "property": prop.id,
                        "old": dict(zip(("val", "min", "max"), old)),
                        "new": dict(zip(("val", "min", "max"), new)),
                    },
                )
            )
        return events

    def _reject(self, order: Order, action: Action, reason: str) -> TurnEvent:
        action.active = False
        logger.info("Order rejected", character_id=order.character_id, action_id=order.action_id, reason=reason)
        return TurnEvent(
            type=TurnEventType.ORDER_REJECTED,
            turn=self.current_turn,
            actor_id=order.character_id,
            subject_id=order.action_id,
            message=reason,
        )

    def _settle(self, order: Order, actor: Character, action: Action) -> list[TurnEvent]:
        """Check the conditions and pay the costs of an order, marking it paid on success."""
        kind: ActionKind = action.kind  # type: ignore[assignment]
        if not actor.alive:
            return [self._reject(order, action, f"{actor.id} is not alive")]
        failed = self.conditions.check_all(kind.conds, action)
        if failed is not None:
            return [self._reject(order, action, f"Condition {failed.label()} not met")]
        outcome = self.costs.pay(kind.costs, agent=actor, obj=action)
        if not outcome:
            return [self._reject(order, action, outcome.reason or "Costs could not be paid")]
        order.paid = True
        return [
            TurnEvent(
                type=TurnEventType.COSTS_PAID,
                turn=self.current_turn,
                actor_id=actor.id,
                subject_id=action.id,
                message=f"{actor.id} paid for {kind.id}",
                data={"properties": [p.label for p in outcome.changed]},
            )
        ]

    def _effect_value(self, effect_kind: EffectKind, prop: Property, context: dict[str, Any]) -> float:
        if isinstance(effect_kind.value, str):
            names = {**context, "value": prop.val, "val": prop.val, "min": prop.min, "max": prop.max, "prop": prop}
            return self.evaluator.evaluate_number(effect_kind.value, names)
        return effect_kind.value

    def _apply_effects(self, actor: Character, action: Action) -> list[TurnEvent]:
        kind: ActionKind = action.kind  # type: ignore[assignment]
        events: list[TurnEvent] = []
        for effect_id in kind.effects:
            effect_kind = self.ruleset.get_kind(effect_id)
            if not isinstance(effect_kind, EffectKind):
                self.diagnostics.warn("Unknown effect", effect_id=effect_id, action_id=action.id)
                continue
            spec = effect_kind.target or TargetSpec(type=TargetType.TARGET.value)
            for target in self.targeting.get_targets(action, spec):
                prop = target.props.get(effect_kind.property_id) if effect_kind.property_id else None
                if prop is None:
                    self.diagnostics.warn(
                        "Effect target lacks the property",
                        effect_id=effect_id,
                        target_id=target.id,
                        property=effect_kind.property_id,
                    )
                    continue
                effect = self.spawn(
                    effect_kind,
                    side=actor.side,
                    holder=target if isinstance(target, Entity) else None,
                    creator=actor,
                    target_id=target.id,
                )
                context = {
                    "agent": actor,
                    "action": action,
                    "effect": effect,
                    "target": target,
                    "encounter": self.targeting.encounter,
                    "sides": self.sides,
                }
                amount = self._effect_value(effect_kind, prop, context)
                if effect_kind.operation == EffectOperation.MULT:
                    prop.apply_mult(amount)
                elif effect_kind.operation == EffectOperation.SET:
                    prop.set_value(amount)
                else:
                    prop.apply_add(amount)
                self.graph.propagate(prop)
                effect.finished = True
                events.append(
                    TurnEvent(
                        type=TurnEventType.EFFECT_APPLIED,
                        turn=self.current_turn,
                        actor_id=actor.id,
                        subject_id=target.id,
                        message=f"{effect_kind.id} applied to {target.id}",
                        data={
                            "effect_id": effect.id,
                            "property": prop.id,
                            "operation": str(effect_kind.operation),
                            "amount": amount,
                        },
                    )
                )
        return events

    def _resolve(self, order: Order) -> tuple[list[TurnEvent], bool]:
        """Resolve one order. Returns its events and whether it stays queued."""
        actor = self.get_character_by_id(order.character_id)
        action = self.arena.get_by_id(order.action_id)
        if actor is None or not isinstance(action, Action):
            raise EncounterError(
                "Queued order refers to a removed entity",
                details={"character_id": order.character_id, "action_id": order.action_id},
            )
        events: list[TurnEvent] = []

        if not order.paid:
            settled = self._settle(order, actor, action)
            events.extend(settled)
            if not order.paid:
                return events, False

        if order.buildup_left > 0:
            order.buildup_left -= 1
            events.append(
                TurnEvent(
                    type=TurnEventType.ACTION_BUILDING,
                    turn=self.current_turn,
                    actor_id=actor.id,
                    subject_id=action.id,
                    message=f"{action.kind_id} builds up",
                    data={"turns_left": order.buildup_left + 1},
                )
            )
            return events, True

        events.extend(self._apply_effects(actor, action))
        action.finished = True
        events.append(
            TurnEvent(
                type=TurnEventType.ACTION_PERFORMED,
                turn=self.current_turn,
                actor_id=actor.id,
                subject_id=action.id,
                message=f"{actor.id} performed {action.kind_id}",
                data={"targets": list(action.target_ids)},
            )
        )
        return events, False

    def _visibility_events(self) -> list[TurnEvent]:
        events = []
        for side, old in self._views.items():
            new = self.view_for(side)
            changed = sorted(
                {i for i, view in new.entities.items() if old.entities.get(i) != view}
                | (set(old.entities) - set(new.entities))
            )
            self._views[side] = new
            if changed:
                events.append(
                    TurnEvent(
                        type=TurnEventType.VISIBILITY_REFRESHED,
                        turn=self.current_turn,
                        subject_id=self.sides[side].id,
                        message=f"{len(changed)} entities changed for {self.sides[side].name}",
                        data={"entities": changed},
                    )
                )
        return events

    def run_turn(self) -> list[TurnEvent]:
        """Resolve every queued order, in queue order.

        Each order checks its action's conditions, pays its costs all or
        nothing, and applies its effects once any build-up is over.
        Property changes are reported per order.

        Returns:
            The events of the turn, from turn_started to turn_ended.
        """
        turn = self.current_turn
        with log_context(encounter=self.config.encounter, turn=turn):
            events = [
                TurnEvent(
                    type=TurnEventType.TURN_STARTED,
                    turn=turn,
                    message=f"Turn {turn} started",
                    data={"orders": len(self._orders)},
                )
            ]
            remaining: list[Order] = []
            for order in self._orders:
                before = self._property_states()
                order_events, keep = self._resolve(order)
                events.extend(order_events)
                events.extend(self._property_events(before, order.character_id))
                if keep:
                    remaining.append(order)
            self._orders = remaining

            events.extend(self._visibility_events())
            events.append(
                TurnEvent(
                    type=TurnEventType.TURN_ENDED,
                    turn=turn,
                    message=f"Turn {turn} ended",
                    data={"pending": len(remaining)},
                )
            )
            self.events.extend(events)
            self.current_turn += 1
            logger.info("Turn resolved", events=len(events), pending=len(remaining))
        return events


__all__ = [
    "EntitySetup",
    "SideConfig",
    "EncounterConfig",
    "Order",
    "EncounterManager",
]
