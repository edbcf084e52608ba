"""Target resolution: which entities a target specification selects.

A target specification names a strategy (``self``, ``holder``,
``kindredActions``, ``allAdverseBoosters``, ...) and optional narrowing
filters (id, kind, side, classes, flags). Targeting answers two questions
that always agree:

* ``is_target(candidate, targeter, spec)``: does the spec select this one?
* ``get_targets(targeter, spec)``: everything the spec selects, in arena
  order without duplicates.

get_targets builds a candidate pool per strategy and filters it through
is_target, so the two can never drift apart.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable

from faith_encounter.core.constants import ENCOUNTER_ENTITY_ID
from faith_encounter.core.diagnostics import DiagnosticLog
from faith_encounter.core.exceptions import InvalidTargetSpecError
from faith_encounter.core.logging import get_logger
from faith_encounter.engine.expression import ExpressionEvaluator
from faith_encounter.models.containers import EntityMap
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
from faith_encounter.models.enums import SideFilter, SideIndex, TargetType
from faith_encounter.models.kinds import TargetSpec
from faith_encounter.models.side import Side


logger = get_logger(__name__)

Target = Entity | Side
"""Anything a target spec can select."""

ALL_SIDES: tuple[SideIndex, ...] = (SideIndex.NEUTRAL, SideIndex.ONE, SideIndex.TWO)

_KINDRED: dict[TargetType, type[Entity]] = {
    TargetType.KINDRED_ACTIONS: Action,
    TargetType.KINDRED_ARGUMENTS: Argument,
    TargetType.KINDRED_BOOSTERS: Booster,
    TargetType.KINDRED_CHARACTERS: Character,
    TargetType.KINDRED_ITEMS: Item,
    TargetType.KINDRED_TRAITS: Trait,
}

_SAME_HOLDER: dict[TargetType, type[Entity]] = {
    TargetType.SAME_HOLDER_EFFECTS: Effect,
    TargetType.SAME_HOLDER_ITEMS: Item,
    TargetType.SAME_HOLDER_EQUIPPED_ITEMS: Item,
    TargetType.SAME_HOLDER_TRAITS: Trait,
}

_ALL_OF_VARIANT: dict[TargetType, type[Entity]] = {
    TargetType.ALL_ACTIONS: Action,
    TargetType.ALL_ARGUMENTS: Argument,
    TargetType.ALL_BOOSTERS: Booster,
    TargetType.ALL_CHARACTERS: Character,
    TargetType.ALL_EFFECTS: Effect,
    TargetType.ALL_ITEMS: Item,
    TargetType.ALL_TRAITS: Trait,
}

_TRAIT_HOLDERS: dict[TargetType, type[Entity]] = {
    TargetType.ALL_ARGUMENT_TRAITS: Argument,
    TargetType.ALL_CHARACTER_TRAITS: Character,
    TargetType.ALL_ENCOUNTER_TRAITS: Encounter,
    TargetType.ALL_ITEM_TRAITS: Item,
}

_HOLDER_ORDER: dict[TargetType, int] = {
    TargetType.HOLDER: 1,
    TargetType.HOLDER2: 2,
    TargetType.HOLDER3: 3,
}


def _holder(entity: Any) -> Entity | None:
    return getattr(entity, "holder", None)


def _creator(entity: Any) -> Entity | None:
    return getattr(entity, "creator", None)


def side_of(entity: Any) -> SideIndex | None:
    """Side of an entity, inherited from the nearest holder that has one."""
    current = entity
    while current is not None:
        if current.side is not None:
            return SideIndex(current.side)
        current = _holder(current)
    return None


def _unique(candidates: Iterable[Target]) -> list[Target]:
    seen: set[int] = set()
    result: list[Target] = []
    for candidate in candidates:
        if id(candidate) not in seen:
            seen.add(id(candidate))
            result.append(candidate)
    return result


class Targeting:
    """Read-only target queries over an encounter.

    Attributes:
        arena: Every entity of the encounter, by id.
        sides: The three sides by index.
        diagnostics: Where missing holder and creator chains are reported.
        evaluator: Evaluates ``code`` target predicates.
    """

    def __init__(
        self,
        arena: EntityMap[Entity],
        sides: dict[SideIndex, Side],
        *,
        diagnostics: DiagnosticLog | None = None,
        evaluator: ExpressionEvaluator | None = None,
    ) -> None:
        self.arena = arena
        self.sides = sides
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticLog()
        self.evaluator = evaluator or ExpressionEvaluator()

    # =========================================================================
    # Public API
    # =========================================================================

    def is_target(self, candidate: Target, targeter: Target, spec: TargetSpec | str) -> bool:
        """Check whether a spec selects a candidate.

        Args:
            candidate: Entity or side being checked.
            targeter: Entity or side doing the targeting.
            spec: Target specification, or a bare strategy name.

        Returns:
            True if the candidate passes the strategy and every filter.

        Raises:
            InvalidTargetSpecError: If the strategy is unknown.
        """
        spec = self._coerce(spec)
        target_type = self._target_type(spec)
        if spec.id and candidate.id != spec.id:
            return False
        if not self._passes_filters(candidate, targeter, spec):
            return False
        return self._matches(target_type, candidate, targeter, spec, warn=True)

    def get_targets(self, targeter: Target, spec: TargetSpec | str) -> list[Target]:
        """Everything a spec selects from a targeter's point of view.

        Args:
            targeter: Entity or side doing the targeting.
            spec: Target specification, or a bare strategy name.

        Returns:
            Matching entities and sides, without duplicates.

        Raises:
            InvalidTargetSpecError: If the strategy is unknown.
        """
        spec = self._coerce(spec)
        target_type = self._target_type(spec)
        if spec.id:
            candidate = self.lookup(spec.id)
            pool = [candidate] if candidate is not None else []
        else:
            pool = self._pool(target_type, targeter)
        targets: list[Target] = []
        for candidate in _unique(pool):
            if not spec.id or candidate.id == spec.id:
                if self._passes_filters(candidate, targeter, spec) and self._matches(
                    target_type, candidate, targeter, spec, warn=False
                ):
                    targets.append(candidate)
        logger.debug(
            "Targets resolved",
            target_type=str(target_type),
            targeter=targeter.id,
            count=len(targets),
        )
        return targets

    def lookup(self, target_id: str) -> Target | None:
        """Find an entity or side by id."""
        for side in self.sides.values():
            if side.id == target_id:
                return side
        return self.arena.get_by_id(target_id)

    @property
    def encounter(self) -> Encounter | None:
        found = self.arena.get_by_id(ENCOUNTER_ENTITY_ID)
        return found if isinstance(found, Encounter) else None

    # =========================================================================
    # Filters
    # =========================================================================

    @staticmethod
    def _coerce(spec: TargetSpec | str) -> TargetSpec:
        if isinstance(spec, TargetSpec):
            return spec
        return TargetSpec(type=spec)

    @staticmethod
    def _target_type(spec: TargetSpec) -> TargetType:
        try:
            return TargetType(spec.type)
        except ValueError as exc:
            raise InvalidTargetSpecError(
                f"Unknown target type {spec.type!r}",
                target_type=spec.type,
            ) from exc

    def candidate_sides(self, targeter: Target, side_filter: SideFilter | str | None) -> tuple[SideIndex, ...]:
        """Sides a spec's side filter admits, seen from the targeter."""
        if side_filter is None or side_filter == SideFilter.ALL:
            return ALL_SIDES
        if side_filter == SideFilter.FRIENDLY:
            own = side_of(targeter)
            return ALL_SIDES if own is None else (own,)
        if side_filter == SideFilter.OPPOSING:
            own = side_of(targeter)
            return ALL_SIDES if own is None else own.opponents
        if side_filter == SideFilter.NEUTRAL:
            return (SideIndex.NEUTRAL,)
        if side_filter == SideFilter.SIDE1:
            return (SideIndex.ONE,)
        if side_filter == SideFilter.SIDE2:
            return (SideIndex.TWO,)
        raise InvalidTargetSpecError(f"Unknown side filter {side_filter!r}")

    def _passes_filters(self, candidate: Target, targeter: Target, spec: TargetSpec) -> bool:
        if spec.kind_id and candidate.kind_id != spec.kind_id:
            return False
        sides = self.candidate_sides(targeter, spec.side)
        if sides != ALL_SIDES and side_of(candidate) not in sides:
            return False
        if spec.classes and not set(spec.classes) <= candidate.classes:
            return False
        if spec.not_classes and set(spec.not_classes) & candidate.classes:
            return False
        for flag in ("finished", "active", "alive"):
            wanted = getattr(spec, flag)
            if wanted is not None and getattr(candidate, flag) != wanted:
                return False
        return True

    # =========================================================================
    # Chains
    # =========================================================================

    def _warn(self, message: str, target_type: TargetType, entity: Target) -> None:
        holder = _holder(entity)
        self.diagnostics.warn(
            message,
            target_type=str(target_type),
            entity_id=entity.id,
            kind_id=entity.kind_id,
            holder_kind_id=holder.kind_id if holder is not None else None,
        )

    def holder_of(
        self,
        entity: Target,
        target_type: TargetType,
        order: int = 1,
        *,
        warn: bool = True,
    ) -> Entity | None:
        """The holder ``order`` steps up the chain, or None with a warning."""
        current: Any = entity
        for step in range(1, order + 1):
            current = _holder(current)
            if current is None:
                if warn:
                    self._warn(f"Could not find holder of order {step}", target_type, entity)
                return None
        return current

    def ultimate_holder_of(self, entity: Target, target_type: TargetType, *, warn: bool = True) -> Entity | None:
        holder = self.holder_of(entity, target_type, warn=warn)
        while holder is not None and _holder(holder) is not None:
            holder = _holder(holder)
        return holder

    def creator_of(self, entity: Target, target_type: TargetType, *, warn: bool = True) -> Entity | None:
        """Creator of the entity or of its nearest created holder."""
        current: Any = entity
        while current is not None:
            creator = _creator(current)
            if creator is not None:
                return creator
            current = _holder(current)
        if warn:
            self._warn("Could not find creator", target_type, entity)
        return None

    def _holding_argument(self, entity: Target, target_type: TargetType, *, include_self: bool, warn: bool) -> Argument | None:
        current: Any = entity if include_self else _holder(entity)
        while current is not None and not isinstance(current, Argument):
            current = _holder(current)
        if current is None and warn:
            self._warn("Could not find a holding argument", target_type, entity)
        return current

    def _targets_of(self, targeter: Target, target_type: TargetType, *, warn: bool) -> list[Target]:
        if isinstance(targeter, Effect):
            found = self.lookup(targeter.target_id) if targeter.target_id else None
            return [found] if found is not None else []
        if isinstance(targeter, Action):
            return [t for t in (self.lookup(i) for i in targeter.target_ids) if t is not None]
        if warn:
            self._warn("Could not find target", target_type, targeter)
        return []

    # =========================================================================
    # Strategies
    # =========================================================================

    def _matches(
        self,
        target_type: TargetType,
        candidate: Target,
        targeter: Target,
        spec: TargetSpec,
        *,
        warn: bool,
    ) -> bool:
        if target_type is TargetType.ENCOUNTER:
            return isinstance(candidate, Encounter)
        if target_type is TargetType.SIDE:
            return isinstance(candidate, Side)
        if target_type is TargetType.SELF:
            return candidate is targeter
        if target_type is TargetType.TARGET:
            return any(t is candidate for t in self._targets_of(targeter, target_type, warn=warn))
        if target_type in _HOLDER_ORDER:
            holder = self.holder_of(targeter, target_type, _HOLDER_ORDER[target_type], warn=warn)
            return holder is not None and holder is candidate
        if target_type is TargetType.ULTIMATE_HOLDER:
            holder = self.ultimate_holder_of(targeter, target_type, warn=warn)
            return holder is not None and holder is candidate
        if target_type is TargetType.CREATOR:
            creator = self.creator_of(targeter, target_type, warn=warn)
            return creator is not None and creator is candidate
        if target_type is TargetType.CODE:
            return self._matches_code(candidate, targeter, spec)

        if target_type in _KINDRED:
            if not isinstance(candidate, _KINDRED[target_type]):
                return False
            creator = self.creator_of(targeter, target_type, warn=warn)
            return creator is not None and self.creator_of(candidate, target_type, warn=False) is creator

        if target_type is TargetType.SAME_HOLDER_BOOSTERS:
            if not isinstance(candidate, Booster):
                return False
            argument = self._holding_argument(targeter, target_type, include_self=False, warn=warn)
            return argument is not None and _holder(candidate) is argument
        if target_type in _SAME_HOLDER:
            if not isinstance(candidate, _SAME_HOLDER[target_type]):
                return False
            if target_type is TargetType.SAME_HOLDER_EQUIPPED_ITEMS and not candidate.equipped:  # type: ignore[union-attr]
                return False
            holder = self.holder_of(targeter, target_type, warn=warn)
            return holder is not None and _holder(candidate) is holder

        if target_type is TargetType.ALL_DEVELOPERS:
            if not isinstance(candidate, Character):
                return False
            argument = self._holding_argument(targeter, target_type, include_self=True, warn=warn)
            return argument is not None and candidate.developing_id == argument.id

        if target_type in _ALL_OF_VARIANT:
            return isinstance(candidate, _ALL_OF_VARIANT[target_type])
        if target_type is TargetType.ALL_GLOBAL_BOOSTERS:
            return isinstance(candidate, Booster) and candidate.is_global
        if target_type is TargetType.ALL_ARGUMENT_BOOSTERS:
            return isinstance(candidate, Booster) and isinstance(candidate.holder, Argument)
        if target_type is TargetType.ALL_FRIENDLY_BOOSTERS:
            return (
                isinstance(candidate, Booster)
                and candidate.holder is not None
                and side_of(candidate.holder) == candidate.side
            )
        if target_type is TargetType.ALL_ADVERSE_BOOSTERS:
            return (
                isinstance(candidate, Booster)
                and candidate.holder is not None
                and side_of(candidate.holder) != candidate.side
            )
        if target_type is TargetType.ALL_EQUIPPED_ITEMS:
            return isinstance(candidate, Item) and candidate.equipped
        if target_type in _TRAIT_HOLDERS:
            return isinstance(candidate, Trait) and isinstance(
                candidate.holder, _TRAIT_HOLDERS[target_type]
            )
        raise InvalidTargetSpecError(
            f"Target type {target_type!r} has no strategy",
            target_type=str(target_type),
        )

    def _matches_code(self, candidate: Target, targeter: Target, spec: TargetSpec) -> bool:
        if not spec.code:
            raise InvalidTargetSpecError(
                "Target type 'code' needs a code expression",
                target_type=TargetType.CODE.value,
            )
        context = {
            "candidate": candidate,
            "targeter": targeter,
            "self": targeter,
            "encounter": self.encounter,
            "sides": self.sides,
        }
        return self.evaluator.evaluate_bool(spec.code, context)

    # =========================================================================
    # Candidate Pools
    # =========================================================================

    def universe(self) -> list[Target]:
        """Every side and every arena entity."""
        return [*(self.sides[i] for i in ALL_SIDES if i in self.sides), *self.arena]

    def _of_type(self, cls: type[Entity]) -> list[Target]:
        return [e for e in self.arena if isinstance(e, cls)]

    def _pool(self, target_type: TargetType, targeter: Target) -> list[Target]:
        """Superset of the candidates a strategy can select.

        Strategies anchored on the targeter's holder, creator or targets
        resolve that anchor here, once, so that a missing chain is reported
        a single time.
        """
        anchored: dict[TargetType, Callable[[], Any]] = {
            TargetType.TARGET: lambda: self._targets_of(targeter, target_type, warn=True),
            TargetType.HOLDER: lambda: self.holder_of(targeter, target_type, 1),
            TargetType.HOLDER2: lambda: self.holder_of(targeter, target_type, 2),
            TargetType.HOLDER3: lambda: self.holder_of(targeter, target_type, 3),
            TargetType.ULTIMATE_HOLDER: lambda: self.ultimate_holder_of(targeter, target_type),
            TargetType.CREATOR: lambda: self.creator_of(targeter, target_type),
        }
        if target_type is TargetType.ENCOUNTER:
            encounter = self.encounter
            return [encounter] if encounter is not None else []
        if target_type is TargetType.SIDE:
            return [self.sides[i] for i in ALL_SIDES if i in self.sides]
        if target_type is TargetType.SELF:
            return [targeter]
        if target_type in anchored:
            anchor = anchored[target_type]()
            if isinstance(anchor, list):
                return anchor
            return [anchor] if anchor is not None else []
        if target_type is TargetType.CODE:
            return self.universe()

        if target_type in _KINDRED:
            if self.creator_of(targeter, target_type) is None:
                return []
            return self._of_type(_KINDRED[target_type])
        if target_type is TargetType.SAME_HOLDER_BOOSTERS:
            argument = self._holding_argument(targeter, target_type, include_self=False, warn=True)
            return list(argument.boosters) if argument is not None else []
        if target_type in _SAME_HOLDER:
            holder = self.holder_of(targeter, target_type)
            return list(holder.held()) if holder is not None else []
        if target_type is TargetType.ALL_DEVELOPERS:
            if self._holding_argument(targeter, target_type, include_self=True, warn=True) is None:
                return []
            return self._of_type(Character)

        if target_type in _ALL_OF_VARIANT:
            return self._of_type(_ALL_OF_VARIANT[target_type])
        if target_type in (
            TargetType.ALL_GLOBAL_BOOSTERS,
            TargetType.ALL_ARGUMENT_BOOSTERS,
            TargetType.ALL_FRIENDLY_BOOSTERS,
            TargetType.ALL_ADVERSE_BOOSTERS,
        ):
            return self._of_type(Booster)
        if target_type is TargetType.ALL_EQUIPPED_ITEMS:
            return self._of_type(Item)
        if target_type in _TRAIT_HOLDERS:
            return self._of_type(Trait)
        return self.universe()


__all__ = [
    "Target",
    "ALL_SIDES",
    "side_of",
    "Targeting",
]
