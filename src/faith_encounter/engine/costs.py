"""Existence-condition checks and all-or-nothing cost payment.

Conditions count the entities in scope that survive a chain of narrowing
filters. Costs are paid in two phases: every cost first stages its
putative new value on the paying property, every condition is checked
against the staged values, and only when all of them pass are the values
committed. A single failure discards every staged value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from faith_encounter.core.diagnostics import DiagnosticLog
from faith_encounter.core.exceptions import ExpressionError
from faith_encounter.core.logging import get_logger
from faith_encounter.engine.expression import ExpressionEvaluator
from faith_encounter.engine.properties import PropertyGraph
from faith_encounter.engine.targeting import Target, Targeting, side_of
from faith_encounter.models.condition import ExistsCondition
from faith_encounter.models.cost import Cost
from faith_encounter.models.enums import CostTarget, Relation, TargetType
from faith_encounter.models.entity import Entity
from faith_encounter.models.property import Property
from faith_encounter.models.side import Side


logger = get_logger(__name__)


# =============================================================================
# Conditions
# =============================================================================


def _kind_name(candidate: Target) -> str | None:
    kind = getattr(candidate, "kind", None)
    return None if kind is None else kind.name


class ConditionChecker:
    """Evaluates existence conditions from the point of view of an entity.

    Attributes:
        targeting: Resolves holders, creators and targets of the subject.
        evaluator: Runs entity_code and value_code expressions.
    """

    def __init__(self, targeting: Targeting, evaluator: ExpressionEvaluator | None = None) -> None:
        self.targeting = targeting
        self.evaluator = evaluator or targeting.evaluator

    def scope(self, condition: ExistsCondition, subject: Target) -> list[Target]:
        """Starting set of a condition, before any narrowing.

        Args:
            condition: The condition being checked.
            subject: Entity or side the condition is checked for.

        Returns:
            Every side and entity when the condition has no relation,
            otherwise the subject itself, its targets, its holder or its
            creator.
        """
        if condition.rel is None:
            return self.targeting.universe()
        if condition.rel == Relation.SAME:
            return [subject]
        if condition.rel == Relation.TARGET:
            return self.targeting.get_targets(subject, TargetType.TARGET.value)
        if condition.rel == Relation.HOLDER:
            holder = self.targeting.holder_of(subject, TargetType.HOLDER)
            return [holder] if holder is not None else []
        creator = self.targeting.creator_of(subject, TargetType.CREATOR)
        return [creator] if creator is not None else []

    def matches(self, condition: ExistsCondition, subject: Target) -> list[Target]:
        """Entities in scope that survive every narrowing filter."""
        found = self.scope(condition, subject)
        if condition.kind_id:
            found = [c for c in found if c.kind_id == condition.kind_id]
        if condition.entity_id:
            found = [c for c in found if c.id == condition.entity_id]
        if condition.kind_name:
            found = [c for c in found if _kind_name(c) == condition.kind_name]
        if condition.entity_name:
            found = [c for c in found if c.name == condition.entity_name]
        if condition.classes:
            found = [c for c in found if condition.classes <= c.classes]
        if condition.excluded_classes:
            found = [c for c in found if not condition.excluded_classes & c.classes]
        return found

    def _context(self, subject: Target, matches: Sequence[Target], extra: Mapping[str, Any] | None) -> dict[str, Any]:
        context: dict[str, Any] = {
            "subject": subject,
            "self": subject,
            "entities": list(matches),
            "encounter": self.targeting.encounter,
            "sides": self.targeting.sides,
        }
        if extra:
            context.update(extra)
        return context

    def count(
        self,
        condition: ExistsCondition,
        subject: Target,
        extra: Mapping[str, Any] | None = None,
    ) -> int:
        """Number of entities the condition counts.

        entity_code, when present, replaces the filtered count with the
        value of the expression.

        Raises:
            ExpressionError: If entity_code does not produce a number.
        """
        matches = self.matches(condition, subject)
        if condition.entity_code is None:
            return len(matches)
        result = self.evaluator.evaluate_number(
            condition.entity_code, self._context(subject, matches, extra)
        )
        return int(result)

    def check(
        self,
        condition: ExistsCondition,
        subject: Target,
        extra: Mapping[str, Any] | None = None,
    ) -> bool:
        """Decide a condition for a subject.

        Args:
            condition: The condition to check.
            subject: Entity or side the condition is relative to.
            extra: Additional names for the condition's expressions, such as
                the putative value of a property being paid.

        Returns:
            The value_code verdict when the condition has one, otherwise the
            count compared against the exact number or the range.
        """
        matches = self.matches(condition, subject)
        count = self.count(condition, subject, extra)
        if condition.value_code is not None:
            context = self._context(subject, matches, extra)
            context["count"] = count
            passed = self.evaluator.evaluate_bool(condition.value_code, context)
        else:
            passed = condition.passes(count)
        logger.debug(
            "Condition checked",
            condition=condition.label(),
            subject=subject.id,
            count=count,
            passed=passed,
        )
        return passed

    def check_all(
        self,
        conditions: Iterable[ExistsCondition],
        subject: Target,
        extra: Mapping[str, Any] | None = None,
    ) -> ExistsCondition | None:
        """Check conditions in order.

        Returns:
            The first failing condition, or None when all pass.
        """
        for condition in conditions:
            if not self.check(condition, subject, extra):
                return condition
        return None


# =============================================================================
# Costs
# =============================================================================


@dataclass
class CostOutcome:
    """Result of paying a list of costs.

    Attributes:
        paid: Whether every cost was paid.
        changed: Properties recomputed by the payment, in propagation order.
        failed_cost: The cost that could not be paid.
        reason: Why the payment was refused.
    """

    paid: bool
    changed: list[Property] = field(default_factory=list)
    failed_cost: Cost | None = None
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.paid


@dataclass
class _Staged:
    cost: Cost
    payer: Target
    prop: Property


class CostResolver:
    """Pays costs from agent, side, object or expression-selected payers.

    Attributes:
        targeting: Looks up payers by id and exposes the sides.
        checker: Checks each cost's conditions against staged values.
        evaluator: Runs expression values and expression payers.
        graph: Propagates committed values to dependent properties.
        diagnostics: Receives warnings about malformed costs.
    """

    def __init__(
        self,
        targeting: Targeting,
        *,
        checker: ConditionChecker | None = None,
        graph: PropertyGraph | None = None,
        diagnostics: DiagnosticLog | None = None,
    ) -> None:
        self.targeting = targeting
        self.checker = checker or ConditionChecker(targeting)
        self.evaluator = self.checker.evaluator
        self.graph = graph
        self.diagnostics = diagnostics if diagnostics is not None else targeting.diagnostics

    def _context(self, agent: Entity, obj: Target | None) -> dict[str, Any]:
        side = side_of(agent)
        return {
            "agent": agent,
            "object": obj,
            "side": self.targeting.sides.get(side) if side is not None else None,
            "encounter": self.targeting.encounter,
            "sides": self.targeting.sides,
        }

    def payers(self, cost: Cost, agent: Entity, obj: Target | None = None) -> list[Target]:
        """Entities or sides a cost is paid from.

        Args:
            cost: The cost being paid.
            agent: The character paying for an action.
            obj: The action, argument or booster the cost belongs to.

        Returns:
            The payers in evaluation order.

        Raises:
            ExpressionError: If an expression target selects something that
                is neither an entity, a side, nor the id of one.
        """
        target = cost.named_target
        if target is CostTarget.AGENT:
            return [agent]
        if target is CostTarget.SIDE:
            side = side_of(agent)
            found = self.targeting.sides.get(side) if side is not None else None
            return [found] if found is not None else []
        if target is CostTarget.OBJECT:
            return [obj] if obj is not None else []

        result = self.evaluator.evaluate(cost.target, self._context(agent, obj))
        if result is None:
            return []
        items = result if isinstance(result, (list, tuple)) else [result]
        payers: list[Target] = []
        for item in items:
            if isinstance(item, str):
                item = self.targeting.lookup(item)
            if not isinstance(item, (Entity, Side)):
                raise ExpressionError(
                    "Cost target must select entities, sides or their ids",
                    expression=cost.target,
                )
            payers.append(item)
        return payers

    def staged_value(self, cost: Cost, prop: Property, context: Mapping[str, Any]) -> float:
        """Putative value of a property once a cost is paid.

        Costs on the same property accumulate: each one starts from the
        value the previous one staged.
        """
        current = prop.temp if prop.temp is not None else (prop.val or 0.0)
        value = cost.value
        if value is None:
            return current
        if isinstance(value, bool):
            return 1.0 if value else 0.0
        if isinstance(value, (int, float)):
            return current - value
        names = {**context, "value": current, "val": current, "min": prop.min, "max": prop.max, "prop": prop}
        return self.evaluator.evaluate_number(value, names)

    def pay(self, costs: Iterable[Cost], *, agent: Entity, obj: Target | None = None) -> CostOutcome:
        """Pay every cost, or none of them.

        Args:
            costs: Costs to pay, in order.
            agent: The character paying.
            obj: The entity the costs belong to.

        Returns:
            A CostOutcome; when paid, ``changed`` lists every property the
            payment recomputed.
        """
        context = self._context(agent, obj)
        staged: list[_Staged] = []
        try:
            for cost in costs:
                if cost.property_id is None:
                    self.diagnostics.warn("Cost names no property", cost=cost.label(), agent=agent.id)
                    continue
                payers = self.payers(cost, agent, obj)
                if not payers:
                    return self._refuse(staged, cost, "Cost has no payer")
                for payer in payers:
                    prop = payer.props.get(cost.property_id)
                    if prop is None:
                        return self._refuse(
                            staged, cost, f"{payer.id} has no property {cost.property_id!r}"
                        )
                    prop.stage(self.staged_value(cost, prop, context))
                    staged.append(_Staged(cost, payer, prop))

            for entry in staged:
                values = {
                    **context,
                    "value": entry.prop.temp,
                    "min": entry.prop.temp_min,
                    "max": entry.prop.temp_max,
                    "prop": entry.prop,
                }
                failed = self.checker.check_all(entry.cost.conds, entry.payer, values)
                if failed is not None:
                    return self._refuse(
                        staged, entry.cost, f"Condition {failed.label()} failed for {entry.payer.id}"
                    )
        except Exception:
            self._discard(staged)
            raise

        return CostOutcome(paid=True, changed=self._commit(staged))

    def _commit(self, staged: list[_Staged]) -> list[Property]:
        seen: dict[int, Property] = {}
        for entry in staged:
            seen.setdefault(id(entry.prop), entry.prop)
        changed: dict[int, Property] = {}
        for prop in seen.values():
            prop.commit()
            recomputed = self.graph.propagate(prop) if self.graph is not None else [prop]
            for node in recomputed:
                changed.setdefault(id(node), node)
        logger.debug("Costs paid", properties=[p.label for p in seen.values()])
        return list(changed.values())

    @staticmethod
    def _discard(staged: list[_Staged]) -> None:
        for entry in staged:
            entry.prop.discard()

    def _refuse(self, staged: list[_Staged], cost: Cost, reason: str) -> CostOutcome:
        self._discard(staged)
        logger.info("Cost refused", cost=cost.label(), reason=reason)
        return CostOutcome(paid=False, failed_cost=cost, reason=reason)


__all__ = [
    "ConditionChecker",
    "CostOutcome",
    "CostResolver",
]
