"""Tests for existence conditions and cost payment."""

from __future__ import annotations

import pytest

from faith_encounter.core.exceptions import ExpressionError
from faith_encounter.engine.manager import EncounterManager
from faith_encounter.models.condition import ExistsCondition
from faith_encounter.models.cost import Cost
from faith_encounter.models.enums import SideIndex
from faith_encounter.models.kinds import PropertyBound, PropertyKind
from faith_encounter.models.property import Property


@pytest.fixture
def preacher(manager: EncounterManager):
    return manager.get_character_by_id("preacher-1")


@pytest.fixture
def skeptic(manager: EncounterManager):
    return manager.get_character_by_id("skeptic-1")


class TestConditionChecker:
    """Tests for counting entities in scope."""

    def test_no_relation_counts_everything(self, manager: EncounterManager, preacher) -> None:
        """Test a condition without relation looks at every entity."""
        checker = manager.conditions

        assert checker.count(ExistsCondition(kind_id="free-will"), preacher) == 2
        assert not checker.check(ExistsCondition(kind_id="free-will"), preacher)
        assert checker.check(ExistsCondition(kind_id="free-will", min=2), preacher)

    def test_same(self, manager: EncounterManager, preacher) -> None:
        """Test the same relation only looks at the subject."""
        checker = manager.conditions

        assert checker.check(ExistsCondition(rel="same", classes={"cleric"}), preacher)
        assert not checker.check(ExistsCondition(rel="same", excluded_classes={"cleric"}), preacher)

    def test_holder(self, manager: EncounterManager) -> None:
        """Test the holder relation."""
        booster = manager.arena.get_by_id("rhetoric-1")

        assert manager.conditions.check(ExistsCondition(rel="holder", kind_id="free-will"), booster)
        assert not manager.conditions.check(ExistsCondition(rel="holder", kind_id="preacher"), booster)

    def test_creator_and_target(self, manager: EncounterManager) -> None:
        """Test the creator and target relations of an action."""
        sermon = manager.order("preacher-1", "sermon", targets=["skeptic-1"])
        checker = manager.conditions

        assert checker.check(ExistsCondition(rel="creator", entity_id="preacher-1"), sermon)
        assert checker.check(ExistsCondition(rel="target", kind_id="skeptic"), sermon)
        assert not checker.check(ExistsCondition(rel="target", kind_id="free-will"), sermon)

    def test_names(self, manager: EncounterManager, preacher) -> None:
        """Test entity and kind name filters."""
        checker = manager.conditions

        assert checker.count(ExistsCondition(entity_name="Doubt"), preacher) == 1
        assert checker.count(ExistsCondition(kind_name="Free Will"), preacher) == 2
        assert checker.count(ExistsCondition(classes={"cleric"}), preacher) == 1

    def test_entity_code(self, manager: EncounterManager, preacher) -> None:
        """Test entity code replaces the filtered count."""
        condition = ExistsCondition(rel="same", entity_code="len(entities) + 2", number=3)

        assert manager.conditions.count(condition, preacher) == 3
        assert manager.conditions.check(condition, preacher)

    def test_value_code_sees_count(self, manager: EncounterManager, preacher) -> None:
        """Test value code decides the outcome from the count."""
        checker = manager.conditions

        assert checker.check(ExistsCondition(kind_id="rhetoric", value_code="count == 3"), preacher)
        assert not checker.check(ExistsCondition(kind_id="rhetoric", value_code="count > 3"), preacher)

    def test_check_all_returns_first_failure(self, manager: EncounterManager, preacher) -> None:
        """Test conditions are checked in order."""
        failing = ExistsCondition(id="needs-two-clerics", classes={"cleric"}, number=2)
        conditions = [ExistsCondition(rel="same"), failing, ExistsCondition(kind_id="nothing")]

        assert manager.conditions.check_all(conditions, preacher) is failing
        assert manager.conditions.check_all(conditions[:1], preacher) is None


class TestPayers:
    """Tests for who pays a cost."""

    def test_agent(self, manager: EncounterManager, preacher) -> None:
        """Test costs are paid by the agent by default."""
        outcome = manager.costs.pay([Cost(property="faith", value=2)], agent=preacher)

        assert outcome
        assert preacher.props["faith"].val == 8

    def test_side(self, manager: EncounterManager, preacher) -> None:
        """Test costs paid from a side-wide property."""
        side = manager.sides[SideIndex.ONE]
        side.props["morale"] = Property(PropertyKind(id="morale", val=PropertyBound(base=5)), holder_id=side.id)
        side.props["morale"].recompute()

        outcome = manager.costs.pay([Cost(property="morale", value=2, target="side")], agent=preacher)

        assert outcome
        assert side.props["morale"].val == 3

    def test_object(self, manager: EncounterManager, preacher) -> None:
        """Test costs paid by the entity they belong to."""
        argument = manager.arena.get_by_id("free-will-1")

        manager.costs.pay([Cost(property="strength", value=1, target="object")], agent=preacher, obj=argument)

        assert argument.props["strength"].val == 4

    def test_expression(self, manager: EncounterManager, preacher, skeptic) -> None:
        """Test an expression selecting the payer by id."""
        manager.costs.pay([Cost(property="faith", value=1, target="'skeptic-1'")], agent=preacher)

        assert skeptic.props["faith"].val == 5
        assert preacher.props["faith"].val == 10

    def test_expression_without_payer(self, manager: EncounterManager, preacher) -> None:
        """Test an expression selecting nothing refuses the payment."""
        outcome = manager.costs.pay([Cost(property="faith", value=1, target="agent.holder")], agent=preacher)

        assert not outcome
        assert outcome.reason == "Cost has no payer"

    def test_expression_with_bad_result(self, manager: EncounterManager, preacher) -> None:
        """Test an expression must select entities, sides or ids."""
        with pytest.raises(ExpressionError):
            manager.costs.pay([Cost(property="faith", value=1, target="42")], agent=preacher)

    def test_missing_property(self, manager: EncounterManager, preacher) -> None:
        """Test a payer without the property refuses the payment."""
        outcome = manager.costs.pay([Cost(property="strength", value=1)], agent=preacher)

        assert not outcome
        assert outcome.reason == "preacher-1 has no property 'strength'"


class TestPayment:
    """Tests for paying lists of costs."""

    def test_boolean_value_sets(self, manager: EncounterManager, preacher) -> None:
        """Test a boolean cost sets the value to one or zero."""
        manager.costs.pay([Cost(property="faith", value=True)], agent=preacher)

        assert preacher.props["faith"].val == 1

    def test_expression_value(self, manager: EncounterManager, preacher) -> None:
        """Test an expression computes the new value."""
        manager.costs.pay([Cost(property="faith", value="value / 2")], agent=preacher)

        assert preacher.props["faith"].val == 5

    def test_costs_accumulate(self, manager: EncounterManager, preacher) -> None:
        """Test two costs on one property deduct in turn."""
        outcome = manager.costs.pay(
            [Cost(property="faith", value=2), Cost(property="faith", value=3)],
            agent=preacher,
        )

        assert preacher.props["faith"].val == 5
        assert outcome.changed == [preacher.props["faith"]]

    def test_all_or_nothing(self, manager: EncounterManager, preacher, skeptic) -> None:
        """Test a failing cost leaves every property untouched."""
        costs = [
            Cost(property="faith", value=2),
            Cost(property="faith", value=10, target="'skeptic-1'"),
        ]

        outcome = manager.costs.pay(costs, agent=preacher)

        assert not outcome
        assert outcome.failed_cost is costs[1]
        assert outcome.reason == "Condition (default) failed for skeptic-1"
        assert preacher.props["faith"].val == 10
        assert preacher.props["faith"].temp is None
        assert skeptic.props["faith"].val == 6

    def test_custom_condition(self, manager: EncounterManager, preacher) -> None:
        """Test cost conditions see the putative value."""
        conds = [ExistsCondition(id="keep-eight", rel="same", value_code="value >= 8")]

        refused = manager.costs.pay([Cost(property="faith", value=3, conds=conds)], agent=preacher)
        paid = manager.costs.pay([Cost(property="faith", value=2, conds=conds)], agent=preacher)

        assert refused.reason == "Condition keep-eight failed for preacher-1"
        assert paid
        assert preacher.props["faith"].val == 8

    def test_cost_without_property_is_skipped(self, manager: EncounterManager, preacher) -> None:
        """Test a cost naming no property is a warning."""
        outcome = manager.costs.pay([Cost(value=1)], agent=preacher)

        assert outcome
        assert "Cost names no property" in [w.message for w in manager.diagnostics.warnings]

    def test_dependents_are_recomputed(self, manager: EncounterManager, preacher) -> None:
        """Test paying from a source property updates its dependents."""
        outcome = manager.costs.pay([Cost(property="charisma", value=1)], agent=preacher)

        assert preacher.props["influence"].val == 7
        assert outcome.changed == [preacher.props["charisma"], preacher.props["influence"]]
