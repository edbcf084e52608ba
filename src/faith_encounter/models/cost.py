"""Cost rules attached to actions, arguments, boosters and traits."""

from __future__ import annotations

from typing import ClassVar

from pydantic import Field

from faith_encounter.models.condition import ExistsCondition, default_cost_condition
from faith_encounter.models.enums import CostTarget
from faith_encounter.models.rule import Rule


class Cost(Rule):
    """A price paid from a property when something is used.

    Attributes:
        property_id: Id of the property the cost is paid from.
        value: A bool sets the final value, a number is deducted, a string
            is an expression computing the new value.
        target: Who pays: "agent", "side", "object", or an expression.
        conds: Conditions checked against the putative post-cost value.
        template: Id of a cost template this rule starts from.
    """

    nested_rules: ClassVar[tuple[str, ...]] = ("conds",)

    property_id: str | None = Field(default=None, alias="property")
    value: bool | int | float | str | None = None
    target: str = Field(default=CostTarget.AGENT.value)
    conds: list[ExistsCondition] = Field(default_factory=lambda: [default_cost_condition()])
    template: str | None = Field(default=None, exclude=True)

    @property
    def named_target(self) -> CostTarget | None:
        """The payer as a named target, or None when target is an expression."""
        try:
            return CostTarget(self.target)
        except ValueError:
            return None


__all__ = ["Cost"]
