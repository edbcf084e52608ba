"""Existence conditions attached to actions and costs.

An existence condition counts the entities in scope that survive a series
of narrowing filters and compares the count against an exact number, a
range, or a code expression.
"""

from __future__ import annotations

from typing import Self

from pydantic import Field, ValidationInfo, field_validator, model_validator

from faith_encounter.core.exceptions import ValidationError
from faith_encounter.models.enums import Relation
from faith_encounter.models.rule import Rule


NARROWING_FIELDS = (
    "rel",
    "kind_id",
    "entity_id",
    "kind_name",
    "entity_name",
    "classes",
    "excluded_classes",
    "entity_code",
)
"""Fields that select which entities a condition counts."""


class ExistsCondition(Rule):
    """Quantified check over the entities in scope.

    The ``classes`` of the rule double as the required classes of counted
    entities. Exactly one criterion decides the outcome, with precedence
    value_code, then number, then the min/max range. With no criterion at
    all the condition requires exactly one match.

    Attributes:
        rel: Starting scope relative to the checked entity.
        kind_id: Required kind id of counted entities.
        entity_id: Required id of counted entities.
        kind_name: Required kind name of counted entities.
        entity_name: Required name of counted entities.
        excluded_classes: Classes counted entities must not have.
        number: Exact count required.
        min: Smallest count allowed.
        max: Largest count allowed.
        entity_code: Expression producing the count instead of the filters.
        value_code: Expression producing the outcome from the count.
        template: Id of a condition template this rule starts from.
    """

    rel: Relation | None = None
    kind_id: str | None = None
    entity_id: str | None = None
    kind_name: str | None = None
    entity_name: str | None = None
    excluded_classes: set[str] | None = None
    number: int | None = None
    min: int | None = None
    max: int | None = None
    entity_code: str | None = None
    value_code: str | None = None
    template: str | None = Field(default=None, exclude=True)

    @field_validator("excluded_classes", mode="before")
    @classmethod
    def empty_classes_to_none(cls, value: object) -> object:
        """Treat an empty class list as no filter at all."""
        if value is not None and len(value) == 0:  # type: ignore[arg-type]
            return None
        return value

    @model_validator(mode="after")
    def validate_criteria(self, info: ValidationInfo) -> Self:
        """Ensure the condition narrows its scope and has one governing criterion.

        Partial rules parsed in alter mode are exempt; they are checked
        after merging into their target.

        Returns:
            Self if validation passes.

        Raises:
            ValidationError: If no narrowing parameter is given, or both an
                exact number and a range are given.
        """
        if info.context and info.context.get("partial"):
            return self
        self.check_criteria()
        return self

    def check_criteria(self) -> None:
        """Validate the narrowing and governing parameters.

        Raises:
            ValidationError: If the condition is under- or over-specified.
        """
        if not any(getattr(self, name) for name in NARROWING_FIELDS):
            raise ValidationError(
                "existsCondition needs at least one narrowing parameter",
                field_name="rel",
                details={"condition": self.label()},
            )
        if self.value_code is None and self.number is not None and (
            self.min is not None or self.max is not None
        ):
            raise ValidationError(
                "existsCondition cannot combine number with min/max",
                field_name="number",
                invalid_value=self.number,
                details={"condition": self.label()},
            )

    @property
    def effective_number(self) -> int | None:
        """Exact count governing the outcome, if the count is compared exactly."""
        if self.value_code is not None:
            return None
        if self.number is not None:
            return self.number
        if self.min is None and self.max is None:
            return 1
        return None

    def passes(self, count: int) -> bool:
        """Compare a count against the exact number or the range.

        Args:
            count: Number of entities that survived narrowing.

        Returns:
            True if the count satisfies the condition.
        """
        exact = self.effective_number
        if exact is not None:
            return count == exact
        if self.min is not None and count < self.min:
            return False
        if self.max is not None and count > self.max:
            return False
        return True


def default_cost_condition() -> ExistsCondition:
    """Condition every cost carries unless it declares its own.

    Returns:
        A condition requiring the paid property to stay non-negative.
    """
    return ExistsCondition(rel=Relation.SAME, value_code="value >= 0")


__all__ = [
    "NARROWING_FIELDS",
    "ExistsCondition",
    "default_cost_condition",
]
