"""Base model shared by every mergeable rule.

Entity kinds, property templates, costs, conditions and visibility rules
are all rules: they carry an optional id and a set of classes, and the
merge engine matches and merges them the same way.
"""

from __future__ import annotations

from typing import ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from pydantic.alias_generators import to_camel

from faith_encounter.models.enums import Mode


RULE_CONFIG = ConfigDict(
    validate_assignment=True,
    extra="forbid",
    populate_by_name=True,
    alias_generator=to_camel,
    use_enum_values=True,
)
"""Model configuration shared by all rule models; attributes use camelCase aliases."""


class Rule(BaseModel):
    """A single rule parsed from markup.

    Subclasses declare which of their fields hold nested rules so that an
    alter merge can recurse into them instead of overwriting them.

    Attributes:
        id: Identity of the rule, or None for class-matched and default rules.
        classes: Classification tags, also used for identity matching.
    """

    model_config = RULE_CONFIG

    nested_rules: ClassVar[tuple[str, ...]] = ()
    """Fields holding lists of rules, merged by identity."""

    nested_single: ClassVar[tuple[str, ...]] = ()
    """Fields holding at most one rule, merged in place."""

    id: str | None = Field(default=None, description="Rule identity")
    classes: set[str] = Field(
        default_factory=set,
        alias="class",
        description="Classification tags",
    )

    _mode: Mode | None = PrivateAttr(default=None)

    @property
    def mode(self) -> Mode | None:
        """Merge mode the rule was parsed with; None once merged."""
        return self._mode

    def with_mode(self, mode: Mode | str | None) -> Self:
        """Attach the merge mode the rule was parsed with.

        Args:
            mode: The resolved mode, or None to clear it.

        Returns:
            The rule itself, for chaining.
        """
        self._mode = Mode(mode) if mode is not None else None
        return self

    @property
    def explicit_fields(self) -> set[str]:
        """Fields given explicitly when the rule was built or later assigned."""
        return set(self.model_fields_set)

    def label(self) -> str:
        """Short human-readable identity used in logs and error paths."""
        if self.id:
            return self.id
        if self.classes:
            return "class=" + ",".join(sorted(self.classes))
        return "(default)"


__all__ = [
    "RULE_CONFIG",
    "Rule",
]
