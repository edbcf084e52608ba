"""Visibility rule models.

Visibility rules decide what one side may learn about the other side's
entities and whether that knowledge refreshes every turn. Each entity
category has a fixed schema of boolean flags; an unset flag (None) defers
to a broader rule, down to the category default.
"""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from faith_encounter.models.rule import Rule


# =============================================================================
# Property Visibility
# =============================================================================


class PropertyVisibility(Rule):
    """Per-property visibility override.

    Attributes:
        vis: Whether the property value is revealed.
        always_hide: Hide the property regardless of any other rule.
        refresh: Whether a revealed value keeps updating.
    """

    vis: bool | None = None
    always_hide: bool | None = None
    refresh: bool | None = None


# =============================================================================
# Category Rules
# =============================================================================


class VisibilityRule(Rule):
    """Base class of per-category visibility rules."""

    category: ClassVar[str] = ""
    """Name of the category the rule governs."""

    has_properties: ClassVar[bool] = False
    """Whether the schema carries a per-property override list."""

    def flags(self) -> dict[str, bool | None]:
        """Flag values of the rule, excluding identity and the property list."""
        return {
            name: getattr(self, name)
            for name in type(self).model_fields
            if name not in ("id", "classes", "prop_list")
        }


class ArgumentVisibility(VisibilityRule):
    """What is revealed about an argument."""

    category: ClassVar[str] = "argument"
    has_properties: ClassVar[bool] = True
    nested_rules: ClassVar[tuple[str, ...]] = ("prop_list",)

    properties: bool | None = None
    properties_refresh: bool | None = None
    traits: bool | None = None
    traits_refresh: bool | None = None
    kind: bool | None = None
    kind_refresh: bool | None = None
    prop_list: list[PropertyVisibility] = Field(default_factory=list)


class BoosterVisibility(VisibilityRule):
    """What is revealed about a booster."""

    category: ClassVar[str] = "booster"
    has_properties: ClassVar[bool] = True
    nested_rules: ClassVar[tuple[str, ...]] = ("prop_list",)

    properties: bool | None = None
    properties_refresh: bool | None = None
    kind: bool | None = None
    kind_refresh: bool | None = None
    prop_list: list[PropertyVisibility] = Field(default_factory=list)


class CharacterVisibility(VisibilityRule):
    """What is revealed about a character and the actions it takes."""

    category: ClassVar[str] = "character"
    has_properties: ClassVar[bool] = True
    nested_rules: ClassVar[tuple[str, ...]] = ("prop_list",)

    action: bool | None = None
    action_to_my_side: bool | None = None
    action_buildup: bool | None = None
    action_buildup_refresh: bool | None = None
    properties: bool | None = None
    properties_refresh: bool | None = None
    identity: bool | None = None
    identity_refresh: bool | None = None
    kind: bool | None = None
    kind_refresh: bool | None = None
    traits: bool | None = None
    traits_refresh: bool | None = None
    secrets: bool | None = None
    secrets_refresh: bool | None = None
    prop_list: list[PropertyVisibility] = Field(default_factory=list)


class EncounterVisibility(VisibilityRule):
    """What is revealed about the encounter itself."""

    category: ClassVar[str] = "encounter"
    has_properties: ClassVar[bool] = True
    nested_rules: ClassVar[tuple[str, ...]] = ("prop_list",)

    properties: bool | None = None
    properties_refresh: bool | None = None
    traits: bool | None = None
    traits_refresh: bool | None = None
    secrets: bool | None = None
    secrets_refresh: bool | None = None
    prop_list: list[PropertyVisibility] = Field(default_factory=list)


class TraitVisibility(VisibilityRule):
    """Whether a trait is revealed."""

    category: ClassVar[str] = "trait"

    trait: bool | None = None
    trait_refresh: bool | None = None


class ActionVisibility(VisibilityRule):
    """What is revealed when a character performs a specific action.

    Only exists nested inside an action kind; there is no top-level
    action category.
    """

    category: ClassVar[str] = "action"

    action: bool | None = None
    action_to_my_side: bool | None = None
    action_buildup: bool | None = None
    action_buildup_refresh: bool | None = None


VISIBILITY_RULES: dict[str, type[VisibilityRule]] = {
    "action": ActionVisibility,
    "argument": ArgumentVisibility,
    "booster": BoosterVisibility,
    "character": CharacterVisibility,
    "encounter": EncounterVisibility,
    "trait": TraitVisibility,
}
"""Visibility schema per category name."""

DEFAULT_FLAGS: dict[str, dict[str, bool]] = {
    "argument": {
        "properties": False,
        "properties_refresh": False,
        "traits": False,
        "traits_refresh": False,
        "kind": True,
        "kind_refresh": False,
    },
    "booster": {
        "properties": False,
        "properties_refresh": False,
        "kind": False,
        "kind_refresh": False,
    },
    "character": {
        "action": True,
        "action_to_my_side": True,
        "action_buildup": False,
        "action_buildup_refresh": True,
        "properties": False,
        "properties_refresh": False,
        "identity": True,
        "identity_refresh": False,
        "kind": True,
        "kind_refresh": False,
        "traits": False,
        "traits_refresh": False,
        "secrets": False,
        "secrets_refresh": False,
    },
    "encounter": {
        "properties": False,
        "properties_refresh": False,
        "traits": True,
        "traits_refresh": False,
        "secrets": False,
        "secrets_refresh": False,
    },
    "trait": {
        "trait": False,
        "trait_refresh": False,
    },
}
"""Baked-in flags of the default rule of each top-level category."""


def default_rule(category: str) -> VisibilityRule:
    """Build a fresh default rule for a top-level category.

    Args:
        category: One of the top-level visibility categories.

    Returns:
        A rule with no id and no classes carrying every default flag.
    """
    return VISIBILITY_RULES[category](**DEFAULT_FLAGS[category])


# =============================================================================
# Top-Level Table
# =============================================================================


class VisibilityTable(BaseModel):
    """Rule-set-wide visibility rules, one ordered list per category.

    Each category list always holds a default rule; property rules have no
    default.
    """

    model_config = ConfigDict(validate_assignment=True)

    argument: list[ArgumentVisibility] = Field(
        default_factory=lambda: [default_rule("argument")]
    )
    booster: list[BoosterVisibility] = Field(
        default_factory=lambda: [default_rule("booster")]
    )
    character: list[CharacterVisibility] = Field(
        default_factory=lambda: [default_rule("character")]
    )
    encounter: list[EncounterVisibility] = Field(
        default_factory=lambda: [default_rule("encounter")]
    )
    trait: list[TraitVisibility] = Field(default_factory=lambda: [default_rule("trait")])
    property_rules: list[PropertyVisibility] = Field(default_factory=list)

    def rules_for(self, category: str) -> list[VisibilityRule]:
        """Return the live rule list of a category.

        Args:
            category: Category name.

        Returns:
            The list stored on the table, mutated in place by merges.
        """
        return getattr(self, category)


__all__ = [
    "PropertyVisibility",
    "VisibilityRule",
    "ArgumentVisibility",
    "BoosterVisibility",
    "CharacterVisibility",
    "EncounterVisibility",
    "TraitVisibility",
    "ActionVisibility",
    "VISIBILITY_RULES",
    "DEFAULT_FLAGS",
    "default_rule",
    "VisibilityTable",
]
