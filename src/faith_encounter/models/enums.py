"""Enumeration types for the Faith encounter engine.

This module defines the closed vocabularies of the engine: rule merge
modes, entity variants, sides, target strategies and their filters.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class Mode(StrEnum):
    """How an incoming rule is merged with an existing twin."""

    REPLACE = "replace"
    ALTER = "alter"
    DELETE = "delete"


class EntityVariant(StrEnum):
    """Closed set of game object variants.

    Every EntityKind and Entity subclass declares exactly one variant, and
    engine code dispatches on it instead of on class names.
    """

    ACTION = "action"
    ARGUMENT = "argument"
    BOOSTER = "booster"
    CHARACTER = "character"
    EFFECT = "effect"
    ENCOUNTER = "encounter"
    ITEM = "item"
    TRAIT = "trait"


class SideIndex(IntEnum):
    """The three parties of an encounter."""

    NEUTRAL = 0
    ONE = 1
    TWO = 2

    @property
    def opponents(self) -> tuple[SideIndex, ...]:
        """Sides opposing this one.

        Returns:
            The other competing side, or both competing sides for neutral.
        """
        if self is SideIndex.ONE:
            return (SideIndex.TWO,)
        if self is SideIndex.TWO:
            return (SideIndex.ONE,)
        return (SideIndex.ONE, SideIndex.TWO)


class PropertyCategory(StrEnum):
    """The three computed values of a property."""

    VAL = "val"
    MIN = "min"
    MAX = "max"


class TraitScope(StrEnum):
    """What kind of entity a trait attaches to."""

    ARGUMENT = "argument"
    CHARACTER = "character"
    ENCOUNTER = "encounter"
    ITEM = "item"


class EffectOperation(StrEnum):
    """How an effect changes its target property."""

    ADD = "add"
    MULT = "mult"
    SET = "set"


class CostTarget(StrEnum):
    """Named payers of a cost. Any other target string is a code expression."""

    AGENT = "agent"
    SIDE = "side"
    OBJECT = "object"


class Relation(StrEnum):
    """Starting scope of an existence condition, relative to the checked entity."""

    SAME = "same"
    TARGET = "target"
    HOLDER = "holder"
    CREATOR = "creator"


class SideFilter(StrEnum):
    """Side restriction applied on top of a target strategy."""

    ALL = "all"
    FRIENDLY = "friendly"
    OPPOSING = "opposing"
    NEUTRAL = "neutral"
    SIDE1 = "side1"
    SIDE2 = "side2"


class TargetType(StrEnum):
    """Target resolution strategies."""

    # Single entities
    ENCOUNTER = "encounter"
    SIDE = "side"
    SELF = "self"
    TARGET = "target"
    HOLDER = "holder"
    HOLDER2 = "holder2"
    HOLDER3 = "holder3"
    ULTIMATE_HOLDER = "ultimateHolder"
    CREATOR = "creator"
    CODE = "code"

    # Entities sharing the targeter's creator
    KINDRED_ACTIONS = "kindredActions"
    KINDRED_ARGUMENTS = "kindredArguments"
    KINDRED_BOOSTERS = "kindredBoosters"
    KINDRED_CHARACTERS = "kindredCharacters"
    KINDRED_ITEMS = "kindredItems"
    KINDRED_TRAITS = "kindredTraits"

    # Entities sharing the targeter's immediate holder
    SAME_HOLDER_BOOSTERS = "sameHolderBoosters"
    SAME_HOLDER_EFFECTS = "sameHolderEffects"
    SAME_HOLDER_ITEMS = "sameHolderItems"
    SAME_HOLDER_EQUIPPED_ITEMS = "sameHolderEquippedItems"
    SAME_HOLDER_TRAITS = "sameHolderTraits"

    ALL_DEVELOPERS = "allDevelopers"

    # Every entity of a variant
    ALL_ACTIONS = "allActions"
    ALL_ARGUMENTS = "allArguments"
    ALL_BOOSTERS = "allBoosters"
    ALL_CHARACTERS = "allCharacters"
    ALL_EFFECTS = "allEffects"
    ALL_ITEMS = "allItems"
    ALL_TRAITS = "allTraits"

    # Booster partitions
    ALL_GLOBAL_BOOSTERS = "allGlobalBoosters"
    ALL_ARGUMENT_BOOSTERS = "allArgumentBoosters"
    ALL_FRIENDLY_BOOSTERS = "allFriendlyBoosters"
    ALL_ADVERSE_BOOSTERS = "allAdverseBoosters"

    ALL_EQUIPPED_ITEMS = "allEquippedItems"

    # Trait partitions by holder variant
    ALL_ARGUMENT_TRAITS = "allArgumentTraits"
    ALL_CHARACTER_TRAITS = "allCharacterTraits"
    ALL_ENCOUNTER_TRAITS = "allEncounterTraits"
    ALL_ITEM_TRAITS = "allItemTraits"


__all__ = [
    "Mode",
    "EntityVariant",
    "SideIndex",
    "PropertyCategory",
    "TraitScope",
    "EffectOperation",
    "CostTarget",
    "Relation",
    "SideFilter",
    "TargetType",
]
