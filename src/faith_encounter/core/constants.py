"""Engine-wide constants for the Faith encounter engine.

This module defines the markup vocabulary of rule sources, id conventions
and diagnostic defaults shared by the rule loader and the encounter engine.
"""

from __future__ import annotations

import re

# =============================================================================
# Rule Markup Vocabulary
# =============================================================================

RULESET_TAG = "ruleset"
"""Tag of a single rule-set element."""

RULESETS_TAG = "rulesets"
"""Tag of an explicit collection of rule-set elements."""

KIND_TAGS = (
    "action",
    "argument",
    "booster",
    "character",
    "effect",
    "encounter",
    "item",
    "trait",
)
"""Top-level tags that define an entity kind."""

TEMPLATE_TAGS = ("cost", "existsCondition")
"""Top-level tags that define reusable sub-rule templates."""

VISIBILITY_TAG = "visibility"
"""Tag of visibility rule blocks, both top-level and kind-specific."""

TOP_LEVEL_TAGS = (*KIND_TAGS, *TEMPLATE_TAGS, VISIBILITY_TAG)
"""Every tag allowed as a direct child of a rule-set."""

VISIBILITY_CATEGORIES = ("argument", "booster", "character", "encounter", "trait")
"""Top-level visibility categories that always hold a default rule."""

COMMON_ATTRIBUTES = frozenset({"id", "class", "mode"})
"""Attributes every rule element accepts."""

# =============================================================================
# Rule Modes
# =============================================================================

DEFAULT_MODE = "replace"
"""Mode applied when neither a rule nor any enclosing rule declares one."""

WIPE_ALL = "all"
"""Value of the rule-set wipe attribute that clears the whole Ruleset."""

# =============================================================================
# Identifiers
# =============================================================================

ID_PATTERN = re.compile(r"^[A-Za-z0-9_]+(?:-[A-Za-z0-9_]+)*$")
"""Hyphen-case ids: word characters separated by single hyphens."""

NUMERIC_ID_PATTERN = re.compile(r"^[+-]?\d+$")
"""Ids made only of digits, rewritten to parent-scoped ids when nested."""

ENCOUNTER_ENTITY_ID = "encounter"
"""Arena id of the single Encounter entity."""

# =============================================================================
# Diagnostics
# =============================================================================

CONTEXT_PADDING_PRE = 30
"""Default characters of source text shown before a failing element."""

CONTEXT_PADDING_POST = 80
"""Default characters of source text shown after a failing element."""

ELLIPSIS = "..."
"""Marker for truncated context snippets."""

# =============================================================================
# Encounter
# =============================================================================

FIRST_TURN = 1
"""Number of the first turn of every encounter."""


__all__ = [
    "RULESET_TAG",
    "RULESETS_TAG",
    "KIND_TAGS",
    "TEMPLATE_TAGS",
    "VISIBILITY_TAG",
    "TOP_LEVEL_TAGS",
    "VISIBILITY_CATEGORIES",
    "COMMON_ATTRIBUTES",
    "DEFAULT_MODE",
    "WIPE_ALL",
    "ID_PATTERN",
    "NUMERIC_ID_PATTERN",
    "ENCOUNTER_ENTITY_ID",
    "CONTEXT_PADDING_PRE",
    "CONTEXT_PADDING_POST",
    "ELLIPSIS",
    "FIRST_TURN",
]
