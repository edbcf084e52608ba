"""Rule loading: markup parsing, element readers and the merge engine.

Submodules:
    merge: Identity matching and replace/alter/delete merging
    parser: Source documents, the open-rule stack and attribute parsing
    elements: Per-tag readers building rule models
    ruleset: The Ruleset aggregate

Example:
    >>> from faith_encounter.rules import Ruleset
    >>> ruleset = Ruleset()
    >>> _ = ruleset.parse(open("core.xml").read(), file_name="core.xml")
    >>> ruleset.validate()
"""

from __future__ import annotations

from faith_encounter.rules.merge import (
    alter_rule,
    apply_rule,
    collapse,
    find_twin,
    prepare,
    rules_match,
    transfer,
)
from faith_encounter.rules.parser import RuleFrame, RuleParser, SourceDocument
from faith_encounter.rules.elements import ElementReader
from faith_encounter.rules.ruleset import Research, Ruleset


__all__ = [
    # Merge engine
    "rules_match",
    "find_twin",
    "prepare",
    "collapse",
    "apply_rule",
    "alter_rule",
    "transfer",
    # Parsing
    "SourceDocument",
    "RuleFrame",
    "RuleParser",
    "ElementReader",
    # Ruleset
    "Research",
    "Ruleset",
]
