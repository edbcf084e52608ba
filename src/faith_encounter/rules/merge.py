"""Rule identity matching and replace/alter/delete merging.

The same engine merges entity kinds into Ruleset collections, visibility
rules into the top-level visibility table, and nested rules (property
templates, costs, property visibility overrides) into their parent rule.

Identity matching, evaluated against an existing collection in order:

1. Both rules have the same non-null id.
2. Neither rule has an id nor classes (the single default rule).
3. Neither rule has an id and their class sets are equal.

Merge table:

=========  ==================================  =========================
Mode       Twin found                          No twin
=========  ==================================  =========================
replace    remove twin, append new at the end  append
alter      copy explicit fields onto the twin  append
delete     remove twin, restore default        no-op (warning)
=========  ==================================  =========================
"""

from __future__ import annotations

from typing import Callable, Iterable, Protocol, TypeVar

from faith_encounter.core.diagnostics import DiagnosticLog
from faith_encounter.core.logging import get_logger
from faith_encounter.models.enums import Mode
from faith_encounter.models.rule import Rule


logger = get_logger(__name__)

R = TypeVar("R", bound=Rule)


class RuleCollection(Protocol[R]):
    """Ordered collection the merge engine can modify."""

    def __iter__(self): ...

    def __len__(self) -> int: ...

    def append(self, item: R) -> None: ...

    def remove(self, item: R) -> None: ...


# =============================================================================
# Identity
# =============================================================================


def rules_match(a: Rule, b: Rule) -> bool:
    """Decide whether two rules describe the same thing."""
    if a.id is not None or b.id is not None:
        return a.id is not None and a.id == b.id
    return set(a.classes) == set(b.classes)


def find_twin(rule: Rule, collection: Iterable[R]) -> R | None:
    """Return the first rule in a collection matching the given rule."""
    for existing in collection:
        if rules_match(rule, existing):
            return existing
    return None


# =============================================================================
# Merging
# =============================================================================


def prepare(rule: R, diagnostics: DiagnosticLog | None = None) -> R:
    """Make a freshly parsed rule ready to be stored.

    Collapses the rule's nested rule lists, resolves nested single rules
    and clears the parse-time mode, recursively.

    Args:
        rule: Rule straight from the parser.
        diagnostics: Where to record warnings.

    Returns:
        The same rule.
    """
    for name in type(rule).nested_rules:
        items = getattr(rule, name)
        items[:] = collapse(items, diagnostics)
    for name in type(rule).nested_single:
        single = getattr(rule, name)
        if single is None:
            continue
        if single.mode == Mode.DELETE:
            setattr(rule, name, None)
        else:
            prepare(single, diagnostics)
    return rule.with_mode(None)


def collapse(rules: Iterable[R], diagnostics: DiagnosticLog | None = None) -> list[R]:
    """Fold sibling rules of one nesting level into their merged result.

    A later twin in replace mode replaces the earlier rule, in alter mode
    merges into it, and in delete mode removes it. Deletes without a twin
    are dropped.

    Args:
        rules: Sibling rules in document order, each carrying its mode.
        diagnostics: Where to record warnings.

    Returns:
        The collapsed rules in resulting order.
    """
    result: list[R] = []
    for rule in rules:
        apply_rule(result, rule, rule.mode or Mode.REPLACE, diagnostics=diagnostics)
    return result


def apply_rule(
    collection: RuleCollection[R] | list[R],
    rule: R,
    mode: Mode | str,
    *,
    default_factory: Callable[[], R] | None = None,
    diagnostics: DiagnosticLog | None = None,
) -> R | None:
    """Merge one incoming rule into a collection.

    Args:
        collection: Existing rules; modified in place.
        rule: Incoming rule.
        mode: Merge mode of the incoming rule.
        default_factory: Builds the default rule for collections that must
            never become empty.
        diagnostics: Where to record warnings.

    Returns:
        The rule now stored for this identity, or None after a delete.
    """
    mode = Mode(mode)
    twin = find_twin(rule, collection)

    if mode is Mode.DELETE:
        if twin is None:
            if diagnostics is not None:
                diagnostics.warn(
                    "Rule to delete not found",
                    rule=rule.label(),
                    rule_type=type(rule).__name__,
                )
            return None
        collection.remove(twin)
        if default_factory is not None and len(collection) == 0:
            collection.append(default_factory())
            if diagnostics is not None:
                diagnostics.warn(
                    "Default rule restored after deleting the last rule",
                    rule_type=type(rule).__name__,
                )
        logger.debug("Rule deleted", rule=rule.label(), rule_type=type(rule).__name__)
        return None

    if twin is None or mode is Mode.REPLACE:
        prepare(rule, diagnostics)
        if twin is not None:
            collection.remove(twin)
        collection.append(rule)
        logger.debug(
            "Rule stored",
            rule=rule.label(),
            rule_type=type(rule).__name__,
            replaced=twin is not None,
        )
        return rule

    alter_rule(twin, rule, diagnostics)
    logger.debug("Rule altered", rule=rule.label(), rule_type=type(rule).__name__)
    return twin


def alter_rule(old: Rule, new: Rule, diagnostics: DiagnosticLog | None = None) -> None:
    """Copy the explicitly given fields of a rule onto its twin in place.

    Nested rule lists are merged rule by rule with each nested rule's own
    mode; nested single rules are replaced, altered or cleared.

    Args:
        old: Stored rule, keeps its identity.
        new: Incoming partial rule.
        diagnostics: Where to record warnings.
    """
    cls = type(old)
    for name in new.explicit_fields:
        value = getattr(new, name)
        if name in cls.nested_rules:
            transfer(getattr(old, name), value, diagnostics)
        elif name in cls.nested_single:
            _merge_single(old, name, value, diagnostics)
        else:
            setattr(old, name, value)


def transfer(
    target: list[R],
    incoming: Iterable[R],
    diagnostics: DiagnosticLog | None = None,
) -> None:
    """Merge nested rules into the matching nested list of a stored rule."""
    for rule in incoming:
        apply_rule(target, rule, rule.mode or Mode.ALTER, diagnostics=diagnostics)


def _merge_single(
    owner: Rule,
    name: str,
    incoming: Rule | None,
    diagnostics: DiagnosticLog | None,
) -> None:
    current = getattr(owner, name)
    if incoming is None:
        return
    if incoming.mode == Mode.DELETE:
        setattr(owner, name, None)
    elif current is None or incoming.mode in (None, Mode.REPLACE):
        setattr(owner, name, prepare(incoming, diagnostics))
    else:
        alter_rule(current, incoming, diagnostics)


__all__ = [
    "RuleCollection",
    "rules_match",
    "find_twin",
    "prepare",
    "collapse",
    "apply_rule",
    "alter_rule",
    "transfer",
]
