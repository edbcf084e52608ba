"""The Ruleset aggregate: every kind, template and visibility rule loaded so far.

A Ruleset is built by successive parse() calls, each merging its rules
into the existing collections with replace/alter/delete semantics. A
failed parse() leaves the Ruleset exactly as it was before the call.

Example:
    >>> ruleset = Ruleset()
    >>> _ = ruleset.parse('<ruleset><argument id="free-will" name="Free Will"/></ruleset>')
    >>> ruleset.args.get_by_id("free-will").name
    'Free Will'
    >>> ruleset.validate()
"""

from __future__ import annotations

import copy
import itertools
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Iterator

from faith_encounter.core.config import ParserSettings, get_settings
from faith_encounter.core.constants import (
    KIND_TAGS,
    VISIBILITY_CATEGORIES,
    VISIBILITY_TAG,
    WIPE_ALL,
)
from faith_encounter.core.diagnostics import DiagnosticLog
from faith_encounter.core.exceptions import DuplicateIdError, InvalidTypeError, ValidationError
from faith_encounter.core.logging import get_logger, log_context
from faith_encounter.models.condition import ExistsCondition
from faith_encounter.models.containers import EntityList
from faith_encounter.models.enums import Mode, TraitScope
from faith_encounter.models.kinds import EntityKind, ResearchableKind, TraitKind
from faith_encounter.models.rule import Rule
from faith_encounter.models.visibility import VisibilityTable, default_rule
from faith_encounter.rules.elements import ElementReader
from faith_encounter.rules.merge import apply_rule
from faith_encounter.rules.parser import RuleParser, SourceDocument


logger = get_logger(__name__)

KIND_COLLECTIONS: dict[str, str] = {
    "action": "actions",
    "argument": "args",
    "booster": "boosters",
    "character": "chars",
    "effect": "effects",
    "encounter": "encounters",
    "item": "items",
}
"""Ruleset collection per kind tag; traits are routed by scope."""

TRAIT_COLLECTIONS: dict[str, str] = {
    TraitScope.ARGUMENT.value: "arg_traits",
    TraitScope.CHARACTER.value: "char_traits",
    TraitScope.ENCOUNTER.value: "encounter_traits",
    TraitScope.ITEM.value: "item_traits",
}
"""Ruleset collection per trait scope."""

KIND_COLLECTION_NAMES = (
    "actions",
    "args",
    "arg_traits",
    "boosters",
    "chars",
    "char_traits",
    "effects",
    "encounter_traits",
    "encounters",
    "item_traits",
    "items",
)

STATE_FIELDS = (
    *KIND_COLLECTION_NAMES,
    "cost_templates",
    "cond_templates",
    "vis",
    "all_visible",
    "override_default_probing",
)
"""Attributes making up the merged rule state."""

VISIBILITY_ATTRIBUTES = frozenset({"mode", "allVisible", "overrideDefaultProbing"})


def _conditions_of(rule: Rule) -> Iterator[ExistsCondition]:
    if isinstance(rule, ExistsCondition):
        yield rule
    yield from getattr(rule, "conds", ())
    for cost in getattr(rule, "costs", ()):
        yield from cost.conds


@dataclass
class Research:
    """Research unlock structure derived from researchable kinds.

    Attributes:
        tiers: Kinds per 1-based research tier.
        untiered: Researchable kinds without a tier.
    """

    tiers: dict[int, list[ResearchableKind]] = field(default_factory=dict)
    untiered: list[ResearchableKind] = field(default_factory=list)

    def tier(self, number: int) -> list[ResearchableKind]:
        return self.tiers.get(number, [])


class Ruleset:
    """All rules loaded for a game.

    Attributes:
        actions, args, boosters, chars, effects, encounters, items: Kinds by
            category, in merge order.
        arg_traits, char_traits, encounter_traits, item_traits: Trait kinds
            by scope.
        cost_templates: Reusable cost rules.
        cond_templates: Reusable condition rules.
        research: Research tiers, rebuilt after every parse.
        vis: Rule-set-wide visibility rules.
        all_visible: Reveal everything to every side.
        override_default_probing: Replace the default probing behaviour.
        settings: Diagnostic verbosity of the loader.
        diagnostics: Warnings recorded while loading.
    """

    def __init__(
        self,
        *sources: str | ET.Element,
        settings: ParserSettings | None = None,
    ) -> None:
        self.settings = settings or get_settings().parser
        self.diagnostics = DiagnosticLog(
            enabled=self.settings.display_warnings,
            alert_on_warnings=self.settings.raise_alert_on_warnings,
            alert_on_errors=self.settings.raise_alert_on_errors,
        )
        self.wipe()
        for source in sources:
            self.parse(source)

    # =========================================================================
    # State
    # =========================================================================

    def wipe(self) -> None:
        """Clear every collection and reset visibility to its defaults."""
        self.actions: EntityList[EntityKind] = EntityList()
        self.args: EntityList[EntityKind] = EntityList()
        self.arg_traits: EntityList[EntityKind] = EntityList()
        self.boosters: EntityList[EntityKind] = EntityList()
        self.chars: EntityList[EntityKind] = EntityList()
        self.char_traits: EntityList[EntityKind] = EntityList()
        self.effects: EntityList[EntityKind] = EntityList()
        self.encounter_traits: EntityList[EntityKind] = EntityList()
        self.encounters: EntityList[EntityKind] = EntityList()
        self.item_traits: EntityList[EntityKind] = EntityList()
        self.items: EntityList[EntityKind] = EntityList()
        self.cost_templates: EntityList[Rule] = EntityList()
        self.cond_templates: EntityList[Rule] = EntityList()
        self.vis = VisibilityTable()
        self.all_visible = False
        self.override_default_probing = False
        self.research = Research()

    def state(self) -> dict[str, Any]:
        """The merged rule state, comparable between rulesets."""
        return {name: getattr(self, name) for name in STATE_FIELDS}

    def _restore(self, snapshot: dict[str, Any]) -> None:
        for name, value in snapshot.items():
            setattr(self, name, value)
        self._rebuild_research()

    @property
    def all(self) -> list[EntityKind]:
        """Every entity kind across all categories."""
        return list(itertools.chain.from_iterable(getattr(self, n) for n in KIND_COLLECTION_NAMES))

    def __iter__(self) -> Iterator[EntityKind]:
        return iter(self.all)

    def get_kind(self, kind_id: str) -> EntityKind | None:
        """Find a kind by id in any category."""
        for kind in self.all:
            if kind.id == kind_id:
                return kind
        return None

    def collection_for(self, kind: EntityKind) -> EntityList[EntityKind]:
        """The category collection a kind belongs in."""
        if isinstance(kind, TraitKind):
            return getattr(self, TRAIT_COLLECTIONS[str(kind.scope)])
        return getattr(self, KIND_COLLECTIONS[str(kind.variant)])

    # =========================================================================
    # Direct Manipulation
    # =========================================================================

    def add(self, *kinds: EntityKind) -> None:
        """Add kinds to their category collections without merging.

        Raises:
            InvalidTypeError: If an item is not an entity kind.
            DuplicateIdError: If a kind's id is already in its category.
        """
        for kind in kinds:
            if not isinstance(kind, EntityKind):
                raise InvalidTypeError(
                    "Only entity kinds can be added to a ruleset",
                    received_type=type(kind).__name__,
                )
            self.collection_for(kind).add(kind)
        self._rebuild_research()

    def remove(self, *kinds: EntityKind) -> None:
        """Remove kinds; absent kinds are ignored."""
        for kind in kinds:
            if isinstance(kind, EntityKind):
                self.collection_for(kind).remove(kind)
        self._rebuild_research()

    def validate(self) -> None:
        """Check every kind's id and that no two kinds share one.

        Call after all desired sources are loaded; parsing never validates.

        Raises:
            ValidationError: If a kind id is missing or malformed.
            DuplicateIdError: If two kinds share an id.
        """
        kinds = self.all
        for kind in kinds:
            kind.validate_kind()
        for index, kind in enumerate(kinds):
            for other in kinds[index + 1 :]:
                if kind.id == other.id:
                    raise DuplicateIdError(
                        f"Kind id {kind.id!r} is used more than once",
                        entity_id=kind.id,
                        details={
                            "first": str(kind.variant),
                            "second": str(other.variant),
                        },
                    )
        logger.debug("Ruleset validated", kinds=len(kinds))

    # =========================================================================
    # Parsing
    # =========================================================================

    def parse(self, source: str | ET.Element, file_name: str | None = None) -> Ruleset:
        """Merge the rules of a markup source into the ruleset.

        Args:
            source: Markup text, or an already parsed element tree.
            file_name: Name used in error messages.

        Returns:
            The ruleset itself.

        Raises:
            ParseError: If the source is malformed or breaks the rule
                schema. The ruleset is left unchanged.
        """
        snapshot = copy.deepcopy(self.state())
        with log_context(rule_file=file_name or "<text>"):
            try:
                document = SourceDocument(source, file_name)
                parser = RuleParser(document, self.settings, self.diagnostics)
                self._parse_document(document, parser)
            except Exception:
                self._restore(snapshot)
                raise
            self._rebuild_research()
            logger.info(
                "Rules loaded",
                kinds=len(self.all),
                cost_templates=len(self.cost_templates),
                cond_templates=len(self.cond_templates),
            )
        return self

    def _parse_document(self, document: SourceDocument, parser: RuleParser) -> None:
        rulesets = document.rulesets()
        if not rulesets:
            parser.fail("Rule source contains no <ruleset> element", document.root)
        for element in rulesets:
            self._parse_ruleset(element, parser)

    def _parse_ruleset(self, element: ET.Element, parser: RuleParser) -> None:
        parser.check_attributes(element, {"mode", "wipe", "id", "name"})
        raw_mode = element.get("mode")
        ruleset_mode = Mode.REPLACE if raw_mode is None else parser.parse_mode(element)
        parser.reset(ruleset_mode)

        wipe = element.get("wipe")
        if wipe is not None:
            if wipe.strip() != WIPE_ALL:
                parser.fail(f"Unknown wipe value {wipe!r}", element)
            self.wipe()
            logger.info("Ruleset wiped")

        if len(element) == 0:
            parser.fail("<ruleset> contains no rules", element)

        reader = ElementReader(
            parser,
            cost_templates=self.cost_templates,
            cond_templates=self.cond_templates,
        )
        for child in element:
            if child.tag in KIND_TAGS:
                kind = reader.read_kind(child)
                self._merge(self.collection_for(kind), kind, child, parser)
            elif child.tag == "cost":
                self._merge(self.cost_templates, reader.read_cost(child, top_level=True), child, parser)
            elif child.tag == "existsCondition":
                condition = reader.read_condition(child, top_level=True)
                self._merge(self.cond_templates, condition, child, parser)
            elif child.tag == VISIBILITY_TAG:
                self._parse_visibility(child, parser, reader)
            else:
                parser.fail(f"Unknown rule element <{child.tag}>", child)

    def _merge(
        self,
        collection: EntityList[Any],
        rule: Rule,
        element: ET.Element,
        parser: RuleParser,
    ) -> None:
        merged = apply_rule(
            collection,
            rule,
            rule.mode or Mode.REPLACE,
            diagnostics=self.diagnostics,
        )
        if merged is None:
            return
        # Alter-mode conditions are partial until merged into their twin.
        try:
            for condition in _conditions_of(merged):
                condition.check_criteria()
        except ValidationError as exc:
            parser.fail(f"Invalid <{element.tag}> after merge: {exc.message}", element)

    def _parse_visibility(
        self,
        element: ET.Element,
        parser: RuleParser,
        reader: ElementReader,
    ) -> None:
        parser.check_attributes(element, VISIBILITY_ATTRIBUTES)
        frame = parser.open_rule(element, top_level=False)
        try:
            for attribute, target in (
                ("allVisible", "all_visible"),
                ("overrideDefaultProbing", "override_default_probing"),
            ):
                raw = element.get(attribute)
                if raw is not None:
                    value = parser.parse_boolean(raw, element, attribute)
                    setattr(self, target, bool(value))

            if frame.mode in (Mode.REPLACE, Mode.DELETE):
                self.vis = VisibilityTable()
            if frame.mode is Mode.DELETE:
                return

            for child in element:
                if child.tag in VISIBILITY_CATEGORIES:
                    rule = reader.read_visibility_rule(child, child.tag)
                    self._merge_visibility(child.tag, rule)
                elif child.tag == "property":
                    rule = reader.read_property_visibility(child)
                    apply_rule(
                        self.vis.property_rules,
                        rule,
                        rule.mode or Mode.REPLACE,
                        diagnostics=self.diagnostics,
                    )
                else:
                    parser.fail(f"Unknown visibility element <{child.tag}>", child)
        finally:
            parser.close_rule()

    def _merge_visibility(self, category: str, rule: Rule) -> None:
        if rule.id is None and not rule.classes and rule.mode == Mode.REPLACE:
            defaults = default_rule(category)
            for name in defaults.explicit_fields - rule.explicit_fields:
                setattr(rule, name, getattr(defaults, name))
        apply_rule(
            self.vis.rules_for(category),
            rule,
            rule.mode or Mode.REPLACE,
            default_factory=lambda: default_rule(category),
            diagnostics=self.diagnostics,
        )

    def _rebuild_research(self) -> None:
        research = Research()
        for kind in self.all:
            if not isinstance(kind, ResearchableKind):
                continue
            if kind.tier is not None:
                research.tiers.setdefault(kind.tier, []).append(kind)
            elif kind.researchable:
                research.untiered.append(kind)
        research.tiers = dict(sorted(research.tiers.items()))
        self.research = research

    def __repr__(self) -> str:
        return (
            f"Ruleset(kinds={len(self.all)}, all_visible={self.all_visible}, "
            f"override_default_probing={self.override_default_probing})"
        )


__all__ = [
    "KIND_COLLECTIONS",
    "TRAIT_COLLECTIONS",
    "STATE_FIELDS",
    "Research",
    "Ruleset",
]
