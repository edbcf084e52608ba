"""Tests for rule identity matching and replace/alter/delete merging."""

from __future__ import annotations

from faith_encounter.core.diagnostics import DiagnosticLog
from faith_encounter.models.containers import EntityList
from faith_encounter.models.enums import Mode
from faith_encounter.models.kinds import ArgumentKind, CharacterKind, PropertyBound, PropertyKind
from faith_encounter.models.visibility import (
    ArgumentVisibility,
    PropertyVisibility,
    TraitVisibility,
    default_rule,
)
from faith_encounter.rules.merge import apply_rule, collapse, find_twin, prepare, rules_match


class TestRulesMatch:
    """Tests for rule identity."""

    def test_same_id(self) -> None:
        """Test rules with the same id match."""
        assert rules_match(ArgumentKind(id="fate"), ArgumentKind(id="fate", name="Fate"))

    def test_different_id(self) -> None:
        """Test rules with different ids never match."""
        assert not rules_match(ArgumentKind(id="fate"), ArgumentKind(id="doom"))

    def test_id_never_matches_class_rule(self) -> None:
        """Test an id rule does not match an id-less rule."""
        assert not rules_match(ArgumentKind(id="fate"), ArgumentKind())

    def test_default_rules_match(self) -> None:
        """Test two rules without id and classes match."""
        assert rules_match(TraitVisibility(), TraitVisibility(trait=True))

    def test_equal_classes_match(self) -> None:
        """Test id-less rules match on equal class sets."""
        assert rules_match(TraitVisibility(classes={"a", "b"}), TraitVisibility(classes={"b", "a"}))
        assert not rules_match(TraitVisibility(classes={"a"}), TraitVisibility(classes={"a", "b"}))

    def test_find_twin_returns_first(self) -> None:
        """Test the first matching rule is the twin."""
        first = TraitVisibility(classes={"a"})
        rules = [TraitVisibility(), first, TraitVisibility(classes={"a"}, trait=True)]

        assert find_twin(TraitVisibility(classes={"a"}), rules) is first


class TestApplyRule:
    """Tests for the merge table."""

    def test_replace_appends_at_end(self) -> None:
        """Test a replacing rule moves to the end of the collection."""
        kinds = EntityList([ArgumentKind(id="fate"), ArgumentKind(id="doom")])

        apply_rule(kinds, ArgumentKind(id="fate", name="Fate").with_mode(Mode.REPLACE), Mode.REPLACE)

        assert kinds.ids() == ["doom", "fate"]
        assert kinds.get_by_id("fate").name == "Fate"

    def test_replace_drops_unset_fields(self) -> None:
        """Test replace does not keep any field of the old rule."""
        kinds = EntityList([ArgumentKind(id="fate", name="Fate", tier=2)])

        apply_rule(kinds, ArgumentKind(id="fate"), Mode.REPLACE)

        assert kinds.get_by_id("fate").tier is None

    def test_alter_copies_explicit_fields(self) -> None:
        """Test alter only overwrites what the new rule states."""
        original = ArgumentKind(id="fate", name="Fate", tier=2)
        kinds = EntityList([original])

        merged = apply_rule(kinds, ArgumentKind(id="fate", researchable=True), Mode.ALTER)

        assert merged is original
        assert (original.name, original.tier, original.researchable) == ("Fate", 2, True)

    def test_alter_without_twin_appends(self) -> None:
        """Test alter acts like replace when there is nothing to alter."""
        kinds: EntityList = EntityList()

        apply_rule(kinds, ArgumentKind(id="fate").with_mode(Mode.ALTER), Mode.ALTER)

        assert kinds.ids() == ["fate"]
        assert kinds[0].mode is None

    def test_alter_merges_nested_rules(self) -> None:
        """Test alter recurses into nested property templates by id."""
        original = CharacterKind(
            id="preacher",
            props=[
                PropertyKind(id="faith", name="Faith", val=PropertyBound(base=10)),
                PropertyKind(id="charisma", val=PropertyBound(base=4)),
            ],
        )
        kinds = EntityList([original])
        patch = CharacterKind(
            id="preacher",
            props=[PropertyKind(id="faith", val=PropertyBound(base=12)).with_mode(Mode.ALTER)],
        )

        apply_rule(kinds, patch, Mode.ALTER)

        faith = original.get_prop("faith")
        assert faith.val.base == 12
        assert faith.name == "Faith"
        assert original.get_prop("charisma") is not None

    def test_delete(self) -> None:
        """Test delete removes the twin."""
        kinds = EntityList([ArgumentKind(id="fate"), ArgumentKind(id="doom")])

        assert apply_rule(kinds, ArgumentKind(id="fate"), Mode.DELETE) is None
        assert kinds.ids() == ["doom"]

    def test_delete_without_twin_warns(self) -> None:
        """Test deleting a missing rule is a warning, not an error."""
        kinds = EntityList([ArgumentKind(id="doom")])
        diagnostics = DiagnosticLog()

        apply_rule(kinds, ArgumentKind(id="fate"), Mode.DELETE, diagnostics=diagnostics)

        assert kinds.ids() == ["doom"]
        assert [w.message for w in diagnostics.warnings] == ["Rule to delete not found"]

    def test_delete_last_restores_default(self) -> None:
        """Test a collection with a default never becomes empty."""
        rules = [default_rule("trait")]

        apply_rule(rules, TraitVisibility(), Mode.DELETE, default_factory=lambda: default_rule("trait"))

        assert rules == [default_rule("trait")]


class TestCollapse:
    """Tests for folding sibling rules."""

    def test_replace_then_alter(self) -> None:
        """Test later siblings merge into earlier twins."""
        siblings = [
            PropertyVisibility(id="faith", vis=False, refresh=False).with_mode(Mode.REPLACE),
            PropertyVisibility(id="faith", vis=True, refresh=True).with_mode(Mode.REPLACE),
            PropertyVisibility(id="faith", refresh=False).with_mode(Mode.ALTER),
        ]

        result = collapse(siblings)

        assert len(result) == 1
        assert (result[0].vis, result[0].refresh) == (True, False)
        assert result[0].mode is None

    def test_delete_sibling(self) -> None:
        """Test a delete sibling removes its earlier twin."""
        siblings = [
            PropertyVisibility(id="faith", vis=True).with_mode(Mode.REPLACE),
            PropertyVisibility(id="charisma", vis=True).with_mode(Mode.REPLACE),
            PropertyVisibility(id="faith").with_mode(Mode.DELETE),
        ]

        assert [r.id for r in collapse(siblings)] == ["charisma"]

    def test_prepare_collapses_nested_lists(self) -> None:
        """Test preparing a rule collapses its nested lists."""
        rule = ArgumentVisibility(
            prop_list=[
                PropertyVisibility(id="strength", vis=False).with_mode(Mode.REPLACE),
                PropertyVisibility(id="strength", vis=True).with_mode(Mode.ALTER),
            ]
        ).with_mode(Mode.REPLACE)

        prepare(rule)

        assert rule.mode is None
        assert len(rule.prop_list) == 1
        assert rule.prop_list[0].vis is True
