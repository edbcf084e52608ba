"""Tests for rule markup parsing."""

from __future__ import annotations

import pytest

from faith_encounter.core.config import ParserSettings
from faith_encounter.core.exceptions import ParseError
from faith_encounter.models.kinds import ActionKind, CharacterKind, EffectKind
from faith_encounter.rules.ruleset import Ruleset


@pytest.fixture
def empty_ruleset(quiet_parser_settings: ParserSettings) -> Ruleset:
    """Provide an empty ruleset with quiet diagnostics."""
    return Ruleset(settings=quiet_parser_settings)


class TestMalformedSources:
    """Tests for sources that must be rejected."""

    @pytest.mark.parametrize(
        "source",
        [
            "<ruleset></ruleset>",
            "<item id='relic'/>",
            "<ruleset><argument name='Free Will'/></ruleset>",
            "<ruleset><argument id='12'/></ruleset>",
            "<ruleset><argument id=''/></ruleset>",
            "<ruleset><argument id='fate' colour='red'/></ruleset>",
            "<ruleset><spell id='smite'/></ruleset>",
            "<ruleset><argument id='fate' mode='merge'/></ruleset>",
            "<ruleset wipe='some'><item id='relic'/></ruleset>",
            "<ruleset><argument id='fate' researchable='maybe'/></ruleset>",
            "<ruleset><action id='sermon' buildup='two'/></ruleset>",
            "<ruleset><character id='preacher'><cost property='faith'/></character></ruleset>",
            "<ruleset><character id='preacher'><trait/></character></ruleset>",
            "<ruleset><action id='sermon'><target type='self'/><target type='holder'/></action></ruleset>",
            "<ruleset><visibility><action/></visibility></ruleset>",
            "<ruleset><visibility><trait><property id='faith'/></trait></visibility></ruleset>",
            "<ruleset><action id='sermon'><cost template='missing'/></action></ruleset>",
            "<ruleset><action id='sermon'><existsCondition number='1'/></action></ruleset>",
        ],
    )
    def test_rejected(self, empty_ruleset: Ruleset, source: str) -> None:
        """Test malformed or schema-breaking sources raise ParseError."""
        with pytest.raises(ParseError):
            empty_ruleset.parse(source)

    def test_malformed_markup_line(self, empty_ruleset: Ruleset) -> None:
        """Test markup errors report their line."""
        source = "<ruleset>\n  <item id='relic'>\n</ruleset>"

        with pytest.raises(ParseError) as exc_info:
            empty_ruleset.parse(source, file_name="broken.xml")

        assert exc_info.value.line_number == 3
        assert exc_info.value.file_name == "broken.xml"

    def test_error_locates_element(self, empty_ruleset: Ruleset) -> None:
        """Test schema errors point at the failing element and its rule stack."""
        source = (
            "<ruleset>\n"
            "  <item id='relic'/>\n"
            "  <character id='preacher'>\n"
            "    <property id='faith' bogus='1'/>\n"
            "  </character>\n"
            "</ruleset>"
        )

        with pytest.raises(ParseError) as exc_info:
            empty_ruleset.parse(source)

        error = exc_info.value
        assert error.line_number == 4
        assert error.element_path == ["<character> preacher", "<property> faith"]
        assert "Unknown attribute 'bogus'" in str(error)
        assert "<property id='faith' bogus='1'/>" in error.context

    def test_error_is_recorded(self, empty_ruleset: Ruleset) -> None:
        """Test parse errors are mirrored to the diagnostics log."""
        with pytest.raises(ParseError):
            empty_ruleset.parse("<ruleset><spell id='smite'/></ruleset>")

        assert len(empty_ruleset.diagnostics) == 1

    def test_dom_on_errors(self) -> None:
        """Test the failing element can be appended to the message."""
        ruleset = Ruleset(settings=ParserSettings(display_dom_on_errors=True, display_warnings=False))

        with pytest.raises(ParseError) as exc_info:
            ruleset.parse("<ruleset><item id='relic' weight='3'/></ruleset>")

        assert 'weight="3"' in str(exc_info.value)


class TestElementReading:
    """Tests for turning elements into rule models."""

    def test_multiple_rulesets(self, empty_ruleset: Ruleset) -> None:
        """Test sibling and grouped rule-set elements are all read."""
        empty_ruleset.parse(
            "<ruleset><item id='relic'/></ruleset>"
            "<rulesets><ruleset><item id='icon'/></ruleset></rulesets>"
        )

        assert empty_ruleset.items.ids() == ["relic", "icon"]

    def test_xml_declaration(self, empty_ruleset: Ruleset) -> None:
        """Test a leading XML declaration is accepted."""
        empty_ruleset.parse('<?xml version="1.0"?>\n<ruleset><item id="relic"/></ruleset>')

        assert empty_ruleset.items.ids() == ["relic"]

    def test_classes_are_split_and_trimmed(self, empty_ruleset: Ruleset) -> None:
        """Test class lists are comma-separated."""
        empty_ruleset.parse("<ruleset><item id='relic' class=' holy , old,'/></ruleset>")

        assert empty_ruleset.items.get_by_id("relic").classes == {"holy", "old"}

    def test_booleans(self, empty_ruleset: Ruleset) -> None:
        """Test true, false and null booleans."""
        empty_ruleset.parse(
            "<ruleset>"
            "<argument id='fate' researchable='TRUE'/>"
            "<argument id='doom' researchable='null'/>"
            "<booster id='rhetoric' global='false'/>"
            "</ruleset>"
        )

        assert empty_ruleset.args.get_by_id("fate").researchable is True
        assert empty_ruleset.args.get_by_id("doom").researchable is None
        assert empty_ruleset.boosters.get_by_id("rhetoric").global_ is False

    def test_nested_numeric_ids(self, empty_ruleset: Ruleset) -> None:
        """Test numeric nested ids are scoped to their parent."""
        empty_ruleset.parse(
            "<ruleset><character id='preacher'>"
            "<property id='1' base='2'/>"
            "</character></ruleset>"
        )

        preacher = empty_ruleset.chars.get_by_id("preacher")
        assert [p.id for p in preacher.props] == ["preacher-property-1"]

    def test_character(self, ruleset: Ruleset) -> None:
        """Test a character kind with properties, references and traits."""
        preacher = ruleset.chars.get_by_id("preacher")

        assert isinstance(preacher, CharacterKind)
        assert preacher.name == "Preacher"
        assert preacher.classes == {"cleric"}
        assert preacher.actions == ["sermon", "meditate", "rebuttal"]
        assert preacher.traits == ["zealous"]
        faith = preacher.get_prop("faith")
        assert (faith.val.base, faith.min.base, faith.max.base) == (10, 0, 20)

    def test_property_sources(self, ruleset: Ruleset) -> None:
        """Test <val> children with sources."""
        influence = ruleset.chars.get_by_id("preacher").get_prop("influence")

        assert influence.val.tethered is True
        assert influence.val.coeff == 2
        source = influence.val.sources[0]
        assert (source.property_id, source.target, source.category) == ("charisma", "self", "val")

    def test_action(self, ruleset: Ruleset) -> None:
        """Test an action with cost template, target and effect reference."""
        sermon = ruleset.actions.get_by_id("sermon")
        meditate = ruleset.actions.get_by_id("meditate")

        assert isinstance(sermon, ActionKind)
        assert sermon.costs[0].property_id == "faith"
        assert sermon.costs[0].value == 2
        assert sermon.effects == ["sway"]
        assert meditate.buildup == 1
        assert meditate.target.type == "holder"

    def test_condition(self, ruleset: Ruleset) -> None:
        """Test an existsCondition nested in an action."""
        condition = ruleset.actions.get_by_id("rebuttal").conds[0]

        assert condition.rel == "target"
        assert condition.kind_id == "free-will"
        assert condition.effective_number == 1

    def test_effect(self, ruleset: Ruleset) -> None:
        """Test numeric and expression effect values."""
        ruleset.parse(
            "<ruleset><effect id='halve' property='faith' operation='mult' value='0.5'/>"
            "<effect id='drain' property='faith' value='-val'/></ruleset>"
        )

        sway = ruleset.effects.get_by_id("sway")
        assert isinstance(sway, EffectKind)
        assert (sway.property_id, sway.operation, sway.value) == ("faith", "add", -3)
        assert ruleset.effects.get_by_id("halve").value == 0.5
        assert ruleset.effects.get_by_id("drain").value == "-val"

    def test_cost_values(self, empty_ruleset: Ruleset) -> None:
        """Test boolean, numeric and expression cost values."""
        empty_ruleset.parse(
            "<ruleset><action id='vow'>"
            "<cost id='1' property='silence' value='true'/>"
            "<cost id='2' property='faith' value='1.5'/>"
            "<cost id='3' property='faith' value='value / 2' target='side'/>"
            "</action></ruleset>"
        )

        costs = empty_ruleset.actions.get_by_id("vow").costs
        assert [c.id for c in costs] == ["vow-cost-1", "vow-cost-2", "vow-cost-3"]
        assert [c.value for c in costs] == [True, 1.5, "value / 2"]
        assert costs[2].target == "side"

    def test_cost_with_conditions(self, empty_ruleset: Ruleset) -> None:
        """Test explicit cost conditions replace the default one."""
        empty_ruleset.parse(
            "<ruleset><action id='vow'>"
            "<cost property='faith' value='3'>"
            "<existsCondition rel='same' valueCode='value >= 5'/>"
            "</cost></action></ruleset>"
        )

        cost = empty_ruleset.actions.get_by_id("vow").costs[0]
        assert [c.value_code for c in cost.conds] == ["value >= 5"]

    def test_condition_template(self, empty_ruleset: Ruleset) -> None:
        """Test conditions can start from a top-level template."""
        empty_ruleset.parse(
            "<ruleset>"
            "<existsCondition id='has-argument' rel='target' kindId='free-will'/>"
            "<action id='rebuttal'><existsCondition template='has-argument' min='1'/></action>"
            "</ruleset>"
        )

        condition = empty_ruleset.actions.get_by_id("rebuttal").conds[0]
        assert (condition.rel, condition.kind_id, condition.min) == ("target", "free-will", 1)
        assert empty_ruleset.cond_templates.ids() == ["has-argument"]

    def test_target(self, empty_ruleset: Ruleset) -> None:
        """Test target specification attributes."""
        empty_ruleset.parse(
            "<ruleset><effect id='inspire' property='faith' value='1'>"
            "<target type='allCharacters' side='friendly' class='cleric' notClass='fallen' alive='true'/>"
            "</effect></ruleset>"
        )

        target = empty_ruleset.effects.get_by_id("inspire").target
        assert target.type == "allCharacters"
        assert target.side == "friendly"
        assert target.classes == {"cleric"}
        assert target.not_classes == {"fallen"}
        assert target.alive is True

    def test_kind_visibility(self, empty_ruleset: Ruleset) -> None:
        """Test a visibility rule nested in a kind."""
        empty_ruleset.parse(
            "<ruleset><character id='spy'>"
            "<visibility identity='false' propertiesRefresh='true'>"
            "<property id='cover' alwaysHide='true'/>"
            "</visibility></character></ruleset>"
        )

        vis = empty_ruleset.chars.get_by_id("spy").vis
        assert vis.identity is False
        assert vis.properties_refresh is True
        assert vis.kind is None
        assert vis.prop_list[0].always_hide is True

    def test_trait_scopes(self, empty_ruleset: Ruleset) -> None:
        """Test traits are routed by scope."""
        empty_ruleset.parse(
            "<ruleset>"
            "<trait id='sturdy' scope='argument'/>"
            "<trait id='zealous'/>"
            "<trait id='crowded' scope='encounter'/>"
            "<trait id='blessed' scope='item'/>"
            "</ruleset>"
        )

        assert empty_ruleset.arg_traits.ids() == ["sturdy"]
        assert empty_ruleset.char_traits.ids() == ["zealous"]
        assert empty_ruleset.encounter_traits.ids() == ["crowded"]
        assert empty_ruleset.item_traits.ids() == ["blessed"]
