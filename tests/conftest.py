"""Pytest configuration and shared fixtures.

This module provides the rule sources, rulesets and encounters shared by
the Faith encounter engine test suite.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from faith_encounter.core.config import ParserSettings
from faith_encounter.engine.manager import (
    EncounterConfig,
    EncounterManager,
    EntitySetup,
    SideConfig,
)
from faith_encounter.rules.ruleset import Ruleset


if TYPE_CHECKING:
    from collections.abc import Callable, Generator


CORE_RULES = """<ruleset id="core" name="Core rules">
  <cost id="faith-price" property="faith" value="2"/>

  <character id="preacher" name="Preacher" class="cleric">
    <property id="charisma" base="4"/>
    <property id="faith" base="10" min="0" max="20"/>
    <property id="influence">
      <val base="1" coeff="2" tethered="true">
        <source property="charisma"/>
      </val>
    </property>
    <action ref="sermon"/>
    <action ref="meditate"/>
    <action ref="rebuttal"/>
    <trait ref="zealous"/>
  </character>

  <character id="skeptic" name="Skeptic">
    <property id="charisma" base="3"/>
    <property id="faith" base="6" min="0" max="20"/>
    <action ref="rebuttal"/>
  </character>

  <action id="sermon" name="Sermon">
    <cost template="faith-price"/>
    <effect ref="sway"/>
  </action>

  <action id="meditate" name="Meditate" buildup="1">
    <target type="holder"/>
    <effect ref="calm"/>
  </action>

  <action id="rebuttal" name="Rebuttal">
    <existsCondition rel="target" kindId="free-will"/>
    <effect ref="undermine"/>
  </action>

  <effect id="sway" name="Sway" property="faith" value="-3"/>
  <effect id="calm" name="Calm" property="faith" operation="add" value="1"/>
  <effect id="undermine" name="Undermine" property="strength" value="-2"/>

  <argument id="free-will" name="Free Will" tier="1">
    <property id="strength" base="5" min="0" max="10"/>
    <cost property="faith" value="1"/>
  </argument>

  <booster id="rhetoric" name="Rhetoric" researchable="true"/>

  <trait id="zealous" name="Zealous" scope="character">
    <property id="fervor" base="1"/>
  </trait>

  <encounter id="town-square" name="Town Square">
    <property id="tension" base="0" min="0" max="10"/>
  </encounter>

  <item id="relic" name="Relic">
    <property id="sanctity" base="2"/>
  </item>
</ruleset>
"""
"""A small but complete rule set: two characters, their actions and the kinds those use."""


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from faith_encounter.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def quiet_parser_settings() -> ParserSettings:
    """Provide parser settings that do not record warnings.

    Returns:
        ParserSettings with warnings disabled.
    """
    return ParserSettings(display_warnings=False)


# =============================================================================
# Rule Fixtures
# =============================================================================


@pytest.fixture
def core_rules() -> str:
    """Provide the core rule source text."""
    return CORE_RULES


@pytest.fixture
def ruleset(core_rules: str, quiet_parser_settings: ParserSettings) -> Ruleset:
    """Provide a ruleset loaded from the core rules.

    Args:
        core_rules: Core rule source text.
        quiet_parser_settings: Parser settings without warnings.

    Returns:
        The loaded Ruleset.
    """
    return Ruleset(core_rules, settings=quiet_parser_settings)


# =============================================================================
# Encounter Fixtures
# =============================================================================


@pytest.fixture
def encounter_config() -> EncounterConfig:
    """Provide a two-sided encounter over the core rules.

    Side 1 fields the preacher, its own argument and a booster on that
    argument. Side 2 fields the skeptic, an argument named Doubt, a global
    booster and a booster placed on side 1's argument.
    """
    return EncounterConfig(
        side1=SideConfig(
            characters=[EntitySetup(kind_id="preacher")],
            arguments=[EntitySetup(kind_id="free-will", id="free-will-1")],
            boosters=[EntitySetup(kind_id="rhetoric", holder="free-will-1")],
            researched=["free-will", "rhetoric"],
            research_points=3,
        ),
        side2=SideConfig(
            characters=[EntitySetup(kind_id="skeptic")],
            arguments=[EntitySetup(kind_id="free-will", id="doubt", name="Doubt")],
            boosters=[
                EntitySetup(kind_id="rhetoric"),
                EntitySetup(kind_id="rhetoric", holder="free-will-1"),
            ],
        ),
        encounter="town-square",
    )


@pytest.fixture
def make_manager(
    core_rules: str,
    encounter_config: EncounterConfig,
    quiet_parser_settings: ParserSettings,
) -> Callable[..., EncounterManager]:
    """Provide a factory building encounters over the core rules.

    Extra rule sources passed to the factory are merged after the core
    rules, in order.
    """

    def factory(*extra_rules: str, config: EncounterConfig | None = None, **kwargs) -> EncounterManager:
        rules = Ruleset(core_rules, *extra_rules, settings=quiet_parser_settings)
        return EncounterManager(rules, config or encounter_config, **kwargs)

    return factory


@pytest.fixture
def manager(make_manager: Callable[..., EncounterManager]) -> EncounterManager:
    """Provide an encounter over the core rules with default settings."""
    return make_manager()
