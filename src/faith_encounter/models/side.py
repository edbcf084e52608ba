"""Sides of an encounter: two competing parties and the neutral faction."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from faith_encounter.models.entity import (
    Action,
    Argument,
    Booster,
    Character,
    Entity,
    Item,
)
from faith_encounter.models.enums import SideIndex
from faith_encounter.models.property import Property


if TYPE_CHECKING:
    from faith_encounter.models.containers import EntityMap


@dataclass(eq=False)
class Side:
    """One party of an encounter.

    Entity collections are views over the encounter arena, so they never
    drift from the entities' own side and holder references.

    Attributes:
        index: Which party this is.
        props: Side-wide properties (influence, morale, ...).
        researched_actions: Ids of researched action kinds.
        researched_args: Ids of researched argument kinds.
        researched_bonuses: Ids of researched bonuses.
        researched_boosters: Ids of researched booster kinds.
        researched_traits: Ids of researched trait kinds.
        secrets_found: Ids of secrets the side has uncovered.
        research_points: Unspent research points.
        probing_points: Unspent probing points.
    """

    index: SideIndex
    props: dict[str, Property] = field(default_factory=dict)
    researched_actions: list[str] = field(default_factory=list)
    researched_args: list[str] = field(default_factory=list)
    researched_bonuses: list[str] = field(default_factory=list)
    researched_boosters: list[str] = field(default_factory=list)
    researched_traits: list[str] = field(default_factory=list)
    secrets_found: list[str] = field(default_factory=list)
    research_points: int = 0
    probing_points: int = 0
    arena: EntityMap | None = field(default=None, repr=False)

    # Targetable surface
    holder_id: str | None = field(default=None, init=False)
    creator_id: str | None = field(default=None, init=False)
    finished: bool | None = field(default=None, init=False)
    active: bool | None = field(default=None, init=False)
    alive: bool | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.index = SideIndex(self.index)
        self.classes: set[str] = {"side"}
        for prop in self.props.values():
            prop.holder_id = self.id

    @property
    def id(self) -> str:
        return f"side-{int(self.index)}"

    @property
    def name(self) -> str:
        if self.index is SideIndex.NEUTRAL:
            return "Neutral"
        return f"Side {int(self.index)}"

    @property
    def side(self) -> SideIndex:
        return self.index

    @property
    def kind_id(self) -> None:
        return None

    def _members(self) -> list[Entity]:
        if self.arena is None:
            return []
        return [e for e in self.arena if e.side == self.index]

    @property
    def actions(self) -> list[Action]:
        return [e for e in self._members() if isinstance(e, Action)]

    @property
    def args(self) -> list[Argument]:
        return [e for e in self._members() if isinstance(e, Argument)]

    @property
    def chars(self) -> list[Character]:
        return [e for e in self._members() if isinstance(e, Character)]

    @property
    def items(self) -> list[Item]:
        return [e for e in self._members() if isinstance(e, Item)]

    @property
    def boosters(self) -> list[Booster]:
        return [e for e in self._members() if isinstance(e, Booster)]

    @property
    def g_boosters(self) -> list[Booster]:
        """Boosters without a holder."""
        return [b for b in self.boosters if b.is_global]

    @property
    def arg_boosters(self) -> list[Booster]:
        """Boosters held by an argument."""
        return [b for b in self.boosters if isinstance(b.holder, Argument)]

    @property
    def friendly_boosters(self) -> list[Booster]:
        """Held boosters whose holder is on this side."""
        return [b for b in self.boosters if b.holder is not None and b.holder.side == self.index]

    @property
    def adverse_boosters(self) -> list[Booster]:
        """Held boosters placed on a holder of another side."""
        return [
            b for b in self.boosters if b.holder is not None and b.holder.side != self.index
        ]

    def __repr__(self) -> str:
        return f"Side(index={int(self.index)})"


__all__ = ["Side"]
