"""Runtime numeric properties owned by entities and sides.

A Property holds the live val/min/max of one PropertyKind on one owner.
Values are derived from a base, a coefficient and the values of source
properties; the dependency bookkeeping is mirrored on both ends so that a
PropertyGraph can propagate changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from faith_encounter.core.exceptions import CyclicDependencyError, ValidationError
from faith_encounter.core.logging import get_logger
from faith_encounter.models.enums import PropertyCategory
from faith_encounter.models.kinds import PropertyBound, PropertyKind


logger = get_logger(__name__)

VAL = PropertyCategory.VAL
MIN = PropertyCategory.MIN
MAX = PropertyCategory.MAX


def category_order(kind: PropertyKind) -> tuple[PropertyCategory, ...]:
    """Order in which a property's three values must be computed.

    A bound whose base is the other bound is computed after it; val always
    comes last so it can be clamped into the fresh window.

    Args:
        kind: The property template.

    Returns:
        The three categories in computation order.

    Raises:
        CyclicDependencyError: If min and max are based on each other.
        ValidationError: If a base refers to a bound the kind does not define.
    """
    min_on_max = kind.min is not None and kind.min.base == "max"
    max_on_min = kind.max is not None and kind.max.base == "min"
    if min_on_max and max_on_min:
        raise CyclicDependencyError(
            f"min and max of property {kind.id!r} are based on each other",
            cycle=[f"{kind.id}.min", f"{kind.id}.max", f"{kind.id}.min"],
        )
    for name, bound in (("val", kind.val), ("min", kind.min), ("max", kind.max)):
        if bound is None or not isinstance(bound.base, str):
            continue
        if getattr(kind, bound.base) is None:
            raise ValidationError(
                f"{name} of property {kind.id!r} is based on undefined {bound.base}",
                field_name=f"{name}.base",
                invalid_value=bound.base,
            )
        if name == bound.base:
            raise CyclicDependencyError(
                f"{name} of property {kind.id!r} is based on itself",
                cycle=[f"{kind.id}.{name}", f"{kind.id}.{name}"],
            )
    if max_on_min:
        return (MIN, MAX, VAL)
    return (MAX, MIN, VAL)


@dataclass(frozen=True)
class SourceLink:
    """One source edge: which property feeds in, and which of its values."""

    prop: Property
    read: PropertyCategory = VAL

    def value(self) -> float:
        value = self.prop.value_of(self.read)
        return 0.0 if value is None else value


@dataclass(eq=False)
class Property:
    """Live numeric property.

    Attributes:
        kind: Template the property was built from.
        holder_id: Arena id of the owner.
        add: Accumulated additive effects (tethered properties only).
        mult: Accumulated multiplicative effects (tethered properties only).
        unmod, unmod_min, unmod_max: Values before effects.
        val, min, max: Final values.
        prev, prev_min, prev_max: Values before the latest recomputation.
        temp, temp_min, temp_max: Putative values while a cost is checked.
    """

    kind: PropertyKind
    holder_id: str | None = None

    add: float = 0.0
    mult: float = 1.0

    unmod: float | None = None
    unmod_min: float | None = None
    unmod_max: float | None = None
    val: float | None = None
    min: float | None = None
    max: float | None = None
    prev: float | None = None
    prev_min: float | None = None
    prev_max: float | None = None
    temp: float | None = None
    temp_min: float | None = None
    temp_max: float | None = None

    sources: list[SourceLink] = field(default_factory=list)
    sources_min: list[SourceLink] = field(default_factory=list)
    sources_max: list[SourceLink] = field(default_factory=list)
    dependents: list[Property] = field(default_factory=list, repr=False)
    dependents_min: list[Property] = field(default_factory=list, repr=False)
    dependents_max: list[Property] = field(default_factory=list, repr=False)

    update_order: tuple[PropertyCategory, ...] = field(init=False)
    initialized: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self.update_order = category_order(self.kind)

    # =========================================================================
    # Template Accessors
    # =========================================================================

    @property
    def id(self) -> str | None:
        return self.kind.id

    @property
    def name(self) -> str | None:
        return self.kind.name or self.kind.id

    @property
    def classes(self) -> set[str]:
        return self.kind.classes

    @property
    def tethered(self) -> bool:
        return self.kind.val.tethered

    @property
    def base(self) -> float | str:
        return self.kind.val.base

    @property
    def coeff(self) -> float:
        return self.kind.val.coeff

    @property
    def min_base(self) -> float | str | None:
        return None if self.kind.min is None else self.kind.min.base

    @property
    def min_coeff(self) -> float | None:
        return None if self.kind.min is None else self.kind.min.coeff

    @property
    def max_base(self) -> float | str | None:
        return None if self.kind.max is None else self.kind.max.base

    @property
    def max_coeff(self) -> float | None:
        return None if self.kind.max is None else self.kind.max.coeff

    @property
    def label(self) -> str:
        return f"{self.holder_id or '?'}.{self.id}"

    def bound(self, category: PropertyCategory) -> PropertyBound | None:
        """Template recipe of one category."""
        return getattr(self.kind, category.value)

    def sources_for(self, category: PropertyCategory) -> list[SourceLink]:
        return {VAL: self.sources, MIN: self.sources_min, MAX: self.sources_max}[category]

    def dependents_for(self, category: PropertyCategory) -> list[Property]:
        return {VAL: self.dependents, MIN: self.dependents_min, MAX: self.dependents_max}[
            category
        ]

    def all_dependents(self) -> list[Property]:
        """Dependents across all three categories, without duplicates."""
        seen: dict[int, Property] = {}
        for prop in (*self.dependents, *self.dependents_min, *self.dependents_max):
            seen.setdefault(id(prop), prop)
        return list(seen.values())

    def value_of(self, category: PropertyCategory) -> float | None:
        return getattr(self, category.value)

    # =========================================================================
    # Computation
    # =========================================================================

    def link_source(
        self,
        source: Property,
        category: PropertyCategory = VAL,
        read: PropertyCategory = VAL,
    ) -> None:
        """Record a source edge on both ends.

        Args:
            source: Property feeding into this one.
            category: Which of this property's values the source feeds.
            read: Which of the source's values is read.
        """
        self.sources_for(category).append(SourceLink(source, read))
        source.dependents_for(category).append(self)

    def recompute(self, snapshot: bool = True) -> bool:
        """Recompute min, max and val in dependency order.

        Args:
            snapshot: Record the current values as the previous ones first.
                Pass False when a mutation already took the snapshot.

        Returns:
            True if any final value changed.
        """
        if snapshot:
            self.snapshot()
        for category in self.update_order:
            self._compute(category)
        self._clamp()
        self.initialized = True
        return self.changed

    def _compute(self, category: PropertyCategory) -> None:
        bound = self.bound(category)
        if bound is None:
            unmod = None
        elif bound.base == "min":
            unmod = self.unmod_min
        elif bound.base == "max":
            unmod = self.unmod_max
        else:
            total = sum(link.value() for link in self.sources_for(category))
            unmod = bound.base + bound.coeff * total

        if category is MIN:
            self.unmod_min = self.min = unmod
        elif category is MAX:
            self.unmod_max = self.max = unmod
        else:
            self.unmod = unmod
            if unmod is None:
                return
            if self.tethered:
                self.val = unmod * self.mult + self.add
            elif not self.initialized or self.val is None:
                self.val = unmod

    def _clamp(self) -> None:
        if self.min is not None and self.max is not None and self.min > self.max:
            logger.warning(
                "Property minimum above maximum, lowering minimum",
                property=self.label,
                min=self.min,
                max=self.max,
            )
            self.min = self.max
        self.val = self.clamped(self.val)

    def clamped(self, value: float | None) -> float | None:
        """Fit a value into the current [min, max] window."""
        if value is None:
            return None
        if self.max is not None and value > self.max:
            value = self.max
        if self.min is not None and value < self.min:
            value = self.min
        return value

    def snapshot(self) -> None:
        """Remember val, min and max as the previous values."""
        self.prev, self.prev_min, self.prev_max = self.val, self.min, self.max

    @property
    def changed(self) -> bool:
        """Whether the latest recomputation changed val, min or max."""
        return (self.val, self.min, self.max) != (self.prev, self.prev_min, self.prev_max)

    # =========================================================================
    # Mutation
    # =========================================================================

    def set_value(self, value: float) -> None:
        """Set the current value, keeping tethered properties consistent.

        A tethered property keeps its derivation and absorbs the difference
        into its additive total.

        Args:
            value: The new current value, clamped into [min, max].
        """
        self.snapshot()
        if self.tethered and self.unmod is not None:
            self.add = value - self.unmod * self.mult
        self.val = self.clamped(value)

    def apply_add(self, amount: float) -> None:
        """Apply an additive effect."""
        if self.tethered:
            self.add += amount
            self.recompute()
        else:
            self.set_value((self.val or 0.0) + amount)

    def apply_mult(self, factor: float) -> None:
        """Apply a multiplicative effect."""
        if self.tethered:
            self.mult *= factor
            self.recompute()
        else:
            self.set_value((self.val or 0.0) * factor)

    def stage(self, value: float) -> None:
        """Hold a putative new value while a cost is being checked.

        The staged value is not clamped, so a condition can see that a cost
        would overdraw the property.
        """
        self.temp = value
        self.temp_min = self.min
        self.temp_max = self.max

    def commit(self) -> None:
        """Turn the staged value into the current value."""
        if self.temp is not None:
            self.set_value(self.temp)
        self.discard()

    def discard(self) -> None:
        """Drop the staged value."""
        self.temp = self.temp_min = self.temp_max = None


__all__ = [
    "category_order",
    "SourceLink",
    "Property",
]
