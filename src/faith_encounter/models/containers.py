"""Classification containers for kinds and entities.

EntityMap indexes items by id for constant-time lookup and serves as the
arena of an encounter. EntityList keeps insertion order, which the rule
merge engine depends on for deterministic replay. Both expose the same
lookup interface: by id, by name and by class intersection.
"""

from __future__ import annotations

from typing import Generic, Iterable, Iterator, TypeVar

from faith_encounter.core.exceptions import DuplicateIdError, InvalidTypeError, ValidationError
from faith_encounter.models.entity import Entity
from faith_encounter.models.rule import Rule


T = TypeVar("T", Rule, Entity)

CLASSIFIABLE = (Rule, Entity)
"""Types accepted by the containers."""


def _check_type(item: object) -> None:
    if not isinstance(item, CLASSIFIABLE):
        raise InvalidTypeError(
            "Only entities and entity kinds can be stored",
            received_type=type(item).__name__,
        )


class _Classified(Generic[T]):
    """Lookup operations shared by both container variants."""

    def __iter__(self) -> Iterator[T]:
        raise NotImplementedError

    def get_by_id(self, item_id: str | None) -> T | None:
        for item in self:
            if item.id == item_id:
                return item
        return None

    def get_by_name(self, name: str) -> list[T]:
        """All items with the given display name; names are not unique."""
        return [item for item in self if item.name == name]  # type: ignore[union-attr]

    def get_by_classes(self, classes: Iterable[str]) -> list[T]:
        """All items whose classes include every given class."""
        wanted = set(classes)
        return [item for item in self if wanted <= item.classes]

    def ids(self) -> list[str]:
        return [item.id for item in self if item.id is not None]


class EntityList(_Classified[T]):
    """Insertion-ordered container.

    Example:
        >>> kinds = EntityList()
        >>> kinds.add(ArgumentKind(id="free-will", name="Free Will"))
        >>> kinds.get_by_id("free-will").name
        'Free Will'
    """

    def __init__(self, items: Iterable[T] = ()) -> None:
        self._items: list[T] = []
        self.add(*items)

    def add(self, *items: T) -> None:
        """Append items.

        Raises:
            InvalidTypeError: If an item is not an entity or entity kind.
            DuplicateIdError: If an item's id is already present.
        """
        for item in items:
            _check_type(item)
            if item.id is not None and self.get_by_id(item.id) is not None:
                raise DuplicateIdError(
                    f"An item with id {item.id!r} is already present",
                    entity_id=item.id,
                )
            self._items.append(item)

    append = add

    def remove(self, item: T) -> None:
        """Remove an item by identity; absent items are ignored."""
        for index, existing in enumerate(self._items):
            if existing is item:
                del self._items[index]
                return

    def clear(self) -> None:
        self._items.clear()

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> T:
        return self._items[index]

    def __contains__(self, item: object) -> bool:
        return any(existing is item for existing in self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EntityList):
            return NotImplemented
        return self._items == other._items

    def __repr__(self) -> str:
        return f"EntityList({self._items!r})"


class EntityMap(_Classified[T]):
    """Id-indexed container; every stored item needs an id."""

    def __init__(self, items: Iterable[T] = ()) -> None:
        self._items: dict[str, T] = {}
        self.add(*items)

    def add(self, *items: T) -> None:
        """Index items by id.

        Raises:
            InvalidTypeError: If an item is not an entity or entity kind.
            ValidationError: If an item has no id.
            DuplicateIdError: If an item's id is already present.
        """
        for item in items:
            _check_type(item)
            if item.id is None:
                raise ValidationError(
                    "Items stored in a map need an id",
                    field_name="id",
                )
            if item.id in self._items:
                raise DuplicateIdError(
                    f"An item with id {item.id!r} is already present",
                    entity_id=item.id,
                )
            self._items[item.id] = item

    def remove(self, item: T) -> None:
        """Remove an item; absent items are ignored."""
        if item.id is not None and self._items.get(item.id) is item:
            del self._items[item.id]

    def get_by_id(self, item_id: str | None) -> T | None:
        if item_id is None:
            return None
        return self._items.get(item_id)

    def clear(self) -> None:
        self._items.clear()

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item: object) -> bool:
        item_id = getattr(item, "id", None)
        return item_id is not None and self._items.get(item_id) is item

    def __repr__(self) -> str:
        return f"EntityMap({list(self._items)!r})"


__all__ = [
    "EntityList",
    "EntityMap",
]
