"""Tests for entity kinds, entities, containers and sides."""

from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from faith_encounter.core.exceptions import (
    DuplicateIdError,
    EncounterError,
    InvalidTypeError,
    ValidationError,
)
from faith_encounter.models.containers import EntityList, EntityMap
from faith_encounter.models.entity import (
    Action,
    Argument,
    Booster,
    Character,
    Encounter,
    Trait,
    create_entity,
    of_variant,
)
from faith_encounter.models.enums import EntityVariant, SideIndex
from faith_encounter.models.kinds import (
    ActionKind,
    ArgumentKind,
    BoosterKind,
    CharacterKind,
    EncounterKind,
    PropertyBound,
    PropertyKind,
    TraitKind,
)
from faith_encounter.models.side import Side


@pytest.fixture
def preacher_kind() -> CharacterKind:
    """Provide a character kind with one property."""
    return CharacterKind(
        id="preacher",
        name="Preacher",
        classes={"cleric"},
        props=[PropertyKind(id="faith", val=PropertyBound(base=10))],
        actions=["sermon"],
    )


class TestEntityKinds:
    """Tests for kind templates."""

    def test_validate_kind_accepts_hyphen_case(self) -> None:
        """Test a well-formed id passes."""
        ArgumentKind(id="free-will").validate_kind()

    @pytest.mark.parametrize("bad_id", [None, "", "  ", "42", "free will", "free--will"])
    def test_validate_kind_rejects_bad_ids(self, bad_id: str | None) -> None:
        """Test missing, empty, numeric and malformed ids are rejected."""
        with pytest.raises(ValidationError):
            ArgumentKind(id=bad_id).validate_kind()

    def test_get_prop(self, preacher_kind: CharacterKind) -> None:
        """Test finding a property template by id."""
        assert preacher_kind.get_prop("faith").id == "faith"
        assert preacher_kind.get_prop("doubt") is None

    def test_aliases(self) -> None:
        """Test camelCase and keyword aliases populate fields."""
        booster = BoosterKind.model_validate({"id": "rhetoric", "global": True, "class": {"speech"}})

        assert booster.global_ is True
        assert booster.classes == {"speech"}

    def test_unknown_field_rejected(self) -> None:
        """Test rule models refuse unknown fields."""
        with pytest.raises(PydanticValidationError):
            ArgumentKind(id="free-will", colour="red")


class TestEntities:
    """Tests for entity instantiation."""

    def test_create_from_kind(self, preacher_kind: CharacterKind) -> None:
        """Test an entity takes its name, classes and properties from the kind."""
        entity = create_entity(preacher_kind, side=1, classes={"leader"})

        assert isinstance(entity, Character)
        assert entity.variant == EntityVariant.CHARACTER
        assert entity.name == "Preacher"
        assert entity.side is SideIndex.ONE
        assert entity.classes == {"cleric", "leader"}
        assert set(entity.props) == {"faith"}
        assert entity.alive is True
        assert entity.action_ids == ["sermon"]

    def test_wrong_kind_rejected(self, preacher_kind: CharacterKind) -> None:
        """Test an entity variant refuses a kind of another variant."""
        with pytest.raises(InvalidTypeError):
            Argument(kind=preacher_kind)

    def test_create_from_non_kind(self) -> None:
        """Test create_entity refuses anything but a kind."""
        with pytest.raises(InvalidTypeError):
            create_entity("preacher")  # type: ignore[arg-type]

    def test_assign_id_updates_properties(self, preacher_kind: CharacterKind) -> None:
        """Test property holder ids follow the entity id."""
        entity = create_entity(preacher_kind)
        entity.assign_id("preacher-1")

        assert entity.props["faith"].holder_id == "preacher-1"

    def test_action_defaults(self) -> None:
        """Test a new action is active and unfinished."""
        action = create_entity(ActionKind(id="sermon"))

        assert isinstance(action, Action)
        assert action.finished is False
        assert action.active is True

    def test_encounter_identity(self) -> None:
        """Test the encounter has a fixed id and no side."""
        encounter = create_entity(EncounterKind(id="town-square"), side=2)

        assert isinstance(encounter, Encounter)
        assert encounter.id == "encounter"
        assert encounter.side is None

    def test_holder_resolution(self, preacher_kind: CharacterKind) -> None:
        """Test holder and creator resolve through the arena."""
        arena: EntityMap = EntityMap()
        preacher = create_entity(preacher_kind, id="preacher-1", side=1)
        trait = create_entity(
            TraitKind(id="zealous"), id="zealous-1", holder_id="preacher-1", creator_id="preacher-1"
        )
        for entity in (preacher, trait):
            arena.add(entity)
            entity.attach(arena)

        assert trait.holder is preacher
        assert trait.creator is preacher
        assert preacher.traits == [trait]
        assert preacher.held(EntityVariant.ACTION) == []

    def test_attach_to_second_arena(self, preacher_kind: CharacterKind) -> None:
        """Test an entity belongs to a single encounter."""
        entity = create_entity(preacher_kind, id="preacher-1")
        entity.attach(EntityMap())

        with pytest.raises(EncounterError):
            entity.attach(EntityMap())

    def test_booster_is_global_without_holder(self) -> None:
        """Test boosters without a holder are global."""
        assert Booster(kind=BoosterKind(id="rhetoric")).is_global is True
        assert Booster(kind=BoosterKind(id="rhetoric"), holder_id="doubt").is_global is False

    def test_of_variant(self, preacher_kind: CharacterKind) -> None:
        """Test filtering entities by variant."""
        trait = Trait(kind=TraitKind(id="zealous"))
        preacher = create_entity(preacher_kind)

        assert of_variant([trait, preacher], EntityVariant.TRAIT) == [trait]


class TestEntityList:
    """Tests for the insertion-ordered container."""

    def test_lookup(self) -> None:
        """Test lookup by id, name and classes."""
        kinds = EntityList(
            [
                ArgumentKind(id="free-will", name="Free Will", classes={"moral"}),
                ArgumentKind(id="fate", name="Fate", classes={"moral", "cosmic"}),
            ]
        )

        assert kinds.get_by_id("fate").name == "Fate"
        assert kinds.get_by_id("doubt") is None
        assert [k.id for k in kinds.get_by_name("Free Will")] == ["free-will"]
        assert [k.id for k in kinds.get_by_classes({"moral"})] == ["free-will", "fate"]
        assert [k.id for k in kinds.get_by_classes({"moral", "cosmic"})] == ["fate"]
        assert kinds.ids() == ["free-will", "fate"]

    def test_duplicate_id(self) -> None:
        """Test ids are unique within a list."""
        kinds = EntityList([ArgumentKind(id="fate")])

        with pytest.raises(DuplicateIdError):
            kinds.add(ArgumentKind(id="fate"))

    def test_rules_without_id_allowed(self) -> None:
        """Test several id-less rules can be stored."""
        kinds = EntityList([ArgumentKind(), ArgumentKind()])

        assert len(kinds) == 2

    def test_wrong_type(self) -> None:
        """Test only rules and entities are stored."""
        with pytest.raises(InvalidTypeError):
            EntityList().add("fate")  # type: ignore[arg-type]

    def test_remove_by_identity(self) -> None:
        """Test removal and membership use identity."""
        fate = ArgumentKind(id="fate")
        kinds = EntityList([fate])

        assert ArgumentKind(id="fate") not in kinds
        kinds.remove(fate)
        assert len(kinds) == 0

    def test_equality_compares_items(self) -> None:
        """Test two lists with equal rules compare equal."""
        assert EntityList([ArgumentKind(id="fate")]) == EntityList([ArgumentKind(id="fate")])
        assert EntityList([ArgumentKind(id="fate")]) != EntityList([ArgumentKind(id="doom")])


class TestEntityMap:
    """Tests for the id-indexed container."""

    def test_requires_id(self) -> None:
        """Test items without an id are refused."""
        with pytest.raises(ValidationError):
            EntityMap().add(ArgumentKind())

    def test_duplicate_id(self) -> None:
        """Test ids are unique within a map."""
        arena = EntityMap([ArgumentKind(id="fate")])

        with pytest.raises(DuplicateIdError):
            arena.add(ArgumentKind(id="fate"))

    def test_get_and_remove(self) -> None:
        """Test lookup and removal by id."""
        fate = ArgumentKind(id="fate")
        arena = EntityMap([fate])

        assert arena.get_by_id("fate") is fate
        assert fate in arena
        arena.remove(fate)
        assert arena.get_by_id("fate") is None


class TestSide:
    """Tests for encounter sides."""

    def test_identity(self) -> None:
        """Test side ids and names."""
        assert Side(SideIndex.ONE).id == "side-1"
        assert Side(SideIndex.TWO).name == "Side 2"
        assert Side(SideIndex.NEUTRAL).name == "Neutral"

    def test_opponents(self) -> None:
        """Test which sides oppose which."""
        assert SideIndex.ONE.opponents == (SideIndex.TWO,)
        assert SideIndex.TWO.opponents == (SideIndex.ONE,)
        assert SideIndex.NEUTRAL.opponents == (SideIndex.ONE, SideIndex.TWO)

    def test_collections_are_arena_views(self, preacher_kind: CharacterKind) -> None:
        """Test side collections follow the arena."""
        arena: EntityMap = EntityMap()
        side = Side(SideIndex.ONE, arena=arena)
        preacher = create_entity(preacher_kind, id="preacher-1", side=1)
        argument = create_entity(ArgumentKind(id="free-will"), id="free-will-1", side=1)
        booster = create_entity(BoosterKind(id="rhetoric"), id="rhetoric-1", side=1, holder_id="free-will-1")
        other = create_entity(ArgumentKind(id="doubt"), id="doubt-1", side=2)
        for entity in (preacher, argument, booster, other):
            arena.add(entity)
            entity.attach(arena)

        assert side.chars == [preacher]
        assert side.args == [argument]
        assert side.boosters == [booster]
        assert side.g_boosters == []
        assert side.arg_boosters == [booster]
        assert side.friendly_boosters == [booster]
        assert side.adverse_boosters == []
