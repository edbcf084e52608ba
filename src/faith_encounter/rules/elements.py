"""Readers turning rule elements into rule models.

Each reader knows which attributes and child elements its tag accepts,
converts attribute strings into typed values, and builds the pydantic rule
model with only the explicitly given fields set, so that an alter merge
can tell given attributes from defaults.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any, Callable

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from faith_encounter.core.constants import COMMON_ATTRIBUTES
from faith_encounter.core.exceptions import ValidationError
from faith_encounter.models.condition import ExistsCondition
from faith_encounter.models.containers import EntityList
from faith_encounter.models.cost import Cost
from faith_encounter.models.enums import Mode
from faith_encounter.models.kinds import KIND_CLASSES, EntityKind, PropertyKind, TargetSpec
from faith_encounter.models.rule import Rule
from faith_encounter.models.visibility import (
    VISIBILITY_RULES,
    PropertyVisibility,
    VisibilityRule,
)
from faith_encounter.rules.parser import RuleFrame, RuleParser


Converter = Callable[[str, ET.Element, str], Any]


# =============================================================================
# Element Schemas
# =============================================================================

_RESEARCH = {"tier": "integer", "researchable": "boolean"}

KIND_ATTRIBUTES: dict[str, dict[str, str]] = {
    "action": {"name": "text", "buildup": "integer", **_RESEARCH},
    "argument": {"name": "text", **_RESEARCH},
    "booster": {"name": "text", "global": "boolean", **_RESEARCH},
    "character": {"name": "text"},
    "effect": {"name": "text", "property": "text", "operation": "text", "value": "expression"},
    "encounter": {"name": "text"},
    "item": {"name": "text"},
    "trait": {"name": "text", "scope": "text", **_RESEARCH},
}
"""Attributes accepted by each kind tag, besides id, class and mode."""

KIND_CHILDREN: dict[str, frozenset[str]] = {
    "action": frozenset({"property", "cost", "existsCondition", "target", "effect", "visibility"}),
    "argument": frozenset({"property", "cost", "trait", "visibility"}),
    "booster": frozenset({"property", "cost", "visibility"}),
    "character": frozenset({"property", "action", "trait", "visibility"}),
    "effect": frozenset({"target"}),
    "encounter": frozenset({"property", "trait", "visibility"}),
    "item": frozenset({"property", "trait"}),
    "trait": frozenset({"property", "cost", "visibility"}),
}
"""Child tags accepted by each kind tag."""

_REFERENCE_FIELDS = {"trait": "traits", "action": "actions", "effect": "effects"}
_RULE_LIST_FIELDS = {"property": "props", "cost": "costs", "existsCondition": "conds"}

# Nested conditions are checked when read and again once merged.
_NESTED_CONTEXT = {"partial": True}

COST_ATTRIBUTES = {"property": "text", "value": "cost_value", "target": "text", "template": "text"}

CONDITION_ATTRIBUTES = {
    "rel": "text",
    "kindId": "text",
    "entityId": "text",
    "kindName": "text",
    "entityName": "text",
    "excludedClasses": "classes",
    "number": "integer",
    "min": "integer",
    "max": "integer",
    "entityCode": "text",
    "valueCode": "text",
    "template": "text",
}

TARGET_ATTRIBUTES = {
    "type": "text",
    "id": "text",
    "class": "classes",
    "kindId": "text",
    "notClass": "classes",
    "side": "text",
    "finished": "boolean",
    "active": "boolean",
    "alive": "boolean",
    "code": "text",
}

PROPERTY_ATTRIBUTES = {
    "name": "text",
    "base": "base",
    "coeff": "number",
    "tethered": "boolean",
    "min": "number",
    "max": "number",
}

BOUND_ATTRIBUTES = {"base": "base", "coeff": "number", "tethered": "boolean"}

SOURCE_ATTRIBUTES = {"property": "text", "target": "text", "of": "text"}

PROPERTY_VISIBILITY_ATTRIBUTES = {"vis": "boolean", "alwaysHide": "boolean", "refresh": "boolean"}


class ElementReader:
    """Builds rule models from elements.

    Attributes:
        parser: Parsing state used for modes, ids and errors.
        cost_templates: Templates referenced by nested costs.
        cond_templates: Templates referenced by nested conditions.
    """

    def __init__(
        self,
        parser: RuleParser,
        *,
        cost_templates: EntityList[Rule],
        cond_templates: EntityList[Rule],
    ) -> None:
        self.parser = parser
        self.cost_templates = cost_templates
        self.cond_templates = cond_templates
        self._converters: dict[str, Converter] = {
            "text": lambda raw, el, name: raw.strip(),
            "boolean": self.parser.parse_boolean,
            "number": self.parser.parse_number,
            "integer": self.parser.parse_integer,
            "classes": lambda raw, el, name: self.parser.parse_classes(raw),
            "base": self._convert_base,
            "cost_value": self._convert_cost_value,
            "expression": self._convert_expression,
        }

    # =========================================================================
    # Attribute Helpers
    # =========================================================================

    def _convert_base(self, raw: str, element: ET.Element, name: str) -> Any:
        value = raw.strip()
        if value in ("min", "max"):
            return value
        return self.parser.parse_number(value, element, name)

    def _convert_cost_value(self, raw: str, element: ET.Element, name: str) -> Any:
        value = raw.strip()
        if value.lower() in ("true", "false"):
            return value.lower() == "true"
        return self._convert_expression(value, element, name)

    def _convert_expression(self, raw: str, element: ET.Element, name: str) -> Any:
        value = raw.strip()
        try:
            return int(value)
        except ValueError:
            pass
        try:
            return float(value)
        except ValueError:
            return value

    def read_attributes(
        self,
        element: ET.Element,
        schema: dict[str, str],
        *,
        common: bool = True,
    ) -> dict[str, Any]:
        """Convert the attributes of an element according to a schema.

        Args:
            element: The element.
            schema: Attribute name to converter name.
            common: Whether id, class and mode are accepted too.

        Returns:
            Converted values keyed by attribute name, only for attributes
            present on the element. The class attribute is included; id and
            mode are resolved through the rule stack instead.
        """
        allowed = set(schema)
        if common:
            allowed |= COMMON_ATTRIBUTES
        self.parser.check_attributes(element, allowed)

        data: dict[str, Any] = {}
        for name, raw in element.attrib.items():
            if name in ("id", "mode") and common:
                continue
            if name == "class" and common:
                data["class"] = self.parser.parse_classes(raw)
                continue
            data[name] = self._converters[schema[name]](raw, element, name)
        return data

    def build(
        self,
        model: type[BaseModel],
        data: dict[str, Any],
        element: ET.Element,
        *,
        context: dict[str, Any] | None = None,
    ) -> Any:
        """Validate data into a model, reporting failures as parse errors."""
        try:
            return model.model_validate(data, context=context)
        except PydanticValidationError as exc:
            errors = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or element.tag}: {err['msg']}"
                for err in exc.errors()
            )
            self.parser.fail(f"Invalid <{element.tag}>: {errors}", element)
        except ValidationError as exc:
            self.parser.fail(f"Invalid <{element.tag}>: {exc.message}", element)

    def _check_children(self, element: ET.Element, allowed: frozenset[str] | set[str]) -> None:
        for child in element:
            if child.tag not in allowed:
                self.parser.fail(f"Unknown element <{child.tag}> in <{element.tag}>", child)

    def _open(self, element: ET.Element, top_level: bool) -> tuple[RuleFrame, dict[str, Any]]:
        frame = self.parser.open_rule(element, top_level=top_level)
        data: dict[str, Any] = {}
        if frame.rule_id is not None:
            data["id"] = frame.rule_id
        return frame, data

    # =========================================================================
    # Entity Kinds
    # =========================================================================

    def read_kind(self, element: ET.Element, *, top_level: bool = True) -> EntityKind:
        """Read an entity kind element.

        Args:
            element: One of the kind tags.
            top_level: Whether the element is a direct child of a rule-set.

        Returns:
            The kind, carrying its resolved mode.
        """
        tag = element.tag
        frame, data = self._open(element, top_level)
        try:
            data.update(self.read_attributes(element, KIND_ATTRIBUTES[tag]))
            self._check_children(element, KIND_CHILDREN[tag])

            lists: dict[str, list[Any]] = {}
            for child in element:
                if child.tag in _RULE_LIST_FIELDS:
                    reader = {
                        "property": self.read_property,
                        "cost": self.read_cost,
                        "existsCondition": self.read_condition,
                    }[child.tag]
                    lists.setdefault(_RULE_LIST_FIELDS[child.tag], []).append(reader(child))
                elif child.tag in _REFERENCE_FIELDS:
                    lists.setdefault(_REFERENCE_FIELDS[child.tag], []).append(
                        self.read_reference(child)
                    )
                elif child.tag == "target":
                    if "target" in data:
                        self.parser.fail(f"<{tag}> has more than one <target>", child)
                    data["target"] = self.read_target(child)
                elif child.tag == "visibility":
                    if "vis" in data:
                        self.parser.fail(f"<{tag}> has more than one <visibility>", child)
                    data["vis"] = self.read_visibility_rule(child, tag)
            data.update(lists)

            kind = self.build(KIND_CLASSES[tag], data, element, context=_NESTED_CONTEXT)
        finally:
            self.parser.close_rule()
        return kind.with_mode(frame.mode)

    def read_reference(self, element: ET.Element) -> str:
        """Read a ``<tag ref="kind-id"/>`` reference to another kind."""
        self.parser.check_attributes(element, {"ref"})
        if len(element):
            self.parser.fail(f"Reference <{element.tag}> must not have children", element)
        ref = (element.get("ref") or "").strip()
        if not ref:
            self.parser.fail(f"Reference <{element.tag}> needs a ref", element)
        return ref

    def read_target(self, element: ET.Element) -> TargetSpec:
        """Read a target specification."""
        data = self.read_attributes(element, TARGET_ATTRIBUTES, common=False)
        self._check_children(element, set())
        return self.build(TargetSpec, data, element)

    # =========================================================================
    # Properties
    # =========================================================================

    def read_property(self, element: ET.Element) -> PropertyKind:
        """Read a property template.

        Attributes base, coeff and tethered describe val; min and max are
        shorthand for bounds with a fixed base. <val>, <min> and <max>
        children override the shorthand.
        """
        frame, data = self._open(element, False)
        try:
            attributes = self.read_attributes(element, PROPERTY_ATTRIBUTES)
            self._check_children(element, {"val", "min", "max"})
            if "class" in attributes:
                data["class"] = attributes.pop("class")
            if "name" in attributes:
                data["name"] = attributes.pop("name")

            val = {k: attributes[k] for k in ("base", "coeff", "tethered") if k in attributes}
            if val:
                data["val"] = val
            for bound in ("min", "max"):
                if bound in attributes:
                    data[bound] = {"base": attributes[bound]}
            for child in element:
                data[child.tag] = self.read_bound(child)

            prop = self.build(PropertyKind, data, element)
        finally:
            self.parser.close_rule()
        return prop.with_mode(frame.mode)

    def read_bound(self, element: ET.Element) -> dict[str, Any]:
        schema = dict(BOUND_ATTRIBUTES)
        if element.tag != "val":
            del schema["tethered"]
        data = self.read_attributes(element, schema, common=False)
        self._check_children(element, {"source"})
        sources = [self.read_source(child) for child in element]
        if sources:
            data["sources"] = sources
        return data

    def read_source(self, element: ET.Element) -> dict[str, Any]:
        data = self.read_attributes(element, SOURCE_ATTRIBUTES, common=False)
        self._check_children(element, set())
        if "property" not in data:
            self.parser.fail("<source> needs a property", element)
        return data

    # =========================================================================
    # Costs and Conditions
    # =========================================================================

    def _template_data(
        self,
        element: ET.Element,
        templates: EntityList[Rule],
        template_id: str | None,
    ) -> dict[str, Any]:
        if template_id is None:
            return {}
        template = templates.get_by_id(template_id)
        if template is None:
            self.parser.fail(f"Unknown template {template_id!r}", element)
        return template.model_dump(by_alias=True, exclude_unset=True, exclude={"id"})

    def read_cost(self, element: ET.Element, *, top_level: bool = False) -> Cost:
        """Read a cost, starting from its template if it names one."""
        frame, data = self._open(element, top_level)
        try:
            attributes = self.read_attributes(element, COST_ATTRIBUTES)
            self._check_children(element, {"existsCondition"})
            merged = self._template_data(element, self.cost_templates, attributes.get("template"))
            merged.update(data)
            merged.update(attributes)
            conds = [self.read_condition(child) for child in element]
            if conds:
                merged["conds"] = conds
            cost = self.build(Cost, merged, element, context=_NESTED_CONTEXT)
        finally:
            self.parser.close_rule()
        return cost.with_mode(frame.mode)

    def read_condition(self, element: ET.Element, *, top_level: bool = False) -> ExistsCondition:
        """Read an existence condition, starting from its template if it names one.

        Conditions in alter mode may be partial; they are validated once
        merged into their target.
        """
        frame, data = self._open(element, top_level)
        try:
            attributes = self.read_attributes(element, CONDITION_ATTRIBUTES)
            self._check_children(element, set())
            merged = self._template_data(element, self.cond_templates, attributes.get("template"))
            merged.update(data)
            merged.update(attributes)
            condition = self.build(
                ExistsCondition,
                merged,
                element,
                context={"partial": frame.mode == Mode.ALTER},
            )
        finally:
            self.parser.close_rule()
        return condition.with_mode(frame.mode)

    # =========================================================================
    # Visibility
    # =========================================================================

    def read_visibility_rule(self, element: ET.Element, category: str) -> VisibilityRule:
        """Read a visibility rule of one category.

        Used both for category elements inside a top-level <visibility>
        block and for a <visibility> element nested in a kind.

        Raises:
            ParseError: If the category has no visibility schema.
        """
        model = VISIBILITY_RULES.get(category)
        if model is None:
            self.parser.fail(f"<{category}> does not support visibility rules", element)
        frame, data = self._open(element, False)
        try:
            schema = {
                field.alias or name: "boolean"
                for name, field in model.model_fields.items()
                if name not in ("id", "classes", "prop_list")
            }
            data.update(self.read_attributes(element, schema))
            self._check_children(element, {"property"} if model.has_properties else set())
            prop_list = [self.read_property_visibility(child) for child in element]
            if prop_list:
                data["propList"] = prop_list
            rule = self.build(model, data, element)
        finally:
            self.parser.close_rule()
        return rule.with_mode(frame.mode)

    def read_property_visibility(self, element: ET.Element) -> PropertyVisibility:
        """Read a per-property visibility override.

        Raises:
            ParseError: If the element has children.
        """
        frame, data = self._open(element, False)
        try:
            data.update(self.read_attributes(element, PROPERTY_VISIBILITY_ATTRIBUTES))
            if len(element):
                self.parser.fail("Property visibility rules must not have children", element)
            rule = self.build(PropertyVisibility, data, element)
        finally:
            self.parser.close_rule()
        return rule.with_mode(frame.mode)


__all__ = [
    "KIND_ATTRIBUTES",
    "KIND_CHILDREN",
    "ElementReader",
]
