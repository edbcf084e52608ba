"""Tests for the restricted expression evaluator."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from faith_encounter.core.exceptions import ExpressionError
from faith_encounter.engine.expression import ExpressionEvaluator
from faith_encounter.models.kinds import PropertyBound, PropertyKind
from faith_encounter.models.property import Property


@pytest.fixture
def evaluator() -> ExpressionEvaluator:
    """Provide an evaluator with the default functions."""
    return ExpressionEvaluator()


@pytest.fixture
def faith() -> Property:
    """Provide a computed property with a window."""
    prop = Property(
        PropertyKind(
            id="faith",
            val=PropertyBound(base=6),
            min=PropertyBound(base=0),
            max=PropertyBound(base=20),
        ),
        holder_id="skeptic-1",
    )
    prop.recompute()
    return prop


class TestEvaluate:
    """Tests for supported constructs."""

    @pytest.mark.parametrize(
        ("expression", "expected"),
        [
            ("1 + 2 * 3", 7),
            ("7 // 2", 3),
            ("7 % 2", 1),
            ("-value", -4),
            ("value / 2", 2),
            ("value >= 0", True),
            ("0 <= value < 3", False),
            ("'cleric' in classes", True),
            ("'fallen' not in classes", True),
            ("1 if value > 3 else 0", 1),
            ("[value, 1]", [4, 1]),
            ("(value, 1)", (4, 1)),
            ("not value", False),
        ],
    )
    def test_constructs(self, evaluator: ExpressionEvaluator, expression: str, expected: object) -> None:
        """Test arithmetic, comparison and display expressions."""
        context = {"value": 4, "classes": {"cleric"}}

        assert evaluator.evaluate(expression, context) == expected

    def test_short_circuit(self, evaluator: ExpressionEvaluator) -> None:
        """Test boolean operators stop at the deciding operand."""
        assert evaluator.evaluate("False and missing") is False
        assert evaluator.evaluate("0 or 5") == 5

    def test_mapping_access(self, evaluator: ExpressionEvaluator) -> None:
        """Test mappings can be read by key and by attribute."""
        context = {"sides": {"one": {"points": 3}}}

        assert evaluator.evaluate("sides['one']['points']", context) == 3
        assert evaluator.evaluate("sides.one.points", context) == 3

    def test_property_attributes(self, evaluator: ExpressionEvaluator, faith: Property) -> None:
        """Test whitelisted attributes of live objects can be read."""
        assert evaluator.evaluate("p.val + p.max", {"p": faith}) == 26

    def test_functions(self, evaluator: ExpressionEvaluator) -> None:
        """Test the default function whitelist."""
        context = {"xs": [3, -1, 2]}

        assert evaluator.evaluate("max(xs)", context) == 3
        assert evaluator.evaluate("min(1, 5)", context) == 1
        assert evaluator.evaluate("abs(-2) + round(2.6)", context) == 5
        assert evaluator.evaluate("len(xs) == count(xs)", context) is True

    def test_prop_function(self, evaluator: ExpressionEvaluator, faith: Property) -> None:
        """Test prop() reads a computed value of an owner's property."""
        owner = SimpleNamespace(props={"faith": faith})

        assert evaluator.evaluate("prop(owner, 'faith')", {"owner": owner}) == 6
        assert evaluator.evaluate("prop(owner, 'faith', 'max')", {"owner": owner}) == 20
        assert evaluator.evaluate("prop(owner, 'charisma')", {"owner": owner}) is None

    def test_custom_functions(self) -> None:
        """Test extra functions can be registered."""
        evaluator = ExpressionEvaluator(functions={"double": lambda x: 2 * x})

        assert evaluator.evaluate("double(value)", {"value": 3}) == 6
        assert evaluator.evaluate("abs(-1)") == 1

    def test_compiled_trees_are_cached(self, evaluator: ExpressionEvaluator) -> None:
        """Test repeated expressions are parsed once."""
        assert evaluator.compile("value + 1") is evaluator.compile("value + 1")

    def test_evaluate_number(self, evaluator: ExpressionEvaluator) -> None:
        """Test numeric results pass and other results fail."""
        assert evaluator.evaluate_number("value * 2", {"value": 1.5}) == 3.0
        with pytest.raises(ExpressionError):
            evaluator.evaluate_number("value > 1", {"value": 2})
        with pytest.raises(ExpressionError):
            evaluator.evaluate_number("'two'")

    def test_evaluate_bool(self, evaluator: ExpressionEvaluator) -> None:
        """Test results are reduced to truth values."""
        assert evaluator.evaluate_bool("count(xs)", {"xs": []}) is False
        assert evaluator.evaluate_bool("count(xs)", {"xs": [1]}) is True


class TestRejected:
    """Tests for expressions the evaluator refuses."""

    @pytest.mark.parametrize(
        "expression",
        [
            "value +",
            "x = 1",
            "lambda: 1",
            "[x for x in xs]",
            "{'a': 1}",
            "open('rules.xml')",
            "value.bit_length()",
            "round(value, ndigits=1)",
            "__import__('os')",
        ],
    )
    def test_unsupported(self, evaluator: ExpressionEvaluator, expression: str) -> None:
        """Test syntax errors, unsafe constructs and unknown functions."""
        with pytest.raises(ExpressionError):
            evaluator.evaluate(expression, {"value": 1, "xs": []})

    def test_unknown_name(self, evaluator: ExpressionEvaluator) -> None:
        """Test unknown names fail and the error names the expression."""
        with pytest.raises(ExpressionError) as exc_info:
            evaluator.evaluate("missing + 1")

        assert exc_info.value.details["expression"] == "missing + 1"

    def test_private_attribute(self, evaluator: ExpressionEvaluator, faith: Property) -> None:
        """Test dunder and private attributes are never readable."""
        with pytest.raises(ExpressionError):
            evaluator.evaluate("p.__class__", {"p": faith})

    def test_unlisted_attribute(self, evaluator: ExpressionEvaluator, faith: Property) -> None:
        """Test attributes outside the whitelist are refused."""
        with pytest.raises(ExpressionError):
            evaluator.evaluate("p.kind", {"p": faith})

    def test_missing_mapping_key(self, evaluator: ExpressionEvaluator) -> None:
        """Test attribute access on a mapping needs the key."""
        with pytest.raises(ExpressionError):
            evaluator.evaluate("ctx.points", {"ctx": {}})

    def test_runtime_errors_are_wrapped(self, evaluator: ExpressionEvaluator) -> None:
        """Test arithmetic and lookup failures become expression errors."""
        with pytest.raises(ExpressionError):
            evaluator.evaluate("1 / 0")
        with pytest.raises(ExpressionError):
            evaluator.evaluate("xs[3]", {"xs": []})
        with pytest.raises(ExpressionError):
            evaluator.evaluate("'abc'[0]")
