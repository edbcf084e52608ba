"""Restricted evaluator for the code expressions embedded in rules.

Rules carry small expressions (cost values, condition checks, target
predicates). They are parsed with ``ast`` and evaluated by walking a
whitelist of node types; nothing is ever passed to ``eval``.

Supported: literals, names from the evaluation context, arithmetic,
comparisons (including ``in``), short-circuit boolean logic, conditional
expressions, list/tuple displays, subscripts on mappings and sequences,
read-only attribute access to entity and property state, and the
functions min, max, abs, round, len, count and prop.

Example:
    >>> evaluator = ExpressionEvaluator()
    >>> evaluator.evaluate("value >= 0 and count(matches) < 3", {"value": 2, "matches": []})
    True
"""

from __future__ import annotations

import ast
import operator
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Callable

from faith_encounter.core.exceptions import ExpressionError
from faith_encounter.core.logging import get_logger
from faith_encounter.models.enums import PropertyCategory


logger = get_logger(__name__)


READABLE_ATTRIBUTES = frozenset(
    {
        # Entities and sides
        "id",
        "name",
        "side",
        "classes",
        "kind_id",
        "props",
        "holder",
        "creator",
        "holder_id",
        "creator_id",
        "finished",
        "active",
        "alive",
        "equipped",
        "target_ids",
        "target_id",
        "developing_id",
        "research_points",
        "probing_points",
        "secrets_found",
        # Properties
        "val",
        "min",
        "max",
        "unmod",
        "unmod_min",
        "unmod_max",
        "prev",
        "temp",
        "temp_min",
        "temp_max",
        "add",
        "mult",
    }
)
"""Attributes expressions may read from non-mapping objects."""


def _count(items: Iterable[Any]) -> int:
    return sum(1 for _ in items)


def _prop(owner: Any, prop_id: str, category: str = PropertyCategory.VAL.value) -> float | None:
    """Read one computed value of an owner's property, or None if absent."""
    props = getattr(owner, "props", None)
    if props is None or prop_id not in props:
        return None
    return props[prop_id].value_of(PropertyCategory(category))


DEFAULT_FUNCTIONS: dict[str, Callable[..., Any]] = {
    "min": min,
    "max": max,
    "abs": abs,
    "round": round,
    "len": len,
    "count": _count,
    "prop": _prop,
}


class ExpressionEvaluator:
    """Evaluates rule expressions against a context of named values.

    Parsed trees are cached per expression source.

    Attributes:
        functions: Callables expressions may invoke by name.
    """

    SAFE_NODES: frozenset[type[ast.AST]] = frozenset(
        {
            ast.Expression,
            ast.Constant,
            ast.Name,
            ast.Load,
            ast.Attribute,
            ast.Subscript,
            ast.Compare,
            ast.BoolOp,
            ast.BinOp,
            ast.UnaryOp,
            ast.IfExp,
            ast.Call,
            ast.List,
            ast.Tuple,
            ast.And,
            ast.Or,
            ast.Not,
            ast.USub,
            ast.UAdd,
            ast.Eq,
            ast.NotEq,
            ast.Lt,
            ast.LtE,
            ast.Gt,
            ast.GtE,
            ast.In,
            ast.NotIn,
            ast.Add,
            ast.Sub,
            ast.Mult,
            ast.Div,
            ast.FloorDiv,
            ast.Mod,
        }
    )

    OPERATORS: dict[type[ast.AST], Callable[..., Any]] = {
        ast.Add: operator.add,
        ast.Sub: operator.sub,
        ast.Mult: operator.mul,
        ast.Div: operator.truediv,
        ast.FloorDiv: operator.floordiv,
        ast.Mod: operator.mod,
        ast.Eq: operator.eq,
        ast.NotEq: operator.ne,
        ast.Lt: operator.lt,
        ast.LtE: operator.le,
        ast.Gt: operator.gt,
        ast.GtE: operator.ge,
        ast.In: lambda x, y: x in y,
        ast.NotIn: lambda x, y: x not in y,
        ast.Not: operator.not_,
        ast.USub: operator.neg,
        ast.UAdd: operator.pos,
    }

    def __init__(self, functions: Mapping[str, Callable[..., Any]] | None = None) -> None:
        self.functions: dict[str, Callable[..., Any]] = dict(DEFAULT_FUNCTIONS)
        if functions:
            self.functions.update(functions)
        self._cache: dict[str, ast.Expression] = {}

    # =========================================================================
    # Public API
    # =========================================================================

    def compile(self, expression: str) -> ast.Expression:
        """Parse an expression and check it against the node whitelist.

        Raises:
            ExpressionError: On a syntax error or a disallowed construct.
        """
        tree = self._cache.get(expression)
        if tree is not None:
            return tree
        try:
            tree = ast.parse(expression.strip(), mode="eval")
        except SyntaxError as exc:
            raise ExpressionError(f"Invalid expression syntax: {exc.msg}", expression=expression) from exc
        for node in ast.walk(tree):
            if type(node) not in self.SAFE_NODES:
                raise ExpressionError(
                    f"Unsupported construct {type(node).__name__}",
                    expression=expression,
                )
        self._cache[expression] = tree
        return tree

    def evaluate(self, expression: str, context: Mapping[str, Any] | None = None) -> Any:
        """Evaluate an expression.

        Args:
            expression: Expression source.
            context: Names visible to the expression.

        Returns:
            The expression's value.

        Raises:
            ExpressionError: If the expression is invalid or fails.
        """
        tree = self.compile(expression)
        try:
            return self._eval_node(tree.body, context or {})
        except ExpressionError as exc:
            if "expression" not in exc.details:
                raise ExpressionError(exc.message, expression=expression, details=exc.details) from exc
            raise
        except (ArithmeticError, TypeError, ValueError, KeyError, IndexError) as exc:
            raise ExpressionError(
                f"Expression evaluation failed: {exc}",
                expression=expression,
            ) from exc

    def evaluate_number(self, expression: str, context: Mapping[str, Any] | None = None) -> float:
        """Evaluate an expression that must produce a number.

        Raises:
            ExpressionError: If the result is not a number.
        """
        result = self.evaluate(expression, context)
        if isinstance(result, bool) or not isinstance(result, (int, float)):
            raise ExpressionError(
                f"Expression produced {type(result).__name__}, expected a number",
                expression=expression,
            )
        return result

    def evaluate_bool(self, expression: str, context: Mapping[str, Any] | None = None) -> bool:
        return bool(self.evaluate(expression, context))

    # =========================================================================
    # Node Evaluation
    # =========================================================================

    def _eval_node(self, node: ast.AST, context: Mapping[str, Any]) -> Any:
        if isinstance(node, ast.Constant):
            return node.value
        if isinstance(node, ast.Name):
            if node.id in context:
                return context[node.id]
            raise ExpressionError(f"Unknown name {node.id!r}")
        if isinstance(node, ast.Attribute):
            return self._read_attribute(self._eval_node(node.value, context), node.attr)
        if isinstance(node, ast.Subscript):
            container = self._eval_node(node.value, context)
            key = self._eval_node(node.slice, context)
            if not isinstance(container, (Mapping, Sequence)) or isinstance(container, str):
                raise ExpressionError(f"Cannot index {type(container).__name__}")
            return container[key]
        if isinstance(node, ast.Compare):
            left = self._eval_node(node.left, context)
            for op, right_node in zip(node.ops, node.comparators):
                right = self._eval_node(right_node, context)
                if not self.OPERATORS[type(op)](left, right):
                    return False
                left = right
            return True
        if isinstance(node, ast.BoolOp):
            if isinstance(node.op, ast.And):
                result: Any = True
                for value in node.values:
                    result = self._eval_node(value, context)
                    if not result:
                        return result
                return result
            result = False
            for value in node.values:
                result = self._eval_node(value, context)
                if result:
                    return result
            return result
        if isinstance(node, ast.BinOp):
            left = self._eval_node(node.left, context)
            right = self._eval_node(node.right, context)
            return self.OPERATORS[type(node.op)](left, right)
        if isinstance(node, ast.UnaryOp):
            return self.OPERATORS[type(node.op)](self._eval_node(node.operand, context))
        if isinstance(node, ast.IfExp):
            if self._eval_node(node.test, context):
                return self._eval_node(node.body, context)
            return self._eval_node(node.orelse, context)
        if isinstance(node, ast.Call):
            return self._call(node, context)
        if isinstance(node, ast.List):
            return [self._eval_node(el, context) for el in node.elts]
        if isinstance(node, ast.Tuple):
            return tuple(self._eval_node(el, context) for el in node.elts)
        raise ExpressionError(f"Unsupported construct {type(node).__name__}")

    def _read_attribute(self, obj: Any, name: str) -> Any:
        if isinstance(obj, Mapping):
            if name in obj:
                return obj[name]
            raise ExpressionError(f"Key {name!r} not found")
        if name.startswith("_") or name not in READABLE_ATTRIBUTES or not hasattr(obj, name):
            raise ExpressionError(f"Attribute {name!r} is not readable on {type(obj).__name__}")
        return getattr(obj, name)

    def _call(self, node: ast.Call, context: Mapping[str, Any]) -> Any:
        if not isinstance(node.func, ast.Name) or node.func.id not in self.functions:
            raise ExpressionError("Only whitelisted functions can be called")
        if node.keywords:
            raise ExpressionError(f"Keyword arguments are not supported in {node.func.id}()")
        args = [self._eval_node(arg, context) for arg in node.args]
        return self.functions[node.func.id](*args)


__all__ = [
    "READABLE_ATTRIBUTES",
    "DEFAULT_FUNCTIONS",
    "ExpressionEvaluator",
]
