# src/graphstage/engine/expression_parser.py
"""Restricted expression language for element extractors.

Stages that group, weigh, or transform elements take small user expressions
such as ``element['age'] // 10`` or ``element.get('name', 'anon')``. They are
parsed with Python's ast module and checked against a whitelist before any
element is seen. Nothing is ever passed to eval().

Two phases:
1. Parse-time validation: forbidden constructs are rejected at construction
2. Evaluation: the validated AST is walked against an ElementView
"""

from __future__ import annotations

import ast
import operator
from collections.abc import Iterator, Mapping
from typing import Any

from graphstage.contracts.graph import COUNT_KEY, ID_KEY, LABEL_KEY, Edge, GraphElement, get_property

ELEMENT_NAME = "element"


class ExpressionSecurityError(Exception):
    """Raised when an expression contains forbidden constructs."""


class ExpressionSyntaxError(Exception):
    """Raised when an expression is not valid Python syntax."""


class ExpressionEvaluationError(Exception):
    """Raised when a valid expression fails against a particular element.

    Wraps KeyError, ZeroDivisionError, TypeError and friends; the original
    exception is chained via ``__cause__``.
    """


class ElementView(Mapping[str, Any]):
    """Read-only mapping view of an element for expressions.

    Keys are the element's property names plus the reserved keys ``_id``,
    ``_count`` and (for edges) ``_label``.
    """

    __slots__ = ("_element",)

    def __init__(self, element: GraphElement) -> None:
        self._element = element

    def _reserved(self) -> tuple[str, ...]:
        if isinstance(self._element, Edge):
            return (ID_KEY, COUNT_KEY, LABEL_KEY)
        return (ID_KEY, COUNT_KEY)

    def __getitem__(self, key: str) -> Any:
        if key in self._reserved() or key in self._element.properties:
            return get_property(self._element, key)
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        yield from self._reserved()
        yield from self._element.properties

    def __len__(self) -> int:
        return len(self._reserved()) + len(self._element.properties)

    def __repr__(self) -> str:
        return f"ElementView({self._element!r})"


_COMPARISON_OPS: dict[type[ast.cmpop], Any] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
}

_BINARY_OPS: dict[type[ast.operator], Any] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}

_UNARY_OPS: dict[type[ast.unaryop], Any] = {
    ast.Not: operator.not_,
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}

# Pure builtins an extractor may call with positional arguments
_SAFE_FUNCTIONS: dict[str, Any] = {
    "abs": abs,
    "float": float,
    "int": int,
    "len": len,
    "max": max,
    "min": min,
    "round": round,
    "str": str,
}

_CONSTANT_NAMES = {"True": True, "False": False, "None": None}


def _is_element_get(func: ast.expr) -> bool:
    return (
        isinstance(func, ast.Attribute)
        and isinstance(func.value, ast.Name)
        and func.value.id == ELEMENT_NAME
        and func.attr == "get"
    )


def _is_safe_function(func: ast.expr) -> bool:
    return isinstance(func, ast.Name) and func.id in _SAFE_FUNCTIONS


class _ExpressionValidator(ast.NodeVisitor):
    """Collects every forbidden construct in an expression AST."""

    def __init__(self) -> None:
        self.errors: list[str] = []
        self._in_call_func = False

    def _is_none_constant(self, node: ast.expr) -> bool:
        if isinstance(node, ast.Constant) and node.value is None:
            return True
        return isinstance(node, ast.Name) and node.id == "None"

    def _is_element_derived(self, node: ast.expr) -> bool:
        """element, element['x'], element.get('x'), or a subscript of those."""
        if isinstance(node, ast.Name) and node.id == ELEMENT_NAME:
            return True
        if isinstance(node, ast.Subscript):
            return self._is_element_derived(node.value)
        return isinstance(node, ast.Call) and _is_element_get(node.func)

    def visit_Name(self, node: ast.Name) -> None:
        if node.id == ELEMENT_NAME or node.id in _CONSTANT_NAMES:
            return
        if node.id in _SAFE_FUNCTIONS:
            if not self._in_call_func:
                self.errors.append(f"Bare function reference {node.id!r} is forbidden; call it")
            return
        self.errors.append(f"Forbidden name: {node.id!r}")

    def visit_Subscript(self, node: ast.Subscript) -> None:
        if isinstance(node.slice, ast.Slice):
            self.errors.append("Slice syntax (e.g., [1:3]) is forbidden")
        if not self._is_element_derived(node.value):
            self.errors.append("Subscript access is only allowed on element data")
        self.generic_visit(node)

    def visit_Slice(self, node: ast.Slice) -> None:
        self.errors.append("Slice syntax (e.g., [1:3]) is forbidden")

    def visit_Attribute(self, node: ast.Attribute) -> None:
        if isinstance(node.value, ast.Name) and node.value.id == ELEMENT_NAME:
            if node.attr != "get":
                self.errors.append(f"Forbidden element attribute: {node.attr!r} (only 'get' is allowed)")
            elif not self._in_call_func:
                self.errors.append("Bare 'element.get' is forbidden; use 'element.get(key)'")
        else:
            self.errors.append(f"Forbidden attribute access: {node.attr!r}")
        self.generic_visit(node)

    def visit_Call(self, node: ast.Call) -> None:
        if node.keywords:
            self.errors.append("Keyword arguments are forbidden in calls")
        if _is_element_get(node.func):
            if not 1 <= len(node.args) <= 2:
                self.errors.append(f"element.get() requires 1 or 2 arguments, got {len(node.args)}")
        elif not _is_safe_function(node.func):
            self.errors.append(f"Forbidden function call: {ast.unparse(node.func)}")
            self.generic_visit(node)
            return
        self._in_call_func = True
        self.visit(node.func)
        self._in_call_func = False
        for arg in node.args:
            self.visit(arg)

    def visit_Compare(self, node: ast.Compare) -> None:
        operands = [node.left, *node.comparators]
        for i, op in enumerate(node.ops):
            if type(op) not in _COMPARISON_OPS:
                self.errors.append(f"Forbidden comparison operator: {type(op).__name__}")
            elif isinstance(op, ast.Is | ast.IsNot) and not (
                self._is_none_constant(operands[i]) or self._is_none_constant(operands[i + 1])
            ):
                self.errors.append("'is' and 'is not' are only allowed for None checks")
        self.generic_visit(node)

    def visit_BinOp(self, node: ast.BinOp) -> None:
        if type(node.op) not in _BINARY_OPS:
            self.errors.append(f"Forbidden binary operator: {type(node.op).__name__}")
        self.generic_visit(node)

    def visit_UnaryOp(self, node: ast.UnaryOp) -> None:
        if type(node.op) not in _UNARY_OPS:
            self.errors.append(f"Forbidden unary operator: {type(node.op).__name__}")
        self.generic_visit(node)

    def visit_Constant(self, node: ast.Constant) -> None:
        if node.value is not None and not isinstance(node.value, str | int | float | bool):
            self.errors.append(f"Forbidden constant type: {type(node.value).__name__}")

    def visit_Dict(self, node: ast.Dict) -> None:
        if any(key is None for key in node.keys):
            self.errors.append("Dict spread (**) is forbidden")
        self.generic_visit(node)

    def _forbid(self, what: str) -> None:
        self.errors.append(f"{what} are forbidden")

    def visit_Lambda(self, node: ast.Lambda) -> None:
        self._forbid("Lambda expressions")

    def visit_ListComp(self, node: ast.ListComp) -> None:
        self._forbid("List comprehensions")

    def visit_DictComp(self, node: ast.DictComp) -> None:
        self._forbid("Dict comprehensions")

    def visit_SetComp(self, node: ast.SetComp) -> None:
        self._forbid("Set comprehensions")

    def visit_GeneratorExp(self, node: ast.GeneratorExp) -> None:
        self._forbid("Generator expressions")

    def visit_Await(self, node: ast.Await) -> None:
        self._forbid("Await expressions")

    def visit_Yield(self, node: ast.Yield) -> None:
        self._forbid("Yield expressions")

    def visit_YieldFrom(self, node: ast.YieldFrom) -> None:
        self._forbid("Yield from expressions")

    def visit_NamedExpr(self, node: ast.NamedExpr) -> None:
        self._forbid("Assignment expressions (:=)")

    def visit_JoinedStr(self, node: ast.JoinedStr) -> None:
        self._forbid("F-strings")

    def visit_Starred(self, node: ast.Starred) -> None:
        self._forbid("Starred expressions (*)")


class _ExpressionEvaluator(ast.NodeVisitor):
    """Walks a validated AST against one element."""

    def __init__(self, element: ElementView) -> None:
        self._element = element

    def visit_Expression(self, node: ast.Expression) -> Any:
        return self.visit(node.body)

    def visit_Name(self, node: ast.Name) -> Any:
        if node.id == ELEMENT_NAME:
            return self._element
        if node.id in _CONSTANT_NAMES:
            return _CONSTANT_NAMES[node.id]
        if node.id in _SAFE_FUNCTIONS:
            return _SAFE_FUNCTIONS[node.id]
        raise ExpressionSecurityError(f"Unknown name: {node.id}")

    def visit_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def visit_Subscript(self, node: ast.Subscript) -> Any:
        value = self.visit(node.value)
        key = self.visit(node.slice)
        try:
            return value[key]
        except KeyError as e:
            if isinstance(value, ElementView):
                msg = f"Property '{key}' not found. Available properties: {list(value)}"
            else:
                msg = f"Key '{key}' not found in {type(value).__name__}"
            raise ExpressionEvaluationError(msg) from e
        except (IndexError, TypeError) as e:
            msg = f"Cannot access {key!r} on {type(value).__name__}: {e}"
            raise ExpressionEvaluationError(msg) from e

    def visit_Attribute(self, node: ast.Attribute) -> Any:
        value = self.visit(node.value)
        if value is self._element and node.attr == "get":
            return value.get
        raise ExpressionSecurityError(f"Forbidden attribute access: {node.attr}")

    def visit_Call(self, node: ast.Call) -> Any:
        func = self.visit(node.func)
        args = [self.visit(arg) for arg in node.args]
        try:
            return func(*args)
        except (TypeError, ValueError, OverflowError) as e:
            msg = f"call to {ast.unparse(node.func)}() failed: {e}"
            raise ExpressionEvaluationError(msg) from e

    def visit_Compare(self, node: ast.Compare) -> Any:
        left = self.visit(node.left)
        for op, comparator in zip(node.ops, node.comparators, strict=True):
            right = self.visit(comparator)
            try:
                if not _COMPARISON_OPS[type(op)](left, right):
                    return False
            except TypeError as e:
                msg = f"cannot compare {type(left).__name__} and {type(right).__name__} with {type(op).__name__}"
                raise ExpressionEvaluationError(msg) from e
            left = right
        return True

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        result: Any = None
        for value in node.values:
            result = self.visit(value)
            if isinstance(node.op, ast.And) and not result:
                return result
            if isinstance(node.op, ast.Or) and result:
                return result
        return result

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        left = self.visit(node.left)
        right = self.visit(node.right)
        op_name = type(node.op).__name__
        try:
            return _BINARY_OPS[type(node.op)](left, right)
        except ZeroDivisionError as e:
            raise ExpressionEvaluationError(f"division by zero in {op_name} operation") from e
        except TypeError as e:
            msg = f"type error in {op_name}: cannot apply to {type(left).__name__} and {type(right).__name__}"
            raise ExpressionEvaluationError(msg) from e

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        operand = self.visit(node.operand)
        try:
            return _UNARY_OPS[type(node.op)](operand)
        except TypeError as e:
            msg = f"type error in unary {type(node.op).__name__}: cannot apply to {type(operand).__name__}"
            raise ExpressionEvaluationError(msg) from e

    def visit_List(self, node: ast.List) -> Any:
        return [self.visit(elt) for elt in node.elts]

    def visit_Tuple(self, node: ast.Tuple) -> Any:
        return tuple(self.visit(elt) for elt in node.elts)

    def visit_Set(self, node: ast.Set) -> Any:
        try:
            return {self.visit(elt) for elt in node.elts}
        except TypeError as e:
            raise ExpressionEvaluationError(f"cannot create set literal: {e}") from e

    def visit_Dict(self, node: ast.Dict) -> Any:
        try:
            return {self.visit(k): self.visit(v) for k, v in zip(node.keys, node.values, strict=True) if k is not None}
        except TypeError as e:
            raise ExpressionEvaluationError(f"cannot create dict literal: {e}") from e

    def visit_IfExp(self, node: ast.IfExp) -> Any:
        if self.visit(node.test):
            return self.visit(node.body)
        return self.visit(node.orelse)


class ExpressionParser:
    """Safe expression over a single graph element.

    Allowed:
    - Property access: element['name'], element.get('name'), element.get('name', default)
    - Reserved keys: element['_id'], element['_count'], element['_label'] (edges)
    - Comparisons, and/or/not, in/not in, is/is not None
    - Arithmetic: +, -, *, /, //, %
    - Literals and list/tuple/set/dict displays
    - Ternary: x if cond else y
    - Calls to abs, float, int, len, max, min, round, str (positional only)

    Everything else (other names, attribute access, lambdas, comprehensions,
    f-strings, walrus) is rejected at construction.

    Example:
        parser = ExpressionParser("element['age'] // 10")
        parser.evaluate(vertex)  # 3 for age 34
    """

    def __init__(self, expression: str) -> None:
        """Parse and validate.

        Raises:
            ExpressionSyntaxError: If the expression is not valid Python syntax
            ExpressionSecurityError: If it contains forbidden constructs
        """
        self._expression = expression
        try:
            self._ast = ast.parse(expression, mode="eval")
        except SyntaxError as e:
            raise ExpressionSyntaxError(f"Invalid syntax: {e.msg}") from e

        validator = _ExpressionValidator()
        validator.visit(self._ast)
        if validator.errors:
            raise ExpressionSecurityError("; ".join(validator.errors))

    @property
    def expression(self) -> str:
        return self._expression

    def evaluate(self, element: GraphElement) -> Any:
        """Evaluate against one vertex or edge.

        Raises:
            ExpressionEvaluationError: If evaluation fails for this element
        """
        return _ExpressionEvaluator(ElementView(element)).visit(self._ast)

    def __call__(self, element: GraphElement) -> Any:
        return self.evaluate(element)

    def __repr__(self) -> str:
        return f"ExpressionParser({self._expression!r})"
