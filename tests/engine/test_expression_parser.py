# tests/engine/test_expression_parser.py
"""Tests for the restricted element expression language."""

import pytest

from tests.conftest import make_edge, make_vertex


class TestAllowedExpressions:
    """Constructs the validator accepts, evaluated against real elements."""

    @pytest.mark.parametrize(
        ("expression", "expected"),
        [
            ("element['age'] // 10", 3),
            ("element['age'] % 10", 4),
            ("element['age'] * 2 + 1", 69),
            ("element['age'] / 4", 8.5),
            ("-element['age']", -34),
            ("element.get('name')", "marko"),
            ("element.get('missing')", None),
            ("element.get('missing', 'anon')", "anon"),
            ("element['age'] >= 18 and element['age'] < 65", True),
            ("not element['active']", False),
            ("element['name'] in ['marko', 'josh']", True),
            ("element.get('missing') is None", True),
            ("'old' if element['age'] > 30 else 'young'", "old"),
            ("len(element['name'])", 5),
            ("str(element['age'])", "34"),
            ("max(element['age'], 40)", 40),
            ("round(element['score'])", 2),
            ("(element['age'], element['name'])", (34, "marko")),
            ("{'k': element['age']}", {"k": 34}),
        ],
    )
    def test_evaluates(self, expression: str, expected: object) -> None:
        from graphstage.engine.expression_parser import ExpressionParser

        vertex = make_vertex(1, name="marko", age=34, active=True, score=2.4)
        assert ExpressionParser(expression).evaluate(vertex) == expected

    def test_reserved_keys_on_vertex(self) -> None:
        from graphstage.engine.expression_parser import ExpressionParser

        vertex = make_vertex(7, path_count=3)
        assert ExpressionParser("element['_id']").evaluate(vertex) == 7
        assert ExpressionParser("element['_count']").evaluate(vertex) == 3

    def test_reserved_keys_on_edge(self) -> None:
        from graphstage.engine.expression_parser import ExpressionParser

        edge = make_edge(9, 1, 2, label="created", path_count=2)
        assert ExpressionParser("element['_label']").evaluate(edge) == "created"
        assert ExpressionParser("element['_id'] + element['_count']").evaluate(edge) == 11

    def test_label_not_reserved_on_vertex(self) -> None:
        from graphstage.engine.expression_parser import ExpressionEvaluationError, ExpressionParser

        with pytest.raises(ExpressionEvaluationError, match="_label"):
            ExpressionParser("element['_label']").evaluate(make_vertex(1))

    def test_callable_and_repr(self) -> None:
        from graphstage.engine.expression_parser import ExpressionParser

        parser = ExpressionParser("element['_id']")
        assert parser(make_vertex(4)) == 4
        assert parser.expression == "element['_id']"
        assert repr(parser) == "ExpressionParser(\"element['_id']\")"


class TestForbiddenExpressions:
    """Constructs rejected before any element is seen."""

    @pytest.mark.parametrize(
        "expression",
        [
            "__import__('os')",
            "open('/etc/passwd')",
            "eval('1')",
            "element.properties",
            "element.__class__",
            "element.get",
            "len",
            "(lambda: 1)()",
            "[x for x in element]",
            "{x: 1 for x in element}",
            "f'{element}'",
            "(y := 1)",
            "max(*element)",
            "element['name'][1:3]",
            "'abc'[0]",
            "element['age'] ** 2",
            "element['age'] is 3",
            "round(element['age'], ndigits=1)",
            "element.get()",
            "element.get('a', 'b', 'c')",
            "os",
        ],
    )
    def test_rejected(self, expression: str) -> None:
        from graphstage.engine.expression_parser import ExpressionParser, ExpressionSecurityError

        with pytest.raises(ExpressionSecurityError):
            ExpressionParser(expression)

    def test_collects_every_error(self) -> None:
        from graphstage.engine.expression_parser import ExpressionParser, ExpressionSecurityError

        with pytest.raises(ExpressionSecurityError) as exc_info:
            ExpressionParser("foo + bar")
        assert "'foo'" in str(exc_info.value)
        assert "'bar'" in str(exc_info.value)

    @pytest.mark.parametrize("expression", ["element[", "element['a'] ==", "x = 1", ""])
    def test_syntax_errors(self, expression: str) -> None:
        from graphstage.engine.expression_parser import ExpressionParser, ExpressionSyntaxError

        with pytest.raises(ExpressionSyntaxError, match="Invalid syntax"):
            ExpressionParser(expression)


class TestEvaluationErrors:
    """Valid expressions that fail against a particular element."""

    def test_missing_property_lists_available(self) -> None:
        from graphstage.engine.expression_parser import ExpressionEvaluationError, ExpressionParser

        vertex = make_vertex(1, name="marko")
        with pytest.raises(ExpressionEvaluationError, match="Property 'age' not found") as exc_info:
            ExpressionParser("element['age']").evaluate(vertex)
        assert "'name'" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_division_by_zero(self) -> None:
        from graphstage.engine.expression_parser import ExpressionEvaluationError, ExpressionParser

        with pytest.raises(ExpressionEvaluationError, match="division by zero"):
            ExpressionParser("element['age'] // 0").evaluate(make_vertex(1, age=3))

    def test_type_error_in_arithmetic(self) -> None:
        from graphstage.engine.expression_parser import ExpressionEvaluationError, ExpressionParser

        with pytest.raises(ExpressionEvaluationError, match="type error"):
            ExpressionParser("element['name'] - 1").evaluate(make_vertex(1, name="marko"))

    def test_incomparable_values(self) -> None:
        from graphstage.engine.expression_parser import ExpressionEvaluationError, ExpressionParser

        with pytest.raises(ExpressionEvaluationError, match="cannot compare"):
            ExpressionParser("element['name'] < 3").evaluate(make_vertex(1, name="marko"))

    def test_failed_builtin_call(self) -> None:
        from graphstage.engine.expression_parser import ExpressionEvaluationError, ExpressionParser

        with pytest.raises(ExpressionEvaluationError, match="int"):
            ExpressionParser("int(element['name'])").evaluate(make_vertex(1, name="marko"))


class TestElementView:
    def test_keys_reserved_first(self) -> None:
        from graphstage.engine.expression_parser import ElementView

        view = ElementView(make_edge(9, 1, 2, weight=0.5))
        assert list(view) == ["_id", "_count", "_label", "weight"]
        assert len(view) == 4

    def test_get_default(self) -> None:
        from graphstage.engine.expression_parser import ElementView

        view = ElementView(make_vertex(1))
        assert view.get("age", 0) == 0
        assert "age" not in view
        assert "_id" in view
