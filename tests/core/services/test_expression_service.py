import pytest

from blockdoc_toolkit.core.interfaces import EvaluationResult, Evaluator
from blockdoc_toolkit.core.services.expression_service import ExpressionService


class FakeEvaluator:
    """Looks expressions up in a table; ``boom`` raises."""

    def __init__(self, values):
        self.values = values
        self.calls = []

    def evaluate(self, expression, context):
        self.calls.append((expression, context))
        if expression == "boom":
            raise RuntimeError("exploded")
        if expression not in self.values:
            return EvaluationResult.failed(f"unknown {expression}")
        return EvaluationResult.ok(self.values[expression])


@pytest.fixture
def evaluator():
    return FakeEvaluator({"yes": True, "no": 0, "rows": [1, 2], "name": "x"})


@pytest.fixture
def service(evaluator):
    return ExpressionService(evaluator)


@pytest.fixture
def node_with(empty_doc, root_slot, insert):
    def _node_with(node_type, **props):
        return insert(empty_doc, node_type, root_slot, **props)

    return _node_with


def test_fake_satisfies_protocol(evaluator):
    assert isinstance(evaluator, Evaluator)


class TestConditions:
    @pytest.mark.parametrize(
        "raw, inverse, expected",
        [
            ("yes", False, True),
            ("no", False, False),
            ("no", True, True),
            ("", False, True),
            ("   ", True, False),
            ("missing", False, False),
            ("missing", True, True),
            ("boom", False, False),
        ],
    )
    def test_outcomes(self, service, node_with, raw, inverse, expected):
        doc, node = node_with("conditional", condition={"raw": raw, "language": "jsonata"}, inverse=inverse)
        assert service.evaluate_condition(doc, node.id) is expected

    def test_context_is_passed(self, service, evaluator, node_with):
        doc, node = node_with("conditional", condition={"raw": "yes"})
        service.evaluate_condition(doc, node.id, {"user": 1})
        assert evaluator.calls == [("yes", {"user": 1})]

    def test_missing_node(self, service, empty_doc):
        assert service.evaluate_condition(empty_doc, "n-ghost") is False


class TestLoops:
    def test_list_result(self, service, node_with):
        doc, node = node_with("loop", expression={"raw": "rows"})
        assert service.evaluate_loop_items(doc, node.id) == [1, 2]

    @pytest.mark.parametrize("raw", ["", "name", "missing", "boom"])
    def test_no_items(self, service, node_with, raw):
        doc, node = node_with("loop", expression={"raw": raw})
        assert service.evaluate_loop_items(doc, node.id) == []

    def test_empty_expression_is_not_evaluated(self, service, evaluator, node_with):
        doc, node = node_with("loop")
        service.evaluate_loop_items(doc, node.id)
        assert evaluator.calls == []

    def test_missing_node(self, service, empty_doc):
        assert service.evaluate_loop_items(empty_doc, "n-ghost") == []
