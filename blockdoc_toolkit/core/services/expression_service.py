from __future__ import annotations

"""Evaluation of conditional and loop nodes through an :class:`Evaluator`.

The expression language itself is supplied by the host. This service only
knows where the expressions live in node props and how their results are
interpreted:

- ``conditional`` nodes read ``props["condition"]["raw"]``; a truthy result
  shows the body, and ``props["inverse"]`` flips it.
- ``loop`` and ``datatable`` nodes read ``props["expression"]["raw"]``; the
  result must be a list of items.
"""

import logging
from typing import Any, Dict, List, Optional

from blockdoc_toolkit.core.interfaces import EvaluationResult, Evaluator
from blockdoc_toolkit.core.models.document import Document

__all__ = ["ExpressionService"]

logger = logging.getLogger(__name__)


def _raw_expression(props: Dict[str, Any], key: str) -> str:
    value = props.get(key)
    if isinstance(value, dict):
        value = value.get("raw")
    return value if isinstance(value, str) else ""


class ExpressionService:
    """Evaluate conditional and loop expressions of a document.

    Parameters
    ----------
    evaluator : Evaluator
        Host-provided expression engine.
    """

    def __init__(self, evaluator: Evaluator) -> None:
        self._evaluator = evaluator

    def evaluate_condition(self, doc: Document, node_id: str, context: Optional[Dict[str, Any]] = None) -> bool:
        """Return whether the conditional *node_id* shows its body.

        An empty condition counts as true. Evaluation failures count as false
        (before ``inverse`` is applied) and are logged.
        """
        node = doc.nodes.get(node_id)
        if node is None:
            logger.warning("Condition node %s not found", node_id)
            return False

        expression = _raw_expression(node.props, "condition")
        if not expression.strip():
            result = True
        else:
            outcome = self._evaluate(expression, context)
            result = bool(outcome.value) if outcome.success else False
        return not result if node.props.get("inverse") else result

    def evaluate_loop_items(self, doc: Document, node_id: str, context: Optional[Dict[str, Any]] = None) -> List[Any]:
        """Return the items the loop *node_id* iterates over (empty on any problem)."""
        node = doc.nodes.get(node_id)
        if node is None:
            logger.warning("Loop node %s not found", node_id)
            return []

        expression = _raw_expression(node.props, "expression")
        if not expression.strip():
            return []
        outcome = self._evaluate(expression, context)
        if not outcome.success:
            return []
        if not isinstance(outcome.value, list):
            logger.debug("Loop expression %r did not produce a list", expression)
            return []
        return list(outcome.value)

    def _evaluate(self, expression: str, context: Optional[Dict[str, Any]]) -> EvaluationResult:
        try:
            outcome = self._evaluator.evaluate(expression, context or {})
        except Exception as exc:
            logger.warning("Expression %r raised: %s", expression, exc)
            return EvaluationResult.failed(str(exc))
        if not outcome.success:
            logger.warning("Expression %r failed: %s", expression, outcome.error)
        return outcome
