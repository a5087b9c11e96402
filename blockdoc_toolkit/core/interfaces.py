from __future__ import annotations

"""External collaborator interfaces.

Defines the contracts the document core consumes but never implements.
The expression language used by conditionals and loops lives entirely
behind :class:`Evaluator`; hosts plug in whichever engine they ship.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, runtime_checkable

__all__ = ["EvaluationResult", "Evaluator"]


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome of evaluating one expression.

    Attributes:
        success: Whether evaluation completed without error
        value: The evaluated value (meaningful only when ``success`` is True)
        error: Human-readable error message when ``success`` is False
    """
    success: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: Any) -> "EvaluationResult":
        return cls(True, value, None)

    @classmethod
    def failed(cls, error: str) -> "EvaluationResult":
        return cls(False, None, error)


@runtime_checkable
class Evaluator(Protocol):
    """Protocol for expression evaluators.

    Implementations evaluate an expression string against a data context
    (typically the JSON payload a template is rendered with).
    """

    def evaluate(self, expression: str, context: Dict[str, Any]) -> EvaluationResult:
        """Evaluate *expression* against *context*.

        Args:
            expression: Source text in the evaluator's language
            context: Data the expression may reference

        Returns:
            EvaluationResult describing the outcome

        Note:
            Implementations should not raise for malformed expressions;
            report them through ``EvaluationResult.failed`` instead.
        """
        ...
