"""
Condition Evaluation

Resolves each comparison's field through the snapshot provider and
folds the recursive condition tree into a single boolean.

CRITICAL: An unresolvable field is an error, never a silent null
comparison. A rule that cannot be evaluated is reported as FAILED,
not as CANCELLED.
"""

from typing import Any

from fincore.models.automation import (
    Condition,
    ConditionOperator,
    LogicalOperator,
)
from fincore.services.providers import FinancialSnapshotProvider


class ConditionEvaluationError(Exception):
    """A condition could not be evaluated for the given user."""
    pass


def compare(operator: ConditionOperator, actual: Any, expected: Any) -> bool:
    """Apply one comparison operator to a resolved value."""
    if operator == ConditionOperator.EQUALS:
        return actual == expected
    if operator == ConditionOperator.NOT_EQUALS:
        return actual != expected

    if operator in (ConditionOperator.GREATER_THAN, ConditionOperator.LESS_THAN):
        try:
            if operator == ConditionOperator.GREATER_THAN:
                return actual > expected
            return actual < expected
        except TypeError:
            raise ConditionEvaluationError(
                f"Cannot compare {type(actual).__name__} with {type(expected).__name__} "
                f"using {operator.value}"
            )

    if operator == ConditionOperator.CONTAINS:
        if isinstance(actual, (list, tuple, set, frozenset)):
            return expected in actual
        return str(expected) in str(actual)

    raise ConditionEvaluationError(f"Unsupported operator: {operator}")


class ConditionEvaluator:
    """
    Evaluates condition trees against a user's financial snapshot.

    Nodes are evaluated left to right: the root comparison first, then each
    additional condition. AND stops at the first False, OR at the first True.
    """

    def __init__(self, provider: FinancialSnapshotProvider):
        self._provider = provider

    async def _resolve(self, node: Condition, user_id: str) -> Any:
        try:
            value = await self._provider.resolve_field(node.field, user_id)
        except ConditionEvaluationError:
            raise
        except Exception as e:
            raise ConditionEvaluationError(
                f"Could not resolve field '{node.field.value}': {e}"
            ) from e

        if value is None:
            raise ConditionEvaluationError(
                f"Field '{node.field.value}' has no value for user {user_id}"
            )
        return value

    async def evaluate(self, condition: Condition, user_id: str) -> bool:
        """
        Evaluate a condition tree.

        Raises:
            ConditionEvaluationError: If any visited node cannot be evaluated
        """
        actual = await self._resolve(condition, user_id)
        outcome = compare(condition.operator, actual, condition.value)

        is_and = condition.logical_operator == LogicalOperator.AND
        for child in condition.additional_conditions:
            # Short-circuit once the combined result is settled
            if is_and and not outcome:
                return False
            if not is_and and outcome:
                return True
            outcome = await self.evaluate(child, user_id)

        return outcome
