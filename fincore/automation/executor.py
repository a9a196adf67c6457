"""
Rule Executor

Runs one rule for one user and turns the outcome into an execution record.

Outcome mapping:
- Condition not met            -> CANCELLED (not an error)
- Condition cannot be evaluated -> FAILED
- Action raised or timed out   -> FAILED, statistics untouched
- Action succeeded             -> COMPLETED, statistics advanced atomically

CRITICAL: Nothing raised while executing a single rule escapes this
module, except task cancellation. One bad rule never aborts a batch.
"""

import time
from typing import NamedTuple, Optional

from fincore.automation.actions import ActionExecutionError, ActionRegistry
from fincore.automation.conditions import ConditionEvaluationError, ConditionEvaluator
from fincore.models.automation import (
    AutomationExecution,
    AutomationRule,
    ExecutionStatus,
    utc_now,
)
from fincore.services.storage import RuleStorageInterface


class RuleOutcome(NamedTuple):
    """An execution record plus any failure to persist rule statistics."""
    execution: AutomationExecution
    stats_error: Optional[str] = None


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


class RuleExecutor:
    """Evaluates a rule's condition and dispatches its action."""

    def __init__(
        self,
        evaluator: ConditionEvaluator,
        registry: ActionRegistry,
        rule_storage: RuleStorageInterface,
    ):
        self._evaluator = evaluator
        self._registry = registry
        self._rule_storage = rule_storage

    def _failed(self, rule: AutomationRule, user_id: str, error: str, started: float) -> RuleOutcome:
        return RuleOutcome(AutomationExecution(
            rule_id=rule.id,
            user_id=user_id,
            status=ExecutionStatus.FAILED,
            error=error,
            duration_ms=_elapsed_ms(started),
        ))

    async def execute(self, rule: AutomationRule, user_id: str) -> RuleOutcome:
        started = time.perf_counter()

        try:
            condition_met = await self._evaluator.evaluate(rule.condition, user_id)
        except ConditionEvaluationError as e:
            return self._failed(rule, user_id, f"Condition evaluation failed: {e}", started)
        except Exception as e:
            return self._failed(rule, user_id, f"Unexpected error: {e}", started)

        if not condition_met:
            return RuleOutcome(AutomationExecution(
                rule_id=rule.id,
                user_id=user_id,
                status=ExecutionStatus.CANCELLED,
                result={"reason": "Condition not met"},
                duration_ms=_elapsed_ms(started),
            ))

        try:
            result = await self._registry.dispatch(user_id, rule.action)
        except ActionExecutionError as e:
            return self._failed(rule, user_id, str(e), started)
        except Exception as e:
            return self._failed(rule, user_id, f"Unexpected error: {e}", started)

        executed_at = utc_now()
        stats_error = None
        try:
            await self._rule_storage.record_execution(rule.id, executed_at)
        except Exception as e:
            # The action already happened; the record stays COMPLETED
            stats_error = str(e) or type(e).__name__

        execution = AutomationExecution(
            rule_id=rule.id,
            user_id=user_id,
            status=ExecutionStatus.COMPLETED,
            result=result,
            executed_at=executed_at,
            duration_ms=_elapsed_ms(started),
        )
        return RuleOutcome(execution, stats_error)
