"""Automation rule engine package."""

from fincore.automation.actions import (
    ActionExecutionError,
    ActionHandler,
    ActionRegistry,
    create_default_registry,
)
from fincore.automation.conditions import ConditionEvaluationError, ConditionEvaluator
from fincore.automation.engine import RuleEngine
from fincore.automation.executor import RuleExecutor, RuleOutcome
from fincore.automation.recommender import RuleRecommender

__all__ = [
    "ActionExecutionError",
    "ActionHandler",
    "ActionRegistry",
    "ConditionEvaluationError",
    "ConditionEvaluator",
    "RuleEngine",
    "RuleExecutor",
    "RuleOutcome",
    "RuleRecommender",
    "create_default_registry",
]
