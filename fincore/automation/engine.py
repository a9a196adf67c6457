"""
Rule Engine

Evaluates a user's active automation rules against their current
financial snapshot and executes the matching actions.

Flow of one automation run:
1. Load active rules (optionally one trigger type)
2. Order by priority ascending; ties keep insertion order
3. Per rule: evaluate condition -> dispatch action -> advance statistics
4. Append every record to the execution log and the audit trail
5. Return one record per evaluated rule, in evaluation order

DESIGN DECISION: Collaborators are injected. The engine owns no
storage, no data source and no payment integration of its own, so
tests and embedded callers can run it entirely in memory.

CRITICAL: Rules of one run are evaluated sequentially and independently.
No rule observes another's result, and one rule's failure never
aborts the run.
"""

import copy
from typing import Any, Mapping, Optional, Union
from uuid import UUID

import structlog

from fincore.audit import AuditLogger, create_correlation_id
from fincore.automation.actions import ActionRegistry, create_default_registry
from fincore.automation.conditions import ConditionEvaluator
from fincore.automation.executor import RuleExecutor
from fincore.automation.recommender import RuleRecommender
from fincore.config import get_settings
from fincore.config.settings import EngineSettings
from fincore.models.automation import (
    AutomationExecution,
    AutomationRule,
    RuleSpec,
    TriggerType,
)
from fincore.services.providers import (
    FinancialSnapshotProvider,
    ProviderError,
    StaticSnapshotProvider,
    UserStatisticsProvider,
)
from fincore.services.storage import (
    ExecutionStorageInterface,
    InMemoryExecutionStorage,
    RuleStorageInterface,
    StorageError,
)
from fincore.validation import RuleValidationError, RuleValidator


logger = structlog.get_logger(__name__)


class RuleEngine:
    """
    Entry point for rule management and automation runs.

    Usage:
        engine = RuleEngine(
            rule_storage=InMemoryRuleStorage(),
            snapshot_provider=StaticSnapshotProvider({"balance": 4000}),
        )
        rule = await engine.create_rule("user-1", spec)
        executions = await engine.run_automation("user-1")
    """

    def __init__(
        self,
        rule_storage: RuleStorageInterface,
        snapshot_provider: Optional[FinancialSnapshotProvider] = None,
        action_registry: Optional[ActionRegistry] = None,
        statistics_provider: Optional[UserStatisticsProvider] = None,
        execution_storage: Optional[ExecutionStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self._settings = settings or get_settings().engine
        self._rules = rule_storage
        self._snapshot_provider = snapshot_provider or StaticSnapshotProvider()
        self._registry = action_registry or create_default_registry(
            self._settings.action_timeout_seconds
        )
        self._statistics_provider = statistics_provider
        self._executions = execution_storage or InMemoryExecutionStorage()
        self._audit = audit_logger or AuditLogger()
        self._validator = RuleValidator(self._settings)
        self._recommender = RuleRecommender(self._settings)

    def with_snapshot_provider(self, provider: FinancialSnapshotProvider) -> "RuleEngine":
        """Engine sharing every collaborator except the snapshot provider."""
        engine = copy.copy(self)
        engine._snapshot_provider = provider
        return engine

    async def _load_rules(
        self,
        user_id: str,
        trigger_type: Optional[TriggerType],
    ) -> list[AutomationRule]:
        try:
            rules = await self._rules.list_active_rules(user_id, trigger_type)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Could not load rules for user {user_id}: {e}") from e

        # sorted() is stable, so equal priorities keep insertion order
        return sorted(rules, key=lambda rule: rule.priority)

    async def _append_execution(
        self,
        execution: AutomationExecution,
        correlation_id: UUID,
    ) -> None:
        try:
            await self._executions.append_execution(execution)
        except Exception as e:
            await self._audit.log_error(
                error_type="execution_log_failed",
                error_message=str(e),
                details={"execution_id": str(execution.id), "rule_id": str(execution.rule_id)},
                correlation_id=correlation_id,
            )

    async def run_automation(
        self,
        user_id: str,
        trigger_type: Optional[Union[TriggerType, str]] = None,
        snapshot: Optional[Mapping[Any, Any]] = None,
    ) -> list[AutomationExecution]:
        """
        Run every active rule of a user once.

        Args:
            user_id: Owner of the rules
            trigger_type: Only run rules with this trigger type
            snapshot: Field values to use instead of the configured
                      snapshot provider for this run

        Returns:
            One execution record per evaluated rule, in evaluation order

        Raises:
            RuleValidationError: If trigger_type is not a known trigger
            StorageError: If the user's rules cannot be loaded
        """
        if trigger_type is not None:
            trigger_type = self._validator.parse_trigger_type(trigger_type)

        provider = (
            StaticSnapshotProvider(snapshot)
            if snapshot is not None
            else self._snapshot_provider
        )
        executor = RuleExecutor(ConditionEvaluator(provider), self._registry, self._rules)

        correlation_id = create_correlation_id()
        rules = await self._load_rules(user_id, trigger_type)

        await self._audit.log_run_started(
            user_id=user_id,
            trigger_type=trigger_type.value if trigger_type else None,
            rule_count=len(rules),
            correlation_id=correlation_id,
        )

        executions = []
        for rule in rules:
            outcome = await executor.execute(rule, user_id)
            executions.append(outcome.execution)

            await self._append_execution(outcome.execution, correlation_id)
            await self._audit.log_execution(outcome.execution, rule, correlation_id)
            if outcome.stats_error is not None:
                await self._audit.log_stats_update_failed(
                    rule, outcome.stats_error, correlation_id
                )

        await self._audit.log_run_completed(user_id, executions, correlation_id)
        return executions

    async def create_rule(
        self,
        user_id: str,
        rule_spec: Union[RuleSpec, dict],
    ) -> AutomationRule:
        """
        Validate and persist a new rule.

        Raises:
            RuleValidationError: If the spec fails validation (nothing is stored)
        """
        result = self._validator.validate(rule_spec)

        if not result.is_valid:
            await self._audit.log_rule_validation_failed(
                user_id=user_id,
                rule_name=result.rule_name,
                issues=[issue.model_dump() for issue in result.issues],
            )
            raise RuleValidationError(result)

        for warning in result.warnings:
            logger.warning("rule_validation_warning", user_id=user_id, warning=warning)

        rule = AutomationRule.from_spec(user_id, result.spec)
        stored = await self._rules.create_rule(rule)
        await self._audit.log_rule_created(stored)
        return stored

    async def generate_recommended_rules(self, user_id: str) -> list[AutomationRule]:
        """
        Suggest starter rules from the user's statistics.

        The returned rules are not persisted.

        Raises:
            ProviderError: If no statistics are available for the user
        """
        if self._statistics_provider is None:
            raise ProviderError("No statistics provider configured")

        stats = await self._statistics_provider.get_statistics(user_id)
        rules = self._recommender.recommend(user_id, stats)
        await self._audit.log_rules_recommended(user_id, rules)
        return rules

    async def deactivate_rule(self, rule_id: UUID) -> AutomationRule:
        """
        Stop a rule from running.

        Raises:
            NotFoundError: If the rule doesn't exist
        """
        rule = await self._rules.deactivate_rule(rule_id)
        await self._audit.log_rule_deactivated(rule)
        return rule

    async def execution_history(
        self,
        user_id: str,
        rule_id: Optional[UUID] = None,
        limit: int = 100,
    ) -> list[AutomationExecution]:
        """Past execution records for a user, newest first."""
        return await self._executions.list_executions(user_id, rule_id, limit)
