"""
Main Orchestrator for the Financial Automation Core

Ties the rule engine and the budget analyzer together and wires every
component from settings.

Flows:
1. Budget analysis (rows -> analyze -> audit)
2. Analysis-driven automation (analyze -> run rules that test
   budget_health / total_variance against the fresh result)

DESIGN DECISION: Every flow is audited under one correlation id,
and a rejected analysis is audited before the error reaches the caller.
"""

from typing import Any, Iterable, Optional

import structlog

from fincore.analysis import AnalysisError, BudgetAnalyzer, RecommendationExecutor
from fincore.audit import AuditLogger, configure_logging, create_correlation_id
from fincore.automation import RuleEngine
from fincore.config import get_settings
from fincore.config.settings import AnalyzerSettings
from fincore.models.automation import AutomationExecution
from fincore.models.budget import BudgetAnalysisResult
from fincore.services.providers import (
    AnalysisSnapshotProvider,
    FinancialSnapshotProvider,
    StaticSnapshotProvider,
    UserStatisticsProvider,
)
from fincore.services.storage import (
    ExecutionStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExecutionStorage,
    GoogleSheetsRuleStorage,
    InMemoryExecutionStorage,
    InMemoryRuleStorage,
    RuleStorageInterface,
)


logger = structlog.get_logger(__name__)


class BudgetAnalysisFlow:
    """
    Orchestrates budget analyses and the automation runs that follow them.

    Flow:
    1. Analyze -> BudgetAnalyzer runs all five phases
    2. Audit   -> completed or rejected
    3. Automate (optional) -> rule engine sees the analysis as snapshot fields
    """

    def __init__(
        self,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AnalyzerSettings] = None,
        action_executor: Optional[RecommendationExecutor] = None,
    ):
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = settings or get_settings().analyzer
        self._action_executor = action_executor

    async def analyze(
        self,
        user_id: str,
        raw_categories: Iterable[Any],
    ) -> tuple[BudgetAnalysisResult, str]:
        """
        Analyze a user's budget.

        Returns:
            (result, explainability_summary)

        Raises:
            AnalysisError: If the input is rejected (audited first)
        """
        correlation_id = create_correlation_id()
        analyzer = BudgetAnalyzer(
            user_id,
            settings=self._settings,
            action_executor=self._action_executor,
        )

        try:
            result = analyzer.analyze_budget(raw_categories)
        except AnalysisError as e:
            await self._audit_logger.log_analysis_failed(
                user_id=user_id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_analysis_completed(
            user_id=user_id,
            overall_health=result.overall_health.value,
            recommendation_count=len(result.recommendations),
            total_savings=result.total_savings,
            correlation_id=correlation_id,
        )
        return result, analyzer.explainability_summary()

    async def analyze_and_automate(
        self,
        engine: RuleEngine,
        user_id: str,
        raw_categories: Iterable[Any],
        snapshot_provider: Optional[FinancialSnapshotProvider] = None,
    ) -> tuple[BudgetAnalysisResult, list[AutomationExecution]]:
        """
        Analyze a budget, then run the user's rules with the analysis
        answering the budget_health and total_variance fields.
        """
        result, _ = await self.analyze(user_id, raw_categories)
        provider = AnalysisSnapshotProvider(result, delegate=snapshot_provider)
        executions = await engine.with_snapshot_provider(provider).run_automation(user_id)
        return result, executions


def create_app_components(
    use_storage: Optional[bool] = None,
    snapshot_provider: Optional[FinancialSnapshotProvider] = None,
    statistics_provider: Optional[UserStatisticsProvider] = None,
) -> tuple[RuleEngine, BudgetAnalysisFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use Google Sheets storage.
                    Defaults to the use_google_sheets setting.
                    Falls back to in-memory storage if Sheets is not configured.
        snapshot_provider: Source of rule condition fields
        statistics_provider: Source of statistics for recommended rules

    Returns:
        (rule_engine, budget_analysis_flow, sheets_client)
    """
    settings = get_settings()
    app_settings = settings.app
    configure_logging(app_settings.log_level)

    if use_storage is None:
        use_storage = app_settings.use_google_sheets

    sheets_client = None
    rule_storage: RuleStorageInterface
    execution_storage: ExecutionStorageInterface

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            rule_storage = GoogleSheetsRuleStorage(sheets_client)
            execution_storage = GoogleSheetsExecutionStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            use_storage = False

    if not use_storage:
        rule_storage = InMemoryRuleStorage()
        execution_storage = InMemoryExecutionStorage()
        audit_logger = AuditLogger()  # Local-only logging

    engine = RuleEngine(
        rule_storage=rule_storage,
        snapshot_provider=snapshot_provider or StaticSnapshotProvider(),
        statistics_provider=statistics_provider,
        execution_storage=execution_storage,
        audit_logger=audit_logger,
        settings=settings.engine,
    )
    analysis_flow = BudgetAnalysisFlow(
        audit_logger=audit_logger,
        settings=settings.analyzer,
    )

    return engine, analysis_flow, sheets_client
