"""
Audit Logger

DESIGN DECISION: Every rule the engine runs on a user's behalf is logged.
This provides:
1. Complete traceability of automated money movements
2. Debugging capability when a rule fails
3. A history users can be shown

The audit logger:
- Is async to fit the engine's collaborator calls
- Gracefully handles failures (never breaks an automation run)
- Supports correlation IDs to trace every event of one run
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from fincore.config.settings import LOG_LEVELS
from fincore.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from fincore.models.automation import (
    AutomationExecution,
    AutomationRule,
    ExecutionStatus,
)
from fincore.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route structlog output through stdlib logging at the given level.

    Raises:
        ValueError: If the level is not a standard logging level name
    """
    name = level.strip().upper()
    if name not in LOG_LEVELS:
        raise ValueError(f"Unknown log level: {level!r}")
    logging.basicConfig(format="%(message)s", level=getattr(logging, name))


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when configured (for persistence)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("fincore.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_rule_created(
        self,
        rule: AutomationRule,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log rule creation."""
        event = AuditEventBuilder.rule_created(
            rule_id=rule.id,
            user_id=rule.user_id,
            rule_name=rule.name,
            trigger_type=rule.trigger.type,
            action_type=rule.action.type,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_rule_validation_failed(
        self,
        user_id: str,
        rule_name: Optional[str],
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a rejected rule spec."""
        event = AuditEventBuilder.rule_validation_failed(
            user_id=user_id,
            rule_name=rule_name,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_rule_deactivated(
        self,
        rule: AutomationRule,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log rule deactivation."""
        event = AuditEventBuilder.rule_deactivated(
            rule_id=rule.id,
            user_id=rule.user_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_rules_recommended(
        self,
        user_id: str,
        rules: list[AutomationRule],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log generated rule recommendations."""
        event = AuditEventBuilder.rules_recommended(
            user_id=user_id,
            rule_names=[rule.name for rule in rules],
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_run_started(
        self,
        user_id: str,
        trigger_type: Optional[str],
        rule_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log the start of an automation run."""
        event = AuditEventBuilder.automation_run_started(
            user_id=user_id,
            trigger_type=trigger_type,
            rule_count=rule_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_run_completed(
        self,
        user_id: str,
        executions: list[AutomationExecution],
        correlation_id: UUID,
    ) -> None:
        """Log the end of an automation run with per-status counts."""
        counts: dict[str, int] = {}
        for execution in executions:
            counts[execution.status.value] = counts.get(execution.status.value, 0) + 1
        event = AuditEventBuilder.automation_run_completed(
            user_id=user_id,
            status_counts=counts,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_execution(
        self,
        execution: AutomationExecution,
        rule: AutomationRule,
        correlation_id: UUID,
    ) -> None:
        """Log one execution record according to its status."""
        if execution.status == ExecutionStatus.COMPLETED:
            event = AuditEventBuilder.rule_executed(
                execution_id=execution.id,
                rule_id=rule.id,
                user_id=execution.user_id,
                action_type=rule.action.type,
                duration_ms=execution.duration_ms,
                correlation_id=correlation_id,
            )
        elif execution.status == ExecutionStatus.FAILED:
            event = AuditEventBuilder.rule_failed(
                execution_id=execution.id,
                rule_id=rule.id,
                user_id=execution.user_id,
                error_message=execution.error or "",
                correlation_id=correlation_id,
            )
        else:
            event = AuditEventBuilder.rule_skipped(
                execution_id=execution.id,
                rule_id=rule.id,
                user_id=execution.user_id,
                correlation_id=correlation_id,
            )
        await self.log(event)

    async def log_stats_update_failed(
        self,
        rule: AutomationRule,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a failed execution-statistics update."""
        event = AuditEventBuilder.stats_update_failed(
            rule_id=rule.id,
            user_id=rule.user_id,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_analysis_completed(
        self,
        user_id: str,
        overall_health: str,
        recommendation_count: int,
        total_savings: float,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a finished budget analysis."""
        event = AuditEventBuilder.budget_analysis_completed(
            user_id=user_id,
            overall_health=overall_health,
            recommendation_count=recommendation_count,
            total_savings=total_savings,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_analysis_failed(
        self,
        user_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a rejected budget analysis."""
        event = AuditEventBuilder.budget_analysis_failed(
            user_id=user_id,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new automation run or analysis.
    Pass it through all subsequent operations.
    """
    return uuid4()
