"""
Audit Models for the Financial Automation Core

Every rule creation, automation run and budget analysis is logged for
audit purposes. This provides:
1. Complete traceability of what the engine did on a user's behalf
2. Debugging information when a rule fails
3. The ability to reconstruct why money moved

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from fincore.models.automation import utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step of rule management, rule execution and budget
    analysis has its own event type.
    """
    # Rule management
    RULE_CREATED = "rule_created"
    RULE_VALIDATION_FAILED = "rule_validation_failed"
    RULE_DEACTIVATED = "rule_deactivated"
    RULES_RECOMMENDED = "rules_recommended"

    # Automation runs
    AUTOMATION_RUN_STARTED = "automation_run_started"
    AUTOMATION_RUN_COMPLETED = "automation_run_completed"
    RULE_EXECUTED = "rule_executed"
    RULE_SKIPPED = "rule_skipped"
    RULE_FAILED = "rule_failed"
    STATS_UPDATE_FAILED = "stats_update_failed"

    # Budget analysis
    BUDGET_ANALYSIS_COMPLETED = "budget_analysis_completed"
    BUDGET_ANALYSIS_FAILED = "budget_analysis_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'rule', 'execution', 'analysis')"
    )
    entity_id: Optional[UUID] = None
    user_id: Optional[str] = None

    # Correlation - ties together every event of one run
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         user_id, correlation_id, description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            self.user_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.rule_created(rule, correlation_id)
        event = AuditEventBuilder.rule_failed(execution, rule_name, correlation_id)
    """

    @staticmethod
    def rule_created(
        rule_id: UUID,
        user_id: str,
        rule_name: str,
        trigger_type: str,
        action_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RULE_CREATED,
            entity_type="rule",
            entity_id=rule_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Rule created: {rule_name}",
            details={
                "trigger_type": trigger_type,
                "action_type": action_type,
            },
        )

    @staticmethod
    def rule_validation_failed(
        user_id: str,
        rule_name: Optional[str],
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RULE_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="rule",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Rule rejected with {len(issues)} issues",
            details={
                "rule_name": rule_name,
                "issues": issues,
            },
        )

    @staticmethod
    def rule_deactivated(
        rule_id: UUID,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RULE_DEACTIVATED,
            entity_type="rule",
            entity_id=rule_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Rule deactivated",
        )

    @staticmethod
    def rules_recommended(
        user_id: str,
        rule_names: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RULES_RECOMMENDED,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{len(rule_names)} rules recommended",
            details={"rules": rule_names},
        )

    @staticmethod
    def automation_run_started(
        user_id: str,
        trigger_type: Optional[str],
        rule_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTOMATION_RUN_STARTED,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Automation run started with {rule_count} active rules",
            details={
                "trigger_type": trigger_type,
                "rule_count": rule_count,
            },
        )

    @staticmethod
    def automation_run_completed(
        user_id: str,
        status_counts: dict[str, int],
        correlation_id: UUID,
    ) -> AuditEvent:
        total = sum(status_counts.values())
        failed = status_counts.get("FAILED", 0)
        return AuditEvent(
            event_type=AuditEventType.AUTOMATION_RUN_COMPLETED,
            severity=AuditSeverity.WARNING if failed else AuditSeverity.INFO,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Automation run completed: {total} rules evaluated, {failed} failed",
            details={"status_counts": status_counts},
        )

    @staticmethod
    def rule_executed(
        execution_id: UUID,
        rule_id: UUID,
        user_id: str,
        action_type: str,
        duration_ms: float,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RULE_EXECUTED,
            entity_type="execution",
            entity_id=execution_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Rule action {action_type} completed",
            details={
                "rule_id": str(rule_id),
                "action_type": action_type,
                "duration_ms": duration_ms,
            },
        )

    @staticmethod
    def rule_skipped(
        execution_id: UUID,
        rule_id: UUID,
        user_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RULE_SKIPPED,
            severity=AuditSeverity.DEBUG,
            entity_type="execution",
            entity_id=execution_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Rule condition not met",
            details={"rule_id": str(rule_id)},
        )

    @staticmethod
    def rule_failed(
        execution_id: UUID,
        rule_id: UUID,
        user_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RULE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="execution",
            entity_id=execution_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Rule execution failed",
            error_message=error_message,
            details={"rule_id": str(rule_id)},
        )

    @staticmethod
    def stats_update_failed(
        rule_id: UUID,
        user_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATS_UPDATE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="rule",
            entity_id=rule_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Could not record execution statistics",
            error_message=error_message,
        )

    @staticmethod
    def budget_analysis_completed(
        user_id: str,
        overall_health: str,
        recommendation_count: int,
        total_savings: float,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_ANALYSIS_COMPLETED,
            entity_type="analysis",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Budget analysis completed: {overall_health} health",
            details={
                "overall_health": overall_health,
                "recommendation_count": recommendation_count,
                "total_savings": total_savings,
            },
        )

    @staticmethod
    def budget_analysis_failed(
        user_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_ANALYSIS_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="analysis",
            user_id=user_id,
            correlation_id=correlation_id,
            description="Budget analysis rejected its input",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
