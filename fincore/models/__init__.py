"""
Data Models Package

This package contains all Pydantic models used by the automation core.
All data flowing through the engine and analyzer must conform to these schemas.
"""

from fincore.models.automation import (
    Action,
    ActionType,
    AlertAction,
    AutoPayAction,
    AutomationExecution,
    AutomationRule,
    BillDueTrigger,
    Condition,
    ConditionOperator,
    DebtPaymentTrigger,
    ExecutionStatus,
    IncomeReceivedTrigger,
    InvestAction,
    LogicalOperator,
    LowBalanceTrigger,
    NotifyAction,
    PauseSpendingAction,
    RuleSpec,
    RuleValidationResult,
    SaveMoneyAction,
    SavingsGoalTrigger,
    ScheduledTrigger,
    SnapshotField,
    SpendingExceededTrigger,
    TransferAction,
    Trigger,
    TriggerType,
    Urgency,
    UserFinancialStatistics,
    ValidationIssue,
)
from fincore.models.budget import (
    BudgetAnalysisResult,
    BudgetCategoryAnalysis,
    BudgetCategoryInput,
    BudgetRecommendation,
    ImpactLevel,
    LearningInsights,
    OverallHealth,
    RecommendationPriority,
    RiskLevel,
    Trend,
)
from fincore.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Automation models
    "Action",
    "ActionType",
    "AlertAction",
    "AutoPayAction",
    "AutomationExecution",
    "AutomationRule",
    "BillDueTrigger",
    "Condition",
    "ConditionOperator",
    "DebtPaymentTrigger",
    "ExecutionStatus",
    "IncomeReceivedTrigger",
    "InvestAction",
    "LogicalOperator",
    "LowBalanceTrigger",
    "NotifyAction",
    "PauseSpendingAction",
    "RuleSpec",
    "RuleValidationResult",
    "SaveMoneyAction",
    "SavingsGoalTrigger",
    "ScheduledTrigger",
    "SnapshotField",
    "SpendingExceededTrigger",
    "TransferAction",
    "Trigger",
    "TriggerType",
    "Urgency",
    "UserFinancialStatistics",
    "ValidationIssue",
    # Budget models
    "BudgetAnalysisResult",
    "BudgetCategoryAnalysis",
    "BudgetCategoryInput",
    "BudgetRecommendation",
    "ImpactLevel",
    "LearningInsights",
    "OverallHealth",
    "RecommendationPriority",
    "RiskLevel",
    "Trend",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
