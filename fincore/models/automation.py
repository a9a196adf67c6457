"""
Automation Data Models

These models define the strict schemas for automation rules and the
execution records the engine produces. They are designed to:
1. Reject structurally invalid rules at construction time
2. Give every trigger and action kind an explicit, typed payload
3. Be serializable for storage and logging
4. Keep execution records immutable once created

DESIGN DECISION: Triggers and actions are discriminated unions keyed on
`type`. Each variant names the parameters it understands; anything else
goes into the open `parameters` map, so extension data never requires
stringly-typed access to the well-known fields.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TriggerType(str, Enum):
    """What kind of financial event a rule reacts to."""
    BILL_DUE = "BILL_DUE"
    LOW_BALANCE = "LOW_BALANCE"
    SPENDING_EXCEEDED = "SPENDING_EXCEEDED"
    SAVINGS_GOAL = "SAVINGS_GOAL"
    DEBT_PAYMENT = "DEBT_PAYMENT"
    INCOME_RECEIVED = "INCOME_RECEIVED"
    SCHEDULED = "SCHEDULED"


class ConditionOperator(str, Enum):
    """Comparison applied between a resolved field and the rule's value."""
    EQUALS = "EQUALS"
    NOT_EQUALS = "NOT_EQUALS"
    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"
    CONTAINS = "CONTAINS"


class LogicalOperator(str, Enum):
    """How a condition combines with its additional conditions."""
    AND = "AND"
    OR = "OR"


class ActionType(str, Enum):
    """What the engine does when a rule's condition holds."""
    NOTIFY = "NOTIFY"
    TRANSFER = "TRANSFER"
    PAUSE_SPENDING = "PAUSE_SPENDING"
    AUTO_PAY = "AUTO_PAY"
    SAVE_MONEY = "SAVE_MONEY"
    INVEST = "INVEST"
    ALERT = "ALERT"


class ExecutionStatus(str, Enum):
    """
    Outcome of one rule evaluation attempt.

    CANCELLED means the condition was not met - it is not an error.
    """
    PENDING = "PENDING"
    EXECUTING = "EXECUTING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class Urgency(str, Enum):
    """Urgency for notifications and alerts."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class SnapshotField(str, Enum):
    """
    Fields of the user's financial snapshot a condition may compare.

    DESIGN DECISION: Conditions may only reference known fields.
    An unknown field is a validation error when the rule is created,
    not a silent null at evaluation time.
    """
    BALANCE = "balance"                # Current account balance
    BILL_AMOUNT = "amount"             # Most recent bill amount
    INCOME = "income"                  # Most recent income event
    SPENDING = "spending"              # Spending in the current period
    SAVINGS = "savings"                # Progress towards savings goals
    DEBT = "debt"                      # Outstanding debt
    BUDGET_HEALTH = "budget_health"    # Overall health from the budget analyzer
    TOTAL_VARIANCE = "total_variance"  # Net budget variance from the analyzer


NUMERIC_FIELDS = frozenset({
    SnapshotField.BALANCE,
    SnapshotField.BILL_AMOUNT,
    SnapshotField.INCOME,
    SnapshotField.SPENDING,
    SnapshotField.SAVINGS,
    SnapshotField.DEBT,
    SnapshotField.TOTAL_VARIANCE,
})


# =============================================================================
# TRIGGERS
# =============================================================================

class _TriggerBase(BaseModel):
    model_config = ConfigDict(extra="forbid")

    parameters: dict[str, Any] = Field(
        default_factory=dict,
        description="Extension parameters not covered by the typed fields"
    )

    @property
    def trigger_type(self) -> TriggerType:
        return TriggerType(self.type)


class BillDueTrigger(_TriggerBase):
    type: Literal["BILL_DUE"] = "BILL_DUE"
    days_before_due: int = Field(default=3, ge=0, le=60)


class LowBalanceTrigger(_TriggerBase):
    type: Literal["LOW_BALANCE"] = "LOW_BALANCE"
    threshold: float = Field(..., gt=0)


class SpendingExceededTrigger(_TriggerBase):
    type: Literal["SPENDING_EXCEEDED"] = "SPENDING_EXCEEDED"
    limit: float = Field(..., gt=0)
    category: Optional[str] = Field(default=None, max_length=100)


class SavingsGoalTrigger(_TriggerBase):
    type: Literal["SAVINGS_GOAL"] = "SAVINGS_GOAL"
    target_amount: float = Field(..., gt=0)
    goal_name: Optional[str] = Field(default=None, max_length=100)


class DebtPaymentTrigger(_TriggerBase):
    type: Literal["DEBT_PAYMENT"] = "DEBT_PAYMENT"
    debt_name: Optional[str] = Field(default=None, max_length=100)
    amount: Optional[float] = Field(default=None, gt=0)


class IncomeReceivedTrigger(_TriggerBase):
    type: Literal["INCOME_RECEIVED"] = "INCOME_RECEIVED"
    amount: Optional[float] = Field(default=None, gt=0)


class ScheduledTrigger(_TriggerBase):
    """Time-based trigger with a five-field cron expression."""
    type: Literal["SCHEDULED"] = "SCHEDULED"
    schedule: str = Field(..., min_length=9, max_length=100)

    @field_validator('schedule')
    @classmethod
    def validate_schedule(cls, v: str) -> str:
        fields = v.split()
        if len(fields) != 5:
            raise ValueError(
                f"Schedule must have 5 cron fields (minute hour day month weekday), got {len(fields)}"
            )
        return " ".join(fields)


Trigger = Annotated[
    Union[
        BillDueTrigger,
        LowBalanceTrigger,
        SpendingExceededTrigger,
        SavingsGoalTrigger,
        DebtPaymentTrigger,
        IncomeReceivedTrigger,
        ScheduledTrigger,
    ],
    Field(discriminator="type"),
]


# =============================================================================
# CONDITIONS
# =============================================================================

class Condition(BaseModel):
    """
    A comparison plus, optionally, further conditions combined with it.

    The tree is recursive: every additional condition is a full Condition
    and may carry its own additional conditions.
    AND requires every node to hold, OR requires any.
    """
    model_config = ConfigDict(extra="forbid")

    field: SnapshotField
    operator: ConditionOperator
    value: Any
    logical_operator: LogicalOperator = LogicalOperator.AND
    additional_conditions: list["Condition"] = Field(default_factory=list)

    @field_validator('value')
    @classmethod
    def value_required(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Condition value is required")
        return v

    @property
    def depth(self) -> int:
        """Nesting depth of this condition tree (a single comparison is 1)."""
        if not self.additional_conditions:
            return 1
        return 1 + max(c.depth for c in self.additional_conditions)

    def iter_nodes(self):
        """Yield every comparison in the tree, depth first."""
        yield self
        for child in self.additional_conditions:
            yield from child.iter_nodes()


Condition.model_rebuild()


# =============================================================================
# ACTIONS
# =============================================================================

class _ActionBase(BaseModel):
    model_config = ConfigDict(extra="forbid")

    parameters: dict[str, Any] = Field(
        default_factory=dict,
        description="Extension parameters passed through to the handler"
    )
    timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Time budget for this action; falls back to the engine default"
    )

    @property
    def action_type(self) -> ActionType:
        return ActionType(self.type)


class NotifyAction(_ActionBase):
    type: Literal["NOTIFY"] = "NOTIFY"
    message: str = Field(..., min_length=1, max_length=500)
    urgency: Urgency = Urgency.MEDIUM


class TransferAction(_ActionBase):
    type: Literal["TRANSFER"] = "TRANSFER"
    amount: float = Field(..., gt=0)
    from_account: str = Field(..., min_length=1, max_length=100)
    to_account: str = Field(..., min_length=1, max_length=100)

    @model_validator(mode='after')
    def validate_accounts(self) -> 'TransferAction':
        if self.from_account == self.to_account:
            raise ValueError("Transfer source and destination must differ")
        return self


class PauseSpendingAction(_ActionBase):
    type: Literal["PAUSE_SPENDING"] = "PAUSE_SPENDING"
    category: Optional[str] = Field(default=None, max_length=100)
    duration_days: Optional[int] = Field(default=None, ge=1, le=365)


class AutoPayAction(_ActionBase):
    type: Literal["AUTO_PAY"] = "AUTO_PAY"
    method: str = Field(default="AUTOMATIC", min_length=1, max_length=50)
    confirmation: bool = True


class SaveMoneyAction(_ActionBase):
    type: Literal["SAVE_MONEY"] = "SAVE_MONEY"
    amount: float = Field(..., gt=0)
    account: str = Field(default="SAVINGS", min_length=1, max_length=100)


class InvestAction(_ActionBase):
    type: Literal["INVEST"] = "INVEST"
    amount: float = Field(..., gt=0)
    instrument: Optional[str] = Field(default=None, max_length=100)


class AlertAction(_ActionBase):
    type: Literal["ALERT"] = "ALERT"
    message: str = Field(..., min_length=1, max_length=500)
    severity: Urgency = Urgency.HIGH


Action = Annotated[
    Union[
        NotifyAction,
        TransferAction,
        PauseSpendingAction,
        AutoPayAction,
        SaveMoneyAction,
        InvestAction,
        AlertAction,
    ],
    Field(discriminator="type"),
]


# =============================================================================
# RULES
# =============================================================================

class RuleSpec(BaseModel):
    """
    Caller input for creating a rule.

    Identity, ownership and execution statistics are assigned by the engine.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    trigger: Trigger
    condition: Condition
    action: Action
    is_active: bool = True
    priority: int = Field(
        default=5,
        ge=0,
        description="Lower runs first within one invocation"
    )
    ai_recommended: bool = False


class AutomationRule(BaseModel):
    """
    A named, user-owned automation policy.

    CRITICAL: Only the engine advances execution_count and last_executed,
    and only after an action completed successfully.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    trigger: Trigger
    condition: Condition
    action: Action
    is_active: bool = True
    priority: int = Field(default=5, ge=0)
    ai_recommended: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    last_executed: Optional[datetime] = None
    execution_count: int = Field(default=0, ge=0)

    @classmethod
    def from_spec(cls, user_id: str, spec: RuleSpec) -> 'AutomationRule':
        """Build a fresh, never-executed rule from a validated spec."""
        return cls(
            user_id=user_id,
            name=spec.name,
            description=spec.description,
            trigger=spec.trigger,
            condition=spec.condition,
            action=spec.action,
            is_active=spec.is_active,
            priority=spec.priority,
            ai_recommended=spec.ai_recommended,
        )


class AutomationExecution(BaseModel):
    """
    Immutable record of one rule evaluation attempt.

    Execution records are append-only: never mutated after creation.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    rule_id: UUID
    user_id: str
    status: ExecutionStatus
    result: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    executed_at: datetime = Field(default_factory=utc_now)
    duration_ms: float = Field(default=0.0, ge=0)

    @model_validator(mode='after')
    def validate_outcome(self) -> 'AutomationExecution':
        if self.status == ExecutionStatus.FAILED and not self.error:
            raise ValueError("A failed execution must carry an error message")
        if self.status == ExecutionStatus.COMPLETED and self.error:
            raise ValueError("A completed execution cannot carry an error message")
        return self


class UserFinancialStatistics(BaseModel):
    """Aggregate statistics the rule generator works from."""

    monthly_income: float = Field(default=0.0, ge=0)
    savings_rate: float = Field(
        default=0.0,
        description="Share of income saved, in percent"
    )
    average_balance: float = 0.0
    average_bill_amount: float = Field(default=0.0, ge=0)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'incompatible')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class RuleValidationResult(BaseModel):
    """
    Result of the two-stage rule validation.

    Stage 1: Schema validation (types, required fields, known variants)
    Stage 2: Semantic validation (operator compatibility, limits)
    """

    rule_name: Optional[str] = None
    validated_at: datetime = Field(default_factory=utc_now)

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool

    spec: Optional[RuleSpec] = Field(
        default=None,
        description="The parsed spec, present when schema validation passed"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
