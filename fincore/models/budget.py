"""
Budget Analysis Models

Schemas for the budget analyzer's input rows, per-category analysis,
recommendations and the aggregate result.

CRITICAL: A recommendation's explanation is shown verbatim in the UI.
It is bounded to 240 characters and construction FAILS if exceeded -
we never truncate silently.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    field_validator,
)

from fincore.models.automation import utc_now


EXPLANATION_MAX_LENGTH = 240


class Trend(str, Enum):
    """Direction of a category's recent spending."""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class RiskLevel(str, Enum):
    """Risk derived from the absolute variance percentage."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ImpactLevel(str, Enum):
    """Impact or effort of a recommendation."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RecommendationPriority(str, Enum):
    """Recommendation priority; critical outranks everything."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class OverallHealth(str, Enum):
    """Overall budget health classification."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"


class BudgetCategoryInput(BaseModel):
    """
    One raw budgeted-vs-actual row as supplied by the caller.

    Amounts must be finite and non-negative real numbers; booleans and
    numeric strings are rejected rather than coerced. The historical series
    is the category's actual spending for previous periods, oldest first.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        allow_inf_nan=False,
        populate_by_name=True,
    )

    category: str = Field(..., min_length=1, max_length=100)
    budgeted: float = Field(..., ge=0, strict=True)
    actual: float = Field(..., ge=0, strict=True)
    historical_series: list[StrictFloat] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "historical_series",
            "historicalSeries",
            "historical_data",
            "historicalData",
        ),
    )

    @field_validator('historical_series')
    @classmethod
    def validate_series(cls, v: list[float]) -> list[float]:
        if any(not math.isfinite(x) for x in v):
            raise ValueError("Historical series must contain only finite numbers")
        return v


class BudgetCategoryAnalysis(BaseModel):
    """One category's variance snapshot."""
    model_config = ConfigDict(frozen=True)

    category: str
    budgeted: float
    actual: float
    variance: float
    variance_percentage: float
    trend: Trend
    risk_level: RiskLevel


class BudgetRecommendation(BaseModel):
    """A generated, explainable budget suggestion."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Derived from category and kind")
    category: str
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., max_length=500)
    impact: ImpactLevel
    effort: ImpactLevel
    priority: RecommendationPriority
    explanation: str = Field(..., min_length=1, max_length=EXPLANATION_MAX_LENGTH)
    action_steps: list[str] = Field(default_factory=list)
    expected_savings: Optional[float] = None
    timeframe: str
    confidence: float = Field(..., ge=0, le=100)


class BudgetAnalysisResult(BaseModel):
    """
    Aggregate output of one analyzer run.

    Constructed fresh on every invocation. Not persisted by the core.
    """

    user_id: str
    analysis_date: datetime = Field(default_factory=utc_now)
    categories: list[BudgetCategoryAnalysis] = Field(default_factory=list)
    recommendations: list[BudgetRecommendation] = Field(default_factory=list)
    overall_health: OverallHealth = OverallHealth.GOOD
    total_variance: float = 0.0
    total_savings: float = 0.0
    engine_version: str


class LearningInsights(BaseModel):
    """Diagnostic aggregates of the learn phase. Never persisted."""
    model_config = ConfigDict(frozen=True)

    total_categories: int
    high_variance_count: int
    average_variance_percentage: float
    most_problematic_category: Optional[str] = None
