"""
Variance, Trend, Risk and Health Classification

Pure functions. No state, no I/O.
"""

from collections.abc import Sequence

from fincore.models.budget import (
    BudgetCategoryAnalysis,
    OverallHealth,
    RiskLevel,
    Trend,
)


# Absolute variance percentage above which a category counts as off-budget
HIGH_VARIANCE_PERCENT = 20.0

TREND_WINDOW = 3
TREND_CHANGE_THRESHOLD = 0.1


def variance_percentage(budgeted: float, actual: float) -> float:
    """Variance as a percentage of the budget; 0 when nothing was budgeted."""
    if budgeted <= 0:
        return 0.0
    return (actual - budgeted) / budgeted * 100


def calculate_trend(series: Sequence[float]) -> Trend:
    """
    Compare the mean of the last three points with the mean of the
    three before them. Relative change beyond 10% either way is a trend.
    """
    if len(series) < 2:
        return Trend.STABLE

    recent = series[-TREND_WINDOW:]
    older = series[-2 * TREND_WINDOW:-TREND_WINDOW]
    if not recent or not older:
        return Trend.STABLE

    recent_avg = sum(recent) / len(recent)
    older_avg = sum(older) / len(older)
    if older_avg == 0:
        return Trend.STABLE

    change = (recent_avg - older_avg) / older_avg
    if change > TREND_CHANGE_THRESHOLD:
        return Trend.INCREASING
    if change < -TREND_CHANGE_THRESHOLD:
        return Trend.DECREASING
    return Trend.STABLE


def assess_risk_level(percentage: float) -> RiskLevel:
    """Risk from the absolute variance percentage."""
    magnitude = abs(percentage)
    if magnitude > 50:
        return RiskLevel.CRITICAL
    if magnitude > 30:
        return RiskLevel.HIGH
    if magnitude > 15:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def is_high_variance(category: BudgetCategoryAnalysis) -> bool:
    return abs(category.variance_percentage) > HIGH_VARIANCE_PERCENT


def classify_health(
    categories: Sequence[BudgetCategoryAnalysis],
    total_variance: float,
) -> OverallHealth:
    """
    First matching rule wins:
    any critical category, more than three off-budget, more than one
    off-budget, net under budget, otherwise good.
    """
    if any(c.risk_level == RiskLevel.CRITICAL for c in categories):
        return OverallHealth.CRITICAL

    high_variance = sum(1 for c in categories if is_high_variance(c))
    if high_variance > 3:
        return OverallHealth.POOR
    if high_variance > 1:
        return OverallHealth.FAIR
    if total_variance < 0:
        return OverallHealth.EXCELLENT
    return OverallHealth.GOOD
