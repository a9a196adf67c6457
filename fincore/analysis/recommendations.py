"""
Budget Recommendation Generation

Turns per-category variance into explainable recommendations.

Every recommendation carries a short explanation (max 240 characters)
that is shown to the user as-is. Texts are built from bounded inputs:
category names are capped at 100 characters and amounts at the
configured sanity ceiling.
"""

from collections.abc import Sequence

from fincore.analysis.variance import HIGH_VARIANCE_PERCENT
from fincore.models.budget import (
    BudgetCategoryAnalysis,
    BudgetRecommendation,
    ImpactLevel,
    OverallHealth,
    RecommendationPriority,
    RiskLevel,
)


GENERAL_CATEGORY = "general"

PRIORITY_ORDER = {
    RecommendationPriority.CRITICAL: 4,
    RecommendationPriority.HIGH: 3,
    RecommendationPriority.MEDIUM: 2,
    RecommendationPriority.LOW: 1,
}

IMPACT_ORDER = {
    ImpactLevel.HIGH: 3,
    ImpactLevel.MEDIUM: 2,
    ImpactLevel.LOW: 1,
}


def over_budget(category: BudgetCategoryAnalysis) -> BudgetRecommendation:
    overspend = abs(category.variance)
    priority = (
        RecommendationPriority.CRITICAL
        if category.risk_level == RiskLevel.CRITICAL
        else RecommendationPriority.HIGH
    )
    return BudgetRecommendation(
        id=f"over-budget-{category.category}",
        category=category.category,
        title=f"Reduce {category.category} spending",
        description=f"You are {abs(category.variance_percentage):.1f}% over budget",
        impact=ImpactLevel.HIGH,
        effort=ImpactLevel.MEDIUM,
        priority=priority,
        explanation=(
            f"Overspending of {overspend:.0f} needs attention now "
            f"to avoid financial stress."
        ),
        action_steps=[
            "Review every expense in the category",
            "Identify unnecessary costs",
            "Put cost controls in place",
            "Set monthly limits",
        ],
        expected_savings=overspend * 0.8,
        timeframe="1-2 months",
        confidence=85,
    )


def under_budget(category: BudgetCategoryAnalysis) -> BudgetRecommendation:
    surplus = abs(category.variance)
    return BudgetRecommendation(
        id=f"under-budget-{category.category}",
        category=category.category,
        title=f"Optimize {category.category} budget",
        description=f"You are spending {abs(category.variance_percentage):.1f}% less than budgeted",
        impact=ImpactLevel.MEDIUM,
        effort=ImpactLevel.LOW,
        priority=RecommendationPriority.MEDIUM,
        explanation=f"You could free up {surplus:.0f} by lowering this budget.",
        action_steps=[
            "Check whether the budget can be reduced",
            "Put the surplus towards paying down debt",
            "Increase savings or investments",
        ],
        expected_savings=surplus,
        timeframe="Immediately",
        confidence=95,
    )


def emergency_review(total_variance: float) -> BudgetRecommendation:
    return BudgetRecommendation(
        id="emergency-budget-review",
        category=GENERAL_CATEGORY,
        title="Budget review required",
        description="The budget situation is critical and needs immediate action",
        impact=ImpactLevel.HIGH,
        effort=ImpactLevel.HIGH,
        priority=RecommendationPriority.CRITICAL,
        explanation=(
            "Several categories show serious deviations that can lead to "
            "a financial crisis if left unhandled."
        ),
        action_steps=[
            "Do a complete budget review",
            "Identify all unnecessary expenses",
            "Put strict cost controls in place",
            "Consider additional sources of income",
            "Talk to a financial advisor",
        ],
        expected_savings=total_variance * 0.6,
        timeframe="2-4 weeks",
        confidence=90,
    )


def improve_tracking() -> BudgetRecommendation:
    return BudgetRecommendation(
        id="improve-budget-tracking",
        category=GENERAL_CATEGORY,
        title="Improve budget tracking",
        description="Set up better systems for budget tracking and alerts",
        impact=ImpactLevel.MEDIUM,
        effort=ImpactLevel.LOW,
        priority=RecommendationPriority.MEDIUM,
        explanation="Better tracking helps you spot problems earlier and stay on course.",
        action_steps=[
            "Set up automatic budget alerts",
            "Do a weekly budget review",
            "Use a budgeting app for a better overview",
            "Categorize your expenses",
        ],
        expected_savings=0.0,
        timeframe="1 month",
        confidence=80,
    )


def sort_recommendations(
    recommendations: Sequence[BudgetRecommendation],
) -> list[BudgetRecommendation]:
    """Priority descending, then impact descending. Stable for ties."""
    return sorted(
        recommendations,
        key=lambda r: (PRIORITY_ORDER[r.priority], IMPACT_ORDER[r.impact]),
        reverse=True,
    )


def generate_recommendations(
    categories: Sequence[BudgetCategoryAnalysis],
    health: OverallHealth,
    total_variance: float,
) -> list[BudgetRecommendation]:
    """Build and sort every recommendation for one analysis."""
    recommendations = []

    if health in (OverallHealth.CRITICAL, OverallHealth.POOR):
        recommendations.append(emergency_review(total_variance))

    for category in categories:
        if category.variance_percentage > HIGH_VARIANCE_PERCENT:
            recommendations.append(over_budget(category))
        elif category.variance_percentage < -HIGH_VARIANCE_PERCENT:
            recommendations.append(under_budget(category))

    recommendations.append(improve_tracking())

    return sort_recommendations(recommendations)
