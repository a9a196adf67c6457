"""Budget analysis package."""

from fincore.analysis.analyzer import AnalysisError, BudgetAnalyzer, RecommendationExecutor
from fincore.analysis.variance import assess_risk_level, calculate_trend, classify_health

__all__ = [
    "AnalysisError",
    "BudgetAnalyzer",
    "RecommendationExecutor",
    "assess_risk_level",
    "calculate_trend",
    "classify_health",
]
