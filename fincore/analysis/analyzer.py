"""
Budget Analyzer

Compares budgeted and actual spending per category and produces
explainable recommendations.

DESIGN DECISION: The analysis runs in five fixed phases over one
in-memory result:

1. OBSERVE - validate rows, compute variance, trend and risk
2. ASSESS  - classify overall budget health
3. PLAN    - generate and rank recommendations
4. ACT     - select the top recommendations for this cycle
5. LEARN   - derive diagnostic insights (never changes the result)

CRITICAL: The analysis is all-or-nothing. Invalid input raises
AnalysisError and no partial result is ever published.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import Any, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from fincore.analysis.recommendations import generate_recommendations
from fincore.analysis.variance import (
    assess_risk_level,
    calculate_trend,
    classify_health,
    is_high_variance,
    variance_percentage,
)
from fincore.config import get_settings
from fincore.config.settings import AnalyzerSettings
from fincore.models.budget import (
    EXPLANATION_MAX_LENGTH,
    BudgetAnalysisResult,
    BudgetCategoryAnalysis,
    BudgetCategoryInput,
    BudgetRecommendation,
    LearningInsights,
)


logger = structlog.get_logger(__name__)


class AnalysisError(Exception):
    """Budget input was rejected. No result was produced."""
    pass


class RecommendationExecutor(ABC):
    """Receives the recommendations selected in the act phase."""

    @abstractmethod
    def execute(self, user_id: str, recommendations: list[BudgetRecommendation]) -> None:
        pass


class BudgetAnalyzer:
    """
    Runs budget analyses for one user.

    Usage:
        analyzer = BudgetAnalyzer("user-1")
        result = analyzer.analyze_budget([
            {"category": "food", "budgeted": 3000, "actual": 4200},
        ])
        print(analyzer.explainability_summary())
    """

    def __init__(
        self,
        user_id: str,
        settings: Optional[AnalyzerSettings] = None,
        action_executor: Optional[RecommendationExecutor] = None,
        insights_hook: Optional[Callable[[LearningInsights], None]] = None,
    ):
        self._user_id = user_id
        self._settings = settings or get_settings().analyzer
        self._action_executor = action_executor
        self._insights_hook = insights_hook

        self._state = self._fresh_state()
        self._proposed_actions: list[BudgetRecommendation] = []
        self._insights: Optional[LearningInsights] = None

    def _fresh_state(self) -> BudgetAnalysisResult:
        return BudgetAnalysisResult(
            user_id=self._user_id,
            engine_version=self._settings.engine_version,
        )

    # =========================================================================
    # PHASES
    # =========================================================================

    def _parse_row(self, index: int, row: Any) -> BudgetCategoryInput:
        if isinstance(row, BudgetCategoryInput):
            parsed = row
        else:
            try:
                parsed = BudgetCategoryInput.model_validate(row)
            except PydanticValidationError as e:
                messages = "; ".join(
                    f"{'.'.join(str(p) for p in err['loc']) or 'row'}: {err['msg']}"
                    for err in e.errors()
                )
                raise AnalysisError(f"Invalid budget row {index}: {messages}") from e

        ceiling = self._settings.max_amount
        if parsed.budgeted > ceiling or parsed.actual > ceiling:
            raise AnalysisError(
                f"Budget row {index} ({parsed.category}) exceeds the maximum amount {ceiling:.0f}"
            )
        return parsed

    def _observe(self, state: BudgetAnalysisResult, raw_categories: Iterable[Any]) -> None:
        if raw_categories is None or isinstance(raw_categories, (str, bytes, dict)):
            raise AnalysisError("Budget data must be a list of category rows")
        try:
            rows = list(raw_categories)
        except TypeError as e:
            raise AnalysisError("Budget data must be a list of category rows") from e

        seen = set()
        for index, raw in enumerate(rows):
            row = self._parse_row(index, raw)
            if row.category in seen:
                raise AnalysisError(f"Duplicate budget category: {row.category}")
            seen.add(row.category)

            pct = variance_percentage(row.budgeted, row.actual)
            state.categories.append(BudgetCategoryAnalysis(
                category=row.category,
                budgeted=row.budgeted,
                actual=row.actual,
                variance=row.actual - row.budgeted,
                variance_percentage=pct,
                trend=calculate_trend(row.historical_series),
                risk_level=assess_risk_level(pct),
            ))

        state.total_variance = sum(c.variance for c in state.categories)
        logger.info(
            "budget_observe_complete",
            user_id=self._user_id,
            categories=len(state.categories),
        )

    def _assess(self, state: BudgetAnalysisResult) -> None:
        state.overall_health = classify_health(state.categories, state.total_variance)
        logger.info(
            "budget_assess_complete",
            user_id=self._user_id,
            overall_health=state.overall_health.value,
        )

    def _plan(self, state: BudgetAnalysisResult) -> None:
        state.recommendations = generate_recommendations(
            state.categories,
            state.overall_health,
            state.total_variance,
        )
        state.total_savings = sum(r.expected_savings or 0.0 for r in state.recommendations)
        logger.info(
            "budget_plan_complete",
            user_id=self._user_id,
            recommendations=len(state.recommendations),
            total_savings=state.total_savings,
        )

    def _act(self, state: BudgetAnalysisResult) -> list[BudgetRecommendation]:
        selected = state.recommendations[:self._settings.proposed_action_limit]
        for recommendation in selected:
            logger.info(
                "budget_action_proposed",
                user_id=self._user_id,
                recommendation_id=recommendation.id,
                impact=recommendation.impact.value,
                effort=recommendation.effort.value,
                expected_savings=recommendation.expected_savings or 0.0,
            )
        if self._action_executor is not None:
            self._action_executor.execute(self._user_id, list(selected))
        return selected

    def _learn(self, state: BudgetAnalysisResult) -> LearningInsights:
        categories = state.categories
        most_problematic = None
        average = 0.0
        if categories:
            average = sum(abs(c.variance_percentage) for c in categories) / len(categories)
            # max() keeps the first of equally problematic categories
            most_problematic = max(categories, key=lambda c: abs(c.variance_percentage)).category

        insights = LearningInsights(
            total_categories=len(categories),
            high_variance_count=sum(1 for c in categories if is_high_variance(c)),
            average_variance_percentage=average,
            most_problematic_category=most_problematic,
        )
        logger.info("budget_learning_insights", user_id=self._user_id, **insights.model_dump())
        if self._insights_hook is not None:
            self._insights_hook(insights)
        return insights

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def analyze_budget(self, raw_categories: Iterable[Any]) -> BudgetAnalysisResult:
        """
        Run all five phases over a list of budget rows.

        Each row needs `category`, `budgeted` and `actual`, and may carry
        a `historical_series` (also accepted as historicalSeries,
        historical_data or historicalData).

        Returns:
            The completed analysis

        Raises:
            AnalysisError: If any row is invalid (nothing is published)
        """
        state = self._fresh_state()

        try:
            self._observe(state, raw_categories)
        except AnalysisError as e:
            logger.warning("budget_analysis_rejected", user_id=self._user_id, error=str(e))
            raise

        self._assess(state)
        self._plan(state)
        proposed = self._act(state)
        insights = self._learn(state)

        self._state = state
        self._proposed_actions = proposed
        self._insights = insights
        return state.model_copy(deep=True)

    def explainability_summary(self) -> str:
        """One-sentence summary of the latest analysis, at most 240 characters."""
        state = self._state
        health = state.overall_health.value
        count = len(state.recommendations)
        categories = len(state.categories)

        summary = (
            f"Budget analysis: {health} health, {count} recommendations, "
            f"potential savings {state.total_savings:.0f}. {categories} categories analyzed."
        )
        if len(summary) > EXPLANATION_MAX_LENGTH:
            summary = (
                f"Budget analysis: {health} health, {count:.3g} recommendations, "
                f"potential savings {state.total_savings:.3g}. {categories:.3g} categories analyzed."
            )
        return summary

    def get_state(self) -> BudgetAnalysisResult:
        """Copy of the latest analysis for observability."""
        return self._state.model_copy(deep=True)

    @property
    def proposed_actions(self) -> list[BudgetRecommendation]:
        """Recommendations selected in the latest act phase."""
        return list(self._proposed_actions)

    @property
    def insights(self) -> Optional[LearningInsights]:
        """Insights from the latest learn phase."""
        return self._insights
