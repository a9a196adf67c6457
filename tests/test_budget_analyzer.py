"""
Tests for the budget analyzer.
"""

import pytest

from fincore.analysis import (
    AnalysisError,
    BudgetAnalyzer,
    RecommendationExecutor,
    assess_risk_level,
    calculate_trend,
    classify_health,
)
from fincore.analysis.recommendations import sort_recommendations
from fincore.config.settings import AnalyzerSettings
from fincore.models.budget import (
    BudgetCategoryAnalysis,
    BudgetRecommendation,
    ImpactLevel,
    OverallHealth,
    RecommendationPriority,
    RiskLevel,
    Trend,
)


FOOD_AND_TRANSPORT = [
    {"category": "food", "budgeted": 3000, "actual": 4200},
    {"category": "transport", "budgeted": 1000, "actual": 600},
]


def _analyzer(**kwargs) -> BudgetAnalyzer:
    return BudgetAnalyzer("user-1", settings=AnalyzerSettings(), **kwargs)


def _category(name: str, pct: float, risk: RiskLevel = RiskLevel.LOW) -> BudgetCategoryAnalysis:
    return BudgetCategoryAnalysis(
        category=name,
        budgeted=100,
        actual=100 + pct,
        variance=pct,
        variance_percentage=pct,
        trend=Trend.STABLE,
        risk_level=risk,
    )


def _recommendation(rec_id: str, priority: RecommendationPriority, impact: ImpactLevel) -> BudgetRecommendation:
    return BudgetRecommendation(
        id=rec_id,
        category="general",
        title=rec_id,
        description="",
        impact=impact,
        effort=ImpactLevel.LOW,
        priority=priority,
        explanation="because",
        timeframe="now",
        confidence=50,
    )


class RecordingExecutor(RecommendationExecutor):
    def __init__(self):
        self.calls = []

    def execute(self, user_id, recommendations):
        self.calls.append((user_id, recommendations))


class TestRiskAndTrend:
    """Tests for the pure classification helpers."""

    @pytest.mark.parametrize(
        "pct, expected",
        [
            (10, RiskLevel.LOW),
            (20, RiskLevel.MEDIUM),
            (40, RiskLevel.HIGH),
            (60, RiskLevel.CRITICAL),
            (-60, RiskLevel.CRITICAL),
            (15, RiskLevel.LOW),
            (50, RiskLevel.HIGH),
        ],
    )
    def test_risk_levels(self, pct, expected):
        """Test risk thresholds on the absolute variance percentage."""
        assert assess_risk_level(pct) == expected

    def test_trend_needs_two_points(self):
        """Test that short series are stable."""
        assert calculate_trend([]) == Trend.STABLE
        assert calculate_trend([100]) == Trend.STABLE

    def test_trend_needs_older_window(self):
        """Test that three or fewer points have no older window."""
        assert calculate_trend([100, 500, 900]) == Trend.STABLE

    def test_trend_directions(self):
        """Test increasing, decreasing and stable series."""
        assert calculate_trend([100, 100, 100, 150, 150, 150]) == Trend.INCREASING
        assert calculate_trend([100, 100, 100, 50, 50, 50]) == Trend.DECREASING
        assert calculate_trend([100, 100, 100, 105, 105, 105]) == Trend.STABLE

    def test_trend_uses_last_six_points(self):
        """Test that only the last two windows matter."""
        assert calculate_trend([1, 1, 1, 100, 100, 100, 100, 100, 100]) == Trend.STABLE

    def test_trend_zero_older_mean(self):
        """Test that a zero baseline never divides by zero."""
        assert calculate_trend([0, 0, 0, 10, 10, 10]) == Trend.STABLE

    def test_health_rules(self):
        """Test the health classification order."""
        assert classify_health([_category("a", 60, RiskLevel.CRITICAL)], 60) == OverallHealth.CRITICAL
        many = [_category(str(i), 25) for i in range(4)]
        assert classify_health(many, 100) == OverallHealth.POOR
        assert classify_health(many[:2], 50) == OverallHealth.FAIR
        assert classify_health([_category("a", -5)], -5) == OverallHealth.EXCELLENT
        assert classify_health([_category("a", 5)], 5) == OverallHealth.GOOD


class TestRecommendationSort:
    """Tests for recommendation ordering."""

    def test_priority_then_impact(self):
        """Test that critical comes first and impact breaks ties."""
        recs = [
            _recommendation("medium-low", RecommendationPriority.MEDIUM, ImpactLevel.LOW),
            _recommendation("high-medium", RecommendationPriority.HIGH, ImpactLevel.MEDIUM),
            _recommendation("critical", RecommendationPriority.CRITICAL, ImpactLevel.LOW),
            _recommendation("high-high", RecommendationPriority.HIGH, ImpactLevel.HIGH),
        ]
        assert [r.id for r in sort_recommendations(recs)] == [
            "critical",
            "high-high",
            "high-medium",
            "medium-low",
        ]

    def test_sort_is_stable(self):
        """Test that equal keys keep their order."""
        recs = [
            _recommendation("first", RecommendationPriority.MEDIUM, ImpactLevel.MEDIUM),
            _recommendation("second", RecommendationPriority.MEDIUM, ImpactLevel.MEDIUM),
        ]
        assert [r.id for r in sort_recommendations(recs)] == ["first", "second"]


class TestAnalyzeBudget:
    """Tests for the full five-phase analysis."""

    def test_food_and_transport_scenario(self):
        """Test the reference two-category scenario."""
        result = _analyzer().analyze_budget(FOOD_AND_TRANSPORT)

        food, transport = result.categories
        assert food.variance == pytest.approx(1200)
        assert food.variance_percentage == pytest.approx(40)
        assert food.risk_level == RiskLevel.HIGH
        assert transport.variance_percentage == pytest.approx(-40)
        assert transport.risk_level == RiskLevel.HIGH

        assert result.overall_health == OverallHealth.FAIR
        assert result.total_variance == pytest.approx(800)

        by_id = {r.id: r for r in result.recommendations}
        assert by_id["over-budget-food"].expected_savings == pytest.approx(960)
        assert by_id["over-budget-food"].priority == RecommendationPriority.HIGH
        assert by_id["under-budget-transport"].expected_savings == pytest.approx(400)
        assert "improve-budget-tracking" in by_id
        assert "emergency-budget-review" not in by_id

        assert [r.id for r in result.recommendations] == [
            "over-budget-food",
            "under-budget-transport",
            "improve-budget-tracking",
        ]
        assert result.total_savings == pytest.approx(1360)

    def test_critical_health_adds_emergency_review(self):
        """Test that critical health puts the emergency review first."""
        result = _analyzer().analyze_budget([
            {"category": "rent", "budgeted": 1000, "actual": 2000},
        ])
        assert result.overall_health == OverallHealth.CRITICAL
        first, second = result.recommendations[:2]
        assert first.id == "emergency-budget-review"
        assert first.expected_savings == pytest.approx(600)
        assert second.id == "over-budget-rent"
        assert second.priority == RecommendationPriority.CRITICAL

    def test_zero_budget_has_zero_percentage(self):
        """Test that unbudgeted categories never divide by zero."""
        result = _analyzer().analyze_budget([{"category": "gifts", "budgeted": 0, "actual": 300}])
        assert result.categories[0].variance_percentage == 0
        assert result.categories[0].risk_level == RiskLevel.LOW

    def test_historical_series_drives_trend(self):
        """Test that the camelCase history key is honored."""
        result = _analyzer().analyze_budget([
            {
                "category": "food",
                "budgeted": 100,
                "actual": 100,
                "historicalData": [100, 100, 100, 200, 200, 200],
            },
        ])
        assert result.categories[0].trend == Trend.INCREASING

    def test_empty_input(self):
        """Test that no categories still yields a tracking recommendation."""
        analyzer = _analyzer()
        result = analyzer.analyze_budget([])
        assert result.categories == []
        assert result.overall_health == OverallHealth.GOOD
        assert [r.id for r in result.recommendations] == ["improve-budget-tracking"]
        assert analyzer.insights.most_problematic_category is None

    def test_identical_inputs_identical_results(self):
        """Test that analysis is deterministic apart from the timestamp."""
        first = _analyzer().analyze_budget(FOOD_AND_TRANSPORT)
        second = _analyzer().analyze_budget(FOOD_AND_TRANSPORT)
        exclude = {"analysis_date"}
        assert first.model_dump(exclude=exclude) == second.model_dump(exclude=exclude)

    def test_explanations_bounded(self):
        """Test that every explanation fits the UI limit."""
        result = _analyzer().analyze_budget([
            {"category": "x" * 100, "budgeted": 1, "actual": 1_000_000_000},
        ])
        assert all(len(r.explanation) <= 240 for r in result.recommendations)


class TestAnalysisErrors:
    """Tests for all-or-nothing input validation."""

    @pytest.mark.parametrize(
        "rows",
        [
            [{"category": "food", "budgeted": "lots", "actual": 1}],
            [{"category": "food", "budgeted": -1, "actual": 1}],
            [{"category": "food", "budgeted": float("inf"), "actual": 1}],
            [{"category": "", "budgeted": 1, "actual": 1}],
            [{"budgeted": 1, "actual": 1}],
            ["not a row"],
            [{"category": "food", "budgeted": 1, "actual": 1}, {"category": "food", "budgeted": 2, "actual": 2}],
            [{"category": "food", "budgeted": 2_000_000_000, "actual": 1}],
            [{"category": "food", "budgeted": True, "actual": 4200}],
            [{"category": "food", "budgeted": "3000", "actual": 4200}],
            [{"category": "food", "budgeted": 3000, "actual": False}],
            [{"category": "food", "budgeted": 1, "actual": 1, "historical_series": [100, "200"]}],
            [{"category": "food", "budgeted": 1, "actual": 1, "historical_series": [True]}],
        ],
    )
    def test_invalid_rows_rejected(self, rows):
        """Test that malformed rows raise AnalysisError."""
        with pytest.raises(AnalysisError):
            _analyzer().analyze_budget(rows)

    def test_not_a_list(self):
        """Test that a non-list payload is rejected."""
        with pytest.raises(AnalysisError):
            _analyzer().analyze_budget(None)
        with pytest.raises(AnalysisError):
            _analyzer().analyze_budget({"category": "food"})

    def test_failure_keeps_previous_state(self):
        """Test that a rejected analysis publishes nothing."""
        analyzer = _analyzer()
        analyzer.analyze_budget(FOOD_AND_TRANSPORT)
        with pytest.raises(AnalysisError):
            analyzer.analyze_budget([{"category": "bad", "budgeted": -1, "actual": 0}])
        assert [c.category for c in analyzer.get_state().categories] == ["food", "transport"]


class TestActAndLearn:
    """Tests for the act and learn phases."""

    def test_top_recommendations_proposed(self):
        """Test that the act phase selects the top three."""
        executor = RecordingExecutor()
        analyzer = _analyzer(action_executor=executor)
        result = analyzer.analyze_budget([
            {"category": "food", "budgeted": 1000, "actual": 1400},
            {"category": "fun", "budgeted": 1000, "actual": 1300},
            {"category": "travel", "budgeted": 1000, "actual": 1250},
            {"category": "transport", "budgeted": 1000, "actual": 600},
        ])
        assert len(analyzer.proposed_actions) == 3
        assert analyzer.proposed_actions == result.recommendations[:3]
        assert executor.calls == [("user-1", result.recommendations[:3])]

    def test_proposed_action_limit_configurable(self):
        """Test the configured selection size."""
        analyzer = BudgetAnalyzer("user-1", settings=AnalyzerSettings(proposed_action_limit=1))
        analyzer.analyze_budget(FOOD_AND_TRANSPORT)
        assert [r.id for r in analyzer.proposed_actions] == ["over-budget-food"]

    def test_insights(self):
        """Test the learn phase aggregates and hook."""
        received = []
        analyzer = _analyzer(insights_hook=received.append)
        analyzer.analyze_budget([
            {"category": "food", "budgeted": 100, "actual": 130},
            {"category": "rent", "budgeted": 100, "actual": 90},
        ])
        insights = analyzer.insights
        assert received == [insights]
        assert insights.total_categories == 2
        assert insights.high_variance_count == 1
        assert insights.average_variance_percentage == pytest.approx(20)
        assert insights.most_problematic_category == "food"


class TestSummaryAndState:
    """Tests for observability helpers."""

    def test_summary_text(self):
        """Test the explainability sentence."""
        analyzer = _analyzer()
        analyzer.analyze_budget(FOOD_AND_TRANSPORT)
        assert analyzer.explainability_summary() == (
            "Budget analysis: fair health, 3 recommendations, "
            "potential savings 1360. 2 categories analyzed."
        )

    def test_summary_bounded_for_large_inputs(self):
        """Test the 240 character bound at extreme magnitudes."""
        analyzer = _analyzer()
        analyzer.analyze_budget([
            {"category": f"c{i}", "budgeted": 1, "actual": 1_000_000_000}
            for i in range(500)
        ])
        assert len(analyzer.explainability_summary()) <= 240

    def test_summary_before_analysis(self):
        """Test that a fresh analyzer can summarize its empty state."""
        summary = _analyzer().explainability_summary()
        assert summary.startswith("Budget analysis: good health, 0 recommendations")

    def test_get_state_is_a_copy(self):
        """Test that callers cannot mutate analyzer state."""
        analyzer = _analyzer()
        analyzer.analyze_budget(FOOD_AND_TRANSPORT)
        state = analyzer.get_state()
        state.categories.clear()
        assert len(analyzer.get_state().categories) == 2
