"""
Tests for recommended rule generation.
"""

import pytest

from fincore.automation.recommender import RuleRecommender
from fincore.config.settings import EngineSettings
from fincore.models.automation import (
    ActionType,
    ConditionOperator,
    SnapshotField,
    TriggerType,
    Urgency,
    UserFinancialStatistics,
)


@pytest.fixture
def recommender():
    return RuleRecommender(EngineSettings())


class TestRuleRecommender:
    """Tests for the three starter rules."""

    def test_all_three_rules(self, recommender):
        """Test a user who qualifies for every suggestion."""
        stats = UserFinancialStatistics(
            monthly_income=40000,
            savings_rate=4,
            average_balance=2500,
            average_bill_amount=1500,
        )
        rules = recommender.recommend("user-1", stats)

        assert [r.priority for r in rules] == [1, 2, 3]
        assert all(r.ai_recommended for r in rules)
        assert all(r.user_id == "user-1" for r in rules)
        assert all(r.execution_count == 0 for r in rules)

        savings, low_balance, auto_pay = rules

        assert savings.trigger.trigger_type == TriggerType.INCOME_RECEIVED
        assert savings.condition.field == SnapshotField.INCOME
        assert savings.condition.operator == ConditionOperator.GREATER_THAN
        assert savings.condition.value == pytest.approx(4000)
        assert savings.action.action_type == ActionType.SAVE_MONEY
        assert savings.action.amount == pytest.approx(4000)
        assert savings.action.account == "SAVINGS"

        assert low_balance.trigger.threshold == 5000
        assert low_balance.condition.operator == ConditionOperator.LESS_THAN
        assert low_balance.condition.value == 5000
        assert low_balance.action.action_type == ActionType.NOTIFY
        assert low_balance.action.urgency == Urgency.HIGH

        assert auto_pay.trigger.days_before_due == 3
        assert auto_pay.condition.field == SnapshotField.BILL_AMOUNT
        assert auto_pay.condition.value == pytest.approx(3000)
        assert auto_pay.action.action_type == ActionType.AUTO_PAY

    def test_healthy_user_gets_nothing(self, recommender):
        """Test that a saver with a buffer and no bills gets no suggestions."""
        stats = UserFinancialStatistics(
            monthly_income=40000,
            savings_rate=25,
            average_balance=20000,
            average_bill_amount=0,
        )
        assert recommender.recommend("user-1", stats) == []

    def test_no_income_means_no_savings_rule(self, recommender):
        """Test that the savings rule needs income."""
        stats = UserFinancialStatistics(monthly_income=0, savings_rate=0, average_balance=100)
        rules = recommender.recommend("user-1", stats)
        assert [r.priority for r in rules] == [2]

    def test_threshold_is_configurable(self):
        """Test that the low-balance threshold comes from settings."""
        recommender = RuleRecommender(EngineSettings(low_balance_threshold=1000))
        stats = UserFinancialStatistics(monthly_income=0, average_balance=2000)
        assert recommender.recommend("user-1", stats) == []

    def test_deterministic(self, recommender):
        """Test that identical statistics give identical rule content."""
        stats = UserFinancialStatistics(monthly_income=30000, savings_rate=1, average_bill_amount=900)
        first = recommender.recommend("u", stats)
        second = recommender.recommend("u", stats)
        exclude = {"id", "created_at"}
        assert [r.model_dump(exclude=exclude) for r in first] == [
            r.model_dump(exclude=exclude) for r in second
        ]
