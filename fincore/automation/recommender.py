"""
Recommended Rule Generator

Suggests starter rules from a user's aggregate statistics.
Heuristic and deterministic: the same statistics always yield the
same suggestions. Suggestions are NOT persisted; the caller decides
which ones to keep via RuleEngine.create_rule.
"""

from typing import Optional

from fincore.config import get_settings
from fincore.config.settings import EngineSettings
from fincore.models.automation import (
    AutoPayAction,
    AutomationRule,
    BillDueTrigger,
    Condition,
    ConditionOperator,
    IncomeReceivedTrigger,
    LowBalanceTrigger,
    NotifyAction,
    SaveMoneyAction,
    SnapshotField,
    Urgency,
    UserFinancialStatistics,
)


class RuleRecommender:
    """Builds up to three recommended rules from user statistics."""

    def __init__(self, settings: Optional[EngineSettings] = None):
        self._settings = settings or get_settings().engine

    def _savings_rule(self, user_id: str, stats: UserFinancialStatistics) -> AutomationRule:
        fraction = self._settings.savings_fraction
        amount = stats.monthly_income * fraction
        return AutomationRule(
            user_id=user_id,
            name="Automatic saving",
            description=f"Put {fraction:.0%} of every paycheck aside",
            trigger=IncomeReceivedTrigger(amount=amount),
            condition=Condition(
                field=SnapshotField.INCOME,
                operator=ConditionOperator.GREATER_THAN,
                value=amount,
            ),
            action=SaveMoneyAction(amount=amount, account="SAVINGS"),
            priority=1,
            ai_recommended=True,
        )

    def _low_balance_rule(self, user_id: str) -> AutomationRule:
        threshold = self._settings.low_balance_threshold
        return AutomationRule(
            user_id=user_id,
            name="Low balance warning",
            description=f"Warn when the balance drops below {threshold:,.0f}",
            trigger=LowBalanceTrigger(threshold=threshold),
            condition=Condition(
                field=SnapshotField.BALANCE,
                operator=ConditionOperator.LESS_THAN,
                value=threshold,
            ),
            action=NotifyAction(
                message=f"Your balance is below {threshold:,.0f}",
                urgency=Urgency.HIGH,
            ),
            priority=2,
            ai_recommended=True,
        )

    def _auto_pay_rule(self, user_id: str, stats: UserFinancialStatistics) -> AutomationRule:
        ceiling = stats.average_bill_amount * self._settings.bill_amount_multiplier
        return AutomationRule(
            user_id=user_id,
            name="Automatic bill payment",
            description="Pay regular bills before they fall due",
            trigger=BillDueTrigger(days_before_due=self._settings.bill_days_before_due),
            condition=Condition(
                field=SnapshotField.BILL_AMOUNT,
                operator=ConditionOperator.LESS_THAN,
                value=ceiling,
            ),
            action=AutoPayAction(method="AUTOMATIC", confirmation=True),
            priority=3,
            ai_recommended=True,
        )

    def recommend(self, user_id: str, stats: UserFinancialStatistics) -> list[AutomationRule]:
        """
        Suggest rules in priority order.

        - Saving, when there is income and the savings rate is below the floor
        - Low balance warning, when the average balance is below the threshold
        - Auto-pay, when the user has bills
        """
        rules = []

        if stats.monthly_income > 0 and stats.savings_rate < self._settings.min_savings_rate:
            rules.append(self._savings_rule(user_id, stats))

        if stats.average_balance < self._settings.low_balance_threshold:
            rules.append(self._low_balance_rule(user_id))

        if stats.average_bill_amount > 0:
            rules.append(self._auto_pay_rule(user_id, stats))

        return rules
