"""
Analysis-Aware Snapshot Provider

Lets rule conditions consume budget analyzer output, e.g.
"notify me when my budget health is critical".
"""

from typing import Any, Optional

from fincore.models.automation import SnapshotField
from fincore.models.budget import BudgetAnalysisResult
from fincore.services.providers.interface import FinancialSnapshotProvider


class AnalysisSnapshotProvider(FinancialSnapshotProvider):
    """
    Answers budget_health and total_variance from an analysis result
    and delegates every other field.
    """

    def __init__(
        self,
        analysis: BudgetAnalysisResult,
        delegate: Optional[FinancialSnapshotProvider] = None,
    ):
        self._analysis = analysis
        self._delegate = delegate

    async def resolve_field(self, field: SnapshotField, user_id: str) -> Optional[Any]:
        if user_id == self._analysis.user_id:
            if field == SnapshotField.BUDGET_HEALTH:
                return self._analysis.overall_health.value
            if field == SnapshotField.TOTAL_VARIANCE:
                return self._analysis.total_variance
        if self._delegate is None:
            return None
        return await self._delegate.resolve_field(field, user_id)
