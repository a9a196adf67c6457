"""
Financial Data Provider Interfaces

DESIGN DECISION: The engine never looks up account balances or bills
itself. Field resolution and aggregate statistics come from providers
injected by the caller, which keeps the engine testable without a
live database.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from fincore.models.automation import SnapshotField, UserFinancialStatistics


class FinancialSnapshotProvider(ABC):
    """
    Resolves condition fields against a user's current financial state.
    """

    @abstractmethod
    async def resolve_field(self, field: SnapshotField, user_id: str) -> Optional[Any]:
        """
        Resolve one snapshot field for a user.

        Returns:
            The field's current value, or None if it cannot be resolved.
            The condition evaluator treats None as an evaluation error.
        """
        pass


class UserStatisticsProvider(ABC):
    """
    Supplies the aggregate statistics the rule generator works from.
    """

    @abstractmethod
    async def get_statistics(self, user_id: str) -> UserFinancialStatistics:
        """
        Aggregate statistics for a user (income, savings rate,
        average balance, average bill amount).
        """
        pass


class ProviderError(Exception):
    """A provider could not supply the requested data."""
    pass
