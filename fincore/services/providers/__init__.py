"""Financial data providers package."""

from fincore.services.providers.interface import (
    FinancialSnapshotProvider,
    ProviderError,
    UserStatisticsProvider,
)
from fincore.services.providers.static import (
    StaticSnapshotProvider,
    StaticStatisticsProvider,
)
from fincore.services.providers.analysis import AnalysisSnapshotProvider

__all__ = [
    "AnalysisSnapshotProvider",
    "FinancialSnapshotProvider",
    "ProviderError",
    "StaticSnapshotProvider",
    "StaticStatisticsProvider",
    "UserStatisticsProvider",
]
