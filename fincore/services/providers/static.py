"""
Static Providers

Providers backed by plain mappings. Used when the caller already holds
the user's snapshot (e.g. a webhook payload) and in tests.
"""

from typing import Any, Mapping, Optional

from fincore.models.automation import SnapshotField, UserFinancialStatistics
from fincore.services.providers.interface import (
    FinancialSnapshotProvider,
    ProviderError,
    UserStatisticsProvider,
)


def _normalize(values: Mapping[Any, Any]) -> dict[SnapshotField, Any]:
    """Accept SnapshotField members or their string values as keys."""
    normalized = {}
    for key, value in values.items():
        try:
            normalized[SnapshotField(key)] = value
        except ValueError:
            raise ProviderError(f"Unknown snapshot field: {key}")
    return normalized


class StaticSnapshotProvider(FinancialSnapshotProvider):
    """
    Snapshot provider over in-memory values.

    Either one snapshot shared by every user, or one per user id.
    """

    def __init__(
        self,
        snapshot: Optional[Mapping[Any, Any]] = None,
        per_user: Optional[Mapping[str, Mapping[Any, Any]]] = None,
    ):
        self._shared = _normalize(snapshot or {})
        self._per_user = {
            user_id: _normalize(values)
            for user_id, values in (per_user or {}).items()
        }

    async def resolve_field(self, field: SnapshotField, user_id: str) -> Optional[Any]:
        user_values = self._per_user.get(user_id)
        if user_values is not None and field in user_values:
            return user_values[field]
        return self._shared.get(field)


class StaticStatisticsProvider(UserStatisticsProvider):
    """Statistics provider over in-memory values."""

    def __init__(
        self,
        statistics: Optional[Mapping[str, UserFinancialStatistics]] = None,
        default: Optional[UserFinancialStatistics] = None,
    ):
        self._statistics = dict(statistics or {})
        self._default = default

    async def get_statistics(self, user_id: str) -> UserFinancialStatistics:
        stats = self._statistics.get(user_id, self._default)
        if stats is None:
            raise ProviderError(f"No statistics available for user {user_id}")
        return stats
