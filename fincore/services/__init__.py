"""Services package."""

from fincore.services.providers import (
    AnalysisSnapshotProvider,
    FinancialSnapshotProvider,
    ProviderError,
    StaticSnapshotProvider,
    StaticStatisticsProvider,
    UserStatisticsProvider,
)
from fincore.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    ExecutionStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExecutionStorage,
    GoogleSheetsRuleStorage,
    InMemoryAuditStorage,
    InMemoryExecutionStorage,
    InMemoryRuleStorage,
    NotFoundError,
    RuleStorageInterface,
    StorageError,
)

__all__ = [
    # Providers
    "AnalysisSnapshotProvider",
    "FinancialSnapshotProvider",
    "ProviderError",
    "StaticSnapshotProvider",
    "StaticStatisticsProvider",
    "UserStatisticsProvider",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "ExecutionStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExecutionStorage",
    "GoogleSheetsRuleStorage",
    "InMemoryAuditStorage",
    "InMemoryExecutionStorage",
    "InMemoryRuleStorage",
    "NotFoundError",
    "RuleStorageInterface",
    "StorageError",
]
