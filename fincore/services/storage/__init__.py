"""
Storage Services Package

Provides abstract interfaces and concrete implementations for rule,
execution-log and audit storage. Ships an in-memory backend and a
Google Sheets backend; both are swappable.
"""

from fincore.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    ExecutionStorageInterface,
    NotFoundError,
    RuleStorageInterface,
    StorageError,
)
from fincore.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryExecutionStorage,
    InMemoryRuleStorage,
)
from fincore.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExecutionStorage,
    GoogleSheetsRuleStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ExecutionStorageInterface",
    "RuleStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryExecutionStorage",
    "InMemoryRuleStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExecutionStorage",
    "GoogleSheetsRuleStorage",
]
