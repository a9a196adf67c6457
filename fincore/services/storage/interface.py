"""
Abstract Storage Interface

DESIGN DECISION: The engine never talks to a database directly.
It is handed implementations of these interfaces, which allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally small - just the operations the
rule engine needs.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from fincore.models.audit import AuditEvent
from fincore.models.automation import (
    AutomationExecution,
    AutomationRule,
    TriggerType,
)


class RuleStorageInterface(ABC):
    """
    Abstract interface for automation rule storage.

    Implementations must return rules in insertion order so that
    priority ties resolve by creation order.
    """

    @abstractmethod
    async def create_rule(self, rule: AutomationRule) -> AutomationRule:
        """
        Persist a new rule.

        Returns:
            The stored rule

        Raises:
            DuplicateError: If a rule with the same ID exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_rule(self, rule_id: UUID) -> Optional[AutomationRule]:
        """
        Retrieve a rule by its ID.

        Returns:
            The rule if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_active_rules(
        self,
        user_id: str,
        trigger_type: Optional[TriggerType] = None,
    ) -> list[AutomationRule]:
        """
        List a user's active rules, optionally filtered by trigger type.

        Returns:
            Matching rules in insertion order
        """
        pass

    @abstractmethod
    async def record_execution(
        self,
        rule_id: UUID,
        executed_at: datetime,
    ) -> AutomationRule:
        """
        Increment execution_count and set last_executed.

        CRITICAL: This must be a single atomic read-modify-write.
        Concurrent runs for the same user must not lose increments.

        Raises:
            NotFoundError: If the rule doesn't exist
        """
        pass

    @abstractmethod
    async def deactivate_rule(self, rule_id: UUID) -> AutomationRule:
        """
        Mark a rule inactive.

        Raises:
            NotFoundError: If the rule doesn't exist
        """
        pass


class ExecutionStorageInterface(ABC):
    """
    Abstract interface for the execution log.

    Execution records are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_execution(self, execution: AutomationExecution) -> bool:
        """
        Append an execution record.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def list_executions(
        self,
        user_id: str,
        rule_id: Optional[UUID] = None,
        limit: int = 100,
    ) -> list[AutomationExecution]:
        """
        List a user's execution records, newest first.
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one automation run),
        in chronological order.
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity, in chronological order.
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
