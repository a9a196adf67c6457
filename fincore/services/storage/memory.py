"""
In-Memory Storage Implementation

Used by tests and by callers that embed the engine without a
persistent backend. Dicts preserve insertion order, which is what
gives priority ties their creation-order tiebreak.
"""

import asyncio
from datetime import datetime
from typing import Optional
from uuid import UUID

from fincore.models.audit import AuditEvent
from fincore.models.automation import (
    AutomationExecution,
    AutomationRule,
    TriggerType,
)
from fincore.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ExecutionStorageInterface,
    NotFoundError,
    RuleStorageInterface,
)


class InMemoryRuleStorage(RuleStorageInterface):
    """Rule storage backed by an ordered dict."""

    def __init__(self, rules: Optional[list[AutomationRule]] = None):
        self._rules: dict[UUID, AutomationRule] = {}
        self._lock = asyncio.Lock()
        for rule in rules or []:
            self._rules[rule.id] = rule

    async def create_rule(self, rule: AutomationRule) -> AutomationRule:
        async with self._lock:
            if rule.id in self._rules:
                raise DuplicateError(f"Rule already exists: {rule.id}")
            self._rules[rule.id] = rule
            return rule

    async def get_rule(self, rule_id: UUID) -> Optional[AutomationRule]:
        return self._rules.get(rule_id)

    async def list_active_rules(
        self,
        user_id: str,
        trigger_type: Optional[TriggerType] = None,
    ) -> list[AutomationRule]:
        return [
            rule for rule in self._rules.values()
            if rule.user_id == user_id
            and rule.is_active
            and (trigger_type is None or rule.trigger.type == trigger_type)
        ]

    async def record_execution(
        self,
        rule_id: UUID,
        executed_at: datetime,
    ) -> AutomationRule:
        async with self._lock:
            rule = self._rules.get(rule_id)
            if rule is None:
                raise NotFoundError(f"Rule not found: {rule_id}")
            updated = rule.model_copy(update={
                "execution_count": rule.execution_count + 1,
                "last_executed": executed_at,
            })
            self._rules[rule_id] = updated
            return updated

    async def deactivate_rule(self, rule_id: UUID) -> AutomationRule:
        async with self._lock:
            rule = self._rules.get(rule_id)
            if rule is None:
                raise NotFoundError(f"Rule not found: {rule_id}")
            updated = rule.model_copy(update={"is_active": False})
            self._rules[rule_id] = updated
            return updated


class InMemoryExecutionStorage(ExecutionStorageInterface):
    """Append-only execution log kept in a list."""

    def __init__(self):
        self._executions: list[AutomationExecution] = []

    async def append_execution(self, execution: AutomationExecution) -> bool:
        self._executions.append(execution)
        return True

    async def list_executions(
        self,
        user_id: str,
        rule_id: Optional[UUID] = None,
        limit: int = 100,
    ) -> list[AutomationExecution]:
        matching = [
            e for e in reversed(self._executions)
            if e.user_id == user_id and (rule_id is None or e.rule_id == rule_id)
        ]
        return matching[:limit]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
