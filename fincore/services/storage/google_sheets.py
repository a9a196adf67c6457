"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the initial persistent backend because:
1. Users and support staff can inspect rules and the execution log directly
2. No database setup required
3. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data
- No transactions: the execution-count increment is serialized per
  process with a lock, which is enough for one engine instance
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interface, so we can swap
to PostgreSQL/SQLite later without changing engine logic.
"""

import asyncio
import json
from datetime import datetime
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from pydantic import TypeAdapter
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from fincore.config import get_settings
from fincore.config.settings import GoogleSheetsSettings
from fincore.models.audit import AuditEvent, AuditEventType, AuditSeverity
from fincore.models.automation import (
    Action,
    AutomationExecution,
    AutomationRule,
    Condition,
    ExecutionStatus,
    Trigger,
    TriggerType,
)
from fincore.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    ExecutionStorageInterface,
    NotFoundError,
    RuleStorageInterface,
    StorageError,
)


# Column mappings for the rules sheet
RULE_COLUMNS = [
    "id",
    "user_id",
    "name",
    "description",
    "trigger_type",
    "trigger_json",
    "condition_json",
    "action_json",
    "is_active",
    "priority",
    "ai_recommended",
    "created_at",
    "last_executed",
    "execution_count",
]

# Column mappings for the executions sheet
EXECUTION_COLUMNS = [
    "id",
    "rule_id",
    "user_id",
    "status",
    "result_json",
    "error",
    "executed_at",
    "duration_ms",
]

# Column mappings for the audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "user_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]

_TRIGGER_ADAPTER = TypeAdapter(Trigger)
_ACTION_ADAPTER = TypeAdapter(Action)

_RETRY = dict(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
    reraise=True,
)


def _safe_get(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(**_RETRY)
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_rules_sheet(self) -> gspread.Worksheet:
        """Get or create the rules worksheet."""
        return self._get_or_create_sheet(
            self._settings.rules_sheet_name, RULE_COLUMNS, rows=1000
        )

    def get_executions_sheet(self) -> gspread.Worksheet:
        """Get or create the execution log worksheet."""
        return self._get_or_create_sheet(
            self._settings.executions_sheet_name, EXECUTION_COLUMNS, rows=5000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsRuleStorage(RuleStorageInterface):
    """
    Google Sheets implementation of rule storage.

    One rule per row, in insertion order. Trigger, condition and action
    are JSON-serialized.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._lock = asyncio.Lock()

    def _rule_to_row(self, rule: AutomationRule) -> list:
        """Convert an AutomationRule to a spreadsheet row."""
        return [
            str(rule.id),
            rule.user_id,
            rule.name,
            rule.description,
            rule.trigger.type,
            rule.trigger.model_dump_json(),
            rule.condition.model_dump_json(),
            rule.action.model_dump_json(),
            str(rule.is_active),
            str(rule.priority),
            str(rule.ai_recommended),
            rule.created_at.isoformat(),
            rule.last_executed.isoformat() if rule.last_executed else "",
            str(rule.execution_count),
        ]

    def _row_to_rule(self, row: list) -> AutomationRule:
        """Convert a spreadsheet row to an AutomationRule."""
        last_executed = _safe_get(row, 12)
        return AutomationRule(
            id=UUID(_safe_get(row, 0)),
            user_id=_safe_get(row, 1),
            name=_safe_get(row, 2),
            description=_safe_get(row, 3),
            trigger=_TRIGGER_ADAPTER.validate_json(_safe_get(row, 5)),
            condition=Condition.model_validate_json(_safe_get(row, 6)),
            action=_ACTION_ADAPTER.validate_json(_safe_get(row, 7)),
            is_active=_safe_get(row, 8).lower() == "true",
            priority=int(_safe_get(row, 9, "0")),
            ai_recommended=_safe_get(row, 10).lower() == "true",
            created_at=datetime.fromisoformat(_safe_get(row, 11)),
            last_executed=datetime.fromisoformat(last_executed) if last_executed else None,
            execution_count=int(_safe_get(row, 13, "0")),
        )

    def _find_row(self, all_rows: list, rule_id: UUID) -> Optional[int]:
        """1-based sheet row index of a rule, or None."""
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is the header
            if row and row[0] == str(rule_id):
                return idx
        return None

    @retry(**_RETRY)
    async def _rule_exists(self, rule_id: UUID) -> bool:
        try:
            sheet = self._client.get_rules_sheet()
            return self._find_row(sheet.get_all_values(), rule_id) is not None
        except Exception as e:
            raise StorageError(f"Failed to read rules: {e}")

    @retry(**_RETRY)
    async def _append_rule_row(self, rule: AutomationRule) -> None:
        """
        Append the rule's row unless it is already there.

        An attempt whose append reached the sheet but whose response was
        lost leaves the row behind; the retry treats that row as written.
        """
        try:
            sheet = self._client.get_rules_sheet()
            if self._find_row(sheet.get_all_values(), rule.id) is None:
                sheet.append_row(self._rule_to_row(rule), value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to save rule: {e}")

    async def create_rule(self, rule: AutomationRule) -> AutomationRule:
        """Append a new rule row."""
        if await self._rule_exists(rule.id):
            raise DuplicateError(f"Rule already exists: {rule.id}")
        await self._append_rule_row(rule)
        return rule

    async def get_rule(self, rule_id: UUID) -> Optional[AutomationRule]:
        """Retrieve a rule by its ID."""
        try:
            sheet = self._client.get_rules_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == str(rule_id):
                    return self._row_to_rule(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get rule: {e}")

    async def list_active_rules(
        self,
        user_id: str,
        trigger_type: Optional[TriggerType] = None,
    ) -> list[AutomationRule]:
        """List a user's active rules in sheet (insertion) order."""
        try:
            sheet = self._client.get_rules_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to list rules: {e}")

        rules = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            # Cheap column filters before parsing JSON
            if _safe_get(row, 1) != user_id or _safe_get(row, 8).lower() != "true":
                continue
            if trigger_type is not None and _safe_get(row, 4) != trigger_type.value:
                continue
            try:
                rules.append(self._row_to_rule(row))
            except Exception as e:
                raise StorageError(f"Malformed rule row {row[0]}: {e}")

        return rules

    async def _update_row(self, rule_id: UUID, **changes) -> AutomationRule:
        async with self._lock:
            try:
                sheet = self._client.get_rules_sheet()
                all_rows = sheet.get_all_values()
                idx = self._find_row(all_rows, rule_id)
                if idx is None:
                    raise NotFoundError(f"Rule not found: {rule_id}")
                rule = self._row_to_rule(all_rows[idx - 1])
                if "execution_count_increment" in changes:
                    changes["execution_count"] = (
                        rule.execution_count + changes.pop("execution_count_increment")
                    )
                updated = rule.model_copy(update=changes)
                row = self._rule_to_row(updated)
                sheet.update(
                    range_name=f"A{idx}",
                    values=[row],
                    value_input_option="RAW",
                )
                return updated
            except NotFoundError:
                raise
            except Exception as e:
                raise StorageError(f"Failed to update rule: {e}")

    async def record_execution(
        self,
        rule_id: UUID,
        executed_at: datetime,
    ) -> AutomationRule:
        """Increment the execution counter and stamp last_executed."""
        return await self._update_row(
            rule_id,
            execution_count_increment=1,
            last_executed=executed_at,
        )

    async def deactivate_rule(self, rule_id: UUID) -> AutomationRule:
        """Mark a rule inactive."""
        return await self._update_row(rule_id, is_active=False)


class GoogleSheetsExecutionStorage(ExecutionStorageInterface):
    """
    Google Sheets implementation of the execution log.

    Executions are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _execution_to_row(self, execution: AutomationExecution) -> list:
        return [
            str(execution.id),
            str(execution.rule_id),
            execution.user_id,
            execution.status.value,
            json.dumps(execution.result, default=str) if execution.result is not None else "",
            execution.error or "",
            execution.executed_at.isoformat(),
            f"{execution.duration_ms:.3f}",
        ]

    def _row_to_execution(self, row: list) -> AutomationExecution:
        result_json = _safe_get(row, 4)
        return AutomationExecution(
            id=UUID(_safe_get(row, 0)),
            rule_id=UUID(_safe_get(row, 1)),
            user_id=_safe_get(row, 2),
            status=ExecutionStatus(_safe_get(row, 3)),
            result=json.loads(result_json) if result_json else None,
            error=_safe_get(row, 5) or None,
            executed_at=datetime.fromisoformat(_safe_get(row, 6)),
            duration_ms=float(_safe_get(row, 7, "0")),
        )

    @retry(**_RETRY)
    async def append_execution(self, execution: AutomationExecution) -> bool:
        """Append an execution record."""
        try:
            sheet = self._client.get_executions_sheet()
            sheet.append_row(self._execution_to_row(execution), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to append execution: {e}")

    async def list_executions(
        self,
        user_id: str,
        rule_id: Optional[UUID] = None,
        limit: int = 100,
    ) -> list[AutomationExecution]:
        """List a user's executions, newest first."""
        try:
            sheet = self._client.get_executions_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to list executions: {e}")

        executions = []
        for row in all_rows:
            if not row or _safe_get(row, 2) != user_id:
                continue
            if rule_id is not None and _safe_get(row, 1) != str(rule_id):
                continue
            try:
                executions.append(self._row_to_execution(row))
            except Exception:
                continue  # Skip malformed rows

        executions.sort(key=lambda e: e.executed_at, reverse=True)
        return executions[:limit]


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=UUID(_safe_get(row, 5)) if _safe_get(row, 5) else None,
            user_id=_safe_get(row, 6) or None,
            correlation_id=UUID(_safe_get(row, 7)) if _safe_get(row, 7) else None,
            description=_safe_get(row, 8),
            details=json.loads(_safe_get(row, 9)) if _safe_get(row, 9) else {},
            error_message=_safe_get(row, 10) or None,
        )

    @retry(**_RETRY)
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    def _read_events(self, keep) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0] and keep(row):
                try:
                    events.append(self._row_to_event(row))
                except Exception:
                    continue
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        events = self._read_events(lambda row: _safe_get(row, 7) == str(correlation_id))
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        events = self._read_events(
            lambda row: _safe_get(row, 4) == entity_type and _safe_get(row, 5) == str(entity_id)
        )
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Get recent events, newest first."""
        events = self._read_events(lambda row: True)
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
