"""
Tests for the orchestrator flows and the component factory.
"""

import asyncio

import pytest

from fincore.analysis import AnalysisError
from fincore.audit import AuditLogger
from fincore.automation import RuleEngine
from fincore.config.settings import AnalyzerSettings, EngineSettings
from fincore.models.audit import AuditEventType
from fincore.models.automation import ExecutionStatus, SnapshotField
from fincore.models.budget import OverallHealth
from fincore.orchestrator import BudgetAnalysisFlow, create_app_components
from fincore.services.providers import AnalysisSnapshotProvider, StaticSnapshotProvider
from fincore.services.storage import InMemoryAuditStorage, InMemoryRuleStorage


CRITICAL_BUDGET = [{"category": "rent", "budgeted": 1000, "actual": 2000}]

HEALTH_ALERT_SPEC = {
    "name": "Budget emergency",
    "trigger": {"type": "SCHEDULED", "schedule": "0 9 * * 1"},
    "condition": {"field": "budget_health", "operator": "EQUALS", "value": "critical"},
    "action": {"type": "ALERT", "message": "Your budget needs attention"},
}


def _flow():
    audit = InMemoryAuditStorage()
    flow = BudgetAnalysisFlow(audit_logger=AuditLogger(audit), settings=AnalyzerSettings())
    return flow, audit


class TestBudgetAnalysisFlow:
    """Tests for the audited analysis flow."""

    def test_analysis_audited(self):
        """Test that a completed analysis is audited with its summary."""
        flow, audit = _flow()
        result, summary = asyncio.run(flow.analyze("user-1", CRITICAL_BUDGET))
        assert result.overall_health == OverallHealth.CRITICAL
        assert summary.startswith("Budget analysis: critical health")
        event = audit.events[0]
        assert event.event_type == AuditEventType.BUDGET_ANALYSIS_COMPLETED
        assert event.details["overall_health"] == "critical"

    def test_rejected_analysis_audited(self):
        """Test that rejected input is audited before raising."""
        flow, audit = _flow()
        with pytest.raises(AnalysisError):
            asyncio.run(flow.analyze("user-1", [{"category": "rent", "budgeted": -5, "actual": 1}]))
        assert audit.events[0].event_type == AuditEventType.BUDGET_ANALYSIS_FAILED

    def test_analysis_drives_automation(self):
        """Test a rule that reacts to the analyzer's health verdict."""
        flow, _ = _flow()
        engine = RuleEngine(InMemoryRuleStorage(), settings=EngineSettings())

        async def scenario():
            await engine.create_rule("user-1", HEALTH_ALERT_SPEC)
            return await flow.analyze_and_automate(engine, "user-1", CRITICAL_BUDGET)

        result, executions = asyncio.run(scenario())
        assert result.overall_health == OverallHealth.CRITICAL
        assert [e.status for e in executions] == [ExecutionStatus.COMPLETED]
        assert executions[0].result == {"success": True, "alert": "Your budget needs attention"}

    def test_healthy_budget_skips_alert(self):
        """Test that the same rule is cancelled for a healthy budget."""
        flow, _ = _flow()
        engine = RuleEngine(InMemoryRuleStorage(), settings=EngineSettings())

        async def scenario():
            await engine.create_rule("user-1", HEALTH_ALERT_SPEC)
            return await flow.analyze_and_automate(
                engine,
                "user-1",
                [{"category": "rent", "budgeted": 1000, "actual": 1000}],
            )

        _, executions = asyncio.run(scenario())
        assert [e.status for e in executions] == [ExecutionStatus.CANCELLED]


class TestAnalysisSnapshotProvider:
    """Tests for analysis-backed snapshot fields."""

    def test_analysis_fields_and_delegation(self):
        """Test that analysis fields are answered and others delegated."""
        flow, _ = _flow()
        result, _ = asyncio.run(flow.analyze("user-1", CRITICAL_BUDGET))
        provider = AnalysisSnapshotProvider(result, delegate=StaticSnapshotProvider({"balance": 42}))

        async def resolve(field, user_id="user-1"):
            return await provider.resolve_field(field, user_id)

        assert asyncio.run(resolve(SnapshotField.BUDGET_HEALTH)) == "critical"
        assert asyncio.run(resolve(SnapshotField.TOTAL_VARIANCE)) == pytest.approx(1000)
        assert asyncio.run(resolve(SnapshotField.BALANCE)) == 42
        assert asyncio.run(resolve(SnapshotField.BUDGET_HEALTH, "someone-else")) is None


class TestCreateAppComponents:
    """Tests for the component factory."""

    def test_in_memory_components(self):
        """Test wiring without Google Sheets."""
        engine, flow, sheets_client = create_app_components(use_storage=False)
        assert isinstance(engine, RuleEngine)
        assert isinstance(flow, BudgetAnalysisFlow)
        assert sheets_client is None

    def test_sheets_fallback_without_configuration(self, monkeypatch):
        """Test that missing Sheets configuration falls back to memory."""
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        engine, _, sheets_client = create_app_components(use_storage=True)
        assert sheets_client is None
        assert asyncio.run(engine.run_automation("user-1")) == []
