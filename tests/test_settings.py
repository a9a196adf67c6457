"""
Tests for configuration loading.
"""

import pytest
from pydantic import ValidationError

from fincore.audit import configure_logging
from fincore.config import get_settings, validate_all_settings
from fincore.config.settings import AnalyzerSettings, AppSettings, EngineSettings


class TestSettings:
    """Tests for pydantic-settings groups."""

    def test_engine_defaults(self, monkeypatch):
        """Test the rule engine defaults."""
        monkeypatch.delenv("AUTOMATION_LOW_BALANCE_THRESHOLD", raising=False)
        settings = EngineSettings()
        assert settings.low_balance_threshold == 5000
        assert settings.min_savings_rate == 10
        assert settings.bill_days_before_due == 3
        assert settings.max_condition_depth == 5

    def test_engine_env_override(self, monkeypatch):
        """Test that AUTOMATION_* variables override defaults."""
        monkeypatch.setenv("AUTOMATION_LOW_BALANCE_THRESHOLD", "2500")
        monkeypatch.setenv("AUTOMATION_ACTION_TIMEOUT_SECONDS", "5")
        settings = EngineSettings()
        assert settings.low_balance_threshold == 2500
        assert settings.action_timeout_seconds == 5

    def test_analyzer_env_override(self, monkeypatch):
        """Test that BUDGET_* variables override defaults."""
        monkeypatch.setenv("BUDGET_PROPOSED_ACTION_LIMIT", "5")
        assert AnalyzerSettings().proposed_action_limit == 5

    def test_invalid_values_rejected(self, monkeypatch):
        """Test that settings are validated at load time."""
        monkeypatch.setenv("AUTOMATION_SAVINGS_FRACTION", "1.5")
        with pytest.raises(ValidationError):
            EngineSettings()

    def test_log_level_normalized(self, monkeypatch):
        """Test that log levels are case-insensitive."""
        monkeypatch.setenv("LOG_LEVEL", " debug ")
        assert AppSettings().log_level == "DEBUG"

    def test_unknown_log_level_rejected(self, monkeypatch):
        """Test that a misspelled log level fails at load time."""
        monkeypatch.setenv("LOG_LEVEL", "VERBOSE")
        with pytest.raises(ValidationError):
            AppSettings()

    def test_configure_logging_rejects_unknown_level(self):
        """Test that configure_logging raises ValueError, not AttributeError."""
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging("VERBOSE")

    def test_validate_all_settings_reports_missing_sheets(self, monkeypatch):
        """Test the startup check without Google Sheets configuration."""
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        get_settings.cache_clear()
        results = validate_all_settings()
        assert results["engine"] is True
        assert results["analyzer"] is True
        assert results["google_sheets"] is False
        assert "google_sheets_error" in results
