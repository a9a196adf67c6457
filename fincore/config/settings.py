"""
Configuration Management for the Financial Automation Core

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Thresholds that the rule generator and analyzer rely on are
validated once at startup instead of being scattered as literals.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class EngineSettings(BaseSettings):
    """Rule engine and rule generator configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AUTOMATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Rule generator thresholds
    low_balance_threshold: float = Field(
        default=5000.0,
        gt=0,
        description="Average balance below which a low-balance rule is suggested"
    )
    min_savings_rate: float = Field(
        default=10.0,
        ge=0,
        le=100,
        description="Savings rate (percent) below which an auto-save rule is suggested"
    )
    savings_fraction: float = Field(
        default=0.1,
        gt=0,
        le=1,
        description="Share of monthly income the auto-save rule puts aside"
    )
    bill_days_before_due: int = Field(
        default=3,
        ge=0,
        le=60,
        description="Lead time in days for suggested auto-pay rules"
    )
    bill_amount_multiplier: float = Field(
        default=2.0,
        gt=0,
        description="Auto-pay only bills below this multiple of the average bill"
    )

    # Execution limits
    action_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Default time budget for a single action handler"
    )
    max_condition_depth: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum nesting depth of a condition tree"
    )
    max_priority: int = Field(
        default=1000,
        ge=1,
        description="Largest accepted rule priority"
    )


class AnalyzerSettings(BaseSettings):
    """Budget analyzer configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    engine_version: str = Field(
        default="1.0.0",
        description="Version tag stamped on every analysis result"
    )
    max_amount: float = Field(
        default=1_000_000_000.0,
        gt=0,
        description="Largest budgeted/actual figure accepted (sanity ceiling)"
    )
    proposed_action_limit: int = Field(
        default=3,
        ge=1,
        le=20,
        description="How many top recommendations the act phase selects"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    rules_sheet_name: str = Field(
        default="AutomationRules",
        description="Name of the sheet for automation rules"
    )
    executions_sheet_name: str = Field(
        default="AutomationExecutions",
        description="Name of the sheet for the execution log"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    use_google_sheets: bool = Field(
        default=False,
        description="Persist rules, executions and audit events to Google Sheets"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )

    @field_validator('log_level', mode='before')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Accept any case, reject names the logging module doesn't know."""
        level = str(v).strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(
                f"Unknown log level {v!r}; expected one of {', '.join(LOG_LEVELS)}"
            )
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily so a missing Google Sheets
    # configuration does not break the engine or analyzer.

    @property
    def engine(self) -> EngineSettings:
        return EngineSettings()

    @property
    def analyzer(self) -> AnalyzerSettings:
        return AnalyzerSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool | str]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the groups that failed.
    Useful for startup checks.
    """
    results: dict[str, bool | str] = {}
    settings = get_settings()

    for name in ("engine", "analyzer", "google_sheets", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
