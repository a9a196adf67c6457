"""Configuration package."""

from fincore.config.settings import (
    AnalyzerSettings,
    AppSettings,
    EngineSettings,
    GoogleSheetsSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AnalyzerSettings",
    "AppSettings",
    "EngineSettings",
    "GoogleSheetsSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
