"""Configuration package."""

from src.config.settings import (
    AIProviderSettings,
    AppSettings,
    GeminiSettings,
    GoogleSheetsSettings,
    GroqSettings,
    MarketSettings,
    SecuritySettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AIProviderSettings",
    "AppSettings",
    "GeminiSettings",
    "GoogleSheetsSettings",
    "GroqSettings",
    "MarketSettings",
    "SecuritySettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
