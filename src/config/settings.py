"""
Configuration Management for Personal Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: Environment configuration is centralized here.
Values the user edits at runtime (API keys typed into the Settings page,
AI priority order, exchange and gold rates) live in the Ledger and take
precedence over these defaults.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Where the ledger is persisted."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        extra="ignore"
    )

    backend: Literal["local", "sheets"] = Field(
        default="local",
        description="Persistence backend: local JSON file or Google Sheets"
    )
    data_file: str = Field(
        default="data/ledger.json",
        description="Path of the local JSON ledger file"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
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


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        extra="ignore"
    )

    api_key: Optional[str] = Field(
        default=None,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.0-flash-lite",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )


class GroqSettings(BaseSettings):
    """Groq chat-completions configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GROQ_",
        env_file=".env",
        extra="ignore"
    )

    api_key: Optional[str] = Field(
        default=None,
        description="Groq API key"
    )
    api_url: str = Field(
        default="https://api.groq.com/openai/v1/chat/completions",
        description="OpenAI-compatible chat completions endpoint"
    )
    model_name: str = Field(
        default="mixtral-8x7b-32768",
        description="Groq model to use"
    )
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2048, ge=100, le=32768)
    top_p: float = Field(default=0.9, ge=0.0, le=1.0)
    timeout_seconds: float = Field(
        default=30.0,
        description="HTTP timeout for a single completion request"
    )


class AIProviderSettings(BaseSettings):
    """Provider fallback policy."""

    model_config = SettingsConfigDict(
        env_prefix="AI_",
        env_file=".env",
        extra="ignore"
    )

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=4,
        description="Maximum number of providers tried per question"
    )


class MarketSettings(BaseSettings):
    """Defaults and tickers for valuation."""

    model_config = SettingsConfigDict(
        env_prefix="MARKET_",
        env_file=".env",
        extra="ignore"
    )

    default_usd_inr_rate: float = Field(
        default=83.0,
        gt=0,
        description="USD to INR rate used until a live rate is fetched"
    )
    exchange_rate_ticker: str = Field(
        default="USDINR=X",
        description="Yahoo Finance ticker for the USD/INR rate"
    )
    inr_ticker_suffix: str = Field(
        default=".NS",
        description="Suffix appended to INR share names when looking up prices"
    )


class SecuritySettings(BaseSettings):
    """PIN lock and encrypted backup parameters."""

    model_config = SettingsConfigDict(
        env_prefix="SECURITY_",
        env_file=".env",
        extra="ignore"
    )

    pbkdf2_iterations: int = Field(
        default=100000,
        ge=10000,
        description="PBKDF2-SHA256 iterations for backup key derivation"
    )
    session_timeout_seconds: int = Field(
        default=10,
        description="Lock secure pages after this long away from them"
    )
    suspend_timeout_seconds: int = Field(
        default=60,
        description="Lock the app after it has been in the background this long"
    )


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

    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG regardless of log_level"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum structlog level"
    )

    chat_history_limit: int = Field(
        default=50,
        ge=0,
        description="Number of assistant messages kept in the ledger"
    )
    professional_tax_monthly: float = Field(
        default=200.0,
        ge=0,
        description="Monthly professional tax deducted on payslips"
    )


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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def groq(self) -> GroqSettings:
        return GroqSettings()

    @property
    def ai(self) -> AIProviderSettings:
        return AIProviderSettings()

    @property
    def market(self) -> MarketSettings:
        return MarketSettings()

    @property
    def security(self) -> SecuritySettings:
        return SecuritySettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus "<name>_error"
    entries describing what is missing. Used by the Settings page.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.storage
        results["storage"] = True
    except Exception as e:
        results["storage"] = False
        results["storage_error"] = str(e)

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    # AI keys are optional at the environment level; a missing key is
    # reported but the user may still enter one in the app.
    for name, loader in (("gemini", lambda: settings.gemini), ("groq", lambda: settings.groq)):
        try:
            provider = loader()
            results[name] = bool(provider.api_key)
            if not provider.api_key:
                results[f"{name}_error"] = "API key not set"
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
