"""
Configuration Management for the Bookkeeping Assistant

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets ledger storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
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
    accounts_sheet_name: str = Field(
        default="Accounts",
        description="Name of the sheet for accounts"
    )
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet for transactions"
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
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=500,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Model temperature (conversational replies)"
    )


class ChatSettings(BaseSettings):
    """Conversation and slash command behaviour."""

    model_config = SettingsConfigDict(
        env_prefix="CHAT_",
        extra="ignore"
    )

    max_turns: int = Field(
        default=20,
        ge=2,
        le=200,
        description="Maximum number of turns kept as generator context"
    )
    command_prefix: str = Field(
        default="/",
        min_length=1,
        max_length=1,
        description="Trigger character for slash commands"
    )
    recent_transactions_limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="How many transactions /transactions shows by default"
    )
    categorize_preview_limit: int = Field(
        default=5,
        ge=1,
        le=50,
        description="How many uncategorized transactions /categorize previews"
    )
    recent_activity_days: int = Field(
        default=7,
        ge=1,
        description="Window used for 'recent transactions' in /status"
    )
    currency_symbol: str = Field(
        default="$",
        description="Currency symbol used when formatting amounts"
    )

    @field_validator('max_turns')
    @classmethod
    def validate_even_turns(cls, v: int) -> int:
        """History is kept in user/assistant pairs, so the cap must be even."""
        if v % 2 != 0:
            raise ValueError("max_turns must be an even number")
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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    ledger_backend: str = Field(
        default="memory",
        pattern="^(memory|google_sheets)$",
        description="Ledger storage backend: memory or google_sheets"
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
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def chat(self) -> ChatSettings:
        return ChatSettings()

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

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for every section that failed to load.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    sections = ["google_sheets", "gemini", "chat", "app"]
    for name in sections:
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
