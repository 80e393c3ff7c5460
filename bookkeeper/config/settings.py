"""
Configuration Management for Bookkeeper

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here so the one external dependency
(the hosted Supabase project) and every tunable page size are visible
in a single place and validated at startup.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SupabaseSettings(BaseSettings):
    """Hosted Supabase project configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        ...,
        description="Project URL, e.g. https://<ref>.supabase.co"
    )
    anon_key: str = Field(
        ...,
        description="Published (anon) client key"
    )
    db_schema: str = Field(
        default="public",
        description="Database schema exposed through the REST API"
    )

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Reject the placeholder URL shipped in .env.example."""
        if "YOUR-PROJECT" in v:
            raise ValueError(
                "SUPABASE_URL still contains the placeholder project reference"
            )
        return v.rstrip("/")


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
    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )
    use_memory_store: bool = Field(
        default=False,
        description="Run against the in-memory store instead of Supabase"
    )

    # Presentation
    currency_label: str = Field(
        default="CHF",
        description="Currency shown next to amounts"
    )
    notification_duration_ms: int = Field(
        default=1800,
        ge=500,
        le=10000,
        description="How long a transient notification stays visible"
    )

    # Page sizes for list loaders
    income_page_limit: int = Field(default=300, ge=1, le=1000)
    expense_page_limit: int = Field(default=300, ge=1, le=1000)
    project_page_limit: int = Field(default=500, ge=1, le=1000)
    client_page_limit: int = Field(default=500, ge=1, le=1000)
    document_page_limit: int = Field(default=200, ge=1, le=1000)
    event_page_limit: int = Field(default=500, ge=1, le=1000)
    catalog_project_limit: int = Field(
        default=1000,
        ge=1,
        le=5000,
        description="How many projects the catalog keeps for name lookups"
    )

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
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

    # Sub-settings are loaded lazily so the app can start
    # (e.g. against the in-memory store) without Supabase credentials.

    @property
    def supabase(self) -> SupabaseSettings:
        return SupabaseSettings()

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


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid} plus an
    "<name>_error" entry for every section that failed.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.supabase
        results["supabase"] = True
    except Exception as e:
        results["supabase"] = False
        results["supabase_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
