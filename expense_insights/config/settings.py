"""
Configuration Management for Expense Insights

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Relational database configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        default="sqlite+aiosqlite:///./expenses.db",
        description="SQLAlchemy async database URL"
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements (debugging only)"
    )
    connect_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times to try creating the schema on startup"
    )

    @field_validator('url')
    @classmethod
    def validate_async_driver(cls, v: str) -> str:
        """The storage layer uses the asyncio extension, so the URL needs an async driver."""
        if "+" not in v.split("://", 1)[0]:
            raise ValueError(
                f"Database URL must name an async driver "
                f"(e.g. sqlite+aiosqlite://, postgresql+asyncpg://): {v}"
            )
        return v


class AuthSettings(BaseSettings):
    """
    Identity configuration.

    The real identity provider lives outside this app. For local
    development a fixed user can be configured instead.
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    dev_user_id: Optional[str] = Field(
        default=None,
        description="External user id to sign in as during development"
    )
    dev_user_name: str = Field(
        default="Dev User",
        description="Display name for the development user"
    )
    dev_user_email: Optional[str] = Field(
        default=None,
        description="Email address for the development user"
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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment, shown in logs and on the settings page"
    )
    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG regardless of LOG_LEVEL"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    # Display
    currency_symbol: str = Field(
        default="$",
        max_length=3,
        description="Symbol shown next to amounts"
    )
    recent_records_limit: int = Field(
        default=20,
        ge=1,
        le=200,
        description="How many records the dashboard table shows"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def effective_log_level(self) -> str:
        """Debug mode always logs at DEBUG."""
        return "DEBUG" if self.debug_mode else self.log_level


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
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def auth(self) -> AuthSettings:
        return AuthSettings()

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

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("database", "auth", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
