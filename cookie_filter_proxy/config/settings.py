"""
Cookie Filter Proxy Settings
Pydantic-based configuration with support for env vars and config files.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Application-level settings."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
    )

    name: str = Field(default="cookie-filter-proxy", alias="APP_NAME")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="console", alias="LOG_FORMAT")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("log_format", mode="before")
    @classmethod
    def normalize_log_format(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            if v not in ("console", "json"):
                raise ValueError("LOG_FORMAT must be 'console' or 'json'")
        return v


class ProxySettings(BaseSettings):
    """Origin, cookie filter and transport settings."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
    )

    # The origin is required at runtime; ProxyConfig.validate() reports it.
    origin: str = Field(default="", alias="ORIGIN")
    # Never stripped, the prefix match is exact
    cookie_prefix_filter: str = Field(default="", alias="COOKIE_PREFIX_FILTER")

    host: str = Field(default="0.0.0.0", alias="PROXY_HOST")
    port: int = Field(default=8080, alias="PROXY_PORT")

    connect_timeout: float = Field(default=5.0, alias="PROXY_CONNECT_TIMEOUT")
    request_timeout: float = Field(default=30.0, alias="PROXY_REQUEST_TIMEOUT")


class Settings(BaseSettings):
    """
    Main settings class that aggregates all config sections.

    Usage:
        from cookie_filter_proxy.config import get_settings

        settings = get_settings()
        print(settings.proxy.origin)
        print(settings.app.log_level)
    """

    model_config = SettingsConfigDict(
        env_file=".env.local",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=AppSettings)
    proxy: ProxySettings = Field(default_factory=ProxySettings)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: The application settings
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Reload settings (clears cache).

    Returns:
        Settings: Fresh settings instance
    """
    get_settings.cache_clear()
    return get_settings()
