"""
Cookie Filter Proxy Configuration Module
Centralized configuration management using pydantic-settings.
"""

from cookie_filter_proxy.config.settings import (
    Settings,
    AppSettings,
    ProxySettings,
    get_settings,
    reload_settings,
)

__all__ = [
    "Settings",
    "AppSettings",
    "ProxySettings",
    "get_settings",
    "reload_settings",
]
