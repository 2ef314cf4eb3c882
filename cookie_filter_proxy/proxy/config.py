"""
Forwarding Proxy Configuration

Immutable runtime configuration shared by every request.
"""

from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlsplit

from cookie_filter_proxy.config.settings import ProxySettings, get_settings


@dataclass(frozen=True)
class ProxyConfig:
    """
    Configuration for the cookie filter proxy.

    Attributes:
        origin: Hostname (optionally with port) requests are forwarded to
        cookie_prefix_filter: Only cookies whose name starts with this are
            forwarded; empty forwards every cookie
        listen_host: Host to bind the proxy server to
        listen_port: Port to listen on for incoming traffic
        connect_timeout: Connect and pool timeout for origin requests
        request_timeout: Read and write timeout for origin requests
    """

    origin: str
    cookie_prefix_filter: str = ""

    # Server binding
    listen_host: str = "0.0.0.0"
    listen_port: int = 8080

    # Timeouts
    connect_timeout: float = 5.0
    request_timeout: float = 30.0

    @property
    def origin_base_url(self) -> str:
        """Origin URL without path; the scheme is always https."""
        return f"https://{self.origin}"

    @classmethod
    def from_settings(cls, settings: Optional[ProxySettings] = None) -> "ProxyConfig":
        """Create configuration from loaded settings."""
        if settings is None:
            settings = get_settings().proxy

        return cls(
            origin=settings.origin.strip(),
            cookie_prefix_filter=settings.cookie_prefix_filter,
            listen_host=settings.host,
            listen_port=settings.port,
            connect_timeout=settings.connect_timeout,
            request_timeout=settings.request_timeout,
        )

    @classmethod
    def from_env(cls) -> "ProxyConfig":
        """Create configuration from environment variables."""
        return cls.from_settings(ProxySettings())

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if not self.origin:
            errors.append("ORIGIN is required")
        elif "://" in self.origin:
            errors.append("ORIGIN must be a hostname without a scheme")
        elif any(c.isspace() for c in self.origin):
            errors.append("ORIGIN must not contain whitespace")
        elif any(c in self.origin for c in "/?#"):
            errors.append("ORIGIN must not contain a path, query or fragment")
        elif "@" in self.origin:
            errors.append("ORIGIN must not contain credentials")
        else:
            try:
                urlsplit(f"//{self.origin}").port
            except ValueError:
                errors.append("ORIGIN has an invalid host or port")

        if self.connect_timeout <= 0:
            errors.append("Connect timeout must be positive")

        if self.request_timeout <= 0:
            errors.append("Request timeout must be positive")

        if not 0 < self.listen_port < 65536:
            errors.append("Listen port must be between 1 and 65535")

        return errors
