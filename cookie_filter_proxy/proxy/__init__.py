"""
Cookie Filter Proxy Module

Forwards every request to a fixed origin, passing only allowlisted headers
and the cookies whose name matches the configured prefix.
"""

from cookie_filter_proxy.proxy.gateway import CookieFilterGateway, create_proxy_app
from cookie_filter_proxy.proxy.forwarder import OriginForwarder, build_origin_url
from cookie_filter_proxy.proxy.cookies import CookieFilter, filter_cookies
from cookie_filter_proxy.proxy.config import ProxyConfig

__all__ = [
    "CookieFilterGateway",
    "create_proxy_app",
    "OriginForwarder",
    "build_origin_url",
    "CookieFilter",
    "filter_cookies",
    "ProxyConfig",
]
