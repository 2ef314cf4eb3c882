from typing import Callable, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from cookie_filter_proxy.config import get_settings, reload_settings
from cookie_filter_proxy.proxy.config import ProxyConfig
from cookie_filter_proxy.proxy.gateway import create_proxy_app

TEST_ORIGIN = "origin.test"

PROXY_ENV_VARS = (
    "ORIGIN",
    "COOKIE_PREFIX_FILTER",
    "PROXY_HOST",
    "PROXY_PORT",
    "PROXY_CONNECT_TIMEOUT",
    "PROXY_REQUEST_TIMEOUT",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "APP_NAME",
)


class OriginRecorder:
    """Stands in for the origin server; records every request it receives."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.responder: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, content=b"ok")
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def last(self) -> Optional[httpx.Request]:
        return self.requests[-1] if self.requests else None


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of configuration tests."""
    for name in PROXY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reload_settings()
    yield
    get_settings.cache_clear()


@pytest.fixture
def origin():
    return OriginRecorder()


@pytest.fixture
def transport(origin):
    return httpx.MockTransport(origin)


@pytest.fixture
def make_client(transport):
    """Build a TestClient for a proxy with the given cookie prefix filter."""
    clients = []

    def _make_client(cookie_prefix_filter: str = "") -> TestClient:
        config = ProxyConfig(origin=TEST_ORIGIN, cookie_prefix_filter=cookie_prefix_filter)
        client = TestClient(
            create_proxy_app(config=config, transport=transport),
            base_url="http://example.com",
        )
        client.__enter__()
        clients.append(client)
        return client

    yield _make_client

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()
