"""
Cookie Filter Gateway

ASGI application that forwards every request to the origin through the
cookie filter and relays the origin response unmodified.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from urllib.parse import urlsplit
import structlog
import httpx

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask
from starlette.datastructures import Headers
from starlette.types import Receive, Scope, Send
from starlette.websockets import WebSocketClose

from cookie_filter_proxy.proxy.config import ProxyConfig
from cookie_filter_proxy.proxy.forwarder import OriginForwarder

logger = structlog.get_logger(__name__)

# Hop-by-hop headers of the origin response, re-framed by the ASGI server
HOP_BY_HOP_HEADERS = frozenset({
    b"connection", b"keep-alive", b"proxy-authenticate",
    b"proxy-authorization", b"te", b"trailer", b"trailers",
    b"transfer-encoding", b"upgrade",
})


def _raw_path(request: Request) -> str:
    """
    Inbound path as received, still percent-encoded.

    An absolute-form target (``GET http://host/path HTTP/1.1``) is reduced
    to its path; the authority it names is never used.
    """
    raw_path = request.scope.get("raw_path")
    if raw_path:
        # Some servers include the query string in raw_path
        path = raw_path.split(b"?", 1)[0].decode("latin-1")
    else:
        path = request.scope.get("path", "")
    if not path.startswith("/"):
        path = urlsplit(path).path
    return path or "/"


def _raw_query(request: Request) -> str:
    return request.scope.get("query_string", b"").decode("latin-1")


def _has_body(request: Request) -> bool:
    return "content-length" in request.headers or "transfer-encoding" in request.headers


class CookieFilterGateway:
    """
    Cookie filter proxy gateway.

    Every inbound request:
    1. Has its Cookie header filtered by name prefix
    2. Is rewritten to https://{origin}{path}{query} with allowlisted headers
    3. Is sent to the origin with the original method and body stream
    4. Gets the origin response back unmodified
    """

    def __init__(
        self,
        config: ProxyConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.forwarder = OriginForwarder(config=config, transport=transport)

        # FastAPI app for the proxy
        self.app: Optional[FastAPI] = None

        logger.info(
            "cookie_filter_gateway_created",
            origin=config.origin,
        )

    def create_app(self) -> FastAPI:
        """Create the FastAPI application for the gateway."""

        @asynccontextmanager
        async def lifespan(app: FastAPI) -> AsyncGenerator:
            """Application lifespan manager."""
            logger.info("starting_cookie_filter_gateway")
            await self.forwarder.initialize()

            yield

            logger.info("shutting_down_cookie_filter_gateway")
            await self.forwarder.shutdown()

        # Every path belongs to the origin, so no docs or schema routes
        self.app = FastAPI(
            title="Cookie Filter Proxy",
            version="0.1.0",
            lifespan=lifespan,
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
        )

        @self.app.exception_handler(httpx.TransportError)
        async def origin_unavailable(request: Request, exc: httpx.TransportError):
            """Origin could not be reached; the cause is not disclosed."""
            return JSONResponse(status_code=502, content={"error": "Bad Gateway"})

        # No routes are registered: the router hands every request to its
        # default app, whatever the method or request-target form
        async def proxy_request(scope: Scope, receive: Receive, send: Send) -> None:
            """Forward the request to the origin."""
            if scope["type"] != "http":
                await WebSocketClose()(scope, receive, send)
                return
            response = await self.handle_request(Request(scope, receive))
            await response(scope, receive, send)

        self.app.router.default = proxy_request

        return self.app

    async def handle_request(self, request: Request) -> Response:
        """Forward an inbound request and relay the origin response."""
        body = request.stream() if _has_body(request) else None

        origin_response = await self.forwarder.forward(
            method=request.method,
            path=_raw_path(request),
            headers=request.headers,
            body=body,
            query_string=_raw_query(request),
        )

        return self.relay_response(origin_response)

    @staticmethod
    def relay_response(origin_response: httpx.Response) -> StreamingResponse:
        """Relay status, headers and raw body bytes of the origin response."""
        raw_headers = [
            (name, value)
            for name, value in origin_response.headers.raw
            if name.lower() not in HOP_BY_HOP_HEADERS
        ]

        return StreamingResponse(
            origin_response.aiter_raw(),
            status_code=origin_response.status_code,
            headers=Headers(raw=[(name.lower(), value) for name, value in raw_headers]),
            background=BackgroundTask(origin_response.aclose),
        )


def create_proxy_app(
    config: Optional[ProxyConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Create a FastAPI application for the cookie filter proxy.

    Args:
        config: Proxy configuration (or load from environment)
        transport: Optional httpx transport for origin requests

    Returns:
        Configured FastAPI application

    Raises:
        ValueError: if the configuration is invalid
    """
    if config is None:
        config = ProxyConfig.from_settings()

    # Validate configuration
    errors = config.validate()
    if errors:
        logger.error("proxy_config_invalid", errors=errors)
        raise ValueError(f"Invalid proxy configuration: {errors}")

    gateway = CookieFilterGateway(config=config, transport=transport)
    return gateway.create_app()
