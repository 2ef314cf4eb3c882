"""
Origin Forwarder

Rewrites an inbound request into a request against the configured origin and
sends it. The origin response is returned unread so the gateway can relay it
as-is.
"""

import asyncio
from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import AsyncIterable, Dict, Mapping, Optional, Union

import httpx
import structlog

from cookie_filter_proxy.proxy.config import ProxyConfig
from cookie_filter_proxy.proxy.cookies import CookieFilter
from cookie_filter_proxy.proxy.headers import (
    ALLOWED_OUTBOUND_HEADERS,
    build_origin_headers,
)

logger = structlog.get_logger(__name__)

RequestBody = Union[bytes, AsyncIterable[bytes]]

BODYLESS_METHODS = frozenset({"GET", "HEAD"})


def build_origin_url(origin: str, path: str, query_string: str = "") -> str:
    """
    Build ``https://{origin}{path}{?query}``.

    Only path and query of the inbound request are carried over; the scheme
    is always https.
    """
    if not path.startswith("/"):
        path = f"/{path}"
    url = f"https://{origin}{path}"
    if query_string:
        url = f"{url}?{query_string}"
    return url


class OriginForwarder:
    """
    Forwards requests to the origin.

    One pooled httpx client is shared by all requests. It never stores
    cookies, so nothing carries over from one request to the next.
    """

    def __init__(
        self,
        config: ProxyConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.cookie_filter = CookieFilter(config.cookie_prefix_filter)
        self._transport = transport

        # HTTP client, created once by whichever request gets there first
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

        logger.info(
            "origin_forwarder_initialized",
            origin=config.origin,
            cookie_prefix_filter=config.cookie_prefix_filter or None,
        )

    async def initialize(self) -> None:
        """Initialize the HTTP client. Does nothing if it already exists."""
        if self._client:
            return
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=self.config.connect_timeout,
                read=self.config.request_timeout,
                write=self.config.request_timeout,
                pool=self.config.connect_timeout,
            ),
            cookies=CookieJar(policy=DefaultCookiePolicy(allowed_domains=[])),
            follow_redirects=False,
            transport=self._transport,
        )
        logger.info("http_client_initialized")

    async def shutdown(self) -> None:
        """Shutdown the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
        logger.info("http_client_shutdown")

    async def _get_client(self) -> httpx.AsyncClient:
        """Return the shared client, creating it on first use."""
        if self._client is None:
            async with self._client_lock:
                if self._client is None:
                    await self.initialize()
        return self._client

    def build_headers(self, headers: Mapping[str, str]) -> Dict[str, str]:
        """Build the allowlisted outbound headers, with cookies filtered."""
        cookie = self.cookie_filter.filter(headers.get("cookie"))
        return build_origin_headers(headers, cookie)

    async def forward(
        self,
        method: str,
        path: str,
        headers: Mapping[str, str],
        body: Optional[RequestBody] = None,
        query_string: str = "",
    ) -> httpx.Response:
        """
        Forward a request to the origin.

        The body is passed through unbuffered. The returned response is
        streamed and still open; the caller must close it.

        Args:
            method: HTTP method
            path: Raw request path
            headers: Inbound request headers (case-insensitive mapping)
            body: Request body bytes or stream
            query_string: Raw query string without '?'

        Returns:
            The origin response

        Raises:
            httpx.TransportError: if the origin cannot be reached
        """
        client = await self._get_client()

        method = method.upper()
        url = build_origin_url(self.config.origin, path, query_string)
        outbound_headers = self.build_headers(headers)

        content = None
        if body is not None and method not in BODYLESS_METHODS:
            content = body
            # Keep the inbound framing so streamed bodies are not re-chunked
            content_length = headers.get("content-length")
            if content_length:
                outbound_headers["Content-Length"] = content_length

        request = client.build_request(
            method=method,
            url=url,
            headers=outbound_headers,
            content=content,
        )
        # Drop the client's default headers (User-Agent, Accept-Encoding, ...)
        for name in list(request.headers.keys()):
            if name.lower() not in ALLOWED_OUTBOUND_HEADERS:
                del request.headers[name]

        logger.debug(
            "forwarding_request",
            method=method,
            url=url,
            has_body=content is not None,
            cookies_forwarded=bool(outbound_headers["Cookie"]),
        )

        try:
            response = await client.send(request, stream=True)
        except httpx.TransportError as e:
            logger.error(
                "origin_request_failed",
                method=method,
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        logger.debug(
            "origin_response_received",
            method=method,
            url=url,
            status_code=response.status_code,
        )
        return response
