"""
Proxy Server Entry Point

Standalone server for running the cookie filter proxy.
"""

import argparse
import os
import sys
from typing import Optional

import structlog
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from cookie_filter_proxy.config import get_settings
from cookie_filter_proxy.logging_config import configure_logging
from cookie_filter_proxy.proxy.config import ProxyConfig
from cookie_filter_proxy.proxy.gateway import create_proxy_app

logger = structlog.get_logger(__name__)

APP_FACTORY = "cookie_filter_proxy.proxy.server:create_app_from_env"


def create_app_from_env() -> FastAPI:
    """App factory used by uvicorn worker and reload processes."""
    load_dotenv(".env.local")
    settings = get_settings()
    configure_logging(settings.app.log_level, settings.app.log_format)
    return create_proxy_app(ProxyConfig.from_settings(settings.proxy))


def export_config(config: ProxyConfig) -> None:
    """Publish the configuration to the environment for child processes."""
    os.environ["ORIGIN"] = config.origin
    os.environ["COOKIE_PREFIX_FILTER"] = config.cookie_prefix_filter
    os.environ["PROXY_HOST"] = config.listen_host
    os.environ["PROXY_PORT"] = str(config.listen_port)
    os.environ["PROXY_CONNECT_TIMEOUT"] = str(config.connect_timeout)
    os.environ["PROXY_REQUEST_TIMEOUT"] = str(config.request_timeout)


def run_proxy_server(
    config: Optional[ProxyConfig] = None,
    reload: bool = False,
    workers: int = 1,
    log_level: str = "info",
) -> None:
    """
    Run the proxy server.

    Args:
        config: Proxy configuration
        reload: Enable auto-reload for development
        workers: Number of worker processes
        log_level: Logging level
    """
    if config is None:
        config = ProxyConfig.from_settings()

    # Validate
    errors = config.validate()
    if errors:
        logger.error("configuration_invalid", errors=errors)
        print(f"Configuration errors: {errors}", file=sys.stderr)
        sys.exit(1)

    print_banner(config)

    if reload or workers > 1:
        # Child processes build their own app from the environment
        export_config(config)
        uvicorn.run(
            APP_FACTORY,
            factory=True,
            host=config.listen_host,
            port=config.listen_port,
            reload=reload,
            workers=workers,
            log_level=log_level,
        )
        return

    uvicorn.run(
        create_proxy_app(config=config),
        host=config.listen_host,
        port=config.listen_port,
        log_level=log_level,
    )


def print_banner(config: ProxyConfig) -> None:
    """Print startup banner."""
    cookie_filter = config.cookie_prefix_filter or "(disabled, all cookies forwarded)"
    print(f"""
  Cookie Filter Proxy
  -------------------
  Listen Address:   {config.listen_host}:{config.listen_port}
  Origin:           {config.origin_base_url}
  Cookie Filter:    {cookie_filter}
  Timeouts:         connect {config.connect_timeout}s, read/write {config.request_timeout}s
""")


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser, defaults taken from settings."""
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="Cookie Filter Proxy",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Forward to www.example.com, all cookies
  cookie-filter-proxy --origin www.example.com

  # Only forward cookies named app-*
  cookie-filter-proxy --origin www.example.com --cookie-prefix-filter app-

  # Configuration from the environment
  ORIGIN=www.example.com COOKIE_PREFIX_FILTER=app- cookie-filter-proxy
        """,
    )

    parser.add_argument(
        "--host",
        default=settings.proxy.host,
        help=f"Host to bind to (default: {settings.proxy.host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.proxy.port,
        help=f"Port to listen on (default: {settings.proxy.port})",
    )
    parser.add_argument(
        "--origin",
        default=settings.proxy.origin,
        help="Origin hostname requests are forwarded to (env: ORIGIN)",
    )
    parser.add_argument(
        "--cookie-prefix-filter",
        default=settings.proxy.cookie_prefix_filter,
        help="Only forward cookies whose name starts with this (env: COOKIE_PREFIX_FILTER)",
    )
    parser.add_argument(
        "--connect-timeout",
        type=float,
        default=settings.proxy.connect_timeout,
        help=f"Origin connect timeout in seconds (default: {settings.proxy.connect_timeout})",
    )
    parser.add_argument(
        "--request-timeout",
        type=float,
        default=settings.proxy.request_timeout,
        help=f"Origin read/write timeout in seconds (default: {settings.proxy.request_timeout})",
    )
    parser.add_argument(
        "--log-level",
        type=str.lower,
        choices=["debug", "info", "warning", "error"],
        default=settings.app.log_level.lower(),
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--log-format",
        choices=["console", "json"],
        default=settings.app.log_format,
        help="Log output format (default: console)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes (default: 1)",
    )

    return parser


def main(argv=None):
    """Main entry point for proxy server."""
    load_dotenv(".env.local")

    args = build_parser().parse_args(argv)

    configure_logging(args.log_level, args.log_format)

    config = ProxyConfig(
        origin=args.origin.strip(),
        cookie_prefix_filter=args.cookie_prefix_filter,
        listen_host=args.host,
        listen_port=args.port,
        connect_timeout=args.connect_timeout,
        request_timeout=args.request_timeout,
    )

    if args.reload or args.workers > 1:
        os.environ["LOG_LEVEL"] = args.log_level
        os.environ["LOG_FORMAT"] = args.log_format

    run_proxy_server(
        config=config,
        reload=args.reload,
        workers=args.workers,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
