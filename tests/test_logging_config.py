import logging

import pytest
import structlog

from cookie_filter_proxy.logging_config import configure_logging


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


def _renderer():
    return structlog.get_config()["processors"][-1]


def test_console_renderer_by_default():
    configure_logging("INFO")

    assert isinstance(_renderer(), structlog.dev.ConsoleRenderer)


def test_json_renderer():
    configure_logging("DEBUG", "json")

    assert isinstance(_renderer(), structlog.processors.JSONRenderer)
    assert structlog.get_config()["logger_factory"].__class__ is structlog.stdlib.LoggerFactory


def test_events_go_through_stdlib(caplog):
    configure_logging("INFO", "json")
    logger = structlog.get_logger("cookie_filter_proxy.test")

    with caplog.at_level(logging.INFO, logger="cookie_filter_proxy.test"):
        logger.info("origin_request_failed", url="https://origin.test/")

    assert "origin_request_failed" in caplog.text
    assert "https://origin.test/" in caplog.text
