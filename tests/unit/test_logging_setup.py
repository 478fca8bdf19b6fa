"""
Unit tests for structured logging setup.
"""

from __future__ import annotations

from typing import Generator
from unittest.mock import patch

import pytest
import structlog

from rental_booking.logging_config import setup_logging


@pytest.fixture(autouse=True)
def restore_logging() -> Generator[None, None, None]:
    yield
    setup_logging()


@pytest.mark.unit
def test_json_renderer_outside_debug() -> None:
    with patch("rental_booking.logging_config.DEBUG", False):
        setup_logging()

    processors = structlog.get_config()["processors"]
    assert isinstance(processors[-1], structlog.processors.JSONRenderer)
    assert structlog.contextvars.merge_contextvars in processors


@pytest.mark.unit
def test_console_renderer_in_debug() -> None:
    with patch("rental_booking.logging_config.DEBUG", True):
        setup_logging()

    assert isinstance(structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer)
