"""Fixtures for streaming tests.

Provides logging capture on the shared ``chatcompat`` logger and a DEBUG
toggle for tests that assert on chunk-level events.
"""
from __future__ import annotations

import logging
from typing import List

import pytest

from chatcompat.base.logging import BASE_LOGGER_NAME, configure_logger


@pytest.fixture()
def log_capture():
    records: List[logging.LogRecord] = []
    handler = logging.Handler()
    handler.emit = lambda record: records.append(record)  # type: ignore
    base = logging.getLogger(BASE_LOGGER_NAME)
    base.addHandler(handler)
    try:
        yield records
    finally:
        base.removeHandler(handler)


@pytest.fixture()
def debug_logging():
    configure_logger(level="DEBUG")
    try:
        yield
    finally:
        configure_logger(level=logging.INFO)
