"""
Pytest fixtures for the back-office test suite.

Provides:
- Logging isolation between tests
- A captured structured-log stream
- Engine instances and a standard contract

Builders for contracts, entries, entities and financials live in
tests/builders.py.
"""

import logging
from collections.abc import Generator
from io import StringIO

import pytest

from backoffice_engines.consolidation import ConsolidationEngine
from backoffice_engines.revenue_schedule import Contract, RevenueScheduleEngine
from backoffice_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from tests.builders import make_contract


@pytest.fixture(autouse=True)
def _clean_logging() -> Generator[None, None, None]:
    """Reset logging state and log context between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def log_stream() -> StringIO:
    """Capture structured JSON logs at DEBUG level."""
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    configure_logging(handler=handler, level=logging.DEBUG)
    return stream


@pytest.fixture
def schedule_engine() -> RevenueScheduleEngine:
    return RevenueScheduleEngine()


@pytest.fixture
def consolidation_engine() -> ConsolidationEngine:
    return ConsolidationEngine()


@pytest.fixture
def straight_line_contract() -> Contract:
    return make_contract()
