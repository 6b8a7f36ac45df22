"""Shared test fixtures."""

import pytest
import structlog

from fakes import FakeGateway, RecordingNotifier

from futures_core.config.schema import RiskConfig
from futures_core.trading import PositionTracker


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Cycle numbers are bound as contextvars; keep them from leaking between tests."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def risk_config():
    return RiskConfig()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def tracker(risk_config):
    return PositionTracker(trailing_stop_pct=risk_config.trailing_stop_pct)
