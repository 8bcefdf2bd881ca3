"""
Root pytest configuration.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from typing import Any

import pytest

from logbull.core import diagnostics
from logbull.core.envelope import LogBatch
from logbull.core.settings import SenderSettings, Settings
from logbull.sinks.http_client import DeliveryOutcome

PROJECT_ID = "12345678-1234-1234-1234-123456789012"
HOST = "http://localhost:4005"


def get_test_timeout(base: float, max_multiplier: float = 5.0) -> float:
    """Apply CI timeout multiplier to a base timeout value.

    Environment:
        CI_TIMEOUT_MULTIPLIER: Multiplier for CI environments (default: 1.0)
    """
    raw = os.getenv("CI_TIMEOUT_MULTIPLIER", "1.0")
    try:
        multiplier = float(raw) if raw else 1.0
        multiplier = min(multiplier, max_multiplier)
    except ValueError:
        multiplier = 1.0
    return base * multiplier


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "critical: Tests that must never fail - core functionality",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests exercising the full pipeline over HTTP",
    )
    config.addinivalue_line(
        "markers",
        "slow: Tests that take >1 second",
    )
    config.addinivalue_line(
        "markers",
        "property: Property-based tests (may be slow)",
    )


@pytest.fixture(autouse=True)
def reset_diagnostics() -> Generator[None, None, None]:
    """Reset cached diagnostics state so tests don't inherit it."""
    diagnostics._internal_logging_enabled = None
    diagnostics.set_writer_for_tests(None)
    yield
    diagnostics._internal_logging_enabled = None
    diagnostics.set_writer_for_tests(None)


@pytest.fixture
def captured_diagnostics() -> list[dict[str, Any]]:
    """Collect diagnostics payloads instead of writing them to stderr."""
    captured: list[dict[str, Any]] = []
    diagnostics._internal_logging_enabled = True
    diagnostics.set_writer_for_tests(captured.append)
    return captured


class RecordingTransport:
    """In-memory delivery transport that records every batch it receives."""

    def __init__(self, *, delay: float = 0.0) -> None:
        self.delay = delay
        self.batches: list[LogBatch] = []
        self.close_calls = 0

    async def deliver(self, batch: LogBatch) -> DeliveryOutcome:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.batches.append(batch)
        return DeliveryOutcome.ACCEPTED

    async def aclose(self) -> None:
        self.close_calls += 1

    @property
    def delivered(self) -> int:
        return sum(len(batch) for batch in self.batches)


@pytest.fixture
def recording_transport() -> RecordingTransport:
    return RecordingTransport()


def make_settings(**sender: Any) -> Settings:
    """Networked settings; the ticker is slowed down unless overridden."""
    sender.setdefault("flush_interval_seconds", 60.0)
    return Settings(
        project_id=PROJECT_ID,
        host=HOST,
        console_echo=False,
        sender=SenderSettings(**sender),
    )


@pytest.fixture
def settings_factory() -> Any:
    return make_settings


@pytest.fixture
def transport_factory() -> Any:
    return RecordingTransport


@pytest.fixture
def timeout_for() -> Any:
    """CI-scaled timeout helper, see ``get_test_timeout``."""
    return get_test_timeout
