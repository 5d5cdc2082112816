from __future__ import annotations

import pytest

from tests.httpx_breaker.support.runtime_fakes import (
    FakeClock,
    FakeLogger,
    RecordingListener,
)


@pytest.fixture
def fake_logger() -> FakeLogger:
    """Provide a fresh structured logger test double per test."""
    return FakeLogger()


@pytest.fixture
def fake_clock() -> FakeClock:
    """Provide a manually driven clock starting at t=0ms."""
    return FakeClock()


@pytest.fixture
def listener() -> RecordingListener:
    """Provide a fresh recording listener per test."""
    return RecordingListener()
