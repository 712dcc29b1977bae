"""
Shared fixtures for the loopwatch test suite.
"""

import time
from typing import List

import pytest

from loopwatch.core.config import MonitorConfig
from loopwatch.core.events import EventBus, EventType, StallEvent, reset_event_bus
from loopwatch.core.monitor import EventLoopMonitor


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: test blocks a real event loop")


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000.0


def busy_wait(seconds: float) -> None:
    """Block the calling thread (and so the event loop) without yielding."""
    end = time.perf_counter() + seconds
    while time.perf_counter() < end:
        pass


@pytest.fixture(autouse=True)
def _fresh_global_bus():
    reset_event_bus()
    yield
    reset_event_bus()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def stall_events(bus) -> List[StallEvent]:
    events: List[StallEvent] = []
    bus.on(EventType.EVENT_LOOP_STALL, events.append)
    return events


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_monitor(bus):
    """Build monitors on the test bus; every one is stopped at teardown."""
    created: List[EventLoopMonitor] = []

    def _make(config=None, **kwargs):
        if isinstance(config, dict):
            config = MonitorConfig.from_mapping(config)
        kwargs.setdefault("bus", bus)
        monitor = EventLoopMonitor(config, **kwargs)
        created.append(monitor)
        return monitor

    yield _make

    for m in created:
        m.stop()
