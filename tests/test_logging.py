"""
Tests for the logging setup and the monitor-name log filter.
"""

import asyncio
import logging

import pytest

from loopwatch.core.config import MonitorConfig
from loopwatch.core.logging import MonitorLogFilter, current_monitor, setup_logging


def _record():
    return logging.LogRecord("t", logging.INFO, __file__, 1, "msg", None, None)


def test_filter_defaults_to_dash():
    rec = _record()
    assert MonitorLogFilter().filter(rec) is True
    assert rec.monitor == "-"


def test_filter_uses_context():
    token = current_monitor.set("ingest")
    try:
        rec = _record()
        MonitorLogFilter().filter(rec)
        assert rec.monitor == "ingest"
    finally:
        current_monitor.reset(token)


def test_setup_logging_adds_filter_once():
    root = logging.getLogger()
    handler = logging.StreamHandler()
    level = root.level
    root.addHandler(handler)
    try:
        setup_logging(logging.DEBUG)
        setup_logging(logging.DEBUG)
        assert root.level == logging.DEBUG
        assert sum(isinstance(f, MonitorLogFilter) for f in handler.filters) == 1
    finally:
        root.removeHandler(handler)
        root.setLevel(level)


@pytest.mark.asyncio
async def test_monitor_task_logs_with_monitor_name(make_monitor, caplog):
    caplog.handler.addFilter(MonitorLogFilter())
    monitor = make_monitor(MonitorConfig(sample_interval_ms=10, name="ingest-monitor"))

    def broken():
        raise ValueError("boom")

    monitor._check_event_loop = broken
    with caplog.at_level(logging.ERROR, logger="loopwatch.core.monitor"):
        monitor.start()
        await asyncio.sleep(0.05)

    failures = [r for r in caplog.records if "tick failed" in r.getMessage()]
    assert failures
    assert failures[0].monitor == "ingest-monitor"
    # the test's own context is untouched
    assert current_monitor.get() is None


def test_formatter_default_for_unfiltered_records(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    level = root.level
    try:
        setup_logging()
        (handler,) = root.handlers
        # bypass the handler's filter: the formatter must still render
        line = handler.formatter.format(_record())
        assert "[monitor=-]" in line
    finally:
        root.setLevel(level)


@pytest.mark.parametrize("monitor_level,expected", [
    ("debug", logging.DEBUG),
    (logging.WARNING, logging.WARNING),
    ("nonsense", logging.NOTSET),
])
def test_monitor_level_only_touches_loopwatch(monitor_level, expected):
    root = logging.getLogger()
    pkg = logging.getLogger("loopwatch")
    root_level, pkg_level = root.level, pkg.level
    try:
        setup_logging("WARNING", monitor_level=monitor_level)
        assert root.level == logging.WARNING
        assert pkg.level == expected
    finally:
        root.setLevel(root_level)
        pkg.setLevel(pkg_level)


def test_unknown_level_name_falls_back_to_info():
    root = logging.getLogger()
    level = root.level
    try:
        setup_logging("LOUD")
        assert root.level == logging.INFO
    finally:
        root.setLevel(level)
