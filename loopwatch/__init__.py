"""
loopwatch: asyncio event loop stall detection.

    from loopwatch import EventLoopMonitor, MonitorConfig, EventType, get_event_bus

    bus = get_event_bus()
    bus.on(EventType.EVENT_LOOP_STALL, lambda e: print(e.duration))

    monitor = EventLoopMonitor(MonitorConfig(stall_threshold_ms=50), bus=bus)
    monitor.start()   # from inside a running loop
    ...
    monitor.get_stats()
    monitor.stop()
"""
from loopwatch.core.config import MonitorConfig
from loopwatch.core.events import (
    EventBus,
    EventType,
    StallEvent,
    get_event_bus,
    reset_event_bus,
)
from loopwatch.core.monitor import EventLoopMonitor, MonitorState, monitor_event_loop_lag
from loopwatch.core.stats import StallRecorder, StallStats

__all__ = [
    "EventBus",
    "EventLoopMonitor",
    "EventType",
    "MonitorConfig",
    "MonitorState",
    "StallEvent",
    "StallRecorder",
    "StallStats",
    "get_event_bus",
    "monitor_event_loop_lag",
    "reset_event_bus",
]

__version__ = "0.1.0"
