from __future__ import annotations

import asyncio
import time
import logging
from enum import Enum
from typing import Callable, Optional

from .config import MonitorConfig
from .events import EventBus, get_event_bus
from .logging import current_monitor
from .stats import StallRecorder, StallStats

log = logging.getLogger(__name__)


class MonitorState(Enum):
    DISABLED = "disabled"   # config says off; start()/stop() are no-ops
    STOPPED = "stopped"
    RUNNING = "running"


class EventLoopMonitor:
    """
    Event loop lag (a.k.a. loop latency / scheduler lag) monitor.

    A task on the monitored loop sleeps for the sample interval and then
    measures how late it woke up. If the loop is blocked by accidental
    time.sleep(), heavy CPU parsing, massive sync work, etc. the wakeup is
    delayed and the excess over the interval (the drift) spikes. Drifts at
    or above the stall threshold are published on the bus as StallEvent.
    """

    def __init__(
        self,
        config: Optional[MonitorConfig] = None,
        *,
        bus: Optional[EventBus] = None,
        clock: Callable[[], float] = time.perf_counter,
        wall_clock: Callable[[], float] = time.time,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.config = config if config is not None else MonitorConfig()
        self.bus = bus if bus is not None else get_event_bus()
        self.clock = clock
        self._loop = loop

        self._recorder = StallRecorder(self.config, self.bus, wall_clock=wall_clock)
        self._last_tick: Optional[float] = None
        self._task: Optional[asyncio.Task] = None
        self._state = MonitorState.STOPPED if self.config.enabled else MonitorState.DISABLED

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is MonitorState.RUNNING

    def start(self) -> None:
        if self._state is not MonitorState.STOPPED:
            return

        loop = self._loop or asyncio.get_running_loop()

        self._recorder.reset()
        self._last_tick = self.clock()
        self._task = loop.create_task(self._run(), name=f"loopwatch:{self.name}")
        self._state = MonitorState.RUNNING
        log.info(
            "event loop monitor %s started: interval=%.0fms, stall_threshold=%.0fms",
            self.name,
            self.config.sample_interval_ms,
            self.config.stall_threshold_ms,
        )

    def stop(self) -> None:
        if self._task is not None:
            # from inside a tick this only requests cancellation; it lands
            # at the task's next await
            self._task.cancel()
            self._task = None
        if self._state is MonitorState.RUNNING:
            self._state = MonitorState.STOPPED
            log.info("event loop monitor %s stopped", self.name)

    def get_stats(self) -> Optional[StallStats]:
        return self._recorder.snapshot()

    async def _run(self) -> None:
        current_monitor.set(self.name)
        interval_s = self.config.interval_s
        while True:
            await asyncio.sleep(interval_s)
            try:
                self._check_event_loop()
            except Exception:
                # never let one bad tick end the schedule
                log.exception("event loop monitor %s: tick failed", self.name)

    def _check_event_loop(self) -> None:
        now = self.clock()
        last = self._last_tick if self._last_tick is not None else now

        elapsed_ms = (now - last) * 1000.0
        # a tick firing early is not a stall
        drift = max(0.0, elapsed_ms - self.config.sample_interval_ms)

        try:
            event = self._recorder.record(drift)
        finally:
            # the next interval starts when this tick (listeners included) ends
            self._last_tick = self.clock()
        if event is None:
            log.debug("event loop lag: %.1fms", drift)


async def monitor_event_loop_lag(
    config: Optional[MonitorConfig] = None,
    *,
    bus: Optional[EventBus] = None,
) -> None:
    """
    Run a monitor on the current loop until cancelled.

    Convenience for asyncio.gather(...) style hosts.
    """
    monitor = EventLoopMonitor(config, bus=bus)
    monitor.start()
    try:
        await asyncio.Event().wait()
    finally:
        monitor.stop()
