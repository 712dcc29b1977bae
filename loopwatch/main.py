from __future__ import annotations
import os, asyncio
import logging
from typing import Optional

from loopwatch.core.config import MonitorConfig
from loopwatch.core.control import RedisHealth
from loopwatch.core.events import EventType, StallEvent, get_event_bus
from loopwatch.core.logging import setup_logging
from loopwatch.core.monitor import EventLoopMonitor
from loopwatch.core.redis import init_redis, close_redis
from loopwatch.core.sink import RedisStallSink
from loopwatch.core.state import StallState

log = logging.getLogger(__name__)


def log_stall(event: StallEvent) -> None:
    log.warning(
        "event loop stall detected: %.0fms (threshold %.0fms)",
        event.duration,
        event.threshold,
    )


def _report_interval_s() -> float:
    raw = os.getenv("LOOPWATCH_REPORT_INTERVAL_S", "30")
    try:
        v = float(raw)
    except ValueError:
        log.warning("invalid LOOPWATCH_REPORT_INTERVAL_S=%r, using 30", raw)
        return 30.0
    return v if v > 0 else 30.0


async def report_stats_loop(
    monitor: EventLoopMonitor,
    state: Optional[StallState] = None,
    health: Optional[RedisHealth] = None,
    interval_s: float = 30.0,
):
    while True:
        await asyncio.sleep(interval_s)
        stats = monitor.get_stats()
        if stats is None:
            continue

        log.info(
            "loop stats: stalls=%d max=%.1fms mean=%.1fms samples=%d",
            stats.stall_count, stats.max, stats.mean, stats.samples,
        )

        if state is None or health is None:
            continue
        if not await health.check(state.r):
            continue
        try:
            await state.record_stats(monitor.name, stats)
        except Exception as e:
            # keep it broad here to prevent loop death
            log.warning("stats persist error: %r", e)


async def main():
    config = MonitorConfig.from_env()
    bus = get_event_bus()
    bus.on(EventType.EVENT_LOOP_STALL, log_stall)

    monitor = EventLoopMonitor(config, bus=bus)
    if not config.enabled:
        log.warning("event loop monitor disabled (LOOPWATCH_ENABLED)")

    state: Optional[StallState] = None
    health: Optional[RedisHealth] = None
    sink: Optional[RedisStallSink] = None

    try:
        jobs = []
        if os.getenv("REDIS_URL"):
            r = await init_redis()
            health = RedisHealth()
            state = StallState(r, namespace=os.getenv("LOOPWATCH_NAMESPACE", "loopwatch"))
            sink = RedisStallSink(state, health=health)
            sink.attach(bus)
            jobs.append(sink.run())

        monitor.start()
        jobs.append(report_stats_loop(monitor, state, health, interval_s=_report_interval_s()))

        await asyncio.gather(*jobs)
    finally:
        monitor.stop()
        if sink is not None:
            sink.stop()
            sink.detach()
        await close_redis()


def run() -> None:
    setup_logging(
        os.getenv("LOOPWATCH_LOG_LEVEL", "INFO"),
        monitor_level=os.getenv("LOOPWATCH_MONITOR_LOG_LEVEL"),
    )
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
