from __future__ import annotations

import asyncio
import logging
from typing import Optional

from redis.exceptions import RedisError

from .control import RedisHealth
from .events import EventBus, EventType, StallEvent
from .state import StallState

log = logging.getLogger(__name__)


class RedisStallSink:
    """
    Forwards stall events from the bus to Redis.

    The bus listener runs inside the monitor tick, so it only enqueues;
    run() drains the queue in emission order and does the network I/O.
    While Redis is down events are dropped, not buffered.
    """

    def __init__(
        self,
        state: StallState,
        *,
        health: Optional[RedisHealth] = None,
        maxsize: int = 1000,
        cooldown_s: float = 5.0,
    ) -> None:
        self.state = state
        self.health = health if health is not None else RedisHealth()
        self.cooldown_s = cooldown_s
        self._queue: asyncio.Queue[StallEvent] = asyncio.Queue(maxsize=max(1, maxsize))
        self._bus: Optional[EventBus] = None
        self._stop = asyncio.Event()
        self.dropped = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def attach(self, bus: EventBus) -> None:
        self.detach()
        bus.on(EventType.EVENT_LOOP_STALL, self._on_stall)
        self._bus = bus

    def detach(self) -> None:
        if self._bus is not None:
            self._bus.off(EventType.EVENT_LOOP_STALL, self._on_stall)
            self._bus = None

    def _on_stall(self, event: StallEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            log.warning("stall sink queue full, dropped event (%d total)", self.dropped)

    def stop(self) -> None:
        self._stop.set()

    async def run(self) -> None:
        event: Optional[StallEvent] = None
        try:
            while not self._stop.is_set():
                try:
                    event = await asyncio.wait_for(self._queue.get(), timeout=0.5)
                except asyncio.TimeoutError:
                    continue
                await self.flush_one(event)
                event = None

            # stop() was called: send what was queued before it
            while not self._queue.empty():
                event = self._queue.get_nowait()
                await self.flush_one(event)
                event = None
        finally:
            # cancelled mid-way: whatever is still held is lost
            lost = self._queue.qsize() + (event is not None)
            if lost:
                while not self._queue.empty():
                    self._queue.get_nowait()
                self.dropped += lost
                log.warning("stall sink stopped with %d unsent events", lost)

    async def flush_one(self, event: StallEvent) -> bool:
        if not await self.health.check(self.state.r, cooldown_s=self.cooldown_s):
            self.dropped += 1
            return False
        try:
            await self.state.record_stall(event)
            return True
        except RedisError as e:
            log.warning("failed to persist stall event: %r", e)
            self.health.mark_down(cooldown_s=self.cooldown_s)
            self.dropped += 1
            return False
