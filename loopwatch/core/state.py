from __future__ import annotations

import json
import time
from typing import List

from .events import StallEvent
from .stats import StallStats


class StallState:
    """
    Stores stall events + rolling stats per monitor in Redis.

    Keys:
      - {ns}:loop_stall:{monitor} (HASH)
        fields: last_stall_ms, last_stall_at, threshold_ms, stall_count,
                samples, mean_ms, max_ms, run_stall_count, updated_at
      - {ns}:loop_stall_events:{monitor} (LIST, newest first, capped)
    """

    def __init__(self, r, *, namespace: str = "loopwatch", history: int = 100) -> None:
        self.r = r
        self.ns = namespace
        self.history = max(1, int(history))

    def key(self, monitor: str) -> str:
        return f"{self.ns}:loop_stall:{monitor}"

    def events_key(self, monitor: str) -> str:
        return f"{self.ns}:loop_stall_events:{monitor}"

    async def record_stall(self, event: StallEvent) -> None:
        now = int(time.time())
        k = self.key(event.monitor)
        ek = self.events_key(event.monitor)

        pipe = self.r.pipeline(transaction=False)
        pipe.hset(k, mapping={
            "last_stall_ms": round(event.duration, 3),
            "last_stall_at": event.timestamp,
            "threshold_ms": event.threshold,
            "updated_at": now,
        })
        # stall_count is lifetime (survives monitor restarts), unlike run_stall_count
        pipe.hincrby(k, "stall_count", 1)
        pipe.lpush(ek, json.dumps(event.to_dict(), separators=(",", ":")))
        pipe.ltrim(ek, 0, self.history - 1)
        await pipe.execute()

    async def record_stats(self, monitor: str, stats: StallStats) -> None:
        await self.r.hset(self.key(monitor), mapping={
            "samples": stats.samples,
            "mean_ms": round(stats.mean, 3),
            "max_ms": round(stats.max, 3),
            "run_stall_count": stats.stall_count,
            "updated_at": int(time.time()),
        })

    async def recent(self, monitor: str, n: int = 20) -> List[StallEvent]:
        raw = await self.r.lrange(self.events_key(monitor), 0, max(0, n - 1))
        events: List[StallEvent] = []
        for item in raw:
            try:
                events.append(StallEvent(**json.loads(item)))
            except (TypeError, ValueError):
                # foreign / corrupt entry
                continue
        return events
