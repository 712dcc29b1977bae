from __future__ import annotations

import time
import logging
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, Optional

from .config import MonitorConfig
from .events import EventBus, EventType, StallEvent

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class StallStats:
    stall_count: int
    max: float       # ms, largest drift seen (stall or not)
    mean: float      # ms, running mean of all drifts
    samples: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class StallRecorder:
    """
    Rolling aggregate of observed drifts plus stall emission.

    Memory is constant: only count, max and the running mean are kept.
    Every drift feeds the aggregate; only drifts >= threshold are published.
    """

    def __init__(
        self,
        config: MonitorConfig,
        bus: EventBus,
        *,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.bus = bus
        self.wall_clock = wall_clock
        self.reset()

    def reset(self) -> None:
        self.stall_count = 0
        self.max = 0.0
        self.mean = 0.0
        self.sample_count = 0

    def record(self, drift: float, now: Optional[float] = None) -> Optional[StallEvent]:
        self.sample_count += 1
        self.mean += (drift - self.mean) / self.sample_count
        if drift > self.max:
            self.max = drift

        if drift < self.config.stall_threshold_ms:
            return None

        self.stall_count += 1
        event = StallEvent(
            duration=drift,
            timestamp=self.wall_clock() if now is None else now,
            monitor=self.config.name,
            threshold=self.config.stall_threshold_ms,
        )
        self._emit(event)
        return event

    def _emit(self, event: StallEvent) -> None:
        # fire-and-forget: a broken bus must not affect stats or later ticks
        try:
            self.bus.emit(EventType.EVENT_LOOP_STALL, event)
        except Exception as e:
            log.warning("stall event emission failed: %r", e)

    def snapshot(self) -> Optional[StallStats]:
        if self.sample_count == 0:
            return None
        return StallStats(
            stall_count=self.stall_count,
            max=self.max,
            mean=self.mean,
            samples=self.sample_count,
        )
