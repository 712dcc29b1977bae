from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

log = logging.getLogger(__name__)


class EventType(Enum):
    """
    Kinds of events published on the bus. Listeners subscribe per kind.
    """
    EVENT_LOOP_STALL = "event_loop_stall"   # payload: StallEvent


@dataclass(frozen=True)
class StallEvent:
    duration: float       # drift in ms that crossed the threshold
    timestamp: float      # unix seconds when the stall was observed
    monitor: str = "event-loop"
    threshold: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


Listener = Callable[[Any], None]


class EventBus:
    """
    Synchronous publish/subscribe keyed by EventType.

    emit() delivers to listeners in registration order, so emission order
    per kind is preserved. A failing listener is logged and skipped; the
    remaining listeners still receive the payload.
    """

    def __init__(self) -> None:
        self._listeners: Dict[EventType, List[Listener]] = {}

    def on(self, kind: EventType, listener: Listener) -> Listener:
        self._listeners.setdefault(kind, []).append(listener)
        return listener

    def off(self, kind: EventType, listener: Listener) -> None:
        ls = self._listeners.get(kind)
        if ls and listener in ls:
            ls.remove(listener)

    def emit(self, kind: EventType, payload: Any) -> int:
        delivered = 0
        # copy: listeners may unsubscribe while being called
        for listener in list(self._listeners.get(kind, ())):
            try:
                listener(payload)
                delivered += 1
            except Exception as e:
                log.warning("listener %r failed for %s: %r", listener, kind.value, e)
        return delivered

    def clear(self, kind: Optional[EventType] = None) -> None:
        if kind is None:
            self._listeners.clear()
        else:
            self._listeners.pop(kind, None)

    def listener_count(self, kind: EventType) -> int:
        return len(self._listeners.get(kind, ()))


_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    global _bus
    if _bus is None:
        _bus = EventBus()
    return _bus


def reset_event_bus() -> None:
    global _bus
    if _bus is not None:
        _bus.clear()
        _bus = None
