from __future__ import annotations

import logging
from contextvars import ContextVar

# set by the monitor task; unset (None) everywhere else
current_monitor: ContextVar[str | None] = ContextVar("monitor", default=None)

LOG_FORMAT = "%(asctime)s [%(levelname)s] [monitor=%(monitor)s]: %(message)s"
LOOPWATCH_LOGGER = "loopwatch"

class MonitorLogFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.monitor = current_monitor.get() or "-"
        return True

def _level(value: int | str | None, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, int):
        return value
    resolved = logging.getLevelName(str(value).strip().upper())
    # getLevelName maps unknown names to "Level X" strings
    return resolved if isinstance(resolved, int) else default

def setup_logging(
    level: int | str = logging.INFO,
    *,
    monitor_level: int | str | None = None,
) -> None:
    """
    Root handler with the monitor name on every line.

    monitor_level tunes the loopwatch loggers alone, e.g. DEBUG to see every
    tick's lag without turning up the host application's logging.
    """
    root = logging.getLogger()
    root.setLevel(_level(level, logging.INFO))

    if not root.handlers:
        h = logging.StreamHandler()
        # defaults= covers records that reach the handler unfiltered
        h.setFormatter(logging.Formatter(LOG_FORMAT, defaults={"monitor": "-"}))
        root.addHandler(h)

    for h in root.handlers:
        if not any(isinstance(f, MonitorLogFilter) for f in h.filters):
            h.addFilter(MonitorLogFilter())

    if monitor_level is not None:
        logging.getLogger(LOOPWATCH_LOGGER).setLevel(_level(monitor_level, logging.NOTSET))
