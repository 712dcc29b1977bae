from __future__ import annotations

import os
import math
import logging
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

log = logging.getLogger(__name__)

DEFAULT_STALL_THRESHOLD_MS = 50.0
DEFAULT_SAMPLE_INTERVAL_MS = 1000.0
DEFAULT_NAME = "event-loop"

# camelCase spellings are accepted too
_ALIASES = {
    "stallThreshold": "stall_threshold_ms",
    "sampleInterval": "sample_interval_ms",
    "stall_threshold": "stall_threshold_ms",
    "sample_interval": "sample_interval_ms",
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _positive(value: Any, default: float, field_name: str) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        log.warning("invalid %s=%r, using default %s", field_name, value, default)
        return default
    if not v > 0 or not math.isfinite(v):  # NaN fails both
        log.warning("out of range %s=%r, using default %s", field_name, value, default)
        return default
    return v


def _flag(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    log.warning("invalid enabled=%r, using default %s", value, default)
    return default


@dataclass(frozen=True)
class MonitorConfig:
    """
    Settings for an EventLoopMonitor. All durations are milliseconds.

    Anomalies never fail construction: a non-positive or non-numeric
    threshold/interval falls back to its default.
    """
    enabled: bool = True
    stall_threshold_ms: float = DEFAULT_STALL_THRESHOLD_MS
    sample_interval_ms: float = DEFAULT_SAMPLE_INTERVAL_MS
    name: str = DEFAULT_NAME

    def __post_init__(self) -> None:
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "enabled", _flag(self.enabled, True))
        object.__setattr__(
            self, "stall_threshold_ms",
            _positive(self.stall_threshold_ms, DEFAULT_STALL_THRESHOLD_MS, "stall_threshold_ms"),
        )
        object.__setattr__(
            self, "sample_interval_ms",
            _positive(self.sample_interval_ms, DEFAULT_SAMPLE_INTERVAL_MS, "sample_interval_ms"),
        )
        object.__setattr__(self, "name", str(self.name or DEFAULT_NAME))

    @property
    def interval_s(self) -> float:
        return self.sample_interval_ms / 1000.0

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "MonitorConfig":
        """
        Loose construction from parsed settings. Missing keys use defaults,
        unknown keys are ignored.
        """
        if not data:
            return cls()

        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                log.debug("ignoring unknown monitor setting %r", key)
                continue
            if value is None:
                continue
            kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def from_env(cls, prefix: str = "LOOPWATCH_") -> "MonitorConfig":
        data: dict[str, Any] = {}
        for name in ("enabled", "stall_threshold_ms", "sample_interval_ms", "name"):
            raw = os.getenv(prefix + name.upper())
            if raw is not None and raw.strip() != "":
                data[name] = raw.strip()
        return cls.from_mapping(data)
