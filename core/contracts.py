"""Contracts shared between the flush host and metrics backends.

A flush cycle hands a :class:`FlushSnapshot` to every backend. The Librato
backend turns it into an :class:`OutgoingPayload` made of counter, gauge and
timer records.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class FlushSnapshot:
    """Aggregated stats for one flush cycle.

    Attributes:
        counters: Counter name -> delta since the previous cycle
        timers: Timer name -> samples collected during the cycle
        gauges: Gauge name -> current value
    """

    counters: Mapping[str, float] = field(default_factory=dict)
    timers: Mapping[str, Sequence[float]] = field(default_factory=dict)
    gauges: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "counters", MappingProxyType(dict(self.counters)))
        object.__setattr__(
            self, "timers", MappingProxyType({k: tuple(v) for k, v in self.timers.items()})
        )
        object.__setattr__(self, "gauges", MappingProxyType(dict(self.gauges)))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FlushSnapshot:
        """Build a snapshot from the host's metrics mapping.

        Missing sections are treated as empty; other sections the host may
        carry (rates, thresholds) are ignored.
        """
        return cls(
            counters=dict(data.get("counters") or {}),
            timers={k: list(v) for k, v in (data.get("timers") or {}).items()},
            gauges=dict(data.get("gauges") or {}),
        )


@dataclass
class LedgerEntry:
    """Accumulated value of one monotonically increasing counter."""

    name: str
    value: float
    last_update: float


@dataclass(frozen=True)
class CounterRecord:
    name: str
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "value": self.value}


@dataclass(frozen=True)
class GaugeRecord:
    name: str
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "value": self.value}


@dataclass(frozen=True)
class TimerRecord:
    """Summary moments of one timer over one cycle.

    Published as a complex gauge; the receiving service derives mean and
    standard deviation from these values.
    """

    name: str
    count: int
    sum: float
    sum_of_squares: float
    min: float
    max: float

    def __post_init__(self) -> None:
        if self.count <= 0:
            raise ValueError(f"count must be > 0, got {self.count}")
        if self.min > self.max:
            raise ValueError(f"min must be <= max, got min={self.min} max={self.max}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "count": self.count,
            "sum": self.sum,
            "sum_squares": self.sum_of_squares,
            "min": self.min,
            "max": self.max,
        }


@dataclass(frozen=True)
class OutgoingPayload:
    """Body of one ``POST /v1/metrics`` request.

    Attributes:
        gauges: Plain gauges and timer summaries
        counters: Counter records
        measure_time: Cycle timestamp (seconds since epoch)
        source: Optional source tag applied to every measurement
    """

    gauges: tuple[GaugeRecord | TimerRecord, ...]
    counters: tuple[CounterRecord, ...]
    measure_time: int
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "gauges": [g.to_dict() for g in self.gauges],
            "counters": [c.to_dict() for c in self.counters],
            "measure_time": self.measure_time,
        }
        if self.source:
            data["source"] = self.source
        return data

    def to_json(self) -> bytes:
        """Serialize to compact UTF-8 JSON."""
        text = json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)
        return text.encode("utf-8")
