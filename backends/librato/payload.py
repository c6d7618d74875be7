from __future__ import annotations

from collections.abc import Iterable

from core.contracts import CounterRecord, GaugeRecord, OutgoingPayload, TimerRecord


def encode_payload(
    measure_time: float,
    gauges: Iterable[GaugeRecord | TimerRecord],
    counters: Iterable[CounterRecord],
    source: str | None = None,
) -> OutgoingPayload:
    """Assemble the request body for one flush cycle."""
    return OutgoingPayload(
        gauges=tuple(gauges),
        counters=tuple(counters),
        measure_time=int(measure_time),
        source=source or None,
    )
