"""Librato Metrics flush backend.

Converts each flush snapshot into a Librato ``/v1/metrics`` payload:

- counters are published as monotonically increasing counters (or, in legacy
  mode, as gauges carrying the cycle delta);
- timers are published as complex gauges (count, sum, sum of squares, min,
  max);
- gauges are published as-is;
- ``numStats`` reports how many stats were published in the cycle.

Flushes must be serialized by the host: the counter ledger is updated
synchronously inside :meth:`LibratoBackend.flush`, before delivery is
scheduled, so overlapping retries never touch it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from contextlib import suppress
from typing import Any

import httpx
from pydantic import ValidationError

from backends.librato.delivery import DeliveryClient, DeliveryConfig, build_delivery_config
from backends.librato.errors import ConfigurationError
from backends.librato.ledger import CounterLedger
from backends.librato.naming import sanitize_name
from backends.librato.payload import encode_payload
from backends.librato.timers import reduce_timer
from core.config import HostCfg
from core.contracts import FlushSnapshot, GaugeRecord, OutgoingPayload, TimerRecord

logger = logging.getLogger(__name__)

NUM_STATS = "numStats"


class LibratoBackend:
    """Backend instance holding its own ledger, credentials and stats."""

    name = "librato"

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        sleep_fn: Callable[[float], Any] | None = None,
        clock: Callable[[], float] = time.time,
        delivery_logger: Any | None = None,
    ) -> None:
        """Initialize an unconfigured backend.

        Args:
            http_client: HTTP client to post with (one is created if None)
            sleep_fn: Awaitable sleep used for the retry delay
            clock: Wall clock used to stamp successful deliveries
            delivery_logger: structlog-style logger for the delivery path
        """
        self._http_client = http_client
        self._sleep_fn = sleep_fn
        self._clock = clock
        self._delivery_logger = delivery_logger

        self.config: DeliveryConfig | None = None
        self.ledger = CounterLedger()
        self._delivery: DeliveryClient | None = None
        self._stats: dict[str, int] = {}
        self._pending: set[asyncio.Task[bool]] = set()
        self._cycle = 0

    def init(self, startup_time: float, config: Mapping[str, Any] | HostCfg) -> bool:
        """Configure the backend from the host config.

        Returns:
            False if the configuration is unusable; the host must not register
            the backend in that case
        """
        try:
            host_cfg = config if isinstance(config, HostCfg) else HostCfg.model_validate(config)
            delivery_config = build_delivery_config(host_cfg)
            delivery = DeliveryClient(
                delivery_config,
                client=self._http_client,
                sleep_fn=self._sleep_fn,
                logger=self._delivery_logger,
            )
        except (ConfigurationError, ValidationError) as exc:
            logger.error("librato.init_failed", extra={"error": str(exc)})
            return False

        self.config = delivery_config
        self.ledger = CounterLedger(legacy=delivery_config.legacy_counters)
        self._cycle = 0
        self._delivery = delivery
        logger.info(
            "librato.init",
            extra={
                "startup_time": startup_time,
                "endpoint": delivery.target.url,
                "legacy_counters": delivery_config.legacy_counters,
                "source": delivery_config.source,
            },
        )
        return True

    def build_payload(
        self, timestamp: float, metrics: FlushSnapshot | Mapping[str, Any]
    ) -> OutgoingPayload:
        """Run one cycle through the ledger and build its payload."""
        if self.config is None:
            raise RuntimeError("backend is not initialized")
        snapshot = (
            metrics if isinstance(metrics, FlushSnapshot) else FlushSnapshot.from_dict(metrics)
        )

        gauges: list[GaugeRecord | TimerRecord] = []
        for key, samples in snapshot.timers.items():
            record = reduce_timer(key, samples)
            if record is not None:
                gauges.append(record)
        for key, value in snapshot.gauges.items():
            gauges.append(GaugeRecord(sanitize_name(key), value))

        counter_deltas = dict(snapshot.counters)
        num_stats = len(gauges) + len(counter_deltas)
        counter_deltas[NUM_STATS] = num_stats

        # Flush timestamps can repeat; the ledger needs a distinct id per cycle.
        self._cycle += 1
        counters = self.ledger.apply(self._cycle, counter_deltas)
        if self.ledger.legacy:
            legacy = [GaugeRecord(c.name, c.value) for c in counters]
            return encode_payload(timestamp, legacy + gauges, [], self.config.source)
        return encode_payload(timestamp, gauges, counters, self.config.source)

    def flush(self, timestamp: float, metrics: FlushSnapshot | Mapping[str, Any]) -> None:
        """Publish one flush cycle.

        Must be called from within the running event loop. Returns as soon as
        delivery is scheduled.
        """
        if self._delivery is None:
            logger.warning("librato.flush_uninitialized", extra={"timestamp": timestamp})
            return

        payload = self.build_payload(timestamp, metrics)
        task = asyncio.get_running_loop().create_task(self._deliver(payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        task.add_done_callback(self._log_task_failure)

    def _log_task_failure(self, task: asyncio.Task[bool]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "librato.delivery_crashed",
                extra={"error": f"{type(exc).__name__}: {exc}"},
                exc_info=exc,
            )

    async def _deliver(self, payload: OutgoingPayload) -> bool:
        assert self._delivery is not None
        delivered = await self._delivery.deliver(payload)
        if delivered:
            self._stats["last_flush"] = round(self._clock())
        return delivered

    def stats(self, emit: Callable[[str, Any], None]) -> None:
        for key, value in self._stats.items():
            emit(key, value)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every scheduled delivery, retries included."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        """Cancel outstanding deliveries and release the HTTP client."""
        tasks = list(self._pending)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        if tasks:
            logger.info("librato.deliveries_cancelled", extra={"count": len(tasks)})
        if self._delivery is not None:
            await self._delivery.aclose()
