"""Librato Metrics backend."""

from backends.librato.backend import LibratoBackend
from backends.librato.delivery import DEFAULT_ENDPOINT, DeliveryClient, DeliveryConfig
from backends.librato.ledger import CounterLedger
from backends.librato.naming import sanitize_name
from backends.librato.timers import reduce_timer

__all__ = [
    "DEFAULT_ENDPOINT",
    "CounterLedger",
    "DeliveryClient",
    "DeliveryConfig",
    "LibratoBackend",
    "reduce_timer",
    "sanitize_name",
]
