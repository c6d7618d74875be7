from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from core.contracts import FlushSnapshot


@runtime_checkable
class Backend(Protocol):
    """Lifecycle contract between the flush host and a metrics backend.

    The host calls ``init`` once, then ``flush`` once per flush interval, and
    ``stats`` from its self-monitoring path. Flushes must not overlap.
    """

    name: str

    def init(self, startup_time: float, config: Mapping[str, Any]) -> bool:
        """Configure the backend.

        Args:
            startup_time: Host startup time (seconds since epoch)
            config: Full host configuration mapping

        Returns:
            False if the backend cannot run with this configuration. Must not
            raise for configuration problems.
        """
        ...

    def flush(self, timestamp: float, metrics: FlushSnapshot | Mapping[str, Any]) -> None:
        """Publish one cycle's stats without blocking the event loop."""
        ...

    def stats(self, emit: Callable[[str, Any], None]) -> None:
        """Report backend introspection values as ``emit(key, value)`` calls."""
        ...

    async def drain(self) -> None:
        """Wait until scheduled deliveries have settled."""
        ...

    async def close(self) -> None:
        """Cancel outstanding work and release resources."""
        ...
