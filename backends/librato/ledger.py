"""Cross-cycle accumulation of statsd counters.

Statsd resets counters on every flush, while the metrics API expects
monotonically increasing counter values. The ledger keeps a running total per
counter name and forgets a counter as soon as a cycle completes without it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from backends.librato.naming import sanitize_name
from core.contracts import CounterRecord, LedgerEntry

logger = logging.getLogger(__name__)


class CounterLedger:
    """Running totals for counters, keyed by raw counter name.

    In legacy mode the ledger is bypassed and every delta is published as-is.
    """

    def __init__(self, *, legacy: bool = False) -> None:
        self.legacy = legacy
        self._entries: dict[str, LedgerEntry] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, name: str) -> LedgerEntry | None:
        return self._entries.get(name)

    def apply(self, cycle_id: float, deltas: Mapping[str, float]) -> list[CounterRecord]:
        """Fold one cycle's deltas into the ledger.

        Args:
            cycle_id: Identifier unique to the cycle
            deltas: Counter name -> delta observed during the cycle

        Returns:
            One record per counter in ``deltas``, in input order
        """
        if self.legacy:
            return [CounterRecord(sanitize_name(name), delta) for name, delta in deltas.items()]

        records: list[CounterRecord] = []
        for name, delta in deltas.items():
            entry = self._entries.get(name)
            if entry is None:
                entry = LedgerEntry(name=name, value=delta, last_update=cycle_id)
                self._entries[name] = entry
            else:
                entry.value += delta
                entry.last_update = cycle_id
            records.append(CounterRecord(sanitize_name(name), entry.value))

        self._prune(cycle_id)
        return records

    def _prune(self, cycle_id: float) -> None:
        stale = [name for name, entry in self._entries.items() if entry.last_update != cycle_id]
        for name in stale:
            del self._entries[name]
        if stale:
            logger.debug(
                "librato.ledger.pruned",
                extra={"count": len(stale), "remaining": len(self._entries)},
            )
