"""Tests for cross-cycle counter accumulation."""

from __future__ import annotations

from backends.librato.ledger import CounterLedger
from core.contracts import CounterRecord


class TestCounterLedger:
    def test_accumulates_consecutive_deltas(self) -> None:
        ledger = CounterLedger()

        published = []
        for cycle, delta in enumerate([3, 5, 0, 2], start=1):
            records = ledger.apply(cycle, {"hits": delta})
            published.append(records[0].value)

        assert published == [3, 8, 8, 10]

    def test_emits_one_record_per_delta_in_order(self) -> None:
        ledger = CounterLedger()

        records = ledger.apply(1, {"b": 1, "a": 2})

        assert records == [CounterRecord("b", 1), CounterRecord("a", 2)]

    def test_absent_counter_is_pruned(self) -> None:
        ledger = CounterLedger()
        ledger.apply(1, {"hits": 4, "misses": 1})

        ledger.apply(2, {"hits": 1})

        assert "misses" not in ledger
        assert "hits" in ledger
        assert len(ledger) == 1

    def test_reappearing_counter_starts_fresh(self) -> None:
        ledger = CounterLedger()
        ledger.apply(1, {"hits": 10})
        ledger.apply(2, {})

        records = ledger.apply(3, {"hits": 2})

        assert records == [CounterRecord("hits", 2)]

    def test_entry_tracks_last_update(self) -> None:
        ledger = CounterLedger()
        ledger.apply(100, {"hits": 1})
        ledger.apply(110, {"hits": 1})

        entry = ledger.get("hits")
        assert entry is not None
        assert entry.value == 2
        assert entry.last_update == 110

    def test_names_are_sanitized_but_ledger_keys_are_raw(self) -> None:
        ledger = CounterLedger()

        records = ledger.apply(1, {"bad name": 1})
        ledger.apply(2, {"bad name": 1})

        assert records[0].name == "bad_name"
        assert ledger.get("bad name") is not None
        assert ledger.get("bad name").value == 2  # type: ignore[union-attr]

    def test_legacy_mode_publishes_raw_deltas(self) -> None:
        ledger = CounterLedger(legacy=True)

        first = ledger.apply(1, {"hits": 3})
        second = ledger.apply(2, {"hits": 4})

        assert first == [CounterRecord("hits", 3)]
        assert second == [CounterRecord("hits", 4)]
        assert len(ledger) == 0
