from __future__ import annotations

import json

import pytest

from backends.librato.timers import reduce_timer


def test_empty_samples_produce_no_record() -> None:
    assert reduce_timer("latency", []) is None


def test_summary_moments() -> None:
    record = reduce_timer("latency", [1, 2, 3, 4])

    assert record is not None
    assert record.name == "latency"
    assert record.count == 4
    assert record.sum == 10
    assert record.sum_of_squares == 30
    assert record.min == 1
    assert record.max == 4


def test_unordered_samples() -> None:
    record = reduce_timer("latency", [7.5, -2.0, 3.0])

    assert record is not None
    assert record.min == -2.0
    assert record.max == 7.5
    assert record.sum == pytest.approx(8.5)
    assert record.sum_of_squares == pytest.approx(56.25 + 4.0 + 9.0)


def test_single_sample() -> None:
    record = reduce_timer("latency", [42])

    assert record is not None
    assert (record.count, record.min, record.max) == (1, 42, 42)


def test_name_is_sanitized() -> None:
    record = reduce_timer("db query#time", [1])

    assert record is not None
    assert record.name == "db_query#time"


def test_wire_form_uses_sum_squares_key() -> None:
    record = reduce_timer("latency", [1, 2, 3, 4])

    assert record is not None
    assert record.to_dict() == {
        "name": "latency",
        "count": 4,
        "sum": 10,
        "sum_squares": 30,
        "min": 1,
        "max": 4,
    }


def test_integer_samples_stay_integral() -> None:
    record = reduce_timer("latency", [1, 2, 3, 4])

    assert record is not None
    assert isinstance(record.sum, int)
    assert isinstance(record.sum_of_squares, int)
    assert b'"sum":10,' in json.dumps(record.to_dict(), separators=(",", ":")).encode()
