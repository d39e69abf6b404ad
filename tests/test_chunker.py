"""Tests for RangeChunker coverage and overlap guarantees."""

import pytest

from core.chunker import RangeChunker
from exchange.models import DateRange, Interval

DAY_MS = 86_400_000
START = 1_704_067_200_000  # 2024-01-01T00:00Z


def _bars(chunk, interval):
    width = interval.duration_ms
    return -(-(chunk.end_ms - chunk.start_ms) // width)


@pytest.mark.parametrize(
    "interval, days, cap",
    [
        (Interval.M15, 1, 100),
        (Interval.M15, 8, 100),
        (Interval.M1, 3, 1000),
        (Interval.H1, 30, 50),
        (Interval.M5, 2, 2),
        (Interval.DAY, 400, 30),
        (Interval.WEEK, 700, 10),
        (Interval.MONTH, 3000, 12),
    ],
)
def test_chunks_tile_range_with_one_bar_overlap(interval, days, cap):
    date_range = DateRange(START, START + days * DAY_MS)
    chunks = list(RangeChunker(date_range, interval, cap))
    width = interval.duration_ms

    assert chunks[0].start_ms == date_range.start_ms
    assert chunks[-1].end_ms == date_range.end_ms
    for chunk in chunks:
        assert chunk.start_ms < chunk.end_ms
        assert chunk.limit == cap
        assert _bars(chunk, interval) <= cap

    for prev, nxt in zip(chunks, chunks[1:]):
        assert nxt.start_ms > prev.start_ms
        # last bar of prev is the first bar of next
        assert prev.end_ms - width == nxt.start_ms


def test_single_chunk_for_one_day_of_15m(one_day):
    chunks = list(RangeChunker(one_day, Interval.M15, 100))

    assert len(chunks) == 1
    assert chunks[0].start_ms == one_day.start_ms
    assert chunks[0].end_ms == one_day.end_ms


def test_eight_days_needs_multiple_chunks(eight_days):
    chunker = RangeChunker(eight_days, Interval.M15, 100)

    assert len(chunker) == 8
    assert chunker.expected_bars() == 768


def test_empty_range_yields_nothing():
    chunker = RangeChunker(DateRange(START, START), Interval.M15, 100)

    assert list(chunker) == []
    assert chunker.expected_bars() == 0


def test_iteration_is_restartable(eight_days):
    chunker = RangeChunker(eight_days, Interval.M15, 100)

    assert list(chunker) == list(chunker)


def test_cap_of_one_steps_without_overlap():
    date_range = DateRange(START, START + 4 * Interval.H1.duration_ms)
    chunks = list(RangeChunker(date_range, Interval.H1, 1))

    assert len(chunks) == 4
    for prev, nxt in zip(chunks, chunks[1:]):
        assert prev.end_ms == nxt.start_ms


def test_chunks_are_generated_lazily(eight_days):
    iterator = iter(RangeChunker(eight_days, Interval.M15, 100))

    first = next(iterator)
    assert first.start_ms == eight_days.start_ms


def test_rejects_non_positive_cap(one_day):
    with pytest.raises(ValueError):
        RangeChunker(one_day, Interval.M15, 0)
