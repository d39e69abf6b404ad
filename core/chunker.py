"""
Range Chunker — Splits a date range into API-sized sub-ranges.

Each chunk holds at most `record_cap` bar opens. Consecutive chunks overlap
by exactly one bar so the boundary candle is observed twice and removed by
the assembler instead of being lost.
"""

from __future__ import annotations
from typing import Iterator
from exchange.models import Chunk, DateRange, Interval
import logging

logger = logging.getLogger(__name__)


class RangeChunker:
    """Lazy, restartable sequence of Chunks covering a DateRange."""

    def __init__(self, date_range: DateRange, interval: Interval, record_cap: int):
        if record_cap < 1:
            raise ValueError(f"record_cap must be positive, got {record_cap}")
        self.date_range = date_range
        self.interval = interval
        self.record_cap = record_cap

    @property
    def span_ms(self) -> int:
        return self.record_cap * self.interval.duration_ms

    @property
    def step_ms(self) -> int:
        # A single-record cap leaves no room for an overlapping bar
        if self.record_cap == 1:
            return self.interval.duration_ms
        return (self.record_cap - 1) * self.interval.duration_ms

    def __iter__(self) -> Iterator[Chunk]:
        start = self.date_range.start_ms
        end = self.date_range.end_ms

        logger.debug(
            f"[CHUNK] Splitting [{start}, {end}) into spans of {self.record_cap} x {self.interval.value}"
        )
        while start < end:
            chunk_end = min(start + self.span_ms, end)
            yield Chunk(start_ms=start, end_ms=chunk_end, limit=self.record_cap)
            if chunk_end >= end:
                return
            start += self.step_ms

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def expected_bars(self) -> int:
        """Bars expected in the whole range (approximate for D/W/M)."""
        if self.date_range.is_empty:
            return 0
        width = self.interval.duration_ms
        length = self.date_range.end_ms - self.date_range.start_ms
        return -(-length // width)
