"""
Series Assembler — Folds per-chunk kline batches into one ordered series.

Bybit returns each page newest-first. Batches are put in ascending order and
appended after the running tail; candles at or before the tail are boundary
duplicates from the overlapping chunk and are skipped.
"""

from __future__ import annotations
from typing import Iterable, List, Optional
from exchange.models import Candle
import logging

logger = logging.getLogger(__name__)


def merge_batch(tail_open_time: Optional[int], batch: Iterable[Candle]) -> List[Candle]:
    """
    Return the candles of `batch` that extend a series ending at
    `tail_open_time`, ascending and free of duplicate open times.
    """
    merged: List[Candle] = []
    tail = tail_open_time
    for candle in sorted(batch, key=lambda c: c.open_time):
        if tail is not None and candle.open_time <= tail:
            continue
        merged.append(candle)
        tail = candle.open_time
    return merged


class SeriesAssembler:
    """Owns the running series for one fetch."""

    def __init__(self, max_records: int):
        if max_records < 1:
            raise ValueError(f"max_records must be positive, got {max_records}")
        self.max_records = max_records
        self._series: List[Candle] = []

    def __len__(self) -> int:
        return min(len(self._series), self.max_records)

    @property
    def tail_open_time(self) -> Optional[int]:
        return self._series[-1].open_time if self._series else None

    @property
    def is_full(self) -> bool:
        return len(self._series) >= self.max_records

    def add(self, batch: Iterable[Candle]) -> int:
        """Merge one batch. Returns the number of new candles kept."""
        batch = list(batch)
        new = merge_batch(self.tail_open_time, batch)
        skipped = len(batch) - len(new)
        if skipped:
            logger.debug(f"[ASSEMBLE] Skipped {skipped} duplicate candle(s) at chunk boundary")
        self._series.extend(new)
        return len(new)

    def finish(self) -> List[Candle]:
        """Final series: ascending, unique, truncated to the earliest max_records."""
        series = self._series[:self.max_records]
        self._series = []
        return series
