"""
Output writers for a completed fetch.
Only called once the whole series has been assembled.
"""

from __future__ import annotations
from typing import List, TextIO
from exchange.models import Candle, Category
from output.converter import TABLE_COLUMNS, to_market_event, to_table_row
import logging

logger = logging.getLogger(__name__)

_HEADER_FMT = "{:<20} {:<12} {:<12} {:<12} {:<12} {:<15} {:<15}"
_ROW_FMT = "{:<20} {:<12.4f} {:<12.4f} {:<12.4f} {:<12.4f} {:<15.4f} {:<15.4f}"


class TableWriter:
    """Fixed-width human-readable table."""

    def __init__(self, stream: TextIO):
        self.stream = stream

    def write(self, candles: List[Candle]):
        out = self.stream
        out.write(f"\nReceived {len(candles)} kline records:\n\n")
        out.write(_HEADER_FMT.format(*TABLE_COLUMNS) + "\n")
        out.write("-" * 110 + "\n")
        for candle in candles:
            out.write(_ROW_FMT.format(*to_table_row(candle).cells()) + "\n")
        out.write(f"\nTotal records: {len(candles)}\n")
        out.flush()


class BarterWriter:
    """One barter market event JSON object per line."""

    def __init__(self, stream: TextIO, category: Category, instrument: int):
        self.stream = stream
        self.category = category
        self.instrument = instrument

    def write(self, candles: List[Candle]):
        for candle in candles:
            event = to_market_event(candle, self.category, self.instrument)
            self.stream.write(event.to_json() + "\n")
        self.stream.flush()
        logger.debug(f"[OUTPUT] Wrote {len(candles)} barter events")
