"""Pytest configuration and shared fixtures."""

from __future__ import annotations
from decimal import Decimal
from typing import Callable, Dict, List, Optional

import pytest

from config import FetchConfig
from exchange.models import Candle, Category, DateRange, FetchRequest, Interval


def make_row(open_time: int, base: str = "42000") -> List[str]:
    """Bybit V5 kline row: [startTime, open, high, low, close, volume, turnover]."""
    price = Decimal(base) + Decimal(open_time % 1_000_000) / Decimal(1000)
    return [
        str(open_time),
        str(price),
        str(price + Decimal("10.5")),
        str(price - Decimal("9.25")),
        str(price + Decimal("1.125")),
        "12.345",
        "518490.1",
    ]


def make_candle(open_time: int, interval: Interval = Interval.M15) -> Candle:
    return Candle(
        open_time=open_time,
        close_time=open_time + interval.duration_ms,
        open=Decimal("100"),
        high=Decimal("110"),
        low=Decimal("90"),
        close=Decimal("105"),
        volume=Decimal("1.5"),
        turnover=Decimal("157.5"),
    )


class FakeKlineTransport:
    """
    In-memory exchange: every interval-aligned bar exists.
    Answers like /v5/market/kline: inclusive bounds, newest first, newest `limit` kept.
    """

    def __init__(self, interval: Interval = Interval.M15):
        self.interval = interval
        self.calls: List[Dict] = []
        # call index (0-based) -> callable raising an error for that call
        self.failures: Dict[int, Callable[[], None]] = {}
        self.overrides: Dict[int, List[List[str]]] = {}
        self.on_call: Optional[Callable[[int], None]] = None

    async def get_klines(self, symbol, interval, category, start_ms, end_ms, limit):
        index = len(self.calls)
        self.calls.append(dict(
            symbol=symbol, interval=interval, category=category,
            start_ms=start_ms, end_ms=end_ms, limit=limit,
        ))
        if self.on_call is not None:
            self.on_call(index)
        if index in self.failures:
            self.failures[index]()
        if index in self.overrides:
            return self.overrides[index]

        width = self.interval.duration_ms
        first = -(-start_ms // width) * width
        opens = list(range(first, end_ms + 1, width))
        opens = opens[-limit:]
        return [make_row(t) for t in reversed(opens)]


@pytest.fixture
def fetch_config() -> FetchConfig:
    return FetchConfig(per_call_limit=100, request_spacing_ms=0, max_retries=3)


@pytest.fixture
def transport() -> FakeKlineTransport:
    return FakeKlineTransport()


@pytest.fixture
def btc_request() -> FetchRequest:
    return FetchRequest(symbol="BTCUSDT", interval=Interval.M15, category=Category.LINEAR, limit=100)


@pytest.fixture
def one_day() -> DateRange:
    return DateRange.from_dates("2024/01/01", "2024/01/02")


@pytest.fixture
def eight_days() -> DateRange:
    return DateRange.from_dates("2024/01/01", "2024/01/09")


class ClosableFakeTransport(FakeKlineTransport):
    closed = False

    async def close(self):
        self.closed = True
