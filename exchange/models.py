"""
Data models for the kline fetcher.
Uses Decimal for all price/volume values and integer Unix ms for time.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Sequence

from exchange.errors import DataIntegrityError, InputValidationError

MAX_PER_CALL_LIMIT = 1000   # Bybit hard cap per /v5/market/kline call
MINUTE_MS = 60_000


class Interval(Enum):
    M1 = "1"
    M3 = "3"
    M5 = "5"
    M15 = "15"
    M30 = "30"
    H1 = "60"
    H2 = "120"
    H4 = "240"
    H6 = "360"
    H12 = "720"
    DAY = "D"
    WEEK = "W"
    MONTH = "M"

    @classmethod
    def parse(cls, value: str) -> "Interval":
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            allowed = ", ".join(i.value for i in cls)
            raise InputValidationError(f"Unsupported interval '{value}'. Expected one of: {allowed}") from None

    @property
    def duration_ms(self) -> int:
        """
        Bar width in milliseconds.
        M is treated as 30 days, so month chunk boundaries are approximate.
        """
        if self is Interval.DAY:
            return 86_400_000
        if self is Interval.WEEK:
            return 604_800_000
        if self is Interval.MONTH:
            return 2_592_000_000
        return int(self.value) * MINUTE_MS


class Category(Enum):
    SPOT = "spot"
    LINEAR = "linear"
    INVERSE = "inverse"

    @classmethod
    def parse(cls, value: str) -> "Category":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InputValidationError(
                f"Unsupported category '{value}'. Expected one of: spot, linear, inverse"
            ) from None


def ms_to_datetime(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def datetime_to_ms(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


@dataclass
class Candle:
    """Standard OHLCV candle."""
    open_time: int          # Unix ms
    close_time: int         # open_time + interval width
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    turnover: Decimal
    trade_count: int = 0    # Not provided by Bybit klines

    @property
    def open_datetime(self) -> datetime:
        return ms_to_datetime(self.open_time)

    @property
    def close_datetime(self) -> datetime:
        return ms_to_datetime(self.close_time)


_ROW_FIELDS = ("open", "high", "low", "close", "volume", "turnover")


def parse_kline_row(row: Sequence[str], interval: Interval) -> Candle:
    """
    Convert one Bybit V5 kline row into a Candle.
    Row format: [startTime, open, high, low, close, volume, turnover]
    """
    if not isinstance(row, (list, tuple)) or len(row) < 7:
        raise DataIntegrityError(f"Invalid kline data format: {row!r}")

    try:
        open_time = int(row[0])
    except (TypeError, ValueError):
        raise DataIntegrityError(f"Invalid start time: {row[0]!r}") from None

    values = {}
    for name, raw in zip(_ROW_FIELDS, row[1:7]):
        try:
            value = Decimal(str(raw))
        except InvalidOperation:
            raise DataIntegrityError(f"Invalid {name}: {raw!r}") from None
        if not value.is_finite():
            raise DataIntegrityError(f"Invalid {name}: {raw!r}")
        values[name] = value

    return Candle(
        open_time=open_time,
        close_time=open_time + interval.duration_ms,
        **values,
    )


@dataclass(frozen=True)
class DateRange:
    """Closed-open interval [start_ms, end_ms) in Unix ms."""
    start_ms: int
    end_ms: int

    def __post_init__(self):
        if self.start_ms > self.end_ms:
            raise InputValidationError("Start date must be before end date")

    @property
    def is_empty(self) -> bool:
        return self.start_ms == self.end_ms

    @classmethod
    def from_dates(cls, start: str, end: str) -> "DateRange":
        """Build a range from two YYYY/MM/DD strings (UTC midnight)."""
        return cls(parse_date(start), parse_date(end))


def parse_date(value: str) -> int:
    """Parse YYYY/MM/DD as UTC midnight, returned in Unix ms."""
    try:
        date = datetime.strptime(value, "%Y/%m/%d")
    except (TypeError, ValueError) as e:
        raise InputValidationError(f"Invalid date format '{value}': {e}") from None
    return datetime_to_ms(date.replace(tzinfo=timezone.utc))


@dataclass(frozen=True)
class Chunk:
    """Closed-open sub-range of a DateRange bounded by a per-call record cap."""
    start_ms: int
    end_ms: int
    limit: int

    @property
    def end_inclusive_ms(self) -> int:
        # Bybit treats `end` as inclusive
        return self.end_ms - 1


@dataclass(frozen=True)
class FetchRequest:
    """Immutable fetch parameters shared by every chunk."""
    symbol: str
    interval: Interval
    category: Category
    limit: int = MAX_PER_CALL_LIMIT

    def __post_init__(self):
        symbol = (self.symbol or "").strip().upper()
        if not symbol:
            raise InputValidationError("Symbol must not be empty")
        object.__setattr__(self, "symbol", symbol)
        if not 1 <= self.limit <= MAX_PER_CALL_LIMIT:
            raise InputValidationError(
                f"Per-call limit must be between 1 and {MAX_PER_CALL_LIMIT}, got {self.limit}"
            )
