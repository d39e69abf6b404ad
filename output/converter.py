"""
Record Converter — Maps assembled candles to table rows or barter events.

The barter envelope is consumed by a downstream backtester, so its field
names and nesting must stay exactly as emitted here.
"""

from __future__ import annotations
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple
from exchange.models import Candle, Category

EXCHANGE_NAMES: Dict[Category, str] = {
    Category.SPOT: "bybit_spot",
    Category.LINEAR: "bybit_perpetuals_usd",
    Category.INVERSE: "bybit_perpetuals_usd",
}

TABLE_COLUMNS = ("Time", "Open", "High", "Low", "Close", "Volume", "Turnover")


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal and datetime types."""
    def default(self, o):
        if isinstance(o, Decimal):
            return float(o)
        if isinstance(o, datetime):
            return to_rfc3339(o)
        return super().default(o)


def to_rfc3339(dt: datetime) -> str:
    """UTC RFC 3339 with a `Z` suffix; fractional seconds only when present."""
    dt = dt.astimezone(timezone.utc)
    timespec = "microseconds" if dt.microsecond else "seconds"
    return dt.replace(tzinfo=None).isoformat(timespec=timespec) + "Z"


@dataclass(frozen=True)
class TableRow:
    time: str
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    turnover: Decimal

    def cells(self) -> Tuple[Any, ...]:
        return (self.time, self.open, self.high, self.low, self.close, self.volume, self.turnover)


def to_table_row(candle: Candle) -> TableRow:
    return TableRow(
        time=candle.open_datetime.strftime("%Y-%m-%d %H:%M:%S UTC"),
        open=candle.open,
        high=candle.high,
        low=candle.low,
        close=candle.close,
        volume=candle.volume,
        turnover=candle.turnover,
    )


@dataclass(frozen=True)
class BarterCandle:
    close_time: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    trade_count: int = 0


@dataclass(frozen=True)
class MarketEvent:
    """One barter market stream event wrapping a candle."""
    time_exchange: datetime
    time_received: datetime
    exchange: str
    instrument: int
    candle: BarterCandle

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Item": {
                "Ok": {
                    "time_exchange": self.time_exchange,
                    "time_received": self.time_received,
                    "exchange": self.exchange,
                    "instrument": self.instrument,
                    "kind": {
                        "Candle": {
                            "close_time": self.candle.close_time,
                            "open": self.candle.open,
                            "high": self.candle.high,
                            "low": self.candle.low,
                            "close": self.candle.close,
                            "volume": self.candle.volume,
                            "trade_count": self.candle.trade_count,
                        }
                    },
                }
            }
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), cls=DecimalEncoder, separators=(",", ":"))


def to_market_event(
    candle: Candle,
    category: Category,
    instrument: int,
    received_at: Optional[datetime] = None,
) -> MarketEvent:
    """Wrap a candle in the barter envelope. `received_at` defaults to now (UTC)."""
    return MarketEvent(
        time_exchange=candle.open_datetime,
        time_received=received_at or datetime.now(timezone.utc),
        exchange=EXCHANGE_NAMES[category],
        instrument=instrument,
        candle=BarterCandle(
            close_time=candle.close_datetime,
            open=candle.open,
            high=candle.high,
            low=candle.low,
            close=candle.close,
            volume=candle.volume,
            trade_count=candle.trade_count,
        ),
    )
