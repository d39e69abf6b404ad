"""
Command-line surface.
Parses and validates flags into an immutable CliOptions.
"""

from __future__ import annotations
import argparse
from dataclasses import dataclass
from typing import List, Optional

from exchange.errors import InputValidationError
from exchange.models import Category, DateRange, Interval

OUTPUT_FORMATS = ("table", "barter")


@dataclass(frozen=True)
class CliOptions:
    symbol: str
    interval: Interval
    category: Category
    date_range: DateRange
    start_date: str
    end_date: str
    max_records: int
    output_format: str
    instrument_index: Optional[int]
    testnet: bool
    log_level: Optional[str]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bybit-kline",
        description="Fetch historical Bybit klines over a date range with automatic pagination.",
    )
    parser.add_argument("-s", "--symbol", default="BTCUSDT", help="Symbol to fetch (e.g., BTCUSDT)")
    parser.add_argument(
        "-i", "--interval", default="15",
        help="Kline interval: 1, 3, 5, 15, 30, 60, 120, 240, 360, 720, D, W, M",
    )
    parser.add_argument("-c", "--category", default="linear", help="Category: spot, linear, inverse")
    parser.add_argument("--start-date", required=True, help="Start date in YYYY/MM/DD format")
    parser.add_argument("--end-date", required=True, help="End date in YYYY/MM/DD format (exclusive)")
    parser.add_argument(
        "-m", "--max-records", type=int, default=1000,
        help="Maximum number of records to fetch (pagination is automatic)",
    )
    parser.add_argument(
        "--output-format", default="table", choices=OUTPUT_FORMATS,
        help="'table' or 'barter' (JSON lines for barter backtesting)",
    )
    parser.add_argument("--instrument-index", type=int, default=None, help="Instrument index, required for barter")
    parser.add_argument("--testnet", action="store_true", help="Use testnet instead of mainnet")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL (DEBUG, INFO, WARNING...)")
    return parser


def parse_args(argv: Optional[List[str]] = None) -> CliOptions:
    """
    Parse argv into CliOptions.
    argparse problems exit with status 2; semantic problems raise InputValidationError.
    """
    args = build_parser().parse_args(argv)

    interval = Interval.parse(args.interval)
    category = Category.parse(args.category)
    date_range = DateRange.from_dates(args.start_date, args.end_date)
    if date_range.is_empty:
        raise InputValidationError("Start date must be before end date")

    if args.max_records < 1:
        raise InputValidationError(f"--max-records must be positive, got {args.max_records}")

    symbol = args.symbol.strip().upper()
    if not symbol:
        raise InputValidationError("--symbol must not be empty")

    if args.output_format == "barter":
        if args.instrument_index is None:
            raise InputValidationError("--instrument-index is required for barter output")
        if args.instrument_index < 0:
            raise InputValidationError(f"--instrument-index must be >= 0, got {args.instrument_index}")

    return CliOptions(
        symbol=symbol,
        interval=interval,
        category=category,
        date_range=date_range,
        start_date=args.start_date,
        end_date=args.end_date,
        max_records=args.max_records,
        output_format=args.output_format,
        instrument_index=args.instrument_index,
        testnet=args.testnet,
        log_level=args.log_level,
    )
