"""
Bybit Kline Fetcher — Main entry point.
Ties the components together: config, CLI, fetch, output, shutdown.
"""

from __future__ import annotations
import asyncio
import signal
import sys
from typing import Optional, TextIO
import logging

from cli import CliOptions, parse_args
from config import AppConfig
from core.fetcher import KlineFetcher
from core.rate_limiter import RateLimiter
from exchange.bybit_rest import BybitRestClient
from exchange.errors import FetchAbortedError, FetchCancelledError, InputValidationError
from exchange.models import FetchRequest, MAX_PER_CALL_LIMIT
from output.writer import BarterWriter, TableWriter

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FETCH_ABORTED = 1
EXIT_INVALID_INPUT = 2
EXIT_CANCELLED = 130


def setup_logging(level: str):
    # stdout is reserved for the requested output
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


class KlineApp:
    """Runs one fetch described by CliOptions and writes the result."""

    def __init__(self, config: AppConfig, options: CliOptions, stdout: TextIO = sys.stdout):
        self.config = config
        self.options = options
        self.stdout = stdout
        self.cancel_event = asyncio.Event()
        self.client = BybitRestClient(
            base_url=config.exchange.base_url,
            timeout_sec=config.exchange.request_timeout_sec,
        )

    @property
    def is_barter(self) -> bool:
        return self.options.output_format == "barter"

    def _log_banner(self):
        opts = self.options
        logger.info("Fetching Bybit Kline Data")
        logger.info(f"Symbol: {opts.symbol}")
        logger.info(f"Interval: {opts.interval.value}")
        logger.info(f"Category: {opts.category.value}")
        logger.info(f"Start Date: {opts.start_date}")
        logger.info(f"End Date: {opts.end_date}")
        logger.info(f"Max Records: {opts.max_records}")
        logger.info(f"Using: {'Testnet' if self.config.exchange.testnet else 'Mainnet'}")

    def _on_progress(self, records_fetched: int):
        level = logging.DEBUG if self.is_barter else logging.INFO
        logger.log(level, f"[FETCH] Total records so far: {records_fetched}")

    def request_cancel(self):
        logger.info("[SHUTDOWN] Cancel requested. Stopping after the current chunk...")
        self.cancel_event.set()

    async def run(self) -> int:
        opts = self.options
        if not self.is_barter:
            self._log_banner()

        try:
            request = FetchRequest(
                symbol=opts.symbol,
                interval=opts.interval,
                category=opts.category,
                limit=min(self.config.fetch.per_call_limit, MAX_PER_CALL_LIMIT),
            )
            rate_limiter = RateLimiter(self.config.fetch.request_spacing_sec)
        except ValueError as e:
            # InputValidationError is a ValueError
            logger.error(f"[CONFIG] {e}")
            await self.client.close()
            return EXIT_INVALID_INPUT

        fetcher = KlineFetcher(
            transport=self.client,
            config=self.config.fetch,
            rate_limiter=rate_limiter,
            progress=self._on_progress,
            cancel_event=self.cancel_event,
        )

        try:
            candles = await fetcher.fetch(request, opts.date_range, opts.max_records)
        except FetchCancelledError as e:
            logger.error(f"[SHUTDOWN] {e}. No output written.")
            return EXIT_CANCELLED
        except FetchAbortedError as e:
            logger.error(f"[FETCH] {e}. No output written.")
            return EXIT_FETCH_ABORTED
        finally:
            await self.client.close()

        if self.is_barter:
            BarterWriter(self.stdout, opts.category, opts.instrument_index).write(candles)
        else:
            TableWriter(self.stdout).write(candles)
        return EXIT_OK


async def async_main(argv: Optional[list] = None) -> int:
    try:
        config = AppConfig.from_env()
    except InputValidationError as e:
        setup_logging("INFO")
        logger.error(f"[CONFIG] {e}")
        return EXIT_INVALID_INPUT
    setup_logging(config.log_level)

    try:
        options = parse_args(argv)
    except InputValidationError as e:
        logger.error(f"[CLI] {e}")
        return EXIT_INVALID_INPUT

    if options.log_level:
        setup_logging(options.log_level)
    if options.testnet:
        config.exchange.testnet = True

    app = KlineApp(config, options)

    # Graceful shutdown handler
    if sys.platform != "win32":
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, app.request_cancel)

    return await app.run()


def run():
    """Console script entry point."""
    try:
        code = asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt received. No output written.")
        code = EXIT_CANCELLED
    sys.exit(code)


if __name__ == "__main__":
    run()
