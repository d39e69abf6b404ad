"""
Kline Fetcher — Paginated fetch-and-assemble orchestrator.

Drives the RangeChunker chunk by chunk, paces requests through the
RateLimiter, retries transient transport failures and folds every page into
a SeriesAssembler. Any unrecoverable failure aborts the whole fetch; partial
series are never returned.
"""

from __future__ import annotations
import asyncio
from typing import Callable, List, Optional, Protocol, TYPE_CHECKING
import logging

from core.assembler import SeriesAssembler
from core.chunker import RangeChunker
from core.rate_limiter import RateLimiter
from exchange.errors import (
    DataIntegrityError,
    FetchAbortedError,
    FetchCancelledError,
    TransientTransportError,
    TransportError,
)
from exchange.models import Candle, Chunk, DateRange, FetchRequest, ms_to_datetime, parse_kline_row

if TYPE_CHECKING:
    from config import FetchConfig

logger = logging.getLogger(__name__)

# Receives the running count of records fetched so far
ProgressSink = Callable[[int], None]


class KlineTransport(Protocol):
    """Anything that can fetch one page of raw kline rows."""

    async def get_klines(
        self,
        symbol: str,
        interval: str,
        category: str,
        start_ms: int,
        end_ms: int,
        limit: int,
    ) -> List[List[str]]:
        ...


def _fmt(ms: int) -> str:
    return ms_to_datetime(ms).strftime("%Y-%m-%d %H:%M:%S")


class KlineFetcher:
    """Sequential, rate-limited paginator over one symbol/interval/category."""

    def __init__(
        self,
        transport: KlineTransport,
        config: "FetchConfig",
        rate_limiter: Optional[RateLimiter] = None,
        progress: Optional[ProgressSink] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        self.transport = transport
        self.config = config
        self.rate_limiter = rate_limiter or RateLimiter(config.request_spacing_sec)
        self.progress = progress
        self.cancel_event = cancel_event

    async def fetch(
        self,
        request: FetchRequest,
        date_range: DateRange,
        max_records: int,
    ) -> List[Candle]:
        """
        Fetch every candle in `date_range`, capped at the earliest `max_records`.
        Raises FetchAbortedError (or FetchCancelledError) on failure.
        """
        chunker = RangeChunker(date_range, request.interval, request.limit)
        assembler = SeriesAssembler(max_records)

        logger.info(
            f"[FETCH] {request.symbol} {request.category.value} interval={request.interval.value}: "
            f"~{chunker.expected_bars()} bars expected, per-call limit {request.limit}"
        )

        try:
            for chunk in chunker:
                if assembler.is_full:
                    logger.info(f"[FETCH] Reached maximum record limit of {max_records}.")
                    break
                self._check_cancelled(len(assembler))

                candles = await self._fetch_chunk(request, chunk, len(assembler))
                if not candles:
                    logger.info(f"[FETCH] No data from {_fmt(chunk.start_ms)} to {_fmt(chunk.end_ms)}.")

                added = assembler.add(candles)
                logger.debug(
                    f"[FETCH] Retrieved {len(candles)} records in this chunk, kept {added}. "
                    f"Total so far: {len(assembler)}"
                )
                self._report(len(assembler))
        except (TransportError, DataIntegrityError) as e:
            logger.error(f"[FETCH] Aborting {request.symbol}: {e}")
            raise FetchAbortedError(str(e), records_fetched=len(assembler), cause=e) from e

        series = assembler.finish()
        logger.info(f"[FETCH] Completed: {len(series)} records")
        return series

    async def _fetch_chunk(self, request: FetchRequest, chunk: Chunk, records_fetched: int = 0) -> List[Candle]:
        """One logical fetch: rate-limited, with a bounded retry on transient errors."""
        attempts = self.config.max_retries + 1

        attempt = 0

        # ApiRejectedError propagates on the first occurrence
        while True:
            if attempt:
                self._check_cancelled(records_fetched)
            attempt += 1
            async with self.rate_limiter:
                logger.debug(
                    f"[FETCH] Fetching data from {_fmt(chunk.start_ms)} to {_fmt(chunk.end_ms)} "
                    f"(chunk size: {chunk.limit}), attempt {attempt}/{attempts}"
                )
                try:
                    rows = await self.transport.get_klines(
                        symbol=request.symbol,
                        interval=request.interval.value,
                        category=request.category.value,
                        start_ms=chunk.start_ms,
                        end_ms=chunk.end_inclusive_ms,
                        limit=chunk.limit,
                    )
                except TransientTransportError as e:
                    if attempt >= attempts:
                        logger.error(f"[FETCH] Chunk failed after {attempts} attempts: {e}")
                        raise
                    logger.warning(f"[FETCH] Attempt {attempt}/{attempts} failed: {e}. Retrying...")
                    continue

            return [parse_kline_row(row, request.interval) for row in rows]

    def _check_cancelled(self, records_fetched: int):
        if self.cancel_event is not None and self.cancel_event.is_set():
            logger.warning("[FETCH] Cancellation requested, stopping before the next request")
            raise FetchCancelledError("Fetch cancelled", records_fetched=records_fetched)

    def _report(self, records_fetched: int):
        if self.progress is None:
            return
        try:
            self.progress(records_fetched)
        except Exception as e:
            logger.warning(f"[FETCH] Progress sink error: {e}")
