"""
Bybit V5 REST API Client.
Public market-data access for paginated kline retrieval.
"""

from __future__ import annotations
import asyncio
from typing import Any, Dict, List, Optional
import aiohttp
import logging

from exchange.errors import ApiRejectedError, TransientTransportError

logger = logging.getLogger(__name__)

# retCodes worth retrying: server timeout, rate limited, server busy
TRANSIENT_RET_CODES = {10000, 10006, 10016}


class BybitRestClient:
    """Async Bybit V5 REST API wrapper (market endpoints only)."""

    def __init__(self, base_url: str, timeout_sec: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_sec),
            )
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "BybitRestClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _request(self, endpoint: str, params: Dict[str, str]) -> Dict[str, Any]:
        """
        GET a public endpoint and return the `result` object.
        Raises TransientTransportError or ApiRejectedError.
        """
        session = await self._get_session()
        url = f"{self.base_url}{endpoint}"

        try:
            async with session.get(url, params=params) as resp:
                if resp.status >= 500 or resp.status == 429:
                    raise TransientTransportError(f"GET {endpoint} returned HTTP {resp.status}")
                try:
                    data = await resp.json(content_type=None)
                except ValueError as e:
                    if resp.status >= 400:
                        raise ApiRejectedError(
                            resp.status, f"GET {endpoint} returned HTTP {resp.status} with unparsable body"
                        ) from e
                    raise TransientTransportError(
                        f"GET {endpoint} returned unparsable body (HTTP {resp.status}): {e}"
                    ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"[REST] GET {endpoint} Exception: {e!r}")
            raise TransientTransportError(f"GET {endpoint} failed: {e!r}") from e

        if not isinstance(data, dict):
            raise TransientTransportError(f"GET {endpoint} returned non-object body")

        code = data.get("retCode")
        if code != 0:
            msg = data.get("retMsg", "")
            logger.error(f"[REST] GET {endpoint} Error: code={code}, msg={msg}")
            if code in TRANSIENT_RET_CODES:
                raise TransientTransportError(f"GET {endpoint} retCode={code}: {msg}")
            raise ApiRejectedError(code if isinstance(code, int) else -1, msg)

        result = data.get("result")
        if not isinstance(result, dict):
            raise ApiRejectedError(0, "No result data")
        return result

    # ==================== Market Endpoints ====================

    async def get_klines(
        self,
        symbol: str,
        interval: str,
        category: str,
        start_ms: int,
        end_ms: int,
        limit: int,
    ) -> List[List[str]]:
        """
        Get kline rows for [start_ms, end_ms] (both inclusive, as Bybit treats them).
        Interval: 1, 3, 5, 15, 30, 60, 120, 240, 360, 720, D, W, M
        Returns newest first; the assembler restores chronological order.
        """
        result = await self._request(
            "/v5/market/kline",
            {
                "category": category,
                "symbol": symbol,
                "interval": interval,
                "start": str(start_ms),
                "end": str(end_ms),
                "limit": str(limit),
            },
        )
        return result.get("list") or []
