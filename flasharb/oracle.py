# flasharb/oracle.py
"""
Price Oracle
Native token USD price from the block explorer stats API, cached briefly.
"""

import asyncio
import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

import httpx

from flasharb.errors import DataFetchError

logger = logging.getLogger(__name__)


class PriceOracle:
    def __init__(self, url: str, ttl: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.ttl = ttl
        self._client = client or httpx.AsyncClient(timeout=10.0)
        self._cache: Optional[Tuple[Decimal, float]] = None
        self._lock = asyncio.Lock()

    async def aclose(self):
        await self._client.aclose()

    def _cached(self) -> Optional[Decimal]:
        if self._cache is not None:
            cached_price, cached_time = self._cache
            if time.monotonic() - cached_time < self.ttl:
                return cached_price
        return None

    async def native_price_usd(self) -> Decimal:
        """
        USD price of the native token; cached for `ttl` seconds.
        Concurrent misses share one request: the first caller fetches under
        the lock, the rest find the fresh entry once they get it.
        """
        price = self._cached()
        if price is not None:
            return price

        async with self._lock:
            price = self._cached()
            if price is not None:
                return price
            return await self._fetch()

    async def _fetch(self) -> Decimal:
        try:
            resp = await self._client.get(self.url)
            resp.raise_for_status()
            payload = resp.json()
            price = Decimal(str(payload["result"]["maticusd"]))
        except (httpx.HTTPError, ValueError, KeyError, TypeError, InvalidOperation) as e:
            raise DataFetchError(f"Native price unavailable: {e}") from e

        if price <= 0:
            raise DataFetchError(f"Native price not positive: {price}")

        self._cache = (price, time.monotonic())
        logger.debug(f"Native price ${price}")
        return price
