import asyncio
from decimal import Decimal

import httpx
import pytest

from flasharb.errors import DataFetchError
from flasharb.oracle import PriceOracle

URL = "https://explorer.test/api?module=stats&action=maticPrice"


def oracle_for(handler, ttl=10.0):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PriceOracle(URL, ttl=ttl, client=client)


def test_price_is_cached():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"status": "1", "result": {"maticusd": "0.8512"}})

    oracle = oracle_for(handler)

    async def twice():
        return await oracle.native_price_usd(), await oracle.native_price_usd()

    first, second = asyncio.run(twice())
    assert first == second == Decimal("0.8512")
    assert len(calls) == 1


def test_concurrent_misses_share_one_request():
    calls = []

    async def handler(request):
        calls.append(request)
        await asyncio.sleep(0.01)
        return httpx.Response(200, json={"status": "1", "result": {"maticusd": "0.8512"}})

    oracle = oracle_for(handler)

    async def tick():
        return await asyncio.gather(*(oracle.native_price_usd() for _ in range(50)))

    prices = asyncio.run(tick())
    assert set(prices) == {Decimal("0.8512")}
    assert len(calls) == 1


def test_expired_price_is_refetched():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"status": "1", "result": {"maticusd": "1.1"}})

    oracle = oracle_for(handler, ttl=0)

    async def twice():
        await oracle.native_price_usd()
        await oracle.native_price_usd()

    asyncio.run(twice())
    assert len(calls) == 2


@pytest.mark.parametrize("response", [
    httpx.Response(200, json={"status": "0", "result": "Invalid API Key"}),
    httpx.Response(200, json={"status": "1", "result": {"maticusd": "0"}}),
    httpx.Response(502),
])
def test_bad_price_raises(response):
    oracle = oracle_for(lambda request: response)
    with pytest.raises(DataFetchError):
        asyncio.run(oracle.native_price_usd())
