import asyncio
from dataclasses import replace
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from flasharb.errors import SubmissionError, SubmissionErrorKind
from flasharb.executor import ArbitrageDriver, DriverState
from tests.conftest import FORWARD_HOPS


def make_driver(config, native_price="10", hops=FORWARD_HOPS, **overrides):
    config = replace(config, dry_run=False, **overrides)
    contract = MagicMock()
    contract.execute_flash_arbitrage = AsyncMock(return_value="0xabc")
    fetcher = MagicMock()
    fetcher.fetch = AsyncMock(return_value=list(hops) if hops else hops)
    oracle = MagicMock()
    oracle.native_price_usd = AsyncMock(return_value=Decimal(native_price))
    return ArbitrageDriver(config, contract, fetcher, oracle)


def test_profitable_path_is_submitted(config, triangle):
    driver = make_driver(config)
    result = asyncio.run(driver.process(triangle))

    assert result.submitted
    assert result.tx_hash == "0xabc"
    assert result.state is DriverState.SUBMITTING
    path = driver.contract.execute_flash_arbitrage.await_args.args[0]
    assert path.tokens == tuple(triangle.addresses)
    assert path.borrow_amount > 0


def test_below_minimum_profit_never_submits(config, triangle):
    # ~4.1 WMATIC net at $1 is below the $10 minimum
    driver = make_driver(config, native_price="1")
    result = asyncio.run(driver.process(triangle))

    driver.contract.execute_flash_arbitrage.assert_not_awaited()
    assert result.state is DriverState.IDLE
    assert Decimal(0) < result.profit_usd <= config.minimum_profit


def test_dry_run_only_logs(config, triangle):
    driver = make_driver(config)
    driver.config = replace(driver.config, dry_run=True)
    result = asyncio.run(driver.process(triangle))

    driver.contract.execute_flash_arbitrage.assert_not_awaited()
    assert result.state is DriverState.SUBMITTING
    assert not result.submitted


def test_unusable_hop_is_idle(config, triangle):
    driver = make_driver(config, hops=None)
    result = asyncio.run(driver.process(triangle))
    assert result.state is DriverState.IDLE
    driver.oracle.native_price_usd.assert_not_awaited()


@pytest.mark.parametrize("kind", [
    SubmissionErrorKind.REVERTED,
    SubmissionErrorKind.REJECTED,
    SubmissionErrorKind.TIMEOUT,
    SubmissionErrorKind.UNEXPECTED,
])
def test_submission_errors_are_swallowed(config, triangle, kind):
    driver = make_driver(config)
    driver.contract.execute_flash_arbitrage.side_effect = SubmissionError(kind, "boom")

    results = asyncio.run(driver.run_tick([triangle]))

    assert len(results) == 1
    assert not results[0].submitted
    assert results[0].error == "boom"


def test_lock_timeout(config, triangle):
    driver = make_driver(config, submit_lock_timeout=0.01)

    async def with_lock_held():
        await driver._submit_lock.acquire()
        try:
            return await driver.process(triangle)
        finally:
            driver._submit_lock.release()

    result = asyncio.run(with_lock_held())
    driver.contract.execute_flash_arbitrage.assert_not_awaited()
    assert "lock" in result.error


def test_failing_combination_does_not_stop_tick(config, triangle):
    driver = make_driver(config, native_price="1")
    broken = replace(triangle, symbols="BROKEN")

    async def fetch(combo):
        if combo.symbols == "BROKEN":
            raise RuntimeError("rpc exploded")
        return list(FORWARD_HOPS)

    driver.fetcher.fetch = AsyncMock(side_effect=fetch)
    results = asyncio.run(driver.run_tick([broken, triangle]))

    assert [r.symbols for r in results] == [triangle.symbols]
    assert driver.tick_count == 1


def test_hung_fetch_times_out(config, triangle):
    driver = make_driver(config, task_timeout=0.01)

    async def hang(combo):
        await asyncio.sleep(10)

    driver.fetcher.fetch = AsyncMock(side_effect=hang)
    assert asyncio.run(driver.run_tick([triangle])) == []


def test_run_forever_stops(config, triangle):
    driver = make_driver(config, native_price="1", poll_interval=0)

    async def fetch(combo):
        if driver.tick_count >= 1:
            driver.stop()
        return list(FORWARD_HOPS)

    driver.fetcher.fetch = AsyncMock(side_effect=fetch)
    asyncio.run(driver.run_forever([triangle]))
    assert driver.tick_count == 2
