# flasharb/reserves.py
"""
Reserve Fetcher
Per-hop (reserve_in, reserve_out) for a resolved combination.
V2 hops read the pair contract; V3 hops use the largest subgraph position.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

import aiohttp
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError, Web3Exception

from flasharb.abi import PAIR_ABI
from flasharb.combinations import TokenCombination
from flasharb.errors import DataFetchError
from flasharb.profit import Hop
from flasharb.subgraph import SubgraphClient

logger = logging.getLogger(__name__)

# Provider and transport failures worth another attempt
TRANSIENT_ERRORS = (Web3Exception, aiohttp.ClientError, OSError, ValueError, asyncio.TimeoutError)

# A hop failing with one of these leaves the combination idle for the tick
UNUSABLE_HOP_ERRORS = (DataFetchError,) + TRANSIENT_ERRORS


def order_reserves(
    reserve0: int,
    reserve1: int,
    token0: str,
    token1: str,
    token_in: str,
) -> Tuple[int, int]:
    """Pair reserves ordered as (reserve_in, reserve_out) for a swap of token_in"""
    if token_in.lower() == token0.lower():
        return reserve0, reserve1
    elif token_in.lower() == token1.lower():
        return reserve1, reserve0
    else:
        raise DataFetchError(f"Token {token_in} not in pool")


class ReserveFetcher:
    def __init__(
        self,
        w3: Optional[AsyncWeb3],
        subgraph: Optional[SubgraphClient],
        call_timeout: float = 3.0,
        retries: int = 2,
        backoff: float = 0.5,
    ):
        self.w3 = w3
        self.subgraph = subgraph
        self.call_timeout = call_timeout
        self.retries = retries
        self.backoff = backoff
        self._pairs: Dict[str, object] = {}
        # token0/token1 never change for a pair
        self._pair_tokens: Dict[str, Tuple[str, str]] = {}

    def _pair(self, address: str):
        if address not in self._pairs:
            self._pairs[address] = self.w3.eth.contract(address=address, abi=PAIR_ABI)
        return self._pairs[address]

    async def _read_pair(self, pool: str) -> Tuple[int, int]:
        pair = self._pair(pool)
        if pool not in self._pair_tokens:
            t0, t1 = await asyncio.gather(pair.functions.token0().call(), pair.functions.token1().call())
            self._pair_tokens[pool] = (t0, t1)
        r0, r1, _ = await pair.functions.getReserves().call()
        return r0, r1

    async def get_v2_reserves(self, pool: str, token_in: str, token_out: str) -> Hop:
        """
        Pair reserves as (reserve_in, reserve_out). Each attempt is bounded by
        call_timeout; transient failures are retried `retries` times with a
        fixed `backoff`, a revert is not retried.
        """
        last_error = None
        for attempt in range(self.retries + 1):
            try:
                r0, r1 = await asyncio.wait_for(self._read_pair(pool), timeout=self.call_timeout)
                break
            except ContractLogicError as e:
                raise DataFetchError(f"getReserves reverted for {pool}: {e}") from e
            except TRANSIENT_ERRORS as e:
                last_error = e
                if attempt < self.retries:
                    logger.debug(f"Reserve read attempt {attempt + 1} for {pool} failed: {e!r}")
                    await asyncio.sleep(self.backoff)
        else:
            raise DataFetchError(
                f"getReserves failed for {pool} after {self.retries + 1} attempts: {last_error!r}"
            ) from last_error

        t0, t1 = self._pair_tokens[pool]
        if token_out.lower() not in (t0.lower(), t1.lower()):
            raise DataFetchError(f"Token {token_out} not in pool {pool}")
        return order_reserves(r0, r1, t0, t1, token_in)

    async def get_v3_reserves(self, pool: str, token_in: str, token_out: str) -> Optional[Hop]:
        if self.subgraph is None:
            raise DataFetchError("No subgraph configured for concentrated-liquidity pools")
        position = await self.subgraph.top_position(pool, token_in, token_out)
        if position is None:
            return None
        return position.reserve_in, position.reserve_out

    async def fetch(self, combo: TokenCombination) -> Optional[List[Hop]]:
        """
        Forward hops of the combination, or None when any hop has no
        usable liquidity this cycle. Every hop read runs to completion before
        the outcome is decided; errors outside UNUSABLE_HOP_ERRORS propagate.
        """
        tasks = []
        for token_in, token_out, pool, version, _fee in combo.hops():
            if version == "v3":
                tasks.append(self.get_v3_reserves(pool, token_in, token_out))
            else:
                tasks.append(self.get_v2_reserves(pool, token_in, token_out))

        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        for outcome in outcomes:
            if isinstance(outcome, BaseException) and not isinstance(outcome, UNUSABLE_HOP_ERRORS):
                raise outcome

        hops = []
        for outcome in outcomes:
            if isinstance(outcome, UNUSABLE_HOP_ERRORS):
                logger.debug(f"{combo.symbols}: {outcome!r}")
                return None
            if outcome is None or outcome[0] <= 0 or outcome[1] <= 0:
                logger.debug(f"{combo.symbols}: hop without liquidity")
                return None
            hops.append(outcome)
        return hops
