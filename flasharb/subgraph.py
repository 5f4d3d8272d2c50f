# flasharb/subgraph.py
"""
Subgraph client
GraphQL queries for concentrated-liquidity positions.
Transient failures are retried a fixed number of times with a fixed delay.
"""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional

import httpx

from flasharb.errors import DataFetchError

logger = logging.getLogger(__name__)

TOP_POSITION_QUERY = """
query TopPosition($pool: String!, $token0: String!, $token1: String!) {
  positions(
    first: 1
    orderBy: liquidity
    orderDirection: desc
    where: { pool: $pool, token0: $token0, token1: $token1, liquidity_gt: 0 }
  ) {
    id
    liquidity
    depositedToken0
    depositedToken1
    token0 { id decimals }
    token1 { id decimals }
  }
}
"""


@dataclass(frozen=True)
class PositionLiquidity:
    position_id: str
    liquidity: int
    reserve_in: int   # smallest units of the token being sold
    reserve_out: int
    reversed: bool


def _to_units(amount: str, decimals) -> int:
    return int(Decimal(amount) * (Decimal(10) ** int(decimals)))


class SubgraphClient:
    def __init__(
        self,
        url: str,
        retries: int = 2,
        backoff: float = 0.5,
        timeout: float = 3.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.retries = retries
        self.backoff = backoff
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self):
        await self._client.aclose()

    async def query(self, query: str, variables: Dict[str, object]) -> Dict[str, object]:
        """POST a GraphQL query; retries transport errors, 5xx/429 and GraphQL errors"""
        last_error = None
        for attempt in range(self.retries + 1):
            try:
                resp = await self._client.post(self.url, json={"query": query, "variables": variables})
                resp.raise_for_status()
                payload = resp.json()
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status != 429 and status < 500:
                    raise DataFetchError(f"subgraph rejected query: HTTP {status}") from e
                last_error = e
            except (httpx.TransportError, ValueError) as e:
                last_error = e
            else:
                if not payload.get("errors"):
                    return payload["data"]
                last_error = DataFetchError(f"subgraph errors: {payload['errors']}")

            if attempt < self.retries:
                logger.debug(f"Subgraph attempt {attempt + 1} failed: {last_error}")
                await asyncio.sleep(self.backoff)
        raise DataFetchError(f"Subgraph query failed after {self.retries + 1} attempts: {last_error}")

    async def _top_position(self, pool: str, token0: str, token1: str) -> Optional[dict]:
        data = await self.query(TOP_POSITION_QUERY, {
            "pool": pool.lower(),
            "token0": token0.lower(),
            "token1": token1.lower(),
        })
        positions = data.get("positions") or []
        return positions[0] if positions else None

    async def top_position(self, pool: str, token_in: str, token_out: str) -> Optional[PositionLiquidity]:
        """
        Largest-liquidity position of the pool for token_in -> token_out.
        Tries the required token order first, then the reversed one.
        None when the pool has no usable position.
        """
        reversed_order = False
        pos = await self._top_position(pool, token_in, token_out)
        if pos is None:
            pos = await self._top_position(pool, token_out, token_in)
            reversed_order = True
        if pos is None or int(pos["liquidity"]) == 0:
            return None

        amount0 = _to_units(pos["depositedToken0"], pos["token0"]["decimals"])
        amount1 = _to_units(pos["depositedToken1"], pos["token1"]["decimals"])
        reserve_in, reserve_out = (amount1, amount0) if reversed_order else (amount0, amount1)
        return PositionLiquidity(
            position_id=pos["id"],
            liquidity=int(pos["liquidity"]),
            reserve_in=reserve_in,
            reserve_out=reserve_out,
            reversed=reversed_order,
        )

