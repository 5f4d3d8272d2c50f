# flasharb/resolver.py
"""
Pool Resolver
Finds concrete pool addresses for each hop of a token cycle by asking the
configured AMM factories. A reverted lookup just means "no pool here".
"""

import asyncio
import logging
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, List, Optional

from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError, Web3Exception

from flasharb.abi import FACTORY_V2_ABI, FACTORY_V3_ABI
from flasharb.combinations import TokenCombination
from flasharb.tokens import Factory, ZERO_ADDRESS

logger = logging.getLogger(__name__)

LOOKUP_ERRORS = (ContractLogicError, Web3Exception, ValueError, asyncio.TimeoutError)


@dataclass(frozen=True)
class Pool:
    address: str
    version: str
    fee: Optional[int]
    dex: str


class PoolResolver:
    def __init__(
        self,
        w3: Optional[AsyncWeb3],
        factories: List[Factory],
        concurrency: int = 10,
        call_timeout: float = 10.0,
    ):
        self.w3 = w3
        self.factories = list(factories)
        self.concurrency = concurrency
        self.call_timeout = call_timeout
        self._contracts: Dict[str, object] = {}

    def _contract(self, factory: Factory):
        if factory.address not in self._contracts:
            abi = FACTORY_V3_ABI if factory.version == "v3" else FACTORY_V2_ABI
            self._contracts[factory.address] = self.w3.eth.contract(address=factory.address, abi=abi)
        return self._contracts[factory.address]

    async def query_factory(self, factory: Factory, token_x: str, token_y: str, fee: Optional[int]) -> str:
        """Single read-only factory call; returns the pool address or the zero address"""
        contract = self._contract(factory)
        if factory.version == "v3":
            call = contract.functions.getPool(token_x, token_y, fee).call()
        else:
            call = contract.functions.getPair(token_x, token_y).call()
        return await asyncio.wait_for(call, timeout=self.call_timeout)

    async def _lookup(self, factory: Factory, token_x: str, token_y: str) -> List[Pool]:
        fees = factory.fee_tiers if factory.version == "v3" else (None,)
        found = []
        for fee in fees:
            try:
                addr = await self.query_factory(factory, token_x, token_y, fee)
            except LOOKUP_ERRORS as e:
                logger.debug(f"{factory.name} lookup failed for {token_x}/{token_y}: {e}")
                continue
            if addr and addr.lower() != ZERO_ADDRESS:
                found.append(Pool(addr, factory.version, fee, factory.name))
        return found

    async def resolve_hop(self, token_x: str, token_y: str) -> Optional[Pool]:
        """First pool found across factories, in configured order"""
        for factory in self.factories:
            pools = await self._lookup(factory, token_x, token_y)
            if pools:
                return pools[0]
        return None

    async def find_pools(self, token_x: str, token_y: str) -> List[Pool]:
        """Every pool for the pair, one per factory"""
        found = []
        for factory in self.factories:
            pools = await self._lookup(factory, token_x, token_y)
            if pools:
                found.append(pools[0])
        return found

    async def resolve_triangle(self, combo: TokenCombination) -> Optional[TokenCombination]:
        """Keep the cycle only if every hop, closing hop included, has a pool"""
        n = len(combo.addresses)
        hops = [(combo.addresses[i], combo.addresses[(i + 1) % n]) for i in range(n)]
        pools = await asyncio.gather(*(self.resolve_hop(x, y) for x, y in hops))
        if any(p is None for p in pools):
            logger.debug(f"Dropping {combo.symbols}: unresolved hop")
            return None
        return TokenCombination(
            symbols=combo.symbols,
            addresses=list(combo.addresses),
            pairs=[p.address for p in pools],
            versions=[p.version for p in pools],
            fees=[p.fee for p in pools],
        )

    async def resolve_cross_exchange(self, combo: TokenCombination) -> List[TokenCombination]:
        """
        Two-token cycle: needs the pair listed on at least two factories, then
        expands into every 2-pool selection (buy on one, sell on the other).
        """
        base, quote = combo.addresses[0], combo.addresses[1]
        pools = await self.find_pools(base, quote)
        if len(pools) < 2:
            return []
        out = []
        for first, second in combinations(pools, 2):
            out.append(TokenCombination(
                symbols=combo.symbols,
                addresses=[base, quote],
                pairs=[first.address, second.address],
                versions=[first.version, second.version],
                fees=[first.fee, second.fee],
            ))
        return out

    async def resolve_all(self, combos: List[TokenCombination]) -> List[TokenCombination]:
        logger.info(f"Resolving {len(combos)} combinations on {[f.name for f in self.factories]}")
        sem = asyncio.Semaphore(self.concurrency)

        async def resolve_one(combo):
            async with sem:
                if len(combo.addresses) == 2:
                    return await self.resolve_cross_exchange(combo)
                resolved = await self.resolve_triangle(combo)
                return [resolved] if resolved else []

        results = await asyncio.gather(*(resolve_one(c) for c in combos))
        resolved = [c for group in results for c in group if c.is_resolved]
        logger.info(f"Resolved {len(resolved)} usable combinations")
        return resolved
