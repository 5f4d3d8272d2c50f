# flasharb/rpc_health.py
"""
RPC Health
Startup check: the provider answers, is on the expected chain and is fast enough.
"""

import time

from web3 import AsyncWeb3
from web3.exceptions import Web3Exception

MAX_RPC_LATENCY = 3.0  # seconds


class RPCHealth:
    def __init__(self, w3: AsyncWeb3, expected_chain_id: int, max_latency: float = MAX_RPC_LATENCY):
        self.w3 = w3
        self.expected_chain_id = expected_chain_id
        self.max_latency = max_latency

    async def check(self) -> tuple:
        """
        Check RPC health
        Returns (is_healthy: bool, status_message: str)
        """
        try:
            start = time.time()
            latest = await self.w3.eth.block_number
            latency = time.time() - start
            chain_id = await self.w3.eth.chain_id
        except (Web3Exception, OSError, ValueError) as e:
            return False, str(e)

        if chain_id != self.expected_chain_id:
            return False, f"Wrong chain {chain_id}, expected {self.expected_chain_id}"

        if latency > self.max_latency:
            return False, f"High latency {latency:.2f}s"

        return True, f"OK (latency={latency:.2f}s, block={latest})"
