# flasharb/contract.py
"""
Flash Arbitrage Contract Binding
Thin async wrapper around the external arbitrage contract. Provider failures
are classified here, by exception type, into SubmissionErrorKind.
"""

import asyncio
import logging
from typing import List, Optional, Sequence, Tuple

from eth_abi import encode
from web3 import AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception, Web3RPCError

from flasharb.abi import FLASH_ARB_ABI
from flasharb.config import BotConfig
from flasharb.errors import SubmissionError, SubmissionErrorKind
from flasharb.path_selector import PathResult
from flasharb.tokens import ZERO_ADDRESS

logger = logging.getLogger(__name__)

VERSION_CODES = {"v2": 2, "v3": 3}


def encode_pool_data(
    pools: Sequence[str],
    versions: Sequence[str],
    fees: Sequence[Optional[int]],
) -> bytes:
    """Pools, AMM versions and fee tiers, decoded by the contract callback"""
    return encode(
        ["address[]", "uint8[]", "uint24[]"],
        [
            [Web3.to_checksum_address(p) for p in pools],
            [VERSION_CODES.get(v, 2) for v in versions],
            [f or 0 for f in fees],
        ],
    )


def classify_error(err: Exception) -> SubmissionErrorKind:
    if isinstance(err, SubmissionError):
        return err.kind
    if isinstance(err, ContractLogicError):
        return SubmissionErrorKind.REVERTED
    if isinstance(err, (TimeExhausted, asyncio.TimeoutError)):
        return SubmissionErrorKind.TIMEOUT
    if isinstance(err, Web3RPCError):
        return SubmissionErrorKind.REJECTED
    return SubmissionErrorKind.UNEXPECTED


class FlashArbContract:
    def __init__(self, w3: AsyncWeb3, config: BotConfig):
        self.w3 = w3
        self.config = config
        self.contract = w3.eth.contract(address=config.contract_address, abi=FLASH_ARB_ABI)
        self.account = w3.eth.account.from_key(config.private_key) if config.private_key else None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_profit(self, token_a: str, token_b: str, gas_fee: int) -> Tuple[int, str]:
        profit, base_token = await self.contract.functions.getProfit(token_a, token_b, gas_fee).call()
        return profit, base_token

    async def get_ordered_reserves(self, token_in: str, token_out: str, pool: str) -> Tuple[int, int]:
        reserve_in, reserve_out = await self.contract.functions.getOrderedReserves(
            token_in, token_out, pool
        ).call()
        return reserve_in, reserve_out

    async def get_base_tokens(self) -> List[str]:
        return list(await self.contract.functions.getBaseTokens().call())

    async def owner(self) -> str:
        return await self.contract.functions.owner().call()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_base_token(self, token: str) -> str:
        return await self._send(self.contract.functions.addBaseToken(Web3.to_checksum_address(token)))

    async def remove_base_token(self, token: str) -> str:
        return await self._send(self.contract.functions.removeBaseToken(Web3.to_checksum_address(token)))

    async def execute_flash_arbitrage(self, path: PathResult) -> str:
        tokens = list(path.tokens) + [ZERO_ADDRESS] * (3 - len(path.tokens))
        pool_data = encode_pool_data(path.pools, path.versions, path.fees)
        fn = self.contract.functions.executeFlashArbitrage(
            Web3.to_checksum_address(tokens[0]),
            Web3.to_checksum_address(tokens[1]),
            Web3.to_checksum_address(tokens[2]),
            path.borrow_amount,
            pool_data,
        )
        return await self._send(fn)

    async def _send(self, fn) -> str:
        """Build, sign, send with the fixed gas settings and wait for one confirmation"""
        if self.account is None:
            raise SubmissionError(SubmissionErrorKind.UNEXPECTED, "no signer configured")
        tx_hash = None
        try:
            nonce = await self.w3.eth.get_transaction_count(self.account.address, "pending")
            tx = await fn.build_transaction({
                "from": self.account.address,
                "nonce": nonce,
                "gas": self.config.gas_limit,
                "gasPrice": self.config.gas_price,
                "chainId": self.config.chain_id,
            })
            signed = self.account.sign_transaction(tx)
            tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
            logger.debug(f"Sent {tx_hash.hex()} (nonce {nonce})")
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.config.receipt_timeout
            )
        except (Web3Exception, ValueError, asyncio.TimeoutError) as e:
            kind = classify_error(e)
            raise SubmissionError(kind, str(e), tx_hash.hex() if tx_hash else None) from e

        if receipt["status"] != 1:
            raise SubmissionError(SubmissionErrorKind.REVERTED, "transaction reverted", tx_hash.hex())
        return receipt["transactionHash"].hex()
