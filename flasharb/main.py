# flasharb/main.py
"""
Flash Arbitrage Bot Entry Point

Run with: python -m flasharb.main run --mode scan

COMMANDS:
1. run: resolve (or load) combinations and watch them every tick
   --mode scan      log profitable paths only (safe)
   --mode execute   submit flash arbitrage transactions
2. status: contract owner and base tokens
3. profit: the contract's own profit quote for a token pair
4. reserves: a pool's reserves ordered for a swap
5. add-base-token / remove-base-token: owner-only contract administration
"""

import argparse
import asyncio
import logging
import signal
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional

from web3 import AsyncWeb3
from web3.middleware import ExtraDataToPOAMiddleware

from flasharb.cache import try_load_combinations
from flasharb.combinations import (
    derive_intermediates, generate_intermediate_triples, generate_pairs, generate_triples,
)
from flasharb.config import (
    BORROW_SEARCH_SAFETY_FACTOR, BORROW_SEARCH_TERNARY, LOG_DIR, BotConfig, load_config, require_signer,
)
from flasharb.contract import FlashArbContract
from flasharb.errors import CacheError, ConfigError, SubmissionError
from flasharb.executor import ArbitrageDriver
from flasharb.oracle import PriceOracle
from flasharb.reserves import TRANSIENT_ERRORS, ReserveFetcher
from flasharb.resolver import PoolResolver
from flasharb.rpc_health import RPCHealth
from flasharb.subgraph import SubgraphClient
from flasharb.tokens import Network, all_tokens, get_decimals, get_factories, get_symbol, get_tokens

logger = logging.getLogger(__name__)


# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logging(log_dir: Path = LOG_DIR, level=logging.INFO):
    log_dir.mkdir(exist_ok=True)
    logging.basicConfig(
        level=level,
        format='%(asctime)s | %(levelname)-8s | %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_dir / f"bot_{datetime.now().strftime('%Y%m%d')}.log"),
        ]
    )


# =============================================================================
# WIRING
# =============================================================================

def connect(config: BotConfig) -> AsyncWeb3:
    w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(config.rpc_url))
    w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return w3


def build_candidates(network: Network):
    """Triangles, base/quote/intermediate triangles and cross-exchange pairs"""
    base, quote = get_tokens(network)
    intermediates = derive_intermediates(base, quote, all_tokens(network).values())
    return (
        generate_triples(base, quote)
        + generate_intermediate_triples(base, quote, intermediates)
        + generate_pairs(base, quote)
    )


async def check_prerequisites(w3: AsyncWeb3, config: BotConfig) -> bool:
    logger.info("Checking prerequisites...")
    ok, status = await RPCHealth(w3, config.chain_id).check()
    if not ok:
        logger.error(f"❌ RPC unhealthy: {status}")
        return False
    logger.info(f"✅ RPC healthy: {status}")
    return True


# =============================================================================
# COMMANDS
# =============================================================================

@asynccontextmanager
async def connected(config: BotConfig):
    """Provider for one command; its HTTP session is closed on the way out"""
    w3 = connect(config)
    try:
        yield w3
    finally:
        await w3.provider.disconnect()


async def run_bot(config: BotConfig) -> int:
    async with connected(config) as w3:
        if not await check_prerequisites(w3, config):
            return 1

        resolver = PoolResolver(w3, get_factories(config.network), concurrency=config.concurrency)

        async def resolve():
            return await resolver.resolve_all(build_candidates(config.network))

        combos = await try_load_combinations(config, resolve)
        if not combos:
            logger.warning("No usable combinations, nothing to watch")
            return 0

        subgraph = SubgraphClient(
            config.subgraph_url,
            config.subgraph_retries,
            config.subgraph_backoff,
            timeout=config.subgraph_request_timeout,
        )
        oracle = PriceOracle(config.price_oracle_url, config.price_ttl)
        driver = ArbitrageDriver(
            config=config,
            contract=FlashArbContract(w3, config),
            fetcher=ReserveFetcher(
                w3,
                subgraph,
                call_timeout=config.rpc_call_timeout,
                retries=config.rpc_retries,
                backoff=config.rpc_backoff,
            ),
            oracle=oracle,
        )

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, driver.stop)

        try:
            await driver.run_forever(combos)
        finally:
            logger.info("🛑 Shutting down")
            await subgraph.aclose()
            await oracle.aclose()
    return 0


async def show_status(config: BotConfig) -> int:
    async with connected(config) as w3:
        contract = FlashArbContract(w3, config)
        try:
            owner = await contract.owner()
            base_tokens = await contract.get_base_tokens()
        except TRANSIENT_ERRORS as e:
            logger.error(f"❌ Status unavailable: {e}")
            return 1
    logger.info(f"Contract: {config.contract_address}")
    logger.info(f"Owner:    {owner}")
    for token in base_tokens:
        logger.info(f"Base token: {get_symbol(token, config.network)} ({token})")
    return 0


async def show_profit(config: BotConfig, token_a: str, token_b: str, gas_fee: Optional[int] = None) -> int:
    """On-chain profit quote for a token pair, as the contract computes it"""
    gas_fee = config.gas_fee_wei if gas_fee is None else gas_fee
    async with connected(config) as w3:
        try:
            profit, base_token = await FlashArbContract(w3, config).get_profit(token_a, token_b, gas_fee)
        except TRANSIENT_ERRORS as e:
            logger.error(f"❌ getProfit failed: {e}")
            return 1
    decimals = get_decimals(base_token, config.network)
    amount = Decimal(profit) / Decimal(10**decimals)
    logger.info(f"Profit: {amount} {get_symbol(base_token, config.network)} (gas fee {gas_fee})")
    return 0


async def show_reserves(config: BotConfig, token_in: str, token_out: str, pool: str) -> int:
    async with connected(config) as w3:
        try:
            reserve_in, reserve_out = await FlashArbContract(w3, config).get_ordered_reserves(
                token_in, token_out, pool
            )
        except TRANSIENT_ERRORS as e:
            logger.error(f"❌ getOrderedReserves failed: {e}")
            return 1
    logger.info(f"Pool {pool}")
    logger.info(f"  {get_symbol(token_in, config.network)} in:  {reserve_in}")
    logger.info(f"  {get_symbol(token_out, config.network)} out: {reserve_out}")
    return 0


async def change_base_token(config: BotConfig, token: str, add: bool) -> int:
    require_signer(config)
    async with connected(config) as w3:
        contract = FlashArbContract(w3, config)
        try:
            if add:
                tx_hash = await contract.add_base_token(token)
            else:
                tx_hash = await contract.remove_base_token(token)
        except SubmissionError as e:
            logger.error(f"❌ Base token update failed ({e.kind.value}): {e}")
            return 1
        except TRANSIENT_ERRORS as e:
            logger.error(f"❌ Base token update failed: {e}")
            return 1
    logger.info(f"✅ Base token {'added' if add else 'removed'}: {tx_hash}")
    return 0


def main(argv=None):
    """Main entry point"""
    parser = argparse.ArgumentParser(description="Flash Loan Arbitrage Bot")
    parser.add_argument("--network", default="polygon", help="Network to run on (default: polygon)")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Watch combinations and arbitrage")
    run.add_argument(
        "--mode",
        choices=["scan", "execute"],
        default="scan",
        help="scan (log only) or execute (real transactions)",
    )
    run.add_argument(
        "--search",
        choices=[BORROW_SEARCH_TERNARY, BORROW_SEARCH_SAFETY_FACTOR],
        default=BORROW_SEARCH_TERNARY,
        help="Borrow amount search",
    )

    sub.add_parser("status", help="Show contract owner and base tokens")

    profit = sub.add_parser("profit", help="Ask the contract for the arbitrage profit of a token pair")
    profit.add_argument("token_a", help="First token address")
    profit.add_argument("token_b", help="Second token address")
    profit.add_argument("--gas-fee", type=int, default=None, help="Gas fee in wei (default: gas price * gas limit)")

    reserves = sub.add_parser("reserves", help="Show a pool's reserves ordered for a swap")
    reserves.add_argument("token_in", help="Token sold into the pool")
    reserves.add_argument("token_out", help="Token bought from the pool")
    reserves.add_argument("pool", help="Pool address")

    for name in ("add-base-token", "remove-base-token"):
        p = sub.add_parser(name, help=f"{name.split('-')[0].capitalize()} a contract base token")
        p.add_argument("token", help="Token address")

    args = parser.parse_args(argv)
    setup_logging(level=logging.DEBUG if args.debug else logging.INFO)

    try:
        if args.command == "run":
            config = load_config(args.network, borrow_search=args.search, dry_run=args.mode != "execute")
            if not config.dry_run:
                require_signer(config)
            code = asyncio.run(run_bot(config))
        elif args.command == "status":
            code = asyncio.run(show_status(load_config(args.network)))
        elif args.command == "profit":
            code = asyncio.run(show_profit(load_config(args.network), args.token_a, args.token_b, args.gas_fee))
        elif args.command == "reserves":
            code = asyncio.run(show_reserves(load_config(args.network), args.token_in, args.token_out, args.pool))
        else:
            config = load_config(args.network)
            code = asyncio.run(change_base_token(config, args.token, add=args.command == "add-base-token"))
    except (ConfigError, CacheError) as e:
        logger.error(f"❌ {e}")
        sys.exit(1)

    sys.exit(code)


if __name__ == "__main__":
    main()
