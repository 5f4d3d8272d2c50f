# flasharb/config.py
"""
Bot Configuration
Static per-network constants plus secrets from config/.env
"""

import os
from dataclasses import dataclass, replace
from decimal import Decimal
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from web3 import Web3

from flasharb.errors import ConfigError
from flasharb.tokens import Network

# -----------------------------
# Paths
# -----------------------------
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / "config" / ".env"
CACHE_DIR = BASE_DIR
LOG_DIR = BASE_DIR / "logs"

GWEI = 10**9

# -----------------------------
# Borrow amount search
# -----------------------------
BORROW_SEARCH_TERNARY = "ternary"
BORROW_SEARCH_SAFETY_FACTOR = "safety_factor"

# Safety factor in thousandths: start at 1.000, step down by 0.010, give up below 0.001
SAFETY_FACTOR_START = 1000
SAFETY_FACTOR_STEP = 10
SAFETY_FACTOR_FLOOR = 1


@dataclass(frozen=True)
class BotConfig:
    network: Network
    chain_id: int
    contract_address: str
    rpc_url: str
    private_key: Optional[str]
    gas_price: int                  # wei
    gas_limit: int
    minimum_profit: Decimal         # accounting units (USD)
    concurrency: int
    poll_interval: float            # seconds
    task_timeout: float             # seconds, per combination per tick
    submit_lock_timeout: float
    receipt_timeout: float
    price_oracle_url: str
    price_ttl: float
    subgraph_url: str
    subgraph_retries: int
    subgraph_backoff: float
    rpc_retries: int = 2
    rpc_backoff: float = 0.5        # seconds between reserve read attempts
    borrow_search: str = BORROW_SEARCH_TERNARY
    cache_dir: Path = CACHE_DIR
    dry_run: bool = True

    @property
    def gas_fee_wei(self) -> int:
        return self.gas_price * self.gas_limit

    # Each attempt gets an equal share of task_timeout after the backoff sleeps
    @property
    def rpc_call_timeout(self) -> float:
        return _per_attempt(self.task_timeout, self.rpc_retries, self.rpc_backoff)

    @property
    def subgraph_request_timeout(self) -> float:
        return _per_attempt(self.task_timeout, self.subgraph_retries, self.subgraph_backoff)

    @property
    def cache_file(self) -> Path:
        return Path(self.cache_dir) / f"combinations-{self.network.value}.json"


def _per_attempt(total: float, retries: int, backoff: float) -> float:
    return (total - retries * backoff) / (retries + 1)


# -----------------------------
# Network presets
# -----------------------------
_PRESETS = {
    Network.POLYGON: dict(
        chain_id=137,
        contract_address="0xa37e3Eb0Eef9eE9E7eDE14B82C289B401C390291",  # flash arbitrage contract
        default_rpc="https://polygon-rpc.com",
        gas_price=200 * GWEI,
        gas_limit=310_000,
        minimum_profit=Decimal("10"),
        concurrency=50,
        poll_interval=1.0,
        task_timeout=10.0,
        submit_lock_timeout=5.0,
        receipt_timeout=120.0,
        price_oracle_url="https://api.polygonscan.com/api?module=stats&action=maticPrice&apikey={api_key}",
        price_ttl=10.0,
        subgraph_url="https://api.thegraph.com/subgraphs/name/ianlapham/uniswap-v3-polygon",
        subgraph_retries=2,
        subgraph_backoff=0.5,
        rpc_retries=2,
        rpc_backoff=0.5,
    ),
}


def load_config(network="polygon", env_path: Path = ENV_PATH, **overrides) -> BotConfig:
    """
    Build the process-wide config for a network.
    Unknown networks are rejected here, not deep inside a helper.
    """
    network = Network.parse(network)
    preset = _PRESETS.get(network)
    if preset is None:
        raise ConfigError(f"No configuration for network: {network.value}")

    if env_path is not None and Path(env_path).exists():
        load_dotenv(env_path)

    rpc_url = os.getenv("RPC_URL", preset["default_rpc"])
    api_key = os.getenv("POLYGONSCAN_API_KEY", "")

    contract_address = os.getenv("FLASH_CONTRACT", preset["contract_address"])
    if not Web3.is_address(contract_address):
        raise ConfigError(f"Invalid contract address: {contract_address}")

    config = BotConfig(
        network=network,
        chain_id=preset["chain_id"],
        contract_address=Web3.to_checksum_address(contract_address),
        rpc_url=rpc_url,
        private_key=os.getenv("PRIVATE_KEY"),
        gas_price=preset["gas_price"],
        gas_limit=preset["gas_limit"],
        minimum_profit=preset["minimum_profit"],
        concurrency=preset["concurrency"],
        poll_interval=preset["poll_interval"],
        task_timeout=preset["task_timeout"],
        submit_lock_timeout=preset["submit_lock_timeout"],
        receipt_timeout=preset["receipt_timeout"],
        price_oracle_url=preset["price_oracle_url"].format(api_key=api_key),
        price_ttl=preset["price_ttl"],
        subgraph_url=os.getenv("SUBGRAPH_URL", preset["subgraph_url"]),
        subgraph_retries=preset["subgraph_retries"],
        subgraph_backoff=preset["subgraph_backoff"],
        rpc_retries=preset["rpc_retries"],
        rpc_backoff=preset["rpc_backoff"],
    )

    if overrides:
        config = replace(config, **overrides)

    if config.borrow_search not in (BORROW_SEARCH_TERNARY, BORROW_SEARCH_SAFETY_FACTOR):
        raise ConfigError(f"Unknown borrow search: {config.borrow_search}")
    if config.concurrency < 1:
        raise ConfigError("concurrency must be >= 1")
    if config.rpc_retries < 0 or config.subgraph_retries < 0:
        raise ConfigError("retry counts must be >= 0")
    if config.rpc_call_timeout <= 0 or config.subgraph_request_timeout <= 0:
        raise ConfigError(
            f"task_timeout {config.task_timeout}s leaves no time per attempt after retries and backoff"
        )

    return config


def require_signer(config: BotConfig) -> str:
    """Private key is only needed for commands that send transactions"""
    if not config.private_key:
        raise ConfigError(f"PRIVATE_KEY not set in {ENV_PATH}")
    return config.private_key
