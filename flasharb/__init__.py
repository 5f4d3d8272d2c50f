# flasharb/__init__.py
"""
Flash Loan Arbitrage Bot
Triangular and cross-exchange flash arbitrage on Polygon

Modules:
- tokens: Token and factory catalog
- combinations: Token cycle generation
- resolver: Pool lookup against AMM factories
- cache: Per-network combination cache
- reserves / subgraph: Reserve and liquidity fetching
- profit: Integer swap simulation
- path_selector: Borrow amount search and best path
- contract: Flash arbitrage contract binding
- oracle: Native token price
- executor: Async execution driver
- main: Entry point
"""

__version__ = "1.0.0"

from flasharb.tokens import Network, Token, Factory
from flasharb.combinations import TokenCombination
from flasharb.config import BotConfig, load_config

__all__ = [
    "Network",
    "Token",
    "Factory",
    "TokenCombination",
    "BotConfig",
    "load_config",
]
