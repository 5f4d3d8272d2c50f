# flasharb/tokens.py
"""
Token & Factory Registry
Static catalog of base/quote tokens and AMM factories per network
"""

from enum import Enum
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from web3 import Web3

from flasharb.errors import ConfigError

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

V3_FEE_TIERS = (500, 3000, 10000)


class Network(Enum):
    POLYGON = "polygon"

    @classmethod
    def parse(cls, value) -> "Network":
        """Validate a network identifier, rejecting unknown ones up front"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            supported = ", ".join(n.value for n in cls)
            raise ConfigError(f"Unsupported network: {value!r} (supported: {supported})")


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class Token:
    symbol: str
    address: str
    decimals: int = 18

    def __post_init__(self):
        object.__setattr__(self, "address", Web3.to_checksum_address(self.address))


@dataclass(frozen=True)
class Factory:
    name: str
    address: str
    version: str  # "v2" or "v3"
    fee_tiers: Tuple[int, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "address", Web3.to_checksum_address(self.address))


# =============================================================================
# POLYGON
# =============================================================================

WMATIC = Token("WMATIC", "0x0d500B1d8E8eF31E21C99d1Db9A6444d3ADf1270")
USDT = Token("USDT", "0xc2132D05D31c914a87C6611C10748AEb04B58e8F", 6)
USDC = Token("USDC", "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174", 6)

POLYGON_BASE_TOKENS: Dict[str, Token] = {
    "wmatic": WMATIC,
    "usdt": USDT,
    "usdc": USDC,
}

POLYGON_QUOTE_TOKENS: Dict[str, Token] = {
    "link": Token("LINK", "0x53e0bca35ec356bd5dddfebbd1fc0fd03fabad39"),
    "eth": Token("ETH", "0x7ceB23fD6bC0adD59E62ac25578270cFf1b9f619"),
    "dai": Token("DAI", "0x8f3Cf7ad23Cd3CaDbD9735AFf958023239c6A063"),
    "aave": Token("AAVE", "0xD6DF932A45C0f255f85145f286eA0b292B21C90B"),
    "uni": Token("UNI", "0xb33eaad8d922b1083446dc23f610c2567fb5180f"),
    "sushi": Token("SUSHI", "0x0b3f868e0be5597d5db7feb59e1cadbb0fdda50a"),
    "quick": Token("QUICK", "0x831753dd7087cac61ab5644b308642cc1c33dc13"),
    "busd": Token("BUSD", "0xdab529f40e671a1d4bf91361c21bf9f0c9712ab7"),
}

# Tokens that are neither base nor quote; source of triangle intermediates
POLYGON_EXTRA_TOKENS: Dict[str, Token] = {
    "wbtc": Token("WBTC", "0x1BFD67037B42Cf73acF2047067bd4F2C47D9BfD6", 8),
    "crv": Token("CRV", "0x172370d5Cd63279eFa6d502DAB29171933a610AF"),
    "bal": Token("BAL", "0x9a71012B13CA4d3D0Cdc72A177DF3ef03b0E76A3"),
    "stmatic": Token("stMATIC", "0x3A58a54C066FdC0f2D55FC9C89F0415C92eBf3C4"),
    "maticx": Token("MaticX", "0xfa68FB4628DFF1028CFEc22b4162FCcd0d45efb6"),
}

POLYGON_FACTORIES: List[Factory] = [
    Factory("quickswap", "0x5757371414417b8C6CAad45bAeF941aBc7d3Ab32", "v2"),
    Factory("apeswap", "0xCf083Be4164828f00cAE704EC15a36D711491284", "v2"),
    Factory("sushiswap", "0xc35DADB65012eC5796536bD9864eD8773aBc74C4", "v2"),
    Factory("dfyn", "0xE7Fb3e833eFE5F9c441105EB65Ef8b261266423B", "v2"),
    Factory("jetswap", "0x668ad0ed2622C62E24f0d5ab6B6Ac1b9D2cD4AC7", "v2"),
    Factory("uniswap_v3", "0x1F98431c8aD98523631AE4a59f267346ea31F984", "v3", V3_FEE_TIERS),
]

_CATALOG = {
    Network.POLYGON: {
        "base": POLYGON_BASE_TOKENS,
        "quote": POLYGON_QUOTE_TOKENS,
        "extra": POLYGON_EXTRA_TOKENS,
        "factories": POLYGON_FACTORIES,
        "wrapped_native": WMATIC,
    },
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _catalog(network) -> dict:
    network = Network.parse(network)
    try:
        return _CATALOG[network]
    except KeyError:
        raise ConfigError(f"Unsupported network: {network.value}")


def get_tokens(network) -> Tuple[Dict[str, Token], Dict[str, Token]]:
    """(base tokens, quote tokens) for a network"""
    cat = _catalog(network)
    return cat["base"], cat["quote"]


def get_extra_tokens(network) -> Dict[str, Token]:
    return _catalog(network)["extra"]


def get_factories(network, version: Optional[str] = None) -> List[Factory]:
    factories = _catalog(network)["factories"]
    if version is None:
        return list(factories)
    return [f for f in factories if f.version == version]


def wrapped_native(network) -> Token:
    return _catalog(network)["wrapped_native"]


def all_tokens(network) -> Dict[str, Token]:
    cat = _catalog(network)
    merged = {}
    for table in (cat["base"], cat["quote"], cat["extra"]):
        merged.update(table)
    return merged


def get_token(address: str, network=Network.POLYGON) -> Optional[Token]:
    """Get token by address (checksummed or not)"""
    addr = Web3.to_checksum_address(address)
    for token in all_tokens(network).values():
        if token.address == addr:
            return token
    return None


def get_symbol(address: str, network=Network.POLYGON) -> str:
    token = get_token(address, network)
    return token.symbol if token else address[:10]


def get_decimals(address: str, network=Network.POLYGON) -> int:
    token = get_token(address, network)
    return token.decimals if token else 18
