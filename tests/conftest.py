import pytest

from flasharb.config import load_config
from flasharb.tokens import POLYGON_QUOTE_TOKENS, WMATIC

E18 = 10**18

# Profitable triangle in 1e18 units: WMATIC -> LINK -> ETH -> WMATIC
FORWARD_HOPS = [(10 * E18, 5000 * E18), (10 * E18, 6000 * E18), (7000 * E18, 10 * E18)]

LINK = POLYGON_QUOTE_TOKENS["link"]
ETH = POLYGON_QUOTE_TOKENS["eth"]


def addr(n: int) -> str:
    return "0x" + f"{n:040x}"


@pytest.fixture
def config(tmp_path):
    return load_config("polygon", env_path=None, cache_dir=tmp_path)


@pytest.fixture
def triangle():
    from flasharb.combinations import TokenCombination
    return TokenCombination(
        symbols="WMATIC-LINK-ETH",
        addresses=[WMATIC.address, LINK.address, ETH.address],
        pairs=[addr(1), addr(2), addr(3)],
        versions=["v2", "v2", "v2"],
        fees=[None, None, None],
    )
