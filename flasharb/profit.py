# flasharb/profit.py
"""
Profit Estimator
Integer-only constant-product swap simulation along a cyclic path.
Floor division at every hop, no rounding correction, matching on-chain math.
"""

from decimal import Decimal
from typing import Optional, Sequence, Tuple

from flasharb.config import BotConfig
from flasharb.errors import UnusableHop
from flasharb.tokens import wrapped_native

Hop = Tuple[int, int]  # (reserve_in, reserve_out) in smallest token units


def get_amount_out(amount_in: int, reserve_in: int, reserve_out: int) -> int:
    if reserve_in <= 0 or reserve_out <= 0:
        raise UnusableHop(f"Empty reserves ({reserve_in}, {reserve_out})")
    return amount_in * reserve_out // (reserve_in + amount_in)


def simulate_path(hops: Sequence[Hop], amount: int) -> int:
    """Amount of the start token after swapping through every hop"""
    for reserve_in, reserve_out in hops:
        amount = get_amount_out(amount, reserve_in, reserve_out)
    return amount


def estimate_profit(hops: Sequence[Hop], amount: int, gas_fee: int = 0) -> int:
    """final - borrowed - gas; negative values are returned as-is"""
    return simulate_path(hops, amount) - amount - gas_fee


def gas_fee_in_token(config: BotConfig, token: str, decimals: int = 18) -> int:
    """
    gas_price * gas_limit in the start token's smallest unit.
    The wrapped native token is the gas asset, so wei carry over 1:1. Any
    other start token takes the fee as the same number of whole tokens,
    rescaled to its decimals; the USD conversion happens afterwards, in
    to_accounting_units.
    """
    fee_wei = config.gas_fee_wei
    if _is_native(token, config):
        return fee_wei
    return fee_wei * 10**decimals // 10**18


def to_accounting_units(
    profit: int,
    token: str,
    config: BotConfig,
    decimals: int = 18,
    native_price_usd: Optional[Decimal] = None,
) -> Decimal:
    """
    Profit in USD for comparison with config.minimum_profit.
    Wrapped native is priced through the oracle, stable bases at 1.
    """
    amount = Decimal(profit) / Decimal(10**decimals)
    if _is_native(token, config):
        if native_price_usd is None:
            raise ValueError("native price required to value a wrapped-native profit")
        return amount * native_price_usd
    return amount


def _is_native(token: str, config: BotConfig) -> bool:
    return token.lower() == wrapped_native(config.network).address.lower()
