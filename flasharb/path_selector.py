# flasharb/path_selector.py
"""
Path Selector
Chooses the borrow amount for a cyclic path and the best traversal of a
combination.

Reserve convention for OrderedReserves: each pool is given as (a, b) where b
is the reserve of the token that comes earlier in the cycle T0 -> T1 -> ... -> T0.
Every pool but the last is therefore traversed b -> a; the closing pool
(T_last, T0) is traversed a -> b. Pools must be listed cheapest first, with
a / b strictly ascending; any other order raises WrongInputOrder.

Two borrow searches share the same integer swap simulation:
- safety_factor_search: reference heuristic. Borrow s * min(reserves), s
  walked down from 1.00 in 0.01 steps until the profit turns positive. It
  finds *a* profitable amount, not the best one.
- ternary_search: integer ternary search on the profit curve, which is
  unimodal for constant-product cycles.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from flasharb.combinations import TokenCombination
from flasharb.config import (
    BORROW_SEARCH_SAFETY_FACTOR, BORROW_SEARCH_TERNARY,
    SAFETY_FACTOR_START, SAFETY_FACTOR_STEP, SAFETY_FACTOR_FLOOR,
)
from flasharb.errors import UnusableHop, WrongInputOrder
from flasharb.profit import Hop, estimate_profit

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class OrderedReserves:
    pools: Tuple[Tuple[int, int], ...]

    @classmethod
    def of(cls, *pools) -> "OrderedReserves":
        """Accepts (a, b) pairs or a flat a1, b1, a2, b2, ... sequence"""
        if pools and not isinstance(pools[0], (tuple, list)):
            if len(pools) % 2:
                raise ValueError("Flat reserves need an even count")
            pools = tuple(zip(pools[0::2], pools[1::2]))
        return cls(tuple((int(a), int(b)) for a, b in pools))


@dataclass(frozen=True)
class Candidate:
    """One traversal of a combination with its per-hop reserves"""
    tokens: Tuple[str, ...]
    pools: Tuple[str, ...]
    fees: Tuple[Optional[int], ...]
    versions: Tuple[str, ...]
    hops: Tuple[Hop, ...]


@dataclass(frozen=True)
class PathResult:
    tokens: Tuple[str, ...]
    pools: Tuple[str, ...]
    fees: Tuple[Optional[int], ...]
    versions: Tuple[str, ...]
    borrow_amount: int
    profit: int

    @property
    def base_token(self) -> str:
        return self.tokens[0]


# =============================================================================
# BORROW AMOUNT
# =============================================================================

def hops_from_ordered(reserves: OrderedReserves) -> List[Hop]:
    pools = list(reserves.pools)
    if len(pools) < 2:
        raise ValueError("A cycle needs at least two pools")
    hops = [(b, a) for a, b in pools[:-1]]
    a_last, b_last = pools[-1]
    hops.append((a_last, b_last))
    return hops


def check_order(reserves: OrderedReserves) -> None:
    """Price a / b must rise strictly from each pool to the next"""
    pools = reserves.pools
    for (a1, b1), (a2, b2) in zip(pools, pools[1:]):
        if a1 * b2 >= a2 * b1:
            raise WrongInputOrder()


def check_cycle_rate(hops: Sequence[Hop]) -> None:
    """A cycle whose marginal rate is <= 1 can never pay back the loan"""
    num, den = 1, 1
    for reserve_in, reserve_out in hops:
        if reserve_in <= 0 or reserve_out <= 0:
            raise UnusableHop(f"Empty reserves ({reserve_in}, {reserve_out})")
        num *= reserve_out
        den *= reserve_in
    if num <= den:
        raise WrongInputOrder()


def _min_reserve(hops: Sequence[Hop]) -> int:
    return min(min(r_in, r_out) for r_in, r_out in hops)


def safety_factor_search(
    hops: Sequence[Hop],
    gas_fee: int = 0,
    start: int = SAFETY_FACTOR_START,
    step: int = SAFETY_FACTOR_STEP,
    floor: int = SAFETY_FACTOR_FLOOR,
) -> Optional[int]:
    """
    Walk the safety factor (in thousandths) down from `start` until the
    profit at s * min_reserve is positive. None when exhausted.
    """
    min_reserve = _min_reserve(hops)
    s = start
    while s >= floor:
        amount = min_reserve * s // 1000
        if amount > 0 and estimate_profit(hops, amount, gas_fee) > 0:
            return amount
        s -= step
    return None


def ternary_search(hops: Sequence[Hop], gas_fee: int = 0) -> Optional[int]:
    """
    Profit-maximizing integer amount, or None if nothing is profitable.
    The amount is in the start token, so it is bounded by the first hop's
    input reserve; the other reserves may be in tokens with other decimals.
    """
    def profit(x):
        return estimate_profit(hops, x, gas_fee)

    lo, hi = 1, hops[0][0]
    while hi - lo > 2:
        third = (hi - lo) // 3
        m1, m2 = lo + third, hi - third
        if profit(m1) < profit(m2):
            lo = m1 + 1
        else:
            hi = m2
    best = max(range(lo, hi + 1), key=profit)
    if profit(best) <= 0:
        return None
    return best


def borrow_amount_for_hops(
    hops: Sequence[Hop],
    method: str = BORROW_SEARCH_TERNARY,
    gas_fee: int = 0,
) -> Optional[int]:
    check_cycle_rate(hops)
    if method == BORROW_SEARCH_SAFETY_FACTOR:
        return safety_factor_search(hops, gas_fee)
    if method == BORROW_SEARCH_TERNARY:
        return ternary_search(hops, gas_fee)
    raise ValueError(f"Unknown borrow search: {method}")


def calc_borrow_amount(
    reserves: OrderedReserves,
    method: str = BORROW_SEARCH_SAFETY_FACTOR,
    gas_fee: int = 0,
) -> Optional[int]:
    """Borrow amount for ordered pool reserves; raises WrongInputOrder when out of order"""
    check_order(reserves)
    return borrow_amount_for_hops(hops_from_ordered(reserves), method, gas_fee)


# =============================================================================
# PATH SELECTION
# =============================================================================

def candidate_orderings(combo: TokenCombination, hops: Sequence[Hop]) -> List[Candidate]:
    """
    Forward traversal as declared, then the reverse traversal from the same
    base token. `hops` are the forward per-hop (reserve_in, reserve_out).
    """
    n = len(combo.addresses)
    versions = tuple(combo.versions or ["v2"] * n)
    fees = tuple(combo.fees or [None] * n)

    forward = Candidate(
        tokens=tuple(combo.addresses),
        pools=tuple(combo.pairs),
        fees=fees,
        versions=versions,
        hops=tuple(hops),
    )
    reverse = Candidate(
        tokens=(combo.addresses[0],) + tuple(reversed(combo.addresses[1:])),
        pools=tuple(reversed(combo.pairs)),
        fees=tuple(reversed(fees)),
        versions=tuple(reversed(versions)),
        hops=tuple((r_out, r_in) for r_in, r_out in reversed(hops)),
    )
    return [forward, reverse]


def select_best_path(
    candidates: Sequence[Candidate],
    method: str = BORROW_SEARCH_TERNARY,
    gas_fee: int = 0,
) -> Optional[PathResult]:
    """
    Strictly greatest profit wins; on a tie the candidate examined first is
    kept. Candidates that lose money at the margin or have an empty hop are
    skipped.
    """
    best = None
    for cand in candidates:
        try:
            amount = borrow_amount_for_hops(cand.hops, method, gas_fee)
        except (WrongInputOrder, UnusableHop) as e:
            logger.debug(f"Skipping {cand.tokens}: {e}")
            continue
        if amount is None:
            continue
        profit = estimate_profit(cand.hops, amount, gas_fee)
        if best is None or profit > best.profit:
            best = PathResult(
                tokens=cand.tokens,
                pools=cand.pools,
                fees=cand.fees,
                versions=cand.versions,
                borrow_amount=amount,
                profit=profit,
            )
    return best
