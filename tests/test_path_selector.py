import pytest

from flasharb.config import BORROW_SEARCH_SAFETY_FACTOR, BORROW_SEARCH_TERNARY
from flasharb.errors import WrongInputOrder
from flasharb.path_selector import (
    Candidate, OrderedReserves, borrow_amount_for_hops, calc_borrow_amount, candidate_orderings,
    check_order, hops_from_ordered, select_best_path, ternary_search,
)
from flasharb.profit import estimate_profit
from tests.conftest import E18, FORWARD_HOPS

ORDERED = OrderedReserves.of(
    (5000 * E18, 10 * E18),
    (6000 * E18, 10 * E18),
    (7000 * E18, 10 * E18),
)


def test_ordered_reserves_to_hops():
    assert hops_from_ordered(ORDERED) == FORWARD_HOPS


def test_safety_factor_regression():
    amount = calc_borrow_amount(ORDERED)
    assert abs(amount - 45 * E18 // 10) <= E18 // 100


def test_wrong_input_order():
    swapped = OrderedReserves.of(
        (10 * E18, 5000 * E18),
        (10 * E18, 6000 * E18),
        (10 * E18, 7000 * E18),
    )
    with pytest.raises(WrongInputOrder, match="Wrong input order"):
        calc_borrow_amount(swapped)
    with pytest.raises(ValueError):
        calc_borrow_amount(swapped, method=BORROW_SEARCH_TERNARY)


def test_calc_borrow_amount_small_pools():
    amount = calc_borrow_amount(OrderedReserves.of(
        5000 * E18, 10 * E18, 6000 * E18, 10 * E18, 7000 * E18, 10 * E18,
    ))
    assert abs(amount - 45 * E18 // 10) <= E18 // 100


def test_calc_borrow_amount_wrong_order():
    reserves = OrderedReserves.of(
        1_000_000_000 * E18, 300_000 * E18,
        1_200_000_000 * E18, 600_000 * E18,
        1_400_000_000 * E18, 900_000 * E18,
    )
    with pytest.raises(WrongInputOrder, match="Wrong input order"):
        calc_borrow_amount(reserves)
    with pytest.raises(WrongInputOrder):
        calc_borrow_amount(reserves, method=BORROW_SEARCH_TERNARY)


def test_calc_borrow_amount_large_pools():
    reserves = OrderedReserves.of(
        1_200_000_000 * E18, 600_000 * E18,
        1_000_000_000 * E18, 300_000 * E18,
        800_000_000 * E18, 200_000 * E18,
    )
    hops = hops_from_ordered(reserves)
    for method in (BORROW_SEARCH_SAFETY_FACTOR, BORROW_SEARCH_TERNARY):
        amount = calc_borrow_amount(reserves, method)
        assert amount is not None and amount > 0
        assert estimate_profit(hops, amount) > 0


def test_calc_borrow_amount_descending_prices():
    # 12e6 / 6000 is dearer than 1000 / 30
    reserves = OrderedReserves.of(
        12_000_000 * E18, 6000 * E18, 1000 * E18, 30 * E18, 500 * E18, 10 * E18,
    )
    with pytest.raises(WrongInputOrder):
        calc_borrow_amount(reserves)


def test_check_order_equal_prices():
    with pytest.raises(WrongInputOrder):
        check_order(OrderedReserves.of((100, 10), (200, 20)))
    check_order(OrderedReserves.of((100, 10), (201, 20)))


def test_ternary_search_mixed_decimals():
    # 18-decimal start token, an 8-decimal middle token
    hops = [
        (1_000_000 * E18, 20 * 10**8),
        (20 * 10**8, 300 * E18),
        (300 * E18, 1_020_000 * E18),
    ]
    gas_fee = 62 * 10**15
    amount = ternary_search(hops, gas_fee)
    assert amount is not None
    assert amount > 20 * 10**8
    assert estimate_profit(hops, amount, gas_fee) > 30 * E18
    assert borrow_amount_for_hops(hops, BORROW_SEARCH_TERNARY, gas_fee) == amount


def test_ternary_beats_safety_factor():
    safe = calc_borrow_amount(ORDERED, BORROW_SEARCH_SAFETY_FACTOR)
    best = calc_borrow_amount(ORDERED, BORROW_SEARCH_TERNARY)
    assert estimate_profit(FORWARD_HOPS, best) >= estimate_profit(FORWARD_HOPS, safe)
    assert estimate_profit(FORWARD_HOPS, best) > 0


def test_unknown_search_method():
    with pytest.raises(ValueError):
        calc_borrow_amount(ORDERED, method="bisect")


def test_reverse_ordering(triangle):
    forward, reverse = candidate_orderings(triangle, FORWARD_HOPS)
    a, b, c = triangle.addresses
    p1, p2, p3 = triangle.pairs
    assert forward.tokens == (a, b, c)
    assert reverse.tokens == (a, c, b)
    assert reverse.pools == (p3, p2, p1)
    assert reverse.hops == (
        (10 * E18, 7000 * E18),
        (6000 * E18, 10 * E18),
        (5000 * E18, 10 * E18),
    )


def test_losing_direction_is_skipped(triangle):
    # the declared direction loses; the reverse traversal is the profitable one
    losing = [(r_out, r_in) for r_in, r_out in reversed(FORWARD_HOPS)]
    forward, reverse = candidate_orderings(triangle, losing)
    best = select_best_path([forward, reverse])
    assert best is not None
    assert best.tokens == reverse.tokens
    assert best.profit > 0


def test_tie_goes_to_first_candidate():
    first = Candidate(("A", "B", "C"), ("p1", "p2", "p3"), (None,) * 3, ("v2",) * 3, tuple(FORWARD_HOPS))
    second = Candidate(("A", "C", "B"), ("p3", "p2", "p1"), (None,) * 3, ("v2",) * 3, tuple(FORWARD_HOPS))
    best = select_best_path([first, second])
    assert best.tokens == ("A", "B", "C")
    assert select_best_path([second, first]).tokens == ("A", "C", "B")


def test_nothing_profitable():
    flat = Candidate(("A", "B"), ("p1", "p2"), (None, None), ("v2", "v2"), ((100, 100), (100, 100)))
    assert select_best_path([flat]) is None
