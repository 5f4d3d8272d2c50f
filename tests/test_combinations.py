from flasharb.combinations import (
    TokenCombination, derive_intermediates, generate_intermediate_triples,
    generate_pairs, generate_triples,
)
from flasharb.tokens import Network, all_tokens, get_tokens


def test_triple_count_is_m_n_n_minus_1():
    base, quote = get_tokens(Network.POLYGON)
    m, n = len(base), len(quote)
    combos = generate_triples(base, quote)
    assert len(combos) == m * n * (n - 1)


def test_triples_start_at_base_with_distinct_quotes():
    base, quote = get_tokens("polygon")
    base_addresses = {t.address for t in base.values()}
    for combo in generate_triples(base, quote):
        assert combo.addresses[0] in base_addresses
        assert combo.addresses[1] != combo.addresses[2]
        assert combo.symbols.count("-") == 2
        assert combo.pairs == []


def test_intermediates_exclude_base_and_quote():
    base, quote = get_tokens("polygon")
    mids = derive_intermediates(base, quote, all_tokens("polygon").values())
    excluded = {t.address for t in base.values()} | {t.address for t in quote.values()}
    assert mids
    assert not any(t.address in excluded for t in mids)

    combos = generate_intermediate_triples(base, quote, mids)
    assert len(combos) == len(base) * len(quote) * len(mids)


def test_pairs():
    base, quote = get_tokens("polygon")
    pairs = generate_pairs(base, quote)
    assert len(pairs) == len(base) * len(quote)
    assert all(len(c.addresses) == 2 for c in pairs)


def test_resolved_invariant_and_hops():
    combo = TokenCombination("A-B-C", ["a", "b", "c"], pairs=["p1", "p2"])
    assert not combo.is_resolved
    combo.pairs.append("p3")
    assert combo.is_resolved
    hops = list(combo.hops())
    assert hops[2][:3] == ("c", "a", "p3")
    assert hops[0][3] == "v2"


def test_dict_round_trip():
    combo = TokenCombination("A-B", ["a", "b"], ["p1", "p2"], ["v2", "v3"], [None, 500])
    assert TokenCombination.from_dict(combo.to_dict()) == combo
