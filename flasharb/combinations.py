# flasharb/combinations.py
"""
Combination Generator
Enumerates the token cycles the bot watches. Pure functions over the catalog.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Iterable, List, Optional

from flasharb.tokens import Token


@dataclass
class TokenCombination:
    """
    A token cycle and, once resolved, one pool per hop.
    Hop i trades addresses[i] -> addresses[(i + 1) % n] in pairs[i].
    """
    symbols: str
    addresses: List[str]
    pairs: List[str] = field(default_factory=list)
    versions: List[str] = field(default_factory=list)
    fees: List[Optional[int]] = field(default_factory=list)

    @property
    def is_resolved(self) -> bool:
        return len(self.pairs) == len(self.addresses) and len(self.addresses) >= 2

    @property
    def base_token(self) -> str:
        return self.addresses[0]

    def hops(self):
        """(token_in, token_out, pool, version, fee) for every hop of the cycle"""
        n = len(self.addresses)
        for i in range(n):
            version = self.versions[i] if i < len(self.versions) else "v2"
            fee = self.fees[i] if i < len(self.fees) else None
            yield self.addresses[i], self.addresses[(i + 1) % n], self.pairs[i], version, fee

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "TokenCombination":
        return cls(
            symbols=data["symbols"],
            addresses=list(data["addresses"]),
            pairs=list(data.get("pairs", [])),
            versions=list(data.get("versions", [])),
            fees=list(data.get("fees", [])),
        )


def _combo(*tokens: Token) -> TokenCombination:
    return TokenCombination(
        symbols="-".join(t.symbol for t in tokens),
        addresses=[t.address for t in tokens],
    )


def generate_triples(
    base_tokens: Dict[str, Token],
    quote_tokens: Dict[str, Token],
) -> List[TokenCombination]:
    """
    Every ordered (base, quote1, quote2) with quote1 != quote2.
    m base and n quote tokens give m * n * (n - 1) combinations; rotations
    of the same triangle are not collapsed.
    """
    combos = []
    for base in base_tokens.values():
        for key1, quote1 in quote_tokens.items():
            for key2, quote2 in quote_tokens.items():
                if key1 == key2:
                    continue
                combos.append(_combo(base, quote1, quote2))
    return combos


def derive_intermediates(
    base_tokens: Dict[str, Token],
    quote_tokens: Dict[str, Token],
    universe: Iterable[Token],
) -> List[Token]:
    """Tokens that are neither base nor quote tokens"""
    excluded = {t.address for t in base_tokens.values()}
    excluded |= {t.address for t in quote_tokens.values()}
    seen = set()
    out = []
    for token in universe:
        if token.address in excluded or token.address in seen:
            continue
        seen.add(token.address)
        out.append(token)
    return out


def generate_intermediate_triples(
    base_tokens: Dict[str, Token],
    quote_tokens: Dict[str, Token],
    intermediates: Iterable[Token],
) -> List[TokenCombination]:
    """(base, quote, intermediate) triangles"""
    intermediates = list(intermediates)
    combos = []
    for base in base_tokens.values():
        for quote in quote_tokens.values():
            for mid in intermediates:
                combos.append(_combo(base, quote, mid))
    return combos


def generate_pairs(
    base_tokens: Dict[str, Token],
    quote_tokens: Dict[str, Token],
) -> List[TokenCombination]:
    """(base, quote) two-token cycles for cross-exchange arbitrage"""
    return [
        _combo(base, quote)
        for base in base_tokens.values()
        for quote in quote_tokens.values()
    ]
