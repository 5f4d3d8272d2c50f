# flasharb/cache.py
"""
Combination Cache
One JSON file per network. If it exists and parses, resolution is skipped.
"""

import json
import logging
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

from flasharb.combinations import TokenCombination
from flasharb.config import BotConfig
from flasharb.errors import CacheError

logger = logging.getLogger(__name__)


def load_combinations(path: Path) -> Optional[List[TokenCombination]]:
    """None if there is no cache file; CacheError if it is unusable"""
    path = Path(path)
    if not path.exists():
        return None
    try:
        records = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise CacheError(f"Cannot read combination cache {path}: {e}")

    if not isinstance(records, list):
        raise CacheError(f"Combination cache {path} is not a JSON array")

    try:
        combos = [TokenCombination.from_dict(r) for r in records]
    except (KeyError, TypeError, AttributeError) as e:
        raise CacheError(f"Malformed record in {path}: {e}")

    for combo in combos:
        if not combo.is_resolved:
            raise CacheError(f"Cached combination {combo.symbols} has {len(combo.pairs)} pools "
                             f"for {len(combo.addresses)} tokens")
    return combos


def save_combinations(path: Path, combos: List[TokenCombination]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps([c.to_dict() for c in combos], indent=2), encoding="utf-8")


async def try_load_combinations(
    config: BotConfig,
    resolve: Callable[[], Awaitable[List[TokenCombination]]],
) -> List[TokenCombination]:
    """Load cached combinations, or resolve once and write the cache"""
    path = config.cache_file
    cached = load_combinations(path)
    if cached is not None:
        logger.info(f"Loaded {len(cached)} combinations from {path.name}")
        return cached

    combos = [c for c in await resolve() if c.is_resolved]
    save_combinations(path, combos)
    logger.info(f"Saved {len(combos)} combinations to {path.name}")
    return combos
