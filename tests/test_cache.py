import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from flasharb.cache import load_combinations, save_combinations, try_load_combinations
from flasharb.errors import CacheError


def test_missing_file_is_none(tmp_path):
    assert load_combinations(tmp_path / "nope.json") is None


def test_cache_short_circuits_resolution(config, triangle):
    save_combinations(config.cache_file, [triangle])
    resolve = AsyncMock(return_value=[])

    combos = asyncio.run(try_load_combinations(config, resolve))

    resolve.assert_not_awaited()
    assert combos == [triangle]


def test_resolves_and_writes_when_missing(config, triangle):
    resolve = AsyncMock(return_value=[triangle])
    combos = asyncio.run(try_load_combinations(config, resolve))
    resolve.assert_awaited_once()
    assert combos == [triangle]
    assert config.cache_file.name == "combinations-polygon.json"
    assert load_combinations(config.cache_file) == [triangle]


@pytest.mark.parametrize("content", [
    "{not json",
    json.dumps({"symbols": "A-B"}),
    json.dumps([{"addresses": ["a", "b"]}]),
    json.dumps([{"symbols": "A-B-C", "addresses": ["a", "b", "c"], "pairs": ["p1", "p2"]}]),
])
def test_malformed_cache_is_fatal(config, content):
    config.cache_file.write_text(content)
    resolve = AsyncMock(return_value=[])
    with pytest.raises(CacheError):
        asyncio.run(try_load_combinations(config, resolve))
    resolve.assert_not_awaited()
