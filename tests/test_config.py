import pytest

from flasharb.config import BORROW_SEARCH_TERNARY, load_config, require_signer
from flasharb.errors import ConfigError
from flasharb.tokens import Network, get_factories


def test_defaults(config):
    assert config.network is Network.POLYGON
    assert config.chain_id == 137
    assert config.gas_limit == 310_000
    assert config.borrow_search == BORROW_SEARCH_TERNARY
    assert config.dry_run
    assert config.cache_file.name == "combinations-polygon.json"


def test_unknown_network_rejected_at_load():
    with pytest.raises(ConfigError, match="Unsupported network"):
        load_config("solana", env_path=None)


def test_bad_overrides_rejected():
    with pytest.raises(ConfigError):
        load_config(env_path=None, borrow_search="bisect")
    with pytest.raises(ConfigError):
        load_config(env_path=None, concurrency=0)


def test_env_file(tmp_path, monkeypatch):
    # values written by load_dotenv are undone with the placeholders
    for name in ("RPC_URL", "PRIVATE_KEY", "POLYGONSCAN_API_KEY", "SUBGRAPH_URL", "FLASH_CONTRACT"):
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    env = tmp_path / ".env"
    env.write_text("RPC_URL=https://rpc.test\nPOLYGONSCAN_API_KEY=KEY123\n")

    config = load_config("POLYGON", env_path=env)

    assert config.rpc_url == "https://rpc.test"
    assert config.price_oracle_url.endswith("apikey=KEY123")
    with pytest.raises(ConfigError):
        require_signer(config)


def test_invalid_contract_address(monkeypatch):
    monkeypatch.setenv("FLASH_CONTRACT", "0xnotanaddress")
    with pytest.raises(ConfigError):
        load_config(env_path=None)


def test_factories_by_version():
    assert [f.name for f in get_factories("polygon", "v3")] == ["uniswap_v3"]
    assert len(get_factories("polygon", "v2")) == 5


def test_per_attempt_timeouts_fit_in_task_timeout(config):
    # 3 attempts and 2 backoff sleeps of 0.5s share the 10s task budget
    assert config.rpc_call_timeout == 3.0
    assert config.subgraph_request_timeout == 3.0
    worst_case = (config.rpc_retries + 1) * config.rpc_call_timeout + config.rpc_retries * config.rpc_backoff
    assert worst_case <= config.task_timeout


def test_retries_must_fit_in_task_timeout():
    with pytest.raises(ConfigError, match="no time per attempt"):
        load_config(env_path=None, task_timeout=1.0, rpc_retries=2, rpc_backoff=0.5)
    with pytest.raises(ConfigError):
        load_config(env_path=None, subgraph_retries=-1)
