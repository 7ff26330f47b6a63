"""
Unit tests for environment-based configuration.
"""

import pytest

from governance_sync.shared.config import SEPOLIA_CHAIN_ID, LedgerConfig
from governance_sync.shared.exceptions import ConfigurationException

CONTRACT = "0xd533a949740bb3306d119cc777fa900ba034cd52"
ACCOUNT = "0x52f541764E6e90eeBc5c21Ff570De0e2D63766B6"

GOV_VARS = [
    "GOV_RPC_URL",
    "GOV_CONTRACT_ADDRESS",
    "GOV_CHAIN_ID",
    "GOV_ACCOUNT",
    "GOV_PRIVATE_KEY",
    "GOV_POLL_INTERVAL",
    "GOV_FULL_SYNC_INTERVAL",
    "GOV_MAX_CONCURRENCY",
    "GOV_TOKEN_DECIMALS",
    "GOV_WEBHOOK_URL",
    "GOV_TOKEN_ADDRESS",
]


@pytest.fixture
def env(monkeypatch):
    """Clean GOV_* environment with the two required variables set."""
    for name in GOV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GOV_RPC_URL", "https://rpc.sepolia.example")
    monkeypatch.setenv("GOV_CONTRACT_ADDRESS", CONTRACT)
    return monkeypatch


class TestFromEnv:
    def test_defaults(self, env):
        config = LedgerConfig.from_env()

        assert config.rpc_url == "https://rpc.sepolia.example"
        assert config.contract_address == "0xD533a949740bb3306d119CC777fa900bA034cd52"
        assert config.chain_id == SEPOLIA_CHAIN_ID
        assert config.account is None
        assert config.private_key is None
        assert config.poll_interval == 4.0
        assert config.full_sync_interval == 300.0
        assert config.max_concurrency == 16
        assert config.token_decimals == 18
        assert config.webhook_url is None
        assert config.token_address is None

    def test_overrides(self, env):
        env.setenv("GOV_CHAIN_ID", "1")
        env.setenv("GOV_ACCOUNT", ACCOUNT.lower())
        env.setenv("GOV_POLL_INTERVAL", "0.5")
        env.setenv("GOV_FULL_SYNC_INTERVAL", "0")
        env.setenv("GOV_MAX_CONCURRENCY", "4")
        env.setenv("GOV_WEBHOOK_URL", "https://hooks.example/gov")

        config = LedgerConfig.from_env()

        assert config.chain_id == 1
        assert config.account == ACCOUNT
        assert config.poll_interval == 0.5
        assert config.full_sync_interval == 0
        assert config.max_concurrency == 4
        assert config.webhook_url == "https://hooks.example/gov"

    def test_token_address_is_checksummed(self, env):
        env.setenv("GOV_TOKEN_ADDRESS", ACCOUNT.lower())
        assert LedgerConfig.from_env().token_address == ACCOUNT

    def test_invalid_token_address(self, env):
        env.setenv("GOV_TOKEN_ADDRESS", "gov-token")
        with pytest.raises(ConfigurationException, match="GOV_TOKEN_ADDRESS"):
            LedgerConfig.from_env()

    def test_explicit_account_wins(self, env):
        env.setenv("GOV_ACCOUNT", "0x7E1444BA99dcdFfE8fBdb42C02fb0DA4AAAcE4d5")
        config = LedgerConfig.from_env(account=ACCOUNT.lower())
        assert config.account == ACCOUNT

    def test_missing_rpc_url(self, env):
        env.delenv("GOV_RPC_URL")
        with pytest.raises(ConfigurationException, match="GOV_RPC_URL"):
            LedgerConfig.from_env()

    def test_missing_contract(self, env):
        env.delenv("GOV_CONTRACT_ADDRESS")
        with pytest.raises(ConfigurationException, match="GOV_CONTRACT_ADDRESS"):
            LedgerConfig.from_env()

    def test_invalid_contract(self, env):
        env.setenv("GOV_CONTRACT_ADDRESS", "0x1234")
        with pytest.raises(ConfigurationException, match="not a valid Ethereum address"):
            LedgerConfig.from_env()

    def test_invalid_account_argument(self, env):
        with pytest.raises(ConfigurationException):
            LedgerConfig.from_env(account="bob")

    def test_invalid_number(self, env):
        env.setenv("GOV_MAX_CONCURRENCY", "lots")
        with pytest.raises(ConfigurationException, match="GOV_MAX_CONCURRENCY"):
            LedgerConfig.from_env()

    @pytest.mark.parametrize(
        "name,value",
        [
            ("GOV_POLL_INTERVAL", "0"),
            ("GOV_FULL_SYNC_INTERVAL", "-1"),
            ("GOV_MAX_CONCURRENCY", "0"),
            ("GOV_TOKEN_DECIMALS", "-2"),
        ],
    )
    def test_out_of_range(self, env, name, value):
        env.setenv(name, value)
        with pytest.raises(ConfigurationException):
            LedgerConfig.from_env()
