"""Runtime configuration for the ledger connection"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
from eth_utils import is_address, to_checksum_address

from governance_sync.shared.exceptions import ConfigurationException

load_dotenv()

SEPOLIA_CHAIN_ID = 11155111

DEFAULT_POLL_INTERVAL = 4.0
DEFAULT_FULL_SYNC_INTERVAL = 300.0
DEFAULT_MAX_CONCURRENCY = 16
DEFAULT_TOKEN_DECIMALS = 18


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationException(
            f"Invalid {name}: {raw!r} is not a valid {cast.__name__}"
        )


def _env_address(name: str, required: bool) -> Optional[str]:
    raw = os.getenv(name) or None
    if raw is None:
        if required:
            raise ConfigurationException(f"{name} is not set")
        return None
    if not is_address(raw):
        raise ConfigurationException(
            f"Invalid {name}: {raw} is not a valid Ethereum address"
        )
    return to_checksum_address(raw)


@dataclass(frozen=True)
class LedgerConfig:
    """Connection and sync settings for one governance contract."""

    rpc_url: str
    contract_address: str
    chain_id: int = SEPOLIA_CHAIN_ID
    account: Optional[str] = None
    private_key: Optional[str] = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    full_sync_interval: float = DEFAULT_FULL_SYNC_INTERVAL
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    token_decimals: int = DEFAULT_TOKEN_DECIMALS
    webhook_url: Optional[str] = None
    token_address: Optional[str] = None

    @classmethod
    def from_env(cls, account: Optional[str] = None) -> "LedgerConfig":
        """
        Build the config from GOV_* environment variables.

        An explicit ``account`` overrides GOV_ACCOUNT.
        """
        rpc_url = os.getenv("GOV_RPC_URL") or None
        if not rpc_url:
            raise ConfigurationException("GOV_RPC_URL is not set")

        if account is not None:
            if not is_address(account):
                raise ConfigurationException(
                    f"Invalid account: {account} is not a valid Ethereum address"
                )
            account = to_checksum_address(account)
        else:
            account = _env_address("GOV_ACCOUNT", required=False)

        config = cls(
            rpc_url=rpc_url,
            contract_address=_env_address(
                "GOV_CONTRACT_ADDRESS", required=True
            ),
            chain_id=_env_number("GOV_CHAIN_ID", SEPOLIA_CHAIN_ID, int),
            account=account,
            private_key=os.getenv("GOV_PRIVATE_KEY") or None,
            poll_interval=_env_number(
                "GOV_POLL_INTERVAL", DEFAULT_POLL_INTERVAL, float
            ),
            full_sync_interval=_env_number(
                "GOV_FULL_SYNC_INTERVAL", DEFAULT_FULL_SYNC_INTERVAL, float
            ),
            max_concurrency=_env_number(
                "GOV_MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENCY, int
            ),
            webhook_url=os.getenv("GOV_WEBHOOK_URL") or None,
            token_decimals=_env_number(
                "GOV_TOKEN_DECIMALS", DEFAULT_TOKEN_DECIMALS, int
            ),
            token_address=_env_address("GOV_TOKEN_ADDRESS", required=False),
        )
        config.validate()
        return config

    def validate(self) -> None:
        if self.poll_interval <= 0:
            raise ConfigurationException("GOV_POLL_INTERVAL must be positive")
        if self.full_sync_interval < 0:
            raise ConfigurationException(
                "GOV_FULL_SYNC_INTERVAL must be zero (disabled) or positive"
            )
        if self.max_concurrency <= 0:
            raise ConfigurationException(
                "GOV_MAX_CONCURRENCY must be positive"
            )
        if self.token_decimals < 0:
            raise ConfigurationException(
                "GOV_TOKEN_DECIMALS must not be negative"
            )
