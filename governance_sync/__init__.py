"""Governance Sync - keeps a local view of a quadratic governance ledger."""

__version__ = "0.1.0"

from .ledger import Web3LedgerClient
from .shared.config import LedgerConfig
from .sync import LedgerContext

__all__ = ["LedgerConfig", "LedgerContext", "Web3LedgerClient"]
