"""Ledger access: the client protocol, its web3 implementation and event feeds."""

from .client import LedgerClient, ProposalRecord
from .events import EventKind, LedgerEvent, ProposalCreatedEvent, VotedEvent
from .stream import EventStream
from .web3_client import Web3LedgerClient

__all__ = [
    "LedgerClient",
    "ProposalRecord",
    "EventKind",
    "LedgerEvent",
    "ProposalCreatedEvent",
    "VotedEvent",
    "EventStream",
    "Web3LedgerClient",
]
