"""
Capability interface for the remote governance ledger.

The sync engine only depends on this protocol. ``Web3LedgerClient`` is the
production implementation; tests use an in-memory fake.
"""

from typing import Any, Dict, List, Optional, Protocol, Tuple

from governance_sync.ledger.events import EventKind, LedgerEvent
from governance_sync.ledger.stream import EventStream

# (description, recipient, amount, voteCount, deadline, executed)
ProposalRecord = Tuple[Any, ...]


class LedgerClient(Protocol):
    """Read, subscribe and submit primitives against the ledger."""

    async def get_proposal_count(self) -> int:
        ...

    async def get_proposal_by_id(self, proposal_id: int) -> ProposalRecord:
        ...

    async def get_vote_status(self, proposal_id: int, account: str) -> bool:
        ...

    async def get_quorum_threshold(self) -> int:
        ...

    async def get_block_number(self) -> int:
        ...

    async def get_block_timestamp(self, block_number: int) -> int:
        ...

    async def get_events(
        self, kind: EventKind, from_block: int, to_block: int
    ) -> List[LedgerEvent]:
        ...

    def subscribe(
        self,
        kind: EventKind,
        poll_interval: float,
        from_block: Optional[int] = None,
    ) -> EventStream:
        ...

    async def submit_vote(self, proposal_id: int) -> Dict[str, Any]:
        ...

    async def get_token_balance(self, account: str) -> int:
        ...

    async def get_contract_balance(self) -> int:
        ...
