"""
Pytest configuration and shared fixtures.

This module provides an in-memory ledger and common sample data for all
tests.
"""

import asyncio
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from governance_sync.ledger.events import EventKind, LedgerEvent, VotedEvent
from governance_sync.ledger.stream import EventStream
from governance_sync.shared.exceptions import TransientReadError

VOTER = "0x52f541764E6e90eeBc5c21Ff570De0e2D63766B6"
OTHER_VOTER = "0x7E1444BA99dcdFfE8fBdb42C02fb0DA4AAAcE4d5"
RECIPIENT = "0xD533a949740bb3306d119CC777fa900bA034cd52"

ONE_VOTE = 10**9  # raw weight of one token holder at 18 decimals
DEADLINE = 1764806400


def make_record(
    description: str = "Fund the grants round",
    recipient: str = RECIPIENT,
    amount: int = 10**18,
    weight: int = 0,
    deadline: int = DEADLINE,
    executed: bool = False,
) -> Tuple[Any, ...]:
    """A ``proposals(id)`` tuple as the contract returns it."""
    return (description, recipient, amount, weight, deadline, executed)


class FakeLedgerClient:
    """
    In-memory LedgerClient.

    Proposal ids are the keys of ``records``; the count is ``len(records)``.
    Failure switches and gates let tests steer individual reads.
    """

    def __init__(
        self,
        records: Optional[Dict[int, Tuple[Any, ...]]] = None,
        threshold: Optional[int] = 10 * ONE_VOTE,
        voter: str = VOTER,
    ):
        self.records: Dict[int, Tuple[Any, ...]] = dict(records or {})
        self.threshold = threshold
        self.voter = voter
        self.votes: Dict[Tuple[int, str], bool] = {}
        self.block_number = 100
        self.block_timestamps: Dict[int, int] = {}
        self.events: List[LedgerEvent] = []
        self.token_balances: Dict[str, int] = {}
        self.contract_balance = 0

        # Failure switches
        self.failing_ids: Set[int] = set()
        self.failing_vote_ids: Set[int] = set()
        self.failing_blocks: Set[int] = set()
        self.fail_count = False
        self.fail_threshold = False
        self.fail_block_number = False
        self.fail_events = False
        self.fail_balance = False

        # Reads wait on these events when present
        self.gates: Dict[int, asyncio.Event] = {}

        # Call log
        self.count_reads = 0
        self.proposal_reads: List[int] = []
        self.vote_status_reads: List[int] = []
        self.threshold_reads = 0
        self.streams: List[EventStream] = []
        self.submitted: List[int] = []

    # Reads

    async def get_proposal_count(self) -> int:
        self.count_reads += 1
        if self.fail_count:
            raise TransientReadError("getProposalCount failed: timeout")
        return len(self.records)

    async def get_proposal_by_id(self, proposal_id: int) -> Tuple[Any, ...]:
        self.proposal_reads.append(proposal_id)
        gate = self.gates.get(proposal_id)
        if gate is not None:
            await gate.wait()
        if proposal_id in self.failing_ids or proposal_id not in self.records:
            raise TransientReadError(
                f"proposals({proposal_id}) failed: timeout",
                proposal_id=proposal_id,
            )
        return self.records[proposal_id]

    async def get_vote_status(self, proposal_id: int, account: str) -> bool:
        self.vote_status_reads.append(proposal_id)
        if proposal_id in self.failing_vote_ids:
            raise TransientReadError(
                f"hasVoted({proposal_id}) failed: timeout",
                proposal_id=proposal_id,
            )
        return self.votes.get((proposal_id, account), False)

    async def get_quorum_threshold(self) -> int:
        self.threshold_reads += 1
        if self.fail_threshold:
            raise TransientReadError("quorum failed: timeout")
        return self.threshold

    async def get_token_balance(self, account: str) -> int:
        if self.fail_balance:
            raise TransientReadError("balanceOf failed: timeout")
        return self.token_balances.get(account, 0)

    async def get_contract_balance(self) -> int:
        if self.fail_balance:
            raise TransientReadError("getBalance failed: timeout")
        return self.contract_balance

    async def get_block_number(self) -> int:
        if self.fail_block_number:
            raise TransientReadError("blockNumber failed: connection refused")
        return self.block_number

    async def get_block_timestamp(self, block_number: int) -> int:
        if block_number in self.failing_blocks:
            raise TransientReadError(f"getBlock({block_number}) failed")
        return self.block_timestamps.get(block_number, 1_700_000_000 + block_number)

    async def get_events(
        self, kind: EventKind, from_block: int, to_block: int
    ) -> List[LedgerEvent]:
        if self.fail_events:
            raise ConnectionError("getLogs failed")
        return [
            e
            for e in self.events
            if e.kind is kind and from_block <= e.block_number <= to_block
        ]

    def subscribe(
        self,
        kind: EventKind,
        poll_interval: float,
        from_block: Optional[int] = None,
    ) -> EventStream:
        stream = EventStream(
            kind,
            self.get_block_number,
            self.get_events,
            poll_interval=poll_interval,
            from_block=from_block,
        )
        self.streams.append(stream)
        return stream

    async def submit_vote(self, proposal_id: int) -> Dict[str, Any]:
        self.submitted.append(proposal_id)
        self.votes[(proposal_id, self.voter)] = True
        record = list(self.records[proposal_id])
        record[3] += ONE_VOTE
        self.records[proposal_id] = tuple(record)
        self.block_number += 1
        return {
            "transaction_hash": "0x" + "ab" * 32,
            "block_number": self.block_number,
            "status": 1,
            "gas_used": 52000,
            "voter": self.voter,
        }

    # Helpers

    def emit(self, event: LedgerEvent) -> None:
        """Append an event and advance the head to its block."""
        self.events.append(event)
        self.block_number = max(self.block_number, event.block_number)

    def cast_vote(
        self, proposal_id: int, voter: str = OTHER_VOTER, weight: int = ONE_VOTE
    ) -> VotedEvent:
        """Apply a vote to the ledger state and return its event."""
        record = list(self.records[proposal_id])
        record[3] += weight
        self.records[proposal_id] = tuple(record)
        self.votes[(proposal_id, voter)] = True
        return VotedEvent(
            proposal_id=proposal_id,
            block_number=self.block_number + 1,
            transaction_hash="0x" + f"{proposal_id:02x}" * 32,
            voter=voter,
            support=True,
            votes=weight,
        )


@pytest.fixture
def sample_records() -> Dict[int, Tuple[Any, ...]]:
    """Eight proposals with ids 0-7 and growing weights."""
    return {
        i: make_record(description=f"Proposal {i}", weight=i * ONE_VOTE)
        for i in range(8)
    }


@pytest.fixture
def ledger(sample_records) -> FakeLedgerClient:
    """In-memory ledger preloaded with the sample proposals."""
    return FakeLedgerClient(sample_records)


@pytest.fixture
def empty_ledger() -> FakeLedgerClient:
    return FakeLedgerClient()


@pytest.fixture
def ledger_factory():
    """The FakeLedgerClient class, for tests that build their own ledger."""
    return FakeLedgerClient


@pytest.fixture
def voter() -> str:
    """Connected account used across tests."""
    return VOTER


@pytest.fixture
def record_factory():
    """Factory for ``proposals(id)`` tuples."""
    return make_record


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: mark test as slow-running")
