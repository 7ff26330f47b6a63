"""
Dashboard statistics and recent activity.

Both are read-side views: the dashboard is computed from a committed
proposal list, and the activity history is a one-shot scan of recent
ProposalCreated/Voted logs.
"""

import asyncio
import time
from typing import Dict, Iterable, List, Optional

from governance_sync.analytics.models import Activity, DashboardStats
from governance_sync.ledger.client import LedgerClient
from governance_sync.ledger.events import (
    EventKind,
    LedgerEvent,
    ProposalCreatedEvent,
)
from governance_sync.proposals.models import Proposal, ProposalStatus
from governance_sync.shared.exceptions import TransientReadError
from governance_sync.shared.logging import get_logger
from governance_sync.shared.results import Result
from governance_sync.votes.weight import WeightDecoder

# Free-tier RPC endpoints cap eth_getLogs ranges.
DEFAULT_LOOKBACK_BLOCKS = 10

log = get_logger(__name__)


def compute_dashboard(
    proposals: Iterable[Proposal], now: Optional[int] = None
) -> DashboardStats:
    now = int(time.time()) if now is None else now
    counts = {status: 0 for status in ProposalStatus}
    total = 0
    total_votes = 0
    for proposal in proposals:
        total += 1
        counts[proposal.status(now)] += 1
        total_votes += proposal.vote_count

    return DashboardStats(
        total=total,
        active=counts[ProposalStatus.ACTIVE],
        executed=counts[ProposalStatus.EXECUTED],
        expired=counts[ProposalStatus.EXPIRED],
        total_votes=total_votes,
    )


def _to_activity(
    event: LedgerEvent, timestamp: int, decoder: WeightDecoder
) -> Activity:
    if isinstance(event, ProposalCreatedEvent):
        return Activity(
            type="proposal",
            proposal_id=event.proposal_id,
            timestamp=timestamp,
            block_number=event.block_number,
            transaction_hash=event.transaction_hash,
            actor=event.proposer,
            description=event.description,
        )
    return Activity(
        type="vote",
        proposal_id=event.proposal_id,
        timestamp=timestamp,
        block_number=event.block_number,
        transaction_hash=event.transaction_hash,
        actor=event.voter,
        votes=decoder.decode(event.votes) if event.votes is not None else None,
    )


async def fetch_activity(
    client: LedgerClient,
    lookback_blocks: int = DEFAULT_LOOKBACK_BLOCKS,
    decoder: Optional[WeightDecoder] = None,
) -> Result[List[Activity]]:
    """
    Recent proposal and vote activity, newest first.

    Events whose block timestamp cannot be read are skipped with a warning.
    """
    decoder = decoder or WeightDecoder()
    try:
        head = await client.get_block_number()
        from_block = max(head - lookback_blocks, 0)
        created, voted = await asyncio.gather(
            client.get_events(EventKind.PROPOSAL_CREATED, from_block, head),
            client.get_events(EventKind.VOTED, from_block, head),
        )
    except TransientReadError as e:
        return Result.fail_with_message(
            "activity", f"Could not read activity: {e}", exception=e
        )

    events: List[LedgerEvent] = [*created, *voted]
    log.debug(
        "Found %d proposal and %d vote events in blocks %d-%d",
        len(created),
        len(voted),
        from_block,
        head,
    )

    result: Result[List[Activity]] = Result.ok([])
    timestamps: Dict[int, int] = {}
    for block_number in sorted({e.block_number for e in events}):
        try:
            timestamps[block_number] = await client.get_block_timestamp(
                block_number
            )
        except TransientReadError as e:
            result.add_warning(
                "activity",
                f"Skipping events of block {block_number}: {e}",
                context={"block_number": block_number},
                exception=e,
            )

    activities = [
        _to_activity(event, timestamps[event.block_number], decoder)
        for event in events
        if event.block_number in timestamps
    ]
    activities.sort(key=lambda a: (a.timestamp, a.block_number), reverse=True)
    result.data = activities
    return result
