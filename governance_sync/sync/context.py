"""
LedgerContext - everything that lives as long as one ledger connection

The context is constructed explicitly and handed to whatever renders the
view. It owns the proposal store, the vote status cache, the quorum
calculator and the reconciler; reconnecting tears all of them down and
builds a fresh context instead of mutating shared state.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from governance_sync.ledger.client import LedgerClient
from governance_sync.proposals.models import Proposal, ProposalStatus
from governance_sync.proposals.store import ProposalStore
from governance_sync.quorum.calculator import QuorumCalculator, QuorumProgress
from governance_sync.shared.config import LedgerConfig
from governance_sync.shared.exceptions import (
    ConfigurationException,
    TransientReadError,
)
from governance_sync.shared.logging import get_logger
from governance_sync.sync.notifications import NotificationDispatcher
from governance_sync.sync.reconciler import EventReconciler, ReconcilerState
from governance_sync.votes.status_cache import VoteStatusCache
from governance_sync.votes.weight import WeightDecoder


@dataclass(frozen=True)
class DecodedWeight:
    display_count: int
    percentage: int
    remaining: int
    reached: bool


class LedgerContext:
    """
    Lifecycle-scoped view of the governance ledger.

    Usage:
        async with LedgerContext(client, account=...) as ctx:
            for proposal in ctx.proposals:
                ...
    """

    def __init__(
        self,
        client: LedgerClient,
        account: Optional[str] = None,
        notifier: Optional[NotificationDispatcher] = None,
        token_decimals: int = 18,
        poll_interval: float = 4.0,
        full_sync_interval: float = 0,
        max_concurrency: int = 16,
    ):
        self.client = client
        self.account = account
        self.notifier = notifier
        self._settings = dict(
            token_decimals=token_decimals,
            poll_interval=poll_interval,
            full_sync_interval=full_sync_interval,
            max_concurrency=max_concurrency,
        )

        self.decoder = WeightDecoder(token_decimals)
        self.store = ProposalStore(
            client, self.decoder, max_concurrency=max_concurrency
        )
        self.votes = VoteStatusCache(
            client, account, max_concurrency=max_concurrency
        )
        self.quorum = QuorumCalculator(client)
        self.reconciler = EventReconciler(
            client,
            self.store,
            self.votes,
            notifier=notifier,
            poll_interval=poll_interval,
            full_sync_interval=full_sync_interval,
        )
        self.token_balance: Optional[int] = None
        self._started = False
        self._log = get_logger(__name__)

    @classmethod
    def from_config(
        cls,
        client: LedgerClient,
        config: LedgerConfig,
        notifier: Optional[NotificationDispatcher] = None,
        account: Optional[str] = None,
    ) -> "LedgerContext":
        """Build a context from config; ``account`` overrides config.account."""
        return cls(
            client,
            account=account or config.account,
            notifier=notifier,
            token_decimals=config.token_decimals,
            poll_interval=config.poll_interval,
            full_sync_interval=config.full_sync_interval,
            max_concurrency=config.max_concurrency,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, live: bool = True) -> "LedgerContext":
        """
        Initial load (threshold, proposals, vote status), then go live.

        With ``live=False`` only the one-shot reads are done, which is what
        the single-shot CLI commands want.
        """
        if self._started:
            return self
        self._started = True

        # Read the head before loading so the feeds cover everything mined
        # while the initial load runs.
        from_block = None
        if live:
            try:
                from_block = await self.client.get_block_number() + 1
            except TransientReadError as e:
                self._log.warning("Could not read head block before load: %s", e)

        await self.quorum.load_threshold()
        result = await self.store.load_all()
        if not result.success:
            self._log.warning(
                "Initial load failed: %s", "; ".join(result.get_error_messages())
            )
        await self.votes.refresh([p.id for p in self.store.proposals])
        if self.account is not None:
            await self.refresh_voting_power()

        if live:
            await self.reconciler.start(from_block=from_block)
            if from_block is None:
                # No pre-load head, so reload once the feeds are up.
                await self.reconciler.request_full_refresh()
        return self

    async def close(self) -> None:
        # Close the owners first so in-flight refreshes are not committed.
        self.store.close()
        self.votes.close()
        await self.reconciler.close()

    async def reconnect(self) -> "LedgerContext":
        """Tear this context down and return a fresh, started one."""
        await self.close()
        fresh = LedgerContext(
            self.client,
            account=self.account,
            notifier=self.notifier,
            **self._settings,
        )
        return await fresh.start()

    async def __aenter__(self) -> "LedgerContext":
        return await self.start()

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Read-only accessors for the presentation layer
    # ------------------------------------------------------------------

    @property
    def proposals(self) -> List[Proposal]:
        return self.store.proposals

    def get(self, proposal_id: int) -> Optional[Proposal]:
        return self.store.get(proposal_id)

    @property
    def state(self) -> ReconcilerState:
        return self.reconciler.state

    @property
    def is_stale(self) -> bool:
        return self.reconciler.is_stale

    @property
    def quorum_threshold(self) -> Optional[int]:
        return self.quorum.threshold

    def vote_count(self, proposal_id: int) -> Optional[int]:
        proposal = self.store.get(proposal_id)
        return proposal.vote_count if proposal else None

    def quorum_progress(self, proposal_id: int) -> Optional[QuorumProgress]:
        proposal = self.store.get(proposal_id)
        if proposal is None:
            return None
        return self.quorum.progress_for(proposal.raw_weight)

    def decoded_weight(self, proposal_id: int) -> Optional[DecodedWeight]:
        proposal = self.store.get(proposal_id)
        if proposal is None:
            return None
        progress = self.quorum.progress_for(proposal.raw_weight)
        return DecodedWeight(
            display_count=proposal.vote_count,
            percentage=progress.percentage,
            remaining=progress.remaining,
            reached=progress.reached,
        )

    def has_voted(self, proposal_id: int) -> bool:
        return self.votes.status_of(proposal_id)

    def vote_statuses(self) -> Dict[int, bool]:
        return self.votes.statuses()

    @property
    def voting_power(self) -> int:
        """Votes the connected account would add; 0 when the balance is unknown."""
        if self.token_balance is None:
            return 0
        return self.decoder.voting_power(self.token_balance)

    def vote_blocker(
        self, proposal_id: int, now: Optional[int] = None
    ) -> Optional[str]:
        """Why the connected account cannot vote on a proposal, or None."""
        proposal = self.store.get(proposal_id)
        if proposal is None:
            return "Proposal not found"
        if self.account is None:
            return "No account connected"
        if self.has_voted(proposal_id):
            return "Already voted"

        now = int(time.time()) if now is None else now
        status = proposal.status(now)
        if status is ProposalStatus.EXECUTED:
            return "Executed"
        if status is ProposalStatus.EXPIRED:
            return "Expired"
        if self.voting_power == 0:
            return "No voting power"
        return None

    def can_vote(self, proposal_id: int, now: Optional[int] = None) -> bool:
        return self.vote_blocker(proposal_id, now) is None

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def refresh_one(self, proposal_id: int) -> Optional[Proposal]:
        """Refresh one proposal and its vote status ahead of the next event."""
        await self.reconciler.request_refresh([proposal_id])
        return self.store.get(proposal_id)

    async def refresh_threshold(self) -> Optional[int]:
        return await self.quorum.refresh_threshold()

    async def refresh_voting_power(self) -> int:
        """Re-read the account's token balance; on failure the last one is kept."""
        if self.account is None:
            return 0
        try:
            self.token_balance = await self.client.get_token_balance(self.account)
        except (TransientReadError, ConfigurationException) as e:
            self._log.warning("Could not read token balance: %s", e)
        return self.voting_power

    async def treasury_balance(self) -> Optional[int]:
        """Native balance held by the governance contract, None if unreadable."""
        try:
            return await self.client.get_contract_balance()
        except TransientReadError as e:
            self._log.warning("Could not read contract balance: %s", e)
            return None

    async def submit_vote(self, proposal_id: int) -> Dict[str, Any]:
        """Cast a vote through the client, then refresh that proposal."""
        receipt = await self.client.submit_vote(proposal_id)
        await self.refresh_one(proposal_id)
        return receipt
