"""
EventReconciler - keeps the local view in step with the ledger's event feed

The reconciler handles:
1. Subscribing to ProposalCreated and Voted through cancellable event streams
2. Turning event batches into refresh requests (full or targeted)
3. Running every store/cache write through one serialized writer task
4. Degrading to a stale view and resubscribing when the feed drops
5. An optional periodic full reconciliation as a second producer

State machine:
    DISCONNECTED -> SUBSCRIBING -> LIVE -> DISCONNECTED (feed failure)
    any state -> CLOSED (teardown)

Producers (event consumers, periodic timer, explicit refresh calls) only
enqueue RefreshRequests. The writer drains the queue and coalesces what it
finds: any full request wins, otherwise the ids are unioned.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional

from governance_sync.ledger.client import LedgerClient
from governance_sync.ledger.events import EventKind, LedgerEvent, VotedEvent
from governance_sync.ledger.stream import EventStream
from governance_sync.proposals.store import ProposalStore
from governance_sync.shared.exceptions import (
    SubscriptionError,
    TransientReadError,
)
from governance_sync.shared.logging import get_logger
from governance_sync.shared.results import RefreshSummary
from governance_sync.shared.retry import RESUBSCRIBE_RETRY_CONFIG, RetryConfig
from governance_sync.sync import notifications
from governance_sync.sync.notifications import (
    LoggingNotifier,
    Notification,
    NotificationDispatcher,
)
from governance_sync.votes.status_cache import VoteStatusCache

DEFAULT_POLL_INTERVAL = 4.0
DEFAULT_CLOSE_TIMEOUT = 10.0


class ReconcilerState(Enum):
    DISCONNECTED = "disconnected"
    SUBSCRIBING = "subscribing"
    LIVE = "live"
    CLOSED = "closed"


@dataclass
class RefreshRequest:
    """One unit of work for the writer."""

    full: bool = False
    proposal_ids: FrozenSet[int] = frozenset()
    vote_status_ids: FrozenSet[int] = frozenset()
    # A caller waits on this request; it survives a feed drop.
    awaited: bool = False
    done: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    @classmethod
    def merge(cls, requests: Iterable["RefreshRequest"]) -> "RefreshRequest":
        requests = list(requests)
        return cls(
            full=any(r.full for r in requests),
            proposal_ids=frozenset().union(*(r.proposal_ids for r in requests)),
            vote_status_ids=frozenset().union(
                *(r.vote_status_ids for r in requests)
            ),
        )


class EventReconciler:
    """
    Drives targeted refreshes of the store and the vote cache from events.

    Attributes:
        state: Current ReconcilerState
        is_stale: True while the feed is down; the view may lag the ledger
        last_summary: RefreshSummary of the last write the writer performed
    """

    def __init__(
        self,
        client: LedgerClient,
        store: ProposalStore,
        votes: VoteStatusCache,
        notifier: Optional[NotificationDispatcher] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        full_sync_interval: float = 0,
        resubscribe_retry: RetryConfig = RESUBSCRIBE_RETRY_CONFIG,
        close_timeout: float = DEFAULT_CLOSE_TIMEOUT,
    ):
        self.client = client
        self.store = store
        self.votes = votes
        self.notifier = notifier or LoggingNotifier()
        self.poll_interval = poll_interval
        self.full_sync_interval = full_sync_interval
        self.resubscribe_retry = resubscribe_retry
        self.close_timeout = close_timeout

        self.state = ReconcilerState.DISCONNECTED
        self.is_stale = False
        self.last_summary: Optional[RefreshSummary] = None

        self._queue: "asyncio.Queue[Optional[RefreshRequest]]" = asyncio.Queue()
        self._streams: Dict[EventKind, EventStream] = {}
        self._consumers: Dict[EventKind, asyncio.Task] = {}
        self._writer_task: Optional[asyncio.Task] = None
        self._periodic_task: Optional[asyncio.Task] = None
        self._resubscribe_task: Optional[asyncio.Task] = None
        self._closed = asyncio.Event()
        self._log = get_logger(__name__)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, from_block: Optional[int] = None) -> None:
        """
        Start the writer, subscribe to both feeds and the periodic sync.

        ``from_block`` is the first block the feeds must cover. Callers that
        loaded the view before starting pass the block after the head they
        read before that load, so nothing mined during the load is missed.
        Without it the feeds start after the current head.
        """
        if self.closed:
            raise RuntimeError("Reconciler is closed")
        if self._writer_task is not None:
            return

        self._writer_task = asyncio.create_task(self._writer())
        try:
            await self._subscribe(from_block)
        except SubscriptionError as e:
            self._on_feed_failure(e)

        if self.full_sync_interval > 0:
            self._periodic_task = asyncio.create_task(self._periodic_full_sync())

    async def close(self) -> None:
        """
        Unsubscribe from both feeds and stop all producers.

        The writer finishes the request it is working on; the store and the
        cache are expected to be closed already so that result is discarded.
        """
        if self.closed:
            return
        self._closed.set()
        self.state = ReconcilerState.CLOSED

        self._unsubscribe_all()
        background = [
            task
            for task in (
                *self._consumers.values(),
                self._periodic_task,
                self._resubscribe_task,
            )
            if task is not None and task is not asyncio.current_task()
        ]
        for task in background:
            task.cancel()
        await asyncio.gather(*background, return_exceptions=True)
        self._consumers.clear()

        self._discard_queued()
        if self._writer_task is not None:
            self._queue.put_nowait(None)
            done, _ = await asyncio.wait(
                {self._writer_task}, timeout=self.close_timeout
            )
            if not done:
                self._log.warning("Writer did not finish in time; cancelling")
                self._writer_task.cancel()
                await asyncio.gather(self._writer_task, return_exceptions=True)

        self._log.debug("Reconciler closed")

    # ------------------------------------------------------------------
    # Subscription handling
    # ------------------------------------------------------------------

    async def _subscribe(self, from_block: Optional[int] = None) -> None:
        self.state = ReconcilerState.SUBSCRIBING
        if from_block is None:
            try:
                from_block = await self.client.get_block_number() + 1
            except TransientReadError as e:
                raise SubscriptionError(f"Could not subscribe: {e}") from e

        if self.closed:
            return

        for kind in (EventKind.PROPOSAL_CREATED, EventKind.VOTED):
            stream = self.client.subscribe(
                kind, poll_interval=self.poll_interval, from_block=from_block
            )
            self._streams[kind] = stream
            self._consumers[kind] = asyncio.create_task(self._consume(stream))

        self.state = ReconcilerState.LIVE
        self._log.info("Subscribed to ledger events from block %d", from_block)

    def _unsubscribe_all(self) -> None:
        for stream in self._streams.values():
            stream.unsubscribe()
        self._streams.clear()

    async def _consume(self, stream: EventStream) -> None:
        try:
            async for batch in stream:
                await self.handle_batch(stream.kind, batch)
        except SubscriptionError as e:
            self._on_feed_failure(e)

    def _on_feed_failure(self, error: Exception) -> None:
        if self.closed or self.state is ReconcilerState.DISCONNECTED:
            return

        self._log.warning("Event feed lost, view may be stale: %s", error)
        self.state = ReconcilerState.DISCONNECTED
        self.is_stale = True

        self._unsubscribe_all()
        current = asyncio.current_task()
        for task in self._consumers.values():
            if task is not current:
                task.cancel()
        self._consumers.clear()
        # The full refresh after resubscribing covers dropped event work;
        # explicit refresh calls still get their write.
        self._discard_queued(keep_awaited=True)

        self._notify(notifications.feed_stale(str(error)))
        self._resubscribe_task = asyncio.create_task(self._resubscribe())

    async def _resubscribe(self) -> None:
        attempt = 0
        while not self.closed:
            delay = self.resubscribe_retry.delay_for(attempt)
            try:
                await asyncio.wait_for(self._closed.wait(), timeout=delay)
                return
            except asyncio.TimeoutError:
                pass

            try:
                await self._subscribe()
            except SubscriptionError as e:
                attempt += 1
                self.state = ReconcilerState.DISCONNECTED
                self._log.warning(
                    "Resubscribe attempt %d failed: %s", attempt, e
                )
                continue

            if self.closed:
                return
            self.is_stale = False
            self._notify(notifications.feed_restored())
            # Events may have been missed while disconnected.
            self._enqueue(RefreshRequest(full=True))
            return

    # ------------------------------------------------------------------
    # Producers
    # ------------------------------------------------------------------

    async def handle_batch(
        self, kind: EventKind, events: List[LedgerEvent]
    ) -> None:
        """Turn one batch of events into a refresh request."""
        if self.closed or not events:
            return

        if kind is EventKind.PROPOSAL_CREATED:
            for event in events:
                self._notify(notifications.proposal_created(event.proposal_id))
            self._enqueue(RefreshRequest(full=True))
            return

        for event in events:
            self._notify(notifications.vote_cast(event.proposal_id))

        if any(e.proposal_id is None for e in events):
            self._log.warning(
                "Voted batch has events without a proposal id; "
                "falling back to full refresh"
            )
            self._enqueue(RefreshRequest(full=True))
            return

        self._enqueue(
            RefreshRequest(
                proposal_ids=frozenset(e.proposal_id for e in events),
                vote_status_ids=frozenset(self._own_votes(events)),
            )
        )

    def _own_votes(self, events: List[LedgerEvent]) -> List[int]:
        account = self.votes.account
        if account is None:
            return []
        return [
            e.proposal_id
            for e in events
            if isinstance(e, VotedEvent)
            and e.proposal_id is not None
            and e.voter is not None
            and e.voter.lower() == account.lower()
        ]

    async def _periodic_full_sync(self) -> None:
        while not self.closed:
            try:
                await asyncio.wait_for(
                    self._closed.wait(), timeout=self.full_sync_interval
                )
                return
            except asyncio.TimeoutError:
                pass
            self._log.debug("Periodic full reconciliation")
            self._enqueue(RefreshRequest(full=True))

    async def request_refresh(self, proposal_ids: Iterable[int]) -> None:
        """Targeted refresh of proposals and vote status; waits for the write."""
        ids = frozenset(proposal_ids)
        await self._submit(
            RefreshRequest(proposal_ids=ids, vote_status_ids=ids, awaited=True)
        )

    async def request_full_refresh(self) -> None:
        """Full refresh; waits for the write."""
        await self._submit(RefreshRequest(full=True, awaited=True))

    async def _submit(self, request: RefreshRequest) -> None:
        if self.closed:
            return
        if self._writer_task is None:
            await self._apply(request)
            return
        self._enqueue(request)
        await request.done.wait()

    # ------------------------------------------------------------------
    # Single writer
    # ------------------------------------------------------------------

    def _enqueue(self, request: RefreshRequest) -> None:
        if self.closed:
            request.done.set()
            return
        self._queue.put_nowait(request)

    def _discard_queued(self, keep_awaited: bool = False) -> None:
        kept: List[RefreshRequest] = []
        while True:
            try:
                request = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            if request is not None:
                if keep_awaited and request.awaited:
                    kept.append(request)
                else:
                    request.done.set()
            self._queue.task_done()

        for request in kept:
            self._queue.put_nowait(request)

    async def _writer(self) -> None:
        while True:
            request = await self._queue.get()
            batch = [request]
            while True:
                try:
                    batch.append(self._queue.get_nowait())
                except asyncio.QueueEmpty:
                    break

            pending = [r for r in batch if r is not None]
            try:
                if pending and not self.closed:
                    await self._apply(RefreshRequest.merge(pending))
            except Exception:
                self._log.exception("Refresh failed")
            finally:
                for r in pending:
                    r.done.set()
                for _ in batch:
                    self._queue.task_done()

            if None in batch or self.closed:
                return

    async def _apply(self, request: RefreshRequest) -> None:
        if request.full:
            summary = RefreshSummary(kind="full")
            result = await self.store.load_all()
            summary.add_error_from_result(result)
            if result.success:
                summary.records_requested = self.store.proposal_count or 0
                summary.records_committed = len(result.data or [])
                summary.records_dropped = (
                    summary.records_requested - summary.records_committed
                )
                ids = [p.id for p in self.store.proposals]
                statuses = await self.votes.refresh(ids)
                summary.add_error_from_result(statuses)
                summary.statuses_refreshed = len(statuses.data or {})
        else:
            summary = RefreshSummary(kind="targeted")
            summary.records_requested = len(request.proposal_ids)
            result = await self.store.refresh_only(request.proposal_ids)
            summary.add_error_from_result(result)
            summary.records_committed = len(result.data or [])
            summary.records_stale = (
                summary.records_requested - summary.records_committed
            )
            if request.vote_status_ids:
                statuses = await self.votes.refresh(request.vote_status_ids)
                summary.add_error_from_result(statuses)
                summary.statuses_refreshed = len(statuses.data or {})

        self.last_summary = summary
        self._log.debug("Refresh done: %s", summary.to_dict()["counts"])

    def _notify(self, notification: Notification) -> None:
        try:
            self.notifier.notify(notification)
        except Exception:
            self._log.exception("Notification dispatcher failed")
