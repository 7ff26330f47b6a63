"""
Cancellable event stream over polled contract logs.

An EventStream is an async iterator of non-empty event batches for one
event kind. It remembers the last block it delivered, so every block is
covered exactly once while the stream is alive. Iteration ends after
``unsubscribe()``; a transport failure raises SubscriptionError and also
ends the stream (a new stream must be opened to resume).
"""

import asyncio
from typing import Awaitable, Callable, List, Optional

from governance_sync.ledger.events import EventKind, LedgerEvent
from governance_sync.shared.exceptions import SubscriptionError
from governance_sync.shared.logging import get_logger

log = get_logger(__name__)

BlockNumberReader = Callable[[], Awaitable[int]]
EventReader = Callable[[EventKind, int, int], Awaitable[List[LedgerEvent]]]


class EventStream:
    def __init__(
        self,
        kind: EventKind,
        get_block_number: BlockNumberReader,
        get_events: EventReader,
        poll_interval: float,
        from_block: Optional[int] = None,
    ):
        self.kind = kind
        self._get_block_number = get_block_number
        self._get_events = get_events
        self.poll_interval = poll_interval
        self._next_block = from_block
        self._closed = asyncio.Event()
        self._failed = False

    @property
    def closed(self) -> bool:
        return self._closed.is_set() or self._failed

    @property
    def next_block(self) -> Optional[int]:
        return self._next_block

    def unsubscribe(self) -> None:
        """Stop the stream; a pending ``__anext__`` returns promptly."""
        self._closed.set()

    def __aiter__(self) -> "EventStream":
        return self

    async def __anext__(self) -> List[LedgerEvent]:
        while True:
            if self.closed:
                raise StopAsyncIteration

            try:
                batch = await self._poll_once()
            except Exception as e:
                self._failed = True
                raise SubscriptionError(
                    f"{self.kind.value} feed failed: {e}"
                ) from e

            if self._closed.is_set():
                raise StopAsyncIteration
            if batch:
                return batch

            try:
                await asyncio.wait_for(
                    self._closed.wait(), timeout=self.poll_interval
                )
            except asyncio.TimeoutError:
                pass

    async def _poll_once(self) -> List[LedgerEvent]:
        head = await self._get_block_number()
        if self._next_block is None:
            # Live-only: start after the current head.
            self._next_block = head + 1
            return []
        if head < self._next_block:
            return []

        events = await self._get_events(self.kind, self._next_block, head)
        self._next_block = head + 1
        log.debug(
            "%s: %d event(s) up to block %d",
            self.kind.value,
            len(events),
            head,
        )
        return sorted(events, key=lambda e: (e.block_number, e.log_index))
