"""
User-facing notifications raised by the sync engine.

The reconciler hands every notable transition to a NotificationDispatcher.
Dispatchers are presentation collaborators; a dispatcher that raises is
logged and otherwise ignored.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Protocol, Set

import httpx
from rich.console import Console

from governance_sync.shared.logging import get_logger
from governance_sync.shared.services.http_client import get_async_client


class NotificationKind(Enum):
    PROPOSAL_CREATED = "proposal_created"
    VOTE_CAST = "vote_cast"
    FEED_STALE = "feed_stale"
    FEED_RESTORED = "feed_restored"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    title: str
    description: str
    proposal_id: Optional[int] = None


class NotificationDispatcher(Protocol):
    def notify(self, notification: Notification) -> None:
        ...


def proposal_created(proposal_id: Optional[int]) -> Notification:
    return Notification(
        kind=NotificationKind.PROPOSAL_CREATED,
        title="New proposal created",
        description=(
            f"Proposal #{proposal_id} is now available for voting."
            if proposal_id is not None
            else "A new proposal is now available for voting."
        ),
        proposal_id=proposal_id,
    )


def vote_cast(proposal_id: Optional[int]) -> Notification:
    return Notification(
        kind=NotificationKind.VOTE_CAST,
        title="New vote cast",
        description=(
            f"Vote cast on proposal #{proposal_id}. Statistics updated."
            if proposal_id is not None
            else "A vote has been cast. Proposal statistics updated."
        ),
        proposal_id=proposal_id,
    )


def feed_stale(reason: str) -> Notification:
    return Notification(
        kind=NotificationKind.FEED_STALE,
        title="Live updates interrupted",
        description=f"Showing possibly stale data while reconnecting ({reason}).",
    )


def feed_restored() -> Notification:
    return Notification(
        kind=NotificationKind.FEED_RESTORED,
        title="Live updates restored",
        description="The event feed is back; data is being resynchronized.",
    )


class LoggingNotifier:
    """Default dispatcher: writes notifications to the log."""

    def __init__(self):
        self._log = get_logger(__name__)

    def notify(self, notification: Notification) -> None:
        if notification.kind is NotificationKind.FEED_STALE:
            self._log.warning("%s: %s", notification.title, notification.description)
        else:
            self._log.info("%s: %s", notification.title, notification.description)


class ConsoleNotifier:
    """Prints notifications to a rich console (used by ``watch``)."""

    STYLES = {
        NotificationKind.PROPOSAL_CREATED: "green",
        NotificationKind.VOTE_CAST: "cyan",
        NotificationKind.FEED_STALE: "yellow",
        NotificationKind.FEED_RESTORED: "green",
    }

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def notify(self, notification: Notification) -> None:
        style = self.STYLES.get(notification.kind, "white")
        self.console.print(
            f"[{style}]{notification.title}[/{style}] {notification.description}"
        )


class WebhookNotifier:
    """
    Posts notifications as JSON to a webhook URL.

    ``notify`` is called from the event loop and must not block, so each
    post runs as its own task. Failed posts are logged and dropped.
    """

    def __init__(self, url: str, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.client = client or get_async_client()
        self._pending: Set[asyncio.Task] = set()
        self._log = get_logger(__name__)

    def notify(self, notification: Notification) -> None:
        task = asyncio.get_running_loop().create_task(self._post(notification))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _post(self, notification: Notification) -> None:
        payload = {
            "kind": notification.kind.value,
            "title": notification.title,
            "description": notification.description,
            "proposal_id": notification.proposal_id,
        }
        try:
            response = await self.client.post(self.url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            self._log.warning("Webhook delivery failed: %s", e)

    async def drain(self) -> None:
        """Wait for posts still in flight."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)


class CompositeNotifier:
    """Fans one notification out to several dispatchers."""

    def __init__(self, dispatchers: Iterable[NotificationDispatcher]):
        self.dispatchers = list(dispatchers)
        self._log = get_logger(__name__)

    def notify(self, notification: Notification) -> None:
        for dispatcher in self.dispatchers:
            try:
                dispatcher.notify(notification)
            except Exception:
                self._log.exception(
                    "Notification dispatcher %s failed",
                    type(dispatcher).__name__,
                )
