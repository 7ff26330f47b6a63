"""
Per-account cache of "has voted" flags.

Entries are only ever set from explicit ``hasVoted`` reads. The ledger
enforces one vote per account and proposal, so a True entry is final: it is
never re-read, and a later False read for it is treated as a flap and
ignored.
"""

import asyncio
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from governance_sync.ledger.client import LedgerClient
from governance_sync.shared.exceptions import TransientReadError
from governance_sync.shared.logging import get_logger
from governance_sync.shared.results import Result

DEFAULT_MAX_CONCURRENCY = 16

SOURCE = "vote_status_cache"


class VoteStatusCache:
    def __init__(
        self,
        client: LedgerClient,
        account: Optional[str] = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ):
        self.client = client
        self.account = account
        self.max_concurrency = max_concurrency
        self._entries: Mapping[Tuple[int, str], bool] = MappingProxyType({})
        self._write_lock = asyncio.Lock()
        self._closed = False
        self._log = get_logger(__name__)

    def status_of(self, proposal_id: int) -> bool:
        """Whether the connected account has voted; False when unknown."""
        if self.account is None:
            return False
        return self._entries.get((proposal_id, self.account), False)

    def statuses(self) -> Dict[int, bool]:
        """Known statuses of the connected account, by proposal id."""
        return {
            proposal_id: voted
            for (proposal_id, account), voted in self._entries.items()
            if account == self.account
        }

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    async def refresh(self, ids: Iterable[int]) -> Result[Dict[int, bool]]:
        """
        Re-read the connected account's vote status for ``ids``.

        Ids already known as voted are skipped. A failed read keeps the
        prior value and is reported as a warning.

        Returns:
            Result with the statuses that were read, by proposal id.
        """
        result: Result[Dict[int, bool]] = Result.ok({})
        account = self.account
        if account is None:
            return result

        wanted = [i for i in sorted(set(ids)) if not self.status_of(i)]
        if not wanted:
            return result

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def read_one(proposal_id: int):
            async with semaphore:
                try:
                    voted = await self.client.get_vote_status(
                        proposal_id, account
                    )
                    return proposal_id, voted, None
                except TransientReadError as e:
                    return proposal_id, None, e

        outcomes = await asyncio.gather(*(read_one(i) for i in wanted))

        async with self._write_lock:
            if self._closed:
                self._log.debug("Cache closed; discarding vote status refresh")
                return result

            entries = dict(self._entries)
            for proposal_id, voted, error in outcomes:
                key = (proposal_id, account)
                if error is not None:
                    message = (
                        f"Vote status for proposal {proposal_id} not "
                        f"refreshed: {error}"
                    )
                    self._log.warning(message)
                    result.add_warning(
                        SOURCE,
                        message,
                        context={"proposal_id": proposal_id, "account": account},
                        exception=error,
                    )
                    continue
                if entries.get(key) and not voted:
                    # Only reachable if a True landed while this read was in flight.
                    self._log.warning(
                        "Ignoring hasVoted=False for proposal %d: already voted",
                        proposal_id,
                    )
                    continue
                entries[key] = bool(voted)
                result.data[proposal_id] = bool(voted)

            self._entries = MappingProxyType(entries)

        return result
