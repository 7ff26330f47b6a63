"""
ProposalStore - materialized view of every proposal on the ledger

This store handles:
1. Full refresh: read the proposal count, then every record concurrently
2. Targeted refresh: re-read only the ids an event referenced
3. Lock-free reads of the last committed snapshot

Consistency rules:
- Reads happen outside the write lock; only the commit is serialized
- A commit swaps the whole snapshot mapping, records are frozen dataclasses
- A failed count read leaves the previous snapshot untouched
- A record whose read failed keeps its previous version (stale-but-present)
- A record that fails to decode is left out of a full refresh
- ``executed`` never reverts and ``deadline`` never changes once committed
- After close(), nothing is committed any more
"""

import asyncio
from dataclasses import replace
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from governance_sync.ledger.client import LedgerClient
from governance_sync.proposals.models import Proposal
from governance_sync.shared.exceptions import DecodeError, TransientReadError
from governance_sync.shared.logging import get_logger
from governance_sync.shared.results import Result
from governance_sync.votes.weight import WeightDecoder

DEFAULT_MAX_CONCURRENCY = 16

SOURCE = "proposal_store"


class ProposalStore:
    """
    Owns the proposal collection for one ledger connection.

    Attributes:
        client: Ledger capability used for reads
        decoder: Raw weight decoder applied to every record
        proposal_count: Last count read from the ledger (None before the first full refresh)
    """

    def __init__(
        self,
        client: LedgerClient,
        decoder: Optional[WeightDecoder] = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ):
        self.client = client
        self.decoder = decoder or WeightDecoder()
        self.max_concurrency = max_concurrency
        self.proposal_count: Optional[int] = None
        self._snapshot: Mapping[int, Proposal] = MappingProxyType({})
        self._write_lock = asyncio.Lock()
        self._closed = False
        self._log = get_logger(__name__)

    # ------------------------------------------------------------------
    # Read side (lock-free)
    # ------------------------------------------------------------------

    def get(self, proposal_id: int) -> Optional[Proposal]:
        return self._snapshot.get(proposal_id)

    def snapshot(self) -> Mapping[int, Proposal]:
        """The last committed collection, read-only."""
        return self._snapshot

    @property
    def proposals(self) -> List[Proposal]:
        """Committed proposals ordered by id."""
        snapshot = self._snapshot
        return [snapshot[i] for i in sorted(snapshot)]

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop committing; in-flight refreshes finish but are discarded."""
        self._closed = True

    # ------------------------------------------------------------------
    # Ledger reads
    # ------------------------------------------------------------------

    async def _read_records(
        self, ids: Iterable[int]
    ) -> List[Tuple[int, Optional[Proposal], Optional[Exception]]]:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def read_one(proposal_id: int):
            async with semaphore:
                try:
                    record = await self.client.get_proposal_by_id(proposal_id)
                    return (
                        proposal_id,
                        Proposal.from_record(proposal_id, record, self.decoder),
                        None,
                    )
                except (TransientReadError, DecodeError) as e:
                    return proposal_id, None, e

        return await asyncio.gather(*(read_one(i) for i in ids))

    def _reconcile(self, fresh: Proposal) -> Proposal:
        """Apply the monotonic field rules against the committed record."""
        current = self._snapshot.get(fresh.id)
        if current is None:
            return fresh

        changes = {}
        if current.executed and not fresh.executed:
            self._log.warning(
                "Proposal %d read back as not executed; keeping executed=True",
                fresh.id,
            )
            changes["executed"] = True
        if current.deadline != fresh.deadline:
            self._log.warning(
                "Proposal %d deadline changed from %d to %d; keeping the original",
                fresh.id,
                current.deadline,
                fresh.deadline,
            )
            changes["deadline"] = current.deadline

        if not changes:
            return fresh
        return replace(fresh, **changes)

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    async def load_all(self) -> Result[List[Proposal]]:
        """
        Re-read every proposal and replace the collection atomically.

        Returns:
            Result with the committed proposals; per-record problems are
            attached as warnings. Fails only when the count cannot be read.
        """
        try:
            count = await self.client.get_proposal_count()
        except TransientReadError as e:
            self._log.warning("Could not read proposal count: %s", e)
            return Result.fail_with_message(
                SOURCE,
                f"Could not read proposal count: {e}",
                exception=e,
            )

        outcomes = await self._read_records(range(count))
        result: Result[List[Proposal]] = Result.ok([])

        async with self._write_lock:
            if self._closed:
                self._log.debug("Store closed; discarding full refresh")
                return result

            committed: Dict[int, Proposal] = {}
            for proposal_id, proposal, error in outcomes:
                if proposal is not None:
                    committed[proposal_id] = self._reconcile(proposal)
                    continue

                previous = self._snapshot.get(proposal_id)
                if isinstance(error, TransientReadError) and previous is not None:
                    committed[proposal_id] = previous
                    message = f"Proposal {proposal_id} kept stale: {error}"
                else:
                    message = f"Proposal {proposal_id} dropped: {error}"
                self._log.warning(message)
                result.add_warning(
                    SOURCE,
                    message,
                    context={"proposal_id": proposal_id},
                    exception=error,
                )

            self._snapshot = MappingProxyType(committed)
            self.proposal_count = count
            result.data = [committed[i] for i in sorted(committed)]

        self._log.debug(
            "Full refresh committed %d/%d proposals", len(committed), count
        )
        return result

    async def refresh_only(self, ids: Iterable[int]) -> Result[List[Proposal]]:
        """
        Re-read exactly ``ids`` and merge them by id.

        Every other committed record is left untouched. A record that
        cannot be read or decoded keeps its committed version.

        Returns:
            Result with the records that were merged, warnings for the rest.
        """
        wanted = sorted(set(ids))
        outcomes = await self._read_records(wanted)
        result: Result[List[Proposal]] = Result.ok([])

        async with self._write_lock:
            if self._closed:
                self._log.debug("Store closed; discarding targeted refresh")
                return result

            merged = dict(self._snapshot)
            updated: List[Proposal] = []
            for proposal_id, proposal, error in outcomes:
                if proposal is None:
                    message = f"Proposal {proposal_id} not refreshed: {error}"
                    self._log.warning(message)
                    result.add_warning(
                        SOURCE,
                        message,
                        context={"proposal_id": proposal_id},
                        exception=error,
                    )
                    continue
                proposal = self._reconcile(proposal)
                merged[proposal_id] = proposal
                updated.append(proposal)

            if updated:
                self._snapshot = MappingProxyType(merged)

        result.data = updated
        return result
