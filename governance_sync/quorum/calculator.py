"""
Quorum progress on exact raw weight.

Quorum is a numeric comparison the contract enforces on ``voteCount``, so
every figure here is computed from the raw (undecoded) weight with integer
arithmetic. The decoded display count is never used.
"""

from dataclasses import dataclass
from typing import Optional

from governance_sync.ledger.client import LedgerClient
from governance_sync.shared.exceptions import (
    ThresholdUnavailable,
    TransientReadError,
)
from governance_sync.shared.logging import get_logger


@dataclass(frozen=True)
class QuorumProgress:
    percentage: int  # 0-100
    remaining: int  # raw weight still missing
    reached: bool
    threshold: Optional[int] = None


def _round_half_up_percentage(current: int, threshold: int) -> int:
    # round(100 * current / threshold) with halves rounded up, exact
    return (200 * current + threshold) // (2 * threshold)


def progress(current: int, threshold: Optional[int]) -> QuorumProgress:
    """
    Progress of ``current`` raw weight toward ``threshold``.

    A zero or missing threshold reports 0% and not reached.
    """
    if current < 0:
        raise ValueError(f"current weight must not be negative, got {current}")
    if threshold is None or threshold <= 0:
        return QuorumProgress(
            percentage=0, remaining=0, reached=False, threshold=threshold
        )

    percentage = min(max(_round_half_up_percentage(current, threshold), 0), 100)
    return QuorumProgress(
        percentage=percentage,
        remaining=max(threshold - current, 0),
        reached=current >= threshold,
        threshold=threshold,
    )


class QuorumCalculator:
    """Caches the quorum threshold for a session and derives progress."""

    def __init__(self, client: LedgerClient):
        self.client = client
        self._threshold: Optional[int] = None
        self._log = get_logger(__name__)

    @property
    def threshold(self) -> Optional[int]:
        return self._threshold

    def require_threshold(self) -> int:
        if self._threshold is None:
            raise ThresholdUnavailable("Quorum threshold was never fetched")
        return self._threshold

    async def load_threshold(self) -> Optional[int]:
        """Fetch the threshold once; later calls return the cached value."""
        if self._threshold is None:
            await self.refresh_threshold()
        return self._threshold

    async def refresh_threshold(self) -> Optional[int]:
        """Re-read the threshold; on failure the cached value is kept."""
        try:
            self._threshold = await self.client.get_quorum_threshold()
        except TransientReadError as e:
            self._log.warning("Could not read quorum threshold: %s", e)
        return self._threshold

    def progress(self, current: int, threshold: Optional[int]) -> QuorumProgress:
        return progress(current, threshold)

    def progress_for(self, current: int) -> QuorumProgress:
        """Progress against the cached threshold (0% when unavailable)."""
        try:
            threshold = self.require_threshold()
        except ThresholdUnavailable:
            self._log.debug("No quorum threshold yet; progress reported as zero")
            return progress(current, None)
        return progress(current, threshold)
