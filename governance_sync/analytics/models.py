"""
Data models for dashboard statistics and activity history.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class DashboardStats:
    """Headline numbers over the committed proposal collection."""

    total: int
    active: int
    executed: int
    expired: int
    total_votes: int  # sum of decoded display counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "active": self.active,
            "executed": self.executed,
            "expired": self.expired,
            "total_votes": self.total_votes,
        }


@dataclass(frozen=True)
class Activity:
    """One ledger event placed in time."""

    type: str  # "proposal" or "vote"
    proposal_id: Optional[int]
    timestamp: int
    block_number: int
    transaction_hash: str
    actor: Optional[str] = None  # proposer or voter
    description: Optional[str] = None
    votes: Optional[int] = None  # decoded display count of the vote

    @property
    def key(self) -> str:
        if self.type == "proposal":
            return f"proposal-{self.proposal_id}"
        return f"vote-{self.transaction_hash}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.key,
            "type": self.type,
            "proposal_id": self.proposal_id,
            "timestamp": self.timestamp,
            "block_number": self.block_number,
            "transaction_hash": self.transaction_hash,
            "actor": self.actor,
            "description": self.description,
            "votes": self.votes,
        }
