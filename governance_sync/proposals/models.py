"""
Type definitions for governance proposals.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Sequence, TypedDict

from eth_utils import is_address, to_checksum_address

from governance_sync.shared.exceptions import DecodeError
from governance_sync.votes.weight import WeightDecoder

# =============================================================================
# ENUMS
# =============================================================================


class ProposalStatus(Enum):
    """Proposal lifecycle as shown to users."""

    ACTIVE = "active"  # Not executed, deadline in the future
    EXPIRED = "expired"  # Not executed, deadline passed
    EXECUTED = "executed"  # Executed on-chain (terminal)


# =============================================================================
# TYPED DICTS (for JSON serialization)
# =============================================================================


class ProposalDict(TypedDict):
    """Proposal dictionary for JSON export. Big integers are strings."""

    id: int
    description: str
    recipient: str
    amount: str
    raw_weight: str
    vote_count: int
    deadline: int
    executed: bool


# =============================================================================
# DATACLASSES
# =============================================================================

RECORD_FIELDS = 6


def _uint(value: Any, field_name: str, proposal_id: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise DecodeError(
            f"Proposal {proposal_id}: {field_name} is not a uint ({value!r})",
            proposal_id=proposal_id,
        )
    return value


@dataclass(frozen=True)
class Proposal:
    """
    One proposal as committed in the local view.

    Instances are immutable; the store swaps whole records, so a reader
    never sees fields from two different reads.
    """

    id: int
    description: str
    recipient: str
    amount: int  # smallest unit, exact
    raw_weight: int  # accumulated quadratic weight, exact
    vote_count: int  # decoded display count
    deadline: int  # Unix seconds
    executed: bool

    @classmethod
    def from_record(
        cls,
        proposal_id: int,
        record: Sequence[Any],
        decoder: WeightDecoder,
    ) -> "Proposal":
        """
        Build a Proposal from the contract's ``proposals(id)`` tuple:
        (description, recipient, amount, voteCount, deadline, executed).

        Raises:
            DecodeError: if the tuple does not have that shape
        """
        if record is None or len(record) != RECORD_FIELDS:
            raise DecodeError(
                f"Proposal {proposal_id}: expected {RECORD_FIELDS} fields",
                proposal_id=proposal_id,
            )

        description, recipient, amount, raw_weight, deadline, executed = record

        if not isinstance(description, str):
            raise DecodeError(
                f"Proposal {proposal_id}: description is not a string",
                proposal_id=proposal_id,
            )
        if not isinstance(recipient, str) or not is_address(recipient):
            raise DecodeError(
                f"Proposal {proposal_id}: invalid recipient {recipient!r}",
                proposal_id=proposal_id,
            )
        if not isinstance(executed, bool):
            raise DecodeError(
                f"Proposal {proposal_id}: executed is not a bool",
                proposal_id=proposal_id,
            )

        raw_weight = _uint(raw_weight, "voteCount", proposal_id)
        return cls(
            id=proposal_id,
            description=description,
            recipient=to_checksum_address(recipient),
            amount=_uint(amount, "amount", proposal_id),
            raw_weight=raw_weight,
            vote_count=decoder.decode(raw_weight),
            deadline=_uint(deadline, "deadline", proposal_id),
            executed=executed,
        )

    def status(self, now: int) -> ProposalStatus:
        if self.executed:
            return ProposalStatus.EXECUTED
        if self.deadline <= now:
            return ProposalStatus.EXPIRED
        return ProposalStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return ProposalDict(
            id=self.id,
            description=self.description,
            recipient=self.recipient,
            amount=str(self.amount),
            raw_weight=str(self.raw_weight),
            vote_count=self.vote_count,
            deadline=self.deadline,
            executed=self.executed,
        )
