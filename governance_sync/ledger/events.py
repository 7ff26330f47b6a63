"""
Typed ledger events.

Raw decoded logs come in as mappings shaped like web3's EventData
(``args``, ``blockNumber``, ``transactionHash``, ``logIndex``). A log whose
``proposalId`` is missing or unusable still becomes an event, with
``proposal_id=None``, so the reconciler can fall back to a full reload.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Union


class EventKind(Enum):
    """Contract events the sync engine subscribes to."""

    PROPOSAL_CREATED = "ProposalCreated"
    VOTED = "Voted"


@dataclass(frozen=True)
class ProposalCreatedEvent:
    proposal_id: Optional[int]
    block_number: int
    transaction_hash: str
    log_index: int = 0
    proposer: Optional[str] = None
    description: Optional[str] = None
    recipient: Optional[str] = None
    amount: Optional[int] = None
    deadline: Optional[int] = None

    kind = EventKind.PROPOSAL_CREATED


@dataclass(frozen=True)
class VotedEvent:
    proposal_id: Optional[int]
    block_number: int
    transaction_hash: str
    log_index: int = 0
    voter: Optional[str] = None
    support: Optional[bool] = None
    votes: Optional[int] = None

    kind = EventKind.VOTED


LedgerEvent = Union[ProposalCreatedEvent, VotedEvent]


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        result = int(value)
    except (TypeError, ValueError):
        return None
    return result if result >= 0 else None


def _as_hex(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value)


def event_from_log(kind: EventKind, log: Mapping[str, Any]) -> LedgerEvent:
    """Build a typed event from a decoded log."""
    args = log.get("args") or {}
    common = dict(
        proposal_id=_as_int(args.get("proposalId")),
        block_number=int(log.get("blockNumber") or 0),
        transaction_hash=_as_hex(log.get("transactionHash")),
        log_index=int(log.get("logIndex") or 0),
    )

    if kind is EventKind.PROPOSAL_CREATED:
        return ProposalCreatedEvent(
            proposer=args.get("proposer"),
            description=args.get("description"),
            recipient=args.get("recipient"),
            amount=_as_int(args.get("amount")),
            deadline=_as_int(args.get("deadline")),
            **common,
        )

    return VotedEvent(
        voter=args.get("voter"),
        support=args.get("support"),
        votes=_as_int(args.get("votes")),
        **common,
    )
