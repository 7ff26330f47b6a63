from governance_sync.proposals.models import Proposal, ProposalStatus
from governance_sync.proposals.store import ProposalStore

__all__ = ["Proposal", "ProposalStatus", "ProposalStore"]
