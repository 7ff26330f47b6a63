from governance_sync.votes.status_cache import VoteStatusCache
from governance_sync.votes.weight import WeightDecoder, decode

__all__ = ["VoteStatusCache", "WeightDecoder", "decode"]
