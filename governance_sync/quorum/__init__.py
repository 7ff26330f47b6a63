from governance_sync.quorum.calculator import (
    QuorumCalculator,
    QuorumProgress,
    progress,
)

__all__ = ["QuorumCalculator", "QuorumProgress", "progress"]
