"""
Raw vote weight decoding.

The governance contract adds ``sqrt(balance)`` to a proposal's ``voteCount``
for every voter, where ``balance`` is the voter's token balance in base
units (wei-style, ``10**decimals`` per token). The accumulated raw weight is
therefore expressed in units of ``sqrt(10**decimals)``:

    raw_weight = sum(sqrt(balance_tokens_i * 10**decimals))
               = sum(sqrt(balance_tokens_i)) * sqrt(10**decimals)

The display count is the accumulated quadratic voting power in whole-token
units, rounded down:

    display_count = raw_weight // isqrt(10**decimals)

With 18 decimals the unit is ``10**9``. The rule matches
``voting_power(balance)``, which is what a single voter contributes.
Exact integer arithmetic only, so weights beyond float range are decoded
without precision loss.

Note: this is a product decision, not something the contract defines. Other
readings of ``voteCount`` (passthrough, ratio to a constant, fourth root)
were considered and rejected; see DESIGN.md.
"""

from math import isqrt

DEFAULT_TOKEN_DECIMALS = 18


def weight_unit(token_decimals: int = DEFAULT_TOKEN_DECIMALS) -> int:
    """Raw weight contributed by a voter holding exactly one token."""
    if token_decimals < 0:
        raise ValueError("token_decimals must not be negative")
    return isqrt(10**token_decimals)


def _check_non_negative_int(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {value}")
    return value


class WeightDecoder:
    """Pure translation of raw accumulated weight into a display vote count."""

    def __init__(self, token_decimals: int = DEFAULT_TOKEN_DECIMALS):
        self.token_decimals = token_decimals
        self.unit = weight_unit(token_decimals)

    def decode(self, raw_weight: int) -> int:
        return _check_non_negative_int(raw_weight, "raw_weight") // self.unit

    def voting_power(self, balance: int) -> int:
        """Votes a single holder of ``balance`` base units contributes."""
        balance = _check_non_negative_int(balance, "balance")
        return isqrt(balance // 10**self.token_decimals)


def decode(raw_weight: int, token_decimals: int = DEFAULT_TOKEN_DECIMALS) -> int:
    """Module-level shortcut for ``WeightDecoder(token_decimals).decode``."""
    return WeightDecoder(token_decimals).decode(raw_weight)


def format_vote_display(count: int) -> str:
    """Pluralized vote label, e.g. "1 vote" or "3 votes"."""
    return f"{count} {'vote' if count == 1 else 'votes'}"
