"""
Unit tests for raw vote weight decoding.
"""

from math import isqrt

import pytest

from governance_sync.votes.weight import (
    WeightDecoder,
    decode,
    format_vote_display,
    weight_unit,
)


class TestDecode:
    def test_zero_weight_decodes_to_zero(self):
        assert decode(0) == 0

    def test_one_token_holder_is_one_vote(self):
        """sqrt(1e18) raw weight is one vote at 18 decimals."""
        assert weight_unit(18) == 10**9
        assert decode(10**9) == 1

    def test_rounds_down(self):
        assert decode(10**9 - 1) == 0
        assert decode(2 * 10**9 + 999_999_999) == 2

    def test_monotonic(self):
        weights = [0, 1, 10**9 - 1, 10**9, 3 * 10**9, 10**12, 10**15 + 7]
        decoded = [decode(w) for w in weights]
        assert decoded == sorted(decoded)

    def test_beyond_float_range_is_exact(self):
        raw = 10**40 + 123456789
        assert decode(raw) == raw // 10**9
        assert decode(raw + 10**9) == decode(raw) + 1

    def test_other_decimals(self):
        decoder = WeightDecoder(token_decimals=6)
        assert decoder.unit == 1000
        assert decoder.decode(5000) == 5

    def test_odd_decimals_use_integer_sqrt(self):
        assert weight_unit(3) == 31  # isqrt(1000)

    @pytest.mark.parametrize("bad", [-1, 1.5, "10", None, True])
    def test_rejects_invalid_input(self, bad):
        with pytest.raises(ValueError):
            decode(bad)

    def test_negative_decimals_rejected(self):
        with pytest.raises(ValueError):
            WeightDecoder(token_decimals=-1)


class TestVotingPower:
    def test_quadratic(self):
        decoder = WeightDecoder()
        assert decoder.voting_power(100 * 10**18) == 10
        assert decoder.voting_power(99 * 10**18) == 9
        assert decoder.voting_power(0) == 0

    def test_matches_decode_for_a_single_voter(self):
        """Decoding one voter's raw contribution gives their voting power."""
        decoder = WeightDecoder()
        balance = 400 * 10**18
        assert decoder.decode(isqrt(balance)) == decoder.voting_power(balance)


class TestFormatVoteDisplay:
    def test_singular(self):
        assert format_vote_display(1) == "1 vote"

    def test_plural(self):
        assert format_vote_display(0) == "0 votes"
        assert format_vote_display(42) == "42 votes"
