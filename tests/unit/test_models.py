"""
Unit tests for the Proposal model.
"""

import pytest

from governance_sync.proposals.models import Proposal, ProposalStatus
from governance_sync.shared.exceptions import DecodeError
from governance_sync.votes.weight import WeightDecoder

RECIPIENT = "0xd533a949740bb3306d119cc777fa900ba034cd52"


def record(**overrides):
    fields = {
        "description": "Fund the grants round",
        "recipient": RECIPIENT,
        "amount": 5 * 10**18,
        "weight": 3 * 10**9,
        "deadline": 2_000_000_000,
        "executed": False,
    }
    fields.update(overrides)
    return tuple(fields.values())


class TestFromRecord:
    def test_decodes_contract_tuple(self):
        proposal = Proposal.from_record(4, record(), WeightDecoder())

        assert proposal.id == 4
        assert proposal.description == "Fund the grants round"
        assert proposal.recipient == "0xD533a949740bb3306d119CC777fa900bA034cd52"
        assert proposal.amount == 5 * 10**18
        assert proposal.raw_weight == 3 * 10**9
        assert proposal.vote_count == 3
        assert proposal.deadline == 2_000_000_000
        assert proposal.executed is False

    def test_wrong_length(self):
        with pytest.raises(DecodeError) as exc_info:
            Proposal.from_record(1, record()[:5], WeightDecoder())
        assert exc_info.value.proposal_id == 1

    def test_none_record(self):
        with pytest.raises(DecodeError):
            Proposal.from_record(1, None, WeightDecoder())

    @pytest.mark.parametrize(
        "overrides",
        [
            {"recipient": "not-an-address"},
            {"amount": -1},
            {"weight": True},
            {"deadline": "tomorrow"},
            {"executed": 1},
            {"description": b"bytes"},
        ],
    )
    def test_malformed_fields(self, overrides):
        with pytest.raises(DecodeError):
            Proposal.from_record(2, record(**overrides), WeightDecoder())

    def test_immutable(self):
        proposal = Proposal.from_record(0, record(), WeightDecoder())
        with pytest.raises(AttributeError):
            proposal.executed = True


class TestStatus:
    def test_active_before_deadline(self):
        proposal = Proposal.from_record(0, record(deadline=200), WeightDecoder())
        assert proposal.status(now=100) is ProposalStatus.ACTIVE

    def test_expired_at_deadline(self):
        proposal = Proposal.from_record(0, record(deadline=200), WeightDecoder())
        assert proposal.status(now=200) is ProposalStatus.EXPIRED

    def test_executed_wins(self):
        proposal = Proposal.from_record(
            0, record(deadline=200, executed=True), WeightDecoder()
        )
        assert proposal.status(now=100) is ProposalStatus.EXECUTED
        assert proposal.status(now=300) is ProposalStatus.EXECUTED


def test_to_dict_stringifies_big_integers():
    proposal = Proposal.from_record(
        7, record(amount=10**30, weight=10**25), WeightDecoder()
    )
    data = proposal.to_dict()

    assert data["id"] == 7
    assert data["amount"] == str(10**30)
    assert data["raw_weight"] == str(10**25)
    assert data["vote_count"] == 10**16
    assert data["executed"] is False
