"""
Unit tests for the web3-backed ledger client.

The contract and connection are mocked; calls still run through the
executor and the retry policy.
"""

from unittest.mock import ANY, MagicMock

import pytest
from eth_utils import to_checksum_address

from governance_sync.ledger.events import EventKind, VotedEvent
from governance_sync.ledger.stream import EventStream
from governance_sync.ledger.web3_client import Web3LedgerClient
from governance_sync.shared.config import LedgerConfig
from governance_sync.shared.exceptions import (
    ConfigurationException,
    TransactionError,
    TransientReadError,
)
from governance_sync.shared.retry import RetryConfig

CONTRACT = "0xD533a949740bb3306d119CC777fa900bA034cd52"
VOTER = "0x52f541764E6e90eeBc5c21Ff570De0e2D63766B6"


@pytest.fixture
def web3_service():
    service = MagicMock()
    service.get_contract.return_value = MagicMock()
    return service


def make_client(web3_service, private_key=None, attempts=2, token_address=None):
    config = LedgerConfig(
        rpc_url="http://localhost:8545",
        contract_address=CONTRACT,
        private_key=private_key,
        token_address=token_address,
    )
    return Web3LedgerClient(
        config,
        web3_service=web3_service,
        retry_config=RetryConfig(max_attempts=attempts, base_delay=0),
    )


class TestReads:
    @pytest.mark.asyncio
    async def test_proposal_count(self, web3_service):
        client = make_client(web3_service)
        client.contract.functions.getProposalCount.return_value.call.return_value = 3

        assert await client.get_proposal_count() == 3

    @pytest.mark.asyncio
    async def test_proposal_by_id_returns_tuple(self, web3_service):
        client = make_client(web3_service)
        proposals = client.contract.functions.proposals
        proposals.return_value.call.return_value = [
            "Fund the grants round",
            VOTER,
            10**18,
            10**9,
            1764806400,
            False,
        ]

        record = await client.get_proposal_by_id(2)

        proposals.assert_called_with(2)
        assert record == ("Fund the grants round", VOTER, 10**18, 10**9, 1764806400, False)

    @pytest.mark.asyncio
    async def test_failed_read_is_retried_then_wrapped(self, web3_service):
        client = make_client(web3_service, attempts=2)
        call = client.contract.functions.proposals.return_value.call
        call.side_effect = ConnectionError("connection reset")

        with pytest.raises(TransientReadError) as exc_info:
            await client.get_proposal_by_id(5)

        assert exc_info.value.proposal_id == 5
        assert call.call_count == 2

    @pytest.mark.asyncio
    async def test_vote_status_checksums_account(self, web3_service):
        client = make_client(web3_service)
        has_voted = client.contract.functions.hasVoted
        has_voted.return_value.call.return_value = True

        assert await client.get_vote_status(1, VOTER.lower()) is True
        has_voted.assert_called_with(1, to_checksum_address(VOTER))

    @pytest.mark.asyncio
    async def test_block_timestamp(self, web3_service):
        web3_service.get_block.return_value = {"number": 120, "timestamp": 1764806400}
        client = make_client(web3_service)

        assert await client.get_block_timestamp(120) == 1764806400
        web3_service.get_block.assert_called_with(120)

    @pytest.mark.asyncio
    async def test_get_events(self, web3_service):
        client = make_client(web3_service)
        get_logs = client.contract.events.Voted.return_value.get_logs
        get_logs.return_value = [
            {
                "args": {"proposalId": 1, "voter": VOTER, "support": True, "votes": 10**9},
                "blockNumber": 101,
                "transactionHash": bytes.fromhex("ab" * 32),
                "logIndex": 0,
            }
        ]

        events = await client.get_events(EventKind.VOTED, 100, 105)

        get_logs.assert_called_with(from_block=100, to_block=105)
        assert len(events) == 1
        assert isinstance(events[0], VotedEvent)
        assert events[0].proposal_id == 1

    def test_subscribe_returns_stream(self, web3_service):
        client = make_client(web3_service)
        stream = client.subscribe(EventKind.VOTED, poll_interval=1.0, from_block=50)

        assert isinstance(stream, EventStream)
        assert stream.kind is EventKind.VOTED
        assert stream.next_block == 50


class TestBalances:
    TOKEN = "0x7E1444BA99dcdFfE8fBdb42C02fb0DA4AAAcE4d5"

    @pytest.mark.asyncio
    async def test_token_balance(self, web3_service):
        client = make_client(web3_service, token_address=self.TOKEN)
        balance_of = client.token_contract.functions.balanceOf
        balance_of.return_value.call.return_value = 4 * 10**18

        assert await client.get_token_balance(VOTER.lower()) == 4 * 10**18
        balance_of.assert_called_with(to_checksum_address(VOTER))
        web3_service.get_contract.assert_any_call(self.TOKEN, ANY)

    @pytest.mark.asyncio
    async def test_token_balance_needs_token_address(self, web3_service):
        client = make_client(web3_service)

        assert client.token_contract is None
        with pytest.raises(ConfigurationException, match="GOV_TOKEN_ADDRESS"):
            await client.get_token_balance(VOTER)

    @pytest.mark.asyncio
    async def test_contract_balance(self, web3_service):
        web3_service.get_balance.return_value = 3 * 10**17
        client = make_client(web3_service)

        assert await client.get_contract_balance() == 3 * 10**17
        web3_service.get_balance.assert_called_with(CONTRACT)

    @pytest.mark.asyncio
    async def test_contract_balance_failure_is_transient(self, web3_service):
        web3_service.get_balance.side_effect = ConnectionError("refused")
        client = make_client(web3_service)

        with pytest.raises(TransientReadError, match="getBalance"):
            await client.get_contract_balance()


class TestSubmitVote:
    @pytest.mark.asyncio
    async def test_requires_private_key(self, web3_service):
        client = make_client(web3_service)

        with pytest.raises(ConfigurationException):
            await client.submit_vote(1)

    def _wire_transaction(self, web3_service, status):
        eth = web3_service.w3.eth
        account = MagicMock()
        account.address = VOTER
        eth.account.from_key.return_value = account
        eth.get_transaction_count.return_value = 7
        eth.send_raw_transaction.return_value = bytes.fromhex("cd" * 32)
        eth.wait_for_transaction_receipt.return_value = {
            "blockNumber": 130,
            "status": status,
            "gasUsed": 51234,
        }
        return account

    @pytest.mark.asyncio
    async def test_signs_and_sends(self, web3_service):
        account = self._wire_transaction(web3_service, status=1)
        client = make_client(web3_service, private_key="0x" + "11" * 32)

        receipt = await client.submit_vote(3)

        client.contract.functions.vote.assert_called_with(3)
        tx_params = client.contract.functions.vote.return_value.build_transaction.call_args.args[0]
        assert tx_params["from"] == VOTER
        assert tx_params["nonce"] == 7
        assert tx_params["chainId"] == 11155111
        account.sign_transaction.assert_called_once()
        assert receipt == {
            "transaction_hash": "0x" + "cd" * 32,
            "block_number": 130,
            "status": 1,
            "gas_used": 51234,
            "voter": VOTER,
        }

    @pytest.mark.asyncio
    async def test_failed_receipt_raises(self, web3_service):
        self._wire_transaction(web3_service, status=0)
        client = make_client(web3_service, private_key="0x" + "11" * 32)

        with pytest.raises(TransactionError):
            await client.submit_vote(3)
