"""
Web3-backed LedgerClient for the quadratic governance voting contract.

Every contract call is a blocking web3 request, so it runs in the default
executor and goes through the RPC retry policy. Reads that still fail are
raised as TransientReadError; the sync engine decides what stays stale.
"""

import asyncio
from functools import partial
from typing import Any, Callable, Dict, List, Optional

from eth_utils import to_checksum_address

from governance_sync.ledger.client import ProposalRecord
from governance_sync.ledger.events import (
    EventKind,
    LedgerEvent,
    event_from_log,
)
from governance_sync.ledger.stream import EventStream
from governance_sync.shared.abi import (
    GOVERNANCE_TOKEN_ABI,
    QUADRATIC_GOVERNANCE_VOTING_ABI,
)
from governance_sync.shared.config import LedgerConfig
from governance_sync.shared.exceptions import (
    ConfigurationException,
    TransactionError,
    TransientReadError,
)
from governance_sync.shared.logging import get_logger
from governance_sync.shared.retry import RPC_RETRY_CONFIG, RetryConfig
from governance_sync.shared.services.web3_service import Web3Service

log = get_logger(__name__)


class Web3LedgerClient:
    """
    LedgerClient implementation over a JSON-RPC endpoint.

    Attributes:
        web3_service: Connection and contract/block caches
        contract: Bound governance contract
        token_contract: Bound governance token, None without GOV_TOKEN_ADDRESS
        retry_config: Retry policy applied to every read
    """

    def __init__(
        self,
        config: LedgerConfig,
        web3_service: Optional[Web3Service] = None,
        retry_config: RetryConfig = RPC_RETRY_CONFIG,
    ):
        self.config = config
        self.web3_service = web3_service or Web3Service(
            config.chain_id, config.rpc_url
        )
        self.contract = self.web3_service.get_contract(
            config.contract_address, QUADRATIC_GOVERNANCE_VOTING_ABI
        )
        self.token_contract = (
            self.web3_service.get_contract(
                config.token_address, GOVERNANCE_TOKEN_ABI
            )
            if config.token_address
            else None
        )
        self.retry_config = retry_config

    async def _execute(self, fn: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(fn, *args))

    async def _read(
        self,
        fn: Callable[..., Any],
        *args: Any,
        name: str,
        proposal_id: Optional[int] = None,
    ) -> Any:
        try:
            return await self.retry_config.run(
                self._execute, fn, *args, operation_name=name
            )
        except Exception as e:
            raise TransientReadError(
                f"{name} failed: {e}", proposal_id=proposal_id
            ) from e

    async def get_proposal_count(self) -> int:
        count = await self._read(
            self.contract.functions.getProposalCount().call,
            name="getProposalCount",
        )
        return int(count)

    async def get_proposal_by_id(self, proposal_id: int) -> ProposalRecord:
        record = await self._read(
            self.contract.functions.proposals(proposal_id).call,
            name=f"proposals({proposal_id})",
            proposal_id=proposal_id,
        )
        return tuple(record)

    async def get_vote_status(self, proposal_id: int, account: str) -> bool:
        voted = await self._read(
            self.contract.functions.hasVoted(
                proposal_id, to_checksum_address(account)
            ).call,
            name=f"hasVoted({proposal_id})",
            proposal_id=proposal_id,
        )
        return bool(voted)

    async def get_quorum_threshold(self) -> int:
        threshold = await self._read(
            self.contract.functions.quorum().call, name="quorum"
        )
        return int(threshold)

    async def get_token_balance(self, account: str) -> int:
        """Governance token balance of ``account`` in base units."""
        if self.token_contract is None:
            raise ConfigurationException(
                "GOV_TOKEN_ADDRESS is required to read token balances"
            )
        balance = await self._read(
            self.token_contract.functions.balanceOf(
                to_checksum_address(account)
            ).call,
            name="balanceOf",
        )
        return int(balance)

    async def get_contract_balance(self) -> int:
        """Native balance (wei) held by the governance contract."""
        balance = await self._read(
            self.web3_service.get_balance,
            self.config.contract_address,
            name="getBalance",
        )
        return int(balance)

    async def get_block_number(self) -> int:
        return int(
            await self._read(
                self.web3_service.get_block_number, name="blockNumber"
            )
        )

    async def get_block_timestamp(self, block_number: int) -> int:
        block = await self._read(
            self.web3_service.get_block,
            block_number,
            name=f"getBlock({block_number})",
        )
        return int(block["timestamp"])

    async def get_events(
        self, kind: EventKind, from_block: int, to_block: int
    ) -> List[LedgerEvent]:
        event = getattr(self.contract.events, kind.value)()
        logs = await self._read(
            partial(event.get_logs, from_block=from_block, to_block=to_block),
            name=f"getLogs({kind.value}, {from_block}-{to_block})",
        )
        return [event_from_log(kind, entry) for entry in logs]

    def subscribe(
        self,
        kind: EventKind,
        poll_interval: float,
        from_block: Optional[int] = None,
    ) -> EventStream:
        return EventStream(
            kind,
            self.get_block_number,
            self.get_events,
            poll_interval=poll_interval,
            from_block=from_block,
        )

    def _send_vote(self, proposal_id: int) -> Dict[str, Any]:
        w3 = self.web3_service.w3
        account = w3.eth.account.from_key(self.config.private_key)

        tx = self.contract.functions.vote(proposal_id).build_transaction(
            {
                "from": account.address,
                "chainId": self.config.chain_id,
                "nonce": w3.eth.get_transaction_count(account.address),
            }
        )
        signed = account.sign_transaction(tx)
        tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = w3.eth.wait_for_transaction_receipt(tx_hash)

        return {
            "transaction_hash": "0x" + bytes(tx_hash).hex(),
            "block_number": receipt["blockNumber"],
            "status": receipt["status"],
            "gas_used": receipt["gasUsed"],
            "voter": account.address,
        }

    async def submit_vote(self, proposal_id: int) -> Dict[str, Any]:
        """
        Cast a vote and wait for the receipt.

        Not retried: a resent vote would be rejected by the contract anyway.
        """
        if not self.config.private_key:
            raise ConfigurationException(
                "GOV_PRIVATE_KEY is required to submit votes"
            )

        receipt = await self._execute(self._send_vote, proposal_id)
        if receipt["status"] != 1:
            raise TransactionError(
                f"Vote on proposal {proposal_id} failed "
                f"(tx {receipt['transaction_hash']})"
            )

        log.info(
            "Vote on proposal %d confirmed in block %d",
            proposal_id,
            receipt["block_number"],
        )
        return receipt
