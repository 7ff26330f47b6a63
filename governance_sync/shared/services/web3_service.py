"""
Web3 Service module for interacting with the governance contract's chain.

This module provides a Web3Service class that manages the connection to one
network, caches contract handles and block headers, and offers the
low-level calls the ledger client builds on.
"""

from collections import OrderedDict
from typing import Any, Dict, List

from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

MAINNET_CHAIN_ID = 1

# Enough for a long-running watch; the oldest headers are evicted first.
DEFAULT_BLOCK_CACHE_SIZE = 1024


class Web3Service:
    """
    A service class for managing a Web3 connection and interactions.

    Block headers are immutable once mined, so they are cached by number
    in a bounded least-recently-used cache.
    """

    def __init__(
        self,
        chain_id: int,
        rpc_url: str,
        block_cache_size: int = DEFAULT_BLOCK_CACHE_SIZE,
    ):
        """
        Initialize the Web3Service.

        Args:
            chain_id (int): The chain ID to use.
            rpc_url (str): The RPC URL to use.
            block_cache_size (int): Maximum number of cached block headers.
        """
        self.chain_id = chain_id
        self.block_cache_size = block_cache_size
        self.w3 = self._initialize_web3(rpc_url)
        self._initialize_caches()

    def _initialize_web3(self, rpc_url: str) -> Web3:
        """Initialize Web3 instance with middleware if needed"""
        w3 = Web3(Web3.HTTPProvider(rpc_url))

        # Add POA middleware for non-mainnet chains
        if self.chain_id != MAINNET_CHAIN_ID:
            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

        return w3

    def _initialize_caches(self):
        """Initialize all cache dictionaries"""
        self._block_cache: "OrderedDict[int, Any]" = OrderedDict()
        self._contract_cache: Dict[str, Any] = {}

    def get_block_number(self) -> int:
        """Get the latest block number"""
        return self.w3.eth.block_number

    def get_block(self, block_identifier: int) -> Dict[str, Any]:
        """Get block information for a specific block number"""
        if block_identifier in self._block_cache:
            self._block_cache.move_to_end(block_identifier)
            return self._block_cache[block_identifier]

        block = self.w3.eth.get_block(block_identifier)
        self._block_cache[block_identifier] = block
        while len(self._block_cache) > self.block_cache_size:
            self._block_cache.popitem(last=False)
        return block

    def get_balance(self, address: str) -> int:
        """Native balance of an address, in wei"""
        return self.w3.eth.get_balance(Web3.to_checksum_address(address))

    def get_contract(self, address: str, abi: List[Dict[str, Any]]) -> Any:
        """Get a contract instance for a given address and ABI"""
        key = address.lower()
        if key not in self._contract_cache:
            self._contract_cache[key] = self.w3.eth.contract(
                address=Web3.to_checksum_address(key), abi=abi
            )
        return self._contract_cache[key]
