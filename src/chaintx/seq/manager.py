"""
Sequence Manager - allocates account nonces for new transactions.

The chain requires strictly sequential nonces per account. Allocation is
cached locally and serialized per address so that concurrent builders
never receive the same number.
"""

import asyncio
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict

import structlog

from chaintx.node.interface import RpcService

logger = structlog.get_logger(__name__)


class SequenceManager(ABC):
    """
    Abstract nonce allocator.

    Allocation and reset are each atomic per sponsor address.
    """

    @abstractmethod
    async def get_sequence_number(self, address: str) -> int:
        """
        Allocate the next unused nonce for an address.

        Args:
            address: Sponsor address

        Returns:
            Nonce for the next transaction
        """
        pass

    @abstractmethod
    def reset(self, address: str) -> None:
        """
        Forget locally allocated nonces for an address.

        The next allocation re-reads the account nonce from the chain.
        """
        pass


class NonceSequenceManager(SequenceManager):
    """
    Nonce allocator backed by the node's account state.

    The first allocation for an address reads the account nonce from the
    node; later ones increment the local copy.
    """

    def __init__(self, rpc_service: RpcService):
        """
        Initialize the sequence manager.

        Args:
            rpc_service: Node RPC used to read account nonces
        """
        self.rpc_service = rpc_service
        self._nonces: Dict[str, int] = {}
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def get_sequence_number(self, address: str) -> int:
        async with self._locks[address]:
            if address not in self._nonces:
                self._nonces[address] = await self.rpc_service.get_account_nonce(address)
                logger.debug("nonce_loaded", address=address, nonce=self._nonces[address])

            self._nonces[address] += 1
            return self._nonces[address]

    def reset(self, address: str) -> None:
        if self._nonces.pop(address, None) is not None:
            logger.info("nonce_reset", address=address)
