"""
Node Manager - tracks what the core knows about the chain.
"""

import threading
from typing import Optional

import structlog

from chaintx.config import SdkConfig, get_config
from chaintx.hashing import HashType
from chaintx.node.interface import RpcService

logger = structlog.get_logger(__name__)


class NodeManager:
    """
    Observed chain state: latest closed ledger and advertised hash algorithm.

    The ledger sequence only moves forward; it is advanced by the
    notification stream or by refresh().
    """

    def __init__(
        self,
        rpc_service: Optional[RpcService] = None,
        config: Optional[SdkConfig] = None,
    ):
        self.config = config or get_config()
        self.rpc_service = rpc_service
        self._last_seq = 0
        self._hash_type = HashType(self.config.hash_type)
        self._lock = threading.Lock()

    def get_last_seq(self) -> int:
        """Get the latest closed ledger sequence seen."""
        with self._lock:
            return self._last_seq

    def get_current_support_hash_type(self) -> HashType:
        """Get the hash algorithm the chain currently uses."""
        return self._hash_type

    def set_hash_type(self, hash_type: HashType) -> None:
        self._hash_type = HashType(hash_type)
        logger.info("hash_type_changed", hash_type=self._hash_type.value)

    def update_last_seq(self, seq: int) -> bool:
        """
        Record a newly closed ledger.

        Returns:
            True if seq advanced the known height
        """
        with self._lock:
            if seq <= self._last_seq:
                return False
            self._last_seq = seq
        logger.debug("ledger_seq_updated", seq=seq)
        return True

    async def refresh(self) -> int:
        """Read the latest ledger sequence from the node."""
        if self.rpc_service is None:
            raise RuntimeError("No RPC service configured")

        seq = await self.rpc_service.get_last_ledger_seq()
        self.update_last_seq(seq)
        return self.get_last_seq()
