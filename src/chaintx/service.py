"""
Transaction service.

Wires the shared collaborators together and hands out transactions
bound to them.
"""

from typing import Optional

import structlog

from chaintx.config import SdkConfig, get_config
from chaintx.log import setup_logging
from chaintx.node.events import NodeEventListener
from chaintx.node.http import HttpRpcService
from chaintx.node.interface import RpcService
from chaintx.node.manager import NodeManager
from chaintx.seq.manager import NonceSequenceManager, SequenceManager
from chaintx.sync.fail import TxFailManager
from chaintx.sync.future import TransactionSyncManager
from chaintx.tx.models import SponsorAccount, TransactionSerializable
from chaintx.tx.transaction import Transaction

logger = structlog.get_logger(__name__)


class TransactionService:
    """
    Owner of the process-wide transaction state.

    One service holds the nonce cache, the correlation-future registry
    and the ledger deadlines shared by every transaction it creates.

    Usage:
        ```python
        service = TransactionService.from_config()
        await service.start()
        tx = service.new_transaction(sponsor_address)
        ```
    """

    def __init__(
        self,
        rpc_service: RpcService,
        sequence_manager: Optional[SequenceManager] = None,
        node_manager: Optional[NodeManager] = None,
        sync_manager: Optional[TransactionSyncManager] = None,
        fail_manager: Optional[TxFailManager] = None,
        event_listener: Optional[NodeEventListener] = None,
        config: Optional[SdkConfig] = None,
    ):
        """
        Initialize the service.

        Args:
            rpc_service: Node RPC
            sequence_manager: Nonce allocator (node-backed if not provided)
            node_manager: Observed chain state
            sync_manager: Correlation-future registry
            fail_manager: Ledger-deadline registrations
            event_listener: Notification stream feeding the managers
            config: SDK configuration
        """
        self.config = config or get_config()
        self.rpc_service = rpc_service
        self.sequence_manager = sequence_manager or NonceSequenceManager(rpc_service)
        self.node_manager = node_manager or NodeManager(rpc_service, self.config)
        self.sync_manager = sync_manager or TransactionSyncManager()
        self.fail_manager = fail_manager or TxFailManager(self.sync_manager)
        self.event_listener = event_listener

    @classmethod
    def from_config(cls, config: Optional[SdkConfig] = None) -> "TransactionService":
        """Build a service talking to the node configured in config."""
        config = config or get_config()
        setup_logging(config.log_level, config.log_json)
        service = cls(HttpRpcService(config), config=config)
        service.event_listener = NodeEventListener(
            service.sync_manager,
            service.fail_manager,
            service.node_manager,
            config,
        )
        return service

    async def start(self) -> None:
        """Connect to the node and load the current ledger height."""
        await self.rpc_service.connect()
        if self.event_listener is not None:
            await self.event_listener.connect()
        seq = await self.node_manager.refresh()
        logger.info("transaction_service_started", ledger_seq=seq)

    async def stop(self) -> None:
        """Disconnect from the node."""
        if self.event_listener is not None:
            await self.event_listener.disconnect()
        await self.rpc_service.disconnect()
        logger.info("transaction_service_stopped")

    def _collaborators(self) -> tuple:
        return (
            self.sequence_manager,
            self.rpc_service,
            self.sync_manager,
            self.node_manager,
            self.fail_manager,
        )

    def new_transaction(self, sponsor_address: str, sync_timeout: Optional[float] = None) -> Transaction:
        """Start a transaction for a sponsor address."""
        return Transaction(
            sponsor_address,
            *self._collaborators(),
            config=self.config,
            sync_timeout=sync_timeout,
        )

    def for_sponsor_account(
        self,
        account: SponsorAccount,
        sync_timeout: Optional[float] = None,
    ) -> Transaction:
        """Start a transaction signed by its sponsor account."""
        return Transaction.for_sponsor_account(
            account,
            *self._collaborators(),
            config=self.config,
            sync_timeout=sync_timeout,
        )

    def from_serializable(
        self,
        serializable: TransactionSerializable,
        sync_timeout: Optional[float] = None,
    ) -> Transaction:
        """Continue a transaction exported with Transaction.for_serializable()."""
        return Transaction.from_serializable(
            serializable,
            *self._collaborators(),
            config=self.config,
            sync_timeout=sync_timeout,
        )
