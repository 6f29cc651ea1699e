"""
Abstract interface for node RPC access.

Defines the contract for the node calls the transaction core relies on.
"""

from abc import ABC, abstractmethod

from chaintx.node.requests import SubTransactionRequest


class RpcService(ABC):
    """
    Abstract interface for node RPC access.

    This interface defines the blockchain operations needed by the core:
    - Transaction submission
    - Account nonce queries
    - Ledger height queries
    """

    async def connect(self) -> None:
        """Establish connection to the node."""
        pass

    async def disconnect(self) -> None:
        """Close connection to the node."""
        pass

    @abstractmethod
    async def submit_transaction(self, request: SubTransactionRequest) -> None:
        """
        Submit signed transactions to the node.

        Args:
            request: Blob and signatures of each transaction

        Raises:
            TransportError: If the node cannot be reached or answers badly.
                When the chain rejected the transaction, __cause__ is the
                ChainRejectionError.
        """
        pass

    @abstractmethod
    async def get_account_nonce(self, address: str) -> int:
        """
        Get the nonce of the last transaction applied for an account.

        Args:
            address: Account address

        Returns:
            Current account nonce (0 for an account with no transactions)
        """
        pass

    @abstractmethod
    async def get_last_ledger_seq(self) -> int:
        """
        Get the sequence number of the latest closed ledger.

        Returns:
            Latest ledger sequence
        """
        pass
