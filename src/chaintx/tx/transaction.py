"""
Transaction - builds, signs and submits one transaction.

A Transaction is a single-owner builder: it accepts mutations while open,
freezes exactly once on commit, and is never reused afterwards. Instances
must not be shared across concurrent tasks.
"""

import asyncio
from enum import Enum
from typing import Callable, List, Optional, Union

import structlog

from chaintx.config import SdkConfig, get_config
from chaintx.errors import (
    ChainRejectionError,
    DuplicateWaitError,
    FinalizedStateError,
    LedgerDeadlineTimeoutError,
    PreconditionError,
    RemoteTimeoutError,
    SdkError,
    SignatureVerificationError,
    TransportError,
)
from chaintx.node.interface import RpcService
from chaintx.node.manager import NodeManager
from chaintx.node.requests import SignatureRequest, SubTransactionRequest, TransactionRequest
from chaintx.seq.manager import SequenceManager
from chaintx.sync.fail import TxFailManager
from chaintx.sync.future import AsyncFutureTx, TransactionSyncManager
from chaintx.tx.blob import TransactionBlob
from chaintx.tx.envelope import Operation, TransactionEnvelope
from chaintx.tx.models import (
    Digest,
    Signature,
    SponsorAccount,
    TransactionCommittedResult,
    TransactionSerializable,
)
from chaintx.tx.signer import sign_blob, verify_signature

logger = structlog.get_logger(__name__)

# Ledgers to wait past the current height; one ledger closes every few seconds
LOW_FINAL_NOTIFY_SEQ_OFFSET = 10
MID_FINAL_NOTIFY_SEQ_OFFSET = 20
HIGH_FINAL_NOTIFY_SEQ_OFFSET = 30


class TransactionState(str, Enum):
    """Lifecycle of a transaction."""
    OPEN = "open"                 # Accepting mutations
    COMPLETE = "complete"         # Frozen, about to be submitted
    SUBMITTED = "submitted"       # Accepted by the node, result pending
    CONFIRMED = "confirmed"       # Applied with a success code
    FAILED = "failed"             # Rejected locally, by the node or by the chain
    TIMED_OUT = "timed_out"       # No result within the wait or ledger deadline


class Transaction:
    """
    Builder and one-shot executor for a chain transaction.

    Usage:
        ```python
        tx = service.new_transaction(sponsor_address)
        tx.add_operation(op).set_fee_limit(1000).set_gas_price(10)
        tx.add_signer(public_key, private_key)
        result = await tx.commit()
        ```
    """

    def __init__(
        self,
        sponsor_address: str,
        sequence_manager: SequenceManager,
        rpc_service: RpcService,
        sync_manager: TransactionSyncManager,
        node_manager: NodeManager,
        fail_manager: TxFailManager,
        config: Optional[SdkConfig] = None,
        sync_timeout: Optional[float] = None,
    ):
        """
        Initialize the transaction.

        Args:
            sponsor_address: Account initiating and paying for the transaction
            sequence_manager: Nonce allocator
            rpc_service: Node RPC used for submission
            sync_manager: Registry of correlation futures
            node_manager: Observed chain state
            fail_manager: Ledger-deadline registrations
            config: SDK configuration
            sync_timeout: Wall-clock bound for synchronous commits, in seconds
        """
        self.config = config or get_config()
        self.sponsor_address = sponsor_address
        self.sequence_manager = sequence_manager
        self.rpc_service = rpc_service
        self.sync_manager = sync_manager
        self.node_manager = node_manager
        self.fail_manager = fail_manager
        self.sync_timeout = (
            self.config.sync_wait_timeout_seconds if sync_timeout is None else sync_timeout
        )

        self.state = TransactionState.OPEN
        self.nonce: Optional[int] = None
        self.final_notify_seq_offset = self.config.final_notify_seq_offset
        self.fee_limit = 0
        self.gas_price = 0
        self.ceil_ledger_seq: Optional[int] = None
        self.metadata: Optional[bytes] = None

        self.operations: List[Operation] = []
        self.signatures: List[Signature] = []
        self.digests: List[Digest] = []
        self._blob: Optional[TransactionBlob] = None

    @classmethod
    def for_sponsor_account(cls, account: SponsorAccount, *args, **kwargs) -> "Transaction":
        """Create a transaction already signed by its sponsor account."""
        tx = cls(account.address, *args, **kwargs)
        tx.signatures.append(Signature(account.public_key, account.private_key))
        return tx

    @classmethod
    def from_serializable(
        cls,
        serializable: TransactionSerializable,
        *args,
        **kwargs,
    ) -> "Transaction":
        """Continue a transaction whose blob was generated elsewhere."""
        tx = cls(serializable.sponsor_address, *args, **kwargs)
        tx._blob = serializable.transaction_blob
        tx.signatures = list(serializable.signatures)
        tx.fee_limit = serializable.fee_limit
        tx.gas_price = serializable.gas_price
        return tx

    @property
    def complete(self) -> bool:
        """Check if the transaction is frozen."""
        return self.state is not TransactionState.OPEN

    # ------------------------------------------------------------------
    # Builder
    # ------------------------------------------------------------------

    def _build(self, action: Callable[[], None]) -> "Transaction":
        self._check_open()
        action()
        return self

    def _check_open(self) -> None:
        if self.complete:
            raise FinalizedStateError()

    def add_signer(self, public_key: str, private_key: str) -> "Transaction":
        return self._build(lambda: self.signatures.append(Signature(public_key, private_key)))

    def add_digest(self, public_key: str, origin_digest: bytes) -> "Transaction":
        return self._build(lambda: self.digests.append(Digest(public_key, origin_digest)))

    def set_fee_limit(self, fee_limit: int) -> "Transaction":
        return self._build(lambda: setattr(self, "fee_limit", fee_limit))

    def set_gas_price(self, gas_price: int) -> "Transaction":
        return self._build(lambda: setattr(self, "gas_price", gas_price))

    def set_ceil_ledger_seq(self, ceil_ledger_seq: int) -> "Transaction":
        return self._build(lambda: setattr(self, "ceil_ledger_seq", ceil_ledger_seq))

    def set_final_notify_seq_offset(self, offset: int) -> "Transaction":
        return self._build(lambda: setattr(self, "final_notify_seq_offset", offset))

    def add_operation(self, operation: Optional[Operation]) -> "Transaction":
        def action():
            if operation is not None:
                self.operations.append(operation)
        return self._build(action)

    def set_metadata(self, metadata: Union[str, bytes, None]) -> "Transaction":
        if isinstance(metadata, str):
            metadata = metadata.encode("utf-8")
        return self._build(lambda: setattr(self, "metadata", metadata))

    # ------------------------------------------------------------------
    # Blob
    # ------------------------------------------------------------------

    async def generate_blob(self) -> TransactionBlob:
        """
        Allocate the nonce and serialize the transaction.

        Consumes one sequence number for the sponsor. If the transaction
        is then abandoned, call reset_sponsor_address().

        Returns:
            The generated blob

        Raises:
            PreconditionError: If the sponsor is empty, the blob already
                exists or there are no operations
            FinalizedStateError: If the transaction is complete
        """
        self._check_blob_preconditions()

        self.nonce = await self.sequence_manager.get_sequence_number(self.sponsor_address)
        self._blob = self._build_blob()
        return self._blob

    def _check_blob_preconditions(self) -> None:
        if not self.sponsor_address:
            raise PreconditionError(SdkError.TRANSACTION_ERROR_SPONSOR)
        if self._blob is not None:
            raise PreconditionError(SdkError.TRANSACTION_ERROR_BLOB_REPEAT_GENERATOR)
        if not self.operations:
            raise PreconditionError(SdkError.TRANSACTION_ERROR_OPERATOR_NOT_EMPTY)
        self._check_open()

    def _build_blob(self) -> TransactionBlob:
        envelope = TransactionEnvelope(
            source_address=self.sponsor_address,
            nonce=self.nonce,
            fee_limit=self.fee_limit,
            gas_price=self.gas_price,
            metadata=self.metadata,
            ceil_ledger_seq=self.ceil_ledger_seq or None,
        )

        specified_seq = self.node_manager.get_last_seq() + self.final_notify_seq_offset
        logger.debug("specified_seq", seq=specified_seq, nonce=self.nonce)

        for operation in self.operations:
            operation.build_transaction(envelope, specified_seq)

        blob = TransactionBlob(
            envelope.to_cbor(),
            self.node_manager.get_current_support_hash_type(),
        )

        # Guarantees a timeout result even if the node never reports one
        self.fail_manager.final_notify_fail_event(
            specified_seq, blob.hash, SdkError.TRANSACTION_ERROR_TIMEOUT
        )

        logger.info(
            "transaction_blob_generated",
            tx_hash=blob.hash[:16] + "...",
            sponsor=self.sponsor_address,
            nonce=self.nonce,
            operations=len(self.operations),
        )
        return blob

    def get_transaction_blob(self) -> TransactionBlob:
        if self._blob is None:
            raise PreconditionError(SdkError.TRANSACTION_ERROR_BLOB_NOT_NULL)
        return self._blob

    def for_serializable(self) -> TransactionSerializable:
        """Export the generated transaction for external signing."""
        return TransactionSerializable(
            sponsor_address=self.sponsor_address,
            transaction_blob=self.get_transaction_blob(),
            signatures=list(self.signatures),
            fee_limit=self.fee_limit,
            gas_price=self.gas_price,
        )

    def reset_sponsor_address(self) -> None:
        """Make the sponsor's next nonce come from the chain again."""
        self.sequence_manager.reset(self.sponsor_address)

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    async def sign_and_commit(
        self,
        public_key: str,
        private_key: str,
        sync: bool = True,
    ) -> TransactionCommittedResult:
        """Shortcut for a transaction with a single signer."""
        self.add_signer(public_key, private_key)
        return await self.commit(sync)

    async def commit(self, sync: bool = True) -> TransactionCommittedResult:
        """
        Freeze, sign and submit the transaction.

        Args:
            sync: Wait for the node to report the outcome

        Returns:
            Result carrying the transaction hash, plus the outcome in sync mode

        Raises:
            FinalizedStateError: If already committed
            PreconditionError: If the transaction is incomplete
            SignatureMaterialError: If a signer's keys are unusable
            SignatureVerificationError: If a signature fails the local check
            TransportError: If the node cannot be reached
            ChainRejectionError: If the chain rejected the transaction
            RemoteTimeoutError: If no outcome arrived in time
            LedgerDeadlineTimeoutError: If the final ledger passed first
        """
        if self._blob is None:
            await self.generate_blob()
        return await self._submit(sync)

    def _complete(self) -> None:
        self._check_open()
        self.state = TransactionState.COMPLETE

    def _check_commit_status(self) -> None:
        if not self.signatures and not self.digests:
            raise PreconditionError(SdkError.TRANSACTION_ERROR_SIGNATURE)
        for signature in self.signatures:
            if not signature.public_key:
                raise PreconditionError(SdkError.TRANSACTION_ERROR_PUBLIC_KEY_NOT_EMPTY)
            if not signature.private_key:
                raise PreconditionError(SdkError.TRANSACTION_ERROR_PRIVATE_KEY_NOT_EMPTY)
        if self._blob is None:
            raise PreconditionError(SdkError.TRANSACTION_ERROR_BLOB_NOT_NULL)
        if self.fee_limit <= 0:
            raise PreconditionError(SdkError.TRANSACTION_ERROR_FEE_ILLEGAL)
        if self.gas_price <= 0:
            raise PreconditionError(SdkError.TRANSACTION_ERROR_GAS_ILLEGAL)

    async def _submit(self, sync: bool) -> TransactionCommittedResult:
        self._complete()
        try:
            self._check_commit_status()
        except PreconditionError:
            self.state = TransactionState.FAILED
            raise

        tx_hash = self._blob.hash
        log = logger.bind(tx_hash=tx_hash)
        log.debug("transaction_submitting", sync=sync)

        tx_future = AsyncFutureTx(tx_hash)
        try:
            self.sync_manager.add_async_future_tx(tx_future)
        except DuplicateWaitError:
            self.state = TransactionState.FAILED
            raise

        try:
            await self._send(log)
            self.state = TransactionState.SUBMITTED

            result = TransactionCommittedResult(hash=tx_hash)
            if sync:
                await self._await_outcome(tx_future, log)
                result.success = True
                result.error_code = tx_future.error_code
                result.error_message = tx_future.error_message
            return result
        finally:
            self.sync_manager.remove(tx_future)

    async def _send(self, log) -> None:
        try:
            request = self._get_sub_transaction_request()
            self._verify_pre(request)
            await self.rpc_service.submit_transaction(request)
        except asyncio.CancelledError:
            self.state = TransactionState.FAILED
            self.sequence_manager.reset(self.sponsor_address)
            log.error("transaction_submit_interrupted")
            raise
        except Exception as e:
            self.state = TransactionState.FAILED
            # The nonce never reached the ledger
            self.sequence_manager.reset(self.sponsor_address)
            log.warning("transaction_submit_failed", error=str(e))
            if isinstance(e, TransportError) and isinstance(e.__cause__, ChainRejectionError):
                rejection = e.__cause__
                raise ChainRejectionError(rejection.error_code, rejection.error_message) from e
            raise

    async def _await_outcome(self, tx_future: AsyncFutureTx, log) -> None:
        try:
            await tx_future.wait(self.sync_timeout)
        except RemoteTimeoutError:
            self.state = TransactionState.TIMED_OUT
            log.warning("transaction_wait_timeout", timeout=self.sync_timeout)
            raise
        except asyncio.CancelledError:
            log.error("transaction_wait_interrupted")
            raise

        if tx_future.success:
            self.state = TransactionState.CONFIRMED
            log.info("transaction_confirmed")
            return

        if tx_future.error_code == SdkError.TRANSACTION_ERROR_TIMEOUT.code:
            self.state = TransactionState.TIMED_OUT
            log.warning("transaction_ledger_deadline_passed")
            raise LedgerDeadlineTimeoutError(tx_future.error_message)

        self.state = TransactionState.FAILED
        log.warning(
            "transaction_rejected",
            error_code=tx_future.error_code,
            error=tx_future.error_message,
        )
        raise ChainRejectionError(tx_future.error_code, tx_future.error_message)

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    def _get_sub_transaction_request(self) -> SubTransactionRequest:
        request = TransactionRequest(
            transaction_blob=self._blob.hex,
            signatures=self._get_signatures(self._blob.bytes_),
        )
        return SubTransactionRequest(items=[request])

    def _get_signatures(self, data: bytes) -> List[SignatureRequest]:
        signature_requests = []
        for signature in self.signatures:
            sign_data = sign_blob(data, signature.private_key, signature.public_key)
            signature_requests.append(SignatureRequest(signature.public_key, sign_data.hex()))

        for digest in self.digests:
            signature_requests.append(SignatureRequest(digest.public_key, digest.origin_digest.hex()))

        return signature_requests

    def _verify_pre(self, request: SubTransactionRequest) -> None:
        data = self._blob.bytes_
        for signature_request in request.items[0].signatures:
            try:
                sign_data = bytes.fromhex(signature_request.sign_data)
            except ValueError as e:
                raise SignatureVerificationError() from e

            if not verify_signature(data, sign_data, signature_request.public_key):
                raise SignatureVerificationError(
                    f"Signature verification failed for {signature_request.public_key}"
                )
