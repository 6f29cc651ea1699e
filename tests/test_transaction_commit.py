"""
Test suite for signing, submission and the synchronous wait.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from chaintx.errors import (
    ChainRejectionError,
    DuplicateWaitError,
    FinalizedStateError,
    LedgerDeadlineTimeoutError,
    PreconditionError,
    RemoteTimeoutError,
    SdkError,
    SignatureMaterialError,
    SignatureVerificationError,
    TransportError,
)
from chaintx.sync.future import AsyncFutureTx
from chaintx.tx.models import Signature
from chaintx.tx.signer import sign_blob, verify_signature
from chaintx.tx.transaction import TransactionState

from conftest import generate_keypair


def resolve_on_submit(service, tx_hash, code="0", message=None):
    """Make the mock node report an outcome as soon as it accepts the tx."""
    def on_submit(request):
        service.sync_manager.notify(tx_hash, code, message)
    return on_submit


# ============================================================================
# Test Signer
# ============================================================================

class TestSigner:
    """Tests for blob signing and verification."""

    def test_sign_and_verify(self, keypair):
        public_key, private_key = keypair
        signature = sign_blob(b"blob bytes", private_key, public_key)

        assert verify_signature(b"blob bytes", signature, public_key) is True
        assert verify_signature(b"other bytes", signature, public_key) is False

    def test_mismatched_keys(self, keypair):
        other_public_key, _ = generate_keypair()

        with pytest.raises(SignatureMaterialError) as exc_info:
            sign_blob(b"data", keypair[1], other_public_key)
        assert exc_info.value.error_code == SdkError.SIGNATURE_ERROR_PUBLIC_PRIVATE.code

    def test_invalid_private_key(self, keypair):
        with pytest.raises(SignatureMaterialError):
            sign_blob(b"data", "not-hex", keypair[0])

        with pytest.raises(SignatureMaterialError):
            sign_blob(b"data", "abcd", keypair[0])

    def test_verify_with_garbage_key(self):
        assert verify_signature(b"data", b"\x00" * 64, "zz") is False


# ============================================================================
# Test Commit Validation
# ============================================================================

class TestCommitValidation:
    """Tests for checks that run before any network call."""

    @pytest.mark.asyncio
    async def test_no_signers_or_digests(self, service, mock_rpc, operations):
        tx = service.new_transaction("S1")
        tx.add_operation(operations[0]).set_fee_limit(100).set_gas_price(1)

        with pytest.raises(PreconditionError) as exc_info:
            await tx.commit()
        assert exc_info.value.error_code == SdkError.TRANSACTION_ERROR_SIGNATURE.code
        assert mock_rpc.submitted == []

    @pytest.mark.asyncio
    async def test_empty_private_key(self, service, mock_rpc, operations, keypair):
        tx = service.new_transaction("S1")
        tx.add_operation(operations[0]).set_fee_limit(100).set_gas_price(1)
        tx.add_signer(keypair[0], "")

        with pytest.raises(PreconditionError) as exc_info:
            await tx.commit()
        assert exc_info.value.error_code == SdkError.TRANSACTION_ERROR_PRIVATE_KEY_NOT_EMPTY.code
        assert mock_rpc.submitted == []

    @pytest.mark.asyncio
    async def test_empty_public_key(self, service, operations, keypair):
        tx = service.new_transaction("S1")
        tx.add_operation(operations[0]).set_fee_limit(100).set_gas_price(1)
        tx.add_signer("", keypair[1])

        with pytest.raises(PreconditionError) as exc_info:
            await tx.commit()
        assert exc_info.value.error_code == SdkError.TRANSACTION_ERROR_PUBLIC_KEY_NOT_EMPTY.code

    @pytest.mark.asyncio
    async def test_zero_fee_limit(self, ready_tx, mock_rpc):
        ready_tx.set_fee_limit(0)

        with pytest.raises(PreconditionError) as exc_info:
            await ready_tx.commit()
        assert exc_info.value.error_code == SdkError.TRANSACTION_ERROR_FEE_ILLEGAL.code
        assert mock_rpc.submitted == []

    @pytest.mark.asyncio
    async def test_zero_gas_price(self, ready_tx):
        ready_tx.set_gas_price(0)

        with pytest.raises(PreconditionError) as exc_info:
            await ready_tx.commit()
        assert exc_info.value.error_code == SdkError.TRANSACTION_ERROR_GAS_ILLEGAL.code

    @pytest.mark.asyncio
    async def test_commit_twice_fails(self, ready_tx, mock_rpc):
        await ready_tx.commit(sync=False)

        with pytest.raises(FinalizedStateError):
            await ready_tx.commit(sync=False)
        assert len(mock_rpc.submitted) == 1

    @pytest.mark.asyncio
    async def test_mutation_after_commit_fails(self, ready_tx, keypair):
        await ready_tx.commit(sync=False)

        with pytest.raises(FinalizedStateError):
            ready_tx.set_fee_limit(200)
        with pytest.raises(FinalizedStateError):
            ready_tx.add_signer(*keypair)

    @pytest.mark.asyncio
    async def test_failed_validation_still_freezes(self, ready_tx):
        ready_tx.set_fee_limit(0)

        with pytest.raises(PreconditionError):
            await ready_tx.commit()

        assert ready_tx.state == TransactionState.FAILED
        with pytest.raises(FinalizedStateError):
            ready_tx.set_fee_limit(100)


# ============================================================================
# Test Signing Payload
# ============================================================================

class TestSigningPayload:
    """Tests for the submitted signatures and self-verification."""

    @pytest.mark.asyncio
    async def test_payload_shape(self, ready_tx, mock_rpc, keypair):
        blob = await ready_tx.generate_blob()
        digest_public_key, digest_private_key = generate_keypair()
        external = sign_blob(blob.bytes_, digest_private_key, digest_public_key)
        ready_tx.add_digest(digest_public_key, external)

        await ready_tx.commit(sync=False)

        payload = mock_rpc.submitted[0].to_dict()
        item = payload["items"][0]
        assert item["transaction_blob"] == blob.hex
        assert [s["public_key"] for s in item["signatures"]] == [keypair[0], digest_public_key]
        assert item["signatures"][1]["sign_data"] == external.hex()
        assert verify_signature(blob.bytes_, bytes.fromhex(item["signatures"][0]["sign_data"]), keypair[0])

    @pytest.mark.asyncio
    async def test_digest_only_commit(self, service, mock_rpc, operations):
        public_key, private_key = generate_keypair()
        tx = service.new_transaction("S1")
        tx.add_operation(operations[0]).set_fee_limit(100).set_gas_price(1)
        blob = await tx.generate_blob()
        tx.add_digest(public_key, sign_blob(blob.bytes_, private_key, public_key))

        result = await tx.commit(sync=False)

        assert result.hash == blob.hash
        assert len(mock_rpc.submitted) == 1

    @pytest.mark.asyncio
    async def test_altered_digest_aborts_before_transport(self, service, ready_tx, mock_rpc):
        blob = await ready_tx.generate_blob()
        public_key, private_key = generate_keypair()
        signature = bytearray(sign_blob(blob.bytes_, private_key, public_key))
        signature[0] ^= 0xFF
        ready_tx.add_digest(public_key, bytes(signature))
        registered = len(service.sync_manager)

        with pytest.raises(SignatureVerificationError) as exc_info:
            await ready_tx.commit()

        assert exc_info.value.error_code == SdkError.EVENT_ERROR_SIGNATURE_VERIFY_FAIL.code
        assert mock_rpc.submitted == []
        assert len(service.sync_manager) == registered

    @pytest.mark.asyncio
    async def test_mismatched_signer_is_typed_error(self, ready_tx, mock_rpc):
        other_public_key, _ = generate_keypair()
        ready_tx.signatures[0] = Signature(other_public_key, ready_tx.signatures[0].private_key)

        with pytest.raises(SignatureMaterialError):
            await ready_tx.commit()
        assert mock_rpc.submitted == []


# ============================================================================
# Test Submission Failures
# ============================================================================

class TestSubmissionFailure:
    """Tests for transport failures and the sequence reset."""

    @pytest.mark.asyncio
    async def test_transport_failure_resets_sequence_once(self, service, ready_tx, mock_rpc):
        mock_rpc.fail_with = TransportError("connection refused")
        service.sequence_manager.reset = MagicMock(wraps=service.sequence_manager.reset)

        with pytest.raises(TransportError) as exc_info:
            await ready_tx.commit()

        assert exc_info.value.error_code == SdkError.RPC_ERROR_REQUEST_FAILED.code
        service.sequence_manager.reset.assert_called_once_with("S1")
        assert ready_tx.state == TransactionState.FAILED
        assert len(service.sync_manager) == 0

    @pytest.mark.asyncio
    async def test_chain_rejection_is_unwrapped(self, service, ready_tx, mock_rpc):
        rejection = ChainRejectionError(93, "Fee not enough")
        transport_error = TransportError("rejected")
        transport_error.__cause__ = rejection
        mock_rpc.fail_with = transport_error

        with pytest.raises(ChainRejectionError) as exc_info:
            await ready_tx.commit()

        assert exc_info.value.error_code == 93
        assert exc_info.value.error_message == "Fee not enough"
        assert exc_info.value.__cause__ is transport_error

    @pytest.mark.asyncio
    async def test_other_errors_propagate_unchanged(self, service, ready_tx, mock_rpc):
        mock_rpc.fail_with = RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await ready_tx.commit()
        assert len(service.sync_manager) == 0

    @pytest.mark.asyncio
    async def test_nonce_reread_after_failure(self, service, ready_tx, mock_rpc, operations, keypair):
        mock_rpc.fail_with = TransportError("down")
        with pytest.raises(TransportError):
            await ready_tx.commit()

        mock_rpc.fail_with = None
        tx = service.new_transaction("S1")
        tx.add_operation(operations[0])
        await tx.generate_blob()

        assert tx.nonce == 1
        assert mock_rpc.nonce_queries == ["S1", "S1"]


# ============================================================================
# Test Synchronous Wait
# ============================================================================

class TestSynchronousCommit:
    """Tests for commit(sync=True)."""

    @pytest.mark.asyncio
    async def test_scenario_success(self, service, ready_tx, mock_rpc):
        blob = await ready_tx.generate_blob()
        mock_rpc.on_submit = resolve_on_submit(service, blob.hash, "0")
        registered = len(service.sync_manager)

        result = await ready_tx.commit(sync=True)

        assert result.hash == blob.hash
        assert result.success is True
        assert ready_tx.state == TransactionState.CONFIRMED
        assert len(service.sync_manager) == registered

    @pytest.mark.asyncio
    async def test_success_without_code(self, service, ready_tx, mock_rpc):
        blob = await ready_tx.generate_blob()
        mock_rpc.on_submit = resolve_on_submit(service, blob.hash, None)

        result = await ready_tx.commit()

        assert result.success is True

    @pytest.mark.asyncio
    async def test_failure_code(self, service, ready_tx, mock_rpc):
        blob = await ready_tx.generate_blob()
        mock_rpc.on_submit = resolve_on_submit(service, blob.hash, "151", "Contract execute failed")

        with pytest.raises(ChainRejectionError) as exc_info:
            await ready_tx.commit(sync=True)

        assert exc_info.value.error_code == 151
        assert exc_info.value.error_message == "Contract execute failed"
        assert ready_tx.state == TransactionState.FAILED
        assert len(service.sync_manager) == 0

    @pytest.mark.asyncio
    async def test_never_resolves(self, service, ready_tx):
        ready_tx.sync_timeout = 0.05

        with pytest.raises(RemoteTimeoutError) as exc_info:
            await ready_tx.commit(sync=True)

        assert exc_info.value.error_code == SdkError.TRANSACTION_ERROR_WAIT_TIMEOUT.code
        assert ready_tx.state == TransactionState.TIMED_OUT
        assert len(service.sync_manager) == 0

    @pytest.mark.asyncio
    async def test_ledger_deadline_fires_first(self, service, ready_tx, mock_rpc):
        ready_tx.set_final_notify_seq_offset(3)
        await ready_tx.generate_blob()
        mock_rpc.on_submit = lambda request: service.fail_manager.on_ledger_closed(1003)

        with pytest.raises(LedgerDeadlineTimeoutError):
            await ready_tx.commit(sync=True)

        assert ready_tx.state == TransactionState.TIMED_OUT
        assert len(service.sync_manager) == 0

    @pytest.mark.asyncio
    async def test_async_commit_returns_hash_only(self, service, ready_tx):
        result = await ready_tx.commit(sync=False)

        assert result.hash == ready_tx.get_transaction_blob().hash
        assert result.success is None
        assert ready_tx.state == TransactionState.SUBMITTED
        assert len(service.sync_manager) == 0

    @pytest.mark.asyncio
    async def test_sign_and_commit(self, service, operations, mock_rpc, keypair):
        tx = service.new_transaction("S1")
        tx.add_operation(operations[0]).set_fee_limit(100).set_gas_price(1)

        result = await tx.sign_and_commit(*keypair, sync=False)

        assert result.hash is not None
        assert len(mock_rpc.submitted) == 1

    @pytest.mark.asyncio
    async def test_duplicate_wait_rejected(self, service, ready_tx, mock_rpc):
        blob = await ready_tx.generate_blob()
        outstanding = AsyncFutureTx(blob.hash)
        service.sync_manager.add_async_future_tx(outstanding)

        with pytest.raises(DuplicateWaitError):
            await ready_tx.commit()
        assert mock_rpc.submitted == []
        assert ready_tx.state is TransactionState.FAILED
        assert service.sync_manager.get(blob.hash) is outstanding

    @pytest.mark.asyncio
    async def test_cancelled_wait_deregisters(self, service, ready_tx):
        task = asyncio.create_task(ready_tx.commit(sync=True))
        await asyncio.sleep(0.01)
        assert len(service.sync_manager) == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(service.sync_manager) == 0

    @pytest.mark.asyncio
    async def test_cancelled_submit_resets_sequence(self, service, ready_tx, mock_rpc):
        submitting = asyncio.Event()

        async def blocking_submit(request):
            mock_rpc.submitted.append(request)
            submitting.set()
            await asyncio.sleep(60)

        mock_rpc.submit_transaction = blocking_submit
        service.sequence_manager.reset = MagicMock(wraps=service.sequence_manager.reset)

        task = asyncio.create_task(ready_tx.commit(sync=True))
        await submitting.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        service.sequence_manager.reset.assert_called_once_with("S1")
        assert ready_tx.state is TransactionState.FAILED
        assert len(service.sync_manager) == 0
