"""
Pytest configuration and shared fixtures for the test suite.
"""

from typing import Callable, List, Optional, Tuple

import pytest
from pycardano import PaymentSigningKey, PaymentVerificationKey

from chaintx.config import SdkConfig
from chaintx.node.interface import RpcService
from chaintx.node.requests import SubTransactionRequest
from chaintx.service import TransactionService
from chaintx.tx.envelope import RawOperation


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_config() -> SdkConfig:
    """Create a test configuration."""
    return SdkConfig(
        rpc_url="http://node.test",
        event_ws_url="ws://node.test/events",
        final_notify_seq_offset=20,
        sync_wait_timeout_seconds=2.0,
        log_level="DEBUG",
    )


# ============================================================================
# Test Data Generators
# ============================================================================

def generate_keypair() -> Tuple[str, str]:
    """Generate a random (public key, private key) hex pair."""
    signing_key = PaymentSigningKey.generate()
    verification_key = PaymentVerificationKey.from_signing_key(signing_key)
    return verification_key.payload.hex(), signing_key.payload.hex()


@pytest.fixture
def keypair() -> Tuple[str, str]:
    return generate_keypair()


@pytest.fixture
def operations() -> List[RawOperation]:
    """Two opaque operations, O1 and O2."""
    return [
        RawOperation(type_code=1, body=b"O1"),
        RawOperation(type_code=2, body=b"O2"),
    ]


# ============================================================================
# Mock RPC Service
# ============================================================================

class MockRpcService(RpcService):
    """Mock node RPC for testing."""

    def __init__(self, nonce: int = 0, ledger_seq: int = 1000):
        self.nonce = nonce
        self.ledger_seq = ledger_seq
        self.submitted: List[SubTransactionRequest] = []
        self.nonce_queries: List[str] = []
        self.fail_with: Optional[Exception] = None
        self.on_submit: Optional[Callable[[SubTransactionRequest], None]] = None

    async def submit_transaction(self, request: SubTransactionRequest) -> None:
        self.submitted.append(request)
        if self.fail_with is not None:
            raise self.fail_with
        if self.on_submit is not None:
            self.on_submit(request)

    async def get_account_nonce(self, address: str) -> int:
        self.nonce_queries.append(address)
        return self.nonce

    async def get_last_ledger_seq(self) -> int:
        return self.ledger_seq


@pytest.fixture
def mock_rpc() -> MockRpcService:
    return MockRpcService()


@pytest.fixture
def service(mock_rpc, test_config) -> TransactionService:
    """Service wired to the mock node at ledger 1000."""
    service = TransactionService(mock_rpc, config=test_config)
    service.node_manager.update_last_seq(mock_rpc.ledger_seq)
    return service


@pytest.fixture
def ready_tx(service, operations, keypair):
    """Transaction from S1 with two operations, fees and one signer."""
    tx = service.new_transaction("S1", sync_timeout=0.5)
    for operation in operations:
        tx.add_operation(operation)
    tx.set_fee_limit(100).set_gas_price(1)
    tx.add_signer(*keypair)
    return tx
