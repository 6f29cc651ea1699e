"""
HTTP adapter for node RPC.

Talks to the node's JSON HTTP API.
"""

from typing import Any, Optional

import httpx
import structlog

from chaintx.config import SdkConfig, get_config
from chaintx.errors import ChainRejectionError, SdkError, TransportError
from chaintx.node.interface import RpcService
from chaintx.node.requests import SubTransactionRequest

logger = structlog.get_logger(__name__)


class HttpRpcService(RpcService):
    """
    Node HTTP API adapter.

    Implements the RpcService using the node's REST endpoints.
    """

    def __init__(
        self,
        config: Optional[SdkConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the HTTP adapter.

        Args:
            config: SDK configuration. Uses global config if not provided.
            client: Preconfigured HTTP client (tests, custom transports)
        """
        self.config = config or get_config()
        self.base_url = self.config.rpc_url
        self._client = client

    async def connect(self) -> None:
        """Create the HTTP client."""
        if self._client is not None:
            return

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
            timeout=self.config.rpc_timeout_seconds,
        )
        logger.info("rpc_connected", base_url=self.base_url)

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("rpc_disconnected")

    async def _request(
        self,
        method: str,
        path: str,
        **kwargs,
    ) -> Any:
        """Make an API request and return the decoded body."""
        if not self._client:
            await self.connect()

        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error("rpc_request_error", path=path, error=str(e))
            raise TransportError(f"Node request failed: {e}") from e

        if response.status_code != 200:
            logger.error(
                "rpc_request_failed",
                path=path,
                status=response.status_code,
                error=response.text,
            )
            raise TransportError(f"Node API error {response.status_code}: {response.text}")

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"Node returned invalid JSON for {path}",
                SdkError.RPC_ERROR_BAD_RESPONSE,
            ) from e

    def _check_result(self, data: dict, path: str) -> None:
        """Wrap a chain-level error code in a TransportError."""
        error_code = int(data.get("error_code", 0) or 0)
        if error_code == 0:
            return

        rejection = ChainRejectionError(error_code, data.get("error_desc") or "")
        logger.warning("rpc_chain_rejected", path=path, error_code=error_code)
        raise TransportError(f"Node rejected {path}: {rejection}") from rejection

    async def submit_transaction(self, request: SubTransactionRequest) -> None:
        """Submit signed transactions."""
        data = await self._request("POST", "/submitTransaction", json=request.to_dict())

        results = (data or {}).get("results")
        if not results:
            raise TransportError(
                "No submission result returned",
                SdkError.RPC_ERROR_BAD_RESPONSE,
            )

        for result in results:
            self._check_result(result, "/submitTransaction")
            logger.info("tx_submitted", tx_hash=result.get("hash"))

    async def get_account_nonce(self, address: str) -> int:
        """Get the account nonce."""
        data = await self._request("GET", "/getAccount", params={"address": address}) or {}
        self._check_result(data, "/getAccount")

        result = data.get("result") or {}
        # Accounts without transactions have no nonce field
        return int(result.get("nonce", 0))

    async def get_last_ledger_seq(self) -> int:
        """Get the latest closed ledger sequence."""
        data = await self._request("GET", "/getLedger")
        self._check_result(data or {}, "/getLedger")

        try:
            return int(data["result"]["header"]["seq"])
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(
                "Ledger header missing from response",
                SdkError.RPC_ERROR_BAD_RESPONSE,
            ) from e
