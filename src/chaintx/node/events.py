"""
Node notification stream.

Receives transaction results and ledger closes from the node over a
WebSocket and routes them to the sync and fail managers.
"""

import asyncio
import json
from typing import Any, Optional

import structlog
import websockets

from chaintx.config import SdkConfig, get_config
from chaintx.errors import TransportError
from chaintx.node.manager import NodeManager
from chaintx.sync.fail import TxFailManager
from chaintx.sync.future import TransactionSyncManager, normalize_error_code

logger = structlog.get_logger(__name__)

TX_STATUS = "tx_status"
LEDGER_CLOSED = "ledger_closed"


class NodeEventListener:
    """
    WebSocket client for the node's notification stream.

    Message types:
    - tx_status: {"hash", "error_code", "error_desc"} resolves the waiter
    - ledger_closed: {"seq"} advances the chain height and fires due deadlines
    """

    def __init__(
        self,
        sync_manager: TransactionSyncManager,
        fail_manager: TxFailManager,
        node_manager: NodeManager,
        config: Optional[SdkConfig] = None,
    ):
        self.config = config or get_config()
        self.url = self.config.event_ws_url
        self.sync_manager = sync_manager
        self.fail_manager = fail_manager
        self.node_manager = node_manager
        self._ws: Optional[Any] = None
        self._receive_task: Optional[asyncio.Task] = None

    @property
    def is_connected(self) -> bool:
        return self._ws is not None

    async def connect(self) -> None:
        """Open the WebSocket and start the receive loop."""
        if self._ws is not None:
            return

        try:
            self._ws = await websockets.connect(
                self.url,
                ping_interval=30,
                ping_timeout=10,
            )
        except (OSError, websockets.WebSocketException) as e:
            raise TransportError(f"Failed to connect to node events: {e}") from e

        self._receive_task = asyncio.create_task(self._receive_loop())
        logger.info("events_connected", url=self.url)

    async def disconnect(self) -> None:
        """Stop the receive loop and close the WebSocket."""
        ws = self._ws
        task = self._receive_task
        if task:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            self._receive_task = None

        if ws:
            await ws.close()
            self._ws = None
            logger.info("events_disconnected")

    async def _receive_loop(self) -> None:
        """Background task to receive WebSocket messages."""
        try:
            async for message in self._ws:
                try:
                    self.handle_message(json.loads(message))
                except (TypeError, ValueError, AttributeError) as e:
                    logger.warning(
                        "events_bad_message",
                        message=str(message)[:64],
                        error=str(e),
                    )
                    continue
        except websockets.ConnectionClosed:
            logger.warning("events_connection_closed")
        finally:
            self._ws = None
            self._receive_task = None

    def handle_message(self, data: dict) -> None:
        """Dispatch one decoded notification."""
        message_type = data.get("type")

        if message_type == TX_STATUS:
            self._on_tx_status(data)
        elif message_type == LEDGER_CLOSED:
            self._on_ledger_closed(data)
        else:
            logger.debug("events_unknown_type", type=message_type)

    def _on_tx_status(self, data: dict) -> None:
        tx_hash = data.get("hash")
        if not tx_hash:
            logger.warning("events_tx_status_without_hash")
            return

        try:
            error_code = normalize_error_code(data.get("error_code"))
        except (TypeError, ValueError):
            logger.warning("events_bad_error_code", tx_hash=tx_hash, error_code=data.get("error_code"))
            return

        # Settled transactions drop their ledger deadline
        self.fail_manager.discard(tx_hash)

        self.sync_manager.notify(tx_hash, error_code, data.get("error_desc"))

    def _on_ledger_closed(self, data: dict) -> None:
        seq = data.get("seq")
        if seq is None:
            return

        try:
            seq = int(seq)
        except (TypeError, ValueError):
            logger.warning("events_bad_ledger_seq", seq=seq)
            return
        self.node_manager.update_last_seq(seq)
        self.fail_manager.on_ledger_closed(seq)
