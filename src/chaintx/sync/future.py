"""
Correlation futures for submitted transactions.

A future is registered per transaction hash before submission and
resolved by the node's notification stream.
"""

import asyncio
import threading
from typing import Callable, Dict, List, Optional, Union

import structlog

from chaintx.errors import DuplicateWaitError, RemoteTimeoutError

logger = structlog.get_logger(__name__)

SUCCESS_CODE = 0

OutcomeListener = Callable[[str, Optional[int], Optional[str]], None]


def normalize_error_code(error_code: Union[int, str, None]) -> Optional[int]:
    """Node codes arrive as ints or numeric strings."""
    if error_code is None:
        return None
    return int(error_code)


class AsyncFutureTx:
    """
    Completion handle for one transaction hash.

    Bound to the event loop it was created on. complete() may be called
    from any thread; only the first call wins.
    """

    def __init__(self, tx_hash: str):
        self.tx_hash = tx_hash
        self._loop = asyncio.get_running_loop()
        self._future: asyncio.Future = self._loop.create_future()
        self.error_code: Optional[int] = None
        self.error_message: Optional[str] = None

    @property
    def done(self) -> bool:
        return self._future.done()

    @property
    def success(self) -> bool:
        """Check if the transaction completed with a success code."""
        return self.done and self.error_code in (None, SUCCESS_CODE)

    def complete(
        self,
        error_code: Union[int, str, None] = None,
        error_message: Optional[str] = None,
    ) -> None:
        """Resolve the future with the node's result code."""
        code = normalize_error_code(error_code)
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            self._resolve(code, error_message)
        else:
            self._loop.call_soon_threadsafe(self._resolve, code, error_message)

    def _resolve(self, error_code: Optional[int], error_message: Optional[str]) -> None:
        if self._future.done():
            return
        self.error_code = error_code
        self.error_message = error_message
        self._future.set_result(error_code)

    async def wait(self, timeout: float) -> None:
        """
        Block until the future resolves.

        Raises:
            RemoteTimeoutError: If nothing arrives within timeout seconds
        """
        try:
            await asyncio.wait_for(asyncio.shield(self._future), timeout=timeout)
        except asyncio.TimeoutError:
            raise RemoteTimeoutError(
                f"No result for transaction {self.tx_hash} after {timeout}s"
            )


class TransactionSyncManager:
    """
    Registry of outstanding correlation futures keyed by transaction hash.

    Holds at most one live future per hash. Safe to call from the
    notification thread and the event loop concurrently.
    """

    def __init__(self):
        self._futures: Dict[str, AsyncFutureTx] = {}
        self._listeners: List[OutcomeListener] = []
        self._lock = threading.Lock()

    def add_async_future_tx(self, future: AsyncFutureTx) -> None:
        """
        Register a future for its transaction hash.

        Raises:
            DuplicateWaitError: If the hash already has a live future
        """
        with self._lock:
            if future.tx_hash in self._futures:
                raise DuplicateWaitError(future.tx_hash)
            self._futures[future.tx_hash] = future
        logger.debug("tx_future_registered", tx_hash=future.tx_hash)

    def remove(self, future: AsyncFutureTx) -> None:
        """Drop a registration. Removing twice, or a replaced future, is a no-op."""
        with self._lock:
            if self._futures.get(future.tx_hash) is future:
                del self._futures[future.tx_hash]

    def add_listener(self, listener: OutcomeListener) -> None:
        """Observe every outcome, including hashes nobody is waiting on."""
        self._listeners.append(listener)

    def notify(
        self,
        tx_hash: str,
        error_code: Union[int, str, None] = None,
        error_message: Optional[str] = None,
    ) -> bool:
        """
        Deliver a transaction outcome.

        Returns:
            True if a registered future was resolved
        """
        code = normalize_error_code(error_code)

        for listener in list(self._listeners):
            try:
                listener(tx_hash, code, error_message)
            except Exception as e:
                logger.error("tx_listener_failed", tx_hash=tx_hash, error=str(e))

        with self._lock:
            future = self._futures.get(tx_hash)

        if future is None:
            logger.debug("tx_notify_unclaimed", tx_hash=tx_hash, error_code=code)
            return False

        future.complete(code, error_message)
        return True

    def get(self, tx_hash: str) -> Optional[AsyncFutureTx]:
        with self._lock:
            return self._futures.get(tx_hash)

    def __len__(self) -> int:
        with self._lock:
            return len(self._futures)

    def __contains__(self, tx_hash: str) -> bool:
        with self._lock:
            return tx_hash in self._futures
