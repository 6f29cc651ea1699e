"""
Final-notify fail events.

Each generated transaction registers the ledger sequence by which it
must be settled. When the chain closes that ledger and the transaction
has not been reported, its waiter is resolved with a timeout code.
"""

import heapq
import threading
from typing import Dict, List, Tuple

import structlog

from chaintx.errors import SdkError
from chaintx.sync.future import TransactionSyncManager

logger = structlog.get_logger(__name__)


class TxFailManager:
    """
    Ledger-sequence keyed deadlines for transactions.

    Events fire through the TransactionSyncManager, the same channel that
    delivers regular node results.
    """

    def __init__(self, sync_manager: TransactionSyncManager):
        """
        Initialize the fail manager.

        Args:
            sync_manager: Registry whose futures receive the timeout result
        """
        self.sync_manager = sync_manager
        self._events: Dict[str, Tuple[int, SdkError]] = {}
        self._heap: List[Tuple[int, str]] = []
        self._lock = threading.Lock()

    def final_notify_fail_event(self, target_seq: int, tx_hash: str, error: SdkError) -> None:
        """Register a fail event for tx_hash at ledger target_seq."""
        with self._lock:
            self._events[tx_hash] = (target_seq, error)
            heapq.heappush(self._heap, (target_seq, tx_hash))
        logger.debug("final_notify_registered", tx_hash=tx_hash, target_seq=target_seq)

    def discard(self, tx_hash: str) -> bool:
        """Cancel the fail event of a transaction that got its result."""
        with self._lock:
            return self._events.pop(tx_hash, None) is not None

    def on_ledger_closed(self, seq: int) -> List[str]:
        """
        Fire every event whose target sequence is at or below seq.

        Returns:
            Hashes whose fail event fired
        """
        due = []
        with self._lock:
            while self._heap and self._heap[0][0] <= seq:
                target_seq, tx_hash = heapq.heappop(self._heap)
                event = self._events.get(tx_hash)
                # Stale heap entries are left behind by discard() and re-registration
                if event is None or event[0] != target_seq:
                    continue
                del self._events[tx_hash]
                due.append((tx_hash, event[1]))

        for tx_hash, error in due:
            logger.warning("final_notify_fired", tx_hash=tx_hash, ledger_seq=seq)
            self.sync_manager.notify(tx_hash, error.code, error.message)

        return [tx_hash for tx_hash, _ in due]

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._events)
