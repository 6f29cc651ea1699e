"""
Sequence number allocation.
"""

from chaintx.seq.manager import NonceSequenceManager, SequenceManager

__all__ = [
    "NonceSequenceManager",
    "SequenceManager",
]
