"""
Node Integration Layer.

Provides access to the node for submission, chain state and
result notifications.
"""

from chaintx.node.interface import RpcService
from chaintx.node.http import HttpRpcService
from chaintx.node.manager import NodeManager
from chaintx.node.events import NodeEventListener

__all__ = [
    "RpcService",
    "HttpRpcService",
    "NodeManager",
    "NodeEventListener",
]
