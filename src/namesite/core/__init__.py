"""
=============================================================================
TRANSPORT LAYER
=============================================================================

TCP accept loop, per-client connections and the worker pool.

    SocketServer ──accept()──► Connection ──submit()──► ThreadPool

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, RequestTooLarge
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "ThreadPool",
]
