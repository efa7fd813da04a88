"""
=============================================================================
NETWORKING CORE
=============================================================================

    SocketServer   listening socket + accept loop
    Connection     one client socket: buffered reads, streamed writes
    ThreadPool     workers that run one connection each

    accept() ─► Connection ─► ThreadPool.submit() ─► HTTPServer._process_connection

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool


__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ThreadPool",
]
