"""
=============================================================================
CORE MODULE - Networking and Concurrency
=============================================================================

The transport layer of the server. Nothing in here knows about HTTP.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer ──accept()──► Connection ──submit()──► ThreadPool     │
    │   (listener)                 (client socket)          (workers)      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
IMPORTS AND EXPORTS
=============================================================================
"""

from .connection import Connection
from .socket_server import SocketServer
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",     # Listener - accepts connections
    "Connection",       # Client socket wrapper - reader, send, close
    "ThreadPool",       # Elastic worker threads, one task per connection
]
