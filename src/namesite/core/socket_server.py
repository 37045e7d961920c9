"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

Owns the listening socket. Every accepted client is wrapped in a
Connection and passed to a callback; the HTTP server's callback queues it
on the worker pool and returns at once.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   create_server(host, port)   ── fails? → OSError (fatal)           │
    │   on_listening(address)       ← "Listening on port 3000"            │
    │                                                                      │
    │   until shutdown():                                                  │
    │       accept()                ← wakes every ACCEPT_POLL seconds     │
    │       callback(Connection)                                           │
    │                                                                      │
    │   close listener, restore signal handlers, set "stopped"            │
    └─────────────────────────────────────────────────────────────────────┘

SIGINT and SIGTERM call shutdown() when start() runs on the main thread.
Python only allows signal handlers there; a server started from another
thread (as the live-server tests do) is stopped with shutdown() instead.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Dict, Optional, Tuple

from .connection import Connection


logger = logging.getLogger(__name__)


# Seconds between checks of the stop flag while waiting in accept()
ACCEPT_POLL = 1.0

ConnectionHandler = Callable[[Connection], None]


class SocketServer:
    """
    Listening socket plus accept loop.

        server = SocketServer(config)
        server.start(handle_connection)   # blocks until shutdown()

    ``config`` supplies host, port, backlog and the per-connection
    settings buffer_size, timeout, keep_alive_timeout and max_request_size.
    """

    def __init__(self, config):
        self.config = config
        self._listener: Optional[socket.socket] = None
        self._bound: Optional[Tuple[str, int]] = None
        self._stopping = threading.Event()
        self._previous_handlers: Dict[int, object] = {}

    @property
    def is_running(self) -> bool:
        return self._listener is not None and not self._stopping.is_set()

    @property
    def address(self) -> Tuple[str, int]:
        """(host, port) actually bound; the configured pair before start()."""
        return self._bound or (self.config.host, self.config.port)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(
        self,
        connection_handler: ConnectionHandler,
        on_listening: Optional[Callable[[Tuple[str, int]], None]] = None,
    ):
        """
        Listen and accept until shutdown().

        Args:
            connection_handler: Receives each accepted Connection
            on_listening: Called once with the bound address

        Raises:
            OSError: The address could not be bound.
        """
        host, port = self.config.host, self.config.port
        try:
            listener = socket.create_server((host, port), backlog=self.config.backlog)
        except OSError as e:
            logger.error(f"Failed to bind to {host}:{port}: {e}")
            raise

        listener.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        listener.settimeout(ACCEPT_POLL)

        self._listener = listener
        self._bound = listener.getsockname()[:2]
        self._stopping.clear()
        self._install_signal_handlers()

        try:
            if on_listening:
                on_listening(self._bound)
            self._serve(connection_handler)
        finally:
            self._close()

    def shutdown(self):
        """Ask the accept loop to stop. Callable from any thread, repeatedly."""
        if not self._stopping.is_set():
            logger.info("Stopping accept loop")
        self._stopping.set()

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def _serve(self, connection_handler: ConnectionHandler):
        while not self._stopping.is_set():
            try:
                client, peer = self._listener.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._stopping.is_set():
                    logger.error(f"accept() failed: {e}")
                break

            logger.debug(f"Accepted {peer[0]}:{peer[1]}")
            connection_handler(self._wrap(client, peer[:2]))

    def _wrap(self, client: socket.socket, peer: Tuple[str, int]) -> Connection:
        return Connection(
            socket=client,
            address=peer,
            buffer_size=self.config.buffer_size,
            timeout=self.config.timeout,
            keep_alive_timeout=self.config.keep_alive_timeout,
            max_request_size=self.config.max_request_size,
        )

    def _close(self):
        self._restore_signal_handlers()
        if self._listener is not None:
            self._listener.close()
            self._listener = None
        self._stopping.set()
        logger.info("Listener closed")

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _install_signal_handlers(self):
        if threading.current_thread() is not threading.main_thread():
            return

        def on_signal(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down")
            self.shutdown()

        for sig in (signal.SIGINT, signal.SIGTERM):
            self._previous_handlers[sig] = signal.signal(sig, on_signal)

    def _restore_signal_handlers(self):
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()
