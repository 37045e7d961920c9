"""
=============================================================================
CLIENT CONNECTION
=============================================================================

One accepted client socket, used by a single worker thread for as many
requests as the client sends on it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   NEW ──► READING ──► PROCESSING ──► WRITING ──► KEEP_ALIVE ──┐      │
    │              ▲                                                │      │
    │              └────────────────────────────────────────────────┘      │
    │                                                                      │
    │   any state ──► CLOSING ──► CLOSED                                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

read_request() returns exactly one request (head plus Content-Length body
bytes). Anything the client sent beyond that stays in the buffer for the
next call, so pipelined requests are answered in order.

Timeouts:

    first request on the connection     ``timeout`` (default 30 s)
                                         → TimeoutError, server sends 408
    every later request (keep-alive)    ``keep_alive_timeout`` (default 5 s)
                                         → None, connection closed quietly

=============================================================================
"""

import logging
import re
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


logger = logging.getLogger(__name__)


HEAD_END = b"\r\n\r\n"

_CONTENT_LENGTH = re.compile(rb"^content-length[ \t]*:[ \t]*(\d+)[ \t]*$", re.I | re.M)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


class RequestTooLarge(ValueError):
    """The client sent more than max_request_size bytes for one request."""


def declared_length(head: bytes) -> int:
    """
    Content-Length announced in a raw request head, 0 when there is none.

    A malformed value also counts as 0 here; the request parser rejects it
    with a proper 400 afterwards.
    """
    match = _CONTENT_LENGTH.search(head.replace(b"\r\n", b"\n"))
    return int(match.group(1)) if match else 0


@dataclass
class Connection:
    """
    A client connection.

        with Connection(socket=client_sock, address=addr) as conn:
            while (raw := conn.read_request()) is not None:
                conn.send_response(build_reply(raw))
    """

    socket: socket.socket
    address: tuple[str, int]

    buffer_size: int = 8192
    timeout: float = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    requests_handled: int = 0
    opened_at: float = field(default_factory=time.monotonic)

    _pending: bytearray = field(default_factory=bytearray, repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout or None)

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read the next request off the socket.

        Returns:
            The request bytes; None when the client hung up between
            requests or let a keep-alive wait expire.

        Raises:
            TimeoutError: The first request did not arrive within timeout.
            RequestTooLarge: Head plus declared body exceed max_request_size.
        """
        self.state = ConnectionState.READING
        first = self.requests_handled == 0
        self.socket.settimeout(self.timeout if first else self.keep_alive_timeout)

        try:
            head_len = self._fill_head()
            if head_len is None:
                return None

            total = head_len + declared_length(bytes(self._pending[:head_len]))
            if total > self.max_request_size:
                raise RequestTooLarge(f"Request too large: {total} bytes")

            # A client that hangs up mid-body leaves a short request; the
            # parser turns that into a 400.
            self._fill_to(total)

        except socket.timeout:
            if first:
                raise TimeoutError("Request read timeout") from None
            logger.debug(f"[{self.id}] Idle keep-alive connection timed out")
            return None

        request = bytes(self._pending[:total])
        del self._pending[:total]
        self.requests_handled += 1
        return request

    def _fill_head(self) -> Optional[int]:
        """Buffer until a complete head is present; its length incl. CRLFCRLF."""
        while True:
            end = self._pending.find(HEAD_END)
            if end != -1:
                return end + len(HEAD_END)
            if len(self._pending) > self.max_request_size:
                raise RequestTooLarge(
                    f"Request head exceeds {self.max_request_size} bytes"
                )
            if not self._receive():
                return None

    def _fill_to(self, size: int):
        while len(self._pending) < size:
            if not self._receive():
                return

    def _receive(self) -> bool:
        """Append one recv() to the buffer; False on EOF or reset."""
        try:
            chunk = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return False
        self._pending += chunk
        return bool(chunk)

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        sendall() a serialised response.

        Returns:
            False when the client is gone; the caller stops the loop.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False
        return True

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Half-close, drain what the client still sends, release the socket.
        Safe to call twice.
        """
        if self.state == ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass
        finally:
            self.socket.close()

        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Closed after {self.requests_handled} requests, "
            f"{time.monotonic() - self.opened_at:.2f}s"
        )

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
