"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the transport, the parser, the middleware chain and the router into
one object.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        REQUEST LIFECYCLE                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SocketServer accepts ──► ThreadPool.submit()    full? → 503       │
    │                                                                      │
    │   worker thread, once per request on the connection:                │
    │                                                                      │
    │     read_request()        too big? → 413    first read idle? → 408  │
    │     parser.parse()        malformed? → 400 / 405 / 505               │
    │     handle(request)       middleware ──► router ──► handler         │
    │                                              raises? → 500           │
    │     Connection headers, HEAD drops the body                          │
    │     send_response()                                                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

handle() is also the entry point tests use to exercise the full pipeline
without opening a socket.

=============================================================================
"""

import logging
from typing import Callable, Optional, Union

from .config import AppConfig
from .core import SocketServer, Connection, ConnectionState, ThreadPool, RequestTooLarge
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus, Router,
    error_response, internal_error,
)
from .middleware import MiddlewarePipeline, Middleware


logger = logging.getLogger(__name__)


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

Handler = Callable[[HTTPRequest], HTTPResponse]


class HTTPServer:
    """
    Multi-threaded HTTP/1.1 server.

        server = HTTPServer(AppConfig(port=3000))
        server.use(LoggingMiddleware())

        @server.get("/getName")
        def get_name(request):
            return ResponseBuilder().json({"name": "unknown"}).build()

        server.run()            # blocks until SIGINT/SIGTERM or stop()

    Raises ValueError on construction when the config does not validate.
    """

    def __init__(self, config: Optional[AppConfig] = None):
        self.config = config or AppConfig()
        self.config.validate()

        self.router = Router()
        self.middleware = MiddlewarePipeline()

        self._listener = SocketServer(self.config)
        self._workers = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        self._chain: Optional[Handler] = None
        self._running = False

    # =========================================================================
    # SETUP
    # =========================================================================

    def use(self, middleware: Union[Middleware, Callable]) -> "HTTPServer":
        """
        Append middleware; ``(request, next)`` functions are accepted too.
        Only takes effect if added before the first request is handled.
        """
        self.middleware.use(middleware)
        return self

    def route(self, path: str, method: Optional[str] = None, **kwargs):
        return self.router.route(path, method, **kwargs)

    def get(self, path: str, **kwargs):
        return self.router.get(path, **kwargs)

    def post(self, path: str, **kwargs):
        return self.router.post(path, **kwargs)

    @property
    def port(self) -> int:
        """Bound port while listening, the configured one before."""
        return self._listener.address[1]

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # PIPELINE
    # =========================================================================

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Run one request through middleware and router. A handler that
        raises produces a 500 JSON response and a logged traceback.
        """
        if self._chain is None:
            self._chain = self.middleware.wrap(self.router.handle)
        try:
            return self._chain(request)
        except Exception as e:
            logger.exception(f"Handler error on {request.method} {request.path}: {e}")
            return internal_error()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Listen and serve until stop() or a signal.

        Raises:
            OSError: The port could not be bound; logged at CRITICAL first.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        configure_logging(self.config.log_level)
        self._chain = self.middleware.wrap(self.router.handle)
        self._workers.start()
        self._running = True

        try:
            self._listener.start(self._dispatch, on_listening=self._announce)
        except OSError as e:
            logger.critical(f"Cannot listen on port {self.config.port}: {e}")
            raise
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            self._running = False
            logger.info("Shutting down server...")
            self._workers.shutdown(wait=True, timeout=10.0)
            logger.info("Server stopped")

    def stop(self):
        """Ask a running server to stop; run() returns shortly after."""
        self._listener.shutdown()

    def _announce(self, address):
        logger.info(f"Listening on port {address[1]}")
        for route in self.router.routes():
            logger.debug(f"  {route.method or 'ANY':8} {route.path}")

    # =========================================================================
    # CONNECTIONS (worker threads)
    # =========================================================================

    def _dispatch(self, conn: Connection):
        if self._workers.submit(self._serve, args=(conn,)):
            return
        logger.warning(f"[{conn.id}] Worker queue full, answering 503")
        self._reject(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
        conn.close()

    def _serve(self, conn: Connection):
        with conn:
            try:
                while self._running and self._exchange(conn):
                    conn.set_keep_alive()
            except RequestTooLarge as e:
                self._reject(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
            except TimeoutError:
                self._reject(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
            except Exception as e:
                logger.exception(f"[{conn.id}] Connection error: {e}")

    def _exchange(self, conn: Connection) -> bool:
        """
        Read, handle and answer one request.

        Returns:
            Whether the connection stays open for another request.
        """
        raw = conn.read_request()
        if raw is None:
            return False

        try:
            request = self._parser.parse(raw, conn.address)
        except HTTPParseError as e:
            logger.info(f"[{conn.id}] Rejected request: {e}")
            self._reject(conn, HTTPStatus(e.status_code), str(e))
            return False

        conn.state = ConnectionState.PROCESSING
        response = self.handle(request)

        persist = self.config.keep_alive and request.is_keep_alive
        if persist:
            response.headers.setdefault("Connection", "keep-alive")
            response.headers.setdefault(
                "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
            )
        else:
            response.headers["Connection"] = "close"

        wire = response.to_bytes(
            self.config.server_name,
            include_body=request.method != "HEAD",
        )
        return conn.send_response(wire) and persist

    def _reject(self, conn: Connection, status: HTTPStatus, message: str):
        """JSON error for failures outside the pipeline, with Connection: close."""
        response = error_response(status, message).set_header("Connection", "close")
        conn.send_response(response.to_bytes(self.config.server_name))


def configure_logging(level_name: str):
    """Root handler in LOG_FORMAT plus the namesite logger level."""
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    logging.getLogger("namesite").setLevel(level)
