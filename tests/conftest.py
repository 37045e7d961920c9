"""
Shared fixtures: the app, an in-process client and a live socket server.
"""

import threading
import time
from typing import Dict, Generator, Optional
from urllib.parse import urlencode

import pytest

from namesite import AppConfig, HTTPServer, NameStore, create_app
from namesite.http import HTTPResponse, parse_request


FORM_TYPE = "application/x-www-form-urlencoded"


def raw_request(
    method: str,
    path: str,
    body: bytes = b"",
    headers: Optional[Dict[str, str]] = None,
) -> bytes:
    """Serialise a request the way a client would put it on the wire."""
    lines = [f"{method} {path} HTTP/1.1", "Host: localhost:3000"]
    for name, value in (headers or {}).items():
        lines.append(f"{name}: {value}")
    if body:
        lines.append(f"Content-Length: {len(body)}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode() + body


class PipelineClient:
    """
    Sends requests through HTTPServer.handle (middleware + router) without
    opening a socket.
    """

    def __init__(self, server: HTTPServer):
        self.server = server

    def request(
        self,
        method: str,
        path: str,
        body: bytes = b"",
        headers: Optional[Dict[str, str]] = None,
    ) -> HTTPResponse:
        request = parse_request(
            raw_request(method, path, body, headers),
            client_address=("127.0.0.1", 50000),
        )
        return self.server.handle(request)

    def get(self, path: str, **headers: str) -> HTTPResponse:
        return self.request("GET", path, headers=_header_names(headers))

    def post_form(self, path: str, fields: Optional[dict] = None, raw: Optional[str] = None) -> HTTPResponse:
        body = (raw if raw is not None else urlencode(fields or {})).encode()
        return self.request("POST", path, body=body, headers={"Content-Type": FORM_TYPE})


def _header_names(headers: Dict[str, str]) -> Dict[str, str]:
    # if_none_match → If-None-Match
    return {"-".join(p.capitalize() for p in k.split("_")): v for k, v in headers.items()}


@pytest.fixture
def config() -> AppConfig:
    """Default test configuration."""
    return AppConfig(
        host="127.0.0.1",
        port=0,
        min_workers=1,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def store() -> NameStore:
    return NameStore()


@pytest.fixture
def app(config: AppConfig, store: NameStore) -> HTTPServer:
    """The full namesite application."""
    return create_app(config, store=store)


@pytest.fixture
def client(app: HTTPServer) -> PipelineClient:
    return PipelineClient(app)


@pytest.fixture
def make_client(store: NameStore):
    """Build a client for an app created from a custom config."""
    def build(config: AppConfig) -> PipelineClient:
        return PipelineClient(create_app(config, store=store))
    return build


class LiveServer:
    """HTTPServer.run() on a daemon thread, bound to an OS-chosen port."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread = threading.Thread(target=server.run, name="live-server", daemon=True)

    @property
    def port(self) -> int:
        return self.server.port

    @property
    def alive(self) -> bool:
        return self._thread.is_alive()

    def start(self, timeout: float = 5.0):
        self._thread.start()
        deadline = time.monotonic() + timeout
        # port stays 0 until the listener is bound
        while not (self.server.is_running and self.port):
            if time.monotonic() > deadline or not self._thread.is_alive():
                raise RuntimeError("Server failed to start")
            time.sleep(0.05)

    def stop(self):
        self.server.stop()
        self._thread.join(timeout=15.0)


@pytest.fixture
def live_server(app: HTTPServer) -> Generator[LiveServer, None, None]:
    """The namesite app listening on 127.0.0.1."""
    server = LiveServer(app)
    server.start()
    yield server
    server.stop()
