"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One log line per request, with timing and a short request ID.

    TEXT (default, combined-log style):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 127.0.0.1 - - [19/Oct/2026:10:55:36 +0000] "POST /setName" 200 27   │
    │ "curl/8.5.0" 1.84ms                                                 │
    └─────────────────────────────────────────────────────────────────────┘

    JSON (HTTP_LOG_FORMAT=json):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"request_id": "a1b2c3d4", "method": "POST", "path": "/setName",    │
    │  "status_code": 200, "duration_ms": 1.84, ...}                      │
    └─────────────────────────────────────────────────────────────────────┘

Lines go to the "namesite.access" logger so the access log can be routed
or silenced separately from application logs:

    logging.getLogger("namesite.access").setLevel(logging.WARNING)

The middleware is installed first, so it also sees requests answered by
the static mount and the favicon, and it times the whole chain.

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("namesite.access")


@dataclass
class AccessRecord:
    """What gets logged about one finished request."""

    request_id: str
    remote: str
    method: str
    path: str
    query: str
    status: int
    size: int
    agent: str
    elapsed_ms: float
    when: str

    @classmethod
    def capture(
        cls,
        request_id: str,
        request: HTTPRequest,
        response: HTTPResponse,
        elapsed_ms: float,
    ) -> "AccessRecord":
        pairs = [
            f"{key}={value}"
            for key, values in request.query_params.items()
            for value in values
        ]
        return cls(
            request_id=request_id,
            remote=request.client_address[0] or "-",
            method=request.method,
            path=request.path,
            query="&".join(pairs),
            status=int(response.status),
            size=len(response.body),
            agent=request.user_agent or "-",
            elapsed_ms=elapsed_ms,
            when=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )


def format_text(record: AccessRecord) -> str:
    return (
        f'{record.remote} - - [{record.when}] "{record.method} {record.path}" '
        f'{record.status} {record.size} "{record.agent}" {record.elapsed_ms:.2f}ms'
    )


def format_json(record: AccessRecord) -> str:
    return json.dumps({
        "request_id": record.request_id,
        "method": record.method,
        "path": record.path,
        "query": record.query,
        "client_ip": record.remote,
        "user_agent": record.agent,
        "status_code": record.status,
        "content_length": record.size,
        "duration_ms": round(record.elapsed_ms, 2),
        "timestamp": record.when,
    })


FORMATTERS: Dict[str, Callable[[AccessRecord], str]] = {
    "text": format_text,
    "json": format_json,
}


class LoggingMiddleware(Middleware):
    """
    Access-log middleware.

        pipeline.add(LoggingMiddleware(log_format="json"))

    Args:
        log_format: "text" or "json"
        include_request_id: Add X-Request-ID to every response
        log_level: Level the access lines are emitted at
        skip_paths: Paths that are never logged

    A handler that raises is logged at ERROR and the exception propagates
    to the server, which answers 500.
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[List[str]] = None,
    ):
        try:
            self._format = FORMATTERS[log_format]
        except KeyError:
            raise ValueError(f"Unknown log format: {log_format}") from None
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = frozenset(skip_paths or ())

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        started = time.perf_counter()

        def elapsed_ms() -> float:
            return (time.perf_counter() - started) * 1000

        try:
            response = next(request)
        except Exception as e:
            logger.error(
                f"[{request_id}] {request.method} {request.path} failed: "
                f"{type(e).__name__}: {e} ({elapsed_ms():.2f}ms)"
            )
            raise

        if self.include_request_id:
            response.headers["X-Request-ID"] = request_id

        if request.path not in self.skip_paths:
            record = AccessRecord.capture(request_id, request, response, elapsed_ms())
            logger.log(self.log_level, self._format(record))

        return response
