"""
=============================================================================
MIDDLEWARE FRAMEWORK
=============================================================================

Middleware wrap the router like layers of an onion. namesite installs them
in this order (first added = outermost):

    ┌─────────────────────────────────────────────────────────────────┐
    │  LoggingMiddleware           access log, X-Request-ID           │
    │  ┌───────────────────────────────────────────────────────────┐  │
    │  │  StaticFiles("/assets")   may answer and stop here         │  │
    │  │  ┌─────────────────────────────────────────────────────┐  │  │
    │  │  │  CompressionMiddleware   gzips the way back out      │  │  │
    │  │  │  ┌───────────────────────────────────────────────┐  │  │  │
    │  │  │  │  BodyParser              fills request.form     │  │  │  │
    │  │  │  │  ┌─────────────────────────────────────────┐  │  │  │  │
    │  │  │  │  │  FaviconMiddleware   /favicon.ico         │  │  │  │  │
    │  │  │  │  │  ┌───────────────────────────────────┐  │  │  │  │  │
    │  │  │  │  │  │          router.handle            │  │  │  │  │  │
    │  │  │  │  │  └───────────────────────────────────┘  │  │  │  │  │
    │  │  │  │  └─────────────────────────────────────────┘  │  │  │  │
    │  │  │  └───────────────────────────────────────────────┘  │  │  │
    │  │  └─────────────────────────────────────────────────────┘  │  │
    │  └───────────────────────────────────────────────────────────┘  │
    └─────────────────────────────────────────────────────────────────┘

Requests travel inward, responses travel back outward. A middleware that
returns without calling next() short-circuits everything inside it.

StaticFiles sits OUTSIDE compression, so asset responses are never gzipped
while pages and JSON are.

=============================================================================
"""

from abc import ABC, abstractmethod
from functools import partial
from typing import Callable, Iterator, List, Optional, Union
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# What a middleware calls to continue: the next layer, or the router
NextHandler = Callable[[HTTPRequest], HTTPResponse]

MiddlewareFunc = Callable[[HTTPRequest, NextHandler], HTTPResponse]


class Middleware(ABC):
    """
    One layer of the onion.

        class Stamp(Middleware):
            def __call__(self, request, next):
                return next(request).set_header("X-Stamp", "1")
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Handle the request, usually by calling next(request) and
        adjusting what comes back. Returning without calling next() ends
        the request here.
        """

    @property
    def name(self) -> str:
        return type(self).__name__


class FunctionMiddleware(Middleware):
    """A plain ``(request, next) -> response`` function as a Middleware."""

    def __init__(self, func: MiddlewareFunc, name: Optional[str] = None):
        self._func = func
        self._name = name or getattr(func, "__name__", type(func).__name__)

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


class MiddlewarePipeline:
    """
    The ordered middleware stack.

        pipeline = MiddlewarePipeline()
        pipeline.use(LoggingMiddleware(), BodyParser())
        handle = pipeline.wrap(router.handle)
        response = handle(request)

    Plain functions are accepted wherever a Middleware is and are wrapped
    in FunctionMiddleware.
    """

    def __init__(self):
        self._stack: List[Middleware] = []

    def use(self, *layers: Union[Middleware, MiddlewareFunc]) -> "MiddlewarePipeline":
        """Append layers, innermost last; returns self."""
        for layer in layers:
            if not isinstance(layer, Middleware):
                layer = FunctionMiddleware(layer)
            self._stack.append(layer)
            logger.debug(f"Middleware #{len(self._stack)}: {layer.name}")
        return self

    def add(self, layer: Union[Middleware, MiddlewareFunc]) -> "MiddlewarePipeline":
        """Append a single layer; returns self."""
        return self.use(layer)

    def wrap(self, endpoint: NextHandler) -> NextHandler:
        """
        Compose the stack around endpoint.

            [A, B, C] + router  →  A(·, next=B(·, next=C(·, next=router)))

        With an empty stack the endpoint itself is returned.
        """
        handler = endpoint
        for layer in reversed(self._stack):
            handler = partial(layer, next=handler)
        return handler

    def names(self) -> List[str]:
        return [layer.name for layer in self._stack]

    def __len__(self) -> int:
        return len(self._stack)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._stack)
